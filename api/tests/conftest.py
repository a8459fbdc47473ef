"""
Pytest configuration and fixtures for API tests.

The settings store runs on an in-memory Redis stand-in, so no Redis
server is needed.
"""

from __future__ import annotations

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from api.deps import get_command_timeout_ms, get_store
from api.main import create_app
from dropcart.tests.fakes import FakeRedis
from shared.store import SettingsStore


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def store(fake_redis) -> SettingsStore:
    s = SettingsStore(fake_redis)
    s.initialize_defaults()
    return s


@pytest.fixture
def client(store) -> Generator[TestClient, None, None]:
    """Create a FastAPI test client backed by the in-memory store."""
    app = create_app()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_command_timeout_ms] = lambda: 100

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
