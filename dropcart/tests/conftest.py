"""Shared fixtures for engine tests."""

from __future__ import annotations

import pytest

from dropcart.models import PaymentProfile
from dropcart.tests.fakes import FakeCollaborator, FakeRedis
from shared.store import SettingsStore


@pytest.fixture
def collaborator() -> FakeCollaborator:
    return FakeCollaborator()


@pytest.fixture
def payment_profile() -> PaymentProfile:
    return PaymentProfile(
        email="buyer@example.com",
        first_name="Ada",
        last_name="Lovelace",
        address="1 Analytical Way",
        city="London",
        zip="N1 9GU",
        card_number="4242424242424242",
        expiry="12/30",
        cvv="123",
        auto_submit=False,
    )


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def store(fake_redis) -> SettingsStore:
    s = SettingsStore(fake_redis, log_limit=5)
    s.initialize_defaults()
    return s
