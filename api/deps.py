"""
FastAPI dependencies for the dashboard API.

One SettingsStore per process, built lazily from REDIS_URL; tests override
`get_store` with an in-memory client.
"""

from __future__ import annotations

from typing import Optional

from shared.config import get_config
from shared.store import SettingsStore, connect_redis

_store: Optional[SettingsStore] = None


def get_store() -> SettingsStore:
    """FastAPI dependency returning the process-wide settings store."""
    global _store
    if _store is None:
        config = get_config()
        _store = SettingsStore(connect_redis(config.redis_url), log_limit=config.automation_log_limit)
        _store.initialize_defaults()
    return _store


def get_command_timeout_ms() -> int:
    """How long the API waits for a live page to answer a relayed command."""
    return get_config().collaborator_timeout_ms
