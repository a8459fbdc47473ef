"""Tests for environment-based configuration and engine settings."""

from __future__ import annotations

import pytest

from dropcart.engine import EngineSettings
from shared.config import AppConfig

ENV_VARS = (
    "APP_ENV",
    "REDIS_URL",
    "AUTO_CHECKOUT_POLL_MS",
    "TARGET_KEYWORDS",
    "SCAN_INTERVAL_MS",
    "VIEWPORT",
    "HEADLESS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = AppConfig.from_env()
    assert config.environment == "local"
    assert config.redis_url is None
    assert config.scan_interval_ms == 5000
    assert config.mutation_debounce_ms == 1000
    assert config.auto_checkout_poll_ms == 1000
    assert config.target_keywords == ("labubu",)
    assert config.headless is True
    assert config.viewport == "desktop"


def test_poll_interval_is_clamped(monkeypatch):
    monkeypatch.setenv("AUTO_CHECKOUT_POLL_MS", "10")
    assert AppConfig.from_env().auto_checkout_poll_ms == 250
    monkeypatch.setenv("AUTO_CHECKOUT_POLL_MS", "600000")
    assert AppConfig.from_env().auto_checkout_poll_ms == 60_000


def test_keywords_and_viewport_parsing(monkeypatch):
    monkeypatch.setenv("TARGET_KEYWORDS", " Labubu, Skullpanda ,,")
    monkeypatch.setenv("VIEWPORT", "tablet")
    monkeypatch.setenv("SCAN_INTERVAL_MS", "not-a-number")
    config = AppConfig.from_env()
    assert config.target_keywords == ("labubu", "skullpanda")
    assert config.viewport == "desktop"
    assert config.scan_interval_ms == 5000


def test_unknown_environment_is_rejected(monkeypatch):
    monkeypatch.setenv("APP_ENV", "qa")
    with pytest.raises(ValueError, match="APP_ENV"):
        AppConfig.from_env()


def test_engine_settings_from_config(monkeypatch):
    monkeypatch.setenv("TARGET_KEYWORDS", "crybaby")
    settings = EngineSettings.from_config(AppConfig.from_env())
    assert settings.target_keywords == ("crybaby",)
    assert EngineSettings(auto_checkout_poll_ms=5).poll_interval_ms == 250
