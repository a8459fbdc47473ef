"""
Environment-based configuration for dropcart.

This module exposes a small, typed configuration surface shared by the
engine CLI, the drop-alert worker and the dashboard API. All values are
sourced from environment variables with sensible, non-secret defaults.

No secrets or credentials are hard-coded here; they must be provided via
the environment (or tooling such as python-dotenv in local development).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal, Optional

Environment = Literal["local", "dev", "staging", "prod"]

# Bounds for the auto-checkout poll cadence (ms).
MIN_POLL_INTERVAL_MS = 250
MAX_POLL_INTERVAL_MS = 60_000


@dataclass(frozen=True)
class AppConfig:
    """
    Top-level application configuration.

    Engine timings are plain millisecond integers so they can be passed
    straight into `EngineSettings` without conversion.
    """

    environment: Environment
    log_level: str

    # Optional file path for structured JSON logs; when set, logs are written
    # to file (and stdout if log_stdout).
    log_file: Optional[str]
    # When True, logs go to stdout. When False, only file (if LOG_FILE set). Default True.
    log_stdout: bool

    # Settings store / message relay (URI only; no credentials stored here).
    redis_url: Optional[str]

    # Detection cadence
    scan_interval_ms: int
    mutation_debounce_ms: int

    # Auto-checkout
    auto_checkout_poll_ms: int
    target_keywords: tuple[str, ...]

    # Collaborator round-trip budget before NoResponseError
    collaborator_timeout_ms: int

    # Browser
    headless: bool
    viewport: str

    # RQ job timeout for drop alerts (seconds)
    drop_job_timeout_seconds: int

    # Automation log cap (entries)
    automation_log_limit: int

    @classmethod
    def from_env(cls) -> "AppConfig":
        """
        Construct configuration from environment variables.

        All fields have sensible defaults suitable for local development.
        Production deployments are expected to override these via env vars.
        """

        environment = os.getenv("APP_ENV", "local")

        if environment not in {"local", "dev", "staging", "prod"}:
            raise ValueError(f"Unsupported APP_ENV value: {environment!r}")

        def _bool_env(name: str, default: bool) -> bool:
            raw = (os.getenv(name) or str(default)).strip().lower()
            return raw in ("true", "1", "yes")

        def _int_env(name: str, default: int) -> int:
            raw = (os.getenv(name) or "").strip()
            if not raw:
                return default
            try:
                return int(raw)
            except ValueError:
                return default

        def _poll_interval_ms() -> int:
            value = _int_env("AUTO_CHECKOUT_POLL_MS", 1000)
            return max(MIN_POLL_INTERVAL_MS, min(MAX_POLL_INTERVAL_MS, value))

        def _keywords() -> tuple[str, ...]:
            raw = os.getenv("TARGET_KEYWORDS", "labubu")
            return tuple(k.strip().lower() for k in raw.split(",") if k.strip())

        viewport = (os.getenv("VIEWPORT") or "desktop").strip().lower()
        if viewport not in {"desktop", "mobile"}:
            viewport = "desktop"

        return cls(
            environment=environment,  # type: ignore[arg-type]
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE") or None,
            log_stdout=_bool_env("LOG_STDOUT", True),
            redis_url=os.getenv("REDIS_URL"),
            scan_interval_ms=_int_env("SCAN_INTERVAL_MS", 5000),
            mutation_debounce_ms=_int_env("MUTATION_DEBOUNCE_MS", 1000),
            auto_checkout_poll_ms=_poll_interval_ms(),
            target_keywords=_keywords(),
            collaborator_timeout_ms=_int_env("COLLABORATOR_TIMEOUT_MS", 5000),
            headless=_bool_env("HEADLESS", True),
            viewport=viewport,
            drop_job_timeout_seconds=_int_env("DROP_JOB_TIMEOUT_SECONDS", 300),
            automation_log_limit=_int_env("AUTOMATION_LOG_LIMIT", 1000),
        )


def get_config() -> AppConfig:
    """
    Helper to obtain the current configuration.

    In simple scripts, calling this function directly is sufficient. In
    longer-lived processes, consider constructing a single `AppConfig`
    instance at startup and passing it explicitly through your code.
    """

    return AppConfig.from_env()
