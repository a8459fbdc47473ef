"""
structlog setup shared by the `dropcart` CLI, the RQ worker and the API.

Every line is JSON. Engines bind page_id, url and platform once per page
context. Payment profile fields never reach a logger.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Mapping, Optional

import structlog


def _build_shared_processors() -> list[structlog.types.Processor]:
    timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)

    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        timestamper,
        structlog.processors.EventRenamer("message"),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer(),
    ]


def _stream_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def configure_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    log_stdout: bool = True,
) -> None:
    """
    Route structlog through the root logger to stdout and/or `log_file`.

    Falls back to stdout when neither is requested.
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    if log_stdout:
        root.addHandler(_stream_handler(level))

    if log_file:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(file_handler)

    if not root.handlers:
        root.addHandler(_stream_handler(level))

    structlog.configure(
        processors=_build_shared_processors(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_config(config: Any) -> None:
    """Configure logging from an `AppConfig` (level name, file, stdout flag)."""
    level = logging.getLevelName(str(config.log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO
    configure_logging(level=level, log_file=config.log_file, log_stdout=config.log_stdout)


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Module logger; configures stdout JSON logging on first use if nobody has yet."""
    if not structlog.is_configured():
        configure_logging()

    return structlog.get_logger(name) if name else structlog.get_logger()


def bind_page_context(
    *,
    page_id: Optional[str] = None,
    url: Optional[str] = None,
    platform: Optional[str] = None,
    **extra: Any,
) -> Mapping[str, Any]:
    """Bind page fields into contextvars, skipping the ones that are None."""
    context: dict[str, Any] = {
        "page_id": page_id,
        "url": url,
        "platform": platform,
        **extra,
    }
    filtered_context = {k: v for k, v in context.items() if v is not None}

    structlog.contextvars.bind_contextvars(**filtered_context)
    return filtered_context
