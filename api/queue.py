"""
RQ (Redis Queue) setup for the API service.

This module provides RQ queue configuration and job enqueueing utilities.
"""

from __future__ import annotations

from typing import Optional

import redis
from rq import Queue

from shared.config import get_config
from shared.logging import get_logger
from shared.store import DROP_QUEUE_NAME

logger = get_logger(__name__)

# RQ needs a raw (bytes) connection, separate from the decoded store client.
_redis_conn: Optional[redis.Redis] = None
_queue: Optional[Queue] = None


def get_redis_connection() -> redis.Redis:
    """Get or create the Redis connection used by RQ."""
    global _redis_conn
    if _redis_conn is None:
        config = get_config()
        if not config.redis_url:
            raise ValueError(
                "REDIS_URL environment variable is required. "
                "Set it to a Redis connection string (e.g., redis://localhost:6379/0)."
            )
        _redis_conn = redis.from_url(config.redis_url)
    return _redis_conn


def get_queue() -> Queue:
    """Get or create the drop-alert queue."""
    global _queue
    if _queue is None:
        _queue = Queue(DROP_QUEUE_NAME, connection=get_redis_connection())
    return _queue


def enqueue_drop_job(alert_id: str, product_url: str, product_name: str) -> str:
    """
    Enqueue one drop-alert job and return its job id.

    Uses a string job path so the API never imports Playwright code; the
    worker resolves `dropcart.jobs.process_drop_alert` at run time.
    """
    config = get_config()
    job = get_queue().enqueue(
        "dropcart.jobs.process_drop_alert",
        alert_id=alert_id,
        product_url=product_url,
        product_name=product_name,
        job_timeout=config.drop_job_timeout_seconds,
    )
    logger.info("drop_job_enqueued", alert_id=alert_id, job_id=job.id, product_url=product_url)
    return job.id
