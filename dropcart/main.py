"""
dropcart entrypoint.

    python -m dropcart.main watch URL [--page-id ID] [--headless/--headed] [--viewport desktop|mobile]
    python -m dropcart.main worker

`watch` opens the page, runs a CartEngine wired to the Redis settings store
and command relay until Ctrl+C, then disposes it. `worker` starts an RQ
worker on the drop-alert queue.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Optional
from uuid import uuid4

import redis
from dotenv import load_dotenv
from playwright.async_api import async_playwright
from rq import Queue, Worker

from dropcart.bridge import CommandListener, RedisCollaborator
from dropcart.browser import create_browser_context
from dropcart.engine import CartEngine, EngineSettings
from dropcart.observer import PlaywrightMutationSource
from shared.config import AppConfig, get_config
from shared.logging import bind_page_context, configure_from_config, get_logger
from shared.store import DROP_QUEUE_NAME, SettingsStore, connect_redis

load_dotenv()


async def watch(
    url: str,
    config: AppConfig,
    *,
    page_id: str,
    headless: bool,
    viewport: str,
) -> None:
    logger = get_logger(__name__)
    store = SettingsStore(connect_redis(config.redis_url), log_limit=config.automation_log_limit)
    store.initialize_defaults()
    bind_page_context(page_id=page_id, url=url)

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless)
        try:
            context = await create_browser_context(browser, viewport)  # type: ignore[arg-type]
            page = await context.new_page()
            await page.goto(url, wait_until="domcontentloaded")

            engine = CartEngine(
                page,
                RedisCollaborator(store, page_id),
                settings=EngineSettings.from_config(config),
                mutation_source=PlaywrightMutationSource(page),
                page_id=page_id,
            )
            listener = CommandListener(store, page_id, engine.handle_message)
            await engine.start()
            await listener.start()
            logger.info("watch_ready", buttons=len(engine.detections))
            print(f"Watching {url} as page '{page_id}'. Press Ctrl+C to stop.")
            try:
                await asyncio.Event().wait()
            finally:
                await listener.stop()
                await engine.dispose()
        finally:
            await browser.close()


def run_worker(config: AppConfig) -> None:
    logger = get_logger(__name__)
    if not config.redis_url:
        logger.error("redis_url_not_configured")
        print("ERROR: REDIS_URL environment variable is required.", file=sys.stderr)
        sys.exit(1)

    try:
        redis_conn = redis.from_url(config.redis_url)
        redis_conn.ping()
    except redis.RedisError as e:
        logger.error("redis_connection_failed", error=str(e))
        print(f"ERROR: Failed to connect to Redis: {e}", file=sys.stderr)
        sys.exit(1)

    logger.info("worker_starting", queue_name=DROP_QUEUE_NAME)
    queue = Queue(DROP_QUEUE_NAME, connection=redis_conn)
    worker = Worker([queue], connection=redis_conn, name=f"drop_worker-{uuid4().hex[:8]}")
    print(f"Worker started. Listening for jobs on queue '{DROP_QUEUE_NAME}'...")
    print("Press Ctrl+C to stop.")
    try:
        worker.work()
    except KeyboardInterrupt:
        logger.info("worker_stopping")
        print("\nWorker stopped.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dropcart", description="Add-to-cart detection and auto-checkout")
    sub = parser.add_subparsers(dest="command", required=True)

    watch_parser = sub.add_parser("watch", help="Open a page and run the engine until interrupted")
    watch_parser.add_argument("url", help="Product or listing page URL")
    watch_parser.add_argument("--page-id", default=None, help="Page context id (default: random)")
    watch_parser.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Run the browser headless (default: HEADLESS env)",
    )
    watch_parser.add_argument("--viewport", choices=["desktop", "mobile"], default=None)

    sub.add_parser("worker", help="Start an RQ worker for drop alerts")
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    config = get_config()
    configure_from_config(config)

    if args.command == "worker":
        run_worker(config)
        return

    page_id = args.page_id or uuid4().hex[:12]
    headless = config.headless if args.headless is None else args.headless
    viewport = args.viewport or config.viewport
    try:
        asyncio.run(watch(args.url, config, page_id=page_id, headless=headless, viewport=viewport))
    except KeyboardInterrupt:
        print("\nStopped.")


if __name__ == "__main__":
    main()
