"""
RQ job handlers for drop alerts.

Thin entrypoint: open the product page in a fresh browser,
run one scan, click the best matching add-to-cart control, record the
outcome in the automation log and on the alert.
"""

from __future__ import annotations

import asyncio
import re
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright

from dropcart.browser import create_browser_context
from dropcart.detect.scanner import scan_for_cart_buttons
from dropcart.errors import DropcartError
from dropcart.executor import InteractionExecutor
from dropcart.models import ButtonRecord, DetectionSet
from dropcart.orchestrator import matches_target
from shared.config import get_config
from shared.logging import bind_page_context, get_logger
from shared.store import SettingsStore, connect_redis

logger = get_logger(__name__)

NAVIGATION_TIMEOUT_MS = 30_000

_WORD = re.compile(r"[a-z0-9]+")


def product_keywords(product_name: str) -> list[str]:
    """Lowercase words of 3+ characters from a product name."""
    return [w for w in _WORD.findall((product_name or "").lower()) if len(w) >= 3]


def choose_drop_target(detections: DetectionSet, product_name: str) -> Optional[ButtonRecord]:
    """
    First visible, enabled record whose product name or label mentions the
    alert's product; falls back to the first visible, enabled record.
    """
    actionable = [r for r in detections if r.visible and r.enabled]
    keywords = product_keywords(product_name)
    if keywords:
        for record in actionable:
            if matches_target(record, keywords):
                return record
    return actionable[0] if actionable else None


async def run_drop_purchase(
    product_url: str,
    product_name: str,
    *,
    headless: bool = True,
    viewport: str = "desktop",
) -> dict:
    """Open the URL, scan once and attempt one add-to-cart. Returns an outcome dict."""
    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless)
        try:
            context = await create_browser_context(browser, viewport)  # type: ignore[arg-type]
            page = await context.new_page()
            await page.goto(product_url, wait_until="domcontentloaded", timeout=NAVIGATION_TIMEOUT_MS)
            scan = await scan_for_cart_buttons(page)
            bind_page_context(url=scan.url, platform=scan.platform)
            target = choose_drop_target(scan.detections, product_name)
            if target is None:
                return {"success": False, "error": "No add-to-cart control found", "buttons": len(scan.detections)}
            result = await InteractionExecutor(page).execute(target.dom_locator)
            return {
                "success": True,
                "buttonId": target.id,
                "addedToCart": result.added_to_cart,
                "timestamp": result.timestamp,
            }
        finally:
            await browser.close()


def process_drop_alert(alert_id: str, product_url: str, product_name: str) -> dict:
    """
    RQ job handler for one drop alert.

    Never raises for page-level failures: they are recorded as an
    ADD_TO_CART_FAILED automation event and on the alert itself.
    """
    bind_page_context(alert_id=alert_id, url=product_url)
    logger.info("drop_job_started", product_name=product_name)

    config = get_config()
    store = SettingsStore(connect_redis(config.redis_url), log_limit=config.automation_log_limit)

    try:
        outcome = asyncio.run(
            run_drop_purchase(
                product_url,
                product_name,
                headless=config.headless,
                viewport=config.viewport,
            )
        )
    except (DropcartError, PlaywrightError) as e:
        logger.warning("drop_job_failed", error=str(e))
        outcome = {"success": False, "error": str(e)}

    event_type = "ADD_TO_CART_SUCCESS" if outcome.get("success") else "ADD_TO_CART_FAILED"
    store.append_automation_event(
        event_type,
        {"source": "drop_alert", "alertId": alert_id, "productName": product_name, "productUrl": product_url, **outcome},
    )
    store.mark_drop_processed(alert_id, success=bool(outcome.get("success")))
    logger.info("drop_job_completed", success=bool(outcome.get("success")))
    return outcome
