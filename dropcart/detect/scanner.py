"""
Button scanner: one detection pass over the live document.

Runs the selector catalog for the page's platform in order, then a
text-pattern pass over every interactive element, then deduplicates.
A selector the document rejects is logged and skipped.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Optional

from playwright.async_api import Page

from dropcart.constants import INTERACTIVE_SELECTOR, TEXT_BASED_SELECTOR_LABEL, Platform
from dropcart.detect.catalog import get_selectors_for_platform
from dropcart.detect.dedup import merge_records
from dropcart.detect.extract import build_button_record, control_label, query_candidates
from dropcart.detect.keywords import matches_text_pattern
from dropcart.detect.platform import detect_platform
from dropcart.errors import SelectorError
from dropcart.models import ButtonRecord, DetectionSet
from shared.logging import get_logger

logger = get_logger(__name__)


def epoch_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class ScanResult:
    url: str
    platform: Platform
    detections: DetectionSet
    selector_errors: tuple[str, ...] = field(default=())


async def _collect(
    page: Page,
    selector: str,
    selector_used: str,
    discovered_at: int,
    *,
    text_pass: bool = False,
) -> list[ButtonRecord]:
    records: list[ButtonRecord] = []
    for raw in await query_candidates(page, selector):
        if text_pass and not matches_text_pattern(control_label(raw)):
            continue
        record = build_button_record(raw, selector_used, discovered_at)
        if record is not None:
            records.append(record)
    return records


async def scan_for_cart_buttons(page: Page, *, now_ms: Optional[int] = None) -> ScanResult:
    """
    Run one full detection pass and return the deduplicated DetectionSet.

    Order of records before dedup: platform selectors, generic selectors,
    text-based pass. Dedup keeps the first, so that order is precedence.
    """
    discovered_at = now_ms if now_ms is not None else epoch_ms()
    url = page.url
    platform = await detect_platform(page)

    found: list[ButtonRecord] = []
    errors: list[str] = []
    for selector in get_selectors_for_platform(platform):
        try:
            found.extend(await _collect(page, selector, selector, discovered_at))
        except SelectorError as e:
            errors.append(selector)
            logger.warning("selector_rejected", selector=selector, reason=e.reason)

    try:
        found.extend(
            await _collect(
                page,
                INTERACTIVE_SELECTOR,
                TEXT_BASED_SELECTOR_LABEL,
                discovered_at,
                text_pass=True,
            )
        )
    except SelectorError as e:
        errors.append(INTERACTIVE_SELECTOR)
        logger.warning("selector_rejected", selector=INTERACTIVE_SELECTOR, reason=e.reason)

    detections = DetectionSet.of(merge_records(found))
    logger.debug(
        "scan_completed",
        platform=platform,
        candidates=len(found),
        buttons=len(detections),
        selector_errors=len(errors),
    )
    return ScanResult(url=url, platform=platform, detections=detections, selector_errors=tuple(errors))
