"""
Interaction executor: staged, human-paced add-to-cart click.

The target is a serializable {locator, selector} pair. Every in-page step
re-resolves it (XPath locator first, then CSS selector), so no element
handle is held across an await. Sequence: state check, 200 ms, smooth
centered scroll, 500 ms, pointer down/up + click, 1000 ms, success
indicator sample.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from playwright.async_api import Page

from dropcart.constants import (
    HIGHLIGHT_DURATION_MS,
    HIGHLIGHT_OUTLINE,
    POST_SCROLL_DELAY_MS,
    PRE_SCROLL_DELAY_MS,
    SUCCESS_CHECK_DELAY_MS,
    SUCCESS_INDICATOR_SELECTORS,
)
from dropcart.detect.extract import LOCATOR_HELPERS_JS
from dropcart.detect.scanner import epoch_ms
from dropcart.errors import DisabledOrHiddenError, NotFoundError
from shared.logging import get_logger

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[Any]]
Checkpoint = Callable[[], None]


def _with_target(body: str) -> str:
    return "(args) => {\n" + LOCATOR_HELPERS_JS + "  const el = resolveTarget(args.target);\n" + body + "\n}"


RESOLVE_STATE_JS = _with_target(
    """
  if (!el) return { found: false };
  return {
    found: true,
    disabled: !!el.disabled || el.getAttribute('aria-disabled') === 'true',
    laidOut: el.offsetParent !== null
  };
"""
)

SCROLL_INTO_VIEW_JS = _with_target(
    """
  if (!el) return false;
  el.scrollIntoView({ behavior: 'smooth', block: 'center' });
  return true;
"""
)

POINTER_CLICK_JS = _with_target(
    """
  if (!el) return false;
  const opts = { bubbles: true, cancelable: true, view: window };
  el.dispatchEvent(new MouseEvent('mousedown', opts));
  el.dispatchEvent(new MouseEvent('mouseup', opts));
  el.click();
  return true;
"""
)

HIGHLIGHT_JS = _with_target(
    """
  if (!el) return false;
  el.style.outline = args.outline;
  el.style.outlineOffset = '2px';
  el.scrollIntoView({ behavior: 'smooth', block: 'center' });
  setTimeout(() => {
    el.style.outline = '';
    el.style.outlineOffset = '';
  }, args.durationMs);
  return true;
"""
)

SUCCESS_CHECK_JS = """
(selectors) => {
  for (const sel of selectors) {
    let nodes = [];
    try { nodes = Array.from(document.querySelectorAll(sel)); } catch (e) { continue; }
    if (nodes.some((n) => n.offsetParent !== null)) return true;
  }
  return false;
}
"""


@dataclass(frozen=True)
class InteractionTimings:
    pre_scroll_ms: int = PRE_SCROLL_DELAY_MS
    post_scroll_ms: int = POST_SCROLL_DELAY_MS
    success_check_ms: int = SUCCESS_CHECK_DELAY_MS


@dataclass(frozen=True)
class InteractionResult:
    added_to_cart: bool
    timestamp: int


def target_args(locator: Optional[str], selector: Optional[str]) -> dict:
    return {"target": {"locator": locator or None, "selector": selector or None}}


def encode_target(locator: Optional[str], selector: Optional[str]) -> str:
    """Compact form for logs."""
    return json.dumps({"locator": locator, "selector": selector})


class InteractionExecutor:
    """Resolves a target at the point of use and performs one staged click."""

    def __init__(
        self,
        page: Page,
        *,
        sleep: Sleep = asyncio.sleep,
        timings: InteractionTimings = InteractionTimings(),
        clock: Optional[Callable[[], int]] = None,
    ):
        self._page = page
        self._sleep = sleep
        self._timings = timings
        self._clock = clock or epoch_ms

    async def _wait(self, ms: int, checkpoint: Optional[Checkpoint]) -> None:
        await self._sleep(ms / 1000)
        if checkpoint is not None:
            checkpoint()

    async def check_actionable(self, locator: Optional[str], selector: Optional[str]) -> None:
        """Raise NotFoundError / DisabledOrHiddenError without touching the DOM."""
        if not locator and not selector:
            raise NotFoundError()
        state = await self._page.evaluate(RESOLVE_STATE_JS, target_args(locator, selector))
        if not state or not state.get("found"):
            raise NotFoundError()
        if state.get("disabled") or not state.get("laidOut"):
            raise DisabledOrHiddenError()

    async def execute(
        self,
        locator: Optional[str] = None,
        selector: Optional[str] = None,
        *,
        checkpoint: Optional[Checkpoint] = None,
    ) -> InteractionResult:
        """
        Run the staged click against the target.

        Raises NotFoundError if the target cannot be resolved at any step,
        DisabledOrHiddenError if it is not actionable (no DOM mutation in
        that case). `checkpoint` is called after every wait and may raise
        to abort the sequence.
        """
        args = target_args(locator, selector)
        await self.check_actionable(locator, selector)

        await self._wait(self._timings.pre_scroll_ms, checkpoint)
        if not await self._page.evaluate(SCROLL_INTO_VIEW_JS, args):
            raise NotFoundError()

        await self._wait(self._timings.post_scroll_ms, checkpoint)
        if not await self._page.evaluate(POINTER_CLICK_JS, args):
            raise NotFoundError()
        logger.info("add_to_cart_clicked", target=encode_target(locator, selector))

        await self._sleep(self._timings.success_check_ms / 1000)
        added = bool(await self._page.evaluate(SUCCESS_CHECK_JS, list(SUCCESS_INDICATOR_SELECTORS)))
        logger.info("add_to_cart_result", added_to_cart=added)
        return InteractionResult(added_to_cart=added, timestamp=self._clock())

    async def highlight(self, locator: Optional[str], selector: Optional[str] = None) -> bool:
        """Outline the target and scroll to it; the outline clears itself in-page after 3 s."""
        if not locator and not selector:
            return False
        args = target_args(locator, selector)
        args.update({"outline": HIGHLIGHT_OUTLINE, "durationMs": HIGHLIGHT_DURATION_MS})
        return bool(await self._page.evaluate(HIGHLIGHT_JS, args))
