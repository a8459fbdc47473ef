"""
Change observer: debounced rescans on DOM mutation plus a fixed-cadence timer.

The mutation feed is a `MutationSource`. In production it is an in-page
MutationObserver reporting through a Playwright binding; tests feed
payloads directly through `notify_mutation`.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable, Optional, Protocol

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from dropcart.constants import INTERACTIVE_SELECTOR
from shared.logging import get_logger

logger = get_logger(__name__)

BINDING_NAME = "__dropcartMutation"

MutationCallback = Callable[[dict], None]

# Reports {addedInteractive: n} for each batch of child-list additions that
# contain (or are) interactive controls. Installed once per document.
MUTATION_OBSERVER_JS = (
    """
(() => {
  try {
    if (window.__dropcartObserver) return;
    const INTERACTIVE = """
    + json.dumps(INTERACTIVE_SELECTOR)
    + """;
    const BINDING = """
    + json.dumps(BINDING_NAME)
    + """;
    const countInteractive = (node) => {
      if (!node || node.nodeType !== 1) return 0;
      let n = 0;
      try {
        if (node.matches(INTERACTIVE)) n += 1;
        n += node.querySelectorAll(INTERACTIVE).length;
      } catch (e) {}
      return n;
    };
    const start = () => {
      const obs = new MutationObserver((mutations) => {
        let added = 0;
        for (const m of mutations) {
          if (m.type !== 'childList') continue;
          m.addedNodes.forEach((node) => { added += countInteractive(node); });
        }
        if (added > 0 && typeof window[BINDING] === 'function') {
          window[BINDING]({ addedInteractive: added });
        }
      });
      obs.observe(document.documentElement || document.body, { childList: true, subtree: true });
      window.__dropcartObserver = obs;
    };
    if (document.documentElement || document.body) {
      start();
    } else {
      document.addEventListener('DOMContentLoaded', start, { once: true });
    }
  } catch (e) {}
})()
"""
)

DISCONNECT_OBSERVER_JS = """
(() => {
  if (window.__dropcartObserver) {
    window.__dropcartObserver.disconnect();
    window.__dropcartObserver = null;
  }
})()
"""


class MutationSource(Protocol):
    async def subscribe(self, callback: MutationCallback) -> None: ...

    async def unsubscribe(self) -> None: ...


class PlaywrightMutationSource:
    """
    MutationObserver in the page, reported through an exposed binding.

    Bindings cannot be removed from a page, so unsubscribe disconnects the
    observer and drops further calls on the Python side.
    """

    def __init__(self, page: Page):
        self._page = page
        self._callback: Optional[MutationCallback] = None
        self._bound = False

    async def subscribe(self, callback: MutationCallback) -> None:
        self._callback = callback
        if not self._bound:
            await self._page.expose_binding(BINDING_NAME, self._on_binding)
            self._bound = True
        # Re-installed on every navigation of this page.
        await self._page.add_init_script(MUTATION_OBSERVER_JS)
        await self._page.evaluate(MUTATION_OBSERVER_JS)

    async def unsubscribe(self) -> None:
        self._callback = None
        try:
            await self._page.evaluate(DISCONNECT_OBSERVER_JS)
        except PlaywrightError as e:
            logger.debug("observer_disconnect_failed", error=str(e))

    async def _on_binding(self, source: Any, payload: Any) -> None:
        if self._callback is not None and isinstance(payload, dict):
            self._callback(payload)


class ChangeObserver:
    """
    Schedules rescans from two triggers.

    - Mutation: a payload with addedInteractive > 0 (re)starts the debounce
      timer; the rescan runs once the window passes without new additions.
    - Interval: a fixed-cadence loop rescans regardless of mutations.

    Rescan errors are logged; the observer keeps running.
    """

    def __init__(
        self,
        rescan: Callable[[], Awaitable[Any]],
        mutation_source: Optional[MutationSource] = None,
        *,
        debounce_ms: int = 1000,
        interval_ms: int = 5000,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self._rescan = rescan
        self._source = mutation_source
        self._debounce_s = debounce_ms / 1000
        self._interval_s = interval_ms / 1000
        self._sleep = sleep
        self._running = False
        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._interval_task: Optional[asyncio.Task] = None
        self._pending: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        if self._source is not None:
            await self._source.subscribe(self.notify_mutation)
        if self._interval_s > 0:
            self._interval_task = asyncio.create_task(self._interval_loop())
        logger.info(
            "observer_started",
            debounce_ms=int(self._debounce_s * 1000),
            interval_ms=int(self._interval_s * 1000),
        )

    async def stop(self) -> None:
        if not self._running:
            return
        self._running = False
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None
        tasks = list(self._pending)
        if self._interval_task is not None:
            tasks.append(self._interval_task)
            self._interval_task = None
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._pending.clear()
        if self._source is not None:
            await self._source.unsubscribe()
        logger.info("observer_stopped")

    def notify_mutation(self, payload: dict) -> None:
        if not self._running:
            return
        try:
            added = int(payload.get("addedInteractive") or 0)
        except (TypeError, ValueError):
            added = 0
        if added <= 0:
            return
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
        loop = asyncio.get_running_loop()
        self._debounce_handle = loop.call_later(self._debounce_s, self._fire_debounced)

    def _fire_debounced(self) -> None:
        self._debounce_handle = None
        if not self._running:
            return
        task = asyncio.ensure_future(self._run_rescan("mutation"))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _run_rescan(self, reason: str) -> None:
        try:
            await self._rescan()
        except Exception as e:
            logger.exception("rescan_failed", reason=reason, error=str(e))

    async def _interval_loop(self) -> None:
        while self._running:
            await self._sleep(self._interval_s)
            if not self._running:
                break
            await self._run_rescan("interval")
