"""
Cart engine: one instance per page context.

Owns the current DetectionSet, wires scanner, change observer, executor and
auto-checkout orchestrator together, answers inbound messages and emits
DETECT_CART_BUTTONS to the collaborator when the set changes.

Every command goes through `handle_message`, which is also the boundary
where any unexpected exception becomes a `{success: False, error}` reply.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Optional

from playwright.async_api import Page

from dropcart.bridge import Collaborator, call_with_timeout
from dropcart.constants import (
    EXECUTE_ADD_TO_CART,
    GET_CART_BUTTONS,
    HIGHLIGHT_BUTTON,
    RESCAN_BUTTONS,
    START_AUTO_CHECKOUT,
    STOP_AUTO_CHECKOUT,
)
from dropcart.detect.dedup import detection_changed
from dropcart.detect.scanner import ScanResult, epoch_ms, scan_for_cart_buttons
from dropcart.errors import DropcartError, NotFoundError, NoResponseError
from dropcart.executor import InteractionExecutor
from dropcart.models import AutoCheckoutState, DetectionSet, PaymentProfile
from dropcart.observer import ChangeObserver, MutationSource
from dropcart.orchestrator import AutoCheckoutOrchestrator, PipelineTimings
from shared.config import MAX_POLL_INTERVAL_MS, MIN_POLL_INTERVAL_MS, AppConfig
from shared.logging import bind_page_context, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class EngineSettings:
    scan_interval_ms: int = 5000
    mutation_debounce_ms: int = 1000
    auto_checkout_poll_ms: int = 1000
    target_keywords: tuple[str, ...] = ("labubu",)
    collaborator_timeout_ms: int = 5000

    @classmethod
    def from_config(cls, config: AppConfig) -> "EngineSettings":
        return cls(
            scan_interval_ms=config.scan_interval_ms,
            mutation_debounce_ms=config.mutation_debounce_ms,
            auto_checkout_poll_ms=config.auto_checkout_poll_ms,
            target_keywords=config.target_keywords,
            collaborator_timeout_ms=config.collaborator_timeout_ms,
        )

    @property
    def poll_interval_ms(self) -> int:
        return max(MIN_POLL_INTERVAL_MS, min(MAX_POLL_INTERVAL_MS, self.auto_checkout_poll_ms))


class CartEngine:
    def __init__(
        self,
        page: Page,
        collaborator: Collaborator,
        *,
        settings: EngineSettings = EngineSettings(),
        mutation_source: Optional[MutationSource] = None,
        executor: Optional[InteractionExecutor] = None,
        pipeline_timings: PipelineTimings = PipelineTimings(),
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], int] = epoch_ms,
        page_id: Optional[str] = None,
    ):
        self.page = page
        self.page_id = page_id
        self._collaborator = collaborator
        self._settings = settings
        self._clock = clock
        self._detections = DetectionSet()
        self._last_scan: Optional[ScanResult] = None
        self._scan_lock = asyncio.Lock()
        self._started = False
        self._disposed = False

        self.executor = executor or InteractionExecutor(page, sleep=sleep, clock=clock)
        self.observer = ChangeObserver(
            self.rescan,
            mutation_source,
            debounce_ms=settings.mutation_debounce_ms,
            interval_ms=settings.scan_interval_ms,
            sleep=sleep,
        )
        self.orchestrator = AutoCheckoutOrchestrator(
            page,
            rescan=self.rescan,
            executor=self.executor,
            get_payment_profile=self._fetch_payment_profile,
            log_event=self._log_automation_event,
            target_keywords=settings.target_keywords,
            poll_interval_ms=settings.poll_interval_ms,
            timings=pipeline_timings,
            sleep=sleep,
            clock=clock,
        )

    @property
    def detections(self) -> DetectionSet:
        return self._detections

    @property
    def last_scan(self) -> Optional[ScanResult]:
        return self._last_scan

    def auto_checkout_state(self) -> AutoCheckoutState:
        return self.orchestrator.state_snapshot()

    # --- lifecycle ---

    async def start(self) -> None:
        """
        Initial scan, start the change observer, and resume auto-checkout
        when the collaborator's durable flag says it is enabled.
        """
        if self._disposed:
            raise RuntimeError("engine has been disposed")
        if self._started:
            return
        self._started = True
        bind_page_context(page_id=self.page_id, url=self.page.url)
        try:
            await self.rescan()
        except Exception as e:
            logger.exception("initial_scan_failed", error=str(e))
        await self.observer.start()

        try:
            enabled = await call_with_timeout(
                self._collaborator.get_auto_checkout_enabled(),
                self._settings.collaborator_timeout_ms,
                "get_auto_checkout_enabled",
            )
        except NoResponseError:
            enabled = False
        if enabled:
            await self.orchestrator.start()
        logger.info("engine_started", auto_checkout=bool(enabled))

    async def stop(self) -> None:
        if not self._started:
            return
        await self.orchestrator.stop()
        await self.observer.stop()
        self._started = False
        logger.info("engine_stopped")

    async def dispose(self) -> None:
        """Stop everything, drop detections and tell the collaborator the page is gone."""
        if self._disposed:
            return
        await self.stop()
        self._disposed = True
        self._detections = DetectionSet()
        try:
            await call_with_timeout(
                self._collaborator.page_disposed(),
                self._settings.collaborator_timeout_ms,
                "page_disposed",
            )
        except DropcartError as e:
            logger.warning("page_disposed_not_acknowledged", error=str(e))
        logger.info("engine_disposed")

    # --- scanning ---

    async def rescan(self) -> DetectionSet:
        """
        Run one detection pass and replace the DetectionSet.

        Passes are serialized. DETECT_CART_BUTTONS is emitted only when
        the id sequence changed.
        """
        async with self._scan_lock:
            result = await scan_for_cart_buttons(self.page, now_ms=self._clock())
            previous = self._detections
            self._detections = result.detections
            self._last_scan = result
            if detection_changed(previous, result.detections):
                bind_page_context(url=result.url, platform=result.platform)
                await self._publish(result)
            return result.detections

    async def _publish(self, result: ScanResult) -> None:
        buttons = result.detections.to_messages()
        timestamp = self._clock()
        logger.info("cart_buttons_changed", buttons=len(buttons))
        try:
            await call_with_timeout(
                self._collaborator.publish_detections(result.url, buttons, timestamp),
                self._settings.collaborator_timeout_ms,
                "publish_detections",
            )
        except NoResponseError as e:
            logger.warning("detections_not_published", error=str(e))

    # --- collaborator pulls ---

    async def _fetch_payment_profile(self) -> Optional[PaymentProfile]:
        return await call_with_timeout(
            self._collaborator.get_payment_profile(),
            self._settings.collaborator_timeout_ms,
            "get_payment_profile",
        )

    async def _log_automation_event(self, event_type: str, data: dict) -> None:
        await call_with_timeout(
            self._collaborator.log_automation_event(event_type, data),
            self._settings.collaborator_timeout_ms,
            "log_automation_event",
        )

    # --- messages ---

    async def handle_message(self, message: Mapping[str, Any]) -> dict:
        """
        Answer one inbound message.

        Never raises: engine errors and unexpected exceptions alike come
        back as `{success: False, error}`.
        """
        message_type = message.get("type")
        try:
            if message_type == GET_CART_BUTTONS:
                return {"success": True, "buttons": self._detections.to_messages()}
            if message_type == EXECUTE_ADD_TO_CART:
                return await self._execute_add_to_cart(message)
            if message_type == HIGHLIGHT_BUTTON:
                return await self._highlight(message)
            if message_type == RESCAN_BUTTONS:
                detections = await self.rescan()
                return {"success": True, "buttons": detections.to_messages()}
            if message_type == START_AUTO_CHECKOUT:
                if self._disposed:
                    return {"success": False, "error": "engine disposed"}
                await self.orchestrator.start()
                return {"success": True}
            if message_type == STOP_AUTO_CHECKOUT:
                await self.orchestrator.stop()
                return {"success": True}
            return {"success": False, "error": f"Unknown message type: {message_type}"}
        except DropcartError as e:
            logger.info("message_failed", message_type=message_type, error=str(e))
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.exception("message_unhandled_exception", message_type=message_type, error=str(e))
            return {"success": False, "error": str(e) or e.__class__.__name__}

    async def _execute_add_to_cart(self, message: Mapping[str, Any]) -> dict:
        button_id = message.get("buttonId")
        selector = message.get("selector")
        record = self._detections.find(button_id) if button_id else None
        if record is None and not selector:
            raise NotFoundError()
        locator = record.dom_locator if record is not None else None
        try:
            result = await self.executor.execute(locator, selector)
        except DropcartError as e:
            await self._log_quietly(
                "ADD_TO_CART_FAILED",
                {"buttonId": button_id, "productId": message.get("productId"), "error": str(e)},
            )
            raise
        await self._log_quietly(
            "ADD_TO_CART_SUCCESS",
            {"buttonId": button_id, "productId": message.get("productId"), "addedToCart": result.added_to_cart},
        )
        return {"success": True, "addedToCart": result.added_to_cart, "timestamp": result.timestamp}

    async def _highlight(self, message: Mapping[str, Any]) -> dict:
        button_id = message.get("buttonId")
        record = self._detections.find(button_id) if button_id else None
        if record is None:
            raise NotFoundError()
        if not await self.executor.highlight(record.dom_locator):
            raise NotFoundError()
        return {"success": True}

    async def _log_quietly(self, event_type: str, data: dict) -> None:
        try:
            await self._log_automation_event(event_type, data)
        except DropcartError as e:
            logger.warning("automation_event_not_logged", event_type=event_type, error=str(e))
