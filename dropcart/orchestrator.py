"""
Auto-checkout orchestrator: polling state machine from scan to order submit.

IDLE -> SCANNING -> MATCH_FOUND -> ADDING_TO_CART -> AWAITING_CHECKOUT_NAV
-> PAYMENT_FILL -> (SUBMITTING) -> SCANNING

The poll loop is one task; each pipeline runs as its own task behind a
single-flight guard. stop() cancels both and trips the cancellation token
that every step checks at its boundaries. Failures are logged and the
machine returns to SCANNING; it never halts itself.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional

from playwright.async_api import Page

from dropcart.checkout import click_checkout_control, click_submit_control, fill_payment_fields
from dropcart.constants import CHECKOUT_NAV_DELAY_MS, PAYMENT_FILL_DELAY_MS, SUBMIT_DELAY_MS
from dropcart.detect.scanner import epoch_ms
from dropcart.errors import DisabledOrHiddenError, NotFoundError, PipelineCancelled
from dropcart.executor import InteractionExecutor
from dropcart.models import AutoCheckoutState, ButtonRecord, DetectionSet, PaymentProfile
from shared.logging import get_logger

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class CheckoutState(str, Enum):
    IDLE = "IDLE"
    SCANNING = "SCANNING"
    MATCH_FOUND = "MATCH_FOUND"
    ADDING_TO_CART = "ADDING_TO_CART"
    AWAITING_CHECKOUT_NAV = "AWAITING_CHECKOUT_NAV"
    PAYMENT_FILL = "PAYMENT_FILL"
    SUBMITTING = "SUBMITTING"


@dataclass(frozen=True)
class PipelineTimings:
    checkout_nav_ms: int = CHECKOUT_NAV_DELAY_MS
    payment_fill_ms: int = PAYMENT_FILL_DELAY_MS
    submit_ms: int = SUBMIT_DELAY_MS


class CancellationToken:
    """Tripped once by stop(); checked at every pipeline step boundary."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def check(self) -> None:
        if self._cancelled:
            raise PipelineCancelled("auto-checkout stopped")


def matches_target(record: ButtonRecord, keywords: Iterable[str]) -> bool:
    """Case-insensitive substring match of any keyword in product name or label."""
    haystacks = [(record.product.name or "").lower(), (record.text_label or "").lower()]
    for keyword in keywords:
        kw = (keyword or "").strip().lower()
        if kw and any(kw in h for h in haystacks):
            return True
    return False


def select_target(
    detections: DetectionSet,
    keywords: Iterable[str],
    carted_ids: Iterable[str] = (),
) -> Optional[ButtonRecord]:
    """First matching record that is visible, enabled and not already carted."""
    keywords = tuple(keywords)
    done = set(carted_ids)
    for record in detections:
        if record.id in done or not record.visible or not record.enabled:
            continue
        if matches_target(record, keywords):
            return record
    return None


class AutoCheckoutOrchestrator:
    def __init__(
        self,
        page: Page,
        *,
        rescan: Callable[[], Awaitable[DetectionSet]],
        executor: InteractionExecutor,
        get_payment_profile: Callable[[], Awaitable[Optional[PaymentProfile]]],
        log_event: Callable[[str, dict], Awaitable[None]],
        target_keywords: Iterable[str],
        poll_interval_ms: int = 1000,
        timings: PipelineTimings = PipelineTimings(),
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], int] = epoch_ms,
    ):
        self._page = page
        self._rescan = rescan
        self._executor = executor
        self._get_payment_profile = get_payment_profile
        self._log_event = log_event
        self._keywords = tuple(target_keywords)
        self._timings = timings
        self._sleep = sleep
        self._clock = clock

        self._state = CheckoutState.IDLE
        self._status = AutoCheckoutState(enabled=False, poll_interval_ms=poll_interval_ms)
        self._history: list[CheckoutState] = [CheckoutState.IDLE]
        self._carted: set[str] = set()
        self._token = CancellationToken()
        self._poll_task: Optional[asyncio.Task] = None
        self._pipeline_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def history(self) -> list[CheckoutState]:
        return list(self._history)

    @property
    def running(self) -> bool:
        return self._status.enabled

    @property
    def pipeline_in_flight(self) -> bool:
        return self._pipeline_task is not None and not self._pipeline_task.done()

    def state_snapshot(self) -> AutoCheckoutState:
        return AutoCheckoutState(
            enabled=self._status.enabled,
            poll_interval_ms=self._status.poll_interval_ms,
            last_attempt_at=self._status.last_attempt_at,
        )

    def _transition(self, new_state: CheckoutState, **fields: Any) -> None:
        if new_state == self._state and new_state == CheckoutState.SCANNING:
            return
        logger.info(
            "auto_checkout.transition",
            from_state=self._state.value,
            to_state=new_state.value,
            **fields,
        )
        self._state = new_state
        self._history.append(new_state)

    async def _emit(self, event_type: str, data: dict) -> None:
        try:
            await self._log_event(event_type, data)
        except Exception as e:
            logger.warning("automation_event_not_logged", event_type=event_type, error=str(e))

    async def start(self) -> None:
        if self._status.enabled:
            return
        self._status.enabled = True
        self._token = CancellationToken()
        self._transition(CheckoutState.SCANNING)
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info("auto_checkout_started", poll_interval_ms=self._status.poll_interval_ms)

    async def stop(self) -> None:
        """
        Stop polling and abort any in-flight pipeline.

        When this returns, both tasks are finished and no further
        add-to-cart, checkout, payment or submit step will run.
        """
        self._status.enabled = False
        self._token.cancel()
        tasks = [t for t in (self._poll_task, self._pipeline_task) if t is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._poll_task = None
        self._pipeline_task = None
        if self._state != CheckoutState.IDLE:
            self._transition(CheckoutState.IDLE)
        logger.info("auto_checkout_stopped")

    async def _poll_loop(self) -> None:
        while self._status.enabled:
            try:
                await self.run_cycle()
            except Exception as e:
                logger.exception("auto_checkout_cycle_failed", error=str(e))
            await self._sleep(self._status.poll_interval_ms / 1000)

    async def run_cycle(self) -> Optional[asyncio.Task]:
        """
        One poll cycle: scan, pick at most one target, start its pipeline.

        Returns the pipeline task, or None when nothing was started (no
        match, or a pipeline is already in flight).
        """
        if self.pipeline_in_flight:
            logger.debug("auto_checkout_cycle_skipped", reason="pipeline_in_flight")
            return None
        token = self._token
        if token.cancelled:
            return None
        self._transition(CheckoutState.SCANNING)
        detections = await self._rescan()
        if token.cancelled:
            return None
        target = select_target(detections, self._keywords, self._carted)
        if target is None:
            return None
        self._transition(CheckoutState.MATCH_FOUND, button_id=target.id, product=target.product.name)
        self._status.last_attempt_at = self._clock()
        self._pipeline_task = asyncio.create_task(self._run_pipeline(target, token))
        return self._pipeline_task

    async def _wait(self, ms: int, token: CancellationToken) -> None:
        await self._sleep(ms / 1000)
        token.check()

    async def _run_pipeline(self, record: ButtonRecord, token: CancellationToken) -> None:
        try:
            await self._pipeline_steps(record, token)
        except PipelineCancelled:
            logger.info("auto_checkout.pipeline_cancelled", button_id=record.id)
        except Exception as e:
            logger.exception("auto_checkout.pipeline_failed", button_id=record.id, error=str(e))
            await self._emit("AUTO_CHECKOUT_FAILED", {"buttonId": record.id, "error": str(e)})
        finally:
            if not token.cancelled:
                self._transition(CheckoutState.SCANNING)

    async def _pipeline_steps(self, record: ButtonRecord, token: CancellationToken) -> None:
        token.check()
        self._transition(CheckoutState.ADDING_TO_CART, button_id=record.id)
        try:
            result = await self._executor.execute(record.dom_locator, None, checkpoint=token.check)
        except (NotFoundError, DisabledOrHiddenError) as e:
            logger.info("auto_checkout.add_to_cart_failed", button_id=record.id, error=str(e))
            await self._emit("ADD_TO_CART_FAILED", {"buttonId": record.id, "error": str(e)})
            return
        token.check()
        self._carted.add(record.id)
        await self._emit(
            "ADD_TO_CART_SUCCESS",
            {
                "buttonId": record.id,
                "productName": record.product.name,
                "addedToCart": result.added_to_cart,
                "timestamp": result.timestamp,
            },
        )

        await self._wait(self._timings.checkout_nav_ms, token)
        self._transition(CheckoutState.AWAITING_CHECKOUT_NAV)
        selector = await click_checkout_control(self._page)
        token.check()
        if selector is None:
            logger.info("auto_checkout.checkout_control_not_found", button_id=record.id)
            await self._emit("CHECKOUT_NAV_FAILED", {"buttonId": record.id, "error": "No checkout control found"})
            return

        await self._wait(self._timings.payment_fill_ms, token)
        self._transition(CheckoutState.PAYMENT_FILL)
        profile = await self._get_payment_profile()
        token.check()
        if profile is None:
            logger.info("auto_checkout.payment_profile_missing")
            return
        filled = await fill_payment_fields(self._page, profile)
        await self._emit("PAYMENT_FILLED", {"fields": filled})
        if not profile.auto_submit:
            return

        await self._wait(self._timings.submit_ms, token)
        self._transition(CheckoutState.SUBMITTING)
        submitted = await click_submit_control(self._page)
        if submitted is None:
            logger.info("auto_checkout.submit_control_not_found")
            await self._emit("ORDER_SUBMIT_FAILED", {"error": "No submit control found"})
            return
        await self._emit("ORDER_SUBMITTED", {"buttonId": record.id, "selector": submitted})
