"""
Collaborator protocol and its Redis-backed implementation.

The engine only sees `Collaborator`. `RedisCollaborator` maps it onto a
`SettingsStore`; `CommandListener` relays inbound commands from the page's
command channel and the broadcast channel into `CartEngine.handle_message`;
`request_page_command` is the sending side used by the dashboard API.

Redis calls are blocking, so the async side runs them with
`asyncio.to_thread`.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional, Protocol, TypeVar
from uuid import uuid4

from dropcart.errors import NoResponseError
from dropcart.models import PaymentProfile
from shared.logging import get_logger

if TYPE_CHECKING:
    from shared.store import SettingsStore

logger = get_logger(__name__)

T = TypeVar("T")

MessageHandler = Callable[[dict], Awaitable[dict]]


class Collaborator(Protocol):
    async def publish_detections(self, url: str, buttons: list[dict], timestamp: int) -> None: ...

    async def get_payment_profile(self) -> Optional[PaymentProfile]: ...

    async def get_auto_checkout_enabled(self) -> bool: ...

    async def log_automation_event(self, event_type: str, data: Mapping[str, Any]) -> None: ...

    async def page_disposed(self) -> None: ...


async def call_with_timeout(awaitable: Awaitable[T], timeout_ms: int, operation: str) -> T:
    """Await a collaborator call; exceeding `timeout_ms` raises NoResponseError."""
    try:
        return await asyncio.wait_for(awaitable, timeout_ms / 1000)
    except asyncio.TimeoutError:
        logger.warning("collaborator_timeout", operation=operation, timeout_ms=timeout_ms)
        raise NoResponseError(f"{operation} did not respond within {timeout_ms} ms") from None


class RedisCollaborator:
    """Collaborator for one page context, backed by a SettingsStore."""

    def __init__(self, store: SettingsStore, page_id: str):
        self.store = store
        self.page_id = page_id

    def _publish_detections_sync(self, url: str, buttons: list[dict], timestamp: int) -> None:
        self.store.save_detections(self.page_id, url, buttons, timestamp)
        self.store.publish_event(
            {
                "type": "DETECT_CART_BUTTONS",
                "pageId": self.page_id,
                "url": url,
                "buttons": buttons,
                "timestamp": timestamp,
            }
        )

    async def publish_detections(self, url: str, buttons: list[dict], timestamp: int) -> None:
        await asyncio.to_thread(self._publish_detections_sync, url, buttons, timestamp)

    async def get_payment_profile(self) -> Optional[PaymentProfile]:
        raw = await asyncio.to_thread(self.store.get_payment_profile)
        if not raw:
            return None
        return PaymentProfile.from_mapping(raw)

    async def get_auto_checkout_enabled(self) -> bool:
        settings = await asyncio.to_thread(self.store.get_settings)
        return bool(settings.get("autoCheckoutEnabled"))

    async def log_automation_event(self, event_type: str, data: Mapping[str, Any]) -> None:
        await asyncio.to_thread(self.store.append_automation_event, event_type, {**data, "pageId": self.page_id})

    def _page_disposed_sync(self) -> None:
        self.store.clear_detections(self.page_id)
        self.store.publish_event({"type": "PAGE_DISPOSED", "pageId": self.page_id})

    async def page_disposed(self) -> None:
        await asyncio.to_thread(self._page_disposed_sync)


def parse_command(raw: Any) -> Optional[dict]:
    """Decode one pub/sub payload into a message dict; None if it is not one."""
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            return None
    if not isinstance(raw, dict) or not raw.get("type"):
        return None
    return raw


class CommandListener:
    """
    Relays commands for one page into the engine.

    Subscribes to `commands:<page_id>` and `broadcast`. When a command
    names a `replyTo` channel, the handler's response is published there as
    `{requestId, response}`.
    """

    def __init__(
        self,
        store: SettingsStore,
        page_id: str,
        handler: MessageHandler,
        *,
        poll_timeout_s: float = 1.0,
    ):
        self.store = store
        self.page_id = page_id
        self._handler = handler
        self._poll_timeout_s = poll_timeout_s
        self._pubsub = None
        self._task: Optional[asyncio.Task] = None
        self._running = False

    async def start(self) -> None:
        if self._running:
            return
        self._pubsub = self.store.pubsub()
        await asyncio.to_thread(
            self._pubsub.subscribe,
            self.store.command_channel(self.page_id),
            self.store.broadcast_channel,
        )
        self._running = True
        self._task = asyncio.create_task(self._listen())
        logger.info("command_listener_started", page_id=self.page_id)

    async def stop(self) -> None:
        self._running = False
        if self._task is not None:
            self._task.cancel()
            await asyncio.gather(self._task, return_exceptions=True)
            self._task = None
        if self._pubsub is not None:
            await asyncio.to_thread(self._pubsub.close)
            self._pubsub = None
        logger.info("command_listener_stopped", page_id=self.page_id)

    async def _listen(self) -> None:
        while self._running:
            try:
                message = await asyncio.to_thread(self._pubsub.get_message, timeout=self._poll_timeout_s)
            except Exception as e:
                logger.exception("command_listener_read_failed", error=str(e))
                await asyncio.sleep(self._poll_timeout_s)
                continue
            if not message or message.get("type") != "message":
                continue
            try:
                await self.dispatch(message.get("data"))
            except Exception as e:
                logger.exception("command_dispatch_failed", page_id=self.page_id, error=str(e))

    async def dispatch(self, raw: Any) -> Optional[dict]:
        """Handle one raw command; returns the handler's response (None if unparseable)."""
        command = parse_command(raw)
        if command is None:
            logger.warning("command_ignored", reason="unparseable")
            return None
        response = await self._handler(command)
        reply_to = command.get("replyTo")
        if reply_to:
            reply = {"requestId": command.get("requestId"), "response": response}
            await asyncio.to_thread(self.store.publish, reply_to, reply)
        return response


def request_page_command(
    store: SettingsStore,
    page_id: str,
    message: Mapping[str, Any],
    timeout_ms: int = 5000,
) -> dict:
    """
    Send a command to a live page and wait for its reply (blocking).

    Raises NoResponseError when nobody is listening on the page's channel
    or the reply does not arrive within `timeout_ms`.
    """
    request_id = uuid4().hex
    reply_channel = store.reply_channel(request_id)
    pubsub = store.pubsub()
    pubsub.subscribe(reply_channel)
    try:
        receivers = store.send_command(
            page_id,
            {**message, "requestId": request_id, "replyTo": reply_channel},
        )
        if receivers == 0:
            raise NoResponseError(f"No engine is listening for page {page_id}")
        deadline = time.monotonic() + timeout_ms / 1000
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise NoResponseError(f"Page {page_id} did not respond within {timeout_ms} ms")
            reply = pubsub.get_message(timeout=remaining)
            if not reply or reply.get("type") != "message":
                continue
            payload = parse_reply(reply.get("data"))
            if payload is not None and payload.get("requestId") == request_id:
                return payload.get("response") or {}
    finally:
        pubsub.close()


def parse_reply(raw: Any) -> Optional[dict]:
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    try:
        payload = json.loads(raw) if isinstance(raw, str) else raw
    except json.JSONDecodeError:
        return None
    return payload if isinstance(payload, dict) else None
