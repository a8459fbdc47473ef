"""
Redis-backed settings store and message relay for dropcart.

Holds everything the engine treats as an external collaborator: durable
settings (including the auto-checkout flag), the payment profile, per-page
detection snapshots, the automation log, drop alerts, and the pub/sub
channels used to relay commands and events between processes.

The engine never imports this module directly; it goes through
`dropcart.bridge`, which wraps a store behind the collaborator protocol.
"""

from __future__ import annotations

import json
import time
from typing import Any, Mapping, Optional
from uuid import uuid4

import redis

from shared.logging import get_logger

logger = get_logger(__name__)

KEY_PREFIX = "dropcart:"
DROP_ALERT_LIMIT = 10
DROP_QUEUE_NAME = "drop_alerts"

# Written once on first initialization; later reads merge stored values over these.
DEFAULT_SETTINGS: dict[str, Any] = {
    "extensionActive": True,
    "automationEnabled": False,
    "autoCheckoutEnabled": False,
    "purchaseConfirmation": True,
    "spendingLimit": 1000,
    "whitelistedSites": ["popmart.com"],
    "blacklistedSites": [],
    "autoProcessDrops": False,
}


def now_ms() -> int:
    """Current epoch time in milliseconds."""
    return int(time.time() * 1000)


def connect_redis(redis_url: Optional[str]) -> redis.Redis:
    """Create a Redis client with decoded (str) responses."""
    if not redis_url:
        raise ValueError(
            "REDIS_URL environment variable is required. "
            "Set it to a Redis connection string (e.g., redis://localhost:6379/0)."
        )
    return redis.from_url(redis_url, decode_responses=True)


def _loads(raw: Any) -> Any:
    if raw is None:
        return None
    return json.loads(raw)


class SettingsStore:
    """Durable collaborator state on top of a Redis client."""

    def __init__(
        self,
        client: redis.Redis,
        *,
        prefix: str = KEY_PREFIX,
        log_limit: int = 1000,
    ):
        self.client = client
        self.prefix = prefix
        self.log_limit = log_limit

    def key(self, *parts: str) -> str:
        return self.prefix + ":".join(parts)

    # --- channels ---

    @property
    def events_channel(self) -> str:
        return self.key("events")

    @property
    def broadcast_channel(self) -> str:
        return self.key("broadcast")

    def command_channel(self, page_id: str) -> str:
        return self.key("commands", page_id)

    def reply_channel(self, request_id: str) -> str:
        return self.key("replies", request_id)

    # --- settings ---

    def initialize_defaults(self) -> bool:
        """Write default settings unless settings already exist. Returns True if written."""
        written = bool(self.client.set(self.key("settings"), json.dumps(DEFAULT_SETTINGS), nx=True))
        if written:
            logger.info("settings_initialized")
        return written

    def get_settings(self) -> dict:
        stored = _loads(self.client.get(self.key("settings"))) or {}
        return {**DEFAULT_SETTINGS, **stored}

    def update_settings(self, changes: Mapping[str, Any]) -> dict:
        settings = self.get_settings()
        settings.update(changes)
        self.client.set(self.key("settings"), json.dumps(settings))
        logger.info("settings_updated", keys=sorted(changes.keys()))
        return settings

    def set_auto_checkout(self, enabled: bool) -> int:
        """
        Store the auto-checkout flag and broadcast START/STOP to every page.

        Returns the number of subscribers that received the broadcast.
        """
        self.update_settings({"autoCheckoutEnabled": bool(enabled)})
        message_type = "START_AUTO_CHECKOUT" if enabled else "STOP_AUTO_CHECKOUT"
        receivers = self.broadcast({"type": message_type})
        logger.info("auto_checkout_toggled", enabled=bool(enabled), receivers=receivers)
        return receivers

    # --- payment profile ---

    def store_payment_profile(self, profile: Mapping[str, Any]) -> None:
        self.client.set(self.key("payment_profile"), json.dumps(dict(profile)))
        logger.info("payment_profile_stored")

    def get_payment_profile(self) -> Optional[dict]:
        return _loads(self.client.get(self.key("payment_profile")))

    def has_payment_profile(self) -> bool:
        return self.client.get(self.key("payment_profile")) is not None

    # --- detection snapshots ---

    def save_detections(self, page_id: str, url: str, buttons: list[dict], timestamp: int) -> None:
        payload = {"url": url, "buttons": buttons, "timestamp": timestamp}
        self.client.set(self.key("buttons", page_id), json.dumps(payload))

    def get_detections(self, page_id: str) -> Optional[dict]:
        return _loads(self.client.get(self.key("buttons", page_id)))

    def clear_detections(self, page_id: str) -> None:
        self.client.delete(self.key("buttons", page_id))

    # --- automation log ---

    def append_automation_event(
        self,
        event_type: str,
        data: Mapping[str, Any],
        timestamp: Optional[int] = None,
    ) -> None:
        """Prepend an event and trim the log to `log_limit` entries."""
        entry = {"type": event_type, "data": dict(data), "timestamp": timestamp or now_ms()}
        key = self.key("automation_log")
        self.client.lpush(key, json.dumps(entry))
        self.client.ltrim(key, 0, self.log_limit - 1)

    def get_automation_log(self, limit: int = 50) -> list[dict]:
        limit = max(1, min(limit, self.log_limit))
        return [_loads(item) for item in self.client.lrange(self.key("automation_log"), 0, limit - 1)]

    # --- drop alerts ---

    def add_drop_alert(self, product_name: str, product_url: str) -> dict:
        alert = {
            "id": uuid4().hex,
            "productName": product_name or "Unknown product",
            "productUrl": product_url,
            "timestamp": now_ms(),
            "processed": False,
        }
        key = self.key("drops")
        self.client.lpush(key, json.dumps(alert))
        self.client.ltrim(key, 0, DROP_ALERT_LIMIT - 1)
        logger.info("drop_alert_stored", alert_id=alert["id"], product_url=product_url)
        return alert

    def list_drop_alerts(self) -> list[dict]:
        return [_loads(item) for item in self.client.lrange(self.key("drops"), 0, DROP_ALERT_LIMIT - 1)]

    def mark_drop_processed(self, alert_id: str, *, success: bool) -> Optional[dict]:
        """Flag a stored alert as processed. Returns the updated alert, or None if it aged out."""
        key = self.key("drops")
        for index, alert in enumerate(self.list_drop_alerts()):
            if alert.get("id") == alert_id:
                alert["processed"] = True
                alert["success"] = bool(success)
                self.client.lset(key, index, json.dumps(alert))
                return alert
        logger.warning("drop_alert_not_found", alert_id=alert_id)
        return None

    # --- pub/sub ---

    def publish(self, channel: str, message: Mapping[str, Any]) -> int:
        return int(self.client.publish(channel, json.dumps(dict(message))))

    def publish_event(self, message: Mapping[str, Any]) -> int:
        return self.publish(self.events_channel, message)

    def send_command(self, page_id: str, message: Mapping[str, Any]) -> int:
        return self.publish(self.command_channel(page_id), message)

    def broadcast(self, message: Mapping[str, Any]) -> int:
        return self.publish(self.broadcast_channel, message)

    def pubsub(self):
        return self.client.pubsub(ignore_subscribe_messages=True)
