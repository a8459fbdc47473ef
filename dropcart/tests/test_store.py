"""
Tests for the settings store: defaults, partial updates, the auto-checkout
broadcast, drop alerts and the capped automation log.
"""

from __future__ import annotations

import json

from shared.store import DEFAULT_SETTINGS, DROP_ALERT_LIMIT, SettingsStore


def test_defaults_written_once(fake_redis):
    store = SettingsStore(fake_redis)
    assert store.initialize_defaults() is True
    store.update_settings({"spendingLimit": 50})
    assert store.initialize_defaults() is False
    assert store.get_settings()["spendingLimit"] == 50


def test_get_settings_merges_over_defaults(fake_redis):
    fake_redis.set("dropcart:settings", json.dumps({"automationEnabled": True}))
    settings = SettingsStore(fake_redis).get_settings()
    assert settings == {**DEFAULT_SETTINGS, "automationEnabled": True}


def test_set_auto_checkout_stores_and_broadcasts(store, fake_redis):
    subscriber = fake_redis.pubsub()
    subscriber.subscribe(store.broadcast_channel)

    assert store.set_auto_checkout(True) == 1
    assert store.get_settings()["autoCheckoutEnabled"] is True
    message = subscriber.get_message()
    assert json.loads(message["data"]) == {"type": "START_AUTO_CHECKOUT"}

    store.set_auto_checkout(False)
    assert json.loads(subscriber.get_message()["data"]) == {"type": "STOP_AUTO_CHECKOUT"}


def test_payment_profile_round_trip(store):
    assert store.has_payment_profile() is False
    assert store.get_payment_profile() is None
    store.store_payment_profile({"email": "a@b.c"})
    assert store.has_payment_profile() is True
    assert store.get_payment_profile() == {"email": "a@b.c"}


def test_drop_alerts_keep_newest_ten(store):
    ids = [store.add_drop_alert(f"Labubu #{i}", f"https://shop.example/p/{i}")["id"] for i in range(12)]
    alerts = store.list_drop_alerts()
    assert len(alerts) == DROP_ALERT_LIMIT
    assert [a["id"] for a in alerts] == list(reversed(ids))[:DROP_ALERT_LIMIT]
    assert alerts[0]["processed"] is False


def test_drop_alert_defaults_product_name(store):
    assert store.add_drop_alert("", "https://shop.example/p/1")["productName"] == "Unknown product"


def test_mark_drop_processed(store):
    alert = store.add_drop_alert("Labubu", "https://shop.example/p/1")
    store.add_drop_alert("Other", "https://shop.example/p/2")

    updated = store.mark_drop_processed(alert["id"], success=True)

    assert updated["processed"] is True
    assert updated["success"] is True
    assert store.list_drop_alerts()[1]["processed"] is True
    assert store.mark_drop_processed("missing", success=False) is None


def test_automation_log_is_capped_newest_first(store):
    for i in range(7):
        store.append_automation_event("ADD_TO_CART_SUCCESS", {"n": i}, timestamp=1000 + i)
    log = store.get_automation_log(limit=100)
    assert [e["data"]["n"] for e in log] == [6, 5, 4, 3, 2]
    assert [e["data"]["n"] for e in store.get_automation_log(limit=2)] == [6, 5]


def test_detection_snapshots(store):
    store.save_detections("tab-1", "https://shop.example", [{"id": "b"}], 9)
    assert store.get_detections("tab-1")["buttons"] == [{"id": "b"}]
    store.clear_detections("tab-1")
    assert store.get_detections("tab-1") is None
