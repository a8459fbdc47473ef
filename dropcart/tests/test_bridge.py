"""
Tests for the Redis-backed collaborator, command relay and the blocking
request/reply used by the dashboard API.
"""

from __future__ import annotations

import asyncio
import json

import pytest
import redis

from dropcart.bridge import (
    CommandListener,
    RedisCollaborator,
    call_with_timeout,
    parse_command,
    parse_reply,
    request_page_command,
)
from dropcart.errors import NoResponseError
from dropcart.models import PaymentProfile
from dropcart.tests.fakes import wait_until


@pytest.mark.asyncio
async def test_call_with_timeout_raises_no_response():
    async def slow():
        await asyncio.sleep(1)

    with pytest.raises(NoResponseError, match="get_payment_profile"):
        await call_with_timeout(slow(), 10, "get_payment_profile")
    assert await call_with_timeout(asyncio.sleep(0, result=5), 100, "fast") == 5


@pytest.mark.asyncio
async def test_publish_detections_stores_snapshot_and_emits_event(store, fake_redis):
    collaborator = RedisCollaborator(store, "tab-1")
    buttons = [{"id": "btn-add to cart--10-20", "textLabel": "Add to Cart"}]

    await collaborator.publish_detections("https://shop.example/p/1", buttons, 123)

    assert store.get_detections("tab-1") == {"url": "https://shop.example/p/1", "buttons": buttons, "timestamp": 123}
    [event] = [json.loads(m) for m in fake_redis.published_on(store.events_channel)]
    assert event["type"] == "DETECT_CART_BUTTONS"
    assert event["pageId"] == "tab-1"
    assert event["buttons"] == buttons


@pytest.mark.asyncio
async def test_payment_profile_and_flag_reads(store):
    collaborator = RedisCollaborator(store, "tab-1")
    assert await collaborator.get_payment_profile() is None
    assert await collaborator.get_auto_checkout_enabled() is False

    store.store_payment_profile({"email": "a@b.c", "cardNumber": "4242424242424242", "autoSubmit": True})
    store.update_settings({"autoCheckoutEnabled": True})

    profile = await collaborator.get_payment_profile()
    assert isinstance(profile, PaymentProfile)
    assert profile.card_number == "4242424242424242"
    assert profile.auto_submit is True
    assert "4242" not in repr(profile)
    assert await collaborator.get_auto_checkout_enabled() is True


@pytest.mark.asyncio
async def test_automation_events_are_tagged_with_page(store):
    collaborator = RedisCollaborator(store, "tab-9")
    await collaborator.log_automation_event("ADD_TO_CART_SUCCESS", {"buttonId": "b1"})
    [entry] = store.get_automation_log()
    assert entry["type"] == "ADD_TO_CART_SUCCESS"
    assert entry["data"] == {"buttonId": "b1", "pageId": "tab-9"}


@pytest.mark.asyncio
async def test_page_disposed_clears_snapshot(store, fake_redis):
    store.save_detections("tab-1", "https://shop.example", [], 1)
    await RedisCollaborator(store, "tab-1").page_disposed()
    assert store.get_detections("tab-1") is None
    assert json.loads(fake_redis.published_on(store.events_channel)[-1]) == {"type": "PAGE_DISPOSED", "pageId": "tab-1"}


def test_parse_command():
    assert parse_command('{"type": "GET_CART_BUTTONS"}') == {"type": "GET_CART_BUTTONS"}
    assert parse_command(b'{"type": "RESCAN_BUTTONS"}') == {"type": "RESCAN_BUTTONS"}
    assert parse_command({"type": "STOP_AUTO_CHECKOUT"}) == {"type": "STOP_AUTO_CHECKOUT"}
    assert parse_command("not json") is None
    assert parse_command('{"buttonId": "x"}') is None
    assert parse_command("[1, 2]") is None


def test_parse_reply():
    assert parse_reply('{"requestId": "r1"}') == {"requestId": "r1"}
    assert parse_reply("{broken") is None
    assert parse_reply('"text"') is None


@pytest.mark.asyncio
async def test_dispatch_publishes_reply(store, fake_redis):
    async def handler(message):
        return {"success": True, "echo": message["type"]}

    listener = CommandListener(store, "tab-1", handler)
    raw = json.dumps({"type": "GET_CART_BUTTONS", "requestId": "r1", "replyTo": "dropcart:replies:r1"})

    response = await listener.dispatch(raw)

    assert response == {"success": True, "echo": "GET_CART_BUTTONS"}
    assert json.loads(fake_redis.published_on("dropcart:replies:r1")[0]) == {"requestId": "r1", "response": response}
    assert await listener.dispatch("garbage") is None


@pytest.mark.asyncio
async def test_listener_receives_page_and_broadcast_commands(store):
    received = []

    async def handler(message):
        received.append(message["type"])
        return {"success": True}

    listener = CommandListener(store, "tab-1", handler, poll_timeout_s=0.01)
    await listener.start()
    store.send_command("tab-1", {"type": "RESCAN_BUTTONS"})
    store.send_command("tab-2", {"type": "GET_CART_BUTTONS"})
    store.set_auto_checkout(True)

    await wait_until(lambda: len(received) == 2)
    await listener.stop()

    assert received == ["RESCAN_BUTTONS", "START_AUTO_CHECKOUT"]
    assert store.send_command("tab-1", {"type": "RESCAN_BUTTONS"}) == 0


@pytest.mark.asyncio
async def test_listener_survives_failed_reply_publish(store, fake_redis):
    received = []

    async def handler(message):
        received.append(message["type"])
        return {"success": True}

    publish = fake_redis.publish
    failures = []

    def flaky_publish(channel, message):
        if channel.startswith(store.key("replies")) and not failures:
            failures.append(channel)
            raise redis.ConnectionError("Connection reset by peer")
        return publish(channel, message)

    fake_redis.publish = flaky_publish
    listener = CommandListener(store, "tab-1", handler, poll_timeout_s=0.01)
    await listener.start()
    store.send_command("tab-1", {"type": "GET_CART_BUTTONS", "requestId": "r1", "replyTo": store.reply_channel("r1")})
    await wait_until(lambda: failures)
    store.set_auto_checkout(False)

    await wait_until(lambda: len(received) == 2)
    await listener.stop()

    assert received == ["GET_CART_BUTTONS", "STOP_AUTO_CHECKOUT"]


def test_request_page_command_round_trip(store, fake_redis):
    seen = []

    def engine_side(raw: str) -> None:
        command = json.loads(raw)
        seen.append(command)
        store.publish(command["replyTo"], {"requestId": command["requestId"], "response": {"success": True, "buttons": []}})

    fake_redis.responders[store.command_channel("tab-1")] = engine_side

    reply = request_page_command(store, "tab-1", {"type": "GET_CART_BUTTONS"}, timeout_ms=500)

    assert reply == {"success": True, "buttons": []}
    assert seen[0]["type"] == "GET_CART_BUTTONS"
    assert seen[0]["replyTo"] == store.reply_channel(seen[0]["requestId"])
    assert fake_redis.subscribers[seen[0]["replyTo"]] == []


def test_request_page_command_without_listener(store):
    with pytest.raises(NoResponseError, match="No engine is listening"):
        request_page_command(store, "tab-404", {"type": "GET_CART_BUTTONS"}, timeout_ms=50)


def test_request_page_command_times_out(store, fake_redis):
    fake_redis.responders[store.command_channel("tab-1")] = lambda raw: None
    with pytest.raises(NoResponseError, match="did not respond"):
        request_page_command(store, "tab-1", {"type": "RESCAN_BUTTONS"}, timeout_ms=30)
