from __future__ import annotations

import asyncio
from typing import Any

import pytest
from conftest import FakeServer, make_config, wait_until

from pyrtls.config import RtlsConfig
from pyrtls.exceptions import RtlsConnectionError, RtlsNotConnectedError, RtlsSubscriptionError
from pyrtls.models import (
    AlertMessage,
    ConnectionState,
    ErrorEvent,
    PositionMessage,
    SubscriptionType,
    UnknownMessage,
    ZoneEntryExitMessage,
)
from pyrtls.subscriber import RtlsSubscriber


def _subscriber(server: FakeServer, config: RtlsConfig) -> RtlsSubscriber:
    return RtlsSubscriber(config, ws_connect=server.connect)


@pytest.mark.asyncio
async def test_subscribe_sends_frame_and_tracks_confirmed_topics(server: FakeServer, config: RtlsConfig) -> None:
    subscriber = _subscriber(server, config)
    await subscriber.connect()

    result = await subscriber.subscribe([SubscriptionType.POSITIONS, "ALERTS"])

    assert result.success
    assert result.types == (SubscriptionType.POSITIONS, SubscriptionType.ALERTS)
    assert server.last.frames("SUBSCRIBE") == [
        {
            "type": "SUBSCRIBE",
            "app_namespace": "test-ns",
            "data_type_filter": ["POSITIONS", "ALERTS"],
            "map_uuid": "map-1",
        }
    ]
    assert subscriber.get_active_subscriptions() == [SubscriptionType.POSITIONS, SubscriptionType.ALERTS]
    assert "mapUuid" not in server.urls[0]
    await subscriber.disconnect()


@pytest.mark.asyncio
async def test_subscribe_single_topic_without_map(server: FakeServer) -> None:
    subscriber = _subscriber(server, make_config(map_uuid=None))
    await subscriber.connect()

    await subscriber.subscribe("ZONE_STATS_EVENTS")

    frame = server.last.frames("SUBSCRIBE")[0]
    assert frame["data_type_filter"] == ["ZONE_STATS_EVENTS"]
    assert "map_uuid" not in frame
    await subscriber.disconnect()


@pytest.mark.asyncio
async def test_empty_subscribe_means_all_topics(server: FakeServer, config: RtlsConfig) -> None:
    subscriber = _subscriber(server, config)
    await subscriber.connect()

    result = await subscriber.subscribe([])

    assert "data_type_filter" not in server.last.frames("SUBSCRIBE")[0]
    assert result.types == tuple(SubscriptionType)
    assert subscriber.get_active_subscriptions() == list(SubscriptionType)
    await subscriber.disconnect()


@pytest.mark.asyncio
async def test_invalid_topic_is_rejected_before_sending(server: FakeServer, config: RtlsConfig) -> None:
    subscriber = _subscriber(server, config)
    await subscriber.connect()

    with pytest.raises(RtlsSubscriptionError) as excinfo:
        await subscriber.subscribe(["POSITIONS", "BOGUS"])

    assert excinfo.value.types == ["BOGUS"]
    assert "BOGUS" in str(excinfo.value)
    assert server.last.sent == []
    assert subscriber.get_active_subscriptions() == []
    await subscriber.disconnect()


@pytest.mark.asyncio
async def test_subscribe_while_disconnected_raises(server: FakeServer, config: RtlsConfig) -> None:
    subscriber = _subscriber(server, config)

    with pytest.raises(RtlsNotConnectedError):
        await subscriber.subscribe(["POSITIONS"])

    assert server.urls == []


@pytest.mark.asyncio
async def test_confirmation_without_types_resolves_with_requested(server: FakeServer, config: RtlsConfig) -> None:
    server.auto_confirm = False
    subscriber = _subscriber(server, config)
    await subscriber.connect()

    task = asyncio.create_task(subscriber.subscribe(["ASSETS"]))
    await wait_until(lambda: len(server.last.sent) == 1)
    server.last.push_json({"action": "subscribeEvent"})
    result = await asyncio.wait_for(task, 1.0)

    assert result.types == (SubscriptionType.ASSETS,)
    await subscriber.disconnect()


@pytest.mark.asyncio
async def test_confirmations_resolve_oldest_request_first(server: FakeServer, config: RtlsConfig) -> None:
    server.auto_confirm = False
    subscriber = _subscriber(server, config)
    await subscriber.connect()

    first = asyncio.create_task(subscriber.subscribe(["POSITIONS"]))
    await wait_until(lambda: len(server.last.sent) == 1)
    second = asyncio.create_task(subscriber.subscribe(["ALERTS"]))
    await wait_until(lambda: len(server.last.sent) == 2)

    server.last.push_json({"action": "subscribeEvent"})
    first_result = await asyncio.wait_for(first, 1.0)
    assert first_result.types == (SubscriptionType.POSITIONS,)
    assert not second.done()
    assert subscriber.get_active_subscriptions() == [SubscriptionType.POSITIONS]

    server.last.push_json({"action": "subscribeEvent"})
    second_result = await asyncio.wait_for(second, 1.0)
    assert second_result.types == (SubscriptionType.ALERTS,)
    assert subscriber.get_active_subscriptions() == [SubscriptionType.POSITIONS, SubscriptionType.ALERTS]
    await subscriber.disconnect()


@pytest.mark.asyncio
async def test_unsolicited_confirmation_is_ignored(server: FakeServer, config: RtlsConfig) -> None:
    subscriber = _subscriber(server, config)
    messages: list[Any] = []
    subscriber.on("message", messages.append)
    await subscriber.connect()

    server.last.push_json({"type": "SUBSCRIPTION_CONFIRMATION", "types": ["POSITIONS"]})
    server.last.push_json({"type": "POSITIONS", "lat": 1.0, "lon": 2.0, "user_uuid": "u"})
    await wait_until(lambda: len(messages) == 1)

    assert isinstance(messages[0], PositionMessage)
    assert subscriber.get_active_subscriptions() == []
    await subscriber.disconnect()


@pytest.mark.asyncio
async def test_pending_subscription_fails_on_disconnect(server: FakeServer, config: RtlsConfig) -> None:
    server.auto_confirm = False
    subscriber = _subscriber(server, config)
    await subscriber.connect()

    task = asyncio.create_task(subscriber.subscribe(["POSITIONS"]))
    await wait_until(lambda: len(server.last.sent) == 1)
    await subscriber.disconnect()

    with pytest.raises(RtlsConnectionError):
        await asyncio.wait_for(task, 1.0)


@pytest.mark.asyncio
async def test_subscriptions_replayed_after_abnormal_close(server: FakeServer, config: RtlsConfig) -> None:
    subscriber = _subscriber(server, config)
    await subscriber.connect()
    await subscriber.subscribe(["POSITIONS", "ZONES_ENTRIES_EVENTS"])
    first = server.last

    first.drop(1006)
    await wait_until(lambda: len(server.sockets) == 2 and bool(server.last.frames("SUBSCRIBE")))
    await wait_until(lambda: len(subscriber.get_active_subscriptions()) == 2)

    replayed = server.last.frames("SUBSCRIBE")
    assert len(replayed) == 1
    assert replayed[0]["data_type_filter"] == ["POSITIONS", "ZONES_ENTRIES_EVENTS"]
    assert subscriber.is_connected()
    await subscriber.disconnect()


@pytest.mark.asyncio
async def test_user_disconnect_forgets_subscriptions(server: FakeServer, config: RtlsConfig) -> None:
    subscriber = _subscriber(server, config)
    await subscriber.connect()
    await subscriber.subscribe(["POSITIONS"])

    await subscriber.disconnect()
    assert subscriber.get_active_subscriptions() == []

    await subscriber.connect()
    await asyncio.sleep(0.05)
    assert server.last.sent == []
    await subscriber.disconnect()


@pytest.mark.asyncio
async def test_messages_dispatched_to_kind_then_wildcard(server: FakeServer, config: RtlsConfig) -> None:
    subscriber = _subscriber(server, config)
    calls: list[tuple[str, Any]] = []
    subscriber.on("POSITIONS", lambda message: calls.append(("POSITIONS", message)))
    subscriber.on("ZONES_ENTRIES_EVENTS", lambda message: calls.append(("ZONES", message)))
    subscriber.on("ALERTS", lambda message: calls.append(("ALERTS", message)))
    subscriber.on("UNKNOWN", lambda message: calls.append(("UNKNOWN", message)))
    subscriber.on("message", lambda message: calls.append(("message", message)))
    await subscriber.connect()

    ws = server.last
    ws.push_json({"lat": 48.8, "lon": 2.3, "user_uuid": "aabbccddeeff"})
    ws.push_json({"event_type": "EXIT_ZONE", "zone": "Dock"})
    ws.push_json({"type": "ALERTS", "params": {"title": "SOS"}})
    ws.push_json({"something": "else"})
    await wait_until(lambda: len(calls) == 8)

    assert [name for name, _ in calls] == [
        "POSITIONS",
        "message",
        "ZONES",
        "message",
        "ALERTS",
        "message",
        "UNKNOWN",
        "message",
    ]
    assert isinstance(calls[0][1], PositionMessage)
    assert calls[0][1] is calls[1][1]
    assert isinstance(calls[2][1], ZoneEntryExitMessage)
    assert isinstance(calls[4][1], AlertMessage)
    assert isinstance(calls[6][1], UnknownMessage)
    await subscriber.disconnect()


@pytest.mark.asyncio
async def test_handler_fault_reported_and_isolated(server: FakeServer, config: RtlsConfig) -> None:
    subscriber = _subscriber(server, config)
    errors: list[ErrorEvent] = []
    positions: list[Any] = []

    def boom(_: Any) -> None:
        raise RuntimeError("bad handler")

    subscriber.on("POSITIONS", boom)
    subscriber.on("POSITIONS", positions.append)
    subscriber.on("error", errors.append)
    await subscriber.connect()

    server.last.push_json({"type": "POSITIONS"})
    await wait_until(lambda: len(positions) == 1)

    assert len(errors) == 1
    assert errors[0].event == "POSITIONS"
    assert subscriber.is_connected()
    await subscriber.disconnect()


@pytest.mark.asyncio
async def test_once_and_off(server: FakeServer, config: RtlsConfig) -> None:
    subscriber = _subscriber(server, config)
    once_calls: list[Any] = []
    all_calls: list[Any] = []
    subscriber.once("ASSETS", once_calls.append)
    unsubscribe = subscriber.on("ASSETS", all_calls.append)
    await subscriber.connect()

    server.last.push_json({"asset_id": "a-1"})
    await wait_until(lambda: len(all_calls) == 1)
    unsubscribe()
    server.last.push_json({"asset_id": "a-2"})
    server.last.push_json({"type": "POSITIONS"})
    await asyncio.sleep(0.05)

    assert len(once_calls) == 1
    assert len(all_calls) == 1
    assert subscriber.listener_count("ASSETS") == 0
    await subscriber.disconnect()


@pytest.mark.asyncio
async def test_replay_survives_drop_before_confirmation(server: FakeServer, config: RtlsConfig) -> None:
    subscriber = _subscriber(server, config)
    await subscriber.connect()
    await subscriber.subscribe(["POSITIONS"])

    server.auto_confirm = False
    server.last.drop(1006)
    await wait_until(lambda: len(server.sockets) == 2 and bool(server.last.frames("SUBSCRIBE")))
    assert subscriber.get_active_subscriptions() == []

    server.auto_confirm = True
    server.last.drop(1006)
    await wait_until(lambda: len(server.sockets) == 3 and bool(server.last.frames("SUBSCRIBE")))
    await wait_until(lambda: subscriber.get_active_subscriptions() == [SubscriptionType.POSITIONS])

    assert server.last.frames("SUBSCRIBE")[0]["data_type_filter"] == ["POSITIONS"]
    await subscriber.disconnect()


@pytest.mark.asyncio
async def test_manual_connect_during_backoff_replays_subscriptions(server: FakeServer) -> None:
    subscriber = _subscriber(server, make_config(reconnect_interval=5.0, max_reconnect_delay=5.0))
    await subscriber.connect()
    await subscriber.subscribe(["POSITIONS"])

    server.last.drop(1006)
    await wait_until(lambda: subscriber.state is ConnectionState.RECONNECTING)
    await subscriber.connect()
    await wait_until(lambda: bool(server.last.frames("SUBSCRIBE")))
    await wait_until(lambda: subscriber.get_active_subscriptions() == [SubscriptionType.POSITIONS])

    assert len(server.sockets) == 2
    await subscriber.disconnect()
