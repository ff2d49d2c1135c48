"""Real-time event subscriber.

The server protocol has no request ids: a SUBSCRIBE frame is answered by a
confirmation that may or may not list the confirmed topics. Outstanding
requests are kept in FIFO order and the oldest one resolves on the next
confirmation.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

import aiohttp

from pyrtls._connection import WebSocketConnection, WsConnect
from pyrtls._events import ERROR, MESSAGE, EventEmitter, EventHandler
from pyrtls.classify import classify_message, parse_message
from pyrtls.config import RtlsConfig
from pyrtls.exceptions import (
    RtlsConnectionError,
    RtlsError,
    RtlsNotConnectedError,
    RtlsSendError,
    RtlsSubscriptionError,
)
from pyrtls.models.connection import ConnectionState, ConnectionStatus
from pyrtls.models.events import ErrorEvent
from pyrtls.models.messages import MessageKind, SubscriptionConfirmation, SubscriptionType
from pyrtls.models.results import SubscriptionResult

_logger = logging.getLogger(__name__)

SubscriptionTypes = SubscriptionType | str | Iterable[SubscriptionType | str]


@dataclass(slots=True)
class _PendingSubscription:
    """A SUBSCRIBE frame awaiting its confirmation."""

    topics: tuple[SubscriptionType, ...]
    future: asyncio.Future[SubscriptionResult]


def _normalize_topics(types: SubscriptionTypes) -> tuple[list[SubscriptionType], list[str]]:
    """Split *types* into recognized topics and rejected values."""
    if isinstance(types, str):
        requested: list[Any] = [types]
    else:
        requested = list(types)
    valid: list[SubscriptionType] = []
    invalid: list[str] = []
    known = {member.value for member in SubscriptionType}
    for item in requested:
        if isinstance(item, str) and item in known:
            topic = SubscriptionType(item)
            if topic not in valid:
                valid.append(topic)
        else:
            invalid.append(str(item))
    return valid, invalid


class RtlsSubscriber:
    """Receives positions, zone events, alerts and asset changes.

    Usage::

        subscriber = RtlsSubscriber(config)
        subscriber.on("POSITIONS", lambda pos: print(pos.device_id, pos.lat, pos.lon))
        await subscriber.connect()
        await subscriber.subscribe([SubscriptionType.POSITIONS])
        ...
        await subscriber.disconnect()

    Handlers for a topic receive the parsed model (e.g.
    :class:`~pyrtls.models.PositionMessage`); ``"message"`` handlers receive
    every non-confirmation message; lifecycle channels receive the
    :mod:`pyrtls.models.events` payloads.
    """

    def __init__(
        self,
        config: RtlsConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        ws_connect: WsConnect | None = None,
    ) -> None:
        self._config = config
        self._events = EventEmitter()
        self._active: set[SubscriptionType] = set()
        # Topics lost with the last transport, re-sent after reconnection.
        self._replay: set[SubscriptionType] = set()
        self._pending: deque[_PendingSubscription] = deque()
        self._connection = WebSocketConnection(
            config,
            config.subscriber_url,
            events=self._events,
            on_message=self._handle_message,
            on_closed=self._handle_closed,
            on_reconnected=self._replay_subscriptions,
            session=session,
            ws_connect=ws_connect,
            name="subscriber",
        )

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        await self._connection.connect()

    async def disconnect(self) -> None:
        """Disconnect and forget all subscriptions.

        Outstanding :meth:`subscribe` calls fail with
        :class:`~pyrtls.exceptions.RtlsConnectionError`.
        """
        await self._connection.disconnect()
        self._fail_pending(RtlsConnectionError("Disconnected before subscription was confirmed"))
        self._active.clear()
        self._replay.clear()

    def is_connected(self) -> bool:
        return self._connection.is_connected()

    @property
    def state(self) -> ConnectionState:
        return self._connection.state

    def get_connection_status(self) -> ConnectionStatus:
        return self._connection.get_connection_status()

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on(self, event: str, handler: EventHandler) -> Callable[[], None]:
        return self._events.on(event, handler)

    def once(self, event: str, handler: EventHandler) -> Callable[[], None]:
        return self._events.once(event, handler)

    def off(self, event: str, handler: EventHandler) -> None:
        self._events.off(event, handler)

    def remove_all_listeners(self, event: str | None = None) -> None:
        self._events.remove_all_listeners(event)

    def listener_count(self, event: str) -> int:
        return self._events.listener_count(event)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    async def subscribe(self, types: SubscriptionTypes = ()) -> SubscriptionResult:
        """Subscribe to *types* and wait for the server confirmation.

        *types* is one topic or an iterable of topics; an empty iterable
        subscribes to every topic. There is no built-in timeout, wrap the
        call in :func:`asyncio.wait_for` to bound it.

        Raises
        ------
        RtlsSubscriptionError
            A topic is not recognized. Nothing is sent.
        RtlsNotConnectedError
            The connection is not CONNECTED. Nothing is sent.
        RtlsConnectionError
            The connection went away before the confirmation arrived.
        """
        topics, invalid = _normalize_topics(types)
        if invalid:
            valid_names = ", ".join(member.value for member in SubscriptionType)
            raise RtlsSubscriptionError(
                f"Invalid subscription type(s): {', '.join(invalid)}. Valid types: {valid_names}",
                invalid,
            )
        if not self.is_connected():
            raise RtlsNotConnectedError("WebSocket not connected. Call connect() first.")

        frame: dict[str, Any] = {
            "type": "SUBSCRIBE",
            "app_namespace": self._config.namespace,
        }
        if topics:
            frame["data_type_filter"] = [topic.value for topic in topics]
        if self._config.map_uuid:
            frame["map_uuid"] = self._config.map_uuid

        requested = tuple(topics) if topics else tuple(SubscriptionType)
        future: asyncio.Future[SubscriptionResult] = asyncio.get_running_loop().create_future()
        pending = _PendingSubscription(topics=requested, future=future)
        self._pending.append(pending)

        _logger.debug("Sending SUBSCRIBE topics=%s", [topic.value for topic in topics] or "ALL")
        try:
            await self._connection.send_json(frame)
        except (RtlsNotConnectedError, RtlsSendError) as exc:
            self._discard_pending(pending)
            raise RtlsSubscriptionError(f"Failed to send subscription: {exc}", [t.value for t in topics]) from exc

        try:
            return await future
        finally:
            self._discard_pending(pending)

    def get_active_subscriptions(self) -> list[SubscriptionType]:
        """Confirmed topics, in declaration order."""
        return [topic for topic in SubscriptionType if topic in self._active]

    # ------------------------------------------------------------------
    # Inbound dispatch
    # ------------------------------------------------------------------

    def _handle_message(self, payload: Any) -> None:
        kind = classify_message(payload)
        if kind is MessageKind.CONFIRMATION:
            self._handle_confirmation(SubscriptionConfirmation.model_validate(payload))
            return
        if kind is MessageKind.UNKNOWN:
            _logger.debug("Received message with unknown shape")

        message = parse_message(kind, payload)
        self._events.emit(kind, message)
        self._events.emit(MESSAGE, message)

    def _handle_confirmation(self, confirmation: SubscriptionConfirmation) -> None:
        while self._pending:
            pending = self._pending.popleft()
            if pending.future.done():
                continue
            self._active.update(pending.topics)
            confirmed = tuple(confirmation.types) if confirmation.types else pending.topics
            _logger.debug("Subscription confirmed topics=%s", [topic.value for topic in confirmed])
            pending.future.set_result(SubscriptionResult(success=True, types=confirmed))
            return
        _logger.debug("Received subscription confirmation but no pending subscription")

    # ------------------------------------------------------------------
    # Connection callbacks
    # ------------------------------------------------------------------

    def _handle_closed(self, user_initiated: bool) -> None:
        self._fail_pending(RtlsConnectionError("Connection closed before subscription was confirmed"))
        if user_initiated:
            self._replay.clear()
        else:
            self._replay.update(self._active)
        self._active.clear()

    async def _replay_subscriptions(self) -> None:
        # Topics stay queued for replay until the server confirms them, so a
        # drop before confirmation replays them again on the next open.
        topics = [topic for topic in SubscriptionType if topic in self._replay]
        if not topics:
            return
        _logger.debug("Re-subscribing after reconnection topics=%s", [topic.value for topic in topics])
        try:
            await self.subscribe(topics)
        except RtlsConnectionError:
            _logger.debug("Connection lost before re-subscription was confirmed", exc_info=True)
            return
        except RtlsError as exc:
            _logger.debug("Failed to re-subscribe after reconnection", exc_info=True)
            self._events.emit(ERROR, ErrorEvent(error=exc))
            return
        self._replay.difference_update(topics)

    def _fail_pending(self, error: RtlsError) -> None:
        pending = list(self._pending)
        self._pending.clear()
        for entry in pending:
            if not entry.future.done():
                entry.future.set_exception(error)

    def _discard_pending(self, pending: _PendingSubscription) -> None:
        try:
            self._pending.remove(pending)
        except ValueError:
            pass
