"""WebSocket connection lifecycle with exponential-backoff reconnection.

One :class:`WebSocketConnection` owns at most one live transport. Frames
are read by a single reader task per transport, so handlers see messages
in arrival order. Reconnection runs as one cancelable task.

State machine::

    DISCONNECTED --connect--> CONNECTING --open--> CONNECTED
    CONNECTING --error/timeout--> DISCONNECTED
    CONNECTED --unexpected close--> RECONNECTING | DISCONNECTED (exhausted/auth)
    RECONNECTING --delay--> CONNECTING
    any --disconnect--> CLOSING --closed--> DISCONNECTED
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import Awaitable, Callable, Mapping
from datetime import UTC, datetime
from typing import Any, Protocol

import aiohttp
from yarl import URL

from pyrtls._constants import WS_ABNORMAL_CLOSURE, WS_NORMAL_CLOSURE, is_auth_failure_close
from pyrtls._events import CONNECTED, DISCONNECTED, ERROR, RECONNECTING, EventEmitter, EventHandler
from pyrtls._redact import redact_for_log, redact_url
from pyrtls.config import RtlsConfig
from pyrtls.exceptions import (
    RtlsAuthenticationError,
    RtlsConnectionError,
    RtlsError,
    RtlsNotConnectedError,
    RtlsSendError,
)
from pyrtls.models.connection import ConnectionState, ConnectionStatus
from pyrtls.models.events import ConnectedEvent, DisconnectedEvent, ErrorEvent, ReconnectingEvent
from pyrtls.reconnect import ReconnectionStrategy, calculate_reconnect_delay

_logger = logging.getLogger(__name__)

_CLOSE_MESSAGE = b"Client disconnect"


class WebSocketLike(Protocol):
    """Structural transport interface.

    ``aiohttp.ClientWebSocketResponse`` satisfies it; tests pass doubles.
    """

    @property
    def close_code(self) -> int | None: ...

    async def send_str(self, data: str) -> None: ...

    async def receive(self) -> Any: ...

    async def close(self, *, code: int = WS_NORMAL_CLOSURE, message: bytes = b"") -> bool: ...


WsConnect = Callable[[str], Awaitable[WebSocketLike]]


class WebSocketConnection:
    """Owns one WebSocket endpoint end-to-end.

    Parameters
    ----------
    config : RtlsConfig
        Credentials, namespace and timing settings.
    base_url : str
        Endpoint without query string.
    events : EventEmitter
        Receives ``connected``/``disconnected``/``reconnecting``/``error``.
    on_message : callable
        Called with every decoded inbound payload, in arrival order.
    on_closed : callable, optional
        Called with ``user_initiated`` whenever a live transport goes away.
    on_reconnected : callable, optional
        Run as a task after the first successful open that follows an
        unexpected transport loss, whether the open came from the retry
        policy or from a caller.
    extra_query : mapping, optional
        Additional handshake query parameters (e.g. ``mapUuid``).
    session : aiohttp.ClientSession, optional
        Shared HTTP session. Created on demand (and closed on disconnect)
        when omitted.
    ws_connect : callable, optional
        Replaces ``session.ws_connect``; receives the full handshake URL.
    name : str
        Label used in log lines.
    """

    def __init__(
        self,
        config: RtlsConfig,
        base_url: str,
        *,
        events: EventEmitter,
        on_message: Callable[[Any], None],
        on_closed: Callable[[bool], None] | None = None,
        on_reconnected: Callable[[], Awaitable[None]] | None = None,
        extra_query: Mapping[str, str] | None = None,
        session: aiohttp.ClientSession | None = None,
        ws_connect: WsConnect | None = None,
        name: str = "connection",
    ) -> None:
        self._config = config
        self._base_url = base_url
        self._events = events
        self._on_message = on_message
        self._on_closed = on_closed
        self._on_reconnected = on_reconnected
        self._extra_query = dict(extra_query or {})
        self._external_session = session is not None
        self._http_session = session
        self._ws_connect = ws_connect
        self._name = name
        self._strategy: ReconnectionStrategy = config.reconnection_strategy

        self._state = ConnectionState.DISCONNECTED
        self._ws: WebSocketLike | None = None
        self._reader: asyncio.Task[None] | None = None
        self._connect_task: asyncio.Task[None] | None = None
        self._reconnect_task: asyncio.Task[None] | None = None
        self._resume_task: asyncio.Task[None] | None = None
        self._reconnect_attempts = 0
        # Set when a live transport was lost without disconnect(); the next
        # successful open runs on_reconnected.
        self._resume_pending = False
        self._connected_at: datetime | None = None
        # One-shot: set right before a client-initiated close, consumed by
        # whichever path observes that close.
        self._user_closed = False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def namespace(self) -> str:
        return self._config.namespace

    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def get_connection_status(self) -> ConnectionStatus:
        return ConnectionStatus(
            state=self._state,
            connected_at=self._connected_at,
            reconnect_attempts=self._reconnect_attempts,
        )

    def build_url(self) -> str:
        """Handshake URL with credential, namespace and extra parameters."""
        key, value = self._config.credential
        query = {key: value, "namespace": self._config.namespace, **self._extra_query}
        return str(URL(self._base_url).update_query(query))

    # ------------------------------------------------------------------
    # Lifecycle handlers
    # ------------------------------------------------------------------

    def on(self, event: str, handler: EventHandler) -> Callable[[], None]:
        return self._events.on(event, handler)

    def once(self, event: str, handler: EventHandler) -> Callable[[], None]:
        return self._events.once(event, handler)

    def off(self, event: str, handler: EventHandler) -> None:
        self._events.off(event, handler)

    # ------------------------------------------------------------------
    # Connect
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the transport.

        Returns at once when already CONNECTED. Concurrent callers share the
        in-flight attempt instead of opening a second transport.
        """
        if self._state is ConnectionState.CONNECTED:
            _logger.debug("[%s] Already connected", self._name)
            return
        if self._state is ConnectionState.CLOSING:
            raise RtlsConnectionError("Connection is closing; await disconnect() before connecting again")
        if self._state is ConnectionState.RECONNECTING:
            # A caller-driven attempt supersedes the pending backoff timer.
            self._cancel_reconnect()

        task = self._connect_task
        if task is None or task.done():
            task = asyncio.create_task(self._open())
            self._connect_task = task
        else:
            _logger.debug("[%s] Connection already in progress", self._name)
        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            current = asyncio.current_task()
            if task.cancelled() and (current is None or not current.cancelling()):
                raise RtlsConnectionError("Connection attempt aborted by disconnect()") from None
            raise
        finally:
            if self._connect_task is task and task.done():
                self._connect_task = None

    async def _open(self) -> None:
        self._set_state(ConnectionState.CONNECTING)
        self._user_closed = False
        self._detach()

        url = self.build_url()
        _logger.debug("[%s] Connecting to %s", self._name, redact_url(url))
        try:
            ws = await asyncio.wait_for(self._open_transport(url), self._config.connection_timeout)
        except TimeoutError as exc:
            raise self._connect_failed(RtlsConnectionError("Connection timeout")) from exc
        except aiohttp.WSServerHandshakeError as exc:
            if exc.status in (401, 403):
                error: RtlsConnectionError = RtlsAuthenticationError(
                    exc.message or "Authentication failed",
                    code=exc.status,
                )
            else:
                error = RtlsConnectionError(f"WebSocket handshake failed: HTTP {exc.status}", code=exc.status)
            raise self._connect_failed(error) from exc
        except (aiohttp.ClientError, OSError) as exc:
            raise self._connect_failed(RtlsConnectionError(f"WebSocket connection error: {exc}")) from exc

        self._attach(ws)
        self._reconnect_attempts = 0
        self._connected_at = datetime.now(UTC)
        self._set_state(ConnectionState.CONNECTED)
        _logger.debug("[%s] Connected successfully", self._name)
        self._events.emit(CONNECTED, ConnectedEvent(timestamp=self._connected_at))
        if self._resume_pending:
            self._resume_pending = False
            self._schedule_resume()

    async def _open_transport(self, url: str) -> WebSocketLike:
        if self._ws_connect is not None:
            return await self._ws_connect(url)
        if self._http_session is None or self._http_session.closed:
            self._http_session = aiohttp.ClientSession()
            self._external_session = False
        return await self._http_session.ws_connect(url, heartbeat=self._config.heartbeat)

    def _connect_failed(self, error: RtlsConnectionError) -> RtlsConnectionError:
        self._set_state(ConnectionState.DISCONNECTED)
        _logger.debug("[%s] Connect failed: %s", self._name, error)
        self._emit_error(error)
        return error

    # ------------------------------------------------------------------
    # Transport attachment
    # ------------------------------------------------------------------

    def _attach(self, ws: WebSocketLike) -> None:
        self._ws = ws
        self._reader = asyncio.create_task(self._read_loop(ws))

    def _detach(self) -> WebSocketLike | None:
        """Drop the current transport and its reader without closing it."""
        ws = self._ws
        reader = self._reader
        self._ws = None
        self._reader = None
        if reader is not None and reader is not asyncio.current_task() and not reader.done():
            reader.cancel()
        return ws

    async def _read_loop(self, ws: WebSocketLike) -> None:
        code: int | None = None
        reason = ""
        while True:
            try:
                msg = await ws.receive()
            except (aiohttp.ClientError, OSError, RuntimeError) as exc:
                _logger.debug("[%s] Receive failed", self._name, exc_info=True)
                self._emit_error(RtlsConnectionError(f"WebSocket connection error: {exc}"))
                break
            if msg.type is aiohttp.WSMsgType.TEXT:
                self._handle_frame(msg.data)
            elif msg.type is aiohttp.WSMsgType.BINARY:
                self._handle_frame(msg.data.decode("utf-8", errors="replace"))
            elif msg.type is aiohttp.WSMsgType.CLOSE:
                code = msg.data if isinstance(msg.data, int) else None
                reason = msg.extra or ""
                break
            elif msg.type in (aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED):
                break
            elif msg.type is aiohttp.WSMsgType.ERROR:
                _logger.debug("[%s] Transport error: %s", self._name, msg.data)
                self._emit_error(RtlsConnectionError(f"WebSocket connection error: {msg.data}"))
                break

            if ws is not self._ws:
                # Detached while a handler ran.
                return

        if ws is not self._ws:
            return
        if code is None:
            code = ws.close_code
        if code is None:
            code = WS_NORMAL_CLOSURE if self._user_closed else WS_ABNORMAL_CLOSURE
        self._reader = None
        self._handle_transport_closed(code, reason)

    def _handle_frame(self, text: str) -> None:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            _logger.warning("[%s] Discarding non-JSON frame: %s", self._name, text[:200])
            return
        if self._config.debug:
            _logger.debug("[%s] Received: %s", self._name, redact_for_log(payload))
        try:
            self._on_message(payload)
        except Exception as exc:
            _logger.debug("[%s] Message dispatch failed", self._name, exc_info=True)
            self._emit_error(exc)

    def _handle_transport_closed(self, code: int, reason: str) -> None:
        was_connected = self._state is ConnectionState.CONNECTED
        user_initiated = self._user_closed
        self._user_closed = False
        self._ws = None
        self._connected_at = None
        self._set_state(ConnectionState.DISCONNECTED)
        _logger.debug(
            "[%s] Connection closed code=%s reason=%s",
            self._name,
            code,
            reason or "No reason provided",
        )

        if not user_initiated:
            self._resume_pending = True
        if self._on_closed is not None:
            self._on_closed(user_initiated)

        if is_auth_failure_close(code):
            self._emit_error(RtlsAuthenticationError(reason or "Authentication failed", code=code, reason=reason))
            self._events.emit(DISCONNECTED, DisconnectedEvent(code=code, reason=reason))
            return

        self._events.emit(DISCONNECTED, DisconnectedEvent(code=code, reason=reason))

        if user_initiated or code == WS_NORMAL_CLOSURE:
            return
        if was_connected:
            self._schedule_reconnect()

    # ------------------------------------------------------------------
    # Reconnection
    # ------------------------------------------------------------------

    def _schedule_reconnect(self) -> None:
        if self._strategy.is_exhausted(self._reconnect_attempts):
            _logger.debug(
                "[%s] Max reconnection attempts (%s) reached",
                self._name,
                self._strategy.max_attempts,
            )
            self._set_state(ConnectionState.DISCONNECTED)
            self._emit_error(
                RtlsConnectionError(f"Max reconnection attempts ({self._strategy.max_attempts}) reached")
            )
            return

        delay = calculate_reconnect_delay(self._reconnect_attempts, self._strategy)
        self._reconnect_attempts += 1
        self._set_state(ConnectionState.RECONNECTING)
        _logger.debug(
            "[%s] Scheduling reconnection in %.2fs (attempt %d)",
            self._name,
            delay,
            self._reconnect_attempts,
        )
        self._events.emit(RECONNECTING, ReconnectingEvent(attempt=self._reconnect_attempts, delay=delay))
        self._reconnect_task = asyncio.create_task(self._reconnect_after(delay))

    async def _reconnect_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._state is not ConnectionState.RECONNECTING:
            return
        try:
            await self.connect()
        except RtlsAuthenticationError:
            _logger.debug("[%s] Reconnection rejected by server; giving up", self._name)
            return
        except RtlsError:
            _logger.debug("[%s] Reconnection attempt failed", self._name, exc_info=True)
            self._schedule_reconnect()
            return

        _logger.debug("[%s] Reconnected successfully", self._name)

    def _cancel_reconnect(self) -> None:
        task = self._reconnect_task
        self._reconnect_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    def _schedule_resume(self) -> None:
        if self._on_reconnected is None:
            return
        self._cancel_resume()
        self._resume_task = asyncio.create_task(self._resume(self._on_reconnected))

    async def _resume(self, hook: Callable[[], Awaitable[None]]) -> None:
        try:
            await hook()
        except Exception as exc:
            _logger.debug("[%s] Post-reconnect hook failed", self._name, exc_info=True)
            self._emit_error(exc)

    def _cancel_resume(self) -> None:
        task = self._resume_task
        self._resume_task = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    # ------------------------------------------------------------------
    # Disconnect
    # ------------------------------------------------------------------

    async def disconnect(self) -> None:
        """Close the transport with code 1000 and suppress reconnection.

        Safe to call repeatedly; without a live transport it only settles
        the state.
        """
        self._cancel_reconnect()
        self._cancel_resume()
        self._resume_pending = False
        connect_task = self._connect_task
        self._connect_task = None
        if connect_task is not None and not connect_task.done():
            connect_task.cancel()
            with contextlib.suppress(asyncio.CancelledError, RtlsError):
                await connect_task

        ws = self._ws
        if ws is None:
            if self._state is not ConnectionState.DISCONNECTED:
                self._set_state(ConnectionState.DISCONNECTED)
            await self._close_http_session()
            return

        self._set_state(ConnectionState.CLOSING)
        self._user_closed = True
        reader = self._reader
        try:
            await asyncio.wait_for(
                ws.close(code=WS_NORMAL_CLOSURE, message=_CLOSE_MESSAGE),
                self._config.close_timeout,
            )
            if reader is not None and not reader.done():
                await asyncio.wait({reader}, timeout=self._config.close_timeout)
        except (TimeoutError, aiohttp.ClientError, OSError):
            _logger.debug("[%s] Close did not complete cleanly", self._name, exc_info=True)

        if self._ws is ws:
            # The reader did not observe the close; finish the transition here.
            self._detach()
            self._handle_transport_closed(WS_NORMAL_CLOSURE, _CLOSE_MESSAGE.decode())
        self._user_closed = False
        await self._close_http_session()

    async def _close_http_session(self) -> None:
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send_json(self, payload: Mapping[str, Any]) -> None:
        """Serialize *payload* and write it as one text frame."""
        ws = self._ws
        if ws is None or self._state is not ConnectionState.CONNECTED:
            raise RtlsNotConnectedError("WebSocket is not connected")
        if self._config.debug:
            _logger.debug("[%s] Sending: %s", self._name, redact_for_log(payload))
        try:
            text = json.dumps(payload, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise RtlsSendError(f"Failed to encode frame: {exc}", payload) from exc
        try:
            await ws.send_str(text)
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as exc:
            raise RtlsSendError(f"Failed to send frame: {exc}", payload) from exc

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _set_state(self, state: ConnectionState) -> None:
        if self._state is not state:
            _logger.debug("[%s] State %s -> %s", self._name, self._state, state)
            self._state = state

    def _emit_error(self, error: BaseException) -> None:
        self._events.emit(ERROR, ErrorEvent(error=error))
