"""Position publisher.

Publishing never raises for bad input or transport trouble: every outcome
is reported through :class:`~pyrtls.models.PublishResult` so a batch of
mixed valid and invalid positions can be pushed in one pass.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

import aiohttp
from pydantic import ValidationError

from pyrtls._connection import WebSocketConnection, WsConnect
from pyrtls._constants import DEFAULT_TAG_COLOR, DEFAULT_TAG_MODEL, DEVICE_INFO, ORIGIN_EXTERNAL_API
from pyrtls._events import MESSAGE, EventEmitter, EventHandler
from pyrtls.config import RtlsConfig
from pyrtls.exceptions import RtlsConfigError, RtlsError
from pyrtls.mac import normalize_mac_address
from pyrtls.models.connection import ConnectionState, ConnectionStatus
from pyrtls.models.position import PositionInput
from pyrtls.models.results import BatchPublishResult, PublishResult

_logger = logging.getLogger(__name__)

PositionLike = PositionInput | Mapping[str, Any]


def _iso_now() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _mac_label(position: PositionLike) -> str:
    """Best-effort MAC for error messages, even when *position* is invalid."""
    if isinstance(position, PositionInput):
        return position.mac_address
    if isinstance(position, Mapping):
        for key in ("mac_address", "macAddress", "mac"):
            value = position.get(key)
            if value is not None:
                return str(value)
    return "<unknown>"


def _validation_message(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "Invalid position: " + "; ".join(parts)


class RtlsPublisher:
    """Publishes tag positions on the publisher endpoint.

    Requires ``map_uuid`` in the configuration; positions are placed on that
    map unless a position overrides it.
    """

    def __init__(
        self,
        config: RtlsConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        ws_connect: WsConnect | None = None,
    ) -> None:
        if not config.map_uuid:
            raise RtlsConfigError("map_uuid is required for publishing")
        self._config = config
        self._map_uuid = config.map_uuid
        self._events = EventEmitter()
        self._connection = WebSocketConnection(
            config,
            config.publisher_url,
            events=self._events,
            on_message=self._handle_message,
            extra_query={"mapUuid": config.map_uuid},
            session=session,
            ws_connect=ws_connect,
            name="publisher",
        )

    @property
    def map_uuid(self) -> str:
        return self._map_uuid

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        await self._connection.connect()

    async def disconnect(self) -> None:
        await self._connection.disconnect()

    def is_connected(self) -> bool:
        return self._connection.is_connected()

    @property
    def state(self) -> ConnectionState:
        return self._connection.state

    def get_connection_status(self) -> ConnectionStatus:
        return self._connection.get_connection_status()

    def on(self, event: str, handler: EventHandler) -> Callable[[], None]:
        return self._events.on(event, handler)

    def once(self, event: str, handler: EventHandler) -> Callable[[], None]:
        return self._events.once(event, handler)

    def off(self, event: str, handler: EventHandler) -> None:
        self._events.off(event, handler)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    async def send_position(self, position: PositionLike) -> PublishResult:
        """Publish one position, connecting first if needed.

        Parameters
        ----------
        position : PositionInput or mapping
            Mappings are validated into :class:`PositionInput`; camelCase
            keys (``macAddress``, ``lat``, ``lon``) are accepted.

        Returns
        -------
        PublishResult
            ``success=False`` with a message for invalid input, an invalid
            MAC, a failed connection or a failed write.
        """
        try:
            item = position if isinstance(position, PositionInput) else PositionInput.model_validate(position)
        except ValidationError as exc:
            return PublishResult(success=False, error=_validation_message(exc))

        try:
            user_uuid = normalize_mac_address(item.mac_address)
        except ValueError as exc:
            return PublishResult(success=False, error=str(exc))

        if not self.is_connected():
            try:
                await self.connect()
            except RtlsError as exc:
                return PublishResult(success=False, error=str(exc))

        frame = self._build_frame(item, user_uuid)
        try:
            await self._connection.send_json(frame)
        except RtlsError as exc:
            return PublishResult(success=False, error=str(exc))
        _logger.debug("Published position for %s", user_uuid)
        return PublishResult(success=True)

    async def send_batch(self, positions: Iterable[PositionLike]) -> BatchPublishResult:
        """Publish each position in turn; failures do not stop the batch."""
        sent = 0
        errors: list[str] = []
        for position in positions:
            result = await self.send_position(position)
            if result.success:
                sent += 1
            else:
                errors.append(f"{_mac_label(position)}: {result.error}")
        if errors:
            _logger.debug("Batch publish finished with %d failure(s)", len(errors))
        return BatchPublishResult(
            success=not errors,
            sent=sent,
            failed=len(errors),
            errors=errors or None,
        )

    def _build_frame(self, item: PositionInput, user_uuid: str) -> dict[str, Any]:
        return {
            "app_namespace": item.app_namespace or self._config.namespace,
            "device_info": dict(DEVICE_INFO),
            "data": dict(item.data) if item.data else {},
            "lat": item.latitude,
            "lon": item.longitude,
            "map_uuid": item.map_uuid or self._map_uuid,
            "model": item.model or DEFAULT_TAG_MODEL,
            "origin": ORIGIN_EXTERNAL_API,
            "timestamp": _iso_now(),
            "user_name": item.name or item.mac_address,
            "user_uuid": user_uuid,
            "color": item.color or DEFAULT_TAG_COLOR,
        }

    def _handle_message(self, payload: Any) -> None:
        self._events.emit(MESSAGE, payload)
