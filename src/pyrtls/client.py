"""High-level RTLS client.

Usage::

    config = RtlsConfig(namespace="my-app", api_key="...", map_uuid="...")
    async with RtlsClient(config) as client:
        client.on("POSITIONS", handle_position)
        await client.connect()
        await client.subscribe(["POSITIONS", "ALERTS"])
        await client.send_position({"macAddress": "aa:bb:cc:dd:ee:ff", "lat": 48.85, "lon": 2.35})
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from types import TracebackType

import aiohttp

from pyrtls._connection import WsConnect
from pyrtls._events import EventHandler
from pyrtls.config import RtlsConfig
from pyrtls.models.connection import UnifiedConnectionStatus
from pyrtls.models.messages import SubscriptionType
from pyrtls.models.results import BatchPublishResult, PublishResult, SubscriptionResult
from pyrtls.publisher import PositionLike, RtlsPublisher
from pyrtls.subscriber import RtlsSubscriber, SubscriptionTypes

_logger = logging.getLogger(__name__)

_PUBLISHER_NOT_CONFIGURED = "Publisher not configured. Provide map_uuid in config."


class RtlsClient:
    """Subscriber plus, when ``map_uuid`` is configured, a publisher.

    Parameters
    ----------
    config : RtlsConfig
        Shared by both sides.
    session : aiohttp.ClientSession, optional
        Shared HTTP session; never closed by the client.
    ws_connect : callable, optional
        Replaces ``session.ws_connect`` on both sides (used by tests).
    """

    def __init__(
        self,
        config: RtlsConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        ws_connect: WsConnect | None = None,
    ) -> None:
        self._config = config
        self._subscriber = RtlsSubscriber(config, session=session, ws_connect=ws_connect)
        self._publisher: RtlsPublisher | None = None
        if config.map_uuid:
            self._publisher = RtlsPublisher(config, session=session, ws_connect=ws_connect)

    async def __aenter__(self) -> RtlsClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.disconnect()

    @property
    def config(self) -> RtlsConfig:
        return self._config

    @property
    def namespace(self) -> str:
        return self._config.namespace

    @property
    def subscriber(self) -> RtlsSubscriber:
        return self._subscriber

    @property
    def publisher(self) -> RtlsPublisher | None:
        return self._publisher

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self, *, subscriber_only: bool = False, publisher_only: bool = False) -> None:
        """Connect the configured sides concurrently.

        Raises
        ------
        ValueError
            Both *subscriber_only* and *publisher_only* are set.
        RtlsConnectionError
            A side failed to connect.
        """
        if subscriber_only and publisher_only:
            raise ValueError("subscriber_only and publisher_only are mutually exclusive")

        pending = []
        if not publisher_only:
            pending.append(self._subscriber.connect())
        if not subscriber_only and self._publisher is not None:
            pending.append(self._publisher.connect())
        if not pending:
            _logger.debug("Nothing to connect: publisher not configured")
            return
        await asyncio.gather(*pending)

    async def disconnect(self) -> None:
        pending = [self._subscriber.disconnect()]
        if self._publisher is not None:
            pending.append(self._publisher.disconnect())
        await asyncio.gather(*pending)

    def is_connected(self) -> bool:
        """``True`` only when every configured side is connected."""
        if not self._subscriber.is_connected():
            return False
        return self._publisher is None or self._publisher.is_connected()

    def is_subscriber_connected(self) -> bool:
        return self._subscriber.is_connected()

    def is_publisher_connected(self) -> bool:
        return self._publisher is not None and self._publisher.is_connected()

    def get_connection_status(self) -> UnifiedConnectionStatus:
        return UnifiedConnectionStatus(
            subscriber=self._subscriber.get_connection_status(),
            publisher=self._publisher.get_connection_status() if self._publisher is not None else None,
        )

    # ------------------------------------------------------------------
    # Subscriber delegation
    # ------------------------------------------------------------------

    async def subscribe(self, types: SubscriptionTypes = ()) -> SubscriptionResult:
        return await self._subscriber.subscribe(types)

    def get_active_subscriptions(self) -> list[SubscriptionType]:
        return self._subscriber.get_active_subscriptions()

    def on(self, event: str, handler: EventHandler) -> Callable[[], None]:
        return self._subscriber.on(event, handler)

    def once(self, event: str, handler: EventHandler) -> Callable[[], None]:
        return self._subscriber.once(event, handler)

    def off(self, event: str, handler: EventHandler) -> None:
        self._subscriber.off(event, handler)

    # ------------------------------------------------------------------
    # Publisher delegation
    # ------------------------------------------------------------------

    async def send_position(self, position: PositionLike) -> PublishResult:
        if self._publisher is None:
            return PublishResult(success=False, error=_PUBLISHER_NOT_CONFIGURED)
        return await self._publisher.send_position(position)

    async def send_batch(self, positions: Iterable[PositionLike]) -> BatchPublishResult:
        if self._publisher is None:
            items = list(positions)
            return BatchPublishResult(
                success=False,
                sent=0,
                failed=len(items),
                errors=[_PUBLISHER_NOT_CONFIGURED],
            )
        return await self._publisher.send_batch(positions)
