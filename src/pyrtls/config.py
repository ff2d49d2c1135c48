"""Client configuration for pyrtls."""

from __future__ import annotations

import dataclasses

from pyrtls._constants import (
    DEFAULT_CLOSE_TIMEOUT,
    DEFAULT_CONNECTION_TIMEOUT,
    DEFAULT_HEARTBEAT,
    DEFAULT_MAX_RECONNECT_DELAY,
    DEFAULT_RECONNECT_INTERVAL,
    DEFAULT_RECONNECT_MULTIPLIER,
    PUBLISHER_URL,
    SUBSCRIBER_URL,
)
from pyrtls.exceptions import RtlsConfigError
from pyrtls.reconnect import ReconnectionStrategy


@dataclasses.dataclass(frozen=True)
class RtlsConfig:
    """Client configuration.

    Parameters
    ----------
    namespace : str
        Application namespace. Sent on the handshake and in every frame.
    api_key : str or None
        API key, sent as ``?apiKey=``. Mutually exclusive with *token*.
    token : str or None
        JWT, sent as ``?token=``. Mutually exclusive with *api_key*.
    map_uuid : str or None
        Map identifier. Required for publishing; used as a subscription
        filter when set.
    subscriber_url : str
        Subscriber endpoint.
    publisher_url : str
        Publisher endpoint.
    debug : bool
        Trace every inbound and outbound frame at DEBUG level (redacted).
    reconnect_interval : float
        Base reconnection delay in seconds.
    max_reconnect_delay : float
        Cap on a single reconnection delay in seconds.
    reconnect_multiplier : float
        Backoff growth factor.
    max_reconnect_attempts : int or None
        Attempts before giving up. ``None`` retries forever.
    connection_timeout : float
        Seconds allowed for the WebSocket handshake.
    close_timeout : float
        Seconds to wait for the server to acknowledge a close.
    heartbeat : float or None
        WebSocket ping interval in seconds. ``None`` disables pings.
    """

    namespace: str
    api_key: str | None = None
    token: str | None = None
    map_uuid: str | None = None
    subscriber_url: str = SUBSCRIBER_URL
    publisher_url: str = PUBLISHER_URL
    debug: bool = False
    reconnect_interval: float = DEFAULT_RECONNECT_INTERVAL
    max_reconnect_delay: float = DEFAULT_MAX_RECONNECT_DELAY
    reconnect_multiplier: float = DEFAULT_RECONNECT_MULTIPLIER
    max_reconnect_attempts: int | None = None
    connection_timeout: float = DEFAULT_CONNECTION_TIMEOUT
    close_timeout: float = DEFAULT_CLOSE_TIMEOUT
    heartbeat: float | None = DEFAULT_HEARTBEAT

    def __post_init__(self) -> None:
        if not self.api_key and not self.token:
            raise RtlsConfigError("Either api_key or token is required for WebSocket authentication")
        if self.api_key and self.token:
            raise RtlsConfigError("Provide either api_key or token, not both")
        if not self.namespace or not self.namespace.strip():
            raise RtlsConfigError("namespace is required")
        if self.connection_timeout <= 0:
            raise RtlsConfigError(f"connection_timeout must be > 0, got {self.connection_timeout}")
        if self.close_timeout <= 0:
            raise RtlsConfigError(f"close_timeout must be > 0, got {self.close_timeout}")
        try:
            self.reconnection_strategy  # noqa: B018
        except ValueError as exc:
            raise RtlsConfigError(str(exc)) from exc

    @property
    def reconnection_strategy(self) -> ReconnectionStrategy:
        """Backoff strategy derived from the reconnect settings."""
        return ReconnectionStrategy(
            base_interval=self.reconnect_interval,
            max_delay=self.max_reconnect_delay,
            multiplier=self.reconnect_multiplier,
            max_attempts=self.max_reconnect_attempts,
        )

    @property
    def credential(self) -> tuple[str, str]:
        """Handshake query parameter for the configured credential."""
        if self.token:
            return "token", self.token
        if not self.api_key:
            raise RtlsConfigError("Either api_key or token is required for WebSocket authentication")
        return "apiKey", self.api_key
