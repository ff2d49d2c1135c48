"""Custom exception hierarchy for pyrtls."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class RtlsError(Exception):
    """Base exception for all pyrtls errors."""


class RtlsConfigError(RtlsError):
    """Invalid or missing configuration."""


class RtlsWebSocketError(RtlsError):
    """WebSocket-level failure.

    ``code`` and ``reason`` carry the close frame details when the error was
    caused by the server closing the connection.
    """

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        reason: str = "",
    ) -> None:
        self.code = code
        self.reason = reason
        super().__init__(message)


class RtlsConnectionError(RtlsWebSocketError):
    """Handshake failure, timeout or abnormal closure."""


class RtlsNotConnectedError(RtlsConnectionError):
    """Operation requires a CONNECTED connection."""


class RtlsAuthenticationError(RtlsConnectionError):
    """Credentials rejected by the server (HTTP 401/403 or close 4001/4003).

    Never retried: reconnecting with the same api key or token cannot succeed.
    """


class RtlsSubscriptionError(RtlsWebSocketError):
    """Subscribe request rejected locally (e.g. unknown topic)."""

    def __init__(self, message: str, types: Sequence[str] = ()) -> None:
        self.types = list(types)
        super().__init__(message)


class RtlsSendError(RtlsWebSocketError):
    """A frame could not be written to the transport."""

    def __init__(self, message: str, payload: Any = None) -> None:
        self.payload = payload
        super().__init__(message)
