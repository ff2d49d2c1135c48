"""Lifecycle event payloads delivered to ``connected``/``disconnected``/
``reconnecting``/``error`` handlers."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ConnectedEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=_utcnow)


class DisconnectedEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    code: int
    reason: str = ""
    timestamp: datetime = Field(default_factory=_utcnow)


class ReconnectingEvent(BaseModel):
    """A reconnection attempt has been scheduled.

    ``attempt`` is one-based; ``delay`` is in seconds.
    """

    model_config = ConfigDict(frozen=True)

    attempt: int
    delay: float
    timestamp: datetime = Field(default_factory=_utcnow)


class ErrorEvent(BaseModel):
    """An error surfaced asynchronously.

    ``event`` names the channel whose handler raised, when the error is a
    handler fault; ``None`` for connection-level errors.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    error: BaseException
    event: str | None = None
    timestamp: datetime = Field(default_factory=_utcnow)
