"""Connection state and status snapshots."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class ConnectionState(StrEnum):
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    RECONNECTING = "RECONNECTING"
    CLOSING = "CLOSING"


class ConnectionStatus(BaseModel):
    """Point-in-time snapshot of one connection.

    Parameters
    ----------
    state : ConnectionState
        Lifecycle state when the snapshot was taken.
    connected_at : datetime or None
        UTC time the current transport opened, ``None`` unless CONNECTED.
    reconnect_attempts : int
        Reconnection attempts since the last successful open.
    """

    model_config = ConfigDict(frozen=True)

    state: ConnectionState
    connected_at: datetime | None = None
    reconnect_attempts: int = 0


class UnifiedConnectionStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    subscriber: ConnectionStatus
    publisher: ConnectionStatus | None = None
