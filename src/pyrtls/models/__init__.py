"""Data models for RTLS messages, events and results."""

from pyrtls.models.connection import ConnectionState, ConnectionStatus, UnifiedConnectionStatus
from pyrtls.models.events import ConnectedEvent, DisconnectedEvent, ErrorEvent, ReconnectingEvent
from pyrtls.models.messages import (
    AlertMessage,
    AssetMessage,
    InboundMessage,
    MessageKind,
    PositionMessage,
    SubscriptionConfirmation,
    SubscriptionType,
    UnknownMessage,
    ZoneEntryExitMessage,
    ZoneStatsMessage,
)
from pyrtls.models.position import PositionInput
from pyrtls.models.results import BatchPublishResult, PublishResult, SubscriptionResult

__all__ = [
    "AlertMessage",
    "AssetMessage",
    "BatchPublishResult",
    "ConnectedEvent",
    "ConnectionState",
    "ConnectionStatus",
    "DisconnectedEvent",
    "ErrorEvent",
    "InboundMessage",
    "MessageKind",
    "PositionInput",
    "PositionMessage",
    "PublishResult",
    "ReconnectingEvent",
    "SubscriptionConfirmation",
    "SubscriptionResult",
    "SubscriptionType",
    "UnifiedConnectionStatus",
    "UnknownMessage",
    "ZoneEntryExitMessage",
    "ZoneStatsMessage",
]
