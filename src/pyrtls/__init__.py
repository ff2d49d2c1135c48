"""pyrtls - Async Python client for the RTLS real-time WebSocket API."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyrtls")
except PackageNotFoundError:
    __version__ = "0+local"
from pyrtls.classify import classify_message, parse_message
from pyrtls.client import RtlsClient
from pyrtls.config import RtlsConfig
from pyrtls.exceptions import (
    RtlsAuthenticationError,
    RtlsConfigError,
    RtlsConnectionError,
    RtlsError,
    RtlsNotConnectedError,
    RtlsSendError,
    RtlsSubscriptionError,
    RtlsWebSocketError,
)
from pyrtls.mac import is_valid_mac_address, normalize_mac_address
from pyrtls.models import (
    AlertMessage,
    AssetMessage,
    BatchPublishResult,
    ConnectedEvent,
    ConnectionState,
    ConnectionStatus,
    DisconnectedEvent,
    ErrorEvent,
    MessageKind,
    PositionInput,
    PositionMessage,
    PublishResult,
    ReconnectingEvent,
    SubscriptionConfirmation,
    SubscriptionResult,
    SubscriptionType,
    UnifiedConnectionStatus,
    UnknownMessage,
    ZoneEntryExitMessage,
    ZoneStatsMessage,
)
from pyrtls.publisher import RtlsPublisher
from pyrtls.reconnect import ReconnectionStrategy, calculate_reconnect_delay
from pyrtls.subscriber import RtlsSubscriber

__all__ = [
    "__version__",
    "AlertMessage",
    "AssetMessage",
    "BatchPublishResult",
    "ConnectedEvent",
    "ConnectionState",
    "ConnectionStatus",
    "DisconnectedEvent",
    "ErrorEvent",
    "MessageKind",
    "PositionInput",
    "PositionMessage",
    "PublishResult",
    "ReconnectingEvent",
    "ReconnectionStrategy",
    "RtlsAuthenticationError",
    "RtlsClient",
    "RtlsConfig",
    "RtlsConfigError",
    "RtlsConnectionError",
    "RtlsError",
    "RtlsNotConnectedError",
    "RtlsPublisher",
    "RtlsSendError",
    "RtlsSubscriber",
    "RtlsSubscriptionError",
    "RtlsWebSocketError",
    "SubscriptionConfirmation",
    "SubscriptionResult",
    "SubscriptionType",
    "UnifiedConnectionStatus",
    "UnknownMessage",
    "ZoneEntryExitMessage",
    "ZoneStatsMessage",
    "calculate_reconnect_delay",
    "classify_message",
    "is_valid_mac_address",
    "normalize_mac_address",
    "parse_message",
]
