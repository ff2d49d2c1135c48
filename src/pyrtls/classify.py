"""Structural classification of inbound payloads.

Server payloads carry no single reliable discriminant: some producers set
``type``, others only ``event_type`` or ``action``, and positions are often
bare coordinate records. Classification is therefore an ordered chain of
shape predicates where the first match wins. The order matters because
shapes overlap (a zone event may also carry ``lat``/``lon``).
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from pyrtls._normalize import is_number
from pyrtls.models._base import RtlsBaseModel
from pyrtls.models.messages import (
    ZONE_EVENT_TYPES,
    AlertMessage,
    AssetMessage,
    InboundMessage,
    MessageKind,
    PositionMessage,
    SubscriptionConfirmation,
    UnknownMessage,
    ZoneEntryExitMessage,
    ZoneStatsMessage,
)


def is_position_message(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    if payload.get("type") == "POSITIONS":
        return True
    return (
        is_number(payload.get("lat"))
        and is_number(payload.get("lon"))
        and (isinstance(payload.get("user_uuid"), str) or isinstance(payload.get("user_udid"), str))
    )


def is_zone_entry_exit_message(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    if payload.get("type") == "ZONES_ENTRIES_EVENTS":
        return True
    event_type = payload.get("event_type")
    return isinstance(event_type, str) and event_type in ZONE_EVENT_TYPES


def is_zone_stats_message(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    return payload.get("type") == "ZONE_STATS_EVENTS" or payload.get("event_type") == "UPDATE_ZONE_COUNTER"


def is_alert_message(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    if payload.get("type") in ("ALERTS", "NOTIFICATION"):
        return True
    event_type = payload.get("event_type")
    if event_type == "NOTIFICATION":
        return True
    if isinstance(payload.get("alert_type"), str):
        return True
    return isinstance(event_type, str) and "ALERT" in event_type


def is_asset_message(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    if payload.get("type") == "assets":
        return True
    if isinstance(payload.get("asset_id"), str):
        return True
    event_type = payload.get("event_type")
    return isinstance(event_type, str) and "ASSET" in event_type


def is_subscription_confirmation(payload: Any) -> bool:
    if not isinstance(payload, dict):
        return False
    return payload.get("type") == "SUBSCRIPTION_CONFIRMATION" or payload.get("action") == "subscribeEvent"


_CLASSIFIERS: tuple[tuple[Callable[[Any], bool], MessageKind], ...] = (
    (is_position_message, MessageKind.POSITIONS),
    (is_zone_entry_exit_message, MessageKind.ZONES_ENTRIES_EVENTS),
    (is_zone_stats_message, MessageKind.ZONE_STATS_EVENTS),
    (is_alert_message, MessageKind.ALERTS),
    (is_asset_message, MessageKind.ASSETS),
    (is_subscription_confirmation, MessageKind.CONFIRMATION),
)

_MODELS: dict[MessageKind, type[RtlsBaseModel]] = {
    MessageKind.POSITIONS: PositionMessage,
    MessageKind.ZONES_ENTRIES_EVENTS: ZoneEntryExitMessage,
    MessageKind.ZONE_STATS_EVENTS: ZoneStatsMessage,
    MessageKind.ALERTS: AlertMessage,
    MessageKind.ASSETS: AssetMessage,
    MessageKind.CONFIRMATION: SubscriptionConfirmation,
}


def classify_message(payload: Any) -> MessageKind:
    """Return the kind of *payload*. Total: never raises."""
    for predicate, kind in _CLASSIFIERS:
        if predicate(payload):
            return kind
    return MessageKind.UNKNOWN


def parse_message(kind: MessageKind, payload: Any) -> InboundMessage:
    """Build the typed model for an already classified *payload*."""
    model = _MODELS.get(kind)
    if model is None or not isinstance(payload, dict):
        return UnknownMessage.from_payload(payload)
    return model.model_validate(payload)
