"""Inbound message models and kinds."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, ClassVar

from pydantic import Field, field_validator

from pyrtls.models._base import RtlsBaseModel, RtlsTimestamp


class SubscriptionType(StrEnum):
    """Topics a client may subscribe to."""

    POSITIONS = "POSITIONS"
    ZONES_ENTRIES_EVENTS = "ZONES_ENTRIES_EVENTS"
    ZONE_STATS_EVENTS = "ZONE_STATS_EVENTS"
    ALERTS = "ALERTS"
    ASSETS = "ASSETS"


class MessageKind(StrEnum):
    """Classification of an inbound payload."""

    POSITIONS = "POSITIONS"
    ZONES_ENTRIES_EVENTS = "ZONES_ENTRIES_EVENTS"
    ZONE_STATS_EVENTS = "ZONE_STATS_EVENTS"
    ALERTS = "ALERTS"
    ASSETS = "ASSETS"
    CONFIRMATION = "CONFIRMATION"
    UNKNOWN = "UNKNOWN"


ZONE_EVENT_TYPES: frozenset[str] = frozenset(
    {"ENTER_ZONE", "EXIT_ZONE", "ENTER", "EXIT", "ZONE_ENTRY", "ZONE_EXIT"}
)


class PositionMessage(RtlsBaseModel):
    """Tag position update.

    ``user_uuid`` is normally the tag MAC without separators; some
    producers send ``user_udid`` instead. Use :attr:`device_id` to get
    whichever is present.
    """

    kind: ClassVar[MessageKind] = MessageKind.POSITIONS

    app_namespace: str | None = None
    lat: float | None = None
    lon: float | None = None
    user_uuid: str | None = None
    user_udid: str | None = None
    user_name: str | None = None
    user_type: str | None = None
    model: str | None = None
    map_uuid: str | None = None
    timestamp: RtlsTimestamp = None
    color: str | None = None
    origin: int | None = None
    device_info: dict[str, Any] | None = None
    data: dict[str, Any] | None = None
    type: str | None = None

    @field_validator("lat", "lon", mode="before")
    @classmethod
    def _coerce_coordinates(cls, value: Any) -> float | None:
        return cls._float(value)

    @field_validator("origin", mode="before")
    @classmethod
    def _coerce_origin(cls, value: Any) -> int | None:
        return cls._int(value)

    @field_validator(
        "app_namespace",
        "user_uuid",
        "user_udid",
        "user_name",
        "user_type",
        "model",
        "map_uuid",
        "color",
        "type",
        mode="before",
    )
    @classmethod
    def _coerce_strings(cls, value: Any) -> str | None:
        return cls._str(value)

    @field_validator("device_info", "data", mode="before")
    @classmethod
    def _coerce_dicts(cls, value: Any) -> dict[str, Any] | None:
        return cls._dict(value)

    @property
    def device_id(self) -> str | None:
        return self.user_uuid or self.user_udid


class ZoneEntryExitMessage(RtlsBaseModel):
    """A tag entered or left a zone.

    ``zone`` is either a GeoJSON feature dict or a bare zone name.
    """

    kind: ClassVar[MessageKind] = MessageKind.ZONES_ENTRIES_EVENTS

    app_namespace: str | None = None
    map_uuid: str | None = None
    event_type: str | None = None
    zone: dict[str, Any] | str | None = None
    user_uuid: str | None = None
    user_udid: str | None = None
    user_name: str | None = None
    user_type: str | None = None
    timestamp: RtlsTimestamp = None
    action: str | None = None
    data: dict[str, Any] | None = None
    type: str | None = None

    @field_validator(
        "app_namespace",
        "map_uuid",
        "event_type",
        "user_uuid",
        "user_udid",
        "user_name",
        "user_type",
        "action",
        "type",
        mode="before",
    )
    @classmethod
    def _coerce_strings(cls, value: Any) -> str | None:
        return cls._str(value)

    @field_validator("zone", mode="before")
    @classmethod
    def _coerce_zone(cls, value: Any) -> dict[str, Any] | str | None:
        if isinstance(value, dict):
            return value
        return cls._str(value)

    @field_validator("data", mode="before")
    @classmethod
    def _coerce_data(cls, value: Any) -> dict[str, Any] | None:
        return cls._dict(value)

    @property
    def is_entry(self) -> bool:
        return self.event_type in {"ENTER_ZONE", "ENTER", "ZONE_ENTRY"}

    @property
    def zone_name(self) -> str | None:
        if isinstance(self.zone, str):
            return self.zone
        if isinstance(self.zone, dict):
            properties = self.zone.get("properties")
            if isinstance(properties, dict):
                return self._str(properties.get("name"))
        return None


class ZoneStatsMessage(RtlsBaseModel):
    """Zone occupancy counters."""

    kind: ClassVar[MessageKind] = MessageKind.ZONE_STATS_EVENTS

    app_namespace: str | None = None
    event_type: str | None = None
    zone_id: int | None = None
    zone_name: str | None = None
    total_count: int | None = None
    tag_count: int | None = None
    mobile_count: int | None = None
    avg_time_seconds: float | None = None
    timestamp: RtlsTimestamp = None
    type: str | None = None

    @field_validator("zone_id", "total_count", "tag_count", "mobile_count", mode="before")
    @classmethod
    def _coerce_ints(cls, value: Any) -> int | None:
        return cls._int(value)

    @field_validator("avg_time_seconds", mode="before")
    @classmethod
    def _coerce_avg(cls, value: Any) -> float | None:
        return cls._float(value)

    @field_validator("app_namespace", "event_type", "zone_name", "type", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> str | None:
        return cls._str(value)


class AlertMessage(RtlsBaseModel):
    """Alert / notification.

    ``params`` holds the display hints (style, title, text, duration, ...).
    """

    kind: ClassVar[MessageKind] = MessageKind.ALERTS

    app_namespace: str | None = None
    map_uuid: str | None = None
    event_type: str | None = None
    alert_type: str | None = None
    action: str | None = None
    user_uuid: str | None = None
    user_udid: str | None = None
    user_type: str | None = None
    zone: dict[str, Any] | None = None
    params: dict[str, Any] = Field(default_factory=dict)
    timestamp: RtlsTimestamp = None
    type: str | None = None

    @field_validator(
        "app_namespace",
        "map_uuid",
        "event_type",
        "alert_type",
        "action",
        "user_uuid",
        "user_udid",
        "user_type",
        "type",
        mode="before",
    )
    @classmethod
    def _coerce_strings(cls, value: Any) -> str | None:
        return cls._str(value)

    @field_validator("zone", mode="before")
    @classmethod
    def _coerce_zone(cls, value: Any) -> dict[str, Any] | None:
        return cls._dict(value)

    @field_validator("params", mode="before")
    @classmethod
    def _coerce_params(cls, value: Any) -> dict[str, Any]:
        return cls._dict(value) or {}

    @property
    def title(self) -> str | None:
        return self._str(self.params.get("title"))

    @property
    def text(self) -> str | None:
        return self._str(self.params.get("text"))


class AssetMessage(RtlsBaseModel):
    """Asset created, updated or deleted."""

    kind: ClassVar[MessageKind] = MessageKind.ASSETS

    action: str | None = None
    app_namespace: str | None = None
    mac_address: str | None = None
    asset_id: str | None = None
    event_type: str | None = None
    type: str | None = None
    data: dict[str, Any] | None = None

    @field_validator(
        "action",
        "app_namespace",
        "mac_address",
        "asset_id",
        "event_type",
        "type",
        mode="before",
    )
    @classmethod
    def _coerce_strings(cls, value: Any) -> str | None:
        return cls._str(value)

    @field_validator("data", mode="before")
    @classmethod
    def _coerce_data(cls, value: Any) -> dict[str, Any] | None:
        return cls._dict(value)


class SubscriptionConfirmation(RtlsBaseModel):
    """Server acknowledgment of a SUBSCRIBE frame.

    Two shapes are observed: ``{"type": "SUBSCRIPTION_CONFIRMATION",
    "types": [...]}`` and the minimal ``{"action": "subscribeEvent"}``.
    ``types`` is ``None`` for the latter.
    """

    kind: ClassVar[MessageKind] = MessageKind.CONFIRMATION

    type: str | None = None
    action: str | None = None
    app_namespace: str | None = None
    types: list[SubscriptionType] | None = None

    @field_validator("types", mode="before")
    @classmethod
    def _coerce_types(cls, value: Any) -> list[SubscriptionType] | None:
        if not isinstance(value, list):
            return None
        known = {member.value for member in SubscriptionType}
        return [SubscriptionType(item) for item in value if isinstance(item, str) and item in known]

    @field_validator("type", "action", "app_namespace", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> str | None:
        return cls._str(value)


class UnknownMessage(RtlsBaseModel):
    """Payload that matched no known shape.

    ``raw`` holds the decoded payload; non-object payloads are wrapped as
    ``{"value": payload}``.
    """

    kind: ClassVar[MessageKind] = MessageKind.UNKNOWN

    @classmethod
    def from_payload(cls, payload: Any) -> UnknownMessage:
        if isinstance(payload, dict):
            return cls.model_validate(payload)
        return cls.model_validate({"value": payload})


InboundMessage = (
    PositionMessage
    | ZoneEntryExitMessage
    | ZoneStatsMessage
    | AlertMessage
    | AssetMessage
    | SubscriptionConfirmation
    | UnknownMessage
)
