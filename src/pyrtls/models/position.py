"""Input model for publishing positions."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class PositionInput(BaseModel):
    """Position to publish for one tag.

    Parameters
    ----------
    mac_address : str
        Tag MAC in any accepted form (``AA:BB:..``, ``aa-bb-..``, bare hex).
        Validated at send time.
    latitude : float
        Latitude in degrees.
    longitude : float
        Longitude in degrees.
    name : str or None
        Display name. Defaults to *mac_address* on the wire.
    color : str or None
        Hex display color (e.g. ``"#FF0000"``).
    model : str or None
        Tag model name.
    data : dict or None
        Free-form payload forwarded as-is.
    app_namespace : str or None
        Overrides the configured namespace for this position only.
    map_uuid : str or None
        Overrides the configured map for this position only.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    mac_address: str = Field(validation_alias=AliasChoices("mac_address", "macAddress", "mac"))
    latitude: float = Field(validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(validation_alias=AliasChoices("longitude", "lon", "lng"))
    name: str | None = None
    color: str | None = None
    model: str | None = None
    data: dict[str, Any] | None = None
    app_namespace: str | None = Field(
        default=None,
        validation_alias=AliasChoices("app_namespace", "appNamespace"),
    )
    map_uuid: str | None = Field(default=None, validation_alias=AliasChoices("map_uuid", "mapUuid"))
