"""Base model for inbound RTLS payloads.

Server payloads carry no reliable schema: fields appear, disappear and
change type between message producers. Every inbound model inherits from
:class:`RtlsBaseModel` which provides:

* ``extra="ignore"`` so unknown fields never fail validation.
* A ``model_validator(mode="before")`` that stashes the original payload in
  ``raw`` so nothing the server sent is lost.
* Lenient coercion helpers used by subclasses' field validators.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from pyrtls._normalize import is_number, safe_dict, safe_float, safe_int, safe_str


def _coerce_timestamp(value: Any) -> str | int | float | None:
    if isinstance(value, str) or is_number(value):
        return value
    return None


RtlsTimestamp = Annotated[str | int | float | None, BeforeValidator(_coerce_timestamp)]
"""Server timestamps arrive as ISO strings or epoch milliseconds; anything else is dropped."""


class RtlsBaseModel(BaseModel):
    """Base for inbound message models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original payload as received."""

    @model_validator(mode="before")
    @classmethod
    def _stash_raw(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        # A payload key named "raw" is kept inside the stash, never as the field.
        stashed = dict(values)
        stashed["raw"] = values
        return stashed

    # Coercion helpers shared by subclass validators.

    @staticmethod
    def _float(value: Any) -> float | None:
        return safe_float(value)

    @staticmethod
    def _int(value: Any) -> int | None:
        return safe_int(value)

    @staticmethod
    def _str(value: Any) -> str | None:
        return safe_str(value)

    @staticmethod
    def _dict(value: Any) -> dict[str, Any] | None:
        return safe_dict(value)
