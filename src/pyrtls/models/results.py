"""Operation results.

Publish operations never raise for bad input or transport trouble; they
report it through these models instead.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from pyrtls.models.messages import SubscriptionType


class PublishResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    error: str | None = None


class BatchPublishResult(BaseModel):
    """Aggregate of one ``send_batch`` call.

    ``errors`` lists one ``"<mac>: <reason>"`` entry per failed input, in
    input order, or is ``None`` when everything was sent.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    sent: int
    failed: int
    errors: list[str] | None = None


class SubscriptionResult(BaseModel):
    """Confirmed subscription.

    ``types`` lists the topics the server confirmed, or the requested topics
    when the confirmation did not enumerate them.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    types: tuple[SubscriptionType, ...]
