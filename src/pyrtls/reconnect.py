"""Reconnection backoff policy."""

from __future__ import annotations

import dataclasses

from pyrtls._constants import (
    DEFAULT_MAX_RECONNECT_DELAY,
    DEFAULT_RECONNECT_INTERVAL,
    DEFAULT_RECONNECT_MULTIPLIER,
)


@dataclasses.dataclass(frozen=True)
class ReconnectionStrategy:
    """Exponential backoff parameters.

    Parameters
    ----------
    base_interval : float
        Delay in seconds before the first reconnection attempt.
    max_delay : float
        Upper bound in seconds for any single delay.
    multiplier : float
        Growth factor applied per attempt.
    max_attempts : int or None
        Number of attempts before giving up. ``None`` retries forever.
    """

    base_interval: float = DEFAULT_RECONNECT_INTERVAL
    max_delay: float = DEFAULT_MAX_RECONNECT_DELAY
    multiplier: float = DEFAULT_RECONNECT_MULTIPLIER
    max_attempts: int | None = None

    def __post_init__(self) -> None:
        if self.base_interval < 0:
            raise ValueError(f"base_interval must be >= 0, got {self.base_interval}")
        if self.max_delay < 0:
            raise ValueError(f"max_delay must be >= 0, got {self.max_delay}")
        if self.multiplier < 1:
            raise ValueError(f"multiplier must be >= 1, got {self.multiplier}")
        if self.max_attempts is not None and self.max_attempts < 0:
            raise ValueError(f"max_attempts must be >= 0, got {self.max_attempts}")

    def is_exhausted(self, attempts: int) -> bool:
        """Whether *attempts* already used up the allowed retries."""
        return self.max_attempts is not None and attempts >= self.max_attempts


DEFAULT_RECONNECTION_STRATEGY = ReconnectionStrategy()


def calculate_reconnect_delay(
    attempt: int,
    strategy: ReconnectionStrategy = DEFAULT_RECONNECTION_STRATEGY,
) -> float:
    """Delay before reconnection attempt *attempt* (zero-based).

    ``min(base_interval * multiplier ** attempt, max_delay)``. Huge attempt
    numbers saturate at ``max_delay`` instead of overflowing.
    """
    if attempt < 0:
        raise ValueError(f"attempt must be >= 0, got {attempt}")
    try:
        delay = strategy.base_interval * strategy.multiplier**attempt
    except OverflowError:
        return strategy.max_delay
    return min(delay, strategy.max_delay)
