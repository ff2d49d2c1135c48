"""Normalization helpers.

Centralizes defensive parsing of loosely typed server payloads.
"""

from __future__ import annotations

import math
from typing import Any


def is_number(value: Any) -> bool:
    """JSON number check; booleans are not numbers."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None or math.isinf(parsed):
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value)
    return text if text else None


def safe_dict(value: Any) -> dict[str, Any] | None:
    return value if isinstance(value, dict) else None
