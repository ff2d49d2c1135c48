"""Helpers for safe debug logging.

The handshake URL carries the api key or JWT in its query string, and
frames may echo them back. This module redacts such fields before they
reach DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from yarl import URL

_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "apikey",
        "api_key",
        "token",
        "accesstoken",
        "access_token",
        "refreshtoken",
        "authorization",
        "password",
        "cookie",
    }
)

_REDACTED = "<redacted>"


def _is_sensitive(key: Any) -> bool:
    return str(key).lower() in _SENSITIVE_VALUE_KEYS


def redact_for_log(value: Any, *, max_string: int = 512) -> Any:
    """Return a copy of a frame payload with credentials masked.

    Frames are decoded JSON (or the mapping about to be encoded), so only
    objects, arrays and strings need rewriting; other values pass through.
    Binary data is summarized by length.
    """
    if isinstance(value, Mapping):
        return {
            str(key): _REDACTED if _is_sensitive(key) else redact_for_log(item, max_string=max_string)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_for_log(item, max_string=max_string) for item in value]
    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    return value


def redact_url(url: str | URL) -> str:
    """Return *url* with credential query parameters replaced."""
    parsed = URL(url) if isinstance(url, str) else url
    if not parsed.query:
        return str(parsed)
    query = [
        (key, _REDACTED if _is_sensitive(key) else value)
        for key, value in parsed.query.items()
    ]
    return str(parsed.with_query(query))
