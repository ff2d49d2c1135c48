"""MAC address validation and canonicalization.

Tags are identified by their MAC address. The server expects the
canonical form: 12 lowercase hex digits, no separators.
"""

from __future__ import annotations

import re
from typing import Any

_SEPARATORS = re.compile(r"[:\-.]")
_CANONICAL = re.compile(r"[0-9a-fA-F]{12}")


def normalize_mac_address(mac: Any) -> str:
    """Normalize a MAC address to lowercase without separators.

    Accepts colon, dash or dot separated forms as well as bare hex, in any
    case::

        'AA:BB:CC:DD:EE:FF' -> 'aabbccddeeff'
        'aa-bb-cc-dd-ee-ff' -> 'aabbccddeeff'
        'aabb.ccdd.eeff'    -> 'aabbccddeeff'
        'AABBCCDDEEFF'      -> 'aabbccddeeff'

    Raises :class:`ValueError` if *mac* does not reduce to exactly 12 hex
    digits.
    """
    if not isinstance(mac, str):
        raise ValueError(f"Invalid MAC address: {mac!r}. Expected a string.")
    cleaned = _SEPARATORS.sub("", mac)
    if not _CANONICAL.fullmatch(cleaned):
        raise ValueError(f'Invalid MAC address: "{mac}". Expected 12 hex characters.')
    return cleaned.lower()


def is_valid_mac_address(mac: Any) -> bool:
    """Return ``True`` if *mac* is a MAC address in any accepted form."""
    try:
        normalize_mac_address(mac)
    except ValueError:
        return False
    return True
