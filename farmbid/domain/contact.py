"""Phone number normalisation for bidders and sellers.

Purchases and auction wins are arranged by phone, so a bid must carry a
number the seller can actually call.
"""

from __future__ import annotations

import re

_SEPARATORS = re.compile(r"[\s\-()]")
_INTERNATIONAL = re.compile(r"^\+?\d{10,15}$")
# Indian mobile: 10 digits starting 6-9, optionally prefixed with +91, 91 or 0.
_INDIAN_MOBILE = re.compile(r"^(?:\+91|91|0)?([6-9]\d{9})$")


def normalize_mobile_number(raw: str) -> str:
    """Return ``raw`` without separators, or raise ValueError if unusable."""
    if not raw or not raw.strip():
        raise ValueError("Mobile number is required")
    compact = _SEPARATORS.sub("", raw.strip())
    if _INDIAN_MOBILE.match(compact) or _INTERNATIONAL.match(compact):
        return compact
    raise ValueError("Please enter a valid phone number")


def is_valid_mobile_number(raw: str) -> bool:
    try:
        normalize_mobile_number(raw)
    except ValueError:
        return False
    return True


__all__ = ["is_valid_mobile_number", "normalize_mobile_number"]
