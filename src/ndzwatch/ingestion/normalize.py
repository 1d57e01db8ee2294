"""Normalization helpers.

Lenient parsing of feed values.
"""

from __future__ import annotations

import math
from typing import Any


def safe_float(value: Any) -> float | None:
    """Parse *value* as a finite float, or return ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def clamp_distance(value: Any) -> float:
    """Coerce a distance to a finite, non-negative float.

    Negative values can only come from a caller bug; they are clamped to
    ``0.0`` rather than raising so a bad observation cannot abort a merge.
    Non-numeric values are rejected because no safe default exists.
    """
    parsed = safe_float(value)
    if parsed is None:
        raise ValueError(f"distance is not a finite number: {value!r}")
    return 0.0 if parsed < 0 else parsed
