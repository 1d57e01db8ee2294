"""Helpers for safe debug logging.

Pilot lookups return personal contact details. Anything that is logged
at DEBUG level goes through :func:`redact_for_log` first so names, phone
numbers and email addresses never reach log files in clear text.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

_PERSONAL_KEYS: frozenset[str] = frozenset(
    {
        "firstname",
        "lastname",
        "phonenumber",
        "email",
    }
)


def _normalize_key(key: Any) -> str:
    return str(key).replace("_", "").lower()


def mask(value: str, *, keep: int = 2) -> str:
    """Mask all but the last *keep* characters of *value*.

    Email addresses keep their domain so operators can still tell
    providers apart: ``"jane@example.com"`` -> ``"**ne@example.com"``.
    """
    local, at, domain = value.partition("@")
    if at:
        return f"{mask(local, keep=keep)}@{domain}"
    if len(value) <= keep:
        return "*" * len(value)
    return "*" * (len(value) - keep) + value[-keep:]


def redact_for_log(value: Any, *, max_string: int = 256, _depth: int = 0) -> Any:
    """Return a copy of *value* with personal fields masked."""
    if _depth > 10:
        return "<max-depth>"

    if isinstance(value, BaseModel):
        value = value.model_dump(exclude={"raw"}, by_alias=True)

    if value is None or isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, str):
        return value if len(value) <= max_string else f"{value[:max_string]}…<truncated>"

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for key, item in value.items():
            if _normalize_key(key) in _PERSONAL_KEYS and isinstance(item, str):
                redacted[str(key)] = mask(item)
            else:
                redacted[str(key)] = redact_for_log(item, max_string=max_string, _depth=_depth + 1)
        return redacted

    if isinstance(value, Sequence) and not isinstance(value, (bytes, bytearray)):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]

    return repr(value)
