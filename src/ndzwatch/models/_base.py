"""Base model and timestamp helpers for feed payloads.

Every feed-facing model inherits from :class:`NdzBaseModel` which
provides:

* ``alias_generator=to_camel`` so the camelCase element/key names of the
  drone report and pilot API map to snake_case fields.
* A ``model_validator(mode="before")`` that drops empty values
  (``""``, whitespace, NaN) so the field default is used.
* A ``raw`` dict that captures the original payload.
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_timestamp(value: Any) -> datetime | None:
    """Coerce an ISO-8601 string or epoch number to an aware UTC datetime.

    Returns ``None`` for anything that cannot be interpreted; callers
    decide whether that is an error. Naive datetimes are assumed to be UTC.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        ts = float(value)
        if ts >= _MS_THRESHOLD:
            ts /= 1000.0
        try:
            return datetime.fromtimestamp(ts, tz=UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = f"{text[:-1]}+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    return None


def _require_timestamp(value: Any) -> datetime:
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValueError(f"not a timestamp: {value!r}")
    return parsed


FeedTimestamp = Annotated[datetime, BeforeValidator(_require_timestamp)]
"""Annotated type accepting ISO strings or epoch numbers, normalised to UTC."""

OptionalFeedTimestamp = Annotated[datetime | None, BeforeValidator(parse_timestamp)]
"""Like :data:`FeedTimestamp` but unparsable values become ``None``."""


class NdzBaseModel(BaseModel):
    """Base for feed and pilot API models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)
    """Original payload dict."""

    @model_validator(mode="before")
    @classmethod
    def _drop_empty_values(cls, values: Any) -> Any:
        """Drop empty values and stash the raw payload."""
        if not isinstance(values, dict):
            return values

        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value

        # Keep an explicitly passed raw= (kwargs construction) untouched.
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned
