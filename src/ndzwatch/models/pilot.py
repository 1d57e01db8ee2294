"""Pilot contact information model."""

from __future__ import annotations

from typing import Any

from pydantic import field_validator

from ndzwatch.ingestion.normalize import safe_str
from ndzwatch.models._base import NdzBaseModel, OptionalFeedTimestamp


class PilotInfo(NdzBaseModel):
    """Contact details of the pilot registered for a drone.

    All fields are optional: the pilot API occasionally omits them, and a
    partially filled record is still worth showing.
    """

    pilot_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone_number: str | None = None
    email: str | None = None
    created_dt: OptionalFeedTimestamp = None

    @field_validator("pilot_id", "first_name", "last_name", "phone_number", "email", mode="before")
    @classmethod
    def _coerce_strings(cls, value: Any) -> str | None:
        return safe_str(value)

    @property
    def is_empty(self) -> bool:
        """Whether no field carries a value."""
        return all(getattr(self, name) is None for name in type(self).model_fields if name != "raw")

    @property
    def full_name(self) -> str | None:
        parts = [part for part in (self.first_name, self.last_name) if part]
        return " ".join(parts) if parts else None
