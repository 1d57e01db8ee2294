"""Violation records kept by the state store."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from ndzwatch.ingestion.normalize import clamp_distance
from ndzwatch.models._base import OptionalFeedTimestamp
from ndzwatch.models.drone import DroneSnapshot
from ndzwatch.models.pilot import PilotInfo

_VIOLATION_CONFIG = ConfigDict(
    frozen=True,
    extra="forbid",
    populate_by_name=True,
    alias_generator=to_camel,
)


class Observation(BaseModel):
    """One drone seen inside the zone during one poll cycle.

    ``timestamp`` is the feed's snapshot timestamp; it is ``None`` only
    when the value could not be parsed, in which case the resulting
    violation is evicted on the next staleness check.
    """

    model_config = _VIOLATION_CONFIG

    serial_number: str
    min_distance: float
    timestamp: OptionalFeedTimestamp = None
    pilot: PilotInfo | None = None
    drone: DroneSnapshot | None = None

    @field_validator("min_distance", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        return clamp_distance(value)

    def to_violation(self) -> TrackedViolation:
        """Build the record inserted for a drone not tracked yet."""
        return TrackedViolation(
            serial_number=self.serial_number,
            min_distance=self.min_distance,
            last_distance=self.min_distance,
            first_seen=self.timestamp,
            last_seen=self.timestamp,
            pilot=self.pilot if self.pilot is not None and not self.pilot.is_empty else None,
            drone=self.drone,
        )


class TrackedViolation(BaseModel):
    """Aggregated record of a drone that violated the zone recently.

    Parameters
    ----------
    serial_number : str
        Drone identity, the state key.
    min_distance : float
        Closest distance to the zone center observed while tracked.
        Never increases.
    last_distance : float
        Distance in the most recent observation.
    first_seen : datetime or None
        Snapshot timestamp of the observation that created the record.
    last_seen : datetime or None
        Snapshot timestamp of the latest observation.
    pilot : PilotInfo or None
        Pilot details from the most recent successful lookup.
    drone : DroneSnapshot or None
        Drone attributes from the most recent observation.
    """

    model_config = _VIOLATION_CONFIG

    serial_number: str
    min_distance: float
    last_distance: float
    first_seen: OptionalFeedTimestamp = None
    last_seen: OptionalFeedTimestamp = None
    pilot: PilotInfo | None = None
    drone: DroneSnapshot | None = None

    @field_validator("min_distance", "last_distance", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> float:
        return clamp_distance(value)

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys, as sent to subscribers."""
        return self.model_dump(mode="json", by_alias=True)


def latest(a: datetime | None, b: datetime | None) -> datetime | None:
    """The later of two optional timestamps."""
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)
