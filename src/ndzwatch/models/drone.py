"""Drone report models."""

from __future__ import annotations

from typing import Any

from pydantic import Field, field_validator

from ndzwatch.ingestion.normalize import safe_float, safe_int
from ndzwatch.models._base import FeedTimestamp, NdzBaseModel, OptionalFeedTimestamp


class DroneSnapshot(NdzBaseModel):
    """One drone as reported in a single feed capture.

    Parameters
    ----------
    serial_number : str
        Drone identity; unique within a capture.
    position_x : float
        X position in native feed units.
    position_y : float
        Y position in native feed units.
    altitude : float or None
        Altitude as reported, not used for zone checks.
    """

    serial_number: str
    position_x: float
    position_y: float
    altitude: float | None = None
    model: str | None = None
    manufacturer: str | None = None
    mac: str | None = None
    ipv4: str | None = None
    ipv6: str | None = None
    firmware: str | None = None

    @field_validator("serial_number", mode="before")
    @classmethod
    def _strip_serial(cls, value: Any) -> str:
        serial = str(value).strip()
        if not serial:
            raise ValueError("serial_number must be non-empty")
        return serial

    @field_validator("position_x", "position_y", mode="before")
    @classmethod
    def _coerce_position(cls, value: Any) -> float:
        parsed = safe_float(value)
        if parsed is None:
            raise ValueError(f"position is not numeric: {value!r}")
        return parsed

    @field_validator("altitude", mode="before")
    @classmethod
    def _coerce_altitude(cls, value: Any) -> float | None:
        return safe_float(value)

    @property
    def position(self) -> tuple[float, float]:
        return (self.position_x, self.position_y)


class DeviceInformation(NdzBaseModel):
    """Metadata about the sensor producing the feed."""

    device_id: str | None = None
    listen_range: int | None = None
    device_started: OptionalFeedTimestamp = None
    uptime_seconds: int | None = None
    update_interval_ms: int | None = None

    @field_validator("listen_range", "uptime_seconds", "update_interval_ms", mode="before")
    @classmethod
    def _coerce_ints(cls, value: Any) -> int | None:
        return safe_int(value)


class FeedReport(NdzBaseModel):
    """A single poll of the drone feed."""

    snapshot_timestamp: FeedTimestamp
    drones: tuple[DroneSnapshot, ...] = Field(default_factory=tuple)
    device: DeviceInformation | None = None
