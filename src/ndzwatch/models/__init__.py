"""Data models for the drone feed, pilot API and tracked violations."""

from ndzwatch.models._base import FeedTimestamp, NdzBaseModel, OptionalFeedTimestamp, parse_timestamp
from ndzwatch.models.drone import DeviceInformation, DroneSnapshot, FeedReport
from ndzwatch.models.pilot import PilotInfo
from ndzwatch.models.violation import Observation, TrackedViolation

__all__ = [
    "DeviceInformation",
    "DroneSnapshot",
    "FeedReport",
    "FeedTimestamp",
    "NdzBaseModel",
    "Observation",
    "OptionalFeedTimestamp",
    "PilotInfo",
    "TrackedViolation",
    "parse_timestamp",
]
