"""ndzwatch - Async monitor for drones violating a no-drone zone."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("ndzwatch")
except PackageNotFoundError:
    __version__ = "0+local"
from ndzwatch.broadcast import Broadcaster, FanOutBroadcaster, MqttBroadcaster, StateHub, Subscription
from ndzwatch.config import NdzConfig
from ndzwatch.exceptions import (
    NdzConfigError,
    NdzError,
    NdzFeedError,
    NdzLookupError,
    NdzPublishError,
    NdzSubscriptionClosed,
    NdzTransportError,
)
from ndzwatch.geometry import NdzZone, distance_from_center, is_violating
from ndzwatch.models import (
    DeviceInformation,
    DroneSnapshot,
    FeedReport,
    Observation,
    PilotInfo,
    TrackedViolation,
)
from ndzwatch.monitor import NdzMonitor
from ndzwatch.scheduler import PollScheduler
from ndzwatch.state.events import CyclePhase, CycleResult
from ndzwatch.state.policy import is_stale, merge_observation
from ndzwatch.state.store import ViolationStore, evict_stale, merge_batch
from ndzwatch.tracker import ViolationTracker

__all__ = [
    "__version__",
    "Broadcaster",
    "CyclePhase",
    "CycleResult",
    "DeviceInformation",
    "DroneSnapshot",
    "FanOutBroadcaster",
    "FeedReport",
    "MqttBroadcaster",
    "NdzConfig",
    "NdzConfigError",
    "NdzError",
    "NdzFeedError",
    "NdzLookupError",
    "NdzMonitor",
    "NdzPublishError",
    "NdzSubscriptionClosed",
    "NdzTransportError",
    "NdzZone",
    "Observation",
    "PilotInfo",
    "PollScheduler",
    "StateHub",
    "Subscription",
    "TrackedViolation",
    "ViolationStore",
    "ViolationTracker",
    "distance_from_center",
    "evict_stale",
    "is_stale",
    "is_violating",
    "merge_batch",
    "merge_observation",
]
