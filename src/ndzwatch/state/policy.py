"""Staleness and merge policy for tracked violations.

Pure functions only: the store owns the state and decides when to call
them.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from ndzwatch._constants import STALE_AFTER_SECONDS
from ndzwatch.models._base import parse_timestamp
from ndzwatch.models.violation import Observation, TrackedViolation, latest

DEFAULT_STALE_WINDOW = timedelta(seconds=STALE_AFTER_SECONDS)


def is_stale(last_seen: Any, now: datetime, window: timedelta = DEFAULT_STALE_WINDOW) -> bool:
    """Return True iff *last_seen* is more than *window* before *now*.

    An entry exactly *window* old is still fresh. *last_seen* may be a
    datetime, an ISO-8601 string or an epoch number; anything that cannot
    be interpreted counts as stale so bad data ages out instead of
    sticking around forever.
    """
    seen = parse_timestamp(last_seen)
    reference = parse_timestamp(now)
    if seen is None or reference is None:
        return True
    return reference - seen > window


def merge_observation(existing: TrackedViolation, observation: Observation) -> TrackedViolation:
    """Fold a new observation of a tracked drone into its record.

    - ``min_distance`` keeps the smaller of the two values.
    - ``last_seen`` moves to the observation timestamp, never backwards.
    - ``pilot`` is replaced only by a non-empty lookup result.
    - ``first_seen`` is kept.
    - everything else is taken from the observation.
    """
    pilot = existing.pilot
    if observation.pilot is not None and not observation.pilot.is_empty:
        pilot = observation.pilot

    return existing.model_copy(
        update={
            "min_distance": min(existing.min_distance, observation.min_distance),
            "last_distance": observation.min_distance,
            "last_seen": latest(existing.last_seen, observation.timestamp),
            "pilot": pilot,
            "drone": observation.drone if observation.drone is not None else existing.drone,
        }
    )
