"""In-memory violation store.

This is the only component allowed to change the tracked violations.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from types import MappingProxyType

from ndzwatch.models.violation import Observation, TrackedViolation
from ndzwatch.state.policy import DEFAULT_STALE_WINDOW, is_stale, merge_observation

ViolationState = dict[str, TrackedViolation]
StateSnapshot = Mapping[str, TrackedViolation]


def merge_batch(state: Mapping[str, TrackedViolation], batch: Iterable[Observation]) -> ViolationState:
    """Return a new state with *batch* folded into *state*.

    Neither argument is modified. When the batch holds the same serial
    more than once the observations are applied in order.
    """
    merged: ViolationState = dict(state)
    for observation in batch:
        existing = merged.get(observation.serial_number)
        if existing is None:
            merged[observation.serial_number] = observation.to_violation()
        else:
            merged[observation.serial_number] = merge_observation(existing, observation)
    return merged


def evict_stale(
    state: Mapping[str, TrackedViolation],
    now: datetime,
    window: timedelta = DEFAULT_STALE_WINDOW,
) -> ViolationState:
    """Return a new state without entries last seen more than *window* ago."""
    return {serial: entry for serial, entry in state.items() if not is_stale(entry.last_seen, now, window)}


@dataclass(frozen=True, slots=True)
class MergeResult:
    """Which serials a merge inserted and which it updated."""

    inserted: tuple[str, ...] = ()
    updated: tuple[str, ...] = ()


class ViolationStore:
    """Owner of the tracked violation state.

    Every mutation replaces the internal dict wholesale under an
    :class:`asyncio.Lock`, so readers holding a snapshot never see a
    half-applied merge and a failing merge leaves the previous state in
    place.
    """

    def __init__(self, *, window: timedelta = DEFAULT_STALE_WINDOW) -> None:
        self._window = window
        self._state: ViolationState = {}
        self._lock = asyncio.Lock()

    @property
    def window(self) -> timedelta:
        return self._window

    def __len__(self) -> int:
        return len(self._state)

    def __contains__(self, serial: object) -> bool:
        return serial in self._state

    def get(self, serial: str) -> TrackedViolation | None:
        return self._state.get(serial)

    def snapshot(self) -> StateSnapshot:
        """Read-only view of the current state.

        The view wraps a private copy, so later merges do not show through.
        """
        return MappingProxyType(dict(self._state))

    async def merge(self, batch: Iterable[Observation]) -> MergeResult:
        """Fold *batch* into the state. The only write path for observations."""
        observations = list(batch)
        async with self._lock:
            before = self._state
            self._state = merge_batch(before, observations)
            seen = dict.fromkeys(observation.serial_number for observation in observations)
            return MergeResult(
                inserted=tuple(serial for serial in seen if serial not in before),
                updated=tuple(serial for serial in seen if serial in before),
            )

    async def evict(self, now: datetime) -> tuple[str, ...]:
        """Drop entries that are stale at *now*."""
        async with self._lock:
            pruned = evict_stale(self._state, now, self._window)
            evicted = tuple(sorted(serial for serial in self._state if serial not in pruned))
            self._state = pruned
            return evicted

    def restore(self, state: Mapping[str, TrackedViolation]) -> None:
        """Replace the state wholesale, e.g. to seed tests or a warm start."""
        self._state = dict(state)

    async def apply(self, batch: Iterable[Observation], now: datetime) -> tuple[MergeResult, tuple[str, ...]]:
        """Merge *batch*, then evict entries stale at *now*."""
        merged = await self.merge(batch)
        evicted = await self.evict(now)
        return merged, evicted
