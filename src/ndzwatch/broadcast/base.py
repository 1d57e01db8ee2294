"""Broadcaster interface and snapshot serialization."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from ndzwatch.exceptions import NdzPublishError
from ndzwatch.state.store import StateSnapshot

_logger = logging.getLogger(__name__)


class Broadcaster(Protocol):
    """Receives one full state snapshot per successful poll cycle.

    Implementations must not block on slow listeners; the call happens on
    the tracker's timer.
    """

    async def publish(self, snapshot: StateSnapshot) -> None:
        ...


def snapshot_to_payload(snapshot: StateSnapshot) -> dict[str, dict[str, Any]]:
    """Serialize a snapshot as ``{serial: {minDistance, lastSeen, pilot, ...}}``."""
    return {serial: violation.to_payload() for serial, violation in sorted(snapshot.items())}


class FanOutBroadcaster:
    """Publish every snapshot to several broadcasters.

    Each target is isolated: one failing does not prevent delivery to the
    others. Partial failures are logged; :class:`NdzPublishError` is raised
    only when no target received the snapshot.
    """

    def __init__(self, targets: Sequence[Broadcaster]) -> None:
        self._targets = list(targets)

    def add(self, target: Broadcaster) -> None:
        self._targets.append(target)

    async def publish(self, snapshot: StateSnapshot) -> None:
        failures: list[str] = []
        for target in self._targets:
            try:
                await target.publish(snapshot)
            except Exception as exc:
                _logger.debug("Broadcaster %r failed", target, exc_info=True)
                failures.append(f"{type(target).__name__}: {exc}")
        if not failures:
            return
        summary = "; ".join(failures)
        if len(failures) == len(self._targets):
            raise NdzPublishError(summary)
        _logger.warning("Snapshot not delivered to every broadcaster: %s", summary)
