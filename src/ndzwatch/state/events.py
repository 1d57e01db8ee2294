"""Poll cycle phases and results.

Every poll cycle ends in a :class:`CycleResult`, the explicit channel
through which failures reach the scheduler and any observer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

from ndzwatch.state.store import StateSnapshot


class CyclePhase(StrEnum):
    IDLE = "idle"
    FETCHING = "fetching"
    FILTERING = "filtering"
    ENRICHING = "enriching"
    MERGING = "merging"
    EVICTING = "evicting"
    PUBLISHING = "publishing"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class CycleResult:
    """Outcome of one poll cycle.

    ``ok`` is False only when the cycle aborted before the state was
    written; ``failed_phase`` then names the phase that raised and
    ``error`` carries the exception. A cycle whose merge succeeded but
    whose publish failed is still ``ok`` with ``published`` False.
    """

    ok: bool
    started_at: datetime
    duration: float
    failed_phase: CyclePhase | None = None
    error: BaseException | None = None
    snapshot_timestamp: datetime | None = None
    observed: int = 0
    violating: int = 0
    lookups_failed: int = 0
    inserted: tuple[str, ...] = ()
    evicted: tuple[str, ...] = ()
    tracked: int = 0
    published: bool = False
    snapshot: StateSnapshot | None = field(default=None, repr=False)

    @property
    def phase(self) -> CyclePhase:
        """Terminal phase: ``IDLE`` after success, ``FAILED`` after an abort."""
        return CyclePhase.IDLE if self.ok else CyclePhase.FAILED
