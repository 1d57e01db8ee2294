"""Poll cycle orchestration.

One cycle: fetch the drone report, keep the drones inside the zone,
look up their pilots, merge the observations into the store, evict
stale entries and publish the resulting snapshot.

Failures before the merge abort the cycle with the state untouched and
nothing published. The outcome of every cycle, failed or not, is
returned as a :class:`~ndzwatch.state.events.CycleResult`.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime

from ndzwatch._transport import Transport
from ndzwatch.broadcast.base import Broadcaster
from ndzwatch.config import NdzConfig
from ndzwatch.geometry import NdzZone
from ndzwatch.ingestion.feed import fetch_report
from ndzwatch.ingestion.pilots import PilotCache, enrich_serials
from ndzwatch.models.drone import DroneSnapshot
from ndzwatch.models.violation import Observation
from ndzwatch.state.events import CyclePhase, CycleResult
from ndzwatch.state.store import StateSnapshot, ViolationStore

_logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ViolationTracker:
    """Owns the violation store and runs poll cycles against it.

    Cycles are serialized: calling :meth:`run_cycle` while another cycle
    is in flight waits for it to finish first.
    """

    def __init__(
        self,
        config: NdzConfig,
        transport: Transport,
        *,
        broadcaster: Broadcaster | None = None,
        store: ViolationStore | None = None,
        pilot_cache: PilotCache | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._config = config
        self._transport = transport
        self._broadcaster = broadcaster
        self._store = store if store is not None else ViolationStore(window=config.stale_window)
        self._pilot_cache = pilot_cache if pilot_cache is not None else PilotCache(config.pilot_cache_ttl)
        self._clock = clock
        self._zone = NdzZone(center=(config.center_x, config.center_y), radius=config.radius)
        self._phase = CyclePhase.IDLE
        self._cycle_lock = asyncio.Lock()
        self._last_result: CycleResult | None = None

    @property
    def zone(self) -> NdzZone:
        return self._zone

    @property
    def store(self) -> ViolationStore:
        return self._store

    @property
    def phase(self) -> CyclePhase:
        return self._phase

    @property
    def state(self) -> StateSnapshot:
        """Read-only snapshot of the tracked violations."""
        return self._store.snapshot()

    @property
    def last_result(self) -> CycleResult | None:
        return self._last_result

    def _violators(self, drones: tuple[DroneSnapshot, ...]) -> dict[str, DroneSnapshot]:
        # Serials are unique per capture; if the feed repeats one, only its
        # last occurrence is classified.
        latest = {drone.serial_number: drone for drone in drones}
        return {serial: drone for serial, drone in latest.items() if self._zone.contains(drone)}

    async def run_cycle(self) -> CycleResult:
        """Run one poll cycle and report what happened.

        Only cancellation propagates; every other failure is returned in
        the result.
        """
        async with self._cycle_lock:
            result = await self._run_cycle_locked()
        self._last_result = result
        return result

    async def _run_cycle_locked(self) -> CycleResult:
        # Read once: eviction uses the cycle start, fixed before anything is written.
        started_at = self._clock()
        started = time.monotonic()
        report = None
        violators: dict[str, DroneSnapshot] = {}
        lookups_failed = 0

        try:
            self._phase = CyclePhase.FETCHING
            report = await fetch_report(self._transport, self._config)

            self._phase = CyclePhase.FILTERING
            violators = self._violators(report.drones)

            self._phase = CyclePhase.ENRICHING
            pilots = await enrich_serials(
                self._transport,
                self._config,
                violators,
                cache=self._pilot_cache,
            )
            lookups_failed = sum(1 for pilot in pilots.values() if pilot is None)
            batch = [
                Observation(
                    serial_number=serial,
                    min_distance=self._zone.distance(drone),
                    timestamp=report.snapshot_timestamp,
                    pilot=pilots.get(serial),
                    drone=drone,
                )
                for serial, drone in violators.items()
            ]

            self._phase = CyclePhase.MERGING
            merged = await self._store.merge(batch)

            self._phase = CyclePhase.EVICTING
            evicted = await self._store.evict(started_at)
        except asyncio.CancelledError:
            self._phase = CyclePhase.IDLE
            raise
        except Exception as exc:
            failed_phase = self._phase
            self._phase = CyclePhase.IDLE
            _logger.debug("Poll cycle aborted during %s", failed_phase, exc_info=True)
            return CycleResult(
                ok=False,
                started_at=started_at,
                duration=time.monotonic() - started,
                failed_phase=failed_phase,
                error=exc,
                snapshot_timestamp=report.snapshot_timestamp if report is not None else None,
                observed=len(report.drones) if report is not None else 0,
                violating=len(violators),
                tracked=len(self._store),
            )

        self._phase = CyclePhase.PUBLISHING
        snapshot = self._store.snapshot()
        published = await self._publish(snapshot)
        self._phase = CyclePhase.IDLE

        if merged.inserted or evicted:
            _logger.info(
                "Tracking %d violating drone(s): %d new, %d evicted",
                len(snapshot),
                len(merged.inserted),
                len(evicted),
            )

        return CycleResult(
            ok=True,
            started_at=started_at,
            duration=time.monotonic() - started,
            snapshot_timestamp=report.snapshot_timestamp,
            observed=len(report.drones),
            violating=len(violators),
            lookups_failed=lookups_failed,
            inserted=merged.inserted,
            evicted=evicted,
            tracked=len(snapshot),
            published=published,
            snapshot=snapshot,
        )

    async def _publish(self, snapshot: StateSnapshot) -> bool:
        if self._broadcaster is None:
            return False
        try:
            await self._broadcaster.publish(snapshot)
        except Exception as exc:
            # The merge already happened; a delivery problem does not undo it.
            _logger.warning("Publishing snapshot failed: %s", exc)
            _logger.debug("Publish failure details", exc_info=True)
            return False
        return True
