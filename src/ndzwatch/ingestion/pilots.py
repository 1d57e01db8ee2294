"""Pilot lookup enrichment.

A failed lookup never fails the poll cycle: the drone is still tracked,
just without pilot details, and the next cycle tries again.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from pydantic import ValidationError

from ndzwatch._redact import redact_for_log
from ndzwatch._transport import Transport, get_json
from ndzwatch.config import NdzConfig
from ndzwatch.exceptions import NdzLookupError, NdzTransportError
from ndzwatch.models.pilot import PilotInfo

_logger = logging.getLogger(__name__)


def pilot_url(config: NdzConfig, serial_number: str) -> str:
    return f"{config.pilots_url.rstrip('/')}/{serial_number}"


async def lookup_pilot(transport: Transport, config: NdzConfig, serial_number: str) -> PilotInfo:
    """Fetch the pilot registered for *serial_number*.

    Raises
    ------
    NdzLookupError
        On any transport failure, non-200 status or unusable payload.
    """
    url = pilot_url(config, serial_number)
    try:
        payload = await get_json(transport, url, timeout=config.lookup_timeout)
    except NdzTransportError as exc:
        raise NdzLookupError(str(exc), status_code=exc.status_code, endpoint=exc.endpoint) from exc

    if not isinstance(payload, dict):
        raise NdzLookupError(f"Pilot payload for {serial_number} is not an object", endpoint=url)
    try:
        return PilotInfo.model_validate(payload)
    except ValidationError as exc:
        raise NdzLookupError(f"Pilot payload for {serial_number} failed validation", endpoint=url) from exc


async def fetch_pilot(transport: Transport, config: NdzConfig, serial_number: str) -> PilotInfo | None:
    """Like :func:`lookup_pilot` but returns ``None`` instead of raising."""
    try:
        pilot = await lookup_pilot(transport, config, serial_number)
    except NdzLookupError as exc:
        _logger.debug("Pilot lookup failed for %s: %s", serial_number, exc)
        return None
    if pilot.is_empty:
        return None
    _logger.debug("Pilot for %s: %s", serial_number, redact_for_log(pilot))
    return pilot


@dataclass(slots=True)
class _CacheEntry:
    pilot: PilotInfo
    stored_at: float


class PilotCache:
    """Time-bounded cache of successful pilot lookups.

    The pilot registered for a drone does not change, so a drone that
    keeps violating is looked up once per *ttl* rather than every cycle.
    Failed lookups are never cached.
    """

    def __init__(self, ttl: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl = ttl
        self._clock = clock
        self._entries: dict[str, _CacheEntry] = {}

    @property
    def enabled(self) -> bool:
        return self._ttl > 0

    def get(self, serial_number: str) -> PilotInfo | None:
        if not self.enabled:
            return None
        entry = self._entries.get(serial_number)
        if entry is None:
            return None
        if self._clock() - entry.stored_at > self._ttl:
            del self._entries[serial_number]
            return None
        return entry.pilot

    def put(self, serial_number: str, pilot: PilotInfo) -> None:
        if self.enabled:
            self._entries[serial_number] = _CacheEntry(pilot=pilot, stored_at=self._clock())

    def prune(self) -> None:
        now = self._clock()
        expired = [serial for serial, entry in self._entries.items() if now - entry.stored_at > self._ttl]
        for serial in expired:
            del self._entries[serial]

    def __len__(self) -> int:
        return len(self._entries)


async def enrich_serials(
    transport: Transport,
    config: NdzConfig,
    serial_numbers: Iterable[str],
    *,
    cache: PilotCache | None = None,
) -> dict[str, PilotInfo | None]:
    """Look up pilots for several drones concurrently.

    Every serial appears in the result; failed lookups map to ``None``.
    At most ``config.max_concurrent_lookups`` requests are in flight.
    """
    serials = list(dict.fromkeys(serial_numbers))
    results: dict[str, PilotInfo | None] = {}
    pending: list[str] = []
    for serial in serials:
        cached = cache.get(serial) if cache is not None else None
        if cached is not None:
            results[serial] = cached
        else:
            pending.append(serial)

    semaphore = asyncio.Semaphore(config.max_concurrent_lookups)

    async def _one(serial: str) -> PilotInfo | None:
        async with semaphore:
            return await fetch_pilot(transport, config, serial)

    fetched = await asyncio.gather(*(_one(serial) for serial in pending), return_exceptions=True)
    for serial, outcome in zip(pending, fetched, strict=True):
        if isinstance(outcome, BaseException):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            # fetch_pilot only raises on programming errors; keep tracking regardless.
            _logger.warning("Unexpected pilot lookup error for %s", serial, exc_info=outcome)
            results[serial] = None
            continue
        results[serial] = outcome
        if outcome is not None and cache is not None:
            cache.put(serial, outcome)

    if cache is not None:
        cache.prune()
    return {serial: results[serial] for serial in serials}
