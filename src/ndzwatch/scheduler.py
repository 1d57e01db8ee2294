"""Fixed-cadence poll loop."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from ndzwatch.state.events import CycleResult

_logger = logging.getLogger(__name__)

CycleRunner = Callable[[], Awaitable[CycleResult]]
ResultCallback = Callable[[CycleResult], None]


class PollScheduler:
    """Run a poll cycle every *interval* seconds until stopped.

    Cycles never overlap. Ticks are spaced from the start of the previous
    cycle, so a cycle that overruns the interval is followed immediately
    by the next one rather than drifting the cadence further.

    No cycle outcome stops the loop: failed results are logged and handed
    to *on_result* like successful ones, and even an exception escaping
    the runner or the callback is logged and swallowed. Only
    cancellation ends :meth:`run`.
    """

    def __init__(
        self,
        run_cycle: CycleRunner,
        *,
        interval: float,
        on_result: ResultCallback | None = None,
        max_cycles: int | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self._run_cycle = run_cycle
        self._interval = interval
        self._on_result = on_result
        self._max_cycles = max_cycles
        self._task: asyncio.Task[None] | None = None
        self.cycles = 0
        self.failures = 0

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _tick(self) -> None:
        try:
            result = await self._run_cycle()
        except asyncio.CancelledError:
            raise
        except Exception:
            self.failures += 1
            _logger.exception("Poll cycle raised unexpectedly")
            return

        if not result.ok:
            self.failures += 1
            _logger.warning(
                "Poll cycle failed during %s: %s",
                result.failed_phase,
                result.error,
            )

        if self._on_result is not None:
            try:
                self._on_result(result)
            except Exception:
                _logger.debug("on_result callback failed", exc_info=True)

    async def run(self) -> None:
        """Run cycles until cancelled (or until ``max_cycles`` have run)."""
        loop = asyncio.get_running_loop()
        next_tick = loop.time()
        while self._max_cycles is None or self.cycles < self._max_cycles:
            await self._tick()
            self.cycles += 1
            if self._max_cycles is not None and self.cycles >= self._max_cycles:
                break
            next_tick += self._interval
            delay = next_tick - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            else:
                # Overran: restart the cadence from now.
                next_tick = loop.time()

    def start(self) -> asyncio.Task[None]:
        """Run the loop as a background task."""
        if self.is_running:
            assert self._task is not None  # noqa: S101
            return self._task
        self._task = asyncio.create_task(self.run(), name="ndzwatch-poll")
        return self._task

    async def stop(self) -> None:
        """Cancel the background loop and wait for it to finish."""
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
