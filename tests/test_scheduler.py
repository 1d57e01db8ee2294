from __future__ import annotations

import asyncio
import logging

import pytest
from _fakes import T0

from ndzwatch.scheduler import PollScheduler
from ndzwatch.state.events import CyclePhase, CycleResult


def _ok() -> CycleResult:
    return CycleResult(ok=True, started_at=T0, duration=0.0)


def _failed() -> CycleResult:
    return CycleResult(
        ok=False,
        started_at=T0,
        duration=0.0,
        failed_phase=CyclePhase.FETCHING,
        error=RuntimeError("feed down"),
    )


class _Runner:
    def __init__(self, outcomes: list[object]) -> None:
        self._outcomes = outcomes
        self.calls = 0

    async def __call__(self) -> CycleResult:
        outcome = self._outcomes[min(self.calls, len(self._outcomes) - 1)]
        self.calls += 1
        if isinstance(outcome, BaseException):
            raise outcome
        assert isinstance(outcome, CycleResult)
        return outcome


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        PollScheduler(_Runner([_ok()]), interval=0)


@pytest.mark.asyncio
async def test_run_stops_after_max_cycles() -> None:
    runner = _Runner([_ok()])
    results: list[CycleResult] = []
    scheduler = PollScheduler(runner, interval=0.001, on_result=results.append, max_cycles=3)

    await asyncio.wait_for(scheduler.run(), timeout=2)

    assert runner.calls == 3
    assert scheduler.cycles == 3
    assert scheduler.failures == 0
    assert len(results) == 3


@pytest.mark.asyncio
async def test_failed_cycles_do_not_stop_the_loop(caplog: pytest.LogCaptureFixture) -> None:
    runner = _Runner([_failed(), _failed(), _ok()])
    results: list[CycleResult] = []
    scheduler = PollScheduler(runner, interval=0.001, on_result=results.append, max_cycles=3)

    with caplog.at_level(logging.WARNING, logger="ndzwatch.scheduler"):
        await asyncio.wait_for(scheduler.run(), timeout=2)

    assert [result.ok for result in results] == [False, False, True]
    assert scheduler.failures == 2
    assert "Poll cycle failed during fetching" in caplog.text


@pytest.mark.asyncio
async def test_runner_exception_is_logged_and_swallowed() -> None:
    runner = _Runner([RuntimeError("boom"), _ok()])
    results: list[CycleResult] = []
    scheduler = PollScheduler(runner, interval=0.001, on_result=results.append, max_cycles=2)

    await asyncio.wait_for(scheduler.run(), timeout=2)

    assert runner.calls == 2
    assert scheduler.failures == 1
    assert len(results) == 1


@pytest.mark.asyncio
async def test_callback_errors_are_ignored() -> None:
    def explode(_result: CycleResult) -> None:
        raise RuntimeError("listener bug")

    runner = _Runner([_ok()])
    scheduler = PollScheduler(runner, interval=0.001, on_result=explode, max_cycles=2)

    await asyncio.wait_for(scheduler.run(), timeout=2)

    assert runner.calls == 2


@pytest.mark.asyncio
async def test_start_and_stop_background_task() -> None:
    runner = _Runner([_ok()])
    scheduler = PollScheduler(runner, interval=0.01)

    task = scheduler.start()
    assert scheduler.start() is task
    assert scheduler.is_running

    for _ in range(100):
        if runner.calls >= 2:
            break
        await asyncio.sleep(0.01)

    await scheduler.stop()

    assert not scheduler.is_running
    assert task.done()
    assert runner.calls >= 2
    await scheduler.stop()


@pytest.mark.asyncio
async def test_cycles_do_not_overlap() -> None:
    active = 0
    peak = 0

    async def slow_cycle() -> CycleResult:
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.02)
        active -= 1
        return _ok()

    scheduler = PollScheduler(slow_cycle, interval=0.001, max_cycles=3)
    await asyncio.wait_for(scheduler.run(), timeout=2)

    assert peak == 1
