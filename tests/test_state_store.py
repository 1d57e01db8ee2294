from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from ndzwatch.models.pilot import PilotInfo
from ndzwatch.models.violation import Observation
from ndzwatch.state.store import ViolationStore, evict_stale, merge_batch

T0 = datetime(2023, 1, 1, 12, 0, 0, tzinfo=UTC)


def _obs(serial: str, distance: float, timestamp: datetime, pilot: PilotInfo | None = None) -> Observation:
    return Observation(serial_number=serial, min_distance=distance, timestamp=timestamp, pilot=pilot)


def test_merge_inserts_new_serials() -> None:
    state = merge_batch({}, [_obs("A", 12.0, T0), _obs("B", 40.0, T0)])

    assert set(state) == {"A", "B"}
    assert state["A"].min_distance == 12.0
    assert state["A"].last_seen == T0
    assert state["A"].first_seen == T0


def test_merge_twice_is_idempotent_except_last_seen() -> None:
    batch = [_obs("A", 12.0, T0), _obs("B", 40.0, T0)]
    once = merge_batch({}, batch)
    twice = merge_batch(once, batch)

    assert twice == once

    later = [_obs("A", 12.0, T0 + timedelta(seconds=2)), _obs("B", 40.0, T0 + timedelta(seconds=2))]
    again = merge_batch(twice, later)
    for serial in ("A", "B"):
        assert again[serial].min_distance == once[serial].min_distance
        assert again[serial].first_seen == once[serial].first_seen
        assert again[serial].last_seen == T0 + timedelta(seconds=2)


@pytest.mark.parametrize(
    "distances",
    [
        [50.0, 30.0, 70.0, 45.0],
        [10.0, 20.0, 30.0],
        [99.0, 98.5, 0.5, 60.0],
    ],
)
def test_min_distance_is_minimum_of_all_observations(distances: list[float]) -> None:
    state: dict = {}
    previous = float("inf")
    for index, distance in enumerate(distances):
        state = merge_batch(state, [_obs("A", distance, T0 + timedelta(seconds=2 * index))])
        assert state["A"].min_distance <= previous
        previous = state["A"].min_distance

    assert state["A"].min_distance == min(distances)
    assert state["A"].last_distance == distances[-1]


def test_merge_does_not_mutate_arguments() -> None:
    state = merge_batch({}, [_obs("A", 50.0, T0)])
    original = dict(state)
    batch = [_obs("A", 10.0, T0 + timedelta(seconds=2)), _obs("C", 5.0, T0)]
    batch_dump = [observation.model_dump() for observation in batch]

    merged = merge_batch(state, batch)

    assert state == original
    assert state["A"].min_distance == 50.0
    assert [observation.model_dump() for observation in batch] == batch_dump
    assert merged["A"].min_distance == 10.0


def test_evict_stale_keeps_only_fresh_entries() -> None:
    state = merge_batch(
        {},
        [_obs("old", 10.0, T0), _obs("edge", 10.0, T0 + timedelta(seconds=1)), _obs("new", 10.0, T0 + timedelta(minutes=5))],
    )
    now = T0 + timedelta(minutes=10, seconds=1)

    pruned = evict_stale(state, now)

    assert set(pruned) == {"edge", "new"}
    assert set(state) == {"old", "edge", "new"}


def test_evict_drops_entries_without_timestamp() -> None:
    state = merge_batch({}, [Observation(serial_number="X", min_distance=1.0, timestamp="???")])
    assert evict_stale(state, T0) == {}


@pytest.mark.asyncio
async def test_store_merge_and_evict() -> None:
    store = ViolationStore()

    first = await store.merge([_obs("A", 50.0, T0)])
    second = await store.merge([_obs("A", 30.0, T0 + timedelta(seconds=65)), _obs("B", 20.0, T0 + timedelta(seconds=65))])

    assert first.inserted == ("A",)
    assert second.inserted == ("B",)
    assert second.updated == ("A",)
    assert store.get("A") is not None
    assert store.get("A").min_distance == 30.0  # type: ignore[union-attr]

    evicted = await store.evict(T0 + timedelta(seconds=65 + 601))
    assert evicted == ("A", "B")
    assert len(store) == 0


@pytest.mark.asyncio
async def test_store_apply_merges_then_evicts() -> None:
    store = ViolationStore(window=timedelta(seconds=30))
    store.restore({"old": _obs("old", 1.0, T0).to_violation()})

    merged, evicted = await store.apply([_obs("A", 5.0, T0 + timedelta(minutes=1))], T0 + timedelta(minutes=1))

    assert merged.inserted == ("A",)
    assert evicted == ("old",)
    assert "A" in store
    assert "old" not in store


@pytest.mark.asyncio
async def test_snapshot_is_read_only_and_detached() -> None:
    store = ViolationStore()
    await store.merge([_obs("A", 50.0, T0)])

    snapshot = store.snapshot()
    with pytest.raises(TypeError):
        snapshot["B"] = snapshot["A"]  # type: ignore[index]

    await store.merge([_obs("A", 10.0, T0 + timedelta(seconds=2)), _obs("B", 1.0, T0)])

    assert set(snapshot) == {"A"}
    assert snapshot["A"].min_distance == 50.0
