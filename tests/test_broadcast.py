from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

import pytest
from _fakes import T0, RecordingBroadcaster

from ndzwatch.broadcast import FanOutBroadcaster, StateHub, snapshot_to_payload
from ndzwatch.exceptions import NdzPublishError, NdzSubscriptionClosed
from ndzwatch.models.pilot import PilotInfo
from ndzwatch.models.violation import Observation, TrackedViolation


def _violation(serial: str, distance: float = 42.5) -> TrackedViolation:
    pilot = PilotInfo.model_validate(
        {"pilotId": f"P-{serial}", "firstName": "Jane", "lastName": "Doe", "email": "jane@example.com"}
    )
    return Observation(
        serial_number=serial,
        min_distance=distance,
        timestamp=T0,
        pilot=pilot,
    ).to_violation()


def test_snapshot_to_payload_uses_camel_case_keys() -> None:
    payload = snapshot_to_payload({"SN-2": _violation("SN-2"), "SN-1": _violation("SN-1", 10.0)})

    assert list(payload) == ["SN-1", "SN-2"]
    entry = payload["SN-1"]
    assert entry["serialNumber"] == "SN-1"
    assert entry["minDistance"] == 10.0
    assert entry["lastSeen"] == "2023-01-01T12:00:00Z"
    assert entry["pilot"]["pilotId"] == "P-SN-1"
    assert entry["pilot"]["firstName"] == "Jane"
    assert "raw" not in entry["pilot"]


def test_snapshot_to_payload_empty() -> None:
    assert snapshot_to_payload({}) == {}


@pytest.mark.asyncio
async def test_hub_delivers_only_later_snapshots() -> None:
    hub = StateHub()
    early = {"SN-1": _violation("SN-1")}
    await hub.publish(early)

    with hub.subscribe() as subscription:
        assert subscription.get_nowait() is None
        later = {"SN-2": _violation("SN-2")}
        await hub.publish(later)
        received = await asyncio.wait_for(subscription.get(), timeout=1)

    assert received is later
    assert hub.latest is later
    assert hub.subscriber_count == 0


@pytest.mark.asyncio
async def test_slow_subscriber_keeps_only_newest_snapshot() -> None:
    hub = StateHub()
    subscription = hub.subscribe()
    snapshots = [{f"SN-{i}": _violation(f"SN-{i}")} for i in range(3)]

    for snapshot in snapshots:
        await hub.publish(snapshot)

    assert subscription.dropped == 2
    assert subscription.get_nowait() is snapshots[-1]
    assert subscription.get_nowait() is None
    assert hub.stats() == {"published": 3, "subscribers": 1, "dropped": 2}


@pytest.mark.asyncio
async def test_larger_queue_keeps_intermediate_snapshots() -> None:
    hub = StateHub()
    subscription = hub.subscribe(queue_size=4)

    await hub.publish({})
    await hub.publish({"SN-1": _violation("SN-1")})

    assert subscription.get_nowait() == {}
    assert set(subscription.get_nowait() or {}) == {"SN-1"}
    assert subscription.dropped == 0


@pytest.mark.asyncio
async def test_closed_subscription_stops_iteration() -> None:
    hub = StateHub(queue_size=2)
    subscription = hub.subscribe()
    await hub.publish({})
    hub.close()

    received = [snapshot async for snapshot in subscription]

    assert received == [{}]
    assert subscription.closed


@pytest.mark.asyncio
async def test_close_wakes_a_waiting_consumer() -> None:
    hub = StateHub()
    subscription = hub.subscribe()
    received: list[object] = []

    async def consume() -> None:
        async for snapshot in subscription:
            received.append(snapshot)

    consumer = asyncio.create_task(consume())
    await hub.publish({})
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    hub.close()

    await asyncio.wait_for(consumer, timeout=1)

    assert received == [{}]


@pytest.mark.asyncio
async def test_get_after_close_raises_instead_of_waiting() -> None:
    hub = StateHub()
    subscription = hub.subscribe()
    subscription.close()

    with pytest.raises(NdzSubscriptionClosed):
        await asyncio.wait_for(subscription.get(), timeout=1)
    with pytest.raises(NdzSubscriptionClosed):
        await asyncio.wait_for(subscription.get(), timeout=1)
    assert subscription.get_nowait() is None


@pytest.mark.asyncio
async def test_fan_out_isolates_failing_targets(caplog: pytest.LogCaptureFixture) -> None:
    good = RecordingBroadcaster()
    bad = RecordingBroadcaster(fail=True)
    also_good = RecordingBroadcaster()
    fan_out = FanOutBroadcaster([good, bad])
    fan_out.add(also_good)
    snapshot = {"SN-1": _violation("SN-1")}

    with caplog.at_level(logging.WARNING, logger="ndzwatch.broadcast.base"):
        await fan_out.publish(snapshot)

    assert good.snapshots == [snapshot]
    assert also_good.snapshots == [snapshot]
    assert "listener gone" in caplog.text


@pytest.mark.asyncio
async def test_fan_out_raises_when_every_target_fails() -> None:
    fan_out = FanOutBroadcaster([RecordingBroadcaster(fail=True), RecordingBroadcaster(fail=True)])

    with pytest.raises(NdzPublishError) as excinfo:
        await fan_out.publish({})

    assert "listener gone" in str(excinfo.value)


@pytest.mark.asyncio
async def test_fan_out_publishes_to_all_targets() -> None:
    targets = [RecordingBroadcaster(), RecordingBroadcaster()]
    fan_out = FanOutBroadcaster(targets)
    later = _violation("SN-1").model_copy(update={"last_seen": T0 + timedelta(seconds=2)})

    await fan_out.publish({"SN-1": later})

    assert all(target.snapshots == [{"SN-1": later}] for target in targets)
