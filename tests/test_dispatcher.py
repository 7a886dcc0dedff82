"""Unit tests for the broadcast dispatcher (fault isolation, global fan-out)."""

import asyncio
from datetime import datetime, timezone

import pytest

from src.domain.entities import Booking
from src.domain.enums import BookingStatus
from src.realtime.dispatcher import BroadcastDispatcher
from src.realtime.registry import SubscriptionRegistry


class RecordingHandle:
    def __init__(self):
        self.sent = []

    async def send_json(self, data):
        self.sent.append(data)


class BrokenHandle:
    async def send_json(self, data):
        raise ConnectionResetError("half-closed socket")


class StalledHandle:
    async def send_json(self, data):
        await asyncio.sleep(60)


def _booking(status=BookingStatus.ACCEPTED):
    return Booking(
        id=3,
        owner_id=1,
        status=status,
        vehicle_type="van-3.5",
        pickup_location="A",
        dropoff_location="B",
        pickup_coords="1,1",
        dropoff_coords="2,2",
        updated_at=datetime(2026, 10, 17, tzinfo=timezone.utc),
        created_at=datetime(2026, 10, 17, tzinfo=timezone.utc),
    )


@pytest.mark.asyncio
async def test_event_shape():
    registry = SubscriptionRegistry()
    handle = RecordingHandle()
    registry.register(1, handle)

    await BroadcastDispatcher(registry).broadcast_status_changed(_booking())

    (event,) = handle.sent
    assert event["type"] == "BOOKING_STATUS_UPDATED"
    assert event["booking"]["id"] == 3
    assert event["booking"]["status"] == "accepted"
    assert event["booking"]["owner_id"] == 1


@pytest.mark.asyncio
async def test_broadcast_reaches_every_identity_not_only_owner():
    registry = SubscriptionRegistry()
    owner_tab, owner_phone, stranger = RecordingHandle(), RecordingHandle(), RecordingHandle()
    registry.register(1, owner_tab)
    registry.register(1, owner_phone)
    registry.register(2, stranger)

    delivered = await BroadcastDispatcher(registry).broadcast_status_changed(_booking())

    assert delivered == 3
    for handle in (owner_tab, owner_phone, stranger):
        assert len(handle.sent) == 1


@pytest.mark.asyncio
async def test_failing_connection_does_not_block_healthy_one():
    registry = SubscriptionRegistry()
    broken, healthy = BrokenHandle(), RecordingHandle()
    registry.register(1, broken)
    registry.register(2, healthy)

    delivered = await BroadcastDispatcher(registry).broadcast_status_changed(_booking())

    assert delivered == 1
    assert healthy.sent[0]["booking"]["status"] == "accepted"


@pytest.mark.asyncio
async def test_stalled_connection_is_timed_out():
    registry = SubscriptionRegistry()
    stalled, healthy = StalledHandle(), RecordingHandle()
    registry.register(1, stalled)
    registry.register(2, healthy)

    dispatcher = BroadcastDispatcher(registry, send_timeout=0.05)
    delivered = await asyncio.wait_for(
        dispatcher.broadcast_status_changed(_booking()), timeout=2
    )

    assert delivered == 1
    assert len(healthy.sent) == 1


@pytest.mark.asyncio
async def test_empty_registry_delivers_nothing():
    delivered = await BroadcastDispatcher(SubscriptionRegistry()).broadcast_status_changed(
        _booking()
    )
    assert delivered == 0
