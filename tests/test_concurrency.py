"""
Concurrency safety tests.

Demonstrates:
1. The Redis lock serialises transitions per booking.
2. A stale writer cannot commit over a newer status (conditional update).
"""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from src.domain.entities import BookingLocked, InvalidTransition
from src.domain.enums import BookingStatus
from src.infrastructure.locks import BookingLock, DistributedLock
from src.infrastructure.repositories import BookingRepository, UserRepository


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is True
        mock_redis.set.assert_called_once_with(
            "lock:test-key", lock.token, nx=True, ex=10
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_release_calls_eval(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        await lock.acquire()
        await lock.release()

        mock_redis.eval.assert_called_once()

    @pytest.mark.asyncio
    async def test_booking_lock_key_and_contention_error(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = BookingLock(mock_redis, 42)
        assert lock.key == "lock:booking:42"
        with pytest.raises(BookingLocked):
            async with lock:
                pass
        mock_redis.eval.assert_not_called()

    @pytest.mark.asyncio
    async def test_booking_lock_release_failure_is_logged_not_raised(self, caplog):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(side_effect=ConnectionError("redis gone"))

        async with BookingLock(mock_redis, 42):
            pass

        mock_redis.eval.assert_called_once()
        assert "lock:booking:42" in caplog.text


async def _seed_booking(session, payload):
    user = await UserRepository(session).create(username="alice", password_hash="x")
    booking = await BookingRepository(session).create(user.id, payload)
    await session.commit()
    return booking


class TestConditionalCommit:
    @pytest.mark.asyncio
    async def test_stale_expected_status_is_rejected(self, db_session, booking_payload):
        repo = BookingRepository(db_session)
        booking = await _seed_booking(db_session, booking_payload)
        now = datetime.now(timezone.utc)

        await repo.commit_transition(
            booking.id, BookingStatus.ACCEPTED, now, expected_status=BookingStatus.PENDING
        )
        # a second writer that still believes the booking is pending
        with pytest.raises(InvalidTransition):
            await repo.commit_transition(
                booking.id,
                BookingStatus.CANCELLED,
                now,
                expected_status=BookingStatus.PENDING,
            )

        current = await repo.get_by_id(booking.id)
        assert current.status == BookingStatus.ACCEPTED

