"""
Redis-based distributed lock.

Serialises status transitions per booking: the read-current-status /
write-new-status pair for one booking id never interleaves across requests,
even when several API processes share the database.

Implementation uses SET NX EX for acquire and a Lua script for
atomic check-and-delete on release.
"""

from __future__ import annotations

import logging
import uuid

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from src.domain.entities import BookingLocked

logger = logging.getLogger(__name__)

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, key: str, ttl_seconds: int = 30
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.token = str(uuid.uuid4())

    async def acquire(self) -> bool:
        """Try to acquire. Returns True on success."""
        return bool(
            await self.redis.set(self.key, self.token, nx=True, ex=self.ttl)
        )

    async def release(self) -> None:
        """Release only if we still own the lock."""
        await self.redis.eval(_RELEASE_SCRIPT, 1, self.key, self.token)

    def _on_contention(self) -> Exception:
        return RuntimeError(f"Could not acquire lock: {self.key}")

    async def __aenter__(self):
        if not await self.acquire():
            raise self._on_contention()
        return self

    async def __aexit__(self, *args):
        await self.release()


class BookingLock(DistributedLock):
    """Per-booking mutual exclusion for status transitions."""

    def __init__(self, client: aioredis.Redis, booking_id: int, ttl_seconds: int = 10):
        super().__init__(client, f"booking:{booking_id}", ttl_seconds)
        self.booking_id = booking_id

    def _on_contention(self) -> Exception:
        return BookingLocked(self.booking_id)

    async def __aexit__(self, *args):
        # Best-effort: the TTL frees the key if Redis is unreachable.
        try:
            await self.release()
        except (RedisError, OSError) as exc:
            logger.warning(
                "Could not release %s, it expires in %ds: %s", self.key, self.ttl, exc
            )
