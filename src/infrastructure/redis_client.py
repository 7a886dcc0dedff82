"""
Redis client for the per-booking transition locks.

Only ``SET NX EX`` and the release script are issued, so a single shared
pool is enough; it is disconnected on application shutdown.
"""

import logging

import redis.asyncio as aioredis

from src.config import settings

logger = logging.getLogger(__name__)

_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url,
    decode_responses=True,
    max_connections=settings.redis_max_connections,
)


async def get_redis() -> aioredis.Redis:
    return aioredis.Redis(connection_pool=_pool)


async def close_redis() -> None:
    await _pool.disconnect()
    logger.info("Redis pool disconnected")
