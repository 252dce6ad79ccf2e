"""Redis async connection pool and the process-wide trip lock registry."""

from __future__ import annotations

from functools import lru_cache
from typing import Union

import redis.asyncio as aioredis

from fleetops.config import settings
from .locks import KeyedLock, RedisTripLocks

_pool = aioredis.ConnectionPool.from_url(
    settings.redis_url, decode_responses=True
)


async def get_redis() -> aioredis.Redis:
    """Return a Redis client backed by the shared connection pool."""
    return aioredis.Redis(connection_pool=_pool)


@lru_cache(maxsize=1)
def get_trip_locks() -> Union[KeyedLock, RedisTripLocks]:
    """Lock backend chosen by ``settings.trip_lock_backend``; one per process."""
    if settings.trip_lock_backend == "redis":
        return RedisTripLocks(
            aioredis.Redis(connection_pool=_pool),
            ttl_seconds=settings.trip_lock_ttl_seconds,
            wait_seconds=settings.trip_lock_wait_seconds,
        )
    return KeyedLock(wait_seconds=settings.trip_lock_wait_seconds)
