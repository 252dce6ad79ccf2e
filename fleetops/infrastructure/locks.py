"""
Per-trip locks.

Recomputing a trip is a read-then-write sequence; two overlapping runs
could each read a different order set and the later write would win with
stale totals.  Every recompute therefore holds a lock keyed by
``tenant:trip`` for the whole read/compute/write/commit cycle.

* ``KeyedLock``        -- in-process ``asyncio.Lock`` per key; enough for a
                          single API process.
* ``DistributedLock``  -- Redis SET NX EX with a Lua check-and-delete
                          release; serializes across processes.  Also used
                          by the reconciliation worker so only one instance
                          sweeps at a time.
* ``RedisTripLocks``   -- adapts ``DistributedLock`` to the keyed interface
                          with a bounded wait.

The row-level ``SELECT ... FOR UPDATE`` in the trip repository still
applies underneath either backend.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis

from fleetops.domain.errors import PersistenceError


class LockNotAcquired(PersistenceError):
    """Raised when a lock could not be taken within the allowed wait."""


class DistributedLock:
    def __init__(
        self, client: aioredis.Redis, key: str, ttl_seconds: int = 30
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.token = str(uuid.uuid4())

    async def acquire(
        self, wait_seconds: float = 0.0, poll_interval: float = 0.05
    ) -> bool:
        """Try to acquire, retrying for up to *wait_seconds*.  True on success."""
        deadline = time.monotonic() + wait_seconds
        while True:
            if await self.redis.set(self.key, self.token, nx=True, ex=self.ttl):
                return True
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(poll_interval)

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua)."""
        lua = """
        if redis.call("get", KEYS[1]) == ARGV[1] then
            return redis.call("del", KEYS[1])
        else
            return 0
        end
        """
        await self.redis.eval(lua, 1, self.key, self.token)

    # context-manager support
    async def __aenter__(self):
        acquired = await self.acquire()
        if not acquired:
            raise LockNotAcquired(f"Could not acquire lock: {self.key}")
        return self

    async def __aexit__(self, *args):
        await self.release()


class KeyedLock:
    """One ``asyncio.Lock`` per key, dropped once nobody holds or waits on it."""

    def __init__(self, wait_seconds: float = 10.0):
        self.wait_seconds = wait_seconds
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    def locked(self, key: str) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.wait_seconds)
            except asyncio.TimeoutError:
                raise LockNotAcquired(f"Timed out waiting for lock: {key}") from None
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]


class RedisTripLocks:
    def __init__(
        self,
        client: aioredis.Redis,
        ttl_seconds: int = 30,
        wait_seconds: float = 10.0,
    ):
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.wait_seconds = wait_seconds

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        lock = DistributedLock(self.client, key, ttl_seconds=self.ttl_seconds)
        if not await lock.acquire(wait_seconds=self.wait_seconds):
            raise LockNotAcquired(f"Could not acquire lock: {lock.key}")
        try:
            yield
        finally:
            await lock.release()


def trip_lock_key(tenant_id: str, trip_id: int) -> str:
    return f"trip:{tenant_id}:{trip_id}"
