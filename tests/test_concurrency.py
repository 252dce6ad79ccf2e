"""
Concurrency safety tests.

Demonstrates:
1. Recomputations of the same trip never overlap; different trips run freely.
2. A recompute that cannot get its lock fails with ``PersistenceError``.
3. Distributed lock prevents simultaneous acquire.
4. The reconcile cycle skips when another worker holds its lock and always
   releases the lock it took.
"""

from __future__ import annotations

import asyncio
from contextlib import ExitStack
from unittest.mock import AsyncMock, patch

import pytest

from fleetops.domain.errors import PersistenceError
from fleetops.domain.trip_financials import calculate_trip_financials
from fleetops.infrastructure.locks import (
    DistributedLock,
    KeyedLock,
    LockNotAcquired,
    RedisTripLocks,
    trip_lock_key,
)
from fleetops.services.trip_financials import TripFinancialsEngine
from fleetops.workers.reconciler import run_reconcile_cycle


class _TracingEngine(TripFinancialsEngine):
    """Records when each recompute body starts and ends instead of touching a DB."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.events: list[tuple[str, int]] = []

    async def _recalculate_locked(self, trip_id):
        self.events.append(("start", trip_id))
        await asyncio.sleep(0.01)
        self.events.append(("end", trip_id))
        return calculate_trip_financials([], None, [], 0)


class TestKeyedLock:
    @pytest.mark.asyncio
    async def test_same_trip_recomputes_are_serialized(self):
        engine = _TracingEngine(None, "acme", locks=KeyedLock())

        await asyncio.gather(*(engine.recalculate(1) for _ in range(3)))

        assert engine.events == [("start", 1), ("end", 1)] * 3

    @pytest.mark.asyncio
    async def test_different_trips_interleave(self):
        engine = _TracingEngine(None, "acme", locks=KeyedLock())

        await asyncio.gather(engine.recalculate(1), engine.recalculate(2))

        assert set(engine.events[:2]) == {("start", 1), ("start", 2)}

    @pytest.mark.asyncio
    async def test_keys_are_dropped_when_idle(self):
        locks = KeyedLock()
        async with locks.hold("trip:acme:1"):
            assert locks.locked("trip:acme:1")
            assert len(locks) == 1
        assert len(locks) == 0
        assert not locks.locked("trip:acme:1")

    @pytest.mark.asyncio
    async def test_wait_times_out(self):
        locks = KeyedLock(wait_seconds=0.05)
        async with locks.hold("k"):
            with pytest.raises(LockNotAcquired):
                async with locks.hold("k"):
                    pass
        # the timed-out waiter must not leave the key behind
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_lock_timeout_surfaces_as_persistence_error(self):
        locks = KeyedLock(wait_seconds=0.05)
        engine = _TracingEngine(None, "acme", locks=locks)

        async with locks.hold(trip_lock_key("acme", 9)):
            with pytest.raises(PersistenceError) as info:
                await engine.recalculate(9)

        assert info.value.affected_trip_ids == [9]
        assert engine.events == []

    def test_lock_key_is_tenant_scoped(self):
        assert trip_lock_key("acme", 1) != trip_lock_key("globex", 1)


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is True
        mock_redis.set.assert_awaited_once_with(
            "lock:test-key", lock.token, nx=True, ex=10
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_acquire_retries_until_free(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(side_effect=[False, False, True])

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        assert await lock.acquire(wait_seconds=1.0, poll_interval=0.001) is True
        assert mock_redis.set.await_count == 3

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
    async def test_context_manager_acquire_fail_raises(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "test-key", ttl_seconds=10)
        with pytest.raises(LockNotAcquired, match="Could not acquire lock"):
            async with lock:
                pass


class TestRedisTripLocks:
    @pytest.mark.asyncio
    async def test_hold_releases_after_body(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        locks = RedisTripLocks(mock_redis, ttl_seconds=5, wait_seconds=0)
        async with locks.hold("trip:acme:3"):
            mock_redis.eval.assert_not_called()
        mock_redis.eval.assert_called_once()

    @pytest.mark.asyncio
    async def test_hold_fails_when_taken(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        locks = RedisTripLocks(mock_redis, ttl_seconds=5, wait_seconds=0)
        with pytest.raises(LockNotAcquired):
            async with locks.hold("trip:acme:3"):
                pass


class TestReconcileCycle:
    """One reconcile cycle runs only while it holds the cluster-wide lock."""

    @staticmethod
    def _patched(mock_redis, reconcile):
        stack = ExitStack()
        stack.enter_context(
            patch("fleetops.workers.reconciler.get_redis", AsyncMock(return_value=mock_redis))
        )
        stack.enter_context(
            patch("fleetops.workers.reconciler.get_trip_locks", return_value=KeyedLock())
        )
        stack.enter_context(patch("fleetops.workers.reconciler.reconcile_trips", reconcile))
        return stack

    @pytest.mark.asyncio
    async def test_skips_when_lock_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)
        mock_redis.eval = AsyncMock(return_value=1)
        reconcile = AsyncMock(return_value=5)

        with self._patched(mock_redis, reconcile):
            assert await run_reconcile_cycle() == 0

        reconcile.assert_not_awaited()
        mock_redis.eval.assert_not_called()

    @pytest.mark.asyncio
    async def test_runs_and_releases(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)
        reconcile = AsyncMock(return_value=2)

        with self._patched(mock_redis, reconcile):
            assert await run_reconcile_cycle() == 2

        reconcile.assert_awaited_once()
        assert mock_redis.set.call_args.args[0] == "lock:trip_reconciler"
        assert mock_redis.set.call_args.kwargs == {"nx": True, "ex": 120}
        mock_redis.eval.assert_called_once()

    @pytest.mark.asyncio
    async def test_releases_when_cycle_fails(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)
        reconcile = AsyncMock(
            side_effect=PersistenceError("db gone", step="reconcile", affected_trip_ids=[])
        )

        with self._patched(mock_redis, reconcile):
            with pytest.raises(PersistenceError):
                await run_reconcile_cycle()

        mock_redis.eval.assert_called_once()
