"""
Background Reconciliation Worker
================================

Runs every ``RECONCILE_INTERVAL_SECONDS`` (default 300 s) when
``RECONCILE_ENABLED`` is set.

A trip snapshot can lag behind its orders when a workflow fails between
the assignment step and the recalculation step.  Each cycle looks for
trips whose stored ``order_count`` disagrees with the live number of
orders pointing at them and recomputes exactly those trips.

Concurrency safety
------------------
* **Redis distributed lock** ensures only one instance runs the cycle at
  a time across multiple API processes.
* Each recompute takes the ordinary per-trip lock, so it queues behind
  any request-driven recompute of the same trip.
"""

from __future__ import annotations

import asyncio
import logging

from fleetops.config import settings
from fleetops.domain.errors import DispatchError
from fleetops.infrastructure.database import async_session_factory
from fleetops.infrastructure.locks import DistributedLock
from fleetops.infrastructure.redis_client import get_redis, get_trip_locks
from fleetops.infrastructure.repositories import find_drifted_trips
from fleetops.services.trip_financials import TripFinancialsEngine

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_reconcile_loop() -> None:
    global _task, _stop_event
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Reconcile worker started (interval=%ds)", settings.reconcile_interval_seconds
    )


async def stop_reconcile_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Reconcile worker stopped")


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_reconcile_cycle()
        except Exception:
            logger.exception("Unhandled error in reconcile cycle")
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.reconcile_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next cycle


async def reconcile_trips(session_factory, locks) -> int:
    """Recompute every drifted trip.  Returns the number repaired."""
    async with session_factory() as session:
        drifted = await find_drifted_trips(session)
    if not drifted:
        return 0

    repaired = 0
    for tenant_id, trip_id in drifted:
        engine = TripFinancialsEngine(session_factory, tenant_id, locks=locks)
        try:
            await engine.recalculate(trip_id)
        except DispatchError as exc:
            logger.warning(
                "Could not reconcile trip %s (tenant %s): %s",
                trip_id,
                tenant_id,
                exc.message,
            )
            continue
        repaired += 1

    logger.info("Reconcile cycle: %d of %d drifted trips repaired", repaired, len(drifted))
    return repaired


async def run_reconcile_cycle() -> int:
    """Execute one cycle under the cluster-wide lock."""
    redis = await get_redis()
    lock = DistributedLock(redis, "trip_reconciler", ttl_seconds=120)

    if not await lock.acquire():
        logger.debug("Lock held by another worker – skipping cycle")
        return 0

    try:
        return await reconcile_trips(async_session_factory, get_trip_locks())
    finally:
        await lock.release()
