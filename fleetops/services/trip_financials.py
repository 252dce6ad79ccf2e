"""
Trip Financials Engine
======================

``recalculate(trip_id)`` rebuilds a trip's denormalised snapshot from
source rows:

1. Take the per-trip lock (``tenant:trip``).
2. Begin a transaction; read the trip ``FOR UPDATE``, its driver, its
   orders (oldest first) and its expenses.
3. Compute the snapshot (``domain.trip_financials``).
4. Write all snapshot columns in one update; commit; release the lock.

Never incremental: every call recomputes everything, so running it again
after any failure is always safe.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from fleetops.config import settings
from fleetops.domain.driver_pay import DriverPayCalculator
from fleetops.domain.entities import DriverPayConfig, ExpenseLine, OrderLine
from fleetops.domain.errors import NotFoundError, PersistenceError
from fleetops.domain.trip_financials import TripFinancials, calculate_trip_financials
from fleetops.infrastructure.locks import LockNotAcquired, trip_lock_key
from fleetops.infrastructure.repositories import (
    DriverRepository,
    OrderRepository,
    TripExpenseRepository,
    TripRepository,
)
from .workflow import TenantService

logger = logging.getLogger(__name__)


class TripFinancialsEngine(TenantService):
    def __init__(self, *args, calculator: Optional[DriverPayCalculator] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.calculator = calculator or DriverPayCalculator(settings.money_places)

    async def recalculate(self, trip_id: int) -> TripFinancials:
        try:
            async with self.locks.hold(trip_lock_key(self.tenant_id, trip_id)):
                financials = await self._recalculate_locked(trip_id)
        except LockNotAcquired as exc:
            raise PersistenceError(
                str(exc), step="recalculate", affected_trip_ids=[trip_id]
            ) from exc

        logger.info(
            "Recalculated trip %s (tenant %s): orders=%d revenue=%s net_profit=%s",
            trip_id,
            self.tenant_id,
            financials.order_count,
            financials.revenue,
            financials.net_profit,
        )
        return financials

    async def recalculate_many(self, trip_ids: Iterable[Optional[int]]) -> list[TripFinancials]:
        """
        Recompute each distinct trip in turn.

        If one fails, the ``PersistenceError`` lists that trip and every one
        not yet reached, so the caller knows exactly what to re-run.
        """
        pending = [t for t in dict.fromkeys(trip_ids) if t is not None]
        results: list[TripFinancials] = []
        for index, trip_id in enumerate(pending):
            try:
                results.append(await self.recalculate(trip_id))
            except PersistenceError as exc:
                raise PersistenceError(
                    exc.message, step=exc.step, affected_trip_ids=pending[index:]
                ) from exc
        return results

    async def _recalculate_locked(self, trip_id: int) -> TripFinancials:
        async with self.step("recalculate", affected_trip_ids=[trip_id]) as session:
            trips = TripRepository(session, self.tenant_id)
            trip = await trips.get_for_update(trip_id)
            if trip is None:
                raise NotFoundError("Trip", trip_id)

            driver = None
            if trip.driver_id is not None:
                driver = await DriverRepository(session, self.tenant_id).get_by_id(
                    trip.driver_id
                )
            orders = await OrderRepository(session, self.tenant_id).list_for_trip(trip_id)
            expenses = await TripExpenseRepository(session, self.tenant_id).list_for_trip(
                trip_id
            )

            financials = calculate_trip_financials(
                [OrderLine.from_row(o) for o in orders],
                DriverPayConfig.from_row(driver),
                [ExpenseLine.from_row(e) for e in expenses],
                trip.carrier_pay,
                calculator=self.calculator,
            )
            await trips.write_snapshot(trip, financials.snapshot_columns())
        return financials
