"""
Dispatch workflows
==================

Order status
------------
* ``advance_status``  -- set a status directly (cancel needs a reason).
* ``rollback_status`` -- step back one status in the linear progression.

Neither touches trip financials: status does not enter the snapshot.

Trip status sync
----------------
``set_trip_status`` writes the trip, then forces the mapped status onto
every non-cancelled member order (planned -> assigned,
in_progress -> picked_up, completed -> delivered; at_terminal -> nothing).
Two steps; if the second fails, re-running the call repairs the drift.

Assignment saga
---------------
``assign_order_to_trip``::

    1. assign_order      order.trip_id = new, status = assigned
    2. recalculate_old   only when the order moved away from another trip
    3. recalculate_new

``unassign_order_from_trip``: clear trip / reset to new (cancelled orders
keep their status), recalculate the former trip.  ``delete_trip``: under
the trip lock, unassign every order, then delete the trip and its
expenses.  A failed recalculation step raises ``PersistenceError`` listing
the trips still to be recomputed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Optional

from fleetops.domain.enums import TRIP_TO_ORDER_STATUS, OrderStatus, TripStatus
from fleetops.domain.errors import NotFoundError, PersistenceError, ValidationError
from fleetops.domain.money import to_money
from fleetops.domain.order_status import advance_status, parse_status, rollback_status
from fleetops.domain.trip_financials import TripFinancials
from fleetops.infrastructure.locks import LockNotAcquired, trip_lock_key
from fleetops.infrastructure.models import DriverModel, OrderModel, TripModel
from fleetops.infrastructure.repositories import (
    DriverRepository,
    OrderRepository,
    TripExpenseRepository,
    TripRepository,
)
from .trip_financials import TripFinancialsEngine
from .workflow import TenantService

logger = logging.getLogger(__name__)


@dataclass
class AssignmentResult:
    order: OrderModel
    previous_trip_id: Optional[int]
    recalculated: dict[int, TripFinancials] = field(default_factory=dict)


@dataclass
class TripStatusResult:
    trip: TripModel
    order_status: Optional[OrderStatus]
    orders_updated: int


def parse_trip_status(value: Any) -> TripStatus:
    if isinstance(value, TripStatus):
        return value
    try:
        return TripStatus(value)
    except ValueError:
        raise ValidationError(
            "Invalid trip status", {"status": str(value)}
        ) from None


class DispatchService(TenantService):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.financials = TripFinancialsEngine(
            self.session_factory, self.tenant_id, locks=self.locks, clock=self.clock
        )

    # ── Creation ──────────────────────────────────────────────────────

    async def create_driver(self, **fields) -> DriverModel:
        async with self.step("create_driver") as session:
            driver = await DriverRepository(session, self.tenant_id).add(**fields)
        logger.info("Created driver %s (tenant %s)", driver.id, self.tenant_id)
        return driver

    async def create_trip(
        self,
        *,
        start_date: date,
        end_date: date,
        driver_id: Optional[int] = None,
        truck_id: Optional[int] = None,
        carrier_pay: Any = 0,
        trip_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> TripModel:
        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date")
        async with self.step("create_trip") as session:
            if driver_id is not None:
                await self._require_driver(session, driver_id)
            trip = await TripRepository(session, self.tenant_id).add(
                start_date=start_date,
                end_date=end_date,
                driver_id=driver_id,
                truck_id=truck_id,
                carrier_pay=to_money(carrier_pay),
                trip_number=trip_number,
                notes=notes,
                status=TripStatus.PLANNED,
            )
        logger.info("Created trip %s (tenant %s)", trip.id, self.tenant_id)
        return trip

    async def create_order(self, **fields) -> OrderModel:
        """Orders start unassigned in ``new``."""
        fields.pop("status", None)
        fields.pop("trip_id", None)
        async with self.step("create_order") as session:
            order = await OrderRepository(session, self.tenant_id).add(
                status=OrderStatus.NEW, trip_id=None, **fields
            )
        logger.info("Created order %s (tenant %s)", order.id, self.tenant_id)
        return order

    # ── Order status machine ──────────────────────────────────────────

    async def advance_status(
        self, order_id: int, new_status: Any, reason: Optional[str] = None
    ) -> OrderModel:
        target = parse_status(new_status)
        if target is OrderStatus.CANCELLED and not (reason or "").strip():
            raise ValidationError("A reason is required when cancelling an order")

        async with self.step("advance_status") as session:
            order = await self._require_order(session, order_id, for_update=True)
            previous = order.status
            advance_status(order, target, reason, clock=self.clock)
        logger.info(
            "Order %s: %s -> %s (tenant %s)",
            order_id,
            _value(previous),
            target.value,
            self.tenant_id,
        )
        return order

    async def rollback_status(self, order_id: int) -> OrderModel:
        async with self.step("rollback_status") as session:
            order = await self._require_order(session, order_id, for_update=True)
            previous = order.status
            rollback_status(order)
        logger.info(
            "Order %s rolled back: %s -> %s (tenant %s)",
            order_id,
            _value(previous),
            _value(order.status),
            self.tenant_id,
        )
        return order

    # ── Trip status sync ──────────────────────────────────────────────

    async def set_trip_status(self, trip_id: int, new_status: Any) -> TripStatusResult:
        target = parse_trip_status(new_status)

        async with self.step("update_trip_status") as session:
            trip = await self._require_trip(session, trip_id)
            trip.status = target

        order_status = TRIP_TO_ORDER_STATUS.get(target)
        updated = 0
        if order_status is not None:
            async with self.step("sync_order_statuses") as session:
                updated = await OrderRepository(session, self.tenant_id).set_status_for_trip(
                    trip_id, order_status
                )

        logger.info(
            "Trip %s -> %s, %d orders set to %s (tenant %s)",
            trip_id,
            target.value,
            updated,
            order_status.value if order_status else "-",
            self.tenant_id,
        )
        return TripStatusResult(trip=trip, order_status=order_status, orders_updated=updated)

    # ── Assignment saga ───────────────────────────────────────────────

    async def assign_order_to_trip(self, order_id: int, trip_id: int) -> AssignmentResult:
        async with self.step("assign_order") as session:
            await self._require_trip(session, trip_id)
            order = await self._require_order(session, order_id, for_update=True)
            if order.status is OrderStatus.CANCELLED:
                raise ValidationError("Cancelled orders cannot be assigned to a trip")
            previous_trip_id = order.trip_id
            order.trip_id = trip_id
            order.status = OrderStatus.ASSIGNED

        to_recalculate = [trip_id]
        if previous_trip_id is not None and previous_trip_id != trip_id:
            to_recalculate.insert(0, previous_trip_id)

        results = await self.financials.recalculate_many(to_recalculate)
        logger.info(
            "Order %s assigned to trip %s (from %s, tenant %s)",
            order_id,
            trip_id,
            previous_trip_id,
            self.tenant_id,
        )
        return AssignmentResult(
            order=order,
            previous_trip_id=previous_trip_id,
            recalculated=dict(zip(to_recalculate, results)),
        )

    async def unassign_order_from_trip(self, order_id: int) -> AssignmentResult:
        async with self.step("unassign_order") as session:
            order = await self._require_order(session, order_id, for_update=True)
            previous_trip_id = order.trip_id
            if previous_trip_id is None:
                raise ValidationError("Order is not assigned to any trip")
            order.trip_id = None
            # cancelled is final; only the trip link goes
            if order.status is not OrderStatus.CANCELLED:
                order.status = OrderStatus.NEW

        results = await self.financials.recalculate_many([previous_trip_id])
        logger.info(
            "Order %s unassigned from trip %s (tenant %s)",
            order_id,
            previous_trip_id,
            self.tenant_id,
        )
        return AssignmentResult(
            order=order,
            previous_trip_id=previous_trip_id,
            recalculated={previous_trip_id: results[0]},
        )

    async def delete_trip(self, trip_id: int) -> int:
        """
        Unassign the trip's orders, then delete it.  Returns orders released.

        Both steps run under the trip lock so no recompute of the trip can
        interleave with the teardown.
        """
        try:
            async with self.locks.hold(trip_lock_key(self.tenant_id, trip_id)):
                async with self.step("unassign_trip_orders") as session:
                    await self._require_trip(session, trip_id)
                    released = await OrderRepository(
                        session, self.tenant_id
                    ).unassign_all_from_trip(trip_id)

                async with self.step("delete_trip") as session:
                    trip = await self._require_trip(session, trip_id)
                    await TripExpenseRepository(
                        session, self.tenant_id
                    ).delete_for_trip(trip_id)
                    await TripRepository(session, self.tenant_id).delete(trip)
        except LockNotAcquired as exc:
            raise PersistenceError(
                str(exc), step="delete_trip", affected_trip_ids=[trip_id]
            ) from exc

        logger.info(
            "Deleted trip %s, released %d orders (tenant %s)",
            trip_id,
            released,
            self.tenant_id,
        )
        return released

    async def update_trip_carrier_pay(self, trip_id: int, amount: Any) -> TripFinancials:
        value = to_money(amount)
        if value < 0:
            raise ValidationError("carrier_pay must not be negative")

        async with self.step("update_carrier_pay") as session:
            trip = await self._require_trip(session, trip_id)
            trip.carrier_pay = value

        return (await self.financials.recalculate_many([trip_id]))[0]

    # ── Lookups ───────────────────────────────────────────────────────

    async def get_order(self, order_id: int) -> OrderModel:
        async with self.session_factory() as session:
            return await self._require_order(session, order_id)

    async def get_trip(self, trip_id: int) -> TripModel:
        async with self.session_factory() as session:
            return await self._require_trip(session, trip_id)

    async def _require_order(self, session, order_id: int, for_update: bool = False) -> OrderModel:
        repo = OrderRepository(session, self.tenant_id)
        order = await (repo.get_for_update(order_id) if for_update else repo.get_by_id(order_id))
        if order is None:
            raise NotFoundError("Order", order_id)
        return order

    async def _require_trip(self, session, trip_id: int) -> TripModel:
        trip = await TripRepository(session, self.tenant_id).get_by_id(trip_id)
        if trip is None:
            raise NotFoundError("Trip", trip_id)
        return trip

    async def _require_driver(self, session, driver_id: int) -> DriverModel:
        driver = await DriverRepository(session, self.tenant_id).get_by_id(driver_id)
        if driver is None:
            raise NotFoundError("Driver", driver_id)
        return driver


def _value(status: Any) -> str:
    return getattr(status, "value", str(status))
