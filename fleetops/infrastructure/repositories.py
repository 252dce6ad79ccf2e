"""
Repository Pattern -- abstracts DB access so domain logic stays DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and the tenant
id of the caller.  Every query is filtered on that tenant: a row owned by
another tenant is indistinguishable from a missing one.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import (
    BusinessExpenseModel,
    DriverModel,
    OrderModel,
    PaymentModel,
    TripExpenseModel,
    TripModel,
)
from fleetops.domain.enums import OrderStatus
from fleetops.domain.money import quantize, to_money


class TenantRepository:
    model: Any = None

    def __init__(self, session: AsyncSession, tenant_id: str):
        self.session = session
        self.tenant_id = tenant_id

    def _select(self):
        return select(self.model).where(self.model.tenant_id == self.tenant_id)

    async def add(self, **fields) -> Any:
        row = self.model(tenant_id=self.tenant_id, **fields)
        self.session.add(row)
        await self.session.flush()
        return row

    async def get_by_id(self, row_id: int) -> Optional[Any]:
        result = await self.session.execute(
            self._select().where(self.model.id == row_id)
        )
        return result.scalar_one_or_none()

    async def delete(self, row: Any) -> None:
        await self.session.delete(row)
        await self.session.flush()


class DriverRepository(TenantRepository):
    model = DriverModel


class OrderRepository(TenantRepository):
    model = OrderModel

    async def get_for_update(self, order_id: int) -> Optional[OrderModel]:
        result = await self.session.execute(
            self._select().where(OrderModel.id == order_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def list_for_trip(self, trip_id: int) -> list[OrderModel]:
        """Orders on *trip_id*, oldest first."""
        result = await self.session.execute(
            self._select()
            .where(OrderModel.trip_id == trip_id)
            .order_by(OrderModel.created_at, OrderModel.id)
        )
        return list(result.scalars().all())

    async def list_for_trips(self, trip_ids: Iterable[int]) -> list[OrderModel]:
        ids = list(trip_ids)
        if not ids:
            return []
        result = await self.session.execute(
            self._select().where(OrderModel.trip_id.in_(ids))
        )
        return list(result.scalars().all())

    async def set_status_for_trip(self, trip_id: int, status: OrderStatus) -> int:
        """Force *status* onto every non-cancelled order of the trip."""
        result = await self.session.execute(
            update(OrderModel)
            .where(
                OrderModel.tenant_id == self.tenant_id,
                OrderModel.trip_id == trip_id,
                OrderModel.status != OrderStatus.CANCELLED,
            )
            .values(status=status)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def unassign_all_from_trip(self, trip_id: int) -> int:
        """Detach every order from the trip; cancelled orders keep their status."""
        on_trip = (
            OrderModel.tenant_id == self.tenant_id,
            OrderModel.trip_id == trip_id,
        )
        await self.session.execute(
            update(OrderModel)
            .where(*on_trip, OrderModel.status != OrderStatus.CANCELLED)
            .values(status=OrderStatus.NEW)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(
            update(OrderModel)
            .where(*on_trip)
            .values(trip_id=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


class TripRepository(TenantRepository):
    model = TripModel

    async def get_for_update(self, trip_id: int) -> Optional[TripModel]:
        """SELECT ... FOR UPDATE so concurrent recomputes queue on the row."""
        result = await self.session.execute(
            self._select().where(TripModel.id == trip_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def list_in_period(self, start: date, end: date) -> list[TripModel]:
        result = await self.session.execute(
            self._select()
            .where(TripModel.start_date >= start, TripModel.start_date <= end)
            .order_by(TripModel.start_date, TripModel.id)
        )
        return list(result.scalars().all())

    async def write_snapshot(self, trip: TripModel, columns: dict[str, Any]) -> None:
        for name, value in columns.items():
            setattr(trip, name, value)
        await self.session.flush()


class TripExpenseRepository(TenantRepository):
    model = TripExpenseModel

    async def list_for_trip(self, trip_id: int) -> list[TripExpenseModel]:
        result = await self.session.execute(
            self._select()
            .where(TripExpenseModel.trip_id == trip_id)
            .order_by(TripExpenseModel.id)
        )
        return list(result.scalars().all())

    async def totals_by_category(self, trip_ids: Iterable[int]) -> dict[str, Decimal]:
        ids = list(trip_ids)
        if not ids:
            return {}
        result = await self.session.execute(
            select(TripExpenseModel.category, func.sum(TripExpenseModel.amount))
            .where(
                TripExpenseModel.tenant_id == self.tenant_id,
                TripExpenseModel.trip_id.in_(ids),
            )
            .group_by(TripExpenseModel.category)
        )
        return {
            getattr(category, "value", category): quantize(to_money(amount))
            for category, amount in result.all()
        }

    async def delete_for_trip(self, trip_id: int) -> int:
        result = await self.session.execute(
            delete(TripExpenseModel).where(
                TripExpenseModel.tenant_id == self.tenant_id,
                TripExpenseModel.trip_id == trip_id,
            )
        )
        return result.rowcount or 0


class BusinessExpenseRepository(TenantRepository):
    model = BusinessExpenseModel

    async def list_overlapping(self, start: date, end: date) -> list[BusinessExpenseModel]:
        """Expenses effective at some point inside ``[start, end]``."""
        result = await self.session.execute(
            self._select().where(
                BusinessExpenseModel.effective_from <= end,
                (BusinessExpenseModel.effective_to.is_(None))
                | (BusinessExpenseModel.effective_to >= start),
            )
        )
        return list(result.scalars().all())


class PaymentRepository(TenantRepository):
    model = PaymentModel

    async def list_for_order(self, order_id: int) -> list[PaymentModel]:
        result = await self.session.execute(
            self._select()
            .where(PaymentModel.order_id == order_id)
            .order_by(PaymentModel.payment_date, PaymentModel.id)
        )
        return list(result.scalars().all())


async def find_drifted_trips(session: AsyncSession) -> list[tuple[str, int]]:
    """
    ``(tenant_id, trip_id)`` of every trip whose stored ``order_count``
    disagrees with the live number of orders pointing at it.

    System-level query used by the reconciliation worker; the recompute that
    follows runs inside each trip's own tenant scope.
    """
    live = (
        select(func.count())
        .select_from(OrderModel)
        .where(
            OrderModel.trip_id == TripModel.id,
            OrderModel.tenant_id == TripModel.tenant_id,
        )
        .correlate(TripModel)
        .scalar_subquery()
    )
    result = await session.execute(
        select(TripModel.tenant_id, TripModel.id).where(TripModel.order_count != live)
    )
    return [(tenant_id, trip_id) for tenant_id, trip_id in result.all()]
