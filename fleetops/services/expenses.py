"""Trip expense CRUD.  Every change recomputes the owning trip."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from fleetops.domain.enums import ExpenseCategory
from fleetops.domain.errors import NotFoundError, ValidationError
from fleetops.domain.money import to_money
from fleetops.domain.trip_financials import TripFinancials
from fleetops.infrastructure.models import TripExpenseModel
from fleetops.infrastructure.repositories import TripExpenseRepository, TripRepository
from .trip_financials import TripFinancialsEngine
from .workflow import TenantService

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass
class ExpenseResult:
    expense: Optional[TripExpenseModel]
    trip: TripFinancials


def _category(value: Any) -> ExpenseCategory:
    try:
        return ExpenseCategory(value)
    except ValueError:
        raise ValidationError(
            f"Invalid expense category: {value}", {"category": str(value)}
        ) from None


def _amount(value: Any):
    amount = to_money(value)
    if amount < 0:
        raise ValidationError("Expense amount must not be negative")
    return amount


class TripExpenseService(TenantService):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.financials = TripFinancialsEngine(
            self.session_factory, self.tenant_id, locks=self.locks, clock=self.clock
        )

    async def list_expenses(self, trip_id: int) -> list[TripExpenseModel]:
        async with self.session_factory() as session:
            if await TripRepository(session, self.tenant_id).get_by_id(trip_id) is None:
                raise NotFoundError("Trip", trip_id)
            return await TripExpenseRepository(session, self.tenant_id).list_for_trip(trip_id)

    async def create_expense(
        self,
        trip_id: int,
        *,
        category: Any,
        amount: Any,
        custom_label: Optional[str] = None,
        notes: Optional[str] = None,
        expense_date: Optional[date] = None,
    ) -> ExpenseResult:
        category = _category(category)
        value = _amount(amount)

        async with self.step("create_expense") as session:
            if await TripRepository(session, self.tenant_id).get_by_id(trip_id) is None:
                raise NotFoundError("Trip", trip_id)
            expense = await TripExpenseRepository(session, self.tenant_id).add(
                trip_id=trip_id,
                category=category,
                amount=value,
                custom_label=custom_label or None,
                notes=notes or None,
                expense_date=expense_date,
            )

        logger.info(
            "Trip %s: added %s expense %s (tenant %s)",
            trip_id,
            category.value,
            value,
            self.tenant_id,
        )
        financials = (await self.financials.recalculate_many([trip_id]))[0]
        return ExpenseResult(expense=expense, trip=financials)

    async def update_expense(
        self,
        trip_id: int,
        expense_id: int,
        *,
        category: Any = _UNSET,
        amount: Any = _UNSET,
        custom_label: Any = _UNSET,
        notes: Any = _UNSET,
        expense_date: Any = _UNSET,
    ) -> ExpenseResult:
        changes: dict[str, Any] = {}
        if category is not _UNSET:
            changes["category"] = _category(category)
        if amount is not _UNSET:
            changes["amount"] = _amount(amount)
        if custom_label is not _UNSET:
            changes["custom_label"] = custom_label or None
        if notes is not _UNSET:
            changes["notes"] = notes or None
        if expense_date is not _UNSET:
            changes["expense_date"] = expense_date

        async with self.step("update_expense") as session:
            expense = await self._require_expense(session, trip_id, expense_id)
            for name, value in changes.items():
                setattr(expense, name, value)

        financials = (await self.financials.recalculate_many([trip_id]))[0]
        return ExpenseResult(expense=expense, trip=financials)

    async def delete_expense(self, trip_id: int, expense_id: int) -> ExpenseResult:
        async with self.step("delete_expense") as session:
            expense = await self._require_expense(session, trip_id, expense_id)
            await TripExpenseRepository(session, self.tenant_id).delete(expense)

        logger.info(
            "Trip %s: removed expense %s (tenant %s)", trip_id, expense_id, self.tenant_id
        )
        financials = (await self.financials.recalculate_many([trip_id]))[0]
        return ExpenseResult(expense=None, trip=financials)

    async def _require_expense(self, session, trip_id: int, expense_id: int) -> TripExpenseModel:
        expense = await TripExpenseRepository(session, self.tenant_id).get_by_id(expense_id)
        if expense is None or expense.trip_id != trip_id:
            raise NotFoundError("Expense", expense_id)
        return expense
