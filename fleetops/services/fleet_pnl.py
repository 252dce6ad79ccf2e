"""
Period P&L aggregation.

Read side only: assembles a ``PnLInput`` for ``[start, end]`` from stored
rows and hands it to the pure engine in ``domain.pnl``.

Scope of a period
-----------------
* trips whose ``start_date`` falls inside the period;
* revenue, broker / local fees, cars hauled and miles from the
  non-cancelled orders on those trips;
* driver pay from the trips' persisted snapshots, carrier pay from the
  trips' input field;
* direct costs from those trips' expenses by category;
* fixed costs from business expenses prorated onto the period;
* truck count = distinct trucks used, trip count = trips ``completed``.

Trip snapshots are eventually consistent with their orders; a trip whose
recomputation is still pending contributes its last written driver pay.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, Optional

from fleetops.domain.enums import OrderStatus, Recurrence, TripStatus
from fleetops.domain.errors import ValidationError
from fleetops.domain.money import ZERO, prorate, quantize, to_money
from fleetops.domain.pnl import (
    KPIs,
    ExpenseBreakdownItem,
    PnLInput,
    PnLStatement,
    UnitMetrics,
    compute_kpis,
    compute_pnl,
    compute_unit_metrics,
    expense_breakdown,
    pnl_input_from_trip_costs,
)
from fleetops.infrastructure.models import BusinessExpenseModel
from fleetops.infrastructure.repositories import (
    BusinessExpenseRepository,
    OrderRepository,
    TripExpenseRepository,
    TripRepository,
)
from .workflow import TenantService

logger = logging.getLogger(__name__)


@dataclass
class FixedExpenseBreakdown:
    by_category: dict[str, Decimal] = field(default_factory=dict)
    total: Decimal = ZERO
    truck_specific: Decimal = ZERO
    company_wide: Decimal = ZERO


@dataclass
class PnLReport:
    start: date
    end: date
    input: PnLInput
    pnl: PnLStatement
    metrics: UnitMetrics
    kpis: KPIs
    breakdown: list[ExpenseBreakdownItem]
    fixed: FixedExpenseBreakdown


def summarize_fixed_expenses(
    rows: Iterable[Any], start: date, end: date
) -> FixedExpenseBreakdown:
    result = FixedExpenseBreakdown()
    for row in rows:
        share = prorate(
            row.amount,
            Recurrence(row.recurrence),
            row.effective_from,
            row.effective_to,
            start,
            end,
        )
        if share == 0:
            continue
        result.by_category[row.category] = result.by_category.get(row.category, ZERO) + share
        result.total += share
        if row.truck_id is not None:
            result.truck_specific += share
        else:
            result.company_wide += share
    result.total = quantize(result.total)
    result.truck_specific = quantize(result.truck_specific)
    result.company_wide = quantize(result.company_wide)
    return result


class FleetPnLService(TenantService):
    async def build_input(
        self, start: date, end: date
    ) -> tuple[PnLInput, FixedExpenseBreakdown]:
        if end < start:
            raise ValidationError("Period end must not be before its start")

        async with self.session_factory() as session:
            trips = await TripRepository(session, self.tenant_id).list_in_period(start, end)
            trip_ids = [t.id for t in trips]
            orders = [
                o
                for o in await OrderRepository(session, self.tenant_id).list_for_trips(trip_ids)
                if o.status is not OrderStatus.CANCELLED
            ]
            direct_costs = await TripExpenseRepository(
                session, self.tenant_id
            ).totals_by_category(trip_ids)
            fixed_rows = await BusinessExpenseRepository(
                session, self.tenant_id
            ).list_overlapping(start, end)

        fixed = summarize_fixed_expenses(fixed_rows, start, end)
        data = pnl_input_from_trip_costs(
            direct_costs,
            total_revenue=sum((to_money(o.revenue) for o in orders), ZERO),
            total_broker_fees=sum((to_money(o.broker_fee) for o in orders), ZERO),
            total_local_fees=sum((to_money(o.local_fee) for o in orders), ZERO),
            total_driver_pay=sum((to_money(t.driver_pay) for t in trips), ZERO),
            total_carrier_pay=sum((to_money(t.carrier_pay) for t in trips), ZERO),
            fixed_expenses_by_category=dict(fixed.by_category),
            total_fixed_expenses=fixed.total,
            truck_count=len({t.truck_id for t in trips if t.truck_id is not None}),
            completed_trip_count=sum(1 for t in trips if t.status is TripStatus.COMPLETED),
            cars_hauled=len(orders),
            total_miles=sum((to_money(o.distance_miles) for o in orders), ZERO),
            order_count=len(orders),
        )
        return data, fixed

    async def report(self, start: date, end: date) -> PnLReport:
        data, fixed = await self.build_input(start, end)
        pnl = compute_pnl(data)
        report = PnLReport(
            start=start,
            end=end,
            input=data,
            pnl=pnl,
            metrics=compute_unit_metrics(data, pnl),
            kpis=compute_kpis(data),
            breakdown=expense_breakdown(
                {
                    "driver_pay": data.total_driver_pay,
                    "broker_fees": data.total_broker_fees,
                    "carrier_pay": data.total_carrier_pay,
                    "fuel": data.fuel_costs,
                    "tolls": data.toll_costs,
                    "repairs": data.maintenance_costs,
                    "lodging": data.lodging_costs,
                    "misc": data.misc_costs,
                }
            ),
            fixed=fixed,
        )
        logger.info(
            "P&L %s..%s (tenant %s): revenue=%s net=%s",
            start,
            end,
            self.tenant_id,
            pnl.revenue,
            pnl.net_profit_before_tax,
        )
        return report

    async def create_business_expense(
        self,
        *,
        name: str,
        category: str,
        amount: Any,
        recurrence: Any,
        effective_from: date,
        effective_to: Optional[date] = None,
        truck_id: Optional[int] = None,
    ) -> BusinessExpenseModel:
        try:
            recurrence = Recurrence(recurrence)
        except ValueError:
            raise ValidationError(f"Invalid recurrence: {recurrence}") from None
        value = to_money(amount)
        if value < 0:
            raise ValidationError("Expense amount must not be negative")
        if effective_to is not None and effective_to < effective_from:
            raise ValidationError("effective_to must not be before effective_from")

        async with self.step("create_business_expense") as session:
            expense = await BusinessExpenseRepository(session, self.tenant_id).add(
                name=name,
                category=category,
                amount=value,
                recurrence=recurrence,
                effective_from=effective_from,
                effective_to=effective_to,
                truck_id=truck_id,
            )
        return expense
