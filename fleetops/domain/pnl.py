"""
Fleet Profit & Loss Engine
==========================

Revenue waterfall
-----------------
  clean_gross  = revenue - broker_fees - local_fees
  truck_gross  = clean_gross - driver_pay
  gross_margin = truck_gross / revenue x 100            (0 without revenue)

Operating expenses
------------------
  direct_trip_costs        = fuel + tolls + maintenance + lodging + misc
  total_operating_expenses = fixed_costs + direct_trip_costs + carrier_pay

Bottom line
-----------
  net_profit_before_tax = truck_gross - total_operating_expenses
  net_margin            = net_profit_before_tax / revenue x 100
  break_even_revenue    = fixed_costs / (truck_gross / revenue)
                          (None unless truck_gross and revenue are positive)

Unit metrics divide by truck count, completed trip count, cars hauled or
total miles; every ratio is ``None`` when its denominator is zero.

All functions are pure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from .money import ZERO, quantize, ratio_percent, safe_divide


# ── Input / output types ──────────────────────────────────────────────


@dataclass
class PnLInput:
    total_revenue: Decimal = ZERO
    total_broker_fees: Decimal = ZERO
    total_local_fees: Decimal = ZERO
    total_driver_pay: Decimal = ZERO

    fuel_costs: Decimal = ZERO
    toll_costs: Decimal = ZERO
    maintenance_costs: Decimal = ZERO
    lodging_costs: Decimal = ZERO
    misc_costs: Decimal = ZERO

    total_carrier_pay: Decimal = ZERO

    fixed_expenses_by_category: dict[str, Decimal] = field(default_factory=dict)
    total_fixed_expenses: Decimal = ZERO

    truck_count: int = 0
    completed_trip_count: int = 0
    cars_hauled: int = 0
    total_miles: Decimal = ZERO
    order_count: int = 0


@dataclass(frozen=True)
class PnLStatement:
    revenue: Decimal
    broker_fees: Decimal
    local_fees: Decimal
    clean_gross: Decimal
    driver_pay: Decimal
    truck_gross: Decimal
    gross_profit_margin: Decimal

    fixed_costs: Decimal
    fixed_costs_by_category: dict[str, Decimal]
    direct_trip_costs: Decimal
    fuel_costs: Decimal
    toll_costs: Decimal
    maintenance_costs: Decimal
    lodging_costs: Decimal
    misc_costs: Decimal
    carrier_pay: Decimal
    total_operating_expenses: Decimal

    net_profit_before_tax: Decimal
    net_margin: Decimal
    break_even_revenue: Optional[Decimal]


@dataclass(frozen=True)
class UnitMetrics:
    revenue_per_truck: Optional[Decimal]
    truck_gross_per_truck: Optional[Decimal]
    fixed_cost_per_truck: Optional[Decimal]
    net_profit_per_truck: Optional[Decimal]

    revenue_per_trip: Optional[Decimal]
    truck_gross_per_trip: Optional[Decimal]
    appc: Optional[Decimal]
    overhead_per_trip: Optional[Decimal]
    direct_cost_per_trip: Optional[Decimal]
    net_profit_per_trip: Optional[Decimal]

    rpm: Optional[Decimal]
    truck_gross_per_mile: Optional[Decimal]
    fixed_cost_per_mile: Optional[Decimal]
    fuel_cost_per_mile: Optional[Decimal]
    net_profit_per_mile: Optional[Decimal]

    trucks_in_service: int
    trip_count: int
    cars_hauled: int
    total_miles: Decimal


@dataclass(frozen=True)
class KPIs:
    rpm: Optional[Decimal]
    cpm: Optional[Decimal]
    ppm: Optional[Decimal]
    appo: Decimal
    gross_margin: Decimal
    net_margin: Decimal
    operating_ratio: Decimal
    revenue_per_truck: Optional[Decimal]
    profit_per_truck: Optional[Decimal]
    miles_per_truck: Optional[Decimal]
    net_profit: Decimal
    total_expenses: Decimal


@dataclass(frozen=True)
class ExpenseBreakdownItem:
    category: str
    label: str
    amount: Decimal
    percentage: Decimal


# ── Calculations ──────────────────────────────────────────────────────


def compute_pnl(data: PnLInput) -> PnLStatement:
    revenue = data.total_revenue
    clean_gross = revenue - data.total_broker_fees - data.total_local_fees
    truck_gross = clean_gross - data.total_driver_pay

    fixed_costs = data.total_fixed_expenses
    direct_trip_costs = (
        data.fuel_costs
        + data.toll_costs
        + data.maintenance_costs
        + data.lodging_costs
        + data.misc_costs
    )
    total_operating = fixed_costs + direct_trip_costs + data.total_carrier_pay
    net_profit = truck_gross - total_operating

    break_even: Optional[Decimal] = None
    if truck_gross > 0 and revenue > 0:
        break_even = fixed_costs / (truck_gross / revenue)

    return PnLStatement(
        revenue=revenue,
        broker_fees=data.total_broker_fees,
        local_fees=data.total_local_fees,
        clean_gross=clean_gross,
        driver_pay=data.total_driver_pay,
        truck_gross=truck_gross,
        gross_profit_margin=ratio_percent(truck_gross, revenue),
        fixed_costs=fixed_costs,
        fixed_costs_by_category=dict(data.fixed_expenses_by_category),
        direct_trip_costs=direct_trip_costs,
        fuel_costs=data.fuel_costs,
        toll_costs=data.toll_costs,
        maintenance_costs=data.maintenance_costs,
        lodging_costs=data.lodging_costs,
        misc_costs=data.misc_costs,
        carrier_pay=data.total_carrier_pay,
        total_operating_expenses=total_operating,
        net_profit_before_tax=net_profit,
        net_margin=ratio_percent(net_profit, revenue),
        break_even_revenue=break_even,
    )


def compute_unit_metrics(data: PnLInput, pnl: PnLStatement) -> UnitMetrics:
    trucks = data.truck_count
    trips = data.completed_trip_count
    miles = data.total_miles

    return UnitMetrics(
        revenue_per_truck=safe_divide(pnl.revenue, trucks),
        truck_gross_per_truck=safe_divide(pnl.truck_gross, trucks),
        fixed_cost_per_truck=safe_divide(pnl.fixed_costs, trucks),
        net_profit_per_truck=safe_divide(pnl.net_profit_before_tax, trucks),
        revenue_per_trip=safe_divide(pnl.revenue, trips),
        truck_gross_per_trip=safe_divide(pnl.truck_gross, trips),
        appc=safe_divide(pnl.revenue, data.cars_hauled),
        overhead_per_trip=safe_divide(pnl.fixed_costs, trips),
        direct_cost_per_trip=safe_divide(pnl.direct_trip_costs, trips),
        net_profit_per_trip=safe_divide(pnl.net_profit_before_tax, trips),
        rpm=safe_divide(pnl.revenue, miles),
        truck_gross_per_mile=safe_divide(pnl.truck_gross, miles),
        fixed_cost_per_mile=safe_divide(pnl.fixed_costs, miles),
        fuel_cost_per_mile=safe_divide(pnl.fuel_costs, miles),
        net_profit_per_mile=safe_divide(pnl.net_profit_before_tax, miles),
        trucks_in_service=trucks,
        trip_count=trips,
        cars_hauled=data.cars_hauled,
        total_miles=miles,
    )


def compute_kpis(data: PnLInput) -> KPIs:
    """Dashboard KPIs: trip-level costs only, fixed overhead excluded."""
    revenue = data.total_revenue
    trip_expenses = (
        data.fuel_costs
        + data.toll_costs
        + data.maintenance_costs
        + data.lodging_costs
        + data.misc_costs
    )
    total_expenses = (
        data.total_broker_fees
        + data.total_driver_pay
        + trip_expenses
        + data.total_carrier_pay
    )
    net_profit = revenue - total_expenses
    miles = data.total_miles
    trucks = data.truck_count

    miles_per_truck = None
    if miles > 0:
        miles_per_truck = safe_divide(miles, trucks)

    return KPIs(
        rpm=safe_divide(revenue, miles),
        cpm=safe_divide(total_expenses, miles),
        ppm=safe_divide(net_profit, miles),
        appo=safe_divide(revenue, data.order_count) or ZERO,
        gross_margin=ratio_percent(
            revenue - data.total_broker_fees - data.total_driver_pay, revenue
        ),
        net_margin=ratio_percent(net_profit, revenue),
        operating_ratio=ratio_percent(total_expenses, revenue),
        revenue_per_truck=safe_divide(revenue, trucks),
        profit_per_truck=safe_divide(net_profit, trucks),
        miles_per_truck=miles_per_truck,
        net_profit=net_profit,
        total_expenses=total_expenses,
    )


_BREAKDOWN_LABELS = (
    ("driver_pay", "Driver Pay"),
    ("broker_fees", "Broker Fees"),
    ("carrier_pay", "Carrier Pay"),
    ("fuel", "Fuel"),
    ("tolls", "Tolls"),
    ("repairs", "Repairs"),
    ("lodging", "Lodging"),
    ("misc", "Misc"),
)


def expense_breakdown(amounts: dict[str, Decimal]) -> list[ExpenseBreakdownItem]:
    """
    Share of each cost bucket in the total, to one decimal place.

    Buckets with a zero amount are dropped; the rest are sorted largest
    first.  Unknown keys in *amounts* are ignored.
    """
    values = {key: amounts.get(key, ZERO) for key, _ in _BREAKDOWN_LABELS}
    grand_total = sum(values.values(), ZERO)

    items = []
    for key, label in _BREAKDOWN_LABELS:
        amount = values[key]
        if amount <= 0:
            continue
        share = ratio_percent(amount, grand_total)
        items.append(ExpenseBreakdownItem(key, label, amount, quantize(share, 1)))
    items.sort(key=lambda i: i.amount, reverse=True)
    return items


def pnl_input_from_trip_costs(
    direct_costs: dict[str, Decimal], **kwargs: Any
) -> PnLInput:
    """Build a ``PnLInput`` mapping expense categories onto cost buckets."""
    return PnLInput(
        fuel_costs=direct_costs.get("fuel", ZERO),
        toll_costs=direct_costs.get("tolls", ZERO),
        maintenance_costs=direct_costs.get("repairs", ZERO),
        lodging_costs=direct_costs.get("lodging", ZERO),
        misc_costs=direct_costs.get("misc", ZERO),
        **kwargs,
    )
