"""
Trip financial snapshot.

    revenue     = sum(order.revenue)
    broker_fees = sum(order.broker_fee)
    expenses    = sum(expense.amount)
    driver_pay  = DriverPayCalculator(driver, orders)
    net_profit  = revenue - broker_fees - driver_pay - expenses - carrier_pay

Local fees and the dispatch fee are reported alongside the snapshot but
never enter net profit: the local fee is informational and the dispatch fee
is already the difference between clean gross and driver pay.

Route summaries list the distinct pickup / delivery states in first-seen
order (orders are expected oldest first), joined with ``", "``.

Pure function of its inputs: calling it twice on the same data yields the
same snapshot, which is what makes full recomputation safe to repeat.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence

from .driver_pay import DriverPayCalculator
from .entities import DriverPayConfig, ExpenseLine, OrderLine
from .money import ZERO, quantize, safe_divide, to_money


@dataclass(frozen=True)
class TripFinancials:
    # persisted onto the trip row
    revenue: Decimal
    broker_fees: Decimal
    driver_pay: Decimal
    expenses: Decimal
    net_profit: Decimal
    order_count: int
    origin_summary: Optional[str]
    destination_summary: Optional[str]

    # derived, returned to callers only
    carrier_pay: Decimal = ZERO
    clean_gross: Decimal = ZERO
    truck_gross: Decimal = ZERO
    total_miles: Decimal = ZERO
    rpm: Optional[Decimal] = None
    cpm: Optional[Decimal] = None
    ppm: Optional[Decimal] = None
    appc: Optional[Decimal] = None
    local_fees: Decimal = ZERO
    dispatch_fee: Decimal = ZERO

    def snapshot_columns(self) -> dict[str, Any]:
        """Column values for the trip row, written in a single update."""
        return {
            "total_revenue": self.revenue,
            "total_broker_fees": self.broker_fees,
            "driver_pay": self.driver_pay,
            "total_expenses": self.expenses,
            "net_profit": self.net_profit,
            "order_count": self.order_count,
            "origin_summary": self.origin_summary,
            "destination_summary": self.destination_summary,
        }


def summarize_states(states: Iterable[Optional[str]]) -> Optional[str]:
    """Distinct non-empty states, first occurrence wins, or ``None``."""
    seen: list[str] = []
    for state in states:
        if state and state not in seen:
            seen.append(state)
    return ", ".join(seen) if seen else None


def calculate_trip_financials(
    orders: Sequence[OrderLine],
    driver: Optional[DriverPayConfig],
    expenses: Sequence[ExpenseLine],
    carrier_pay: Any,
    calculator: Optional[DriverPayCalculator] = None,
) -> TripFinancials:
    calculator = calculator or DriverPayCalculator()
    carrier = to_money(carrier_pay)

    revenue = sum((o.revenue for o in orders), ZERO)
    broker_fees = sum((o.broker_fee for o in orders), ZERO)
    total_expenses = sum((e.amount for e in expenses), ZERO)
    driver_pay = calculator.calculate(driver, orders)

    net_profit = revenue - broker_fees - driver_pay - total_expenses - carrier

    clean_gross = revenue - broker_fees
    truck_gross = clean_gross - driver_pay
    total_miles = sum((o.distance_miles for o in orders), ZERO)
    total_costs = broker_fees + driver_pay + total_expenses + carrier

    return TripFinancials(
        revenue=revenue,
        broker_fees=broker_fees,
        driver_pay=driver_pay,
        expenses=total_expenses,
        net_profit=net_profit,
        order_count=len(orders),
        origin_summary=summarize_states(o.pickup_state for o in orders),
        destination_summary=summarize_states(o.delivery_state for o in orders),
        carrier_pay=carrier,
        clean_gross=clean_gross,
        truck_gross=truck_gross,
        total_miles=total_miles,
        rpm=_per(revenue, total_miles),
        cpm=_per(total_costs, total_miles),
        ppm=_per(net_profit, total_miles),
        appc=_per(revenue, len(orders)),
        local_fees=sum((o.local_fee for o in orders), ZERO),
        dispatch_fee=calculator.dispatch_fee(driver, orders),
    )


def _per(amount: Decimal, denominator: Any) -> Optional[Decimal]:
    value = safe_divide(amount, denominator)
    return quantize(value, 4) if value is not None else None
