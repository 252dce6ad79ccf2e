"""
Driver Pay Calculator  (Strategy Pattern)
=========================================

One strategy per pay model, selected from the driver's ``pay_type``:

* **percentage_of_carrier_pay** -- driver earns ``rate %`` of clean gross
  (revenue - broker fee).  Despite the name the rate applies to net-of-fee
  revenue, not to the trip's carrier pay.
* **dispatch_fee_percent** -- the company keeps ``rate %`` of clean gross as
  its dispatch fee; the driver (usually an owner-operator) gets the rest.
* **per_car**  -- flat ``rate`` x number of orders on the trip.
* **per_mile** -- ``rate`` x sum of the orders' ``distance_miles``.

For the two percentage models an order's ``pay_rate_override`` replaces the
driver's rate for that order's share.  No driver means no pay.  The result
is rounded to cents so downstream net-profit arithmetic stays exact.

Complexity: O(n) in the number of orders.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional, Sequence

from .entities import DriverPayConfig, OrderLine
from .enums import DriverPayType
from .money import ZERO, percent_of, quantize


# ── Strategy hierarchy ────────────────────────────────────────────────


class PayModel(ABC):
    def __init__(self, pay_rate: Decimal):
        self.pay_rate = pay_rate

    @abstractmethod
    def calculate(self, orders: Sequence[OrderLine]) -> Decimal: ...

    def rate_for(self, order: OrderLine) -> Decimal:
        if order.pay_rate_override is not None:
            return order.pay_rate_override
        return self.pay_rate


class PercentageOfCarrierPay(PayModel):
    def calculate(self, orders: Sequence[OrderLine]) -> Decimal:
        return sum(
            (percent_of(o.clean_gross, self.rate_for(o)) for o in orders), ZERO
        )


class DispatchFeePercent(PayModel):
    """Driver keeps clean gross minus the company's dispatch fee."""

    def calculate(self, orders: Sequence[OrderLine]) -> Decimal:
        clean_gross = sum((o.clean_gross for o in orders), ZERO)
        return clean_gross - self.dispatch_fee(orders)

    def dispatch_fee(self, orders: Sequence[OrderLine]) -> Decimal:
        return sum(
            (percent_of(o.clean_gross, self.rate_for(o)) for o in orders), ZERO
        )


class PerCar(PayModel):
    def calculate(self, orders: Sequence[OrderLine]) -> Decimal:
        return self.pay_rate * len(orders)


class PerMile(PayModel):
    def calculate(self, orders: Sequence[OrderLine]) -> Decimal:
        miles = sum((o.distance_miles for o in orders), ZERO)
        return self.pay_rate * miles


PAY_MODELS: dict[DriverPayType, type[PayModel]] = {
    DriverPayType.PERCENTAGE_OF_CARRIER_PAY: PercentageOfCarrierPay,
    DriverPayType.DISPATCH_FEE_PERCENT: DispatchFeePercent,
    DriverPayType.PER_CAR: PerCar,
    DriverPayType.PER_MILE: PerMile,
}


def pay_model_for(driver: DriverPayConfig) -> PayModel:
    model = PAY_MODELS[DriverPayType(driver.pay_type)]
    return model(driver.pay_rate)


# ── Calculator facade ─────────────────────────────────────────────────


class DriverPayCalculator:
    """High-level API used by the trip financials engine."""

    def __init__(self, places: int = 2):
        self.places = places

    def calculate(
        self, driver: Optional[DriverPayConfig], orders: Sequence[OrderLine]
    ) -> Decimal:
        if driver is None:
            return quantize(ZERO, self.places)
        raw = pay_model_for(driver).calculate(orders)
        return quantize(raw, self.places)

    def dispatch_fee(
        self, driver: Optional[DriverPayConfig], orders: Sequence[OrderLine]
    ) -> Decimal:
        """The company's cut under ``dispatch_fee_percent``; zero otherwise."""
        model = pay_model_for(driver) if driver is not None else None
        if not isinstance(model, DispatchFeePercent):
            return quantize(ZERO, self.places)
        return quantize(model.dispatch_fee(orders), self.places)
