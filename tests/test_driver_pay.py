"""Unit tests for the driver pay strategies and calculator facade."""

from decimal import Decimal

import pytest

from fleetops.domain.driver_pay import (
    DispatchFeePercent,
    DriverPayCalculator,
    PercentageOfCarrierPay,
    PerCar,
    PerMile,
    pay_model_for,
)
from fleetops.domain.entities import DriverPayConfig, OrderLine
from fleetops.domain.enums import DriverPayType, DriverType


def _driver(pay_type, rate):
    return DriverPayConfig(DriverType.COMPANY, pay_type, Decimal(rate))


def _order(revenue, fee="0", miles="0", override=None):
    return OrderLine(
        revenue=Decimal(revenue),
        broker_fee=Decimal(fee),
        distance_miles=Decimal(miles),
        pay_rate_override=Decimal(override) if override is not None else None,
    )


class TestPayModels:
    def test_percentage_applies_to_clean_gross(self):
        model = PercentageOfCarrierPay(Decimal("60"))
        assert model.calculate([_order("1000", "100")]) == Decimal("540")

    def test_dispatch_fee_driver_keeps_remainder(self):
        model = DispatchFeePercent(Decimal("10"))
        orders = [_order("5000", "500")]
        assert model.calculate(orders) == Decimal("4050")
        assert model.dispatch_fee(orders) == Decimal("450")

    def test_per_car(self):
        model = PerCar(Decimal("75"))
        assert model.calculate([_order("100"), _order("200"), _order("300")]) == Decimal("225")

    def test_per_mile_uses_order_distances(self):
        model = PerMile(Decimal("0.55"))
        orders = [_order("100", miles="400"), _order("100", miles="250.5")]
        assert model.calculate(orders) == Decimal("357.775")

    def test_override_replaces_rate_for_that_order(self):
        model = PercentageOfCarrierPay(Decimal("50"))
        orders = [_order("1000"), _order("1000", override="20")]
        assert model.calculate(orders) == Decimal("700")

    @pytest.mark.parametrize(
        "pay_type, cls",
        [
            (DriverPayType.PERCENTAGE_OF_CARRIER_PAY, PercentageOfCarrierPay),
            (DriverPayType.DISPATCH_FEE_PERCENT, DispatchFeePercent),
            (DriverPayType.PER_CAR, PerCar),
            (DriverPayType.PER_MILE, PerMile),
        ],
    )
    def test_model_selected_from_pay_type(self, pay_type, cls):
        assert isinstance(pay_model_for(_driver(pay_type, "1")), cls)


class TestDriverPayCalculator:
    def setup_method(self):
        self.calculator = DriverPayCalculator()

    def test_no_driver_means_no_pay(self):
        assert self.calculator.calculate(None, [_order("1000")]) == Decimal("0.00")

    def test_no_orders_means_no_pay(self):
        driver = _driver(DriverPayType.PERCENTAGE_OF_CARRIER_PAY, "60")
        assert self.calculator.calculate(driver, []) == Decimal("0.00")

    def test_result_rounded_to_cents(self):
        driver = _driver(DriverPayType.PER_MILE, "0.55")
        orders = [_order("100", miles="400"), _order("100", miles="250.5")]
        assert self.calculator.calculate(driver, orders) == Decimal("357.78")

    def test_percentage_result(self):
        driver = _driver(DriverPayType.PERCENTAGE_OF_CARRIER_PAY, "60")
        assert self.calculator.calculate(driver, [_order("1000", "100")]) == Decimal("540.00")

    def test_dispatch_fee_only_for_dispatch_fee_drivers(self):
        orders = [_order("5000", "500"), _order("1000", "0", override="15")]
        owner_op = _driver(DriverPayType.DISPATCH_FEE_PERCENT, "10")
        assert self.calculator.dispatch_fee(owner_op, orders) == Decimal("600.00")
        assert self.calculator.calculate(owner_op, orders) == Decimal("4900.00")

        company = _driver(DriverPayType.PER_CAR, "150")
        assert self.calculator.dispatch_fee(company, orders) == Decimal("0.00")
        assert self.calculator.dispatch_fee(None, orders) == Decimal("0.00")
