"""Unit tests for money parsing, rounding and expense proration."""

from datetime import date
from decimal import Decimal

import pytest

from fleetops.domain.enums import Recurrence
from fleetops.domain.money import (
    months_between,
    prorate,
    quantize,
    ratio_percent,
    safe_divide,
    to_money,
    to_optional_money,
)


class TestToMoney:
    @pytest.mark.parametrize("value", [None, "", "abc", True, float("nan"), "Infinity"])
    def test_unparseable_is_zero(self, value):
        assert to_money(value) == Decimal("0")

    def test_float_keeps_short_repr(self):
        assert to_money(0.1) == Decimal("0.1")

    def test_string_and_int(self):
        assert to_money(" 12.50 ") == Decimal("12.50")
        assert to_money(7) == Decimal("7")

    def test_optional_blank_is_none(self):
        assert to_optional_money(None) is None
        assert to_optional_money("  ") is None
        assert to_optional_money("5") == Decimal("5")


class TestRounding:
    def test_half_up(self):
        assert quantize(Decimal("2.345")) == Decimal("2.35")
        assert quantize(Decimal("2.344")) == Decimal("2.34")

    def test_safe_divide_zero_denominator(self):
        assert safe_divide(Decimal("10"), 0) is None
        assert safe_divide(Decimal("10"), 4) == Decimal("2.5")

    def test_ratio_percent_non_positive_whole(self):
        assert ratio_percent(Decimal("5"), Decimal("0")) == 0
        assert ratio_percent(Decimal("25"), Decimal("200")) == Decimal("12.5")


class TestProration:
    def test_months_between_is_inclusive(self):
        assert months_between(date(2026, 1, 15), date(2026, 1, 20)) == 1
        assert months_between(date(2026, 1, 1), date(2026, 3, 31)) == 3
        assert months_between(date(2025, 11, 1), date(2026, 2, 1)) == 4
        assert months_between(date(2026, 3, 1), date(2026, 1, 1)) == 0

    def test_monthly_over_quarter(self):
        share = prorate(
            "1000", Recurrence.MONTHLY, date(2025, 1, 1), None,
            date(2026, 1, 1), date(2026, 3, 31),
        )
        assert share == Decimal("3000.00")

    def test_quarterly_single_month(self):
        share = prorate(
            "900", Recurrence.QUARTERLY, date(2026, 1, 1), None,
            date(2026, 2, 1), date(2026, 2, 28),
        )
        assert share == Decimal("300.00")

    def test_annual_rounds_to_cents(self):
        share = prorate(
            "1000", Recurrence.ANNUAL, date(2026, 1, 1), None,
            date(2026, 1, 1), date(2026, 1, 31),
        )
        assert share == Decimal("83.33")

    def test_effective_window_clips_overlap(self):
        share = prorate(
            "100", Recurrence.MONTHLY, date(2026, 2, 10), date(2026, 3, 5),
            date(2026, 1, 1), date(2026, 6, 30),
        )
        assert share == Decimal("200.00")

    def test_expense_ended_before_period(self):
        share = prorate(
            "100", Recurrence.MONTHLY, date(2025, 1, 1), date(2025, 6, 30),
            date(2026, 1, 1), date(2026, 1, 31),
        )
        assert share == 0

    def test_one_time_counts_only_inside_period(self):
        inside = prorate(
            "500", Recurrence.ONE_TIME, date(2026, 1, 10), None,
            date(2026, 1, 1), date(2026, 1, 31),
        )
        before = prorate(
            "500", Recurrence.ONE_TIME, date(2025, 12, 10), None,
            date(2026, 1, 1), date(2026, 1, 31),
        )
        assert inside == Decimal("500.00")
        assert before == 0
