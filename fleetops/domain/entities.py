"""
Domain value objects.

The calculators never see ORM rows: repositories convert rows into these
plain objects (``from_row``) so the arithmetic stays storage-agnostic.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from .enums import DriverPayType, DriverType, ExpenseCategory
from .money import ZERO, to_money, to_optional_money


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class DriverPayConfig:
    driver_type: DriverType
    pay_type: DriverPayType
    pay_rate: Decimal = ZERO

    @classmethod
    def from_row(cls, row: Any) -> Optional["DriverPayConfig"]:
        if row is None:
            return None
        return cls(
            driver_type=DriverType(row.driver_type),
            pay_type=DriverPayType(row.pay_type),
            pay_rate=to_money(row.pay_rate),
        )


@dataclass(frozen=True)
class OrderLine:
    """The slice of an order that trip financials are computed from."""

    revenue: Decimal = ZERO
    broker_fee: Decimal = ZERO
    local_fee: Decimal = ZERO
    distance_miles: Decimal = ZERO
    pay_rate_override: Optional[Decimal] = None
    pickup_state: Optional[str] = None
    delivery_state: Optional[str] = None

    @property
    def clean_gross(self) -> Decimal:
        return self.revenue - self.broker_fee

    @classmethod
    def from_row(cls, row: Any) -> "OrderLine":
        return cls(
            revenue=to_money(row.revenue),
            broker_fee=to_money(row.broker_fee),
            local_fee=to_money(getattr(row, "local_fee", None)),
            distance_miles=to_money(getattr(row, "distance_miles", None)),
            pay_rate_override=to_optional_money(
                getattr(row, "driver_pay_rate_override", None)
            ),
            pickup_state=getattr(row, "pickup_state", None),
            delivery_state=getattr(row, "delivery_state", None),
        )


@dataclass(frozen=True)
class ExpenseLine:
    amount: Decimal = ZERO
    category: ExpenseCategory = ExpenseCategory.MISC

    @classmethod
    def from_row(cls, row: Any) -> "ExpenseLine":
        return cls(
            amount=to_money(row.amount),
            category=ExpenseCategory(row.category),
        )
