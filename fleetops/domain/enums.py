"""Domain enumerations and state-transition rules."""

from __future__ import annotations

import enum
from typing import Optional


class OrderStatus(str, enum.Enum):
    NEW = "new"
    ASSIGNED = "assigned"
    PICKED_UP = "picked_up"
    DELIVERED = "delivered"
    INVOICED = "invoiced"
    PAID = "paid"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is OrderStatus.CANCELLED

    @property
    def position(self) -> Optional[int]:
        """Index in the linear progression, ``None`` for ``cancelled``."""
        if self.is_terminal:
            return None
        return ORDER_PROGRESSION.index(self)

    def next(self) -> Optional["OrderStatus"]:
        pos = self.position
        if pos is None or pos + 1 >= len(ORDER_PROGRESSION):
            return None
        return ORDER_PROGRESSION[pos + 1]

    def previous(self) -> Optional["OrderStatus"]:
        pos = self.position
        if not pos:
            return None
        return ORDER_PROGRESSION[pos - 1]

    # Ordering follows the progression, not the string values.
    def _positions(self, other: object) -> tuple[int, int]:
        if not isinstance(other, OrderStatus):
            raise TypeError(f"cannot compare OrderStatus with {type(other).__name__}")
        if self.is_terminal or other.is_terminal:
            raise TypeError("cancelled has no place in the order progression")
        return self.position, other.position

    def __lt__(self, other: object) -> bool:
        a, b = self._positions(other)
        return a < b

    def __le__(self, other: object) -> bool:
        a, b = self._positions(other)
        return a <= b

    def __gt__(self, other: object) -> bool:
        a, b = self._positions(other)
        return a > b

    def __ge__(self, other: object) -> bool:
        a, b = self._positions(other)
        return a >= b


# Linear progression of a healthy order; ``cancelled`` sits outside it.
ORDER_PROGRESSION: tuple[OrderStatus, ...] = (
    OrderStatus.NEW,
    OrderStatus.ASSIGNED,
    OrderStatus.PICKED_UP,
    OrderStatus.DELIVERED,
    OrderStatus.INVOICED,
    OrderStatus.PAID,
)


class PaymentStatus(str, enum.Enum):
    UNPAID = "unpaid"
    INVOICED = "invoiced"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"


class TripStatus(str, enum.Enum):
    PLANNED = "planned"
    IN_PROGRESS = "in_progress"
    AT_TERMINAL = "at_terminal"
    COMPLETED = "completed"


# Trip status -> status forced onto every member order.
# ``at_terminal`` leaves orders untouched.
TRIP_TO_ORDER_STATUS: dict[TripStatus, OrderStatus] = {
    TripStatus.IN_PROGRESS: OrderStatus.PICKED_UP,
    TripStatus.COMPLETED: OrderStatus.DELIVERED,
    TripStatus.PLANNED: OrderStatus.ASSIGNED,
}


class DriverType(str, enum.Enum):
    COMPANY = "company"
    OWNER_OPERATOR = "owner_operator"
    LOCAL_DRIVER = "local_driver"


class DriverPayType(str, enum.Enum):
    PERCENTAGE_OF_CARRIER_PAY = "percentage_of_carrier_pay"
    DISPATCH_FEE_PERCENT = "dispatch_fee_percent"
    PER_MILE = "per_mile"
    PER_CAR = "per_car"


class ExpenseCategory(str, enum.Enum):
    FUEL = "fuel"
    TOLLS = "tolls"
    REPAIRS = "repairs"
    LODGING = "lodging"
    MISC = "misc"


class Recurrence(str, enum.Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"
    ONE_TIME = "one_time"
