"""
Order status machine.

    new -> assigned -> picked_up -> delivered -> invoiced -> paid
                          (any) -> cancelled   (absorbing, needs a reason)

``advance_status`` lets callers set any known status directly; the linear
order is a convention for normal progression, not enforced here.
``rollback_status`` is the only adjacency-checked move: it always steps to
``status.previous()``.

Both functions mutate *order* in place and touch nothing else.  The order
is anything carrying the status, reason and stamp attributes (in practice
an ORM row); the caller owns persistence and any trip recomputation that
follows.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Optional

from .enums import OrderStatus
from .errors import InvalidStateTransition, ValidationError

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_status(value: Any) -> OrderStatus:
    """Coerce *value* to ``OrderStatus`` or raise ``ValidationError``."""
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError(
            f"Invalid status: {value}", {"status": str(value)}
        ) from None


def advance_status(
    order: Any,
    new_status: Any,
    reason: Optional[str] = None,
    clock: Clock = utcnow,
) -> OrderStatus:
    """Set *order* to *new_status*, stamping actual dates on the way."""
    target = parse_status(new_status)
    current = parse_status(order.status)

    cleaned_reason = (reason or "").strip()
    if target is OrderStatus.CANCELLED and not cleaned_reason:
        raise ValidationError("A reason is required when cancelling an order")

    if current is OrderStatus.CANCELLED and target is not OrderStatus.CANCELLED:
        raise InvalidStateTransition(
            f"Cannot transition from {current.value} to {target.value}: "
            "cancelled orders are final"
        )

    order.status = target
    if target is OrderStatus.CANCELLED:
        order.cancelled_reason = cleaned_reason
    elif target is OrderStatus.PICKED_UP:
        order.actual_pickup_date = clock()
    elif target is OrderStatus.DELIVERED:
        order.actual_delivery_date = clock()
    return target


def rollback_status(order: Any) -> OrderStatus:
    """Step *order* back to the status immediately before its current one."""
    current = parse_status(order.status)

    if current is OrderStatus.CANCELLED:
        raise InvalidStateTransition("Cancelled orders cannot be rolled back")

    previous = current.previous()
    if previous is None:
        raise InvalidStateTransition(
            "Cannot roll back further -- order is already at the initial status"
        )

    order.status = previous
    if current is OrderStatus.PICKED_UP:
        order.actual_pickup_date = None
    elif current is OrderStatus.DELIVERED:
        order.actual_delivery_date = None
    return previous
