"""
Payment recording.

A payment may not exceed the order's remaining balance
(``carrier_pay - amount_paid``) by more than a cent.  Once the running
total reaches the balance the order is ``paid``; any smaller positive total
is ``partially_paid``.  Payment status is independent of the lifecycle
status and no trip figure depends on it, so nothing is recomputed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from fleetops.domain.enums import PaymentStatus
from fleetops.domain.errors import NotFoundError, ValidationError
from fleetops.domain.money import CENT, quantize, to_money
from fleetops.infrastructure.models import OrderModel, PaymentModel
from fleetops.infrastructure.repositories import OrderRepository, PaymentRepository
from .workflow import TenantService

logger = logging.getLogger(__name__)


@dataclass
class PaymentResult:
    payment: PaymentModel
    order: OrderModel


def next_payment_status(balance, paid_total, current: PaymentStatus) -> PaymentStatus:
    if paid_total >= balance or abs(balance - paid_total) < CENT:
        return PaymentStatus.PAID
    if paid_total > 0:
        return PaymentStatus.PARTIALLY_PAID
    return current


class PaymentService(TenantService):
    async def record_payment(
        self,
        order_id: int,
        amount: Any,
        payment_date: date,
        notes: Optional[str] = None,
    ) -> PaymentResult:
        value = to_money(amount)
        if value <= 0:
            raise ValidationError("Payment amount must be positive")

        async with self.step("record_payment") as session:
            order = await OrderRepository(session, self.tenant_id).get_for_update(order_id)
            if order is None:
                raise NotFoundError("Order", order_id)

            balance = to_money(order.carrier_pay)
            paid = to_money(order.amount_paid)
            if value > balance - paid + CENT:
                raise ValidationError(
                    "Payment amount exceeds remaining balance",
                    {"remaining": str(balance - paid)},
                )

            payment = await PaymentRepository(session, self.tenant_id).add(
                order_id=order_id,
                amount=value,
                payment_date=payment_date,
                notes=notes or None,
            )
            new_total = quantize(paid + value)
            order.amount_paid = new_total
            order.payment_status = next_payment_status(
                balance, new_total, PaymentStatus(order.payment_status)
            )

        logger.info(
            "Order %s: payment %s recorded, status %s (tenant %s)",
            order_id,
            value,
            order.payment_status.value,
            self.tenant_id,
        )
        return PaymentResult(payment=payment, order=order)

    async def list_payments(self, order_id: int) -> list[PaymentModel]:
        async with self.session_factory() as session:
            if await OrderRepository(session, self.tenant_id).get_by_id(order_id) is None:
                raise NotFoundError("Order", order_id)
            return await PaymentRepository(session, self.tenant_id).list_for_order(order_id)
