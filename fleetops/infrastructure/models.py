"""
SQLAlchemy ORM models.

Tables
------
* ``drivers``           -- pay model per driver (read-only to the core)
* ``trips``             -- scheduling unit; carries the denormalised
                           financial snapshot written by recalculation
* ``orders``            -- vehicle-transport jobs, optionally on a trip
* ``trip_expenses``     -- direct costs of one trip
* ``business_expenses`` -- recurring fixed costs, prorated per period
* ``payments``          -- payments received against an order

Every table carries ``tenant_id``; repositories filter on it for every read
and write.  Money is ``Numeric(12, 2)`` and comes back as ``Decimal``.

Indexes
-------
* **B-Tree** on ``(tenant_id, trip_id)`` for orders and expenses -- the
  recalculation reads both by trip on every call.
* **B-Tree** on ``(tenant_id, status)`` and ``(tenant_id, start_date)`` for
  listing and period aggregation.
"""

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)

from .database import Base
from fleetops.domain.enums import (
    DriverPayType,
    DriverType,
    ExpenseCategory,
    OrderStatus,
    PaymentStatus,
    Recurrence,
    TripStatus,
)


def _enum(enum_cls):
    """Store enum *values* (``picked_up``) rather than member names."""
    return Enum(
        enum_cls,
        values_callable=lambda e: [m.value for m in e],
        native_enum=False,
        length=32,
    )


Money = Numeric(12, 2, asdecimal=True)
Rate = Numeric(8, 4, asdecimal=True)


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False)
    first_name = Column(String(80), nullable=False)
    last_name = Column(String(80), nullable=False)
    driver_type = Column(_enum(DriverType), default=DriverType.COMPANY, nullable=False)
    pay_type = Column(
        _enum(DriverPayType),
        default=DriverPayType.PERCENTAGE_OF_CARRIER_PAY,
        nullable=False,
    )
    pay_rate = Column(Rate, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_drivers_tenant", "tenant_id"),)


class TripModel(Base):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False)
    trip_number = Column(String(32), nullable=True)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True)
    truck_id = Column(Integer, nullable=True)
    status = Column(_enum(TripStatus), default=TripStatus.PLANNED, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)

    # Input, edited directly
    carrier_pay = Column(Money, default=0, nullable=False)

    # Derived snapshot -- written only by the recalculation engine
    total_revenue = Column(Money, default=0, nullable=False)
    total_broker_fees = Column(Money, default=0, nullable=False)
    driver_pay = Column(Money, default=0, nullable=False)
    total_expenses = Column(Money, default=0, nullable=False)
    net_profit = Column(Money, default=0, nullable=False)
    order_count = Column(Integer, default=0, nullable=False)
    origin_summary = Column(String(255), nullable=True)
    destination_summary = Column(String(255), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_trips_tenant_status", "tenant_id", "status"),
        Index("idx_trips_tenant_start", "tenant_id", "start_date"),
    )


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False)
    order_number = Column(String(32), nullable=True)
    status = Column(_enum(OrderStatus), default=OrderStatus.NEW, nullable=False)
    cancelled_reason = Column(Text, nullable=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=True)

    vehicle_description = Column(String(120), nullable=True)
    pickup_city = Column(String(80), nullable=True)
    pickup_state = Column(String(8), nullable=True)
    delivery_city = Column(String(80), nullable=True)
    delivery_state = Column(String(8), nullable=True)
    distance_miles = Column(Numeric(10, 2, asdecimal=True), nullable=True)

    revenue = Column(Money, default=0, nullable=False)
    broker_fee = Column(Money, default=0, nullable=False)
    carrier_pay = Column(Money, default=0, nullable=False)
    local_fee = Column(Money, default=0, nullable=False)
    driver_pay_rate_override = Column(Rate, nullable=True)
    amount_paid = Column(Money, default=0, nullable=False)
    payment_status = Column(
        _enum(PaymentStatus), default=PaymentStatus.UNPAID, nullable=False
    )

    actual_pickup_date = Column(DateTime(timezone=True), nullable=True)
    actual_delivery_date = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_orders_tenant_trip", "tenant_id", "trip_id"),
        Index("idx_orders_tenant_status", "tenant_id", "status"),
    )


class TripExpenseModel(Base):
    __tablename__ = "trip_expenses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=False)
    category = Column(_enum(ExpenseCategory), nullable=False)
    custom_label = Column(String(120), nullable=True)
    amount = Column(Money, default=0, nullable=False)
    notes = Column(Text, nullable=True)
    expense_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_trip_expenses_tenant_trip", "tenant_id", "trip_id"),)


class BusinessExpenseModel(Base):
    __tablename__ = "business_expenses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False)
    name = Column(String(120), nullable=False)
    category = Column(String(40), nullable=False)
    recurrence = Column(_enum(Recurrence), default=Recurrence.MONTHLY, nullable=False)
    amount = Column(Money, default=0, nullable=False)
    truck_id = Column(Integer, nullable=True)
    effective_from = Column(Date, nullable=False)
    effective_to = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_business_expenses_tenant", "tenant_id"),)


class PaymentModel(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    tenant_id = Column(String(64), nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    amount = Column(Money, nullable=False)
    payment_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_payments_tenant_order", "tenant_id", "order_id"),)
