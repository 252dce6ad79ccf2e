"""Initial schema: drivers, trips, orders, expenses and payments.

Revision ID: 001
Create Date: 2026-03-01
"""

from alembic import op
import sqlalchemy as sa


revision = "001"
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(12, 2)
RATE = sa.Numeric(8, 4)


def _timestamps(with_updated: bool = False) -> list:
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        )
    ]
    if with_updated:
        columns.append(
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                server_default=sa.func.now(),
            )
        )
    return columns


def upgrade() -> None:
    # ── drivers ───────────────────────────────────────────────────────
    op.create_table(
        "drivers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("first_name", sa.String(80), nullable=False),
        sa.Column("last_name", sa.String(80), nullable=False),
        sa.Column("driver_type", sa.String(32), nullable=False, server_default="company"),
        sa.Column(
            "pay_type",
            sa.String(32),
            nullable=False,
            server_default="percentage_of_carrier_pay",
        ),
        sa.Column("pay_rate", RATE, nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("idx_drivers_tenant", "drivers", ["tenant_id"])

    # ── trips ─────────────────────────────────────────────────────────
    op.create_table(
        "trips",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("trip_number", sa.String(32), nullable=True),
        sa.Column("driver_id", sa.Integer, sa.ForeignKey("drivers.id"), nullable=True),
        sa.Column("truck_id", sa.Integer, nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="planned"),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("carrier_pay", MONEY, nullable=False, server_default="0"),
        # snapshot, written by recalculation only
        sa.Column("total_revenue", MONEY, nullable=False, server_default="0"),
        sa.Column("total_broker_fees", MONEY, nullable=False, server_default="0"),
        sa.Column("driver_pay", MONEY, nullable=False, server_default="0"),
        sa.Column("total_expenses", MONEY, nullable=False, server_default="0"),
        sa.Column("net_profit", MONEY, nullable=False, server_default="0"),
        sa.Column("order_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("origin_summary", sa.String(255), nullable=True),
        sa.Column("destination_summary", sa.String(255), nullable=True),
        *_timestamps(with_updated=True),
    )
    op.create_index("idx_trips_tenant_status", "trips", ["tenant_id", "status"])
    op.create_index("idx_trips_tenant_start", "trips", ["tenant_id", "start_date"])

    # ── orders ────────────────────────────────────────────────────────
    op.create_table(
        "orders",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("order_number", sa.String(32), nullable=True),
        sa.Column("status", sa.String(32), nullable=False, server_default="new"),
        sa.Column("cancelled_reason", sa.Text, nullable=True),
        sa.Column("trip_id", sa.Integer, sa.ForeignKey("trips.id"), nullable=True),
        sa.Column("vehicle_description", sa.String(120), nullable=True),
        sa.Column("pickup_city", sa.String(80), nullable=True),
        sa.Column("pickup_state", sa.String(8), nullable=True),
        sa.Column("delivery_city", sa.String(80), nullable=True),
        sa.Column("delivery_state", sa.String(8), nullable=True),
        sa.Column("distance_miles", sa.Numeric(10, 2), nullable=True),
        sa.Column("revenue", MONEY, nullable=False, server_default="0"),
        sa.Column("broker_fee", MONEY, nullable=False, server_default="0"),
        sa.Column("carrier_pay", MONEY, nullable=False, server_default="0"),
        sa.Column("local_fee", MONEY, nullable=False, server_default="0"),
        sa.Column("driver_pay_rate_override", RATE, nullable=True),
        sa.Column("amount_paid", MONEY, nullable=False, server_default="0"),
        sa.Column("payment_status", sa.String(32), nullable=False, server_default="unpaid"),
        sa.Column("actual_pickup_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_delivery_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(with_updated=True),
    )
    op.create_index("idx_orders_tenant_trip", "orders", ["tenant_id", "trip_id"])
    op.create_index("idx_orders_tenant_status", "orders", ["tenant_id", "status"])

    # ── trip_expenses ─────────────────────────────────────────────────
    op.create_table(
        "trip_expenses",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("trip_id", sa.Integer, sa.ForeignKey("trips.id"), nullable=False),
        sa.Column("category", sa.String(32), nullable=False),
        sa.Column("custom_label", sa.String(120), nullable=True),
        sa.Column("amount", MONEY, nullable=False, server_default="0"),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("expense_date", sa.Date, nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "idx_trip_expenses_tenant_trip", "trip_expenses", ["tenant_id", "trip_id"]
    )

    # ── business_expenses ─────────────────────────────────────────────
    op.create_table(
        "business_expenses",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("category", sa.String(40), nullable=False),
        sa.Column("recurrence", sa.String(32), nullable=False, server_default="monthly"),
        sa.Column("amount", MONEY, nullable=False, server_default="0"),
        sa.Column("truck_id", sa.Integer, nullable=True),
        sa.Column("effective_from", sa.Date, nullable=False),
        sa.Column("effective_to", sa.Date, nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_business_expenses_tenant", "business_expenses", ["tenant_id"])

    # ── payments ──────────────────────────────────────────────────────
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.String(64), nullable=False),
        sa.Column("order_id", sa.Integer, sa.ForeignKey("orders.id"), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("payment_date", sa.Date, nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        *_timestamps(),
    )
    op.create_index("idx_payments_tenant_order", "payments", ["tenant_id", "order_id"])


def downgrade() -> None:
    op.drop_table("payments")
    op.drop_table("business_expenses")
    op.drop_table("trip_expenses")
    op.drop_table("orders")
    op.drop_table("trips")
    op.drop_table("drivers")
