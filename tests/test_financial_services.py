"""
Trip expenses, payments, period P&L and snapshot reconciliation against an
in-memory SQLite database.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import update

from fleetops.domain.enums import DriverPayType, PaymentStatus, Recurrence, TripStatus
from fleetops.domain.errors import NotFoundError, ValidationError
from fleetops.infrastructure.models import TripModel
from fleetops.infrastructure.repositories import TripRepository, find_drifted_trips
from fleetops.services.expenses import TripExpenseService
from fleetops.services.fleet_pnl import FleetPnLService
from fleetops.services.payments import PaymentService, next_payment_status
from fleetops.workers.reconciler import reconcile_trips
from tests.conftest import OTHER_TENANT, TENANT

D = Decimal


@pytest.fixture
def expenses(session_factory, locks):
    return TripExpenseService(session_factory, TENANT, locks=locks)


@pytest.fixture
def payments(session_factory, locks):
    return PaymentService(session_factory, TENANT, locks=locks)


@pytest.fixture
def fleet(session_factory, locks):
    return FleetPnLService(session_factory, TENANT, locks=locks)


class TestTripExpenses:
    @pytest.mark.asyncio
    async def test_crud_recalculates_trip(self, expenses, dispatch, make_trip, make_order):
        trip = await make_trip()
        order = await make_order(revenue="1000", broker_fee="100")
        await dispatch.assign_order_to_trip(order.id, trip.id)

        created = await expenses.create_expense(trip.id, category="fuel", amount="120.40")
        assert created.trip.expenses == D("120.40")
        assert created.trip.net_profit == D("779.60")

        updated = await expenses.update_expense(trip.id, created.expense.id, amount="200")
        assert updated.expense.category.value == "fuel"
        assert updated.trip.expenses == D("200")

        deleted = await expenses.delete_expense(trip.id, created.expense.id)
        assert deleted.expense is None
        assert deleted.trip.expenses == 0
        assert await expenses.list_expenses(trip.id) == []

    @pytest.mark.asyncio
    async def test_rejects_bad_category_and_negative_amount(self, expenses, make_trip):
        trip = await make_trip()
        with pytest.raises(ValidationError):
            await expenses.create_expense(trip.id, category="snacks", amount="5")
        with pytest.raises(ValidationError):
            await expenses.create_expense(trip.id, category="fuel", amount="-5")

    @pytest.mark.asyncio
    async def test_expense_must_belong_to_trip(self, expenses, make_trip):
        trip_a = await make_trip()
        trip_b = await make_trip()
        created = await expenses.create_expense(trip_a.id, category="tolls", amount="12")
        with pytest.raises(NotFoundError):
            await expenses.delete_expense(trip_b.id, created.expense.id)

    @pytest.mark.asyncio
    async def test_missing_trip(self, expenses):
        with pytest.raises(NotFoundError):
            await expenses.list_expenses(404)


class TestPayments:
    def test_next_status(self):
        assert next_payment_status(D("100"), D("100"), PaymentStatus.UNPAID) is PaymentStatus.PAID
        assert next_payment_status(D("100"), D("99.995"), PaymentStatus.UNPAID) is PaymentStatus.PAID
        assert next_payment_status(D("100"), D("40"), PaymentStatus.INVOICED) is PaymentStatus.PARTIALLY_PAID
        assert next_payment_status(D("100"), D("0"), PaymentStatus.INVOICED) is PaymentStatus.INVOICED

    @pytest.mark.asyncio
    async def test_partial_then_full(self, payments, make_order):
        order = await make_order(carrier_pay=D("500"))

        first = await payments.record_payment(order.id, "200", date(2026, 3, 20))
        assert first.order.amount_paid == D("200")
        assert first.order.payment_status is PaymentStatus.PARTIALLY_PAID

        second = await payments.record_payment(order.id, "300", date(2026, 3, 25), "final")
        assert second.order.payment_status is PaymentStatus.PAID
        assert [p.amount for p in await payments.list_payments(order.id)] == [D("200"), D("300")]

    @pytest.mark.asyncio
    async def test_overpayment_rejected(self, payments, make_order):
        order = await make_order(carrier_pay=D("500"))
        await payments.record_payment(order.id, "450", date(2026, 3, 20))
        with pytest.raises(ValidationError, match="remaining balance"):
            await payments.record_payment(order.id, "60", date(2026, 3, 21))

    @pytest.mark.asyncio
    async def test_non_positive_rejected(self, payments, make_order):
        order = await make_order(carrier_pay=D("500"))
        with pytest.raises(ValidationError):
            await payments.record_payment(order.id, "0", date(2026, 3, 20))

    @pytest.mark.asyncio
    async def test_unknown_order(self, payments):
        with pytest.raises(NotFoundError):
            await payments.record_payment(321, "10", date(2026, 3, 20))


class TestPeriodPnL:
    @pytest.mark.asyncio
    async def test_report_aggregates_trips_in_period(
        self, fleet, expenses, dispatch, make_driver, make_trip, make_order
    ):
        driver = await make_driver(pay_type=DriverPayType.PER_CAR, pay_rate="100")
        march = await make_trip(driver_id=driver.id, start=date(2026, 3, 2), truck_id=7, carrier_pay="50")
        april = await make_trip(driver_id=driver.id, start=date(2026, 4, 2), truck_id=8)
        for trip, revenue in ((march, "1000"), (march, "2000"), (april, "5000")):
            order = await make_order(revenue=revenue, broker_fee="100", distance_miles=D("250"))
            await dispatch.assign_order_to_trip(order.id, trip.id)
        cancelled = await make_order(revenue="9999", broker_fee="0")
        await dispatch.assign_order_to_trip(cancelled.id, march.id)
        await dispatch.advance_status(cancelled.id, "cancelled", "customer backed out")
        await expenses.create_expense(march.id, category="fuel", amount="350")
        await expenses.create_expense(march.id, category="repairs", amount="80")
        await dispatch.set_trip_status(march.id, TripStatus.COMPLETED)
        await fleet.create_business_expense(
            name="Insurance", category="insurance", amount="1200",
            recurrence=Recurrence.MONTHLY, effective_from=date(2026, 1, 1),
        )
        await fleet.create_business_expense(
            name="Lease 7", category="equipment", amount="600",
            recurrence="quarterly", effective_from=date(2026, 1, 1), truck_id=7,
        )

        report = await fleet.report(date(2026, 3, 1), date(2026, 3, 31))

        data = report.input
        assert data.total_revenue == D("3000")
        assert data.total_broker_fees == D("200")
        assert data.fuel_costs == D("350")
        assert data.maintenance_costs == D("80")
        assert data.total_carrier_pay == D("50")
        assert data.truck_count == 1
        assert data.completed_trip_count == 1
        assert data.cars_hauled == 2
        assert data.total_miles == D("500")
        assert report.fixed.total == D("1400.00")
        assert report.fixed.truck_specific == D("200.00")
        assert report.fixed.company_wide == D("1200.00")
        # per-car pay is snapshotted for all three orders on the trip
        assert data.total_driver_pay == D("300")
        assert report.pnl.truck_gross == D("2500")
        assert report.pnl.net_profit_before_tax == D("2500") - D("1400") - D("430") - D("50")
        assert report.metrics.revenue_per_truck == D("3000")
        assert report.kpis.appo == D("1500")
        assert report.breakdown[0].category == "fuel"

    @pytest.mark.asyncio
    async def test_period_must_be_ordered(self, fleet):
        with pytest.raises(ValidationError):
            await fleet.report(date(2026, 3, 31), date(2026, 3, 1))

    @pytest.mark.asyncio
    async def test_empty_period(self, fleet):
        report = await fleet.report(date(2030, 1, 1), date(2030, 1, 31))
        assert report.pnl.revenue == 0
        assert report.metrics.revenue_per_truck is None
        assert report.breakdown == []

    @pytest.mark.asyncio
    async def test_other_tenant_excluded(self, session_factory, locks, dispatch, make_trip, make_order):
        trip = await make_trip(start=date(2026, 3, 2))
        order = await make_order(revenue="1000")
        await dispatch.assign_order_to_trip(order.id, trip.id)

        report = await FleetPnLService(session_factory, OTHER_TENANT, locks=locks).report(
            date(2026, 3, 1), date(2026, 3, 31)
        )
        assert report.pnl.revenue == 0

    @pytest.mark.asyncio
    async def test_business_expense_validation(self, fleet):
        with pytest.raises(ValidationError):
            await fleet.create_business_expense(
                name="x", category="misc", amount="10", recurrence="weekly",
                effective_from=date(2026, 1, 1),
            )
        with pytest.raises(ValidationError):
            await fleet.create_business_expense(
                name="x", category="misc", amount="10", recurrence="monthly",
                effective_from=date(2026, 2, 1), effective_to=date(2026, 1, 1),
            )


class TestReconciliation:
    @pytest.mark.asyncio
    async def test_drifted_snapshot_is_repaired(self, session_factory, locks, dispatch, make_trip, make_order):
        trip = await make_trip()
        order = await make_order(revenue="800")
        await dispatch.assign_order_to_trip(order.id, trip.id)

        # simulate a recompute that never happened
        async with session_factory() as session:
            async with session.begin():
                await session.execute(
                    update(TripModel)
                    .where(TripModel.id == trip.id)
                    .values(order_count=0, total_revenue=0)
                )
        async with session_factory() as session:
            assert await find_drifted_trips(session) == [(TENANT, trip.id)]

        repaired = await reconcile_trips(session_factory, locks)

        assert repaired == 1
        async with session_factory() as session:
            assert await find_drifted_trips(session) == []
            row = await TripRepository(session, TENANT).get_by_id(trip.id)
            assert row.order_count == 1
            assert row.total_revenue == D("800")

    @pytest.mark.asyncio
    async def test_nothing_to_do(self, session_factory, locks, make_trip):
        await make_trip()
        assert await reconcile_trips(session_factory, locks) == 0
