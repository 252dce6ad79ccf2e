"""
Seed script -- populates the database with sample data for reviewers.

Run after migrations:
    python seed.py

Creates, for tenant ``demo``:
  - 3 drivers, one per pay model family
  - 3 trips (planned, in progress, completed)
  - 8 orders, 7 of them assigned to trips, 1 left unassigned
  - trip expenses and 3 recurring business expenses

Everything goes through the dispatch services, so the trip snapshots are
computed exactly as they would be by the API.
"""

import asyncio
from datetime import date
from decimal import Decimal

from sqlalchemy import text

from fleetops.domain.enums import DriverPayType, DriverType, Recurrence, TripStatus
from fleetops.infrastructure.database import async_session_factory, engine
from fleetops.services.dispatch import DispatchService
from fleetops.services.expenses import TripExpenseService
from fleetops.services.fleet_pnl import FleetPnLService

TENANT = "demo"

DRIVERS = [
    {
        "first_name": "Marcus", "last_name": "Hill",
        "driver_type": DriverType.COMPANY,
        "pay_type": DriverPayType.PERCENTAGE_OF_CARRIER_PAY,
        "pay_rate": Decimal("30"),
    },
    {
        "first_name": "Dana", "last_name": "Kowalski",
        "driver_type": DriverType.OWNER_OPERATOR,
        "pay_type": DriverPayType.DISPATCH_FEE_PERCENT,
        "pay_rate": Decimal("10"),
    },
    {
        "first_name": "Luis", "last_name": "Ortega",
        "driver_type": DriverType.LOCAL_DRIVER,
        "pay_type": DriverPayType.PER_CAR,
        "pay_rate": Decimal("75"),
    },
]

TRIPS = [
    # (driver index, truck, start, end, carrier pay, final status)
    (0, 101, date(2026, 3, 2), date(2026, 3, 6), Decimal("0"), TripStatus.COMPLETED),
    (1, 102, date(2026, 3, 9), date(2026, 3, 13), Decimal("250"), TripStatus.IN_PROGRESS),
    (2, 103, date(2026, 3, 16), date(2026, 3, 17), Decimal("0"), TripStatus.PLANNED),
]

ORDERS = [
    # (trip index or None, vehicle, pickup, delivery, miles, revenue, broker fee)
    (0, "2021 Honda Accord", ("Dallas", "TX"), ("Atlanta", "GA"), 780, 1150, 115),
    (0, "2019 Ford F-150", ("Dallas", "TX"), ("Birmingham", "AL"), 640, 980, 98),
    (0, "2022 Tesla Model 3", ("Fort Worth", "TX"), ("Atlanta", "GA"), 810, 1250, 125),
    (1, "2020 Toyota Camry", ("Chicago", "IL"), ("Denver", "CO"), 1000, 1400, 140),
    (1, "2018 Jeep Wrangler", ("Chicago", "IL"), ("Omaha", "NE"), 470, 820, 82),
    (1, "2023 Kia Telluride", ("Milwaukee", "WI"), ("Denver", "CO"), 1080, 1500, 150),
    (2, "2017 BMW X5", ("Miami", "FL"), ("Orlando", "FL"), 235, 450, 45),
    (None, "2024 Subaru Outback", ("Phoenix", "AZ"), ("Las Vegas", "NV"), 300, 600, 60),
]

TRIP_EXPENSES = [
    (0, "fuel", Decimal("612.40")),
    (0, "tolls", Decimal("48.00")),
    (1, "fuel", Decimal("845.10")),
    (1, "lodging", Decimal("129.00")),
    (2, "fuel", Decimal("96.75")),
]

BUSINESS_EXPENSES = [
    {"name": "Truck insurance", "category": "insurance", "amount": Decimal("2400"),
     "recurrence": Recurrence.MONTHLY, "effective_from": date(2026, 1, 1)},
    {"name": "IRP registration", "category": "registration", "amount": Decimal("3600"),
     "recurrence": Recurrence.ANNUAL, "effective_from": date(2026, 1, 1)},
    {"name": "Trailer lease 101", "category": "equipment", "amount": Decimal("1500"),
     "recurrence": Recurrence.MONTHLY, "effective_from": date(2026, 1, 1), "truck_id": 101},
]


async def seed():
    async with async_session_factory() as session:
        # Check if already seeded
        result = await session.execute(
            text("SELECT count(*) FROM trips WHERE tenant_id = :tenant"),
            {"tenant": TENANT},
        )
        if result.scalar() > 0:
            print("Database already seeded. Skipping.")
            return

    dispatch = DispatchService(async_session_factory, TENANT)
    expenses = TripExpenseService(async_session_factory, TENANT)
    fleet = FleetPnLService(async_session_factory, TENANT)

    # ── Drivers ───────────────────────────────────────────────────────
    drivers = [await dispatch.create_driver(**d) for d in DRIVERS]
    print(f"  Created {len(drivers)} drivers")

    # ── Trips ─────────────────────────────────────────────────────────
    trips = []
    for n, (driver_idx, truck, start, end, carrier_pay, _) in enumerate(TRIPS, 1):
        trip = await dispatch.create_trip(
            start_date=start,
            end_date=end,
            driver_id=drivers[driver_idx].id,
            truck_id=truck,
            carrier_pay=carrier_pay,
            trip_number=f"T-{n:04d}",
        )
        trips.append(trip)
    print(f"  Created {len(trips)} trips")

    # ── Orders ────────────────────────────────────────────────────────
    for n, (trip_idx, vehicle, pickup, delivery, miles, revenue, fee) in enumerate(ORDERS, 1):
        order = await dispatch.create_order(
            order_number=f"O-{n:05d}",
            vehicle_description=vehicle,
            pickup_city=pickup[0],
            pickup_state=pickup[1],
            delivery_city=delivery[0],
            delivery_state=delivery[1],
            distance_miles=Decimal(miles),
            revenue=Decimal(revenue),
            broker_fee=Decimal(fee),
            carrier_pay=Decimal(revenue),
        )
        if trip_idx is not None:
            await dispatch.assign_order_to_trip(order.id, trips[trip_idx].id)
    print(f"  Created {len(ORDERS)} orders")

    # ── Expenses ──────────────────────────────────────────────────────
    for trip_idx, category, amount in TRIP_EXPENSES:
        await expenses.create_expense(trips[trip_idx].id, category=category, amount=amount)
    for b in BUSINESS_EXPENSES:
        await fleet.create_business_expense(**b)
    print(f"  Created {len(TRIP_EXPENSES)} trip / {len(BUSINESS_EXPENSES)} business expenses")

    # ── Trip statuses (orders follow) ─────────────────────────────────
    for trip, (*_, status) in zip(trips, TRIPS):
        if status is not TripStatus.PLANNED:
            await dispatch.set_trip_status(trip.id, status)

    print("\nSeed complete!")


async def main():
    print("Seeding database...")
    await seed()
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
