"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The production models are used as-is; the
engine is built per test so each test gets a fresh schema and its own
event loop.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from fleetops.domain.enums import DriverPayType, DriverType
from fleetops.infrastructure.database import Base
from fleetops.infrastructure.locks import KeyedLock
from fleetops.services.dispatch import DispatchService

# Importing the models registers every table on Base.metadata.
from fleetops.infrastructure import models  # noqa: F401


TEST_DB_URL = "sqlite+aiosqlite:///:memory:"
TENANT = "acme"
OTHER_TENANT = "globex"
FIXED_NOW = datetime(2026, 3, 10, 14, 30, tzinfo=timezone.utc)


# ── Database ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create tables on a single shared in-memory connection, then drop them."""
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def locks() -> KeyedLock:
    return KeyedLock(wait_seconds=2.0)


@pytest.fixture
def dispatch(session_factory, locks) -> DispatchService:
    return DispatchService(session_factory, TENANT, locks=locks, clock=lambda: FIXED_NOW)


# ── Builders ──────────────────────────────────────────────────────────


@pytest.fixture
def make_driver(dispatch):
    async def _make(
        pay_type=DriverPayType.PERCENTAGE_OF_CARRIER_PAY,
        pay_rate="60",
        driver_type=DriverType.COMPANY,
        service=None,
    ):
        return await (service or dispatch).create_driver(
            first_name="Pat",
            last_name="Driver",
            driver_type=driver_type,
            pay_type=pay_type,
            pay_rate=Decimal(pay_rate),
        )

    return _make


@pytest.fixture
def make_trip(dispatch):
    async def _make(driver_id=None, start=date(2026, 3, 2), carrier_pay="0", truck_id=1, service=None):
        return await (service or dispatch).create_trip(
            start_date=start,
            end_date=start,
            driver_id=driver_id,
            truck_id=truck_id,
            carrier_pay=Decimal(carrier_pay),
        )

    return _make


@pytest.fixture
def make_order(dispatch):
    async def _make(revenue="1000", broker_fee="100", service=None, **fields):
        fields.setdefault("pickup_state", "TX")
        fields.setdefault("delivery_state", "GA")
        return await (service or dispatch).create_order(
            revenue=Decimal(revenue),
            broker_fee=Decimal(broker_fee),
            **fields,
        )

    return _make
