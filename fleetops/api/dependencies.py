"""
FastAPI dependency injection helpers.

Every request is scoped to the tenant named in the ``X-Tenant-ID`` header;
services are built per request from the shared session factory and the
process-wide trip lock registry.
"""

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleetops.domain.errors import ValidationError
from fleetops.infrastructure.database import async_session_factory
from fleetops.infrastructure.redis_client import get_trip_locks
from fleetops.services.dispatch import DispatchService
from fleetops.services.expenses import TripExpenseService
from fleetops.services.fleet_pnl import FleetPnLService
from fleetops.services.payments import PaymentService
from fleetops.services.trip_financials import TripFinancialsEngine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_session_factory


async def get_db(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_tenant_id(
    x_tenant_id: str = Header(..., alias="X-Tenant-ID", min_length=1, max_length=64),
) -> str:
    tenant_id = x_tenant_id.strip()
    if not tenant_id:
        raise ValidationError("X-Tenant-ID must not be blank")
    return tenant_id


def _service(cls):
    def provider(
        tenant_id: str = Depends(get_tenant_id),
        session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
        locks=Depends(get_trip_locks),
    ):
        return cls(session_factory, tenant_id, locks=locks)

    provider.__name__ = f"get_{cls.__name__}"
    return provider


get_dispatch_service = _service(DispatchService)
get_financials_engine = _service(TripFinancialsEngine)
get_expense_service = _service(TripExpenseService)
get_payment_service = _service(PaymentService)
get_pnl_service = _service(FleetPnLService)
