"""
Admin / observability endpoints
===============================

GET  /api/v1/admin/health                        -- health check (pings the DB)
POST /api/v1/admin/trips/{trip_id}/recalculate   -- rebuild a trip snapshot
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from fleetops.api.dependencies import get_db, get_financials_engine
from fleetops.api.middleware import limiter
from fleetops.api.schemas import HealthResponse, TripFinancialsResponse
from fleetops.config import settings
from fleetops.services.trip_financials import TripFinancialsEngine

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post(
    "/trips/{trip_id}/recalculate",
    response_model=TripFinancialsResponse,
    summary="Recompute a trip's financial snapshot from its orders",
    description=(
        "Safe to repeat.  Use it to repair the trips listed in a "
        "``PersistenceError`` response."
    ),
)
@limiter.limit(settings.rate_limit)
async def recalculate_trip(
    request: Request,
    trip_id: int,
    engine: TripFinancialsEngine = Depends(get_financials_engine),
):
    financials = await engine.recalculate(trip_id)
    return TripFinancialsResponse.model_validate(financials)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(db: AsyncSession = Depends(get_db)):
    await db.execute(text("SELECT 1"))
    return HealthResponse()
