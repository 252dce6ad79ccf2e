"""
Fleet financial endpoints
=========================

GET  /api/v1/financials/pnl?start=&end=      -- P&L, unit metrics, KPIs
POST /api/v1/financials/business-expenses    -- add a recurring fixed cost
"""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Query, Request

from fleetops.api.dependencies import get_pnl_service
from fleetops.api.middleware import limiter
from fleetops.api.schemas import (
    BusinessExpenseCreate,
    BusinessExpenseResponse,
    PnLResponse,
)
from fleetops.config import settings
from fleetops.services.fleet_pnl import FleetPnLService

router = APIRouter(prefix="/financials", tags=["financials"])


@router.get(
    "/pnl",
    response_model=PnLResponse,
    summary="Profit and loss for a period",
    description=(
        "Aggregates trips starting inside ``[start, end]`` plus business "
        "expenses prorated onto the period.  Per-unit figures are null when "
        "their denominator is zero."
    ),
)
@limiter.limit(settings.rate_limit)
async def get_pnl(
    request: Request,
    start: date = Query(...),
    end: date = Query(...),
    service: FleetPnLService = Depends(get_pnl_service),
):
    report = await service.report(start, end)
    return PnLResponse.model_validate(report)


@router.post(
    "/business-expenses",
    status_code=201,
    response_model=BusinessExpenseResponse,
    summary="Create a business expense",
)
@limiter.limit(settings.rate_limit)
async def create_business_expense(
    request: Request,
    body: BusinessExpenseCreate,
    service: FleetPnLService = Depends(get_pnl_service),
):
    return await service.create_business_expense(**body.model_dump())
