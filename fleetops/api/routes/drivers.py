"""
Driver endpoints
================

POST /api/v1/drivers -- register a driver and their pay model
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from fleetops.api.dependencies import get_dispatch_service
from fleetops.api.middleware import limiter
from fleetops.api.schemas import DriverCreateRequest, DriverResponse
from fleetops.config import settings
from fleetops.services.dispatch import DispatchService

router = APIRouter(prefix="/drivers", tags=["drivers"])


@router.post("", status_code=201, response_model=DriverResponse, summary="Create a driver")
@limiter.limit(settings.rate_limit)
async def create_driver(
    request: Request,
    body: DriverCreateRequest,
    service: DispatchService = Depends(get_dispatch_service),
):
    return await service.create_driver(**body.model_dump())
