"""
Trip endpoints
==============

POST   /api/v1/trips                                -- create a trip
GET    /api/v1/trips/{trip_id}                      -- trip with its snapshot
PATCH  /api/v1/trips/{trip_id}/status               -- set status, sync orders
PATCH  /api/v1/trips/{trip_id}/carrier-pay          -- edit carrier pay
DELETE /api/v1/trips/{trip_id}                      -- release orders, delete
GET    /api/v1/trips/{trip_id}/expenses             -- list expenses
POST   /api/v1/trips/{trip_id}/expenses             -- add an expense
PATCH  /api/v1/trips/{trip_id}/expenses/{id}        -- edit an expense
DELETE /api/v1/trips/{trip_id}/expenses/{id}        -- remove an expense

Carrier pay and expense changes recompute the trip and return its figures.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from fleetops.api.dependencies import get_dispatch_service, get_expense_service
from fleetops.api.middleware import limiter
from fleetops.api.schemas import (
    CarrierPayUpdate,
    ExpenseChangeResponse,
    TripCreateRequest,
    TripDeletedResponse,
    TripExpenseCreate,
    TripExpenseResponse,
    TripExpenseUpdate,
    TripFinancialsResponse,
    TripResponse,
    TripStatusResponse,
    TripStatusUpdate,
)
from fleetops.config import settings
from fleetops.services.dispatch import DispatchService
from fleetops.services.expenses import TripExpenseService

router = APIRouter(prefix="/trips", tags=["trips"])


@router.post("", status_code=201, response_model=TripResponse, summary="Create a trip")
@limiter.limit(settings.rate_limit)
async def create_trip(
    request: Request,
    body: TripCreateRequest,
    service: DispatchService = Depends(get_dispatch_service),
):
    return await service.create_trip(**body.model_dump())


@router.get("/{trip_id}", response_model=TripResponse, summary="Get a trip")
@limiter.limit(settings.rate_limit)
async def get_trip(
    request: Request,
    trip_id: int,
    service: DispatchService = Depends(get_dispatch_service),
):
    return await service.get_trip(trip_id)


@router.patch(
    "/{trip_id}/status",
    response_model=TripStatusResponse,
    summary="Change a trip's status",
    description=(
        "Member orders follow: planned -> assigned, in_progress -> picked_up, "
        "completed -> delivered.  ``at_terminal`` leaves orders untouched and "
        "cancelled orders are never changed."
    ),
)
@limiter.limit(settings.rate_limit)
async def update_trip_status(
    request: Request,
    trip_id: int,
    body: TripStatusUpdate,
    service: DispatchService = Depends(get_dispatch_service),
):
    result = await service.set_trip_status(trip_id, body.status)
    return TripStatusResponse.model_validate(result)


@router.patch(
    "/{trip_id}/carrier-pay",
    response_model=TripFinancialsResponse,
    summary="Update a trip's carrier pay",
)
@limiter.limit(settings.rate_limit)
async def update_carrier_pay(
    request: Request,
    trip_id: int,
    body: CarrierPayUpdate,
    service: DispatchService = Depends(get_dispatch_service),
):
    financials = await service.update_trip_carrier_pay(trip_id, body.carrier_pay)
    return TripFinancialsResponse.model_validate(financials)


@router.delete("/{trip_id}", response_model=TripDeletedResponse, summary="Delete a trip")
@limiter.limit(settings.rate_limit)
async def delete_trip(
    request: Request,
    trip_id: int,
    service: DispatchService = Depends(get_dispatch_service),
):
    released = await service.delete_trip(trip_id)
    return TripDeletedResponse(trip_id=trip_id, orders_released=released)


# ── Expenses ──────────────────────────────────────────────────────────


@router.get(
    "/{trip_id}/expenses",
    response_model=list[TripExpenseResponse],
    summary="List a trip's expenses",
)
@limiter.limit(settings.rate_limit)
async def list_expenses(
    request: Request,
    trip_id: int,
    service: TripExpenseService = Depends(get_expense_service),
):
    return await service.list_expenses(trip_id)


@router.post(
    "/{trip_id}/expenses",
    status_code=201,
    response_model=ExpenseChangeResponse,
    summary="Add an expense to a trip",
)
@limiter.limit(settings.rate_limit)
async def create_expense(
    request: Request,
    trip_id: int,
    body: TripExpenseCreate,
    service: TripExpenseService = Depends(get_expense_service),
):
    result = await service.create_expense(trip_id, **body.model_dump())
    return ExpenseChangeResponse.model_validate(result)


@router.patch(
    "/{trip_id}/expenses/{expense_id}",
    response_model=ExpenseChangeResponse,
    summary="Edit a trip expense",
)
@limiter.limit(settings.rate_limit)
async def update_expense(
    request: Request,
    trip_id: int,
    expense_id: int,
    body: TripExpenseUpdate,
    service: TripExpenseService = Depends(get_expense_service),
):
    result = await service.update_expense(
        trip_id, expense_id, **body.model_dump(exclude_unset=True)
    )
    return ExpenseChangeResponse.model_validate(result)


@router.delete(
    "/{trip_id}/expenses/{expense_id}",
    response_model=ExpenseChangeResponse,
    summary="Remove a trip expense",
)
@limiter.limit(settings.rate_limit)
async def delete_expense(
    request: Request,
    trip_id: int,
    expense_id: int,
    service: TripExpenseService = Depends(get_expense_service),
):
    result = await service.delete_expense(trip_id, expense_id)
    return ExpenseChangeResponse.model_validate(result)
