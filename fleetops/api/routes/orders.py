"""
Order endpoints
===============

POST   /api/v1/orders                      -- create an unassigned order
GET    /api/v1/orders/{order_id}           -- fetch one order
PATCH  /api/v1/orders/{order_id}/status    -- set status (cancel needs a reason)
POST   /api/v1/orders/{order_id}/rollback  -- step back one status
PUT    /api/v1/orders/{order_id}/trip      -- assign to a trip (recalculates)
DELETE /api/v1/orders/{order_id}/trip      -- unassign from its trip
GET    /api/v1/orders/{order_id}/payments  -- payments received
POST   /api/v1/orders/{order_id}/payments  -- record a payment
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from fleetops.api.dependencies import get_dispatch_service, get_payment_service
from fleetops.api.middleware import limiter
from fleetops.api.schemas import (
    AssignmentResponse,
    AssignOrderRequest,
    OrderCreateRequest,
    OrderResponse,
    OrderStatusUpdate,
    PaymentCreate,
    PaymentRecordResponse,
    PaymentResponse,
)
from fleetops.config import settings
from fleetops.services.dispatch import DispatchService
from fleetops.services.payments import PaymentService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", status_code=201, response_model=OrderResponse, summary="Create an order")
@limiter.limit(settings.rate_limit)
async def create_order(
    request: Request,
    body: OrderCreateRequest,
    service: DispatchService = Depends(get_dispatch_service),
):
    return await service.create_order(**body.model_dump())


@router.get("/{order_id}", response_model=OrderResponse, summary="Get an order")
@limiter.limit(settings.rate_limit)
async def get_order(
    request: Request,
    order_id: int,
    service: DispatchService = Depends(get_dispatch_service),
):
    return await service.get_order(order_id)


@router.patch(
    "/{order_id}/status",
    response_model=OrderResponse,
    summary="Change an order's status",
    description=(
        "Any status may be set directly, in either direction.  ``cancelled`` "
        "requires a reason and is final.  Entering ``picked_up`` or "
        "``delivered`` stamps the matching actual date."
    ),
)
@limiter.limit(settings.rate_limit)
async def update_order_status(
    request: Request,
    order_id: int,
    body: OrderStatusUpdate,
    service: DispatchService = Depends(get_dispatch_service),
):
    return await service.advance_status(order_id, body.status, body.reason)


@router.post(
    "/{order_id}/rollback",
    response_model=OrderResponse,
    summary="Roll an order back one status",
)
@limiter.limit(settings.rate_limit)
async def rollback_order_status(
    request: Request,
    order_id: int,
    service: DispatchService = Depends(get_dispatch_service),
):
    return await service.rollback_status(order_id)


@router.put(
    "/{order_id}/trip",
    response_model=AssignmentResponse,
    summary="Assign an order to a trip",
    description=(
        "Moves the order onto the trip (status ``assigned``) and recomputes "
        "the financials of both the former and the new trip."
    ),
)
@limiter.limit(settings.rate_limit)
async def assign_order(
    request: Request,
    order_id: int,
    body: AssignOrderRequest,
    service: DispatchService = Depends(get_dispatch_service),
):
    result = await service.assign_order_to_trip(order_id, body.trip_id)
    return AssignmentResponse.model_validate(result)


@router.delete(
    "/{order_id}/trip",
    response_model=AssignmentResponse,
    summary="Remove an order from its trip",
)
@limiter.limit(settings.rate_limit)
async def unassign_order(
    request: Request,
    order_id: int,
    service: DispatchService = Depends(get_dispatch_service),
):
    result = await service.unassign_order_from_trip(order_id)
    return AssignmentResponse.model_validate(result)


@router.get(
    "/{order_id}/payments",
    response_model=list[PaymentResponse],
    summary="List payments received for an order",
)
@limiter.limit(settings.rate_limit)
async def list_payments(
    request: Request,
    order_id: int,
    service: PaymentService = Depends(get_payment_service),
):
    return await service.list_payments(order_id)


@router.post(
    "/{order_id}/payments",
    status_code=201,
    response_model=PaymentRecordResponse,
    summary="Record a payment against an order",
)
@limiter.limit(settings.rate_limit)
async def record_payment(
    request: Request,
    order_id: int,
    body: PaymentCreate,
    service: PaymentService = Depends(get_payment_service),
):
    result = await service.record_payment(
        order_id, body.amount, body.payment_date, body.notes
    )
    return PaymentRecordResponse.model_validate(result)
