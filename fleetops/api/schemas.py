"""Pydantic request / response schemas for the REST API."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from fleetops.domain.enums import (
    DriverPayType,
    DriverType,
    ExpenseCategory,
    OrderStatus,
    PaymentStatus,
    Recurrence,
    TripStatus,
)


# ── Requests ──────────────────────────────────────────────────────────


class DriverCreateRequest(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=80)
    last_name: str = Field(..., min_length=1, max_length=80)
    driver_type: DriverType = DriverType.COMPANY
    pay_type: DriverPayType = DriverPayType.PERCENTAGE_OF_CARRIER_PAY
    pay_rate: Decimal = Field(Decimal("0"), ge=0)


class TripCreateRequest(BaseModel):
    start_date: date
    end_date: date
    driver_id: Optional[int] = None
    truck_id: Optional[int] = None
    carrier_pay: Decimal = Field(Decimal("0"), ge=0)
    trip_number: Optional[str] = Field(None, max_length=32)
    notes: Optional[str] = None


class OrderCreateRequest(BaseModel):
    order_number: Optional[str] = Field(None, max_length=32)
    vehicle_description: Optional[str] = Field(None, max_length=120)
    pickup_city: Optional[str] = Field(None, max_length=80)
    pickup_state: Optional[str] = Field(None, max_length=8)
    delivery_city: Optional[str] = Field(None, max_length=80)
    delivery_state: Optional[str] = Field(None, max_length=8)
    distance_miles: Optional[Decimal] = Field(None, ge=0)
    revenue: Decimal = Field(Decimal("0"), ge=0)
    broker_fee: Decimal = Field(Decimal("0"), ge=0)
    carrier_pay: Decimal = Field(Decimal("0"), ge=0)
    local_fee: Decimal = Field(Decimal("0"), ge=0)
    driver_pay_rate_override: Optional[Decimal] = Field(
        None,
        ge=0,
        description="Replaces the driver's rate for this order only.",
    )


class OrderStatusUpdate(BaseModel):
    status: str = Field(..., description="Target status, e.g. ``picked_up``.")
    reason: Optional[str] = Field(
        None, description="Required when the target status is ``cancelled``."
    )


class TripStatusUpdate(BaseModel):
    status: str


class AssignOrderRequest(BaseModel):
    trip_id: int


class CarrierPayUpdate(BaseModel):
    carrier_pay: Decimal


class TripExpenseCreate(BaseModel):
    category: str
    amount: Decimal
    custom_label: Optional[str] = Field(None, max_length=120)
    notes: Optional[str] = None
    expense_date: Optional[date] = None


class TripExpenseUpdate(BaseModel):
    """Only the fields present in the body are changed."""

    category: Optional[str] = None
    amount: Optional[Decimal] = None
    custom_label: Optional[str] = Field(None, max_length=120)
    notes: Optional[str] = None
    expense_date: Optional[date] = None


class PaymentCreate(BaseModel):
    amount: Decimal = Field(..., gt=0)
    payment_date: date
    notes: Optional[str] = None


class BusinessExpenseCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    category: str = Field(..., min_length=1, max_length=40)
    amount: Decimal = Field(..., ge=0)
    recurrence: Recurrence = Recurrence.MONTHLY
    effective_from: date
    effective_to: Optional[date] = None
    truck_id: Optional[int] = None


# ── Responses ─────────────────────────────────────────────────────────


class DriverResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    driver_type: DriverType
    pay_type: DriverPayType
    pay_rate: Decimal

    model_config = {"from_attributes": True}


class OrderResponse(BaseModel):
    id: int
    order_number: Optional[str] = None
    status: OrderStatus
    cancelled_reason: Optional[str] = None
    trip_id: Optional[int] = None
    vehicle_description: Optional[str] = None
    pickup_city: Optional[str] = None
    pickup_state: Optional[str] = None
    delivery_city: Optional[str] = None
    delivery_state: Optional[str] = None
    distance_miles: Optional[Decimal] = None
    revenue: Decimal
    broker_fee: Decimal
    carrier_pay: Decimal
    local_fee: Decimal
    driver_pay_rate_override: Optional[Decimal] = None
    amount_paid: Decimal
    payment_status: PaymentStatus
    actual_pickup_date: Optional[datetime] = None
    actual_delivery_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TripResponse(BaseModel):
    id: int
    trip_number: Optional[str] = None
    driver_id: Optional[int] = None
    truck_id: Optional[int] = None
    status: TripStatus
    start_date: date
    end_date: date
    notes: Optional[str] = None
    carrier_pay: Decimal
    total_revenue: Decimal
    total_broker_fees: Decimal
    driver_pay: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    order_count: int
    origin_summary: Optional[str] = None
    destination_summary: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TripFinancialsResponse(BaseModel):
    revenue: Decimal
    broker_fees: Decimal
    driver_pay: Decimal
    expenses: Decimal
    net_profit: Decimal
    order_count: int
    origin_summary: Optional[str] = None
    destination_summary: Optional[str] = None
    carrier_pay: Decimal
    clean_gross: Decimal
    truck_gross: Decimal
    total_miles: Decimal
    rpm: Optional[Decimal] = None
    cpm: Optional[Decimal] = None
    ppm: Optional[Decimal] = None
    appc: Optional[Decimal] = None
    local_fees: Decimal = Decimal("0")
    dispatch_fee: Decimal = Decimal("0")

    model_config = {"from_attributes": True}


class AssignmentResponse(BaseModel):
    order: OrderResponse
    previous_trip_id: Optional[int] = None
    recalculated: dict[int, TripFinancialsResponse] = {}

    model_config = {"from_attributes": True}


class TripStatusResponse(BaseModel):
    trip: TripResponse
    order_status: Optional[OrderStatus] = None
    orders_updated: int

    model_config = {"from_attributes": True}


class TripDeletedResponse(BaseModel):
    trip_id: int
    orders_released: int


class TripExpenseResponse(BaseModel):
    id: int
    trip_id: int
    category: ExpenseCategory
    custom_label: Optional[str] = None
    amount: Decimal
    notes: Optional[str] = None
    expense_date: Optional[date] = None

    model_config = {"from_attributes": True}


class ExpenseChangeResponse(BaseModel):
    expense: Optional[TripExpenseResponse] = None
    trip: TripFinancialsResponse

    model_config = {"from_attributes": True}


class PaymentResponse(BaseModel):
    id: int
    order_id: int
    amount: Decimal
    payment_date: date
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class PaymentRecordResponse(BaseModel):
    payment: PaymentResponse
    order: OrderResponse

    model_config = {"from_attributes": True}


class BusinessExpenseResponse(BaseModel):
    id: int
    name: str
    category: str
    amount: Decimal
    recurrence: Recurrence
    effective_from: date
    effective_to: Optional[date] = None
    truck_id: Optional[int] = None

    model_config = {"from_attributes": True}


class PnLStatementResponse(BaseModel):
    revenue: Decimal
    broker_fees: Decimal
    local_fees: Decimal
    clean_gross: Decimal
    driver_pay: Decimal
    truck_gross: Decimal
    gross_profit_margin: Decimal
    fixed_costs: Decimal
    fixed_costs_by_category: dict[str, Decimal]
    direct_trip_costs: Decimal
    fuel_costs: Decimal
    toll_costs: Decimal
    maintenance_costs: Decimal
    lodging_costs: Decimal
    misc_costs: Decimal
    carrier_pay: Decimal
    total_operating_expenses: Decimal
    net_profit_before_tax: Decimal
    net_margin: Decimal
    break_even_revenue: Optional[Decimal] = None

    model_config = {"from_attributes": True}


class UnitMetricsResponse(BaseModel):
    revenue_per_truck: Optional[Decimal] = None
    truck_gross_per_truck: Optional[Decimal] = None
    fixed_cost_per_truck: Optional[Decimal] = None
    net_profit_per_truck: Optional[Decimal] = None
    revenue_per_trip: Optional[Decimal] = None
    truck_gross_per_trip: Optional[Decimal] = None
    appc: Optional[Decimal] = None
    overhead_per_trip: Optional[Decimal] = None
    direct_cost_per_trip: Optional[Decimal] = None
    net_profit_per_trip: Optional[Decimal] = None
    rpm: Optional[Decimal] = None
    truck_gross_per_mile: Optional[Decimal] = None
    fixed_cost_per_mile: Optional[Decimal] = None
    fuel_cost_per_mile: Optional[Decimal] = None
    net_profit_per_mile: Optional[Decimal] = None
    trucks_in_service: int
    trip_count: int
    cars_hauled: int
    total_miles: Decimal

    model_config = {"from_attributes": True}


class KPIsResponse(BaseModel):
    rpm: Optional[Decimal] = None
    cpm: Optional[Decimal] = None
    ppm: Optional[Decimal] = None
    appo: Decimal
    gross_margin: Decimal
    net_margin: Decimal
    operating_ratio: Decimal
    revenue_per_truck: Optional[Decimal] = None
    profit_per_truck: Optional[Decimal] = None
    miles_per_truck: Optional[Decimal] = None
    net_profit: Decimal
    total_expenses: Decimal

    model_config = {"from_attributes": True}


class ExpenseBreakdownResponse(BaseModel):
    category: str
    label: str
    amount: Decimal
    percentage: Decimal

    model_config = {"from_attributes": True}


class FixedExpenseResponse(BaseModel):
    by_category: dict[str, Decimal] = {}
    total: Decimal
    truck_specific: Decimal
    company_wide: Decimal

    model_config = {"from_attributes": True}


class PnLResponse(BaseModel):
    start: date
    end: date
    pnl: PnLStatementResponse
    metrics: UnitMetricsResponse
    kpis: KPIsResponse
    breakdown: list[ExpenseBreakdownResponse]
    fixed: FixedExpenseResponse

    model_config = {"from_attributes": True}


class HealthResponse(BaseModel):
    status: str = "ok"
    database: str = "ok"


class ErrorResponse(BaseModel):
    error_code: str
    message: str
    details: dict = {}
