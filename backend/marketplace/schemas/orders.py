"""
Order Pydantic schemas for API request/response validation.

Status values in update requests are accepted as plain strings so that an
unknown status reaches the state machine and is reported as an invalid
transition rather than as a request validation error.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from marketplace.database.models.user import UserRole
from marketplace.services.orders.enums import (
    OrderStatus,
    OrderType,
    PaymentStatus,
    PaymentTiming,
)


class OrderCreateRequest(BaseModel):
    """Request body for placing a customer or inventory order."""

    model_config = ConfigDict(str_strip_whitespace=True)

    order_type: OrderType = Field(
        default=OrderType.CUSTOMER,
        description="customer for buyer purchases, inventory for artisan restocking",
    )
    product_id: Optional[UUID] = Field(None, description="Ordered product")
    quantity: Optional[int] = Field(None, description="Number of units")
    user_id: Optional[UUID] = Field(
        None, description="Buyer of a customer order, defaults to the caller"
    )
    supplier_id: Optional[UUID] = Field(
        None, description="Supplier of an inventory order"
    )
    artisan_id: Optional[UUID] = Field(
        None, description="Artisan of an inventory order, defaults to the caller"
    )
    total_price: Optional[Decimal] = Field(None, description="Order total")
    payment_method: Optional[str] = Field(None, max_length=50)
    payment_timing: Optional[PaymentTiming] = Field(
        None, description="beforeDelivery or afterDelivery"
    )
    payment_code: Optional[str] = Field(None, max_length=100)
    delivery_address: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = Field(None, max_length=2000)


class OrderStatusUpdate(BaseModel):
    """Request body for a status transition."""

    status: Optional[str] = Field(None, description="Target order status")


class PaymentStatusUpdate(BaseModel):
    """Request body for a payment status change."""

    payment_status: Optional[str] = Field(None, description="New payment status")


class DriverAssignmentRequest(BaseModel):
    """Request body for assigning a delivery driver."""

    driver_id: Optional[UUID] = Field(None, description="User id of the driver")


class FinanceRejectRequest(BaseModel):
    """Request body for a finance rejection."""

    reason: Optional[str] = Field(None, max_length=2000)


class FinancePaymentRequest(BaseModel):
    """Request body for a finance payout."""

    amount: Optional[Decimal] = Field(None, ge=0)
    payment_method: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = Field(None, max_length=2000)


class SupplierPaymentRequest(BaseModel):
    """Request body for a supplier's payment submission."""

    amount: Optional[Decimal] = Field(None, description="Amount due")
    notes: Optional[str] = Field(None, max_length=2000)
    payment_status: Optional[str] = Field(None, description="Defaults to pending")


class PartySummary(BaseModel):
    """User attached to an order."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str
    email: str
    role: UserRole


class ProductSummary(BaseModel):
    """Product attached to an order."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    price: Decimal
    image: Optional[str] = None
    artisan_name: Optional[str] = None
    category: Optional[str] = None


class OrderResponse(BaseModel):
    """Order with its parties and product resolved."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_type: OrderType
    created_by: Optional[UUID] = None
    user_id: Optional[UUID] = None
    supplier_id: Optional[UUID] = None
    artisan_id: Optional[UUID] = None
    driver_id: Optional[UUID] = None
    product_id: UUID
    user: Optional[PartySummary] = None
    supplier: Optional[PartySummary] = None
    artisan: Optional[PartySummary] = None
    driver: Optional[PartySummary] = None
    product: Optional[ProductSummary] = None
    quantity: int
    total_price: Decimal
    payment_method: str
    payment_timing: PaymentTiming
    payment_code: Optional[str] = None
    delivery_address: Optional[str] = None
    payment_status: PaymentStatus
    order_status: OrderStatus
    notes: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    received_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class OrderListResponse(BaseModel):
    """Paginated order list."""

    orders: list[OrderResponse]
    total_count: int = Field(..., ge=0)
    skip: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)

    @model_validator(mode="after")
    def validate_page(self) -> "OrderListResponse":
        if len(self.orders) > self.limit:
            raise ValueError("Page holds more orders than its limit")
        return self


class FinanceReport(BaseModel):
    """Totals for the finance dashboard."""

    total_orders: int
    total_value: Decimal
    total_approved: int
    total_rejected: int
    total_paid: int
    by_payment_status: dict[str, int]
    by_order_type: dict[str, int]
