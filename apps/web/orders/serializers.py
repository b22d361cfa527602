"""
Pydantic schemas for the online-payment API.

These schemas define the public request/response contract of the
payment endpoints.
"""

from datetime import datetime
from typing import Literal

from django.conf import settings

from pydantic import BaseModel, ConfigDict, Field, field_validator
from storefront_schemas import OrderItem, OrderStatus, ReconciliationOutcome

# =============================================================================
# Requests
# =============================================================================


class CartItemSchema(OrderItem):
    """A cart line as submitted by the storefront."""

    price: int = Field(..., gt=0)


class CreateTransactionRequest(BaseModel):
    """
    Request body for POST /api/payment/create-transaction.

    Any client-supplied total is ignored; the amount is always recomputed
    from the line items.
    """

    model_config = ConfigDict(extra="ignore")

    outlet_id: int
    outlet_name: str = ""
    customer_name: str = Field(..., max_length=200)
    customer_phone: str = Field(..., max_length=20)
    note: str = Field(default="", max_length=500)
    items: list[CartItemSchema] = Field(..., min_length=1)

    @field_validator("customer_name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Customer name is required")
        return value

    @field_validator("customer_phone")
    @classmethod
    def phone_long_enough(cls, value: str) -> str:
        value = value.strip()
        if len(value) < settings.ONLINE_PAYMENT_MIN_PHONE_LENGTH:
            raise ValueError("Phone number is not valid")
        return value


class RecordPaymentRequest(BaseModel):
    """Request body for POST /api/payment/record."""

    model_config = ConfigDict(extra="ignore")

    order_id: str = Field(..., min_length=1)
    payment_type: str | None = None


# =============================================================================
# Responses
# =============================================================================


class CreatedTransaction(BaseModel):
    """Data returned after a payment session is opened."""

    order_id: str
    token: str
    redirect_url: str
    total: int


class CreateTransactionResponse(BaseModel):
    """Response for POST /api/payment/create-transaction."""

    success: Literal[True] = True
    data: CreatedTransaction


class RecordPaymentData(BaseModel):
    """Outcome of a client-reported payment."""

    order_id: str
    outcome: ReconciliationOutcome
    status: OrderStatus
    pos_recorded: bool
    pos_reference: str | None = None
    message: str


class RecordPaymentResponse(BaseModel):
    """Response for POST /api/payment/record."""

    success: bool
    data: RecordPaymentData


class OrderLineSchema(BaseModel):
    """A line item in an order status response."""

    name: str
    quantity: int
    price: int


class OrderStatusData(BaseModel):
    """Public snapshot of an order."""

    id: str
    status: OrderStatus
    customer_name: str
    outlet_name: str
    total: int
    payment_type: str | None
    pos_reference: str | None
    items: list[OrderLineSchema]
    created_at: datetime
    updated_at: datetime


class OrderStatusResponse(BaseModel):
    """Response for GET /api/payment/status."""

    success: Literal[True] = True
    data: OrderStatusData


class ErrorResponse(BaseModel):
    """Generic failure body."""

    success: Literal[False] = False
    error: str
    retryable: bool = False


class ValidationErrorDetail(BaseModel):
    """A single validation error."""

    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    """Response for validation errors."""

    error: Literal["validation_error"]
    details: list[ValidationErrorDetail]
