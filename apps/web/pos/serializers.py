"""
Pydantic schemas for the catalog and cashier-order API.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from storefront_schemas import OrderItem, Outlet, Product

# =============================================================================
# Catalog
# =============================================================================


class OutletListResponse(BaseModel):
    """Response for GET /api/outlets."""

    outlets: list[Outlet]


class ProductListResponse(BaseModel):
    """Response for GET /api/products."""

    products: list[Product]


# =============================================================================
# Cashier orders
# =============================================================================


class CashierOrderRequest(BaseModel):
    """Request body for POST /api/orders (pay at the cashier)."""

    model_config = ConfigDict(extra="ignore")

    outlet_id: int
    customer_name: str = Field(..., max_length=200)
    customer_phone: str = Field(default="", max_length=20)
    customer_note: str = Field(default="", max_length=500)
    items: list[OrderItem] = Field(..., min_length=1)

    @field_validator("customer_name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Customer name is required")
        return value


class CashierOrderData(BaseModel):
    """Reference returned once the order reaches the cashier app."""

    order_id: str
    status: str
    message: str


class CashierOrderResponse(BaseModel):
    """Response for POST /api/orders."""

    success: Literal[True] = True
    data: CashierOrderData
