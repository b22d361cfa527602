"""Order schemas - the online-payment order record and its line items."""

from collections.abc import Iterable
from datetime import datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# =============================================================================
# Enums
# =============================================================================


class OrderStatus(str, Enum):
    """Online order lifecycle status."""

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class ReconciliationOutcome(str, Enum):
    """What a single reconciliation attempt did to an order."""

    RECORDED = "recorded"  # paid and recorded to the POS
    ALREADY_RECORDED = "already_recorded"  # duplicate success, no POS call
    PARTIAL_FAILURE = "partial_failure"  # paid, POS recording failed
    PENDING = "pending"
    FAILED = "failed"
    IGNORED = "ignored"  # no state change


# =============================================================================
# Line items
# =============================================================================


class OrderItem(BaseModel):
    """
    A cart line item.

    Prices are integers in the smallest currency unit. Fractional amounts
    are rejected by validation rather than truncated.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: int = Field(description="Product ID in the POS catalog")
    variant_id: int
    name: str = Field(..., min_length=1)
    variant_name: str = "Standard"
    price: int = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    category_id: int = 0
    category_name: str = Field(
        default="",
        validation_alias=AliasChoices("category_name", "category"),
    )

    @property
    def line_total(self) -> int:
        """Unit price times quantity."""
        return self.price * self.quantity


def compute_total(items: Iterable[OrderItem]) -> int:
    """Sum of line totals. The only source of truth for an order amount."""
    return sum(item.line_total for item in items)


# =============================================================================
# Orders
# =============================================================================


class Order(BaseModel):
    """An order placed through the online-payment path."""

    model_config = ConfigDict(frozen=True)

    id: str
    outlet_id: int
    outlet_name: str = ""
    customer_name: str
    customer_phone: str
    note: str = ""
    items: tuple[OrderItem, ...]
    total: int = Field(..., ge=0)
    status: OrderStatus = OrderStatus.PENDING

    # Payment gateway side
    payment_type: str | None = None
    payment_transaction_id: str | None = None
    gateway_status: str | None = None

    # POS side
    pos_reference: str | None = None
    pos_error: str | None = None

    created_at: datetime
    updated_at: datetime

    @property
    def is_recorded(self) -> bool:
        """Paid and already carrying a POS reference."""
        return self.status == OrderStatus.PAID and bool(self.pos_reference)


class ReconciliationResult(BaseModel):
    """Captured result of reconciling a payment signal against an order."""

    order_id: str
    outcome: ReconciliationOutcome
    status: OrderStatus
    pos_reference: str | None = None
    error: str | None = None
