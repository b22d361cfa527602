"""POS integration schemas - data contracts for the Moka point-of-sale API."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Enums
# =============================================================================


class POSProvider(str, Enum):
    """Supported POS providers."""

    MOKA = "moka"
    MOCK = "mock"


class SaleRecordMethod(str, Enum):
    """How a paid online order is written into the POS."""

    CHECKOUT = "checkout"  # completed-sale record, no cashier interaction
    ADVANCED_ORDER = "advanced_order"  # cashier order flagged as paid online


# =============================================================================
# Catalog
# =============================================================================


class Outlet(BaseModel):
    """A physical outlet in the vendor account."""

    id: int
    name: str


class Product(BaseModel):
    """A sellable catalog item, flattened to its default variant."""

    id: int
    name: str
    description: str = ""
    price: int = 0
    category: str = "Uncategorized"
    image_url: str | None = None
    stock: int = 0

    # Needed to send the item back to the POS in an order
    variant_id: int = 0
    variant_name: str = "Standard"
    category_id: int = 0


# =============================================================================
# Customer
# =============================================================================


class POSCustomer(BaseModel):
    """Customer details attached to a POS order."""

    name: str
    phone: str = ""


# =============================================================================
# Request payloads
# =============================================================================


class AdvancedOrderItem(BaseModel):
    """Line item in an advanced (cashier) order."""

    item_id: int
    item_name: str
    quantity: int
    item_variant_id: int
    item_variant_name: str
    note: str = ""
    item_price_library: int
    category_id: int
    category_name: str
    item_modifiers: list[dict[str, object]] = Field(default_factory=list)
    item_discount_amount: int | None = None


class AdvancedOrderRequest(BaseModel):
    """Body for POST /v1/outlets/{id}/advanced_orderings/orders."""

    customer_name: str
    customer_phone_number: str
    customer_address_detail: str = "Online Order"
    customer_city: str = "Online"
    sales_type_name: str = "Website Order"
    client_created_at: str
    application_order_id: str
    payment_type: str = "Cash"
    note: str
    discount_amount: int | None = None
    order_items: list[AdvancedOrderItem]


class CheckoutItem(BaseModel):
    """Line item in a completed-sale checkout."""

    quantity: int
    item_id: int
    item_name: str
    item_variant_id: int
    item_variant_name: str
    category_id: int
    category_name: str
    client_price: int
    gross_sales: int
    net_sales: int


class Checkout(BaseModel):
    """Completed-sale body; every amount equals the validated total."""

    note: str
    client_created_at: str
    total_gross_sales: int
    total_net_sales: int
    total_collected: int
    amount_pay: int
    items: list[CheckoutItem]


class CheckoutRequest(BaseModel):
    """Body for POST /v1/outlets/{id}/checkouts."""

    checkout: Checkout


# =============================================================================
# Results
# =============================================================================


class PosOrderRef(BaseModel):
    """Reference to an advanced order created in the POS."""

    model_config = ConfigDict(frozen=True)

    application_order_id: str = Field(description="Our idempotency key")
    id: int | None = None
    uuid: str | None = None
    status: str = "pending"


class PosReceiptRef(BaseModel):
    """Reference to a completed sale recorded in the POS."""

    model_config = ConfigDict(frozen=True)

    uuid: str | None = None
    receipt_no: str | None = None
    total_collected: int = 0
