"""Storefront Schemas - Pydantic models for data contracts."""

from storefront_schemas.orders import (
    Order,
    OrderItem,
    OrderStatus,
    ReconciliationOutcome,
    ReconciliationResult,
    compute_total,
)
from storefront_schemas.payments import (
    PaymentNotification,
    PaymentOutcome,
    PaymentSession,
    SnapCustomerDetail,
    SnapItemDetail,
    SnapTransactionDetails,
    SnapTransactionRequest,
)
from storefront_schemas.pos import (
    AdvancedOrderItem,
    AdvancedOrderRequest,
    Checkout,
    CheckoutItem,
    CheckoutRequest,
    Outlet,
    POSCustomer,
    PosOrderRef,
    POSProvider,
    PosReceiptRef,
    Product,
    SaleRecordMethod,
)

__all__ = [
    # Orders
    "Order",
    "OrderItem",
    "OrderStatus",
    "ReconciliationOutcome",
    "ReconciliationResult",
    "compute_total",
    # Payments
    "PaymentNotification",
    "PaymentOutcome",
    "PaymentSession",
    "SnapCustomerDetail",
    "SnapItemDetail",
    "SnapTransactionDetails",
    "SnapTransactionRequest",
    # POS
    "AdvancedOrderItem",
    "AdvancedOrderRequest",
    "Checkout",
    "CheckoutItem",
    "CheckoutRequest",
    "Outlet",
    "POSCustomer",
    "PosOrderRef",
    "POSProvider",
    "PosReceiptRef",
    "Product",
    "SaleRecordMethod",
]
