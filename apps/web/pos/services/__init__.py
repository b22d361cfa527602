"""POS services - catalog listings and cashier order submission."""

from apps.web.pos.services.cashier import submit_cashier_order
from apps.web.pos.services.catalog import list_outlets, list_products

__all__ = [
    "list_outlets",
    "list_products",
    "submit_cashier_order",
]
