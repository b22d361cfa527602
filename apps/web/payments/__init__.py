"""Payments module - Midtrans Snap integration for online ordering."""

from apps.web.payments.services import (
    MidtransGateway,
    classify_notification,
    compute_signature,
    get_payment_gateway,
    parse_notification,
    verify_signature,
)

__all__ = [
    "MidtransGateway",
    "classify_notification",
    "compute_signature",
    "get_payment_gateway",
    "parse_notification",
    "verify_signature",
]
