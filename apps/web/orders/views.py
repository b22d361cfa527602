"""
Online-payment API views.

Endpoints:
- POST /api/payment/create-transaction: Open a payment session for a cart
- POST /api/payment/record: Client-reported payment success
- GET  /api/payment/status: Order status lookup
"""

import json
import logging
from typing import Any

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from pydantic import ValidationError as PydanticValidationError
from storefront_schemas import ReconciliationOutcome

from apps.web.core.exceptions import UpstreamError
from apps.web.orders.exceptions import OrderNotFound, PaymentSessionFailed
from apps.web.orders.lifecycle import get_order_lifecycle
from apps.web.orders.serializers import (
    CreateTransactionRequest,
    CreateTransactionResponse,
    ErrorResponse,
    OrderLineSchema,
    OrderStatusData,
    OrderStatusResponse,
    RecordPaymentData,
    RecordPaymentRequest,
    RecordPaymentResponse,
    ValidationErrorDetail,
    ValidationErrorResponse,
)

logger = logging.getLogger(__name__)

RECORD_MESSAGES = {
    ReconciliationOutcome.RECORDED: "Payment recorded",
    ReconciliationOutcome.ALREADY_RECORDED: "Already recorded",
    ReconciliationOutcome.PARTIAL_FAILURE: (
        "Payment was received but the order could not be sent to the outlet. "
        "Please contact support."
    ),
    ReconciliationOutcome.PENDING: "Payment is still pending",
    ReconciliationOutcome.FAILED: "Payment failed",
    ReconciliationOutcome.IGNORED: "No change",
}


def _json_response(data: dict[str, Any], status: int = 200) -> JsonResponse:
    return JsonResponse(data, status=status)


def _error(message: str, status: int, retryable: bool = False) -> JsonResponse:
    body = ErrorResponse(error=message, retryable=retryable)
    return _json_response(body.model_dump(), status=status)


def validation_error_response(e: PydanticValidationError) -> JsonResponse:
    """Translate a pydantic error into the 400 validation body."""
    errors = [
        ValidationErrorDetail(
            field=".".join(str(loc) for loc in err["loc"]),
            message=err["msg"],
        )
        for err in e.errors()
    ]
    response = ValidationErrorResponse(error="validation_error", details=errors)
    return _json_response(response.model_dump(), status=400)


def _parse_json(request: HttpRequest) -> Any:
    return json.loads(request.body or b"null")


@csrf_exempt
@require_POST
def create_transaction(request: HttpRequest) -> JsonResponse:
    """
    POST /api/payment/create-transaction

    Request body: CreateTransactionRequest schema
    Response: CreateTransactionResponse (200), ValidationErrorResponse (400)
        or ErrorResponse (502) when the payment session cannot be opened.
    """
    try:
        body = _parse_json(request)
        transaction_request = CreateTransactionRequest.model_validate(body)
    except PydanticValidationError as e:
        return validation_error_response(e)
    except ValueError:
        return _error("Invalid JSON in request body", status=400)

    try:
        created = get_order_lifecycle().create_transaction(transaction_request)
    except PaymentSessionFailed as e:
        return _error(
            "Payment could not be started. Please try again.",
            status=502,
            retryable=e.is_retryable,
        )

    response = CreateTransactionResponse(data=created)
    return _json_response(response.model_dump(mode="json"))


@csrf_exempt
@require_POST
def record_payment(request: HttpRequest) -> JsonResponse:
    """
    POST /api/payment/record

    Called by the storefront after the payment dialog reports success.
    A POS failure after a real payment is reported with pos_recorded=false
    rather than as an HTTP error, since the payment itself stands.
    """
    try:
        body = _parse_json(request)
        record_request = RecordPaymentRequest.model_validate(body)
    except PydanticValidationError:
        return _error("Order ID is required", status=400)
    except ValueError:
        return _error("Invalid JSON in request body", status=400)

    try:
        result = get_order_lifecycle().record_payment(
            record_request.order_id,
            payment_type=record_request.payment_type,
        )
    except OrderNotFound:
        return _error("Order not found", status=404)
    except UpstreamError as e:
        logger.error(
            "Could not verify payment for order %s: %s", record_request.order_id, e
        )
        return _error(
            "Payment could not be verified. Please try again.",
            status=502,
            retryable=True,
        )

    response = RecordPaymentResponse(
        success=result.outcome != ReconciliationOutcome.FAILED,
        data=RecordPaymentData(
            order_id=result.order_id,
            outcome=result.outcome,
            status=result.status,
            pos_recorded=bool(result.pos_reference),
            pos_reference=result.pos_reference,
            message=RECORD_MESSAGES[result.outcome],
        ),
    )
    return _json_response(response.model_dump(mode="json"))


@require_GET
def payment_status(request: HttpRequest) -> JsonResponse:
    """
    GET /api/payment/status?order_id=...

    Response: OrderStatusResponse schema (200) or error.
    """
    order_id = request.GET.get("order_id", "").strip()
    if not order_id:
        return _error("Order ID is required", status=400)

    try:
        order = get_order_lifecycle().get_order(order_id)
    except OrderNotFound:
        return _error("Order not found", status=404)

    response = OrderStatusResponse(
        data=OrderStatusData(
            id=order.id,
            status=order.status,
            customer_name=order.customer_name,
            outlet_name=order.outlet_name,
            total=order.total,
            payment_type=order.payment_type,
            pos_reference=order.pos_reference,
            items=[
                OrderLineSchema(
                    name=item.name,
                    quantity=item.quantity,
                    price=item.price,
                )
                for item in order.items
            ],
            created_at=order.created_at,
            updated_at=order.updated_at,
        )
    )
    return _json_response(response.model_dump(mode="json"))
