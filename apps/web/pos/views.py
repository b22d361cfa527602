"""
Catalog and cashier-order API views.

Endpoints:
- GET  /api/outlets: Outlets available for ordering
- GET  /api/products?outletId=: Products of one outlet
- POST /api/orders: Pay-at-the-cashier order
"""

import json
import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from pydantic import ValidationError as PydanticValidationError

from apps.web.core.decorators import idempotent_replay
from apps.web.core.exceptions import UpstreamError, UpstreamUnavailable
from apps.web.orders.views import validation_error_response
from apps.web.pos import services
from apps.web.pos.serializers import (
    CashierOrderData,
    CashierOrderRequest,
    CashierOrderResponse,
    OutletListResponse,
    ProductListResponse,
)

logger = logging.getLogger(__name__)

CASHIER_ORDER_MESSAGE = (
    "Order sent to the cashier. Please pay when you collect it at the outlet."
)


@require_GET
def outlets(_request: HttpRequest) -> JsonResponse:
    """
    GET /api/outlets

    Response: OutletListResponse schema. Empty when the POS is unreachable.
    """
    response = OutletListResponse(outlets=services.list_outlets())
    return JsonResponse(response.model_dump(mode="json"))


@require_GET
def products(request: HttpRequest) -> JsonResponse:
    """
    GET /api/products?outletId=...

    Response: ProductListResponse schema (200) or error (400).
    """
    raw_outlet_id = request.GET.get("outletId", "").strip()
    if not raw_outlet_id:
        return JsonResponse({"error": "outletId is required"}, status=400)

    try:
        outlet_id = int(raw_outlet_id)
    except ValueError:
        return JsonResponse({"error": "outletId must be an integer"}, status=400)

    response = ProductListResponse(products=services.list_products(outlet_id))
    return JsonResponse(response.model_dump(mode="json"))


@csrf_exempt
@require_POST
@idempotent_replay
def cashier_order(request: HttpRequest) -> JsonResponse:
    """
    POST /api/orders

    Send an order to the outlet's cashier app. No online payment is taken.

    Request body: CashierOrderRequest schema
    Response: CashierOrderResponse (200), ValidationErrorResponse (400)
        or error (502) when the POS refuses the order.
    """
    try:
        body = json.loads(request.body)
        order_request = CashierOrderRequest.model_validate(body)
    except PydanticValidationError as e:
        return validation_error_response(e)
    except ValueError:
        return JsonResponse({"error": "Invalid JSON in request body"}, status=400)

    try:
        ref = services.submit_cashier_order(order_request)
    except UpstreamError as e:
        logger.error(
            "Cashier order for outlet %s failed: %s", order_request.outlet_id, e
        )
        return JsonResponse(
            {
                "success": False,
                "error": "The order could not be sent to the outlet. Please try again.",
                "retryable": isinstance(e, UpstreamUnavailable),
            },
            status=502,
        )

    response = CashierOrderResponse(
        data=CashierOrderData(
            order_id=ref.application_order_id,
            status=ref.status,
            message=CASHIER_ORDER_MESSAGE,
        )
    )
    return JsonResponse(response.model_dump(mode="json"))
