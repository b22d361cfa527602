"""
Midtrans webhook handlers.

Handles HTTP notifications from Midtrans:
- settlement / capture: Payment completed, order recorded to the POS
- pending: Payment awaiting completion
- deny / cancel / expire / failure: Payment failed
"""

import json
import logging

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from apps.web.orders.exceptions import OrderNotFound, SignatureInvalid
from apps.web.orders.lifecycle import get_order_lifecycle

logger = logging.getLogger(__name__)


@csrf_exempt
@require_http_methods(["GET", "POST"])
def midtrans_notification(request: HttpRequest) -> JsonResponse:
    """
    Handle Midtrans payment notifications.

    POST /api/payment/notification
    GET  /api/payment/notification (liveness ping)

    Midtrans retries any non-2xx response, so only unauthenticated or
    unknown notifications are refused. POS recording failures are
    captured on the order and still acknowledged.
    """
    if request.method == "GET":
        return JsonResponse({"status": "Webhook endpoint is active"})

    try:
        payload = json.loads(request.body)
    except ValueError as e:
        logger.warning("Invalid Midtrans notification payload: %s", e)
        return JsonResponse({"error": "Invalid payload"}, status=400)

    try:
        result = get_order_lifecycle().handle_notification(payload)
    except SignatureInvalid:
        return JsonResponse({"error": "Invalid signature"}, status=401)
    except OrderNotFound as e:
        logger.error("Notification for unknown order: %s", e.order_id)
        return JsonResponse({"error": "Order not found"}, status=404)

    logger.info(
        "Processed notification for order %s: %s (status=%s)",
        result.order_id,
        result.outcome.value,
        result.status.value,
    )
    return JsonResponse({"status": "OK"})
