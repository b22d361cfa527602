"""
Payment services - Midtrans Snap integration.

Provides the hosted-checkout session call, the transaction status lookup,
and the pure helpers used to authenticate and classify notifications.
"""

import hashlib
import hmac
import logging
from collections.abc import Mapping
from typing import Any

from django.conf import settings

import httpx
from pydantic import ValidationError as PydanticValidationError
from storefront_schemas import (
    OrderItem,
    PaymentNotification,
    PaymentOutcome,
    PaymentSession,
    SnapCustomerDetail,
    SnapItemDetail,
    SnapTransactionDetails,
    SnapTransactionRequest,
)

from apps.web.core.exceptions import UpstreamRejected, UpstreamUnavailable

logger = logging.getLogger(__name__)

SIGNED_FIELDS = ("order_id", "status_code", "gross_amount")

SUCCESS_STATUSES = frozenset({"settlement"})
PENDING_STATUSES = frozenset({"pending"})
FAILED_STATUSES = frozenset({"deny", "cancel", "expire", "failure"})


def compute_signature(
    order_id: str, status_code: str, gross_amount: str, server_key: str
) -> str:
    """SHA-512 hex digest Midtrans uses to sign notifications."""
    raw = f"{order_id}{status_code}{gross_amount}{server_key}"
    return hashlib.sha512(raw.encode()).hexdigest()


def verify_signature(payload: Any, server_key: str) -> bool:
    """
    Verify the signature_key of a notification payload.

    Never raises: malformed payloads, missing fields and non-string values
    all verify as False.

    Args:
        payload: Decoded JSON body of the notification.
        server_key: Midtrans server key (shared secret).

    Returns:
        True only if the supplied signature matches.
    """
    if not server_key or not isinstance(payload, Mapping):
        return False

    try:
        values = [payload.get(field) for field in SIGNED_FIELDS]
        signature = payload.get("signature_key")
        if not all(isinstance(v, str) and v for v in values):
            return False
        if not isinstance(signature, str) or not signature:
            return False

        expected = compute_signature(*values, server_key)
        return hmac.compare_digest(expected, signature.lower())
    except Exception:
        logger.warning("Signature verification errored on malformed payload")
        return False


def classify_notification(payload: PaymentNotification) -> PaymentOutcome:
    """
    Map a transaction status to a payment outcome.

    Card captures are only successful once fraud screening accepts them;
    a "challenge" is held as pending for manual review.
    """
    status = payload.transaction_status.lower()
    fraud = payload.fraud_status.lower()

    if status == "capture":
        if fraud in ("", "accept"):
            return PaymentOutcome.SUCCESS
        if fraud == "challenge":
            return PaymentOutcome.PENDING
        if fraud == "deny":
            return PaymentOutcome.FAILED
        return PaymentOutcome.UNKNOWN

    if status in SUCCESS_STATUSES:
        return PaymentOutcome.SUCCESS
    if status in PENDING_STATUSES:
        return PaymentOutcome.PENDING
    if status in FAILED_STATUSES:
        return PaymentOutcome.FAILED
    return PaymentOutcome.UNKNOWN


def parse_notification(payload: Any) -> PaymentNotification:
    """
    Parse a raw payload into a notification record.

    Fields that are missing or unusable resolve to their empty defaults.
    """
    if not isinstance(payload, Mapping):
        return PaymentNotification()
    try:
        return PaymentNotification.model_validate(dict(payload))
    except PydanticValidationError:
        usable = {
            key: value
            for key, value in payload.items()
            if isinstance(value, str | int | float) and not isinstance(value, bool)
        }
        return PaymentNotification.model_validate(usable)


class MidtransGateway:
    """
    Midtrans payment gateway client.

    Uses HTTP basic auth with the server key as username and an empty
    password, over HTTPS.

    API Reference: https://docs.midtrans.com/reference
    """

    SNAP_SANDBOX_URL = "https://app.sandbox.midtrans.com/snap/v1"
    SNAP_PRODUCTION_URL = "https://app.midtrans.com/snap/v1"
    API_SANDBOX_URL = "https://api.sandbox.midtrans.com/v2"
    API_PRODUCTION_URL = "https://api.midtrans.com/v2"

    def __init__(
        self,
        server_key: str,
        is_production: bool = False,
        http_client: httpx.Client | None = None,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            server_key: Midtrans server key.
            is_production: If True, use the production environment.
            http_client: Optional HTTP client for dependency injection (testing).
            timeout: Request timeout in seconds when we own the client.
        """
        self._server_key = server_key
        self._snap_url = (
            self.SNAP_PRODUCTION_URL if is_production else self.SNAP_SANDBOX_URL
        )
        self._api_url = (
            self.API_PRODUCTION_URL if is_production else self.API_SANDBOX_URL
        )
        self._client = http_client or httpx.Client(timeout=timeout)

    @property
    def snap_url(self) -> str:
        return self._snap_url

    @property
    def api_url(self) -> str:
        return self._api_url

    def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:
        """Make an authenticated request and map failures to upstream errors."""
        try:
            response = self._client.request(
                method,
                url,
                auth=(self._server_key, ""),
                headers={"Accept": "application/json"},
                **kwargs,
            )
        except httpx.RequestError as e:
            raise UpstreamUnavailable(
                f"Midtrans request failed: {e}",
                provider="midtrans",
            ) from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}

        if response.is_success:
            return data

        messages = data.get("error_messages") or []
        detail = messages[0] if messages else response.reason_phrase
        message = f"Midtrans API error ({response.status_code}): {detail}"

        error_class = (
            UpstreamRejected if response.status_code < 500 else UpstreamUnavailable
        )
        raise error_class(
            message,
            provider="midtrans",
            status_code=response.status_code,
            response_body=response.text,
        )

    def create_session(
        self,
        order_id: str,
        total_amount: int,
        customer: SnapCustomerDetail,
        items: list[OrderItem],
        finish_url: str,
    ) -> PaymentSession:
        """
        Create a Snap hosted-checkout session for an order.

        Args:
            order_id: Our order ID, used as the Midtrans order_id.
            total_amount: Server-computed order total.
            customer: Customer name and phone.
            items: Line items shown on the payment page.
            finish_url: Where Snap sends the customer after payment.

        Returns:
            PaymentSession with token and redirect URL.

        Raises:
            UpstreamRejected: If the amount is not positive or Midtrans
                rejects the request.
            UpstreamUnavailable: On network or server failure.
        """
        if total_amount <= 0:
            raise UpstreamRejected(
                f"Transaction amount must be positive, got {total_amount}",
                provider="midtrans",
            )

        request = SnapTransactionRequest(
            transaction_details=SnapTransactionDetails(
                order_id=order_id,
                gross_amount=total_amount,
            ),
            customer_details=customer,
            item_details=[
                SnapItemDetail(
                    id=f"{item.id}-{item.variant_id}",
                    name=item.name,
                    price=item.price,
                    quantity=item.quantity,
                    category=item.category_name,
                )
                for item in items
            ],
            callbacks={"finish": finish_url},
        )

        data = self._request(
            "POST",
            f"{self._snap_url}/transactions",
            json=request.model_dump(exclude_none=True),
        )

        token = data.get("token")
        if not token:
            raise UpstreamUnavailable(
                "Midtrans response did not include a token",
                provider="midtrans",
            )

        return PaymentSession(token=token, redirect_url=data.get("redirect_url", ""))

    def get_transaction_status(self, order_id: str) -> PaymentNotification:
        """
        Fetch the current transaction status for an order.

        Midtrans answers unknown orders with HTTP 200 and status_code "404";
        that parses into a notification whose status classifies as UNKNOWN.

        Raises:
            UpstreamRejected: If Midtrans rejects the request.
            UpstreamUnavailable: On network or server failure.
        """
        data = self._request("GET", f"{self._api_url}/{order_id}/status")
        return parse_notification(data)

    def verify_notification(self, payload: Any) -> bool:
        """Verify a webhook payload against the configured server key."""
        return verify_signature(payload, self._server_key)

    def classify(self, payload: PaymentNotification) -> PaymentOutcome:
        """Classify a parsed notification."""
        return classify_notification(payload)


def get_payment_gateway() -> MidtransGateway:
    """Build the gateway from settings."""
    return MidtransGateway(
        server_key=settings.MIDTRANS_SERVER_KEY,
        is_production=settings.MIDTRANS_IS_PRODUCTION,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
