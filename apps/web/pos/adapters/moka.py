"""Moka POS adapter - integration with the Moka (GoBiz) point-of-sale API."""

import asyncio
import logging
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

import httpx
from storefront_schemas import (
    AdvancedOrderItem,
    AdvancedOrderRequest,
    Checkout,
    CheckoutItem,
    CheckoutRequest,
    OrderItem,
    Outlet,
    POSCustomer,
    PosOrderRef,
    POSProvider,
    PosReceiptRef,
    Product,
    compute_total,
)

from apps.web.core.exceptions import (
    UpstreamError,
    UpstreamRejected,
    UpstreamUnavailable,
)
from apps.web.core.identifiers import generate_order_id

logger = logging.getLogger(__name__)


def _as_reference(value: Any) -> str | None:
    """Receipt identifiers arrive as strings or numbers; anything else is dropped."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (str, int)):
        return str(value) or None
    return None


class MokaAdapter:
    """
    Moka POS adapter implementing the POSAdapter protocol.

    Integrates with the Moka REST API for:
    - Outlet listing (via the profile endpoint)
    - Catalog items per outlet
    - Advanced orders (sent to the cashier app for in-person payment)
    - Checkouts (completed, already-paid sales)

    Authentication is a long-lived bearer token issued in the Moka
    back office; there is no refresh flow.

    API Reference: https://api.mokapos.com/docs
    """

    DEFAULT_BASE_URL = "https://api.mokapos.com"
    API_PREFIX = "/v1"

    # Retry configuration (reads only - writes are never retried)
    MAX_RETRIES = 3
    RETRY_BACKOFF_BASE = 2.0

    def __init__(
        self,
        access_token: str,
        base_url: str | None = None,
        timezone: str = "Asia/Jakarta",
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        """
        Initialize the Moka adapter.

        Args:
            access_token: Moka API bearer token.
            base_url: API host, defaults to production.
            timezone: Outlet time zone used for client_created_at.
            http_client: Optional HTTP client for dependency injection (testing).
            timeout: Request timeout in seconds when we own the client.
        """
        self._access_token = access_token
        base = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self._base_url = base + self.API_PREFIX
        self._tz = ZoneInfo(timezone)
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = http_client is None

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            await self._client.aclose()

    @property
    def provider(self) -> POSProvider:
        """The POS provider this adapter connects to."""
        return POSProvider.MOKA

    # =========================================================================
    # HTTP Helpers
    # =========================================================================

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._access_token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _check_configured(self) -> None:
        if not self._access_token:
            raise UpstreamRejected(
                "Moka access token is not configured",
                provider="moka",
            )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Pull the vendor error message out of a failed response."""
        try:
            data = response.json()
        except ValueError:
            return response.reason_phrase or f"HTTP {response.status_code}"

        meta = data.get("meta") if isinstance(data, dict) else None
        if isinstance(meta, dict) and meta.get("error_message"):
            return str(meta["error_message"])
        return response.reason_phrase or f"HTTP {response.status_code}"

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Translate a failed vendor response into an upstream exception."""
        if response.is_success:
            return

        message = (
            f"Moka API error ({response.status_code}): "
            f"{self._error_message(response)}"
        )
        if response.status_code < 500:
            raise UpstreamRejected(
                message,
                provider="moka",
                status_code=response.status_code,
                response_body=response.text,
            )
        raise UpstreamUnavailable(
            message,
            provider="moka",
            status_code=response.status_code,
            response_body=response.text,
        )

    async def _get(self, endpoint: str) -> dict[str, Any]:
        """
        GET with retry on network and server errors.

        Raises:
            UpstreamRejected: On 4xx responses (not retried).
            UpstreamUnavailable: If the request fails after retries.
        """
        self._check_configured()
        url = f"{self._base_url}{endpoint}"
        last_error: Exception | None = None

        for attempt in range(self.MAX_RETRIES):
            try:
                response = await self._client.get(url, headers=self._headers())
                self._raise_for_status(response)
                data = response.json()
                if not isinstance(data, dict):
                    raise UpstreamUnavailable(
                        "Moka returned an unexpected response body",
                        provider="moka",
                        status_code=response.status_code,
                        response_body=response.text,
                    )
                return data
            except (httpx.RequestError, ValueError, UpstreamUnavailable) as e:
                last_error = e

            if attempt < self.MAX_RETRIES - 1:
                backoff = self.RETRY_BACKOFF_BASE**attempt
                logger.warning(
                    "Moka API failed (attempt %d/%d), retry in %.1fs: %s",
                    attempt + 1,
                    self.MAX_RETRIES,
                    backoff,
                    last_error,
                )
                await asyncio.sleep(backoff)

        raise UpstreamUnavailable(
            f"Moka API request failed after {self.MAX_RETRIES} attempts: "
            f"{last_error}",
            provider="moka",
            status_code=getattr(last_error, "status_code", None),
        )

    async def _post(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any]:
        """
        POST once. Submissions are not idempotent on the vendor side.

        Raises:
            UpstreamRejected: On 4xx responses.
            UpstreamUnavailable: On network failure or 5xx responses.
        """
        self._check_configured()
        try:
            response = await self._client.post(
                f"{self._base_url}{endpoint}",
                headers=self._headers(),
                json=body,
            )
        except httpx.RequestError as e:
            raise UpstreamUnavailable(
                f"Moka request failed: {e}",
                provider="moka",
            ) from e

        self._raise_for_status(response)
        try:
            data = response.json()
        except ValueError:
            data = {}
        return data if isinstance(data, dict) else {}

    def _client_created_at(self) -> str:
        """Current time in the outlet time zone, ISO-8601 with offset."""
        return datetime.now(self._tz).isoformat(timespec="milliseconds")

    # =========================================================================
    # Catalog Operations
    # =========================================================================

    async def list_outlets(self) -> list[Outlet]:
        """
        List outlets the token has access to.

        Moka returns parallel arrays on the profile:
        {"outlet_ids": [1, 2], "outlet_names": ["A", "B"]}
        """
        data = await self._get("/profile/self")
        profile = data["data"] if isinstance(data.get("data"), dict) else data

        outlet_ids = profile.get("outlet_ids") or []
        outlet_names = profile.get("outlet_names") or []

        outlets: list[Outlet] = []
        for index, outlet_id in enumerate(outlet_ids):
            name = outlet_names[index] if index < len(outlet_names) else ""
            outlets.append(Outlet(id=outlet_id, name=name or f"Outlet {outlet_id}"))
        return outlets

    async def list_products(self, outlet_id: int) -> list[Product]:
        """List products for an outlet, or [] if Moka cannot be reached."""
        try:
            data = await self._get(f"/outlets/{outlet_id}/items")
        except UpstreamError as e:
            logger.error("Failed to fetch products for outlet %s: %s", outlet_id, e)
            return []

        # Items are sometimes nested under "data", sometimes at the root
        nested = data.get("data")
        raw_items = (nested.get("items") if isinstance(nested, dict) else None) or (
            data.get("items") or []
        )

        return [
            self._parse_product(raw)
            for raw in raw_items
            if isinstance(raw, dict) and raw.get("id") is not None
        ]

    def _parse_product(self, raw: dict[str, Any]) -> Product:
        """Convert a Moka item to a Product using its first variant."""
        variants = raw.get("item_variants") or []
        main_variant: dict[str, Any] = variants[0] if variants else {}
        category: dict[str, Any] = raw.get("category") or {}
        image: dict[str, Any] = raw.get("image") or {}

        return Product(
            id=raw["id"],
            name=raw.get("name", ""),
            description=raw.get("description") or "",
            price=int(main_variant.get("price") or 0),
            stock=int(main_variant.get("in_stock") or 0),
            category=category.get("name") or "Uncategorized",
            image_url=image.get("url"),
            variant_id=main_variant.get("id") or 0,
            variant_name=main_variant.get("name") or "Standard",
            category_id=category.get("id") or 0,
        )

    # =========================================================================
    # Order Operations
    # =========================================================================

    async def submit_cashier_order(
        self,
        outlet_id: int,
        customer: POSCustomer,
        note: str,
        items: list[OrderItem],
    ) -> PosOrderRef:
        """Create an advanced order for the cashier app."""
        application_order_id = generate_order_id()
        items_summary = ", ".join(f"{item.name} x{item.quantity}" for item in items)

        request = AdvancedOrderRequest(
            customer_name=customer.name,
            customer_phone_number=customer.phone or "-",
            client_created_at=self._client_created_at(),
            application_order_id=application_order_id,
            note=(
                f"[Website] {note} | {items_summary}"
                if note
                else f"[Website] {items_summary}"
            ),
            order_items=[
                AdvancedOrderItem(
                    item_id=item.id,
                    item_name=item.name,
                    quantity=item.quantity,
                    item_variant_id=item.variant_id,
                    item_variant_name=item.variant_name,
                    item_price_library=item.price,
                    category_id=item.category_id,
                    category_name=item.category_name,
                )
                for item in items
            ],
        )

        logger.info(
            "Sending advanced order %s to outlet %s: customer=%s items=%d total=%d",
            application_order_id,
            outlet_id,
            customer.name,
            len(items),
            compute_total(items),
        )

        data = await self._post(
            f"/outlets/{outlet_id}/advanced_orderings/orders",
            request.model_dump(),
        )
        order_data = data.get("data")
        if not isinstance(order_data, dict):
            order_data = {}
        moka_id = order_data.get("id")
        if isinstance(moka_id, bool) or not isinstance(moka_id, int):
            moka_id = None
        status = order_data.get("status")

        ref = PosOrderRef(
            application_order_id=application_order_id,
            id=moka_id,
            uuid=_as_reference(order_data.get("uuid")),
            status=status if isinstance(status, str) and status else "pending",
        )
        logger.info(
            "Advanced order %s created: status=%s uuid=%s",
            application_order_id,
            ref.status,
            ref.uuid,
        )
        return ref

    async def record_completed_sale(
        self,
        outlet_id: int,
        items: list[OrderItem],
        note: str,
        total_amount: int,
    ) -> PosReceiptRef:
        """Record a paid sale via the checkout endpoint."""
        expected = compute_total(items)
        if total_amount != expected:
            raise ValueError(
                f"Sale total {total_amount} does not match line items ({expected})"
            )

        request = CheckoutRequest(
            checkout=Checkout(
                note=note,
                client_created_at=self._client_created_at(),
                total_gross_sales=total_amount,
                total_net_sales=total_amount,
                total_collected=total_amount,
                amount_pay=total_amount,
                items=[
                    CheckoutItem(
                        quantity=item.quantity,
                        item_id=item.id,
                        item_name=item.name,
                        item_variant_id=item.variant_id,
                        item_variant_name=item.variant_name,
                        category_id=item.category_id,
                        category_name=item.category_name,
                        client_price=item.price,
                        gross_sales=item.line_total,
                        net_sales=item.line_total,
                    )
                    for item in items
                ],
            )
        )

        logger.info(
            "Recording checkout for outlet %s: items=%d total=%d",
            outlet_id,
            len(items),
            total_amount,
        )

        try:
            data = await self._post(
                f"/outlets/{outlet_id}/checkouts",
                request.model_dump(),
            )
        except UpstreamError:
            logger.error(
                "Checkout payload rejected for outlet %s: %s",
                outlet_id,
                request.model_dump_json(),
            )
            raise

        # The sale exists in the POS from here on; reading the body must not raise
        receipt = data.get("data")
        if not isinstance(receipt, dict):
            receipt = {}
        collected = receipt.get("total_collected")
        ref = PosReceiptRef(
            uuid=_as_reference(receipt.get("uuid")),
            receipt_no=_as_reference(receipt.get("receipt_no")),
            total_collected=collected if isinstance(collected, int) else total_amount,
        )
        logger.info(
            "Checkout recorded for outlet %s: receipt_no=%s uuid=%s",
            outlet_id,
            ref.receipt_no,
            ref.uuid,
        )
        return ref
