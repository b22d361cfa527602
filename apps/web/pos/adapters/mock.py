"""Mock POS adapter for development and testing."""

import asyncio
import threading
import uuid

from storefront_schemas import (
    OrderItem,
    Outlet,
    POSCustomer,
    PosOrderRef,
    POSProvider,
    PosReceiptRef,
    Product,
    compute_total,
)

from apps.web.core.exceptions import UpstreamRejected, UpstreamUnavailable
from apps.web.core.identifiers import generate_order_id


def _default_outlets() -> list[Outlet]:
    """Generate default test outlets."""
    return [
        Outlet(id=1001, name="Kopi Gubeng"),
        Outlet(id=1002, name="Kopi Darmo"),
    ]


def _default_products() -> list[Product]:
    """Generate default test products."""
    return [
        Product(
            id=1,
            name="Matcha Latte",
            description="Iced matcha with fresh milk",
            price=15000,
            category="Coffee & Tea",
            stock=20,
            variant_id=101,
            variant_name="Standard",
            category_id=10,
        ),
        Product(
            id=2,
            name="Kopi Susu",
            description="Espresso, palm sugar and milk",
            price=18000,
            category="Coffee & Tea",
            stock=35,
            variant_id=201,
            variant_name="Standard",
            category_id=10,
        ),
        Product(
            id=3,
            name="Croissant",
            description="Butter croissant",
            price=22000,
            category="Pastry",
            stock=8,
            variant_id=301,
            variant_name="Standard",
            category_id=20,
        ),
    ]


class MockPOSAdapter:
    """
    Mock POS adapter for development and testing.

    Provides configurable behavior for simulating:
    - Outlet and product catalogs
    - Cashier order and sale recording success/failure
    - API latency (useful to widen race windows in tests)

    Every write call is recorded so tests can assert on exactly what
    reached the POS.

    Usage:
        adapter = MockPOSAdapter(
            products=custom_products,
            fail_records=True,
        )
    """

    def __init__(
        self,
        outlets: list[Outlet] | None = None,
        products: list[Product] | None = None,
        fail_orders: bool = False,
        fail_records: bool = False,
        fail_catalog: bool = False,
        api_delay_ms: int = 0,
    ) -> None:
        """
        Initialize mock adapter.

        Args:
            outlets: Custom outlets to return. Uses default outlets if None.
            products: Custom products to return. Uses default products if None.
            fail_orders: If True, cashier order submission will fail.
            fail_records: If True, completed-sale recording will fail.
            fail_catalog: If True, outlet listing will fail.
            api_delay_ms: Simulated API delay in milliseconds.
        """
        self._outlets = outlets if outlets is not None else _default_outlets()
        self._products = products if products is not None else _default_products()
        self._fail_orders = fail_orders
        self._fail_records = fail_records
        self._fail_catalog = fail_catalog
        self._api_delay_ms = api_delay_ms

        # Calls may arrive from several request threads at once
        self._lock = threading.Lock()
        self.cashier_orders: list[dict[str, object]] = []
        self.recorded_sales: list[dict[str, object]] = []

    @property
    def provider(self) -> POSProvider:
        """The POS provider this adapter connects to."""
        return POSProvider.MOCK

    async def close(self) -> None:
        """Nothing to release."""

    # =========================================================================
    # Configuration methods (for test setup)
    # =========================================================================

    def set_fail_records(self, fail: bool) -> None:
        """Toggle completed-sale recording failures."""
        self._fail_records = fail

    def set_fail_orders(self, fail: bool) -> None:
        """Toggle cashier order failures."""
        self._fail_orders = fail

    async def _simulate_latency(self) -> None:
        if self._api_delay_ms > 0:
            await asyncio.sleep(self._api_delay_ms / 1000)

    # =========================================================================
    # Catalog Operations
    # =========================================================================

    async def list_outlets(self) -> list[Outlet]:
        """Return configured outlets."""
        await self._simulate_latency()
        if self._fail_catalog:
            raise UpstreamUnavailable("Mock catalog unavailable", provider="mock")
        return list(self._outlets)

    async def list_products(self, outlet_id: int) -> list[Product]:  # noqa: ARG002
        """Return configured products for any outlet."""
        await self._simulate_latency()
        if self._fail_catalog:
            return []
        return list(self._products)

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
        """Record a simulated cashier order."""
        await self._simulate_latency()

        if self._fail_orders:
            raise UpstreamRejected(
                "Simulated order failure",
                provider="mock",
                status_code=422,
            )

        with self._lock:
            ref = PosOrderRef(
                application_order_id=generate_order_id(),
                id=len(self.cashier_orders) + 1,
                uuid=str(uuid.uuid4()),
                status="pending",
            )
            self.cashier_orders.append(
                {
                    "outlet_id": outlet_id,
                    "customer": customer,
                    "note": note,
                    "items": list(items),
                    "ref": ref,
                }
            )
        return ref

    async def record_completed_sale(
        self,
        outlet_id: int,
        items: list[OrderItem],
        note: str,
        total_amount: int,
    ) -> PosReceiptRef:
        """Record a simulated completed sale."""
        expected = compute_total(items)
        if total_amount != expected:
            raise ValueError(
                f"Sale total {total_amount} does not match line items ({expected})"
            )

        await self._simulate_latency()

        if self._fail_records:
            raise UpstreamUnavailable(
                "Simulated checkout failure",
                provider="mock",
                status_code=503,
            )

        with self._lock:
            receipt_no = f"MOCK-{len(self.recorded_sales) + 1:05d}"
            ref = PosReceiptRef(
                uuid=str(uuid.uuid4()),
                receipt_no=receipt_no,
                total_collected=total_amount,
            )
            self.recorded_sales.append(
                {
                    "outlet_id": outlet_id,
                    "items": list(items),
                    "note": note,
                    "total_amount": total_amount,
                    "ref": ref,
                }
            )
        return ref
