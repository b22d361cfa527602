"""Base POS adapter protocol - interface for all POS integrations."""

from typing import Protocol, runtime_checkable

from storefront_schemas import (
    OrderItem,
    Outlet,
    POSCustomer,
    PosOrderRef,
    POSProvider,
    PosReceiptRef,
    Product,
)


@runtime_checkable
class POSAdapter(Protocol):
    """
    Protocol defining the interface for POS system integrations.

    All POS adapters (Moka, Mock) must implement this interface.
    Methods are async to support non-blocking I/O with external APIs.
    Adapters hold no order state; every call is self-contained.
    """

    @property
    def provider(self) -> POSProvider:
        """The POS provider this adapter connects to."""
        ...

    async def close(self) -> None:
        """Release any HTTP resources held by the adapter."""
        ...

    # =========================================================================
    # Catalog Operations (read)
    # =========================================================================

    async def list_outlets(self) -> list[Outlet]:
        """
        List the outlets the account has access to.

        Returns:
            Outlets with id and display name.

        Raises:
            UpstreamUnavailable: On network or server failure.
            UpstreamRejected: If the vendor rejects the credentials.
        """
        ...

    async def list_products(self, outlet_id: int) -> list[Product]:
        """
        List sellable products for an outlet.

        Product browsing degrades gracefully: upstream failures are logged
        and an empty list is returned.

        Args:
            outlet_id: POS outlet ID.

        Returns:
            Products flattened to their default variant, or [] on error.
        """
        ...

    # =========================================================================
    # Order Operations (write)
    # =========================================================================

    async def submit_cashier_order(
        self,
        outlet_id: int,
        customer: POSCustomer,
        note: str,
        items: list[OrderItem],
    ) -> PosOrderRef:
        """
        Send an order to the outlet's cashier for in-person payment.

        A fresh application order ID is generated for every call, since the
        vendor does not deduplicate submissions.

        Args:
            outlet_id: POS outlet ID.
            customer: Customer name and phone.
            note: Free-text note from the customer.
            items: Validated line items.

        Returns:
            Reference to the created cashier order.

        Raises:
            UpstreamRejected: If the vendor rejects the order (4xx).
            UpstreamUnavailable: On network or server failure (5xx).
        """
        ...

    async def record_completed_sale(
        self,
        outlet_id: int,
        items: list[OrderItem],
        note: str,
        total_amount: int,
    ) -> PosReceiptRef:
        """
        Record an already-paid sale directly into the POS transactions.

        Args:
            outlet_id: POS outlet ID.
            items: Line items of the paid order.
            note: Payment note shown on the receipt.
            total_amount: Validated total; must equal the sum of the items.

        Returns:
            Reference to the recorded receipt.

        Raises:
            ValueError: If total_amount does not match the items.
            UpstreamRejected: If the vendor rejects the sale (4xx).
            UpstreamUnavailable: On network or server failure (5xx).
        """
        ...
