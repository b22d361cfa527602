"""
Cashier order service - sends pay-at-the-counter orders to the POS.

These orders never pass through the online-payment lifecycle: there is no
order store entry and no state machine. The POS application order ID is
the only reference.
"""

import asyncio
import logging
from collections.abc import Callable

from storefront_schemas import POSCustomer, PosOrderRef, compute_total

from apps.web.pos.adapters import POSAdapter, get_adapter
from apps.web.pos.serializers import CashierOrderRequest

logger = logging.getLogger(__name__)


async def _submit_async(
    adapter: POSAdapter, request: CashierOrderRequest
) -> PosOrderRef:
    try:
        return await adapter.submit_cashier_order(
            request.outlet_id,
            POSCustomer(name=request.customer_name, phone=request.customer_phone),
            request.customer_note,
            list(request.items),
        )
    finally:
        await adapter.close()


def submit_cashier_order(
    request: CashierOrderRequest,
    adapter_factory: Callable[[], POSAdapter] | None = None,
) -> PosOrderRef:
    """
    Submit an order to the outlet's cashier app for in-person payment.

    Args:
        request: Validated cashier order.
        adapter_factory: Returns the POS adapter to use. Defaults to the
            configured provider.

    Returns:
        Reference of the order created in the POS.

    Raises:
        UpstreamError: If the POS refuses or cannot be reached.
    """
    logger.info(
        "Sending cashier order to outlet %s: customer=%s items=%d total=%d",
        request.outlet_id,
        request.customer_name,
        len(request.items),
        compute_total(request.items),
    )

    factory = adapter_factory or get_adapter
    ref = asyncio.run(_submit_async(factory(), request))

    logger.info(
        "Cashier order %s created (status=%s)", ref.application_order_id, ref.status
    )
    return ref
