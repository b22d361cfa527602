"""Catalog service - outlet and product listings for the storefront."""

import asyncio
import logging
from collections.abc import Callable

from storefront_schemas import Outlet, Product

from apps.web.core.exceptions import UpstreamError
from apps.web.pos.adapters import POSAdapter, get_adapter

logger = logging.getLogger(__name__)


async def _list_outlets_async(adapter: POSAdapter) -> list[Outlet]:
    try:
        return await adapter.list_outlets()
    finally:
        await adapter.close()


async def _list_products_async(adapter: POSAdapter, outlet_id: int) -> list[Product]:
    try:
        return await adapter.list_products(outlet_id)
    finally:
        await adapter.close()


def list_outlets(
    adapter_factory: Callable[[], POSAdapter] | None = None,
) -> list[Outlet]:
    """List outlets, or [] if the POS cannot be reached."""
    factory = adapter_factory or get_adapter
    try:
        return asyncio.run(_list_outlets_async(factory()))
    except UpstreamError as e:
        logger.error("Failed to fetch outlets: %s", e)
        return []


def list_products(
    outlet_id: int,
    adapter_factory: Callable[[], POSAdapter] | None = None,
) -> list[Product]:
    """List products for an outlet. Adapters already degrade to []."""
    factory = adapter_factory or get_adapter
    return asyncio.run(_list_products_async(factory(), outlet_id))
