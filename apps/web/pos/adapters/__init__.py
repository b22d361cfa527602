"""POS adapters - implementations for each POS provider."""

from typing import Any

from django.conf import settings

from storefront_schemas import POSProvider

from apps.web.pos.adapters.base import POSAdapter
from apps.web.pos.adapters.mock import MockPOSAdapter
from apps.web.pos.adapters.moka import MokaAdapter


def get_adapter(provider: POSProvider | str | None = None, **kwargs: Any) -> POSAdapter:
    """
    Get a POS adapter instance for the specified provider.

    This is the main entry point for obtaining POS adapters. Use this
    factory function rather than instantiating adapters directly.

    Args:
        provider: The POS provider. Defaults to settings.POS_PROVIDER.
        **kwargs: Additional arguments passed to the adapter constructor.
            For MokaAdapter these override the settings-derived values.

    Returns:
        An adapter instance implementing the POSAdapter protocol.

    Raises:
        ValueError: If the provider is not supported.

    Example:
        adapter = get_adapter()
        try:
            outlets = await adapter.list_outlets()
        finally:
            await adapter.close()
    """
    try:
        provider = POSProvider(provider or settings.POS_PROVIDER)
    except ValueError as e:
        supported = ", ".join(p.value for p in POSProvider)
        raise ValueError(
            f"Unsupported POS provider: {provider}. Supported: {supported}"
        ) from e

    if provider == POSProvider.MOCK:
        return MockPOSAdapter(**kwargs)

    options: dict[str, Any] = {
        "access_token": settings.MOKA_ACCESS_TOKEN,
        "base_url": settings.MOKA_API_URL,
        "timezone": settings.MOKA_TIMEZONE,
        "timeout": settings.HTTP_TIMEOUT_SECONDS,
    }
    options.update(kwargs)
    return MokaAdapter(**options)


__all__ = [
    "MockPOSAdapter",
    "MokaAdapter",
    "POSAdapter",
    "get_adapter",
]
