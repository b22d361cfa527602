"""
Pytest configuration for Django app tests.
"""

from collections.abc import Callable, Iterator
from datetime import timedelta
from typing import Any

from django.core.cache import cache
from django.utils import timezone

import pytest
from storefront_schemas import Order, OrderItem, OrderStatus, compute_total

from apps.web.orders.lifecycle import OrderLifecycle, get_order_lifecycle
from apps.web.orders.store import InMemoryOrderStore
from apps.web.payments.services import MidtransGateway, compute_signature
from apps.web.pos.adapters.mock import MockPOSAdapter

SERVER_KEY = "SB-Mid-server-test-key"


@pytest.fixture(autouse=True)
def storefront_settings(settings) -> Iterator[None]:
    """Point every test at the mock POS and a known Midtrans key."""
    settings.POS_PROVIDER = "mock"
    settings.MOKA_ACCESS_TOKEN = "moka-test-token"
    settings.MIDTRANS_SERVER_KEY = SERVER_KEY
    settings.MIDTRANS_IS_PRODUCTION = False
    settings.MIDTRANS_VERIFY_CLIENT_RECORD = True
    settings.APP_URL = "https://shop.example.com"
    cache.clear()
    get_order_lifecycle.cache_clear()
    yield
    get_order_lifecycle.cache_clear()


@pytest.fixture
def server_key() -> str:
    return SERVER_KEY


@pytest.fixture
def order_store() -> InMemoryOrderStore:
    """Create an empty order store."""
    return InMemoryOrderStore()


@pytest.fixture
def mock_pos() -> MockPOSAdapter:
    """Create a default mock POS adapter shared by every call in a test."""
    return MockPOSAdapter()


@pytest.fixture
def gateway() -> MidtransGateway:
    """Create a sandbox Midtrans gateway. Mock its HTTP calls with respx."""
    return MidtransGateway(server_key=SERVER_KEY)


@pytest.fixture
def lifecycle(
    order_store: InMemoryOrderStore,
    gateway: MidtransGateway,
    mock_pos: MockPOSAdapter,
) -> OrderLifecycle:
    """Create a lifecycle wired to the test store, gateway and mock POS."""
    return OrderLifecycle(
        store=order_store,
        payment_gateway=gateway,
        pos_adapter_factory=lambda: mock_pos,
        app_url="https://shop.example.com",
    )


@pytest.fixture
def installed_lifecycle(lifecycle: OrderLifecycle, monkeypatch) -> OrderLifecycle:
    """Serve the test lifecycle from the payment endpoints."""
    monkeypatch.setattr(
        "apps.web.orders.views.get_order_lifecycle", lambda: lifecycle
    )
    monkeypatch.setattr(
        "apps.web.payments.webhooks.get_order_lifecycle", lambda: lifecycle
    )
    return lifecycle


@pytest.fixture
def matcha_item() -> OrderItem:
    """Matcha Latte at 15000, quantity 2."""
    return OrderItem(
        id=1,
        variant_id=101,
        name="Matcha Latte",
        price=15000,
        quantity=2,
        category_id=10,
        category_name="Coffee & Tea",
    )


@pytest.fixture
def make_order(
    order_store: InMemoryOrderStore, matcha_item: OrderItem
) -> Callable[..., Order]:
    """Factory storing an order directly, bypassing the payment session."""
    counter = {"n": 0}

    def _make(**overrides: Any) -> Order:
        counter["n"] += 1
        now = timezone.now() + timedelta(microseconds=counter["n"])
        items = overrides.pop("items", [matcha_item])
        fields: dict[str, Any] = {
            "id": f"WEB-1700000000000-TEST{counter['n']:02d}",
            "outlet_id": 1001,
            "outlet_name": "Kopi Gubeng",
            "customer_name": "Budi",
            "customer_phone": "081234567890",
            "note": "Less sugar",
            "items": items,
            "total": compute_total(items),
            "status": OrderStatus.PENDING,
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        return order_store.create(Order(**fields))

    return _make


@pytest.fixture
def signed_notification() -> Callable[..., dict[str, str]]:
    """Factory building a correctly signed Midtrans notification payload."""

    def _build(
        order_id: str,
        transaction_status: str = "settlement",
        gross_amount: str = "30000.00",
        status_code: str = "200",
        **extra: str,
    ) -> dict[str, str]:
        payload = {
            "order_id": order_id,
            "status_code": status_code,
            "gross_amount": gross_amount,
            "transaction_status": transaction_status,
            "transaction_id": f"tx-{order_id}",
            "payment_type": "qris",
            "fraud_status": "accept",
            **extra,
        }
        payload["signature_key"] = compute_signature(
            order_id, status_code, gross_amount, SERVER_KEY
        )
        return payload

    return _build
