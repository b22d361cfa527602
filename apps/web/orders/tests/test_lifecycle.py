"""Tests for the order lifecycle controller."""

import json
import re
import threading

import httpx
import pytest
import respx
from storefront_schemas import (
    OrderStatus,
    PaymentOutcome,
    ReconciliationOutcome,
    SaleRecordMethod,
)

from apps.web.core.exceptions import UpstreamUnavailable
from apps.web.orders.exceptions import (
    OrderNotFound,
    PaymentSessionFailed,
    SignatureInvalid,
)
from apps.web.orders.lifecycle import (
    OrderLifecycle,
    build_paid_order_note,
    build_payment_note,
)
from apps.web.orders.serializers import CreateTransactionRequest
from apps.web.pos.adapters import MokaAdapter
from apps.web.pos.adapters.mock import MockPOSAdapter

MOKA_URL = "https://api.mokapos.com/v1"
SNAP_URL = "https://app.sandbox.midtrans.com/snap/v1/transactions"
STATUS_URL = "https://api.sandbox.midtrans.com/v2/{order_id}/status"

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def cart_request() -> CreateTransactionRequest:
    """Two Matcha Lattes at 15000 with a misleading client total."""
    return CreateTransactionRequest.model_validate(
        {
            "outlet_id": 1001,
            "outlet_name": "Kopi Gubeng",
            "customer_name": "  Budi  ",
            "customer_phone": "081234567890",
            "note": "Less sugar",
            "total": 1,
            "items": [
                {
                    "id": 1,
                    "variant_id": 101,
                    "name": "Matcha Latte",
                    "price": 15000,
                    "quantity": 2,
                    "category_id": 10,
                    "category_name": "Coffee & Tea",
                }
            ],
        }
    )


def _lifecycle(order_store, gateway, mock_pos, **kwargs) -> OrderLifecycle:
    return OrderLifecycle(
        store=order_store,
        payment_gateway=gateway,
        pos_adapter_factory=lambda: mock_pos,
        app_url="https://shop.example.com",
        **kwargs,
    )


# =============================================================================
# Transaction creation
# =============================================================================


class TestCreateTransaction:
    """Tests for opening a payment session."""

    @respx.mock
    def test_total_computed_on_server(self, lifecycle, order_store, cart_request):
        """Test that 15000 x 2 is charged as 30000 whatever the client sent."""
        route = respx.post(SNAP_URL).mock(
            return_value=httpx.Response(
                201,
                json={"token": "snap-token", "redirect_url": "https://pay/snap"},
            )
        )

        created = lifecycle.create_transaction(cart_request)

        assert created.total == 30000
        assert created.token == "snap-token"
        assert created.redirect_url == "https://pay/snap"

        sent = json.loads(route.calls.last.request.content)
        assert sent["transaction_details"] == {
            "order_id": created.order_id,
            "gross_amount": 30000,
        }
        assert sent["item_details"][0]["id"] == "1-101"
        assert sent["customer_details"]["first_name"] == "Budi"
        assert sent["callbacks"]["finish"] == (
            f"https://shop.example.com/order-success?order_id={created.order_id}"
        )

        order = order_store.get(created.order_id)
        assert order.status == OrderStatus.PENDING
        assert order.total == 30000
        assert order.customer_name == "Budi"
        assert order.pos_reference is None

    @respx.mock
    def test_order_id_format(self, lifecycle, cart_request):
        """Test that order IDs are WEB-<millis>-<6 base36 chars>."""
        respx.post(SNAP_URL).mock(
            return_value=httpx.Response(201, json={"token": "t", "redirect_url": ""})
        )

        first = lifecycle.create_transaction(cart_request)
        second = lifecycle.create_transaction(cart_request)

        assert re.fullmatch(r"WEB-\d{13}-[0-9A-Z]{6}", first.order_id)
        assert first.order_id != second.order_id

    @respx.mock
    def test_session_failure_stores_nothing(self, lifecycle, order_store, cart_request):
        """Test that a gateway outage raises and leaves no order behind."""
        respx.post(SNAP_URL).mock(return_value=httpx.Response(503))

        with pytest.raises(PaymentSessionFailed) as exc_info:
            lifecycle.create_transaction(cart_request)

        assert exc_info.value.is_retryable
        assert order_store.all() == []

    @respx.mock
    def test_session_rejected_not_retryable(self, lifecycle, order_store, cart_request):
        """Test that a rejected request is reported as non-retryable."""
        respx.post(SNAP_URL).mock(
            return_value=httpx.Response(
                400, json={"error_messages": ["gross_amount is invalid"]}
            )
        )

        with pytest.raises(PaymentSessionFailed) as exc_info:
            lifecycle.create_transaction(cart_request)

        assert not exc_info.value.is_retryable
        assert order_store.all() == []


# =============================================================================
# Gateway notifications
# =============================================================================


class TestHandleNotification:
    """Tests for the webhook reconciliation path."""

    def test_settlement_records_sale(
        self, lifecycle, order_store, mock_pos, make_order, signed_notification
    ):
        """Test that a successful payment marks the order paid and records it."""
        order = make_order()

        result = lifecycle.handle_notification(signed_notification(order.id))

        assert result.outcome == ReconciliationOutcome.RECORDED
        assert result.status == OrderStatus.PAID
        assert result.pos_reference == "MOCK-00001"

        stored = order_store.get(order.id)
        assert stored.status == OrderStatus.PAID
        assert stored.pos_reference == "MOCK-00001"
        assert stored.payment_type == "qris"
        assert stored.payment_transaction_id == f"tx-{order.id}"
        assert stored.gateway_status == "settlement"

        assert len(mock_pos.recorded_sales) == 1
        sale = mock_pos.recorded_sales[0]
        assert sale["total_amount"] == 30000
        assert sale["outlet_id"] == 1001
        assert str(sale["note"]).startswith("Online Payment - QRIS")

    def test_duplicate_success_records_once(
        self, lifecycle, order_store, mock_pos, make_order, signed_notification
    ):
        """Test that a repeated success notification is a no-op."""
        order = make_order()
        payload = signed_notification(order.id)

        first = lifecycle.handle_notification(payload)
        second = lifecycle.handle_notification(payload)

        assert first.outcome == ReconciliationOutcome.RECORDED
        assert second.outcome == ReconciliationOutcome.ALREADY_RECORDED
        assert second.pos_reference == first.pos_reference
        assert len(mock_pos.recorded_sales) == 1

    def test_bad_signature_changes_nothing(
        self, lifecycle, order_store, mock_pos, make_order, signed_notification
    ):
        """Test that an unauthenticated notification is rejected untouched."""
        order = make_order()
        payload = signed_notification(order.id)
        payload["signature_key"] = "0" * 128

        with pytest.raises(SignatureInvalid):
            lifecycle.handle_notification(payload)

        assert order_store.get(order.id) == order
        assert mock_pos.recorded_sales == []

    def test_tampered_amount_rejected(
        self, lifecycle, order_store, make_order, signed_notification
    ):
        """Test that changing a signed field invalidates the signature."""
        order = make_order()
        payload = signed_notification(order.id)
        payload["gross_amount"] = "1.00"

        with pytest.raises(SignatureInvalid):
            lifecycle.handle_notification(payload)

        assert order_store.get(order.id).status == OrderStatus.PENDING

    def test_unknown_order_raises(
        self, lifecycle, order_store, mock_pos, signed_notification
    ):
        """Test that a valid notification for an unknown order mutates nothing."""
        with pytest.raises(OrderNotFound):
            lifecycle.handle_notification(signed_notification("WEB-0-UNKNOWN"))

        assert order_store.all() == []
        assert order_store._row_locks == {}
        assert mock_pos.recorded_sales == []

    def test_pending_reconfirms(
        self, lifecycle, order_store, mock_pos, make_order, signed_notification
    ):
        """Test that a pending notification keeps the order pending."""
        order = make_order()

        result = lifecycle.handle_notification(
            signed_notification(order.id, "pending", status_code="201")
        )

        assert result.outcome == ReconciliationOutcome.PENDING
        stored = order_store.get(order.id)
        assert stored.status == OrderStatus.PENDING
        assert stored.payment_type == "qris"
        assert mock_pos.recorded_sales == []

    @pytest.mark.parametrize("status", ["deny", "cancel", "expire", "failure"])
    def test_failure_statuses_fail_order(
        self, lifecycle, order_store, make_order, signed_notification, status
    ):
        """Test that every failure status moves a pending order to failed."""
        order = make_order()

        result = lifecycle.handle_notification(
            signed_notification(order.id, status, status_code="202")
        )

        assert result.outcome == ReconciliationOutcome.FAILED
        assert order_store.get(order.id).status == OrderStatus.FAILED

    def test_late_success_after_failure_ignored(
        self, lifecycle, order_store, mock_pos, make_order, signed_notification
    ):
        """Test that failed is terminal against a later success."""
        order = make_order()
        lifecycle.handle_notification(
            signed_notification(order.id, "expire", status_code="407")
        )

        result = lifecycle.handle_notification(signed_notification(order.id))

        assert result.outcome == ReconciliationOutcome.IGNORED
        assert order_store.get(order.id).status == OrderStatus.FAILED
        assert mock_pos.recorded_sales == []

    def test_failure_after_payment_ignored(
        self, lifecycle, order_store, make_order, signed_notification
    ):
        """Test that a paid order cannot be failed."""
        order = make_order()
        lifecycle.handle_notification(signed_notification(order.id))

        result = lifecycle.handle_notification(
            signed_notification(order.id, "cancel", status_code="202")
        )

        assert result.outcome == ReconciliationOutcome.IGNORED
        assert order_store.get(order.id).status == OrderStatus.PAID

    def test_capture_challenge_held_pending(
        self, lifecycle, order_store, mock_pos, make_order, signed_notification
    ):
        """Test that a card capture under fraud review is not recorded."""
        order = make_order()

        result = lifecycle.handle_notification(
            signed_notification(order.id, "capture", fraud_status="challenge")
        )

        assert result.outcome == ReconciliationOutcome.PENDING
        assert order_store.get(order.id).status == OrderStatus.PENDING
        assert mock_pos.recorded_sales == []

    def test_unrecognised_status_ignored(
        self, lifecycle, order_store, make_order, signed_notification
    ):
        """Test that an unknown transaction status changes nothing."""
        order = make_order()

        result = lifecycle.handle_notification(
            signed_notification(order.id, "authorize")
        )

        assert result.outcome == ReconciliationOutcome.IGNORED
        assert order_store.get(order.id) == order


class TestPosFailure:
    """Tests for POS recording failures after a real payment."""

    def test_pos_failure_is_partial(
        self, lifecycle, order_store, mock_pos, make_order, signed_notification
    ):
        """Test that the order stays paid and the error is captured."""
        order = make_order()
        mock_pos.set_fail_records(True)

        result = lifecycle.handle_notification(signed_notification(order.id))

        assert result.outcome == ReconciliationOutcome.PARTIAL_FAILURE
        assert result.status == OrderStatus.PAID
        assert "Simulated checkout failure" in (result.error or "")

        stored = order_store.get(order.id)
        assert stored.status == OrderStatus.PAID
        assert stored.pos_reference is None
        assert stored.pos_error is not None

    def test_retry_after_pos_failure_records(
        self, lifecycle, order_store, mock_pos, make_order, signed_notification
    ):
        """Test that a redelivered notification completes the recording."""
        order = make_order()
        mock_pos.set_fail_records(True)
        lifecycle.handle_notification(signed_notification(order.id))

        mock_pos.set_fail_records(False)
        result = lifecycle.handle_notification(signed_notification(order.id))

        assert result.outcome == ReconciliationOutcome.RECORDED
        stored = order_store.get(order.id)
        assert stored.pos_reference == "MOCK-00001"
        assert stored.pos_error is None
        assert len(mock_pos.recorded_sales) == 1

    @respx.mock
    def test_unexpected_receipt_body_records_once(
        self, order_store, gateway, make_order, signed_notification
    ):
        """Test that an accepted checkout with an odd body is never re-sent."""
        route = respx.post(f"{MOKA_URL}/outlets/1001/checkouts").mock(
            return_value=httpx.Response(200, json={"data": ["unexpected"]})
        )
        lifecycle = OrderLifecycle(
            store=order_store,
            payment_gateway=gateway,
            pos_adapter_factory=lambda: MokaAdapter(access_token="moka-token"),
        )
        order = make_order()

        first = lifecycle.handle_notification(signed_notification(order.id))
        second = lifecycle.record_payment(order.id)

        assert first.outcome == ReconciliationOutcome.RECORDED
        assert first.pos_reference == order.id
        assert second.outcome == ReconciliationOutcome.ALREADY_RECORDED
        assert route.call_count == 1


# =============================================================================
# Client-reported payments
# =============================================================================


class TestRecordPayment:
    """Tests for the client callback path."""

    @respx.mock
    def test_verified_success_records(
        self, lifecycle, order_store, mock_pos, make_order
    ):
        """Test that a gateway-confirmed success is recorded."""
        order = make_order()
        respx.get(STATUS_URL.format(order_id=order.id)).mock(
            return_value=httpx.Response(
                200,
                json={
                    "order_id": order.id,
                    "status_code": "200",
                    "transaction_status": "settlement",
                    "transaction_id": "tx-verified",
                    "payment_type": "gopay",
                    "gross_amount": "30000.00",
                },
            )
        )

        result = lifecycle.record_payment(order.id, payment_type="qris")

        assert result.outcome == ReconciliationOutcome.RECORDED
        stored = order_store.get(order.id)
        assert stored.payment_type == "gopay"
        assert stored.payment_transaction_id == "tx-verified"
        assert len(mock_pos.recorded_sales) == 1

    @respx.mock
    def test_unconfirmed_success_not_trusted(
        self, lifecycle, order_store, mock_pos, make_order
    ):
        """Test that a client claim is not trusted while the gateway says pending."""
        order = make_order()
        respx.get(STATUS_URL.format(order_id=order.id)).mock(
            return_value=httpx.Response(
                200,
                json={
                    "order_id": order.id,
                    "status_code": "201",
                    "transaction_status": "pending",
                },
            )
        )

        result = lifecycle.record_payment(order.id)

        assert result.outcome == ReconciliationOutcome.PENDING
        assert order_store.get(order.id).status == OrderStatus.PENDING
        assert mock_pos.recorded_sales == []

    @respx.mock
    def test_already_recorded_short_circuits(
        self, lifecycle, order_store, mock_pos, make_order
    ):
        """Test that a recorded order answers without any outbound call."""
        order = make_order()
        lifecycle.reconcile(order.id, PaymentOutcome.SUCCESS, payment_type="qris")

        result = lifecycle.record_payment(order.id)

        assert result.outcome == ReconciliationOutcome.ALREADY_RECORDED
        assert result.pos_reference == "MOCK-00001"
        assert len(respx.calls) == 0
        assert len(mock_pos.recorded_sales) == 1

    @respx.mock
    def test_gateway_unavailable_propagates(self, lifecycle, order_store, make_order):
        """Test that a status lookup outage is raised, not guessed."""
        order = make_order()
        respx.get(STATUS_URL.format(order_id=order.id)).mock(
            return_value=httpx.Response(500)
        )

        with pytest.raises(UpstreamUnavailable):
            lifecycle.record_payment(order.id)

        assert order_store.get(order.id) == order

    def test_unknown_order_raises(self, lifecycle):
        """Test that an unknown order ID raises OrderNotFound."""
        with pytest.raises(OrderNotFound):
            lifecycle.record_payment("WEB-0-UNKNOWN")

    def test_trust_client_when_verification_disabled(
        self, order_store, gateway, mock_pos, make_order
    ):
        """Test that the client is trusted when verification is off."""
        lifecycle = _lifecycle(
            order_store, gateway, mock_pos, verify_client_record=False
        )
        order = make_order()

        result = lifecycle.record_payment(order.id, payment_type="bank_transfer")

        assert result.outcome == ReconciliationOutcome.RECORDED
        assert order_store.get(order.id).payment_type == "bank_transfer"
        assert "BANK_TRANSFER" in str(mock_pos.recorded_sales[0]["note"])


# =============================================================================
# Concurrency
# =============================================================================


class TestConcurrentSuccess:
    """Tests for racing success signals."""

    def test_racing_signals_record_once(
        self, order_store, gateway, make_order, signed_notification
    ):
        """Test that webhook and client callbacks racing record one sale."""
        slow_pos = MockPOSAdapter(api_delay_ms=50)
        lifecycle = _lifecycle(
            order_store, gateway, slow_pos, verify_client_record=False
        )
        order = make_order()
        payload = signed_notification(order.id)
        start = threading.Barrier(6)
        outcomes: list[ReconciliationOutcome] = []
        outcomes_lock = threading.Lock()

        def webhook():
            start.wait()
            result = lifecycle.handle_notification(payload)
            with outcomes_lock:
                outcomes.append(result.outcome)

        def client():
            start.wait()
            result = lifecycle.record_payment(order.id, payment_type="qris")
            with outcomes_lock:
                outcomes.append(result.outcome)

        threads = [threading.Thread(target=webhook) for _ in range(3)]
        threads += [threading.Thread(target=client) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(slow_pos.recorded_sales) == 1
        assert outcomes.count(ReconciliationOutcome.RECORDED) == 1
        assert outcomes.count(ReconciliationOutcome.ALREADY_RECORDED) == 5

        stored = order_store.get(order.id)
        assert stored.status == OrderStatus.PAID
        assert stored.pos_reference == "MOCK-00001"


# =============================================================================
# Sale record methods and notes
# =============================================================================


class TestAdvancedOrderRecording:
    """Tests for recording paid orders as cashier orders."""

    def test_paid_order_sent_to_cashier(
        self, order_store, gateway, mock_pos, make_order, signed_notification
    ):
        """Test that the advanced order reference becomes the POS reference."""
        lifecycle = _lifecycle(
            order_store,
            gateway,
            mock_pos,
            record_method=SaleRecordMethod.ADVANCED_ORDER,
        )
        order = make_order()

        result = lifecycle.handle_notification(signed_notification(order.id))

        assert result.outcome == ReconciliationOutcome.RECORDED
        assert mock_pos.recorded_sales == []
        assert len(mock_pos.cashier_orders) == 1

        submitted = mock_pos.cashier_orders[0]
        ref = submitted["ref"]
        assert result.pos_reference == ref.application_order_id
        assert str(submitted["note"]).startswith("PAID ONLINE (QRIS)")


class TestNotes:
    """Tests for POS note formatting."""

    def test_payment_note(self, make_order):
        order = make_order()

        assert build_payment_note(order, "qris") == (
            f"Online Payment - QRIS | Order: {order.id} | Customer: Budi"
            " | Phone: 081234567890 | Note: Less sugar"
        )

    def test_payment_note_without_customer_note(self, make_order):
        order = make_order(note="")

        assert not build_payment_note(order, "gopay").endswith("Note: ")
        assert "Note:" not in build_payment_note(order, "gopay")

    def test_paid_order_note(self, make_order):
        order = make_order()

        assert build_paid_order_note(order, "gopay") == (
            f"PAID ONLINE (GOPAY) - Order {order.id} - Less sugar"
        )
