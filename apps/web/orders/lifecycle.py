"""
Order lifecycle - drives an online order from payment session to POS sale.

Handles:
1. Opening a payment session and storing the pending order
2. Authenticating gateway notifications
3. Verifying client-reported payments
4. Reconciling payment outcomes against the order state machine
5. Recording paid orders into the POS exactly once

State machine:
    pending -> paid     (successful payment)
    pending -> failed   (deny / cancel / expire / failure)
    pending -> pending  (re-confirmation)
    paid and failed are terminal; paid may still gain a POS reference.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from functools import lru_cache
from typing import Any, TypeVar

from django.conf import settings
from django.utils import timezone

from storefront_schemas import (
    Order,
    OrderItem,
    OrderStatus,
    PaymentOutcome,
    POSCustomer,
    ReconciliationOutcome,
    ReconciliationResult,
    SaleRecordMethod,
    SnapCustomerDetail,
    compute_total,
)

from apps.web.core.exceptions import UpstreamError
from apps.web.core.identifiers import generate_order_id
from apps.web.orders.exceptions import PaymentSessionFailed, SignatureInvalid
from apps.web.orders.serializers import CreatedTransaction, CreateTransactionRequest
from apps.web.orders.store import InMemoryOrderStore, OrderStore
from apps.web.payments.services import (
    MidtransGateway,
    get_payment_gateway,
    parse_notification,
)
from apps.web.pos.adapters import POSAdapter, get_adapter

logger = logging.getLogger(__name__)

T = TypeVar("T")

SOURCE_NOTIFICATION = "notification"
SOURCE_CLIENT = "client"


def build_payment_note(order: Order, payment_type: str) -> str:
    """Receipt note attached to a completed-sale record."""
    parts = [
        f"Online Payment - {payment_type.upper()}",
        f"Order: {order.id}",
        f"Customer: {order.customer_name}",
        f"Phone: {order.customer_phone}",
    ]
    if order.note:
        parts.append(f"Note: {order.note}")
    return " | ".join(parts)


def build_paid_order_note(order: Order, payment_type: str) -> str:
    """Cashier note for a paid order sent as an advanced order."""
    note = f"PAID ONLINE ({payment_type.upper()}) - Order {order.id}"
    return f"{note} - {order.note}" if order.note else note


class OrderLifecycle:
    """
    Controller for the online-payment order lifecycle.

    Every payment signal, whether a gateway notification or a client
    callback, funnels into reconcile(), which holds the store's per-order
    lock for the whole transition including the POS call. A paid order is
    therefore recorded to the POS at most once no matter how many
    duplicate or concurrent signals arrive.
    """

    def __init__(
        self,
        store: OrderStore,
        payment_gateway: MidtransGateway,
        pos_adapter_factory: Callable[[], POSAdapter] = get_adapter,
        app_url: str = "http://localhost:8000",
        record_method: SaleRecordMethod = SaleRecordMethod.CHECKOUT,
        verify_client_record: bool = True,
    ) -> None:
        """
        Initialize the controller.

        Args:
            store: Order store holding the authoritative order records.
            payment_gateway: Gateway used for sessions and status checks.
            pos_adapter_factory: Returns a fresh POS adapter per call.
            app_url: Public base URL, used for the payment finish redirect.
            record_method: How paid orders are written into the POS.
            verify_client_record: If True, client-reported payments are
                confirmed with the gateway before being trusted.
        """
        self._store = store
        self._gateway = payment_gateway
        self._pos_adapter_factory = pos_adapter_factory
        self._app_url = app_url.rstrip("/")
        self._record_method = SaleRecordMethod(record_method)
        self._verify_client_record = verify_client_record

    @property
    def store(self) -> OrderStore:
        return self._store

    def _run_pos(self, call: Callable[[POSAdapter], Awaitable[T]]) -> T:
        """Run one async adapter call to completion and release the adapter."""

        async def _run() -> T:
            adapter = self._pos_adapter_factory()
            try:
                return await call(adapter)
            finally:
                await adapter.close()

        return asyncio.run(_run())

    # =========================================================================
    # Transaction creation
    # =========================================================================

    def create_transaction(
        self, request: CreateTransactionRequest
    ) -> CreatedTransaction:
        """
        Open a payment session for a cart and store the pending order.

        The order is only stored once the gateway has issued a session, so
        a failed session leaves no trace.

        Raises:
            PaymentSessionFailed: If the gateway could not create a session.
        """
        items = [OrderItem.model_validate(item.model_dump()) for item in request.items]
        total = compute_total(items)
        order_id = generate_order_id()

        try:
            session = self._gateway.create_session(
                order_id=order_id,
                total_amount=total,
                customer=SnapCustomerDetail(
                    first_name=request.customer_name,
                    phone=request.customer_phone,
                ),
                items=items,
                finish_url=f"{self._app_url}/order-success?order_id={order_id}",
            )
        except UpstreamError as e:
            logger.error("Payment session failed for order %s: %s", order_id, e)
            raise PaymentSessionFailed(
                "Could not start payment",
                order_id=order_id,
                cause=e,
            ) from e

        now = timezone.now()
        self._store.create(
            Order(
                id=order_id,
                outlet_id=request.outlet_id,
                outlet_name=request.outlet_name,
                customer_name=request.customer_name,
                customer_phone=request.customer_phone,
                note=request.note,
                items=items,
                total=total,
                status=OrderStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
        )

        logger.info(
            "Payment session opened for order %s: outlet=%s total=%d",
            order_id,
            request.outlet_id,
            total,
        )
        return CreatedTransaction(
            order_id=order_id,
            token=session.token,
            redirect_url=session.redirect_url,
            total=total,
        )

    # =========================================================================
    # Payment signals
    # =========================================================================

    def handle_notification(self, payload: Any) -> ReconciliationResult:
        """
        Process a gateway notification.

        Authentication happens before the order is even looked up, so an
        unauthenticated payload can never touch state.

        Raises:
            SignatureInvalid: If the signature does not verify.
            OrderNotFound: If the notification names an unknown order.
        """
        if not self._gateway.verify_notification(payload):
            order_id = payload.get("order_id") if isinstance(payload, Mapping) else None
            logger.warning("Rejected notification with invalid signature: %s", order_id)
            raise SignatureInvalid("Invalid signature", order_id=order_id)

        notification = parse_notification(payload)
        outcome = self._gateway.classify(notification)

        logger.info(
            "Notification for order %s: status=%s fraud=%s -> %s",
            notification.order_id,
            notification.transaction_status,
            notification.fraud_status or "-",
            outcome.value,
        )

        return self.reconcile(
            notification.order_id,
            outcome,
            payment_type=notification.payment_type or None,
            transaction_id=notification.transaction_id or None,
            gateway_status=notification.transaction_status or None,
            source=SOURCE_NOTIFICATION,
        )

    def record_payment(
        self, order_id: str, payment_type: str | None = None
    ) -> ReconciliationResult:
        """
        Process a client-reported payment success.

        Raises:
            OrderNotFound: If the order is unknown.
            UpstreamError: If the gateway status lookup fails.
        """
        order = self._store.get(order_id)
        if order.is_recorded:
            logger.info(
                "Order %s already recorded as %s", order_id, order.pos_reference
            )
            return self._result(order, ReconciliationOutcome.ALREADY_RECORDED)

        if not self._verify_client_record:
            return self.reconcile(
                order_id,
                PaymentOutcome.SUCCESS,
                payment_type=payment_type or "online",
                source=SOURCE_CLIENT,
            )

        status = self._gateway.get_transaction_status(order_id)
        outcome = self._gateway.classify(status)
        logger.info(
            "Gateway status for order %s: %s -> %s",
            order_id,
            status.transaction_status or "-",
            outcome.value,
        )

        return self.reconcile(
            order_id,
            outcome,
            payment_type=status.payment_type or payment_type or "online",
            transaction_id=status.transaction_id or None,
            gateway_status=status.transaction_status or None,
            source=SOURCE_CLIENT,
        )

    # =========================================================================
    # Reconciliation
    # =========================================================================

    def reconcile(
        self,
        order_id: str,
        outcome: PaymentOutcome,
        payment_type: str | None = None,
        transaction_id: str | None = None,
        gateway_status: str | None = None,
        source: str = SOURCE_NOTIFICATION,
    ) -> ReconciliationResult:
        """
        Apply a payment outcome to an order.

        Idempotent: repeating the same outcome never repeats its side
        effects. POS failures after a real payment are captured in the
        result, never raised.

        Raises:
            OrderNotFound: If the order is unknown. Nothing is mutated.
        """
        with self._store.lock(order_id):
            order = self._store.get(order_id)

            if outcome == PaymentOutcome.SUCCESS:
                return self._apply_success(
                    order, payment_type, transaction_id, gateway_status, source
                )
            if outcome == PaymentOutcome.PENDING:
                return self._apply_pending(order, payment_type, gateway_status)
            if outcome == PaymentOutcome.FAILED:
                return self._apply_failed(order, payment_type, gateway_status)

            logger.info(
                "Ignoring unrecognised payment status %s for order %s",
                gateway_status,
                order_id,
            )
            return self._result(order, ReconciliationOutcome.IGNORED)

    def _apply_success(
        self,
        order: Order,
        payment_type: str | None,
        transaction_id: str | None,
        gateway_status: str | None,
        source: str,
    ) -> ReconciliationResult:
        if order.is_recorded:
            logger.info(
                "Duplicate success for order %s (%s), already recorded as %s",
                order.id,
                source,
                order.pos_reference,
            )
            return self._result(order, ReconciliationOutcome.ALREADY_RECORDED)

        if order.status == OrderStatus.FAILED:
            logger.warning(
                "Ignoring late success for failed order %s (%s)", order.id, source
            )
            return self._result(order, ReconciliationOutcome.IGNORED)

        patch: dict[str, Any] = {}
        if payment_type:
            patch["payment_type"] = payment_type
        if transaction_id:
            patch["payment_transaction_id"] = transaction_id
        if gateway_status:
            patch["gateway_status"] = gateway_status
        order = self._store.update_status(order.id, OrderStatus.PAID, **patch)

        payment_label = order.payment_type or "online"
        try:
            pos_reference = self._record_sale(order, payment_label)
        except (UpstreamError, ValueError) as e:
            logger.error(
                "Payment received for order %s but POS recording failed: %s",
                order.id,
                e,
            )
            order = self._store.update_status(
                order.id, OrderStatus.PAID, pos_error=str(e)
            )
            return self._result(
                order, ReconciliationOutcome.PARTIAL_FAILURE, error=str(e)
            )

        order = self._store.update_status(
            order.id,
            OrderStatus.PAID,
            pos_reference=pos_reference,
            pos_error=None,
        )
        logger.info(
            "Order %s paid and recorded to POS as %s (%s)",
            order.id,
            pos_reference,
            source,
        )
        return self._result(order, ReconciliationOutcome.RECORDED)

    def _apply_pending(
        self, order: Order, payment_type: str | None, gateway_status: str | None
    ) -> ReconciliationResult:
        if order.status != OrderStatus.PENDING:
            logger.info(
                "Ignoring pending status for %s order %s", order.status.value, order.id
            )
            return self._result(order, ReconciliationOutcome.IGNORED)

        patch: dict[str, Any] = {}
        if payment_type:
            patch["payment_type"] = payment_type
        if gateway_status:
            patch["gateway_status"] = gateway_status
        order = self._store.update_status(order.id, OrderStatus.PENDING, **patch)
        return self._result(order, ReconciliationOutcome.PENDING)

    def _apply_failed(
        self, order: Order, payment_type: str | None, gateway_status: str | None
    ) -> ReconciliationResult:
        if order.status != OrderStatus.PENDING:
            logger.info(
                "Ignoring failure status for %s order %s", order.status.value, order.id
            )
            return self._result(order, ReconciliationOutcome.IGNORED)

        patch: dict[str, Any] = {}
        if payment_type:
            patch["payment_type"] = payment_type
        if gateway_status:
            patch["gateway_status"] = gateway_status
        order = self._store.update_status(order.id, OrderStatus.FAILED, **patch)
        logger.info("Payment failed for order %s (%s)", order.id, gateway_status)
        return self._result(order, ReconciliationOutcome.FAILED)

    def _record_sale(self, order: Order, payment_type: str) -> str:
        """Write a paid order into the POS and return its reference."""
        if self._record_method == SaleRecordMethod.ADVANCED_ORDER:
            customer = POSCustomer(name=order.customer_name, phone=order.customer_phone)
            note = build_paid_order_note(order, payment_type)
            ref = self._run_pos(
                lambda adapter: adapter.submit_cashier_order(
                    order.outlet_id, customer, note, list(order.items)
                )
            )
            return ref.application_order_id

        note = build_payment_note(order, payment_type)
        total = compute_total(order.items)
        receipt = self._run_pos(
            lambda adapter: adapter.record_completed_sale(
                order.outlet_id, list(order.items), note, total
            )
        )
        return receipt.receipt_no or receipt.uuid or order.id

    @staticmethod
    def _result(
        order: Order, outcome: ReconciliationOutcome, error: str | None = None
    ) -> ReconciliationResult:
        return ReconciliationResult(
            order_id=order.id,
            outcome=outcome,
            status=order.status,
            pos_reference=order.pos_reference,
            error=error,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_order(self, order_id: str) -> Order:
        """
        Look up an order snapshot.

        Raises:
            OrderNotFound: If the order is unknown.
        """
        return self._store.get(order_id)


@lru_cache(maxsize=1)
def get_order_lifecycle() -> OrderLifecycle:
    """Process-wide lifecycle built from settings."""
    return OrderLifecycle(
        store=InMemoryOrderStore(),
        payment_gateway=get_payment_gateway(),
        pos_adapter_factory=get_adapter,
        app_url=settings.APP_URL,
        record_method=SaleRecordMethod(settings.POS_SALE_RECORD_METHOD),
        verify_client_record=settings.MIDTRANS_VERIFY_CLIENT_RECORD,
    )
