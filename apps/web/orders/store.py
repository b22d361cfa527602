"""
Order store - authoritative record of online-payment orders.

The store contract is a keyed collection with per-order atomic updates.
InMemoryOrderStore is the process-local implementation: orders live for
the lifetime of the process and are lost on restart. A durable backend
must honour the same contract, in particular per-ID exclusive access via
lock(), which plays the role of SELECT ... FOR UPDATE.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Protocol, runtime_checkable

from django.utils import timezone

from storefront_schemas import Order, OrderStatus

from apps.web.orders.exceptions import DuplicateOrder, OrderNotFound

logger = logging.getLogger(__name__)


@runtime_checkable
class OrderStore(Protocol):
    """Interface every order store backend implements."""

    def create(self, order: Order) -> Order:
        """
        Insert a new order.

        Raises:
            DuplicateOrder: If the ID is already present.
        """
        ...

    def get(self, order_id: str) -> Order:
        """
        Fetch an order snapshot.

        Raises:
            OrderNotFound: If the ID is unknown.
        """
        ...

    def update_status(
        self, order_id: str, status: OrderStatus, **patch: Any
    ) -> Order:
        """
        Set status, merge patch fields and bump updated_at atomically.

        Does not enforce the state machine; that belongs to the caller.

        Raises:
            OrderNotFound: If the ID is unknown.
        """
        ...

    def lock(self, order_id: str) -> Any:
        """
        Context manager holding exclusive access to one order ID.

        Raises:
            OrderNotFound: If the ID is unknown.
        """
        ...


class InMemoryOrderStore:
    """
    Thread-safe in-memory order store.

    A guard lock protects the mapping itself; each order ID additionally
    gets its own re-entrant lock so that a caller holding lock(order_id)
    can keep calling update_status() while other requests for the same
    order wait. Requests for different orders never block each other
    beyond the brief guard section.
    """

    def __init__(self) -> None:
        self._orders: dict[str, Order] = {}
        self._row_locks: dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def _row_lock(self, order_id: str) -> threading.RLock:
        with self._guard:
            row_lock = self._row_locks.get(order_id)
        if row_lock is None:
            raise OrderNotFound(f"Order {order_id} not found", order_id=order_id)
        return row_lock

    @contextmanager
    def lock(self, order_id: str) -> Iterator[None]:
        """
        Hold exclusive access to an order ID for the enclosed block.

        Raises:
            OrderNotFound: If the ID is unknown. No lock is created for it.
        """
        row_lock = self._row_lock(order_id)
        with row_lock:
            yield

    def create(self, order: Order) -> Order:
        with self._guard:
            if order.id in self._orders:
                raise DuplicateOrder(
                    f"Order {order.id} already exists",
                    order_id=order.id,
                )
            self._orders[order.id] = order
            # One lock per ID for the store lifetime, surviving clear()
            self._row_locks.setdefault(order.id, threading.RLock())

        logger.info("Created order %s (total=%d)", order.id, order.total)
        return order

    def get(self, order_id: str) -> Order:
        with self._guard:
            order = self._orders.get(order_id)

        if order is None:
            raise OrderNotFound(f"Order {order_id} not found", order_id=order_id)
        return order

    def update_status(
        self, order_id: str, status: OrderStatus, **patch: Any
    ) -> Order:
        with self.lock(order_id):
            current = self.get(order_id)
            updated = current.model_copy(
                update={**patch, "status": status, "updated_at": timezone.now()}
            )
            with self._guard:
                self._orders[order_id] = updated

        logger.info(
            "Updated order %s status: %s -> %s",
            order_id,
            current.status.value,
            status.value,
        )
        return updated

    def all(self) -> list[Order]:
        """Snapshot of every order, oldest first."""
        with self._guard:
            orders = list(self._orders.values())
        return sorted(orders, key=lambda o: o.created_at)

    def clear(self) -> None:
        """Drop every order. Row locks stay valid for threads still holding them."""
        with self._guard:
            self._orders.clear()
        logger.info("Cleared all orders")

    def __len__(self) -> int:
        with self._guard:
            return len(self._orders)
