"""Order lifecycle exceptions."""

from apps.web.core.exceptions import UpstreamError, UpstreamUnavailable


class OrderError(Exception):
    """Base exception for order lifecycle errors."""

    def __init__(self, message: str, order_id: str | None = None) -> None:
        self.message = message
        self.order_id = order_id
        super().__init__(message)


class OrderNotFound(OrderError):
    """Referenced order ID is not in the order store."""


class DuplicateOrder(OrderError):
    """An order with this ID already exists."""


class SignatureInvalid(OrderError):
    """Payment notification failed authentication."""


class PaymentSessionFailed(OrderError):
    """The payment gateway could not create a checkout session."""

    def __init__(
        self,
        message: str,
        order_id: str | None = None,
        cause: UpstreamError | None = None,
    ) -> None:
        super().__init__(message, order_id)
        self.cause = cause

    @property
    def is_retryable(self) -> bool:
        """Whether the client may retry with backoff."""
        return isinstance(self.cause, UpstreamUnavailable)
