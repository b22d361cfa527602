"""Payment gateway schemas - Midtrans Snap sessions and notifications."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PaymentOutcome(str, Enum):
    """Classification of a gateway transaction status."""

    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"
    UNKNOWN = "unknown"


class PaymentSession(BaseModel):
    """Hosted checkout session returned by Snap."""

    token: str
    redirect_url: str = ""


class PaymentNotification(BaseModel):
    """
    Transaction status as pushed by the webhook or returned by the status API.

    Every field defaults to an empty string so that a partial or hostile
    payload parses into a well-defined record instead of failing.
    """

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    order_id: str = ""
    transaction_id: str = ""
    transaction_status: str = ""
    transaction_time: str = ""
    status_code: str = ""
    status_message: str = ""
    signature_key: str = ""
    payment_type: str = ""
    gross_amount: str = ""
    fraud_status: str = ""
    currency: str = ""
    merchant_id: str = ""


class SnapItemDetail(BaseModel):
    """Item line shown on the hosted checkout page."""

    id: str
    name: str
    price: int
    quantity: int
    category: str = ""


class SnapCustomerDetail(BaseModel):
    """Customer block of a Snap transaction."""

    first_name: str
    last_name: str | None = None
    email: str | None = None
    phone: str


class SnapTransactionDetails(BaseModel):
    """Order id and amount of a Snap transaction."""

    order_id: str
    gross_amount: int = Field(..., gt=0)


class SnapTransactionRequest(BaseModel):
    """Body for POST /snap/v1/transactions."""

    transaction_details: SnapTransactionDetails
    customer_details: SnapCustomerDetail
    item_details: list[SnapItemDetail]
    callbacks: dict[str, str] = Field(default_factory=dict)
