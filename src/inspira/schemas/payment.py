"""Payment and credit-ledger Pydantic schemas."""
from __future__ import annotations

from datetime import datetime

from pydantic import Field

from .common import CamelModel


class CreateOrderRequest(CamelModel):
    package_type: str | None = Field(None, description="Credit package id")


class OrderResponse(CamelModel):
    order_id: str
    amount: int = Field(..., description="Price in minor currency units")
    currency: str
    package_type: str
    credits: int
    package_name: str
    key_id: str | None = Field(None, description="Public key for the checkout widget")


class VerifyPaymentRequest(CamelModel):
    """Payment confirmation posted by the client after checkout.

    The provider field names are accepted as sent by the checkout widget.
    """

    razorpay_order_id: str | None = None
    razorpay_payment_id: str | None = None
    razorpay_signature: str | None = None
    package_type: str | None = None


class VerifyPaymentResponse(CamelModel):
    credits_added: int
    new_balance: int
    transaction_id: int


class PackageResponse(CamelModel):
    id: str
    name: str
    credits: int
    price: int
    price_in_rupees: float
    price_per_credit: float


class TransactionResponse(CamelModel):
    id: int
    kind: str
    delta: int
    balance_after: int
    post_id: int | None = None
    comment_id: int | None = None
    note: str | None = None
    created_at: datetime


class CreditHistoryResponse(CamelModel):
    transactions: list[TransactionResponse]
    current_balance: int


class CreditsResponse(CamelModel):
    credits: int
