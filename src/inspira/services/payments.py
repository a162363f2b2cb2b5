"""Credit purchases: order creation and at-most-once settlement."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inspira.core.errors import ApiErrorCode, InvalidRequestError, UpstreamError
from inspira.core.security import verify_payment_signature
from inspira.core.settings import settings
from inspira.db.session import transaction
from inspira.models import TransactionKind
from inspira.services import ledger
from inspira.services.identity import AuthContext
from inspira.services.rewards import CREDIT_PACKAGES, resolve_package
from inspira.services.validation import require_text

logger = logging.getLogger(__name__)


class PaymentGateway(Protocol):
    """Payment provider capability."""

    def create_order(self, amount: int, currency: str, receipt: str, notes: dict[str, str]) -> str:
        """Create an order for ``amount`` minor units and return its provider id."""
        ...


@dataclass(frozen=True)
class GatewayConfig:
    key_id: str | None
    key_secret: str
    base_url: str
    timeout_seconds: float

    @property
    def enabled(self) -> bool:
        return bool(self.key_id and self.key_secret)


def load_gateway_config() -> GatewayConfig:
    """Build configuration object from global settings."""
    return GatewayConfig(
        key_id=settings.razorpay_key_id,
        key_secret=settings.razorpay_key_secret,
        base_url=settings.razorpay_base_url,
        timeout_seconds=float(settings.payment_http_timeout_seconds),
    )


class RazorpayGateway:
    """HTTP client for the Razorpay orders API."""

    def __init__(self, config: GatewayConfig | None = None) -> None:
        self.config = config or load_gateway_config()
        self._client: httpx.Client | None = None
        self._client_lock = threading.Lock()

    def _ensure_client(self) -> httpx.Client:
        if not self.config.enabled:
            raise UpstreamError(
                ApiErrorCode.E_PAYMENT_PROVIDER_ERROR,
                "Payment provider is not configured",
            )
        with self._client_lock:
            if self._client is None:
                self._client = httpx.Client(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    auth=(self.config.key_id or "", self.config.key_secret),
                )
        return self._client

    def create_order(self, amount: int, currency: str, receipt: str, notes: dict[str, str]) -> str:
        client = self._ensure_client()
        payload: dict[str, Any] = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
        }
        try:
            response = client.post("/orders", json=payload)
            response.raise_for_status()
            order_id = response.json()["id"]
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            logger.error("Payment provider order creation failed: %s", exc)
            raise UpstreamError(
                ApiErrorCode.E_PAYMENT_PROVIDER_ERROR,
                "Failed to create payment order",
            ) from exc
        return str(order_id)

    def close(self) -> None:
        with self._client_lock:
            if self._client is not None:
                self._client.close()
                self._client = None


class _GatewaySingleton:
    _instance: RazorpayGateway | None = None

    @classmethod
    def get_instance(cls) -> RazorpayGateway:
        if cls._instance is None:
            cls._instance = RazorpayGateway()
        return cls._instance


def get_payment_gateway() -> PaymentGateway:
    """Return the process-wide payment gateway."""
    return _GatewaySingleton.get_instance()


def close_payment_gateway() -> None:
    """Release the HTTP client of the process-wide gateway, if one was created."""
    if _GatewaySingleton._instance is not None:
        _GatewaySingleton._instance.close()


@dataclass(frozen=True)
class OrderResult:
    order_id: str
    amount: int
    currency: str
    package_type: str
    credits: int
    package_name: str


@dataclass(frozen=True)
class SettlementResult:
    credits_added: int
    new_balance: int
    transaction_id: int


def list_packages() -> list[dict[str, Any]]:
    return [
        {
            "id": package.id,
            "name": package.name,
            "credits": package.credits,
            "price": package.price,
            "priceInRupees": package.price_in_rupees,
            "pricePerCredit": package.price_per_credit,
        }
        for package in CREDIT_PACKAGES.values()
    ]


def create_order(gateway: PaymentGateway, ctx: AuthContext, package_id: str | None) -> OrderResult:
    """Open a provider order for a credit package. Nothing is written locally."""
    package = resolve_package(package_id)
    currency = settings.payment_currency
    # Provider receipts are capped at 40 characters.
    receipt = f"credits_{ctx.profile_id}_{package.id}"[:40]
    order_id = gateway.create_order(
        package.price,
        currency,
        receipt,
        {
            "profileId": str(ctx.profile_id),
            "packageType": package.id,
            "credits": str(package.credits),
        },
    )
    logger.info("Created order %s for profile %s (%s)", order_id, ctx.profile_id, package.id)
    return OrderResult(
        order_id=order_id,
        amount=package.price,
        currency=currency,
        package_type=package.id,
        credits=package.credits,
        package_name=package.name,
    )


def _already_processed() -> InvalidRequestError:
    return InvalidRequestError(
        ApiErrorCode.E_PAYMENT_ALREADY_PROCESSED,
        "Payment already processed",
    )


def verify_payment(
    db: Session,
    ctx: AuthContext,
    order_id: str | None,
    payment_id: str | None,
    signature: str | None,
    package_id: str | None,
    secret: str,
) -> SettlementResult:
    """Credit a confirmed payment to the caller exactly once.

    Checks run in order and stop at the first failure: required fields,
    signature, package, previously settled payment id. Only the final
    ledger credit writes anything.
    """
    order_id = require_text(order_id, "razorpay_order_id")
    payment_id = require_text(payment_id, "razorpay_payment_id")
    signature = require_text(signature, "razorpay_signature")
    package_id = require_text(package_id, "packageType")

    if not verify_payment_signature(order_id, payment_id, signature, secret):
        logger.warning("Rejected payment %s: signature mismatch", payment_id)
        raise InvalidRequestError(ApiErrorCode.E_INVALID_SIGNATURE, "Invalid payment signature")

    package = resolve_package(package_id)

    if ledger.find_purchase(db, payment_id) is not None:
        raise _already_processed()

    try:
        with transaction(db):
            entry = ledger.apply_delta(
                db,
                ctx.profile_id,
                package.credits,
                TransactionKind.PURCHASE,
                note=(
                    f"Purchased {package.name} ({package.credits} credits) "
                    f"order={order_id} payment={payment_id}"
                ),
                provider_payment_id=payment_id,
            )
    except IntegrityError:
        # A concurrent settlement of the same payment committed first.
        raise _already_processed() from None

    logger.info(
        "Settled payment %s for profile %s: +%d credits",
        payment_id,
        ctx.profile_id,
        package.credits,
    )
    return SettlementResult(
        credits_added=package.credits,
        new_balance=entry.balance,
        transaction_id=entry.transaction.id,
    )
