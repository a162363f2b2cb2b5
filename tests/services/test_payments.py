# tests/services/test_payments.py
"""Tests for order creation, settlement and the Razorpay HTTP client."""

import httpx
import pytest

from inspira.core.errors import ApiErrorCode, InvalidRequestError, UpstreamError
from inspira.core.security import payment_signature
from inspira.models import CreditTransaction, TransactionKind
from inspira.services import payments
from inspira.services.payments import GatewayConfig, RazorpayGateway

SECRET = "unit-test-secret"


def _verify(db, ctx, payment_id="pay_1", package_id="starter", signature=None):
    order_id = "order_1"
    return payments.verify_payment(
        db,
        ctx,
        order_id,
        payment_id,
        signature or payment_signature(order_id, payment_id, SECRET),
        package_id,
        SECRET,
    )


def test_create_order_uses_package_price(make_user, gateway) -> None:
    user = make_user("Buyer")

    order = payments.create_order(gateway, user.ctx, "value")

    assert order.amount == 1299
    assert order.credits == 150
    assert order.package_type == "value"
    assert gateway.orders[0]["amount"] == 1299
    assert gateway.orders[0]["notes"]["profileId"] == str(user.profile_id)
    assert len(gateway.orders[0]["receipt"]) <= 40


def test_create_order_rejects_unknown_package(make_user, gateway) -> None:
    user = make_user("Buyer")

    with pytest.raises(InvalidRequestError) as exc_info:
        payments.create_order(gateway, user.ctx, "platinum")

    assert exc_info.value.code is ApiErrorCode.E_INVALID_PACKAGE
    assert gateway.orders == []


def test_verify_payment_credits_once(make_user, db_session, balance_of) -> None:
    user = make_user("Buyer")

    result = _verify(db_session, user.ctx)
    assert (result.credits_added, result.new_balance) == (50, 50)

    with pytest.raises(InvalidRequestError) as exc_info:
        _verify(db_session, user.ctx)
    assert exc_info.value.code is ApiErrorCode.E_PAYMENT_ALREADY_PROCESSED

    rows = db_session.query(CreditTransaction).all()
    assert [(r.kind, r.delta, r.provider_payment_id) for r in rows] == [
        (TransactionKind.PURCHASE, 50, "pay_1")
    ]
    db_session.close()
    assert balance_of(user.profile_id) == 50


def test_replay_under_another_account_is_rejected(make_user, db_session) -> None:
    buyer = make_user("Buyer")
    other = make_user("Other")

    _verify(db_session, buyer.ctx)
    with pytest.raises(InvalidRequestError) as exc_info:
        _verify(db_session, other.ctx)

    assert exc_info.value.code is ApiErrorCode.E_PAYMENT_ALREADY_PROCESSED


def test_concurrent_settlement_maps_unique_violation(
    make_user, db_session, monkeypatch, balance_of
) -> None:
    user = make_user("Buyer")
    _verify(db_session, user.ctx)
    # Simulate a second request that passed the dedup read before the first committed.
    monkeypatch.setattr(payments.ledger, "find_purchase", lambda db, payment_id: None)

    with pytest.raises(InvalidRequestError) as exc_info:
        _verify(db_session, user.ctx)

    assert exc_info.value.code is ApiErrorCode.E_PAYMENT_ALREADY_PROCESSED
    db_session.close()
    assert balance_of(user.profile_id) == 50


def test_verify_payment_rejects_bad_signature(make_user, db_session) -> None:
    user = make_user("Buyer")

    with pytest.raises(InvalidRequestError) as exc_info:
        _verify(db_session, user.ctx, signature="deadbeef")

    assert exc_info.value.code is ApiErrorCode.E_INVALID_SIGNATURE
    assert db_session.query(CreditTransaction).count() == 0


def test_verify_payment_rejects_non_ascii_signature(make_user, db_session) -> None:
    user = make_user("Buyer")

    with pytest.raises(InvalidRequestError) as exc_info:
        _verify(db_session, user.ctx, signature="caf\u00e9")

    assert exc_info.value.code is ApiErrorCode.E_INVALID_SIGNATURE


def test_signature_is_checked_before_package(make_user, db_session) -> None:
    user = make_user("Buyer")

    with pytest.raises(InvalidRequestError) as exc_info:
        _verify(db_session, user.ctx, package_id="platinum", signature="deadbeef")

    assert exc_info.value.code is ApiErrorCode.E_INVALID_SIGNATURE


def test_verify_payment_rejects_unknown_package(make_user, db_session) -> None:
    user = make_user("Buyer")

    with pytest.raises(InvalidRequestError) as exc_info:
        _verify(db_session, user.ctx, package_id="platinum")

    assert exc_info.value.code is ApiErrorCode.E_INVALID_PACKAGE


@pytest.mark.parametrize("missing", ["order", "payment", "signature", "package"])
def test_verify_payment_requires_every_field(make_user, db_session, missing) -> None:
    user = make_user("Buyer")
    fields = {
        "order": "order_1",
        "payment": "pay_1",
        "signature": payment_signature("order_1", "pay_1", SECRET),
        "package": "starter",
    }
    fields[missing] = "  "

    with pytest.raises(InvalidRequestError) as exc_info:
        payments.verify_payment(
            db_session,
            user.ctx,
            fields["order"],
            fields["payment"],
            fields["signature"],
            fields["package"],
            SECRET,
        )

    assert exc_info.value.code is ApiErrorCode.E_MISSING_FIELD


def _gateway(handler) -> RazorpayGateway:
    config = GatewayConfig(
        key_id="rzp_test",
        key_secret="secret",
        base_url="https://razorpay.test/v1",
        timeout_seconds=1.0,
    )
    gateway = RazorpayGateway(config)
    gateway._client = httpx.Client(
        base_url=config.base_url,
        transport=httpx.MockTransport(handler),
    )
    return gateway


def test_razorpay_gateway_returns_order_id() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["body"] = request.read()
        return httpx.Response(200, json={"id": "order_abc", "status": "created"})

    gateway = _gateway(handler)
    order_id = gateway.create_order(499, "INR", "credits_1_starter", {"credits": "50"})

    assert order_id == "order_abc"
    assert seen["path"] == "/v1/orders"
    assert b'"amount":499' in seen["body"].replace(b" ", b"")
    gateway.close()


def test_razorpay_gateway_maps_provider_errors() -> None:
    gateway = _gateway(lambda request: httpx.Response(500, json={"error": "boom"}))

    with pytest.raises(UpstreamError) as exc_info:
        gateway.create_order(499, "INR", "r", {})

    assert exc_info.value.code is ApiErrorCode.E_PAYMENT_PROVIDER_ERROR
    assert exc_info.value.status_code == 502


def test_razorpay_gateway_requires_credentials() -> None:
    gateway = RazorpayGateway(
        GatewayConfig(key_id=None, key_secret="", base_url="https://x", timeout_seconds=1.0)
    )

    with pytest.raises(UpstreamError):
        gateway.create_order(499, "INR", "r", {})


def test_list_packages_shape() -> None:
    packages = {p["id"]: p for p in payments.list_packages()}

    assert set(packages) == {"starter", "value", "pro"}
    assert packages["pro"]["credits"] == 300
    assert packages["starter"]["priceInRupees"] == 4.99
