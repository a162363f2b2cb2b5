# src/inspira/api/v1/endpoints/payments.py
"""Credit purchase endpoints."""

from fastapi import APIRouter

from inspira.api.v1.dependencies import AuthDep, GatewayDep, SessionDep
from inspira.core.settings import settings
from inspira.schemas.payment import (
    CreateOrderRequest,
    OrderResponse,
    PackageResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from inspira.services import payments as payment_service

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("/packages", response_model=list[PackageResponse])
def list_packages(ctx: AuthDep) -> list[PackageResponse]:
    return [PackageResponse.model_validate(p) for p in payment_service.list_packages()]


@router.post("/create-order", response_model=OrderResponse)
def create_order(body: CreateOrderRequest, ctx: AuthDep, gateway: GatewayDep) -> OrderResponse:
    order = payment_service.create_order(gateway, ctx, body.package_type)
    return OrderResponse(
        order_id=order.order_id,
        amount=order.amount,
        currency=order.currency,
        package_type=order.package_type,
        credits=order.credits,
        package_name=order.package_name,
        key_id=settings.razorpay_key_id,
    )


@router.post("/verify", response_model=VerifyPaymentResponse)
def verify_payment(
    body: VerifyPaymentRequest,
    db: SessionDep,
    ctx: AuthDep,
) -> VerifyPaymentResponse:
    """Settle a confirmed payment. Replaying the same payment is rejected."""
    result = payment_service.verify_payment(
        db,
        ctx,
        body.razorpay_order_id,
        body.razorpay_payment_id,
        body.razorpay_signature,
        body.package_type,
        settings.razorpay_key_secret,
    )
    return VerifyPaymentResponse(
        credits_added=result.credits_added,
        new_balance=result.new_balance,
        transaction_id=result.transaction_id,
    )
