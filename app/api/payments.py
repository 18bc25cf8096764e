import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.config import settings
from app.dependencies import get_current_user
from app.models import Order, User, get_db
from app.schemas.payments import (
    CompletePaymentRequest,
    CompletePaymentResponse,
    InitializePaymentRequest,
    InitializePaymentResponse,
    OrderResponse,
    OrderStatusResponse,
    PaymentMethod,
    PaymentMethodsResponse,
    ProductDetails,
    ProductType,
    VerificationResult,
)
from app.services import order_lifecycle, payment_gateways
from app.services.recharge_service import CreditingService, get_crediting_service
from app.services.time_utils import isoformat_or_none
from app.services.url_utils import validate_checkout_redirect_url

router = APIRouter()
logger = logging.getLogger(__name__)


def order_to_response(order: Order) -> OrderResponse:
    return OrderResponse(
        order_no=order.order_no,
        product_type=order.product_type,
        product_details=ProductDetails(
            vip_level=order.vip_level,
            month=order.month,
            gold_coin=order.gold_coin,
            give_gold_coin=order.give_gold_coin,
            character=order.character_num,
        ),
        amount=order.amount,
        payment_method=order.payment_method,
        status=order.status,
        pay_time=isoformat_or_none(order.pay_time),
        created_at=isoformat_or_none(order.created_at) or "",
    )


@router.get(
    "/methods",
    response_model=PaymentMethodsResponse,
    summary="List payment methods",
)
def payment_methods():
    """Returns every supported payment method and the ones configured on this deployment."""
    return PaymentMethodsResponse(
        available_methods=list(PaymentMethod),
        enabled_methods=payment_gateways.get_enabled_payment_methods(),
    )


@router.post(
    "/initialize",
    response_model=InitializePaymentResponse,
    summary="Create a pending order",
)
def initialize_payment(
    body: InitializePaymentRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """
    Create a pending order for a VIP/SVIP tier, gold coins or translation characters.
    PayPal checkout happens client-side; for Stripe a Checkout Session URL is returned.
    """
    gateway = payment_gateways.get_payment_gateway(body.payment_method.value)
    if not gateway.enabled:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Payment method {body.payment_method.value} is not enabled",
        )

    success_url = settings.STRIPE_SUCCESS_URL
    cancel_url = settings.STRIPE_CANCEL_URL
    if body.return_url:
        success_url = validate_checkout_redirect_url(body.return_url, "returnUrl")
    if body.cancel_url:
        cancel_url = validate_checkout_redirect_url(body.cancel_url, "cancelUrl")

    payload = body.build_payload()
    order = order_lifecycle.create_order(
        db,
        buyer=current_user,
        product_type=body.product_type,
        payload=payload,
        amount=body.amount,
        payment_method=gateway.method,
    )

    checkout_url = None
    session_id = None
    if gateway.create_checkout is not None:
        try:
            result = gateway.create_checkout(
                order.order_no,
                order.amount,
                order_lifecycle.describe_product(body.product_type, payload),
                success_url,
                cancel_url,
            )
        except ValueError as e:
            order_lifecycle.cancel_order(db, order)
            raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
        except Exception:
            logger.exception("Failed to create %s checkout for order %s", gateway.method, order.order_no)
            order_lifecycle.cancel_order(db, order)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to create checkout session",
            )
        checkout_url = result.checkout_url
        session_id = result.session_id

    return InitializePaymentResponse(
        order_no=order.order_no,
        payment_method=gateway.method,
        checkout_url=checkout_url,
        session_id=session_id,
    )


@router.post(
    "/complete",
    response_model=CompletePaymentResponse,
    summary="Verify payment and credit the order",
)
def complete_payment(
    body: CompletePaymentRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
    crediting: Annotated[CreditingService, Depends(get_crediting_service)],
):
    """
    Verify the provider confirmation (PayPal order id or Stripe session id),
    then settle the pending order and hand it to the recharge service.
    """
    gateway = payment_gateways.get_payment_gateway(body.payment_method.value)
    try:
        verification = order_lifecycle.complete_payment(
            db,
            buyer=current_user,
            order_no=body.order_no,
            confirmation_id=body.confirmation_id,
            product_type=body.product_type,
            expected_amount=body.expected_amount,
            payment_method=gateway.method,
            verifier=gateway.verify,
            crediting=crediting,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    return CompletePaymentResponse(
        success=True,
        verification_result=VerificationResult(
            verified=verification.verified,
            amount=verification.amount,
            error=verification.error,
            provider_status=verification.provider_status,
            confirmation_id=verification.confirmation_id,
        ),
    )


@router.get(
    "/orders/me",
    response_model=list[OrderResponse],
    summary="List my orders",
)
def my_orders(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Returns the current user's orders, newest first."""
    return [order_to_response(o) for o in order_lifecycle.list_orders(db, current_user.id)]


@router.get(
    "/orders/{order_no}/status",
    response_model=OrderStatusResponse,
    summary="Get order status",
)
def order_status(
    order_no: str,
    product_type: Annotated[ProductType, Query(alias="productType")],
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
):
    """Returns status of one of the current user's orders (0 = pending, 1 = paid, 2 = cancelled)."""
    order = order_lifecycle.get_order(db, order_no, product_type, buyer_id=current_user.id)
    return OrderStatusResponse(
        order_no=order.order_no,
        status=order.status,
        amount=order.amount,
        pay_time=isoformat_or_none(order.pay_time),
    )
