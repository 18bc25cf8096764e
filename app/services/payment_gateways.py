from dataclasses import dataclass
from decimal import Decimal
from typing import Callable

from app.config import settings
from app.services import paypal_service, stripe_service
from app.services.verification import PaymentVerification


@dataclass(frozen=True)
class CheckoutResult:
    checkout_url: str
    session_id: str | None = None


@dataclass(frozen=True)
class PaymentGateway:
    method: str
    verify: Callable[[str, Decimal, str | None], PaymentVerification]
    create_checkout: Callable[[str, Decimal, str, str, str], CheckoutResult] | None
    enabled: bool


def _verify_paypal(
    confirmation_id: str, expected_amount: Decimal, order_no: str | None = None
) -> PaymentVerification:
    return paypal_service.verify_order(confirmation_id, expected_amount, order_no)


def _verify_stripe(
    confirmation_id: str, expected_amount: Decimal, order_no: str | None = None
) -> PaymentVerification:
    return stripe_service.verify_checkout_session(confirmation_id, expected_amount, order_no)


def _create_stripe_checkout(
    order_no: str,
    amount: Decimal,
    product_name: str,
    success_url: str,
    cancel_url: str,
) -> CheckoutResult:
    checkout_url, session_id = stripe_service.create_checkout_session(
        order_no=order_no,
        amount=amount,
        product_name=product_name,
        success_url=success_url,
        cancel_url=cancel_url,
    )
    return CheckoutResult(checkout_url=checkout_url, session_id=session_id)


def get_payment_gateways() -> dict[str, PaymentGateway]:
    # PayPal checkout runs in the browser SDK, only verification happens here
    return {
        "paypal": PaymentGateway(
            method="paypal",
            verify=_verify_paypal,
            create_checkout=None,
            enabled=bool(settings.PAYPAL_CLIENT_ID and settings.PAYPAL_CLIENT_SECRET),
        ),
        "stripe": PaymentGateway(
            method="stripe",
            verify=_verify_stripe,
            create_checkout=_create_stripe_checkout,
            enabled=bool(settings.STRIPE_SECRET_KEY),
        ),
    }


def get_payment_gateway(method: str) -> PaymentGateway:
    gateway = get_payment_gateways().get(method)
    if gateway is None:
        raise ValueError(f"Unsupported payment method: {method}")
    return gateway


def get_enabled_payment_methods() -> list[str]:
    return [method for method, gateway in get_payment_gateways().items() if gateway.enabled]
