from decimal import Decimal

import stripe

from app.services.url_utils import append_query_param
from app.services.verification import CENTS, PaymentVerification, amounts_match

PAID_STATUS = "paid"


def to_minor_units(amount: Decimal) -> int:
    return int((amount.quantize(CENTS) * 100).to_integral_value())


def create_checkout_session(
    order_no: str,
    amount: Decimal,
    product_name: str,
    success_url: str,
    cancel_url: str,
) -> tuple[str, str]:
    """Create Stripe Checkout Session and return (checkout URL, session ID)."""
    from app.config import settings

    if not settings.STRIPE_SECRET_KEY:
        raise ValueError("STRIPE_SECRET_KEY is not set")
    stripe.api_key = settings.STRIPE_SECRET_KEY
    session = stripe.checkout.Session.create(
        payment_method_types=["card"],
        line_items=[
            {
                "price_data": {
                    "currency": settings.STRIPE_CURRENCY,
                    "product_data": {"name": product_name},
                    "unit_amount": to_minor_units(amount),
                },
                "quantity": 1,
            }
        ],
        mode="payment",
        success_url=append_query_param(success_url, "order_no", order_no),
        cancel_url=cancel_url,
        client_reference_id=order_no,
        metadata={"order_no": order_no},
    )
    return session.url, session.id


def session_field(obj, name: str):
    """Read one field from a StripeObject or plain dict, None when absent."""
    if obj is None:
        return None
    # StripeObject supports subscript but not dict methods such as .get()
    try:
        return obj[name]
    except KeyError:
        return None


def session_order_no(session) -> str | None:
    order_no = session_field(session_field(session, "metadata"), "order_no") or session_field(
        session, "client_reference_id"
    )
    return str(order_no) if order_no else None


def verification_from_session(
    session,
    expected_amount: Decimal | None = None,
    order_no: str | None = None,
) -> PaymentVerification:
    """Build a verification from a Checkout Session object or webhook payload.

    When ``order_no`` is given the session must have been opened for that order.
    """
    from app.config import settings

    session_id = session_field(session, "id") or ""
    payment_status = session_field(session, "payment_status")
    amount_total = session_field(session, "amount_total")
    currency = session_field(session, "currency")
    amount = (Decimal(int(amount_total)) / 100).quantize(CENTS) if amount_total is not None else None

    def rejected(error: str) -> PaymentVerification:
        return PaymentVerification(
            verified=False,
            confirmation_id=session_id,
            amount=amount,
            error=error,
            provider_status=payment_status,
        )

    if order_no is not None and session_order_no(session) != order_no:
        return rejected("Stripe session belongs to another order")
    if payment_status != PAID_STATUS:
        return rejected(f"Stripe session payment_status is {payment_status}")
    if currency and str(currency).lower() != settings.STRIPE_CURRENCY:
        return rejected("Payment currency mismatch")
    if expected_amount is not None and not amounts_match(amount, expected_amount):
        return rejected("Payment amount mismatch")
    return PaymentVerification(
        verified=True,
        confirmation_id=session_id,
        amount=amount,
        provider_status=payment_status,
    )


def verify_checkout_session(
    session_id: str,
    expected_amount: Decimal,
    order_no: str | None = None,
) -> PaymentVerification:
    """Retrieve a Checkout Session and check it is paid for the expected order and amount."""
    from app.config import settings

    if not settings.STRIPE_SECRET_KEY:
        raise ValueError("STRIPE_SECRET_KEY is not set")
    stripe.api_key = settings.STRIPE_SECRET_KEY
    try:
        session = stripe.checkout.Session.retrieve(session_id)
    except stripe.InvalidRequestError:
        return PaymentVerification(
            verified=False, confirmation_id=session_id, error="Stripe session not found"
        )
    return verification_from_session(session, expected_amount, order_no)
