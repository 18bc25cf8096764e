import logging
from decimal import Decimal

import httpx

from app.services.verification import PaymentVerification, amounts_match, to_amount

logger = logging.getLogger(__name__)

COMPLETED_STATUS = "COMPLETED"


def _build_client() -> httpx.Client:
    from app.config import settings

    return httpx.Client(base_url=settings.PAYPAL_API_BASE, timeout=settings.PAYPAL_TIMEOUT_SECONDS)


def _get_access_token(client: httpx.Client) -> str:
    from app.config import settings

    response = client.post(
        "/v1/oauth2/token",
        auth=(settings.PAYPAL_CLIENT_ID, settings.PAYPAL_CLIENT_SECRET),
        data={"grant_type": "client_credentials"},
        headers={"Accept": "application/json"},
    )
    response.raise_for_status()
    return response.json()["access_token"]


def _purchase_unit(order: dict) -> dict:
    units = order.get("purchase_units") or []
    return units[0] if units else {}


def _captured_amount(order: dict) -> tuple[Decimal | None, str | None]:
    """Amount and currency actually captured, falling back to the purchase unit amount."""
    unit = _purchase_unit(order)
    captures = (unit.get("payments") or {}).get("captures") or []
    money = (captures[0].get("amount") if captures else unit.get("amount")) or {}
    currency = money.get("currency_code")
    return to_amount(money.get("value")), currency.upper() if currency else None


def _referenced_order_no(order: dict) -> str | None:
    unit = _purchase_unit(order)
    return unit.get("custom_id") or unit.get("invoice_id")


def verify_order(
    paypal_order_id: str,
    expected_amount: Decimal,
    order_no: str | None = None,
) -> PaymentVerification:
    """Look up a PayPal order and check it was completed for the expected amount.

    The captured currency must equal PAYPAL_CURRENCY. When the PayPal order
    carries a custom_id or invoice_id it must name ``order_no``.
    """
    from app.config import settings

    if not settings.PAYPAL_CLIENT_ID or not settings.PAYPAL_CLIENT_SECRET:
        raise ValueError("PAYPAL_CLIENT_ID / PAYPAL_CLIENT_SECRET are not set")

    try:
        with _build_client() as client:
            token = _get_access_token(client)
            response = client.get(
                f"/v2/checkout/orders/{paypal_order_id}",
                headers={"Authorization": f"Bearer {token}"},
            )
    except httpx.TimeoutException:
        logger.warning("PayPal timeout while verifying order %s", paypal_order_id)
        return PaymentVerification(verified=False, confirmation_id=paypal_order_id, error="PayPal timeout")
    except httpx.RequestError as exc:
        logger.warning("PayPal unreachable while verifying order %s: %s", paypal_order_id, exc)
        return PaymentVerification(verified=False, confirmation_id=paypal_order_id, error="PayPal unavailable")
    except httpx.HTTPStatusError as exc:
        logger.warning("PayPal authentication failed: %s", exc.response.status_code)
        return PaymentVerification(
            verified=False, confirmation_id=paypal_order_id, error="PayPal authentication failed"
        )

    if response.status_code == 404:
        return PaymentVerification(
            verified=False, confirmation_id=paypal_order_id, error="PayPal order not found"
        )
    if response.status_code != 200:
        logger.warning("PayPal returned %s for order %s", response.status_code, paypal_order_id)
        return PaymentVerification(
            verified=False,
            confirmation_id=paypal_order_id,
            error=f"PayPal returned HTTP {response.status_code}",
        )

    order = response.json()
    provider_status = order.get("status")
    amount, currency = _captured_amount(order)

    def rejected(error: str) -> PaymentVerification:
        return PaymentVerification(
            verified=False,
            confirmation_id=paypal_order_id,
            amount=amount,
            error=error,
            provider_status=provider_status,
        )

    if provider_status != COMPLETED_STATUS:
        return rejected(f"PayPal order status is {provider_status}")
    referenced = _referenced_order_no(order)
    if order_no is not None and referenced and referenced != order_no:
        logger.warning("PayPal order %s references order %s, not %s", paypal_order_id, referenced, order_no)
        return rejected("PayPal order belongs to another order")
    if currency != settings.PAYPAL_CURRENCY:
        logger.warning(
            "PayPal currency mismatch for order %s: expected=%s, received=%s",
            paypal_order_id,
            settings.PAYPAL_CURRENCY,
            currency,
        )
        return rejected("Payment currency mismatch")
    if not amounts_match(amount, expected_amount):
        logger.warning(
            "PayPal amount mismatch for order %s: expected=%s, received=%s",
            paypal_order_id,
            expected_amount,
            amount,
        )
        return rejected("Payment amount mismatch")

    return PaymentVerification(
        verified=True,
        confirmation_id=paypal_order_id,
        amount=amount,
        provider_status=provider_status,
    )
