import json
from decimal import Decimal
from unittest.mock import patch

import pytest
import stripe
from fastapi import status

from app.models import OrderStatus, PaymentConfirmation
from app.schemas.payments import ProductType, VipPayload
from app.services import order_lifecycle
from app.services.verification import PaymentVerification


@pytest.fixture
def stripe_order(db, test_user):
    return order_lifecycle.create_order(
        db,
        buyer=test_user,
        product_type=ProductType.VIP,
        payload=VipPayload(vip_level=1, month=1),
        amount=Decimal("9.99"),
        payment_method="stripe",
    )


def _session_event(order_no, event_type="checkout.session.completed", **session_overrides):
    session = {
        "id": "cs_test_123",
        "object": "checkout.session",
        "payment_status": "paid",
        "amount_total": 999,
        "currency": "usd",
        "metadata": {"order_no": order_no},
    }
    session.update(session_overrides)
    return {"id": "evt_test", "object": "event", "type": event_type, "data": {"object": session}}


def _post_event(client, event_data):
    # construct_event hands back StripeObjects, which only support subscript access
    event = stripe.Event.construct_from(event_data, "sk_test_mock")
    with patch("stripe.Webhook.construct_event") as mock_construct:
        mock_construct.return_value = event
        return client.post(
            "/webhooks/stripe",
            content=json.dumps(event_data).encode(),
            headers={"stripe-signature": "test_signature"},
        )


def test_stripe_webhook_success(client, stripe_order, crediting, db):
    """Paid checkout session settles the order and credits it."""
    response = _post_event(client, _session_event(stripe_order.order_no))

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["received"] is True

    db.refresh(stripe_order)
    assert stripe_order.status == OrderStatus.PAID
    assert stripe_order.external_payment_id == "cs_test_123"
    assert len(crediting.calls) == 1
    order_no, payload, amount, confirmation_id = crediting.calls[0]
    assert order_no == stripe_order.order_no
    assert payload == VipPayload(vip_level=1, month=1)
    assert amount == Decimal("9.99")
    assert confirmation_id == "cs_test_123"


def test_stripe_webhook_async_payment_succeeded(client, stripe_order, crediting, db):
    response = _post_event(
        client,
        _session_event(stripe_order.order_no, event_type="checkout.session.async_payment_succeeded"),
    )

    assert response.status_code == status.HTTP_200_OK
    db.refresh(stripe_order)
    assert stripe_order.status == OrderStatus.PAID


def test_stripe_webhook_uses_client_reference_id(client, stripe_order, crediting, db):
    event = _session_event(stripe_order.order_no, metadata={}, client_reference_id=stripe_order.order_no)

    response = _post_event(client, event)

    assert response.status_code == status.HTTP_200_OK
    assert len(crediting.calls) == 1


def test_stripe_webhook_idempotent(client, stripe_order, crediting, db):
    """Redelivered events do not credit twice."""
    event = _session_event(stripe_order.order_no)

    assert _post_event(client, event).status_code == status.HTTP_200_OK
    response = _post_event(client, event)

    assert response.status_code == status.HTTP_200_OK
    assert len(crediting.calls) == 1
    assert db.query(PaymentConfirmation).count() == 1


def test_stripe_webhook_unpaid_session_keeps_order_pending(client, stripe_order, crediting, db):
    response = _post_event(client, _session_event(stripe_order.order_no, payment_status="unpaid"))

    assert response.status_code == status.HTTP_200_OK
    db.refresh(stripe_order)
    assert stripe_order.status == OrderStatus.PENDING
    assert crediting.calls == []


def test_stripe_webhook_amount_mismatch_keeps_order_pending(client, stripe_order, crediting, db):
    response = _post_event(client, _session_event(stripe_order.order_no, amount_total=100))

    assert response.status_code == status.HTTP_200_OK
    db.refresh(stripe_order)
    assert stripe_order.status == OrderStatus.PENDING
    assert stripe_order.external_payment_id is None
    assert crediting.calls == []


def test_stripe_webhook_currency_mismatch_keeps_order_pending(client, stripe_order, crediting, db):
    response = _post_event(client, _session_event(stripe_order.order_no, currency="eur"))

    assert response.status_code == status.HTTP_200_OK
    db.refresh(stripe_order)
    assert stripe_order.status == OrderStatus.PENDING
    assert crediting.calls == []


def test_stripe_webhook_paypal_order_is_not_settled(client, gold_coin_order, crediting, db):
    response = _post_event(client, _session_event(gold_coin_order.order_no))

    assert response.status_code == status.HTTP_200_OK
    db.refresh(gold_coin_order)
    assert gold_coin_order.status == OrderStatus.PENDING
    assert crediting.calls == []


def test_stripe_webhook_crediting_failure_returns_500(client, stripe_order, crediting, db):
    crediting.error = RuntimeError("recharge service down")

    response = _post_event(client, _session_event(stripe_order.order_no))

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    db.refresh(stripe_order)
    assert stripe_order.status == OrderStatus.PENDING
    assert db.query(PaymentConfirmation).count() == 0


def test_stripe_webhook_then_client_completion_credits_once(client, stripe_order, crediting, auth_headers):
    assert _post_event(client, _session_event(stripe_order.order_no)).status_code == status.HTTP_200_OK

    verification = PaymentVerification(
        verified=True, confirmation_id="cs_test_123", amount=Decimal("9.99"), provider_status="paid"
    )
    with patch("app.services.stripe_service.verify_checkout_session", return_value=verification):
        response = client.post(
            "/api/payments/complete",
            json={
                "orderNo": stripe_order.order_no,
                "confirmationId": "cs_test_123",
                "productType": "vip",
                "expectedAmount": "9.99",
                "paymentMethod": "stripe",
            },
            headers=auth_headers,
        )

    assert response.status_code == status.HTTP_409_CONFLICT
    assert len(crediting.calls) == 1


def test_stripe_webhook_invalid_signature(client):
    """Test Stripe webhook with invalid signature."""
    with patch("stripe.Webhook.construct_event") as mock_construct:
        mock_construct.side_effect = stripe.SignatureVerificationError("Invalid", "sig")

        response = client.post(
            "/webhooks/stripe",
            content=b"{}",
            headers={"stripe-signature": "invalid"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "signature" in response.json()["detail"].lower()


def test_stripe_webhook_invalid_payload(client):
    """Test Stripe webhook with invalid payload."""
    with patch("stripe.Webhook.construct_event") as mock_construct:
        mock_construct.side_effect = ValueError("Invalid payload")

        response = client.post(
            "/webhooks/stripe",
            content=b"invalid json",
            headers={"stripe-signature": "test"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_stripe_webhook_no_order_no(client, crediting):
    """Test Stripe webhook without order_no in metadata."""
    response = _post_event(client, _session_event(None, metadata={}))

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["received"] is True
    assert crediting.calls == []


def test_stripe_webhook_order_not_found(client, crediting):
    """Test Stripe webhook with non-existent order."""
    response = _post_event(client, _session_event("1700000000000999"))

    assert response.status_code == status.HTTP_200_OK
    assert crediting.calls == []


def test_stripe_webhook_other_event_type(client):
    """Test Stripe webhook with other event type (should be ignored)."""
    event_data = {
        "id": "evt_test",
        "object": "event",
        "type": "payment_intent.succeeded",
        "data": {"object": {}},
    }

    response = _post_event(client, event_data)

    assert response.status_code == status.HTTP_200_OK


def test_stripe_webhook_no_secret(client, monkeypatch):
    """Test Stripe webhook when webhook secret is not set."""
    monkeypatch.setenv("STRIPE_WEBHOOK_SECRET", "")

    response = client.post(
        "/webhooks/stripe",
        content=b"{}",
        headers={"stripe-signature": "test"},
    )
    assert response.status_code == status.HTTP_200_OK
