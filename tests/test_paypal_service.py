from decimal import Decimal
from unittest.mock import patch

import httpx
import pytest

from app.services import paypal_service


def _paypal_order(status="COMPLETED", captured="9.99", currency="USD", **unit_fields):
    unit = {
        "amount": {"currency_code": currency, "value": "9.99"},
        "payments": {"captures": [{"id": "CAP-1", "amount": {"currency_code": currency, "value": captured}}]},
    }
    unit.update(unit_fields)
    return {"id": "5O190127TN364715T", "status": status, "purchase_units": [unit]}


def _mock_paypal(order_response=None, token_status=200, requests=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        if request.url.path == "/v1/oauth2/token":
            if token_status != 200:
                return httpx.Response(token_status, json={"error": "invalid_client"})
            return httpx.Response(200, json={"access_token": "A21AA-token", "token_type": "Bearer"})
        if callable(order_response):
            return order_response(request)
        return order_response

    client = httpx.Client(base_url="https://paypal.test", transport=httpx.MockTransport(handler))
    return patch("app.services.paypal_service._build_client", return_value=client)


def test_verify_completed_order():
    requests = []
    with _mock_paypal(httpx.Response(200, json=_paypal_order()), requests=requests):
        result = paypal_service.verify_order("5O190127TN364715T", Decimal("9.99"))

    assert result.verified is True
    assert result.amount == Decimal("9.99")
    assert result.provider_status == "COMPLETED"
    assert result.confirmation_id == "5O190127TN364715T"
    order_request = requests[-1]
    assert order_request.url.path == "/v2/checkout/orders/5O190127TN364715T"
    assert order_request.headers["Authorization"] == "Bearer A21AA-token"


def test_verify_uses_purchase_unit_amount_without_captures():
    order = _paypal_order()
    del order["purchase_units"][0]["payments"]
    with _mock_paypal(httpx.Response(200, json=order)):
        result = paypal_service.verify_order("5O190127TN364715T", Decimal("9.99"))

    assert result.verified is True
    assert result.amount == Decimal("9.99")


def test_verify_order_not_completed():
    with _mock_paypal(httpx.Response(200, json=_paypal_order(status="APPROVED"))):
        result = paypal_service.verify_order("5O190127TN364715T", Decimal("9.99"))

    assert result.verified is False
    assert result.provider_status == "APPROVED"
    assert "APPROVED" in result.error


def test_verify_amount_mismatch():
    with _mock_paypal(httpx.Response(200, json=_paypal_order(captured="0.99"))):
        result = paypal_service.verify_order("5O190127TN364715T", Decimal("9.99"))

    assert result.verified is False
    assert result.error == "Payment amount mismatch"
    assert result.amount == Decimal("0.99")


def test_verify_currency_mismatch():
    with _mock_paypal(httpx.Response(200, json=_paypal_order(currency="JPY"))):
        result = paypal_service.verify_order("5O190127TN364715T", Decimal("9.99"))

    assert result.verified is False
    assert result.error == "Payment currency mismatch"


def test_verify_currency_follows_settings(monkeypatch):
    monkeypatch.setenv("PAYPAL_CURRENCY", "eur")
    with _mock_paypal(httpx.Response(200, json=_paypal_order(currency="EUR"))):
        result = paypal_service.verify_order("5O190127TN364715T", Decimal("9.99"))

    assert result.verified is True


def test_verify_order_referencing_another_order():
    order = _paypal_order(custom_id="1760659200000099")
    with _mock_paypal(httpx.Response(200, json=order)):
        result = paypal_service.verify_order("5O190127TN364715T", Decimal("9.99"), "1760659200000042")

    assert result.verified is False
    assert result.error == "PayPal order belongs to another order"


def test_verify_order_referencing_same_order():
    order = _paypal_order(custom_id="1760659200000042")
    with _mock_paypal(httpx.Response(200, json=order)):
        result = paypal_service.verify_order("5O190127TN364715T", Decimal("9.99"), "1760659200000042")

    assert result.verified is True


def test_verify_order_not_found():
    with _mock_paypal(httpx.Response(404, json={"name": "RESOURCE_NOT_FOUND"})):
        result = paypal_service.verify_order("missing", Decimal("9.99"))

    assert result.verified is False
    assert result.error == "PayPal order not found"


def test_verify_unexpected_status():
    with _mock_paypal(httpx.Response(500)):
        result = paypal_service.verify_order("5O190127TN364715T", Decimal("9.99"))

    assert result.verified is False
    assert result.error == "PayPal returned HTTP 500"


def test_verify_timeout():
    def timeout(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with _mock_paypal(timeout):
        result = paypal_service.verify_order("5O190127TN364715T", Decimal("9.99"))

    assert result.verified is False
    assert result.error == "PayPal timeout"


def test_verify_connection_error():
    def unreachable(request):
        raise httpx.ConnectError("connection refused", request=request)

    with _mock_paypal(unreachable):
        result = paypal_service.verify_order("5O190127TN364715T", Decimal("9.99"))

    assert result.verified is False
    assert result.error == "PayPal unavailable"


def test_verify_authentication_failure():
    with _mock_paypal(httpx.Response(200, json=_paypal_order()), token_status=401):
        result = paypal_service.verify_order("5O190127TN364715T", Decimal("9.99"))

    assert result.verified is False
    assert result.error == "PayPal authentication failed"


def test_verify_requires_credentials(monkeypatch):
    monkeypatch.setenv("PAYPAL_CLIENT_SECRET", "")

    with pytest.raises(ValueError, match="PAYPAL_CLIENT_ID"):
        paypal_service.verify_order("5O190127TN364715T", Decimal("9.99"))
