"""Unit tests for the Moneroo client against a mocked HTTP transport."""

import hashlib
import hmac
import json

import httpx
import pytest
from services.store_service.moneroo_client import (
    MonerooClient,
    MonerooError,
    PaymentCustomer,
    VerifiedPayment,
    verify_webhook_signature,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _client(handler) -> MonerooClient:
    return MonerooClient(
        secret_key="sk_test",
        base_url="https://api.moneroo.test/v1/",
        transport=httpx.MockTransport(handler),
    )


CUSTOMER = PaymentCustomer(
    email="awa@example.com", first_name="Awa", last_name="Mensah", phone="+22890000000"
)


async def _initialize(client: MonerooClient):
    return await client.initialize_payment(
        amount=27000,
        currency="XOF",
        return_url="https://shop.example.com/payment/return",
        customer=CUSTOMER,
        description="Commande BelléaWigs",
        metadata={"source": "belleawigs"},
    )


# ---------------------------------------------------------------------------
# initialize_payment
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_initialize_payment_posts_amount_and_customer():
    """The request carries the bearer key, integer amount and customer block."""
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            201,
            json={
                "message": "Payment initialized",
                "data": {"id": "py_abc", "checkout_url": "https://pay.moneroo.io/py_abc"},
            },
        )

    session = await _initialize(_client(handler))

    assert session.checkout_url == "https://pay.moneroo.io/py_abc"
    assert session.payment_id == "py_abc"
    assert seen["url"] == "https://api.moneroo.test/v1/payments/initialize"
    assert seen["auth"] == "Bearer sk_test"
    assert seen["body"]["amount"] == 27000
    assert seen["body"]["currency"] == "XOF"
    assert seen["body"]["customer"]["phone"] == "+22890000000"
    assert seen["body"]["metadata"] == {"source": "belleawigs"}


@pytest.mark.asyncio
@pytest.mark.unit
async def test_initialize_payment_accepts_payment_url_field():
    def handler(request):
        return httpx.Response(
            200, json={"data": {"payment_id": "py_1", "payment_url": "https://pay/py_1"}}
        )

    session = await _initialize(_client(handler))

    assert session.checkout_url == "https://pay/py_1"
    assert session.payment_id == "py_1"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_initialize_payment_without_url_raises():
    def handler(request):
        return httpx.Response(200, json={"data": {"id": "py_1"}})

    with pytest.raises(MonerooError) as exc:
        await _initialize(_client(handler))

    assert "checkout_url" in exc.value.message


@pytest.mark.asyncio
@pytest.mark.unit
async def test_api_error_carries_status_and_message():
    def handler(request):
        return httpx.Response(422, json={"message": "Invalid currency"})

    with pytest.raises(MonerooError) as exc:
        await _initialize(_client(handler))

    assert exc.value.status_code == 422
    assert exc.value.message == "Invalid currency"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_transport_failure_raises_moneroo_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(MonerooError) as exc:
        await _initialize(_client(handler))

    assert exc.value.status_code is None


# ---------------------------------------------------------------------------
# verify_payment
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
@pytest.mark.parametrize(
    "body,is_paid",
    [
        ({"success": True, "data": {"status": "success"}}, True),
        ({"success": True, "data": {"status": "PAID"}}, True),
        ({"success": True, "data": {"status": "pending"}}, False),
        ({"success": False, "data": {"status": "success"}}, False),
        ({"data": {}}, False),
    ],
)
async def test_verify_payment_requires_success_flag_and_paid_status(body, is_paid):
    """Only a successful response with a paid status counts as paid."""

    def handler(request):
        assert request.url.path == "/v1/payments/py_abc/verify"
        return httpx.Response(200, json=body)

    verified = await _client(handler).verify_payment("py_abc")

    assert verified.is_paid is is_paid


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verify_payment_exposes_charged_amount():
    def handler(request):
        return httpx.Response(
            200, json={"success": True, "data": {"status": "success", "amount": "55000"}}
        )

    verified = await _client(handler).verify_payment("py_abc")

    assert verified.amount == 55000


@pytest.mark.unit
def test_verified_payment_without_amount():
    assert VerifiedPayment(status="success", success=True).amount is None
    assert VerifiedPayment(status="success", success=True, raw={"data": None}).amount is None


# ---------------------------------------------------------------------------
# Webhook signatures
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_webhook_signature_is_hmac_sha256_of_raw_body():
    raw = b'{"event":"payment.success","data":{"id":"py_abc"}}'
    signature = hmac.new(b"whsec", raw, hashlib.sha256).hexdigest()

    assert verify_webhook_signature(raw, signature, "whsec") is True
    assert verify_webhook_signature(raw + b" ", signature, "whsec") is False
    assert verify_webhook_signature(raw, signature, "other") is False


@pytest.mark.unit
def test_client_requires_secret_key(monkeypatch):
    from libs.common import config

    monkeypatch.setattr(config.get_settings(), "MONEROO_SECRET_KEY", None)

    with pytest.raises(ValueError):
        MonerooClient()
