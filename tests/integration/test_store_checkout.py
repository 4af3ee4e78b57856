"""Integration tests for checkout: cash orders and hosted-payment staging."""

import pytest
from services.store_service.app.main import app
from services.store_service.checkout import CHECKOUT_PAYLOAD_KEY
from services.store_service.models import (
    ClientStateEntry,
    Order,
    OrderItem,
    OrderStatus,
    StorageScope,
)
from services.store_service.notifications import get_notifier
from services.store_service.orders import OrderWriteError
from sqlalchemy import func, select
from tests.stubs import StubNotifier


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


FORM = {
    "full_name": "Awa Mensah",
    "phone": "90 00 00 00",
    "email": "awa@example.com",
    "country": "togo",
    "region": "Maritime",
    "city": "Lomé",
    "address": "Rue 12, Bè",
    "notes": "Appeler avant",
}


async def _fill_cart(client, session_id, wig):
    """Two Noir 16" (20 000) and one Blond 20" (35 000): 75 000 FCFA."""
    by_length = {
        (wig.colors["Noir"].id, 16.0): 2,
        (wig.colors["Blond"].id, 20.0): 1,
    }
    for variant in wig.variants:
        quantity = by_length.get((variant.product_color_id, float(variant.length)))
        if quantity:
            await client.post(
                "/store/cart/items",
                params={"session_id": session_id},
                json={"variant_id": str(variant.id), "quantity": quantity},
            )


async def _checkout(client, session_id, payment_method="cash", headers=None, **form):
    return await client.post(
        "/store/checkout",
        params={"session_id": session_id},
        json={"form": {**FORM, **form}, "payment_method": payment_method},
        headers=headers or {},
    )


async def _count(db, model) -> int:
    result = await db.execute(select(func.count()).select_from(model))
    return result.scalar_one()


# ---------------------------------------------------------------------------
# Cash on delivery
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cash_checkout_creates_one_order_with_all_items(
    store_client, db_session, session_id, wig, notifier
):
    """A valid cash checkout writes one order, one item per line and empties the cart."""
    await _fill_cart(store_client, session_id, wig)

    response = await _checkout(store_client, session_id)

    assert response.status_code == 200
    data = response.json()
    assert data["outcome"] == "order_created"
    assert data["redirect_to"] == "/order-confirmation"
    assert data["total"] == 75000

    assert await _count(db_session, Order) == 1
    assert await _count(db_session, OrderItem) == 2

    order = (await db_session.execute(select(Order))).scalar_one()
    assert str(order.id) == data["order_id"]
    assert order.status == OrderStatus.PENDING
    assert order.phone == "+22890000000"
    assert order.delivery_fee == 0
    assert order.total == 75000
    assert order.user_id is None
    assert order.notes == "Appeler avant"

    cart = await store_client.get("/store/cart", params={"session_id": session_id})
    assert cart.json()["items"] == []

    [call] = notifier.calls
    assert call["order_id"] == data["order_id"]
    assert call["customer_phone"] == "+22890000000"
    assert len(call["items"]) == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cash_order_charges_fee_below_threshold(
    store_client, db_session, session_id, wig
):
    noir_16 = next(
        v
        for v in wig.variants
        if v.product_color_id == wig.colors["Noir"].id and float(v.length) == 16
    )
    await store_client.post(
        "/store/cart/items",
        params={"session_id": session_id},
        json={"variant_id": str(noir_16.id)},
    )

    response = await _checkout(store_client, session_id)

    assert response.json()["total"] == 22000
    order = (await db_session.execute(select(Order))).scalar_one()
    assert order.delivery_fee == 2000


@pytest.mark.asyncio
@pytest.mark.integration
async def test_signed_in_checkout_records_user(
    store_client, db_session, session_id, wig, buyer_headers
):
    await _fill_cart(store_client, session_id, wig)

    response = await _checkout(store_client, session_id, headers=buyer_headers)

    assert response.status_code == 200
    order = (await db_session.execute(select(Order))).scalar_one()
    assert order.user_id == "buyer-1"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_failed_notification_does_not_block_order(
    store_client, db_session, session_id, wig
):
    """WhatsApp failures are logged only; the order still goes through."""
    app.dependency_overrides[get_notifier] = lambda: StubNotifier(fail=True)
    await _fill_cart(store_client, session_id, wig)

    response = await _checkout(store_client, session_id)

    assert response.status_code == 200
    assert response.json()["outcome"] == "order_created"
    assert await _count(db_session, Order) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_crashing_notifier_still_completes_cash_order(
    store_client, db_session, session_id, wig, notifier
):
    """An unexpected notifier error neither fails the request nor keeps the cart."""
    notifier.error = RuntimeError("notifier down")
    await _fill_cart(store_client, session_id, wig)

    response = await _checkout(store_client, session_id)

    assert response.status_code == 200
    assert response.json()["outcome"] == "order_created"
    assert await _count(db_session, Order) == 1
    assert len(notifier.calls) == 1
    cart = await store_client.get("/store/cart", params={"session_id": session_id})
    assert cart.json()["items"] == []


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_empty_cart_checkout_is_rejected(store_client, db_session, session_id):
    response = await _checkout(store_client, session_id)

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert detail["field"] == "items"
    assert detail["redirect_to"] == "/checkout"
    assert await _count(db_session, Order) == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_missing_address_keeps_cart(store_client, db_session, session_id, wig):
    await _fill_cart(store_client, session_id, wig)

    response = await _checkout(store_client, session_id, address="  ")

    assert response.status_code == 422
    assert response.json()["detail"]["field"] == "address"
    assert await _count(db_session, Order) == 0
    cart = await store_client.get("/store/cart", params={"session_id": session_id})
    assert cart.json()["total_items"] == 3


@pytest.mark.asyncio
@pytest.mark.integration
async def test_pickup_checkout_without_address(store_client, db_session, session_id, wig):
    await _fill_cart(store_client, session_id, wig)
    await store_client.put(
        "/store/cart/delivery-mode",
        params={"session_id": session_id},
        json={"delivery_mode": "pickup"},
    )

    response = await _checkout(store_client, session_id, region="", city="", address="")

    assert response.status_code == 200
    order = (await db_session.execute(select(Order))).scalar_one()
    assert order.address is None
    assert order.delivery_fee == 0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_concurrent_submission_is_rejected(store_client, session_id, wig, guard):
    await _fill_cart(store_client, session_id, wig)

    async with guard.hold(session_id):
        response = await _checkout(store_client, session_id)

    assert response.status_code == 409


@pytest.mark.asyncio
@pytest.mark.integration
async def test_order_write_failure_leaves_cart(
    store_client, session_id, wig, monkeypatch
):
    """When the order cannot be stored the buyer keeps the cart and sees an error."""

    async def failing_write(db, draft, items):
        raise OrderWriteError("Erreur lors de la création de la commande. Merci de réessayer.")

    monkeypatch.setattr(
        "services.store_service.checkout.create_order_with_items", failing_write
    )
    await _fill_cart(store_client, session_id, wig)

    response = await _checkout(store_client, session_id)

    assert response.status_code == 500
    assert "Merci de réessayer" in response.json()["detail"]["message"]
    cart = await store_client.get("/store/cart", params={"session_id": session_id})
    assert cart.json()["total_items"] == 3


# ---------------------------------------------------------------------------
# Hosted payment staging
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize("payment_method", ["mobile", "card"])
async def test_gateway_checkout_stages_payload(
    store_client, db_session, session_id, wig, payment_method
):
    """Mobile and card payments stage the checkout and send the buyer to pay."""
    await _fill_cart(store_client, session_id, wig)

    response = await _checkout(store_client, session_id, payment_method=payment_method)

    assert response.status_code == 200
    data = response.json()
    assert data["outcome"] == "payment_required"
    assert data["redirect_to"] == "/payment"
    assert data["order_id"] is None
    assert data["total"] == 75000
    assert await _count(db_session, Order) == 0

    entry = (
        await db_session.execute(
            select(ClientStateEntry).where(
                ClientStateEntry.session_id == session_id,
                ClientStateEntry.scope == StorageScope.SESSION,
                ClientStateEntry.key == CHECKOUT_PAYLOAD_KEY,
            )
        )
    ).scalar_one()
    assert entry.expires_at is not None
    assert f'"payment_method":"{payment_method}"' in entry.value

    cart = await store_client.get("/store/cart", params={"session_id": session_id})
    assert cart.json()["total_items"] == 3
