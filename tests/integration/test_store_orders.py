"""Integration tests for the buyer's order history."""

import uuid

import pytest
from services.store_service.models import OrderItem
from tests.factories import OrderFactory


@pytest.mark.asyncio
@pytest.mark.integration
async def test_buyer_sees_only_own_orders(client, db_session, buyer_headers):
    mine = OrderFactory.create(user_id="buyer-1")
    theirs = OrderFactory.create(user_id="buyer-2")
    db_session.add_all([mine, theirs])
    await db_session.flush()
    db_session.add(
        OrderItem(
            order_id=mine.id,
            product_id=uuid.uuid4(),
            variant_id=uuid.uuid4(),
            color="Noir",
            length=18,
            quantity=1,
            unit_price=25000,
        )
    )
    await db_session.commit()

    response = await client.get("/store/orders", headers=buyer_headers)

    assert response.status_code == 200
    [order] = response.json()
    assert order["id"] == str(mine.id)
    assert order["items"][0]["unit_price"] == 25000
    assert order["items"][0]["length"] == 18.0


@pytest.mark.asyncio
@pytest.mark.integration
async def test_buyer_cannot_read_someone_elses_order(client, db_session, buyer_headers):
    theirs = OrderFactory.create(user_id="buyer-2")
    db_session.add(theirs)
    await db_session.commit()

    response = await client.get(f"/store/orders/{theirs.id}", headers=buyer_headers)

    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_buyer_reads_own_order(client, db_session, buyer_headers):
    mine = OrderFactory.create(user_id="buyer-1")
    db_session.add(mine)
    await db_session.commit()

    response = await client.get(f"/store/orders/{mine.id}", headers=buyer_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "pending"
    assert response.json()["items"] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_order_history_requires_a_token(client):
    response = await client.get("/store/orders")

    assert response.status_code in (401, 403)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_invalid_token_is_rejected(client):
    response = await client.get(
        "/store/orders", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401
