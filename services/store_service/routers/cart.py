"""Store cart router: per-session cart lines and delivery mode."""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from libs.db.session import get_async_db
from services.store_service.catalog import get_product, get_variant, product_snapshot
from services.store_service.client_state import ClientState
from services.store_service.routers._helpers import cart_response, session_id_param
from services.store_service.schemas import (
    CartItemAdd,
    CartItemUpdate,
    CartResponse,
    DeliveryModeUpdate,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


# ============================================================================
# CART
# ============================================================================


@router.get("/cart", response_model=CartResponse)
async def get_cart(
    session_id: str = Depends(session_id_param),
    db: AsyncSession = Depends(get_async_db),
):
    """Get the shopper's cart with totals."""
    state = await ClientState.load(db, session_id)
    cart = state.cart()
    return cart_response(session_id, cart)


@router.post("/cart/items", response_model=CartResponse)
async def add_to_cart(
    item_in: CartItemAdd,
    session_id: str = Depends(session_id_param),
    db: AsyncSession = Depends(get_async_db),
):
    """Add a variant; quantity is clamped to stock, unavailable variants are ignored."""
    variant = await get_variant(db, item_in.variant_id)
    if not variant:
        raise HTTPException(status_code=404, detail="Variant not found")
    product = await get_product(db, variant.product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    state = await ClientState.load(db, session_id)
    cart = state.cart()
    cart.add_to_cart(product_snapshot(product), variant, item_in.quantity)
    await state.flush(db)
    return cart_response(session_id, cart)


@router.patch("/cart/items/{variant_id}", response_model=CartResponse)
async def update_cart_item(
    variant_id: uuid.UUID,
    item_in: CartItemUpdate,
    session_id: str = Depends(session_id_param),
    db: AsyncSession = Depends(get_async_db),
):
    """Set a line's quantity (clamped to the stock stored with the line; <= 0 removes)."""
    state = await ClientState.load(db, session_id)
    cart = state.cart()
    if cart.find_line(variant_id) is None:
        raise HTTPException(status_code=404, detail="Cart item not found")
    cart.update_quantity(variant_id, item_in.quantity)
    await state.flush(db)
    return cart_response(session_id, cart)


@router.delete("/cart/items/{variant_id}", response_model=CartResponse)
async def remove_cart_item(
    variant_id: uuid.UUID,
    session_id: str = Depends(session_id_param),
    db: AsyncSession = Depends(get_async_db),
):
    """Remove a line; removing an absent line is a no-op."""
    state = await ClientState.load(db, session_id)
    cart = state.cart()
    cart.remove_from_cart(variant_id)
    await state.flush(db)
    return cart_response(session_id, cart)


@router.delete("/cart", response_model=CartResponse)
async def clear_cart(
    session_id: str = Depends(session_id_param),
    db: AsyncSession = Depends(get_async_db),
):
    """Empty the cart and reset the delivery mode."""
    state = await ClientState.load(db, session_id)
    cart = state.cart()
    cart.clear_cart()
    await state.flush(db)
    return cart_response(session_id, cart)


@router.put("/cart/delivery-mode", response_model=CartResponse)
async def set_delivery_mode(
    mode_in: DeliveryModeUpdate,
    session_id: str = Depends(session_id_param),
    db: AsyncSession = Depends(get_async_db),
):
    """Switch between delivery and pickup; totals are recomputed."""
    state = await ClientState.load(db, session_id)
    cart = state.cart()
    cart.set_delivery_mode(mode_in.delivery_mode)
    await state.flush(db)
    return cart_response(session_id, cart)
