"""Shared helpers for store routers."""

from typing import Optional

from fastapi import Query
from services.store_service.cart_store import CartStore
from services.store_service.schemas import (
    CartLineResponse,
    CartResponse,
    SelectionResponse,
)
from services.store_service.variants import VariantSelection


def session_id_param(
    session_id: str = Query(
        ...,
        min_length=8,
        max_length=255,
        description="Opaque shopper id kept by the browser",
    ),
) -> str:
    return session_id


def error_detail(
    message: str, redirect_to: Optional[str] = None, **extra
) -> dict:
    """HTTPException detail: a buyer-facing message and where to send the buyer."""
    detail = {"message": message, "redirect_to": redirect_to}
    detail.update(extra)
    return detail


def cart_response(session_id: str, cart: CartStore) -> CartResponse:
    return CartResponse(
        session_id=session_id,
        items=[
            CartLineResponse(
                product=line.product,
                variant=line.variant,
                quantity=line.quantity,
                line_total=line.line_total,
            )
            for line in cart.lines
        ],
        delivery_mode=cart.delivery_mode,
        total_items=cart.total_items,
        total_price=cart.total_price,
        delivery_fee=cart.delivery_fee,
        grand_total=cart.grand_total,
    )


def selection_response(selection: VariantSelection) -> SelectionResponse:
    return SelectionResponse(
        color=selection.color,
        length=selection.length,
        image_index=selection.image_index,
        lengths=selection.lengths,
        current_variant=selection.current_variant,
        can_add_to_cart=selection.can_add_to_cart,
    )
