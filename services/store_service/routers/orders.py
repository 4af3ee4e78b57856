"""Store orders router: the signed-in buyer's order history."""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.orders import get_order, list_orders_for_user
from services.store_service.schemas import OrderResponse
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


# ============================================================================
# ORDER HISTORY
# ============================================================================


@router.get("/orders", response_model=list[OrderResponse])
async def list_my_orders(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List the current user's orders, newest first, with their items."""
    return await list_orders_for_user(db, current_user.user_id)


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_my_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Get one of the current user's orders."""
    order = await get_order(db, order_id)
    if not order or (
        order.user_id != current_user.user_id and not current_user.is_admin
    ):
        raise HTTPException(status_code=404, detail="Order not found")
    return order
