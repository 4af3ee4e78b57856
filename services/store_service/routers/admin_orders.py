"""Admin orders router: order list, detail and status changes."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.models import Order, OrderStatus
from services.store_service.orders import get_order
from services.store_service.schemas import (
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
)
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(tags=["admin-store"])
logger = get_logger(__name__)


# ============================================================================
# ORDERS
# ============================================================================


@router.get("/orders", response_model=OrderListResponse)
async def list_all_orders(
    search: Optional[str] = None,
    status_filter: Optional[OrderStatus] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List all orders; `search` matches name, phone or status."""
    query = select(Order)

    if status_filter:
        query = query.where(Order.status == status_filter)

    if search:
        search_term = f"%{search.strip()}%"
        conditions = [Order.full_name.ilike(search_term), Order.phone.ilike(search_term)]
        matching_statuses = [
            s for s in OrderStatus if search.strip().lower() in s.value
        ]
        if matching_statuses:
            conditions.append(Order.status.in_(matching_statuses))
        query = query.where(or_(*conditions))

    # Count
    count_query = select(func.count()).select_from(query.subquery())
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    # Paginate
    query = (
        query.options(selectinload(Order.items))
        .order_by(Order.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )

    result = await db.execute(query)
    orders = result.scalars().all()

    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in orders],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order_admin(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Get order detail (admin)."""
    order = await get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.patch("/orders/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    status_update: OrderStatusUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Update order status."""
    order = await get_order(db, order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    old_status = order.status
    order.status = status_update.status
    await db.commit()

    logger.info(
        f"Order {order.id} status {old_status.value} -> {order.status.value}",
        extra={
            "extra_fields": {
                "order_id": str(order.id),
                "admin_id": current_user.user_id,
            }
        },
    )
    return order
