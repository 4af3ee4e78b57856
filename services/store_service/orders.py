"""Order persistence: header + item rows written in one transaction."""

import uuid
from dataclasses import dataclass
from typing import Optional, Sequence

from libs.common.logging import get_logger
from services.store_service.models import (
    DeliveryMode,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
)
from services.store_service.schemas import CheckoutForm, CheckoutPayloadItem
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


class OrderWriteError(Exception):
    """Raised when the order header or its items could not be stored."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


@dataclass
class OrderDraft:
    user_id: Optional[str]
    form: CheckoutForm
    phone: str  # already normalized with the dial code
    payment_method: PaymentMethod
    delivery_mode: DeliveryMode
    delivery_fee: int
    total: int
    status: OrderStatus = OrderStatus.PENDING
    payment_provider: Optional[str] = None
    payment_id: Optional[str] = None
    payment_status: Optional[str] = None

    def to_order(self) -> Order:
        form = self.form
        delivering = self.delivery_mode == DeliveryMode.DELIVERY
        return Order(
            user_id=self.user_id,
            full_name=form.full_name.strip(),
            phone=self.phone,
            email=str(form.email).strip() if form.email else None,
            country=form.country,
            # Address fields only make sense when shipping
            region=form.region.strip() if delivering else None,
            city=form.city.strip() if delivering else None,
            address=form.address.strip() if delivering else None,
            notes=form.notes.strip() or None,
            payment_method=self.payment_method,
            delivery_mode=self.delivery_mode,
            delivery_fee=self.delivery_fee,
            total=self.total,
            payment_provider=self.payment_provider,
            payment_id=self.payment_id,
            payment_status=self.payment_status,
            status=self.status,
        )


async def create_order_with_items(
    db: AsyncSession,
    draft: OrderDraft,
    items: Sequence[CheckoutPayloadItem],
) -> Order:
    """Insert the order and one OrderItem per line, then commit once.

    Either both the header and all items are stored or nothing is.
    """
    order = draft.to_order()
    try:
        db.add(order)
        await db.flush()
        for item in items:
            db.add(
                OrderItem(
                    order_id=order.id,
                    product_id=item.product_id,
                    variant_id=item.variant_id,
                    color=item.color,
                    length=item.length,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                )
            )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(
            f"Order write failed: {e}",
            extra={
                "extra_fields": {
                    "payment_method": draft.payment_method.value,
                    "payment_id": draft.payment_id,
                    "item_count": len(items),
                }
            },
        )
        raise OrderWriteError(
            "Erreur lors de la création de la commande. Merci de réessayer."
        ) from e

    logger.info(
        f"Order {order.id} created",
        extra={
            "extra_fields": {
                "order_id": str(order.id),
                "total": draft.total,
                "payment_method": draft.payment_method.value,
                "item_count": len(items),
            }
        },
    )
    return order


# ============================================================================
# READS
# ============================================================================


async def get_order(db: AsyncSession, order_id: uuid.UUID) -> Optional[Order]:
    result = await db.execute(
        select(Order).where(Order.id == order_id).options(selectinload(Order.items))
    )
    return result.scalar_one_or_none()


async def list_orders_for_user(db: AsyncSession, user_id: str) -> list[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.user_id == user_id)
        .options(selectinload(Order.items))
        .order_by(Order.created_at.desc())
    )
    return list(result.scalars().all())


async def get_order_by_payment_id(
    db: AsyncSession, payment_id: str
) -> Optional[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.payment_id == payment_id)
        .order_by(Order.created_at.asc())
    )
    return result.scalars().first()
