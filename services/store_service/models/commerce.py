"""Store commerce models: orders, order items, per-shopper client state."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.store_service.models.enums import (
    Country,
    DeliveryMode,
    OrderStatus,
    PaymentMethod,
    StorageScope,
    enum_values,
)
from sqlalchemy import CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy import UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# ORDER MODELS
# ============================================================================


class Order(Base):
    """Orders (one per completed checkout)."""

    __tablename__ = "store_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # Owner (null for guest checkout)
    user_id: Mapped[Optional[str]] = mapped_column(
        String(255), index=True, nullable=True
    )

    # Contact
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    country: Mapped[Optional[Country]] = mapped_column(
        SAEnum(Country, values_callable=enum_values, name="store_country_enum"),
        nullable=True,
    )

    # Address (null when picked up)
    region: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Pricing (whole FCFA)
    delivery_mode: Mapped[DeliveryMode] = mapped_column(
        SAEnum(
            DeliveryMode,
            values_callable=enum_values,
            name="store_delivery_mode_enum",
        ),
        default=DeliveryMode.DELIVERY,
        server_default="delivery",
    )
    delivery_fee: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    total: Mapped[int] = mapped_column(Integer, nullable=False)

    # Payment
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(
            PaymentMethod,
            values_callable=enum_values,
            name="store_payment_method_enum",
        ),
        nullable=False,
    )
    payment_provider: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    payment_id: Mapped[Optional[str]] = mapped_column(
        String(100), unique=True, index=True, nullable=True
    )
    payment_status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            values_callable=enum_values,
            name="store_order_status_enum",
        ),
        default=OrderStatus.PENDING,
        server_default="pending",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    # Relationships
    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Order {self.id} status={self.status}>"


class OrderItem(Base):
    """Order line items (snapshot at checkout time, never repriced)."""

    __tablename__ = "store_order_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Plain references: catalog rows may be edited or removed later
    product_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    variant_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    color: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    length: Mapped[Optional[float]] = mapped_column(Numeric(5, 1), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (CheckConstraint("quantity > 0", name="positive_quantity"),)

    # Relationships
    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem variant={self.variant_id} qty={self.quantity}>"


# ============================================================================
# SHOPPER STATE
# ============================================================================


class ClientStateEntry(Base):
    """Per-shopper key/value state (cart lines, delivery mode, staged checkout)."""

    __tablename__ = "store_client_state"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id: Mapped[str] = mapped_column(String(255), nullable=False)
    scope: Mapped[StorageScope] = mapped_column(
        SAEnum(
            StorageScope,
            values_callable=enum_values,
            name="store_storage_scope_enum",
        ),
        nullable=False,
    )
    key: Mapped[str] = mapped_column(String(100), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False)

    # Only session-scoped entries expire
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        UniqueConstraint("session_id", "scope", "key", name="unique_client_state_key"),
        Index("ix_store_client_state_session_id", "session_id"),
    )

    def __repr__(self):
        return f"<ClientStateEntry {self.session_id}:{self.scope}:{self.key}>"
