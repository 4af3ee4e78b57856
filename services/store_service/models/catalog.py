"""Store catalog models: products, colors, color images, variants."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy import UniqueConstraint, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

JSONType = JSON().with_variant(JSONB(), "postgresql")


# ============================================================================
# CATALOG MODELS
# ============================================================================


class Product(Base):
    """Catalog entries (e.g., 'Perruque Body Wave')."""

    __tablename__ = "store_products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Pricing in whole FCFA
    base_price_min: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )  # lowest active variant price, maintained on variant writes
    original_price: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )  # "was" price for sales display

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )
    details: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    # Relationships
    colors = relationship(
        "ProductColor", back_populates="product", cascade="all, delete-orphan"
    )
    variants = relationship(
        "ProductVariant", back_populates="product", cascade="all, delete-orphan"
    )

    @property
    def display_price(self) -> int:
        if self.base_price_min is not None:
            return self.base_price_min
        if self.original_price is not None:
            return self.original_price
        return 0

    def __repr__(self):
        return f"<Product {self.name}>"


class Color(Base):
    """Shared color palette (e.g., 'Noir', '#000000')."""

    __tablename__ = "store_colors"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    hex_code: Mapped[Optional[str]] = mapped_column(String(9), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )

    def __repr__(self):
        return f"<Color {self.name}>"


class ProductColor(Base):
    """A color offered for a product, with its ordered media."""

    __tablename__ = "store_product_colors"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_products.id", ondelete="CASCADE"),
        nullable=False,
    )
    color_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_colors.id", ondelete="RESTRICT"),
        nullable=False,
    )
    is_default: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false"
    )

    __table_args__ = (
        UniqueConstraint("product_id", "color_id", name="unique_product_color"),
    )

    # Relationships
    product = relationship("Product", back_populates="colors")
    color = relationship("Color")
    images = relationship(
        "ProductColorImage",
        back_populates="product_color",
        cascade="all, delete-orphan",
        order_by="ProductColorImage.position",
    )
    variants = relationship("ProductVariant", back_populates="product_color")

    def __repr__(self):
        return f"<ProductColor product={self.product_id} color={self.color_id}>"


class ProductColorImage(Base):
    """Image or video URL attached to a product color."""

    __tablename__ = "store_product_color_images"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_color_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_product_colors.id", ondelete="CASCADE"),
        nullable=False,
    )
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, server_default="0")

    # Relationships
    product_color = relationship("ProductColor", back_populates="images")

    def __repr__(self):
        return f"<ProductColorImage {self.image_url}>"


class ProductVariant(Base):
    """Purchasable SKU: one color x one length of a product."""

    __tablename__ = "store_product_variants"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_products.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_color_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("store_product_colors.id", ondelete="CASCADE"),
        nullable=False,
    )

    length: Mapped[float] = mapped_column(Numeric(5, 1), nullable=False)  # inches
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    stock_count: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sku: Mapped[Optional[str]] = mapped_column(String(100), unique=True, nullable=True)

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default="true"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    # Relationships
    product = relationship("Product", back_populates="variants")
    product_color = relationship("ProductColor", back_populates="variants")

    def __repr__(self):
        return f"<ProductVariant {self.sku or self.id}>"
