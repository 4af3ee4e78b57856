"""Catalog reads: products and their flattened variant rows."""

import uuid
from typing import Iterable, Optional

from services.store_service.models import (
    Color,
    Product,
    ProductColor,
    ProductVariant,
)
from services.store_service.schemas import ProductSnapshot, VariantSnapshot
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload


def product_snapshot(product: Product) -> ProductSnapshot:
    return ProductSnapshot(
        id=product.id,
        name=product.name,
        slug=product.slug,
        category=product.category,
        description=product.description,
        base_price_min=product.base_price_min,
        original_price=product.original_price,
        is_active=product.is_active,
        details=list(product.details or []),
    )


def variant_snapshot(variant: ProductVariant) -> VariantSnapshot:
    """Flatten a variant with its color link and media into the cart/product shape.

    Expects product_color, product_color.color and product_color.images loaded.
    """
    product_color = variant.product_color
    medias = [image.image_url for image in product_color.images]
    return VariantSnapshot(
        id=variant.id,
        product_id=variant.product_id,
        color=product_color.color.name,
        color_hex=product_color.color.hex_code,
        length=float(variant.length),
        price=variant.price,
        stock_count=variant.stock_count,
        sku=variant.sku,
        is_active=variant.is_active,
        is_default=product_color.is_default,
        medias=medias,
        image_url=medias[0] if medias else None,
    )


def _variant_query():
    return (
        select(ProductVariant)
        .join(ProductColor, ProductVariant.product_color_id == ProductColor.id)
        .join(Color, ProductColor.color_id == Color.id)
        .options(
            selectinload(ProductVariant.product_color).selectinload(
                ProductColor.color
            ),
            selectinload(ProductVariant.product_color).selectinload(
                ProductColor.images
            ),
        )
    )


# ============================================================================
# PRODUCTS
# ============================================================================


async def list_products(
    db: AsyncSession,
    category: Optional[str] = None,
    include_inactive: bool = False,
) -> list[Product]:
    query = select(Product).order_by(Product.created_at.desc())
    if not include_inactive:
        query = query.where(Product.is_active.is_(True))
    if category:
        query = query.where(Product.category == category)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_product(
    db: AsyncSession, product_id: uuid.UUID, include_inactive: bool = False
) -> Optional[Product]:
    query = select(Product).where(Product.id == product_id)
    if not include_inactive:
        query = query.where(Product.is_active.is_(True))
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def get_product_snapshots(
    db: AsyncSession, product_ids: Iterable[uuid.UUID]
) -> dict[uuid.UUID, ProductSnapshot]:
    ids = set(product_ids)
    if not ids:
        return {}
    result = await db.execute(select(Product).where(Product.id.in_(ids)))
    return {product.id: product_snapshot(product) for product in result.scalars()}


async def first_images(
    db: AsyncSession, product_ids: Iterable[uuid.UUID]
) -> dict[uuid.UUID, str]:
    """Cover image per product: default color first, then lowest position."""
    ids = set(product_ids)
    if not ids:
        return {}
    result = await db.execute(
        select(ProductColor)
        .where(ProductColor.product_id.in_(ids))
        .options(selectinload(ProductColor.images))
        .order_by(ProductColor.is_default.desc())
    )
    covers: dict[uuid.UUID, str] = {}
    for product_color in result.scalars():
        if product_color.product_id in covers or not product_color.images:
            continue
        covers[product_color.product_id] = product_color.images[0].image_url
    return covers


# ============================================================================
# VARIANTS
# ============================================================================


async def load_product_variants(
    db: AsyncSession, product_id: uuid.UUID
) -> list[VariantSnapshot]:
    """All variants of a product, default color first, then color name, then length.

    Inactive and out-of-stock rows are included; callers filter.
    """
    query = (
        _variant_query()
        .where(ProductVariant.product_id == product_id)
        .order_by(
            ProductColor.is_default.desc(),
            Color.name.asc(),
            ProductVariant.length.asc(),
        )
    )
    result = await db.execute(query)
    return [variant_snapshot(variant) for variant in result.scalars().all()]


async def get_variant(
    db: AsyncSession, variant_id: uuid.UUID
) -> Optional[VariantSnapshot]:
    result = await db.execute(
        _variant_query().where(ProductVariant.id == variant_id)
    )
    variant = result.scalar_one_or_none()
    return variant_snapshot(variant) if variant else None


async def existing_variant_ids(
    db: AsyncSession, variant_ids: Iterable[uuid.UUID]
) -> set[uuid.UUID]:
    ids = set(variant_ids)
    if not ids:
        return set()
    result = await db.execute(
        select(ProductVariant.id).where(ProductVariant.id.in_(ids))
    )
    return set(result.scalars().all())


async def refresh_base_price(db: AsyncSession, product_id: uuid.UUID) -> None:
    """Recompute Product.base_price_min from its active variants."""
    result = await db.execute(
        select(func.min(ProductVariant.price)).where(
            ProductVariant.product_id == product_id,
            ProductVariant.is_active.is_(True),
        )
    )
    lowest = result.scalar_one_or_none()
    product = await db.get(Product, product_id)
    if product is not None:
        product.base_price_min = lowest
