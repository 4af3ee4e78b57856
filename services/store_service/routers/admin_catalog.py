"""Admin catalog router: products, colors, product colors and images, variants."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.catalog import load_product_variants, refresh_base_price
from services.store_service.models import (
    Color,
    Product,
    ProductColor,
    ProductColorImage,
    ProductVariant,
)
from services.store_service.schemas import (
    ColorCreate,
    ColorResponse,
    ProductColorCreate,
    ProductColorImageCreate,
    ProductColorImageResponse,
    ProductColorResponse,
    ProductCreate,
    ProductListResponse,
    ProductResponse,
    ProductUpdate,
    VariantCreate,
    VariantResponse,
    VariantSnapshot,
    VariantUpdate,
)
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])
logger = get_logger(__name__)


async def _get_product_or_404(db: AsyncSession, product_id: uuid.UUID) -> Product:
    product = await db.get(Product, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


async def _get_variant_or_404(db: AsyncSession, variant_id: uuid.UUID) -> ProductVariant:
    variant = await db.get(ProductVariant, variant_id)
    if not variant:
        raise HTTPException(status_code=404, detail="Variant not found")
    return variant


# ============================================================================
# PRODUCTS
# ============================================================================


@router.get("/products", response_model=ProductListResponse)
async def list_all_products(
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List all products (including hidden ones)."""
    query = select(Product)

    if is_active is not None:
        query = query.where(Product.is_active.is_(is_active))

    if search:
        search_term = f"%{search}%"
        query = query.where(
            Product.name.ilike(search_term) | Product.slug.ilike(search_term)
        )

    # Count total
    count_query = select(func.count()).select_from(query.subquery())
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    # Paginate
    query = query.order_by(Product.created_at.desc())
    query = query.offset((page - 1) * page_size).limit(page_size)

    result = await db.execute(query)
    products = result.scalars().all()

    return ProductListResponse(
        items=[ProductResponse.model_validate(p) for p in products],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=(total + page_size - 1) // page_size,
    )


@router.post(
    "/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED
)
async def create_product(
    product_in: ProductCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a new product."""
    existing = await db.execute(select(Product).where(Product.slug == product_in.slug))
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=400, detail="Product with this slug already exists"
        )

    product = Product(**product_in.model_dump())
    db.add(product)
    await db.commit()
    await db.refresh(product)

    logger.info(
        f"Product {product.slug} created",
        extra={
            "extra_fields": {
                "product_id": str(product.id),
                "admin_id": current_user.user_id,
            }
        },
    )
    return product


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product_admin(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Get product detail (admin view, includes hidden products)."""
    return await _get_product_or_404(db, product_id)


@router.get("/products/{product_id}/variants", response_model=list[VariantSnapshot])
async def list_product_variants_admin(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """All variants of a product, including inactive and out-of-stock ones."""
    await _get_product_or_404(db, product_id)
    return await load_product_variants(db, product_id)


@router.patch("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: uuid.UUID,
    product_in: ProductUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Update a product."""
    product = await _get_product_or_404(db, product_id)

    update_data = product_in.model_dump(exclude_unset=True)

    if "slug" in update_data and update_data["slug"] != product.slug:
        existing = await db.execute(
            select(Product).where(Product.slug == update_data["slug"])
        )
        if existing.scalar_one_or_none():
            raise HTTPException(
                status_code=400, detail="Product with this slug already exists"
            )

    for field, value in update_data.items():
        setattr(product, field, value)

    await db.commit()
    await db.refresh(product)
    return product


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_product(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Hide a product (soft delete; past orders keep referencing it)."""
    product = await _get_product_or_404(db, product_id)
    product.is_active = False
    await db.commit()


# ============================================================================
# COLORS
# ============================================================================


@router.get("/colors", response_model=list[ColorResponse])
async def list_colors(
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List the color palette."""
    result = await db.execute(select(Color).order_by(Color.name))
    return result.scalars().all()


@router.post(
    "/colors", response_model=ColorResponse, status_code=status.HTTP_201_CREATED
)
async def create_color(
    color_in: ColorCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Add a color to the palette."""
    existing = await db.execute(select(Color).where(Color.name == color_in.name))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=400, detail="Color already exists")

    color = Color(**color_in.model_dump())
    db.add(color)
    await db.commit()
    await db.refresh(color)
    return color


# ============================================================================
# PRODUCT COLORS & IMAGES
# ============================================================================


@router.post(
    "/products/{product_id}/colors",
    response_model=ProductColorResponse,
    status_code=status.HTTP_201_CREATED,
)
async def attach_color(
    product_id: uuid.UUID,
    color_in: ProductColorCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Offer a color for a product; at most one color is the default."""
    await _get_product_or_404(db, product_id)
    if not await db.get(Color, color_in.color_id):
        raise HTTPException(status_code=404, detail="Color not found")

    existing = await db.execute(
        select(ProductColor).where(
            ProductColor.product_id == product_id,
            ProductColor.color_id == color_in.color_id,
        )
    )
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=400, detail="Color already attached to this product"
        )

    if color_in.is_default:
        await db.execute(
            update(ProductColor)
            .where(ProductColor.product_id == product_id)
            .values(is_default=False)
        )

    product_color = ProductColor(
        product_id=product_id,
        color_id=color_in.color_id,
        is_default=color_in.is_default,
        images=[],
    )
    db.add(product_color)
    await db.commit()
    return product_color


@router.post(
    "/product-colors/{product_color_id}/images",
    response_model=ProductColorImageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_color_image(
    product_color_id: uuid.UUID,
    image_in: ProductColorImageCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Attach an image or video URL to a product color."""
    if not await db.get(ProductColor, product_color_id):
        raise HTTPException(status_code=404, detail="Product color not found")

    image = ProductColorImage(product_color_id=product_color_id, **image_in.model_dump())
    db.add(image)
    await db.commit()
    await db.refresh(image)
    return image


# ============================================================================
# VARIANTS
# ============================================================================


@router.post(
    "/products/{product_id}/variants",
    response_model=VariantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_variant(
    product_id: uuid.UUID,
    variant_in: VariantCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Add a (color, length) SKU; the product's lowest price is recomputed."""
    await _get_product_or_404(db, product_id)

    product_color = await db.get(ProductColor, variant_in.product_color_id)
    if not product_color or product_color.product_id != product_id:
        raise HTTPException(
            status_code=400, detail="Color is not attached to this product"
        )

    if variant_in.sku:
        existing = await db.execute(
            select(ProductVariant).where(ProductVariant.sku == variant_in.sku)
        )
        if existing.scalar_one_or_none():
            raise HTTPException(
                status_code=400, detail="Variant with this SKU already exists"
            )

    variant = ProductVariant(product_id=product_id, **variant_in.model_dump())
    db.add(variant)
    await db.flush()
    await refresh_base_price(db, product_id)
    await db.commit()
    await db.refresh(variant)
    return variant


@router.patch("/variants/{variant_id}", response_model=VariantResponse)
async def update_variant(
    variant_id: uuid.UUID,
    variant_in: VariantUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Update price, stock or availability of a variant."""
    variant = await _get_variant_or_404(db, variant_id)

    update_data = variant_in.model_dump(exclude_unset=True)
    if "sku" in update_data and update_data["sku"] and update_data["sku"] != variant.sku:
        existing = await db.execute(
            select(ProductVariant).where(ProductVariant.sku == update_data["sku"])
        )
        if existing.scalar_one_or_none():
            raise HTTPException(
                status_code=400, detail="Variant with this SKU already exists"
            )

    for field, value in update_data.items():
        setattr(variant, field, value)

    await db.flush()
    await refresh_base_price(db, variant.product_id)
    await db.commit()
    await db.refresh(variant)
    return variant


@router.delete("/variants/{variant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_variant(
    variant_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Deactivate a variant (kept for order history)."""
    variant = await _get_variant_or_404(db, variant_id)
    variant.is_active = False
    await db.flush()
    await refresh_base_price(db, variant.product_id)
    await db.commit()
