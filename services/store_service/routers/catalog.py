"""Store catalog router: product list, product page, variant selection."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from libs.db.session import get_async_db
from services.store_service.catalog import (
    first_images,
    get_product,
    list_products,
    load_product_variants,
    product_snapshot,
)
from services.store_service.routers._helpers import selection_response
from services.store_service.schemas import (
    CarouselItemResponse,
    ColorGroupResponse,
    ProductDetailResponse,
    ProductListItem,
    SelectionResponse,
)
from services.store_service.variants import VariantSelection
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


async def _selection_for(db: AsyncSession, product_id: uuid.UUID) -> VariantSelection:
    product = await get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    variants = await load_product_variants(db, product_id)
    return VariantSelection.initial(variants)


# ============================================================================
# CATALOG - PRODUCTS
# ============================================================================


@router.get("/products", response_model=list[ProductListItem])
async def list_active_products(
    category: Optional[str] = None,
    db: AsyncSession = Depends(get_async_db),
):
    """List active products with their display price and cover image."""
    products = await list_products(db, category=category)
    covers = await first_images(db, [p.id for p in products])
    return [
        ProductListItem(
            **product_snapshot(product).model_dump(),
            display_price=product.display_price,
            image_url=covers.get(product.id),
        )
        for product in products
    ]


@router.get("/products/{product_id}", response_model=ProductDetailResponse)
async def get_product_page(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    """Product page: color groups, carousel and the default selection."""
    product = await get_product(db, product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")

    variants = await load_product_variants(db, product_id)
    selection = VariantSelection.initial(variants)

    return ProductDetailResponse(
        product=product_snapshot(product),
        display_price=product.display_price,
        color_groups=[
            ColorGroupResponse(
                color=group.color,
                hex=group.hex,
                lengths=group.lengths,
                variants=group.variants,
            )
            for group in selection.groups.values()
        ],
        carousel=[
            CarouselItemResponse(color=item.color, url=item.url)
            for item in selection.carousel
        ],
        selection=selection_response(selection),
    )


@router.get("/products/{product_id}/selection", response_model=SelectionResponse)
async def resolve_selection(
    product_id: uuid.UUID,
    color: Optional[str] = None,
    length: Optional[float] = Query(None, gt=0),
    image_index: Optional[int] = Query(None, ge=0),
    db: AsyncSession = Depends(get_async_db),
):
    """Apply color, then length, then image choices to the default selection."""
    selection = await _selection_for(db, product_id)
    if color:
        selection = selection.select_color(color)
    if length is not None:
        selection = selection.select_length(length)
    if image_index is not None:
        selection = selection.select_image(image_index)
    return selection_response(selection)
