"""Pydantic schemas for store service."""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from services.store_service.models import (
    Country,
    DeliveryMode,
    OrderStatus,
    PaymentMethod,
)

# ============================================================================
# CATALOG SNAPSHOTS (shape shared by the cart, checkout and product page)
# ============================================================================


class ProductSnapshot(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    category: Optional[str] = None
    description: Optional[str] = None
    base_price_min: Optional[int] = None
    original_price: Optional[int] = None
    is_active: bool = True
    details: list[str] = Field(default_factory=list)


class VariantSnapshot(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    color: Optional[str] = None
    color_hex: Optional[str] = None
    length: float
    price: int = Field(..., ge=0)
    stock_count: Optional[int] = None  # null means 0
    sku: Optional[str] = None
    is_active: bool = True
    is_default: bool = False
    medias: list[str] = Field(default_factory=list)
    image_url: Optional[str] = None


class CartLine(BaseModel):
    product: ProductSnapshot
    variant: VariantSnapshot
    quantity: int = Field(..., ge=1)

    @property
    def line_total(self) -> int:
        return self.variant.price * self.quantity


# ============================================================================
# PRODUCT PAGE SCHEMAS
# ============================================================================


class ProductListItem(ProductSnapshot):
    display_price: int
    image_url: Optional[str] = None


class ColorGroupResponse(BaseModel):
    color: str
    hex: Optional[str] = None
    lengths: list[float]
    variants: list[VariantSnapshot]


class CarouselItemResponse(BaseModel):
    color: Optional[str] = None
    url: str


class SelectionResponse(BaseModel):
    color: Optional[str] = None
    length: Optional[float] = None
    image_index: int = 0
    lengths: list[float] = Field(default_factory=list)
    current_variant: Optional[VariantSnapshot] = None
    can_add_to_cart: bool = False


class ProductDetailResponse(BaseModel):
    product: ProductSnapshot
    display_price: int
    color_groups: list[ColorGroupResponse]
    carousel: list[CarouselItemResponse]
    selection: SelectionResponse


# ============================================================================
# CART SCHEMAS
# ============================================================================


class CartItemAdd(BaseModel):
    variant_id: uuid.UUID
    quantity: float = 1


class CartItemUpdate(BaseModel):
    quantity: float


class DeliveryModeUpdate(BaseModel):
    delivery_mode: DeliveryMode


class CartLineResponse(BaseModel):
    product: ProductSnapshot
    variant: VariantSnapshot
    quantity: int
    line_total: int


class CartResponse(BaseModel):
    session_id: str
    items: list[CartLineResponse]
    delivery_mode: DeliveryMode
    total_items: int
    total_price: int
    delivery_fee: int
    grand_total: int


# ============================================================================
# CHECKOUT SCHEMAS
# ============================================================================


class CheckoutForm(BaseModel):
    full_name: str = ""
    phone: str = ""
    email: Optional[EmailStr] = None
    country: Country = Country.TOGO
    region: str = ""
    city: str = ""
    address: str = ""
    notes: str = ""

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class CheckoutRequest(BaseModel):
    form: CheckoutForm
    payment_method: PaymentMethod


class CheckoutPayloadItem(BaseModel):
    product_id: uuid.UUID
    variant_id: uuid.UUID
    color: Optional[str] = None
    length: Optional[float] = None
    quantity: int = Field(..., ge=1)
    unit_price: int = Field(..., ge=0)


class CheckoutPayload(BaseModel):
    """Continuation record staged before the hosted payment redirect."""

    user_id: Optional[str] = None
    form_data: CheckoutForm
    payment_method: PaymentMethod
    delivery_mode: DeliveryMode
    items: list[CheckoutPayloadItem]
    total_price: int = Field(..., ge=0)


class CheckoutResponse(BaseModel):
    outcome: Literal["order_created", "payment_required"]
    redirect_to: str
    order_id: Optional[uuid.UUID] = None
    total: int


class PaymentInitResponse(BaseModel):
    checkout_url: str
    payment_id: Optional[str] = None
    amount: int
    currency: str


class ReconciliationResponse(BaseModel):
    outcome: Literal["order_created", "nothing_to_reconcile"]
    redirect_to: str
    order_id: Optional[uuid.UUID] = None


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: Optional[uuid.UUID] = None
    variant_id: Optional[uuid.UUID] = None
    color: Optional[str] = None
    length: Optional[float] = None
    quantity: int
    unit_price: int


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: Optional[str] = None
    full_name: str
    phone: str
    email: Optional[str] = None
    country: Optional[Country] = None
    region: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    delivery_mode: DeliveryMode
    delivery_fee: int
    total: int
    payment_method: PaymentMethod
    payment_provider: Optional[str] = None
    payment_id: Optional[str] = None
    payment_status: Optional[str] = None
    status: OrderStatus
    created_at: datetime
    items: list[OrderItemResponse] = []


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    total: int
    page: int
    page_size: int


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


# ============================================================================
# ADMIN CATALOG SCHEMAS
# ============================================================================


class ProductBase(BaseModel):
    name: str = Field(..., max_length=255)
    slug: str = Field(..., max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    original_price: Optional[int] = Field(None, ge=0)
    is_active: bool = True
    details: list[str] = Field(default_factory=list)


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    original_price: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None
    details: Optional[list[str]] = None


class ProductResponse(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    base_price_min: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class ProductListResponse(BaseModel):
    items: list[ProductResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class ColorCreate(BaseModel):
    name: str = Field(..., max_length=100)
    hex_code: Optional[str] = Field(None, max_length=9)


class ColorResponse(ColorCreate):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID


class ProductColorCreate(BaseModel):
    color_id: uuid.UUID
    is_default: bool = False


class ProductColorImageCreate(BaseModel):
    image_url: str = Field(..., max_length=1024)
    position: int = 0


class ProductColorImageResponse(ProductColorImageCreate):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID


class ProductColorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    color_id: uuid.UUID
    is_default: bool
    images: list[ProductColorImageResponse] = []


class VariantCreate(BaseModel):
    product_color_id: uuid.UUID
    length: float = Field(..., gt=0)
    price: int = Field(..., ge=0)
    stock_count: Optional[int] = Field(None, ge=0)
    sku: Optional[str] = Field(None, max_length=100)
    is_active: bool = True


class VariantUpdate(BaseModel):
    length: Optional[float] = Field(None, gt=0)
    price: Optional[int] = Field(None, ge=0)
    stock_count: Optional[int] = Field(None, ge=0)
    sku: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None


class VariantResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    product_color_id: uuid.UUID
    length: float
    price: int
    stock_count: Optional[int] = None
    sku: Optional[str] = None
    is_active: bool
