"""Store Service models package."""

from services.store_service.models.catalog import (
    Color,
    Product,
    ProductColor,
    ProductColorImage,
    ProductVariant,
)
from services.store_service.models.commerce import ClientStateEntry, Order, OrderItem
from services.store_service.models.enums import (
    Country,
    DeliveryMode,
    OrderStatus,
    PaymentMethod,
    StorageScope,
)

__all__ = [
    "ClientStateEntry",
    "Color",
    "Country",
    "DeliveryMode",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
    "Product",
    "ProductColor",
    "ProductColorImage",
    "ProductVariant",
    "StorageScope",
]
