"""Enum definitions for store service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class DeliveryMode(str, enum.Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


class PaymentMethod(str, enum.Enum):
    MOBILE = "mobile"
    CARD = "card"
    CASH = "cash"

    @property
    def uses_gateway(self) -> bool:
        return self is not PaymentMethod.CASH


class Country(str, enum.Enum):
    TOGO = "togo"
    BENIN = "benin"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class StorageScope(str, enum.Enum):
    LOCAL = "local"
    SESSION = "session"
