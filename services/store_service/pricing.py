"""Delivery fee and grand total rules.

Every place that shows or charges a total (cart summary, checkout,
payment initialization, reconciliation) goes through these two functions.
"""

from services.store_service.models.enums import DeliveryMode

FREE_DELIVERY_THRESHOLD = 50000  # XOF
DELIVERY_FEE = 2000  # XOF


def compute_delivery_fee(mode: DeliveryMode, total_price: int) -> int:
    if DeliveryMode(mode) == DeliveryMode.PICKUP:
        return 0
    if total_price >= FREE_DELIVERY_THRESHOLD:
        return 0
    return DELIVERY_FEE


def compute_grand_total(mode: DeliveryMode, total_price: int) -> int:
    return total_price + compute_delivery_fee(mode, total_price)
