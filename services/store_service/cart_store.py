"""Shopper cart: stock-clamped lines keyed by variant, persisted to key/value storage.

The store is synchronous and holds one shopper's cart. Every mutation
re-serializes the line list and the delivery mode to storage and notifies
subscribers. Stock is read from the variant snapshot at mutation time; it is
never reserved.
"""

import math
import uuid
from typing import Callable, Optional, Protocol

from libs.common.logging import get_logger
from pydantic import TypeAdapter, ValidationError
from services.store_service.models.enums import DeliveryMode
from services.store_service.pricing import compute_delivery_fee, compute_grand_total
from services.store_service.schemas import CartLine, ProductSnapshot, VariantSnapshot
from services.store_service.variants import effective_stock

logger = get_logger(__name__)

CART_ITEMS_KEY = "cart_items_v1"
DELIVERY_MODE_KEY = "cart_delivery_mode_v1"

_lines_adapter = TypeAdapter(list[CartLine])

Listener = Callable[["CartStore"], None]


# ============================================================================
# STORAGE
# ============================================================================


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Dict-backed storage that remembers which keys changed since the last flush."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})
        self.dirty: set[str] = set()

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self._data.get(key) == value:
            return
        self._data[key] = value
        self.dirty.add(key)

    def remove_item(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self.dirty.add(key)

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)

    def mark_clean(self) -> None:
        self.dirty.clear()


# ============================================================================
# CART STORE
# ============================================================================


class CartStore:
    def __init__(self, storage: KeyValueStorage):
        self._storage = storage
        self._lines: list[CartLine] = []
        self._delivery_mode = DeliveryMode.DELIVERY
        self._listeners: list[Listener] = []
        self._disposed = False

    @classmethod
    def create(cls, storage: KeyValueStorage) -> "CartStore":
        """Build a store and load persisted state once."""
        store = cls(storage)
        store._load()
        return store

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def delivery_mode(self) -> DeliveryMode:
        return self._delivery_mode

    @property
    def total_items(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def total_price(self) -> int:
        return sum(line.variant.price * line.quantity for line in self._lines)

    @property
    def delivery_fee(self) -> int:
        return compute_delivery_fee(self._delivery_mode, self.total_price)

    @property
    def grand_total(self) -> int:
        return compute_grand_total(self._delivery_mode, self.total_price)

    def find_line(self, variant_id: uuid.UUID) -> Optional[CartLine]:
        for line in self._lines:
            if line.variant.id == variant_id:
                return line
        return None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_to_cart(
        self,
        product: ProductSnapshot,
        variant: VariantSnapshot,
        quantity: float = 1,
    ) -> None:
        self._ensure_open()
        requested = max(1, math.floor(quantity))
        stock = effective_stock(variant)
        if stock <= 0 or variant.is_active is False:
            logger.debug(
                "Ignoring add for unavailable variant",
                extra={"extra_fields": {"variant_id": str(variant.id)}},
            )
            return

        existing = self.find_line(variant.id)
        if existing is not None:
            merged = min(stock, existing.quantity + requested)
            index = self._lines.index(existing)
            self._lines[index] = CartLine(
                product=product, variant=variant, quantity=merged
            )
        else:
            self._lines.append(
                CartLine(
                    product=product, variant=variant, quantity=min(stock, requested)
                )
            )
        self._commit()

    def remove_from_cart(self, variant_id: uuid.UUID) -> None:
        self._ensure_open()
        remaining = [line for line in self._lines if line.variant.id != variant_id]
        if len(remaining) == len(self._lines):
            return
        self._lines = remaining
        self._commit()

    def update_quantity(self, variant_id: uuid.UUID, quantity: float) -> None:
        self._ensure_open()
        requested = math.floor(quantity)
        if requested <= 0:
            self.remove_from_cart(variant_id)
            return

        line = self.find_line(variant_id)
        if line is None:
            return
        clamped = min(effective_stock(line.variant), requested)
        if clamped <= 0:
            self.remove_from_cart(variant_id)
            return
        index = self._lines.index(line)
        self._lines[index] = line.model_copy(update={"quantity": clamped})
        self._commit()

    def clear_cart(self) -> None:
        self._ensure_open()
        self._lines = []
        self._delivery_mode = DeliveryMode.DELIVERY
        self._commit()

    def set_delivery_mode(self, mode: DeliveryMode) -> None:
        self._ensure_open()
        self._delivery_mode = DeliveryMode(mode)
        self._commit()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener; returns a callable that unsubscribes it."""
        self._ensure_open()
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispose(self) -> None:
        self._listeners.clear()
        self._disposed = True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._disposed:
            raise RuntimeError("CartStore has been disposed")

    def _load(self) -> None:
        raw_lines = self._storage.get_item(CART_ITEMS_KEY)
        if raw_lines:
            try:
                self._lines = _lines_adapter.validate_json(raw_lines)
            except ValidationError:
                logger.debug("Discarding unreadable stored cart lines")
                self._lines = []

        raw_mode = self._storage.get_item(DELIVERY_MODE_KEY)
        if raw_mode:
            try:
                self._delivery_mode = DeliveryMode(raw_mode)
            except ValueError:
                logger.debug("Discarding unknown stored delivery mode")
                self._delivery_mode = DeliveryMode.DELIVERY

    def _commit(self) -> None:
        self._storage.set_item(
            CART_ITEMS_KEY, _lines_adapter.dump_json(self._lines).decode()
        )
        self._storage.set_item(DELIVERY_MODE_KEY, self._delivery_mode.value)
        for listener in list(self._listeners):
            listener(self)
