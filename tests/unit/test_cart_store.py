"""Unit tests for the shopper cart store.

The store works on in-memory storage here; no database or HTTP layer.
"""

import pytest
from services.store_service.cart_store import (
    CART_ITEMS_KEY,
    DELIVERY_MODE_KEY,
    CartStore,
    MemoryStorage,
)
from services.store_service.models import DeliveryMode
from tests.factories import ProductSnapshotFactory, VariantSnapshotFactory


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _cart(storage=None) -> CartStore:
    return CartStore.create(storage or MemoryStorage())


def _product_and_variant(**variant_overrides):
    product = ProductSnapshotFactory.create()
    variant = VariantSnapshotFactory.create(product_id=product.id, **variant_overrides)
    return product, variant


# ---------------------------------------------------------------------------
# add_to_cart
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_add_merges_same_variant_into_one_line():
    """Adding a variant twice keeps one line with the summed quantity."""
    cart = _cart()
    product, variant = _product_and_variant(stock_count=10)

    cart.add_to_cart(product, variant, 2)
    cart.add_to_cart(product, variant, 3)

    assert len(cart.lines) == 1
    assert cart.lines[0].quantity == 5


@pytest.mark.unit
def test_add_never_exceeds_stock():
    """Repeated adds stop at the variant's stock."""
    cart = _cart()
    product, variant = _product_and_variant(stock_count=3)

    cart.add_to_cart(product, variant, 2)
    cart.add_to_cart(product, variant, 2)
    cart.add_to_cart(product, variant, 5)

    assert cart.lines[0].quantity == 3


@pytest.mark.unit
def test_add_floors_fractional_quantity_with_minimum_one():
    """Quantities are whole numbers; anything below 1 still adds one unit."""
    cart = _cart()
    product, first = _product_and_variant(stock_count=10)
    _, second = _product_and_variant(stock_count=10)

    cart.add_to_cart(product, first, 2.7)
    cart.add_to_cart(product, second, 0.2)

    assert cart.find_line(first.id).quantity == 2
    assert cart.find_line(second.id).quantity == 1


@pytest.mark.unit
@pytest.mark.parametrize("stock_count", [0, None, -2])
def test_add_out_of_stock_variant_is_ignored(stock_count):
    """Variants without stock never enter the cart."""
    cart = _cart()
    product, variant = _product_and_variant(stock_count=stock_count)

    cart.add_to_cart(product, variant, 1)

    assert cart.lines == ()
    assert cart.total_items == 0


@pytest.mark.unit
def test_add_inactive_variant_is_ignored():
    """An inactive variant is not addable even with stock."""
    cart = _cart()
    product, variant = _product_and_variant(stock_count=5, is_active=False)

    cart.add_to_cart(product, variant, 1)

    assert cart.lines == ()


@pytest.mark.unit
def test_merge_keeps_the_newest_snapshot():
    """Re-adding a variant refreshes the stored price and stock."""
    cart = _cart()
    product, variant = _product_and_variant(stock_count=5, price=25000)
    cart.add_to_cart(product, variant, 1)

    repriced = variant.model_copy(update={"price": 22000, "stock_count": 8})
    cart.add_to_cart(product, repriced, 1)

    line = cart.find_line(variant.id)
    assert line.quantity == 2
    assert line.variant.price == 22000
    assert cart.total_price == 44000


# ---------------------------------------------------------------------------
# update_quantity / remove_from_cart
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_update_quantity_clamps_to_stock():
    """Quantity 10 on a variant with 3 in stock becomes 3 and prices 3 units."""
    cart = _cart()
    product, variant = _product_and_variant(stock_count=3, price=5000)
    cart.add_to_cart(product, variant, 1)

    cart.update_quantity(variant.id, 10)

    assert cart.find_line(variant.id).quantity == 3
    assert cart.total_price == 15000


@pytest.mark.unit
@pytest.mark.parametrize("quantity", [0, -1, 0.5])
def test_update_quantity_to_zero_or_less_removes_line(quantity):
    """A floored quantity of zero or less removes the line."""
    cart = _cart()
    product, variant = _product_and_variant(stock_count=3)
    cart.add_to_cart(product, variant, 2)

    cart.update_quantity(variant.id, quantity)

    assert cart.find_line(variant.id) is None


@pytest.mark.unit
def test_update_quantity_on_absent_line_is_noop():
    """Updating a variant that is not in the cart changes nothing."""
    cart = _cart()
    product, variant = _product_and_variant(stock_count=3)
    _, other = _product_and_variant(stock_count=3)
    cart.add_to_cart(product, variant, 1)

    cart.update_quantity(other.id, 2)

    assert len(cart.lines) == 1
    assert cart.find_line(other.id) is None


@pytest.mark.unit
def test_update_quantity_removes_line_whose_stored_stock_is_gone():
    """A persisted line whose snapshot now has no stock is dropped on update."""
    product, variant = _product_and_variant(stock_count=4)
    storage = MemoryStorage()
    cart = _cart(storage)
    cart.add_to_cart(product, variant, 2)

    stale = storage.get_item(CART_ITEMS_KEY).replace(
        '"stock_count":4', '"stock_count":0'
    )
    reloaded = _cart(MemoryStorage({CART_ITEMS_KEY: stale}))
    assert reloaded.find_line(variant.id).quantity == 2

    reloaded.update_quantity(variant.id, 2)

    assert reloaded.lines == ()


@pytest.mark.unit
def test_remove_absent_line_does_not_notify():
    """Removing a missing variant does not write or notify."""
    cart = _cart()
    calls = []
    cart.subscribe(lambda store: calls.append(store.total_items))
    _, variant = _product_and_variant()

    cart.remove_from_cart(variant.id)

    assert calls == []


# ---------------------------------------------------------------------------
# Totals and delivery mode
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_totals_follow_lines_and_delivery_mode():
    """Subtotal, fee and grand total are derived from lines and mode."""
    cart = _cart()
    product, wig = _product_and_variant(stock_count=5, price=20000)
    _, closure = _product_and_variant(stock_count=5, price=5000)
    cart.add_to_cart(product, wig, 2)
    cart.add_to_cart(product, closure, 1)

    assert cart.total_items == 3
    assert cart.total_price == 45000
    assert cart.delivery_fee == 2000
    assert cart.grand_total == 47000

    cart.set_delivery_mode(DeliveryMode.PICKUP)

    assert cart.delivery_fee == 0
    assert cart.grand_total == 45000


@pytest.mark.unit
def test_clear_cart_resets_lines_and_mode():
    """Clearing empties the cart and goes back to home delivery."""
    cart = _cart()
    product, variant = _product_and_variant(stock_count=5)
    cart.add_to_cart(product, variant, 1)
    cart.set_delivery_mode(DeliveryMode.PICKUP)

    cart.clear_cart()

    assert cart.lines == ()
    assert cart.delivery_mode == DeliveryMode.DELIVERY


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_state_round_trips_through_storage():
    """Reloading from the same storage yields the same lines and mode."""
    storage = MemoryStorage()
    cart = _cart(storage)
    product, first = _product_and_variant(stock_count=5, medias=["https://cdn/a.jpg"])
    _, second = _product_and_variant(stock_count=2, color=None, length=22.5)
    cart.add_to_cart(product, first, 2)
    cart.add_to_cart(product, second, 1)
    cart.set_delivery_mode(DeliveryMode.PICKUP)

    reloaded = _cart(MemoryStorage(storage.snapshot()))

    assert reloaded.lines == cart.lines
    assert reloaded.delivery_mode == DeliveryMode.PICKUP
    assert reloaded.grand_total == cart.grand_total


@pytest.mark.unit
def test_every_mutation_writes_both_keys():
    """Lines and delivery mode are both persisted on each change."""
    storage = MemoryStorage()
    cart = _cart(storage)
    product, variant = _product_and_variant(stock_count=5)

    cart.add_to_cart(product, variant, 1)

    assert storage.dirty == {CART_ITEMS_KEY, DELIVERY_MODE_KEY}
    assert storage.get_item(DELIVERY_MODE_KEY) == "delivery"


@pytest.mark.unit
def test_malformed_storage_loads_as_empty_cart():
    """Unreadable stored values fall back to an empty delivery cart."""
    storage = MemoryStorage(
        {CART_ITEMS_KEY: "{not json", DELIVERY_MODE_KEY: "teleport"}
    )

    cart = _cart(storage)

    assert cart.lines == ()
    assert cart.delivery_mode == DeliveryMode.DELIVERY


@pytest.mark.unit
def test_loading_does_not_write():
    """Creating a store only reads storage."""
    storage = MemoryStorage({DELIVERY_MODE_KEY: "pickup"})

    cart = _cart(storage)

    assert cart.delivery_mode == DeliveryMode.PICKUP
    assert storage.dirty == set()


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_subscribers_are_notified_until_unsubscribed():
    """Listeners see each change; unsubscribing stops notifications."""
    cart = _cart()
    product, variant = _product_and_variant(stock_count=5)
    seen = []
    unsubscribe = cart.subscribe(lambda store: seen.append(store.total_items))

    cart.add_to_cart(product, variant, 1)
    cart.add_to_cart(product, variant, 1)
    unsubscribe()
    cart.add_to_cart(product, variant, 1)

    assert seen == [1, 2]


@pytest.mark.unit
def test_disposed_store_rejects_mutations():
    """After dispose the store can no longer be changed or observed."""
    cart = _cart()
    product, variant = _product_and_variant(stock_count=5)
    cart.dispose()

    with pytest.raises(RuntimeError):
        cart.add_to_cart(product, variant, 1)
    with pytest.raises(RuntimeError):
        cart.subscribe(lambda store: None)
