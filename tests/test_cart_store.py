"""Tests for the cart store."""

from decimal import Decimal

import pytest

from delivery_cart.domain.errors import ItemNotFound, RestaurantConflict
from delivery_cart.services.cart_store import CartStore
from tests.conftest import make_item


def test_add_item_assigns_id_and_restaurant() -> None:
    store = CartStore()

    line = store.add_item(make_item(quantity=2))

    assert line.id
    assert store.restaurant_id == "resto-1"
    assert store.get_total_item_count() == 2
    assert store.get_total_price() == Decimal("200")


def test_identical_items_merge_into_one_line() -> None:
    store = CartStore()
    first = store.add_item(make_item(special_instructions="No  Onions"))

    merged = store.add_item(make_item(quantity=2, special_instructions="no onions"))

    assert merged.id == first.id
    assert merged.quantity == 3
    assert len(store.items) == 1


def test_different_options_create_separate_lines() -> None:
    store = CartStore()
    store.add_item(make_item(options=("extra rice",)))
    store.add_item(make_item(options=("no rice",)))

    assert len(store.items) == 2


def test_add_from_other_restaurant_raises() -> None:
    store = CartStore()
    store.add_item(make_item())

    with pytest.raises(RestaurantConflict) as excinfo:
        store.add_item(make_item(menu_item_id="sisig", restaurant_id="resto-2"))

    assert excinfo.value.current_restaurant_id == "resto-1"
    assert excinfo.value.incoming_restaurant_id == "resto-2"
    assert len(store.items) == 1


def test_replace_cart_drops_other_restaurant_lines() -> None:
    store = CartStore()
    store.add_item(make_item())

    line = store.add_item(
        make_item(menu_item_id="sisig", restaurant_id="resto-2"), replace_cart=True
    )

    assert store.items == (line,)
    assert store.restaurant_id == "resto-2"


def test_update_quantity_to_zero_removes_line() -> None:
    store = CartStore()
    line = store.add_item(make_item())

    assert store.update_quantity(line.id, 0) is None
    assert store.is_empty
    assert store.restaurant_id is None


def test_update_quantity_unknown_item_raises() -> None:
    store = CartStore()

    with pytest.raises(ItemNotFound):
        store.update_quantity("missing", 2)


def test_remove_item_is_idempotent() -> None:
    store = CartStore()
    line = store.add_item(make_item())

    assert store.remove_item(line.id) == line
    assert store.remove_item(line.id) is None


def test_add_rejects_invalid_lines() -> None:
    store = CartStore()

    with pytest.raises(ValueError):
        store.add_item(make_item(quantity=0))
    with pytest.raises(ValueError):
        store.add_item(make_item(price="-1"))


def test_reinstate_restores_position() -> None:
    store = CartStore()
    first = store.add_item(make_item(menu_item_id="a", name="A"))
    second = store.add_item(make_item(menu_item_id="b", name="B"))
    store.remove_item(first.id)

    store.reinstate(first, position=0)

    assert [item.id for item in store.items] == [first.id, second.id]


def test_reinstate_respects_restaurant_affinity() -> None:
    store = CartStore()
    foreign = store.add_item(make_item(restaurant_id="resto-2"))
    store.clear()
    store.add_item(make_item())

    with pytest.raises(RestaurantConflict):
        store.reinstate(foreign)


def test_snapshot_and_restore() -> None:
    store = CartStore()
    store.add_item(make_item())
    snapshot = store.snapshot()
    store.clear()

    store.restore(snapshot)

    assert store.items == snapshot.items
    assert store.restaurant_id == "resto-1"


def test_on_change_called_for_each_write() -> None:
    seen: list[int] = []
    store = CartStore(on_change=lambda s: seen.append(len(s.items)))

    line = store.add_item(make_item())
    store.update_quantity(line.id, 4)
    store.remove_item(line.id)
    store.remove_item(line.id)

    assert seen == [1, 1, 0]


def test_add_with_existing_id_for_different_item_raises() -> None:
    store = CartStore()
    store.add_item(make_item(item_id="line-1"))

    with pytest.raises(ValueError):
        store.add_item(make_item(menu_item_id="sisig", name="Sisig", item_id="line-1"))

    assert [item.id for item in store.items] == ["line-1"]


def test_add_with_existing_id_for_identical_item_merges() -> None:
    store = CartStore()
    store.add_item(make_item(item_id="line-1"))

    merged = store.add_item(make_item(item_id="line-1"))

    assert merged.quantity == 2
    assert len(store.items) == 1
