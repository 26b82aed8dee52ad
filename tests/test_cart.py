import json
from decimal import Decimal

import pytest

from cart import Cart, CartLine

CURRY = {"id": 1, "name": "Spicy Thai Curry Tofu", "price": 10.99, "image_url": "curry.jpg"}
BURGER = {"id": 2, "name": "Classic Burger", "price": 12.99, "image_url": None}


def test_add_merges_lines():
    cart = Cart()
    cart.add(CURRY)
    cart.add(CURRY, 1)
    cart.add(BURGER)

    assert [(l.meal_id, l.quantity) for l in cart.lines] == [(1, 2), (2, 1)]
    assert cart.count == 3
    assert cart.total == Decimal("34.97")


def test_add_rejects_non_positive_quantity():
    with pytest.raises(ValueError):
        Cart().add(CURRY, 0)


def test_update_and_remove():
    cart = Cart()
    cart.add(CURRY)
    cart.add(BURGER)

    cart.update(1, 4)
    assert cart.lines[0].quantity == 4

    cart.update(1, 0)
    assert [l.meal_id for l in cart.lines] == [2]

    cart.remove(2)
    assert cart.is_empty


def test_listeners_get_snapshots_on_change_only():
    cart = Cart()
    seen = []
    unsubscribe = cart.subscribe(seen.append)

    cart.add(CURRY)
    cart.update(1, 1)      # same quantity, no event
    cart.update(99, 3)     # unknown meal, no event
    cart.remove(99)
    cart.update(1, 2)
    cart.clear()
    cart.clear()           # already empty

    assert [len(snap) for snap in seen] == [1, 1, 0]
    assert seen[1][0].quantity == 2
    assert isinstance(seen[0], tuple)

    unsubscribe()
    cart.add(BURGER)
    assert len(seen) == 3


def test_to_order_items():
    cart = Cart()
    cart.add(CURRY, 2)
    cart.add(BURGER)
    assert cart.to_order_items() == [{"mealId": 1, "quantity": 2}, {"mealId": 2, "quantity": 1}]


def test_save_and_load(tmp_path):
    path = tmp_path / "cart.json"
    cart = Cart()
    cart.add(CURRY, 3)
    cart.save(str(path))

    assert json.loads(path.read_text())[0]["price"] == "10.99"

    loaded = Cart.load(str(path))
    assert loaded.lines == (CartLine(1, "Spicy Thai Curry Tofu", Decimal("10.99"), "curry.jpg", 3),)
    assert loaded.total == Decimal("32.97")


def test_prices_are_exact_decimals():
    cart = Cart()
    cart.add({"id": 3, "name": "Tea", "price": 0.1, "image_url": None}, 3)

    line = cart.lines[0]
    assert line.price == Decimal("0.1")
    assert line.line_total == Decimal("0.3")


def test_load_accepts_numeric_prices(tmp_path):
    path = tmp_path / "cart.json"
    path.write_text(json.dumps([{"meal_id": 2, "meal_name": "Classic Burger", "price": 12.99, "image_url": None, "quantity": 1}]))

    assert Cart.load(str(path)).lines[0].price == Decimal("12.99")


def test_load_missing_or_corrupt_file(tmp_path):
    assert Cart.load(str(tmp_path / "none.json")).is_empty

    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    assert Cart.load(str(bad)).is_empty
