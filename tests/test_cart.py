from decimal import Decimal
from types import SimpleNamespace

import pytest

from famous_since.store.cart import CART_KEY, Cart, CartItem, custom_cart_item

from conftest import FakeSession


def shirt(**kwargs):
    values = {"product_id": 7, "variant_id": 70, "name": "Famous Since T-Shirt", "price": 28.0,
              "size": "M", "color": "Black"}
    values.update(kwargs)
    return CartItem(**values)


class TestCart:
    def test_same_variant_merges_quantity(self):
        cart = Cart()
        cart.add(shirt())
        cart.add(shirt(quantity=2))
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 3
        assert cart.items[0].id == "7-M-Black"

    def test_different_size_is_a_new_line(self):
        cart = Cart()
        cart.add(shirt())
        cart.add(shirt(size="L", variant_id=71))
        assert [i.id for i in cart.items] == ["7-M-Black", "7-L-Black"]
        assert cart.count == 2

    def test_quantity_must_be_positive(self):
        with pytest.raises(ValueError):
            Cart().add(shirt(quantity=0))

    def test_subscription_is_never_duplicated(self):
        cart = Cart()
        cart.add(shirt(product_id="hosting", is_subscription=True))
        cart.add(shirt(product_id="hosting", is_subscription=True))
        assert cart.count == 1
        assert cart.has_subscription

    def test_update_to_zero_removes(self):
        cart = Cart()
        added = cart.add(shirt())
        cart.update_quantity(added.id, 0)
        assert cart.items == []

    def test_total_amount(self):
        cart = Cart()
        cart.add(shirt(quantity=2))
        cart.add(shirt(size="S", price=19.99))
        assert cart.total_amount == Decimal("75.99")

    def test_custom_item_key(self):
        product_type = SimpleNamespace(id=1, name="T-Shirt")
        custom = custom_cart_item(product_type, "M", "Black", "FAMOUS SINCE", "BEST DAD", 28.0)
        assert custom.id == "custom-1-M-Black-BEST%20DAD"
        assert custom.is_custom
        assert custom.customization == {"topLine": "FAMOUS SINCE", "bottomLine": "BEST DAD"}

        cart = Cart()
        cart.add(custom)
        cart.add(custom_cart_item(product_type, "M", "Black", "FAMOUS SINCE", "BEST DAD", 28.0))
        assert cart.count == 2
        assert len(cart.items) == 1


class TestCartSession:
    def test_round_trip_through_session(self):
        session = FakeSession()
        cart = Cart()
        cart.add(shirt())
        cart.save(session)
        assert session.modified

        loaded = Cart.load(session)
        assert loaded.items[0].id == "7-M-Black"

    def test_unreadable_entries_are_dropped(self):
        session = FakeSession({CART_KEY: ["garbage", {}, {"product_id": 1, "name": "Tee", "price": 10}]})
        loaded = Cart.load(session)
        assert len(loaded.items) == 1
        assert loaded.items[0].name == "Tee"

    def test_load_does_not_write(self):
        session = FakeSession()
        Cart.load(session)
        assert CART_KEY not in session
