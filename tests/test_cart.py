from decimal import Decimal

import pytest

from models.cart import CartItem
from schemas.cart import MAX_LINE_QUANTITY
from services.cart import CartManager
from services.errors import AuthRequired, NotFound, ValidationFailed
from services.events import CartChanged, CartEvents


def test_adding_same_cake_twice_increments_one_line(db, customer, make_cake):
    cake = make_cake()
    cart = CartManager(db)

    cart.add_to_cart(customer, cake.id)
    item = cart.add_to_cart(customer, cake.id)

    assert item.quantity == 2
    assert db.query(CartItem).filter(CartItem.user_id == customer.id).count() == 1


def test_add_with_explicit_quantity(db, customer, make_cake):
    cake = make_cake()
    cart = CartManager(db)

    cart.add_to_cart(customer, cake.id, quantity=3)

    assert cart.count(customer.id) == 3


def test_anonymous_visitor_cannot_use_cart(db, make_cake):
    cake = make_cake()
    cart = CartManager(db)

    with pytest.raises(AuthRequired):
        cart.add_to_cart(None, cake.id)
    with pytest.raises(AuthRequired):
        cart.list_items(None)


def test_add_unknown_cake(db, customer):
    with pytest.raises(NotFound):
        CartManager(db).add_to_cart(customer, 999)


def test_update_quantity_below_one_is_rejected(db, customer, make_cake):
    cake = make_cake()
    cart = CartManager(db)
    item = cart.add_to_cart(customer, cake.id, quantity=2)

    with pytest.raises(ValidationFailed):
        cart.update_quantity(customer, item.id, 0)

    assert cart.count(customer.id) == 2


def test_update_quantity_sets_value(db, customer, make_cake):
    cake = make_cake()
    cart = CartManager(db)
    item = cart.add_to_cart(customer, cake.id)

    updated = cart.update_quantity(customer, item.id, 5)

    assert updated.quantity == 5


def test_lines_of_another_customer_are_not_reachable(db, customer, other_customer, make_cake):
    cake = make_cake()
    cart = CartManager(db)
    item = cart.add_to_cart(customer, cake.id)

    with pytest.raises(NotFound):
        cart.update_quantity(other_customer, item.id, 4)
    with pytest.raises(NotFound):
        cart.remove_item(other_customer, item.id)


def test_remove_item(db, customer, make_cake):
    cake = make_cake()
    cart = CartManager(db)
    item = cart.add_to_cart(customer, cake.id)

    cart.remove_item(customer, item.id)

    assert cart.list_items(customer) == []
    assert cart.count(customer.id) == 0


def test_summary_uses_current_prices(db, customer, make_cake):
    cake = make_cake(price="100.00")
    tart = make_cake(name="Lemon Tart", price="50.00", categories=("Fruit",))
    cart = CartManager(db)
    cart.add_to_cart(customer, cake.id, quantity=2)
    cart.add_to_cart(customer, tart.id)

    out = cart.summary(customer)

    assert out.total == 250
    assert out.item_count == 3
    assert [line.name for line in out.items] == ["Chocolate Dream", "Lemon Tart"]

    cake.price = Decimal("120.00")
    db.commit()
    assert cart.summary(customer).total == 290


def test_cart_line_falls_back_to_placeholder_image(db, customer, make_cake):
    plain = make_cake()
    pretty = make_cake(name="Berry Cake", images=("https://img.example.com/berry.jpg",))
    cart = CartManager(db)
    cart.add_to_cart(customer, plain.id)
    cart.add_to_cart(customer, pretty.id)

    images = {line.name: line.image for line in cart.list_items(customer)}

    assert images["Berry Cake"] == "https://img.example.com/berry.jpg"
    assert images["Chocolate Dream"].startswith("https://images.unsplash.com/")


def test_total_of_empty_cart_is_zero():
    assert CartManager.total([]) == Decimal("0")


def test_subscribers_receive_committed_changes(db, customer, make_cake):
    cake = make_cake()
    events = CartEvents()
    received = []
    unsubscribe = events.subscribe(received.append)
    cart = CartManager(db, events)

    item = cart.add_to_cart(customer, cake.id, quantity=2)
    cart.update_quantity(customer, item.id, 4)
    unsubscribe()
    cart.remove_item(customer, item.id)

    assert received == [
        CartChanged(user_id=customer.id, action="added", item_count=2),
        CartChanged(user_id=customer.id, action="updated", item_count=4),
    ]


def test_failing_listener_does_not_break_the_cart(db, customer, make_cake):
    cake = make_cake()
    events = CartEvents()

    def broken(event):
        raise RuntimeError("badge service down")

    events.subscribe(broken)
    item = CartManager(db, events).add_to_cart(customer, cake.id)

    assert item.quantity == 1


def test_increment_past_line_cap_is_rejected(db, customer, make_cake):
    cake = make_cake()
    cart = CartManager(db)
    cart.add_to_cart(customer, cake.id, quantity=60)

    with pytest.raises(ValidationFailed):
        cart.add_to_cart(customer, cake.id, quantity=50)
    with pytest.raises(ValidationFailed):
        cart.add_to_cart(customer, cake.id, quantity=MAX_LINE_QUANTITY + 1)

    assert cart.count(customer.id) == 60


def test_update_past_line_cap_is_rejected(db, customer, make_cake):
    cake = make_cake()
    cart = CartManager(db)
    item = cart.add_to_cart(customer, cake.id)

    with pytest.raises(ValidationFailed):
        cart.update_quantity(customer, item.id, MAX_LINE_QUANTITY + 1)

    assert cart.update_quantity(customer, item.id, MAX_LINE_QUANTITY).quantity == MAX_LINE_QUANTITY
