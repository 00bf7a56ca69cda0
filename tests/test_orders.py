import threading
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from database import Base
from models.cake import Cake
from models.cart import CartItem
from models.order import Order, OrderItem, OrderStatus
from models.users import User
from schemas.order import CheckoutPayload
from services.cart import CartManager
from services.errors import AuthRequired, EmptyCart, StoreUnavailable
from services.events import CartEvents
from services.orders import OrderTransaction


CHECKOUT = CheckoutPayload(
    full_name="Anna Baker",
    address="12 Flour Street",
    phone_number="0123456789",
    notes="Please write 'Happy Birthday'",
)


def _fill_cart(db, customer, make_cake):
    choco = make_cake(name="Chocolate Dream", price="100.00")
    tart = make_cake(name="Lemon Tart", price="50.00", categories=("Fruit",))
    cart = CartManager(db)
    cart.add_to_cart(customer, choco.id, quantity=2)
    cart.add_to_cart(customer, tart.id, quantity=1)
    return cart, choco, tart


def test_place_order_snapshots_prices_and_clears_cart(db, customer, make_cake):
    cart, choco, tart = _fill_cart(db, customer, make_cake)

    order = OrderTransaction(db, cart).place_order(customer, CHECKOUT)

    assert order.status == OrderStatus.PENDING
    assert order.total_amount == Decimal("250.00")
    assert order.shipping_address == "12 Flour Street"
    assert order.notes == "Please write 'Happy Birthday'"
    prices = {it.cake_name: (it.quantity, it.price) for it in order.items}
    assert prices == {
        "Chocolate Dream": (2, Decimal("100.00")),
        "Lemon Tart": (1, Decimal("50.00")),
    }
    assert cart.list_items(customer) == []


def test_total_equals_sum_of_lines(db, customer, make_cake):
    cart, _, _ = _fill_cart(db, customer, make_cake)

    order = OrderTransaction(db, cart).place_order(customer, CHECKOUT)

    assert order.total_amount == sum(it.price * it.quantity for it in order.items)


def test_empty_cart_creates_no_order(db, customer):
    cart = CartManager(db)

    with pytest.raises(EmptyCart):
        OrderTransaction(db, cart).place_order(customer, CHECKOUT)

    assert db.query(Order).count() == 0


def test_anonymous_checkout_is_rejected(db):
    with pytest.raises(AuthRequired):
        OrderTransaction(db, CartManager(db)).place_order(None, CHECKOUT)


def test_later_price_change_does_not_touch_placed_order(db, customer, make_cake):
    cart, choco, _ = _fill_cart(db, customer, make_cake)
    order = OrderTransaction(db, cart).place_order(customer, CHECKOUT)

    choco.price = Decimal("180.00")
    db.commit()

    db.expire_all()
    stored = db.query(Order).filter(Order.id == order.id).one()
    assert stored.total_amount == Decimal("250.00")
    line = next(it for it in stored.items if it.cake_name == "Chocolate Dream")
    assert line.price == Decimal("100.00")


def test_deleted_cake_keeps_order_line(db, customer, make_cake):
    cart, choco, _ = _fill_cart(db, customer, make_cake)
    order = OrderTransaction(db, cart).place_order(customer, CHECKOUT)

    db.delete(choco)
    db.commit()

    db.expire_all()
    line = db.query(OrderItem).filter(
        OrderItem.order_id == order.id, OrderItem.cake_name == "Chocolate Dream"
    ).one()
    assert line.cake_id is None
    assert line.price == Decimal("100.00")


def test_cart_clear_failure_keeps_order_and_retries(db, customer, make_cake, monkeypatch):
    cart, _, _ = _fill_cart(db, customer, make_cake)
    original_clear = CartManager.clear
    calls = []

    def flaky_clear(self, user_id, commit=True):
        calls.append(user_id)
        if len(calls) == 1:
            raise OperationalError("DELETE FROM cart_items", {}, Exception("database is locked"))
        return original_clear(self, user_id, commit=commit)

    monkeypatch.setattr(CartManager, "clear", flaky_clear)

    order = OrderTransaction(db, cart, clear_retries=2).place_order(customer, CHECKOUT)

    assert len(calls) == 2
    assert db.query(Order).filter(Order.id == order.id).count() == 1
    assert len(order.items) == 2
    assert db.query(CartItem).filter(CartItem.user_id == customer.id).count() == 0


def test_cart_residue_is_tolerated_when_retries_run_out(db, customer, make_cake, monkeypatch):
    cart, _, _ = _fill_cart(db, customer, make_cake)

    def broken_clear(self, user_id, commit=True):
        raise SQLAlchemyError("cart store unreachable")

    monkeypatch.setattr(CartManager, "clear", broken_clear)

    order = OrderTransaction(db, cart, clear_retries=1).place_order(customer, CHECKOUT)

    assert order.id is not None
    assert order.total_amount == Decimal("250.00")
    assert db.query(CartItem).filter(CartItem.user_id == customer.id).count() == 2


def test_store_failure_while_writing_order_is_retryable(db, customer, make_cake, monkeypatch):
    cart, _, _ = _fill_cart(db, customer, make_cake)

    def failing_flush(*args, **kwargs):
        raise OperationalError("INSERT INTO orders", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db, "flush", failing_flush)

    with pytest.raises(StoreUnavailable) as exc_info:
        OrderTransaction(db, cart).place_order(customer, CHECKOUT)

    monkeypatch.undo()
    assert exc_info.value.retryable is True
    assert db.query(Order).count() == 0
    assert db.query(CartItem).filter(CartItem.user_id == customer.id).count() == 2


def test_cart_cleared_event_is_published(db, customer, make_cake):
    events = CartEvents()
    received = []
    events.subscribe(received.append)
    cart, _, _ = _fill_cart(db, customer, make_cake)
    cart.events = events

    OrderTransaction(db, cart).place_order(customer, CHECKOUT)

    assert received[-1].action == "cleared"
    assert received[-1].item_count == 0


def test_orders_of_different_customers_are_independent(db, customer, other_customer, make_cake):
    cart, choco, _ = _fill_cart(db, customer, make_cake)
    cart.add_to_cart(other_customer, choco.id, quantity=1)

    OrderTransaction(db, cart).place_order(customer, CHECKOUT)

    assert cart.count(other_customer.id) == 1


def test_concurrent_placements_for_one_user_yield_one_order(tmp_path):
    # Each thread needs its own connection, the in-memory database shares one
    engine = create_engine(
        f"sqlite:///{tmp_path / 'checkout.db'}",
        connect_args={"check_same_thread": False, "timeout": 10},
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autoflush=False)

    with Session() as setup:
        user = User(
            email="twin@sweetmail.com", password_hash="x", role="customer", full_name="Tab Twin",
            address="3 Whisk Way", phone_number="0123456789", gender="other",
        )
        cake = Cake(name="Opera Cake", price=Decimal("80.00"), description="Coffee and almond layers")
        setup.add_all([user, cake])
        setup.commit()
        setup.add(CartItem(user_id=user.id, cake_id=cake.id, quantity=2))
        setup.commit()
        user_id = user.id

    barrier = threading.Barrier(2)
    outcomes = []

    def checkout():
        session = Session()
        try:
            shopper = session.get(User, user_id)
            barrier.wait()
            order = OrderTransaction(session, CartManager(session)).place_order(shopper, CHECKOUT)
            outcomes.append(("order", order.total_amount))
        except EmptyCart:
            outcomes.append(("empty", None))
        finally:
            session.close()

    threads = [threading.Thread(target=checkout) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(outcomes, key=lambda o: o[0]) == [("empty", None), ("order", Decimal("160.00"))]
    with Session() as check:
        assert check.query(Order).count() == 1
        assert check.query(CartItem).count() == 0
    engine.dispose()
