import pytest

from models.order import Order, OrderStatus
from services.cart import CartManager
from services.errors import AuthRequired, Forbidden, InvalidTransition, NotFound, ValidationFailed
from services.order_status import can_transition, transition_order
from services.orders import OrderTransaction
from schemas.order import CheckoutPayload


@pytest.fixture
def pending_order(db, customer, make_cake):
    cake = make_cake()
    cart = CartManager(db)
    cart.add_to_cart(customer, cake.id)
    checkout = CheckoutPayload(full_name="Anna Baker", address="12 Flour Street", phone_number="0123456789")
    return OrderTransaction(db, cart).place_order(customer, checkout)


@pytest.mark.parametrize("target", [OrderStatus.ACCEPTED, OrderStatus.DECLINED])
def test_pending_order_can_be_decided(db, admin, pending_order, target):
    order = transition_order(db, admin, pending_order.id, target)

    assert order.status == target
    assert order.updated_at is not None


def test_status_accepts_plain_strings(db, admin, pending_order):
    order = transition_order(db, admin, pending_order.id, "accepted")

    assert order.status == OrderStatus.ACCEPTED


def test_decided_order_cannot_be_decided_again(db, admin, pending_order):
    transition_order(db, admin, pending_order.id, OrderStatus.DECLINED)

    with pytest.raises(InvalidTransition):
        transition_order(db, admin, pending_order.id, OrderStatus.DECLINED)
    with pytest.raises(InvalidTransition):
        transition_order(db, admin, pending_order.id, OrderStatus.ACCEPTED)


def test_accepted_order_cannot_go_back_to_pending(db, admin, pending_order):
    transition_order(db, admin, pending_order.id, OrderStatus.ACCEPTED)

    with pytest.raises(InvalidTransition):
        transition_order(db, admin, pending_order.id, OrderStatus.PENDING)


def test_nothing_leads_to_delivered(db, admin, pending_order):
    with pytest.raises(InvalidTransition):
        transition_order(db, admin, pending_order.id, OrderStatus.DELIVERED)


def test_customer_cannot_change_status(db, customer, pending_order):
    with pytest.raises(Forbidden):
        transition_order(db, customer, pending_order.id, OrderStatus.ACCEPTED)

    stored = db.query(Order).filter(Order.id == pending_order.id).one()
    assert stored.status == OrderStatus.PENDING


def test_anonymous_caller_is_rejected(db, pending_order):
    with pytest.raises(AuthRequired):
        transition_order(db, None, pending_order.id, OrderStatus.ACCEPTED)


def test_unknown_status_value(db, admin, pending_order):
    with pytest.raises(ValidationFailed):
        transition_order(db, admin, pending_order.id, "shipped")


def test_missing_order(db, admin):
    with pytest.raises(NotFound):
        transition_order(db, admin, 404, OrderStatus.ACCEPTED)


def test_transition_table():
    assert can_transition(OrderStatus.PENDING, OrderStatus.ACCEPTED)
    assert can_transition(OrderStatus.PENDING, OrderStatus.DECLINED)
    assert not can_transition(OrderStatus.PENDING, OrderStatus.PENDING)
    assert not can_transition(OrderStatus.ACCEPTED, OrderStatus.DECLINED)
    assert not can_transition(OrderStatus.DECLINED, OrderStatus.ACCEPTED)
