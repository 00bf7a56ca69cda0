# backend/services/orders.py
"""Checkout: turns a customer's cart into an order with frozen prices.

Placement steps:
  1. read the cart (an empty cart is rejected, no order row is written)
  2. total = sum(current cake price x quantity)
  3. insert the order (status "pending")
  4. insert one order item per cart line, copying the current price and cake name
  5. clear the cart

Steps 3-4 share one database transaction, so an order is never committed
without its items. Step 5 runs in a savepoint of that same transaction; if it
fails only the savepoint is rolled back, the order still commits and the clear
is retried afterwards. Cart residue is logged, never reported as a failed order.
"""
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError, TimeoutError as SATimeoutError
from sqlalchemy.orm import Session

from config import settings
from models.order import Order, OrderItem, OrderStatus
from models.users import User
from schemas.order import CheckoutPayload
from services.cart import CartManager
from services.errors import AuthRequired, EmptyCart, StoreUnavailable

logger = logging.getLogger(__name__)

_TRANSIENT = (OperationalError, InterfaceError, SATimeoutError)

# Placements of the same user never interleave in this process. Users share a
# fixed set of striped locks, so the registry does not grow with the user base.
_PLACEMENT_STRIPES = 64
_placement_locks = tuple(threading.Lock() for _ in range(_PLACEMENT_STRIPES))


@contextmanager
def placement_lock(user_id: int):
    with _placement_locks[user_id % _PLACEMENT_STRIPES]:
        yield


class OrderTransaction:
    def __init__(self, db: Session, cart: CartManager, clear_retries: Optional[int] = None):
        self.db = db
        self.cart = cart
        self.clear_retries = settings.CART_CLEAR_RETRIES if clear_retries is None else clear_retries

    def place_order(self, user: Optional[User], checkout: CheckoutPayload) -> Order:
        """Returns the committed order detached from the session, items loaded."""
        if not user or not user.id:
            raise AuthRequired("Log in to place an order")

        with placement_lock(user.id):
            try:
                order, cart_cleared = self._commit_order(user, checkout)
            except EmptyCart:
                self.db.rollback()
                raise
            except _TRANSIENT as exc:
                self.db.rollback()
                logger.warning("Order placement for user %s aborted: store unavailable (%s)", user.id, exc)
                raise StoreUnavailable() from exc
            except SQLAlchemyError:
                self.db.rollback()
                logger.exception("Order placement for user %s aborted", user.id)
                raise

        if not cart_cleared:
            cart_cleared = self._retry_clear(user.id, order.id)
        if cart_cleared:
            self.cart.notify(user.id, "cleared")

        logger.info("Order %s placed by user %s, total %s", order.id, user.id, order.total_amount)
        return order

    def _commit_order(self, user: User, checkout: CheckoutPayload):
        # Row lock on the user serializes placements across processes (no-op on SQLite)
        self.db.query(User).filter(User.id == user.id).with_for_update().first()

        items = self.cart.load_items(user.id)
        if not items:
            raise EmptyCart()

        total = sum((Decimal(it.cake.price) * it.quantity for it in items), Decimal("0"))

        order = Order(
            user_id=user.id,
            status=OrderStatus.PENDING,
            total_amount=total,
            shipping_address=checkout.address,
            phone_number=checkout.phone_number,
            notes=checkout.notes,
            created_at=datetime.now(timezone.utc),
            updated_at=None,
        )
        for it in items:
            order.items.append(OrderItem(
                cake_id=it.cake_id,
                cake_name=it.cake.name,
                quantity=it.quantity,
                price=Decimal(it.cake.price),
            ))
        self.db.add(order)
        self.db.flush()

        cart_cleared = self._clear_in_savepoint(user.id, order.id)
        # Detached with its lines loaded: describing the order needs no query after the commit
        self.db.expunge(order)
        self.db.commit()
        return order, cart_cleared

    def _clear_in_savepoint(self, user_id: int, order_id: int) -> bool:
        try:
            with self.db.begin_nested():
                self.cart.clear(user_id, commit=False)
            return True
        except SQLAlchemyError as exc:
            logger.warning("Cart of user %s not cleared with order %s: %s", user_id, order_id, exc)
            return False

    def _retry_clear(self, user_id: int, order_id: int) -> bool:
        for attempt in range(1, self.clear_retries + 1):
            try:
                self.cart.clear(user_id, commit=False)
                self.db.commit()
                logger.info("Cart of user %s cleared after order %s (attempt %s)", user_id, order_id, attempt)
                return True
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.warning(
                    "Cart clear retry %s/%s for user %s failed: %s",
                    attempt, self.clear_retries, user_id, exc,
                )
        logger.error("Cart of user %s still holds the lines of order %s", user_id, order_id)
        return False
