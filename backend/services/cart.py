# backend/services/cart.py
import logging
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from models.cake import Cake
from models.cart import CartItem
from models.users import User
from schemas.cart import MAX_LINE_QUANTITY, CartLine, CartOut
from services.catalog import primary_image
from services.errors import AuthRequired, NotFound, StoreUnavailable, ValidationFailed, store_errors
from services.events import CartChanged, CartEvents

logger = logging.getLogger(__name__)


def _ensure_client(user: Optional[User]) -> User:
    # Anonymous visitors are sent to the login page instead of touching a cart
    if not user or not user.id:
        raise AuthRequired("Log in to use the cart")
    return user


class CartManager:
    """Pending purchase lines of one customer, one row per (user, cake).

    Concurrent ``add_to_cart`` calls for the same cake from two sessions do a
    read-then-write on ``quantity`` and may lose an increment. The unique
    constraint still guarantees a single row per (user, cake).
    """

    def __init__(self, db: Session, events: Optional[CartEvents] = None):
        self.db = db
        self.events = events or CartEvents()

    # ---- mutations ----

    def add_to_cart(self, user: Optional[User], cake_id: int, quantity: int = 1) -> CartItem:
        user = _ensure_client(user)
        if quantity < 1 or quantity > MAX_LINE_QUANTITY:
            raise ValidationFailed(f"Quantity must be between 1 and {MAX_LINE_QUANTITY}")

        with store_errors(self.db):
            cake = self.db.query(Cake).filter(Cake.id == cake_id).first()
            if not cake:
                raise NotFound("Cake not found")

            try:
                item = self._increment_or_insert(user.id, cake_id, quantity)
            except IntegrityError:
                # Another session inserted the same (user, cake) row first
                self.db.rollback()
                item = self._increment_or_insert(user.id, cake_id, quantity)

        self.notify(user.id, "added")
        return item

    def _increment_or_insert(self, user_id: int, cake_id: int, quantity: int) -> CartItem:
        item = self.db.query(CartItem).filter(
            CartItem.user_id == user_id, CartItem.cake_id == cake_id
        ).first()
        if item:
            if item.quantity + quantity > MAX_LINE_QUANTITY:
                raise ValidationFailed(f"At most {MAX_LINE_QUANTITY} of one cake fit in the cart")
            item.quantity += quantity
        else:
            item = CartItem(user_id=user_id, cake_id=cake_id, quantity=quantity)
            self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return item

    def update_quantity(self, user: Optional[User], item_id: int, quantity: int) -> CartItem:
        """Set the quantity of a line. Zero is not "remove": callers use remove_item."""
        user = _ensure_client(user)
        if quantity < 1:
            raise ValidationFailed("Quantity must be at least 1, remove the item instead")
        if quantity > MAX_LINE_QUANTITY:
            raise ValidationFailed(f"Quantity must be at most {MAX_LINE_QUANTITY}")

        with store_errors(self.db):
            item = self._owned_item(user.id, item_id)
            item.quantity = quantity
            self.db.commit()
            self.db.refresh(item)

        self.notify(user.id, "updated")
        return item

    def remove_item(self, user: Optional[User], item_id: int) -> None:
        user = _ensure_client(user)
        with store_errors(self.db):
            item = self._owned_item(user.id, item_id)
            self.db.delete(item)
            self.db.commit()
        self.notify(user.id, "removed")

    def clear(self, user_id: int, commit: bool = True) -> int:
        """Delete every line of the user. With ``commit=False`` the caller owns the transaction."""
        deleted = self.db.query(CartItem).filter(CartItem.user_id == user_id).delete(
            synchronize_session=False
        )
        if commit:
            self.db.commit()
            self.notify(user_id, "cleared")
        return deleted

    # ---- reads ----

    def load_items(self, user_id: int) -> List[CartItem]:
        """Cart rows with their cake and its images, oldest first."""
        return (
            self.db.query(CartItem)
            .options(joinedload(CartItem.cake).selectinload(Cake.images))
            .filter(CartItem.user_id == user_id)
            .order_by(CartItem.created_at.asc(), CartItem.id.asc())
            .all()
        )

    def list_items(self, user: Optional[User]) -> List[CartLine]:
        user = _ensure_client(user)
        with store_errors(self.db):
            items = self.load_items(user.id)

        lines = []
        for it in items:
            price = Decimal(it.cake.price)
            lines.append(CartLine(
                id=it.id,
                cake_id=it.cake_id,
                name=it.cake.name,
                price=price,
                quantity=it.quantity,
                image=primary_image(img.url for img in it.cake.images),
                line_total=price * it.quantity,
            ))
        return lines

    def summary(self, user: Optional[User]) -> CartOut:
        lines = self.list_items(user)
        return CartOut(
            items=lines,
            total=round(self.total(lines), 2),
            item_count=sum(line.quantity for line in lines),
        )

    def count(self, user_id: int) -> int:
        with store_errors(self.db):
            total = self.db.query(func.coalesce(func.sum(CartItem.quantity), 0)).filter(
                CartItem.user_id == user_id
            ).scalar()
        return int(total or 0)

    @staticmethod
    def total(lines: Iterable) -> Decimal:
        """Sum of price x quantity over the current cake prices (not an order snapshot)."""
        return sum((Decimal(str(line.price)) * line.quantity for line in lines), Decimal("0"))

    # ---- helpers ----

    def _owned_item(self, user_id: int, item_id: int) -> CartItem:
        item = self.db.query(CartItem).filter(
            CartItem.id == item_id, CartItem.user_id == user_id
        ).first()
        if not item:
            raise NotFound("Cart item not found")
        return item

    def notify(self, user_id: int, action: str) -> None:
        # The mutation is already committed, a failed count only skips the event
        try:
            count = self.count(user_id)
        except StoreUnavailable:
            logger.warning("Cart count unavailable for user %s, %r event not published", user_id, action)
            return
        self.events.publish(CartChanged(user_id=user_id, action=action, item_count=count))
