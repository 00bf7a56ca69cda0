# backend/services/order_status.py
import logging
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy.orm import Session

from models.order import Order, OrderStatus
from models.users import User
from services.errors import AuthRequired, Forbidden, InvalidTransition, NotFound, ValidationFailed, store_errors

logger = logging.getLogger(__name__)

# Only a pending order can be decided on. "delivered" exists as a display
# state but nothing transitions into it.
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: frozenset({OrderStatus.ACCEPTED, OrderStatus.DECLINED}),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def transition_order(
    db: Session,
    actor: Optional[User],
    order_id: int,
    target: Union[OrderStatus, str],
) -> Order:
    """Move a pending order to accepted/declined on behalf of an admin.

    The write is conditional on the status read here, so two admins deciding
    the same order at once cannot both succeed.
    """
    if not actor or not actor.id:
        raise AuthRequired()
    if not actor.is_admin:
        raise Forbidden("Only administrators can change order status")

    try:
        target = OrderStatus(target)
    except ValueError:
        raise ValidationFailed(f"Unknown order status: {target}")

    with store_errors(db):
        order = db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise NotFound("Order not found")

        current = order.status
        if not can_transition(current, target):
            raise InvalidTransition(f"Cannot change status from {current.value} to {target.value}")

        updated = (
            db.query(Order)
            .filter(Order.id == order_id, Order.status == current)
            .update(
                {Order.status: target, Order.updated_at: datetime.now(timezone.utc)},
                synchronize_session=False,
            )
        )
        if updated != 1:
            db.rollback()
            raise InvalidTransition("Order status was changed by someone else, reload and try again")

        db.commit()
        db.refresh(order)

    logger.info("Order %s: %s -> %s by user %s", order_id, current.value, target.value, actor.id)
    return order
