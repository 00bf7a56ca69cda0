# backend/routes/orders.py
from typing import Dict, List
from fastapi import APIRouter, Depends, Request, Query, status
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload
import logging

from database import get_db
from utils.tokenJWT import get_current_user, role_required
from utils.audit import write_log, client_ip
from models.users import User, ROLE_ADMIN
from models.order import Order, OrderItem
from schemas.order import (
    OrderResponse, OrdersPage, OrderSummary, OrderStatusPatch, OrderItemOut, CheckoutPayload,
)
from services.cart import CartManager
from services.errors import NotFound, store_errors
from services.orders import OrderTransaction
from services.order_status import transition_order
from routes.cart import get_cart_manager

router = APIRouter(prefix="/orders", tags=["Orders"])
logger = logging.getLogger(__name__)


# Number of lines per order, one grouped query for the whole page
def item_counts(db: Session, order_ids: List[int]) -> Dict[int, int]:
    if not order_ids:
        return {}
    rows = (
        db.query(OrderItem.order_id, func.count(OrderItem.id))
        .filter(OrderItem.order_id.in_(order_ids))
        .group_by(OrderItem.order_id)
        .all()
    )
    return {order_id: count for order_id, count in rows}


# Map Order model to OrderResponse schema
def order_to_out(order: Order, with_customer: bool = False) -> OrderResponse:
    items: List[OrderItemOut] = []
    for it in order.items:
        items.append(OrderItemOut(
            cake_id=it.cake_id,
            cake_name=it.cake_name,
            quantity=it.quantity,
            price=it.price,
            line_total=round(it.price * it.quantity, 2),
        ))
    out = OrderResponse(
        id=order.id,
        user_id=order.user_id,
        status=order.status,
        total_amount=round(order.total_amount, 2),
        shipping_address=order.shipping_address,
        phone_number=order.phone_number,
        notes=order.notes,
        created_at=order.created_at,
        updated_at=order.updated_at,
        items=items,
    )
    if with_customer and order.user:
        out.customer_name = order.user.full_name
        out.customer_email = order.user.email
    return out


def load_order(db: Session, order_id: int) -> Order:
    with store_errors(db):
        order = db.query(Order).options(
            joinedload(Order.items), joinedload(Order.user)
        ).filter(Order.id == order_id).first()
    if not order:
        raise NotFound("Order not found")
    return order


# Checkout: turn the current cart into a pending order
@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def place_order(
    payload: CheckoutPayload,
    request: Request,
    db: Session = Depends(get_db),
    cart: CartManager = Depends(get_cart_manager),
    current_user: User = Depends(get_current_user)
):
    order = OrderTransaction(db, cart).place_order(current_user, payload)
    out = order_to_out(order)

    # The order is committed: a lost audit entry must not turn it into a failure
    try:
        write_log(
            db, user_id=order.user_id, action="ORDER_CREATE", resource="orders", status="SUCCESS",
            ip=client_ip(request),
            meta={"order_id": order.id, "total": float(order.total_amount), "items": len(order.items)},
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.warning("Audit entry for order %s not written: %s", order.id, exc)
    return out


# List the current user's orders, newest first
@router.get("", response_model=OrdersPage)
def list_my_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    q = db.query(Order).filter(Order.user_id == current_user.id).order_by(Order.created_at.desc(), Order.id.desc())
    with store_errors(db):
        total = q.count()
        rows = q.offset((page - 1) * page_size).limit(page_size).all()
        counts = item_counts(db, [o.id for o in rows])

    items = [
        OrderSummary(
            id=o.id, status=o.status, total_amount=round(o.total_amount, 2),
            item_count=counts.get(o.id, 0), created_at=o.created_at, updated_at=o.updated_at,
        )
        for o in rows
    ]
    return {"items": items, "total": total, "page": page, "page_size": page_size}


# Get details of a specific order (owner or admin)
@router.get("/{order_id}", response_model=OrderResponse)
def get_order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    o = load_order(db, order_id)
    if o.user_id != current_user.id and not current_user.is_admin:
        # Other customers' orders are indistinguishable from missing ones
        raise NotFound("Order not found")
    return order_to_out(o, with_customer=current_user.is_admin)


# Accept or decline a pending order (Admin only)
@router.patch("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    payload: OrderStatusPatch,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN))
):
    old_status = load_order(db, order_id).status
    order = transition_order(db, current_user, order_id, payload.status)

    write_log(db, user_id=current_user.id, action="ORDER_STATUS_CHANGE", resource="orders", status="SUCCESS",
        ip=client_ip(request), meta={"order_id": order.id, "old": old_status.value, "new": order.status.value})

    return order_to_out(load_order(db, order_id), with_customer=True)
