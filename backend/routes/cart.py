# backend/routes/cart.py
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from database import get_db
from utils.tokenJWT import get_current_user
from utils.audit import write_log, client_ip
from models.users import User
from services.cart import CartManager
from schemas.cart import CartAddItem, CartUpdateItem, CartOut, CartCount

router = APIRouter(prefix="/cart", tags=["Cart"])


# Cart manager bound to this request's session and the app-wide subscription point
def get_cart_manager(request: Request, db: Session = Depends(get_db)) -> CartManager:
    return CartManager(db, request.app.state.cart_events)


@router.get("", response_model=CartOut)
def get_cart(
    cart: CartManager = Depends(get_cart_manager),
    current_user: User = Depends(get_current_user)
):
    return cart.summary(current_user)


# Badge counter: total quantity in the cart
@router.get("/count", response_model=CartCount)
def get_cart_count(
    cart: CartManager = Depends(get_cart_manager),
    current_user: User = Depends(get_current_user)
):
    return CartCount(count=cart.count(current_user.id))


@router.post("/add", response_model=CartOut)
def add_to_cart(
    payload: CartAddItem,
    request: Request,
    db: Session = Depends(get_db),
    cart: CartManager = Depends(get_cart_manager),
    current_user: User = Depends(get_current_user)
):
    item = cart.add_to_cart(current_user, payload.cake_id, payload.quantity)
    out = cart.summary(current_user)

    write_log(
        db,
        user_id=current_user.id,
        action="CART_ADD",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"cake_id": payload.cake_id, "qty": payload.quantity, "line_qty": item.quantity, "total": out.total},
    )
    return out


@router.put("/items/{item_id}", response_model=CartOut)
def update_cart_item(
    item_id: int,
    payload: CartUpdateItem,
    request: Request,
    db: Session = Depends(get_db),
    cart: CartManager = Depends(get_cart_manager),
    current_user: User = Depends(get_current_user)
):
    cart.update_quantity(current_user, item_id, payload.quantity)
    out = cart.summary(current_user)

    write_log(
        db,
        user_id=current_user.id,
        action="CART_UPDATE",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"item_id": item_id, "qty": payload.quantity, "total": out.total},
    )
    return out


@router.delete("/items/{item_id}", response_model=CartOut)
def delete_cart_item(
    item_id: int,
    request: Request,
    db: Session = Depends(get_db),
    cart: CartManager = Depends(get_cart_manager),
    current_user: User = Depends(get_current_user)
):
    cart.remove_item(current_user, item_id)
    out = cart.summary(current_user)

    write_log(
        db,
        user_id=current_user.id,
        action="CART_DELETE",
        resource="cart",
        status="SUCCESS",
        ip=client_ip(request),
        meta={"item_id": item_id, "cart_items": len(out.items), "total": out.total},
    )
    return out
