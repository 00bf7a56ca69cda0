# backend/routes/admin.py
from fastapi import APIRouter, Depends, Query, Request, status
from typing import Optional, Literal
from sqlalchemy.orm import Session, contains_eager
from database import get_db
from models.users import User, ROLE_ADMIN
from models.order import Order, OrderStatus
from utils.tokenJWT import get_optional_user, role_required
from utils.hashing import get_password_hash
from utils.audit import write_log, client_ip
from schemas.order import AdminOrderSummary, AdminOrdersPage
from schemas.user import UserCreate, UserResponse
from services.errors import Conflict, Forbidden, store_errors, unique_or_conflict
from routes.orders import item_counts

router = APIRouter(prefix="/admin", tags=["Admin"])


# All orders across customers, with filtering, sorting and pagination (Admin only)
@router.get("/orders", response_model=AdminOrdersPage)
def list_all_orders(
    status_filter: Optional[OrderStatus] = Query(None, alias="status", description="Filter by order status"),
    q: Optional[str] = Query(None, description="Search customer name or e-mail"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    sort_by: Literal["created_at", "total_amount", "status"] = "created_at",
    order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN))
):
    query = db.query(Order).join(Order.user).options(contains_eager(Order.user))

    if status_filter:
        query = query.filter(Order.status == status_filter)

    # Filter by customer
    if q:
        like = f"%{q.strip()}%"
        query = query.filter(User.full_name.ilike(like) | User.email.ilike(like))

    sort_map = {
        "created_at": Order.created_at,
        "total_amount": Order.total_amount,
        "status": Order.status,
    }
    col = sort_map.get(sort_by, Order.created_at)
    query = query.order_by(col.asc() if order == "asc" else col.desc(), Order.id.desc())

    # Apply pagination
    with store_errors(db):
        total = query.count()
        rows = query.offset((page - 1) * page_size).limit(page_size).all()
        counts = item_counts(db, [o.id for o in rows])

    items = [
        AdminOrderSummary(
            id=o.id, status=o.status, total_amount=round(o.total_amount, 2),
            item_count=counts.get(o.id, 0), created_at=o.created_at, updated_at=o.updated_at,
            user_id=o.user_id, customer_name=o.user.full_name, customer_email=o.user.email,
        )
        for o in rows
    ]
    return {"items": items, "total": total, "page": page, "page_size": page_size}


# Create an administrator: open only until the first admin exists, then admins only
@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register_admin(
    payload: UserCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: Optional[User] = Depends(get_optional_user)
):
    has_admin = db.query(User).filter(User.role == ROLE_ADMIN).first() is not None
    if has_admin and not (current_user and current_user.is_admin):
        write_log(db, user_id=current_user.id if current_user else None, action="ADMIN_REGISTER",
                  resource="auth", status="FAIL", ip=client_ip(request), meta={"email": payload.email})
        raise Forbidden("Admin access required")

    email = payload.email.strip().lower()
    if db.query(User).filter(User.email == email).first():
        raise Conflict("Email already registered")

    admin = User(
        email=email, password_hash=get_password_hash(payload.password), role=ROLE_ADMIN,
        full_name=payload.full_name, address=payload.address,
        phone_number=payload.phone_number, gender=payload.gender,
    )
    db.add(admin)
    with unique_or_conflict(db, "Email already registered"):
        db.commit()
    db.refresh(admin)

    write_log(db, user_id=admin.id, action="ADMIN_REGISTER", resource="auth", status="SUCCESS",
              ip=client_ip(request), meta={"email": admin.email})
    return admin
