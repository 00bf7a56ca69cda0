# backend/routes/categories.py
from typing import List
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import role_required
from utils.audit import write_log, client_ip
from models.users import User, ROLE_ADMIN
from models.cake import Category
from schemas.category import CategoryIn, CategoryOut
from services import catalog
from services.errors import Conflict, NotFound, unique_or_conflict

router = APIRouter(prefix="/categories", tags=["Categories"])


def _ensure_unique(db: Session, name: str, exclude_id: int = None):
    q = db.query(Category).filter(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        q = q.filter(Category.id != exclude_id)
    if q.first():
        raise Conflict("Category already exists")


def _get_category_or_404(db: Session, category_id: int) -> Category:
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise NotFound("Category not found")
    return category


# Filter chips on the storefront
@router.get("", response_model=List[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    return catalog.list_categories(db)


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryIn,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN)),
):
    name = payload.name.strip()
    _ensure_unique(db, name)

    category = Category(name=name)
    db.add(category)
    with unique_or_conflict(db, "Category already exists"):
        db.commit()
    db.refresh(category)

    write_log(db, user_id=current_user.id, action="CATEGORY_CREATE", resource="categories",
              status="SUCCESS", ip=client_ip(request), meta={"id": category.id, "name": name})
    return category


@router.put("/{category_id}", response_model=CategoryOut)
def rename_category(
    category_id: int,
    payload: CategoryIn,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN)),
):
    category = _get_category_or_404(db, category_id)
    name = payload.name.strip()
    _ensure_unique(db, name, exclude_id=category_id)

    old_name, category.name = category.name, name
    with unique_or_conflict(db, "Category already exists"):
        db.commit()
    db.refresh(category)

    write_log(db, user_id=current_user.id, action="CATEGORY_UPDATE", resource="categories",
              status="SUCCESS", ip=client_ip(request), meta={"id": category_id, "old": old_name, "new": name})
    return category


@router.delete("/{category_id}")
def delete_category(
    category_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN)),
):
    category = _get_category_or_404(db, category_id)
    name = category.name
    # Rows in cake_categories go with it, the cakes stay
    db.delete(category)
    db.commit()

    write_log(db, user_id=current_user.id, action="CATEGORY_DELETE", resource="categories",
              status="SUCCESS", ip=client_ip(request), meta={"id": category_id})
    return {"detail": f"Category '{name}' deleted"}
