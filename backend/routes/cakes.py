# backend/routes/cakes.py
from typing import Optional, List
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from database import get_db
from utils.tokenJWT import role_required
from utils.audit import write_log, client_ip
from models.users import User, ROLE_ADMIN
from models.cake import Cake, Category, CakeIngredient, CakeImage
from schemas.cake import CakeView, CakeCreate, CakeUpdate
from services import catalog
from services.errors import NotFound, unique_or_conflict

router = APIRouter(prefix="/cakes", tags=["Cakes"])


# ---- HELPERS ----
def _resolve_categories(db: Session, names: List[str]) -> List[Category]:
    """Existing categories matched case-insensitively; unknown names are created."""
    resolved, seen = [], set()
    for name in names:
        key = name.lower()
        if key in seen:
            continue
        seen.add(key)
        category = db.query(Category).filter(func.lower(Category.name) == key).first()
        if not category:
            category = Category(name=name)
            db.add(category)
        resolved.append(category)
    return resolved


def _apply_form(db: Session, cake: Cake, payload: CakeCreate) -> None:
    cake.name = payload.name.strip()
    cake.price = payload.price
    cake.description = payload.description
    cake.weight = payload.weight
    cake.servings = payload.servings
    cake.categories = _resolve_categories(db, payload.categories)
    # Ingredients and images are replaced wholesale, orphans are deleted
    cake.ingredients = [CakeIngredient(name=n) for n in payload.ingredients]
    cake.images = [CakeImage(url=url, position=i) for i, url in enumerate(payload.images)]


def _get_cake_or_404(db: Session, cake_id: int) -> Cake:
    cake = db.query(Cake).filter(Cake.id == cake_id).first()
    if not cake:
        raise NotFound("Cake not found")
    return cake


# =========================
# CATALOG (public)
# =========================
@router.get("", response_model=List[CakeView])
def list_cakes(
    category: Optional[List[str]] = Query(None, description="Category names, any match"),
    q: Optional[str] = Query(None, description="Search by name"),
    db: Session = Depends(get_db),
):
    return catalog.list_cakes(db, categories=category, q=q)


@router.get("/{cake_id}", response_model=CakeView)
def get_cake(cake_id: int, db: Session = Depends(get_db)):
    return catalog.get_cake(db, cake_id)


# =========================
# ADMINISTRATION
# =========================
@router.post("", response_model=CakeView, status_code=status.HTTP_201_CREATED)
def add_cake(
    payload: CakeCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN)),
):
    cake = Cake()
    _apply_form(db, cake, payload)
    db.add(cake)
    with unique_or_conflict(db, "Category already exists"):
        db.commit()
    db.refresh(cake)

    write_log(
        db, user_id=current_user.id, action="CAKE_CREATE", resource="cakes",
        status="SUCCESS", ip=client_ip(request), meta={"id": cake.id, "name": cake.name}
    )
    return catalog.get_cake(db, cake.id)


@router.put("/{cake_id}", response_model=CakeView)
def update_cake(
    cake_id: int,
    payload: CakeUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN)),
):
    cake = _get_cake_or_404(db, cake_id)
    old_price = float(cake.price)
    _apply_form(db, cake, payload)
    with unique_or_conflict(db, "Category already exists"):
        db.commit()

    # Past orders keep their own prices, only carts see the new one
    write_log(
        db, user_id=current_user.id, action="CAKE_UPDATE", resource="cakes",
        status="SUCCESS", ip=client_ip(request),
        meta={"id": cake_id, "old_price": old_price, "new_price": float(payload.price)}
    )
    return catalog.get_cake(db, cake_id)


@router.delete("/{cake_id}")
def delete_cake(
    cake_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(role_required(ROLE_ADMIN)),
):
    cake = _get_cake_or_404(db, cake_id)
    name = cake.name
    # Cascades to category links, ingredients, images and cart lines
    db.delete(cake)
    db.commit()

    write_log(db, user_id=current_user.id, action="CAKE_DELETE", resource="cakes",
              status="SUCCESS", ip=client_ip(request), meta={"id": cake_id})
    return {"detail": f"Cake '{name}' deleted"}
