# backend/services/catalog.py
"""Read side of the catalog: cakes joined with categories, ingredients and images.

Sub-resources are batch-loaded with ``selectinload`` (one query per relationship
for the whole page of cakes). A cake without images or ingredients simply gets
empty lists and the fallback placeholder as its primary image.
"""
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from config import settings
from models.cake import Cake, Category
from schemas.cake import CakeView
from services.errors import NotFound, store_errors


def primary_image(urls: Iterable[str]) -> str:
    for url in urls:
        return url
    return settings.FALLBACK_IMAGE_URL


def to_view(cake: Cake) -> CakeView:
    images = [img.url for img in cake.images]
    return CakeView(
        id=cake.id,
        name=cake.name,
        price=cake.price,
        description=cake.description,
        weight=cake.weight,
        servings=cake.servings,
        categories=[c.name for c in cake.categories],
        ingredients=[i.name for i in cake.ingredients],
        images=images,
        primary_image=primary_image(images),
        created_at=cake.created_at,
        updated_at=cake.updated_at,
    )


def _with_details(query):
    return query.options(
        selectinload(Cake.categories),
        selectinload(Cake.ingredients),
        selectinload(Cake.images),
    )


def list_cakes(
    db: Session,
    categories: Optional[List[str]] = None,
    q: Optional[str] = None,
) -> List[CakeView]:
    """All cakes ordered by name; ``categories`` matches any of the given names."""
    query = _with_details(db.query(Cake))

    if q:
        query = query.filter(Cake.name.ilike(f"%{q.strip()}%"))

    wanted = [c.strip().lower() for c in (categories or []) if c and c.strip()]
    if wanted:
        query = query.filter(Cake.categories.any(func.lower(Category.name).in_(wanted)))

    with store_errors(db):
        cakes = query.order_by(Cake.name.asc(), Cake.id.asc()).all()
    return [to_view(c) for c in cakes]


def get_cake(db: Session, cake_id: int) -> CakeView:
    with store_errors(db):
        cake = _with_details(db.query(Cake)).filter(Cake.id == cake_id).first()
    if not cake:
        raise NotFound("Cake not found")
    return to_view(cake)


def list_categories(db: Session) -> List[Category]:
    with store_errors(db):
        return db.query(Category).order_by(Category.name.asc()).all()
