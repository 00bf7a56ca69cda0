# backend/schemas/cake.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, TypeAdapter, field_validator


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


_http_url = TypeAdapter(HttpUrl)


# Denormalized cake as shown in the catalog
class CakeView(ORMBase):
    id: int
    name: str
    price: float
    description: Optional[str] = None
    weight: Optional[str] = None
    servings: Optional[int] = None
    categories: List[str] = []
    ingredients: List[str] = []
    images: List[str] = []
    primary_image: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Admin form for creating a cake
class CakeCreate(BaseModel):
    name: str = Field(min_length=2)
    price: Decimal = Field(gt=0, le=1000, decimal_places=2)
    description: str = Field(min_length=10)
    weight: Optional[str] = None
    servings: Optional[int] = Field(default=None, ge=1)
    categories: List[str] = Field(min_length=1, description="Category names, created when missing")
    ingredients: List[str] = []
    images: List[str] = Field(default=[], description="Image URLs in display order")

    @field_validator("categories", "ingredients")
    @classmethod
    def _strip_names(cls, values: List[str]) -> List[str]:
        cleaned = [v.strip() for v in values]
        if any(not v for v in cleaned):
            raise ValueError("names must not be empty")
        return cleaned

    # Same rule as CategoryIn: unknown names become new categories
    @field_validator("categories")
    @classmethod
    def _category_names(cls, values: List[str]) -> List[str]:
        if any(len(v) < 2 for v in values):
            raise ValueError("category names need at least 2 characters")
        return values

    @field_validator("images")
    @classmethod
    def _check_urls(cls, values: List[str]) -> List[str]:
        for url in values:
            _http_url.validate_python(url)
        return values


class CakeUpdate(CakeCreate):
    """Full replacement: categories, ingredients and images are overwritten."""
