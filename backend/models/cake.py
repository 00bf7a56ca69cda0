# backend/models/cake.py
from sqlalchemy import (
    Column, Integer, String, Text, Numeric, ForeignKey, DateTime, Table,
    CheckConstraint, func,
)
from sqlalchemy.orm import relationship
from database import Base

# Many-to-many join between cakes and categories
cake_categories = Table(
    "cake_categories",
    Base.metadata,
    Column("cake_id", Integer, ForeignKey("cakes.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", Integer, ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)


# A purchasable catalog item
class Cake(Base):
    __tablename__ = "cakes"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    price = Column(Numeric(10, 2), CheckConstraint("price > 0"), nullable=False)
    description = Column(Text, nullable=True)
    weight = Column(String, nullable=True)
    servings = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    categories = relationship("Category", secondary=cake_categories, back_populates="cakes", order_by="Category.name")
    ingredients = relationship("CakeIngredient", back_populates="cake", cascade="all, delete-orphan", order_by="CakeIngredient.id")
    # Images are always read in display order, images[0] is the primary one
    images = relationship("CakeImage", back_populates="cake", cascade="all, delete-orphan", order_by="CakeImage.position")
    cart_items = relationship("CartItem", back_populates="cake", cascade="all, delete-orphan")


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    cakes = relationship("Cake", secondary=cake_categories, back_populates="categories")


class CakeIngredient(Base):
    __tablename__ = "cake_ingredients"

    id = Column(Integer, primary_key=True, index=True)
    cake_id = Column(Integer, ForeignKey("cakes.id", ondelete="CASCADE"), index=True, nullable=False)
    name = Column(String, nullable=False)

    cake = relationship("Cake", back_populates="ingredients")


class CakeImage(Base):
    __tablename__ = "cake_images"

    id = Column(Integer, primary_key=True, index=True)
    cake_id = Column(Integer, ForeignKey("cakes.id", ondelete="CASCADE"), index=True, nullable=False)
    url = Column(String, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    cake = relationship("Cake", back_populates="images")
