# backend/models/cart.py
from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint, CheckConstraint, func
from sqlalchemy.orm import relationship
from database import Base


# Represents a single pending purchase line (cake + quantity) of one customer
class CartItem(Base):
    __tablename__ = "cart_items" # Table name

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False) # Owner of the line
    cake_id = Column(Integer, ForeignKey("cakes.id", ondelete="CASCADE"), index=True, nullable=False) # Foreign key to cake
    quantity = Column(Integer, CheckConstraint("quantity >= 1"), nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    cake = relationship("Cake", back_populates="cart_items") # Relationship to Cake

    __table_args__ = (
        # One row per (user, cake): adding the same cake again increments quantity
        UniqueConstraint("user_id", "cake_id", name="uq_cartitem_user_cake"),
    )
