# backend/models/order.py
from sqlalchemy import Column, Integer, String, Text, Numeric, ForeignKey, DateTime, Enum, func
from sqlalchemy.orm import relationship
from database import Base
import enum


# Order lifecycle states
class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    # Display-only: no transition leads here yet
    DELIVERED = "delivered"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    status = Column(
        Enum(OrderStatus, values_callable=lambda e: [m.value for m in e], native_enum=False),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )
    # Snapshot taken at placement, never recomputed
    total_amount = Column(Numeric(10, 2), nullable=False)

    shipping_address = Column(String, nullable=False)
    phone_number = Column(String, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id")
    user = relationship("User")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False)
    # Cleared when the cake is deleted, the name snapshot keeps the line readable
    cake_id = Column(Integer, ForeignKey("cakes.id", ondelete="SET NULL"), nullable=True)
    cake_name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False) # Unit price at the moment of purchase

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="items")
    cake = relationship("Cake")
