# backend/schemas/order.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from models.order import OrderStatus


# Output schema for an individual order line
class OrderItemOut(BaseModel):
    cake_id: Optional[int] = None
    cake_name: str
    quantity: int
    price: float
    line_total: float


# Checkout form: shipping details for a new order
class CheckoutPayload(BaseModel):
    full_name: str = Field(min_length=2)
    address: str = Field(min_length=5)
    phone_number: str = Field(min_length=10)
    notes: Optional[str] = None


# Order list row (customer and admin lists)
class OrderSummary(BaseModel):
    id: int
    status: OrderStatus
    total_amount: float
    item_count: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AdminOrderSummary(OrderSummary):
    user_id: int
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None


# Full order details
class OrderResponse(BaseModel):
    id: int
    user_id: int
    status: OrderStatus
    total_amount: float
    shipping_address: str
    phone_number: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemOut]
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None


# Schema for paginated order lists
class OrdersPage(BaseModel):
    items: List[OrderSummary]
    total: int
    page: int
    page_size: int


class AdminOrdersPage(BaseModel):
    items: List[AdminOrderSummary]
    total: int
    page: int
    page_size: int


# Admin decision on a pending order
class OrderStatusPatch(BaseModel):
    status: OrderStatus
