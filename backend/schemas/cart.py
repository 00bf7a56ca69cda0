from pydantic import BaseModel, Field
from typing import List

# Upper bound of a single cart line
MAX_LINE_QUANTITY = 99

# Request schema for adding a cake to the cart
class CartAddItem(BaseModel):
    cake_id: int
    quantity: int = Field(default=1, ge=1, le=MAX_LINE_QUANTITY)

# Request schema for updating cart item quantity (0 means "remove", sent as DELETE)
class CartUpdateItem(BaseModel):
    quantity: int = Field(ge=1, le=MAX_LINE_QUANTITY)

# Response schema for a single cart line
class CartLine(BaseModel):
    id: int
    cake_id: int
    name: str
    price: float
    quantity: int
    image: str
    line_total: float

# Response schema for the entire cart summary
class CartOut(BaseModel):
    items: List[CartLine]
    total: float
    item_count: int

class CartCount(BaseModel):
    count: int
