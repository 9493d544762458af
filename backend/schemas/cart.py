from pydantic import BaseModel, Field
from typing import List, Optional

# Request schema for adding an item to the cart
class CartAddItem(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1)

# Request schema for updating cart item quantity (checked by the service)
class CartUpdateItem(BaseModel):
    quantity: int

# Response schema for a single cart line item, priced live
class CartItemOut(BaseModel):
    id: int
    product_id: int
    name: str
    image_url: Optional[str] = None
    quantity: int
    unit_price: float
    line_total: float
    stock_quantity: int

# Response schema for the entire cart summary
class CartOut(BaseModel):
    items: List[CartItemOut]
    total: float
