from pydantic import BaseModel, ConfigDict
from typing import List, Optional, Dict, Any
from datetime import datetime

from schemas.qr_code import QrCodeOut


# Output schema for an individual order line item
class OrderItemOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    product_image: Optional[str] = None
    quantity: int
    price: float
    line_total: float


# Input schema for checkout; address payloads are stored as sent
class CheckoutRequest(BaseModel):
    shipping_address: Optional[Dict[str, Any]] = None
    billing_address: Optional[Dict[str, Any]] = None
    payment_method: str = "credit_card"
    notes: Optional[str] = None

# Output schema representing the full order details
class OrderResponse(BaseModel):
    id: int
    order_number: str
    user_id: int
    status: str
    total_amount: float
    shipping_address: Optional[Dict[str, Any]] = None
    billing_address: Optional[Dict[str, Any]] = None
    payment_method: Optional[str] = None
    payment_status: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[OrderItemOut]
    qr_codes: List[QrCodeOut] = []

    model_config = ConfigDict(from_attributes=True)

# Schema for updating order status
class OrderStatusPatch(BaseModel):
    status: str
