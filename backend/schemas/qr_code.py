# backend/schemas/qr_code.py
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Optional


class CodeFilters(BaseModel):
    order_id: Optional[int] = None
    user_id: Optional[int] = None


class QrCodeOut(BaseModel):
    code: str
    order_id: int
    product_id: int
    product_name: Optional[str] = None
    user_id: int
    serial_number: str
    is_verified: bool
    verified_at: Optional[datetime] = None
    email_sent: bool
    is_active: bool
    created_at: Optional[datetime] = None
    verification_url: str

    model_config = ConfigDict(from_attributes=True)


class QrImageOut(BaseModel):
    code: str
    verification_url: str
    image_url: str


class VerifiedProduct(BaseModel):
    id: int
    name: str
    slug: str
    brand: Optional[str] = None
    model: Optional[str] = None
    image_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class VerifiedOrder(BaseModel):
    id: int
    order_number: str
    status: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Positive verification answer; unknown codes get {"verified": false, "message": ...}
class VerificationOut(BaseModel):
    verified: bool
    product: VerifiedProduct
    order: VerifiedOrder
    serial_number: str
    verified_at: Optional[datetime] = None
    active: bool
