# backend/schemas/inventory.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional

from models.inventory import UnitStatus


# Schema for registering a new physical unit
class UnitCreate(BaseModel):
    product_id: int
    serial_number: str = Field(min_length=1, max_length=255)
    security_code_image_url: Optional[str] = None
    certificate_url: Optional[str] = None


class UnitStatusPatch(BaseModel):
    status: UnitStatus
    order_id: Optional[int] = None


# Closed filter set for unit listing
class UnitFilters(BaseModel):
    product_id: Optional[int] = None
    status: Optional[UnitStatus] = None


class UnitOut(BaseModel):
    id: int
    unit_id: str
    product_id: int
    product_name: str
    serial_number: str
    security_code_image_url: Optional[str] = None
    certificate_url: Optional[str] = None
    status: str
    sold_at: Optional[datetime] = None
    order_id: Optional[int] = None
    created_by: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
