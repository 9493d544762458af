# backend/schemas/product.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Any, Dict
from datetime import datetime


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# --- Categories ---

class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    slug: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = None

class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    slug: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    image_url: Optional[str] = None

class CategoryOut(ORMBase):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    image_url: Optional[str] = None


# --- Products ---

# Shared catalog attributes. stock_quantity is deliberately absent:
# it is derived from inventory units and rejected on input.
class ProductBase(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=255)
    slug: str = Field(min_length=1, max_length=255)
    sku: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    price: float = Field(ge=0)
    sale_price: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = None
    image_urls: Optional[List[str]] = None
    category_id: Optional[int] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    specifications: Optional[Dict[str, Any]] = None
    is_active: bool = True


class ProductCreate(ProductBase):
    pass


# Schema for partial product updates
class ProductUpdate(BaseModel):
    """Schema for PUT requests - only the fields sent are changed."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, min_length=1, max_length=255)
    sku: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    sale_price: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = None
    image_urls: Optional[List[str]] = None
    category_id: Optional[int] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    specifications: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None


class ProductOut(ORMBase):
    id: int
    name: str
    slug: str
    sku: Optional[str] = None
    description: Optional[str] = None
    price: float
    sale_price: Optional[float] = None
    effective_price: float
    image_url: Optional[str] = None
    image_urls: Optional[List[str]] = None
    category_id: Optional[int] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    specifications: Optional[Dict[str, Any]] = None
    stock_quantity: int
    is_active: bool
    created_at: Optional[datetime] = None


# Closed filter set for catalog listing
class ProductFilters(BaseModel):
    category: Optional[str] = None # category slug
    search: Optional[str] = None
    limit: int = Field(20, ge=1, le=100)
    offset: int = Field(0, ge=0)


# Paginated response for product listings
class ProductListPage(BaseModel):
    items: List[ProductOut]
    total: int
    limit: int
    offset: int
