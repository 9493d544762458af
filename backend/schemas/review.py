# backend/schemas/review.py
from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional


class ReviewCreate(BaseModel):
    rating: int = Field(ge=1, le=5)
    title: Optional[str] = Field(None, max_length=255)
    comment: Optional[str] = None


class ReviewOut(BaseModel):
    id: int
    product_id: int
    user_id: int
    order_id: Optional[int] = None
    rating: int
    title: Optional[str] = None
    comment: Optional[str] = None
    is_verified_purchase: bool
    helpful_count: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ReviewVote(BaseModel):
    is_helpful: bool
