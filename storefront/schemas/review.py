"""
Pydantic schemas for reviews
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime


class ReviewCreate(BaseModel):
    """Review submitted for a placed order"""
    model_config = ConfigDict(str_strip_whitespace=True)

    order_id: str = Field(..., min_length=1)
    user_id: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    review_text: Optional[str] = Field(None, max_length=2000)


class ReviewResponse(BaseModel):
    id: int
    order_id: str
    user_id: str
    user_name: str
    rating: int
    review_text: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ReviewListResponse(BaseModel):
    reviews: list[ReviewResponse]
    total: int
    average_rating: Optional[float] = None


class ReviewResult(BaseModel):
    """Outcome of a review submission"""
    success: bool
    message: str
    error: Optional[str] = None
    review: Optional[ReviewResponse] = None
