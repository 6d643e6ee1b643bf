"""
Pydantic schemas for stock and discounts
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime


class StockLevels(BaseModel):
    """Quantities per physical variant; the ebook is unlimited"""
    paperback: int = Field(..., ge=0, description="Paperback quantity")
    hardcover: int = Field(..., ge=0, description="Hardcover quantity")


class StockUpdate(BaseModel):
    """Admin overwrite of stock levels; values are checked by the service"""
    paperback: Optional[int] = None
    hardcover: Optional[int] = None


class DiscountCreate(BaseModel):
    """Schema for creating a discount code"""
    code: str = Field(..., description="Discount code, stored uppercase")
    percent: int = Field(..., description="Discount percent, 1-100")


class DiscountResponse(BaseModel):
    """Schema for discount response"""
    code: str
    percent: int
    usage_count: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DiscountListResponse(BaseModel):
    """Schema for list of discounts response"""
    discounts: list[DiscountResponse]
    total: int


class ActionResult(BaseModel):
    """Outcome of an admin action"""
    success: bool
    message: str
    error: Optional[str] = None
