"""
Pydantic schemas for price quotes
"""
from pydantic import BaseModel
from typing import Optional


class CallerLocation(BaseModel):
    """Where the caller is; an explicit country code wins over the IP"""
    country_code: Optional[str] = None
    ip: Optional[str] = None


class PriceQuote(BaseModel):
    """Current unit prices in whole rupees"""
    country: str
    currency: str = "INR"
    paperback: int
    hardcover: int
    ebook: int

    def price_for(self, variant: str) -> int:
        return getattr(self, variant)
