"""
Pydantic schemas for order requests, responses and results
"""
import re
from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator
from typing import Optional, Literal, Dict
from datetime import datetime


OrderStatus = Literal['new', 'dispatched', 'delivered', 'cancelled']
BookVariant = Literal['paperback', 'hardcover', 'ebook']
PhysicalVariant = Literal['paperback', 'hardcover']
PaymentMethod = Literal['cod', 'prepaid']

PHONE_PATTERN = re.compile(r"^\+?[0-9]{10,15}$")


class OrderCreate(BaseModel):
    """Order form submitted by the customer"""
    model_config = ConfigDict(str_strip_whitespace=True)

    variant: PhysicalVariant = Field(..., description="Book variant")
    name: str = Field(..., min_length=2, max_length=255, description="Customer name")
    email: EmailStr = Field(..., description="Customer email address")
    phone: str = Field(..., description="Mobile number, 10-15 digits")
    address: str = Field(..., min_length=1, max_length=500)
    street: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    pin_code: str = Field(..., min_length=3, max_length=20, description="Postal code")
    user_id: str = Field(..., min_length=1, max_length=128, description="Customer identifier")
    payment_method: PaymentMethod = Field(..., description="cod or prepaid")
    discount_code: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def normalize_phone(cls, value: str) -> str:
        digits = re.sub(r"[\s\-()]", "", value)
        if not PHONE_PATTERN.match(digits):
            raise ValueError("Please enter a valid phone number.")
        return digits

    @field_validator("discount_code")
    @classmethod
    def normalize_discount_code(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip().upper()
        return value or None


class OrderStatusUpdate(BaseModel):
    """Schema for updating order status"""
    status: str = Field(..., description="Order status")


class OrderResponse(BaseModel):
    """Schema for order response"""
    id: str
    user_id: str
    name: str
    email: str
    phone: Optional[str]
    address: Optional[str]
    street: Optional[str]
    city: Optional[str]
    state: Optional[str]
    country: Optional[str]
    pin_code: Optional[str]
    variant: str
    original_price: int
    discount_code: Optional[str]
    discount_amount: int
    price: int
    payment_method: str
    transaction_id: Optional[str]
    status: str
    has_review: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderListResponse(BaseModel):
    """Schema for list of orders response"""
    orders: list[OrderResponse]
    total: int
    counts: Dict[str, int] = Field(default_factory=dict, description="Orders per status")


class OrderResult(BaseModel):
    """Outcome of an order operation"""
    success: bool
    message: str
    error: Optional[str] = None
    order_id: Optional[str] = None
    redirect_url: Optional[str] = None
    transaction_id: Optional[str] = None
    order: Optional[OrderResponse] = None


class PaymentCallback(BaseModel):
    """Server-to-server callback body sent by the gateway"""
    response: str = Field(..., min_length=1, description="Base64-encoded notification")


class PaymentResult(BaseModel):
    """Outcome of payment finalization"""
    success: bool
    message: str
    error: Optional[str] = None
    transaction_id: Optional[str] = None
    order_id: Optional[str] = None
