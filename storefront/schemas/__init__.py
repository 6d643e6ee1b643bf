"""
Schemas package
"""
from storefront.schemas.order import (
    OrderCreate,
    OrderStatusUpdate,
    OrderResponse,
    OrderListResponse,
    OrderResult,
    PaymentCallback,
    PaymentResult
)
from storefront.schemas.inventory import (
    StockLevels,
    StockUpdate,
    DiscountCreate,
    DiscountResponse,
    DiscountListResponse,
    ActionResult
)
from storefront.schemas.review import ReviewCreate, ReviewResponse, ReviewListResponse, ReviewResult
from storefront.schemas.pricing import CallerLocation, PriceQuote
from storefront.schemas.events import EventEnvelope

__all__ = [
    "OrderCreate",
    "OrderStatusUpdate",
    "OrderResponse",
    "OrderListResponse",
    "OrderResult",
    "PaymentCallback",
    "PaymentResult",
    "StockLevels",
    "StockUpdate",
    "DiscountCreate",
    "DiscountResponse",
    "DiscountListResponse",
    "ActionResult",
    "ReviewCreate",
    "ReviewResponse",
    "ReviewListResponse",
    "ReviewResult",
    "CallerLocation",
    "PriceQuote",
    "EventEnvelope"
]
