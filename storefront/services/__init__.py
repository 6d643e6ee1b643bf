"""
Services package
"""
from storefront.services.order_service import OrderService
from storefront.services.review_service import ReviewService
from storefront.services.stock_service import StockService
from storefront.services.discount_service import DiscountService
from storefront.services.payment_gateway import PaymentGatewayClient
from storefront.services.pricing import PricingResolver

__all__ = [
    "OrderService",
    "ReviewService",
    "StockService",
    "DiscountService",
    "PaymentGatewayClient",
    "PricingResolver"
]
