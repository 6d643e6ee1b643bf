"""
Repositories package
"""
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.stock_repository import StockRepository
from storefront.repositories.discount_repository import DiscountRepository
from storefront.repositories.review_repository import ReviewRepository

__all__ = ["OrderRepository", "StockRepository", "DiscountRepository", "ReviewRepository"]
