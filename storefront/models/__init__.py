"""
Models package
"""
from storefront.models.order import Order, PendingOrder
from storefront.models.inventory import Stock, Discount
from storefront.models.review import Review

__all__ = ["Order", "PendingOrder", "Stock", "Discount", "Review"]
