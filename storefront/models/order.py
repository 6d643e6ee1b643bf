"""
SQLAlchemy Order and PendingOrder models
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, CheckConstraint
from sqlalchemy.sql import func
from storefront.database import Base


ORDER_STATUSES = ("new", "dispatched", "delivered", "cancelled")
VARIANTS = ("paperback", "hardcover", "ebook")
PHYSICAL_VARIANTS = ("paperback", "hardcover")
PAYMENT_METHODS = ("cod", "prepaid")


class OrderFieldsMixin:
    """Columns shared by placed and pending orders"""

    user_id = Column(String(128), nullable=False, index=True)

    # Contact
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)

    # Shipping; empty for the ebook
    address = Column(String(500), nullable=True)
    street = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    country = Column(String(100), nullable=True)
    pin_code = Column(String(20), nullable=True)

    variant = Column(String(20), nullable=False)
    original_price = Column(Integer, nullable=False)
    discount_code = Column(String(30), nullable=True)
    discount_amount = Column(Integer, nullable=False, default=0)
    price = Column(Integer, nullable=False)
    payment_method = Column(String(20), nullable=False)


class Order(OrderFieldsMixin, Base):
    """Order database model"""

    __tablename__ = "orders"

    id = Column(String(32), primary_key=True)
    transaction_id = Column(String(35), nullable=True, unique=True)
    status = Column(String(20), nullable=False, default="new", index=True)
    has_review = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Constraints
    __table_args__ = (
        CheckConstraint("status IN ('new', 'dispatched', 'delivered', 'cancelled')", name='check_order_status_valid'),
        CheckConstraint("variant IN ('paperback', 'hardcover', 'ebook')", name='check_order_variant_valid'),
        CheckConstraint("payment_method IN ('cod', 'prepaid')", name='check_order_payment_method_valid'),
        CheckConstraint('discount_amount >= 0', name='check_order_discount_non_negative'),
        CheckConstraint('price = original_price - discount_amount', name='check_order_price_consistent'),
    )

    def __repr__(self):
        return f"<Order(id='{self.id}', user_id='{self.user_id}', variant='{self.variant}', status='{self.status}')>"


class PendingOrder(OrderFieldsMixin, Base):
    """Order awaiting payment confirmation, keyed by gateway transaction id"""

    __tablename__ = "pending_orders"

    transaction_id = Column(String(35), primary_key=True)
    order_id = Column(String(32), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint('price = original_price - discount_amount', name='check_pending_price_consistent'),
    )

    def __repr__(self):
        return f"<PendingOrder(transaction_id='{self.transaction_id}', order_id='{self.order_id}', price={self.price})>"
