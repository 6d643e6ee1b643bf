"""
SQLAlchemy Stock and Discount models
"""
from sqlalchemy import Column, Integer, String, DateTime, CheckConstraint
from sqlalchemy.sql import func
from storefront.database import Base


class Stock(Base):
    """Remaining quantity per physical variant"""

    __tablename__ = "stock"

    variant = Column(String(20), primary_key=True)
    quantity = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint('quantity >= 0', name='check_stock_non_negative'),
    )

    def __repr__(self):
        return f"<Stock(variant='{self.variant}', quantity={self.quantity})>"


class Discount(Base):
    """Discount code ledger entry"""

    __tablename__ = "discounts"

    code = Column(String(30), primary_key=True)
    percent = Column(Integer, nullable=False)
    usage_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint('percent >= 1 AND percent <= 100', name='check_discount_percent_range'),
        CheckConstraint('usage_count >= 0', name='check_discount_usage_non_negative'),
    )

    def __repr__(self):
        return f"<Discount(code='{self.code}', percent={self.percent}, usage_count={self.usage_count})>"
