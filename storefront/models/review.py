"""
SQLAlchemy Review model
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, CheckConstraint
from sqlalchemy.sql import func
from storefront.database import Base


class Review(Base):
    """Customer review of a fulfilled order"""

    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    order_id = Column(String(32), nullable=False, unique=True)  # One review per order
    user_id = Column(String(128), nullable=False, index=True)
    user_name = Column(String(255), nullable=False)  # Denormalized from the order
    rating = Column(Integer, nullable=False)
    review_text = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint('rating >= 1 AND rating <= 5', name='check_review_rating_range'),
    )

    def __repr__(self):
        return f"<Review(id={self.id}, order_id='{self.order_id}', rating={self.rating})>"
