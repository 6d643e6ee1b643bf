"""
Review Repository - Data Access Layer
"""
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc, func

from storefront.models.review import Review


class ReviewRepository:
    """Repository for customer reviews"""

    def __init__(self, db: Session):
        self.db = db

    def get_all(self) -> List[Review]:
        return self.db.query(Review).order_by(desc(Review.created_at), desc(Review.id)).all()

    def get_by_order(self, order_id: str) -> Optional[Review]:
        return self.db.query(Review).filter(Review.order_id == order_id).first()

    def average_rating(self) -> Optional[float]:
        value = self.db.query(func.avg(Review.rating)).scalar()
        return round(float(value), 2) if value is not None else None

    def create(self, review_data: dict, commit: bool = True) -> Review:
        review = Review(**review_data)
        self.db.add(review)
        if commit:
            self.db.commit()
            self.db.refresh(review)
        else:
            self.db.flush()
        return review
