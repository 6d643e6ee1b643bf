"""
Review Service - customer reviews of placed orders
"""
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.publishers.event_publisher import EventPublisher
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.review_repository import ReviewRepository
from storefront.schemas.review import ReviewCreate, ReviewListResponse, ReviewResponse, ReviewResult

logger = logging.getLogger(__name__)


class ReviewService:
    """Service layer for reviews"""

    def __init__(self, db: Session, event_publisher: Optional[EventPublisher] = None):
        self.db = db
        self.repository = ReviewRepository(db)
        self.order_repository = OrderRepository(db)
        self.event_publisher = event_publisher or EventPublisher()

    def get_reviews(self) -> ReviewListResponse:
        reviews = self.repository.get_all()
        return ReviewListResponse(
            reviews=[ReviewResponse.model_validate(r) for r in reviews],
            total=len(reviews),
            average_rating=self.repository.average_rating()
        )

    def submit_review(self, payload: Dict[str, Any]) -> ReviewResult:
        """
        Submit a review for an order

        The order is marked delivered and reviewed whatever its previous
        status. A second submission for the same order returns the first
        review and changes nothing.
        """
        try:
            review_data = ReviewCreate.model_validate(payload)
        except ValidationError:
            return ReviewResult(success=False, message="Invalid review data.", error="validation")

        order = self.order_repository.get_by_id_for_customer(review_data.user_id, review_data.order_id)
        if order is None:
            return ReviewResult(
                success=False,
                message=f"Order {review_data.order_id} not found.",
                error="not_found"
            )

        existing = self.repository.get_by_order(order.id)
        if existing is not None:
            return ReviewResult(
                success=True,
                message="Review already submitted.",
                review=ReviewResponse.model_validate(existing)
            )

        try:
            review = self.repository.create({
                **review_data.model_dump(),
                "user_name": order.name or "Anonymous",
            }, commit=False)
            self.order_repository.update_status(
                order.user_id, order.id, "delivered", has_review=True, commit=False
            )
            self.db.commit()
        except IntegrityError:
            # A concurrent submission won the unique order_id slot
            self.db.rollback()
            existing = self.repository.get_by_order(review_data.order_id)
            return ReviewResult(
                success=True,
                message="Review already submitted.",
                review=ReviewResponse.model_validate(existing) if existing else None
            )
        except SQLAlchemyError:
            self.db.rollback()
            raise

        self.db.refresh(review)
        logger.info("Review %s submitted for order %s", review.id, review.order_id)

        try:
            self.event_publisher.publish_review_submitted({
                "review_id": review.id,
                "order_id": review.order_id,
                "rating": review.rating,
            })
            self.event_publisher.publish_views_invalidated(["/", "/orders"])
        except Exception as e:
            logger.warning("Failed to publish ReviewSubmitted event: %s", e)

        return ReviewResult(
            success=True,
            message="Review submitted successfully.",
            review=ReviewResponse.model_validate(review)
        )
