"""
Review API endpoints
"""
from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session
from typing import Any, Dict

from storefront.api.results import result_response
from storefront.database import get_db
from storefront.services.review_service import ReviewService
from storefront.schemas.review import ReviewListResponse, ReviewResult

router = APIRouter(prefix="/reviews", tags=["reviews"])


def get_review_service(db: Session = Depends(get_db)) -> ReviewService:
    """Dependency to get ReviewService instance"""
    return ReviewService(db)


@router.get("", response_model=ReviewListResponse, summary="Get reviews")
def get_reviews(service: ReviewService = Depends(get_review_service)):
    """All reviews, newest first, with the average rating"""
    return service.get_reviews()


@router.post("", response_model=ReviewResult, status_code=status.HTTP_201_CREATED, summary="Submit review")
def submit_review(
    payload: Dict[str, Any] = Body(...),
    service: ReviewService = Depends(get_review_service)
):
    """
    Submit a review for one of your orders

    - **order_id**, **user_id**: the reviewed order
    - **rating**: 1-5
    - **review_text**: optional
    """
    result = service.submit_review(payload)
    return result_response(result, status.HTTP_201_CREATED)
