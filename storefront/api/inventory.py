"""
Stock and discount API endpoints (admin)
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from storefront.api.admin import require_admin
from storefront.api.results import result_response
from storefront.database import get_db
from storefront.services.discount_service import DiscountService
from storefront.services.stock_service import StockService
from storefront.schemas.inventory import (
    ActionResult,
    DiscountCreate,
    DiscountListResponse,
    DiscountResponse,
    StockLevels,
    StockUpdate
)

router = APIRouter(tags=["inventory"], dependencies=[Depends(require_admin)])


def get_stock_service(db: Session = Depends(get_db)) -> StockService:
    """Dependency to get StockService instance"""
    return StockService(db)


def get_discount_service(db: Session = Depends(get_db)) -> DiscountService:
    """Dependency to get DiscountService instance"""
    return DiscountService(db)


@router.get("/stock", response_model=StockLevels, summary="Get stock levels")
def get_stock(service: StockService = Depends(get_stock_service)):
    """Paperback and hardcover quantities; the ebook is unlimited"""
    return service.get_stock()


@router.put("/stock", response_model=ActionResult, summary="Set stock levels")
def set_stock(
    stock_data: StockUpdate,
    service: StockService = Depends(get_stock_service)
):
    """
    Overwrite stock levels

    - **paperback**: new quantity (optional, must not be negative)
    - **hardcover**: new quantity (optional, must not be negative)
    """
    result = service.set_stock(stock_data.model_dump())
    return result_response(result)


@router.get("/discounts", response_model=DiscountListResponse, summary="Get discount codes")
def get_discounts(service: DiscountService = Depends(get_discount_service)):
    """All discount codes with their usage counts"""
    return service.get_all_discounts()


@router.get("/discounts/{code}", response_model=DiscountResponse, summary="Get discount code")
def get_discount(
    code: str,
    service: DiscountService = Depends(get_discount_service)
):
    discount = service.get_discount(code)
    if not discount:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Discount code {code.upper()} not found"
        )
    return discount


@router.post(
    "/discounts",
    response_model=ActionResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create discount code"
)
def create_discount(
    discount_data: DiscountCreate,
    service: DiscountService = Depends(get_discount_service)
):
    """
    Create a discount code

    - **code**: e.g. INFLUENCER10, stored uppercase
    - **percent**: 1-100
    """
    result = service.create_discount(discount_data.code, discount_data.percent)
    return result_response(result, status.HTTP_201_CREATED)
