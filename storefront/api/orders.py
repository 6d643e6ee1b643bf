"""
Order API endpoints
"""
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional

from storefront.api.admin import require_admin
from storefront.api.results import result_response
from storefront.database import get_db
from storefront.services.order_service import OrderService
from storefront.schemas.order import (
    OrderStatusUpdate,
    OrderResponse,
    OrderListResponse,
    OrderResult
)
from storefront.schemas.pricing import CallerLocation

router = APIRouter(prefix="/orders", tags=["orders"])


def get_order_service(db: Session = Depends(get_db)) -> OrderService:
    """Dependency to get OrderService instance"""
    return OrderService(db)


def get_caller_location(request: Request) -> CallerLocation:
    """Caller location from a CDN country header or the client address"""
    forwarded = request.headers.get("x-forwarded-for")
    ip = forwarded.split(",")[0].strip() if forwarded else (request.client.host if request.client else None)
    return CallerLocation(
        country_code=request.headers.get("x-country-code") or None,
        ip=ip
    )


@router.get(
    "",
    response_model=OrderListResponse,
    summary="Get all orders",
    dependencies=[Depends(require_admin)]
)
def get_orders(
    status_filter: Optional[str] = Query(None, alias="status", description="Only orders with this status"),
    service: OrderService = Depends(get_order_service)
):
    """
    Retrieve all orders, newest first (admin)

    - **status**: new, dispatched, delivered or cancelled (optional)
    """
    return service.get_all_orders(status=status_filter)


@router.post(
    "",
    response_model=OrderResult,
    status_code=status.HTTP_201_CREATED,
    summary="Place order"
)
async def place_order(
    payload: Dict[str, Any] = Body(...),
    location: CallerLocation = Depends(get_caller_location),
    service: OrderService = Depends(get_order_service)
):
    """
    Place a new order

    Process:
    1. Validate the order form
    2. Resolve the price for the caller's location
    3. Apply the discount code, if it exists
    4. COD: reserve stock and save the order
       Prepaid: save a pending order and return the payment page URL

    - **variant**: paperback or hardcover
    - **payment_method**: cod or prepaid
    - **discount_code**: optional
    """
    result = await service.place_order(payload, location)
    return result_response(result, status.HTTP_201_CREATED)


@router.get("/customer/{user_id}", response_model=List[OrderResponse], summary="Get orders by customer")
def get_orders_by_customer(
    user_id: str,
    service: OrderService = Depends(get_order_service)
):
    """
    Get all orders for a specific customer

    - **user_id**: Customer identifier
    """
    return service.get_orders_by_customer(user_id)


@router.get("/customer/{user_id}/{order_id}", response_model=OrderResponse, summary="Get customer order")
def get_order_for_customer(
    user_id: str,
    order_id: str,
    service: OrderService = Depends(get_order_service)
):
    """
    Retrieve a specific order of a customer

    - **user_id**: Customer identifier
    - **order_id**: Order ID
    """
    order = service.get_order_for_customer(user_id, order_id)
    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Order with id={order_id} not found"
        )
    return order


@router.patch(
    "/{user_id}/{order_id}/status",
    response_model=OrderResult,
    summary="Update order status",
    dependencies=[Depends(require_admin)]
)
def update_order_status(
    user_id: str,
    order_id: str,
    status_data: OrderStatusUpdate,
    service: OrderService = Depends(get_order_service)
):
    """
    Update order status (admin)

    - **status**: new, dispatched, delivered or cancelled; any status may
      follow any other
    """
    result = service.change_order_status(user_id, order_id, status_data.status)
    return result_response(result)
