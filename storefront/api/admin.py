"""
Admin passcode gate and dashboard endpoint
"""
import hmac
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.database import get_db
from storefront.services.discount_service import DiscountService
from storefront.services.order_service import OrderService
from storefront.services.stock_service import StockService


def require_admin(x_admin_passcode: Optional[str] = Header(None)) -> None:
    """Dependency checking the X-Admin-Passcode header server-side"""
    if not settings.ADMIN_PASSCODE:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Admin access is not configured"
        )
    if not x_admin_passcode or not hmac.compare_digest(
        x_admin_passcode.encode("utf-8"), settings.ADMIN_PASSCODE.encode("utf-8")
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect passcode."
        )


router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/dashboard", summary="Admin dashboard")
def dashboard(db: Session = Depends(get_db)):
    """
    Everything the admin dashboard shows, in one response

    - **orders**: orders grouped by status, with counts
    - **stock**: paperback and hardcover quantities
    - **discounts**: codes with percent and usage count
    """
    orders = OrderService(db).get_all_orders()
    grouped = {key: [] for key in orders.counts}
    for order in orders.orders:
        grouped.setdefault(order.status, []).append(order.model_dump(mode="json"))

    return {
        "orders": grouped,
        "counts": orders.counts,
        "total_orders": orders.total,
        "stock": StockService(db).get_stock().model_dump(),
        "discounts": DiscountService(db).get_all_discounts().model_dump(mode="json")["discounts"],
    }
