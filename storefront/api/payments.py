"""
Payment gateway callback and reconciliation endpoints
"""
from fastapi import APIRouter, Depends, Header, status
from typing import Optional

from storefront.api.admin import require_admin
from storefront.api.orders import get_order_service
from storefront.api.results import result_response
from storefront.schemas.order import PaymentCallback, PaymentResult
from storefront.services.order_service import OrderService

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/callback", response_model=PaymentResult, summary="Payment gateway callback")
def payment_callback(
    callback: PaymentCallback,
    x_verify: Optional[str] = Header(None),
    service: OrderService = Depends(get_order_service)
):
    """
    Server-to-server notification from the gateway

    - **response**: base64-encoded notification, signed in the X-VERIFY header
    """
    result = service.confirm_payment(callback.response, x_verify)
    return result_response(result)


@router.post("/{transaction_id}/reconcile", response_model=PaymentResult, summary="Reconcile payment")
async def reconcile_payment(
    transaction_id: str,
    service: OrderService = Depends(get_order_service)
):
    """
    Ask the gateway for the transaction status and finalize the order if paid
    """
    result = await service.reconcile_payment(transaction_id)
    return result_response(result)


@router.get(
    "/{transaction_id}/status",
    summary="Raw gateway status",
    dependencies=[Depends(require_admin)]
)
async def payment_status(
    transaction_id: str,
    service: OrderService = Depends(get_order_service)
):
    """
    Gateway status response for a transaction, unmodified (admin)
    """
    result = await service.gateway.check_status(transaction_id)
    return result_response(result)
