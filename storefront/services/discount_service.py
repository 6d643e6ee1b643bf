"""
Discount Service - discount code ledger
"""
import logging
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from storefront.errors import AlreadyExistsError
from storefront.models.inventory import Discount
from storefront.repositories.discount_repository import DiscountRepository
from storefront.schemas.inventory import ActionResult, DiscountListResponse, DiscountResponse

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"^[A-Z0-9_-]{3,30}$")


def compute_discount(original_price: int, percent: int) -> int:
    """round(original_price * percent / 100), halves rounded up"""
    amount = (Decimal(original_price) * Decimal(percent) / Decimal(100)).quantize(
        Decimal(1), rounding=ROUND_HALF_UP
    )
    return int(amount)


def apply_discount(original_price: int, discount: Optional[Discount]) -> Tuple[int, int]:
    """
    Price breakdown for an order

    Returns:
        (discount_amount, price) with price == original_price - discount_amount
    """
    discount_amount = compute_discount(original_price, discount.percent) if discount else 0
    return discount_amount, original_price - discount_amount


class DiscountService:
    """Service layer for discount codes"""

    def __init__(self, db: Session):
        self.repository = DiscountRepository(db)

    def get_all_discounts(self) -> DiscountListResponse:
        discounts = self.repository.get_all()
        return DiscountListResponse(
            discounts=[DiscountResponse.model_validate(d) for d in discounts],
            total=len(discounts)
        )

    def get_discount(self, code: str) -> Optional[DiscountResponse]:
        discount = self.repository.get_by_code(code)
        if not discount:
            return None
        return DiscountResponse.model_validate(discount)

    def create_discount(self, code: str, percent: int) -> ActionResult:
        """
        Create a discount code

        Args:
            code: Code, trimmed and uppercased before storing
            percent: Discount percent, 1-100
        """
        code = (code or "").strip().upper()
        if not CODE_PATTERN.match(code):
            return ActionResult(
                success=False,
                message="Discount code must be 3-30 characters of letters, digits, '-' or '_'.",
                error="validation"
            )
        if not isinstance(percent, int) or isinstance(percent, bool) or not 1 <= percent <= 100:
            return ActionResult(
                success=False,
                message="Discount percent must be between 1 and 100.",
                error="validation"
            )

        try:
            self.repository.create(code, percent)
        except AlreadyExistsError as e:
            return ActionResult(success=False, message=str(e), error=e.error_code)

        logger.info("Discount code %s created (%d%%)", code, percent)
        return ActionResult(success=True, message=f"Discount code {code} created with {percent}% off.")
