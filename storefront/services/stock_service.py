"""
Stock Service - stock levels for the physical variants
"""
import logging
from typing import Dict, Optional

from sqlalchemy.orm import Session

from storefront.errors import InvalidInputError
from storefront.repositories.stock_repository import StockRepository
from storefront.schemas.inventory import ActionResult, StockLevels

logger = logging.getLogger(__name__)


class StockService:
    """Service layer for stock management"""

    def __init__(self, db: Session):
        self.repository = StockRepository(db)

    def get_stock(self) -> StockLevels:
        return StockLevels(**self.repository.get_all())

    def set_stock(self, quantities: Dict[str, Optional[int]]) -> ActionResult:
        """
        Overwrite stock levels (admin)

        Any negative or non-integer value rejects the whole update and
        leaves stock unchanged.
        """
        updates = {variant: value for variant, value in quantities.items() if value is not None}
        if not updates:
            return ActionResult(success=False, message="No stock levels provided.", error="validation")

        for variant, value in updates.items():
            if not isinstance(value, int) or isinstance(value, bool):
                return ActionResult(
                    success=False,
                    message=f"Stock for {variant} must be a whole number.",
                    error="validation"
                )

        try:
            levels = self.repository.set_all(updates)
        except InvalidInputError as e:
            return ActionResult(success=False, message=str(e), error=e.error_code)

        logger.info("Stock levels updated: %s", levels)
        return ActionResult(success=True, message="Stock levels updated successfully.")
