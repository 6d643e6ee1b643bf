"""
Stock Repository - Data Access Layer
"""
from typing import Dict
from sqlalchemy.orm import Session
from sqlalchemy import update

from storefront.errors import InvalidInputError, OutOfStockError
from storefront.models.inventory import Stock
from storefront.models.order import PHYSICAL_VARIANTS


class StockRepository:
    """Repository for stock levels of the physical variants"""

    def __init__(self, db: Session):
        self.db = db

    def get_all(self) -> Dict[str, int]:
        """Get quantities for every physical variant; missing rows read as 0"""
        levels = {variant: 0 for variant in PHYSICAL_VARIANTS}
        for row in self.db.query(Stock).all():
            levels[row.variant] = row.quantity
        return levels

    def get_quantity(self, variant: str) -> int:
        row = self.db.query(Stock).filter(Stock.variant == variant).first()
        return row.quantity if row else 0

    def is_available(self, variant: str, quantity: int = 1) -> bool:
        """Check stock without reserving it; the ebook is always available"""
        if variant not in PHYSICAL_VARIANTS:
            return True
        return self.get_quantity(variant) >= quantity

    def set_all(self, quantities: Dict[str, int], commit: bool = True) -> Dict[str, int]:
        """
        Overwrite stock levels

        Raises:
            InvalidInputError: If any quantity is negative or the variant is not physical
        """
        for variant, quantity in quantities.items():
            if variant not in PHYSICAL_VARIANTS:
                raise InvalidInputError(f"Stock is not tracked for variant '{variant}'")
            if quantity < 0:
                raise InvalidInputError(f"Stock for '{variant}' cannot be negative: {quantity}")

        for variant, quantity in quantities.items():
            row = self.db.get(Stock, variant)
            if row is None:
                self.db.add(Stock(variant=variant, quantity=quantity))
            else:
                row.quantity = quantity

        if commit:
            self.db.commit()
        else:
            self.db.flush()
        return self.get_all()

    def decrement(self, variant: str, quantity: int = 1, commit: bool = True) -> None:
        """
        Atomically subtract stock

        The check and the subtraction are a single conditional UPDATE, so
        concurrent callers can never oversell.

        Raises:
            OutOfStockError: If fewer than ``quantity`` units remain
        """
        if variant not in PHYSICAL_VARIANTS:
            return

        result = self.db.execute(
            update(Stock)
            .where(Stock.variant == variant, Stock.quantity >= quantity)
            .values(quantity=Stock.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise OutOfStockError(
                f"Sorry, the {variant} edition is out of stock."
            )

        if commit:
            self.db.commit()

    def seed(self, quantity: int = 0) -> None:
        """Create missing stock rows for the physical variants"""
        existing = {row.variant for row in self.db.query(Stock).all()}
        missing = [variant for variant in PHYSICAL_VARIANTS if variant not in existing]
        for variant in missing:
            self.db.add(Stock(variant=variant, quantity=quantity))
        if missing:
            self.db.commit()
