"""
Discount Repository - Data Access Layer
"""
from typing import List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from storefront.errors import AlreadyExistsError
from storefront.models.inventory import Discount


class DiscountRepository:
    """Repository for the discount code ledger"""

    def __init__(self, db: Session):
        self.db = db

    def get_all(self) -> List[Discount]:
        return self.db.query(Discount).order_by(Discount.code).all()

    def get_by_code(self, code: str) -> Optional[Discount]:
        """Get discount by code (case-insensitive)"""
        return self.db.get(Discount, code.strip().upper())

    def create(self, code: str, percent: int) -> Discount:
        """
        Create a discount code

        Raises:
            AlreadyExistsError: If the code is already taken
        """
        if self.get_by_code(code) is not None:
            raise AlreadyExistsError(f"Discount code {code} already exists.")

        discount = Discount(code=code, percent=percent, usage_count=0)
        self.db.add(discount)
        try:
            self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent create
            self.db.rollback()
            raise AlreadyExistsError(f"Discount code {code} already exists.")
        self.db.refresh(discount)
        return discount

    def increment_usage(self, code: str, commit: bool = True) -> bool:
        """
        Atomically add one redemption to a code

        Returns:
            False if the code does not exist (no-op)
        """
        result = self.db.execute(
            update(Discount)
            .where(Discount.code == code.strip().upper())
            .values(usage_count=Discount.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        if commit:
            self.db.commit()
        return result.rowcount > 0
