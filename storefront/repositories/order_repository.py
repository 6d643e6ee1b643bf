"""
Order Repository - Data Access Layer
"""
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from sqlalchemy import desc, func

from storefront.errors import NotFoundError
from storefront.models.order import Order, PendingOrder


class OrderRepository:
    """Repository for Order and PendingOrder persistence"""

    def __init__(self, db: Session):
        self.db = db

    def get_all(self, status: Optional[str] = None) -> List[Order]:
        """Get all orders, newest first"""
        query = self.db.query(Order)
        if status:
            query = query.filter(Order.status == status)
        return query.order_by(desc(Order.created_at)).all()

    def get_by_customer(self, user_id: str) -> List[Order]:
        """Get orders placed by a customer"""
        return self.db.query(Order).filter(
            Order.user_id == user_id
        ).order_by(desc(Order.created_at)).all()

    def get_by_id_for_customer(self, user_id: str, order_id: str) -> Optional[Order]:
        """Get an order only if it belongs to the given customer"""
        return self.db.query(Order).filter(
            Order.user_id == user_id,
            Order.id == order_id
        ).first()

    def get_by_transaction_id(self, transaction_id: str) -> Optional[Order]:
        return self.db.query(Order).filter(Order.transaction_id == transaction_id).first()

    def count_by_status(self) -> Dict[str, int]:
        """Get order counts keyed by status"""
        rows = self.db.query(Order.status, func.count(Order.id)).group_by(Order.status).all()
        return {status: count for status, count in rows}

    def create(self, order_data: dict, commit: bool = True) -> Order:
        """
        Create new order

        Args:
            order_data: Dictionary with order fields
            commit: Commit immediately; pass False to join a larger transaction

        Returns:
            Created order
        """
        order = Order(**order_data)
        self.db.add(order)
        if commit:
            self.db.commit()
            self.db.refresh(order)
        else:
            self.db.flush()
        return order

    def update_status(
        self,
        user_id: str,
        order_id: str,
        new_status: str,
        has_review: Optional[bool] = None,
        commit: bool = True
    ) -> Order:
        """
        Update order status and optionally the review flag

        Raises:
            NotFoundError: If the customer has no such order
        """
        order = self.get_by_id_for_customer(user_id, order_id)
        if not order:
            raise NotFoundError(f"Order {order_id} not found.")

        order.status = new_status
        if has_review is not None:
            order.has_review = has_review

        if commit:
            self.db.commit()
            self.db.refresh(order)
        else:
            self.db.flush()
        return order

    # Pending orders

    def get_pending(self, transaction_id: str) -> Optional[PendingOrder]:
        return self.db.query(PendingOrder).filter(
            PendingOrder.transaction_id == transaction_id
        ).first()

    def create_pending(self, transaction_id: str, order_data: dict, commit: bool = True) -> PendingOrder:
        """Persist an order awaiting payment confirmation"""
        pending = PendingOrder(transaction_id=transaction_id, **order_data)
        self.db.add(pending)
        if commit:
            self.db.commit()
            self.db.refresh(pending)
        else:
            self.db.flush()
        return pending

    def delete_pending(self, transaction_id: str, commit: bool = True) -> bool:
        """Delete a pending order; returns False if it was already gone"""
        deleted = self.db.query(PendingOrder).filter(
            PendingOrder.transaction_id == transaction_id
        ).delete(synchronize_session=False)
        if commit:
            self.db.commit()
        return deleted > 0
