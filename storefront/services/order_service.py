"""
Order Service - Business Logic Layer

Order placement, payment reconciliation and status changes.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from storefront.config import settings
from storefront.errors import InvalidInputError, NotFoundError, OutOfStockError
from storefront.logging_config import add_log
from storefront.models.order import ORDER_STATUSES, Order, PendingOrder
from storefront.publishers.event_publisher import EventPublisher
from storefront.repositories.discount_repository import DiscountRepository
from storefront.repositories.order_repository import OrderRepository
from storefront.repositories.stock_repository import StockRepository
from storefront.schemas.order import (
    OrderCreate,
    OrderListResponse,
    OrderResponse,
    OrderResult,
    PaymentResult,
)
from storefront.schemas.pricing import CallerLocation
from storefront.services.discount_service import apply_discount
from storefront.services.payment_gateway import (
    PAYMENT_FAILURE_CODES,
    PAYMENT_PENDING,
    PAYMENT_SUCCESS,
    PaymentGatewayClient,
    make_transaction_id,
)
from storefront.services.pricing import PricingResolver

logger = logging.getLogger(__name__)

INVALID_ORDER_MESSAGE = "Invalid data provided. Please check the form."

PENDING_FIELDS = (
    "user_id", "name", "email", "phone", "address", "street", "city", "state",
    "country", "pin_code", "variant", "original_price", "discount_code",
    "discount_amount", "price", "payment_method",
)


def new_order_id() -> str:
    return uuid.uuid4().hex


class OrderService:
    """Service layer for order business logic"""

    def __init__(
        self,
        db: Session,
        pricing: Optional[PricingResolver] = None,
        gateway: Optional[PaymentGatewayClient] = None,
        event_publisher: Optional[EventPublisher] = None,
    ):
        self.db = db
        self.repository = OrderRepository(db)
        self.stock_repository = StockRepository(db)
        self.discount_repository = DiscountRepository(db)
        self.pricing = pricing or PricingResolver()
        self.event_publisher = event_publisher or EventPublisher()
        self._gateway = gateway

    @property
    def gateway(self) -> PaymentGatewayClient:
        """Gateway client; raises ConfigurationError when the gateway is not configured"""
        if self._gateway is None:
            self._gateway = PaymentGatewayClient(settings.gateway_config())
        return self._gateway

    # Queries

    def get_all_orders(self, status: Optional[str] = None) -> OrderListResponse:
        """Get all orders (admin), newest first"""
        orders = self.repository.get_all(status=status)
        counts = {s: 0 for s in ORDER_STATUSES}
        counts.update(self.repository.count_by_status())

        return OrderListResponse(
            orders=[OrderResponse.model_validate(o) for o in orders],
            total=len(orders),
            counts=counts
        )

    def get_orders_by_customer(self, user_id: str) -> List[OrderResponse]:
        if not user_id:
            return []
        orders = self.repository.get_by_customer(user_id)
        return [OrderResponse.model_validate(o) for o in orders]

    def get_order_for_customer(self, user_id: str, order_id: str) -> Optional[OrderResponse]:
        order = self.repository.get_by_id_for_customer(user_id, order_id)
        if not order:
            return None
        return OrderResponse.model_validate(order)

    # Order placement

    async def place_order(
        self,
        payload: Dict[str, Any],
        location: Optional[CallerLocation] = None
    ) -> OrderResult:
        """
        Place an order from a submitted form

        Steps:
        1. Validate the form
        2. Resolve the unit price for the caller's location
        3. Apply the discount code if it exists (unknown codes are ignored)
        4. COD: decrement stock, create the order and count the discount
           use in one transaction
           Prepaid: persist a pending order and request a pay page

        Args:
            payload: Raw order form
            location: Caller location used for pricing

        Returns:
            Result with ``order_id`` (COD) or ``redirect_url`` (prepaid)

        Raises:
            ConfigurationError: If a prepaid order is placed while the
                payment gateway is not configured
        """
        try:
            order_data = OrderCreate.model_validate(payload)
        except ValidationError as e:
            logger.info("Rejected order form: %s", e.errors(include_url=False, include_input=False))
            return OrderResult(success=False, message=INVALID_ORDER_MESSAGE, error="validation")

        quote = await self.pricing.resolve(location)
        original_price = quote.price_for(order_data.variant)

        discount = None
        if order_data.discount_code:
            discount = self.discount_repository.get_by_code(order_data.discount_code)
            if discount is None:
                add_log("info", "Unknown discount code ignored", {
                    "code": order_data.discount_code, "user_id": order_data.user_id,
                }, name=__name__)

        discount_amount, price = apply_discount(original_price, discount)

        fields = order_data.model_dump(exclude={"discount_code"})
        fields.update(
            original_price=original_price,
            discount_code=discount.code if discount else None,
            discount_amount=discount_amount,
            price=price,
        )

        try:
            if order_data.payment_method == "cod":
                return self._place_cod_order(fields)
            return await self._initiate_prepaid_order(fields)
        except (OutOfStockError, InvalidInputError) as e:
            return OrderResult(success=False, message=str(e), error=e.error_code)

    def _place_cod_order(self, fields: Dict[str, Any]) -> OrderResult:
        order_id = new_order_id()

        try:
            self.stock_repository.decrement(fields["variant"], 1, commit=False)
            order = self.repository.create(
                {**fields, "id": order_id, "status": "new", "has_review": False},
                commit=False
            )
            if fields["discount_code"]:
                self.discount_repository.increment_usage(fields["discount_code"], commit=False)
            self.db.commit()
        except (OutOfStockError, SQLAlchemyError):
            self.db.rollback()
            raise

        self.db.refresh(order)
        logger.info("COD order %s placed for %s (%s, %d)", order.id, order.user_id, order.variant, order.price)

        self._notify(lambda: self.event_publisher.publish_order_created(self._event_data(order)))
        self._notify(self.event_publisher.publish_views_invalidated)

        return OrderResult(
            success=True,
            message="Order created successfully!",
            order_id=order.id,
            order=OrderResponse.model_validate(order)
        )

    async def _initiate_prepaid_order(self, fields: Dict[str, Any]) -> OrderResult:
        gateway = self.gateway

        if fields["price"] <= 0:
            raise InvalidInputError("Nothing to pay online for this order. Please choose cash on delivery.")
        if not self.stock_repository.is_available(fields["variant"], 1):
            raise OutOfStockError(f"Sorry, the {fields['variant']} edition is out of stock.")

        order_id = new_order_id()
        transaction_id = make_transaction_id(order_id)
        pending = self.repository.create_pending(
            transaction_id, {**fields, "order_id": order_id}
        )

        result = await gateway.initiate(pending)

        if not result.success:
            # Compensate: no pending record may outlive a failed initiation
            self.repository.delete_pending(transaction_id)
            add_log("warning", "Prepaid order abandoned after failed initiation", {
                "transaction_id": transaction_id, "order_id": order_id, "reason": result.message,
            }, name=__name__)
            return OrderResult(
                success=False,
                message=result.message,
                error="payment_gateway",
                transaction_id=transaction_id
            )

        logger.info("Prepaid order %s awaiting payment (transaction %s)", order_id, transaction_id)
        return OrderResult(
            success=True,
            message=result.message,
            order_id=order_id,
            redirect_url=result.redirect_url,
            transaction_id=transaction_id
        )

    # Payment reconciliation

    def confirm_payment(self, encoded_response: str, signature: Optional[str]) -> PaymentResult:
        """
        Handle the gateway's server-to-server callback

        Args:
            encoded_response: Base64 notification body
            signature: X-VERIFY header sent with it
        """
        gateway = self.gateway

        if not gateway.verify_callback(encoded_response, signature):
            add_log("warning", "Payment callback rejected: bad signature", {
                "signature": signature,
            }, name=__name__)
            return PaymentResult(success=False, message="Invalid callback signature.", error="invalid_signature")

        try:
            notification = gateway.decode_callback(encoded_response)
        except InvalidInputError as e:
            return PaymentResult(success=False, message=str(e), error=e.error_code)

        return self.finalize_payment(
            notification.data.merchant_transaction_id,
            notification.code,
            notification.data.amount
        )

    async def reconcile_payment(self, transaction_id: str) -> PaymentResult:
        """Poll the gateway for a transaction whose callback never arrived"""
        status = await self.gateway.check_status(transaction_id)
        if not status.success:
            return PaymentResult(
                success=False,
                message=status.message,
                error="payment_gateway",
                transaction_id=transaction_id
            )

        raw = status.raw or {}
        data = raw.get("data") or {}
        return self.finalize_payment(transaction_id, raw.get("code"), data.get("amount"))

    def finalize_payment(
        self,
        transaction_id: str,
        code: Optional[str],
        amount: Optional[int] = None
    ) -> PaymentResult:
        """
        Turn a pending order into a real order once payment is confirmed

        Order creation, stock decrement, discount usage and pending order
        removal commit together. Replays of an already finalized
        transaction succeed without side effects.

        Args:
            transaction_id: Merchant transaction id
            code: Gateway result code, e.g. PAYMENT_SUCCESS
            amount: Amount reported by the gateway, in paise
        """
        pending = self.repository.get_pending(transaction_id)
        if pending is None:
            replay = self._confirmed_result(transaction_id)
            if replay is not None:
                return replay
            return PaymentResult(
                success=False,
                message=f"No pending order for transaction {transaction_id}.",
                error="not_found",
                transaction_id=transaction_id
            )

        if code == PAYMENT_PENDING:
            return PaymentResult(
                success=False,
                message="Payment is still pending.",
                error="payment_pending",
                transaction_id=transaction_id,
                order_id=pending.order_id
            )

        if code != PAYMENT_SUCCESS and code not in PAYMENT_FAILURE_CODES:
            add_log("warning", "Unrecognized payment code; pending order kept", {
                "transaction_id": transaction_id, "order_id": pending.order_id, "code": code,
            }, name=__name__)
            return PaymentResult(
                success=False,
                message="Payment status could not be determined. Please try again later.",
                error="payment_gateway",
                transaction_id=transaction_id,
                order_id=pending.order_id
            )

        if code in PAYMENT_FAILURE_CODES:
            order_id = pending.order_id
            self.repository.delete_pending(transaction_id)
            add_log("warning", "Payment failed; pending order discarded", {
                "transaction_id": transaction_id, "order_id": order_id, "code": code,
            }, name=__name__)
            return PaymentResult(
                success=False,
                message="Payment was not completed.",
                error="payment_failed",
                transaction_id=transaction_id
            )

        expected_amount = pending.price * 100
        if amount is not None and amount != expected_amount:
            add_log("error", "Payment amount mismatch; pending order kept for review", {
                "transaction_id": transaction_id, "expected": expected_amount, "received": amount,
            }, name=__name__)
            return PaymentResult(
                success=False,
                message="Paid amount does not match the order total.",
                error="amount_mismatch",
                transaction_id=transaction_id,
                order_id=pending.order_id
            )

        order = self._promote_pending(pending)
        if order is None:
            # A concurrent confirmation of the same transaction committed first
            return self._confirmed_result(transaction_id)

        logger.info("Prepaid order %s confirmed (transaction %s)", order.id, transaction_id)
        self._notify(lambda: self.event_publisher.publish_payment_completed({
            "order_id": order.id, "transaction_id": transaction_id, "amount": expected_amount,
        }))
        self._notify(lambda: self.event_publisher.publish_order_created(self._event_data(order)))
        self._notify(self.event_publisher.publish_views_invalidated)

        return PaymentResult(
            success=True,
            message="Payment confirmed. Order created.",
            transaction_id=transaction_id,
            order_id=order.id
        )

    def _confirmed_result(self, transaction_id: str) -> Optional[PaymentResult]:
        existing = self.repository.get_by_transaction_id(transaction_id)
        if existing is None:
            return None
        return PaymentResult(
            success=True,
            message="Payment already confirmed.",
            transaction_id=transaction_id,
            order_id=existing.id
        )

    def _promote_pending(self, pending: PendingOrder) -> Optional[Order]:
        """Create the order from a pending one; None if another confirmation won the race"""
        fields = {name: getattr(pending, name) for name in PENDING_FIELDS}
        transaction_id = pending.transaction_id

        try:
            order = self.repository.create({
                **fields,
                "id": pending.order_id,
                "transaction_id": transaction_id,
                "status": "new",
                "has_review": False,
            }, commit=False)

            try:
                self.stock_repository.decrement(fields["variant"], 1, commit=False)
            except OutOfStockError:
                # Payment is already captured; the admin settles the shortfall
                add_log("error", "Stock exhausted for confirmed prepaid order", {
                    "order_id": pending.order_id, "transaction_id": transaction_id,
                    "variant": fields["variant"],
                }, name=__name__)

            if fields["discount_code"]:
                self.discount_repository.increment_usage(fields["discount_code"], commit=False)

            self.repository.delete_pending(transaction_id, commit=False)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            if self.repository.get_by_transaction_id(transaction_id) is None:
                raise
            add_log("info", "Duplicate payment confirmation ignored", {
                "transaction_id": transaction_id,
            }, name=__name__)
            return None
        except SQLAlchemyError:
            self.db.rollback()
            raise

        self.db.refresh(order)
        return order

    # Status changes

    def change_order_status(self, user_id: str, order_id: str, new_status: str) -> OrderResult:
        """
        Set an order's status (admin override)

        Any status may move to any other; no transition table is applied.
        """
        if new_status not in ORDER_STATUSES:
            return OrderResult(
                success=False,
                message=f"Invalid status '{new_status}'.",
                error="validation",
                order_id=order_id
            )

        existing = self.repository.get_by_id_for_customer(user_id, order_id)
        old_status = existing.status if existing else None

        try:
            order = self.repository.update_status(user_id, order_id, new_status)
        except NotFoundError as e:
            return OrderResult(success=False, message=str(e), error=e.error_code, order_id=order_id)

        self._notify(lambda: self.event_publisher.publish_order_status_changed({
            "order_id": order.id,
            "user_id": order.user_id,
            "old_status": old_status,
            "new_status": order.status,
            "updated_at": order.updated_at.isoformat() if order.updated_at else None,
        }))
        self._notify(self.event_publisher.publish_views_invalidated)

        return OrderResult(
            success=True,
            message=f"Order {order_id} status updated to {new_status}",
            order_id=order_id,
            order=OrderResponse.model_validate(order)
        )

    # Helpers

    @staticmethod
    def _event_data(order: Order) -> Dict[str, Any]:
        return {
            "order_id": order.id,
            "user_id": order.user_id,
            "variant": order.variant,
            "original_price": order.original_price,
            "discount_code": order.discount_code,
            "discount_amount": order.discount_amount,
            "price": order.price,
            "payment_method": order.payment_method,
            "customer_email": order.email,
            "status": order.status,
        }

    @staticmethod
    def _notify(publish) -> None:
        # Events are best effort and never fail the order
        try:
            publish()
        except Exception as e:
            logger.warning("Failed to publish event: %s", e)
