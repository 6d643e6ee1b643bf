"""Tests for payment confirmation, reconciliation and the gateway client."""

import base64
import hashlib
import json

import httpx
import pytest

from storefront.config import GatewayConfig, Settings, PHONEPE_PRODUCTION_URL, PHONEPE_SANDBOX_URL
from storefront.errors import ConfigurationError, InvalidInputError
from storefront.models import Order, PendingOrder
from storefront.repositories.discount_repository import DiscountRepository
from storefront.repositories.stock_repository import StockRepository
from storefront.services.order_service import OrderService
from storefront.services.payment_gateway import (
    PaymentGatewayClient,
    derive_merchant_user_id,
    make_transaction_id,
)

from conftest import GATEWAY_CONFIG, REDIRECT_URL, RecordingPublisher, encode_notification, order_form


def sha256_hex(value):
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


@pytest.fixture
async def pending(order_service, stocked, save10):
    """A prepaid paperback order with SAVE10 awaiting payment (price 450)."""
    result = await order_service.place_order(
        order_form(payment_method="prepaid", discount_code="SAVE10")
    )
    assert result.success
    return result


class TestConfirmPayment:
    def _callback(self, gateway, transaction_id, **kwargs):
        encoded = encode_notification(transaction_id, **kwargs)
        return encoded, gateway.checksum(encoded)

    async def test_success_promotes_pending_order(self, order_service, gateway, pending, db, publisher):
        encoded, signature = self._callback(gateway, pending.transaction_id, amount=45000)

        result = order_service.confirm_payment(encoded, signature)

        assert result.success is True
        assert result.order_id == pending.order_id

        order = db.get(Order, pending.order_id)
        assert order.payment_method == "prepaid"
        assert order.transaction_id == pending.transaction_id
        assert order.status == "new"
        assert order.price == 450
        assert order.discount_amount == 50
        assert order.user_id == "user-1"

        assert db.get(PendingOrder, pending.transaction_id) is None
        assert StockRepository(db).get_quantity("paperback") == 9
        assert DiscountRepository(db).get_by_code("SAVE10").usage_count == 1
        assert "payment.completed" in publisher.routing_keys()
        assert "order.created" in publisher.routing_keys()

    async def test_replayed_callback_has_no_side_effects(self, order_service, gateway, pending, db):
        encoded, signature = self._callback(gateway, pending.transaction_id)
        order_service.confirm_payment(encoded, signature)

        result = order_service.confirm_payment(encoded, signature)

        assert result.success is True
        assert result.order_id == pending.order_id
        assert db.query(Order).count() == 1
        assert StockRepository(db).get_quantity("paperback") == 9
        assert DiscountRepository(db).get_by_code("SAVE10").usage_count == 1

    async def test_bad_signature_rejected(self, order_service, pending, db):
        encoded = encode_notification(pending.transaction_id)

        result = order_service.confirm_payment(encoded, "0" * 64 + "###1")

        assert result.error == "invalid_signature"
        assert db.get(PendingOrder, pending.transaction_id) is not None
        assert db.query(Order).count() == 0

    async def test_missing_signature_rejected(self, order_service, pending):
        result = order_service.confirm_payment(encode_notification(pending.transaction_id), None)

        assert result.error == "invalid_signature"

    async def test_malformed_payload_rejected(self, order_service, gateway, pending):
        encoded = "not base64!"

        result = order_service.confirm_payment(encoded, gateway.checksum(encoded))

        assert result.error == "validation"

    async def test_failed_payment_discards_pending_order(self, order_service, gateway, pending, db):
        encoded, signature = self._callback(
            gateway, pending.transaction_id, code="PAYMENT_ERROR", success=False
        )

        result = order_service.confirm_payment(encoded, signature)

        assert result.error == "payment_failed"
        assert db.get(PendingOrder, pending.transaction_id) is None
        assert db.query(Order).count() == 0
        assert StockRepository(db).get_quantity("paperback") == 10
        assert DiscountRepository(db).get_by_code("SAVE10").usage_count == 0

    async def test_pending_payment_keeps_pending_order(self, order_service, gateway, pending, db):
        encoded, signature = self._callback(
            gateway, pending.transaction_id, code="PAYMENT_PENDING", success=False
        )

        result = order_service.confirm_payment(encoded, signature)

        assert result.error == "payment_pending"
        assert db.get(PendingOrder, pending.transaction_id) is not None
        assert db.query(Order).count() == 0

    async def test_amount_mismatch_keeps_pending_order(self, order_service, gateway, pending, db):
        encoded, signature = self._callback(gateway, pending.transaction_id, amount=100)

        result = order_service.confirm_payment(encoded, signature)

        assert result.error == "amount_mismatch"
        assert db.get(PendingOrder, pending.transaction_id) is not None
        assert db.query(Order).count() == 0

    async def test_unknown_transaction(self, order_service, gateway):
        encoded, signature = self._callback(gateway, "MUNKNOWN")

        result = order_service.confirm_payment(encoded, signature)

        assert result.error == "not_found"

    async def test_order_created_even_if_stock_ran_out(self, order_service, gateway, pending, db):
        StockRepository(db).set_all({"paperback": 0})
        encoded, signature = self._callback(gateway, pending.transaction_id)

        result = order_service.confirm_payment(encoded, signature)

        assert result.success is True
        assert db.get(Order, pending.order_id) is not None
        assert StockRepository(db).get_quantity("paperback") == 0


class TestReconcilePayment:
    async def test_paid_transaction_is_finalized(self, order_service, fake_gateway, pending, db):
        fake_gateway.status_response = lambda request: httpx.Response(200, json={
            "success": True,
            "code": "PAYMENT_SUCCESS",
            "data": {"merchantTransactionId": pending.transaction_id, "amount": 45000},
        })

        result = await order_service.reconcile_payment(pending.transaction_id)

        assert result.success is True
        assert db.get(Order, pending.order_id) is not None

        request = fake_gateway.requests[-1]
        path = f"/pg/v1/status/{GATEWAY_CONFIG.merchant_id}/{pending.transaction_id}"
        assert request.method == "GET"
        assert request.url.path == path
        assert request.headers["X-MERCHANT-ID"] == GATEWAY_CONFIG.merchant_id
        assert request.headers["X-VERIFY"] == sha256_hex(path + GATEWAY_CONFIG.salt_key) + "###1"

    async def test_gateway_down(self, order_service, fake_gateway, pending, db):
        def down(request):
            raise httpx.ConnectError("connection refused", request=request)

        fake_gateway.status_response = down

        result = await order_service.reconcile_payment(pending.transaction_id)

        assert result.error == "payment_gateway"
        assert db.get(PendingOrder, pending.transaction_id) is not None

    @pytest.mark.parametrize("status_code,body", [
        (500, {"success": False, "code": "INTERNAL_SERVER_ERROR", "message": "There is an error trying to process your transaction at the moment."}),
        (400, {"success": False, "code": "BAD_REQUEST", "message": "Please check the inputs you have provided."}),
        (200, {"success": False, "code": "TRANSACTION_NOT_FOUND", "data": {}}),
        (200, {"success": True, "data": {}}),
    ])
    async def test_inconclusive_status_keeps_pending_order(
        self, order_service, gateway, fake_gateway, pending, db, status_code, body
    ):
        fake_gateway.status_response = lambda request: httpx.Response(status_code, json=body)

        result = await order_service.reconcile_payment(pending.transaction_id)

        assert result.success is False
        assert result.error == "payment_gateway"
        assert db.get(PendingOrder, pending.transaction_id) is not None

        # The real callback still completes the order afterwards
        encoded = encode_notification(pending.transaction_id, amount=45000)
        confirmed = order_service.confirm_payment(encoded, gateway.checksum(encoded))

        assert confirmed.success is True
        assert db.get(Order, pending.order_id) is not None

    @pytest.mark.parametrize("code", ["PAYMENT_ERROR", "PAYMENT_DECLINED", "TIMED_OUT"])
    async def test_terminal_failure_discards_pending_order(self, order_service, fake_gateway, pending, db, code):
        fake_gateway.status_response = lambda request: httpx.Response(200, json={
            "success": False, "code": code, "data": {"merchantTransactionId": pending.transaction_id},
        })

        result = await order_service.reconcile_payment(pending.transaction_id)

        assert result.error == "payment_failed"
        assert db.get(PendingOrder, pending.transaction_id) is None
        assert db.query(Order).count() == 0


class TestConcurrentConfirmation:
    async def test_second_confirmation_is_a_replay(self, session_factory, pricing, gateway, pending, db):
        first = OrderService(session_factory(), pricing=pricing, gateway=gateway, event_publisher=RecordingPublisher())
        second = OrderService(session_factory(), pricing=pricing, gateway=gateway, event_publisher=RecordingPublisher())
        try:
            # Both confirmations see the pending order before either commits
            stale = second.repository.get_pending(pending.transaction_id)
            assert first.finalize_payment(pending.transaction_id, "PAYMENT_SUCCESS", 45000).success

            second.repository.get_pending = lambda transaction_id: stale
            result = second.finalize_payment(pending.transaction_id, "PAYMENT_SUCCESS", 45000)
        finally:
            first.db.close()
            second.db.close()

        assert result.success is True
        assert result.message == "Payment already confirmed."
        assert result.order_id == pending.order_id
        db.expire_all()
        assert db.query(Order).count() == 1
        assert StockRepository(db).get_quantity("paperback") == 9
        assert DiscountRepository(db).get_by_code("SAVE10").usage_count == 1


class TestGatewayClient:
    async def test_pay_request_is_signed(self, gateway, fake_gateway):
        pending = PendingOrder(
            transaction_id="MTX123", order_id="a" * 32, user_id="user-1", name="Asha",
            email="asha@example.com", phone="+919876543210", variant="hardcover",
            original_price=800, discount_amount=0, price=800, payment_method="prepaid",
        )

        result = await gateway.initiate(pending)

        assert result.success is True
        assert result.redirect_url == REDIRECT_URL

        request = fake_gateway.pay_requests()[0]
        encoded = json.loads(request.content)["request"]
        assert request.headers["X-VERIFY"] == (
            sha256_hex(encoded + "/pg/v1/pay" + GATEWAY_CONFIG.salt_key) + "###1"
        )

        payload = json.loads(base64.b64decode(encoded))
        assert payload["merchantId"] == "MERCHANTUAT"
        assert payload["merchantTransactionId"] == "MTX123"
        assert payload["merchantUserId"] == derive_merchant_user_id("user-1")
        assert payload["amount"] == 80000
        assert payload["redirectUrl"] == "https://shop.test/orders"
        assert payload["redirectMode"] == "POST"
        assert payload["callbackUrl"] == "https://shop.test/payments/callback"
        assert payload["mobileNumber"] == "9876543210"
        assert payload["paymentInstrument"] == {"type": "PAY_PAGE"}

    async def test_connection_errors_are_retried(self, fake_gateway):
        attempts = []

        def flaky(request):
            attempts.append(request)
            if len(attempts) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, json={
                "success": True,
                "data": {"instrumentResponse": {"redirectInfo": {"url": REDIRECT_URL}}},
            })

        fake_gateway.pay_response = flaky
        config = GATEWAY_CONFIG.model_copy(update={"max_retries": 3})
        client = PaymentGatewayClient(config, transport=httpx.MockTransport(fake_gateway))
        pending = PendingOrder(
            transaction_id="MTX9", order_id="b" * 32, user_id="u", phone="9876543210", price=500
        )

        result = await client.initiate(pending)

        assert result.success is True
        assert len(attempts) == 3

    async def test_unreadable_response(self, gateway, fake_gateway):
        fake_gateway.pay_response = lambda request: httpx.Response(502, text="<html>Bad Gateway</html>")
        pending = PendingOrder(
            transaction_id="MTX9", order_id="b" * 32, user_id="u", phone="9876543210", price=500
        )

        result = await gateway.initiate(pending)

        assert result.success is False
        assert result.message == "Unexpected response from payment gateway."

    async def test_missing_redirect_url_is_a_failure(self, gateway, fake_gateway):
        fake_gateway.pay_response = lambda request: httpx.Response(200, json={"success": True, "data": {}})
        pending = PendingOrder(
            transaction_id="MTX9", order_id="b" * 32, user_id="u", phone="9876543210", price=500
        )

        result = await gateway.initiate(pending)

        assert result.success is False
        assert result.message == "Failed to initiate payment with PhonePe."

    async def test_status_response_returned_verbatim(self, gateway, fake_gateway):
        body = {
            "success": False,
            "code": "PAYMENT_PENDING",
            "message": "Your payment is in pending state.",
            "data": {"merchantTransactionId": "MTX1", "state": "PENDING", "extra": [1, 2]},
        }
        fake_gateway.status_response = lambda request: httpx.Response(200, json=body)

        result = await gateway.check_status("MTX1")

        assert result.success is True
        assert result.raw == body

    async def test_status_timeout(self, gateway, fake_gateway):
        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        fake_gateway.status_response = slow

        result = await gateway.check_status("MTX1")

        assert result.success is False
        assert result.error == "payment_gateway"
        assert result.message == "Payment gateway timed out. Please try again."
        assert result.raw is None

    def test_callback_signature(self, gateway):
        encoded = encode_notification("MTX1")
        signature = sha256_hex(encoded + GATEWAY_CONFIG.salt_key) + "###1"

        assert gateway.verify_callback(encoded, signature) is True
        assert gateway.verify_callback(encoded, signature.replace("###1", "###2")) is False
        assert gateway.verify_callback(encoded, "") is False

    def test_decode_callback(self, gateway):
        notification = gateway.decode_callback(encode_notification("MTX1", amount=45000))

        assert notification.code == "PAYMENT_SUCCESS"
        assert notification.data.merchant_transaction_id == "MTX1"
        assert notification.data.amount == 45000

        with pytest.raises(InvalidInputError):
            gateway.decode_callback(base64.b64encode(b"[1, 2]").decode())

    def test_transaction_id(self):
        order_id = "0123456789abcdef0123456789abcdef"

        transaction_id = make_transaction_id(order_id, now_ms=1729260000000)

        assert transaction_id == "M0123456789abcdef1729260000000"
        assert len(make_transaction_id(order_id)) <= 35

    def test_merchant_user_id(self):
        assert derive_merchant_user_id("user-1") == "MUID" + sha256_hex("user-1")[:32]
        assert derive_merchant_user_id("user-1") != derive_merchant_user_id("user-2")


class TestGatewayConfig:
    def test_missing_configuration(self):
        settings = Settings(PHONEPE_MERCHANT_ID="", PHONEPE_SALT_KEY="", PHONEPE_SALT_INDEX=None)

        with pytest.raises(ConfigurationError) as exc_info:
            settings.gateway_config()

        assert "PHONEPE_MERCHANT_ID" in str(exc_info.value)
        assert "PHONEPE_SALT_INDEX" in str(exc_info.value)

    def test_sandbox_flag_selects_base_url(self):
        common = {"PHONEPE_MERCHANT_ID": "M1", "PHONEPE_SALT_KEY": "k", "PHONEPE_SALT_INDEX": 2}

        assert Settings(**common, PHONEPE_SANDBOX=True).gateway_config().base_url == PHONEPE_SANDBOX_URL
        production = Settings(**common, PHONEPE_SANDBOX=False).gateway_config()
        assert production.base_url == PHONEPE_PRODUCTION_URL
        assert production.salt_index == 2
        assert isinstance(production, GatewayConfig)
