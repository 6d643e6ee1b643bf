"""
HTTP Client for the PhonePe payment gateway with retry logic
"""
import base64
import hashlib
import hmac
import json
import logging
import time
from typing import Optional, Tuple, Type

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from storefront.config import GatewayConfig
from storefront.errors import InvalidInputError, PaymentGatewayError
from storefront.logging_config import add_log
from storefront.models.order import PendingOrder
from storefront.schemas.payment import (
    InitiationResult,
    PayRequest,
    PayResponse,
    PaymentNotification,
    StatusCheckResult,
)

logger = logging.getLogger(__name__)

PAY_ENDPOINT = "/pg/v1/pay"
STATUS_ENDPOINT = "/pg/v1/status/{merchant_id}/{transaction_id}"

PAYMENT_SUCCESS = "PAYMENT_SUCCESS"
PAYMENT_PENDING = "PAYMENT_PENDING"
# Codes after which the payment can no longer succeed
PAYMENT_FAILURE_CODES = ("PAYMENT_ERROR", "PAYMENT_DECLINED", "TIMED_OUT")


def make_transaction_id(order_id: str, now_ms: Optional[int] = None) -> str:
    """Unique merchant transaction id derived from the order id and current time"""
    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"M{order_id[:16]}{now_ms}"[:35]


def derive_merchant_user_id(user_id: str) -> str:
    """Gateway-safe payer id; the raw customer id never leaves the service"""
    return "MUID" + hashlib.sha256(user_id.encode("utf-8")).hexdigest()[:32]


class PaymentGatewayClient:
    """Client for the PhonePe hosted pay page API"""

    def __init__(self, config: GatewayConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        self.transport = transport

    def checksum(self, data: str) -> str:
        """X-VERIFY header value: sha256_hex(data + salt) + "###" + salt index"""
        digest = hashlib.sha256((data + self.config.salt_key).encode("utf-8")).hexdigest()
        return f"{digest}###{self.config.salt_index}"

    def build_pay_request(self, pending: PendingOrder) -> PayRequest:
        phone = pending.phone[-10:] if pending.phone else None
        return PayRequest(
            merchant_id=self.config.merchant_id,
            merchant_transaction_id=pending.transaction_id,
            merchant_user_id=derive_merchant_user_id(pending.user_id),
            amount=pending.price * 100,  # Amount in paise
            redirect_url=f"{self.config.host_url}/orders",
            redirect_mode="POST",
            callback_url=f"{self.config.host_url}/payments/callback",
            mobile_number=phone,
        )

    async def initiate(self, pending: PendingOrder) -> InitiationResult:
        """
        Request a hosted pay page for a pending order

        Args:
            pending: Pending order keyed by its merchant transaction id

        Returns:
            Result with the redirect URL on success. Network, HTTP and parse
            errors are reported as ``success=False``, never raised.
        """
        pay_request = self.build_pay_request(pending)
        encoded = base64.b64encode(
            pay_request.model_dump_json(by_alias=True).encode("utf-8")
        ).decode("ascii")
        headers = {
            "Content-Type": "application/json",
            "X-VERIFY": self.checksum(encoded + PAY_ENDPOINT),
        }
        context = {
            "transaction_id": pending.transaction_id,
            "order_id": pending.order_id,
            "amount": pay_request.amount,
        }

        try:
            # Only connection failures are retried: a timed out POST may have reached the gateway
            response = await self._send(
                "POST", PAY_ENDPOINT, (httpx.ConnectError,),
                headers=headers, json={"request": encoded},
            )
        except PaymentGatewayError as e:
            add_log("error", "Payment initiation failed", {
                **context, "error": repr(e.__cause__),
            }, name=__name__)
            return InitiationResult(
                success=False,
                message=str(e),
                transaction_id=pending.transaction_id,
            )

        try:
            body = PayResponse.model_validate(response.json())
        except ValueError as e:
            add_log("error", "Unreadable payment gateway response", {
                **context, "status_code": response.status_code, "error": str(e),
            }, name=__name__)
            return InitiationResult(
                success=False,
                message="Unexpected response from payment gateway.",
                transaction_id=pending.transaction_id,
            )

        if not body.success or not body.redirect_url:
            add_log("error", "PhonePe API error", {
                **context, "status_code": response.status_code, "code": body.code, "message": body.message,
            }, name=__name__)
            return InitiationResult(
                success=False,
                message=body.message or "Failed to initiate payment with PhonePe.",
                transaction_id=pending.transaction_id,
            )

        return InitiationResult(
            success=True,
            message="Redirecting to payment gateway.",
            redirect_url=body.redirect_url,
            transaction_id=pending.transaction_id,
        )

    async def check_status(self, transaction_id: str) -> StatusCheckResult:
        """
        Poll the gateway for a transaction

        Returns:
            Result whose ``raw`` is the provider response body, unmodified
        """
        path = STATUS_ENDPOINT.format(
            merchant_id=self.config.merchant_id, transaction_id=transaction_id
        )
        headers = {
            "Content-Type": "application/json",
            "X-VERIFY": self.checksum(path),
            "X-MERCHANT-ID": self.config.merchant_id,
        }

        try:
            response = await self._send(
                "GET", path, (httpx.TimeoutException, httpx.ConnectError), headers=headers
            )
            raw = response.json()
        except PaymentGatewayError as e:
            add_log("error", "Payment status check failed", {
                "transaction_id": transaction_id, "error": repr(e.__cause__),
            }, name=__name__)
            return StatusCheckResult(success=False, message=str(e), error=e.error_code)
        except ValueError as e:
            add_log("error", "Unreadable payment status response", {
                "transaction_id": transaction_id, "status_code": response.status_code, "error": str(e),
            }, name=__name__)
            return StatusCheckResult(success=False, message="Unexpected response from payment gateway.", error="payment_gateway")

        if not isinstance(raw, dict):
            return StatusCheckResult(success=False, message="Unexpected response from payment gateway.", error="payment_gateway")
        if response.is_error:
            add_log("error", "Payment status check rejected", {
                "transaction_id": transaction_id, "status_code": response.status_code, "code": raw.get("code"),
            }, name=__name__)
            return StatusCheckResult(
                success=False,
                message=raw.get("message") or "Payment gateway returned an error.",
                error="payment_gateway",
                raw=raw
            )
        return StatusCheckResult(success=True, message="Status retrieved.", raw=raw)

    def verify_callback(self, encoded_response: str, signature: Optional[str]) -> bool:
        """Constant-time check of a callback's X-VERIFY header"""
        if not signature:
            return False
        return hmac.compare_digest(
            self.checksum(encoded_response).encode("utf-8"), signature.strip().encode("utf-8")
        )

    @staticmethod
    def decode_callback(encoded_response: str) -> PaymentNotification:
        """
        Decode a base64 callback payload

        Raises:
            InvalidInputError: If the payload is not base64-encoded notification JSON
        """
        try:
            decoded = base64.b64decode(encoded_response, validate=True)
            return PaymentNotification.model_validate(json.loads(decoded))
        except ValueError as e:
            raise InvalidInputError(f"Malformed payment notification: {e}")

    async def _send(
        self,
        method: str,
        path: str,
        retry_on: Tuple[Type[Exception], ...],
        **kwargs
    ) -> httpx.Response:
        """
        Send a request, retrying ``retry_on`` errors with exponential backoff

        Raises:
            PaymentGatewayError: If the gateway times out or cannot be reached
        """
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(max(1, self.config.max_retries)),
                wait=wait_exponential(multiplier=self.config.retry_delay, max=10),
                retry=retry_if_exception_type(retry_on),
                reraise=True
            ):
                with attempt:
                    async with httpx.AsyncClient(timeout=self.config.timeout, transport=self.transport) as client:
                        return await client.request(method, f"{self.config.base_url}{path}", **kwargs)
        except httpx.TimeoutException as e:
            raise PaymentGatewayError("Payment gateway timed out. Please try again.") from e
        except httpx.HTTPError as e:
            raise PaymentGatewayError("Payment gateway is unavailable. Please try again later.") from e
