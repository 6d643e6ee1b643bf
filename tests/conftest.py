"""Pytest fixtures for storefront tests."""

import base64
import json
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from storefront import models  # noqa: F401
from storefront.config import GatewayConfig
from storefront.database import Base
from storefront.publishers.event_publisher import EventPublisher
from storefront.repositories.discount_repository import DiscountRepository
from storefront.repositories.stock_repository import StockRepository
from storefront.services.order_service import OrderService
from storefront.services.payment_gateway import PaymentGatewayClient
from storefront.services.pricing import PricingResolver


GATEWAY_CONFIG = GatewayConfig(
    merchant_id="MERCHANTUAT",
    salt_key="test-salt-key",
    salt_index=1,
    base_url="https://gateway.test",
    host_url="https://shop.test",
    timeout=5.0,
    max_retries=1,
    retry_delay=0,
)

DOMESTIC_PRICES = {"paperback": 500, "hardcover": 800, "ebook": 250}
INTERNATIONAL_PRICES = {"paperback": 1500, "hardcover": 2200, "ebook": 600}

REDIRECT_URL = "https://mercury-uat.phonepe.com/transact/pg?token=abc123"


def order_form(**overrides):
    """A valid order form; keyword arguments replace fields."""
    form = {
        "variant": "paperback",
        "name": "Asha Menon",
        "email": "asha@example.com",
        "phone": "+91 98765-43210",
        "address": "Flat 4B, Lotus Residency",
        "street": "MG Road",
        "city": "Kochi",
        "state": "Kerala",
        "country": "India",
        "pin_code": "682016",
        "user_id": "user-1",
        "payment_method": "cod",
    }
    form.update(overrides)
    return form


def pay_success_body(transaction_id="MTX1"):
    return {
        "success": True,
        "code": "PAYMENT_INITIATED",
        "message": "Payment initiated",
        "data": {
            "merchantId": GATEWAY_CONFIG.merchant_id,
            "merchantTransactionId": transaction_id,
            "instrumentResponse": {
                "type": "PAY_PAGE",
                "redirectInfo": {"url": REDIRECT_URL, "method": "GET"},
            },
        },
    }


def encode_notification(transaction_id, code="PAYMENT_SUCCESS", amount=None, success=True):
    """Base64 callback body as the gateway sends it."""
    data = {
        "merchantId": GATEWAY_CONFIG.merchant_id,
        "merchantTransactionId": transaction_id,
        "transactionId": "T2410181234",
        "state": "COMPLETED" if code == "PAYMENT_SUCCESS" else "FAILED",
        "responseCode": "SUCCESS" if code == "PAYMENT_SUCCESS" else "ERROR",
    }
    if amount is not None:
        data["amount"] = amount
    body = {"success": success, "code": code, "message": "Callback", "data": data}
    return base64.b64encode(json.dumps(body).encode("utf-8")).decode("ascii")


class RecordingPublisher(EventPublisher):
    """Event publisher that records events instead of talking to RabbitMQ."""

    def __init__(self):
        super().__init__()
        self.events = []

    def publish(self, event_type, routing_key, data):
        self.events.append((event_type, routing_key, data))
        return True

    def routing_keys(self):
        return [routing_key for _, routing_key, _ in self.events]


class FakeGateway:
    """Scriptable httpx handler standing in for the payment gateway."""

    def __init__(self):
        self.requests = []
        self.pay_response = lambda request: httpx.Response(
            200, json=pay_success_body(json.loads(base64.b64decode(
                json.loads(request.content)["request"]
            ))["merchantTransactionId"])
        )
        self.status_response = lambda request: httpx.Response(
            200, json={"success": True, "code": "PAYMENT_SUCCESS", "data": {}}
        )

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "POST" and request.url.path == "/pg/v1/pay":
            return self.pay_response(request)
        if request.method == "GET" and request.url.path.startswith("/pg/v1/status/"):
            return self.status_response(request)
        return httpx.Response(404, json={"success": False, "message": "Unknown endpoint"})

    def pay_requests(self):
        return [r for r in self.requests if r.url.path == "/pg/v1/pay"]


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite database so several sessions and threads can share it."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'storefront.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def stocked(db):
    """Ten paperbacks and five hardcovers in stock."""
    StockRepository(db).set_all({"paperback": 10, "hardcover": 5})
    return db


@pytest.fixture
def save10(db):
    return DiscountRepository(db).create("SAVE10", 10)


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def pricing():
    def refuse(request):
        raise AssertionError(f"Unexpected geolocation request: {request.url}")

    return PricingResolver(
        home_country="IN",
        domestic_prices=DOMESTIC_PRICES,
        international_prices=INTERNATIONAL_PRICES,
        transport=httpx.MockTransport(refuse),
    )


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def gateway(fake_gateway):
    return PaymentGatewayClient(GATEWAY_CONFIG, transport=httpx.MockTransport(fake_gateway))


@pytest.fixture
def order_service(db, pricing, gateway, publisher):
    return OrderService(db, pricing=pricing, gateway=gateway, event_publisher=publisher)
