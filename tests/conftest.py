"""Pytest fixtures: test client, in-memory SQLite, fake Paystack API."""
import json
import os

import httpx
import pytest
from fastapi.testclient import TestClient

# must be set before the app (and its settings) are imported
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("PAYSTACK_SECRET_KEY", "sk_test_webhook_secret")
os.environ.setdefault("ADMIN_SECRET", "admin-test-secret")
os.environ.setdefault("PUBLIC_URL", "https://shop.example.com")
os.environ.setdefault("RATE_LIMIT_PER_MINUTE", "1000")
os.environ.setdefault("RATE_LIMIT_CHECKOUT_PER_MINUTE", "1000")

from app.api.deps import get_paystack_client
from app.main import app
from app.services.payments import compute_signature
from app.services.paystack import PaystackClient

WEBHOOK_SECRET = os.environ["PAYSTACK_SECRET_KEY"]
ADMIN_HEADERS = {"X-Admin-Secret": os.environ["ADMIN_SECRET"]}


class FakePaystack:
    """Stands in for api.paystack.co; records every request it receives."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.initialize_response: tuple[int, dict] | None = None
        # reference -> verify `data` payload
        self.transactions: dict[str, dict] = {}

    @property
    def initialize_calls(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path == "/transaction/initialize"]

    @property
    def verify_calls(self) -> list[str]:
        return [r.url.path.rsplit("/", 1)[-1] for r in self.requests if r.url.path.startswith("/transaction/verify/")]

    def add_transaction(self, reference: str, order_id: str, amount_kobo: int, status: str = "success") -> None:
        self.transactions[reference] = {
            "reference": reference,
            "status": status,
            "amount": amount_kobo,
            "currency": "NGN",
            "channel": "card",
            "paid_at": "2026-10-19T10:00:00.000Z",
            "metadata": {"orderId": order_id},
            "customer": {"email": "buyer@example.com"},
            "authorization": {"authorization_code": "AUTH_x1", "last4": "4081", "brand": "visa", "bank": "TEST BANK"},
        }

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.headers.get("authorization") != "Bearer sk_test_api":
            return httpx.Response(401, json={"status": False, "message": "Invalid key"})
        path = request.url.path
        if path == "/transaction/initialize":
            if self.initialize_response is not None:
                code, body = self.initialize_response
                return httpx.Response(code, json=body)
            payload = json.loads(request.content)
            ref = payload["reference"]
            return httpx.Response(
                200,
                json={
                    "status": True,
                    "message": "Authorization URL created",
                    "data": {
                        "authorization_url": f"https://checkout.paystack.com/{ref}",
                        "access_code": f"ac_{ref[-6:]}",
                        "reference": ref,
                    },
                },
            )
        if path.startswith("/transaction/verify/"):
            ref = path.rsplit("/", 1)[-1]
            tx = self.transactions.get(ref)
            if tx is None:
                return httpx.Response(400, json={"status": False, "message": "Transaction reference not found"})
            return httpx.Response(200, json={"status": True, "message": "Verification successful", "data": tx})
        return httpx.Response(404, json={"status": False, "message": "Not found"})


@pytest.fixture
def fake_paystack() -> FakePaystack:
    return FakePaystack()


@pytest.fixture
def paystack_client(fake_paystack: FakePaystack):
    client = PaystackClient(
        "sk_test_api",
        base_url="https://api.paystack.test",
        timeout=5.0,
        transport=httpx.MockTransport(fake_paystack.handler),
    )
    yield client
    client.close()


@pytest.fixture(scope="function")
def client(paystack_client: PaystackClient):
    """TestClient; the lifespan creates a fresh in-memory DB for each test."""
    app.dependency_overrides[get_paystack_client] = lambda: paystack_client
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def store(client: TestClient):
    return app.state.order_store


def register_and_login(client: TestClient, email: str, password: str = "test123456", full_name: str = "Test Buyer") -> dict:
    r = client.post("/auth/register", json={"email": email, "password": password, "full_name": full_name})
    assert r.status_code == 200, r.text
    r = client.post("/auth/login", json={"email": email, "password": password})
    assert r.status_code == 200, f"Login failed: {r.status_code} {r.text}"
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


@pytest.fixture
def auth_headers(client: TestClient) -> dict:
    return register_and_login(client, "buyer@example.com")


def checkout_body(payment_method: str = "debit_card", email: str = "buyer@example.com", **overrides) -> dict:
    body = {
        "userEmail": email,
        "userName": "Ada Buyer",
        "items": [
            {"productId": "p-1", "name": "Ankara Shirt", "price": 999.99, "quantity": 1},
            {"productId": "p-2", "name": "Leather Sandals", "price": 250.00, "quantity": 2},
        ],
        "total": 1499.99,
        "address": {
            "name": "Ada Buyer",
            "email": email,
            "phone": "+2348012345678",
            "streetAddress": "12 Marina Road",
            "city": "Lagos",
            "state": "Lagos",
            "postalCode": "101001",
            "country": "Nigeria",
        },
        "paymentMethod": payment_method,
    }
    body.update(overrides)
    return body


def signed_webhook(client: TestClient, payload: dict, secret: str = WEBHOOK_SECRET, signature: str | None = None):
    raw = json.dumps(payload).encode()
    headers = {"Content-Type": "application/json"}
    sig = signature if signature is not None else compute_signature(secret, raw)
    if sig:
        headers["x-paystack-signature"] = sig
    return client.post("/api/payment/paystack/webhook", content=raw, headers=headers)


def charge_success_event(order_id: str | None, reference: str, amount_kobo: int, event: str = "charge.success") -> dict:
    metadata = {"orderId": order_id} if order_id else {}
    return {
        "event": event,
        "data": {
            "id": 302961,
            "reference": reference,
            "status": "success",
            "amount": amount_kobo,
            "currency": "NGN",
            "channel": "card",
            "paid_at": "2026-10-19T10:00:05.000Z",
            "metadata": metadata,
            "customer": {"id": 1, "email": "buyer@example.com", "customer_code": "CUS_x"},
            "authorization": {
                "authorization_code": "AUTH_72btv547",
                "bin": "408408",
                "last4": "4081",
                "exp_month": "12",
                "exp_year": "2030",
                "card_type": "visa",
                "bank": "TEST BANK",
                "country_code": "NG",
                "brand": "visa",
                "reusable": True,
            },
        },
    }
