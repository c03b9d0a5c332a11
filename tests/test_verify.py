"""Verify endpoint and its race with the webhook."""
from fastapi.testclient import TestClient

from app.services.order_status import OrderStatus
from conftest import charge_success_event, checkout_body, register_and_login, signed_webhook

VERIFY_URL = "/api/payment/paystack/verify"


def _start_payment(client: TestClient, headers: dict) -> tuple[str, str]:
    r = client.post("/api/checkout", json=checkout_body("debit_card"), headers=headers)
    assert r.status_code == 200, r.text
    return r.json()["orderId"], r.json()["reference"]


def test_verify_success_marks_order_processing(client: TestClient, auth_headers: dict, fake_paystack, store):
    order_id, reference = _start_payment(client, auth_headers)
    fake_paystack.add_transaction(reference, order_id, 149999)

    r = client.post(VERIFY_URL, json={"reference": reference, "orderId": order_id}, headers=auth_headers)
    assert r.status_code == 200, r.text
    j = r.json()
    assert j["success"] is True
    assert j["order"]["id"] == order_id
    assert j["order"]["paid"] is True
    assert j["order"]["status"] == "processing"
    assert j["order"]["total"] == 1499.99
    assert fake_paystack.verify_calls == [reference]

    order = store.get(order_id)
    assert order.paid is True
    assert order.payment_reference == reference


def test_verify_not_successful_is_not_an_error(client: TestClient, auth_headers: dict, fake_paystack, store):
    order_id, reference = _start_payment(client, auth_headers)
    fake_paystack.add_transaction(reference, order_id, 149999, status="abandoned")

    r = client.post(VERIFY_URL, json={"reference": reference, "orderId": order_id}, headers=auth_headers)
    assert r.status_code == 200
    j = r.json()
    assert j["success"] is False
    assert "Payment not verified" in j["message"]
    order = store.get(order_id)
    assert order.paid is False
    assert order.status == "pending"


def test_verify_unknown_order_is_not_found(client: TestClient, auth_headers: dict, fake_paystack):
    r = client.post(VERIFY_URL, json={"reference": "ref_x", "orderId": "f" * 32}, headers=auth_headers)
    assert r.status_code == 404
    assert fake_paystack.verify_calls == []


def test_verify_other_users_order_rejected(client: TestClient, auth_headers: dict, fake_paystack):
    order_id, reference = _start_payment(client, auth_headers)
    fake_paystack.add_transaction(reference, order_id, 149999)
    other = register_and_login(client, "other@example.com")

    r = client.post(VERIFY_URL, json={"reference": reference, "orderId": order_id}, headers=other)
    assert r.status_code == 401


def test_verify_requires_session(client: TestClient):
    r = client.post(VERIFY_URL, json={"reference": "ref", "orderId": "x"})
    assert r.status_code == 401


def test_verify_provider_error_surfaces_message(client: TestClient, auth_headers: dict, store):
    order_id, _ = _start_payment(client, auth_headers)
    r = client.post(VERIFY_URL, json={"reference": "unknown_ref", "orderId": order_id}, headers=auth_headers)
    assert r.status_code == 500
    assert "Transaction reference not found" in r.json()["error"]
    assert store.get(order_id).paid is False


def test_verify_reference_of_another_order_not_applied(client: TestClient, auth_headers: dict, fake_paystack, store):
    order_id, reference = _start_payment(client, auth_headers)
    fake_paystack.add_transaction(reference, "another-order", 149999)

    r = client.post(VERIFY_URL, json={"reference": reference, "orderId": order_id}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["success"] is False
    assert store.get(order_id).paid is False


def test_verify_twice_is_idempotent(client: TestClient, auth_headers: dict, fake_paystack, store):
    order_id, reference = _start_payment(client, auth_headers)
    fake_paystack.add_transaction(reference, order_id, 149999)
    body = {"reference": reference, "orderId": order_id}

    first = client.post(VERIFY_URL, json=body, headers=auth_headers).json()
    second = client.post(VERIFY_URL, json=body, headers=auth_headers).json()
    assert first["success"] is True
    assert second["success"] is True
    assert first["order"]["paymentVerifiedAt"] == second["order"]["paymentVerifiedAt"]
    assert store.get(order_id).status == "processing"


def test_verify_then_webhook_converges(client: TestClient, auth_headers: dict, fake_paystack, store):
    order_id, reference = _start_payment(client, auth_headers)
    fake_paystack.add_transaction(reference, order_id, 149999)

    assert client.post(VERIFY_URL, json={"reference": reference, "orderId": order_id}, headers=auth_headers).json()["success"]
    r = signed_webhook(client, charge_success_event(order_id, reference, 149999))
    assert r.json() == {"received": True}

    order = store.get(order_id)
    assert order.paid is True
    assert order.status in ("processing", "paid")
    assert order.payment_reference == reference
    assert order.payment_data["cardLastFour"] == "4081"


def test_webhook_then_verify_converges(client: TestClient, auth_headers: dict, fake_paystack, store):
    order_id, reference = _start_payment(client, auth_headers)
    fake_paystack.add_transaction(reference, order_id, 149999)

    signed_webhook(client, charge_success_event(order_id, reference, 149999))
    r = client.post(VERIFY_URL, json={"reference": reference, "orderId": order_id}, headers=auth_headers)
    assert r.status_code == 200
    j = r.json()
    assert j["success"] is True
    assert j["order"]["paid"] is True
    assert j["order"]["status"] in ("processing", "paid")

    order = store.get(order_id)
    assert order.paid is True
    assert order.status == "paid"


def test_verify_on_cancelled_order_does_not_mark_paid(client: TestClient, auth_headers: dict, fake_paystack, store):
    order_id, reference = _start_payment(client, auth_headers)
    fake_paystack.add_transaction(reference, order_id, 149999)
    store.update_status(order_id, OrderStatus.CANCELLED)

    r = client.post(VERIFY_URL, json={"reference": reference, "orderId": order_id}, headers=auth_headers)
    assert r.status_code == 200
    assert r.json()["success"] is False
    order = store.get(order_id)
    assert order.paid is False
    assert order.status == "cancelled"


def test_verify_blank_reference_is_validation_error(client: TestClient, auth_headers: dict, fake_paystack):
    order_id, _ = _start_payment(client, auth_headers)
    r = client.post(VERIFY_URL, json={"reference": "   ", "orderId": order_id}, headers=auth_headers)
    assert r.status_code == 422
    assert fake_paystack.verify_calls == []
