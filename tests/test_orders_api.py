"""Purchaser order reads."""
from fastapi.testclient import TestClient

from conftest import checkout_body, register_and_login


def test_user_orders_lists_only_own_orders(client: TestClient, auth_headers: dict):
    client.post("/api/checkout", json=checkout_body("call_rep"), headers=auth_headers)
    client.post("/api/checkout", json=checkout_body("debit_card"), headers=auth_headers)
    other = register_and_login(client, "other@example.com")
    client.post("/api/checkout", json=checkout_body("call_rep", email="other@example.com"), headers=other)

    r = client.get("/api/orders/user", headers=auth_headers)
    assert r.status_code == 200
    j = r.json()
    assert j["total"] == 2
    assert {o["userEmail"] for o in j["orders"]} == {"buyer@example.com"}
    assert {o["paymentMethod"] for o in j["orders"]} == {"call_rep", "debit_card"}


def test_get_order_returns_snapshot(client: TestClient, auth_headers: dict):
    order_id = client.post("/api/checkout", json=checkout_body("call_rep"), headers=auth_headers).json()["orderId"]
    r = client.get(f"/api/orders/{order_id}", headers=auth_headers)
    assert r.status_code == 200
    j = r.json()
    assert j["id"] == order_id
    assert j["status"] == "pending"
    assert j["paid"] is False
    assert j["total"] == 1499.99
    assert j["items"][0] == {
        "productId": "p-1",
        "name": "Ankara Shirt",
        "price": 999.99,
        "quantity": 1,
        "image": None,
    }
    assert j["address"]["streetAddress"] == "12 Marina Road"


def test_get_order_of_other_user_is_not_found(client: TestClient, auth_headers: dict):
    order_id = client.post("/api/checkout", json=checkout_body("call_rep"), headers=auth_headers).json()["orderId"]
    other = register_and_login(client, "other@example.com")
    assert client.get(f"/api/orders/{order_id}", headers=other).status_code == 404
