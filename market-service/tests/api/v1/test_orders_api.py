# tests/api/v1/test_orders_api.py
import pytest

from app.schemas.offer import OfferResponseIn
from tests.utils.account import create_account
from tests.utils.auth import get_user_authentication_headers
from tests.utils.offer import open_offer


@pytest.fixture
def order_id(db, offer_service):
    create_account(db, user_id="customer")
    create_account(db, user_id="seller")
    create_account(db, user_id="stranger")
    session = open_offer(db, "customer", assigned_id="seller")
    result = offer_service.respond(session.id, "seller", OfferResponseIn(status="accepted"))
    return result["order_id"]


def test_get_order(test_client, order_id):
    response = test_client.get(
        f"/api/v1/orders/{order_id}", headers=get_user_authentication_headers("seller")
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "not-started"
    assert data["customer_id"] == "customer"
    assert data["cost"] == "100"


def test_order_hidden_from_strangers(test_client, order_id):
    response = test_client.get(
        f"/api/v1/orders/{order_id}", headers=get_user_authentication_headers("stranger")
    )
    assert response.status_code == 403


def test_missing_order(test_client, order_id):
    response = test_client.get(
        "/api/v1/orders/ord_missing", headers=get_user_authentication_headers("seller")
    )
    assert response.status_code == 404
    assert response.json()["error"] == "ORDER_NOT_FOUND"


def test_seller_progresses_order(test_client, order_id):
    headers = get_user_authentication_headers("seller")
    for status in ("in-progress", "fulfilled"):
        response = test_client.put(
            f"/api/v1/orders/{order_id}/status", headers=headers, json={"status": status}
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"] == status

    reopened = test_client.put(
        f"/api/v1/orders/{order_id}/status", headers=headers, json={"status": "in-progress"}
    )
    assert reopened.status_code == 409
    assert reopened.json()["error"] == "ORDER_CLOSED"


def test_customer_can_only_cancel(test_client, order_id):
    headers = get_user_authentication_headers("customer")

    fulfil = test_client.put(
        f"/api/v1/orders/{order_id}/status", headers=headers, json={"status": "fulfilled"}
    )
    assert fulfil.status_code == 403

    cancel = test_client.put(
        f"/api/v1/orders/{order_id}/status", headers=headers, json={"status": "cancelled"}
    )
    assert cancel.status_code == 200
    assert cancel.json()["data"]["status"] == "cancelled"


def test_invalid_status(test_client, order_id):
    response = test_client.put(
        f"/api/v1/orders/{order_id}/status",
        headers=get_user_authentication_headers("seller"),
        json={"status": "shipped"},
    )
    assert response.status_code == 400
