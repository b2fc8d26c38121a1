# tests/api/v1/test_contracts_api.py
import pytest

from tests.utils.account import create_account
from tests.utils.auth import get_user_authentication_headers


@pytest.fixture
def contract_id(test_client, db):
    create_account(db, user_id="customer")
    create_account(db, user_id="hauler")
    response = test_client.post(
        "/api/v1/contracts",
        headers=get_user_authentication_headers("customer"),
        json={
            "title": "Move 40 SCU",
            "kind": "Hauling",
            "cost": "40000",
            "departure": "Area18",
            "destination": "Lorville",
        },
    )
    assert response.status_code == 201
    return response.json()["data"]["contract_id"]


def test_list_and_get_contract(test_client, contract_id):
    headers = get_user_authentication_headers("hauler")

    listed = test_client.get("/api/v1/contracts", headers=headers)
    assert [c["id"] for c in listed.json()["data"]] == [contract_id]

    fetched = test_client.get(f"/api/v1/contracts/{contract_id}", headers=headers)
    assert fetched.status_code == 200
    assert fetched.json()["data"]["destination"] == "Lorville"

    missing = test_client.get("/api/v1/contracts/pc_missing", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["error"] == "CONTRACT_NOT_FOUND"


def test_offer_on_contract(test_client, contract_id):
    response = test_client.post(
        f"/api/v1/contracts/{contract_id}/offers",
        headers=get_user_authentication_headers("hauler"),
        json={"title": "On it", "kind": "Hauling", "cost": "38000"},
    )
    assert response.status_code == 201
    session_id = response.json()["data"]["session_id"]

    details = test_client.get(
        f"/api/v1/offer/{session_id}", headers=get_user_authentication_headers("customer")
    )
    data = details.json()["data"]
    assert data["contract_id"] == contract_id
    assert data["offers"][0]["departure"] == "Area18"


def test_offer_on_own_contract(test_client, contract_id):
    response = test_client.post(
        f"/api/v1/contracts/{contract_id}/offers",
        headers=get_user_authentication_headers("customer"),
        json={"title": "Self", "kind": "Hauling", "cost": "1"},
    )
    assert response.status_code == 400
