# tests/test_contract_service.py
from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    StateConflictError,
    ValidationError,
)
from app.crud import crud_offer_session
from app.schemas.contract import ContractOfferCreate, PublicContractCreate
from app.services import notifications
from app.services.contract_service import ContractService
from tests.utils.account import create_account
from tests.utils.contractor import add_member, create_contractor


@pytest.fixture
def contracts(db, offer_service):
    return ContractService(db, offer_service)


@pytest.fixture
def contract(db, contracts):
    for user_id in ("customer", "hauler", "owner", "member"):
        create_account(db, user_id=user_id)
    contract_in = PublicContractCreate(
        title="Move 40 SCU", kind="Hauling", cost="40000", departure="Area18", destination="Lorville"
    )
    return contracts.create_contract(contract_in, "customer")


def offer_in(**overrides) -> ContractOfferCreate:
    fields = {"title": "I can do it", "kind": "Hauling", "cost": "35000"}
    fields.update(overrides)
    return ContractOfferCreate(**fields)


def test_create_and_list_contracts(db, contracts, contract):
    assert contract.status == "active"
    assert contract.cost == "40000"
    assert [c.id for c in contracts.list_contracts()] == [contract.id]
    with pytest.raises(NotFoundError):
        contracts.get_contract("pc_missing")


def test_offer_on_contract_opens_linked_session(db, contracts, contract, notifier):
    session = contracts.create_offer(contract.id, offer_in(), "hauler")

    assert session.customer_id == "customer"
    assert session.assigned_id == "hauler"
    assert crud_offer_session.get_contract_id(db, session.id) == contract.id

    current = crud_offer_session.get_current_offer(db, session)
    assert current.actor_id == "hauler"
    assert current.cost == "35000"
    assert current.departure == "Area18"
    assert notifier.types == [notifications.OFFER_CREATED]


def test_cannot_offer_on_own_contract(db, contracts, contract):
    with pytest.raises(ValidationError):
        contracts.create_offer(contract.id, offer_in(), "customer")


def test_inactive_contract(db, contracts, contract):
    contract.status = "closed"
    db.commit()
    with pytest.raises(StateConflictError):
        contracts.create_offer(contract.id, offer_in(), "hauler")


def test_expired_contract(db, contracts, contract):
    contract.expiration = datetime.now(timezone.utc) - timedelta(days=1)
    db.commit()
    with pytest.raises(StateConflictError):
        contracts.create_offer(contract.id, offer_in(), "hauler")


def test_contractor_offer_needs_manage_orders(db, contracts, contract):
    org = create_contractor(db, "owner")
    add_member(db, org, "member")

    with pytest.raises(PermissionDeniedError):
        contracts.create_offer(contract.id, offer_in(contractor_id=org.contractor_id), "member")

    session = contracts.create_offer(contract.id, offer_in(contractor_id=org.contractor_id), "owner")
    assert session.contractor_id == org.contractor_id
    assert session.assigned_id is None


def test_cannot_offer_on_own_contract_through_contractor(db, contracts, contract):
    org = create_contractor(db, "customer")

    with pytest.raises(ValidationError):
        contracts.create_offer(contract.id, offer_in(contractor_id=org.contractor_id), "customer")
    assert crud_offer_session.list_by(db, customer_id="customer") == []


def test_archived_contractor(db, contracts, contract):
    org = create_contractor(db, "owner")
    org.archived = True
    db.commit()

    with pytest.raises(StateConflictError):
        contracts.create_offer(contract.id, offer_in(contractor_id=org.contractor_id), "owner")
