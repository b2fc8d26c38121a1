# tests/test_offer_merge.py
import pytest

from app.core.exceptions import (
    OfferNotActiveError,
    OfferNotFoundError,
    OfferPermissionError,
    OfferValidationError,
    ValidationError,
)
from app.crud import crud_offer_session, crud_public_contract
from app.models.service import Service
from app.schemas.offer import OfferResponseIn
from app.services import notifications
from app.services.offer_session_service import compose_merged_terms
from tests.utils.account import create_account
from tests.utils.market import create_listing
from tests.utils.offer import open_offer


@pytest.fixture
def parties(db):
    for user_id in ("customer", "customer2", "seller", "seller2"):
        create_account(db, user_id=user_id)


def snapshot(db, session_id):
    session = crud_offer_session.get(db, session_id)
    db.refresh(session)
    return (
        session.status,
        session.current_offer_id,
        session.merged_into_id,
        len(crud_offer_session.list_offers(db, session_id)),
    )


def test_merge_sums_costs_and_cancels_sources(db, offer_service, notifier, parties):
    a = open_offer(db, "customer", assigned_id="seller", cost="100", collateral="10", title="Haul A")
    b = open_offer(db, "customer", assigned_id="seller", cost="250.5", collateral="5", title="Haul B")

    merged, source_ids = offer_service.merge_offers([a.id, b.id], "seller")

    assert source_ids == [a.id, b.id]
    assert merged.status == "active"
    assert merged.customer_id == "customer"
    assert merged.assigned_id == "seller"

    current = crud_offer_session.get_current_offer(db, merged)
    assert current.cost == "350.5"
    assert current.collateral == "15"
    assert current.title == "Merged offer (2 sessions)"
    assert "Haul A" in current.description and "Haul B" in current.description
    assert current.actor_id == "seller"

    for source in (a, b):
        db.refresh(source)
        assert source.status == "cancelled"
        assert source.merged_into_id == merged.id
        assert crud_offer_session.get_current_offer(db, source).status == "cancelled"

    assert notifier.types == [notifications.OFFER_MERGED]


def test_merge_is_atomic_on_payment_type_mismatch(db, offer_service, notifier, parties):
    a = open_offer(db, "customer", assigned_id="seller", payment_type="one-time")
    b = open_offer(db, "customer", assigned_id="seller", payment_type="hourly")
    before = (snapshot(db, a.id), snapshot(db, b.id))

    with pytest.raises(OfferValidationError) as exc_info:
        offer_service.merge_offers([a.id, b.id], "seller")

    assert exc_info.value.validation_type == "DIFFERENT_PAYMENT_TYPE"
    assert (snapshot(db, a.id), snapshot(db, b.id)) == before
    assert notifier.events == []


def test_merge_rejects_different_customers(db, offer_service, parties):
    a = open_offer(db, "customer", assigned_id="seller")
    b = open_offer(db, "customer2", assigned_id="seller")

    with pytest.raises(OfferValidationError) as exc_info:
        offer_service.merge_offers([a.id, b.id], "seller")
    assert exc_info.value.validation_type == "DIFFERENT_CUSTOMER"


def test_merge_rejects_service_bound_offers(db, offer_service, parties):
    service = Service(user_id="seller", title="Hauling")
    db.add(service)
    db.commit()
    a = open_offer(db, "customer", assigned_id="seller", service_id=service.service_id)
    b = open_offer(db, "customer", assigned_id="seller")

    with pytest.raises(OfferValidationError) as exc_info:
        offer_service.merge_offers([a.id, b.id], "seller")
    assert exc_info.value.validation_type == "HAS_SERVICES"


def test_customer_cannot_merge(db, offer_service, parties):
    a = open_offer(db, "customer", assigned_id="seller")
    b = open_offer(db, "customer", assigned_id="seller")

    with pytest.raises(OfferPermissionError):
        offer_service.merge_offers([a.id, b.id], "customer")


def test_seller_must_own_every_session(db, offer_service, parties):
    a = open_offer(db, "customer", assigned_id="seller")
    b = open_offer(db, "customer", assigned_id="seller2")

    # Authorization is checked before field compatibility
    with pytest.raises(OfferPermissionError):
        offer_service.merge_offers([a.id, b.id], "seller")


def test_merge_input_validation_order(db, offer_service, parties):
    a = open_offer(db, "customer", assigned_id="seller")
    b = open_offer(db, "customer", assigned_id="seller")

    with pytest.raises(ValidationError):
        offer_service.merge_offers([a.id], "seller")
    with pytest.raises(ValidationError):
        offer_service.merge_offers([a.id, a.id], "seller")
    with pytest.raises(ValidationError):
        offer_service.merge_offers(a.id, "seller")
    with pytest.raises(OfferNotFoundError):
        offer_service.merge_offers([a.id, "ofs_missing"], "seller")

    offer_service.respond(b.id, "customer", OfferResponseIn(status="cancelled"))
    with pytest.raises(OfferNotActiveError):
        offer_service.merge_offers([a.id, b.id], "seller")


def test_merge_unions_market_listings_and_contract_links(db, offer_service, parties):
    ore = create_listing(db, seller_id="seller", quantity=10)
    gems = create_listing(db, seller_id="seller", quantity=10)
    a = open_offer(
        db, "customer", assigned_id="seller",
        market_listings=[{"listing_id": ore.listing_id, "quantity": 2}],
    )
    b = open_offer(
        db, "customer", assigned_id="seller",
        market_listings=[
            {"listing_id": ore.listing_id, "quantity": 3},
            {"listing_id": gems.listing_id, "quantity": 1},
        ],
    )
    contract = crud_public_contract.create(
        db, customer_id="customer", title="Haul", kind="Hauling", cost="100", payment_type="one-time"
    )
    crud_offer_session.link_contract(db, contract_id=contract.id, session_id=a.id)
    db.commit()

    merged, _ = offer_service.merge_offers([a.id, b.id], "seller")

    current = crud_offer_session.get_current_offer(db, merged)
    quantities = {m.listing_id: m.quantity for m in current.market_listings}
    assert quantities == {ore.listing_id: 5, gems.listing_id: 1}
    assert crud_offer_session.get_contract_id(db, merged.id) == contract.id


def test_compose_merged_terms_keeps_shared_fields(db, parties):
    a = open_offer(db, "customer", assigned_id="seller", title="Haul", kind="Hauling", destination="Lorville")
    b = open_offer(db, "customer", assigned_id="seller", title="Haul", kind="Hauling", departure="Area18")

    terms, listings = compose_merged_terms(
        [crud_offer_session.get_current_offer(db, s) for s in (a, b)]
    )

    assert terms["title"] == "Haul"
    assert terms["kind"] == "Hauling"
    assert terms["cost"] == "200"
    assert terms["departure"] == "Area18"
    assert terms["destination"] == "Lorville"
    assert listings == []


def test_merge_rejects_total_beyond_amount_bounds(db, offer_service, notifier, parties):
    a = open_offer(db, "customer", assigned_id="seller", cost="99999999999999")
    b = open_offer(db, "customer", assigned_id="seller", cost="1")
    before = (snapshot(db, a.id), snapshot(db, b.id))

    with pytest.raises(OfferValidationError) as exc_info:
        offer_service.merge_offers([a.id, b.id], "seller")

    assert exc_info.value.validation_type == "AMOUNT_TOO_LARGE"
    assert (snapshot(db, a.id), snapshot(db, b.id)) == before
    assert notifier.events == []
