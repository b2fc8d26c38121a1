# tests/test_offer_sessions.py
import pytest

from app.core.exceptions import (
    NotFoundError,
    OfferNotActiveError,
    OfferNotFoundError,
    OfferPermissionError,
    StateConflictError,
    ValidationError,
)
from app.crud import crud_offer_session, crud_order
from app.models.service import Service
from app.schemas.offer import OfferCreate, OfferResponseIn
from app.services import notifications
from tests.utils.account import create_account
from tests.utils.contractor import add_member, create_contractor, create_role
from tests.utils.market import create_listing
from tests.utils.offer import offer_terms, open_offer


@pytest.fixture
def parties(db):
    create_account(db, user_id="customer")
    create_account(db, user_id="seller")
    create_account(db, user_id="stranger")


def counter(**terms) -> OfferResponseIn:
    return OfferResponseIn(status="counteroffered", **offer_terms(**terms))


# --- Opening ---

def test_create_offer_opens_active_session(db, offer_service, notifier, parties):
    offer_in = OfferCreate(assigned_id="seller", **offer_terms(cost="150000.50"))

    session, offer = offer_service.create_offer(offer_in, "customer")

    assert session.status == "active"
    assert session.customer_id == "customer"
    assert session.current_offer_id == offer.id
    assert offer.actor_id == "customer"
    assert offer.status == "pending"
    assert offer.cost == "150000.5"
    assert notifier.types == [notifications.OFFER_CREATED]


def test_create_offer_requires_exactly_one_counterparty(db, offer_service, parties):
    create_account(db, user_id="owner")
    org = create_contractor(db, "owner")

    with pytest.raises(ValidationError):
        offer_service.create_offer(OfferCreate(**offer_terms()), "customer")
    with pytest.raises(ValidationError):
        offer_service.create_offer(
            OfferCreate(assigned_id="seller", contractor_id=org.contractor_id, **offer_terms()),
            "customer",
        )


def test_cannot_offer_to_yourself(db, offer_service, parties):
    with pytest.raises(ValidationError):
        offer_service.create_offer(OfferCreate(assigned_id="customer", **offer_terms()), "customer")


def test_unknown_assigned_user(db, offer_service, parties):
    with pytest.raises(NotFoundError):
        offer_service.create_offer(OfferCreate(assigned_id="ghost", **offer_terms()), "customer")


def test_seller_initiated_offer_needs_seller_side(db, offer_service, parties):
    # The seller may open an offer to a customer...
    session, offer = offer_service.create_offer(
        OfferCreate(customer_id="customer", assigned_id="seller", **offer_terms()), "seller"
    )
    assert session.customer_id == "customer"
    assert offer.actor_id == "seller"

    # ...but a third party may not
    with pytest.raises(OfferPermissionError):
        offer_service.create_offer(
            OfferCreate(customer_id="customer", assigned_id="seller", **offer_terms()),
            "stranger",
        )


def test_market_listing_validation(db, offer_service, parties):
    listing = create_listing(db, seller_id="seller", quantity=2)
    inactive = create_listing(db, seller_id="seller", status="inactive")

    with pytest.raises(ValidationError):
        offer_service.create_offer(
            OfferCreate(
                assigned_id="seller",
                market_listings=[{"listing_id": listing.listing_id, "quantity": 3}],
                **offer_terms(),
            ),
            "customer",
        )
    with pytest.raises(ValidationError):
        offer_service.create_offer(
            OfferCreate(
                assigned_id="seller",
                market_listings=[{"listing_id": inactive.listing_id, "quantity": 1}],
                **offer_terms(),
            ),
            "customer",
        )

    session, offer = offer_service.create_offer(
        OfferCreate(
            assigned_id="seller",
            market_listings=[{"listing_id": listing.listing_id, "quantity": 2}],
            **offer_terms(),
        ),
        "customer",
    )
    assert [(m.listing_id, m.quantity) for m in offer.market_listings] == [(listing.listing_id, 2)]


def test_service_must_belong_to_seller(db, offer_service, parties):
    mine = Service(user_id="seller", title="Hauling")
    theirs = Service(user_id="stranger", title="Mining")
    db.add_all([mine, theirs])
    db.commit()

    with pytest.raises(ValidationError):
        offer_service.create_offer(
            OfferCreate(assigned_id="seller", **offer_terms(service_id=theirs.service_id)),
            "customer",
        )
    session, offer = offer_service.create_offer(
        OfferCreate(assigned_id="seller", **offer_terms(service_id=mine.service_id)),
        "customer",
    )
    assert offer.service_id == mine.service_id


# --- Turn-taking ---

def test_turn_taking(db, offer_service, parties):
    session = open_offer(db, "customer", assigned_id="seller")

    # The customer made the last revision, so the customer cannot respond
    with pytest.raises(OfferPermissionError):
        offer_service.respond(session.id, "customer", counter(cost="90"))

    offer_service.respond(session.id, "seller", counter(cost="120"))

    # Now it is the customer's turn and the seller must wait
    with pytest.raises(OfferPermissionError):
        offer_service.respond(session.id, "seller", counter(cost="130"))

    result = offer_service.respond(session.id, "customer", OfferResponseIn(status="accepted"))
    assert result["status"] == "accepted"


def test_counter_offer_appends_revision(db, offer_service, notifier, parties):
    session = open_offer(db, "customer", assigned_id="seller")

    result = offer_service.respond(session.id, "seller", counter(cost="125.00", title="Escort x2"))

    assert result["status"] == "active"
    revisions = crud_offer_session.list_offers(db, session.id)
    assert [r.sequence for r in revisions] == [1, 2]
    latest = revisions[-1]
    assert latest.actor_id == "seller"
    assert latest.cost == "125"
    assert latest.title == "Escort x2"
    assert latest.status == "pending"
    db.refresh(session)
    assert session.current_offer_id == latest.id
    assert notifier.types == [notifications.OFFER_COUNTERED]


def test_counter_offer_inherits_unset_terms(db, offer_service, parties):
    session = open_offer(db, "customer", assigned_id="seller", departure="Area18")

    offer_service.respond(
        session.id,
        "seller",
        OfferResponseIn(status="counteroffered", title="Escort", kind="Escort", cost="80"),
    )

    latest = crud_offer_session.list_offers(db, session.id)[-1]
    assert latest.departure == "Area18"
    assert latest.description == "Two fighters, one trip"


def test_counter_offer_requires_terms():
    with pytest.raises(ValueError):
        OfferResponseIn(status="counteroffered", title="Escort")


def test_stranger_cannot_respond(db, offer_service, parties):
    session = open_offer(db, "customer", assigned_id="seller")
    with pytest.raises(OfferPermissionError):
        offer_service.respond(session.id, "stranger", OfferResponseIn(status="rejected"))


def test_missing_session(db, offer_service, parties):
    with pytest.raises(OfferNotFoundError):
        offer_service.respond("ofs_missing", "seller", OfferResponseIn(status="accepted"))


def test_contractor_member_needs_manage_orders(db, offer_service, parties):
    create_account(db, user_id="owner")
    create_account(db, user_id="member")
    create_account(db, user_id="clerk")
    org = create_contractor(db, "owner")
    clerk_role = create_role(db, org.contractor_id, "Clerk", 5, manage_orders=True)
    add_member(db, org, "member")
    add_member(db, org, "clerk", clerk_role.role_id)

    session = open_offer(db, "customer", contractor_id=org.contractor_id)

    with pytest.raises(OfferPermissionError):
        offer_service.respond(session.id, "member", counter())
    result = offer_service.respond(session.id, "clerk", counter(cost="200"))
    assert result["status"] == "active"


def test_cannot_open_offer_to_own_contractor(db, offer_service, parties):
    create_account(db, user_id="owner")
    org = create_contractor(db, "owner")
    clerk_role = create_role(db, org.contractor_id, "Clerk", 5, manage_orders=True)
    add_member(db, org, "customer", clerk_role.role_id)

    with pytest.raises(ValidationError):
        offer_service.create_offer(
            OfferCreate(contractor_id=org.contractor_id, **offer_terms()), "customer"
        )
    assert crud_offer_session.list_by(db, customer_id="customer") == []


def test_customer_never_answers_own_revision_as_seller(db, offer_service, parties):
    create_account(db, user_id="owner")
    org = create_contractor(db, "owner")
    session = open_offer(db, "customer", contractor_id=org.contractor_id)

    # Gains seller-side rights after the session was opened
    clerk_role = create_role(db, org.contractor_id, "Clerk", 5, manage_orders=True)
    add_member(db, org, "customer", clerk_role.role_id)
    current = crud_offer_session.get_current_offer(db, session)

    assert not offer_service.can_respond_to_offer(session, current, "customer")
    assert offer_service.can_respond_to_offer(session, current, "owner")


# --- Terminal states ---

def test_accept_materializes_order(db, offer_service, notifier, parties):
    session = open_offer(db, "customer", assigned_id="seller", cost="100", collateral="25")

    result = offer_service.respond(session.id, "seller", OfferResponseIn(status="accepted"))

    order = crud_order.get_by_session(db, session.id)
    assert result["order_id"] == order.order_id
    assert order.status == "not-started"
    assert order.cost == "100"
    assert order.collateral == "25"
    assert order.customer_id == "customer"
    assert order.assigned_id == "seller"
    assert notifier.types == [notifications.OFFER_ACCEPTED, notifications.ORDER_CREATED]

    latest = crud_offer_session.list_offers(db, session.id)[-1]
    assert latest.status == "accepted"
    assert latest.actor_id == "seller"


@pytest.mark.parametrize("terminal", ["accepted", "rejected", "cancelled"])
def test_terminal_sessions_are_immutable(db, offer_service, parties, terminal):
    session = open_offer(db, "customer", assigned_id="seller")
    actor = "customer" if terminal == "cancelled" else "seller"
    offer_service.respond(session.id, actor, OfferResponseIn(status=terminal))

    revisions_before = len(crud_offer_session.list_offers(db, session.id))
    for status in ("counteroffered", "accepted", "rejected", "cancelled"):
        response = counter() if status == "counteroffered" else OfferResponseIn(status=status)
        for user in ("customer", "seller"):
            with pytest.raises(OfferNotActiveError):
                offer_service.respond(session.id, user, response)

    db.refresh(session)
    assert session.status == terminal
    assert len(crud_offer_session.list_offers(db, session.id)) == revisions_before


def test_cancel_is_exempt_from_turn_taking(db, offer_service, notifier, parties):
    session = open_offer(db, "customer", assigned_id="seller")

    # Not the customer's turn, but cancelling is allowed
    result = offer_service.respond(session.id, "customer", OfferResponseIn(status="cancelled"))

    assert result["status"] == "cancelled"
    assert result["order_id"] is None
    assert notifier.types == [notifications.OFFER_CANCELLED]


def test_compare_and_swap_rejects_stale_pointer(db, parties):
    session = open_offer(db, "customer", assigned_id="seller")
    stale = session.current_offer_id

    moved = crud_offer_session.advance_current_offer(
        db, session_id=session.id, expected_offer_id="ofr_other", new_offer_id=stale
    )
    assert moved is False

    db.rollback()
    db.refresh(session)
    assert session.current_offer_id == stale


def test_can_respond_to_offer(db, offer_service, parties):
    session = open_offer(db, "customer", assigned_id="seller")
    current = crud_offer_session.get_current_offer(db, session)

    assert offer_service.can_respond_to_offer(session, current, "seller")
    assert not offer_service.can_respond_to_offer(session, current, "customer")
    assert not offer_service.can_respond_to_offer(session, None, "seller")


def test_state_conflict_for_missing_revision(db, offer_service, parties):
    session = crud_offer_session.create_session(db, customer_id="customer", assigned_id="seller")
    db.commit()

    with pytest.raises(StateConflictError):
        offer_service.respond(session.id, "customer", OfferResponseIn(status="cancelled"))
