# app/services/offer_session_service.py
"""
Offer Session State Machine.

A session is a turn-based negotiation between a customer and one seller side.
Every response appends an immutable revision and moves the session's
current_offer_id pointer; accepted, rejected and cancelled are terminal.

Writes for one session are serialized three ways: the in-process KeyedLock,
SELECT ... FOR UPDATE on the session row, and a compare-and-swap update of
(status, current_offer_id). Notifications are emitted only after commit.
"""
import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from app.core.exceptions import (
    NotFoundError,
    OfferNotActiveError,
    OfferNotFoundError,
    OfferPermissionError,
    OfferValidationError,
    PermissionDeniedError,
    StateConflictError,
    ValidationError,
)
from app.crud import (
    crud_account,
    crud_contractor,
    crud_market_listing,
    crud_offer_session,
    crud_public_contract,
    crud_service,
)
from app.models.offer_session import OfferSession, OrderOffer
from app.models.order import Order
from app.schemas.offer import (
    OfferCreate,
    OfferMarketListingIn,
    OfferResponseIn,
    OfferRevision,
    OfferSearchQuery,
    OfferSessionDetails,
    OfferSessionStub,
)
from app.services import notifications
from app.services.locks import KeyedLock
from app.services.notifications import OfferNotifier
from app.services.order_service import OrderService
from app.services.permissions import PermissionEvaluator
from app.utils.amounts import amount_in_bounds, format_amount, sum_amounts

logger = logging.getLogger(__name__)

TERM_FIELDS = (
    "title",
    "description",
    "kind",
    "cost",
    "collateral",
    "payment_type",
    "departure",
    "destination",
    "service_id",
)

RESPONSE_EVENTS = {
    "counteroffered": notifications.OFFER_COUNTERED,
    "accepted": notifications.OFFER_ACCEPTED,
    "rejected": notifications.OFFER_REJECTED,
    "cancelled": notifications.OFFER_CANCELLED,
}

MERGED_KIND_FALLBACK = "Custom"


def terms_of(revision: OrderOffer) -> dict:
    return {name: getattr(revision, name) for name in TERM_FIELDS}


def listings_of(revision: OrderOffer) -> List[Tuple[str, int]]:
    return [(item.listing_id, item.quantity) for item in revision.market_listings]


def compose_merged_terms(revisions: Sequence[OrderOffer]) -> Tuple[dict, List[Tuple[str, int]]]:
    """
    Combine the current revisions of the merged sessions into one set of terms.

    Amounts are summed exactly, listings are unioned with their quantities
    summed, and text fields fall back to a generic value when they disagree.
    """
    titles = [r.title for r in revisions]
    title = titles[0] if len(set(titles)) == 1 else f"Merged offer ({len(revisions)} sessions)"

    kinds = {r.kind for r in revisions}
    kind = revisions[0].kind if len(kinds) == 1 else MERGED_KIND_FALLBACK

    description = "\n\n".join(
        f"## {r.title}\n{r.description}".rstrip() for r in revisions
    )

    quantities: "OrderedDict[str, int]" = OrderedDict()
    for revision in revisions:
        for listing_id, quantity in listings_of(revision):
            quantities[listing_id] = quantities.get(listing_id, 0) + quantity

    terms = {
        "title": title,
        "description": description,
        "kind": kind,
        "cost": sum_amounts(r.cost for r in revisions),
        "collateral": sum_amounts(r.collateral for r in revisions),
        "payment_type": revisions[0].payment_type,
        "departure": next((r.departure for r in revisions if r.departure), None),
        "destination": next((r.destination for r in revisions if r.destination), None),
        "service_id": None,
    }
    return terms, list(quantities.items())


class OfferSessionService:
    def __init__(
        self,
        db: Session,
        permissions: Optional[PermissionEvaluator] = None,
        notifier: Optional[OfferNotifier] = None,
        locks: Optional[KeyedLock] = None,
        orders: Optional[OrderService] = None,
    ):
        self.db = db
        self.permissions = permissions or PermissionEvaluator(db)
        self.notifier = notifier or OfferNotifier()
        self.locks = locks or KeyedLock()
        self.orders = orders or OrderService(db, self.permissions, self.notifier)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _current_offer(self, session: OfferSession) -> Optional[OrderOffer]:
        current = crud_offer_session.get_current_offer(self.db, session)
        if current is None:
            current = crud_offer_session.get_most_recent_offer(self.db, session.id)
        return current

    def _validate_service(
        self, service_id: Optional[str], assigned_id: Optional[str], contractor_id: Optional[str]
    ) -> None:
        if not service_id:
            return
        service = crud_service.get(self.db, service_id)
        if service is None:
            raise ValidationError(f"Invalid service: {service_id}")
        owner_matches = (
            service.contractor_id == contractor_id
            if contractor_id
            else service.user_id == assigned_id
        )
        if not owner_matches:
            raise ValidationError("Service does not belong to the seller of this offer")

    def _validate_market_listings(self, items: Iterable[OfferMarketListingIn]) -> List[Tuple[str, int]]:
        listings = []
        for item in items:
            listing = crud_market_listing.get(self.db, item.listing_id)
            if listing is None:
                raise ValidationError(f"Invalid market listing: {item.listing_id}")
            if listing.status != "active":
                raise ValidationError(f"Market listing {item.listing_id} is not active")
            if listing.quantity_available < item.quantity:
                raise ValidationError(
                    f"Insufficient stock for market listing {item.listing_id}"
                )
            listings.append((item.listing_id, item.quantity))
        return listings

    # ------------------------------------------------------------------
    # Opening a session
    # ------------------------------------------------------------------

    def open_session(
        self,
        *,
        customer_id: str,
        assigned_id: Optional[str],
        contractor_id: Optional[str],
        actor_id: str,
        terms: dict,
        market_listings: Iterable[Tuple[str, int]] = (),
    ) -> Tuple[OfferSession, OrderOffer]:
        """Create a session and its first revision. Flushes, does not commit."""
        session = crud_offer_session.create_session(
            self.db,
            customer_id=customer_id,
            assigned_id=assigned_id,
            contractor_id=contractor_id,
        )
        offer = crud_offer_session.insert_offer(
            self.db,
            session_id=session.id,
            sequence=1,
            actor_id=actor_id,
            status="pending",
            terms=terms,
            market_listings=market_listings,
        )
        session.current_offer_id = offer.id
        self.db.flush()
        return session, offer

    def create_offer(self, offer_in: OfferCreate, actor_id: str) -> Tuple[OfferSession, OrderOffer]:
        customer_id = offer_in.customer_id or actor_id
        assigned_id = offer_in.assigned_id
        contractor_id = offer_in.contractor_id

        if bool(assigned_id) == bool(contractor_id):
            raise ValidationError("Exactly one of assigned_id or contractor_id is required")

        if assigned_id:
            if assigned_id == customer_id:
                raise ValidationError("You cannot open an offer to yourself")
            if crud_account.get(self.db, assigned_id) is None:
                raise NotFoundError("Assigned user not found", error_code="USER_NOT_FOUND")
        else:
            contractor = crud_contractor.get(self.db, contractor_id)
            if contractor is None:
                raise NotFoundError("Contractor not found", error_code="CONTRACTOR_NOT_FOUND")
            if contractor.archived:
                raise StateConflictError("Contractor is archived", error_code="CONTRACTOR_ARCHIVED")
            if self.permissions.negotiates_for(contractor_id, customer_id):
                raise ValidationError(
                    "You cannot open an offer to a contractor you negotiate for"
                )

        if customer_id != actor_id:
            if crud_account.get(self.db, customer_id) is None:
                raise NotFoundError("Customer not found", error_code="USER_NOT_FOUND")
            if not self.permissions.is_seller_for(assigned_id, contractor_id, actor_id):
                raise OfferPermissionError(
                    "Only the seller may open an offer on behalf of a customer"
                )

        self._validate_service(offer_in.service_id, assigned_id, contractor_id)
        listings = self._validate_market_listings(offer_in.market_listings)
        terms = self._terms_from_input(offer_in)

        try:
            session, offer = self.open_session(
                customer_id=customer_id,
                assigned_id=assigned_id,
                contractor_id=contractor_id,
                actor_id=actor_id,
                terms=terms,
                market_listings=listings,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(session)
        logger.info(f"Offer session {session.id} opened by {actor_id}")
        self.notifier.emit(notifications.OFFER_CREATED, session, actor_id=actor_id)
        return session, offer

    @staticmethod
    def _terms_from_input(terms_in, fallback: Optional[OrderOffer] = None) -> dict:
        """Terms dict from a request body; unset optional fields inherit from fallback."""
        terms = {}
        for name in TERM_FIELDS:
            value = getattr(terms_in, name, None)
            if value is None and fallback is not None:
                value = getattr(fallback, name)
            if name in ("cost", "collateral") and value is not None:
                value = format_amount(value)
            terms[name] = value
        if terms["description"] is None:
            terms["description"] = ""
        if terms["collateral"] is None:
            terms["collateral"] = "0"
        if terms["payment_type"] is None:
            terms["payment_type"] = "one-time"
        return terms

    # ------------------------------------------------------------------
    # Responding
    # ------------------------------------------------------------------

    def can_respond_to_offer(
        self, session: OfferSession, current: Optional[OrderOffer], user_id: str
    ) -> bool:
        """It is the user's turn when the latest revision came from the other party."""
        if not session.is_active or current is None:
            return False
        if current.actor_id == session.customer_id:
            # The customer never answers their own proposal as the seller
            return user_id != session.customer_id and self.permissions.is_seller_side(
                session, user_id
            )
        return user_id == session.customer_id

    def respond(self, session_id: str, user_id: str, response: OfferResponseIn) -> dict:
        with self.locks.hold(session_id):
            try:
                session, revision, order, order_created = self._respond_locked(
                    session_id, user_id, response
                )
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(session)
        logger.info(
            f"Offer session {session_id}: {response.status} by {user_id} "
            f"(revision {revision.id})"
        )
        self.notifier.emit(RESPONSE_EVENTS[response.status], session, actor_id=user_id)
        if order is not None and order_created:
            self.notifier.emit(notifications.ORDER_CREATED, order, actor_id=user_id)

        return {
            "result": "Success",
            "session_id": session.id,
            "status": session.status,
            "order_id": order.order_id if order is not None else None,
        }

    def _respond_locked(
        self, session_id: str, user_id: str, response: OfferResponseIn
    ) -> Tuple[OfferSession, OrderOffer, Optional[Order], bool]:
        session = crud_offer_session.get_for_update(self.db, session_id)
        if session is None:
            raise OfferNotFoundError("Offer session not found")
        if not session.is_active:
            raise OfferNotActiveError("Offer session is no longer active")
        if not self.permissions.is_related(session, user_id):
            raise OfferPermissionError("You are not a party to this offer")

        current = self._current_offer(session)
        if response.status != "cancelled" and not self.can_respond_to_offer(
            session, current, user_id
        ):
            raise OfferPermissionError("It is not your turn to respond to this offer")

        if response.status == "counteroffered":
            self._validate_service(response.service_id, session.assigned_id, session.contractor_id)
            if response.market_listings:
                listings = self._validate_market_listings(response.market_listings)
            else:
                listings = listings_of(current) if current is not None else []
            terms = self._terms_from_input(response, fallback=current)
            revision_status = "pending"
            session_status = "active"
        else:
            if current is None:
                raise StateConflictError("Offer session has no revision to respond to")
            terms = terms_of(current)
            listings = listings_of(current)
            revision_status = response.status
            session_status = response.status

        revision = crud_offer_session.insert_offer(
            self.db,
            session_id=session.id,
            sequence=(current.sequence + 1) if current is not None else 1,
            actor_id=user_id,
            status=revision_status,
            terms=terms,
            market_listings=listings,
        )
        moved = crud_offer_session.advance_current_offer(
            self.db,
            session_id=session.id,
            expected_offer_id=current.id if current is not None else None,
            new_offer_id=revision.id,
            new_status=session_status,
        )
        if not moved:
            raise StateConflictError(
                "Offer session was modified concurrently", error_code="OFFER_CONFLICT"
            )
        self.db.refresh(session)

        order, order_created = None, False
        if response.status == "accepted":
            order, order_created = self.orders.build_order(session, revision)
        return session, revision, order, order_created

    # ------------------------------------------------------------------
    # Merging
    # ------------------------------------------------------------------

    def can_merge_offers(self, session_ids, user_id: str) -> List[OfferSession]:
        """
        Validate a merge request and return the sessions in request order.

        Checks run in a fixed order: input shape, existence, activity,
        authorization, then field compatibility.
        """
        if not isinstance(session_ids, (list, tuple)):
            raise ValidationError("offer_session_ids must be a list")
        ids = list(dict.fromkeys(session_ids))
        if len(ids) < 2:
            raise ValidationError("At least two distinct offer sessions are required to merge")

        found = {s.id: s for s in crud_offer_session.get_many_for_update(self.db, ids)}
        if len(found) != len(ids):
            raise OfferNotFoundError()
        sessions = [found[i] for i in ids]

        if not all(s.is_active for s in sessions):
            raise OfferNotActiveError()

        for s in sessions:
            if s.customer_id == user_id or not self.permissions.is_seller_side(s, user_id):
                raise OfferPermissionError("Only the seller can merge these offers")

        def distinct(values) -> bool:
            return len(set(values)) > 1

        if distinct(s.customer_id for s in sessions):
            raise OfferValidationError(
                "All offers must be from the same customer", "DIFFERENT_CUSTOMER"
            )
        if distinct(s.contractor_id for s in sessions):
            raise OfferValidationError(
                "All offers must be for the same contractor", "DIFFERENT_CONTRACTOR"
            )
        if distinct(s.assigned_id for s in sessions):
            raise OfferValidationError(
                "All offers must be assigned to the same user", "DIFFERENT_ASSIGNED"
            )

        currents = [self._current_offer(s) for s in sessions]
        if any(c is None for c in currents):
            raise StateConflictError("Offer session has no revision to merge")
        if distinct(c.payment_type for c in currents):
            raise OfferValidationError(
                "All offers must have the same payment type", "DIFFERENT_PAYMENT_TYPE"
            )
        if any(c.service_id for c in currents):
            raise OfferValidationError(
                "Offers bound to a service cannot be merged", "HAS_SERVICES"
            )
        return sessions

    def merge_offers(self, session_ids, user_id: str) -> Tuple[OfferSession, List[str]]:
        if not isinstance(session_ids, (list, tuple)):
            raise ValidationError("offer_session_ids must be a list")
        ids = list(dict.fromkeys(session_ids))

        with self.locks.hold(*ids):
            try:
                sessions = self.can_merge_offers(ids, user_id)
                merged = self._merge_locked(sessions, user_id)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(merged)
        logger.info(f"Merged offer sessions {ids} into {merged.id} by {user_id}")
        self.notifier.emit(notifications.OFFER_MERGED, merged, actor_id=user_id)
        return merged, ids

    def _merge_locked(self, sessions: List[OfferSession], user_id: str) -> OfferSession:
        currents = [self._current_offer(s) for s in sessions]
        terms, listings = compose_merged_terms(currents)
        for name in ("cost", "collateral"):
            if not amount_in_bounds(terms[name]):
                raise OfferValidationError(
                    f"The merged {name} is larger than the maximum allowed amount",
                    "AMOUNT_TOO_LARGE",
                )

        first = sessions[0]
        merged, _ = self.open_session(
            customer_id=first.customer_id,
            assigned_id=first.assigned_id,
            contractor_id=first.contractor_id,
            actor_id=user_id,
            terms=terms,
            market_listings=listings,
        )

        for session, current in zip(sessions, currents):
            cancelled = crud_offer_session.insert_offer(
                self.db,
                session_id=session.id,
                sequence=current.sequence + 1,
                actor_id=user_id,
                status="cancelled",
                terms=terms_of(current),
                market_listings=listings_of(current),
            )
            moved = crud_offer_session.advance_current_offer(
                self.db,
                session_id=session.id,
                expected_offer_id=current.id,
                new_offer_id=cancelled.id,
                new_status="cancelled",
                merged_into_id=merged.id,
            )
            if not moved:
                raise StateConflictError(
                    f"Offer session {session.id} was modified concurrently",
                    error_code="OFFER_CONFLICT",
                )

        links = crud_public_contract.list_offer_links(
            self.db, session_ids=[s.id for s in sessions]
        )
        for contract_id in dict.fromkeys(link.contract_id for link in links):
            crud_offer_session.link_contract(
                self.db, contract_id=contract_id, session_id=merged.id
            )
        return merged

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_session(self, session_id: str, user_id: str) -> OfferSession:
        session = crud_offer_session.get(self.db, session_id)
        if session is None:
            raise OfferNotFoundError("Offer session not found")
        if not self.permissions.is_related(session, user_id):
            raise OfferPermissionError("You are not a party to this offer")
        return session

    def list_revisions(self, session_id: str) -> List[OrderOffer]:
        return crud_offer_session.list_offers(self.db, session_id)

    def describe_session(self, session: OfferSession) -> OfferSessionDetails:
        return OfferSessionDetails(
            id=session.id,
            status=session.status,
            customer_id=session.customer_id,
            assigned_id=session.assigned_id,
            contractor_id=session.contractor_id,
            current_offer_id=session.current_offer_id,
            merged_into_id=session.merged_into_id,
            contract_id=crud_offer_session.get_contract_id(self.db, session.id),
            created_at=session.created_at,
            offers=[
                OfferRevision.model_validate(r) for r in self.list_revisions(session.id)
            ],
        )

    def get_session_details(self, session_id: str, user_id: str) -> OfferSessionDetails:
        return self.describe_session(self.get_session(session_id, user_id))

    def stub(self, session: OfferSession, current: Optional[OrderOffer] = None) -> OfferSessionStub:
        if current is None:
            current = self._current_offer(session)
        return OfferSessionStub(
            id=session.id,
            status=session.status,
            customer_id=session.customer_id,
            assigned_id=session.assigned_id,
            contractor_id=session.contractor_id,
            created_at=session.created_at,
            most_recent_offer=OfferRevision.model_validate(current) if current else None,
        )

    def list_received(self, user_id: str) -> List[OfferSessionStub]:
        return [self.stub(s) for s in crud_offer_session.list_by(self.db, assigned_id=user_id)]

    def list_sent(self, user_id: str) -> List[OfferSessionStub]:
        return [self.stub(s) for s in crud_offer_session.list_by(self.db, customer_id=user_id)]

    def list_contractor_received(self, contractor_id: str, user_id: str) -> List[OfferSessionStub]:
        if crud_contractor.get(self.db, contractor_id) is None:
            raise NotFoundError("Contractor not found", error_code="CONTRACTOR_NOT_FOUND")
        if not self.permissions.has_permission(contractor_id, user_id, "manage_orders"):
            raise PermissionDeniedError("Missing manage_orders permission for this contractor")
        return [
            self.stub(s)
            for s in crud_offer_session.list_by(self.db, contractor_id=contractor_id)
        ]

    def search(self, query: OfferSearchQuery, user_id: str) -> Dict:
        is_admin = self.permissions.is_admin(user_id)
        if not is_admin:
            if not (query.customer_id or query.assigned_id or query.contractor_id):
                raise PermissionDeniedError("Missing permissions.")
            if query.contractor_id and not self.permissions.is_member(
                query.contractor_id, user_id
            ):
                raise PermissionDeniedError("Missing permissions.")
            if query.assigned_id and query.assigned_id != user_id and not query.contractor_id:
                raise PermissionDeniedError("Missing permissions.")
            if (
                query.customer_id
                and query.customer_id != user_id
                and not (query.contractor_id or query.assigned_id)
            ):
                raise PermissionDeniedError("Missing permissions.")

        rows, item_counts = crud_offer_session.search(
            self.db,
            customer_id=query.customer_id,
            assigned_id=query.assigned_id,
            contractor_id=query.contractor_id,
            status=query.status,
            cost_min=query.cost_min,
            cost_max=query.cost_max,
            sort_method=query.sort_method,
            reverse_sort=query.reverse_sort,
            index=query.index,
            page_size=query.page_size,
        )
        return {
            "items": [self.stub(session, current) for session, current in rows],
            "item_counts": item_counts,
        }
