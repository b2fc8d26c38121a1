# app/crud/crud_offer_session.py
"""
Persistence for offer sessions and their revisions.

Functions here only add/flush; the calling service owns the transaction so
multi-row operations (respond, merge) commit or roll back as one unit.
"""
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import Numeric, and_, case, cast, func
from sqlalchemy.orm import Session, selectinload

from app.models.offer_session import OfferSession, OrderOffer, OfferMarketListing
from app.models.public_contract import PublicContractOffer
from app.utils.timeutils import utcnow

# Search buckets derived from session status and whose turn it is
SEARCH_STATUSES = ("to-seller", "to-customer", "accepted", "rejected")


def get(db: Session, session_id: str) -> Optional[OfferSession]:
    return db.query(OfferSession).filter(OfferSession.id == session_id).first()


def get_for_update(db: Session, session_id: str) -> Optional[OfferSession]:
    """Row-locks the session (SELECT FOR UPDATE) for the rest of the transaction."""
    return (
        db.query(OfferSession)
        .filter(OfferSession.id == session_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def get_many_for_update(db: Session, session_ids: Sequence[str]) -> List[OfferSession]:
    return (
        db.query(OfferSession)
        .filter(OfferSession.id.in_(list(session_ids)))
        .order_by(OfferSession.id)
        .with_for_update()
        .populate_existing()
        .all()
    )


def get_offer(db: Session, offer_id: Optional[str]) -> Optional[OrderOffer]:
    if offer_id is None:
        return None
    return db.query(OrderOffer).filter(OrderOffer.id == offer_id).first()


def get_current_offer(db: Session, session: OfferSession) -> Optional[OrderOffer]:
    return get_offer(db, session.current_offer_id)


def get_most_recent_offer(db: Session, session_id: str) -> Optional[OrderOffer]:
    """Scan by timestamp; only used to repair a missing current_offer_id pointer."""
    return (
        db.query(OrderOffer)
        .filter(OrderOffer.session_id == session_id)
        .order_by(OrderOffer.timestamp.desc(), OrderOffer.sequence.desc())
        .first()
    )


def list_offers(db: Session, session_id: str) -> List[OrderOffer]:
    return (
        db.query(OrderOffer)
        .options(selectinload(OrderOffer.market_listings))
        .filter(OrderOffer.session_id == session_id)
        .order_by(OrderOffer.timestamp.asc(), OrderOffer.sequence.asc())
        .all()
    )


def list_market_listings(db: Session, offer_id: str) -> List[OfferMarketListing]:
    return db.query(OfferMarketListing).filter(OfferMarketListing.offer_id == offer_id).all()


def create_session(
    db: Session,
    *,
    customer_id: str,
    assigned_id: Optional[str] = None,
    contractor_id: Optional[str] = None,
) -> OfferSession:
    db_obj = OfferSession(
        customer_id=customer_id,
        assigned_id=assigned_id,
        contractor_id=contractor_id,
        status="active",
    )
    db.add(db_obj)
    db.flush()
    return db_obj


def insert_offer(
    db: Session,
    *,
    session_id: str,
    sequence: int,
    actor_id: str,
    status: str,
    terms: dict,
    market_listings: Iterable[Tuple[str, int]] = (),
) -> OrderOffer:
    db_obj = OrderOffer(
        session_id=session_id,
        sequence=sequence,
        actor_id=actor_id,
        status=status,
        timestamp=utcnow(),
        **terms,
    )
    db.add(db_obj)
    db.flush()
    for listing_id, quantity in market_listings:
        db.add(OfferMarketListing(offer_id=db_obj.id, listing_id=listing_id, quantity=quantity))
    db.flush()
    return db_obj


def advance_current_offer(
    db: Session,
    *,
    session_id: str,
    expected_offer_id: Optional[str],
    new_offer_id: str,
    new_status: str = "active",
    merged_into_id: Optional[str] = None,
) -> bool:
    """
    Compare-and-swap the latest-revision pointer.

    Only succeeds while the session is still active and still points at the
    revision the caller based its decision on. Returns False otherwise.
    """
    values = {
        OfferSession.current_offer_id: new_offer_id,
        OfferSession.status: new_status,
        OfferSession.updated_at: utcnow(),
    }
    if merged_into_id is not None:
        values[OfferSession.merged_into_id] = merged_into_id

    pointer_matches = (
        OfferSession.current_offer_id.is_(None)
        if expected_offer_id is None
        else OfferSession.current_offer_id == expected_offer_id
    )
    updated = (
        db.query(OfferSession)
        .filter(
            OfferSession.id == session_id,
            OfferSession.status == "active",
            pointer_matches,
        )
        .update(values, synchronize_session=False)
    )
    return updated == 1


def get_contract_id(db: Session, session_id: str) -> Optional[str]:
    return (
        db.query(PublicContractOffer.contract_id)
        .filter(PublicContractOffer.session_id == session_id)
        .scalar()
    )


def link_contract(db: Session, *, contract_id: str, session_id: str) -> PublicContractOffer:
    db_obj = PublicContractOffer(contract_id=contract_id, session_id=session_id)
    db.add(db_obj)
    db.flush()
    return db_obj


def list_by(
    db: Session,
    *,
    customer_id: Optional[str] = None,
    assigned_id: Optional[str] = None,
    contractor_id: Optional[str] = None,
) -> List[OfferSession]:
    query = db.query(OfferSession)
    if customer_id:
        query = query.filter(OfferSession.customer_id == customer_id)
    if assigned_id:
        query = query.filter(OfferSession.assigned_id == assigned_id)
    if contractor_id:
        query = query.filter(OfferSession.contractor_id == contractor_id)
    return query.order_by(OfferSession.created_at.desc()).all()


def _bucket_expression():
    return case(
        (OfferSession.status == "accepted", "accepted"),
        (OfferSession.status.in_(("rejected", "cancelled")), "rejected"),
        (OrderOffer.actor_id == OfferSession.customer_id, "to-seller"),
        else_="to-customer",
    )


def search(
    db: Session,
    *,
    customer_id: Optional[str] = None,
    assigned_id: Optional[str] = None,
    contractor_id: Optional[str] = None,
    status: Optional[str] = None,
    cost_min=None,
    cost_max=None,
    sort_method: str = "timestamp",
    reverse_sort: bool = False,
    index: int = 0,
    page_size: int = 5,
) -> Tuple[List[Tuple[OfferSession, OrderOffer]], Dict[str, int]]:
    """
    Paged search over sessions joined with their latest revision.

    Returns (rows, item_counts) where item_counts counts every status bucket
    for the same party filters, ignoring the status filter.
    """
    base = db.query(OfferSession, OrderOffer).join(
        OrderOffer, OrderOffer.id == OfferSession.current_offer_id
    )

    party_filters = []
    if customer_id:
        party_filters.append(OfferSession.customer_id == customer_id)
    if assigned_id:
        party_filters.append(OfferSession.assigned_id == assigned_id)
    if contractor_id:
        party_filters.append(OfferSession.contractor_id == contractor_id)
    if party_filters:
        base = base.filter(and_(*party_filters))

    if cost_min is not None:
        base = base.filter(cast(OrderOffer.cost, Numeric) >= cost_min)
    if cost_max is not None:
        base = base.filter(cast(OrderOffer.cost, Numeric) <= cost_max)

    bucket = _bucket_expression()
    counts = dict(
        base.with_entities(bucket, func.count(OfferSession.id)).group_by(bucket).all()
    )
    item_counts = {s: counts.get(s, 0) for s in SEARCH_STATUSES}

    query = base
    if status == "accepted":
        query = query.filter(OfferSession.status == "accepted")
    elif status == "rejected":
        query = query.filter(OfferSession.status.in_(("rejected", "cancelled")))
    elif status == "to-seller":
        query = query.filter(
            OfferSession.status == "active",
            OrderOffer.actor_id == OfferSession.customer_id,
        )
    elif status == "to-customer":
        query = query.filter(
            OfferSession.status == "active",
            OrderOffer.actor_id != OfferSession.customer_id,
        )

    # Text columns sort ascending, time newest-first; reverse_sort flips either
    if sort_method == "title":
        column, descending = OrderOffer.title, False
    elif sort_method == "status":
        column, descending = OfferSession.status, False
    else:
        column, descending = OrderOffer.timestamp, True
    if reverse_sort:
        descending = not descending
    order = column.desc() if descending else column.asc()

    rows = (
        query.order_by(order, OfferSession.id)
        .offset(index * page_size)
        .limit(page_size)
        .all()
    )
    return rows, item_counts
