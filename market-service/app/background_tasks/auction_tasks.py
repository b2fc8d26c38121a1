# app/background_tasks/auction_tasks.py
"""
Deadline handlers run by the MarketScheduler.

Both handlers re-check state under a row lock before acting, so running one
twice for the same listing is a no-op.
"""
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.crud import crud_account, crud_market_listing
from app.models.offer_session import OfferSession
from app.services import notifications
from app.services.notifications import OfferNotifier
from app.services.offer_session_service import OfferSessionService
from app.utils.amounts import format_amount, to_decimal

logger = logging.getLogger(__name__)

AUCTION_ORDER_KIND = "Delivery"
AUCTION_QUANTITY = 1


def resolve_auction(
    db: Session, listing_id: str, notifier: Optional[OfferNotifier] = None
) -> Optional[OfferSession]:
    """
    Conclude an auction: open an offer from the highest bidder to the seller,
    then archive the listing.

    The highest bid wins; equal bids go to the earliest one. Returns the new
    offer session, or None when there was nothing to do or no bids.
    """
    try:
        listing = crud_market_listing.get_for_update(db, listing_id)
        auction = crud_market_listing.get_auction(db, listing_id)
        if listing is None or auction is None:
            logger.warning(f"Auction {listing_id} not found, skipping")
            db.rollback()
            return None
        if listing.status == "archived" or auction.status == "concluded":
            logger.info(f"Auction {listing_id} already resolved, skipping")
            db.rollback()
            return None

        winning_bid, best = None, Decimal("-1")
        for bid in crud_market_listing.get_bids(db, listing_id):
            amount = to_decimal(bid.bid)
            if amount > best:
                winning_bid, best = bid, amount

        session = None
        if winning_bid is not None:
            winner = crud_account.get(db, winning_bid.user_bidder_id)
            winner_name = winner.username if winner else winning_bid.user_bidder_id
            item = f"{listing.title} (x{AUCTION_QUANTITY})"
            terms = {
                "title": f"Item Sold: {item} to {winner_name}",
                "description": (
                    f"Complete the delivery of sold item {item} to {winner_name}"
                    f"\n\n{listing.description}"
                ),
                "kind": AUCTION_ORDER_KIND,
                "cost": format_amount(best * AUCTION_QUANTITY),
                "collateral": "0",
                "payment_type": "one-time",
                "departure": None,
                "destination": None,
                "service_id": None,
            }
            contractor_id = listing.contractor_seller_id
            session, _ = OfferSessionService(db, notifier=notifier).open_session(
                customer_id=winning_bid.user_bidder_id,
                assigned_id=None if contractor_id else listing.user_seller_id,
                contractor_id=contractor_id,
                actor_id=winning_bid.user_bidder_id,
                terms=terms,
                market_listings=[(listing_id, AUCTION_QUANTITY)],
            )

        auction.status = "concluded"
        crud_market_listing.update_status(db, listing=listing, status="archived")
        db.commit()
    except Exception:
        db.rollback()
        raise

    if session is None:
        logger.info(f"Auction {listing_id} concluded with no bids")
        return None

    db.refresh(session)
    logger.info(
        f"Auction {listing_id} won by {winning_bid.user_bidder_id} for {best}; "
        f"offer session {session.id} opened"
    )
    if notifier is not None:
        notifier.emit(notifications.OFFER_CREATED, session, actor_id=winning_bid.user_bidder_id)
    return session


def expire_listing(db: Session, listing_id: str) -> bool:
    """Move an active listing to inactive. Returns True if it changed."""
    try:
        listing = crud_market_listing.get_for_update(db, listing_id)
        if listing is None or listing.status != "active":
            db.rollback()
            return False
        crud_market_listing.update_status(db, listing=listing, status="inactive")
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Expired market listing {listing_id}")
    return True
