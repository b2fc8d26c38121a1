# app/crud/crud_market_listing.py
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session, joinedload

from app.models.market_listing import MarketListing, AuctionDetails, MarketBid


def get(db: Session, listing_id: str) -> Optional[MarketListing]:
    return db.query(MarketListing).filter(MarketListing.listing_id == listing_id).first()


def get_for_update(db: Session, listing_id: str) -> Optional[MarketListing]:
    return (
        db.query(MarketListing)
        .filter(MarketListing.listing_id == listing_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def get_auction(db: Session, listing_id: str) -> Optional[AuctionDetails]:
    return db.query(AuctionDetails).filter(AuctionDetails.listing_id == listing_id).first()


def get_bids(db: Session, listing_id: str) -> List[MarketBid]:
    """Bids in arrival order; callers rely on it to break ties."""
    return (
        db.query(MarketBid)
        .filter(MarketBid.listing_id == listing_id)
        .order_by(MarketBid.timestamp.asc(), MarketBid.bid_id.asc())
        .all()
    )


def get_expiring_auctions(db: Session, *, before: datetime) -> List[AuctionDetails]:
    """Unresolved auctions whose end_time is before the horizon (overdue ones included)."""
    return (
        db.query(AuctionDetails)
        .options(joinedload(AuctionDetails.listing))
        .join(MarketListing, MarketListing.listing_id == AuctionDetails.listing_id)
        .filter(
            AuctionDetails.status == "active",
            AuctionDetails.end_time <= before,
            MarketListing.status != "archived",
        )
        .order_by(AuctionDetails.end_time.asc())
        .all()
    )


def get_expiring_listings(db: Session, *, before: datetime) -> List[MarketListing]:
    return (
        db.query(MarketListing)
        .filter(
            MarketListing.status == "active",
            MarketListing.sale_type != "auction",
            MarketListing.expiration.isnot(None),
            MarketListing.expiration <= before,
        )
        .order_by(MarketListing.expiration.asc())
        .all()
    )


def update_status(db: Session, *, listing: MarketListing, status: str) -> MarketListing:
    listing.status = status
    db.flush()
    return listing


def subtract_stock(db: Session, *, listing: MarketListing, quantity: int) -> MarketListing:
    listing.quantity_available = max(0, listing.quantity_available - quantity)
    db.flush()
    return listing
