from datetime import datetime, timedelta, timezone
from typing import Iterable, Tuple
from sqlalchemy.orm import Session
from app.models.market_listing import AuctionDetails, MarketBid, MarketListing


def create_listing(
    db: Session,
    seller_id: str = None,
    contractor_id: str = None,
    quantity: int = 5,
    price: str = "10",
    sale_type: str = "sale",
    status: str = "active",
    expiration: datetime = None,
    title: str = "Quantanium",
) -> MarketListing:
    listing = MarketListing(
        user_seller_id=seller_id,
        contractor_seller_id=contractor_id,
        quantity_available=quantity,
        price=price,
        sale_type=sale_type,
        status=status,
        expiration=expiration,
        title=title,
        description="Refined, ready for pickup",
    )
    db.add(listing)
    db.commit()
    db.refresh(listing)
    return listing


def create_auction(
    db: Session,
    seller_id: str,
    end_time: datetime,
    bids: Iterable[Tuple[str, str]] = (),
    contractor_id: str = None,
) -> MarketListing:
    """
    Creates an auction listing. Bids are (bidder_id, amount) pairs placed one
    second apart in the given order.
    """
    listing = create_listing(
        db, seller_id=seller_id, contractor_id=contractor_id, quantity=1, sale_type="auction"
    )
    db.add(AuctionDetails(listing_id=listing.listing_id, end_time=end_time))
    start = datetime.now(timezone.utc) - timedelta(hours=1)
    for i, (bidder_id, amount) in enumerate(bids):
        db.add(
            MarketBid(
                listing_id=listing.listing_id,
                user_bidder_id=bidder_id,
                bid=amount,
                timestamp=start + timedelta(seconds=i),
            )
        )
    db.commit()
    return listing
