# app/models/market_listing.py
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, text
from sqlalchemy.orm import relationship
from app.db.base_class import Base


def _utcnow():
    return datetime.now(timezone.utc)


class MarketListing(Base):
    __tablename__ = "market_listings"

    listing_id = Column(
        String, primary_key=True, default=lambda: f"lst_{uuid.uuid4().hex[:12]}"
    )
    sale_type = Column(String(20), nullable=False, server_default=text("'sale'"))  # sale | auction
    status = Column(String(20), nullable=False, server_default=text("'active'"))
    # Values: 'active', 'inactive', 'archived'

    user_seller_id = Column(String, ForeignKey("accounts.user_id"), nullable=True, index=True)
    contractor_seller_id = Column(
        String, ForeignKey("contractors.contractor_id"), nullable=True, index=True
    )

    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, server_default=text("''"))
    price = Column(String(32), nullable=False)
    quantity_available = Column(Integer, nullable=False, server_default=text("1"))

    expiration = Column(DateTime(timezone=True), nullable=True, index=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    auction = relationship("AuctionDetails", back_populates="listing", uselist=False)


class AuctionDetails(Base):
    __tablename__ = "auction_details"

    listing_id = Column(
        String, ForeignKey("market_listings.listing_id", ondelete="CASCADE"), primary_key=True
    )
    end_time = Column(DateTime(timezone=True), nullable=False, index=True)
    minimum_bid_increment = Column(String(32), nullable=False, server_default=text("'1'"))
    status = Column(String(20), nullable=False, server_default=text("'active'"))
    # Values: 'active', 'concluded'

    listing = relationship("MarketListing", back_populates="auction")


class MarketBid(Base):
    __tablename__ = "market_bids"

    bid_id = Column(String, primary_key=True, default=lambda: f"bid_{uuid.uuid4().hex[:12]}")
    listing_id = Column(
        String, ForeignKey("market_listings.listing_id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_bidder_id = Column(String, ForeignKey("accounts.user_id"), nullable=False)
    bid = Column(String(32), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
