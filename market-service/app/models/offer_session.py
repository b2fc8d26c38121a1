# app/models/offer_session.py
import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Column,
    String,
    Integer,
    DateTime,
    ForeignKey,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base_class import Base


SESSION_STATUSES = ("active", "accepted", "rejected", "cancelled")
TERMINAL_SESSION_STATUSES = {"accepted", "rejected", "cancelled"}


def _utcnow():
    return datetime.now(timezone.utc)


class OfferSession(Base):
    """
    A negotiation thread between a customer and exactly one seller side
    (an assigned user or a contractor).
    """

    __tablename__ = "offer_sessions"

    id = Column(String, primary_key=True, default=lambda: f"ofs_{uuid.uuid4().hex[:12]}")

    customer_id = Column(String, ForeignKey("accounts.user_id"), nullable=False, index=True)
    assigned_id = Column(String, ForeignKey("accounts.user_id"), nullable=True, index=True)
    contractor_id = Column(
        String, ForeignKey("contractors.contractor_id"), nullable=True, index=True
    )

    status = Column(String(20), nullable=False, server_default=text("'active'"))
    # Values: 'active', 'accepted', 'rejected', 'cancelled'

    # Latest revision, moved in the same transaction as every append.
    current_offer_id = Column(String, nullable=True)
    merged_into_id = Column(String, ForeignKey("offer_sessions.id"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    offers = relationship(
        "OrderOffer",
        back_populates="session",
        order_by="OrderOffer.sequence",
        cascade="all, delete-orphan",
    )

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @property
    def seller_kind(self) -> str:
        return "contractor" if self.contractor_id else "assigned"


class OrderOffer(Base):
    """One immutable proposal (revision) inside an offer session."""

    __tablename__ = "order_offers"
    __table_args__ = (
        UniqueConstraint("session_id", "sequence", name="uq_order_offers_session_sequence"),
    )

    id = Column(String, primary_key=True, default=lambda: f"ofr_{uuid.uuid4().hex[:12]}")
    session_id = Column(
        String, ForeignKey("offer_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sequence = Column(Integer, nullable=False)
    actor_id = Column(String, ForeignKey("accounts.user_id"), nullable=False)

    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, server_default=text("''"))
    kind = Column(String(50), nullable=False)
    # Decimal amounts are stored as strings and parsed only for arithmetic
    cost = Column(String(32), nullable=False)
    collateral = Column(String(32), nullable=False, server_default=text("'0'"))
    payment_type = Column(String(20), nullable=False, server_default=text("'one-time'"))

    status = Column(String(20), nullable=False, server_default=text("'pending'"))
    # Values: 'pending', 'accepted', 'rejected', 'cancelled'

    departure = Column(String, nullable=True)
    destination = Column(String, nullable=True)
    service_id = Column(String, ForeignKey("services.service_id"), nullable=True)

    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    session = relationship("OfferSession", back_populates="offers")
    market_listings = relationship(
        "OfferMarketListing", back_populates="offer", cascade="all, delete-orphan"
    )


class OfferMarketListing(Base):
    __tablename__ = "offer_market_listings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    offer_id = Column(
        String, ForeignKey("order_offers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    listing_id = Column(String, ForeignKey("market_listings.listing_id"), nullable=False)
    quantity = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    offer = relationship("OrderOffer", back_populates="market_listings")
