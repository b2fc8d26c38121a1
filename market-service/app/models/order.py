# app/models/order.py
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, Text, text
from sqlalchemy.orm import relationship
from app.db.base_class import Base


ORDER_STATUSES = ("not-started", "in-progress", "fulfilled", "cancelled")
CLOSED_ORDER_STATUSES = {"fulfilled", "cancelled"}


def _utcnow():
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"

    order_id = Column(
        String, primary_key=True, default=lambda: f"ord_{uuid.uuid4().hex[:12]}"
    )
    # One order per negotiation
    offer_session_id = Column(
        String, ForeignKey("offer_sessions.id"), nullable=True, unique=True
    )

    customer_id = Column(String, ForeignKey("accounts.user_id"), nullable=False, index=True)
    assigned_id = Column(String, ForeignKey("accounts.user_id"), nullable=True, index=True)
    contractor_id = Column(
        String, ForeignKey("contractors.contractor_id"), nullable=True, index=True
    )

    # Commercial terms copied from the accepted revision
    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, server_default=text("''"))
    kind = Column(String(50), nullable=False)
    cost = Column(String(32), nullable=False)
    collateral = Column(String(32), nullable=False, server_default=text("'0'"))
    payment_type = Column(String(20), nullable=False)
    departure = Column(String, nullable=True)
    destination = Column(String, nullable=True)
    service_id = Column(String, ForeignKey("services.service_id"), nullable=True)

    status = Column(String(20), nullable=False, server_default=text("'not-started'"))
    # Values: 'not-started', 'in-progress', 'fulfilled', 'cancelled'

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    market_listings = relationship(
        "MarketListingOrder", back_populates="order", cascade="all, delete-orphan"
    )

    @property
    def is_closed(self) -> bool:
        return self.status in CLOSED_ORDER_STATUSES


class MarketListingOrder(Base):
    __tablename__ = "market_listing_orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(
        String, ForeignKey("orders.order_id", ondelete="CASCADE"), nullable=False, index=True
    )
    listing_id = Column(String, ForeignKey("market_listings.listing_id"), nullable=False)
    quantity = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="market_listings")
