# app/models/public_contract.py
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, text
from app.db.base_class import Base


def _utcnow():
    return datetime.now(timezone.utc)


class PublicContract(Base):
    """An openly posted job any eligible seller may open a negotiation against."""

    __tablename__ = "public_contracts"

    id = Column(String, primary_key=True, default=lambda: f"pc_{uuid.uuid4().hex[:12]}")
    customer_id = Column(String, ForeignKey("accounts.user_id"), nullable=False, index=True)

    title = Column(String(100), nullable=False)
    description = Column(Text, nullable=False, server_default=text("''"))
    kind = Column(String(50), nullable=False)
    cost = Column(String(32), nullable=False)
    collateral = Column(String(32), nullable=False, server_default=text("'0'"))
    payment_type = Column(String(20), nullable=False)
    departure = Column(String, nullable=True)
    destination = Column(String, nullable=True)

    status = Column(String(20), nullable=False, server_default=text("'active'"))
    expiration = Column(DateTime(timezone=True), nullable=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class PublicContractOffer(Base):
    __tablename__ = "public_contract_offers"

    contract_id = Column(
        String, ForeignKey("public_contracts.id", ondelete="CASCADE"), primary_key=True
    )
    session_id = Column(
        String, ForeignKey("offer_sessions.id", ondelete="CASCADE"), primary_key=True
    )
