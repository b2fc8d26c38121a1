# app/models/contractor.py
import uuid
from sqlalchemy import (
    Column,
    String,
    Boolean,
    Integer,
    DateTime,
    ForeignKey,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db.base_class import Base


class Contractor(Base):
    __tablename__ = "contractors"

    contractor_id = Column(
        String, primary_key=True, default=lambda: f"ctr_{uuid.uuid4().hex[:12]}"
    )
    spectrum_id = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String, nullable=True)

    # Back-references to the seeded roles. Plain columns: the roles reference
    # the contractor, so a database-level cycle is avoided.
    default_role = Column(String, nullable=True)
    owner_role = Column(String, nullable=True)

    archived = Column(Boolean, nullable=False, server_default=text("false"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    roles = relationship(
        "ContractorRole",
        back_populates="contractor",
        cascade="all, delete-orphan",
        order_by="ContractorRole.position",
    )


class ContractorRole(Base):
    __tablename__ = "contractor_roles"

    role_id = Column(
        String, primary_key=True, default=lambda: f"role_{uuid.uuid4().hex[:12]}"
    )
    contractor_id = Column(
        String,
        ForeignKey("contractors.contractor_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(50), nullable=False)
    # Lower position = higher precedence
    position = Column(Integer, nullable=False)

    # Capability flags
    manage_orders = Column(Boolean, nullable=False, default=False)
    manage_roles = Column(Boolean, nullable=False, default=False)
    manage_market = Column(Boolean, nullable=False, default=False)
    manage_recruiting = Column(Boolean, nullable=False, default=False)
    manage_webhooks = Column(Boolean, nullable=False, default=False)
    manage_invites = Column(Boolean, nullable=False, default=False)
    manage_org_details = Column(Boolean, nullable=False, default=False)
    manage_stock = Column(Boolean, nullable=False, default=False)
    kick_members = Column(Boolean, nullable=False, default=False)

    contractor = relationship("Contractor", back_populates="roles")


class ContractorMemberRole(Base):
    """Join row: one user holding one role in one contractor."""

    __tablename__ = "contractor_member_roles"
    __table_args__ = (
        UniqueConstraint("user_id", "role_id", name="uq_contractor_member_role"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    contractor_id = Column(
        String,
        ForeignKey("contractors.contractor_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String, ForeignKey("accounts.user_id"), nullable=False, index=True)
    role_id = Column(
        String,
        ForeignKey("contractor_roles.role_id", ondelete="CASCADE"),
        nullable=False,
    )

    role = relationship("ContractorRole")
