# app/models/service.py
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, text
from sqlalchemy.sql import func
from app.db.base_class import Base


class Service(Base):
    """A seller's reusable service template that a revision may be bound to."""

    __tablename__ = "services"

    service_id = Column(
        String, primary_key=True, default=lambda: f"svc_{uuid.uuid4().hex[:12]}"
    )
    user_id = Column(String, ForeignKey("accounts.user_id"), nullable=True)
    contractor_id = Column(String, ForeignKey("contractors.contractor_id"), nullable=True)
    title = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, server_default=text("'active'"))
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
