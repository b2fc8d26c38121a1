# app/models/account.py
from sqlalchemy import Column, String, Boolean, DateTime, text
from sqlalchemy.sql import func
from app.db.base_class import Base


class Account(Base):
    """
    Local projection of a marketplace user.

    Identity, ban and verification state are owned upstream; this table only
    mirrors the flags the negotiation core needs (admin bypass, bans).
    """

    __tablename__ = "accounts"

    user_id = Column(String, primary_key=True)
    username = Column(String(50), nullable=False, unique=True, index=True)
    display_name = Column(String(100), nullable=True)

    role = Column(String(20), nullable=False, server_default=text("'user'"))  # admin | user
    banned = Column(Boolean, nullable=False, server_default=text("false"))
    rsi_confirmed = Column(Boolean, nullable=False, server_default=text("false"))

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"
