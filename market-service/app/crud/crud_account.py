# app/crud/crud_account.py
from typing import Optional
from sqlalchemy.orm import Session

from app.models.account import Account


def get(db: Session, user_id: str) -> Optional[Account]:
    return db.query(Account).filter(Account.user_id == user_id).first()


def get_by_username(db: Session, username: str) -> Optional[Account]:
    return db.query(Account).filter(Account.username == username).first()


def is_admin(db: Session, user_id: str) -> bool:
    role = db.query(Account.role).filter(Account.user_id == user_id).scalar()
    return role == "admin"
