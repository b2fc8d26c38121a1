import uuid
from sqlalchemy.orm import Session
from app.models.account import Account


def create_account(
    db: Session,
    user_id: str = None,
    username: str = None,
    role: str = "user",
    banned: bool = False,
) -> Account:
    """
    Creates an account row for testing purposes.
    """
    user_id = user_id or f"usr_{uuid.uuid4().hex[:8]}"
    account = Account(
        user_id=user_id, username=username or user_id, role=role, banned=banned
    )
    db.add(account)
    db.commit()
    db.refresh(account)
    return account
