# app/api/deps.py
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import crud_account
from app.db.session import get_db
from app.models.account import Account
from app.schemas.token import TokenPayload
from app.services.contract_service import ContractService
from app.services.contractor_service import ContractorService
from app.services.locks import KeyedLock
from app.services.notifications import OfferNotifier
from app.services.offer_session_service import OfferSessionService
from app.services.order_service import OrderService
from app.services.permissions import PermissionEvaluator

__all__ = [
    "get_db",
    "get_current_user",
    "get_current_account",
    "get_notifier",
    "get_locks",
    "get_offer_service",
    "get_order_service",
    "get_contract_service",
    "get_contractor_service",
]

# This tells FastAPI where to look for the token.
# The `tokenUrl` doesn't have to be a real endpoint in this service,
# it's just for the OpenAPI documentation.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")


def get_current_user(token: str = Depends(oauth2_scheme)) -> TokenPayload:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        token_data = TokenPayload(**payload)
    except (JWTError, ValueError):
        # Catches any error from jose or Pydantic validation
        raise credentials_exception

    return token_data


def get_current_account(
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(get_current_user),
) -> Account:
    """The caller's account row. Unknown accounts get 401, banned accounts 403."""
    account = crud_account.get(db, current_user.sub)
    if account is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown account",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if account.banned:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is banned")
    return account


# --- Collaborators created in the app lifespan ---

def get_notifier(request: Request) -> OfferNotifier:
    notifier = getattr(request.app.state, "notifier", None)
    return notifier if notifier is not None else OfferNotifier()


def get_locks(request: Request) -> KeyedLock:
    locks = getattr(request.app.state, "locks", None)
    if locks is None:
        locks = request.app.state.locks = KeyedLock()
    return locks


# --- Service factories ---

def get_offer_service(
    db: Session = Depends(get_db),
    notifier: OfferNotifier = Depends(get_notifier),
    locks: KeyedLock = Depends(get_locks),
) -> OfferSessionService:
    return OfferSessionService(db, PermissionEvaluator(db), notifier, locks)


def get_order_service(
    db: Session = Depends(get_db),
    notifier: OfferNotifier = Depends(get_notifier),
) -> OrderService:
    return OrderService(db, PermissionEvaluator(db), notifier)


def get_contract_service(
    offers: OfferSessionService = Depends(get_offer_service),
) -> ContractService:
    return ContractService(offers.db, offers)


def get_contractor_service(db: Session = Depends(get_db)) -> ContractorService:
    return ContractorService(db, PermissionEvaluator(db))
