# app/services/contract_service.py
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    StateConflictError,
    ValidationError,
)
from app.crud import crud_contractor, crud_offer_session, crud_public_contract
from app.models.offer_session import OfferSession
from app.models.public_contract import PublicContract
from app.schemas.contract import ContractOfferCreate, PublicContractCreate
from app.services import notifications
from app.services.offer_session_service import OfferSessionService
from app.utils.amounts import format_amount
from app.utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)


class ContractService:
    """Public contracts: open jobs that sellers answer with an offer session."""

    def __init__(self, db: Session, offers: Optional[OfferSessionService] = None):
        self.db = db
        self.offers = offers or OfferSessionService(db)

    def create_contract(self, contract_in: PublicContractCreate, customer_id: str) -> PublicContract:
        fields = contract_in.model_dump()
        fields["cost"] = format_amount(contract_in.cost)
        fields["collateral"] = format_amount(contract_in.collateral)
        try:
            contract = crud_public_contract.create(self.db, customer_id=customer_id, **fields)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(contract)
        logger.info(f"Public contract {contract.id} created by {customer_id}")
        return contract

    def list_contracts(self) -> List[PublicContract]:
        return crud_public_contract.list_active(self.db)

    def get_contract(self, contract_id: str) -> PublicContract:
        contract = crud_public_contract.get(self.db, contract_id)
        if contract is None:
            raise NotFoundError("Contract not found", error_code="CONTRACT_NOT_FOUND")
        return contract

    def create_offer(self, contract_id: str, offer_in: ContractOfferCreate, user_id: str) -> OfferSession:
        contract = self.get_contract(contract_id)

        if contract.customer_id == user_id and not offer_in.contractor_id:
            raise ValidationError("You cannot create an offer on your own contract")

        expired = contract.expiration is not None and as_utc(contract.expiration) <= utcnow()
        if contract.status != "active" or expired:
            raise StateConflictError(
                "Contract is no longer accepting offers", error_code="CONTRACT_INACTIVE"
            )

        contractor_id = None
        if offer_in.contractor_id:
            contractor = crud_contractor.get(self.db, offer_in.contractor_id)
            if contractor is None:
                raise ValidationError("Invalid contractor")
            if contractor.archived:
                raise StateConflictError(
                    "Cannot create offers for an archived contractor",
                    error_code="CONTRACTOR_ARCHIVED",
                )
            if not self.offers.permissions.has_permission(
                contractor.contractor_id, user_id, "manage_orders"
            ):
                raise PermissionDeniedError(
                    "You do not have permission to make offers on behalf of this contractor"
                )
            if self.offers.permissions.negotiates_for(contractor.contractor_id, contract.customer_id):
                raise ValidationError("You cannot create an offer on your own contract")
            contractor_id = contractor.contractor_id

        terms = {
            "title": offer_in.title,
            "description": offer_in.description,
            "kind": offer_in.kind,
            "cost": format_amount(offer_in.cost),
            "collateral": format_amount(offer_in.collateral),
            "payment_type": offer_in.payment_type,
            "departure": contract.departure,
            "destination": contract.destination,
            "service_id": None,
        }

        try:
            session, _ = self.offers.open_session(
                customer_id=contract.customer_id,
                assigned_id=None if contractor_id else user_id,
                contractor_id=contractor_id,
                actor_id=user_id,
                terms=terms,
            )
            crud_offer_session.link_contract(
                self.db, contract_id=contract.id, session_id=session.id
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(session)
        logger.info(f"Offer session {session.id} opened on contract {contract.id} by {user_id}")
        self.offers.notifier.emit(notifications.OFFER_CREATED, session, actor_id=user_id)
        return session
