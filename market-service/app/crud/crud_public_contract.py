# app/crud/crud_public_contract.py
from typing import List, Optional
from sqlalchemy.orm import Session

from app.models.public_contract import PublicContract, PublicContractOffer


def create(db: Session, *, customer_id: str, **fields) -> PublicContract:
    db_obj = PublicContract(customer_id=customer_id, status="active", **fields)
    db.add(db_obj)
    db.flush()
    return db_obj


def get(db: Session, contract_id: str) -> Optional[PublicContract]:
    return db.query(PublicContract).filter(PublicContract.id == contract_id).first()


def list_active(db: Session) -> List[PublicContract]:
    return (
        db.query(PublicContract)
        .filter(PublicContract.status == "active")
        .order_by(PublicContract.timestamp.desc())
        .all()
    )


def list_offer_links(db: Session, *, session_ids: List[str]) -> List[PublicContractOffer]:
    return (
        db.query(PublicContractOffer)
        .filter(PublicContractOffer.session_id.in_(session_ids))
        .all()
    )
