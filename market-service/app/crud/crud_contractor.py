# app/crud/crud_contractor.py
from typing import List, Optional
from sqlalchemy.orm import Session

from app.models.contractor import Contractor, ContractorRole, ContractorMemberRole


def get(db: Session, contractor_id: str) -> Optional[Contractor]:
    return db.query(Contractor).filter(Contractor.contractor_id == contractor_id).first()


def get_by_spectrum_id(db: Session, spectrum_id: str) -> Optional[Contractor]:
    return db.query(Contractor).filter(Contractor.spectrum_id == spectrum_id).first()


def get_role(db: Session, *, contractor_id: str, role_id: str) -> Optional[ContractorRole]:
    return (
        db.query(ContractorRole)
        .filter(
            ContractorRole.contractor_id == contractor_id,
            ContractorRole.role_id == role_id,
        )
        .first()
    )


def get_member_roles(db: Session, *, contractor_id: str, user_id: str) -> List[ContractorRole]:
    """All roles a user holds in one contractor."""
    return (
        db.query(ContractorRole)
        .join(ContractorMemberRole, ContractorMemberRole.role_id == ContractorRole.role_id)
        .filter(
            ContractorMemberRole.contractor_id == contractor_id,
            ContractorMemberRole.user_id == user_id,
        )
        .all()
    )


def count_memberships(db: Session, *, contractor_id: str, user_id: str) -> int:
    return (
        db.query(ContractorMemberRole)
        .filter(
            ContractorMemberRole.contractor_id == contractor_id,
            ContractorMemberRole.user_id == user_id,
        )
        .count()
    )


def create(db: Session, *, spectrum_id: str, name: str, description: Optional[str] = None) -> Contractor:
    db_obj = Contractor(spectrum_id=spectrum_id, name=name, description=description)
    db.add(db_obj)
    db.flush()
    return db_obj


def create_role(db: Session, *, contractor_id: str, name: str, position: int, **capabilities) -> ContractorRole:
    db_obj = ContractorRole(
        contractor_id=contractor_id, name=name, position=position, **capabilities
    )
    db.add(db_obj)
    db.flush()
    return db_obj


def add_member_role(db: Session, *, contractor_id: str, user_id: str, role_id: str) -> ContractorMemberRole:
    existing = (
        db.query(ContractorMemberRole)
        .filter(ContractorMemberRole.user_id == user_id, ContractorMemberRole.role_id == role_id)
        .first()
    )
    if existing:
        return existing
    db_obj = ContractorMemberRole(contractor_id=contractor_id, user_id=user_id, role_id=role_id)
    db.add(db_obj)
    db.flush()
    return db_obj


def remove_member_role(db: Session, *, contractor_id: str, user_id: str, role_id: str) -> int:
    return (
        db.query(ContractorMemberRole)
        .filter(
            ContractorMemberRole.contractor_id == contractor_id,
            ContractorMemberRole.user_id == user_id,
            ContractorMemberRole.role_id == role_id,
        )
        .delete(synchronize_session=False)
    )


def remove_member(db: Session, *, contractor_id: str, user_id: str) -> int:
    return (
        db.query(ContractorMemberRole)
        .filter(
            ContractorMemberRole.contractor_id == contractor_id,
            ContractorMemberRole.user_id == user_id,
        )
        .delete(synchronize_session=False)
    )
