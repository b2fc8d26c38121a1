# app/services/contractor_service.py
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.contractor_roles import (
    DEFAULT_ROLE_NAME,
    DEFAULT_ROLES,
    OWNER_ROLE_NAME,
    Capability,
)
from app.core.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    StateConflictError,
    ValidationError,
)
from app.crud import crud_account, crud_contractor
from app.models.contractor import Contractor, ContractorRole
from app.schemas.contractor import ContractorCreate, ContractorRoleCreate
from app.services.permissions import PermissionEvaluator

logger = logging.getLogger(__name__)


class ContractorService:
    """Organization lifecycle and role administration."""

    def __init__(self, db: Session, permissions: Optional[PermissionEvaluator] = None):
        self.db = db
        self.permissions = permissions or PermissionEvaluator(db)

    def _get_contractor(self, contractor_id: str) -> Contractor:
        contractor = crud_contractor.get(self.db, contractor_id)
        if contractor is None:
            raise NotFoundError("Contractor not found", error_code="CONTRACTOR_NOT_FOUND")
        return contractor

    def _require(self, contractor_id: str, user_id: str, capability: Capability) -> None:
        if not self.permissions.has_permission(contractor_id, user_id, capability):
            raise PermissionDeniedError(f"Missing {capability} permission")

    def _require_member(self, contractor_id: str, user_id: str) -> None:
        if crud_account.get(self.db, user_id) is None or not self.permissions.is_member(
            contractor_id, user_id
        ):
            raise NotFoundError("Invalid user", error_code="MEMBER_NOT_FOUND")

    def create_contractor(self, contractor_in: ContractorCreate, owner_id: str) -> Contractor:
        """
        Register an organization and seed its default roles.

        The creator receives the Owner role; new members get Member.
        """
        spectrum_id = contractor_in.spectrum_id.upper()
        if crud_contractor.get_by_spectrum_id(self.db, spectrum_id):
            raise StateConflictError("Org is already registered!", error_code="CONTRACTOR_EXISTS")

        try:
            contractor = crud_contractor.create(
                self.db,
                spectrum_id=spectrum_id,
                name=contractor_in.name,
                description=(contractor_in.description or "").strip() or None,
            )
            seeded = {}
            for name, seed in DEFAULT_ROLES.items():
                seeded[name] = crud_contractor.create_role(
                    self.db,
                    contractor_id=contractor.contractor_id,
                    name=name,
                    position=seed["position"],
                    **seed["capabilities"],
                )
            contractor.owner_role = seeded[OWNER_ROLE_NAME].role_id
            contractor.default_role = seeded[DEFAULT_ROLE_NAME].role_id

            for role_name in (OWNER_ROLE_NAME, DEFAULT_ROLE_NAME):
                crud_contractor.add_member_role(
                    self.db,
                    contractor_id=contractor.contractor_id,
                    user_id=owner_id,
                    role_id=seeded[role_name].role_id,
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(contractor)
        logger.info(f"Contractor {contractor.contractor_id} ({spectrum_id}) created by {owner_id}")
        return contractor

    def create_role(
        self, contractor_id: str, role_in: ContractorRoleCreate, user_id: str
    ) -> ContractorRole:
        self._get_contractor(contractor_id)
        self._require(contractor_id, user_id, "manage_roles")

        if role_in.position <= self.permissions.get_min_position(contractor_id, user_id):
            raise ValidationError("New roles must rank below your own highest role")

        try:
            role = crud_contractor.create_role(
                self.db, contractor_id=contractor_id, **role_in.model_dump()
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(role)
        logger.info(f"Role {role.role_id} created in {contractor_id} by {user_id}")
        return role

    def grant_role(self, contractor_id: str, target_id: str, role_id: str, user_id: str) -> None:
        self._get_contractor(contractor_id)
        self._require(contractor_id, user_id, "manage_roles")
        self._require_member(contractor_id, target_id)
        if not self.permissions.can_manage_role(contractor_id, role_id, user_id):
            raise PermissionDeniedError("You cannot assign a role at or above your own rank")

        try:
            crud_contractor.add_member_role(
                self.db, contractor_id=contractor_id, user_id=target_id, role_id=role_id
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Role {role_id} granted to {target_id} in {contractor_id} by {user_id}")

    def revoke_role(self, contractor_id: str, target_id: str, role_id: str, user_id: str) -> None:
        contractor = self._get_contractor(contractor_id)
        self._require(contractor_id, user_id, "manage_roles")
        self._require_member(contractor_id, target_id)
        if not self.permissions.can_manage_role(contractor_id, role_id, user_id):
            raise PermissionDeniedError("You cannot remove a role at or above your own rank")
        if target_id != user_id and not self.permissions.outranks(
            contractor_id, user_id, target_id
        ):
            raise PermissionDeniedError("No permissions.")
        if role_id == contractor.default_role:
            raise PermissionDeniedError("This role cannot be removed.")

        try:
            crud_contractor.remove_member_role(
                self.db, contractor_id=contractor_id, user_id=target_id, role_id=role_id
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Role {role_id} revoked from {target_id} in {contractor_id} by {user_id}")

    def kick_member(self, contractor_id: str, target_id: str, user_id: str) -> None:
        contractor = self._get_contractor(contractor_id)
        self._require(contractor_id, user_id, "kick_members")
        self._require_member(contractor_id, target_id)

        target_roles = crud_contractor.get_member_roles(
            self.db, contractor_id=contractor_id, user_id=target_id
        )
        if any(role.role_id == contractor.owner_role for role in target_roles):
            raise PermissionDeniedError("The owner cannot be removed")
        if not self.permissions.outranks(contractor_id, user_id, target_id):
            raise PermissionDeniedError("No permissions")

        try:
            crud_contractor.remove_member(
                self.db, contractor_id=contractor_id, user_id=target_id
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"Member {target_id} removed from {contractor_id} by {user_id}")
