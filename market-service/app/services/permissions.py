# app/services/permissions.py
"""
Permission Evaluator for contractor organizations.

All seller-side authorization (offers, orders, contracts, role management)
goes through this one class instead of composing membership queries per
route.
"""
import logging
import math
from typing import Optional, Union

from sqlalchemy.orm import Session

from app.core.contractor_roles import Capability, validate_capability
from app.core.exceptions import NotFoundError
from app.crud import crud_account, crud_contractor
from app.models.offer_session import OfferSession
from app.models.order import Order

logger = logging.getLogger(__name__)

# Anything with customer_id / assigned_id / contractor_id
Negotiable = Union[OfferSession, Order]


class PermissionEvaluator:
    def __init__(self, db: Session):
        self.db = db

    def is_admin(self, user_id: str) -> bool:
        return crud_account.is_admin(self.db, user_id)

    def has_permission(self, contractor_id: str, user_id: str, capability: Capability) -> bool:
        """
        True if the user is a site admin or ANY of their roles in the
        contractor grants the capability. Non-members simply get False.
        """
        validate_capability(capability)
        if self.is_admin(user_id):
            return True

        roles = crud_contractor.get_member_roles(
            self.db, contractor_id=contractor_id, user_id=user_id
        )
        return any(getattr(role, capability) for role in roles)

    def is_member(self, contractor_id: str, user_id: str) -> bool:
        return (
            crud_contractor.count_memberships(
                self.db, contractor_id=contractor_id, user_id=user_id
            )
            > 0
        )

    def get_min_position(self, contractor_id: str, user_id: str) -> float:
        """Best (numerically lowest) role position; +inf for a user with no roles."""
        roles = crud_contractor.get_member_roles(
            self.db, contractor_id=contractor_id, user_id=user_id
        )
        return min((role.position for role in roles), default=math.inf)

    def outranks(self, contractor_id: str, lower_id: str, higher_id: str) -> bool:
        """
        True when lower_id's best role sits at a numerically lower position
        than higher_id's, i.e. lower_id outranks higher_id.

        No admin bypass: site admins without roles outrank nobody.
        """
        return self.get_min_position(contractor_id, lower_id) < self.get_min_position(
            contractor_id, higher_id
        )

    def can_manage_role(self, contractor_id: str, role_id: str, user_id: str) -> bool:
        role = crud_contractor.get_role(self.db, contractor_id=contractor_id, role_id=role_id)
        if role is None:
            raise NotFoundError("Role not found", error_code="ROLE_NOT_FOUND")
        return self.get_min_position(contractor_id, user_id) < role.position

    # -- relation checks shared by offer sessions and orders --

    def is_seller_for(
        self, assigned_id: Optional[str], contractor_id: Optional[str], user_id: str
    ) -> bool:
        if contractor_id:
            return self.has_permission(contractor_id, user_id, "manage_orders")
        return assigned_id is not None and assigned_id == user_id

    def is_seller_side(self, entity: Negotiable, user_id: str) -> bool:
        return self.is_seller_for(entity.assigned_id, entity.contractor_id, user_id)

    def negotiates_for(self, contractor_id: str, user_id: str) -> bool:
        """Member holding manage_orders in the contractor; admin status alone does not count."""
        return self.is_member(contractor_id, user_id) and self.has_permission(
            contractor_id, user_id, "manage_orders"
        )

    def is_related(self, entity: Negotiable, user_id: str) -> bool:
        if user_id == entity.customer_id or user_id == entity.assigned_id:
            return True
        if self.is_admin(user_id):
            return True
        if entity.contractor_id:
            return self.has_permission(entity.contractor_id, user_id, "manage_orders")
        return False
