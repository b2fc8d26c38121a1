# app/schemas/contractor.py
from typing import List, Optional

from pydantic import BaseModel, Field


class ContractorCreate(BaseModel):
    spectrum_id: str = Field(..., min_length=3, max_length=50, json_schema_extra={"example": "SCMARKET"})
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class ContractorRoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    position: int = Field(..., ge=0)
    manage_orders: bool = False
    manage_roles: bool = False
    manage_market: bool = False
    manage_recruiting: bool = False
    manage_webhooks: bool = False
    manage_invites: bool = False
    manage_org_details: bool = False
    manage_stock: bool = False
    kick_members: bool = False


class ContractorRole(ContractorRoleCreate):
    role_id: str
    contractor_id: str

    model_config = {"from_attributes": True}


class Contractor(BaseModel):
    contractor_id: str
    spectrum_id: str
    name: str
    description: Optional[str] = None
    default_role: Optional[str] = None
    owner_role: Optional[str] = None
    archived: bool
    roles: List[ContractorRole] = []

    model_config = {"from_attributes": True}
