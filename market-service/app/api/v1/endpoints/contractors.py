# app/api/v1/endpoints/contractors.py
from fastapi import APIRouter, Depends, status

from app.api import deps
from app.models.account import Account
from app.schemas.contractor import (
    Contractor,
    ContractorCreate,
    ContractorRole,
    ContractorRoleCreate,
)
from app.schemas.response import DataResponse, ResultMessage, wrap
from app.services.contractor_service import ContractorService

router = APIRouter(prefix="/contractors", tags=["Contractors"])


@router.post(
    "",
    response_model=DataResponse[Contractor],
    status_code=status.HTTP_201_CREATED,
)
def create_contractor(
    contractor_in: ContractorCreate,
    service: ContractorService = Depends(deps.get_contractor_service),
    current_user: Account = Depends(deps.get_current_account),
):
    """Register an organization; the caller becomes its owner."""
    contractor = service.create_contractor(contractor_in, current_user.user_id)
    return wrap(Contractor.model_validate(contractor))


@router.post(
    "/{contractor_id}/roles",
    response_model=DataResponse[ContractorRole],
    status_code=status.HTTP_201_CREATED,
)
def create_role(
    contractor_id: str,
    role_in: ContractorRoleCreate,
    service: ContractorService = Depends(deps.get_contractor_service),
    current_user: Account = Depends(deps.get_current_account),
):
    role = service.create_role(contractor_id, role_in, current_user.user_id)
    return wrap(ContractorRole.model_validate(role))


@router.post(
    "/{contractor_id}/members/{user_id}/roles/{role_id}",
    response_model=DataResponse[ResultMessage],
)
def grant_role(
    contractor_id: str,
    user_id: str,
    role_id: str,
    service: ContractorService = Depends(deps.get_contractor_service),
    current_user: Account = Depends(deps.get_current_account),
):
    service.grant_role(contractor_id, user_id, role_id, current_user.user_id)
    return wrap(ResultMessage())


@router.delete(
    "/{contractor_id}/members/{user_id}/roles/{role_id}",
    response_model=DataResponse[ResultMessage],
)
def revoke_role(
    contractor_id: str,
    user_id: str,
    role_id: str,
    service: ContractorService = Depends(deps.get_contractor_service),
    current_user: Account = Depends(deps.get_current_account),
):
    service.revoke_role(contractor_id, user_id, role_id, current_user.user_id)
    return wrap(ResultMessage())


@router.delete(
    "/{contractor_id}/members/{user_id}",
    response_model=DataResponse[ResultMessage],
)
def kick_member(
    contractor_id: str,
    user_id: str,
    service: ContractorService = Depends(deps.get_contractor_service),
    current_user: Account = Depends(deps.get_current_account),
):
    service.kick_member(contractor_id, user_id, current_user.user_id)
    return wrap(ResultMessage())
