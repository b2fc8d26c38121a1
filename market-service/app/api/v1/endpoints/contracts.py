# app/api/v1/endpoints/contracts.py
from typing import List

from fastapi import APIRouter, Depends, Request, status

from app.api import deps
from app.core.limiter import OFFER_WRITE_LIMIT, limiter
from app.models.account import Account
from app.schemas.contract import (
    ContractCreated,
    ContractOfferCreate,
    PublicContract,
    PublicContractCreate,
)
from app.schemas.offer import OfferCreated
from app.schemas.response import DataResponse, wrap
from app.services.contract_service import ContractService

router = APIRouter(prefix="/contracts", tags=["Contracts"])


@router.post(
    "",
    response_model=DataResponse[ContractCreated],
    status_code=status.HTTP_201_CREATED,
)
def create_contract(
    contract_in: PublicContractCreate,
    service: ContractService = Depends(deps.get_contract_service),
    current_user: Account = Depends(deps.get_current_account),
):
    """Post a public contract any seller may answer with an offer."""
    contract = service.create_contract(contract_in, current_user.user_id)
    return wrap(ContractCreated(contract_id=contract.id))


@router.get("", response_model=DataResponse[List[PublicContract]])
def list_contracts(
    service: ContractService = Depends(deps.get_contract_service),
    current_user: Account = Depends(deps.get_current_account),
):
    return wrap([PublicContract.model_validate(c) for c in service.list_contracts()])


@router.get("/{contract_id}", response_model=DataResponse[PublicContract])
def get_contract(
    contract_id: str,
    service: ContractService = Depends(deps.get_contract_service),
    current_user: Account = Depends(deps.get_current_account),
):
    return wrap(PublicContract.model_validate(service.get_contract(contract_id)))


@router.post(
    "/{contract_id}/offers",
    response_model=DataResponse[OfferCreated],
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(OFFER_WRITE_LIMIT)
def create_contract_offer(
    request: Request,
    contract_id: str,
    offer_in: ContractOfferCreate,
    service: ContractService = Depends(deps.get_contract_service),
    current_user: Account = Depends(deps.get_current_account),
):
    session = service.create_offer(contract_id, offer_in, current_user.user_id)
    return wrap(OfferCreated(session_id=session.id, offer_id=session.current_offer_id))
