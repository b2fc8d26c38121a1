# app/api/v1/endpoints/offers.py
from typing import Annotated, List

from fastapi import APIRouter, Depends, Query, Request, status

from app.api import deps
from app.core.limiter import MERGE_LIMIT, OFFER_WRITE_LIMIT, limiter
from app.models.account import Account
from app.schemas.offer import (
    OfferCreate,
    OfferCreated,
    OfferMergeIn,
    OfferMergeResult,
    OfferRespondResult,
    OfferResponseIn,
    OfferSearchQuery,
    OfferSearchResult,
    OfferSessionDetails,
    OfferSessionStub,
)
from app.schemas.response import DataResponse, wrap
from app.services.offer_session_service import OfferSessionService

router = APIRouter(tags=["Offers"])


@router.post(
    "/offers",
    response_model=DataResponse[OfferCreated],
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(OFFER_WRITE_LIMIT)
def create_offer(
    request: Request,
    offer_in: OfferCreate,
    service: OfferSessionService = Depends(deps.get_offer_service),
    current_user: Account = Depends(deps.get_current_account),
):
    """
    Open a negotiation with a user or a contractor.
    """
    session, offer = service.create_offer(offer_in, current_user.user_id)
    return wrap(OfferCreated(session_id=session.id, offer_id=offer.id))


@router.put("/offer/{session_id}", response_model=DataResponse[OfferRespondResult])
@limiter.limit(OFFER_WRITE_LIMIT)
def respond_to_offer(
    request: Request,
    session_id: str,
    response_in: OfferResponseIn,
    service: OfferSessionService = Depends(deps.get_offer_service),
    current_user: Account = Depends(deps.get_current_account),
):
    """
    Counter, accept, reject or cancel the current revision of a session.
    Accepting creates the order.
    """
    result = service.respond(session_id, current_user.user_id, response_in)
    return wrap(result)


@router.post("/offers/merge", response_model=DataResponse[OfferMergeResult])
@limiter.limit(MERGE_LIMIT)
def merge_offers(
    request: Request,
    merge_in: OfferMergeIn,
    service: OfferSessionService = Depends(deps.get_offer_service),
    current_user: Account = Depends(deps.get_current_account),
):
    merged, source_ids = service.merge_offers(merge_in.offer_session_ids, current_user.user_id)
    return wrap(
        OfferMergeResult(
            merged_offer_session=service.describe_session(merged),
            source_offer_session_ids=source_ids,
            message=f"Successfully merged {len(source_ids)} offer sessions",
        )
    )


@router.get("/offers/search", response_model=DataResponse[OfferSearchResult])
def search_offers(
    query: Annotated[OfferSearchQuery, Query()],
    service: OfferSessionService = Depends(deps.get_offer_service),
    current_user: Account = Depends(deps.get_current_account),
):
    return wrap(service.search(query, current_user.user_id))


@router.get("/offers/received", response_model=DataResponse[List[OfferSessionStub]])
def list_received_offers(
    service: OfferSessionService = Depends(deps.get_offer_service),
    current_user: Account = Depends(deps.get_current_account),
):
    """Sessions where the caller is the assigned seller."""
    return wrap(service.list_received(current_user.user_id))


@router.get("/offers/sent", response_model=DataResponse[List[OfferSessionStub]])
def list_sent_offers(
    service: OfferSessionService = Depends(deps.get_offer_service),
    current_user: Account = Depends(deps.get_current_account),
):
    """Sessions where the caller is the customer."""
    return wrap(service.list_sent(current_user.user_id))


@router.get(
    "/offers/contractor/{contractor_id}/received",
    response_model=DataResponse[List[OfferSessionStub]],
)
def list_contractor_offers(
    contractor_id: str,
    service: OfferSessionService = Depends(deps.get_offer_service),
    current_user: Account = Depends(deps.get_current_account),
):
    return wrap(service.list_contractor_received(contractor_id, current_user.user_id))


@router.get("/offer/{session_id}", response_model=DataResponse[OfferSessionDetails])
def get_offer_session(
    session_id: str,
    service: OfferSessionService = Depends(deps.get_offer_service),
    current_user: Account = Depends(deps.get_current_account),
):
    return wrap(service.get_session_details(session_id, current_user.user_id))
