# app/schemas/offer.py
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from app.utils.amounts import AMOUNT_DECIMAL_PLACES, AMOUNT_MAX_DIGITS

PaymentType = Literal[
    "one-time", "hourly", "daily", "unit", "box", "scu", "cscu", "mscu"
]
ResponseStatus = Literal["counteroffered", "accepted", "rejected", "cancelled"]
OfferSearchStatus = Literal["to-seller", "to-customer", "accepted", "rejected"]
OfferSearchSortMethod = Literal["title", "status", "timestamp"]


class OfferMarketListingIn(BaseModel):
    listing_id: str
    quantity: int = Field(..., ge=1)


class OfferTerms(BaseModel):
    title: str = Field(..., min_length=1, max_length=100, json_schema_extra={"example": "Escort to Crusader"})
    description: str = Field("", max_length=2000)
    kind: str = Field(..., min_length=1, max_length=50, json_schema_extra={"example": "Escort"})
    cost: Decimal = Field(
        ...,
        ge=0,
        max_digits=AMOUNT_MAX_DIGITS,
        decimal_places=AMOUNT_DECIMAL_PLACES,
        json_schema_extra={"example": "150000"},
    )
    collateral: Decimal = Field(
        Decimal("0"), ge=0, max_digits=AMOUNT_MAX_DIGITS, decimal_places=AMOUNT_DECIMAL_PLACES
    )
    payment_type: PaymentType = "one-time"
    departure: Optional[str] = None
    destination: Optional[str] = None
    service_id: Optional[str] = None
    market_listings: List[OfferMarketListingIn] = []


class OfferCreate(OfferTerms):
    """
    Open a negotiation. The caller is the customer unless customer_id names
    someone else, in which case the caller must act for the seller side.
    """

    customer_id: Optional[str] = None
    assigned_id: Optional[str] = None
    contractor_id: Optional[str] = None


class OfferResponseIn(BaseModel):
    """Body of PUT /offer/{session_id}."""

    status: ResponseStatus
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    kind: Optional[str] = Field(None, min_length=1, max_length=50)
    cost: Optional[Decimal] = Field(
        None, ge=0, max_digits=AMOUNT_MAX_DIGITS, decimal_places=AMOUNT_DECIMAL_PLACES
    )
    collateral: Optional[Decimal] = Field(
        None, ge=0, max_digits=AMOUNT_MAX_DIGITS, decimal_places=AMOUNT_DECIMAL_PLACES
    )
    payment_type: Optional[PaymentType] = None
    departure: Optional[str] = None
    destination: Optional[str] = None
    service_id: Optional[str] = None
    market_listings: List[OfferMarketListingIn] = []

    @model_validator(mode="after")
    def counter_offer_needs_terms(self):
        if self.status == "counteroffered":
            missing = [f for f in ("title", "kind", "cost") if getattr(self, f) is None]
            if missing:
                raise ValueError(f"Counter-offer is missing: {', '.join(missing)}")
        return self


class OfferMergeIn(BaseModel):
    offer_session_ids: List[str]


class OfferMarketListingOut(BaseModel):
    listing_id: str
    quantity: int

    model_config = {"from_attributes": True}


class OfferRevision(BaseModel):
    id: str
    session_id: str
    sequence: int
    actor_id: str
    title: str
    description: str
    kind: str
    cost: str
    collateral: str
    payment_type: str
    status: str
    departure: Optional[str] = None
    destination: Optional[str] = None
    service_id: Optional[str] = None
    timestamp: datetime
    market_listings: List[OfferMarketListingOut] = []

    model_config = {"from_attributes": True}


class OfferSessionStub(BaseModel):
    id: str
    status: str
    customer_id: str
    assigned_id: Optional[str] = None
    contractor_id: Optional[str] = None
    created_at: datetime
    most_recent_offer: Optional[OfferRevision] = None


class OfferSessionDetails(BaseModel):
    id: str
    status: str
    customer_id: str
    assigned_id: Optional[str] = None
    contractor_id: Optional[str] = None
    current_offer_id: Optional[str] = None
    merged_into_id: Optional[str] = None
    contract_id: Optional[str] = None
    created_at: datetime
    offers: List[OfferRevision] = []


class OfferCreated(BaseModel):
    session_id: str
    offer_id: str


class OfferRespondResult(BaseModel):
    result: str = "Success"
    session_id: str
    status: str
    order_id: Optional[str] = None


class OfferMergeResult(BaseModel):
    result: str = "Success"
    merged_offer_session: OfferSessionDetails
    source_offer_session_ids: List[str]
    message: str


class OfferSearchQuery(BaseModel):
    customer_id: Optional[str] = None
    assigned_id: Optional[str] = None
    contractor_id: Optional[str] = None
    status: Optional[OfferSearchStatus] = None
    cost_min: Optional[Decimal] = None
    cost_max: Optional[Decimal] = None
    sort_method: OfferSearchSortMethod = "timestamp"
    reverse_sort: bool = False
    index: int = Field(0, ge=0)
    page_size: int = Field(5, ge=1, le=25)


class OfferSearchResult(BaseModel):
    items: List[OfferSessionStub]
    item_counts: dict
