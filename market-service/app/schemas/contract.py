# app/schemas/contract.py
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.offer import PaymentType
from app.utils.amounts import AMOUNT_DECIMAL_PLACES, AMOUNT_MAX_DIGITS


class PublicContractCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=2000)
    kind: str = Field(..., min_length=1, max_length=50)
    cost: Decimal = Field(
        ..., ge=0, max_digits=AMOUNT_MAX_DIGITS, decimal_places=AMOUNT_DECIMAL_PLACES
    )
    collateral: Decimal = Field(
        Decimal("0"), ge=0, max_digits=AMOUNT_MAX_DIGITS, decimal_places=AMOUNT_DECIMAL_PLACES
    )
    payment_type: PaymentType = "one-time"
    departure: Optional[str] = None
    destination: Optional[str] = None
    expiration: Optional[datetime] = None


class PublicContract(BaseModel):
    id: str
    customer_id: str
    title: str
    description: str
    kind: str
    cost: str
    collateral: str
    payment_type: str
    departure: Optional[str] = None
    destination: Optional[str] = None
    status: str
    expiration: Optional[datetime] = None
    timestamp: datetime

    model_config = {"from_attributes": True}


class ContractOfferCreate(BaseModel):
    """An offer against a public contract; contractor_id offers on behalf of an org."""

    contractor_id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=2000)
    kind: str = Field(..., min_length=1, max_length=50)
    cost: Decimal = Field(
        ..., ge=0, max_digits=AMOUNT_MAX_DIGITS, decimal_places=AMOUNT_DECIMAL_PLACES
    )
    collateral: Decimal = Field(
        Decimal("0"), ge=0, max_digits=AMOUNT_MAX_DIGITS, decimal_places=AMOUNT_DECIMAL_PLACES
    )
    payment_type: PaymentType = "one-time"


class ContractCreated(BaseModel):
    contract_id: str
