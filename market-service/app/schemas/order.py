# app/schemas/order.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel

OrderStatus = Literal["not-started", "in-progress", "fulfilled", "cancelled"]


class OrderMarketListing(BaseModel):
    listing_id: str
    quantity: int

    model_config = {"from_attributes": True}


class Order(BaseModel):
    order_id: str
    offer_session_id: Optional[str] = None
    customer_id: str
    assigned_id: Optional[str] = None
    contractor_id: Optional[str] = None
    title: str
    description: str
    kind: str
    cost: str
    collateral: str
    payment_type: str
    departure: Optional[str] = None
    destination: Optional[str] = None
    service_id: Optional[str] = None
    status: str
    created_at: datetime
    market_listings: List[OrderMarketListing] = []

    model_config = {"from_attributes": True}


class OrderStatusUpdate(BaseModel):
    # Validated by the service so unknown values surface as a 400 with a message
    status: str
