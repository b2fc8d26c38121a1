# app/crud/crud_order.py
from typing import Optional
from sqlalchemy.orm import Session, selectinload

from app.models.order import Order, MarketListingOrder


def get(db: Session, order_id: str) -> Optional[Order]:
    return (
        db.query(Order)
        .options(selectinload(Order.market_listings))
        .filter(Order.order_id == order_id)
        .first()
    )


def get_for_update(db: Session, order_id: str) -> Optional[Order]:
    return (
        db.query(Order)
        .filter(Order.order_id == order_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def get_by_session(db: Session, offer_session_id: str) -> Optional[Order]:
    return db.query(Order).filter(Order.offer_session_id == offer_session_id).first()


def create(db: Session, **fields) -> Order:
    db_obj = Order(**fields)
    db.add(db_obj)
    db.flush()
    return db_obj


def add_market_listing(db: Session, *, order_id: str, listing_id: str, quantity: int) -> MarketListingOrder:
    db_obj = MarketListingOrder(order_id=order_id, listing_id=listing_id, quantity=quantity)
    db.add(db_obj)
    db.flush()
    return db_obj


def update(db: Session, *, order: Order, **fields) -> Order:
    for field, value in fields.items():
        setattr(order, field, value)
    db.flush()
    return order
