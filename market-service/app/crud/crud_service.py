# app/crud/crud_service.py
from typing import Optional
from sqlalchemy.orm import Session

from app.models.service import Service


def get(db: Session, service_id: str) -> Optional[Service]:
    return db.query(Service).filter(Service.service_id == service_id).first()
