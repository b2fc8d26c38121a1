# app/api/v1/api.py

from fastapi import APIRouter
from app.api.v1.endpoints import (
    contractors,
    contracts,
    health,
    offers,
    orders,
)

# This is the main router for the v1 API.
# It will include all the specific endpoint routers.
api_router = APIRouter()

api_router.include_router(offers.router)
api_router.include_router(orders.router)
api_router.include_router(contracts.router)
api_router.include_router(contractors.router)
api_router.include_router(health.router)
