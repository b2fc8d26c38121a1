# app/api/v1/endpoints/orders.py
from fastapi import APIRouter, Depends

from app.api import deps
from app.models.account import Account
from app.schemas.order import Order, OrderStatusUpdate
from app.schemas.response import DataResponse, wrap
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.get("/{order_id}", response_model=DataResponse[Order])
def get_order(
    order_id: str,
    service: OrderService = Depends(deps.get_order_service),
    current_user: Account = Depends(deps.get_current_account),
):
    order = service.get_order(order_id, current_user.user_id)
    return wrap(Order.model_validate(order))


@router.put("/{order_id}/status", response_model=DataResponse[Order])
def update_order_status(
    order_id: str,
    status_in: OrderStatusUpdate,
    service: OrderService = Depends(deps.get_order_service),
    current_user: Account = Depends(deps.get_current_account),
):
    """
    Move an order between not-started, in-progress, fulfilled and cancelled.
    Closed orders can only be reopened by an admin.
    """
    order = service.update_status(order_id, current_user.user_id, status_in.status)
    return wrap(Order.model_validate(order))
