# app/services/order_service.py
"""
Order Materializer and order status transitions.

An order is created exactly once per accepted offer session. The accept path
calls build_order() inside its own transaction; materialize() is the
standalone, self-committing entry point.
"""
import logging
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import (
    NotFoundError,
    PermissionDeniedError,
    StateConflictError,
    ValidationError,
)
from app.crud import crud_market_listing, crud_offer_session, crud_order
from app.models.offer_session import OfferSession, OrderOffer
from app.models.order import ORDER_STATUSES, Order
from app.services import notifications
from app.services.notifications import OfferNotifier
from app.services.permissions import PermissionEvaluator

logger = logging.getLogger(__name__)

# Commercial terms carried from the accepted revision onto the order
ORDER_TERM_FIELDS = (
    "title",
    "description",
    "kind",
    "cost",
    "collateral",
    "payment_type",
    "departure",
    "destination",
    "service_id",
)


class OrderService:
    def __init__(
        self,
        db: Session,
        permissions: Optional[PermissionEvaluator] = None,
        notifier: Optional[OfferNotifier] = None,
    ):
        self.db = db
        self.permissions = permissions or PermissionEvaluator(db)
        self.notifier = notifier or OfferNotifier()

    def related_to_order(self, order: Order, user_id: str) -> bool:
        return self.permissions.is_related(order, user_id)

    def build_order(self, session: OfferSession, revision: OrderOffer) -> Tuple[Order, bool]:
        """
        Create the order for an accepted session without committing.

        Returns (order, created). When the session already has an order it is
        returned unchanged with created=False.
        """
        existing = crud_order.get_by_session(self.db, session.id)
        if existing:
            return existing, False

        fields = {name: getattr(revision, name) for name in ORDER_TERM_FIELDS}
        order = crud_order.create(
            self.db,
            offer_session_id=session.id,
            customer_id=session.customer_id,
            assigned_id=session.assigned_id,
            contractor_id=session.contractor_id,
            status="not-started",
            **fields,
        )

        for item in crud_offer_session.list_market_listings(self.db, revision.id):
            crud_order.add_market_listing(
                self.db,
                order_id=order.order_id,
                listing_id=item.listing_id,
                quantity=item.quantity,
            )
            listing = crud_market_listing.get_for_update(self.db, item.listing_id)
            if listing:
                crud_market_listing.subtract_stock(self.db, listing=listing, quantity=item.quantity)

        logger.info(f"Materialized order {order.order_id} from offer session {session.id}")
        return order, True

    def materialize(self, session: OfferSession, revision: OrderOffer) -> Order:
        try:
            order, created = self.build_order(session, revision)
            self.db.commit()
        except IntegrityError:
            # Another transaction won the unique offer_session_id race
            self.db.rollback()
            order = crud_order.get_by_session(self.db, session.id)
            if order is None:
                raise
            return order
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(order)
        if created:
            self.notifier.emit(notifications.ORDER_CREATED, order)
        return order

    def get_order(self, order_id: str, user_id: str) -> Order:
        order = crud_order.get(self.db, order_id)
        if not order:
            raise NotFoundError("Order not found", error_code="ORDER_NOT_FOUND")
        if not self.related_to_order(order, user_id):
            raise PermissionDeniedError("You are not related to this order")
        return order

    def update_status(self, order_id: str, user_id: str, status: str) -> Order:
        if status not in ORDER_STATUSES:
            raise ValidationError(
                f"Invalid status '{status}'. Must be one of: {', '.join(ORDER_STATUSES)}"
            )

        try:
            order = crud_order.get_for_update(self.db, order_id)
            if not order:
                raise NotFoundError("Order not found", error_code="ORDER_NOT_FOUND")

            is_admin = self.permissions.is_admin(user_id)
            if order.is_closed and not is_admin:
                raise StateConflictError(
                    f"Order is already {order.status}", error_code="ORDER_CLOSED"
                )

            if status == "cancelled":
                if not self.related_to_order(order, user_id):
                    raise PermissionDeniedError("You are not related to this order")
            elif not (is_admin or self.permissions.is_seller_side(order, user_id)):
                raise PermissionDeniedError("Only the seller can change this order's status")

            previous = order.status
            if previous == status:
                self.db.rollback()
                return order

            changes = {"status": status}
            if (
                status == "in-progress"
                and order.contractor_id
                and order.assigned_id is None
                and self.permissions.is_member(order.contractor_id, user_id)
            ):
                changes["assigned_id"] = user_id

            crud_order.update(self.db, order=order, **changes)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(order)
        logger.info(f"Order {order_id} status {previous} -> {status} by {user_id}")
        self.notifier.emit(notifications.ORDER_STATUS_CHANGED, order, actor_id=user_id)
        return order
