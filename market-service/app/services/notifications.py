# app/services/notifications.py
"""
Notification collaborator for the negotiation core.

The state machine calls emit(event_type, entity) after every committed
transition. Delivery (push, Discord, email) belongs to downstream consumers of
the Kafka topic. Emitting never raises; it blocks for at most
KAFKA_MAX_BLOCK_MS, and not at all while an unreachable broker is backed off.
"""
import logging
from typing import Any, Callable, Dict, Optional

from app.core.config import settings
from app.core.kafka_producer import get_kafka_singleton
from app.models.offer_session import OfferSession
from app.models.order import Order
from app.utils.kafka_helpers import publish_event
from app.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

# Event types
OFFER_CREATED = "offer.created"
OFFER_COUNTERED = "offer.countered"
OFFER_ACCEPTED = "offer.accepted"
OFFER_REJECTED = "offer.rejected"
OFFER_CANCELLED = "offer.cancelled"
OFFER_MERGED = "offer.merged"
ORDER_CREATED = "order.created"
ORDER_STATUS_CHANGED = "order.status_changed"


def describe_entity(entity: Any) -> Dict[str, Any]:
    if isinstance(entity, OfferSession):
        return {
            "entity": "offer_session",
            "id": entity.id,
            "status": entity.status,
            "customerId": entity.customer_id,
            "assignedId": entity.assigned_id,
            "contractorId": entity.contractor_id,
        }
    if isinstance(entity, Order):
        return {
            "entity": "order",
            "id": entity.order_id,
            "status": entity.status,
            "customerId": entity.customer_id,
            "assignedId": entity.assigned_id,
            "contractorId": entity.contractor_id,
            "offerSessionId": entity.offer_session_id,
        }
    if isinstance(entity, dict):
        return dict(entity)
    return {"entity": type(entity).__name__, "id": getattr(entity, "id", None)}


class OfferNotifier:
    """Publishes negotiation and order events to Kafka, fire-and-forget."""

    def __init__(
        self,
        topic: str = settings.OFFER_EVENTS_TOPIC,
        enabled: bool = settings.NOTIFICATIONS_ENABLED,
        producer_factory: Callable = get_kafka_singleton,
    ):
        self.topic = topic
        self.enabled = enabled
        self.producer_factory = producer_factory

    def emit(self, event_type: str, entity: Any, actor_id: Optional[str] = None) -> None:
        if not self.enabled:
            logger.debug(f"Notifications disabled, dropping {event_type}")
            return
        try:
            payload = describe_entity(entity)
            event = {
                "type": event_type,
                "actorId": actor_id,
                "occurredAt": utcnow().isoformat(),
                **payload,
            }
            publish_event(
                self.topic, event, key=payload.get("id"), producer_factory=self.producer_factory
            )
        except Exception as e:
            logger.error(f"Failed to emit {event_type}: {e}", exc_info=True)
