# app/utils/kafka_helpers.py
"""
Kafka helper functions for publishing events to topics.
Uses the singleton producer from app.core.kafka_producer.
"""
import logging
from typing import Callable, Optional

from kafka import KafkaProducer
from kafka.errors import KafkaError

from app.core.kafka_producer import get_kafka_singleton, mark_kafka_unavailable

logger = logging.getLogger(__name__)


def publish_event(
    topic: str,
    event_data: dict,
    key: Optional[str] = None,
    producer_factory: Callable[[], Optional[KafkaProducer]] = get_kafka_singleton,
) -> bool:
    """
    Publish one event without waiting for the broker acknowledgement.

    Args:
        topic: Kafka topic name
        event_data: JSON-serializable payload
        key: Optional partition key (entity id) to keep per-entity ordering
        producer_factory: Returns a producer or None when Kafka is unavailable

    Returns:
        bool: True if handed to the producer, False otherwise
    """
    try:
        producer = producer_factory()

        if producer is None:
            logger.warning("Kafka producer unavailable, skipping event publish")
            return False

        producer.send(
            topic,
            value=event_data,
            key=key.encode("utf-8") if key else None,
        )
        logger.info(f"Published {event_data.get('type')} event to {topic}")
        return True

    except KafkaError as e:
        # Broker trouble: stop paying the timeout on every event for a while
        logger.error(f"Failed to publish event to {topic}: {e}")
        mark_kafka_unavailable()
        return False

    except Exception as e:
        logger.error(f"Failed to publish event to {topic}: {e}", exc_info=True)
        return False
