# app/core/kafka_producer.py

import json
import logging
import threading
import time
from typing import Optional

from kafka import KafkaProducer
from app.core.config import settings

logger = logging.getLogger(__name__)

_producer: Optional[KafkaProducer] = None
_producer_lock = threading.Lock()
# Monotonic time before which no new connection attempt is made
_unavailable_until: float = 0.0


def create_kafka_producer() -> KafkaProducer:
    return KafkaProducer(
        bootstrap_servers=settings.KAFKA_BOOTSTRAP_SERVERS,
        value_serializer=lambda v: json.dumps(v, default=str).encode("utf-8"),
        # Bound every blocking step; notifications are fire-and-forget
        request_timeout_ms=5000,
        max_block_ms=settings.KAFKA_MAX_BLOCK_MS,
        api_version_auto_timeout_ms=settings.KAFKA_MAX_BLOCK_MS,
    )


def _back_off_locked() -> None:
    global _producer, _unavailable_until
    _unavailable_until = time.monotonic() + settings.KAFKA_RETRY_BACKOFF_SECONDS
    if _producer is not None:
        try:
            _producer.close(timeout=0)
        except Exception as e:
            logger.debug(f"Error closing Kafka producer: {e}")
        _producer = None


def get_kafka_singleton() -> Optional[KafkaProducer]:
    """
    Lazily create the process-wide producer.

    Returns None when Kafka is unreachable so callers can skip publishing.
    A failed connection is remembered for KAFKA_RETRY_BACKOFF_SECONDS, so only
    one caller per backoff window pays the connection timeout.
    """
    global _producer
    with _producer_lock:
        if _producer is None:
            if time.monotonic() < _unavailable_until:
                return None
            try:
                _producer = create_kafka_producer()
            except Exception as e:
                logger.warning(
                    f"Kafka producer unavailable, retrying in "
                    f"{settings.KAFKA_RETRY_BACKOFF_SECONDS}s: {e}"
                )
                _back_off_locked()
                return None
        return _producer


def mark_kafka_unavailable() -> None:
    """Drop the producer after a broker failure and back off before reconnecting."""
    with _producer_lock:
        _back_off_locked()


def close_kafka_singleton() -> None:
    global _producer
    with _producer_lock:
        if _producer is not None:
            _producer.flush(timeout=settings.KAFKA_MAX_BLOCK_MS / 1000)
            _producer.close()
            _producer = None
