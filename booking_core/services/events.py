"""
booking_core/services/events.py

Event emitter: pushes booking events to the Redis list `events:p2p`
for the external notification consumer. Best-effort: a failed push is
logged and never fails the booking.
"""

import json
import time
import logging

from redis import Redis
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

P2P_QUEUE = "events:p2p"


def emit_event(redis: Redis, event_type: str, payload: dict) -> None:
    """Emit a p2p event (instant delivery)."""
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        redis.rpush(P2P_QUEUE, json.dumps(event))
        logger.info(f"Event emitted: {event_type} → {P2P_QUEUE}")
    except RedisError as e:
        logger.error(f"Failed to emit event {event_type}: {e}")


def booking_payload(reservation) -> dict:
    return {
        "booking_id": reservation.id,
        "professional_id": reservation.resource_id,
        "date": reservation.date.isoformat(),
        "start_minutes": reservation.start_minutes,
        "duration_minutes": reservation.duration_minutes,
        "status": reservation.status.value,
        "client_id": reservation.client_id,
        "service_id": reservation.service_id,
    }
