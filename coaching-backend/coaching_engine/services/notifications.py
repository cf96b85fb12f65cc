"""
Notification Sink

Fire-and-forget event publishing. The engine publishes after a transaction
commits; a failing sink is logged and never fails the operation that
produced the event.
"""
import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple

from redis import asyncio as aioredis

from coaching_engine.config import get_settings

logger = logging.getLogger(__name__)

SESSION_BOOKED = "session.booked"
SESSION_CANCELLED = "session.cancelled"
SESSION_RESCHEDULED = "session.rescheduled"
SESSION_COMPLETED = "session.completed"
ATTENDEE_REGISTERED = "attendee.registered"
ATTENDEE_UNREGISTERED = "attendee.unregistered"
SUBMISSION_CREATED = "submission.created"
SUBMISSION_REVIEWED = "submission.reviewed"


class NotificationSink(Protocol):
    async def publish(self, event: str, payload: Dict[str, Any]) -> None:
        ...


def build_message(event: str, payload: Dict[str, Any]) -> str:
    return json.dumps(
        {
            "event": event,
            "payload": payload,
            "published_at": datetime.now(timezone.utc).isoformat(),
        },
        default=str,
    )


class LoggingNotificationSink:
    """Writes events to the application log"""

    async def publish(self, event: str, payload: Dict[str, Any]) -> None:
        logger.info(f"Notification {event}: {json.dumps(payload, default=str)}")


class RedisNotificationSink:
    """Publishes events as JSON on a Redis pub/sub channel"""

    def __init__(self, client: aioredis.Redis, channel: str):
        self.client = client
        self.channel = channel

    async def publish(self, event: str, payload: Dict[str, Any]) -> None:
        try:
            await self.client.publish(self.channel, build_message(event, payload))
        except Exception as e:
            logger.warning(f"Dropped notification {event} on {self.channel}: {e}")


class RecordingNotificationSink:
    """Keeps events in memory, for tests and local tooling"""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    async def publish(self, event: str, payload: Dict[str, Any]) -> None:
        self.events.append((event, payload))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]


async def notify(sink: Optional[NotificationSink], event: str, payload: Dict[str, Any]) -> None:
    """Publish through a sink without letting sink failures escape"""
    if sink is None:
        return
    try:
        await sink.publish(event, payload)
    except Exception as e:
        logger.warning(f"Notification sink failed for {event}: {e}", exc_info=True)


def build_notification_sink(redis_client: Optional[aioredis.Redis] = None) -> NotificationSink:
    """Sink selected by NOTIFICATION_BACKEND"""
    settings = get_settings()
    if settings.notification_backend == "redis" and redis_client is not None:
        return RedisNotificationSink(redis_client, settings.notification_channel)
    return LoggingNotificationSink()
