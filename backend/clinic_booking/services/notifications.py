"""
backend/clinic_booking/services/notifications.py

Notification collaborator.

The engine only needs send_reminder(recipient, booking). The shipped
implementation pushes a booking_reminder event onto the events:p2p Redis
list; rendering and e-mail delivery happen in the consumer.
"""

import json
import logging
import time
from typing import Protocol

from redis import Redis
from redis.exceptions import RedisError

from ..schemas.reminders import Recipient, ReminderCandidate
from .booking.errors import NotificationFailure

logger = logging.getLogger(__name__)

P2P_QUEUE = "events:p2p"


class Notifier(Protocol):
    def send_reminder(self, recipient: Recipient, booking: ReminderCandidate) -> bool:
        """
        Deliver a reminder. Blocking.

        Returns False or raises on failure.
        """
        ...


class EventQueueNotifier:
    """Emits booking_reminder events for instant (p2p) delivery."""

    def __init__(self, redis: Redis, queue: str = P2P_QUEUE):
        self.redis = redis
        self.queue = queue

    def send_reminder(self, recipient: Recipient, booking: ReminderCandidate) -> bool:
        event = {
            "type": "booking_reminder",
            "booking_id": booking.booking.id,
            "recipient": recipient.model_dump(),
            "booking": {
                "service_name": booking.service_name,
                "staff_name": booking.staff_name,
                "date": booking.booking.date.isoformat(),
                "time": booking.booking.start_time,
                "duration": booking.duration_min,
                "notes": booking.booking.notes,
            },
            "ts": int(time.time()),
        }
        try:
            self.redis.rpush(self.queue, json.dumps(event))
        except RedisError as e:
            raise NotificationFailure(
                f"Failed to emit booking_reminder for booking {booking.booking.id}: {e}"
            ) from e

        logger.info(f"Event emitted: booking_reminder → {self.queue}")
        return True


class LoggingNotifier:
    """Fallback when no event queue is configured: reminders go to the log only."""

    def send_reminder(self, recipient: Recipient, booking: ReminderCandidate) -> bool:
        logger.info(
            f"Reminder for booking {booking.booking.id} to {recipient.email}: "
            f"{booking.service_name} with {booking.staff_name} on "
            f"{booking.booking.date.isoformat()} at {booking.booking.start_time}"
        )
        return True
