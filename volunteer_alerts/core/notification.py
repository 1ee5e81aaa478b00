"""Notification record model - Pure data structures.

A NotificationRecord states that a volunteer was notified about a request.
It reflects that delivery was attempted, not that it was confirmed.
"""

from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class NotificationRecord:
    """Immutable entry in the notification log.

    Attributes:
        id: Record ID, derived from the (request, volunteer) pair
        volunteer_id: Volunteer who was notified
        request_id: Request the notification was about
        timestamp: When the record was created (UTC)
        delivery_attempted: Handed to the delivery channel
    """
    id: str
    volunteer_id: str
    request_id: str
    timestamp: datetime
    delivery_attempted: bool = True


def notification_record_id(request_id: str, volunteer_id: str) -> str:
    """Record ID for a (request, volunteer) pair.

    Pure function. Two runs that notify the same pair produce the same ID,
    so stores can refuse the second record.
    """
    return f"{request_id}_{volunteer_id}"


def create_notification_record(
    request_id: str,
    volunteer_id: str,
    now: datetime | None = None,
) -> NotificationRecord:
    """Create a record for one (request, volunteer) pair."""
    return NotificationRecord(
        id=notification_record_id(request_id, volunteer_id),
        volunteer_id=volunteer_id,
        request_id=request_id,
        timestamp=now or datetime.now(timezone.utc),
    )
