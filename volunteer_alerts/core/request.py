"""Help request models and submission validation - Pure functions.

This module turns raw submitted messages into typed HelpRequest objects.
Validation is pure; stamping falls back to a random ID and the current
time when none are passed in.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from volunteer_alerts.core.errors import MissingLocation, ValidationError
from volunteer_alerts.core.geo import Coordinate
from volunteer_alerts.core.volunteer import parse_location


# Observed limit of the message box in the client
DEFAULT_MAX_BODY_LENGTH = 500

CLASSIFICATION_INFO = "info"
CLASSIFICATION_HELP = "help"
CLASSIFICATION_ALERT = "alert"
CLASSIFICATIONS = (CLASSIFICATION_INFO, CLASSIFICATION_HELP, CLASSIFICATION_ALERT)

DISASTER_TYPES = ("flood", "earthquake", "cyclone", "fire", "landslide", "tsunami")

# Request lifecycle
STATUS_CREATED = "created"
STATUS_MATCHED = "matched"
STATUS_DISPATCHED = "dispatched"
STATUS_PERSISTED = "persisted"


@dataclass
class HelpRequest:
    """A submitted emergency message.

    Mutable: the pipeline advances status and appends to
    notified_volunteer_ids, which only ever grows and never repeats an ID.

    Attributes:
        id: Unique request ID
        requester_id: Directory ID of the submitter
        body: Message text
        classification: 'info', 'help' or 'alert'
        timestamp: Submission time (UTC)
        requester_name: Display name of the submitter
        location: Where help is needed (optional for non-help messages)
        disaster_type: Kind of disaster, if the submitter named one
        status: Lifecycle stage
        error: Pipeline error, if matching or dispatch failed
        notified_volunteer_ids: Volunteers already notified for this request
    """
    id: str
    requester_id: str
    body: str
    classification: str
    timestamp: datetime
    requester_name: str = ""
    location: Coordinate | None = None
    disaster_type: str | None = None
    status: str = STATUS_CREATED
    error: str | None = None
    notified_volunteer_ids: list[str] = field(default_factory=list)

    @property
    def is_help_request(self) -> bool:
        return self.classification == CLASSIFICATION_HELP

    @property
    def needs_matching(self) -> bool:
        """True if this request should be matched against volunteers."""
        return self.is_help_request and self.location is not None

    def has_notified(self, volunteer_id: str) -> bool:
        return volunteer_id in self.notified_volunteer_ids

    def mark_notified(self, volunteer_id: str) -> bool:
        """Append a volunteer ID unless already present.

        Returns:
            True if the ID was appended
        """
        if self.has_notified(volunteer_id):
            return False
        self.notified_volunteer_ids.append(volunteer_id)
        return True


@dataclass(frozen=True)
class SubmittedMessage:
    """A raw submission after validation, before it is stamped."""
    requester_id: str
    requester_name: str
    body: str
    classification: str
    location: Coordinate | None
    disaster_type: str | None


def _first(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def validate_submission(
    raw: dict[str, Any],
    max_body_length: int = DEFAULT_MAX_BODY_LENGTH,
) -> SubmittedMessage:
    """Validate a raw submitted message.

    Pure function. Accepts the client's field names ("message", "type",
    "userId", "userName") as well as the canonical ones.

    Args:
        raw: Submitted payload
        max_body_length: Maximum message length in characters

    Returns:
        Validated SubmittedMessage

    Raises:
        ValidationError: Body empty or too long, unknown classification,
            missing requester, or out-of-range coordinates
        MissingLocation: Help request without usable coordinates
    """
    if not isinstance(raw, dict):
        raise ValidationError("Request payload must be an object")

    body = _first(raw, "body", "message")
    if not isinstance(body, str) or not body.strip():
        raise ValidationError("Message body must not be empty", field="body")
    body = body.strip()
    if len(body) > max_body_length:
        raise ValidationError(
            f"Message body exceeds {max_body_length} characters ({len(body)})",
            field="body",
        )

    classification = _first(raw, "classification", "type") or CLASSIFICATION_INFO
    if classification not in CLASSIFICATIONS:
        raise ValidationError(
            f"Unknown classification '{classification}' "
            f"(expected one of: {', '.join(CLASSIFICATIONS)})",
            field="classification",
        )

    requester_id = _first(raw, "requester_id", "requesterId", "userId")
    if not requester_id:
        raise ValidationError("Requester ID is required", field="requester_id")

    location = parse_location(raw.get("location"))
    if classification == CLASSIFICATION_HELP:
        if location is None:
            raise MissingLocation()
        if not (-90 <= location.latitude <= 90 and -180 <= location.longitude <= 180):
            raise ValidationError(
                f"Location ({location.latitude}, {location.longitude}) out of range",
                field="location",
            )

    disaster_type = _first(raw, "disaster_type", "disasterType")
    if disaster_type is not None and disaster_type not in DISASTER_TYPES:
        raise ValidationError(
            f"Unknown disaster type '{disaster_type}'",
            field="disaster_type",
        )

    return SubmittedMessage(
        requester_id=str(requester_id),
        requester_name=str(_first(raw, "requester_name", "requesterName", "userName") or ""),
        body=body,
        classification=classification,
        location=location,
        disaster_type=disaster_type,
    )


def new_request_id() -> str:
    """Generate a unique request ID."""
    return uuid.uuid4().hex


def build_help_request(
    message: SubmittedMessage,
    request_id: str | None = None,
    now: datetime | None = None,
) -> HelpRequest:
    """Stamp a validated message with an ID and timestamp.

    Args:
        message: Validated submission
        request_id: ID to use (default: new random ID)
        now: Timestamp to use (default: now, UTC)

    Returns:
        HelpRequest in the 'created' state
    """
    return HelpRequest(
        id=request_id or new_request_id(),
        requester_id=message.requester_id,
        requester_name=message.requester_name,
        body=message.body,
        classification=message.classification,
        location=message.location,
        disaster_type=message.disaster_type,
        timestamp=now or datetime.now(timezone.utc),
    )
