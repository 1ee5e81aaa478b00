"""Conversion between domain objects and their stored shape - Pure functions.

Stored documents use the camelCase field names the web client reads.
"""

from datetime import datetime
from typing import Any

from volunteer_alerts.core.geo import Coordinate
from volunteer_alerts.core.notification import NotificationRecord
from volunteer_alerts.core.request import HelpRequest, STATUS_CREATED
from volunteer_alerts.core.volunteer import Volunteer, parse_location


def _to_datetime(value: Any) -> datetime:
    # Firestore hands back datetime subclasses; JSON round-trips give strings
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def location_to_dict(location: Coordinate) -> dict[str, Any]:
    return {
        "lat": location.latitude,
        "lng": location.longitude,
        "address": location.address,
    }


def request_to_dict(request: HelpRequest) -> dict[str, Any]:
    """Convert a HelpRequest to its stored shape.

    Pure function.
    """
    data: dict[str, Any] = {
        "id": request.id,
        "requesterId": request.requester_id,
        "requesterName": request.requester_name,
        "body": request.body,
        "classification": request.classification,
        "timestamp": request.timestamp,
        "status": request.status,
        "notifiedVolunteerIds": list(request.notified_volunteer_ids),
    }
    if request.location is not None:
        data["location"] = location_to_dict(request.location)
    if request.disaster_type:
        data["disasterType"] = request.disaster_type
    if request.error:
        data["error"] = request.error
    return data


def request_from_dict(data: dict[str, Any]) -> HelpRequest:
    """Rebuild a HelpRequest from its stored shape.

    Pure function.

    Raises:
        KeyError: If a required field is missing
    """
    return HelpRequest(
        id=data["id"],
        requester_id=data["requesterId"],
        requester_name=data.get("requesterName", ""),
        body=data["body"],
        classification=data["classification"],
        timestamp=_to_datetime(data["timestamp"]),
        location=parse_location(data.get("location")),
        disaster_type=data.get("disasterType"),
        status=data.get("status", STATUS_CREATED),
        error=data.get("error"),
        notified_volunteer_ids=list(data.get("notifiedVolunteerIds", [])),
    )


def record_to_dict(record: NotificationRecord) -> dict[str, Any]:
    """Convert a NotificationRecord to its stored shape.

    Pure function.
    """
    return {
        "id": record.id,
        "volunteerId": record.volunteer_id,
        "messageId": record.request_id,
        "timestamp": record.timestamp,
        "sent": record.delivery_attempted,
    }


def record_from_dict(data: dict[str, Any]) -> NotificationRecord:
    """Rebuild a NotificationRecord from its stored shape.

    Pure function.
    """
    return NotificationRecord(
        id=data["id"],
        volunteer_id=data["volunteerId"],
        request_id=data["messageId"],
        timestamp=_to_datetime(data["timestamp"]),
        delivery_attempted=bool(data.get("sent", True)),
    )


def to_json_ready(data: dict[str, Any]) -> dict[str, Any]:
    """Replace datetimes with ISO strings for JSON responses.

    Pure function.
    """
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in data.items()
    }


def volunteer_state_to_dict(volunteer: Volunteer) -> dict[str, Any]:
    """The exam and availability fields of a volunteer, in stored shape.

    Pure function.
    """
    return {
        "isVolunteer": volunteer.is_volunteer,
        "examPassed": volunteer.exam_passed,
        "examScore": volunteer.exam_score,
        "volunteerStatus": volunteer.volunteer_status,
        "isAvailable": volunteer.is_available,
        "dateRegistered": volunteer.date_registered,
    }


def merge_volunteer_state(record: dict[str, Any], volunteer: Volunteer) -> dict[str, Any]:
    """Write a volunteer's state back into a copy of its directory record.

    Pure function. Nested records get the fields under "volunteerData",
    flat records at the top level, matching where parse_volunteer reads them.
    """
    merged = dict(record)
    state = volunteer_state_to_dict(volunteer)
    if isinstance(merged.get("volunteerData"), dict):
        merged["volunteerData"] = {**merged["volunteerData"], **state}
    else:
        merged.update(state)
    return merged
