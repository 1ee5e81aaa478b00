"""Volunteer data models and directory queries - Pure functions.

This module parses raw directory records into typed Volunteer objects,
answers "who may receive alerts", and applies exam results.
All functions are pure with no side effects.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Iterable

from volunteer_alerts.core.geo import Coordinate


# Minimum exam percentage that qualifies a volunteer
DEFAULT_PASS_THRESHOLD = 70.0

STATUS_PENDING = "pending"
STATUS_ACTIVE = "active"
STATUS_INACTIVE = "inactive"
VOLUNTEER_STATUSES = (STATUS_PENDING, STATUS_ACTIVE, STATUS_INACTIVE)


@dataclass(frozen=True)
class Qualifications:
    """Capabilities a volunteer declared at registration.

    Attributes:
        has_first_aid: Can provide medical aid
        has_transportation: Has a vehicle available
        has_disaster_experience: Has worked a disaster before
        can_provide_food: Can supply food
        can_provide_accommodation: Can host displaced people
    """
    has_first_aid: bool = False
    has_transportation: bool = False
    has_disaster_experience: bool = False
    can_provide_food: bool = False
    can_provide_accommodation: bool = False

    @property
    def capabilities(self) -> list[str]:
        """Names of the capabilities that are set."""
        return [name for name, value in vars(self).items() if value]


@dataclass(frozen=True)
class Volunteer:
    """Immutable view of a directory entry.

    Attributes:
        id: Directory user ID
        name: Display name
        phone_number: Contact address used for notifications
        email: Email address
        qualifications: Declared capabilities (None if never submitted)
        is_volunteer: Registered as a volunteer
        exam_passed: Passed the qualification exam
        exam_score: Exam percentage (0-100)
        volunteer_status: 'pending', 'active' or 'inactive'
        is_available: Currently accepting requests
        location: Home/base location (None if unset)
        date_registered: When the volunteer qualified
        skills: Free-form skill tags
    """
    id: str
    name: str = ""
    phone_number: str = ""
    email: str = ""
    qualifications: Qualifications | None = None
    is_volunteer: bool = False
    exam_passed: bool = False
    exam_score: float = 0.0
    volunteer_status: str = STATUS_PENDING
    is_available: bool = False
    location: Coordinate | None = None
    date_registered: datetime | None = None
    skills: tuple[str, ...] = ()

    @property
    def contact_address(self) -> str:
        """Address the delivery channel should use."""
        return self.phone_number or self.email


_QUALIFICATION_KEYS = {
    "hasFirstAid": "has_first_aid",
    "hasTransportation": "has_transportation",
    "hasDisasterExperience": "has_disaster_experience",
    "canProvideFood": "can_provide_food",
    "canProvideAccommodation": "can_provide_accommodation",
}


def parse_qualifications(data: Any) -> Qualifications | None:
    """Parse a qualification record into a fixed-shape Qualifications.

    Pure function. Accepts camelCase or snake_case keys; unknown keys are
    ignored and missing ones default to False.

    Returns:
        Qualifications, or None if data is not a mapping
    """
    if not isinstance(data, dict):
        return None

    values = {}
    for camel, snake in _QUALIFICATION_KEYS.items():
        raw = data.get(camel, data.get(snake, False))
        values[snake] = bool(raw)

    return Qualifications(**values)


def parse_location(data: Any) -> Coordinate | None:
    """Parse a {lat, lng, address} mapping into a Coordinate.

    Pure function. Plain address strings carry no coordinates and parse
    as None.
    """
    if not isinstance(data, dict):
        return None

    lat = data.get("lat", data.get("latitude"))
    lng = data.get("lng", data.get("longitude"))
    if lat is None or lng is None:
        return None

    try:
        return Coordinate(
            latitude=float(lat),
            longitude=float(lng),
            address=str(data.get("address") or ""),
        )
    except (TypeError, ValueError):
        return None


def _parse_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    return None


def parse_volunteer(record: dict[str, Any]) -> Volunteer | None:
    """Parse a directory record into a Volunteer.

    Pure function. Understands both the nested layout, where volunteer
    fields live under "volunteerData", and the flat layout where they sit
    on the user record itself.

    Args:
        record: Raw user record from the directory

    Returns:
        Volunteer object or None if the record has no usable ID
    """
    try:
        volunteer_id = record.get("id") or record.get("_id")
        if not volunteer_id:
            return None

        data = record.get("volunteerData")
        if not isinstance(data, dict):
            data = record

        status = data.get("volunteerStatus", record.get("volunteerStatus"))
        if status not in VOLUNTEER_STATUSES:
            status = STATUS_ACTIVE if data.get("examPassed") else STATUS_PENDING

        skills = data.get("skills") or ()
        if isinstance(skills, str):
            skills = tuple(s.strip() for s in skills.split(",") if s.strip())

        return Volunteer(
            id=str(volunteer_id),
            name=str(data.get("name") or record.get("fullName") or ""),
            phone_number=str(data.get("phoneNumber") or record.get("phoneNumber") or ""),
            email=str(record.get("email") or ""),
            qualifications=parse_qualifications(
                record.get("qualifications", data.get("qualifications"))
            ),
            is_volunteer=bool(data.get("isVolunteer", False)),
            exam_passed=bool(data.get("examPassed", False)),
            exam_score=float(data.get("examScore") or 0.0),
            volunteer_status=status,
            is_available=bool(data.get("isAvailable", False)),
            location=parse_location(data.get("location")),
            date_registered=_parse_datetime(data.get("dateRegistered")),
            skills=tuple(str(s) for s in skills),
        )
    except (AttributeError, TypeError, ValueError):
        return None


def parse_volunteers(records: Iterable[dict[str, Any]]) -> list[Volunteer]:
    """Parse directory records, dropping the ones that cannot be parsed.

    Pure function. Preserves directory order.
    """
    volunteers = []
    for record in records:
        volunteer = parse_volunteer(record)
        if volunteer is not None:
            volunteers.append(volunteer)
    return volunteers


def is_qualified_and_available(volunteer: Volunteer) -> bool:
    """Check whether a volunteer may receive alerts right now.

    Pure function.
    """
    return (
        volunteer.qualifications is not None
        and volunteer.exam_passed
        and volunteer.is_volunteer
        and volunteer.is_available
    )


def qualified_available_volunteers(directory: Iterable[Volunteer]) -> list[Volunteer]:
    """Filter a directory down to volunteers eligible for alerts.

    Pure function. Recomputed on every call; directory order is kept.

    Args:
        directory: All known volunteers

    Returns:
        Volunteers with qualifications on file, a passed exam, the
        volunteer flag set, and availability switched on
    """
    return [v for v in directory if is_qualified_and_available(v)]


def exam_percentage(correct_answers: int, total_questions: int) -> float:
    """Convert an exam result into a percentage score.

    Pure function.

    Raises:
        ValueError: If total_questions is not positive, or
            correct_answers falls outside 0..total_questions
    """
    if total_questions <= 0:
        raise ValueError("Exam must have at least one question")
    if not 0 <= correct_answers <= total_questions:
        raise ValueError(
            f"Correct answers must be between 0 and {total_questions}, got {correct_answers}"
        )
    return correct_answers / total_questions * 100


def is_passing_score(score: float, pass_threshold: float = DEFAULT_PASS_THRESHOLD) -> bool:
    """Pure function."""
    return score >= pass_threshold


def apply_exam_result(
    volunteer: Volunteer,
    score: float,
    pass_threshold: float = DEFAULT_PASS_THRESHOLD,
    now: datetime | None = None,
) -> Volunteer:
    """Record an exam attempt and return the updated volunteer.

    Pure function - returns a new Volunteer without modifying the input.
    A passing score activates the volunteer; a failing one leaves them
    pending so they can retake the exam.

    Args:
        volunteer: Volunteer who took the exam
        score: Exam percentage
        pass_threshold: Minimum passing percentage
        now: Registration time to stamp on first pass (default: now, UTC)

    Returns:
        Updated Volunteer
    """
    if not is_passing_score(score, pass_threshold):
        return replace(
            volunteer,
            exam_score=score,
            exam_passed=False,
            is_volunteer=False,
            volunteer_status=STATUS_PENDING,
        )

    registered = volunteer.date_registered or now or datetime.now(timezone.utc)
    return replace(
        volunteer,
        exam_score=score,
        exam_passed=True,
        is_volunteer=True,
        volunteer_status=STATUS_ACTIVE,
        date_registered=registered,
    )


def set_availability(volunteer: Volunteer, available: bool) -> Volunteer:
    """Return a copy of the volunteer with availability toggled.

    Pure function.
    """
    return replace(volunteer, is_available=available)
