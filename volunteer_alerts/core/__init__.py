"""Functional Core - Pure functions with no side effects.

This module contains all business logic as pure functions:
- Geo/distance calculations
- Volunteer directory parsing and eligibility
- Help request validation
- Proximity matching
- Notification deduplication
- Message formatting

All functions here are deterministic and have no I/O.
"""

from volunteer_alerts.core.geo import Coordinate, calculate_distance, distance_km
from volunteer_alerts.core.volunteer import (
    Qualifications,
    Volunteer,
    parse_volunteers,
    qualified_available_volunteers,
)
from volunteer_alerts.core.request import HelpRequest, validate_submission
from volunteer_alerts.core.matcher import match, match_with_distances
from volunteer_alerts.core.notification import NotificationRecord
from volunteer_alerts.core.dedup import filter_already_notified
from volunteer_alerts.core.errors import (
    DeliveryFailure,
    InvalidRequestLocation,
    MissingLocation,
    ValidationError,
)

__all__ = [
    # Geo
    "Coordinate",
    "calculate_distance",
    "distance_km",
    # Volunteers
    "Qualifications",
    "Volunteer",
    "parse_volunteers",
    "qualified_available_volunteers",
    # Requests
    "HelpRequest",
    "validate_submission",
    # Matching
    "match",
    "match_with_distances",
    # Notifications
    "NotificationRecord",
    "filter_already_notified",
    # Errors
    "DeliveryFailure",
    "InvalidRequestLocation",
    "MissingLocation",
    "ValidationError",
]
