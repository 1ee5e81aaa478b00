"""Message formatting - Pure functions.

This module renders help requests into notification text.
All functions are pure with no side effects.
"""

from volunteer_alerts.core.geo import Coordinate
from volunteer_alerts.core.request import HelpRequest


def format_location(location: Coordinate | None) -> str:
    """Describe a location, preferring the address.

    Pure function.
    """
    if location is None:
        return "unknown location"
    if location.address:
        return location.address
    return f"{location.latitude:.4f}, {location.longitude:.4f}"


def format_distance(km: float) -> str:
    """Format a distance for display.

    Pure function.

    Examples:
        0.45 -> "450m away"
        2.345 -> "2.3km away"
    """
    if km < 1:
        return f"{round(km * 1000)}m away"
    return f"{km:.1f}km away"


def format_notification_text(request: HelpRequest) -> str:
    """Render the text sent to a volunteer about a help request.

    Pure function.
    """
    return f'Emergency at {format_location(request.location)} - "{request.body}"'


def format_request_summary(request: HelpRequest) -> str:
    """Format a one-line summary of a request for logs.

    Pure function.
    """
    summary = f"[{request.classification}] {request.id} from {request.requester_id}"
    if request.location is not None:
        summary += f" at {format_location(request.location)}"
    if request.disaster_type:
        summary += f" ({request.disaster_type})"
    return summary
