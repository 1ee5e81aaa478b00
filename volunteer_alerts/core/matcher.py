"""Proximity matching - Pure functions.

This module selects the volunteers close enough to a help request to be
notified. All functions are pure with no side effects.
"""

from typing import TYPE_CHECKING, Iterable

from volunteer_alerts.core.errors import InvalidRequestLocation
from volunteer_alerts.core.geo import Coordinate, DistanceFunction, distance_km
from volunteer_alerts.core.volunteer import Volunteer

if TYPE_CHECKING:
    from volunteer_alerts.core.config import Config


DEFAULT_MATCH_RADIUS_KM = 10.0


def match_with_distances(
    request_location: Coordinate | None,
    radius_km: float,
    candidates: Iterable[Volunteer],
    distance_fn: DistanceFunction = distance_km,
    limit: int | None = None,
) -> list[tuple[Volunteer, float]]:
    """Find candidates within radius_km of the request, nearest first.

    Pure function. Candidates without a location are skipped. Ties keep
    their candidate order.

    Args:
        request_location: Where help is needed
        radius_km: Maximum distance (inclusive)
        candidates: Volunteers to consider
        distance_fn: Distance metric in kilometers
        limit: Keep only the nearest N (None or 0 for no limit)

    Returns:
        List of (volunteer, distance_km) tuples sorted by distance

    Raises:
        InvalidRequestLocation: If request_location is None
    """
    if request_location is None:
        raise InvalidRequestLocation("Cannot match volunteers without a request location")

    nearby = []
    for volunteer in candidates:
        if volunteer.location is None:
            continue
        distance = distance_fn(request_location, volunteer.location)
        if distance <= radius_km:
            nearby.append((volunteer, distance))

    # sorted() is stable, so equidistant volunteers keep candidate order
    nearby = sorted(nearby, key=lambda x: x[1])

    if limit:
        nearby = nearby[:limit]

    return nearby


def match(
    request_location: Coordinate | None,
    radius_km: float,
    candidates: Iterable[Volunteer],
    distance_fn: DistanceFunction = distance_km,
    limit: int | None = None,
) -> list[Volunteer]:
    """Select volunteers within radius_km of the request, nearest first.

    Pure function. See match_with_distances() for details.
    """
    return [
        volunteer for volunteer, _ in match_with_distances(
            request_location, radius_km, candidates, distance_fn, limit,
        )
    ]


def radius_for_request(disaster_type: str | None, config: "Config") -> float:
    """Resolve the match radius for a request.

    Pure function. A per-disaster-type override wins over the default.
    """
    if disaster_type and disaster_type in config.radius_by_disaster_type:
        return config.radius_by_disaster_type[disaster_type]
    return config.match_radius_km
