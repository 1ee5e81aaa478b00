"""Deduplication logic - Pure functions.

This module decides which matched volunteers still need a notification
for a request, and reconciles notified lists written by overlapping runs.
All functions are pure with no side effects.

Note: Recording who was notified is done by the dispatcher, and its
persistence by the request store. This module only contains the logic.
"""

from typing import Iterable

from volunteer_alerts.core.volunteer import Volunteer


def filter_already_notified(
    volunteers: Iterable[Volunteer],
    already_notified_ids: Iterable[str],
) -> list[Volunteer]:
    """Drop volunteers already notified, and repeats within the input.

    Pure function. Order of first appearance is kept.

    Args:
        volunteers: Matched volunteers, nearest first
        already_notified_ids: IDs already notified for this request

    Returns:
        Volunteers that still need a notification
    """
    seen = set(already_notified_ids)
    pending = []
    for volunteer in volunteers:
        if volunteer.id in seen:
            continue
        seen.add(volunteer.id)
        pending.append(volunteer)
    return pending


def merge_notified_ids(stored: Iterable[str], incoming: Iterable[str]) -> list[str]:
    """Union of two notified lists, stored order first.

    Pure function. Used when saving over a request another run may have
    updated; the result never loses an ID and never repeats one.
    """
    merged = []
    seen: set[str] = set()
    for volunteer_id in [*stored, *incoming]:
        if volunteer_id not in seen:
            seen.add(volunteer_id)
            merged.append(volunteer_id)
    return merged
