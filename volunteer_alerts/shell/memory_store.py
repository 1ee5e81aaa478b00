"""In-memory store and directory - Imperative Shell.

Drop-in replacements for the Firestore classes, used for local runs and
tests. Stored objects are copied in and out so callers cannot mutate
stored state behind the store's back.
"""

import copy
import logging
import threading
from typing import Any, Iterable

from volunteer_alerts.core.dedup import merge_notified_ids
from volunteer_alerts.core.notification import NotificationRecord
from volunteer_alerts.core.request import HelpRequest
from volunteer_alerts.core.serialization import request_from_dict, request_to_dict


logger = logging.getLogger(__name__)


class InMemoryRequestStore:
    """Thread-safe in-memory store for requests and notification records."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._requests: dict[str, dict[str, Any]] = {}
        self._notifications: dict[str, NotificationRecord] = {}

    def save_request(
        self,
        request: HelpRequest,
        records: Iterable[NotificationRecord] = (),
    ) -> list[NotificationRecord]:
        """Create or overwrite a request together with new records.

        The stored notified list is merged with the request's, and records
        whose (request, volunteer) pair is already stored are skipped.
        request.notified_volunteer_ids is updated to the merged list.

        Returns:
            The records actually written
        """
        data = request_to_dict(request)
        with self._lock:
            stored = self._requests.get(request.id)
            if stored is not None:
                data["notifiedVolunteerIds"] = merge_notified_ids(
                    stored["notifiedVolunteerIds"],
                    data["notifiedVolunteerIds"],
                )
            written = []
            for record in records:
                if record.id not in self._notifications:
                    self._notifications[record.id] = record
                    written.append(record)
            self._requests[request.id] = data

        request.notified_volunteer_ids = list(data["notifiedVolunteerIds"])
        logger.debug(
            "Stored request %s with %d notification records",
            request.id,
            len(written),
        )
        return written

    def get_request(self, request_id: str) -> HelpRequest | None:
        with self._lock:
            data = self._requests.get(request_id)
            if data is None:
                return None
            return request_from_dict(copy.deepcopy(data))

    def list_requests(self, limit: int = 50) -> list[HelpRequest]:
        """Return the most recent requests, newest first."""
        with self._lock:
            stored = [copy.deepcopy(d) for d in self._requests.values()]
        requests = [request_from_dict(d) for d in stored]
        requests.sort(key=lambda r: r.timestamp, reverse=True)
        return requests[:limit]

    def list_notifications(
        self,
        volunteer_id: str | None = None,
        request_id: str | None = None,
    ) -> list[NotificationRecord]:
        with self._lock:
            records = list(self._notifications.values())
        if volunteer_id is not None:
            records = [r for r in records if r.volunteer_id == volunteer_id]
        if request_id is not None:
            records = [r for r in records if r.request_id == request_id]
        return records


class InMemoryVolunteerDirectory:
    """In-memory user directory holding raw user records."""

    def __init__(self, records: Iterable[dict[str, Any]] = ()) -> None:
        self._lock = threading.Lock()
        self._records = [copy.deepcopy(r) for r in records]

    def add(self, record: dict[str, Any]) -> None:
        with self._lock:
            self._records.append(copy.deepcopy(record))

    def list_volunteer_records(self) -> list[dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self._records)

    def get_volunteer_record(self, volunteer_id: str) -> dict[str, Any] | None:
        with self._lock:
            for record in self._records:
                if record.get("id") == volunteer_id:
                    return copy.deepcopy(record)
        return None

    def update_volunteer_record(self, volunteer_id: str, record: dict[str, Any]) -> None:
        """Replace a stored user record.

        Raises:
            KeyError: If no record has that ID
        """
        with self._lock:
            for i, stored in enumerate(self._records):
                if stored.get("id") == volunteer_id:
                    self._records[i] = copy.deepcopy(record)
                    return
        raise KeyError(f"Unknown volunteer: {volunteer_id}")
