"""Firestore Client - Imperative Shell.

This module persists help requests and notification records, and reads
the volunteer directory, using Google Cloud Firestore.

All I/O is contained here; matching and dedup logic is in the core module.
"""

import logging
from dataclasses import dataclass
from typing import Any, Iterable

from google.cloud import firestore

from volunteer_alerts.core.dedup import merge_notified_ids
from volunteer_alerts.core.notification import NotificationRecord
from volunteer_alerts.core.request import HelpRequest
from volunteer_alerts.core.serialization import (
    record_from_dict,
    record_to_dict,
    request_from_dict,
    request_to_dict,
)


logger = logging.getLogger(__name__)


DEFAULT_REQUESTS_COLLECTION = "help_requests"
DEFAULT_NOTIFICATIONS_COLLECTION = "volunteer_notifications"
DEFAULT_USERS_COLLECTION = "users"


@dataclass
class FirestoreConfig:
    """Configuration for Firestore clients.

    Attributes:
        project_id: GCP project ID (None for default)
        database: Firestore database name (None for default database)
        requests_collection: Collection holding help requests
        notifications_collection: Collection holding notification records
        users_collection: Collection holding the user directory
    """
    project_id: str | None = None
    database: str | None = None
    requests_collection: str = DEFAULT_REQUESTS_COLLECTION
    notifications_collection: str = DEFAULT_NOTIFICATIONS_COLLECTION
    users_collection: str = DEFAULT_USERS_COLLECTION


def _write_request(
    transaction: Any,
    request_ref: Any,
    request_data: dict[str, Any],
    record_refs: list[tuple[Any, NotificationRecord]],
) -> tuple[list[str], list[NotificationRecord]]:
    """Transaction body for FirestoreRequestStore.save_request.

    All reads happen before the first write, as Firestore requires.

    Returns:
        (merged notified IDs, records written)
    """
    snapshot = request_ref.get(transaction=transaction)
    if snapshot.exists:
        stored = (snapshot.to_dict() or {}).get("notifiedVolunteerIds", [])
        request_data["notifiedVolunteerIds"] = merge_notified_ids(
            stored,
            request_data["notifiedVolunteerIds"],
        )

    new_records = [
        (ref, record) for ref, record in record_refs
        if not ref.get(transaction=transaction).exists
    ]

    transaction.set(request_ref, request_data)
    for ref, record in new_records:
        transaction.set(ref, record_to_dict(record))

    return list(request_data["notifiedVolunteerIds"]), [record for _, record in new_records]


_save_in_transaction = firestore.transactional(_write_request)


class _FirestoreBase:
    """Lazy Firestore client shared by the store and the directory."""

    def __init__(self, config: FirestoreConfig | None = None) -> None:
        self.config = config or FirestoreConfig()
        self._client: firestore.Client | None = None

    @property
    def client(self) -> firestore.Client:
        """Lazy initialization of Firestore client."""
        if self._client is None:
            kwargs = {}
            if self.config.project_id:
                kwargs['project'] = self.config.project_id
            if self.config.database:
                kwargs['database'] = self.config.database
            self._client = firestore.Client(**kwargs)
        return self._client


class FirestoreRequestStore(_FirestoreBase):
    """Store for help requests and their notification records.

    This is part of the imperative shell - it handles database I/O.

    A request and the records created for it are written in one
    transaction, so readers never see a record without the matching entry
    in the request's notifiedVolunteerIds, or the reverse.
    """

    def _requests(self) -> Any:
        return self.client.collection(self.config.requests_collection)

    def _notifications(self) -> Any:
        return self.client.collection(self.config.notifications_collection)

    def save_request(
        self,
        request: HelpRequest,
        records: Iterable[NotificationRecord] = (),
    ) -> list[NotificationRecord]:
        """Create or overwrite a request together with new records.

        This method performs database I/O. The write runs in a transaction
        that re-reads the request, merges its notified list, and skips
        records already stored, so overlapping runs never store a
        (request, volunteer) pair twice. request.notified_volunteer_ids is
        updated to the merged list.

        Returns:
            The records actually written

        Raises:
            Exception: Whatever the Firestore client raises; the write
                is all-or-nothing
        """
        records = list(records)
        logger.info(
            "Saving request %s with %d notification records",
            request.id,
            len(records),
        )

        record_refs = [
            (self._notifications().document(record.id), record)
            for record in records
        ]

        try:
            notified_ids, written = _save_in_transaction(
                self.client.transaction(),
                self._requests().document(request.id),
                request_to_dict(request),
                record_refs,
            )
        except Exception as e:
            logger.error("Failed to save request %s: %s", request.id, str(e))
            raise

        request.notified_volunteer_ids = notified_ids
        if len(written) < len(records):
            logger.warning(
                "Skipped %d notification records already stored for request %s",
                len(records) - len(written),
                request.id,
            )
        return written

    def get_request(self, request_id: str) -> HelpRequest | None:
        """Fetch a request by ID.

        This method performs database I/O.
        """
        doc = self._requests().document(request_id).get()
        if not doc.exists:
            return None
        return request_from_dict(doc.to_dict())

    def list_requests(self, limit: int = 50) -> list[HelpRequest]:
        """Fetch the most recent requests, newest first.

        This method performs database I/O.
        """
        query = (
            self._requests()
            .order_by("timestamp", direction=firestore.Query.DESCENDING)
            .limit(limit)
        )
        return [request_from_dict(doc.to_dict()) for doc in query.stream()]

    def list_notifications(
        self,
        volunteer_id: str | None = None,
        request_id: str | None = None,
    ) -> list[NotificationRecord]:
        """Fetch notification records, optionally filtered.

        This method performs database I/O.
        """
        query = self._notifications()
        if volunteer_id is not None:
            query = query.where(filter=firestore.FieldFilter("volunteerId", "==", volunteer_id))
        if request_id is not None:
            query = query.where(filter=firestore.FieldFilter("messageId", "==", request_id))

        records = [record_from_dict(doc.to_dict()) for doc in query.stream()]
        return sorted(records, key=lambda r: r.timestamp)


class FirestoreVolunteerDirectory(_FirestoreBase):
    """Read-only view of the user directory in Firestore.

    This is part of the imperative shell - it handles database I/O.
    """

    def list_volunteer_records(self) -> list[dict[str, Any]]:
        """Fetch every user record.

        This method performs database I/O. Errors propagate so the caller
        can tell an unreachable directory from an empty one.
        """
        logger.info("Fetching user directory from Firestore")

        try:
            docs = self.client.collection(self.config.users_collection).stream()
            records = []
            for doc in docs:
                data = doc.to_dict() or {}
                data.setdefault("id", doc.id)
                records.append(data)
        except Exception as e:
            logger.error("Failed to fetch user directory: %s", str(e))
            raise

        logger.info("Fetched %d user records from Firestore", len(records))
        return records

    def get_volunteer_record(self, volunteer_id: str) -> dict[str, Any] | None:
        """Fetch one user record.

        This method performs database I/O.
        """
        doc = self.client.collection(self.config.users_collection).document(volunteer_id).get()
        if not doc.exists:
            return None
        data = doc.to_dict() or {}
        data.setdefault("id", doc.id)
        return data

    def update_volunteer_record(self, volunteer_id: str, record: dict[str, Any]) -> None:
        """Merge a user record back into its document.

        This method performs database I/O.
        """
        data = {key: value for key, value in record.items() if key != "id"}
        logger.info("Updating user record %s", volunteer_id)
        try:
            self.client.collection(self.config.users_collection).document(volunteer_id).set(
                data, merge=True
            )
        except Exception as e:
            logger.error("Failed to update user record %s: %s", volunteer_id, str(e))
            raise
