"""Orchestrator - Wires Functional Core and Imperative Shell.

This module coordinates the flow of a submitted message through the
pure functional core (validation, matching, dedup) and the I/O-performing
shell components (directory, request store, delivery).
"""

import logging
import threading
from datetime import datetime
from typing import Any

from volunteer_alerts.core.config import Config
from volunteer_alerts.core.formatter import format_distance, format_request_summary
from volunteer_alerts.core.geo import get_distance_metric
from volunteer_alerts.core.matcher import match_with_distances, radius_for_request
from volunteer_alerts.core.notification import NotificationRecord
from volunteer_alerts.core.request import (
    HelpRequest,
    STATUS_CREATED,
    STATUS_DISPATCHED,
    STATUS_MATCHED,
    STATUS_PERSISTED,
    build_help_request,
    validate_submission,
)
from volunteer_alerts.core.serialization import merge_volunteer_state
from volunteer_alerts.core.volunteer import (
    Volunteer,
    apply_exam_result,
    exam_percentage,
    parse_volunteer,
    parse_volunteers,
    qualified_available_volunteers,
    set_availability,
)
from volunteer_alerts.dispatcher import Dispatcher
from volunteer_alerts.shell.delivery import DeliveryFunction, build_delivery
from volunteer_alerts.shell.firestore_client import (
    FirestoreConfig,
    FirestoreRequestStore,
    FirestoreVolunteerDirectory,
)
from volunteer_alerts.shell.memory_store import InMemoryRequestStore, InMemoryVolunteerDirectory


logger = logging.getLogger(__name__)


RequestStore = FirestoreRequestStore | InMemoryRequestStore
VolunteerDirectory = FirestoreVolunteerDirectory | InMemoryVolunteerDirectory


class Orchestrator:
    """Coordinates help request submission and volunteer notification.

    This class wires together:
    - User directory (who can be notified, exam and availability updates)
    - Core functions (validation, matching, dedup, formatting)
    - Dispatcher (notification records and delivery)
    - Request store (persisting requests and records together)
    """

    def __init__(
        self,
        config: Config,
        directory: VolunteerDirectory | None = None,
        request_store: RequestStore | None = None,
        deliver: DeliveryFunction | None = None,
    ) -> None:
        """Initialize orchestrator with configuration.

        Args:
            config: Application configuration
            directory: User directory (Firestore if not provided)
            request_store: Request store (Firestore if not provided)
            deliver: Delivery function (built from config if not provided)
        """
        self.config = config
        firestore_config = FirestoreConfig(
            database=config.firestore_database,
            requests_collection=config.requests_collection,
            notifications_collection=config.notifications_collection,
            users_collection=config.users_collection,
        )
        self.directory = directory or FirestoreVolunteerDirectory(firestore_config)
        self.request_store = request_store or FirestoreRequestStore(firestore_config)
        self.dispatcher = Dispatcher(deliver or build_delivery(config.delivery))
        self.distance_fn = get_distance_metric(config.distance_metric)
        self._rematch_lock = threading.Lock()
        self._rematching: set[str] = set()

    def _load_volunteers(self) -> list[Volunteer]:
        """Read the directory and keep volunteers eligible for alerts."""
        records = self.directory.list_volunteer_records()
        volunteers = parse_volunteers(records)

        skipped = len(records) - len(volunteers)
        if skipped:
            logger.warning("Skipped %d malformed directory records", skipped)

        eligible = qualified_available_volunteers(volunteers)
        logger.info(
            "%d qualified, available volunteers (of %d in directory)",
            len(eligible),
            len(volunteers),
        )
        return eligible

    def _match(self, request: HelpRequest) -> list[Volunteer]:
        """Find eligible volunteers near the request, nearest first."""
        radius_km = radius_for_request(request.disaster_type, self.config)
        matches = match_with_distances(
            request.location,
            radius_km,
            self._load_volunteers(),
            distance_fn=self.distance_fn,
            limit=self.config.max_notifications_per_request,
        )

        for volunteer, distance in matches:
            logger.debug("Matched volunteer %s (%s)", volunteer.id, format_distance(distance))
        logger.info(
            "%d volunteers within %.1f km of request %s",
            len(matches),
            radius_km,
            request.id,
        )
        return [volunteer for volunteer, _ in matches]

    def _run_pipeline(self, request: HelpRequest) -> list[NotificationRecord]:
        """Match and dispatch for a located help request.

        On failure the request's notified list is restored, so nothing
        half-dispatched is ever persisted.
        """
        notified_before = list(request.notified_volunteer_ids)
        status_before = request.status

        try:
            matched = self._match(request)
            request.status = STATUS_MATCHED

            records = self.dispatcher.dispatch(request, matched)
            request.status = STATUS_DISPATCHED
            return records

        except Exception:
            request.notified_volunteer_ids = notified_before
            request.status = status_before
            raise

    def _persist(
        self,
        request: HelpRequest,
        records: list[NotificationRecord],
        status: str,
    ) -> list[NotificationRecord]:
        """Save the request and its new records as one unit.

        Returns:
            The records the store actually wrote
        """
        previous = request.status
        request.status = status
        try:
            return self.request_store.save_request(request, records)
        except Exception:
            request.status = previous
            raise

    def submit(self, raw_request: dict[str, Any]) -> HelpRequest:
        """Accept a submitted message and notify nearby volunteers.

        This is the main entry point that:
        1. Validates the submission (nothing is stored on failure)
        2. Stamps ID and timestamp
        3. For located help requests: matches and dispatches
        4. Persists the request with its notification records

        If matching or dispatch fails, the request is still persisted in
        the 'created' state with the error recorded.

        Args:
            raw_request: Submitted payload

        Returns:
            The persisted HelpRequest

        Raises:
            ValidationError: Invalid submission
            MissingLocation: Help request without a location
        """
        message = validate_submission(raw_request, self.config.max_body_length)
        request = build_help_request(message)
        logger.info("Received %s", format_request_summary(request))

        if not request.needs_matching:
            self._persist(request, [], STATUS_PERSISTED)
            return request

        try:
            records = self._run_pipeline(request)
        except Exception as e:
            logger.exception("Matching failed for request %s", request.id)
            request.error = f"Volunteer matching failed: {e}"
            self._persist(request, [], STATUS_CREATED)
            return request

        self._persist(request, records, STATUS_PERSISTED)
        logger.info(
            "Request %s persisted, %d volunteers notified",
            request.id,
            len(request.notified_volunteer_ids),
        )
        return request

    def rematch(self, request_id: str) -> list[NotificationRecord]:
        """Re-run matching for a stored help request.

        Volunteers who became available or moved into range since the
        last run are notified; everyone already notified is skipped. A
        rematch of a request this orchestrator is already rematching
        returns immediately.

        Args:
            request_id: ID of a stored request

        Returns:
            Newly stored records

        Raises:
            KeyError: If no request has that ID
        """
        with self._rematch_lock:
            if request_id in self._rematching:
                logger.info("Rematch of request %s already in progress", request_id)
                return []
            self._rematching.add(request_id)

        try:
            request = self.request_store.get_request(request_id)
            if request is None:
                raise KeyError(f"Unknown request: {request_id}")

            if not request.needs_matching:
                logger.info("Request %s is not a located help request", request_id)
                return []

            request.error = None
            records = self._run_pipeline(request)
            return self._persist(request, records, STATUS_PERSISTED)

        finally:
            with self._rematch_lock:
                self._rematching.discard(request_id)

    def list_notifications(self, volunteer_id: str) -> list[NotificationRecord]:
        """Notifications a volunteer has received, oldest first."""
        return self.request_store.list_notifications(volunteer_id=volunteer_id)

    def recent_requests(self, limit: int = 50) -> list[HelpRequest]:
        """Most recent submitted requests, newest first."""
        return self.request_store.list_requests(limit=limit)

    def _load_volunteer(self, volunteer_id: str) -> tuple[dict[str, Any], Volunteer]:
        record = self.directory.get_volunteer_record(volunteer_id)
        volunteer = parse_volunteer(record) if record is not None else None
        if volunteer is None:
            raise KeyError(f"Unknown volunteer: {volunteer_id}")
        return record, volunteer

    def record_exam_result(
        self,
        volunteer_id: str,
        correct_answers: int,
        total_questions: int,
        now: datetime | None = None,
    ) -> Volunteer:
        """Score a qualification exam and save the outcome to the directory.

        A score at or above config.pass_threshold activates the volunteer.

        Args:
            volunteer_id: Directory ID of the volunteer
            correct_answers: Questions answered correctly
            total_questions: Questions in the exam
            now: Registration time on first pass (default: now, UTC)

        Returns:
            The updated Volunteer

        Raises:
            KeyError: If the volunteer is not in the directory
            ValueError: If the answer counts are impossible
        """
        record, volunteer = self._load_volunteer(volunteer_id)
        score = exam_percentage(correct_answers, total_questions)
        updated = apply_exam_result(volunteer, score, self.config.pass_threshold, now)

        self.directory.update_volunteer_record(volunteer_id, merge_volunteer_state(record, updated))
        logger.info(
            "Volunteer %s scored %.1f%% (%s)",
            volunteer_id,
            score,
            "passed" if updated.exam_passed else "not passed",
        )
        return updated

    def update_availability(self, volunteer_id: str, available: bool) -> Volunteer:
        """Switch a volunteer's availability and save it to the directory.

        Raises:
            KeyError: If the volunteer is not in the directory
        """
        record, volunteer = self._load_volunteer(volunteer_id)
        updated = set_availability(volunteer, available)

        self.directory.update_volunteer_record(volunteer_id, merge_volunteer_state(record, updated))
        logger.info("Volunteer %s availability set to %s", volunteer_id, available)
        return updated
