"""Tests for the Orchestrator module.

Tests the coordination between functional core and imperative shell.
Uses the in-memory store and directory, and a Mock delivery function.
"""

import math
from unittest.mock import Mock, patch

import pytest

from volunteer_alerts.core.config import Config
from volunteer_alerts.core.errors import MissingLocation, ValidationError
from volunteer_alerts.core.geo import EARTH_RADIUS_KM
from volunteer_alerts.core.request import STATUS_CREATED, STATUS_PERSISTED
from volunteer_alerts.orchestrator import Orchestrator
from volunteer_alerts.shell.memory_store import InMemoryRequestStore, InMemoryVolunteerDirectory


REF_LAT, REF_LNG = 23.8103, 90.4125
KM_PER_DEGREE = EARTH_RADIUS_KM * math.pi / 180


def user_record(
    user_id: str,
    km_north: float,
    available: bool = True,
    exam_passed: bool = True,
) -> dict:
    """A directory record for a volunteer km_north of the reference point."""
    return {
        "id": user_id,
        "fullName": user_id.upper(),
        "qualifications": {"hasFirstAid": True},
        "volunteerData": {
            "isVolunteer": exam_passed,
            "examPassed": exam_passed,
            "examScore": 90 if exam_passed else 40,
            "name": user_id.upper(),
            "location": {
                "lat": REF_LAT + km_north / KM_PER_DEGREE,
                "lng": REF_LNG,
                "address": f"{km_north} km north",
            },
            "phoneNumber": f"+880170000{user_id}",
            "isAvailable": available,
        },
    }


@pytest.fixture
def directory():
    """V1 available at 2 km, V2 unavailable at 1 km, V3 available at 20 km."""
    return InMemoryVolunteerDirectory([
        user_record("v1", 2),
        user_record("v2", 1, available=False),
        user_record("v3", 20),
    ])


@pytest.fixture
def store():
    return InMemoryRequestStore()


@pytest.fixture
def deliver():
    fn = Mock()
    fn.return_value = Mock(success=True, error=None)
    return fn


@pytest.fixture
def orchestrator(directory, store, deliver):
    return Orchestrator(Config(), directory=directory, request_store=store, deliver=deliver)


@pytest.fixture
def help_payload():
    return {
        "userId": "citizen1",
        "userName": "Nusrat",
        "message": "Elderly neighbour needs evacuation",
        "type": "help",
        "location": {"lat": REF_LAT, "lng": REF_LNG, "address": "Mirpur 10"},
    }


class TestOrchestratorInit:
    """Tests for Orchestrator initialization."""

    def test_creates_default_clients(self):
        """Creates Firestore clients and log delivery if not provided."""
        with patch("volunteer_alerts.orchestrator.FirestoreVolunteerDirectory") as directory_cls, \
             patch("volunteer_alerts.orchestrator.FirestoreRequestStore") as store_cls:
            orchestrator = Orchestrator(Config(firestore_database="alerts"))

        assert orchestrator.directory is directory_cls.return_value
        assert orchestrator.request_store is store_cls.return_value
        assert directory_cls.call_args[0][0].database == "alerts"

    def test_uses_provided_clients(self, directory, store, deliver):
        orchestrator = Orchestrator(Config(), directory=directory, request_store=store, deliver=deliver)

        assert orchestrator.directory is directory
        assert orchestrator.request_store is store
        assert orchestrator.dispatcher.deliver is deliver

    def test_unknown_distance_metric(self, directory, store, deliver):
        with pytest.raises(KeyError):
            Orchestrator(
                Config(distance_metric="manhattan"),
                directory=directory,
                request_store=store,
                deliver=deliver,
            )


class TestSubmitHelpRequest:
    """Tests for Orchestrator.submit() with located help requests."""

    def test_notifies_only_nearby_available_volunteer(self, orchestrator, store, help_payload):
        """V2 is unavailable and V3 is out of range; only V1 is notified."""
        request = orchestrator.submit(help_payload)

        records = store.list_notifications(request_id=request.id)
        assert [r.volunteer_id for r in records] == ["v1"]
        assert request.notified_volunteer_ids == ["v1"]
        assert request.status == STATUS_PERSISTED

    def test_persists_request_with_notified_list(self, orchestrator, store, help_payload):
        request = orchestrator.submit(help_payload)

        stored = store.get_request(request.id)
        assert stored.notified_volunteer_ids == ["v1"]
        assert stored.status == STATUS_PERSISTED
        assert stored.body == "Elderly neighbour needs evacuation"

    def test_delivers_to_volunteer_phone(self, orchestrator, deliver, help_payload):
        orchestrator.submit(help_payload)

        deliver.assert_called_once_with(
            "+880170000v1",
            'Emergency at Mirpur 10 - "Elderly neighbour needs evacuation"',
        )

    def test_nearest_first(self, store, deliver, help_payload):
        directory = InMemoryVolunteerDirectory([
            user_record("v3", 3), user_record("v1", 1), user_record("v2", 2),
        ])
        orchestrator = Orchestrator(Config(), directory=directory, request_store=store, deliver=deliver)

        request = orchestrator.submit(help_payload)

        assert request.notified_volunteer_ids == ["v1", "v2", "v3"]

    def test_notification_cap_keeps_nearest(self, store, deliver, help_payload):
        directory = InMemoryVolunteerDirectory([
            user_record("v3", 3), user_record("v1", 1), user_record("v2", 2),
        ])
        orchestrator = Orchestrator(
            Config(max_notifications_per_request=2),
            directory=directory,
            request_store=store,
            deliver=deliver,
        )

        request = orchestrator.submit(help_payload)

        assert request.notified_volunteer_ids == ["v1", "v2"]

    def test_disaster_type_radius_override(self, directory, store, deliver, help_payload):
        orchestrator = Orchestrator(
            Config(radius_by_disaster_type={"flood": 25.0}),
            directory=directory,
            request_store=store,
            deliver=deliver,
        )
        help_payload["disasterType"] = "flood"

        request = orchestrator.submit(help_payload)

        assert request.notified_volunteer_ids == ["v1", "v3"]

    def test_excludes_volunteers_who_failed_exam(self, store, deliver, help_payload):
        directory = InMemoryVolunteerDirectory([user_record("v1", 1, exam_passed=False)])
        orchestrator = Orchestrator(Config(), directory=directory, request_store=store, deliver=deliver)

        request = orchestrator.submit(help_payload)

        assert request.notified_volunteer_ids == []
        assert request.status == STATUS_PERSISTED

    def test_delivery_failure_does_not_fail_submit(self, directory, store, help_payload):
        deliver = Mock(side_effect=RuntimeError("twilio down"))
        orchestrator = Orchestrator(Config(), directory=directory, request_store=store, deliver=deliver)

        request = orchestrator.submit(help_payload)

        assert request.notified_volunteer_ids == ["v1"]
        assert len(store.list_notifications(volunteer_id="v1")) == 1
        assert request.error is None


class TestSubmitWithoutMatching:
    """Tests for submissions that skip the matching pipeline."""

    def test_info_without_location_skips_pipeline(self, store, deliver):
        directory = Mock()
        orchestrator = Orchestrator(Config(), directory=directory, request_store=store, deliver=deliver)

        with patch.object(orchestrator.dispatcher, "dispatch") as dispatch:
            request = orchestrator.submit({"userId": "u1", "message": "All safe", "type": "info"})

        directory.list_volunteer_records.assert_not_called()
        dispatch.assert_not_called()
        deliver.assert_not_called()
        assert store.get_request(request.id).notified_volunteer_ids == []
        assert request.status == STATUS_PERSISTED

    def test_alert_with_location_skips_pipeline(self, orchestrator, store, deliver, help_payload):
        help_payload["type"] = "alert"

        request = orchestrator.submit(help_payload)

        deliver.assert_not_called()
        assert request.notified_volunteer_ids == []
        assert store.list_notifications() == []


class TestSubmitValidation:
    """Tests for submissions rejected before persistence."""

    def test_help_without_location_is_rejected(self, orchestrator, store, help_payload):
        del help_payload["location"]

        with pytest.raises(MissingLocation):
            orchestrator.submit(help_payload)

        assert store.list_requests() == []

    def test_empty_body_is_rejected(self, orchestrator, store, help_payload):
        help_payload["message"] = "   "

        with pytest.raises(ValidationError):
            orchestrator.submit(help_payload)

        assert store.list_requests() == []

    def test_oversized_body_uses_configured_limit(self, directory, store, deliver, help_payload):
        orchestrator = Orchestrator(
            Config(max_body_length=10),
            directory=directory,
            request_store=store,
            deliver=deliver,
        )

        with pytest.raises(ValidationError):
            orchestrator.submit(help_payload)


class TestSubmitPipelineFailure:
    """Tests for failures during matching or persistence."""

    def test_directory_failure_still_persists_request(self, store, deliver, help_payload):
        directory = Mock()
        directory.list_volunteer_records.side_effect = ConnectionError("directory unreachable")
        orchestrator = Orchestrator(Config(), directory=directory, request_store=store, deliver=deliver)

        request = orchestrator.submit(help_payload)

        stored = store.get_request(request.id)
        assert stored.status == STATUS_CREATED
        assert "directory unreachable" in stored.error
        assert stored.notified_volunteer_ids == []
        assert store.list_notifications() == []
        deliver.assert_not_called()

    def test_store_failure_propagates(self, directory, deliver, help_payload):
        store = Mock()
        store.save_request.side_effect = RuntimeError("write failed")
        orchestrator = Orchestrator(Config(), directory=directory, request_store=store, deliver=deliver)

        with pytest.raises(RuntimeError, match="write failed"):
            orchestrator.submit(help_payload)

    def test_request_and_records_saved_together(self, directory, deliver, help_payload):
        store = Mock()
        orchestrator = Orchestrator(Config(), directory=directory, request_store=store, deliver=deliver)

        request = orchestrator.submit(help_payload)

        store.save_request.assert_called_once()
        saved_request, saved_records = store.save_request.call_args[0]
        assert saved_request is request
        assert [r.volunteer_id for r in saved_records] == saved_request.notified_volunteer_ids


class TestRematch:
    """Tests for Orchestrator.rematch()."""

    def test_notifies_only_new_volunteers(self, orchestrator, directory, store, deliver, help_payload):
        request = orchestrator.submit(help_payload)
        directory.add(user_record("v4", 4))

        records = orchestrator.rematch(request.id)

        assert [r.volunteer_id for r in records] == ["v4"]
        assert store.get_request(request.id).notified_volunteer_ids == ["v1", "v4"]
        assert deliver.call_count == 2

    def test_rematch_without_changes_is_idempotent(self, orchestrator, store, help_payload):
        request = orchestrator.submit(help_payload)

        assert orchestrator.rematch(request.id) == []
        assert len(store.list_notifications(request_id=request.id)) == 1

    def test_unknown_request(self, orchestrator):
        with pytest.raises(KeyError):
            orchestrator.rematch("missing")

    def test_info_request_is_not_rematched(self, orchestrator, deliver):
        request = orchestrator.submit({"userId": "u1", "message": "FYI", "type": "info"})

        assert orchestrator.rematch(request.id) == []
        deliver.assert_not_called()


class TestListNotifications:
    """Tests for Orchestrator.list_notifications()."""

    def test_lists_volunteer_records(self, orchestrator, help_payload):
        orchestrator.submit(help_payload)
        orchestrator.submit(help_payload)

        records = orchestrator.list_notifications("v1")

        assert len(records) == 2
        assert len({r.request_id for r in records}) == 2


def volunteer_pairs(store: InMemoryRequestStore, request_id: str) -> list[tuple[str, str]]:
    return [(r.request_id, r.volunteer_id) for r in store.list_notifications(request_id=request_id)]


class TestOverlappingRematch:
    """Tests for rematches that run while another is delivering."""

    def test_nested_rematch_is_skipped(self, orchestrator, directory, store, help_payload):
        """A rematch started during delivery of the same request does nothing."""
        request = orchestrator.submit(help_payload)
        directory.add(user_record("v4", 4))
        nested = []

        def deliver_and_rematch(contact, text):
            nested.append(orchestrator.rematch(request.id))
            return Mock(success=True)

        orchestrator.dispatcher.deliver = deliver_and_rematch

        records = orchestrator.rematch(request.id)

        assert nested == [[]]
        assert [r.volunteer_id for r in records] == ["v4"]
        assert volunteer_pairs(store, request.id) == [(request.id, "v1"), (request.id, "v4")]

    def test_second_process_cannot_store_duplicate(self, directory, store, deliver, help_payload):
        """Two orchestrators sharing a store never record a pair twice."""
        first = Orchestrator(Config(), directory=directory, request_store=store, deliver=deliver)
        other = Orchestrator(Config(), directory=directory, request_store=store, deliver=deliver)
        request = first.submit(help_payload)
        directory.add(user_record("v4", 4))
        nested = []

        def deliver_and_rematch(contact, text):
            if not nested:
                nested.append(other.rematch(request.id))
            return Mock(success=True)

        first.dispatcher.deliver = deliver_and_rematch

        outer = first.rematch(request.id)

        assert [r.volunteer_id for r in nested[0]] == ["v4"]
        assert outer == []
        pairs = volunteer_pairs(store, request.id)
        assert len(pairs) == len(set(pairs)) == 2
        assert store.get_request(request.id).notified_volunteer_ids == ["v1", "v4"]

    def test_guard_released_after_failure(self, store, deliver, help_payload):
        directory = InMemoryVolunteerDirectory([user_record("v1", 2)])
        orchestrator = Orchestrator(Config(), directory=directory, request_store=store, deliver=deliver)
        request = orchestrator.submit(help_payload)

        with patch.object(orchestrator, "_match", side_effect=ConnectionError("down")):
            with pytest.raises(ConnectionError):
                orchestrator.rematch(request.id)

        directory.add(user_record("v2", 3))
        assert [r.volunteer_id for r in orchestrator.rematch(request.id)] == ["v2"]


class TestDistanceMetricConfig:
    """Tests for the configured distance metric in the full pipeline."""

    def test_equirectangular_skips_non_finite_location(self, store, deliver, help_payload):
        """One corrupt directory location does not abort matching."""
        corrupt = user_record("bad", 1)
        corrupt["volunteerData"]["location"]["lat"] = math.inf
        directory = InMemoryVolunteerDirectory([user_record("v1", 2), corrupt])
        orchestrator = Orchestrator(
            Config(distance_metric="equirectangular"),
            directory=directory,
            request_store=store,
            deliver=deliver,
        )

        request = orchestrator.submit(help_payload)

        assert request.notified_volunteer_ids == ["v1"]
        assert request.error is None


class TestVolunteerUpdates:
    """Tests for exam results and availability written to the directory."""

    @pytest.fixture
    def candidate_directory(self):
        record = user_record("v9", 1, exam_passed=False)
        return InMemoryVolunteerDirectory([record])

    def test_passing_exam_makes_volunteer_matchable(
        self, candidate_directory, store, deliver, help_payload,
    ):
        orchestrator = Orchestrator(
            Config(), directory=candidate_directory, request_store=store, deliver=deliver,
        )

        volunteer = orchestrator.record_exam_result("v9", 8, 10)

        assert volunteer.exam_passed is True
        assert volunteer.volunteer_status == "active"
        stored = candidate_directory.get_volunteer_record("v9")["volunteerData"]
        assert stored["examPassed"] is True
        assert stored["examScore"] == 80.0
        assert orchestrator.submit(help_payload).notified_volunteer_ids == ["v9"]

    def test_uses_configured_pass_threshold(self, candidate_directory, store, deliver):
        orchestrator = Orchestrator(
            Config(pass_threshold=90.0),
            directory=candidate_directory,
            request_store=store,
            deliver=deliver,
        )

        volunteer = orchestrator.record_exam_result("v9", 8, 10)

        assert volunteer.exam_passed is False
        assert candidate_directory.get_volunteer_record("v9")["volunteerData"]["examPassed"] is False

    def test_unknown_volunteer(self, orchestrator):
        with pytest.raises(KeyError):
            orchestrator.record_exam_result("nobody", 8, 10)

    def test_impossible_answer_count(self, orchestrator):
        with pytest.raises(ValueError):
            orchestrator.record_exam_result("v1", 11, 10)

    def test_availability_controls_matching(self, orchestrator, directory, help_payload):
        """V2 is 1 km away but unavailable until switched on."""
        volunteer = orchestrator.update_availability("v2", True)

        assert volunteer.is_available is True
        assert directory.get_volunteer_record("v2")["volunteerData"]["isAvailable"] is True
        assert orchestrator.submit(help_payload).notified_volunteer_ids == ["v2", "v1"]

    def test_switching_off_stops_notifications(self, orchestrator, help_payload):
        orchestrator.update_availability("v1", False)

        assert orchestrator.submit(help_payload).notified_volunteer_ids == []


class TestRecentRequests:
    """Tests for Orchestrator.recent_requests()."""

    def test_lists_submitted_requests(self, orchestrator, help_payload):
        first = orchestrator.submit(help_payload)
        second = orchestrator.submit({"userId": "u2", "message": "Road blocked", "type": "alert"})

        ids = [r.id for r in orchestrator.recent_requests()]

        assert set(ids) == {first.id, second.id}
        assert len(orchestrator.recent_requests(limit=1)) == 1
