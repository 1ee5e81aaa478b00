"""Tests for the in-memory request store and volunteer directory."""

from datetime import datetime, timedelta, timezone

import pytest

from volunteer_alerts.core.notification import create_notification_record
from volunteer_alerts.core.request import HelpRequest
from volunteer_alerts.shell.memory_store import InMemoryRequestStore, InMemoryVolunteerDirectory


NOW = datetime(2024, 7, 1, 8, 30, tzinfo=timezone.utc)


def make_request(request_id: str = "r1", minutes: int = 0) -> HelpRequest:
    return HelpRequest(
        id=request_id,
        requester_id="u1",
        body="Roof collapsed",
        classification="info",
        timestamp=NOW + timedelta(minutes=minutes),
    )


class TestInMemoryRequestStore:
    """Tests for InMemoryRequestStore."""

    def test_get_missing_request(self):
        assert InMemoryRequestStore().get_request("nope") is None

    def test_save_and_get(self):
        store = InMemoryRequestStore()
        request = make_request()

        store.save_request(request)

        assert store.get_request("r1") == request

    def test_returned_request_is_a_copy(self):
        store = InMemoryRequestStore()
        store.save_request(make_request())

        fetched = store.get_request("r1")
        fetched.notified_volunteer_ids.append("v9")

        assert store.get_request("r1").notified_volunteer_ids == []

    def test_save_overwrites_request(self):
        store = InMemoryRequestStore()
        request = make_request()
        store.save_request(request)

        request.notified_volunteer_ids.append("v1")
        store.save_request(request)

        assert store.get_request("r1").notified_volunteer_ids == ["v1"]
        assert len(store.list_requests()) == 1

    def test_saves_records_with_request(self):
        store = InMemoryRequestStore()
        records = [
            create_notification_record("r1", "v1", NOW),
            create_notification_record("r1", "v2", NOW),
        ]

        store.save_request(make_request(), records)

        assert store.list_notifications() == records

    def test_returns_written_records(self):
        records = [create_notification_record("r1", "v1", NOW)]
        assert InMemoryRequestStore().save_request(make_request(), records) == records

    def test_repeated_pair_is_stored_once(self):
        """Two runs notifying the same volunteer leave one record."""
        store = InMemoryRequestStore()
        store.save_request(make_request(), [create_notification_record("r1", "v1", NOW)])

        written = store.save_request(make_request(), [
            create_notification_record("r1", "v1", NOW + timedelta(minutes=1)),
            create_notification_record("r1", "v2", NOW),
        ])

        assert [r.volunteer_id for r in written] == ["v2"]
        assert [r.volunteer_id for r in store.list_notifications()] == ["v1", "v2"]
        assert store.list_notifications()[0].timestamp == NOW

    def test_save_merges_notified_ids(self):
        """A save from a stale snapshot does not drop IDs stored meanwhile."""
        store = InMemoryRequestStore()
        fresh = make_request()
        fresh.notified_volunteer_ids.extend(["v1", "v4"])
        store.save_request(fresh)

        stale = make_request()
        stale.notified_volunteer_ids.append("v1")
        store.save_request(stale)

        assert store.get_request("r1").notified_volunteer_ids == ["v1", "v4"]
        assert stale.notified_volunteer_ids == ["v1", "v4"]

    def test_filters_notifications(self):
        store = InMemoryRequestStore()
        store.save_request(make_request("r1"), [create_notification_record("r1", "v1", NOW)])
        store.save_request(make_request("r2"), [
            create_notification_record("r2", "v1", NOW),
            create_notification_record("r2", "v2", NOW),
        ])

        assert len(store.list_notifications(volunteer_id="v1")) == 2
        assert len(store.list_notifications(request_id="r2")) == 2
        assert len(store.list_notifications(volunteer_id="v2", request_id="r1")) == 0

    def test_list_requests_newest_first(self):
        store = InMemoryRequestStore()
        store.save_request(make_request("old", minutes=0))
        store.save_request(make_request("new", minutes=10))

        assert [r.id for r in store.list_requests()] == ["new", "old"]
        assert [r.id for r in store.list_requests(limit=1)] == ["new"]


class TestInMemoryVolunteerDirectory:
    """Tests for InMemoryVolunteerDirectory."""

    def test_empty(self):
        assert InMemoryVolunteerDirectory().list_volunteer_records() == []

    def test_records_are_copied(self):
        record = {"id": "v1", "volunteerData": {"isAvailable": True}}
        directory = InMemoryVolunteerDirectory([record])

        record["volunteerData"]["isAvailable"] = False
        listed = directory.list_volunteer_records()
        listed[0]["id"] = "changed"

        assert directory.list_volunteer_records() == [
            {"id": "v1", "volunteerData": {"isAvailable": True}}
        ]

    def test_add(self):
        directory = InMemoryVolunteerDirectory()
        directory.add({"id": "v1"})
        assert directory.list_volunteer_records() == [{"id": "v1"}]

    def test_get_volunteer_record(self):
        directory = InMemoryVolunteerDirectory([{"id": "v1", "fullName": "Rahim"}])

        assert directory.get_volunteer_record("v1") == {"id": "v1", "fullName": "Rahim"}
        assert directory.get_volunteer_record("v2") is None

    def test_update_volunteer_record(self):
        directory = InMemoryVolunteerDirectory([{"id": "v1"}, {"id": "v2"}])

        directory.update_volunteer_record("v2", {"id": "v2", "isAvailable": True})

        assert directory.list_volunteer_records() == [{"id": "v1"}, {"id": "v2", "isAvailable": True}]

    def test_update_unknown_volunteer(self):
        with pytest.raises(KeyError):
            InMemoryVolunteerDirectory().update_volunteer_record("v1", {"id": "v1"})
