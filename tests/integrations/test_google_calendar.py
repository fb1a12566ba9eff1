"""Tests for jot.integrations.google_calendar."""

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock, patch

import pytest

from jot.core.exceptions import BackendIOError, NotFoundError
from jot.db.models import DocType, SyncStatus
from jot.integrations.google_calendar import (
    MAX_EVENTS_PER_PAGE,
    GoogleCalendarBackend,
    _format_duration,
)

NOW = datetime(2021, 7, 1, 9, 30, tzinfo=UTC)


def _event(event_id, start, end, **extra):
    item = {
        "id": event_id,
        "status": "confirmed",
        "summary": f"Event {event_id}",
        "created": "2021-06-20T10:00:00Z",
        "updated": "2021-06-21T10:00:00Z",
        "start": {"dateTime": start},
        "end": {"dateTime": end},
    }
    item.update(extra)
    return item


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def backend(service, clock):
    return GoogleCalendarBackend(service, now=lambda: NOW, clock=clock)


def _list_calls(service):
    return service.events.return_value.list.call_args_list


class TestFetch:
    def test_requests_today_with_pagination(self, service, backend):
        service.events.return_value.list.return_value.execute.side_effect = [
            {"items": [_event("e1", "2021-07-01T10:00:00Z", "2021-07-01T11:30:00Z")], "nextPageToken": "t2"},
            {"items": [_event("e2", "2021-07-01T15:00:00Z", "2021-07-01T15:45:00Z")]},
        ]

        docs = backend.list()

        assert {d.id for d in docs} == {"e1", "e2"}
        calls = _list_calls(service)
        assert len(calls) == 2
        first = calls[0].kwargs
        assert first["calendarId"] == "primary"
        assert first["timeMin"] == "2021-07-01T00:00:00+00:00"
        assert first["timeMax"] == "2021-07-01T23:59:00+00:00"
        assert first["maxResults"] == MAX_EVENTS_PER_PAGE
        assert first["singleEvents"] is True
        assert first["showDeleted"] is False
        assert first["orderBy"] == "startTime"
        assert first["pageToken"] is None
        assert calls[1].kwargs["pageToken"] == "t2"

    def test_multiple_calendars(self, service, clock):
        service.events.return_value.list.return_value.execute.side_effect = [
            {"items": [_event("e1", "2021-07-01T10:00:00Z", "2021-07-01T11:00:00Z")]},
            {"items": [_event("h1", "2021-07-01T12:00:00Z", "2021-07-01T13:00:00Z")]},
        ]
        backend = GoogleCalendarBackend(service, ["primary", "holidays"], now=lambda: NOW, clock=clock)

        docs = {d.id: d for d in backend.list()}

        assert docs["h1"].labels["calendar"] == "holidays"
        assert [c.kwargs["calendarId"] for c in _list_calls(service)] == ["primary", "holidays"]

    def test_refresh_interval(self, service, backend, clock):
        service.events.return_value.list.return_value.execute.return_value = {"items": []}
        backend.list()
        clock.advance(599)
        backend.list()
        assert len(_list_calls(service)) == 1
        clock.advance(2)
        backend.list()
        assert len(_list_calls(service)) == 2

    def test_api_error(self, service, backend):
        service.events.return_value.list.return_value.execute.side_effect = RuntimeError("HttpError 500")
        with pytest.raises(BackendIOError, match="HttpError 500"):
            backend.list()
        assert backend.status() == SyncStatus.ERROR


class TestEventMapping:
    def test_event_to_document(self):
        item = _event(
            "e1",
            "2021-07-01T10:00:00Z",
            "2021-07-01T11:30:00Z",
            description="Quarterly planning",
            location="Room 4",
            attendees=[{"email": "a@example.com"}, {"email": "b@example.com"}, {"displayName": "no email"}],
            hangoutLink="https://meet.google.com/abc",
            htmlLink="https://calendar.google.com/event?eid=e1",
        )

        doc = GoogleCalendarBackend.event_to_document("primary", item)

        assert doc.doc_type == DocType.EVENT
        assert doc.title == "Event e1"
        assert doc.content == "Quarterly planning\n\nAttendees: a@example.com, b@example.com\n\nLocation: Room 4"
        assert doc.created == datetime(2021, 6, 20, 10, tzinfo=UTC)
        assert doc.modified == datetime(2021, 6, 21, 10, tzinfo=UTC)
        assert doc.labels == {
            "calendar": "primary",
            "status": "confirmed",
            "start": "2021-07-01T10:00:00+00:00",
            "duration": "1h30m",
        }
        assert doc.links == {"hangout": "https://meet.google.com/abc", "calendar": item["htmlLink"]}

    def test_all_day_event_without_created(self):
        item = {"id": "d1", "summary": "Holiday", "start": {"date": "2021-07-01"}, "end": {"date": "2021-07-02"}}
        doc = GoogleCalendarBackend.event_to_document("holidays", item)
        assert doc.created == datetime(2021, 7, 1, tzinfo=UTC)
        assert doc.labels["duration"] == "24h"
        assert doc.content == ""

    @pytest.mark.parametrize(
        "delta, expected",
        [(timedelta(minutes=45), "45m"), (timedelta(hours=2), "2h"), (timedelta(hours=1, minutes=5), "1h5m")],
    )
    def test_format_duration(self, delta, expected):
        assert _format_duration(delta) == expected


class TestPaths:
    def test_storage_paths(self, service, backend):
        assert backend.storage_path() == "https://www.googleapis.com/calendar/v3/calendars/primary"
        service.events.return_value.list.return_value.execute.return_value = {
            "items": [
                _event("e1", "2021-07-01T10:00:00Z", "2021-07-01T11:00:00Z", htmlLink="https://calendar.google.com/e1"),
                _event("e2", "2021-07-01T12:00:00Z", "2021-07-01T13:00:00Z"),
            ]
        }
        backend.list()
        assert backend.storage_path_doc("e1") == "https://calendar.google.com/e1"
        assert backend.storage_path_doc("e2").endswith("/calendars/primary/events/e2")

    def test_hard_get_of_cancelled_event(self, service, backend):
        service.events.return_value.list.return_value.execute.side_effect = [
            {"items": [_event("e1", "2021-07-01T10:00:00Z", "2021-07-01T11:00:00Z")]},
            {"items": []},
        ]
        backend.list()
        with pytest.raises(NotFoundError):
            backend.get("e1", hard=True)


def test_from_credentials_builds_service():
    with patch("jot.integrations.google_calendar.build_service", return_value="svc") as build:
        backend = GoogleCalendarBackend.from_credentials("creds", calendar_ids=["work"])
    build.assert_called_once_with("calendar", "v3", "creds")
    assert backend.service == "svc"
    assert backend.calendar_ids == ["work"]
