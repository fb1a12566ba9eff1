"""Google Calendar events for the current day as a remote-cache backend.

Requires ``jot[google]`` when built from credentials; any object with the
``events().list(...).execute()`` shape works as the service.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from typing import Any

from jot.backends.remote import RemoteCacheBackend, collect_pages
from jot.db.models import Document, DocType, parse_timestamp

from .google_api import build_service

API_BASE = "https://www.googleapis.com/calendar/v3"
PRIMARY_CALENDAR_ID = "primary"
DEFAULT_REFRESH_INTERVAL = 10 * 60
# How many events to ask for per page.
MAX_EVENTS_PER_PAGE = 40


def _event_time(value: dict[str, Any] | None) -> datetime | None:
    if not value:
        return None
    # All-day events carry a bare date.
    return parse_timestamp(value.get("dateTime") or value.get("date"))


def _format_duration(delta: timedelta) -> str:
    minutes = int(delta.total_seconds() // 60)
    hours, minutes = divmod(minutes, 60)
    if hours and minutes:
        return f"{hours}h{minutes}m"
    if hours:
        return f"{hours}h"
    return f"{minutes}m"


class GoogleCalendarBackend(RemoteCacheBackend):
    """Today's events across one or more calendars.

    Args:
        service: An authenticated Calendar v3 service.
        calendar_ids: Calendars to read, in order.
        refresh_interval: Seconds between refetches (default ten minutes).
        now: Wall-clock source deciding which day "today" is.
        clock: Monotonic source for the refresh interval.
    """

    DOC_TYPE = DocType.EVENT

    def __init__(
        self,
        service: Any,
        calendar_ids: list[str] | None = None,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        *,
        now: Callable[[], datetime] = lambda: datetime.now(UTC),
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(refresh_interval, clock=clock)
        self.service = service
        self.calendar_ids = calendar_ids or [PRIMARY_CALENDAR_ID]
        self._now = now

    @classmethod
    def from_credentials(cls, credentials: Any, **kwargs: Any) -> GoogleCalendarBackend:
        return cls(build_service("calendar", "v3", credentials), **kwargs)

    def fetch_all(self) -> list[Document]:
        today = self._now().astimezone(UTC).date()
        docs = []
        for calendar_id in self.calendar_ids:
            docs.extend(self.day_events(calendar_id, today))
        return docs

    def day_events(self, calendar_id: str, day) -> list[Document]:
        """Every event on ``day`` (UTC) in one calendar, all pages."""
        time_min = datetime(day.year, day.month, day.day, tzinfo=UTC)
        time_max = time_min + timedelta(hours=23, minutes=59)

        def fetch_page(token: str | None) -> dict[str, Any]:
            return (
                self.service.events()
                .list(
                    calendarId=calendar_id,
                    showDeleted=False,
                    singleEvents=True,
                    timeMin=time_min.isoformat(),
                    timeMax=time_max.isoformat(),
                    maxResults=MAX_EVENTS_PER_PAGE,
                    orderBy="startTime",
                    pageToken=token,
                )
                .execute()
            )

        return [self.event_to_document(calendar_id, item) for item in collect_pages(fetch_page, "items")]

    @staticmethod
    def event_to_document(calendar_id: str, item: dict[str, Any]) -> Document:
        start = _event_time(item.get("start"))
        end = _event_time(item.get("end"))
        attendees = [a["email"] for a in item.get("attendees") or [] if a.get("email")]

        links = {}
        for key, name in (("hangoutLink", "hangout"), ("htmlLink", "calendar")):
            if item.get(key):
                links[name] = item[key]

        labels = {"calendar": calendar_id, "status": item.get("status", "")}
        if start is not None:
            labels["start"] = start.isoformat()
        if start is not None and end is not None:
            labels["duration"] = _format_duration(end - start)

        lines = []
        if item.get("description"):
            lines.append(item["description"])
        if attendees:
            lines.append("Attendees: " + ", ".join(attendees))
        if item.get("location"):
            lines.append("Location: " + item["location"])

        return Document(
            id=item["id"],
            title=item.get("summary", ""),
            content="\n\n".join(lines),
            created=item.get("created") or start,
            modified=item.get("updated"),
            labels=labels,
            links=links,
            doc_type=DocType.EVENT,
        )

    def storage_path(self) -> str:
        return f"{API_BASE}/calendars/{self.calendar_ids[0]}"

    def storage_path_doc(self, doc_id: str) -> str:
        with self._lock:
            doc = (self._collection or {}).get(str(doc_id))
        if doc is not None:
            if doc.links.get("calendar"):
                return doc.links["calendar"]
            return f"{API_BASE}/calendars/{doc.labels['calendar']}/events/{doc_id}"
        return f"{API_BASE}/calendars/{self.calendar_ids[0]}/events/{doc_id}"
