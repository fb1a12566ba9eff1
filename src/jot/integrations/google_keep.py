"""Google Keep notes as a remote-cache backend.

Requires ``jot[google]`` when built from credentials; any object with the
``notes().list(...).execute()`` shape works as the service.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Any

from jot.backends.remote import RemoteCacheBackend, collect_pages
from jot.db.models import Document, DocType

from .google_api import build_service

API_BASE = "https://keep.googleapis.com/v1"
DEFAULT_REFRESH_INTERVAL = 10 * 60
PAGE_SIZE = 15


def list_items_to_markdown(items: list[dict[str, Any]], indent: int = 0) -> str:
    """Render Keep checklist items (one level of nesting) as markdown."""
    md = ""
    for item in items or []:
        mark = "x" if item.get("checked") else " "
        text = ((item.get("text") or {}).get("text") or "").replace("\n", " ")
        md += " " * indent + f"- [{mark}] {text}\n"
        md += list_items_to_markdown(item.get("childListItems") or [], indent + 2)
    return md


def note_body_to_markdown(body: dict[str, Any] | None) -> str:
    body = body or {}
    parts = []
    if body.get("list"):
        parts.append(list_items_to_markdown(body["list"].get("listItems") or []).rstrip("\n"))
    if body.get("text"):
        parts.append(body["text"].get("text", ""))
    return "\n".join(p for p in parts if p)


class GoogleKeepBackend(RemoteCacheBackend):
    """Every Keep note visible to the authenticated user.

    Args:
        service: An authenticated Keep v1 service.
        refresh_interval: Seconds between refetches (default ten minutes).
        clock: Monotonic source for the refresh interval.
    """

    DOC_TYPE = DocType.KEEP

    def __init__(
        self,
        service: Any,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(refresh_interval, clock=clock)
        self.service = service

    @classmethod
    def from_credentials(cls, credentials: Any, **kwargs: Any) -> GoogleKeepBackend:
        return cls(build_service("keep", "v1", credentials), **kwargs)

    def fetch_all(self) -> list[Document]:
        def fetch_page(token: str | None) -> dict[str, Any]:
            return self.service.notes().list(pageSize=PAGE_SIZE, pageToken=token).execute()

        return [self.note_to_document(n) for n in collect_pages(fetch_page, "notes")]

    @staticmethod
    def note_to_document(note: dict[str, Any]) -> Document:
        return Document(
            id=note["name"],
            title=note.get("title", ""),
            content=note_body_to_markdown(note.get("body")),
            created=note.get("createTime"),
            modified=note.get("updateTime"),
            trashed=note.get("trashTime") if note.get("trashed") else None,
            doc_type=DocType.KEEP,
        )

    def storage_path(self) -> str:
        return f"{API_BASE}/notes"

    def storage_path_doc(self, doc_id: str) -> str:
        return f"{API_BASE}/{doc_id}"
