"""Core data models for notes, events and other documents.

One ``Document`` value type covers every backend: filesystem notes,
calendar events, Keep items and Notion pages. Backends convert their
native representation into it; the presentation layer never sees anything
else.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any

from jot.core.exceptions import ValidationError
from jot.core.utils.text import fold_text, normalize_text, truncate_text


class DocType(StrEnum):
    """Kinds of documents, used for display grouping."""

    NOTE = "note"
    EVENT = "event"
    KEEP = "keep"
    NOTION = "notion"


class SyncStatus(StrEnum):
    """Freshness/health of a backend's last refresh."""

    UNINITIALIZED = "uninitialized"
    OK = "ok"
    OFFLINE = "offline"
    SYNCHRONIZING = "synchronizing"
    ERROR = "error"


_CHECKBOX_RE = re.compile(r"^\s*[-*+] \[([ xX])\]", re.MULTILINE)


def parse_timestamp(value: Any) -> datetime | None:
    """Coerce YAML/ISO timestamps to aware datetimes. Naive values are UTC."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError as e:
            raise ValidationError(f"invalid timestamp {value!r}") from e
    else:
        raise ValidationError(f"invalid timestamp {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def id_from_time(created: datetime) -> str:
    """Identifier for a document created at ``created`` (Unix epoch seconds)."""
    return str(int(created.timestamp()))


def time_from_id(doc_id: str | int) -> datetime:
    """Inverse of :func:`id_from_time`, in UTC.

    Raises:
        ValidationError: If the identifier is not an epoch-seconds integer.
    """
    try:
        seconds = int(str(doc_id).strip())
        return datetime.fromtimestamp(seconds, tz=UTC)
    except (ValueError, OverflowError, OSError) as e:
        raise ValidationError(f"unable to parse note ID {doc_id!r}") from e


@dataclass
class Document:
    """One note, event or item.

    Attributes:
        id: Opaque key, unique within a backend and stable across reloads.
        created: Creation instant (timezone-aware).
        content: Markdown-flavored body.
        title: Optional display title.
        author: Who wrote it (required for notes).
        doc_type: Which kind of backend produced it.
        modified: Last modification, None meaning never.
        trashed: When it was trashed, None meaning never.
        tags: Selector tags, order-irrelevant.
        labels: Selector labels.
        links: Named URLs related to the document.
    """

    id: str = ""
    created: datetime | None = None
    content: str = ""
    title: str = ""
    author: str = ""
    doc_type: DocType = DocType.NOTE
    modified: datetime | None = None
    trashed: datetime | None = None
    tags: list[str] = field(default_factory=list)
    labels: dict[str, str] = field(default_factory=dict)
    links: dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.id = "" if self.id is None else str(self.id)
        self.created = parse_timestamp(self.created)
        self.modified = parse_timestamp(self.modified)
        self.trashed = parse_timestamp(self.trashed)
        self.doc_type = DocType(self.doc_type)
        self.tags = [str(t) for t in (self.tags or [])]
        self.labels = {str(k): str(v) for k, v in (self.labels or {}).items()}
        self.links = dict(self.links or {})
        self.content = self.content or ""

    @classmethod
    def new(
        cls,
        author: str,
        title: str = "",
        body: str = "",
        tags: list[str] | None = None,
        labels: dict[str, str] | None = None,
    ) -> Document:
        """Create a fresh note stamped with the current time."""
        created = datetime.now(UTC).replace(microsecond=0)
        doc = cls(
            id=id_from_time(created),
            created=created,
            author=author,
            title=title,
            content=body,
            tags=tags or [],
            labels=labels or {},
        )
        doc.validate()
        return doc

    @property
    def sort_time(self) -> datetime:
        """Modified time when present, otherwise created."""
        return self.modified or self.created or datetime.min.replace(tzinfo=UTC)

    @property
    def is_trashed(self) -> bool:
        return self.trashed is not None

    def validate(self) -> None:
        """Raise ValidationError if required metadata is missing."""
        missing = []
        if not self.id:
            missing.append("id")
        if self.created is None:
            missing.append("created")
        if self.doc_type == DocType.NOTE and not self.author:
            missing.append("author")
        if missing:
            raise ValidationError(f"document {self.id or '<new>'} is missing required metadata: {', '.join(missing)}")

    def matches_filter(self, needle: str) -> bool:
        """Case- and accent-insensitive substring match over title, content and tags."""
        if not needle:
            return True
        haystack = "\n".join([self.title, self.content, " ".join(self.tags)])
        return fold_text(needle) in fold_text(haystack)

    def task_counts(self) -> tuple[int, int]:
        """(checked, total) markdown checkboxes in the content."""
        marks = _CHECKBOX_RE.findall(self.content)
        return sum(1 for m in marks if m in "xX"), len(marks)

    def summary(self) -> str:
        checked, total = self.task_counts()
        if total == 0:
            return "no tasks"
        return f"{checked}/{total} ({checked / total:.0%})"

    # -- Persistence helpers (filesystem notes) ------------------------------

    def to_metadata(self) -> dict[str, Any]:
        """Metadata block for the YAML section of a stored note."""
        meta: dict[str, Any] = {"id": int(self.id) if self.id.isdigit() else self.id}
        meta["author"] = self.author
        if self.title:
            meta["title"] = self.title
        meta["created"] = self.created
        if self.modified is not None:
            meta["modified"] = self.modified
        if self.trashed is not None:
            meta["trashed"] = self.trashed
        if self.tags:
            meta["tags"] = list(self.tags)
        if self.labels:
            meta["labels"] = dict(self.labels)
        return meta

    @classmethod
    def from_metadata(cls, metadata: dict[str, Any], body: str, doc_type: DocType = DocType.NOTE) -> Document:
        """Build a document from a parsed metadata block and body."""
        tags = metadata.get("tags") or []
        labels = metadata.get("labels") or {}
        if not isinstance(tags, list):
            raise ValidationError(f"tags must be a list, got {type(tags).__name__}")
        if not isinstance(labels, dict):
            raise ValidationError(f"labels must be a mapping, got {type(labels).__name__}")
        return cls(
            id=metadata.get("id", ""),
            created=metadata.get("created"),
            modified=metadata.get("modified"),
            trashed=metadata.get("trashed"),
            title=metadata.get("title") or "",
            author=metadata.get("author") or "",
            tags=tags,
            labels=labels,
            content=body,
            doc_type=doc_type,
        )

    def __repr__(self) -> str:
        preview = truncate_text(normalize_text(self.title or self.content), 50)
        return f"Document(id='{self.id}', type='{self.doc_type}', preview='{preview}')"
