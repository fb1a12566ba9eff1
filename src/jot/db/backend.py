"""Backend protocol: the contract every document source satisfies.

Local note directories, remote calendars, cloud notes and the filtering
decorator all implement ``Backend`` and plug into the same presentation
layer. Nothing outside a backend reaches into its storage internals.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from .models import Document, DocType, SyncStatus


@runtime_checkable
class Backend(Protocol):
    """Read side of a document source.

    Errors surface as :mod:`jot.core.exceptions` types: ``NotFoundError``,
    ``ValidationError``, ``ParseError`` and ``BackendIOError``. Callers
    decide whether to retry.
    """

    def doc_type(self) -> DocType:
        """Fixed document type, used for display grouping."""
        ...

    def list(self) -> list[Document]:
        """Return the current known collection.

        May refresh from the source of truth first if the backend's
        freshness policy requires it. Never returns partially-built documents.
        """
        ...

    def get(self, doc_id: str, hard: bool = False) -> Document:
        """Return one document.

        Args:
            doc_id: Document identifier.
            hard: When True, refresh from the source of truth (scoped to at
                least this identifier) before answering.

        Raises:
            NotFoundError: Unknown identifier, or the source no longer has it.
        """
        ...

    def count(self) -> int:
        """Size of the cached collection (0 if never populated)."""
        ...

    def status(self) -> SyncStatus:
        """Current freshness judgment.

        Side-effect-free, except that a backend may pre-declare
        ``SYNCHRONIZING`` once it knows a refresh is due.
        """
        ...

    def storage_path(self) -> str:
        """Location descriptor for the whole backend (path, URL, or key)."""
        ...

    def storage_path_doc(self, doc_id: str) -> str:
        """Location descriptor for one document."""
        ...


@runtime_checkable
class WritableBackend(Backend, Protocol):
    """A backend that accepts writes and explicit reconciles."""

    def create_or_update(self, doc: Document) -> Document:
        """Persist ``doc`` and return the stored document."""
        ...

    def reconcile(self, doc_id: str) -> Document:
        """Refresh one document from the source of truth."""
        ...


def sort_by_created(docs: Iterable[Document]) -> list[Document]:
    """Newest-created first. Stable for equal timestamps."""
    return sorted(docs, key=lambda d: d.created or d.sort_time, reverse=True)


def sort_by_recency(docs: Iterable[Document]) -> list[Document]:
    """Most recently modified (or created, when never modified) first. Stable."""
    return sorted(docs, key=lambda d: d.sort_time, reverse=True)
