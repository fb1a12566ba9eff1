"""Filtering backend: a live, filtered, read-only view over another backend.

The filter text is pulled from a provider callable on every ``list()``
(e.g. the current value of a UI search box), so the source never needs to
know about filtering. Results are memoized for the last filter text seen.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from jot.core.exceptions import ReadOnlyOperationError
from jot.db.backend import Backend, sort_by_recency
from jot.db.models import Document, DocType, SyncStatus


class FilteringBackend:
    """Read-only decorator exposing the subset of ``source`` matching a filter.

    Example::

        search = FilteringBackend(store, lambda: search_box.value)
        visible = search.list()

    Args:
        source: Any backend.
        filter_provider: Returns the current filter text when called.

    Raises:
        BackendIOError: (and other source errors) if the initial snapshot fails.
    """

    def __init__(self, source: Backend, filter_provider: Callable[[], str]):
        self._source = source
        self._filter_provider = filter_provider
        self._lock = threading.Lock()

        self._cached_full_list: list[Document] = list(source.list())
        self._filter_text = self._current_filter()
        self._displayed = self._apply(self._filter_text)

    @property
    def source(self) -> Backend:
        return self._source

    @property
    def filter_text(self) -> str:
        """Filter text the current view was computed for."""
        with self._lock:
            return self._filter_text

    def _current_filter(self) -> str:
        return self._filter_provider() or ""

    def _apply(self, text: str) -> list[Document]:
        if not text:
            return list(self._cached_full_list)
        matching = [d for d in self._cached_full_list if d.matches_filter(text)]
        return sort_by_recency(matching)

    def _filtered(self) -> list[Document]:
        current = self._current_filter()
        with self._lock:
            if current != self._filter_text:
                # Swap both together so the view always matches its filter text.
                self._displayed = self._apply(current)
                self._filter_text = current
            return list(self._displayed)

    def refresh(self) -> list[Document]:
        """Re-pull the snapshot from the source and recompute the view."""
        docs = list(self._source.list())
        current = self._current_filter()
        with self._lock:
            self._cached_full_list = docs
            self._displayed = self._apply(current)
            self._filter_text = current
            return list(self._displayed)

    # -- Backend protocol ----------------------------------------------------

    def list(self) -> list[Document]:
        return self._filtered()

    def count(self) -> int:
        return len(self._filtered())

    def get(self, doc_id: str, hard: bool = False) -> Document:
        return self._source.get(doc_id, hard)

    def doc_type(self) -> DocType:
        return self._source.doc_type()

    def status(self) -> SyncStatus:
        return self._source.status()

    def storage_path(self) -> str:
        return self._source.storage_path()

    def storage_path_doc(self, doc_id: str) -> str:
        return self._source.storage_path_doc(doc_id)

    def reconcile(self, doc_id: str) -> Document:
        raise ReadOnlyOperationError(f"filter backend is read-only, cannot reconcile {doc_id}")

    def create_or_update(self, doc: Document) -> Document:
        raise ReadOnlyOperationError(f"filter backend is read-only, cannot write {doc.id or 'new document'}")
