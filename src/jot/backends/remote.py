"""Remote-cache backend: makes a slow, rate-limited API look like a local collection.

Subclasses implement :meth:`RemoteCacheBackend.fetch_all`; this base class
owns the TTL state machine::

    uninitialized -> synchronizing -> ok
    ok -> synchronizing               (refresh interval elapsed)
    any fetch failure -> error        (until the next successful fetch)

A refresh builds a whole new collection off to the side (outside the lock)
and swaps it in only after it succeeds, so a failed fetch leaves the last
good collection in place and remote deletions simply drop out of the map.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from loguru import logger

from jot.core.exceptions import BackendIOError, NotFoundError
from jot.db.backend import sort_by_created
from jot.db.models import Document, DocType, SyncStatus


def collect_pages(
    fetch_page: Callable[[str | None], dict[str, Any]],
    items_key: str,
    token_key: str = "nextPageToken",
) -> list[dict[str, Any]]:
    """Drain a paginated list endpoint into memory.

    Args:
        fetch_page: Called with the continuation token (None for the first page).
        items_key: Response key holding the page's items.
        token_key: Response key holding the next token; empty or missing ends it.
    """
    items: list[dict[str, Any]] = []
    token: str | None = None
    while True:
        response = fetch_page(token) or {}
        items.extend(response.get(items_key) or [])
        token = response.get(token_key)
        if not token:
            return items


class RemoteCacheBackend(ABC):
    """Base class for backends that mirror a remote collection in memory.

    Args:
        refresh_interval: Seconds a successful fetch stays fresh.
        clock: Monotonic seconds source (injectable for tests).
    """

    DOC_TYPE: DocType

    def __init__(self, refresh_interval: float, *, clock: Callable[[], float] = time.monotonic):
        if refresh_interval <= 0:
            raise ValueError("refresh_interval must be positive")
        self.refresh_interval = refresh_interval
        self._clock = clock

        # Guards collection, status and last_fetched.
        self._lock = threading.Lock()
        # Serializes fetches so one network refresh is in flight at a time.
        self._fetch_lock = threading.Lock()

        self._collection: dict[str, Document] | None = None
        self._status = SyncStatus.UNINITIALIZED
        self._last_fetched: float | None = None

    @abstractmethod
    def fetch_all(self) -> list[Document]:
        """Fetch the whole remote collection (all pages aggregated)."""

    @abstractmethod
    def storage_path(self) -> str: ...

    @abstractmethod
    def storage_path_doc(self, doc_id: str) -> str: ...

    def doc_type(self) -> DocType:
        return self.DOC_TYPE

    @property
    def last_fetched(self) -> float | None:
        with self._lock:
            return self._last_fetched

    # -- Freshness -----------------------------------------------------------

    def _needs_reconciliation(self) -> bool:
        # Caller holds self._lock.
        if self._collection is None or self._last_fetched is None:
            return True
        return self._clock() - self._last_fetched > self.refresh_interval

    def status(self) -> SyncStatus:
        with self._lock:
            if self._status != SyncStatus.ERROR and self._needs_reconciliation():
                self._status = SyncStatus.SYNCHRONIZING
            return self._status

    def refresh(self, force: bool = False) -> bool:
        """Refetch the collection if stale (or always, with ``force``).

        Returns:
            True if a fetch happened.

        Raises:
            BackendIOError: The fetch failed; the previous collection is kept.
        """
        with self._fetch_lock:
            with self._lock:
                if not force and not self._needs_reconciliation():
                    return False
                self._status = SyncStatus.SYNCHRONIZING

            name = type(self).__name__
            try:
                docs = self.fetch_all()
            except Exception as e:
                with self._lock:
                    self._status = SyncStatus.ERROR
                logger.warning(f"{name}: fetch failed, keeping previous collection: {e}")
                if isinstance(e, BackendIOError):
                    raise
                raise BackendIOError(f"{name}: unable to fetch collection: {e}") from e

            collection = {doc.id: doc for doc in docs}
            with self._lock:
                self._collection = collection
                self._last_fetched = self._clock()
                self._status = SyncStatus.OK
            logger.debug(f"{name}: fetched {len(collection)} documents")
            return True

    # -- Backend protocol ----------------------------------------------------

    def list(self) -> list[Document]:
        """Current collection, newest-created first; refetches when stale.

        When a refetch fails but an earlier fetch succeeded, the last good
        collection is returned (stale but available).
        """
        try:
            self.refresh()
        except BackendIOError:
            with self._lock:
                if self._collection is None:
                    raise
        with self._lock:
            return sort_by_created((self._collection or {}).values())

    def get(self, doc_id: str, hard: bool = False) -> Document:
        if hard:
            self.refresh(force=True)
        with self._lock:
            doc = (self._collection or {}).get(str(doc_id))
        if doc is None:
            raise NotFoundError(f"{doc_id} not found")
        return doc

    def count(self) -> int:
        with self._lock:
            return len(self._collection) if self._collection is not None else 0
