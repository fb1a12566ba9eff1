"""Filesystem note store: a directory of human-editable markdown notes.

Each note is one ``YYYY-MM-DD.md`` file (UTC creation date) holding a YAML
metadata block and the raw body. The store keeps an in-memory index of
every note and stays coherent with external edits by comparing on-disk
modification times against the last value it observed.

Because filenames are derived from the creation *day*, the store holds at
most one note per calendar day: writing a second note for the same day
replaces the first on disk, and the store drops the replaced note from
its index.
"""

from __future__ import annotations

import glob
import os
import threading
from datetime import UTC, datetime

from loguru import logger

from jot.core.exceptions import (
    BackendIOError,
    NoNextDocumentError,
    NoPreviousDocumentError,
    NotFoundError,
    ParseError,
    ValidationError,
)
from jot.core.utils.file_io import (
    DELIMITER,
    durable_write,
    read_text,
    render_document,
    render_metadata,
    split_document,
)
from jot.db.backend import sort_by_created
from jot.db.models import Document, DocType, SyncStatus, id_from_time, time_from_id

from .watcher import DirectoryWatcher

STORAGE_FILENAME_FORMAT = "%Y-%m-%d.md"
STORAGE_GLOB = "*.md"


def created_time_to_filename(created: datetime) -> str:
    return created.astimezone(UTC).strftime(STORAGE_FILENAME_FORMAT)


class FilesystemStore:
    """Directory-of-files backend for local notes.

    Construction scans the directory and loads every note; a malformed file
    aborts construction rather than being skipped. Afterwards the store
    watches the directory and reconciles notes edited externally.

    Args:
        directory: Notes directory (``~`` is expanded). Created if missing.
        watch: Start the background directory watcher.
        author: Author stamped onto notes written without one.
    """

    def __init__(self, directory: str, *, watch: bool = True, author: str = ""):
        self.directory = os.path.expanduser(directory)
        self.author = author

        # One lock guards entries, mtimes and status.
        self._lock = threading.RLock()
        self._status = SyncStatus.UNINITIALIZED
        self._entries: dict[str, Document] = {}
        self._mtimes: dict[str, int] = {}
        self._watcher: DirectoryWatcher | None = None

        self._ensure_directory()
        self._load_all()
        if watch:
            self._start_watcher()

        self._status = SyncStatus.OK
        logger.info(f"Loaded {len(self._entries)} notes from {self.directory}")

    # -- Lifecycle -----------------------------------------------------------

    def _ensure_directory(self) -> None:
        if os.path.isdir(self.directory):
            return
        try:
            os.makedirs(self.directory, mode=0o700, exist_ok=True)
        except OSError as e:
            raise BackendIOError(f"error creating {self.directory}: {e}") from e

    def _load_all(self) -> None:
        for path in sorted(glob.glob(os.path.join(glob.escape(self.directory), STORAGE_GLOB))):
            doc, mtime = self._load_file(path)
            expected = self.storage_path_doc(doc.id)
            if os.path.basename(expected) != os.path.basename(path):
                logger.warning(f"{path} holds note {doc.id}, which is stored as {os.path.basename(expected)}")
            if doc.id in self._entries:
                logger.warning(f"Duplicate note id {doc.id} in {path}, replacing earlier copy")
            self._entries[doc.id] = doc
            self._mtimes[doc.id] = mtime

    def _start_watcher(self) -> None:
        watcher = DirectoryWatcher(self.directory, self.handle_changed_path)
        try:
            watcher.start()
        except OSError as e:
            watcher.stop()
            logger.warning(f"Unable to watch {self.directory}, external edits need a hard read: {e}")
            return
        self._watcher = watcher

    def close(self) -> None:
        """Stop watching the directory. Safe to call more than once."""
        watcher, self._watcher = self._watcher, None
        if watcher is not None:
            watcher.stop()

    def __enter__(self) -> FilesystemStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def watching(self) -> bool:
        return self._watcher is not None and self._watcher.running

    # -- Codec ---------------------------------------------------------------

    def _load_file(self, path: str) -> tuple[Document, int]:
        """Read and validate one note. Returns the note and the mtime read."""
        try:
            mtime = os.stat(path).st_mtime_ns
            text = read_text(path)
        except OSError as e:
            raise BackendIOError(f"unable to open {path}: {e}") from e

        try:
            metadata, body = split_document(text)
            doc = Document.from_metadata(metadata, body)
            doc.validate()
        except ParseError as e:
            raise ParseError(f"error loading {path}: {e}") from e
        except ValidationError as e:
            raise ValidationError(f"error loading {path}: {e}") from e
        return doc, mtime

    # -- Paths ---------------------------------------------------------------

    def storage_path(self) -> str:
        return self.directory

    def storage_path_doc(self, doc_id: str) -> str:
        """``<directory>/<UTC creation date>.md`` for the note ``doc_id``."""
        return os.path.join(self.directory, created_time_to_filename(time_from_id(doc_id)))

    def doc_type(self) -> DocType:
        return DocType.NOTE

    # -- Reads ---------------------------------------------------------------

    def status(self) -> SyncStatus:
        with self._lock:
            return self._status

    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def has(self, doc_id: str) -> bool:
        with self._lock:
            return str(doc_id) in self._entries

    def get(self, doc_id: str, hard: bool = False) -> Document:
        if hard:
            return self.reconcile(doc_id)
        with self._lock:
            doc = self._entries.get(str(doc_id))
        if doc is None:
            raise NotFoundError(f"no note found with id {doc_id}")
        return doc

    def list(self) -> list[Document]:
        """All notes, newest-created first."""
        with self._lock:
            return sort_by_created(sorted(self._entries.values(), key=lambda d: d.id, reverse=True))

    def next(self, doc_id: str) -> Document:
        """The note created just after ``doc_id``."""
        docs = self.list()
        idx = self._index(docs, doc_id)
        if idx == 0:
            raise NoNextDocumentError(f"no note newer than {doc_id}")
        return docs[idx - 1]

    def previous(self, doc_id: str) -> Document:
        """The note created just before ``doc_id``."""
        docs = self.list()
        idx = self._index(docs, doc_id)
        if idx + 1 >= len(docs):
            raise NoPreviousDocumentError(f"no note older than {doc_id}")
        return docs[idx + 1]

    @staticmethod
    def _index(docs: list[Document], doc_id: str) -> int:
        for i, doc in enumerate(docs):
            if doc.id == str(doc_id):
                return i
        raise NotFoundError(f"no note found with id {doc_id}")

    def reconcile(self, doc_id: str) -> Document:
        """Reload ``doc_id`` from disk if the file changed since it was last seen.

        A single ``stat`` decides: the file is re-read only when its mtime is
        newer than the recorded one or the note is not cached yet.

        Raises:
            NotFoundError: The file is gone, or now holds a different note.
            ParseError, ValidationError: The file no longer decodes; the
                cached note is left untouched.
        """
        doc_id = str(doc_id)
        path = self.storage_path_doc(doc_id)
        with self._lock:
            try:
                disk_mtime = os.stat(path).st_mtime_ns
            except FileNotFoundError:
                self._forget(doc_id)
                raise NotFoundError(f"no note found with id {doc_id} at {path}") from None
            except OSError as e:
                raise BackendIOError(f"unable to stat {path}: {e}") from e

            cached = self._entries.get(doc_id)
            if cached is not None and disk_mtime <= self._mtimes.get(doc_id, 0):
                return cached

            logger.debug(f"Reloading note {doc_id} from {path}")
            doc, mtime = self._load_file(path)
            self._entries[doc.id] = doc
            self._mtimes[doc.id] = mtime
            if doc.id != doc_id:
                self._forget(doc_id)
                raise NotFoundError(f"{path} now holds note {doc.id}, not {doc_id}")
            return doc

    def _forget(self, doc_id: str) -> None:
        self._entries.pop(doc_id, None)
        self._mtimes.pop(doc_id, None)

    # -- Writes --------------------------------------------------------------

    def create_or_update(self, doc: Document) -> Document:
        """Write ``doc`` through to disk, then cache it.

        Missing creation time defaults to now; a missing id is derived from
        the creation time. ``modified`` is stored exactly as given.

        Raises:
            ValidationError: Required metadata missing, or metadata that
                would collide with the ``---`` delimiter.
            BackendIOError: The write failed; status becomes ERROR and the
                cache is unchanged.
        """
        with self._lock:
            stored = self._prepare(doc)
            path = self.storage_path_doc(stored.id)

            self._status = SyncStatus.SYNCHRONIZING
            try:
                durable_write(path, render_document(stored.to_metadata(), stored.content))
                mtime = os.stat(path).st_mtime_ns
            except OSError as e:
                self._status = SyncStatus.ERROR
                logger.error(f"Unable to store note {stored.id} at {path}: {e}")
                raise BackendIOError(f"unable to store note {stored.id}: {e}") from e

            filename = os.path.basename(path)
            for other in [d for d in self._entries.values() if d.id != stored.id]:
                if created_time_to_filename(time_from_id(other.id)) == filename:
                    logger.warning(f"Note {stored.id} replaces note {other.id} in {filename}")
                    self._forget(other.id)

            self._entries[stored.id] = stored
            self._mtimes[stored.id] = mtime
            self._status = SyncStatus.OK
            return stored

    def _prepare(self, doc: Document) -> Document:
        now = datetime.now(UTC).replace(microsecond=0)
        created = doc.created
        if created is None:
            created = time_from_id(doc.id) if doc.id else now
        doc_id = doc.id or id_from_time(created)

        stored = Document(
            id=doc_id,
            created=created,
            content=doc.content,
            title=doc.title,
            author=doc.author or self.author,
            doc_type=DocType.NOTE,
            modified=doc.modified,
            trashed=doc.trashed,
            tags=list(doc.tags),
            labels=dict(doc.labels),
        )
        stored.validate()
        if DELIMITER in render_metadata(stored.to_metadata()):
            raise ValidationError(f"note {doc_id} metadata must not contain '{DELIMITER}'")
        return stored

    # -- Watcher -------------------------------------------------------------

    def handle_changed_path(self, path: str) -> None:
        """Reconcile every known note stored at ``path``.

        Runs on the watcher's consumer thread; errors are logged, not raised.
        """
        name = os.path.basename(path)
        for doc in self.list():
            try:
                if os.path.basename(self.storage_path_doc(doc.id)) != name:
                    continue
                self.reconcile(doc.id)
            except Exception as e:
                logger.warning(f"Error reconciling note {doc.id} after change to {name}: {e}")
