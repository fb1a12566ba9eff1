"""
Directory watcher for the filesystem note store.

The watchdog observer thread only pushes changed paths onto a queue; a
separate consumer thread drains the queue and hands each path to the
store's callback. OS event delivery is therefore decoupled from cache
mutation timing, and a slow reconcile never blocks the observer.
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

_STOP = object()


class _QueueingHandler(FileSystemEventHandler):
    """Forwards created/written file paths to a queue."""

    def __init__(self, events: queue.Queue):
        super().__init__()
        self._events = events

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._events.put(str(event.src_path))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._events.put(str(event.src_path))

    def on_moved(self, event: FileSystemEvent) -> None:
        # Editors that save via rename-over show up as a move onto the note.
        if not event.is_directory:
            self._events.put(str(event.dest_path))


class DirectoryWatcher:
    """Watch one directory (non-recursively) and report changed paths.

    Args:
        directory: Directory to watch.
        on_change: Called from the consumer thread with each changed path.
        observer_factory: Builds the watchdog observer (swappable in tests).
    """

    def __init__(
        self,
        directory: str,
        on_change: Callable[[str], None],
        observer_factory: Callable[[], object] = Observer,
    ):
        self.directory = directory
        self._on_change = on_change
        self._observer_factory = observer_factory
        self._events: queue.Queue = queue.Queue()
        self._observer = None
        self._consumer: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._consumer is not None and self._consumer.is_alive()

    def start(self) -> None:
        """Start the observer and consumer threads.

        Raises:
            OSError: If the OS refuses the watch (e.g. inotify limits).
        """
        if self.running:
            return
        observer = self._observer_factory()
        observer.schedule(_QueueingHandler(self._events), self.directory, recursive=False)
        observer.start()
        self._observer = observer

        self._consumer = threading.Thread(target=self._consume, name=f"jot-watch:{self.directory}", daemon=True)
        self._consumer.start()
        logger.debug(f"Watching {self.directory} for changes")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop both threads and release the OS watch handle. Idempotent."""
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join(timeout)

        consumer, self._consumer = self._consumer, None
        if consumer is not None:
            self._events.put(_STOP)
            consumer.join(timeout)
            logger.debug(f"Stopped watching {self.directory}")

    def _consume(self) -> None:
        while True:
            path = self._events.get()
            if path is _STOP:
                return
            try:
                self._on_change(path)
            except Exception as e:
                # Never let one bad event kill auto-reconciliation.
                logger.warning(f"Error handling change to {path}: {e}")
