"""Local markdown notes stored one file per day."""

from .store import STORAGE_FILENAME_FORMAT, STORAGE_GLOB, FilesystemStore
from .watcher import DirectoryWatcher

__all__ = ["STORAGE_FILENAME_FORMAT", "STORAGE_GLOB", "DirectoryWatcher", "FilesystemStore"]
