"""Backends that compose over, or stand in for, other document sources."""

from .filtering import FilteringBackend
from .remote import RemoteCacheBackend, collect_pages

__all__ = ["FilteringBackend", "RemoteCacheBackend", "collect_pages"]
