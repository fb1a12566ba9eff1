"""Document model and the backend contract.

Provides the ``Document`` value type, the ``Backend`` protocol every data
source satisfies, and a registry for building backends by kind.
"""

from .backend import Backend, WritableBackend, sort_by_created, sort_by_recency
from .models import DocType, Document, SyncStatus, id_from_time, time_from_id
from .registry import BackendRegistry, default_registry

__all__ = [
    "Backend",
    "BackendRegistry",
    "DocType",
    "Document",
    "SyncStatus",
    "WritableBackend",
    "default_registry",
    "id_from_time",
    "sort_by_created",
    "sort_by_recency",
    "time_from_id",
]
