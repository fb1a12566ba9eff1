"""
Jot exception hierarchy.

All jot exceptions inherit from JotError, making it easy for consumers
to catch library-level errors while still distinguishing specific failure modes.
"""


class JotError(Exception):
    """Base exception class for all jot errors."""


class ConfigurationError(JotError):
    """Raised for configuration errors (missing keys, invalid values, unknown backends)."""


class NotFoundError(JotError, KeyError):
    """Raised when a document identifier is unknown to a backend."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else "no document found"


class ValidationError(JotError):
    """Raised when a document is malformed (e.g. required metadata missing)."""


class ParseError(JotError):
    """Raised when a stored representation cannot be decoded."""


class BackendIOError(JotError):
    """Raised when a backend's source of truth is unreachable or unwritable."""


class APIError(BackendIOError):
    """Raised for remote API communication errors."""


class ReadOnlyOperationError(JotError):
    """Raised when a write or reconcile is attempted on a read-only backend."""


class NoNextDocumentError(JotError):
    """Navigation boundary: there is no newer document."""


class NoPreviousDocumentError(JotError):
    """Navigation boundary: there is no older document."""
