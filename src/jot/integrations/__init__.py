"""Remote-cache backends for external services (Notion, Google Calendar, Google Keep).

Google backends need ``jot[google]`` only when built from credentials.
"""

from .google_calendar import GoogleCalendarBackend
from .google_keep import GoogleKeepBackend
from .notion import NotionBackend, NotionClient

__all__ = [
    "GoogleCalendarBackend",
    "GoogleKeepBackend",
    "NotionBackend",
    "NotionClient",
]
