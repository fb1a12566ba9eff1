"""Shared helpers for Google API backed backends.

OAuth is out of scope: callers pass in credentials they already hold (or a
ready-built service object) and these helpers only build the discovery
client.

Requires ``jot[google]``.
"""

from __future__ import annotations

from typing import Any


def build_service(api: str, version: str, credentials: Any):
    """Build a ``googleapiclient`` service for already-authorized credentials."""
    try:
        from googleapiclient.discovery import build
    except ImportError:
        raise ImportError("google-api-python-client is required. Install with: pip install jot[google]") from None

    return build(api, version, credentials=credentials, cache_discovery=False)
