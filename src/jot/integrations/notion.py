"""Notion database pages as a remote-cache backend.

``NotionClient`` talks to Notion's public REST API with bearer-token auth
(no external dependencies beyond the standard library); ``NotionBackend``
mirrors every page of one database as a ``Document``.
"""

from __future__ import annotations

import json
import time
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Callable
from typing import Any

from jot.backends.remote import RemoteCacheBackend, collect_pages
from jot.core.exceptions import APIError
from jot.db.models import Document, DocType

DEFAULT_API_BASE = "https://api.notion.com/v1"
DEFAULT_NOTION_VERSION = "2022-06-28"
DEFAULT_REFRESH_INTERVAL = 2 * 60 * 60
PAGE_SIZE = 100


class NotionClient:
    """Small Notion client centered on one database."""

    def __init__(
        self,
        token: str,
        database_id: str,
        *,
        title_property: str = "",
        timeout: int = 20,
        notion_version: str = DEFAULT_NOTION_VERSION,
        api_base: str = DEFAULT_API_BASE,
    ):
        if not token or not database_id:
            raise ValueError("token and database_id are required")
        self.token = token
        self.database_id = database_id
        self.title_property = title_property
        self.timeout = timeout
        self.notion_version = notion_version
        self.api_base = api_base.rstrip("/")
        self._database_cache: dict[str, Any] | None = None

    def _request(
        self,
        method: str,
        path: str,
        *,
        query: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> Any:
        url = f"{self.api_base}/{path.lstrip('/')}"
        if query:
            url = f"{url}?{urllib.parse.urlencode(query, doseq=True)}"

        headers = {
            "Authorization": f"Bearer {self.token}",
            "Notion-Version": self.notion_version,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = urllib.request.Request(url=url, method=method.upper(), data=data, headers=headers)

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="ignore") if hasattr(e, "read") else ""
            raise APIError(f"Notion API {e.code}: {body or e.reason}") from e
        except urllib.error.URLError as e:
            raise APIError(f"Notion API request failed: {e}") from e

        if not raw:
            return {}
        try:
            return json.loads(raw.decode("utf-8", errors="ignore"))
        except json.JSONDecodeError as e:
            raise APIError(f"Notion API returned invalid JSON: {e}") from e

    def get_database(self, *, force_refresh: bool = False) -> dict[str, Any]:
        if self._database_cache is None or force_refresh:
            self._database_cache = self._request("GET", f"/databases/{self.database_id}")
        return dict(self._database_cache)

    def resolve_title_property(self) -> str:
        if self.title_property:
            return self.title_property

        database = self.get_database()
        properties = database.get("properties", {}) if isinstance(database, dict) else {}
        for prop_name, prop_def in properties.items():
            if isinstance(prop_def, dict) and prop_def.get("type") == "title":
                self.title_property = prop_name
                return prop_name

        # Fallback used by many templates.
        self.title_property = "Name"
        return self.title_property

    def query_pages(self, start_cursor: str | None = None) -> dict[str, Any]:
        """One page of database results, newest-created first."""
        payload: dict[str, Any] = {
            "page_size": PAGE_SIZE,
            "sorts": [{"timestamp": "created_time", "direction": "descending"}],
        }
        if start_cursor:
            payload["start_cursor"] = start_cursor
        result = self._request("POST", f"/databases/{self.database_id}/query", payload=payload)
        return result if isinstance(result, dict) else {}

    def list_all_pages(self) -> list[dict[str, Any]]:
        return collect_pages(self.query_pages, items_key="results", token_key="next_cursor")

    def block_children(self, block_id: str, start_cursor: str | None = None) -> dict[str, Any]:
        query: dict[str, Any] = {"page_size": PAGE_SIZE}
        if start_cursor:
            query["start_cursor"] = start_cursor
        result = self._request("GET", f"/blocks/{block_id}/children", query=query)
        return result if isinstance(result, dict) else {}

    def page_text(self, page_id: str) -> str:
        """Plain markdown-ish text of a page's top-level blocks."""
        blocks = collect_pages(
            lambda cursor: self.block_children(page_id, cursor), items_key="results", token_key="next_cursor"
        )
        lines = [line for line in (block_to_markdown(b) for b in blocks) if line is not None]
        return "\n".join(lines)

    @staticmethod
    def extract_page_title(page: dict[str, Any], title_property: str = "") -> str:
        properties = page.get("properties", {}) if isinstance(page, dict) else {}
        if not isinstance(properties, dict):
            return "Untitled"

        if title_property and isinstance(properties.get(title_property), dict):
            value = properties[title_property].get("title", [])
            if isinstance(value, list) and value:
                return _plain_text(value) or "Untitled"

        for prop in properties.values():
            if isinstance(prop, dict) and prop.get("type") == "title":
                value = prop.get("title", [])
                if isinstance(value, list):
                    return _plain_text(value) or "Untitled"

        return "Untitled"


def _plain_text(rich_text: list[Any]) -> str:
    return "".join(part.get("plain_text", "") for part in rich_text if isinstance(part, dict)).strip()


_BLOCK_PREFIXES = {
    "paragraph": "",
    "heading_1": "# ",
    "heading_2": "## ",
    "heading_3": "### ",
    "bulleted_list_item": "- ",
    "numbered_list_item": "1. ",
    "quote": "> ",
}


def block_to_markdown(block: dict[str, Any]) -> str | None:
    """Render one Notion block as a markdown line, or None if unsupported."""
    block_type = block.get("type", "")
    body = block.get(block_type) if isinstance(block.get(block_type), dict) else {}
    text = _plain_text(body.get("rich_text", []) or [])
    if block_type == "to_do":
        mark = "x" if body.get("checked") else " "
        return f"- [{mark}] {text}"
    if block_type in _BLOCK_PREFIXES:
        return _BLOCK_PREFIXES[block_type] + text
    return None


def _page_tags(page: dict[str, Any]) -> list[str]:
    prop = (page.get("properties") or {}).get("Tags")
    if not isinstance(prop, dict) or prop.get("type") != "multi_select":
        return []
    return [opt["name"] for opt in prop.get("multi_select") or [] if isinstance(opt, dict) and opt.get("name")]


class NotionBackend(RemoteCacheBackend):
    """Every page in one Notion database, refreshed on a TTL.

    Args:
        client: An authenticated :class:`NotionClient`.
        refresh_interval: Seconds between refetches (default two hours).
        include_content: Also fetch each page's blocks as the document body.
            Costs one extra request per page.
    """

    DOC_TYPE = DocType.NOTION

    def __init__(
        self,
        client: NotionClient,
        refresh_interval: float = DEFAULT_REFRESH_INTERVAL,
        *,
        include_content: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(refresh_interval, clock=clock)
        self.client = client
        self.include_content = include_content

    def fetch_all(self) -> list[Document]:
        title_prop = self.client.resolve_title_property()
        docs = []
        for page in self.client.list_all_pages():
            content = self.client.page_text(page["id"]) if self.include_content else ""
            docs.append(self.page_to_document(page, title_prop, content))
        return docs

    @staticmethod
    def page_to_document(page: dict[str, Any], title_property: str = "", content: str = "") -> Document:
        labels = {}
        links = {}
        if page.get("url"):
            labels["url"] = page["url"]
            links["notion"] = page["url"]
        return Document(
            id=page["id"],
            title=NotionClient.extract_page_title(page, title_property),
            content=content,
            created=page.get("created_time"),
            modified=page.get("last_edited_time"),
            # Notion only reports that a page is archived, not when.
            trashed=page.get("last_edited_time") if page.get("archived") else None,
            tags=_page_tags(page),
            labels=labels,
            links=links,
            doc_type=DocType.NOTION,
        )

    def storage_path(self) -> str:
        return f"https://www.notion.so/{self.client.database_id.replace('-', '')}"

    def storage_path_doc(self, doc_id: str) -> str:
        with self._lock:
            doc = (self._collection or {}).get(str(doc_id))
        if doc is not None and doc.links.get("notion"):
            return doc.links["notion"]
        return f"https://www.notion.so/{str(doc_id).replace('-', '')}"
