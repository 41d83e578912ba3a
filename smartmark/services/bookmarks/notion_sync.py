from __future__ import annotations

from typing import Any, Dict, Optional

import requests

from smartmark.config.constants import LLM_TIMEOUT, NOTION_PAGES_URL, NOTION_VERSION
from smartmark.config.exceptions import (
    AuthMissingError,
    BookmarkNotFoundError,
    MalformedResponseError,
    NotionNotConfiguredError,
    UpstreamError,
)
from smartmark.db.db_connector import DBConnector
from smartmark.models import Bookmark
from smartmark.utils.logging import get_logger

logger = get_logger(__name__)


def _rich_text(value: Optional[str]) -> Dict[str, Any]:
    return {"rich_text": [{"text": {"content": value or ""}}]}


def _select(value: Optional[str]) -> Dict[str, Any]:
    return {"select": {"name": value} if value else None}


def build_page_properties(bookmark: Bookmark) -> Dict[str, Any]:
    """Map a bookmark onto the Notion database columns."""
    return {
        "Title": {"title": [{"text": {"content": bookmark.title}}]},
        "URL": {"url": bookmark.url},
        "Category": _select(bookmark.category),
        "Subcategory": _select(bookmark.subcategory),
        "Description": _rich_text(bookmark.description),
        "Notes": _rich_text(bookmark.notes),
    }


class NotionClient:
    """Creates pages in a user's Notion database."""

    def __init__(self, token: str, timeout: int = LLM_TIMEOUT):
        self.token = token
        self.timeout = timeout

    def create_page(self, database_id: str, bookmark: Bookmark) -> str:
        """Create one page and return its id.

        Raises:
            AuthMissingError: token rejected.
            UpstreamError: network failure or other non-2xx.
            MalformedResponseError: response without a page id.
        """
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "Notion-Version": NOTION_VERSION,
        }
        payload = {
            "parent": {"database_id": database_id},
            "properties": build_page_properties(bookmark),
        }
        try:
            response = requests.post(
                NOTION_PAGES_URL, headers=headers, json=payload, timeout=self.timeout
            )
        except requests.RequestException as e:
            logger.error("Notion request failed: %s", e)
            raise UpstreamError(f"Notion request failed: {e}") from e

        if response.status_code in (401, 403):
            raise AuthMissingError("Notion rejected the integration token")
        if not 200 <= response.status_code < 300:
            logger.error("Notion API error [%d]: %s", response.status_code, response.text[:500])
            raise UpstreamError(
                "Failed to sync to Notion. Please check your token and database ID.",
                status_code=response.status_code,
            )

        try:
            page_id = response.json().get("id")
        except ValueError as e:
            raise MalformedResponseError(f"Notion returned non-JSON body: {e}") from e
        if not page_id:
            raise MalformedResponseError("Notion response has no page id")
        logger.info("Synced bookmark %s to Notion page %s", bookmark.id, page_id)
        return page_id


def sync_bookmark(
    store: DBConnector, user_id: str, bookmark_id: str, timeout: int = LLM_TIMEOUT
) -> str:
    """Push one bookmark to the user's Notion database; returns the page id."""
    profile = store.get_profile(user_id) or {}
    token = profile.get("notion_token")
    database_id = profile.get("notion_database_id")
    if not token or not database_id:
        raise NotionNotConfiguredError(
            "Notion not configured. Add a Notion token and database ID to the profile."
        )

    bookmark = store.get_bookmark(user_id, bookmark_id)
    if bookmark is None:
        raise BookmarkNotFoundError(f"Bookmark {bookmark_id} not found")

    return NotionClient(token, timeout).create_page(database_id, bookmark)


__all__ = ["NotionClient", "build_page_properties", "sync_bookmark"]
