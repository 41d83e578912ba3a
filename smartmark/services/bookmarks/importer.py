"""Bookmark file import.

Accepted inputs:
    * Chrome/Edge "Bookmarks" JSON (a "roots" tree of folders and urls)
    * a JSON array of {"url": ..., "title"|"name": ...}
    * Netscape HTML exports (Firefox, Safari, Chrome "Export bookmarks")
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from smartmark.config.constants import IMPORT_DELAY_MS
from smartmark.db.db_connector import DBConnector
from smartmark.models import Bookmark, ClassificationResult
from smartmark.services.bookmarks.creation import ClassifyFn, classify_or_fallback, favicon_for
from smartmark.services.llm.classification_orchestrator import (
    BulkClassificationResult,
    BulkOptions,
    run_bulk_classification,
)
from smartmark.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ImportedBookmark:
    url: str
    title: str


def _host(url: str) -> str:
    return urlparse(url).hostname or url


def _is_web_url(url: Any) -> bool:
    if not isinstance(url, str):
        return False
    parsed = urlparse(url.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _make_item(url: str, title: Optional[str]) -> ImportedBookmark:
    url = url.strip()
    title = (title or "").strip()
    return ImportedBookmark(url=url, title=title or _host(url))


def _walk_chrome(node: Any, out: List[ImportedBookmark]) -> None:
    if not isinstance(node, dict):
        return
    if node.get("type") == "url" and _is_web_url(node.get("url")):
        out.append(_make_item(node["url"], node.get("name")))
    for child in node.get("children") or []:
        _walk_chrome(child, out)


def _parse_json(data: Any) -> List[ImportedBookmark]:
    items: List[ImportedBookmark] = []
    if isinstance(data, dict) and isinstance(data.get("roots"), dict):
        for root in data["roots"].values():
            _walk_chrome(root, items)
    elif isinstance(data, list):
        for entry in data:
            if isinstance(entry, dict) and _is_web_url(entry.get("url")):
                items.append(_make_item(entry["url"], entry.get("title") or entry.get("name")))
    else:
        logger.warning("JSON bookmark file has no 'roots' and is not a list; nothing imported")
    return items


def _parse_html(text: str) -> List[ImportedBookmark]:
    soup = BeautifulSoup(text, "html.parser")
    items: List[ImportedBookmark] = []
    for link in soup.find_all("a", href=True):
        href = link["href"]
        if _is_web_url(href):
            items.append(_make_item(href, link.get_text(strip=True)))
    return items


def parse_bookmarks_file(text: str) -> List[ImportedBookmark]:
    """Parse an exported bookmarks file; JSON is tried first, then HTML."""
    try:
        data = json.loads(text)
    except ValueError:
        items = _parse_html(text)
        source = "html"
    else:
        items = _parse_json(data)
        source = "json"
    logger.info("Parsed %d bookmarks from %s file", len(items), source)
    return items


def import_bookmarks(
    items: List[ImportedBookmark],
    store: DBConnector,
    classify: Optional[ClassifyFn],
    user_id: str,
    options: Optional[BulkOptions] = None,
) -> BulkClassificationResult:
    """Categorize and insert parsed bookmarks one by one.

    A classifier failure stores the bookmark with the default category; only
    insert failures count against the result.
    """
    pending: Dict[str, Bookmark] = {}
    for item in items:
        bookmark = Bookmark(
            url=item.url,
            title=item.title,
            user_id=user_id,
            favicon_url=favicon_for(item.url),
        )
        pending[bookmark.id] = bookmark

    def _classify(url: str, title: str) -> ClassificationResult:
        return classify_or_fallback(classify, url, title)

    def _persist(bookmark_id: str, result: ClassificationResult) -> bool:
        bookmark = pending[bookmark_id]
        bookmark.category = result.category
        bookmark.subcategory = result.subcategory
        bookmark.description = result.description or bookmark.title
        store.insert_bookmark(bookmark)
        return True

    opts = options or BulkOptions(inter_request_delay_ms=IMPORT_DELAY_MS)
    return run_bulk_classification(list(pending.values()), _classify, _persist, opts)


__all__ = ["ImportedBookmark", "parse_bookmarks_file", "import_bookmarks"]
