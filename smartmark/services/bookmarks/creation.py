from __future__ import annotations

from typing import Callable, Optional
from urllib.parse import urlparse

from smartmark.config.constants import FAVICON_URL_TEMPLATE
from smartmark.config.exceptions import ClassifierError, ValidationError
from smartmark.db.db_connector import DBConnector
from smartmark.models import Bookmark, ClassificationResult
from smartmark.utils.logging import get_logger

logger = get_logger(__name__)

ClassifyFn = Callable[[str, str], ClassificationResult]


def validate_url(url: str) -> str:
    """Return the stripped URL, or raise ValidationError unless it is http(s) with a host."""
    cleaned = (url or "").strip()
    parsed = urlparse(cleaned)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(f"Not an http(s) URL: {url!r}")
    return cleaned


def favicon_for(url: str) -> str:
    host = urlparse(url).hostname or ""
    return FAVICON_URL_TEMPLATE.format(host=host)


def classify_or_fallback(classify: Optional[ClassifyFn], url: str, title: str) -> ClassificationResult:
    """Single-bookmark classification where failure degrades to defaults."""
    if classify is None:
        return ClassificationResult.fallback(title)
    try:
        return classify(url, title)
    except ClassifierError as e:
        logger.warning("Categorization failed for %s, using defaults: %s", url, e)
        return ClassificationResult.fallback(title)


def create_bookmark(
    store: DBConnector,
    classify: Optional[ClassifyFn],
    user_id: str,
    url: str,
    title: str,
    notes: Optional[str] = None,
) -> Bookmark:
    """Validate, categorize and insert one bookmark.

    Raises:
        ValidationError: missing title or non-http(s) URL.
        RecordStoreError: insert failed.
    """
    url = validate_url(url)
    title = (title or "").strip()
    if not title:
        raise ValidationError("URL and title are required")

    result = classify_or_fallback(classify, url, title)
    bookmark = Bookmark(
        url=url,
        title=title,
        user_id=user_id,
        description=result.description or title,
        category=result.category,
        subcategory=result.subcategory,
        notes=notes or None,
        favicon_url=favicon_for(url),
    )
    return store.insert_bookmark(bookmark)


__all__ = ["create_bookmark", "classify_or_fallback", "favicon_for", "validate_url"]
