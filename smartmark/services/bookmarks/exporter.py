from __future__ import annotations

import csv
import datetime
from typing import Iterable, Optional, Tuple

import pandas as pd

from smartmark.config.constants import EXPORT_COLUMNS, EXPORT_FORMATS
from smartmark.config.exceptions import ValidationError
from smartmark.helpers.data_operations import bookmarks_to_frame
from smartmark.models import Bookmark
from smartmark.utils.logging import get_logger

logger = get_logger(__name__)

CSV_HEADERS = ["Title", "URL", "Category", "Subcategory", "Description", "Notes", "Created At"]


def export_filename(fmt: str, today: Optional[datetime.date] = None) -> str:
    day = (today or datetime.date.today()).isoformat()
    return f"smartmark-bookmarks-{day}.{fmt}"


def _export_frame(bookmarks: Iterable[Bookmark]) -> pd.DataFrame:
    df = bookmarks_to_frame(bookmarks)
    if df.empty:
        return df[EXPORT_COLUMNS]
    df = df.sort_values("created_at", ascending=False, kind="stable")
    df["created_at"] = pd.to_datetime(df["created_at"], utc=True).map(lambda ts: ts.isoformat())
    return df[EXPORT_COLUMNS].reset_index(drop=True)


def export_bookmarks(
    bookmarks: Iterable[Bookmark],
    fmt: str = "json",
    today: Optional[datetime.date] = None,
) -> Tuple[str, str]:
    """Render bookmarks for download, newest first.

    Returns:
        (filename, content) with content as JSON (list of objects) or CSV
        with every field quoted.

    Raises:
        ValidationError: unsupported format.
    """
    fmt = (fmt or "").lower()
    if fmt not in EXPORT_FORMATS:
        raise ValidationError(f"Unsupported export format '{fmt}'. Use one of: {', '.join(EXPORT_FORMATS)}")

    df = _export_frame(bookmarks)
    if fmt == "csv":
        content = df.fillna("").to_csv(
            index=False,
            header=CSV_HEADERS,
            quoting=csv.QUOTE_ALL,
            lineterminator="\n",
        )
    else:
        content = df.to_json(orient="records", indent=2, force_ascii=False)

    logger.info("Exported %d bookmarks as %s", len(df), fmt)
    return export_filename(fmt, today), content


__all__ = ["export_bookmarks", "export_filename", "CSV_HEADERS"]
