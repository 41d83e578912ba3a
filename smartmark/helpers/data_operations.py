from __future__ import annotations

import json
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from smartmark.config.constants import CATEGORY_TAXONOMY, UNCATEGORIZED
from smartmark.models import Bookmark
from smartmark.utils.logging import get_logger

logger = get_logger(__name__)

SEARCH_COLUMNS = ["title", "description", "category", "subcategory", "url"]
FRAME_COLUMNS = [
    "id",
    "user_id",
    "url",
    "title",
    "description",
    "favicon_url",
    "category",
    "subcategory",
    "notes",
    "created_at",
]


class JsonManager:
    """Simple JSON I/O with pandas integration and atomic writes."""

    def __init__(self, encoding: str = "utf-8", indent: int = 2):
        self.encoding = encoding
        self.indent = indent

    def write(self, path: Path | str, data: Any) -> None:
        """Write data to a JSON file via a temp file + rename.

        DataFrames go through pandas (NaN and timestamps handled); anything
        else through json with str() for unknown types.
        """
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        tmp = p.with_suffix(p.suffix + ".tmp")
        if isinstance(data, pd.DataFrame):
            data.to_json(tmp, orient="records", indent=self.indent, force_ascii=False, date_format="iso")
        else:
            tmp.write_text(
                json.dumps(data, indent=self.indent, ensure_ascii=False, default=str),
                encoding=self.encoding,
            )
        tmp.replace(p)

    def load(self, path: Path | str) -> Any | None:
        """Load JSON file, return None if it doesn't exist or can't be decoded."""
        p = Path(path)
        if not p.exists():
            return None
        try:
            return json.loads(p.read_text(encoding=self.encoding))
        except ValueError as e:
            logger.warning("Could not decode %s: %s", p, e)
            return None


def bookmarks_to_frame(bookmarks: Iterable[Bookmark]) -> pd.DataFrame:
    rows = [b.to_dict() for b in bookmarks]
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def search_bookmarks(df: pd.DataFrame, query: str) -> pd.DataFrame:
    """Case-insensitive substring match over title, description, category, subcategory and url."""
    q = (query or "").strip().lower()
    if not q or df.empty:
        return df
    mask = pd.Series(False, index=df.index)
    for col in SEARCH_COLUMNS:
        if col in df.columns:
            mask |= df[col].fillna("").astype(str).str.lower().str.contains(q, regex=False)
    return df[mask]


def group_by_category(df: pd.DataFrame) -> "OrderedDict[str, pd.DataFrame]":
    """Split bookmarks by category (missing -> Uncategorized), categories sorted by name."""
    groups: "OrderedDict[str, pd.DataFrame]" = OrderedDict()
    if df.empty:
        return groups
    categories = df["category"].fillna(UNCATEGORIZED).replace("", UNCATEGORIZED)
    for name in sorted(categories.unique()):
        groups[name] = df[categories == name]
    return groups


def category_insights(
    df: pd.DataFrame,
    top_n: int = 10,
    expected_options: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Category statistics for a user's bookmarks.

    Returns:
        dict with total, classified, unclassified, coverage_pct,
        categories (all, by count desc), top_subcategories (top_n) and
        unexpected_values (categories outside the taxonomy).
    """
    expected = expected_options or CATEGORY_TAXONOMY
    total = len(df)
    if total == 0:
        return {
            "total": 0,
            "classified": 0,
            "unclassified": 0,
            "coverage_pct": 0.0,
            "categories": [],
            "top_subcategories": [],
            "unexpected_values": [],
        }

    category = df["category"].mask(df["category"] == "")
    unclassified = int((category.isna() | (category == UNCATEGORIZED)).sum())
    classified = total - unclassified

    cat_counts = category.dropna().value_counts()
    sub_counts = df["subcategory"].mask(df["subcategory"] == "").dropna().value_counts().head(top_n)

    stats: Dict[str, Any] = {
        "total": total,
        "classified": classified,
        "unclassified": unclassified,
        "coverage_pct": round(classified / total * 100, 2),
        "categories": [
            {"name": str(name), "count": int(cnt), "pct": round(cnt / total * 100, 2)}
            for name, cnt in cat_counts.items()
        ],
        "top_subcategories": [
            {"name": str(name), "count": int(cnt)} for name, cnt in sub_counts.items()
        ],
        "unexpected_values": sorted(set(cat_counts.index) - set(expected)),
    }

    logger.info(
        "Insights: %d/%d classified (%.1f%%), %d categories",
        classified,
        total,
        stats["coverage_pct"],
        len(cat_counts),
    )
    if stats["unexpected_values"]:
        logger.debug("Categories outside taxonomy: %s", stats["unexpected_values"])
    return stats


__all__ = [
    "JsonManager",
    "bookmarks_to_frame",
    "search_bookmarks",
    "group_by_category",
    "category_insights",
]
