"""Bookmark records and classification results."""
from __future__ import annotations

import datetime
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Mapping, Optional

from smartmark.config.constants import DEFAULT_SUBCATEGORY, UNCATEGORIZED


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


@dataclass
class ClassificationResult:
    category: str
    subcategory: str
    description: str
    is_fallback: bool = False

    @classmethod
    def fallback(cls, title: str) -> "ClassificationResult":
        """Default result used when the model output can't be used."""
        return cls(
            category=UNCATEGORIZED,
            subcategory=DEFAULT_SUBCATEGORY,
            description=title,
            is_fallback=True,
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "category": self.category,
            "subcategory": self.subcategory,
            "description": self.description,
        }


@dataclass
class Bookmark:
    url: str
    title: str
    user_id: str = ""
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    description: Optional[str] = None
    category: Optional[str] = UNCATEGORIZED
    subcategory: Optional[str] = DEFAULT_SUBCATEGORY
    notes: Optional[str] = None
    favicon_url: Optional[str] = None
    created_at: datetime.datetime = field(default_factory=_utcnow)

    @property
    def is_unclassified(self) -> bool:
        return not self.category or self.category == UNCATEGORIZED

    @property
    def display_description(self) -> str:
        return self.description or self.title

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Bookmark":
        """Build from a DB row mapping, ignoring unknown columns."""
        known = {k: row[k] for k in cls.__dataclass_fields__ if k in row}
        return cls(**known)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = ["Bookmark", "ClassificationResult"]
