from __future__ import annotations

import json
from typing import Any, Dict, Optional

from smartmark.config.constants import DEFAULT_SUBCATEGORY, UNCATEGORIZED
from smartmark.models import ClassificationResult
from smartmark.utils.logging import get_logger

logger = get_logger(__name__)


def extract_json_object(text: str) -> Optional[str]:
    """Return the span from the first '{' to the last '}' (inclusive).

    Best effort: tolerates prose or code fences around the object, but does
    not balance braces.
    """
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    return text[start : end + 1]


def _clean_field(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_classification_response(response_text: str, title: str) -> ClassificationResult:
    """Turn free-form model output into a ClassificationResult.

    Never raises: anything unusable collapses to the Uncategorized/General
    fallback with the title as description.
    """
    json_part = extract_json_object(response_text or "")
    if not json_part:
        logger.warning("No JSON object detected in classifier response.")
        return ClassificationResult.fallback(title)

    try:
        data = json.loads(json_part)
    except json.JSONDecodeError as e:
        logger.warning("JSON decode failed: %s", e)
        return ClassificationResult.fallback(title)

    if not isinstance(data, dict):
        logger.warning("Top-level JSON is not an object (type=%s).", type(data).__name__)
        return ClassificationResult.fallback(title)

    category = _clean_field(data, "category")
    subcategory = _clean_field(data, "subcategory")
    description = _clean_field(data, "description")

    if category is None:
        logger.warning("Missing category in classifier response: %s", data)

    return ClassificationResult(
        category=category or UNCATEGORIZED,
        subcategory=subcategory or DEFAULT_SUBCATEGORY,
        description=description or title,
        is_fallback=category is None,
    )


__all__ = ["extract_json_object", "parse_classification_response"]
