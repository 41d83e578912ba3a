"""SmartMark services.

Exports:
    build_classifier: Configured classifier provider.
    run_bulk_classification: Bulk categorization loop.
    BulkOptions / BulkClassificationResult: Its options and outcome.
    parse_classification_response: Free-form model output -> result.
"""

from .llm import (
    BulkClassificationResult,
    BulkOptions,
    build_classifier,
    parse_classification_response,
    run_bulk_classification,
)

__all__ = [
    "BulkClassificationResult",
    "BulkOptions",
    "build_classifier",
    "parse_classification_response",
    "run_bulk_classification",
]
