"""Bulk categorization of unclassified bookmarks.

Records are driven through the classifier one at a time. Each result is
persisted as soon as it arrives, so an interruption or a later failure
never loses work already applied. A failing record is logged and skipped;
it never aborts the batch.

Pacing convention: the courtesy delay is applied after every attempt,
including failed ones and the last record, so N records take at least
N * inter_request_delay_ms.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from smartmark.config.constants import BULK_DELAY_MS
from smartmark.config.exceptions import RateLimitedError
from smartmark.models import ClassificationResult
from smartmark.services.llm.rate_limiter import RateLimiter
from smartmark.utils.logging import get_logger

logger = get_logger(__name__)

ClassifyFn = Callable[[str, str], ClassificationResult]
PersistFn = Callable[[Any, ClassificationResult], bool]
ProgressFn = Callable[[int, int], None]


@dataclass
class BulkOptions:
    inter_request_delay_ms: float = BULK_DELAY_MS
    progress_callback: Optional[ProgressFn] = None
    should_cancel: Optional[Callable[[], bool]] = None
    rate_limiter: Optional[RateLimiter] = None


@dataclass
class BulkClassificationResult:
    success_count: int = 0
    total_count: int = 0
    processed_count: int = 0
    classify_failures: int = 0
    persist_failures: int = 0
    rate_limited_count: int = 0
    fallback_count: int = 0
    cancelled: bool = False
    elapsed: float = 0.0
    failed_ids: list = field(default_factory=list)

    @property
    def hard_failures(self) -> int:
        return self.classify_failures + self.persist_failures

    @property
    def status(self) -> str:
        if self.total_count == 0:
            return "nothing_to_do"
        if self.success_count == 0:
            return "none"
        if self.success_count < self.total_count:
            return "partial"
        return "complete"

    def summary_message(self, noun: str = "bookmarks", verb: str = "categorized") -> str:
        status = self.status
        if status == "nothing_to_do":
            return f"No unclassified {noun} found."
        if status == "complete":
            return f"All {self.total_count} {noun} {verb}."
        return f"{self.success_count} of {self.total_count} {noun} {verb}."


def _field(record: Any, name: str) -> Any:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def run_bulk_classification(
    records: Sequence[Any],
    classify: ClassifyFn,
    persist: PersistFn,
    options: Optional[BulkOptions] = None,
) -> BulkClassificationResult:
    """Classify and persist each record in input order.

    Args:
        records: Bookmark-like objects or dicts with id, url and title,
            already filtered to the unclassified set.
        classify: (url, title) -> ClassificationResult; may raise.
        persist: (id, result) -> bool; False or an exception is a failure.
        options: Pacing, progress and cancellation hooks.

    Returns:
        BulkClassificationResult with the running counters. Per-record
        errors are counted and logged, never raised.

    Raises:
        ValueError: negative delay (checked before any record is touched).
    """
    opts = options or BulkOptions()
    if opts.inter_request_delay_ms is None or opts.inter_request_delay_ms < 0:
        raise ValueError(
            f"inter_request_delay_ms must be >= 0, got {opts.inter_request_delay_ms}"
        )
    limiter = opts.rate_limiter or RateLimiter(opts.inter_request_delay_ms)

    total = len(records)
    result = BulkClassificationResult(total_count=total)
    if total == 0:
        logger.info("No unclassified records. Nothing to do.")
        return result

    logger.info(
        "Starting bulk classification: %d records, delay=%sms",
        total,
        opts.inter_request_delay_ms,
    )
    start = time.time()

    for index, record in enumerate(records):
        if opts.should_cancel is not None and opts.should_cancel():
            logger.info("Bulk classification cancelled after %d/%d records", index, total)
            result.cancelled = True
            break

        record_id = _field(record, "id")
        url = _field(record, "url") or ""
        title = _field(record, "title") or ""

        try:
            classification = classify(url, title)
        except RateLimitedError as e:
            result.classify_failures += 1
            result.rate_limited_count += 1
            result.failed_ids.append(record_id)
            logger.warning(
                "Rate limited on record %s (%s), retry_after=%s: %s",
                record_id, url, e.retry_after, e,
            )
            classification = None
        except Exception as e:
            result.classify_failures += 1
            result.failed_ids.append(record_id)
            logger.error("Classification failed for record %s (%s): %s", record_id, url, e)
            classification = None

        if classification is not None:
            try:
                saved = persist(record_id, classification)
            except Exception as e:
                logger.error("Persist failed for record %s (%s): %s", record_id, url, e)
                saved = False
            else:
                if not saved:
                    logger.error("Persist reported no update for record %s (%s)", record_id, url)

            if saved:
                result.success_count += 1
                if classification.is_fallback:
                    result.fallback_count += 1
                    logger.info("Record %s stored with fallback category", record_id)
                else:
                    logger.debug(
                        "Record %s -> %s / %s",
                        record_id, classification.category, classification.subcategory,
                    )
            else:
                result.persist_failures += 1
                result.failed_ids.append(record_id)

        result.processed_count = index + 1
        if opts.progress_callback is not None:
            opts.progress_callback(index + 1, total)

        limiter.pause()

    result.elapsed = time.time() - start
    logger.info(
        "Bulk classification done in %.1fs: %d/%d succeeded "
        "(classify_failures=%d, persist_failures=%d, rate_limited=%d, fallbacks=%d, cancelled=%s)",
        result.elapsed,
        result.success_count,
        total,
        result.classify_failures,
        result.persist_failures,
        result.rate_limited_count,
        result.fallback_count,
        result.cancelled,
    )
    return result


__all__ = [
    "BulkOptions",
    "BulkClassificationResult",
    "run_bulk_classification",
]
