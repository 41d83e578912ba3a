"""Pretty console output for SmartMark commands.

Usage:
    from smartmark.utils.console import console
    console.classification_start(42, "groq", 60)
    console.progress_bar(3, 42, label="Categorizing")
    console.bulk_summary(result)

Isolated from logging: per-record failures only reach the log file, the
console shows counts.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from smartmark.models import Bookmark


@dataclass
class ConsoleConfig:
    """Configuration for console output behavior."""
    max_title_length: int = 45
    max_category_name_length: int = 30
    progress_width: int = 30
    progress_every: int = 1

    @classmethod
    def from_env(cls) -> "ConsoleConfig":
        """Load configuration from environment variables."""
        return cls(
            max_title_length=int(os.getenv("CONSOLE_MAX_TITLE_LEN", "45")),
            progress_every=max(1, int(os.getenv("CONSOLE_PROGRESS_EVERY", "1"))),
        )


class Console:
    """Human-readable terminal output for pipeline commands."""

    def __init__(self, config: Optional[ConsoleConfig] = None):
        self.config = config or ConsoleConfig.from_env()

    # ==================== Helpers ====================

    def _truncate(self, text: str, max_len: int) -> str:
        if len(text) <= max_len:
            return text
        return text[: max_len - 3] + "..."

    def _print(self, *args, **kwargs) -> None:
        print(*args, **kwargs, flush=True)

    def _bar(self, current: int, total: int) -> str:
        width = self.config.progress_width
        pct = current / total if total > 0 else 0
        filled = int(width * pct)
        return "█" * filled + "░" * (width - filled)

    def _status(self, icon: str, message: str, detail: Optional[str]) -> None:
        self._print(f"\n{icon} {message}")
        if detail:
            self._print(f"   └─ {detail}")

    # ==================== Status Lines ====================

    def success(self, message: str, detail: Optional[str] = None) -> None:
        self._status("✅", message, detail)

    def error(self, message: str, detail: Optional[str] = None) -> None:
        self._status("❌", message, detail)

    def warning(self, message: str, detail: Optional[str] = None) -> None:
        self._status("⚠️ ", message, detail)

    def info(self, message: str, detail: Optional[str] = None) -> None:
        self._status("📋", message, detail)

    # ==================== Bulk categorization ====================

    def classification_start(self, total: int, provider: str, delay_ms: float) -> None:
        self._print(f"\n🤖 Categorization Starting")
        self._print(f"   └─ {total} bookmarks via {provider}, {delay_ms:g}ms between requests")

    def progress_bar(self, current: int, total: int, label: str = "Progress") -> None:
        """Single-line progress; redrawn in place, newline on the last step."""
        if current != total and current % self.config.progress_every:
            return
        pct = current / total if total > 0 else 0
        end = "\n" if current >= total else ""
        self._print(
            f"\r📊 {label}: [{self._bar(current, total)}] {current}/{total} ({pct*100:.0f}%)",
            end=end,
        )

    def bulk_summary(self, result: Any, elapsed: Optional[float] = None) -> None:
        """Final counts of a BulkClassificationResult."""
        message = result.summary_message()
        status = result.status
        if status in ("complete", "nothing_to_do"):
            self._print(f"\n✅ {message}")
        elif status == "partial":
            self._print(f"\n⚠️  {message}")
        else:
            self._print(f"\n❌ {message}")

        if status == "nothing_to_do":
            return
        self._print(f"   ├─ Failed requests: {result.classify_failures}"
                    f" (rate limited: {result.rate_limited_count})")
        self._print(f"   ├─ Failed writes: {result.persist_failures}")
        self._print(f"   ├─ Stored with default category: {result.fallback_count}")
        if result.cancelled:
            self._print(f"   ├─ Cancelled after {result.processed_count}/{result.total_count}")
        total_time = elapsed if elapsed is not None else result.elapsed
        self._print(f"   └─ ⏱️  {total_time:.1f}s")

    # ==================== Listings ====================

    def bookmark_list(self, bookmarks: Iterable[Bookmark], heading: str) -> None:
        items = list(bookmarks)
        self._print(f"\n🔖 {heading} ({len(items)})")
        for b in items:
            title = self._truncate(b.title or b.url, self.config.max_title_length)
            category = self._truncate(
                f"{b.category or '-'} / {b.subcategory or '-'}",
                self.config.max_category_name_length * 2,
            )
            self._print(f"   • {title:<{self.config.max_title_length}} → {category}")
            self._print(f"     {b.url}")
            if b.display_description != b.title:
                self._print(f"     {self._truncate(b.display_description, 80)}")

    def insights_summary(self, stats: Dict[str, Any]) -> None:
        total = stats["total"]
        self._print(f"\n📈 Bookmark Insights")
        self._print(
            f"   ├─ Categorized: {stats['classified']}/{total} ({stats['coverage_pct']:.1f}%)"
        )
        categories: List[Dict[str, Any]] = stats["categories"]
        if categories:
            self._print(f"   ├─ Categories:")
            for cat in categories:
                name = self._truncate(cat["name"], self.config.max_category_name_length)
                self._print(f"   │    {name:<30} {cat['count']:>5} ({cat['pct']:.1f}%)")
        subs: List[Dict[str, Any]] = stats["top_subcategories"]
        if subs:
            self._print(f"   ├─ Top subcategories:")
            for i, sub in enumerate(subs, 1):
                name = self._truncate(sub["name"], self.config.max_category_name_length)
                self._print(f"   │    {i:>2}. {name:<30} {sub['count']:>5}")
        unexpected = stats.get("unexpected_values") or []
        if unexpected:
            self._print(f"   ├─ ⚠️  Outside taxonomy: {unexpected[:5]}{'...' if len(unexpected) > 5 else ''}")
        self._print(f"   └─ Total bookmarks: {total}")

    # ==================== Pipeline Status ====================

    def interrupted(self) -> None:
        self._print("\n\n⚡ Interrupted by user")
        self._print("   └─ Bookmarks processed so far are already saved")


# ==================== Singleton Instance ====================
console = Console()

__all__ = ["Console", "ConsoleConfig", "console"]
