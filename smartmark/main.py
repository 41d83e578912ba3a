"""
SmartMark command line.

Usage:
    smartmark init-db
    smartmark recategorize [--dry-run] [--limit N] [--delay-ms MS] [--provider NAME]
    smartmark add URL TITLE [--notes TEXT]
    smartmark import FILE
    smartmark export --format json|csv [--output PATH]
    smartmark search QUERY
    smartmark categories [NAME]
    smartmark delete BOOKMARK_ID
    smartmark insights
    smartmark profile [--api-key KEY] [--notion-token TOKEN] [--notion-database-id ID]
    smartmark notion-sync BOOKMARK_ID

Re-categorization safety:
- Only selects bookmarks whose category is NULL or "Uncategorized"
- Only updates rows that are still uncategorized (double-check)
- Idempotent: safe to re-run; Ctrl-C stops after the current bookmark
"""
from __future__ import annotations

import argparse
import os
import signal
import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from dotenv import load_dotenv

from smartmark.config.constants import (
    BULK_DELAY_MS,
    DRY_RUN_OUTPUT_JSON,
    EXPORT_FORMATS,
    IMPORT_DELAY_MS,
    LLM_TIMEOUT,
    UNCLASSIFIED_LIMIT,
    get_int_env,
)
from smartmark.config.exceptions import AuthenticationError, BookmarkNotFoundError, PipelineError
from smartmark.db.db_connector import DBConnector
from smartmark.helpers.data_operations import (
    JsonManager,
    bookmarks_to_frame,
    category_insights,
    group_by_category,
    search_bookmarks,
)
from smartmark.models import ClassificationResult
from smartmark.services import BulkOptions, build_classifier, run_bulk_classification
from smartmark.services.bookmarks import (
    create_bookmark,
    export_bookmarks,
    import_bookmarks,
    parse_bookmarks_file,
    sync_bookmark,
)
from smartmark.utils.console import console
from smartmark.utils.logging import get_logger, init_logging

logger = get_logger(__name__)


# -------------------- Configuration -------------------- #
@dataclass
class AppConfig:
    user_id: Optional[str]
    api_key: Optional[str]
    provider: Optional[str]
    bulk_delay_ms: float
    import_delay_ms: float
    unclassified_limit: int
    llm_timeout: int

    @classmethod
    def from_env(cls) -> "AppConfig":
        return cls(
            user_id=os.getenv("SMARTMARK_USER_ID"),
            api_key=os.getenv("SMARTMARK_API_KEY"),
            provider=os.getenv("CLASSIFIER_PROVIDER"),
            bulk_delay_ms=get_int_env("BULK_DELAY_MS", BULK_DELAY_MS),
            import_delay_ms=get_int_env("IMPORT_DELAY_MS", IMPORT_DELAY_MS),
            unclassified_limit=get_int_env("UNCLASSIFIED_LIMIT", UNCLASSIFIED_LIMIT),
            llm_timeout=get_int_env("LLM_TIMEOUT", LLM_TIMEOUT),
        )


class CancelFlag:
    """Set by SIGINT; the bulk loop checks it before each bookmark."""

    def __init__(self) -> None:
        self.cancelled = False

    def __call__(self) -> bool:
        return self.cancelled

    @contextmanager
    def installed(self) -> Iterator["CancelFlag"]:
        def _on_interrupt(signum, frame):
            if self.cancelled:
                raise KeyboardInterrupt()
            self.cancelled = True
            logger.info("Interrupt received; stopping after current bookmark")
            console.warning("Stopping after the current bookmark", "Press Ctrl-C again to abort now")

        previous = signal.signal(signal.SIGINT, _on_interrupt)
        try:
            yield self
        finally:
            signal.signal(signal.SIGINT, previous)


def resolve_user(store: DBConnector, api_key: Optional[str] = None, user_id: Optional[str] = None) -> str:
    """API key wins over a configured user id; raises AuthenticationError if neither resolves."""
    if api_key:
        resolved = store.find_user_by_api_key(api_key)
        if not resolved:
            raise AuthenticationError("Invalid API key")
        return resolved
    if user_id:
        return user_id
    raise AuthenticationError(
        "Authentication required. Set SMARTMARK_API_KEY or SMARTMARK_USER_ID."
    )


# -------------------- Commands -------------------- #


def _progress(label: str):
    def _cb(processed: int, total: int) -> None:
        console.progress_bar(processed, total, label=label)
    return _cb


def cmd_recategorize(args: argparse.Namespace, cfg: AppConfig, store: DBConnector) -> int:
    user_id = resolve_user(store, cfg.api_key, cfg.user_id)
    limit = args.limit or cfg.unclassified_limit
    delay_ms = cfg.bulk_delay_ms if args.delay_ms is None else args.delay_ms

    records = store.fetch_unclassified(user_id, limit=limit)
    if not records:
        logger.info("No unclassified bookmarks for user %s. Nothing to do.", user_id)
        console.success("No unclassified bookmarks found.")
        return 0

    classifier = build_classifier(args.provider or cfg.provider, timeout=cfg.llm_timeout)
    pending = store.count_unclassified(user_id)
    if pending > len(records):
        console.info("Batch limit", f"{len(records)} of {pending} uncategorized bookmarks this run")
    console.classification_start(len(records), classifier.provider, delay_ms)

    if args.dry_run:
        jm = JsonManager()
        output: List[Dict[str, Any]] = []
        by_id = {r.id: r for r in records}

        def persist(bookmark_id: str, result: ClassificationResult) -> bool:
            record = by_id[bookmark_id]
            output.append({"id": bookmark_id, "url": record.url, "title": record.title, **result.to_dict()})
            jm.write(DRY_RUN_OUTPUT_JSON, output)
            return True
    else:
        def persist(bookmark_id: str, result: ClassificationResult) -> bool:
            return store.update_classification(user_id, bookmark_id, result)

    with CancelFlag().installed() as cancel:
        result = run_bulk_classification(
            records,
            classifier.classify,
            persist,
            BulkOptions(
                inter_request_delay_ms=delay_ms,
                progress_callback=_progress("Categorizing"),
                should_cancel=cancel,
            ),
        )
    console.bulk_summary(result)
    if args.dry_run:
        console.info("Dry run", f"Results saved to {DRY_RUN_OUTPUT_JSON}; database untouched")
    return 0 if result.status != "none" else 1


def cmd_add(args: argparse.Namespace, cfg: AppConfig, store: DBConnector) -> int:
    user_id = resolve_user(store, cfg.api_key, cfg.user_id)
    classifier = _optional_classifier(args.provider or cfg.provider, cfg.llm_timeout)
    bookmark = create_bookmark(
        store,
        classifier.classify if classifier else None,
        user_id,
        args.url,
        args.title,
        args.notes,
    )
    console.success(
        f"Saved: {bookmark.title}", f"{bookmark.category} / {bookmark.subcategory}"
    )
    return 0


def cmd_import(args: argparse.Namespace, cfg: AppConfig, store: DBConnector) -> int:
    user_id = resolve_user(store, cfg.api_key, cfg.user_id)
    path = Path(args.file)
    if not path.exists():
        raise PipelineError(f"File not found: {path}")
    items = parse_bookmarks_file(path.read_text(encoding="utf-8", errors="replace"))
    if not items:
        console.warning("No bookmarks found in file")
        return 1

    console.info("Importing", f"Found {len(items)} bookmarks in {path.name}")
    classifier = _optional_classifier(args.provider or cfg.provider, cfg.llm_timeout)
    with CancelFlag().installed() as cancel:
        result = import_bookmarks(
            items,
            store,
            classifier.classify if classifier else None,
            user_id,
            BulkOptions(
                inter_request_delay_ms=cfg.import_delay_ms if classifier else 0,
                progress_callback=_progress("Importing"),
                should_cancel=cancel,
            ),
        )
    console.bulk_summary(result)
    return 0 if result.status != "none" else 1


def cmd_export(args: argparse.Namespace, cfg: AppConfig, store: DBConnector) -> int:
    user_id = resolve_user(store, cfg.api_key, cfg.user_id)
    filename, content = export_bookmarks(store.fetch_bookmarks(user_id), args.format)
    target = Path(args.output) if args.output else Path(filename)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(content, encoding="utf-8")
    console.success("Export complete", str(target))
    return 0


def cmd_search(args: argparse.Namespace, cfg: AppConfig, store: DBConnector) -> int:
    user_id = resolve_user(store, cfg.api_key, cfg.user_id)
    bookmarks = store.fetch_bookmarks(user_id)
    matches = search_bookmarks(bookmarks_to_frame(bookmarks), args.query)
    ids = set(matches["id"])
    console.bookmark_list([b for b in bookmarks if b.id in ids], f"Matches for '{args.query}'")
    return 0


def cmd_categories(args: argparse.Namespace, cfg: AppConfig, store: DBConnector) -> int:
    user_id = resolve_user(store, cfg.api_key, cfg.user_id)
    bookmarks = store.fetch_bookmarks(user_id)
    groups = group_by_category(bookmarks_to_frame(bookmarks))
    if args.name:
        wanted = args.name.strip().lower()
        groups = {name: df for name, df in groups.items() if name.lower() == wanted}
        if not groups:
            console.warning(f"No bookmarks in category '{args.name}'")
            return 1
    by_id = {b.id: b for b in bookmarks}
    for name, df in groups.items():
        console.bookmark_list([by_id[i] for i in df["id"]], name)
    return 0


def cmd_delete(args: argparse.Namespace, cfg: AppConfig, store: DBConnector) -> int:
    user_id = resolve_user(store, cfg.api_key, cfg.user_id)
    if not store.delete_bookmark(user_id, args.bookmark_id):
        raise BookmarkNotFoundError(f"Bookmark {args.bookmark_id} not found")
    console.success("Bookmark deleted", args.bookmark_id)
    return 0


def cmd_insights(args: argparse.Namespace, cfg: AppConfig, store: DBConnector) -> int:
    user_id = resolve_user(store, cfg.api_key, cfg.user_id)
    stats = category_insights(bookmarks_to_frame(store.fetch_bookmarks(user_id)))
    console.insights_summary(stats)
    return 0


def cmd_profile(args: argparse.Namespace, cfg: AppConfig, store: DBConnector) -> int:
    if not cfg.user_id:
        raise AuthenticationError("SMARTMARK_USER_ID is required to edit a profile")
    store.save_profile(
        cfg.user_id,
        api_key=args.api_key,
        notion_token=args.notion_token,
        notion_database_id=args.notion_database_id,
    )
    console.success("Profile saved", cfg.user_id)
    return 0


def cmd_notion_sync(args: argparse.Namespace, cfg: AppConfig, store: DBConnector) -> int:
    user_id = resolve_user(store, cfg.api_key, cfg.user_id)
    page_id = sync_bookmark(store, user_id, args.bookmark_id, timeout=cfg.llm_timeout)
    console.success("Synced to Notion", f"page {page_id}")
    return 0


def cmd_init_db(args: argparse.Namespace, cfg: AppConfig, store: DBConnector) -> int:
    store.create_schema()
    console.success("Database ready")
    return 0


def _optional_classifier(provider: Optional[str], timeout: int = LLM_TIMEOUT):
    """Classifier for single adds/imports; missing credentials mean default categories."""
    try:
        return build_classifier(provider, timeout=timeout)
    except PipelineError as e:
        logger.warning("Classifier unavailable, bookmarks get default categories: %s", e)
        console.warning("AI categorization unavailable", str(e))
        return None


COMMANDS = {
    "init-db": cmd_init_db,
    "recategorize": cmd_recategorize,
    "add": cmd_add,
    "import": cmd_import,
    "export": cmd_export,
    "search": cmd_search,
    "categories": cmd_categories,
    "delete": cmd_delete,
    "insights": cmd_insights,
    "profile": cmd_profile,
    "notion-sync": cmd_notion_sync,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="smartmark", description="Bookmark manager with AI categorization")
    parser.add_argument("--database-url", help="SQLAlchemy URL (overrides DATABASE_URL)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create tables")

    p = sub.add_parser("recategorize", help="Categorize bookmarks still marked Uncategorized")
    p.add_argument("--dry-run", action="store_true", help="Write results to JSON, not the database")
    p.add_argument("--limit", type=int, help="Max bookmarks to process")
    p.add_argument("--delay-ms", type=float, help="Delay between classifier calls")
    p.add_argument("--provider", help="Classifier provider (groq, gemini, azure, ...)")

    p = sub.add_parser("add", help="Save one bookmark")
    p.add_argument("url")
    p.add_argument("title")
    p.add_argument("--notes")
    p.add_argument("--provider")

    p = sub.add_parser("import", help="Import a bookmarks export (Chrome JSON or HTML)")
    p.add_argument("file")
    p.add_argument("--provider")

    p = sub.add_parser("export", help="Export bookmarks")
    p.add_argument("--format", choices=EXPORT_FORMATS, default="json")
    p.add_argument("--output")

    p = sub.add_parser("search", help="Search bookmarks")
    p.add_argument("query")

    p = sub.add_parser("categories", help="Browse bookmarks grouped by category")
    p.add_argument("name", nargs="?", help="Only this category")

    p = sub.add_parser("delete", help="Delete one bookmark")
    p.add_argument("bookmark_id")

    sub.add_parser("insights", help="Category statistics")

    p = sub.add_parser("profile", help="Set API key / Notion settings")
    p.add_argument("--api-key")
    p.add_argument("--notion-token")
    p.add_argument("--notion-database-id")

    p = sub.add_parser("notion-sync", help="Send one bookmark to Notion")
    p.add_argument("bookmark_id")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run one CLI command. Returns exit code."""
    started = time.time()
    args = build_parser().parse_args(argv)
    load_dotenv()
    init_logging(args.command.replace("-", "_"))

    try:
        cfg = AppConfig.from_env()
        store = DBConnector(args.database_url)
        logger.info("Command %s starting", args.command)
        if args.command != "init-db":
            store.connect_and_verify()
        code = COMMANDS[args.command](args, cfg, store)
        logger.info("Command %s finished in %.1fs (exit=%d)", args.command, time.time() - started, code)
        return code

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        console.interrupted()
        return 130
    except PipelineError as e:
        logger.error("Pipeline error: %s", e)
        console.error(type(e).__name__, str(e))
        return 1
    except Exception as e:
        logger.exception("Unexpected error: %s", e)
        console.error("Unexpected Error", str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
