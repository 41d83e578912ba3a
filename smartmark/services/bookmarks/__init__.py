"""Bookmark features built on the record store and classifier.

Exports:
    create_bookmark: Validate, categorize and insert one bookmark.
    parse_bookmarks_file / import_bookmarks: File import with categorization.
    export_bookmarks: JSON/CSV export.
    sync_bookmark: Push a bookmark to Notion.
"""

from .creation import create_bookmark
from .exporter import export_bookmarks
from .importer import ImportedBookmark, import_bookmarks, parse_bookmarks_file
from .notion_sync import NotionClient, sync_bookmark

__all__ = [
    "create_bookmark",
    "export_bookmarks",
    "ImportedBookmark",
    "import_bookmarks",
    "parse_bookmarks_file",
    "NotionClient",
    "sync_bookmark",
]
