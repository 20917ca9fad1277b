"""Bookmarks of previously opened index files."""

from .startup import StartupReport, find_relink_target, reconcile_bookmarks
from .store import (
    BOOKMARKS_FILE_NAME,
    BOOKMARKS_SCHEMA_VERSION,
    BookmarkEntry,
    BookmarkFile,
    add_bookmark_entry,
    build_bookmark_entry,
    increment_bookmark_views,
    load_bookmarks,
    normalize_bookmarks,
    read_bookmarks,
    root_index_file_name,
    root_index_file_path,
    save_bookmarks,
)

__all__ = [
    "BOOKMARKS_FILE_NAME",
    "BOOKMARKS_SCHEMA_VERSION",
    "BookmarkEntry",
    "BookmarkFile",
    "StartupReport",
    "add_bookmark_entry",
    "build_bookmark_entry",
    "find_relink_target",
    "increment_bookmark_views",
    "load_bookmarks",
    "normalize_bookmarks",
    "read_bookmarks",
    "reconcile_bookmarks",
    "root_index_file_name",
    "root_index_file_path",
    "save_bookmarks",
]
