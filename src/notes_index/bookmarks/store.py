"""Bookmark file model and persistence."""

from __future__ import annotations

import json
import math
from collections.abc import Mapping
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Final

from notes_index.directory import LocalDirectory
from notes_index.index.naming import ModuleKind, index_file_name
from notes_index.index.store import commit_temp, write_temp

BOOKMARKS_FILE_NAME: Final[str] = "parallelmind.json"
BOOKMARKS_SCHEMA_VERSION: Final[str] = "1.0.0"


@dataclass(slots=True, frozen=True)
class BookmarkEntry:
    """One remembered index file from a previous session."""

    path: str
    name: str
    module_type: ModuleKind = "parallelmind"
    views: int = 0
    last_opened: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "path": self.path,
            "name": self.name,
            "moduleType": self.module_type,
            "views": self.views,
            "lastOpened": self.last_opened,
        }


@dataclass(slots=True, frozen=True)
class BookmarkFile:
    """Versioned list of bookmarks."""

    bookmarks: tuple[BookmarkEntry, ...] = ()
    schema_version: str = BOOKMARKS_SCHEMA_VERSION

    def to_dict(self) -> dict[str, object]:
        return {
            "schema_version": BOOKMARKS_SCHEMA_VERSION,
            "bookmarks": [entry.to_dict() for entry in self.bookmarks],
        }


def root_index_file_name(module_type: ModuleKind, root_name: str) -> str:
    return index_file_name(root_name, module_type)


def root_index_file_path(module_type: ModuleKind, root_name: str, root_path: str | None) -> str:
    file_name = root_index_file_name(module_type, root_name)
    if not root_path:
        return file_name
    return (Path(root_path) / file_name).as_posix()


def normalize_bookmarks(raw: object) -> BookmarkFile:
    """Coerce arbitrary parsed JSON into a bookmark file, dropping empty entries."""
    if not isinstance(raw, Mapping):
        return BookmarkFile()
    entries = raw.get("bookmarks")
    if not isinstance(entries, list):
        return BookmarkFile()
    bookmarks: list[BookmarkEntry] = []
    for item in entries:
        if not isinstance(item, Mapping):
            continue
        path = item.get("path")
        name = item.get("name")
        views = item.get("views")
        last_opened = item.get("lastOpened")
        entry = BookmarkEntry(
            path=path if isinstance(path, str) else "",
            name=name if isinstance(name, str) else "",
            module_type=(
                "cognitiveNotes" if item.get("moduleType") == "cognitiveNotes" else "parallelmind"
            ),
            views=(
                int(views)
                if isinstance(views, (int, float))
                and not isinstance(views, bool)
                and math.isfinite(views)
                else 0
            ),
            last_opened=last_opened if isinstance(last_opened, str) else "",
        )
        if entry.path or entry.name:
            bookmarks.append(entry)
    return BookmarkFile(bookmarks=tuple(bookmarks))


def read_bookmarks(data_dir: Path, file_name: str = BOOKMARKS_FILE_NAME) -> BookmarkFile | None:
    """Read the bookmark file, creating an empty one when it does not exist.

    Returns None when the file exists but cannot be parsed; it is left
    untouched on disk.
    """
    directory = LocalDirectory(data_dir)
    if not directory.file_exists(file_name):
        created = BookmarkFile()
        data_dir.mkdir(parents=True, exist_ok=True)
        save_bookmarks(data_dir, created, file_name)
        return created
    try:
        payload = json.loads(directory.read_text(file_name))
    except (OSError, ValueError, RecursionError):
        return None
    return normalize_bookmarks(payload)


def load_bookmarks(data_dir: Path, file_name: str = BOOKMARKS_FILE_NAME) -> BookmarkFile:
    """Like read_bookmarks, but an unreadable file yields an empty list."""
    data = read_bookmarks(data_dir, file_name)
    if data is None:
        return BookmarkFile()
    return data


def save_bookmarks(
    data_dir: Path, data: BookmarkFile, file_name: str = BOOKMARKS_FILE_NAME
) -> None:
    directory = LocalDirectory(data_dir)
    payload = json.dumps(data.to_dict(), indent=2, ensure_ascii=False) + "\n"
    tmp_name = write_temp(directory, file_name, payload)
    commit_temp(directory, tmp_name, file_name, payload)


def add_bookmark_entry(data: BookmarkFile, entry: BookmarkEntry) -> BookmarkFile:
    """Append a bookmark unless one with the same path already exists."""
    if any(item.path == entry.path for item in data.bookmarks):
        return data
    return replace(data, bookmarks=data.bookmarks + (entry,))


def increment_bookmark_views(data: BookmarkFile, path: str, now: str) -> BookmarkFile | None:
    """Count one more open of a bookmark; None when the path is unknown."""
    for position, item in enumerate(data.bookmarks):
        if item.path != path:
            continue
        updated = replace(item, views=item.views + 1, last_opened=now)
        bookmarks = data.bookmarks[:position] + (updated,) + data.bookmarks[position + 1 :]
        return replace(data, bookmarks=bookmarks)
    return None


def build_bookmark_entry(path: str, name: str, module_type: ModuleKind, now: str) -> BookmarkEntry:
    return BookmarkEntry(path=path, name=name, module_type=module_type, views=1, last_opened=now)
