"""Launch-time validation of bookmarked index files."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path

from notes_index.bookmarks.store import BookmarkEntry, BookmarkFile
from notes_index.directory import LocalDirectory
from notes_index.index.naming import index_file_name, suffix_for
from notes_index.index.resolver import select_index_candidates

ConfirmRemoval = Callable[[BookmarkEntry], bool]


@dataclass(slots=True, frozen=True)
class StartupReport:
    """Outcome of reconciling bookmarks against the filesystem."""

    bookmarks: BookmarkFile
    kept: tuple[str, ...] = ()
    relinked: tuple[tuple[str, str], ...] = ()
    removed: tuple[str, ...] = ()
    declined: tuple[str, ...] = ()

    @property
    def changed(self) -> bool:
        return bool(self.relinked or self.removed)

    def to_dict(self) -> dict[str, object]:
        return {
            "kept": list(self.kept),
            "relinked": [{"from": old, "to": new} for old, new in self.relinked],
            "removed": list(self.removed),
            "declined": list(self.declined),
            "bookmark_count": len(self.bookmarks.bookmarks),
        }


def find_relink_target(entry: BookmarkEntry) -> Path | None:
    """Return the index file a stale bookmark should point to, if any.

    Uses the same ordering as the root resolver: the canonical name for the
    directory first, then the lexicographically first reserved-suffix file.
    """
    parent = Path(entry.path).parent
    directory = LocalDirectory(parent)
    candidates = select_index_candidates(
        directory.file_names(),
        suffix_for(entry.module_type),
        canonical_name=index_file_name(directory.name, entry.module_type),
    )
    if not candidates:
        return None
    return parent / candidates[0]


def reconcile_bookmarks(data: BookmarkFile, confirm_removal: ConfirmRemoval) -> StartupReport:
    """Keep, relink or (after confirmation) drop each bookmark."""
    output: list[BookmarkEntry] = []
    kept: list[str] = []
    relinked: list[tuple[str, str]] = []
    removed: list[str] = []
    declined: list[str] = []
    for entry in data.bookmarks:
        target_path = Path(entry.path) if entry.path else None
        if target_path is not None and target_path.is_file():
            output.append(entry)
            kept.append(entry.path)
            continue
        target = None
        if target_path is not None and target_path.parent.is_dir():
            target = find_relink_target(entry)
        if target is not None:
            updated = replace(entry, path=str(target), name=target.parent.name)
            output.append(updated)
            relinked.append((entry.path, updated.path))
            continue
        if confirm_removal(entry):
            removed.append(entry.path)
            continue
        output.append(entry)
        declined.append(entry.path)
    return StartupReport(
        bookmarks=replace(data, bookmarks=tuple(output)),
        kept=tuple(kept),
        relinked=tuple(relinked),
        removed=tuple(removed),
        declined=tuple(declined),
    )
