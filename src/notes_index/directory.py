"""Filesystem primitives for one managed directory."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

ItemKind = Literal["file", "directory", "symlink", "other", "unknown"]


@dataclass(slots=True, frozen=True)
class DirectoryItem:
    """One immediate child of a directory listing."""

    name: str
    kind: ItemKind
    error: str | None = None


class LocalDirectory:
    """List/read/write/rename/delete operations scoped to a single directory.

    Every name passed to these methods is a bare child name; the directory
    itself is never traversed.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """Return the directory path as given by the caller."""
        return self._path

    @property
    def name(self) -> str:
        return self._path.name

    def child_path(self, name: str) -> Path:
        return self._path / name

    def list_items(self) -> list[DirectoryItem]:
        """List immediate children sorted by case-sensitive name.

        Raises OSError when the directory itself cannot be listed. Per-entry
        failures are reported as ``kind="unknown"`` items.
        """
        items: list[DirectoryItem] = []
        with os.scandir(self._path) as entries:
            ordered = sorted(entries, key=lambda item: item.name)
        for entry in ordered:
            try:
                if entry.is_symlink():
                    kind: ItemKind = "symlink"
                elif entry.is_dir(follow_symlinks=False):
                    kind = "directory"
                elif entry.is_file(follow_symlinks=False):
                    kind = "file"
                else:
                    kind = "other"
            except OSError as error:
                items.append(DirectoryItem(name=entry.name, kind="unknown", error=str(error)))
                continue
            items.append(DirectoryItem(name=entry.name, kind=kind))
        return items

    def file_names(self) -> list[str]:
        """Return sorted names of regular files, or [] when unlistable."""
        try:
            return [item.name for item in self.list_items() if item.kind == "file"]
        except OSError:
            return []

    def file_exists(self, name: str) -> bool:
        return self.child_path(name).is_file()

    def read_text(self, name: str) -> str:
        return self.child_path(name).read_text(encoding="utf-8")

    def write_text(self, name: str, text: str) -> None:
        with self.child_path(name).open("w", encoding="utf-8") as handle:
            handle.write(text)

    def rename(self, source_name: str, target_name: str) -> None:
        """Atomically replace ``target_name`` with ``source_name``."""
        os.replace(self.child_path(source_name), self.child_path(target_name))

    def delete(self, name: str) -> None:
        self.child_path(name).unlink()
