"""Flat, deterministic scanning of one managed directory."""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable

from notes_index.directory import LocalDirectory
from notes_index.index.models import Entry, ScanResult
from notes_index.index.naming import is_reserved_file_name, relative_entry_path, split_file_name

IdFactory = Callable[[], str]


def new_entry_id() -> str:
    return str(uuid.uuid4())


def subfolder_notice(name: str) -> str:
    return f"Subfolder ignored at {name}"


def scan_directory(
    directory: LocalDirectory,
    now: str,
    id_factory: IdFactory = new_entry_id,
    skip_names: Iterable[str] = (),
) -> ScanResult:
    """Scan immediate children into transient entries pending merge.

    Subdirectories become notifications and are never descended into.
    Symlinks, reserved index files and ``skip_names`` (marker files) are
    skipped. Raises OSError only when the directory itself cannot be listed.
    """
    entries: list[Entry] = []
    notifications: list[str] = []
    error_messages: list[str] = []
    unresolved: list[str] = []
    skipped = set(skip_names)
    for item in directory.list_items():
        if item.kind == "directory":
            notifications.append(subfolder_notice(item.name))
            continue
        if item.kind == "unknown":
            error_messages.append(f"Failed to inspect entry {item.name}: {item.error}")
            unresolved.append(relative_entry_path(item.name))
            continue
        if item.kind != "file":
            continue
        if is_reserved_file_name(item.name) or item.name in skipped:
            continue
        name, extension = split_file_name(item.name)
        entries.append(
            Entry(
                id=id_factory(),
                name=name,
                extension=extension,
                path=relative_entry_path(item.name),
                created_on=now,
                updated_on=now,
                last_viewed_on=now,
            )
        )
    entries.sort(key=lambda entry: entry.path)
    return ScanResult(
        entries=tuple(entries),
        notifications=tuple(notifications),
        error_messages=tuple(error_messages),
        unresolved_names=tuple(unresolved),
    )
