"""Merge scanned directory contents into a previously persisted document."""

from __future__ import annotations

from collections.abc import Iterable

from notes_index.index.matcher import IdentityMatcher
from notes_index.index.models import DocumentOverrides, Entry, IndexDocument, ScanResult
from notes_index.index.scanner import IdFactory, new_entry_id


def merge_entry(scanned: Entry, existing: Entry | None, now: str, entry_id: str) -> Entry:
    """Build the persisted form of one scanned entry.

    Identity-bound fields come from ``existing``; name, extension and path
    always come from the live scan.
    """
    if existing is None:
        return Entry(
            id=entry_id,
            name=scanned.name,
            extension=scanned.extension,
            path=scanned.path,
            created_on=now,
            updated_on=now,
            last_viewed_on=now,
            sort_index=scanned.sort_index,
        )
    renamed = existing.name != scanned.name or existing.extension != scanned.extension
    created_on = existing.created_on or now
    return Entry(
        id=existing.id,
        name=scanned.name,
        extension=scanned.extension,
        path=scanned.path,
        created_on=created_on,
        updated_on=now if renamed else (existing.updated_on or now),
        last_viewed_on=existing.last_viewed_on or created_on,
        purpose=existing.purpose,
        views=existing.views,
        related_nodes=existing.related_nodes,
        sort_index=existing.sort_index if existing.sort_index is not None else scanned.sort_index,
    )


def merge_entries(
    previous: Iterable[Entry],
    scanned: Iterable[Entry],
    now: str,
    *,
    parent_path: str = "",
    infer_renames: bool = True,
    unresolved_paths: Iterable[str] = (),
    id_factory: IdFactory = new_entry_id,
    profile: dict[str, object] | None = None,
) -> tuple[Entry, ...]:
    """Merge scanned entries with previous ones; output follows scan order.

    Previous entries whose path is listed in ``unresolved_paths`` (their type
    could not be determined this pass) are carried over unchanged at the end.
    """
    previous_entries = list(previous)
    scanned_entries = list(scanned)
    pool = IdentityMatcher(previous_entries, parent_path)

    matches: dict[int, Entry] = {}
    for position, entry in enumerate(scanned_entries):
        found = pool.match(entry)
        if found is not None:
            matches[position] = found
    direct_matches = len(matches)

    unresolved = set(unresolved_paths)
    inferred = 0
    if infer_renames:
        unmatched = [
            entry for position, entry in enumerate(scanned_entries) if position not in matches
        ]
        pairs = pool.infer_renames(unmatched, held_paths=unresolved)
        for position, entry in enumerate(scanned_entries):
            if position not in matches and entry.id in pairs:
                matches[position] = pairs[entry.id]
                inferred += 1

    taken_ids = {entry.id for entry in matches.values()}
    merged: list[Entry] = []
    renamed = 0
    for position, entry in enumerate(scanned_entries):
        existing = matches.get(position)
        if existing is None:
            entry_id = entry.id
            if not entry_id or entry_id in taken_ids:
                entry_id = id_factory()
            taken_ids.add(entry_id)
            merged.append(merge_entry(entry, None, now, entry_id))
            continue
        if existing.name != entry.name or existing.extension != entry.extension:
            renamed += 1
        merged.append(merge_entry(entry, existing, now, existing.id))

    preserved = 0
    for entry in pool.remaining():
        if entry.path in unresolved:
            merged.append(entry)
            preserved += 1

    if profile is not None:
        profile.update(
            {
                "scanned": len(scanned_entries),
                "matched": direct_matches,
                "inferred_renames": inferred,
                "renamed": renamed,
                "added": len(scanned_entries) - len(matches),
                "removed": len(previous_entries) - len(matches) - preserved,
                "preserved_unresolved": preserved,
            }
        )
    return tuple(merged)


def merge_document(
    previous: IndexDocument,
    scan: ScanResult,
    *,
    root_name: str,
    root_path: str,
    now: str,
    overrides: DocumentOverrides | None = None,
    infer_renames: bool = True,
    id_factory: IdFactory = new_entry_id,
    profile: dict[str, object] | None = None,
) -> IndexDocument:
    """Merge one scan pass into the document one level above the entries."""
    explicit = overrides or DocumentOverrides()
    child = merge_entries(
        previous.child,
        scan.entries,
        now,
        parent_path=root_path,
        infer_renames=infer_renames,
        unresolved_paths=scan.unresolved_names,
        id_factory=id_factory,
        profile=profile,
    )
    renamed = previous.name != root_name
    created_on = previous.created_on or now

    live_ids = {entry.id for entry in child}
    dropped_ids = {entry.id for entry in previous.child} - live_ids
    node_positions = {
        key: value for key, value in previous.node_positions.items() if key not in dropped_ids
    }
    node_size = {key: value for key, value in previous.node_size.items() if key not in dropped_ids}

    return IndexDocument(
        id=previous.id or id_factory(),
        name=root_name,
        path=root_path,
        created_on=created_on,
        updated_on=now if renamed else (previous.updated_on or now),
        last_viewed_on=now,
        purpose=explicit.purpose if explicit.purpose is not None else previous.purpose,
        views=previous.views,
        notifications=(
            explicit.notifications
            if explicit.notifications is not None
            else _append_unique(previous.notifications, scan.notifications)
        ),
        recommendations=(
            explicit.recommendations
            if explicit.recommendations is not None
            else previous.recommendations
        ),
        error_messages=(
            explicit.error_messages
            if explicit.error_messages is not None
            else _append_unique(previous.error_messages, scan.error_messages)
        ),
        node_positions=node_positions,
        node_size=node_size,
        child=child,
    )


def new_document(root_name: str, root_path: str, now: str, document_id: str) -> IndexDocument:
    """Return an empty document for a directory seen for the first time."""
    return IndexDocument(
        id=document_id,
        name=root_name,
        path=root_path,
        created_on=now,
        updated_on=now,
        last_viewed_on=now,
    )


def _append_unique(existing: Iterable[str], additions: Iterable[str]) -> tuple[str, ...]:
    output = list(existing)
    seen = set(output)
    for item in additions:
        if item in seen:
            continue
        seen.add(item)
        output.append(item)
    return tuple(output)
