"""Identity matching between scanned entries and previously persisted entries."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from notes_index.index.models import ENTRY_TYPE, Entry

Matcher = Callable[["IdentityMatcher", Entry], "Entry | None"]


def node_key(entry: Entry, parent_path: str) -> str:
    """Composite key of parent path, fixed type and current file name."""
    return f"{parent_path}::{ENTRY_TYPE}::{entry.file_name}"


class IdentityMatcher:
    """Pool of previous entries consumed by one merge pass.

    A candidate satisfies at most one scanned entry; once matched it is
    removed from every lookup table.
    """

    def __init__(self, candidates: Iterable[Entry], parent_path: str) -> None:
        self._parent_path = parent_path
        self._by_id: dict[str, Entry] = {}
        self._by_path: dict[str, Entry] = {}
        self._by_key: dict[str, Entry] = {}
        self._used: set[str] = set()
        for candidate in candidates:
            if candidate.id:
                self._by_id.setdefault(candidate.id, candidate)
            if candidate.path:
                self._by_path.setdefault(candidate.path, candidate)
            self._by_key.setdefault(node_key(candidate, parent_path), candidate)

    @property
    def parent_path(self) -> str:
        return self._parent_path

    def by_id(self, entry_id: str) -> Entry | None:
        return self._available(self._by_id.get(entry_id))

    def by_path(self, path: str) -> Entry | None:
        return self._available(self._by_path.get(path))

    def by_key(self, key: str) -> Entry | None:
        return self._available(self._by_key.get(key))

    def match(self, scanned: Entry) -> Entry | None:
        """Return the first available candidate found by the matcher chain."""
        for matcher in MATCHER_CHAIN:
            found = matcher(self, scanned)
            if found is not None:
                self._used.add(found.id)
                return found
        return None

    def infer_renames(
        self, unmatched: list[Entry], held_paths: Iterable[str] = ()
    ) -> dict[str, Entry]:
        """Pair leftover scanned entries with leftover candidates.

        A pair is formed only when a file extension has exactly one unmatched
        scanned entry and exactly one unclaimed candidate. Candidates whose
        path is in ``held_paths`` never take part. Returns a mapping keyed by
        the scanned entry's transient id.
        """
        held = set(held_paths)
        scanned_by_ext: dict[str, list[Entry]] = {}
        for entry in unmatched:
            scanned_by_ext.setdefault(entry.extension, []).append(entry)
        candidates_by_ext: dict[str, list[Entry]] = {}
        for candidate in self.remaining():
            if candidate.path in held:
                continue
            candidates_by_ext.setdefault(candidate.extension, []).append(candidate)

        pairs: dict[str, Entry] = {}
        for extension in sorted(scanned_by_ext):
            scanned_group = scanned_by_ext[extension]
            candidate_group = candidates_by_ext.get(extension, [])
            if len(scanned_group) != 1 or len(candidate_group) != 1:
                continue
            candidate = candidate_group[0]
            self._used.add(candidate.id)
            pairs[scanned_group[0].id] = candidate
        return pairs

    def remaining(self) -> list[Entry]:
        """Return candidates no scanned entry has claimed, in id order."""
        return sorted(
            (entry for entry in self._by_id.values() if entry.id not in self._used),
            key=lambda item: item.id,
        )

    def _available(self, candidate: Entry | None) -> Entry | None:
        if candidate is None or candidate.id in self._used:
            return None
        return candidate


def match_by_id(pool: IdentityMatcher, scanned: Entry) -> Entry | None:
    # Raw filesystem scans mint fresh ids, so this only hits for in-memory merges.
    if not scanned.id:
        return None
    return pool.by_id(scanned.id)


def match_by_path(pool: IdentityMatcher, scanned: Entry) -> Entry | None:
    if not scanned.path:
        return None
    return pool.by_path(scanned.path)


def match_by_key(pool: IdentityMatcher, scanned: Entry) -> Entry | None:
    return pool.by_key(node_key(scanned, pool.parent_path))


MATCHER_CHAIN: tuple[Matcher, ...] = (match_by_id, match_by_path, match_by_key)


def match(scanned: Entry, candidates: Iterable[Entry], parent_path: str = "") -> Entry | None:
    """Match a single scanned entry against a fresh candidate pool."""
    return IdentityMatcher(candidates, parent_path).match(scanned)
