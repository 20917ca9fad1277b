"""Locate, migrate or initialize the canonical index document of a directory."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from notes_index.config import IndexConfig
from notes_index.directory import LocalDirectory
from notes_index.index.merge import merge_document, new_document
from notes_index.index.models import DocumentOverrides, IndexDocument, ReadStatus
from notes_index.index.naming import (
    index_file_name,
    marker_file_name,
    quarantine_file_name,
    suffix_for,
)
from notes_index.index.scanner import IdFactory, new_entry_id, scan_directory
from notes_index.index.store import (
    normalize_for_write,
    read_index_file,
    write_document_atomic,
)
from notes_index.logging import utc_timestamp
from notes_index.paths import resolve_directory_argument

Clock = Callable[[], str]
DirectoryFactory = Callable[[Path], LocalDirectory]


@dataclass(slots=True, frozen=True)
class LoadResult:
    """Outcome of opening a directory."""

    document: IndexDocument
    created: bool
    profile: dict[str, object] = field(default_factory=dict)


@dataclass(slots=True)
class _Resolution:
    """Canonical document lookup state for one directory."""

    canonical_name: str
    document: IndexDocument | None = None
    read_status: ReadStatus = "missing"
    migrated_from: str | None = None
    unreadable: list[str] = field(default_factory=list)
    messages: list[str] = field(default_factory=list)


def select_index_candidates(
    file_names: Iterable[str], suffix: str, canonical_name: str | None = None
) -> list[str]:
    """Order reserved-suffix files: canonical name first, then lexicographic."""
    names = sorted(name for name in file_names if name.endswith(suffix))
    if canonical_name is not None and canonical_name in names:
        names.remove(canonical_name)
        names.insert(0, canonical_name)
    return names


class IndexManager:
    """Reconciles a directory with its persisted index document."""

    def __init__(
        self,
        index_config: IndexConfig | None = None,
        *,
        clock: Clock | None = None,
        id_factory: IdFactory = new_entry_id,
        directory_factory: DirectoryFactory = LocalDirectory,
    ) -> None:
        self._config = index_config or IndexConfig()
        self._suffix = suffix_for(self._config.module_kind)
        self._clock = clock or utc_timestamp
        self._id_factory = id_factory
        self._directory_factory = directory_factory

    def canonical_file_name(self, directory: LocalDirectory) -> str:
        """Canonical name derived from the directory's current base name."""
        return index_file_name(directory.name, self._config.module_kind)

    def open_directory(self, directory_path: object) -> LocalDirectory:
        """Validate a caller argument and wrap it; raises DirectoryArgumentError."""
        return self._directory_factory(resolve_directory_argument(directory_path))

    def load_or_create(self, directory_path: object) -> LoadResult:
        """Return the reconciled document for a directory, creating it if needed."""
        started = time.perf_counter()
        directory = self.open_directory(directory_path)
        now = self._clock()
        resolution = self._resolve(directory, now)
        profile: dict[str, object] = {
            "read_status": resolution.read_status,
            "migrated_from": resolution.migrated_from,
        }
        if resolution.document is not None:
            document = self._sync(directory, resolution, resolution.document, now, profile)
            created = False
        else:
            document = self._initialize(directory, resolution, now, profile)
            created = True
        profile["duration_ms"] = int((time.perf_counter() - started) * 1000)
        return LoadResult(document=document, created=created, profile=profile)

    def read(self, directory_path: object) -> IndexDocument | None:
        """Return the canonical document (migrating a legacy candidate) or None."""
        directory = self.open_directory(directory_path)
        return self._resolve(directory, self._clock()).document

    def save(
        self,
        directory_path: object,
        document: IndexDocument | Mapping[str, object],
    ) -> IndexDocument:
        """Normalize a caller-edited document and persist it atomically."""
        directory = self.open_directory(directory_path)
        now = self._clock()
        resolution = self._resolve(directory, now)
        normalized = normalize_for_write(
            document,
            resolution.document,
            root_name=directory.name,
            root_path=str(directory.path),
            now=now,
            id_factory=self._id_factory,
        )
        self._quarantine_all(directory, resolution)
        if resolution.messages:
            normalized = replace(
                normalized,
                error_messages=normalized.error_messages + tuple(resolution.messages),
            )
        self._write(directory, resolution.canonical_name, normalized)
        return normalized

    def record_view(self, directory_path: object, entry_id: str | None = None) -> IndexDocument:
        """Count one view of the document, or of one of its entries."""
        directory = self.open_directory(directory_path)
        now = self._clock()
        resolution = self._resolve(directory, now)
        document = resolution.document
        if document is None:
            raise FileNotFoundError(f"No index document in {directory.path}")
        if entry_id is None:
            updated = replace(document, views=document.views + 1, last_viewed_on=now)
        else:
            entry = document.entry_by_id(entry_id)
            if entry is None:
                raise KeyError(entry_id)
            viewed = replace(entry, views=entry.views + 1, last_viewed_on=now)
            updated = replace(
                document,
                child=tuple(viewed if item.id == entry_id else item for item in document.child),
            )
        self._write(directory, resolution.canonical_name, updated)
        return updated

    def reconcile(
        self,
        directory_path: object,
        overrides: DocumentOverrides | None = None,
    ) -> IndexDocument:
        """Reconcile an existing document, applying explicit document overrides."""
        directory = self.open_directory(directory_path)
        now = self._clock()
        resolution = self._resolve(directory, now)
        if resolution.document is None:
            return self._initialize(directory, resolution, now, {})
        return self._sync(
            directory, resolution, resolution.document, now, {}, overrides=overrides
        )

    def marker_file_names(self, root_name: str) -> tuple[str, str]:
        return (marker_file_name("start", root_name), marker_file_name("end", root_name))

    def _resolve(self, directory: LocalDirectory, now: str) -> _Resolution:
        canonical = self.canonical_file_name(directory)
        resolution = _Resolution(canonical_name=canonical)
        current = read_index_file(directory, canonical, now)
        resolution.read_status = current.status
        if current.ok:
            resolution.document = current.document
            return resolution
        if current.status != "missing":
            resolution.unreadable.append(canonical)

        candidates = select_index_candidates(directory.file_names(), self._suffix)
        remaining = [name for name in candidates if name != canonical]
        for position, candidate in enumerate(remaining):
            result = read_index_file(directory, candidate, now)
            if not result.ok:
                resolution.unreadable.append(candidate)
                continue
            resolution.document = result.document
            resolution.read_status = "ok"
            resolution.migrated_from = candidate
            self._check_leftovers(directory, remaining[position + 1 :], resolution, now)
            self._migrate(directory, resolution, result.document, candidate)
            break
        return resolution

    def _check_leftovers(
        self,
        directory: LocalDirectory,
        names: list[str],
        resolution: _Resolution,
        now: str,
    ) -> None:
        for name in names:
            if read_index_file(directory, name, now).ok:
                resolution.messages.append(f"Additional index file left in place: {name}")
                continue
            resolution.unreadable.append(name)

    def _migrate(
        self,
        directory: LocalDirectory,
        resolution: _Resolution,
        document: IndexDocument,
        source_name: str,
    ) -> None:
        self._quarantine_all(directory, resolution)
        self._write(directory, resolution.canonical_name, document)
        try:
            directory.delete(source_name)
        except OSError:
            pass

    def _quarantine_all(self, directory: LocalDirectory, resolution: _Resolution) -> None:
        """Move unreadable reserved-suffix files aside instead of overwriting them.

        Raises OSError when the canonical name is still occupied by an
        unreadable file afterwards.
        """
        failed: list[str] = []
        for name in resolution.unreadable:
            target = self._quarantine(directory, name)
            if target is None:
                failed.append(name)
                resolution.messages.append(f"Unreadable index file could not be moved: {name}")
            else:
                resolution.messages.append(f"Unreadable index file moved to {target}")
        resolution.unreadable = failed
        if resolution.canonical_name in failed:
            raise OSError(
                f"Refusing to overwrite unreadable index file {resolution.canonical_name}"
            )

    @staticmethod
    def _quarantine(directory: LocalDirectory, name: str) -> str | None:
        attempt = 0
        target = quarantine_file_name(name)
        while directory.file_exists(target):
            attempt += 1
            target = quarantine_file_name(name, attempt)
        try:
            directory.rename(name, target)
        except OSError:
            return None
        return target

    def _initialize(
        self,
        directory: LocalDirectory,
        resolution: _Resolution,
        now: str,
        profile: dict[str, object],
    ) -> IndexDocument:
        self._quarantine_all(directory, resolution)
        root_name = directory.name
        root_path = str(directory.path)
        empty = new_document(root_name, root_path, now, self._id_factory())
        markers = self.marker_file_names(root_name)
        errors: list[str] = list(resolution.messages)
        try:
            scan = scan_directory(directory, now, self._id_factory, skip_names=markers)
        except OSError as error:
            errors.append(f"Failed to scan root folder: {error}")
            document = empty
            profile["scan_failed"] = True
        else:
            document = merge_document(
                empty,
                scan,
                root_name=root_name,
                root_path=root_path,
                now=now,
                infer_renames=False,
                id_factory=self._id_factory,
                profile=profile,
            )
        if self._config.create_marker_files:
            errors.extend(self._ensure_marker_files(directory, markers))
        if errors:
            document = replace(document, error_messages=document.error_messages + tuple(errors))
        profile["write_mode"] = self._write(directory, resolution.canonical_name, document)
        return document

    def _sync(
        self,
        directory: LocalDirectory,
        resolution: _Resolution,
        existing: IndexDocument,
        now: str,
        profile: dict[str, object],
        overrides: DocumentOverrides | None = None,
    ) -> IndexDocument:
        root_name = directory.name
        root_path = str(directory.path)
        messages = tuple(resolution.messages)
        try:
            scan = scan_directory(
                directory,
                now,
                self._id_factory,
                skip_names=self.marker_file_names(root_name),
            )
        except OSError as error:
            profile["scan_failed"] = True
            return replace(
                existing,
                path=root_path,
                error_messages=existing.error_messages
                + messages
                + (f"Failed to sync root folder: {error}",),
            )
        merged = merge_document(
            existing,
            scan,
            root_name=root_name,
            root_path=root_path,
            now=now,
            overrides=overrides,
            infer_renames=self._config.infer_renames,
            id_factory=self._id_factory,
            profile=profile,
        )
        if messages:
            merged = replace(merged, error_messages=merged.error_messages + messages)
        profile["write_mode"] = self._write(directory, resolution.canonical_name, merged)
        return merged

    @staticmethod
    def _ensure_marker_files(directory: LocalDirectory, names: Iterable[str]) -> list[str]:
        errors: list[str] = []
        for name in names:
            if directory.file_exists(name):
                continue
            try:
                directory.write_text(name, "")
            except OSError as error:
                errors.append(f"Failed to create marker file {name}: {error}")
        return errors

    def _write(self, directory: LocalDirectory, file_name: str, document: IndexDocument) -> str:
        outcome = write_document_atomic(directory, file_name, document, indent=self._config.indent)
        return outcome.mode
