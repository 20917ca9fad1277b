"""Schema validation, reading and atomic persistence of index documents."""

from __future__ import annotations

import json
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Literal

from notes_index.directory import LocalDirectory
from notes_index.index.models import (
    ENTRY_LEVEL,
    ENTRY_TYPE,
    ROOT_LEVEL,
    ROOT_TYPE,
    SCHEMA_VERSION,
    Entry,
    IndexDocument,
    NodePosition,
    ReadResult,
    Relation,
)
from notes_index.index.naming import temp_file_name

DEFAULT_INDENT = 2

CommitMode = Literal["renamed", "overwritten"]


class DocumentValidationError(ValueError):
    """Raised when a caller-supplied document cannot be normalized for writing."""


@dataclass(slots=True, frozen=True)
class WriteOutcome:
    """Result of one atomic write."""

    file_name: str
    mode: CommitMode
    bytes_written: int


def parse_document(raw: object, now: str) -> IndexDocument | None:
    """Validate raw parsed JSON and coerce optional fields to safe defaults.

    Returns None on any structural failure instead of raising.
    """
    if not isinstance(raw, Mapping):
        return None
    if raw.get("type") != ROOT_TYPE or not _is_exact_int(raw.get("level"), ROOT_LEVEL):
        return None
    document_id = raw.get("id")
    name = raw.get("name")
    if not _is_required_string(document_id) or not _is_required_string(name):
        return None

    raw_child = raw.get("child")
    if not isinstance(raw_child, list):
        # legacy documents stored children under related_nodes
        raw_child = raw.get("related_nodes")
    if not isinstance(raw_child, list):
        raw_child = []
    child = _parse_entries(raw_child, now)
    if child is None:
        return None

    created_on = _timestamp(raw.get("created_on"), now)
    return IndexDocument(
        id=document_id,
        name=name,
        path=_string(raw.get("path")),
        created_on=created_on,
        updated_on=_timestamp(raw.get("updated_on"), created_on),
        last_viewed_on=_timestamp(raw.get("last_viewed_on"), created_on),
        purpose=_string(raw.get("purpose")),
        views=_views(raw.get("views")),
        notifications=_strings(raw.get("notifications")),
        recommendations=_strings(raw.get("recommendations")),
        error_messages=_strings(raw.get("error_messages")),
        node_positions=_positions(raw.get("node_positions")),
        node_size=_sizes(raw.get("node_size")),
        child=child,
    )


def read_index_file(directory: LocalDirectory, file_name: str, now: str) -> ReadResult:
    """Read one index file, discriminating why it could not be used."""
    if not directory.file_exists(file_name):
        return ReadResult(status="missing")
    try:
        text = directory.read_text(file_name)
    except (OSError, UnicodeDecodeError) as error:
        return ReadResult(status="unreadable", detail=str(error))
    try:
        payload = json.loads(text)
    except (ValueError, RecursionError) as error:
        return ReadResult(status="invalid", detail=f"JSON decode failed: {error}")
    document = parse_document(payload, now)
    if document is None:
        return ReadResult(status="invalid", detail="Document failed schema validation.")
    return ReadResult(status="ok", document=document)


def read_document(directory: LocalDirectory, file_name: str, now: str) -> IndexDocument | None:
    """Return the parsed document, or None when missing, unreadable or invalid."""
    return read_index_file(directory, file_name, now).document


def serialize_document(document: IndexDocument, indent: int = DEFAULT_INDENT) -> str:
    return json.dumps(document.to_dict(), indent=indent, ensure_ascii=False) + "\n"


def write_temp(directory: LocalDirectory, file_name: str, payload: str) -> str:
    """First phase: write the full payload to a ``.tmp`` sibling."""
    tmp_name = temp_file_name(file_name)
    directory.write_text(tmp_name, payload)
    return tmp_name


def commit_temp(
    directory: LocalDirectory, tmp_name: str, file_name: str, payload: str
) -> CommitMode:
    """Second phase: rename the temp file over the canonical name.

    When the rename fails the canonical file is overwritten directly and the
    temp file is removed on a best-effort basis. A failure of the direct
    overwrite propagates.
    """
    try:
        directory.rename(tmp_name, file_name)
    except OSError:
        directory.write_text(file_name, payload)
        try:
            directory.delete(tmp_name)
        except OSError:
            pass
        return "overwritten"
    return "renamed"


def write_document_atomic(
    directory: LocalDirectory,
    file_name: str,
    document: IndexDocument,
    indent: int = DEFAULT_INDENT,
) -> WriteOutcome:
    """Persist a document with write-temp-then-rename."""
    payload = serialize_document(document, indent=indent)
    tmp_name = write_temp(directory, file_name, payload)
    mode = commit_temp(directory, tmp_name, file_name, payload)
    return WriteOutcome(file_name=file_name, mode=mode, bytes_written=len(payload.encode("utf-8")))


def normalize_for_write(
    incoming: IndexDocument | Mapping[str, object],
    existing: IndexDocument | None,
    *,
    root_name: str,
    root_path: str,
    now: str,
    id_factory: Callable[[], str],
) -> IndexDocument:
    """Normalize a caller-supplied document to the canonical schema.

    Fields that are missing or of the wrong shape fall back to the existing
    document, then to defaults. Raises DocumentValidationError when the result
    still fails validation (for example malformed child entries).
    """
    raw: Mapping[str, object]
    if isinstance(incoming, IndexDocument):
        raw = incoming.to_dict()
    elif isinstance(incoming, Mapping):
        raw = incoming
    else:
        raise DocumentValidationError("Document must be an object.")
    base: dict[str, object] = existing.to_dict() if existing is not None else {}

    merged: dict[str, object] = {}
    for key, accepts in _WRITE_FIELDS.items():
        value = raw.get(key)
        if accepts(value):
            merged[key] = value
        elif key in base:
            merged[key] = base[key]

    created_on = merged.get("created_on") or now
    merged["schema_version"] = SCHEMA_VERSION
    merged["type"] = ROOT_TYPE
    merged["level"] = ROOT_LEVEL
    merged["path"] = root_path
    merged["id"] = merged.get("id") or id_factory()
    merged["name"] = merged.get("name") or root_name
    merged["created_on"] = created_on
    merged.setdefault("updated_on", now)
    merged.setdefault("last_viewed_on", created_on)

    document = parse_document(merged, now)
    if document is None:
        raise DocumentValidationError("Document failed schema validation.")
    return document


def _parse_entries(raw_child: list[object], now: str) -> tuple[Entry, ...] | None:
    entries: list[Entry] = []
    seen_ids: set[str] = set()
    seen_edges: set[str] = set()
    for item in raw_child:
        if not isinstance(item, Mapping):
            return None
        entry_id = item.get("id")
        if not _is_required_string(entry_id) or entry_id in seen_ids:
            return None
        if "type" in item and item.get("type") != ENTRY_TYPE:
            return None
        if "level" in item and not _is_exact_int(item.get("level"), ENTRY_LEVEL):
            return None
        seen_ids.add(entry_id)
        created_on = _timestamp(item.get("created_on"), now)
        entries.append(
            Entry(
                id=entry_id,
                name=_string(item.get("name")),
                extension=_string(item.get("extension")),
                path=_string(item.get("path")),
                created_on=created_on,
                updated_on=_timestamp(item.get("updated_on"), created_on),
                last_viewed_on=_timestamp(item.get("last_viewed_on"), created_on),
                purpose=_string(item.get("purpose")),
                views=_views(item.get("views")),
                related_nodes=_relations(item.get("related_nodes"), seen_edges),
                sort_index=_sort_index(item.get("sort_index")),
            )
        )
    return tuple(entries)


def _relations(value: object, seen_edges: set[str]) -> tuple[Relation, ...]:
    if not isinstance(value, list):
        return ()
    output: list[Relation] = []
    for item in value:
        if not isinstance(item, Mapping):
            continue
        edge_id = item.get("edge_id")
        target_id = item.get("target_id")
        if not _is_required_string(edge_id) or not _is_required_string(target_id):
            continue
        if edge_id in seen_edges:
            continue
        seen_edges.add(edge_id)
        source_handle = item.get("source_handle")
        target_handle = item.get("target_handle")
        output.append(
            Relation(
                edge_id=edge_id,
                target_id=target_id,
                purpose=_string(item.get("purpose")),
                source_handle=source_handle if isinstance(source_handle, str) else None,
                target_handle=target_handle if isinstance(target_handle, str) else None,
            )
        )
    return tuple(output)


def _positions(value: object) -> dict[str, NodePosition]:
    if not isinstance(value, Mapping):
        return {}
    output: dict[str, NodePosition] = {}
    for key, item in value.items():
        if not isinstance(key, str) or not isinstance(item, Mapping):
            continue
        x = item.get("x")
        y = item.get("y")
        if not _is_finite_number(x) or not _is_finite_number(y):
            continue
        output[key] = NodePosition(x=x, y=y)
    return output


def _sizes(value: object) -> dict[str, float]:
    if not isinstance(value, Mapping):
        return {}
    return {
        key: item
        for key, item in value.items()
        if isinstance(key, str) and _is_finite_number(item)
    }


def _is_required_string(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_exact_int(value: object, expected: int) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value == expected


def _is_finite_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _string(value: object) -> str:
    return value if isinstance(value, str) else ""


def _timestamp(value: object, default: str) -> str:
    if isinstance(value, str) and value:
        return value
    return default


def _views(value: object) -> int:
    if not _is_finite_number(value):
        return 0
    return max(0, int(value))


def _sort_index(value: object) -> int | None:
    if not _is_finite_number(value):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    return int(value)


def _strings(value: object) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    return tuple(item for item in value if isinstance(item, str))


_WRITE_FIELDS: dict[str, Callable[[object], bool]] = {
    "id": _is_required_string,
    "name": _is_required_string,
    "purpose": lambda value: isinstance(value, str),
    "created_on": lambda value: isinstance(value, str) and bool(value),
    "updated_on": lambda value: isinstance(value, str) and bool(value),
    "last_viewed_on": lambda value: isinstance(value, str) and bool(value),
    "views": _is_finite_number,
    "notifications": lambda value: isinstance(value, list),
    "recommendations": lambda value: isinstance(value, list),
    "error_messages": lambda value: isinstance(value, list),
    "node_positions": lambda value: isinstance(value, Mapping),
    "node_size": lambda value: isinstance(value, Mapping),
    "child": lambda value: isinstance(value, list),
}
