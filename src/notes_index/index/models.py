"""Typed models for persisted index documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final, Literal

SCHEMA_VERSION: Final[str] = "1.0.0"
ROOT_TYPE: Final[str] = "root_folder"
ROOT_LEVEL: Final[int] = 0
ENTRY_TYPE: Final[str] = "file_A"
ENTRY_LEVEL: Final[int] = 1

ReadStatus = Literal["ok", "missing", "unreadable", "invalid"]


@dataclass(slots=True, frozen=True)
class Relation:
    """Directed edge from one entry to another."""

    edge_id: str
    target_id: str
    purpose: str = ""
    source_handle: str | None = None
    target_handle: str | None = None

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "edge_id": self.edge_id,
            "target_id": self.target_id,
            "purpose": self.purpose,
        }
        if self.source_handle is not None:
            payload["source_handle"] = self.source_handle
        if self.target_handle is not None:
            payload["target_handle"] = self.target_handle
        return payload


@dataclass(slots=True, frozen=True)
class NodePosition:
    """Canvas position stored for one entry."""

    x: float
    y: float


@dataclass(slots=True, frozen=True)
class Entry:
    """File-level leaf of an index document."""

    id: str
    name: str
    extension: str
    path: str
    created_on: str
    updated_on: str
    last_viewed_on: str
    purpose: str = ""
    views: int = 0
    related_nodes: tuple[Relation, ...] = ()
    sort_index: int | None = None

    @property
    def file_name(self) -> str:
        """Return the on-disk file name rebuilt from name and extension."""
        if self.extension:
            return f"{self.name}.{self.extension}"
        return self.name

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "extension": self.extension,
            "purpose": self.purpose,
            "type": ENTRY_TYPE,
            "level": ENTRY_LEVEL,
            "path": self.path,
            "created_on": self.created_on,
            "updated_on": self.updated_on,
            "last_viewed_on": self.last_viewed_on,
            "views": self.views,
            "related_nodes": [relation.to_dict() for relation in self.related_nodes],
            "sort_index": self.sort_index,
        }


@dataclass(slots=True, frozen=True)
class IndexDocument:
    """Root document persisted once per managed directory."""

    id: str
    name: str
    path: str
    created_on: str
    updated_on: str
    last_viewed_on: str
    purpose: str = ""
    views: int = 0
    notifications: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()
    error_messages: tuple[str, ...] = ()
    node_positions: dict[str, NodePosition] = field(default_factory=dict)
    node_size: dict[str, float] = field(default_factory=dict)
    child: tuple[Entry, ...] = ()
    schema_version: str = SCHEMA_VERSION

    def entry_by_id(self, entry_id: str) -> Entry | None:
        """Return the child entry with the given id, if any."""
        for entry in self.child:
            if entry.id == entry_id:
                return entry
        return None

    def to_dict(self) -> dict[str, object]:
        """Return the canonical serializable form."""
        return {
            "schema_version": SCHEMA_VERSION,
            "id": self.id,
            "name": self.name,
            "purpose": self.purpose,
            "type": ROOT_TYPE,
            "level": ROOT_LEVEL,
            "path": self.path,
            "created_on": self.created_on,
            "updated_on": self.updated_on,
            "last_viewed_on": self.last_viewed_on,
            "views": self.views,
            "notifications": list(self.notifications),
            "recommendations": list(self.recommendations),
            "error_messages": list(self.error_messages),
            "node_positions": {
                key: {"x": position.x, "y": position.y}
                for key, position in self.node_positions.items()
            },
            "node_size": dict(self.node_size),
            "child": [entry.to_dict() for entry in self.child],
        }


@dataclass(slots=True, frozen=True)
class ScanResult:
    """Transient output of one directory scan."""

    entries: tuple[Entry, ...]
    notifications: tuple[str, ...] = ()
    error_messages: tuple[str, ...] = ()
    unresolved_names: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class ReadResult:
    """Discriminated outcome of reading one index file."""

    status: ReadStatus
    document: IndexDocument | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok" and self.document is not None


@dataclass(slots=True, frozen=True)
class DocumentOverrides:
    """Explicit document-level replacements supplied by a caller."""

    purpose: str | None = None
    notifications: tuple[str, ...] | None = None
    recommendations: tuple[str, ...] | None = None
    error_messages: tuple[str, ...] | None = None
