"""Deterministic file naming rules for index, marker and temp files."""

from __future__ import annotations

from pathlib import Path
from typing import Final, Literal

ModuleKind = Literal["cognitiveNotes", "parallelmind"]

COGNITIVE_NOTES_SUFFIX: Final[str] = "_cognitiveNotes.json"
ROOT_INDEX_SUFFIX: Final[str] = "_rootIndex.json"
MODULE_SUFFIXES: Final[dict[str, str]] = {
    "cognitiveNotes": COGNITIVE_NOTES_SUFFIX,
    "parallelmind": ROOT_INDEX_SUFFIX,
}
RESERVED_SUFFIXES: Final[tuple[str, ...]] = (COGNITIVE_NOTES_SUFFIX, ROOT_INDEX_SUFFIX)
TEMP_SUFFIX: Final[str] = ".tmp"
QUARANTINE_SUFFIX: Final[str] = ".corrupt"
DEFAULT_ROOT_NAME: Final[str] = "root"


def suffix_for(module_kind: str) -> str:
    """Return the reserved index suffix for a module kind."""
    try:
        return MODULE_SUFFIXES[module_kind]
    except KeyError:
        raise ValueError(f"Unknown module kind: {module_kind}") from None


def _safe_root_name(root_name: str) -> str:
    return (root_name or "").strip() or DEFAULT_ROOT_NAME


def index_file_name(root_name: str, module_kind: str = "cognitiveNotes") -> str:
    """Return the canonical index file name for a directory base name."""
    return f"{_safe_root_name(root_name)}{suffix_for(module_kind)}"


def marker_file_name(prefix: Literal["start", "end"], root_name: str) -> str:
    """Return a sentinel marker file name such as ``start_notes.md``."""
    return f"{prefix}_{_safe_root_name(root_name)}.md"


def temp_file_name(file_name: str) -> str:
    return f"{file_name}{TEMP_SUFFIX}"


def quarantine_file_name(file_name: str, attempt: int = 0) -> str:
    if attempt:
        return f"{file_name}.{attempt}{QUARANTINE_SUFFIX}"
    return f"{file_name}{QUARANTINE_SUFFIX}"


def is_reserved_file_name(file_name: str) -> bool:
    """Return True when a name belongs to index bookkeeping, not user content."""
    if not file_name:
        return True
    for suffix in RESERVED_SUFFIXES:
        if file_name.endswith(suffix):
            return True
        if file_name.endswith(suffix + TEMP_SUFFIX):
            return True
        if suffix in file_name and file_name.endswith(QUARANTINE_SUFFIX):
            return True
    return False


def split_file_name(file_name: str) -> tuple[str, str]:
    """Split ``notes.md`` into ``("notes", "md")``.

    Leading-dot names (``.env``) and trailing dots keep the whole name with an
    empty extension.
    """
    trimmed = (file_name or "").strip()
    last_dot = trimmed.rfind(".")
    if last_dot <= 0 or last_dot == len(trimmed) - 1:
        return trimmed, ""
    return trimmed[:last_dot], trimmed[last_dot + 1 :]


def relative_entry_path(file_name: str) -> str:
    """Return the posix path stored on entries for an immediate child."""
    return Path(file_name).as_posix()
