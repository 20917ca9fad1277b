"""Feature-module flags parsed once per process."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Final

MODULES_FILE_ENV: Final[str] = "NOTES_INDEX_MODULES_FILE"
MODULES_FILE_NAME: Final[str] = "notes_index_modules.yml"
DEFAULT_MODULES_BLOB: Final[str] = "cognitiveNotes: true\n"

_LINE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^([A-Za-z0-9_-]+)\s*:\s*(.+)$")
_TRUE_WORDS: Final[frozenset[str]] = frozenset({"true", "yes", "1", "on"})
_FALSE_WORDS: Final[frozenset[str]] = frozenset({"false", "no", "0", "off"})


@dataclass(slots=True, frozen=True)
class ModuleFlags:
    """Immutable on/off switches for optional feature modules."""

    cognitive_notes: bool = False

    def is_enabled(self, module_key: str) -> bool:
        if module_key == "cognitiveNotes":
            return self.cognitive_notes
        return False


def parse_bool_word(value: str) -> bool | None:
    normalized = value.strip().lower()
    if normalized in _TRUE_WORDS:
        return True
    if normalized in _FALSE_WORDS:
        return False
    return None


def parse_module_flags(raw: str) -> ModuleFlags:
    """Parse ``key: value`` lines; comments, unknown keys and bad values are ignored."""
    cognitive_notes = ModuleFlags().cognitive_notes
    for line in raw.splitlines():
        trimmed = re.sub(r"#.*", "", line).strip()
        if not trimmed:
            continue
        match = _LINE_PATTERN.match(trimmed)
        if match is None:
            continue
        value = parse_bool_word(match.group(2))
        if value is None:
            continue
        if match.group(1) == "cognitiveNotes":
            cognitive_notes = value
    return ModuleFlags(cognitive_notes=cognitive_notes)


def _read_modules_blob() -> str:
    configured = os.getenv(MODULES_FILE_ENV, "").strip()
    if not configured:
        return DEFAULT_MODULES_BLOB
    path = Path(configured)
    if path.is_dir():
        path = path / MODULES_FILE_NAME
    try:
        return path.read_text(encoding="utf-8")
    except OSError:
        return DEFAULT_MODULES_BLOB


@lru_cache(maxsize=1)
def module_flags() -> ModuleFlags:
    """Return the process-wide flags, computed on first access."""
    return parse_module_flags(_read_modules_blob())


def reset_module_flags() -> None:
    """Forget cached flags so the next access re-reads them. Tests only."""
    module_flags.cache_clear()
