"""Validation of caller-supplied directory arguments."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Final

WINDOWS_ABSOLUTE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z]:[\\/]")


class DirectoryArgumentError(Exception):
    """Raised when a directory argument is empty, missing or not a directory."""

    def __init__(self, reason: str, hint: str) -> None:
        super().__init__(reason)
        self.reason = reason
        self.hint = hint


def normalize_directory_input(candidate: str) -> str:
    """Normalize separators and drop trailing slashes, keeping a bare root."""
    normalized = candidate.strip().replace("\\", "/")
    if WINDOWS_ABSOLUTE_PATTERN.match(normalized):
        return normalized if len(normalized) == 3 else normalized.rstrip("/")
    stripped = normalized.rstrip("/")
    return stripped or normalized


def resolve_directory_argument(candidate: object) -> Path:
    """Resolve a directory argument, raising immediately on invalid input."""
    if not isinstance(candidate, (str, Path)):
        raise DirectoryArgumentError(
            reason="Directory path is required.",
            hint="Provide the path of the directory to index as a string.",
        )
    text = str(candidate)
    if not text.strip():
        raise DirectoryArgumentError(
            reason="Directory path is empty.",
            hint="Provide the path of the directory to index.",
        )
    resolved = Path(normalize_directory_input(text)).expanduser().resolve(strict=False)
    if not resolved.exists():
        raise DirectoryArgumentError(
            reason="Directory does not exist.",
            hint="Choose an existing directory.",
        )
    if not resolved.is_dir():
        raise DirectoryArgumentError(
            reason="Path is not a directory.",
            hint="Choose a directory, not a file.",
        )
    return resolved
