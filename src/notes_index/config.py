"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_FILE_NAME = "notes_index.toml"
DEFAULT_BOOKMARKS_FILE_NAME = "parallelmind.json"
MAX_INDENT_CAP = 8
MODULE_KINDS = ("cognitiveNotes", "parallelmind")


@dataclass(slots=True, frozen=True)
class IndexConfig:
    """Reconciliation settings."""

    module_kind: str = "cognitiveNotes"
    create_marker_files: bool = True
    infer_renames: bool = True
    indent: int = 2


@dataclass(slots=True, frozen=True)
class BookmarksConfig:
    """Bookmark file settings."""

    file_name: str = DEFAULT_BOOKMARKS_FILE_NAME


@dataclass(slots=True, frozen=True)
class ServerConfig:
    """Fully merged server configuration."""

    data_dir: Path
    index: IndexConfig = field(default_factory=IndexConfig)
    bookmarks: BookmarksConfig = field(default_factory=BookmarksConfig)

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot for tool responses."""
        return {
            "data_dir": str(self.data_dir),
            "index": {
                "module_kind": self.index.module_kind,
                "create_marker_files": self.index.create_marker_files,
                "infer_renames": self.index.infer_renames,
                "indent": self.index.indent,
            },
            "bookmarks": {
                "file_name": self.bookmarks.file_name,
            },
        }


@dataclass(slots=True, frozen=True)
class CliOverrides:
    """Optional startup overrides applied at highest precedence."""

    module_kind: str | None = None
    create_marker_files: bool | None = None
    infer_renames: bool | None = None


def default_config(data_dir: Path) -> ServerConfig:
    """Build default config for a given application data directory."""
    return ServerConfig(data_dir=data_dir.resolve())


def load_config_file(data_dir: Path) -> dict[str, object]:
    """Load optional notes_index.toml from the data directory."""
    config_path = data_dir / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def _optional_bool(value: object, name: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError(f"Config field '{name}' must be a boolean.")
    return value


def _module_kind(value: object, name: str, default: str) -> str:
    if value is None:
        return default
    if not isinstance(value, str) or value not in MODULE_KINDS:
        allowed = ", ".join(MODULE_KINDS)
        raise ValueError(f"Config field '{name}' must be one of: {allowed}.")
    return value


def _file_name(value: object, name: str, default: str) -> str:
    if value is None:
        return default
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Config field '{name}' must be a non-empty string.")
    if "/" in value or "\\" in value:
        raise ValueError(f"Config field '{name}' must be a bare file name.")
    return value


def _optional_positive_int_with_cap(value: object, name: str, default: int, cap: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Config field '{name}' must be a positive integer.")
    if value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value


def merge_config(
    base: ServerConfig, file_payload: dict[str, object], overrides: CliOverrides
) -> ServerConfig:
    """Merge defaults, config file, then CLI/startup overrides."""
    index_payload = _get_table(file_payload, "index")
    bookmarks_payload = _get_table(file_payload, "bookmarks")

    merged = ServerConfig(
        data_dir=base.data_dir,
        index=IndexConfig(
            module_kind=_module_kind(
                index_payload.get("module_kind"), "index.module_kind", base.index.module_kind
            ),
            create_marker_files=_optional_bool(
                index_payload.get("create_marker_files"),
                "index.create_marker_files",
                base.index.create_marker_files,
            ),
            infer_renames=_optional_bool(
                index_payload.get("infer_renames"),
                "index.infer_renames",
                base.index.infer_renames,
            ),
            indent=_optional_positive_int_with_cap(
                index_payload.get("indent"), "index.indent", base.index.indent, MAX_INDENT_CAP
            ),
        ),
        bookmarks=BookmarksConfig(
            file_name=_file_name(
                bookmarks_payload.get("file_name"),
                "bookmarks.file_name",
                base.bookmarks.file_name,
            ),
        ),
    )
    return apply_cli_overrides(merged, overrides)


def apply_cli_overrides(config: ServerConfig, overrides: CliOverrides) -> ServerConfig:
    """Apply startup overrides at highest precedence."""
    index = IndexConfig(
        module_kind=_module_kind(
            overrides.module_kind, "overrides.module_kind", config.index.module_kind
        ),
        create_marker_files=(
            overrides.create_marker_files
            if overrides.create_marker_files is not None
            else config.index.create_marker_files
        ),
        infer_renames=(
            overrides.infer_renames
            if overrides.infer_renames is not None
            else config.index.infer_renames
        ),
        indent=config.index.indent,
    )
    return ServerConfig(data_dir=config.data_dir, index=index, bookmarks=config.bookmarks)


def load_effective_config(data_dir: Path, overrides: CliOverrides | None = None) -> ServerConfig:
    """Load effective config using merge order defaults -> config file -> overrides."""
    resolved = data_dir.resolve()
    base = default_config(resolved)
    payload = load_config_file(resolved)
    return merge_config(base, payload, overrides or CliOverrides())
