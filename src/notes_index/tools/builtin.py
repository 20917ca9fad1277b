"""Built-in notes index tools."""

from __future__ import annotations

from collections.abc import Callable

from notes_index.config import ServerConfig
from notes_index.index import DocumentOverrides, IndexManager
from notes_index.modules import ModuleFlags
from notes_index.tools.registry import ToolDispatchError, ToolHandler, ToolRegistry

MAX_AUDIT_ENTRIES = 200
DEFAULT_AUDIT_ENTRIES = 50


def register_builtin_tools(
    registry: ToolRegistry,
    config: ServerConfig,
    flags: ModuleFlags,
    manager: IndexManager,
    open_directory: Callable[[object], dict[str, object]],
    list_bookmarks: Callable[[], dict[str, object]],
    reconcile_bookmarks: Callable[[bool], dict[str, object]],
    read_audit_entries: Callable[[str | None, int], list[dict[str, object]]],
) -> None:
    """Register the notes tool set in a fixed order."""
    guard = _module_guard(config, flags)
    registry.register("notes.status", _status_handler(registry, config, flags))
    registry.register("notes.open_directory", guard(_open_directory_handler(open_directory)))
    registry.register("notes.read_document", guard(_read_document_handler(manager)))
    registry.register("notes.save_document", guard(_save_document_handler(manager)))
    registry.register("notes.reconcile", guard(_reconcile_handler(manager)))
    registry.register("notes.record_view", guard(_record_view_handler(manager)))
    registry.register("notes.list_bookmarks", _list_bookmarks_handler(list_bookmarks))
    registry.register(
        "notes.reconcile_bookmarks", _reconcile_bookmarks_handler(reconcile_bookmarks)
    )
    registry.register("notes.audit_log", _audit_log_handler(read_audit_entries))


def _module_guard(
    config: ServerConfig, flags: ModuleFlags
) -> Callable[[ToolHandler], ToolHandler]:
    module_key = config.index.module_kind

    def wrap(inner: ToolHandler) -> ToolHandler:
        def handler(arguments: dict[str, object]) -> dict[str, object]:
            if module_key == "cognitiveNotes" and not flags.is_enabled(module_key):
                raise ToolDispatchError(
                    code="MODULE_DISABLED",
                    message="The cognitiveNotes module is disabled.",
                )
            return inner(arguments)

        return handler

    return wrap


def _status_handler(
    registry: ToolRegistry, config: ServerConfig, flags: ModuleFlags
) -> ToolHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        return {
            "data_dir": str(config.data_dir),
            "module_kind": config.index.module_kind,
            "modules": {"cognitiveNotes": flags.is_enabled("cognitiveNotes")},
            "tools": list(registry.names()),
            "effective_config": config.to_public_dict(),
        }

    return handler


def _open_directory_handler(
    open_directory: Callable[[object], dict[str, object]],
) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        return open_directory(arguments.get("path"))

    return handler


def _read_document_handler(manager: IndexManager) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        document = manager.read(arguments.get("path"))
        return {"document": document.to_dict() if document is not None else None}

    return handler


def _save_document_handler(manager: IndexManager) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        document = arguments.get("document")
        if not isinstance(document, dict):
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="notes.save_document document must be an object.",
            )
        saved = manager.save(arguments.get("path"), document)
        return {"document": saved.to_dict()}

    return handler


def _reconcile_handler(manager: IndexManager) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        purpose = arguments.get("purpose")
        if purpose is not None and not isinstance(purpose, str):
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="notes.reconcile purpose must be a string.",
            )
        overrides = DocumentOverrides(
            purpose=purpose,
            notifications=_optional_strings(arguments, "notifications"),
            recommendations=_optional_strings(arguments, "recommendations"),
            error_messages=_optional_strings(arguments, "error_messages"),
        )
        document = manager.reconcile(arguments.get("path"), overrides)
        return {"document": document.to_dict()}

    return handler


def _optional_strings(arguments: dict[str, object], key: str) -> tuple[str, ...] | None:
    value = arguments.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ToolDispatchError(
            code="INVALID_PARAMS",
            message=f"notes.reconcile {key} must be a list of strings.",
        )
    return tuple(value)


def _record_view_handler(manager: IndexManager) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        entry_id = arguments.get("entry_id")
        if entry_id is not None and (not isinstance(entry_id, str) or not entry_id):
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="notes.record_view entry_id must be a non-empty string.",
            )
        try:
            document = manager.record_view(arguments.get("path"), entry_id)
        except FileNotFoundError as error:
            raise ToolDispatchError(code="INDEX_NOT_FOUND", message=str(error)) from error
        except KeyError as error:
            raise ToolDispatchError(
                code="UNKNOWN_ENTRY", message=f"Unknown entry id: {entry_id}"
            ) from error
        return {"document": document.to_dict()}

    return handler


def _list_bookmarks_handler(list_bookmarks: Callable[[], dict[str, object]]) -> ToolHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        return list_bookmarks()

    return handler


def _reconcile_bookmarks_handler(
    reconcile_bookmarks: Callable[[bool], dict[str, object]],
) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        remove_missing = arguments.get("remove_missing", False)
        if not isinstance(remove_missing, bool):
            raise ToolDispatchError(
                code="INVALID_PARAMS",
                message="notes.reconcile_bookmarks remove_missing must be a boolean.",
            )
        return reconcile_bookmarks(remove_missing)

    return handler


def _audit_log_handler(
    read_audit_entries: Callable[[str | None, int], list[dict[str, object]]],
) -> ToolHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        since_value = arguments.get("since")
        limit_value = arguments.get("limit", DEFAULT_AUDIT_ENTRIES)

        since: str | None = since_value if isinstance(since_value, str) else None
        limit = (
            limit_value
            if isinstance(limit_value, int) and not isinstance(limit_value, bool)
            else DEFAULT_AUDIT_ENTRIES
        )
        limit = min(max(limit, 1), MAX_AUDIT_ENTRIES)
        return {"entries": read_audit_entries(since, limit)}

    return handler
