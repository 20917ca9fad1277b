"""JSON-lines STDIO server entrypoint."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Callable
from pathlib import Path
from typing import TextIO

from notes_index.bookmarks import (
    BookmarkEntry,
    add_bookmark_entry,
    build_bookmark_entry,
    increment_bookmark_views,
    read_bookmarks,
    reconcile_bookmarks,
    root_index_file_path,
    save_bookmarks,
)
from notes_index.config import CliOverrides, ServerConfig, load_effective_config
from notes_index.index import DocumentValidationError, IndexManager
from notes_index.index.resolver import Clock
from notes_index.index.scanner import IdFactory, new_entry_id
from notes_index.logging import AuditEvent, JsonlAuditLogger, sanitize_arguments, utc_timestamp
from notes_index.modules import ModuleFlags, module_flags
from notes_index.paths import DirectoryArgumentError
from notes_index.tools.builtin import register_builtin_tools
from notes_index.tools.registry import ToolDispatchError, ToolRegistry

DEFAULT_DATA_DIR = ".notes_index"


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for server startup configuration."""
    parser = argparse.ArgumentParser(prog="notes-index")
    parser.add_argument("--data-dir", required=False, default=DEFAULT_DATA_DIR)
    parser.add_argument(
        "--module-kind", choices=("cognitiveNotes", "parallelmind"), required=False, default=None
    )
    parser.add_argument("--no-marker-files", action="store_true")
    parser.add_argument("--no-infer-renames", action="store_true")
    parser.add_argument(
        "--remove-missing-bookmarks",
        action="store_true",
        help="Drop bookmarks whose index file and directory are gone at startup.",
    )
    return parser


class StdioServer:
    """Routes JSON-line tool requests to the notes index."""

    def __init__(
        self,
        config: ServerConfig,
        *,
        flags: ModuleFlags | None = None,
        clock: Clock | None = None,
        id_factory: IdFactory = new_entry_id,
    ) -> None:
        self._config = config
        self._data_dir = config.data_dir
        self._clock = clock or utc_timestamp
        self._audit_logger = JsonlAuditLogger(path=self._data_dir / "audit.jsonl")
        self._index_manager = IndexManager(
            index_config=config.index,
            clock=self._clock,
            id_factory=id_factory,
        )
        self._registry = ToolRegistry()
        register_builtin_tools(
            self._registry,
            config=config,
            flags=flags if flags is not None else module_flags(),
            manager=self._index_manager,
            open_directory=self._open_directory,
            list_bookmarks=self._list_bookmarks,
            reconcile_bookmarks=self._reconcile_bookmarks,
            read_audit_entries=self._audit_logger.read,
        )
        self._fallback_request_counter = 0

    def serve(self, in_stream: TextIO, out_stream: TextIO) -> None:
        """Answer each non-blank request line with one response line."""
        for raw_line in in_stream:
            line = raw_line.strip()
            if line:
                response = self.handle_json_line(line)
                out_stream.write(f"{json.dumps(response, sort_keys=True)}\n")
                out_stream.flush()

    def handle_json_line(self, raw_line: str) -> dict[str, object]:
        try:
            payload = json.loads(raw_line)
        except (ValueError, RecursionError):
            response = _envelope(
                self.next_request_id(),
                error=("INVALID_JSON", "Request must be valid JSON."),
            )
            self.log_request("invalid_json", {"raw_line_length": len(raw_line)}, response)
            return response
        return self.handle_payload(payload)

    def handle_payload(self, payload: object) -> dict[str, object]:
        """Dispatch ``{"id", "method", "params"}`` where method names a notes tool."""
        if not isinstance(payload, dict):
            response = _envelope(
                self.next_request_id(),
                error=("INVALID_REQUEST", "Request must be an object."),
            )
            self.log_request("invalid_request", {}, response)
            return response

        request_id = self.request_id_from(payload.get("id"))
        tool_name = payload.get("method")
        arguments = payload.get("params", {})
        if not isinstance(tool_name, str) or not tool_name:
            response = _envelope(
                request_id,
                error=("INVALID_REQUEST", "Request method must be a non-empty string."),
            )
            self.log_request("invalid_request", {}, response)
            return response
        if not isinstance(arguments, dict):
            response = _envelope(
                request_id, error=("INVALID_PARAMS", "Request params must be an object.")
            )
            self.log_request(tool_name, {}, response)
            return response

        try:
            result = self._registry.dispatch(name=tool_name, arguments=arguments)
        except DirectoryArgumentError as error:
            response = _envelope(
                request_id,
                result={"reason": error.reason, "hint": error.hint},
                error=("INVALID_DIRECTORY", error.reason),
                blocked=True,
            )
        except DocumentValidationError as error:
            response = _envelope(request_id, error=("INVALID_DOCUMENT", str(error)))
        except ToolDispatchError as error:
            response = _envelope(request_id, error=(error.code, error.message))
        except OSError as error:
            response = _envelope(request_id, error=("IO_ERROR", str(error)))
        except Exception:
            response = _envelope(
                request_id,
                error=("INTERNAL_ERROR", "Unhandled server error while executing tool."),
            )
        else:
            warnings = _extract_result_warnings(result)
            response = _envelope(request_id, result=result, warnings=warnings)
        self.log_request(tool_name, arguments, response, profile=_result_profile(response))
        return response

    def request_id_from(self, value: object) -> str:
        if isinstance(value, str) and value:
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return self.next_request_id()

    def next_request_id(self) -> str:
        self._fallback_request_counter += 1
        return f"req-{self._fallback_request_counter:06d}"

    def log_request(
        self,
        tool_name: str,
        arguments: dict[str, object],
        response: dict[str, object],
        profile: dict[str, object] | None = None,
    ) -> None:
        error = response.get("error")
        self._audit_logger.append(
            AuditEvent(
                timestamp=utc_timestamp(),
                request_id=str(response["request_id"]),
                tool=tool_name,
                ok=response["ok"] is True,
                blocked=response["blocked"] is True,
                error_code=error["code"] if isinstance(error, dict) else None,
                metadata=sanitize_arguments(arguments),
                profile=profile,
            )
        )

    def startup_reconcile(
        self, confirm_removal: Callable[[BookmarkEntry], bool]
    ) -> dict[str, object]:
        """Validate bookmarks from a previous session before serving requests."""
        data = read_bookmarks(self._data_dir, self._config.bookmarks.file_name)
        if data is None:
            return {"skipped": True, "reason": "Bookmarks file is unreadable."}
        report = reconcile_bookmarks(data, confirm_removal)
        if report.changed:
            save_bookmarks(self._data_dir, report.bookmarks, self._config.bookmarks.file_name)
        return report.to_dict()

    def _open_directory(self, directory_path: object) -> dict[str, object]:
        loaded = self._index_manager.load_or_create(directory_path)
        document = loaded.document
        module_kind = self._config.index.module_kind
        index_path = root_index_file_path(module_kind, document.name, document.path)
        warnings: list[str] = []
        bookmarks = read_bookmarks(self._data_dir, self._config.bookmarks.file_name)
        if bookmarks is None:
            warnings.append("Bookmarks file is unreadable; bookmark not updated.")
        else:
            now = self._clock()
            updated = increment_bookmark_views(bookmarks, index_path, now)
            if updated is None:
                updated = add_bookmark_entry(
                    bookmarks, build_bookmark_entry(index_path, document.name, module_kind, now)
                )
            save_bookmarks(self._data_dir, updated, self._config.bookmarks.file_name)
        return {
            "document": document.to_dict(),
            "created": loaded.created,
            "index_file": index_path,
            "profile": loaded.profile,
            "__warnings__": warnings,
        }

    def _list_bookmarks(self) -> dict[str, object]:
        data = read_bookmarks(self._data_dir, self._config.bookmarks.file_name)
        if data is None:
            raise ToolDispatchError(
                code="BOOKMARKS_UNREADABLE",
                message="Bookmarks file exists but could not be parsed.",
            )
        return data.to_dict()

    def _reconcile_bookmarks(self, remove_missing: bool) -> dict[str, object]:
        data = read_bookmarks(self._data_dir, self._config.bookmarks.file_name)
        if data is None:
            raise ToolDispatchError(
                code="BOOKMARKS_UNREADABLE",
                message="Bookmarks file exists but could not be parsed.",
            )
        report = reconcile_bookmarks(data, lambda _entry: remove_missing)
        if report.changed:
            save_bookmarks(self._data_dir, report.bookmarks, self._config.bookmarks.file_name)
        payload = report.to_dict()
        payload["bookmarks"] = [entry.to_dict() for entry in report.bookmarks.bookmarks]
        return payload


def create_server(
    data_dir: str | Path = DEFAULT_DATA_DIR,
    cli_overrides: CliOverrides | None = None,
    *,
    flags: ModuleFlags | None = None,
    clock: Clock | None = None,
    id_factory: IdFactory = new_entry_id,
) -> StdioServer:
    """Create a configured STDIO server instance."""
    resolved = Path(data_dir).resolve()
    resolved.mkdir(parents=True, exist_ok=True)
    config = load_effective_config(data_dir=resolved, overrides=cli_overrides)
    return StdioServer(config=config, flags=flags, clock=clock, id_factory=id_factory)


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the notes index server process."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    overrides = CliOverrides(
        module_kind=args.module_kind,
        create_marker_files=False if args.no_marker_files else None,
        infer_renames=False if args.no_infer_renames else None,
    )
    server = create_server(data_dir=args.data_dir, cli_overrides=overrides)
    remove_missing: bool = args.remove_missing_bookmarks
    summary = server.startup_reconcile(lambda _entry: remove_missing)
    sys.stderr.write(f"{json.dumps({'startup': summary}, sort_keys=True)}\n")
    server.serve(in_stream=sys.stdin, out_stream=sys.stdout)
    return 0


def _envelope(
    request_id: str,
    *,
    result: dict[str, object] | None = None,
    warnings: list[str] | None = None,
    error: tuple[str, str] | None = None,
    blocked: bool = False,
) -> dict[str, object]:
    response: dict[str, object] = {
        "request_id": request_id,
        "ok": error is None,
        "result": result if result is not None else {},
        "warnings": warnings or [],
        "blocked": blocked,
    }
    if error is not None:
        response["error"] = {"code": error[0], "message": error[1]}
    return response


def _extract_result_warnings(result: dict[str, object]) -> list[str]:
    raw = result.pop("__warnings__", None)
    if not isinstance(raw, list):
        return []
    return [item for item in raw if isinstance(item, str)]


def _result_profile(response: dict[str, object]) -> dict[str, object] | None:
    result = response.get("result")
    if not isinstance(result, dict):
        return None
    profile = result.get("profile")
    return profile if isinstance(profile, dict) else None


if __name__ == "__main__":
    raise SystemExit(main())
