from __future__ import annotations

import json
from pathlib import Path

from notes_index.modules import ModuleFlags
from notes_index.server import create_server


def _server(tmp_path: Path, enabled: bool = True):
    return create_server(data_dir=tmp_path / "data", flags=ModuleFlags(cognitive_notes=enabled))


def test_malformed_json_returns_invalid_json_error(tmp_path: Path) -> None:
    response = _server(tmp_path).handle_json_line("{not-json")

    assert response["ok"] is False
    assert response["error"] == {
        "code": "INVALID_JSON",
        "message": "Request must be valid JSON.",
    }
    assert str(response["request_id"]).startswith("req-")


def test_deeply_nested_request_line_returns_invalid_json_error(tmp_path: Path) -> None:
    response = _server(tmp_path).handle_json_line("[" * 100_000 + "]" * 100_000)

    assert response["ok"] is False
    assert response["error"]["code"] == "INVALID_JSON"


def test_unknown_tool_returns_explicit_error(tmp_path: Path) -> None:
    response = _server(tmp_path).handle_payload(
        {"id": "abc-123", "method": "notes.unknown", "params": {"k": "v"}}
    )

    assert response["ok"] is False
    assert response["request_id"] == "abc-123"
    assert response["error"] == {
        "code": "UNKNOWN_TOOL",
        "message": "Unknown tool: notes.unknown",
    }


def test_non_object_params_returns_invalid_params_error(tmp_path: Path) -> None:
    payload = {"id": 7, "method": "notes.status", "params": []}

    response = _server(tmp_path).handle_payload(json.loads(json.dumps(payload)))

    assert response["ok"] is False
    assert response["request_id"] == "7"
    assert response["error"] == {
        "code": "INVALID_PARAMS",
        "message": "Request params must be an object.",
    }


def test_invalid_directory_returns_reason_and_hint(tmp_path: Path) -> None:
    response = _server(tmp_path).handle_payload(
        {
            "id": "req-dir",
            "method": "notes.open_directory",
            "params": {"path": str(tmp_path / "missing")},
        }
    )

    assert response["ok"] is False
    assert response["blocked"] is True
    assert response["error"]["code"] == "INVALID_DIRECTORY"
    assert response["result"] == {
        "reason": "Directory does not exist.",
        "hint": "Choose an existing directory.",
    }


def test_malformed_document_returns_invalid_document(tmp_path: Path) -> None:
    notes = tmp_path / "notes"
    notes.mkdir()

    response = _server(tmp_path).handle_payload(
        {
            "id": "req-doc",
            "method": "notes.save_document",
            "params": {"path": str(notes), "document": {"child": [1, 2]}},
        }
    )

    assert response["ok"] is False
    assert response["error"]["code"] == "INVALID_DOCUMENT"


def test_disabled_module_refuses_index_tools(tmp_path: Path) -> None:
    notes = tmp_path / "notes"
    notes.mkdir()
    server = _server(tmp_path, enabled=False)

    refused = server.handle_payload(
        {"id": "req-off", "method": "notes.open_directory", "params": {"path": str(notes)}}
    )
    status = server.handle_payload({"id": "req-status", "method": "notes.status", "params": {}})

    assert refused["error"]["code"] == "MODULE_DISABLED"
    assert list(notes.iterdir()) == []
    assert status["ok"] is True
    assert status["result"]["modules"] == {"cognitiveNotes": False}


def test_record_view_errors_map_to_codes(tmp_path: Path) -> None:
    notes = tmp_path / "notes"
    notes.mkdir()
    server = _server(tmp_path)

    missing = server.handle_payload(
        {"id": "req-v1", "method": "notes.record_view", "params": {"path": str(notes)}}
    )
    server.handle_payload(
        {"id": "req-v2", "method": "notes.open_directory", "params": {"path": str(notes)}}
    )
    unknown = server.handle_payload(
        {
            "id": "req-v3",
            "method": "notes.record_view",
            "params": {"path": str(notes), "entry_id": "nope"},
        }
    )

    assert missing["error"]["code"] == "INDEX_NOT_FOUND"
    assert unknown["error"]["code"] == "UNKNOWN_ENTRY"
