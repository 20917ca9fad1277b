from __future__ import annotations

import json
from pathlib import Path

from notes_index.modules import ModuleFlags
from notes_index.server import create_server


def _call(server, request_id: str, method: str, **params: object) -> dict[str, object]:
    response = server.handle_payload({"id": request_id, "method": method, "params": params})
    assert response["ok"] is True, response
    return response["result"]


def test_open_rename_and_reopen_preserves_entry_metadata(tmp_path: Path) -> None:
    data_dir = tmp_path / "data"
    notes = tmp_path / "notes"
    notes.mkdir()
    (notes / "todo.md").write_text("- write tests\n", encoding="utf-8")
    server = create_server(data_dir=data_dir, flags=ModuleFlags(cognitive_notes=True))

    opened = _call(server, "req-1", "notes.open_directory", path=str(notes))
    assert opened["created"] is True
    entry = opened["document"]["child"][0]
    edited = dict(opened["document"])
    edited["child"] = [dict(entry, purpose="task list")]
    _call(server, "req-2", "notes.save_document", path=str(notes), document=edited)
    _call(server, "req-3", "notes.record_view", path=str(notes), entry_id=entry["id"])

    (notes / "todo.md").rename(notes / "ideas.md")
    reopened = _call(server, "req-4", "notes.open_directory", path=str(notes))

    assert reopened["created"] is False
    [renamed] = reopened["document"]["child"]
    assert renamed["id"] == entry["id"]
    assert renamed["name"] == "ideas"
    assert renamed["purpose"] == "task list"
    assert renamed["views"] == 1
    stored = json.loads((notes / "notes_cognitiveNotes.json").read_text(encoding="utf-8"))
    assert stored["child"][0]["name"] == "ideas"


def test_open_directory_records_bookmark(tmp_path: Path) -> None:
    data_dir = tmp_path / "data"
    notes = tmp_path / "notes"
    notes.mkdir()
    server = create_server(data_dir=data_dir, flags=ModuleFlags(cognitive_notes=True))

    first = _call(server, "req-1", "notes.open_directory", path=str(notes))
    _call(server, "req-2", "notes.open_directory", path=str(notes))
    listed = _call(server, "req-3", "notes.list_bookmarks")

    [bookmark] = listed["bookmarks"]
    assert bookmark["path"] == first["index_file"]
    assert bookmark["path"].endswith("notes/notes_cognitiveNotes.json")
    assert bookmark["name"] == "notes"
    assert bookmark["moduleType"] == "cognitiveNotes"
    assert bookmark["views"] == 2


def test_corrupt_bookmarks_file_yields_warning_not_overwrite(tmp_path: Path) -> None:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    (data_dir / "parallelmind.json").write_text("{oops", encoding="utf-8")
    notes = tmp_path / "notes"
    notes.mkdir()
    server = create_server(data_dir=data_dir, flags=ModuleFlags(cognitive_notes=True))

    response = server.handle_payload(
        {"id": "req-1", "method": "notes.open_directory", "params": {"path": str(notes)}}
    )

    assert response["ok"] is True
    assert response["warnings"] == ["Bookmarks file is unreadable; bookmark not updated."]
    assert (data_dir / "parallelmind.json").read_text(encoding="utf-8") == "{oops"
    listed = server.handle_payload({"id": "req-2", "method": "notes.list_bookmarks"})
    assert listed["error"]["code"] == "BOOKMARKS_UNREADABLE"
