from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path

import pytest

from notes_index.config import IndexConfig
from notes_index.directory import DirectoryItem, LocalDirectory
from notes_index.index import DocumentValidationError, IndexManager
from notes_index.index.models import DocumentOverrides
from notes_index.paths import DirectoryArgumentError

SUFFIX = "_cognitiveNotes.json"
LATER = "2024-03-01T00:00:00.000Z"


def _manager(clock, ids, **config: object) -> IndexManager:
    return IndexManager(IndexConfig(**config), clock=clock, id_factory=ids)  # type: ignore[arg-type]


def _reserved(directory: Path, suffix: str = SUFFIX) -> list[str]:
    return sorted(path.name for path in directory.iterdir() if path.name.endswith(suffix))


def _valid_payload(document_id: str, name: str) -> str:
    return json.dumps(
        {
            "id": document_id,
            "name": name,
            "type": "root_folder",
            "level": 0,
            "purpose": "from candidate",
            "child": [],
        }
    )


def test_empty_directory_initializes_document_and_markers(tmp_path: Path, clock, ids) -> None:
    root = tmp_path / "notes"
    root.mkdir()

    result = _manager(clock, ids).load_or_create(root)

    assert result.created is True
    document = result.document
    assert document.child == ()
    assert document.created_on == document.updated_on == clock.now
    assert document.name == "notes"
    assert _reserved(root) == ["notes_cognitiveNotes.json"]
    markers = sorted(path.name for path in root.iterdir() if path.suffix == ".md")
    assert markers == ["end_notes.md", "start_notes.md"]
    assert (root / "start_notes.md").read_text(encoding="utf-8") == ""


def test_marker_files_are_created_only_once(tmp_path: Path, clock, ids) -> None:
    root = tmp_path / "notes"
    root.mkdir()
    manager = _manager(clock, ids)
    manager.load_or_create(root)
    (root / "end_notes.md").unlink()

    result = manager.load_or_create(root)

    assert result.created is False
    assert not (root / "end_notes.md").exists()
    assert [entry.path for entry in result.document.child] == []


def test_marker_files_can_be_disabled(tmp_path: Path, clock, ids) -> None:
    root = tmp_path / "notes"
    root.mkdir()

    _manager(clock, ids, create_marker_files=False).load_or_create(root)

    assert sorted(path.name for path in root.iterdir()) == ["notes_cognitiveNotes.json"]


def test_reconciling_unchanged_directory_is_idempotent(tmp_path: Path, clock, ids) -> None:
    root = tmp_path / "notes"
    root.mkdir()
    (root / "a.md").write_text("a", encoding="utf-8")
    (root / "drafts").mkdir()
    manager = _manager(clock, ids)
    first = manager.load_or_create(root).document

    clock.now = LATER
    second = manager.load_or_create(root).document
    third = manager.load_or_create(root).document

    assert second.updated_on == first.updated_on
    assert replace(second, last_viewed_on=first.last_viewed_on) == first
    assert third == second
    assert third.notifications == ("Subfolder ignored at drafts",)


def test_file_renamed_on_disk_keeps_identity(tmp_path: Path, clock, ids) -> None:
    root = tmp_path / "notes"
    root.mkdir()
    (root / "todo.md").write_text("- item", encoding="utf-8")
    manager = _manager(clock, ids)
    created = manager.load_or_create(root).document
    original = created.child[0]
    for _ in range(3):
        manager.record_view(root, original.id)

    (root / "todo.md").rename(root / "ideas.md")
    clock.now = LATER
    document = manager.load_or_create(root).document

    assert len(document.child) == 1
    entry = document.child[0]
    assert entry.id == original.id
    assert (entry.name, entry.extension) == ("ideas", "md")
    assert entry.views == 3
    assert entry.created_on == original.created_on
    assert entry.updated_on == LATER


def test_added_and_removed_files_are_reflected(tmp_path: Path, clock, ids) -> None:
    root = tmp_path / "notes"
    root.mkdir()
    (root / "keep.md").write_text("k", encoding="utf-8")
    (root / "drop.txt").write_text("d", encoding="utf-8")
    manager = _manager(clock, ids, infer_renames=False)
    manager.load_or_create(root)

    (root / "drop.txt").unlink()
    (root / "new.csv").write_text("n", encoding="utf-8")
    clock.now = LATER
    result = manager.load_or_create(root)

    assert [entry.path for entry in result.document.child] == ["keep.md", "new.csv"]
    added = result.document.child[1]
    assert added.created_on == added.updated_on == LATER
    assert result.profile["added"] == 1
    assert result.profile["removed"] == 1


def test_parseable_candidate_is_consolidated_under_canonical_name(
    tmp_path: Path, clock, ids
) -> None:
    root = tmp_path / "notes"
    root.mkdir()
    (root / "a_cognitiveNotes.json").write_text("{broken", encoding="utf-8")
    (root / "b_cognitiveNotes.json").write_text(_valid_payload("doc-b", "b"), encoding="utf-8")

    result = _manager(clock, ids).load_or_create(root)

    assert result.created is False
    assert result.document.id == "doc-b"
    assert result.document.name == "notes"
    assert result.document.purpose == "from candidate"
    assert result.profile["migrated_from"] == "b_cognitiveNotes.json"
    assert _reserved(root) == ["notes_cognitiveNotes.json"]
    quarantined = root / "a_cognitiveNotes.json.corrupt"
    assert quarantined.read_text(encoding="utf-8") == "{broken"
    assert any("a_cognitiveNotes.json.corrupt" in item for item in result.document.error_messages)


def test_directory_rename_migrates_old_canonical_file(tmp_path: Path, clock, ids) -> None:
    old_root = tmp_path / "old"
    old_root.mkdir()
    manager = _manager(clock, ids, create_marker_files=False)
    created = manager.load_or_create(old_root).document

    new_root = tmp_path / "new"
    old_root.rename(new_root)
    clock.now = LATER
    document = manager.load_or_create(new_root).document

    assert document.id == created.id
    assert document.name == "new"
    assert document.updated_on == LATER
    assert _reserved(new_root) == ["new_cognitiveNotes.json"]


def test_unreadable_canonical_file_is_moved_aside_not_overwritten(
    tmp_path: Path, clock, ids
) -> None:
    root = tmp_path / "notes"
    root.mkdir()
    (root / "notes_cognitiveNotes.json").write_text("not json", encoding="utf-8")

    result = _manager(clock, ids).load_or_create(root)

    assert result.created is True
    assert result.profile["read_status"] == "invalid"
    assert (root / "notes_cognitiveNotes.json.corrupt").read_text(encoding="utf-8") == "not json"
    assert _reserved(root) == ["notes_cognitiveNotes.json"]


def test_read_never_writes_when_nothing_parses(tmp_path: Path, clock, ids) -> None:
    root = tmp_path / "notes"
    root.mkdir()
    (root / "notes_cognitiveNotes.json").write_text("not json", encoding="utf-8")

    assert _manager(clock, ids).read(root) is None
    assert (root / "notes_cognitiveNotes.json").read_text(encoding="utf-8") == "not json"


@pytest.mark.parametrize("argument", ["", "   ", None])
def test_empty_directory_argument_raises(argument: object, clock, ids) -> None:
    with pytest.raises(DirectoryArgumentError):
        _manager(clock, ids).load_or_create(argument)


def test_missing_or_file_argument_raises(tmp_path: Path, clock, ids) -> None:
    (tmp_path / "file.md").write_text("x", encoding="utf-8")
    manager = _manager(clock, ids)

    with pytest.raises(DirectoryArgumentError, match="does not exist"):
        manager.load_or_create(tmp_path / "missing")
    with pytest.raises(DirectoryArgumentError, match="not a directory"):
        manager.load_or_create(tmp_path / "file.md")


class _UnlistableDirectory(LocalDirectory):
    def list_items(self) -> list[DirectoryItem]:
        raise PermissionError("listing denied")


def test_scan_failure_during_initialization_is_recorded(tmp_path: Path, clock, ids) -> None:
    root = tmp_path / "notes"
    root.mkdir()
    manager = IndexManager(
        IndexConfig(create_marker_files=False),
        clock=clock,
        id_factory=ids,
        directory_factory=_UnlistableDirectory,
    )

    result = manager.load_or_create(root)

    assert result.created is True
    assert result.document.child == ()
    assert result.document.error_messages == ("Failed to scan root folder: listing denied",)
    assert result.profile["scan_failed"] is True


def test_scan_failure_during_sync_keeps_stored_document(tmp_path: Path, clock, ids) -> None:
    root = tmp_path / "notes"
    root.mkdir()
    (root / "a.md").write_text("a", encoding="utf-8")
    _manager(clock, ids).load_or_create(root)
    stored = (root / "notes_cognitiveNotes.json").read_text(encoding="utf-8")
    failing = IndexManager(
        IndexConfig(), clock=clock, id_factory=ids, directory_factory=_UnlistableDirectory
    )

    document = failing.load_or_create(root).document

    assert [entry.path for entry in document.child] == ["a.md"]
    assert document.error_messages[-1] == "Failed to sync root folder: listing denied"
    assert (root / "notes_cognitiveNotes.json").read_text(encoding="utf-8") == stored


def test_save_normalizes_and_persists_edits(tmp_path: Path, clock, ids) -> None:
    root = tmp_path / "notes"
    root.mkdir()
    (root / "a.md").write_text("a", encoding="utf-8")
    manager = _manager(clock, ids)
    document = manager.load_or_create(root).document
    edited = document.to_dict()
    edited["purpose"] = "weekly review"
    edited["child"][0]["purpose"] = "first draft"  # type: ignore[index]

    manager.save(root, edited)
    reread = manager.read(root)

    assert reread is not None
    assert reread.id == document.id
    assert reread.purpose == "weekly review"
    assert reread.child[0].purpose == "first draft"


def test_save_rejects_malformed_document(tmp_path: Path, clock, ids) -> None:
    root = tmp_path / "notes"
    root.mkdir()

    with pytest.raises(DocumentValidationError):
        _manager(clock, ids).save(root, {"child": ["not-an-entry"]})


def test_rejected_save_leaves_unreadable_file_in_place(tmp_path: Path, clock, ids) -> None:
    root = tmp_path / "notes"
    root.mkdir()
    (root / "notes_cognitiveNotes.json").write_text("not json", encoding="utf-8")

    with pytest.raises(DocumentValidationError):
        _manager(clock, ids).save(root, {"child": ["not-an-entry"]})

    assert (root / "notes_cognitiveNotes.json").read_text(encoding="utf-8") == "not json"
    assert not (root / "notes_cognitiveNotes.json.corrupt").exists()


def test_oversized_integer_in_canonical_file_is_quarantined(tmp_path: Path, clock, ids) -> None:
    root = tmp_path / "notes"
    root.mkdir()
    text = '{"id": "d1", "name": "notes", "type": "root_folder", "level": 0, "views": '
    (root / "notes_cognitiveNotes.json").write_text(text + "1" * 5000 + "}", encoding="utf-8")

    result = _manager(clock, ids).load_or_create(root)

    assert result.created is True
    assert result.profile["read_status"] == "invalid"
    assert (root / "notes_cognitiveNotes.json.corrupt").exists()


def test_record_view_counts_document_and_entry_views(tmp_path: Path, clock, ids) -> None:
    root = tmp_path / "notes"
    root.mkdir()
    (root / "a.md").write_text("a", encoding="utf-8")
    manager = _manager(clock, ids)
    entry_id = manager.load_or_create(root).document.child[0].id

    clock.now = LATER
    manager.record_view(root)
    document = manager.record_view(root, entry_id)

    assert document.views == 1
    assert document.last_viewed_on == LATER
    assert document.child[0].views == 1
    assert document.child[0].last_viewed_on == LATER
    with pytest.raises(KeyError):
        manager.record_view(root, "unknown")


def test_record_view_without_document_raises(tmp_path: Path, clock, ids) -> None:
    with pytest.raises(FileNotFoundError):
        _manager(clock, ids).record_view(tmp_path)


def test_reconcile_applies_document_overrides(tmp_path: Path, clock, ids) -> None:
    root = tmp_path / "notes"
    root.mkdir()
    manager = _manager(clock, ids)
    manager.load_or_create(root)

    document = manager.reconcile(
        root, DocumentOverrides(purpose="archive", recommendations=("tag files",))
    )

    assert document.purpose == "archive"
    assert document.recommendations == ("tag files",)
    stored = manager.read(root)
    assert stored is not None
    assert stored.purpose == "archive"


def test_parallelmind_kind_uses_root_index_suffix(tmp_path: Path, clock, ids) -> None:
    root = tmp_path / "board"
    root.mkdir()
    (root / "board_cognitiveNotes.json").write_text(_valid_payload("x", "x"), encoding="utf-8")

    result = _manager(clock, ids, module_kind="parallelmind").load_or_create(root)

    assert result.created is True
    assert _reserved(root, "_rootIndex.json") == ["board_rootIndex.json"]
    assert result.document.child == ()
