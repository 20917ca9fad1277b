from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from notes_index.modules import (
    MODULES_FILE_ENV,
    ModuleFlags,
    module_flags,
    parse_bool_word,
    parse_module_flags,
    reset_module_flags,
)


@pytest.fixture(autouse=True)
def _fresh_flags() -> Iterator[None]:
    reset_module_flags()
    yield
    reset_module_flags()


def test_parse_recognizes_boolean_words() -> None:
    assert parse_bool_word(" Yes ") is True
    assert parse_bool_word("off") is False
    assert parse_bool_word("maybe") is None


def test_parse_ignores_comments_unknown_keys_and_bad_values() -> None:
    blob = "\n".join(
        [
            "# feature modules",
            "graphView: true",
            "cognitiveNotes: sometimes",
            "not a pair",
            "cognitiveNotes: on  # enabled for beta",
        ]
    )

    flags = parse_module_flags(blob)

    assert flags == ModuleFlags(cognitive_notes=True)
    assert flags.is_enabled("graphView") is False


def test_flags_default_to_built_in_blob(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(MODULES_FILE_ENV, raising=False)

    assert module_flags().is_enabled("cognitiveNotes") is True


def test_flags_are_read_once_per_process(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    blob = tmp_path / "notes_index_modules.yml"
    blob.write_text("cognitiveNotes: false\n", encoding="utf-8")
    monkeypatch.setenv(MODULES_FILE_ENV, str(tmp_path))

    first = module_flags()
    blob.write_text("cognitiveNotes: true\n", encoding="utf-8")

    assert first.is_enabled("cognitiveNotes") is False
    assert module_flags() is first
    reset_module_flags()
    assert module_flags().is_enabled("cognitiveNotes") is True
