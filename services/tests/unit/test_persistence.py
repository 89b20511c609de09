"""Unit tests for persistence helpers."""

from __future__ import annotations

import errno
import json
from pathlib import Path

import pytest

from inkwell.services import persistence


def test_write_json_atomic_replaces_content_without_temp_files(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "chapter.json"

    persistence.write_json_atomic(target, {"text": "héllo"}, durable=False)
    persistence.write_json_atomic(target, {"text": "second"}, durable=False)

    assert json.loads(target.read_text(encoding="utf-8")) == {"text": "second"}
    assert [path.name for path in target.parent.iterdir()] == ["chapter.json"]


def test_append_jsonl_writes_one_document_per_line(tmp_path: Path) -> None:
    target = tmp_path / "edits" / "ch1.jsonl"

    persistence.append_jsonl(target, {"n": 1}, durable=False)
    persistence.append_jsonl(target, {"n": 2, "text": "日本"}, durable=False)

    lines = target.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line) for line in lines] == [{"n": 1}, {"n": 2, "text": "日本"}]


def test_replace_file_retries_transient_errors(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    source = tmp_path / "temp.json"
    target = tmp_path / "target.json"
    source.write_text("{}", encoding="utf-8")
    original_replace = Path.replace
    attempts: list[Path] = []

    def flaky_replace(self: Path, destination: Path) -> Path:
        attempts.append(destination)
        if len(attempts) == 1:
            raise PermissionError(errno.EACCES, "file in use")
        return original_replace(self, destination)

    monkeypatch.setattr(Path, "replace", flaky_replace)
    monkeypatch.setattr(persistence.time, "sleep", lambda _: None)

    persistence.replace_file(source, target)

    assert len(attempts) == 2
    assert target.read_text(encoding="utf-8") == "{}"


def test_replace_file_raises_non_transient_errors(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    attempts: list[int] = []

    def broken_replace(self: Path, destination: Path) -> Path:
        attempts.append(1)
        raise OSError(errno.ENOSPC, "disk full")

    monkeypatch.setattr(Path, "replace", broken_replace)

    with pytest.raises(OSError):
        persistence.replace_file(tmp_path / "a", tmp_path / "b")
    assert attempts == [1]
