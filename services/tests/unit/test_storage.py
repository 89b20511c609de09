"""Tests for the chapter store, edit history and search index."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from inkwell.services.history import JsonlHistoryStore
from inkwell.services.models.chapter import ChapterRecord, EditOperationRecord
from inkwell.services.search_index import SearchHit, SqliteSearchIndex
from inkwell.services.service_errors import (
    ChapterNotFoundError,
    InternalServiceError,
    RewriteValidationError,
)
from inkwell.services.storage import FileChapterStore, validate_chapter_id

BASE_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _record(chapter_id: str = "ch1", text: str = "The cat sat.") -> ChapterRecord:
    return ChapterRecord(id=chapter_id, document_id="doc1", title="One", text=text, language="en")


def _edit(instruction: str, *, minutes: int = 0, chapter_id: str = "ch1") -> EditOperationRecord:
    return EditOperationRecord(
        chapter_id=chapter_id,
        selection_start=0,
        selection_end=3,
        instruction=instruction,
        original="The",
        result="A",
        model="openai/gpt-5",
        latency_ms=12,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


class TestFileChapterStore:
    def test_round_trip_and_put(self, tmp_path: Path) -> None:
        store = FileChapterStore(tmp_path / "chapters")
        store.create(_record())

        updated_at = store.put("ch1", "The dog sat.")

        loaded = store.get("ch1")
        assert loaded.text == "The dog sat."
        assert loaded.updated_at == updated_at
        assert loaded.document_id == "doc1"
        assert (tmp_path / "chapters" / "ch1.json").exists()

    def test_missing_chapter(self, tmp_path: Path) -> None:
        store = FileChapterStore(tmp_path)

        with pytest.raises(ChapterNotFoundError) as excinfo:
            store.get("ghost")
        assert excinfo.value.details == {"chapter_id": "ghost"}

        with pytest.raises(ChapterNotFoundError):
            store.put("ghost", "text")

    def test_corrupt_chapter_is_internal_error(self, tmp_path: Path) -> None:
        store = FileChapterStore(tmp_path)
        (tmp_path / "bad.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(InternalServiceError):
            store.get("bad")

    def test_list_chapters_filters_and_orders_by_index(self, tmp_path: Path) -> None:
        store = FileChapterStore(tmp_path)
        store.create(ChapterRecord(id="b", document_id="doc1", index=1, text="Two."))
        store.create(ChapterRecord(id="a", document_id="doc1", index=0, text="One."))
        store.create(ChapterRecord(id="c", document_id="doc2", index=0, text="Other."))
        (tmp_path / "bad.json").write_text("{not json", encoding="utf-8")

        assert [record.id for record in store.list_chapters("doc1")] == ["a", "b"]
        assert [record.id for record in store.list_chapters()] == ["a", "b", "c"]
        assert store.list_chapters("missing") == []

    @pytest.mark.parametrize("chapter_id", ["", "../etc", "a/b", "x" * 129, "ch 1"])
    def test_invalid_identifiers_are_rejected(self, chapter_id: str) -> None:
        with pytest.raises(RewriteValidationError):
            validate_chapter_id(chapter_id)

    def test_valid_identifier_passes(self) -> None:
        assert validate_chapter_id("chapter_01-b") == "chapter_01-b"


class TestJsonlHistoryStore:
    def test_list_is_newest_first_and_limited(self, tmp_path: Path) -> None:
        history = JsonlHistoryStore(tmp_path)
        for minutes, name in [(0, "first"), (5, "third"), (2, "second")]:
            history.append(_edit(name, minutes=minutes))

        assert [edit.instruction for edit in history.list("ch1")] == ["third", "second", "first"]
        assert [edit.instruction for edit in history.list("ch1", limit=1)] == ["third"]
        assert history.list("ch1", limit=0) == []
        assert (tmp_path / "edits" / "ch1.jsonl").exists()

    def test_same_timestamp_keeps_latest_append_first(self, tmp_path: Path) -> None:
        history = JsonlHistoryStore(tmp_path)
        history.append(_edit("primary"))
        history.append(_edit("adjustment"))

        assert [edit.instruction for edit in history.list("ch1")] == ["adjustment", "primary"]

    def test_corrupt_lines_are_skipped(self, tmp_path: Path) -> None:
        history = JsonlHistoryStore(tmp_path)
        history.append(_edit("kept"))
        path = tmp_path / "edits" / "ch1.jsonl"
        with path.open("a", encoding="utf-8") as handle:
            handle.write("{truncated\n\n")

        edits = history.list("ch1")

        assert [edit.instruction for edit in edits] == ["kept"]
        assert edits[0].created_at == BASE_TIME

    def test_unknown_chapter_has_no_history(self, tmp_path: Path) -> None:
        assert JsonlHistoryStore(tmp_path).list("nobody") == []


class TestSqliteSearchIndex:
    def test_search_is_scoped_and_highlighted(self, tmp_path: Path) -> None:
        index = SqliteSearchIndex(tmp_path / "search.sqlite3")
        index.index("ch1", "A storm gathered over the bay.", "doc1")
        index.index("ch2", "The storm broke at dawn.", "doc2")

        hits = index.search("doc1", "storm")

        assert hits == [SearchHit(chapter_id="ch1", snippet="A [storm] gathered over the bay.")]

    def test_reindex_replaces_text_and_keeps_document(self, tmp_path: Path) -> None:
        index = SqliteSearchIndex(tmp_path / "search.sqlite3")
        index.index("ch1", "Harbour lights.", "doc1")

        index.index("ch1", "Lighthouse beams.")

        assert index.search("doc1", "harbour") == []
        assert [hit.chapter_id for hit in index.search("doc1", "lighthouse")] == ["ch1"]

    def test_query_operators_are_treated_as_text(self, tmp_path: Path) -> None:
        index = SqliteSearchIndex(tmp_path / "search.sqlite3")
        index.index("ch1", "Cats AND dogs.", "doc1")

        assert index.search("doc1", 'NEAR( "dogs') == []
        assert index.search("doc1", "   ") == []
        assert [hit.chapter_id for hit in index.search("doc1", "cats dogs")] == ["ch1"]

    def test_limit_caps_results(self, tmp_path: Path) -> None:
        index = SqliteSearchIndex(tmp_path / "search.sqlite3")
        for number in range(4):
            index.index(f"ch{number}", "Rain again.", "doc1")

        assert len(index.search("doc1", "rain", limit=2)) == 2
        assert index.search("doc1", "rain", limit=0) == []
