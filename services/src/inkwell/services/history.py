"""Append-only edit history, one JSONL file per chapter."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from .models.chapter import EditOperationRecord
from .persistence import append_jsonl
from .storage import validate_chapter_id

LOGGER = logging.getLogger(__name__)


class HistoryStore(Protocol):
    def append(self, record: EditOperationRecord) -> None:
        ...

    def list(self, chapter_id: str, limit: int = 20) -> list[EditOperationRecord]:
        ...


class JsonlHistoryStore:
    """Edit operations stored under ``<history_dir>/edits/<chapter_id>.jsonl``."""

    def __init__(self, history_root: Path) -> None:
        self._root = history_root / "edits"

    def _path(self, chapter_id: str) -> Path:
        return self._root / f"{validate_chapter_id(chapter_id)}.jsonl"

    def append(self, record: EditOperationRecord) -> None:
        append_jsonl(self._path(record.chapter_id), record.model_dump(mode="json"))

    def list(self, chapter_id: str, limit: int = 20) -> list[EditOperationRecord]:
        """Return up to ``limit`` records, newest first."""

        path = self._path(chapter_id)
        if limit <= 0 or not path.exists():
            return []
        records: list[EditOperationRecord] = []
        with path.open("r", encoding="utf-8") as handle:
            for line_no, line in enumerate(handle, start=1):
                if not line.strip():
                    continue
                try:
                    records.append(EditOperationRecord.model_validate(json.loads(line)))
                except (json.JSONDecodeError, ValidationError):
                    LOGGER.warning(
                        "history.skip_corrupt_line",
                        extra={"extra_payload": {"chapter_id": chapter_id, "line": line_no}},
                    )
        # Stable sort keeps append order for records sharing a timestamp.
        ordered = sorted(enumerate(records), key=lambda item: (item[1].created_at, item[0]), reverse=True)
        return [record for _, record in ordered[:limit]]


__all__ = ["HistoryStore", "JsonlHistoryStore"]
