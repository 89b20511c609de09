"""File-backed chapter store."""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from .models.chapter import ChapterRecord
from .persistence import write_json_atomic
from .service_errors import ChapterNotFoundError, InternalServiceError, RewriteValidationError

LOGGER = logging.getLogger(__name__)

_CHAPTER_ID_RE = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


class ChapterStore(Protocol):
    def get(self, chapter_id: str) -> ChapterRecord:
        ...

    def put(self, chapter_id: str, text: str) -> datetime:
        ...

    def list_chapters(self, document_id: str | None = None) -> list[ChapterRecord]:
        ...


def validate_chapter_id(chapter_id: str) -> str:
    """Reject identifiers that could escape the chapters directory."""

    if not _CHAPTER_ID_RE.match(chapter_id or ""):
        raise RewriteValidationError(
            "Invalid chapter identifier.",
            details={"chapter_id": chapter_id},
        )
    return chapter_id


class FileChapterStore:
    """One JSON document per chapter under ``<data_dir>/chapters``."""

    def __init__(self, root: Path) -> None:
        self._root = root
        self._root.mkdir(parents=True, exist_ok=True)

    def _path(self, chapter_id: str) -> Path:
        return self._root / f"{validate_chapter_id(chapter_id)}.json"

    def get(self, chapter_id: str) -> ChapterRecord:
        path = self._path(chapter_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise ChapterNotFoundError(details={"chapter_id": chapter_id}) from exc
        try:
            return ChapterRecord.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            LOGGER.error("storage.corrupt_chapter", extra={"extra_payload": {"chapter_id": chapter_id}})
            raise InternalServiceError(details={"chapter_id": chapter_id}) from exc

    def create(self, record: ChapterRecord) -> ChapterRecord:
        write_json_atomic(self._path(record.id), record.to_payload())
        return record

    def put(self, chapter_id: str, text: str) -> datetime:
        """Replace the chapter text and return the new ``updated_at``."""

        current = self.get(chapter_id)
        updated_at = datetime.now(tz=timezone.utc)
        updated = current.model_copy(update={"text": text, "updated_at": updated_at})
        write_json_atomic(self._path(chapter_id), updated.to_payload())
        LOGGER.info(
            "storage.chapter_saved",
            extra={"extra_payload": {"chapter_id": chapter_id, "chars": len(text)}},
        )
        return updated_at

    def list_chapters(self, document_id: str | None = None) -> list[ChapterRecord]:
        """Return stored chapters ordered by document, then chapter index.

        Unreadable files are logged and skipped so one bad chapter does not hide
        the rest of a document.
        """

        records: list[ChapterRecord] = []
        for path in self._root.glob("*.json"):
            try:
                record = ChapterRecord.model_validate(json.loads(path.read_text(encoding="utf-8")))
            except (OSError, json.JSONDecodeError, ValidationError):
                LOGGER.warning("storage.unreadable_chapter", extra={"extra_payload": {"file": path.name}})
                continue
            if document_id is None or record.document_id == document_id:
                records.append(record)
        records.sort(key=lambda record: (record.document_id or "", record.index, record.id))
        return records


__all__ = ["ChapterStore", "FileChapterStore", "validate_chapter_id"]
