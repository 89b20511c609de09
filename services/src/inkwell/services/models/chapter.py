"""Pydantic models for chapters and the edit history."""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import ConfigDict, Field

from ._camel import CamelModel


def _utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


class ChapterRecord(CamelModel):
    """A chapter's canonical plain text as held by the chapter store."""

    id: str = Field(min_length=1)
    document_id: str | None = None
    title: str = ""
    index: int = Field(default=0, ge=0)
    text: str
    language: str = "en"
    updated_at: datetime = Field(default_factory=_utc_now)


class ChapterUpdateRequest(CamelModel):
    """Autosave payload for ``PUT /chapters/{chapter_id}``."""

    content: str = Field(min_length=1)


class EditOperationRecord(CamelModel):
    """Append-only audit entry for one applied edit."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    chapter_id: str
    selection_start: int
    selection_end: int
    instruction: str
    original: str
    result: str
    model: str
    latency_ms: int = Field(ge=0)
    created_at: datetime = Field(default_factory=_utc_now)


__all__ = ["ChapterRecord", "ChapterUpdateRequest", "EditOperationRecord"]
