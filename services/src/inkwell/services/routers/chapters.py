"""Chapter read, autosave and edit history endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from ..config import ServiceSettings
from ..history import HistoryStore
from ..http import default_error_responses
from ..models.chapter import ChapterUpdateRequest
from ..search_index import SearchIndex
from ..service_errors import ServiceError
from ..storage import ChapterStore
from .dependencies import get_chapter_store, get_history_store, get_search_index, get_settings

router = APIRouter(prefix="/chapters", tags=["chapters"], responses=default_error_responses())


@router.get("/{chapter_id}")
async def get_chapter(
    chapter_id: str,
    store: ChapterStore = Depends(get_chapter_store),
) -> dict[str, Any]:
    return {"chapter": store.get(chapter_id).to_payload()}


@router.put("/{chapter_id}")
async def save_chapter(
    chapter_id: str,
    payload: dict[str, Any],
    store: ChapterStore = Depends(get_chapter_store),
    index: SearchIndex = Depends(get_search_index),
) -> dict[str, Any]:
    """Autosave the chapter text and refresh its search entry."""

    content = payload.get("content")
    if not isinstance(content, str) or not content:
        raise ServiceError("Invalid content", code="VALIDATION", details={"field": "content"})
    update = ChapterUpdateRequest(content=content)

    chapter = store.get(chapter_id)
    updated_at = store.put(chapter_id, update.content)
    index.index(chapter_id, update.content, chapter.document_id)
    return {"ok": True, "updatedAt": updated_at.isoformat()}


@router.get("/{chapter_id}/history")
async def chapter_history(
    chapter_id: str,
    limit: int | None = Query(default=None, ge=1, le=500),
    history: HistoryStore = Depends(get_history_store),
    settings: ServiceSettings = Depends(get_settings),
) -> dict[str, Any]:
    """Return the chapter's edit operations, newest first."""

    records = history.list(chapter_id, limit or settings.history_default_limit)
    return {"edits": [record.to_payload() for record in records]}


__all__ = ["chapter_history", "get_chapter", "router", "save_chapter"]
