"""Document and chapter listing endpoints."""

from __future__ import annotations

from collections import Counter
from typing import Any

from fastapi import APIRouter, Depends

from ..http import default_error_responses
from ..storage import ChapterStore
from .dependencies import get_chapter_store

router = APIRouter(prefix="/docs", tags=["documents"], responses=default_error_responses())


@router.get("")
async def list_documents(store: ChapterStore = Depends(get_chapter_store)) -> dict[str, Any]:
    """Return every document that owns at least one stored chapter."""

    counts = Counter(record.document_id for record in store.list_chapters() if record.document_id)
    return {"documents": [{"id": doc_id, "chapterCount": counts[doc_id]} for doc_id in sorted(counts)]}


@router.get("/{doc_id}/chapters")
async def list_document_chapters(
    doc_id: str,
    store: ChapterStore = Depends(get_chapter_store),
) -> dict[str, Any]:
    chapters = [
        record.model_dump(mode="json", by_alias=True, exclude={"text", "document_id"})
        for record in store.list_chapters(doc_id)
    ]
    return {"chapters": chapters}


__all__ = ["list_document_chapters", "list_documents", "router"]
