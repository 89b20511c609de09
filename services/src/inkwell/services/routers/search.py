"""Full-text chapter search endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from ..http import default_error_responses
from ..search_index import SearchIndex
from ..service_errors import ServiceError
from .dependencies import get_search_index

router = APIRouter(tags=["search"], responses=default_error_responses())


@router.get("/search")
async def search_chapters(
    doc_id: str | None = Query(default=None),
    doc_id_camel: str | None = Query(default=None, alias="docId"),
    q: str | None = Query(default=None),
    limit: int = Query(default=10, ge=1, le=100),
    index: SearchIndex = Depends(get_search_index),
) -> dict[str, Any]:
    doc_id = doc_id or doc_id_camel
    if not doc_id or not q:
        raise ServiceError("Missing docId or q", code="VALIDATION")
    hits = index.search(doc_id, q, limit)
    return {"hits": [{"chapterId": hit.chapter_id, "snippet": hit.snippet} for hit in hits]}


__all__ = ["router", "search_chapters"]
