"""Model catalogue endpoint."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from ..models.catalogue import MODEL_OPTIONS

router = APIRouter(tags=["models"])


@router.get("/models")
async def list_models() -> dict[str, Any]:
    return {"models": list(MODEL_OPTIONS), "supportsOnlineSuffix": True}


__all__ = ["list_models", "router"]
