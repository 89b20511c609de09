"""API v1 aggregate router."""

from __future__ import annotations

from fastapi import APIRouter

from .catalogue import router as catalogue_router
from .chapters import router as chapters_router
from .documents import router as documents_router
from .rewrite import router as rewrite_router
from .search import router as search_router

router = APIRouter(prefix="/api/v1")
router.include_router(rewrite_router)
router.include_router(chapters_router)
router.include_router(documents_router)
router.include_router(search_router)
router.include_router(catalogue_router)

__all__ = ["router"]
