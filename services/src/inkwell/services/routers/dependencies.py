"""Dependency injection helpers for FastAPI routers."""

from __future__ import annotations

from typing import cast

from fastapi import Request

from ..config import ServiceSettings
from ..history import HistoryStore
from ..rewrite_service import RewriteService
from ..search_index import SearchIndex
from ..storage import ChapterStore

__all__ = [
    "get_chapter_store",
    "get_history_store",
    "get_rewrite_service",
    "get_search_index",
    "get_settings",
]


def get_settings(request: Request) -> ServiceSettings:
    """Return the service settings configured for the application."""

    return cast(ServiceSettings, request.app.state.settings)


def get_chapter_store(request: Request) -> ChapterStore:
    return cast(ChapterStore, request.app.state.chapter_store)


def get_search_index(request: Request) -> SearchIndex:
    return cast(SearchIndex, request.app.state.search_index)


def get_history_store(request: Request) -> HistoryStore:
    return cast(HistoryStore, request.app.state.history_store)


def get_rewrite_service(request: Request) -> RewriteService:
    """Return the rewrite orchestrator wired on the application state."""

    return cast(RewriteService, request.app.state.rewrite_service)
