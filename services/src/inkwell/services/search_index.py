"""SQLite FTS5 index of chapter text."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Protocol

LOGGER = logging.getLogger(__name__)

_SCHEMA = (
    "CREATE VIRTUAL TABLE IF NOT EXISTS chapter_search "
    "USING fts5(chapter_id UNINDEXED, document_id UNINDEXED, text)"
)


@dataclass(frozen=True)
class SearchHit:
    chapter_id: str
    snippet: str


class SearchIndex(Protocol):
    def index(self, chapter_id: str, text: str, document_id: str | None = None) -> None:
        ...

    def search(self, document_id: str, query: str, limit: int = 10) -> list[SearchHit]:
        ...


def _fts_query(query: str) -> str:
    """Quote each term so user input cannot inject FTS5 operators."""

    terms = [term.replace('"', '""') for term in query.split()]
    return " ".join(f'"{term}"' for term in terms if term)


class SqliteSearchIndex:
    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = Lock()
        path.parent.mkdir(parents=True, exist_ok=True)
        with closing(self._connect()) as conn, conn:
            conn.execute(_SCHEMA)

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._path)

    def index(self, chapter_id: str, text: str, document_id: str | None = None) -> None:
        """Replace the indexed text for ``chapter_id``."""

        with self._lock, closing(self._connect()) as conn, conn:
            if document_id is None:
                row = conn.execute(
                    "SELECT document_id FROM chapter_search WHERE chapter_id = ?",
                    (chapter_id,),
                ).fetchone()
                document_id = row[0] if row else ""
            conn.execute("DELETE FROM chapter_search WHERE chapter_id = ?", (chapter_id,))
            conn.execute(
                "INSERT INTO chapter_search (chapter_id, document_id, text) VALUES (?, ?, ?)",
                (chapter_id, document_id, text),
            )
        LOGGER.debug("search.indexed", extra={"extra_payload": {"chapter_id": chapter_id}})

    def search(self, document_id: str, query: str, limit: int = 10) -> list[SearchHit]:
        match = _fts_query(query)
        if not match or limit <= 0:
            return []
        with closing(self._connect()) as conn:
            rows = conn.execute(
                "SELECT chapter_id, snippet(chapter_search, 2, '[', ']', '…', 12) "
                "FROM chapter_search WHERE chapter_search MATCH ? AND document_id = ? "
                "ORDER BY rank LIMIT ?",
                (match, document_id, limit),
            ).fetchall()
        return [SearchHit(chapter_id=row[0], snippet=row[1]) for row in rows]


__all__ = ["SearchHit", "SearchIndex", "SqliteSearchIndex"]
