"""Pytest configuration for the services test suite."""

from __future__ import annotations

import sys
from collections.abc import AsyncIterator, Iterator
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient


def _ensure_src_on_path() -> None:
    """Add the services src directory to ``sys.path`` for imports."""

    src_dir = Path(__file__).resolve().parent.parent / "src"
    src_path = str(src_dir)
    if src_dir.is_dir() and src_path not in sys.path:
        sys.path.insert(0, src_path)


_ensure_src_on_path()

from inkwell.services.app import create_app  # noqa: E402
from inkwell.services.config import ServiceSettings  # noqa: E402
from inkwell.services.models.chapter import ChapterRecord  # noqa: E402
from inkwell.services.service_errors import ModelCallError  # noqa: E402

SAMPLE_TEXT = "The cat sat. It was red. The cat slept."
SAMPLE_SELECTION = (13, 24)


def chat_payload(content: Any) -> dict[str, Any]:
    """Return a minimal chat-completions response carrying ``content``."""

    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class FakeModelClient:
    """Scripted model client.

    Each queued item is a response payload, an exception to raise, or a
    callable receiving the call kwargs. Once the script runs out every call
    fails with ``ModelCallError``.
    """

    def __init__(self) -> None:
        self.script: list[Any] = []
        self.calls: list[dict[str, Any]] = []

    def queue(self, *items: Any) -> "FakeModelClient":
        self.script.extend(items)
        return self

    def queue_text(self, *texts: str) -> "FakeModelClient":
        return self.queue(*(chat_payload(text) for text in texts))

    async def complete(
        self,
        *,
        model: str,
        messages: Any,
        temperature: float,
        max_tokens: int,
    ) -> dict[str, Any]:
        call = {
            "model": model,
            "messages": [dict(message) for message in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        self.calls.append(call)
        if not self.script:
            raise ModelCallError("No scripted response left.")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        if callable(item):
            return item(**call)
        return item


class FakeWebContext:
    def __init__(self, block: str = "WEB CONTEXT:\n[1] Cats — https://example.com/cats\nCats nap often.") -> None:
        self.block = block
        self.calls: list[dict[str, str]] = []

    async def build(self, *, instruction: str, selection: str) -> str:
        self.calls.append({"instruction": instruction, "selection": selection})
        return self.block


@pytest.fixture()
def anyio_backend() -> str:
    """Force AnyIO to use the asyncio backend."""

    return "asyncio"


@pytest.fixture()
def settings(tmp_path: Path) -> ServiceSettings:
    return ServiceSettings(data_dir=tmp_path, openrouter_api_key="test-key")


@pytest.fixture()
def fake_model() -> FakeModelClient:
    return FakeModelClient()


@pytest.fixture()
def fake_web() -> FakeWebContext:
    return FakeWebContext()


@pytest.fixture()
def service_app(
    settings: ServiceSettings,
    fake_model: FakeModelClient,
    fake_web: FakeWebContext,
) -> Iterator[FastAPI]:
    """Provide the FastAPI application over a temporary data directory."""

    app = create_app(settings, model_client=fake_model, web_context=fake_web)
    yield app
    app.dependency_overrides.clear()


@pytest.fixture()
def seed_chapter(service_app: FastAPI) -> Callable[..., ChapterRecord]:
    """Create and index a chapter in the application's stores."""

    def _seed(
        chapter_id: str = "ch1",
        text: str = SAMPLE_TEXT,
        *,
        document_id: str = "doc1",
        language: str = "en",
    ) -> ChapterRecord:
        record = ChapterRecord(
            id=chapter_id,
            document_id=document_id,
            title=f"Chapter {chapter_id}",
            text=text,
            language=language,
        )
        service_app.state.chapter_store.create(record)
        service_app.state.search_index.index(chapter_id, text, document_id)
        return record

    return _seed


@pytest.fixture()
def test_client(service_app: FastAPI) -> Iterator[TestClient]:
    """Yield a test client bound to the shared FastAPI application."""

    with TestClient(service_app) as client:
        yield client


@pytest.fixture()
async def async_client(service_app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    """Provide an HTTPX async client bound to the FastAPI application."""

    transport = httpx.ASGITransport(app=service_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
