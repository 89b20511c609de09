"""Best-effort web context for ``:online`` rewrites."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import parse_qs, urlencode, urlparse

import httpx
from bs4 import BeautifulSoup

from .config import ServiceSettings

LOGGER = logging.getLogger(__name__)

SEARCH_ENDPOINT = "https://html.duckduckgo.com/html/"
USER_AGENT = "InkwellBot/1.0 (+https://localhost)"
HEADER = "WEB CONTEXT:\n"
MAX_QUERY_CHARS = 200
SELECTION_SUMMARY_CHARS = 160

_NON_WORD_RE = re.compile(r"[^\w\s]|_")
_WHITESPACE_RE = re.compile(r"\s+")
_TRAILING_BLANKS_RE = re.compile(r"[ \t]+\n")
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class SearchResult:
    title: str
    url: str


@dataclass(frozen=True)
class ContextSnippet:
    title: str
    url: str
    snippet: str


class WebContextProvider(Protocol):
    async def build(self, *, instruction: str, selection: str) -> str:
        ...


def build_query(instruction: str, selection: str) -> str:
    cleaned = _NON_WORD_RE.sub(" ", instruction).strip()
    summary = _WHITESPACE_RE.sub(" ", selection[:SELECTION_SUMMARY_CHARS])
    return f"{cleaned} {summary}".strip()[:MAX_QUERY_CHARS]


def html_to_text(html: str) -> str:
    """Flatten an HTML page to readable plain text."""

    soup = BeautifulSoup(html, "html.parser")
    for node in soup(["script", "style", "noscript"]):
        node.decompose()
    text = soup.get_text()
    text = text.replace("\r", "").replace("\u00a0", " ")
    text = _TRAILING_BLANKS_RE.sub("\n", text)
    text = _EXCESS_NEWLINES_RE.sub("\n\n", text)
    return text.strip()


def parse_search_results(html: str, limit: int) -> list[SearchResult]:
    """Pull ``(title, target url)`` pairs out of a DuckDuckGo HTML results page."""

    soup = BeautifulSoup(html, "html.parser")
    results: list[SearchResult] = []
    for anchor in soup.select("a.result__a"):
        if len(results) >= limit:
            break
        href = anchor.get("href") or ""
        if isinstance(href, list):
            href = href[0] if href else ""
        if href.startswith("//"):
            href = f"https:{href}"
        target = parse_qs(urlparse(href).query).get("uddg")
        if not target or not target[0]:
            continue
        results.append(SearchResult(title=anchor.get_text().strip(), url=target[0]))
    return results


def format_context(query: str, snippets: list[ContextSnippet]) -> str:
    if not snippets:
        return f"{HEADER}[No context retrieved for query: {query}]"
    blocks = [
        f"[{index}] {item.title} — {item.url}\n{item.snippet}"
        for index, item in enumerate(snippets, start=1)
    ]
    return HEADER + "\n\n".join(blocks)


class DuckDuckGoContextProvider:
    """Search DuckDuckGo and summarise the top hits as a WEB CONTEXT block.

    Every failure degrades to fewer (or zero) snippets; this provider never
    raises for network problems.
    """

    def __init__(
        self,
        settings: ServiceSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = settings.web_timeout_seconds
        self._max_results = settings.web_max_results
        self._snippet_chars = settings.web_snippet_chars
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    async def build(self, *, instruction: str, selection: str) -> str:
        query = build_query(instruction, selection)
        if not query:
            return HEADER

        async with self._client() as client:
            results = await self._search(client, query)
            fetched = await asyncio.gather(*(self._fetch_snippet(client, result) for result in results))
        snippets = [item for item in fetched if item is not None and item.snippet]
        LOGGER.info(
            "online_context.built",
            extra={"extra_payload": {"results": len(results), "snippets": len(snippets)}},
        )
        return format_context(query, snippets)

    async def _search(self, client: httpx.AsyncClient, query: str) -> list[SearchResult]:
        url = f"{SEARCH_ENDPOINT}?{urlencode({'q': query, 'ia': 'web'})}"
        try:
            response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            LOGGER.warning("online_context.search_failed", extra={"extra_payload": {"error": str(exc)}})
            return []
        return parse_search_results(response.text, self._max_results)

    async def _fetch_snippet(self, client: httpx.AsyncClient, result: SearchResult) -> ContextSnippet | None:
        try:
            response = await client.get(result.url, headers={"Accept": "text/html,application/xhtml+xml"})
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            LOGGER.warning(
                "online_context.fetch_failed",
                extra={"extra_payload": {"url": result.url, "error": str(exc)}},
            )
            return None
        if response.is_error:
            return None
        try:
            text = html_to_text(response.text)[: self._snippet_chars]
        except Exception as exc:  # noqa: BLE001 - a bad page only loses its snippet
            LOGGER.warning(
                "online_context.parse_failed",
                extra={"extra_payload": {"url": result.url, "error": repr(exc)}},
            )
            return None
        return ContextSnippet(title=result.title, url=result.url, snippet=text)


__all__ = [
    "ContextSnippet",
    "DuckDuckGoContextProvider",
    "SearchResult",
    "WebContextProvider",
    "build_query",
    "format_context",
    "html_to_text",
    "parse_search_results",
]
