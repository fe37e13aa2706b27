"""
Value Mapper Backend — Web Lookups

Market snippets for the research stage. Providers are tried in order,
Tavily, Serper, then DuckDuckGo; the first one that answers wins.
"""

import asyncio
import time
from dataclasses import dataclass

import httpx
from duckduckgo_search import DDGS

from valuemap.config import settings, log, generate_error_code


@dataclass
class SearchResult:
    title: str
    url: str
    snippet: str


class SearchError(Exception):
    pass


DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; ValueMapper/1.0)"
SEARCH_TIMEOUT_SECONDS = 10.0

TAVILY_URL = "https://api.tavily.com/search"
SERPER_URL = "https://google.serper.dev/search"


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


async def search(query: str, num_results: int = 5) -> list[SearchResult]:
    """
    Look up a query, falling through the provider chain.

    Providers without a configured key are skipped; DuckDuckGo needs none.
    Never raises: an empty list means every provider failed.
    """
    providers = []
    if settings.tavily_api_key:
        providers.append(("tavily", _tavily_search))
    if settings.serper_api_key:
        providers.append(("serper", _serper_search))
    providers.append(("ddg", _duckduckgo_search))

    log("INFO", "lookup started", query=query, providers=",".join(name for name, _ in providers))
    start = time.monotonic()
    last_error: Exception | None = None

    for name, provider in providers:
        try:
            results = await provider(query, num_results)
        except SearchError as e:
            last_error = e
            log("WARN", "lookup provider failed", provider=name, error=str(e))
            continue
        log("INFO", "lookup completed", provider=name, results_count=len(results), duration_ms=_elapsed_ms(start))
        return results

    code = generate_error_code()
    log("ERROR", "lookup failed on every provider", query=query, error=str(last_error), error_code=code, duration_ms=_elapsed_ms(start))
    return []


async def _post_json(url: str, payload: dict, headers: dict | None = None) -> dict:
    try:
        async with httpx.AsyncClient(timeout=SEARCH_TIMEOUT_SECONDS, headers={"User-Agent": DEFAULT_USER_AGENT}) as client:
            response = await client.post(url, json=payload, headers=headers)
            response.raise_for_status()
            return response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise SearchError(str(e) or type(e).__name__) from e


async def _tavily_search(query: str, num_results: int = 5) -> list[SearchResult]:
    data = await _post_json(
        TAVILY_URL,
        {"api_key": settings.tavily_api_key, "query": query, "max_results": num_results, "search_depth": "basic"},
    )
    return [
        SearchResult(title=r.get("title", ""), url=r.get("url", ""), snippet=r.get("content", ""))
        for r in data.get("results", [])
    ]


async def _serper_search(query: str, num_results: int = 5) -> list[SearchResult]:
    data = await _post_json(
        SERPER_URL,
        {"q": query, "num": num_results},
        headers={"X-API-KEY": settings.serper_api_key, "Content-Type": "application/json"},
    )
    return [
        SearchResult(title=r.get("title", ""), url=r.get("link", ""), snippet=r.get("snippet", ""))
        for r in data.get("organic", [])
    ]


async def _duckduckgo_search(query: str, num_results: int = 5) -> list[SearchResult]:
    """DuckDuckGo has no async client; the sync one runs in a worker thread."""
    def _sync_search() -> list[SearchResult]:
        return [
            SearchResult(title=r.get("title", ""), url=r.get("href", ""), snippet=r.get("body", ""))
            for r in DDGS().text(query, max_results=num_results)
        ]

    try:
        return await asyncio.wait_for(asyncio.to_thread(_sync_search), timeout=SEARCH_TIMEOUT_SECONDS)
    except Exception as e:
        raise SearchError(str(e) or type(e).__name__) from e
