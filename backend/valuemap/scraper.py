"""
Value Mapper Backend — Website Crawling

Bounded breadth-first crawl (root page + same-host links) with BeautifulSoup
extraction, external cancellation, and an injectable TTL cache.
"""

import asyncio
import re
import time
from collections import OrderedDict
from typing import Callable
from urllib.parse import urldefrag, urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from valuemap.config import log

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36"
)

MAX_PAGES = 15
MAX_LINKS_PER_PAGE = 10
MAX_CONTENT_CHARS = 50_000
PAGE_BODY_CHARS = 3000
PAGE_TIMEOUT_SECONDS = 8.0
CRAWL_DELAY_SECONDS = 0.3
CACHE_TTL_SECONDS = 300

IMPORTANT_LINK_KEYWORDS = (
    "about", "features", "pricing", "product", "solution",
    "how-it-works", "benefits", "use-cases",
)


class ScraperError(Exception):
    pass


class CrawlCancelled(Exception):
    """The crawl's cancel event was set while a page was being fetched."""

    pass


# -----------------------------------------------------------------------------
# Cache
# -----------------------------------------------------------------------------


class WebsiteCache:
    """In-memory URL → crawled text store with TTL expiry and LRU bounding.

    Expired entries are evicted on lookup and never served. The clock is
    injectable so tests can move time forward.
    """

    def __init__(
        self,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        max_entries: int = 128,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, str]] = OrderedDict()

    def get(self, url: str) -> str | None:
        entry = self._entries.get(url)
        if entry is None:
            return None
        stored_at, content = entry
        if self._clock() - stored_at >= self.ttl_seconds:
            del self._entries[url]
            return None
        self._entries.move_to_end(url)
        return content

    def set(self, url: str, content: str) -> None:
        self._entries[url] = (self._clock(), content)
        self._entries.move_to_end(url)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------


async def get_website_content(
    url: str | None,
    cache: WebsiteCache,
    *,
    cancel_event: asyncio.Event | None = None,
    client: httpx.AsyncClient | None = None,
) -> str:
    """Return crawled text for url, served from cache within the TTL.

    Partial text from a cancelled crawl is returned but not cached.
    """
    if not url:
        return ""

    cached = cache.get(url)
    if cached is not None:
        log("INFO", "website cache hit", url=url, content_length=len(cached))
        return cached

    content = await crawl_website(url, cancel_event=cancel_event, client=client)
    if cancel_event is not None and cancel_event.is_set():
        log("INFO", "crawl cancelled, partial content not cached", url=url, content_length=len(content))
        return content

    cache.set(url, content)
    return content


async def crawl_website(
    url: str,
    *,
    max_depth: int = 1,
    cancel_event: asyncio.Event | None = None,
    client: httpx.AsyncClient | None = None,
) -> str:
    """
    Crawl the root page and same-host links breadth-first.

    Links whose URL contains an important keyword are visited first.
    A failed page is skipped. Setting cancel_event stops the crawl, including
    the in-flight fetch, and returns whatever text was already collected.

    Args:
        url: Root URL (scheme optional, https assumed).
        max_depth: Link depth to follow from the root (0 = root only).
        cancel_event: Optional event that aborts the crawl when set.
        client: Optional httpx client (one is created when omitted).

    Returns:
        Page texts joined by a space, truncated to MAX_CONTENT_CHARS.
    """
    root = normalize_root_url(url)
    if root is None:
        log("WARN", "crawl skipped, invalid url", url=url)
        return ""

    if client is None:
        async with httpx.AsyncClient(
            timeout=PAGE_TIMEOUT_SECONDS,
            follow_redirects=True,
            headers={"User-Agent": DEFAULT_USER_AGENT},
        ) as owned_client:
            return await _crawl(root, max_depth, cancel_event, owned_client)
    return await _crawl(root, max_depth, cancel_event, client)


async def _crawl(
    root: str,
    max_depth: int,
    cancel_event: asyncio.Event | None,
    client: httpx.AsyncClient,
) -> str:
    log("INFO", "crawl started", url=root, max_depth=max_depth, max_pages=MAX_PAGES)
    start = time.monotonic()

    host = urlparse(root).hostname
    queue: list[tuple[str, int]] = [(root, 0)]
    queued: set[str] = {root}
    pages: list[str] = []
    visited = 0

    while queue and visited < MAX_PAGES:
        if cancel_event is not None and cancel_event.is_set():
            log("INFO", "crawl cancelled", url=root, pages=len(pages))
            break

        page_url, depth = queue.pop(0)
        visited += 1

        try:
            html = await _fetch_page(client, page_url, cancel_event)
        except CrawlCancelled:
            log("INFO", "crawl cancelled mid-fetch", url=page_url, pages=len(pages))
            break
        except ScraperError as e:
            log("WARN", "page fetch failed, skipping", url=page_url, error=str(e))
            continue

        text, links = extract_page(html, page_url)
        if text:
            pages.append(text)

        if depth < max_depth:
            for link in _same_host_links(links, host)[:MAX_LINKS_PER_PAGE]:
                if link in queued:
                    continue
                queued.add(link)
                if _is_important_link(link):
                    queue.insert(0, (link, depth + 1))
                else:
                    queue.append((link, depth + 1))

        if queue and CRAWL_DELAY_SECONDS:
            await asyncio.sleep(CRAWL_DELAY_SECONDS)

    content = _truncate_content(" ".join(pages), MAX_CONTENT_CHARS)
    log(
        "INFO",
        "crawl completed",
        url=root,
        pages=len(pages),
        content_length=len(content),
        duration_ms=int((time.monotonic() - start) * 1000),
    )
    return content


async def _fetch_page(
    client: httpx.AsyncClient,
    url: str,
    cancel_event: asyncio.Event | None,
) -> str:
    """Fetch one page, racing the request against the cancel event."""
    if cancel_event is None:
        return await _get_html(client, url)

    fetch = asyncio.ensure_future(_get_html(client, url))
    cancelled = asyncio.ensure_future(cancel_event.wait())
    try:
        done, _ = await asyncio.wait({fetch, cancelled}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for waiter in (fetch, cancelled):
            if not waiter.done():
                waiter.cancel()

    if fetch not in done:
        raise CrawlCancelled(url)
    return fetch.result()


async def _get_html(client: httpx.AsyncClient, url: str) -> str:
    try:
        response = await client.get(
            url,
            headers={"User-Agent": DEFAULT_USER_AGENT},
            timeout=PAGE_TIMEOUT_SECONDS,
            follow_redirects=True,
        )
        response.raise_for_status()
    except (httpx.HTTPError, httpx.RequestError) as e:
        raise ScraperError(str(e) or type(e).__name__) from e
    return response.text


# -----------------------------------------------------------------------------
# Extraction
# -----------------------------------------------------------------------------


def extract_page(html: str, page_url: str) -> tuple[str, list[str]]:
    """
    Extract (text, links) from a page.

    Text = title + meta description + h1-h3 headings + truncated body text,
    with script/style/nav/footer/header removed. Links are collected before
    removal so navigation links are still discovered.
    """
    soup = BeautifulSoup(html, "html.parser")

    links = []
    for anchor in soup.find_all("a", href=True):
        normalized = normalize_link(anchor["href"], page_url)
        if normalized and normalized not in links:
            links.append(normalized)

    for tag in soup.find_all(["script", "style", "nav", "footer", "header"]):
        tag.decompose()

    title = soup.title.get_text(strip=True) if soup.title else ""
    meta = soup.find("meta", attrs={"name": "description"})
    meta_description = meta.get("content", "").strip() if meta else ""
    headings = " ".join(h.get_text(" ", strip=True) for h in soup.find_all(["h1", "h2", "h3"]))

    body = soup.body or soup
    body_text = re.sub(r"\s+", " ", body.get_text(" ")).strip()[:PAGE_BODY_CHARS]

    text = " ".join(part for part in (title, meta_description, headings, body_text) if part)
    return text, links


def normalize_root_url(url: str) -> str | None:
    """Add a scheme when missing; return None for non-http(s) or hostless input."""
    candidate = url.strip()
    if not candidate:
        return None
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    parsed = urlparse(candidate)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return None
    return urldefrag(candidate)[0]


def normalize_link(href: str, base_url: str) -> str | None:
    """Resolve href against base_url and drop the fragment; None for non-http(s) links."""
    href = href.strip()
    if not href or href.startswith(("mailto:", "tel:", "javascript:", "#")):
        return None
    absolute = urldefrag(urljoin(base_url, href))[0]
    parsed = urlparse(absolute)
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return None
    return absolute


def _same_host_links(links: list[str], host: str | None) -> list[str]:
    return [link for link in links if urlparse(link).hostname == host]


def _is_important_link(url: str) -> bool:
    lowered = url.lower()
    return any(keyword in lowered for keyword in IMPORTANT_LINK_KEYWORDS)


def _truncate_content(content: str, max_chars: int = MAX_CONTENT_CHARS) -> str:
    """Truncate at last complete sentence before max_chars."""
    if len(content) <= max_chars:
        return content
    truncated = content[:max_chars]
    last_sentence = max(
        truncated.rfind("."),
        truncated.rfind("!"),
        truncated.rfind("?"),
    )
    if last_sentence > max_chars // 2:
        return truncated[: last_sentence + 1].strip()
    return truncated.strip()
