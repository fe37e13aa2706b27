"""
Value Mapper Backend — Segment Suggestions

Suggests 3-6 candidate customer segments before a canvas is built, so the
user can pick the one primary segment the canvas will target.
"""

import asyncio

from valuemap import llm, prompts, scraper
from valuemap.config import log
from valuemap.models import SegmentSuggestionList, SuggestedSegment
from valuemap.scraper import WebsiteCache

WEBSITE_TIMEOUT_SECONDS = 10.0
LLM_TIMEOUT_SECONDS = 20.0
MIN_SEGMENTS = 3
MAX_SEGMENTS = 6

FALLBACK_SEGMENTS = (
    ("Primary users", "user", "medium"),
    ("Economic buyers", "buyer", "medium"),
    ("Influencers", "influencer", "low"),
)


async def suggest_segments(
    product_name: str,
    description: str,
    website_url: str | None,
    cache: WebsiteCache,
    request_id: str | None = None,
) -> list[SuggestedSegment]:
    website_content = await _website_with_budget(website_url, cache, request_id)

    async def generate() -> list[SuggestedSegment] | None:
        result = await llm.call_llm_structured(
            prompts.build_segment_suggestion_prompt(product_name, description, website_content),
            SegmentSuggestionList,
            temperature=0.7,
            max_tokens=1500,
            timeout=LLM_TIMEOUT_SECONDS,
            request_id=request_id,
        )
        if result is None:
            return None
        labels: list[str] = []
        segments = []
        for draft in result.segments:
            label = draft.label.strip()
            if not label or label.lower() in labels:
                continue
            labels.append(label.lower())
            segments.append(
                SuggestedSegment(
                    id=f"segment-{len(segments) + 1}",
                    label=label,
                    type=draft.type,
                    confidence=draft.confidence,
                )
            )
        if len(segments) < MIN_SEGMENTS:
            log("WARN", "too few segment suggestions", request_id=request_id, returned=len(segments))
            return None
        return segments[:MAX_SEGMENTS]

    return await llm.with_fallback(generate, fallback_segments, stage="segments", request_id=request_id)


async def _website_with_budget(url: str | None, cache: WebsiteCache, request_id: str | None) -> str:
    """Crawl under a fixed time budget; when it runs out the crawl is cancelled and partial text used."""
    if not url:
        return ""
    cancel_event = asyncio.Event()
    handle = asyncio.get_running_loop().call_later(WEBSITE_TIMEOUT_SECONDS, cancel_event.set)
    try:
        return await scraper.get_website_content(url, cache, cancel_event=cancel_event)
    finally:
        handle.cancel()
        if cancel_event.is_set():
            log("WARN", "website crawl hit time budget", request_id=request_id, url=url)


def fallback_segments() -> list[SuggestedSegment]:
    return [
        SuggestedSegment(id=f"segment-{i + 1}", label=label, type=role, confidence=confidence)
        for i, (label, role, confidence) in enumerate(FALLBACK_SEGMENTS)
    ]
