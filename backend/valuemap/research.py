"""
Value Mapper Backend — Research Collector

Gathers context for the canvas prompts: crawled website text, concurrent web
lookups, and a structured research summary extracted by the LLM with a
keyword-sentence fallback.
"""

import asyncio
import re

from valuemap import llm, prompts, scraper, search
from valuemap.config import generate_error_code, log, settings
from valuemap.models import ResearchData, ResearchExtraction, UserInput
from valuemap.scraper import WebsiteCache

PAIN_KEYWORDS = (
    "frustration", "challenge", "difficulty", "problem", "issue", "barrier", "risk",
    "cost", "time", "inefficient", "struggle", "pain", "bottleneck", "inefficiency",
)
TRIGGER_KEYWORDS = (
    "scaling", "growth", "expansion", "new", "change", "upgrade",
    "compliance", "deadline", "budget", "hiring",
)
ALTERNATIVE_KEYWORDS = (
    "alternative", "competitor", "solution", "tool", "software",
    "platform", "service", "manual", "spreadsheet",
)

MAX_RESEARCH_PAINS = 10
MAX_TRIGGERS = 8
MAX_ALTERNATIVES = 8
LOOKUP_RESULTS_PER_QUERY = 5

DEFAULT_TRIGGERS = [
    "Rapid growth that outpaces current processes",
    "New compliance or reporting requirements",
    "Annual budget planning cycle",
]
DEFAULT_ALTERNATIVES = [
    "Existing in-house processes",
    "General-purpose tools not built for this job",
    "Doing nothing (status quo)",
]

FALLBACK_SOURCE = "research-fallback"


def build_lookup_queries(user_input: UserInput) -> list[str]:
    return [
        f"{user_input.product_name} market",
        f"{user_input.target_decision_maker} challenges",
        f"{user_input.product_name} alternatives",
        f"{user_input.target_decision_maker} pain points",
    ]


async def lookup_snippets(queries: list[str], request_id: str | None = None) -> list[str]:
    """Run all lookups concurrently and join their snippets.

    A failing lookup contributes nothing; it never fails the batch.
    """
    if not settings.research_lookups_enabled or not queries:
        return []

    results = await asyncio.gather(
        *(search.search(q, num_results=LOOKUP_RESULTS_PER_QUERY) for q in queries),
        return_exceptions=True,
    )

    snippets: list[str] = []
    for query, result in zip(queries, results):
        if isinstance(result, Exception):
            log("WARN", "lookup failed", request_id=request_id, query=query, error=str(result))
            continue
        snippets.extend(r.snippet for r in result if r.snippet)
    return snippets


async def conduct_research(
    user_input: UserInput,
    cache: WebsiteCache,
    *,
    cancel_event: asyncio.Event | None = None,
    request_id: str | None = None,
) -> tuple[ResearchData, str]:
    """
    Collect research for a product.

    The website crawl and the lookups run concurrently. The combined text
    goes through LLM extraction, falling back to keyword heuristics.

    Returns:
        (research, website_content). Never raises for collaborator failures.
    """
    log("INFO", "research started", request_id=request_id, product=user_input.product_name)

    website_result, snippets = await asyncio.gather(
        scraper.get_website_content(user_input.website_url, cache, cancel_event=cancel_event),
        lookup_snippets(build_lookup_queries(user_input), request_id=request_id),
        return_exceptions=True,
    )

    website_content = ""
    if isinstance(website_result, Exception):
        code = generate_error_code()
        log("ERROR", "website fetch failed", request_id=request_id, url=user_input.website_url, error=str(website_result), error_code=code)
    else:
        website_content = website_result

    if isinstance(snippets, Exception):
        log("WARN", "lookups failed", request_id=request_id, error=str(snippets))
        snippets = []

    combined = " ".join(part for part in [user_input.description, website_content, *snippets] if part)
    source = "website" if website_content else "research"

    research = await llm.with_fallback(
        lambda: extract_research_with_llm(combined, user_input, source, request_id=request_id),
        lambda: fallback_research(combined, user_input),
        stage="research",
        request_id=request_id,
    )
    log(
        "INFO",
        "research completed",
        request_id=request_id,
        source=research.source,
        pains=len(research.typical_pains),
        website_chars=len(website_content),
        snippets=len(snippets),
    )
    return research, website_content


async def extract_research_with_llm(
    text: str,
    user_input: UserInput,
    source: str,
    request_id: str | None = None,
) -> ResearchData | None:
    """Structured research via the LLM; None when unavailable or pain-less."""
    extraction = await llm.call_llm_structured(
        prompts.build_research_extraction_prompt(user_input, text),
        ResearchExtraction,
        temperature=0.3,
        max_tokens=2000,
        request_id=request_id,
    )
    if extraction is None:
        return None

    pains = _clean_items(extraction.typical_pains)[:MAX_RESEARCH_PAINS]
    if not pains:
        log("WARN", "research extraction returned no pains", request_id=request_id)
        return None

    return ResearchData(
        problem_space=extraction.problem_space.strip() or _fallback_problem_space(user_input),
        typical_pains=pains,
        buying_triggers=_clean_items(extraction.buying_triggers)[:MAX_TRIGGERS] or list(DEFAULT_TRIGGERS),
        competitive_alternatives=(
            _clean_items(extraction.competitive_alternatives)[:MAX_ALTERNATIVES] or list(DEFAULT_ALTERNATIVES)
        ),
        source=source,
    )


# -----------------------------------------------------------------------------
# Heuristic fallback
# -----------------------------------------------------------------------------


def fallback_research(text: str, user_input: UserInput) -> ResearchData:
    """Keyword-sentence extraction over the same text. Every list is non-empty."""
    return ResearchData(
        problem_space=_fallback_problem_space(user_input),
        typical_pains=extract_pains(text, user_input.description),
        buying_triggers=extract_buying_triggers(text, user_input.description),
        competitive_alternatives=extract_alternatives(text, user_input.description),
        source=FALLBACK_SOURCE,
    )


def split_sentences(text: str) -> list[str]:
    """Split on sentence punctuation, keeping 20 < len < 200, deduplicated in order."""
    sentences = []
    for raw in re.split(r"[.!?]+", text):
        sentence = raw.strip()
        if 20 < len(sentence) < 200 and sentence not in sentences:
            sentences.append(sentence)
    return sentences


def _matching_sentences(text: str, keywords: tuple[str, ...], exclude: str = "") -> list[str]:
    excluded = exclude.lower()
    return [
        s for s in split_sentences(text)
        if any(k in s.lower() for k in keywords) and not (excluded and s.lower() in excluded)
    ]


def extract_pains(text: str, description: str) -> list[str]:
    pains = _matching_sentences(text, PAIN_KEYWORDS)
    if len(pains) < 3:
        subject = description.strip().rstrip(".!?").lower() or "this work"
        pains.extend([
            f"Managing {subject} is time-consuming",
            f"Lack of tools for effective {subject}",
            f"Difficulty tracking and measuring {subject} outcomes",
        ])
    return pains[:MAX_RESEARCH_PAINS]


def extract_buying_triggers(text: str, description: str = "") -> list[str]:
    return _matching_sentences(text, TRIGGER_KEYWORDS, exclude=description)[:MAX_TRIGGERS] or list(DEFAULT_TRIGGERS)


def extract_alternatives(text: str, description: str = "") -> list[str]:
    """Sentences naming alternatives; sentences from the product description itself are skipped."""
    return _matching_sentences(text, ALTERNATIVE_KEYWORDS, exclude=description)[:MAX_ALTERNATIVES] or list(DEFAULT_ALTERNATIVES)


def _fallback_problem_space(user_input: UserInput) -> str:
    description = user_input.description.strip().rstrip(".!?").lower()
    return (
        f"The {user_input.target_decision_maker} faces challenges in {description}. "
        "Market research indicates growing complexity in this space."
    )


def _clean_items(items: list[str]) -> list[str]:
    cleaned = []
    for item in items:
        text = item.strip() if isinstance(item, str) else ""
        if text and len(text) < 200 and text not in cleaned:
            cleaned.append(text)
    return cleaned
