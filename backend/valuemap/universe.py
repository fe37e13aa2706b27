"""
Value Mapper Backend — Prospect Universe Generator

Turns a canvas into targetable B2B prospect segments (titles, industries,
company size, triggers, tools, keywords, hashtags, events). The LLM path
returns one segment aligned to the canvas segment; the template fallback
builds one per prioritized pain.
"""

import re

from valuemap import llm, prompts
from valuemap.models import (
    CustomerJob,
    CustomerPain,
    ProspectSegment,
    SegmentDraft,
    UniverseDraft,
    ValuePropositionCanvas,
)
from valuemap.profile import snippet

DEFAULT_COMPANY_SIZES = ["50-200", "200-1000", "1000+"]
MAX_FALLBACK_SEGMENTS = 3
MAX_KEYWORDS = 15

KEYWORD_STOPWORDS = {"that", "this", "with", "from", "their"}
PAIN_KEYWORD_BASE = ["operations", "efficiency", "automation", "productivity", "management"]
JOB_KEYWORD_BASE = ["operations", "management", "strategy", "execution"]

OPERATIONS_TITLES = [
    "VP of Operations",
    "Director of Operations",
    "Operations Manager",
    "Head of Operations",
    "Chief Operating Officer",
]
FINANCE_TITLES = ["CFO", "VP of Finance", "Finance Director", "Financial Controller", "Head of Finance"]
FALLBACK_INDUSTRIES = [
    "Technology",
    "Professional Services",
    "Manufacturing",
    "Healthcare",
    "Financial Services",
    "Retail",
    "E-commerce",
]
FALLBACK_TRIGGERS = [
    "Rapid scaling or headcount growth",
    "New compliance or regulatory requirements",
    "Current solution failing to keep up",
    "Annual budget approval cycle",
    "Team expansion into new regions or functions",
    "Merger or acquisition",
    "New leadership hire in operations",
    "Missed performance targets or KPIs",
]
FALLBACK_TOOLS = ["Excel", "Google Sheets", "Slack", "Asana", "Trello", "Jira", "Salesforce", "HubSpot"]
FALLBACK_HASHTAGS = [
    "operations", "productivity", "automation", "efficiency",
    "management", "leadership", "business", "strategy",
]
FALLBACK_EVENTS = [
    "Operations Summit",
    "Business Transformation Conference",
    "Productivity Expo",
    "Management Leadership Forum",
]


async def generate_prospect_universe(
    canvas: ValuePropositionCanvas,
    prioritized_pains: list[CustomerPain] | None = None,
    request_id: str | None = None,
) -> list[ProspectSegment]:
    """Prospect segments for a canvas, AI-first with the template fallback."""
    pains = prioritized_pains or [p for p in canvas.customer_pains if p.is_prioritized] or canvas.customer_pains[:3]

    async def generate() -> list[ProspectSegment] | None:
        draft = await llm.call_llm_structured(
            prompts.build_universe_prompt(canvas, pains),
            UniverseDraft,
            temperature=0.6,
            max_tokens=2500,
            request_id=request_id,
        )
        if draft is None:
            return None
        return [_from_draft(i, d, canvas) for i, d in enumerate(draft.segments) if d.job_titles]

    return await llm.with_fallback(
        generate, lambda: fallback_universe(canvas, pains), stage="universe", request_id=request_id
    )


def _from_draft(index: int, draft: SegmentDraft, canvas: ValuePropositionCanvas) -> ProspectSegment:
    return ProspectSegment(
        id=f"segment-{index + 1}",
        name=draft.name or canvas.segment,
        job_titles=draft.job_titles,
        industries=draft.industries,
        company_size=draft.company_size or list(DEFAULT_COMPANY_SIZES),
        buying_triggers=draft.buying_triggers,
        tools_in_stack=draft.tools_in_stack or None,
        keywords=_dedupe([k.strip() for k in draft.keywords if k.strip()])[:MAX_KEYWORDS],
        hashtags=[h.strip().lstrip("#") for h in draft.hashtags if h.strip()],
        events=draft.events or None,
    )


# -----------------------------------------------------------------------------
# Fallback
# -----------------------------------------------------------------------------


def fallback_universe(
    canvas: ValuePropositionCanvas,
    pains: list[CustomerPain],
    max_segments: int = 1,
) -> list[ProspectSegment]:
    """
    Template segments, one per prioritized pain, padded from jobs.

    max_segments defaults to 1 (one canvas, one segment) and is capped at 3.
    """
    limit = max(1, min(max_segments, MAX_FALLBACK_SEGMENTS))
    segments: list[ProspectSegment] = []

    for i, pain in enumerate(pains[:limit]):
        segments.append(
            ProspectSegment(
                id=f"segment-{i + 1}",
                name=f"Segment {i + 1}: {snippet(pain.text, 50)}",
                job_titles=fallback_job_titles(pain.category),
                industries=list(FALLBACK_INDUSTRIES),
                company_size=list(DEFAULT_COMPANY_SIZES),
                buying_triggers=list(FALLBACK_TRIGGERS),
                tools_in_stack=list(FALLBACK_TOOLS),
                keywords=derive_keywords(pain.text, PAIN_KEYWORD_BASE),
                hashtags=list(FALLBACK_HASHTAGS),
                events=list(FALLBACK_EVENTS),
            )
        )

    jobs: list[CustomerJob] = canvas.customer_jobs
    for j, job in enumerate(jobs):
        if len(segments) >= limit:
            break
        segments.append(
            ProspectSegment(
                id=f"segment-job-{j + 1}",
                name=f"Segment {len(segments) + 1}: {snippet(job.text, 50)}",
                job_titles=fallback_job_titles(None),
                industries=list(FALLBACK_INDUSTRIES),
                company_size=list(DEFAULT_COMPANY_SIZES),
                buying_triggers=list(FALLBACK_TRIGGERS),
                tools_in_stack=list(FALLBACK_TOOLS),
                keywords=derive_keywords(job.text, JOB_KEYWORD_BASE),
                hashtags=list(FALLBACK_HASHTAGS),
                events=list(FALLBACK_EVENTS),
            )
        )

    if not segments:
        segments.append(
            ProspectSegment(
                id="segment-1",
                name=canvas.segment or "Segment 1",
                job_titles=fallback_job_titles(None),
                industries=list(FALLBACK_INDUSTRIES),
                company_size=list(DEFAULT_COMPANY_SIZES),
                buying_triggers=list(FALLBACK_TRIGGERS),
                tools_in_stack=list(FALLBACK_TOOLS),
                keywords=derive_keywords(canvas.segment, PAIN_KEYWORD_BASE),
                hashtags=list(FALLBACK_HASHTAGS),
                events=list(FALLBACK_EVENTS),
            )
        )
    return segments


def fallback_job_titles(category: str | None) -> list[str]:
    if category == "financial":
        return list(FINANCE_TITLES)
    return list(OPERATIONS_TITLES)


def derive_keywords(text: str, base: list[str]) -> list[str]:
    """Words over 4 chars from text (minus stopwords), then the base set; deduped, capped at 15."""
    words = [
        w for w in re.findall(r"[a-z0-9][a-z0-9-]*", text.lower())
        if len(w) > 4 and w not in KEYWORD_STOPWORDS
    ]
    return _dedupe(words + base)[:MAX_KEYWORDS]


def _dedupe(items: list[str]) -> list[str]:
    seen: list[str] = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen
