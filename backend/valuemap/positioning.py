"""
Value Mapper Backend — Company Positioning Aggregator

Pure aggregation (no LLM) of one or more canvases and their propositions
into a single cross-segment positioning summary.
"""

from collections import Counter

from valuemap.models import (
    CompanyPositioningSummary,
    UserInput,
    ValuePropositionCanvas,
    ValuePropositionStatement,
)

TOP_SHARED = 4

OVERARCHING_PROMISE = (
    "Reduce time, cost, and risk for our customers by automating and streamlining critical workflows."
)


def top_by_frequency(items: list[str], limit: int = TOP_SHARED) -> list[str]:
    """Most frequent items first; equal counts keep first-seen order."""
    counts = Counter(item.strip() for item in items if item.strip())
    ranked = sorted(counts.items(), key=lambda pair: -pair[1])  # stable
    return [item for item, _ in ranked[:limit]]


def build_company_positioning(
    canvases: list[ValuePropositionCanvas],
    propositions: list[ValuePropositionStatement],
    user_input: UserInput,
    primary_segments: list[str] | None = None,
) -> CompanyPositioningSummary:
    """
    Aggregate canvases and propositions into one positioning summary.

    Args:
        canvases: Zero or more canvases (one per segment).
        propositions: Propositions across all canvases.
        user_input: Supplies company/product name and the description fallback.
        primary_segments: User-edited segment list; replaces the canvas segments when given.
    """
    company_name = user_input.company_name or user_input.product_name or "Your Company"

    jobs = [job for canvas in canvases for job in canvas.customer_jobs]
    unified_job = next((j.text for j in jobs if j.confidence == "high"), None)
    if unified_job is None and jobs:
        unified_job = jobs[0].text
    if unified_job is None:
        unified_job = f"get more value from {user_input.description.lower()} with less time, cost, and risk"

    pains = [p for canvas in canvases for p in canvas.customer_pains]
    key_pains = [p.text for p in pains if p.is_prioritized or p.intensity == "high"] or [p.text for p in pains]
    shared_pains = top_by_frequency(key_pains)

    gains = [g for canvas in canvases for g in canvas.customer_gains]
    key_gains = [g.text for g in gains if g.is_prioritized] or [g.text for g in gains]
    shared_gains = top_by_frequency(key_gains)

    shared_differentiators = top_by_frequency(
        [p.competitive_contrast.strip() for p in propositions if p.competitive_contrast.strip()]
    )

    if primary_segments is not None:
        segments = _dedupe([s.strip() for s in primary_segments if s.strip()])
    else:
        segments = _dedupe([c.segment.strip() for c in canvases if c.segment.strip()])

    top_gain = shared_gains[0] if shared_gains else "measurable improvements in speed and reliability"
    top_pain = shared_pains[0] if shared_pains else "risk and uncertainty"
    top_differentiator = (
        shared_differentiators[0].rstrip(".") if shared_differentiators else "a distinctive, automation-first approach"
    )
    statement = (
        f"{company_name} helps {' and '.join(segments) or 'target customers'} "
        f"to {unified_job.lower()} by delivering {top_gain.lower()} "
        f"and reducing {top_pain.lower()} through {top_differentiator}."
    )

    return CompanyPositioningSummary(
        company_name=company_name,
        overarching_promise=OVERARCHING_PROMISE,
        unified_job_statement=unified_job,
        shared_gains=shared_gains,
        shared_pains=shared_pains,
        shared_differentiators=shared_differentiators,
        primary_segments=segments,
        positioning_statement=statement,
    )


def _dedupe(items: list[str]) -> list[str]:
    return list(dict.fromkeys(items))
