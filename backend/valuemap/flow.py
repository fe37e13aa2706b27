"""
Value Mapper Backend — Flow Orchestrator

Sequences the pipeline:
    research → jobs → validate jobs → pain clusters → pains → gains →
    products → canvas → relievers/creators → top-3 priorities →
    propositions → prospect universe → assumptions → positioning

Every AI-backed stage substitutes its own fallback, so the flow only aborts
(FlowError) when a structural invariant cannot be met after fallbacks.
The flow is an async generator of progress events so it can be streamed;
run_value_prop_flow drains it for plain JSON callers.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import AsyncIterator

from valuemap import assumptions, positioning, profile, propositions, research, scraper, universe, value_map
from valuemap.config import log
from valuemap.models import (
    CustomerPain,
    FlowCompleteEvent,
    PainIntensityCluster,
    ResearchData,
    StageCompletedEvent,
    StageStartedEvent,
    UserInput,
    ValuePropFlowResult,
    ValuePropositionCanvas,
    ValuePropositionStatement,
)
from valuemap.scraper import WebsiteCache

FlowEvent = StageStartedEvent | StageCompletedEvent | FlowCompleteEvent


class FlowError(Exception):
    """A structural invariant could not be met even after fallbacks."""

    pass


@dataclass
class FlowState:
    """Intermediate products of one pipeline run."""

    user_input: UserInput
    research: ResearchData | None = None
    website_content: str = ""
    clusters: list[PainIntensityCluster] = field(default_factory=list)
    extracted_pains: list[CustomerPain] = field(default_factory=list)
    canvas: ValuePropositionCanvas | None = None
    propositions: list[ValuePropositionStatement] = field(default_factory=list)


# -----------------------------------------------------------------------------
# Canvas half (research → canvas)
# -----------------------------------------------------------------------------


async def _canvas_stages(
    state: FlowState,
    cache: WebsiteCache,
    cancel_event: asyncio.Event | None,
    request_id: str | None,
) -> AsyncIterator[FlowEvent]:
    user_input = state.user_input

    yield StageStartedEvent(stage="research")
    state.research, state.website_content = await research.conduct_research(
        user_input, cache, cancel_event=cancel_event, request_id=request_id
    )
    yield StageCompletedEvent(stage="research", summary=f"{len(state.research.typical_pains)} research pains")

    yield StageStartedEvent(stage="jobs")
    raw_jobs = profile.build_customer_jobs(await profile.identify_jobs(user_input, request_id=request_id))
    jobs, state.extracted_pains = profile.partition_jobs(raw_jobs)
    if state.extracted_pains:
        log("INFO", "emotional jobs moved to pains", request_id=request_id, moved=len(state.extracted_pains))
    if not jobs:
        raise FlowError("No functional jobs could be identified for this product")
    yield StageCompletedEvent(stage="jobs", summary=f"{len(jobs)} jobs")

    yield StageStartedEvent(stage="pains")
    state.clusters = await profile.identify_pain_clusters(jobs, user_input, request_id=request_id)
    pains = profile.materialize_pains(state.clusters, state.research, state.extracted_pains, user_input)
    if len(pains) < profile.MIN_PAINS:
        raise FlowError("Could not identify at least 3 customer pains")
    yield StageCompletedEvent(stage="pains", summary=f"{len(pains)} pains")

    yield StageStartedEvent(stage="gains")
    gains = await profile.generate_gains(
        user_input, jobs, state.clusters, state.website_content, state.research, request_id=request_id
    )
    gains = profile.pad_gains(gains)
    if len(gains) < profile.MIN_GAINS:
        raise FlowError("Could not identify at least 3 customer gains")
    yield StageCompletedEvent(stage="gains", summary=f"{len(gains)} gains")

    yield StageStartedEvent(stage="products")
    products = await value_map.generate_products(user_input, state.website_content, request_id=request_id)
    yield StageCompletedEvent(stage="products", summary=f"{len(products)} products")

    relievers, creators = value_map.fallback_relievers_and_creators(pains, gains)
    job_ids = {j.id for j in jobs}
    state.canvas = ValuePropositionCanvas(
        customer_jobs=jobs,
        customer_pains=pains,
        customer_gains=gains,
        products_services=products,
        pain_relievers=relievers,
        gain_creators=creators,
        segment=profile.derive_segment(user_input),
        primary_job_id=user_input.primary_job_id if user_input.primary_job_id in job_ids else jobs[0].id,
        alternatives=state.research.competitive_alternatives,
    )


async def prepare_canvas(
    user_input: UserInput,
    cache: WebsiteCache,
    *,
    cancel_event: asyncio.Event | None = None,
    request_id: str | None = None,
) -> FlowState:
    """
    Run the canvas half of the pipeline for human validation.

    Relievers and creators are template stand-ins at this point; they are
    regenerated once the user has prioritized pains and gains.

    Raises:
        FlowError: If a structural invariant fails.
    """
    state = FlowState(user_input=user_input)
    async for _ in _canvas_stages(state, cache, cancel_event, request_id):
        pass
    return state


# -----------------------------------------------------------------------------
# Proposition half (validated canvas → propositions)
# -----------------------------------------------------------------------------


def mark_top_priorities(canvas: ValuePropositionCanvas) -> ValuePropositionCanvas:
    """Flag the first 3 pains and gains as prioritized unless 3 are already flagged."""
    pains = canvas.customer_pains
    gains = canvas.customer_gains
    if sum(1 for p in pains if p.is_prioritized) < propositions.REQUIRED_PRIORITIES:
        pains = [p.model_copy(update={"is_prioritized": i < propositions.REQUIRED_PRIORITIES}) for i, p in enumerate(pains)]
    if sum(1 for g in gains if g.is_prioritized) < propositions.REQUIRED_PRIORITIES:
        gains = [g.model_copy(update={"is_prioritized": i < propositions.REQUIRED_PRIORITIES}) for i, g in enumerate(gains)]
    return canvas.model_copy(update={"customer_pains": pains, "customer_gains": gains})


async def enrich_value_map(
    canvas: ValuePropositionCanvas,
    website_content: str,
    request_id: str | None = None,
) -> ValuePropositionCanvas:
    """Fold freshly generated relievers and creators back into the canvas."""
    relievers, creators = await value_map.generate_relievers_and_creators(
        canvas, website_content, request_id=request_id
    )
    return canvas.model_copy(update={"pain_relievers": relievers, "gain_creators": creators})


async def generate_propositions_for_canvas(
    canvas: ValuePropositionCanvas,
    user_input: UserInput,
    cache: WebsiteCache,
    request_id: str | None = None,
) -> tuple[ValuePropositionCanvas, list[ValuePropositionStatement]]:
    """
    Second half for a user-validated canvas: relievers/creators, then propositions.

    Raises:
        PrioritizationError: If the canvas lacks 3 prioritized pains and gains.
    """
    propositions.select_prioritized(canvas)
    website_content = await scraper.get_website_content(user_input.website_url, cache)
    enriched = await enrich_value_map(canvas, website_content, request_id=request_id)
    props = await propositions.generate_value_propositions(enriched, user_input, request_id=request_id)
    return enriched, props


# -----------------------------------------------------------------------------
# Full pipeline
# -----------------------------------------------------------------------------


async def stream_value_prop_flow(
    user_input: UserInput,
    *,
    cache: WebsiteCache,
    cancel_event: asyncio.Event | None = None,
    request_id: str | None = None,
) -> AsyncIterator[FlowEvent]:
    """
    Run the whole pipeline, yielding stage events and finally FlowCompleteEvent.

    Raises:
        FlowError: If a structural invariant fails.
    """
    start = time.perf_counter()
    log("INFO", "pipeline started", request_id=request_id, product=user_input.product_name)

    state = FlowState(user_input=user_input)
    async for event in _canvas_stages(state, cache, cancel_event, request_id):
        yield event

    yield StageStartedEvent(stage="value_map")
    canvas = await enrich_value_map(state.canvas, state.website_content, request_id=request_id)
    canvas = mark_top_priorities(canvas)
    yield StageCompletedEvent(
        stage="value_map",
        summary=f"{len(canvas.pain_relievers)} relievers, {len(canvas.gain_creators)} creators",
    )

    yield StageStartedEvent(stage="propositions")
    prioritized_pains, _ = propositions.select_prioritized(canvas)
    props = await propositions.generate_value_propositions(canvas, user_input, request_id=request_id)
    yield StageCompletedEvent(stage="propositions", summary=f"{len(props)} propositions")

    yield StageStartedEvent(stage="universe")
    prospects = await universe.generate_prospect_universe(canvas, prioritized_pains, request_id=request_id)
    yield StageCompletedEvent(stage="universe", summary=f"{len(prospects)} segments")

    yield StageStartedEvent(stage="assumptions")
    found_assumptions = await assumptions.generate_assumptions(props[0], canvas, request_id=request_id)
    yield StageCompletedEvent(stage="assumptions", summary=f"{len(found_assumptions)} assumptions")

    yield StageStartedEvent(stage="positioning")
    summary = positioning.build_company_positioning([canvas], props, user_input)
    yield StageCompletedEvent(stage="positioning")

    result = ValuePropFlowResult(
        canvas=canvas,
        pain_relievers=canvas.pain_relievers,
        gain_creators=canvas.gain_creators,
        value_propositions=props,
        prospect_universe=prospects,
        assumptions=found_assumptions,
        company_positioning=summary,
    )
    log(
        "INFO",
        "pipeline completed",
        request_id=request_id,
        duration_ms=int((time.perf_counter() - start) * 1000),
    )
    yield FlowCompleteEvent(result=result)


async def run_value_prop_flow(
    user_input: UserInput,
    *,
    cache: WebsiteCache,
    cancel_event: asyncio.Event | None = None,
    request_id: str | None = None,
) -> ValuePropFlowResult:
    """Run the whole pipeline and return its result."""
    result = None
    async for event in stream_value_prop_flow(
        user_input, cache=cache, cancel_event=cancel_event, request_id=request_id
    ):
        if isinstance(event, FlowCompleteEvent):
            result = event.result
    if result is None:
        raise FlowError("Pipeline finished without a result")
    return result
