"""
Value Mapper Backend — Value Proposition API

POST /api/canvas            first half, returns the canvas for human validation
POST /api/propositions      second half, on a validated canvas (3 + 3 priorities)
POST /api/universe          prospect segments for a canvas
POST /api/positioning       cross-canvas positioning summary
POST /api/value-prop        whole pipeline, JSON
POST /api/value-prop/stream whole pipeline, SSE progress events
"""

import asyncio
import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from valuemap import flow, positioning, universe
from valuemap.api.common import (
    SSE_HEADERS,
    client_error,
    format_sse_event,
    get_request_id,
    get_website_cache,
    internal_error,
    limiter,
)
from valuemap.config import generate_error_code, log
from valuemap.flow import FlowError
from valuemap.models import (
    CanvasResponse,
    CompanyPositioningSummary,
    ErrorEvent,
    PositioningRequest,
    PropositionsRequest,
    PropositionsResponse,
    UniverseRequest,
    UniverseResponse,
    UserInput,
    ValuePropFlowResult,
)
from valuemap.propositions import PrioritizationError
from valuemap.scraper import WebsiteCache

router = APIRouter(prefix="/api", tags=["value-prop"])


@router.post("/canvas", response_model=CanvasResponse)
@limiter.limit("20/minute")
async def create_canvas(
    body: UserInput,
    request: Request,
    cache: WebsiteCache = Depends(get_website_cache),
) -> CanvasResponse:
    """
    POST /api/canvas

    Research, jobs, pains, gains and products. Returns 422 when the canvas
    cannot meet its minimum item counts even after fallbacks.
    """
    request_id = get_request_id(request)
    start = time.perf_counter()
    try:
        state = await flow.prepare_canvas(body, cache, request_id=request_id)
    except FlowError as e:
        raise client_error(422, str(e), request_id)
    except Exception as e:
        raise internal_error(e, "canvas generation failed", request_id)

    log("INFO", "canvas generated", request_id=request_id, duration_ms=int((time.perf_counter() - start) * 1000))
    return CanvasResponse(canvas=state.canvas, research=state.research)


@router.post("/propositions", response_model=PropositionsResponse)
@limiter.limit("20/minute")
async def create_propositions(
    body: PropositionsRequest,
    request: Request,
    cache: WebsiteCache = Depends(get_website_cache),
) -> PropositionsResponse:
    """
    POST /api/propositions

    Requires exactly 3 prioritized pains and 3 prioritized gains (400 otherwise).
    """
    request_id = get_request_id(request)
    try:
        canvas, props = await flow.generate_propositions_for_canvas(
            body.canvas, body.user_input, cache, request_id=request_id
        )
    except PrioritizationError as e:
        raise client_error(400, str(e), request_id)
    except Exception as e:
        raise internal_error(e, "proposition generation failed", request_id)

    return PropositionsResponse(canvas=canvas, value_propositions=props)


@router.post("/universe", response_model=UniverseResponse)
@limiter.limit("20/minute")
async def create_universe(body: UniverseRequest, request: Request) -> UniverseResponse:
    """POST /api/universe"""
    request_id = get_request_id(request)
    try:
        segments = await universe.generate_prospect_universe(body.canvas, request_id=request_id)
    except Exception as e:
        raise internal_error(e, "prospect universe generation failed", request_id)
    return UniverseResponse(prospect_universe=segments)


@router.post("/positioning", response_model=CompanyPositioningSummary)
async def create_positioning(body: PositioningRequest, request: Request) -> CompanyPositioningSummary:
    """POST /api/positioning: pure aggregation, no LLM call."""
    request_id = get_request_id(request)
    try:
        return positioning.build_company_positioning(
            body.canvases, body.value_propositions, body.user_input, body.primary_segments
        )
    except Exception as e:
        raise internal_error(e, "positioning aggregation failed", request_id)


@router.post("/value-prop", response_model=ValuePropFlowResult)
@limiter.limit("10/minute")
async def run_value_prop(
    body: UserInput,
    request: Request,
    cache: WebsiteCache = Depends(get_website_cache),
) -> ValuePropFlowResult:
    """
    POST /api/value-prop

    Whole pipeline in one call. The top 3 pains and gains are prioritized
    automatically since there is no validation step.
    """
    request_id = get_request_id(request)
    try:
        return await flow.run_value_prop_flow(body, cache=cache, request_id=request_id)
    except FlowError as e:
        raise client_error(422, str(e), request_id)
    except Exception as e:
        raise internal_error(e, "value prop flow failed", request_id)


@router.post("/value-prop/stream")
@limiter.limit("10/minute")
async def stream_value_prop(
    body: UserInput,
    request: Request,
    cache: WebsiteCache = Depends(get_website_cache),
) -> StreamingResponse:
    """
    POST /api/value-prop/stream

    Same run as /api/value-prop, streamed as SSE:
    stage_started / stage_completed per stage, then flow_complete or error.
    """
    request_id = get_request_id(request)
    cancel_event = asyncio.Event()

    async def stream():
        try:
            async for event in flow.stream_value_prop_flow(
                body, cache=cache, cancel_event=cancel_event, request_id=request_id
            ):
                yield format_sse_event(event)
        except FlowError as e:
            code = generate_error_code()
            log("WARN", "value prop stream aborted", request_id=request_id, error=str(e), error_code=code)
            yield format_sse_event(ErrorEvent(message=str(e), recoverable=False, error_code=code))
        except Exception as e:
            code = generate_error_code()
            log("ERROR", "value prop stream failed", request_id=request_id, error=str(e), error_code=code)
            yield format_sse_event(
                ErrorEvent(message="Something went wrong. Please try again.", recoverable=True, error_code=code)
            )
        finally:
            # Stops any in-flight crawl when the client goes away
            cancel_event.set()

    return StreamingResponse(stream(), media_type="text/event-stream", headers=SSE_HEADERS)
