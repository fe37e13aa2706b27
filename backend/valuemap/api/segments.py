"""
Value Mapper Backend — Segment Suggestion API (POST /api/segments/suggest)
"""

from fastapi import APIRouter, Depends, Request

from valuemap import segments
from valuemap.api.common import get_request_id, get_website_cache, internal_error, limiter
from valuemap.models import SuggestSegmentsRequest, SuggestSegmentsResponse
from valuemap.scraper import WebsiteCache

router = APIRouter(prefix="/api/segments", tags=["segments"])


@router.post("/suggest", response_model=SuggestSegmentsResponse)
@limiter.limit("30/minute")
async def suggest_segments(
    body: SuggestSegmentsRequest,
    request: Request,
    cache: WebsiteCache = Depends(get_website_cache),
) -> SuggestSegmentsResponse:
    """
    POST /api/segments/suggest

    Always answers with 3-6 segments; the generic trio is used when the LLM is unavailable.
    """
    request_id = get_request_id(request)
    try:
        found = await segments.suggest_segments(
            body.product_name.strip(),
            body.description.strip(),
            body.website_url,
            cache,
            request_id=request_id,
        )
    except Exception as e:
        raise internal_error(e, "segment suggestion failed", request_id)
    return SuggestSegmentsResponse(segments=found)
