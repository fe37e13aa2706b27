"""
Value Mapper Backend — Shared API Helpers

Rate limiter, request-scoped dependencies, SSE framing and error responses
used by every router.
"""

import json
import uuid

from fastapi import HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from valuemap.config import settings, log, generate_error_code
from valuemap.scraper import WebsiteCache

# Rate limiter: per-IP, applied per-endpoint via decorator
limiter = Limiter(key_func=get_remote_address)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def get_request_id(request: Request) -> str:
    """The caller's X-Request-Id, or a fresh one so every log line is correlated."""
    return request.headers.get("X-Request-Id") or uuid.uuid4().hex[:12]


def get_website_cache(request: Request) -> WebsiteCache:
    return request.app.state.website_cache


def format_sse_event(event) -> str:
    """Serialize a Pydantic event model as 'data: {json}\\n\\n' with camelCase keys."""
    return f"data: {json.dumps(event.model_dump(mode='json', by_alias=True))}\n\n"


def client_error(status_code: int, message: str, request_id: str, **context) -> HTTPException:
    """Structural failure the caller can act on; the message is safe to show."""
    code = generate_error_code()
    log("WARN", "request rejected", request_id=request_id, status=status_code, error=message, error_code=code, **context)
    return HTTPException(status_code=status_code, detail={"message": message, "error_code": code})


def internal_error(e: Exception, message: str, request_id: str, **context) -> HTTPException:
    """
    Unexpected failure: log everything, return a generic message and an error code.

    Exception text is only included outside production-like environments.
    """
    code = generate_error_code()
    log("ERROR", message, request_id=request_id, error=str(e), error_type=type(e).__name__, error_code=code, **context)
    detail = {"message": "Something went wrong. Please try again.", "error_code": code}
    if settings.environment == "development":
        detail["error"] = str(e)
    return HTTPException(status_code=500, detail=detail)
