"""
Value Mapper Backend — FastAPI Application Factory

App creation, middleware (CORS, rate limiting, request ID logging), shared
website cache, router registration.
Run with: uvicorn valuemap.main:app --reload
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from valuemap.api import report, segments, value_prop
from valuemap.api.common import limiter
from valuemap.config import settings, log
from valuemap.scraper import WebsiteCache

VERSION = "0.1.0"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Log the X-Request-Id header from every incoming request.

    Routers reuse the same header as request_id on every log line of the run.
    """

    async def dispatch(self, request: Request, call_next):
        log(
            "INFO",
            "request received",
            method=request.method,
            path=request.url.path,
            request_id=request.headers.get("X-Request-Id", "none"),
        )
        return await call_next(request)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Steps:
        1. Create FastAPI instance
        2. CORS (origins from settings.cors_origins) and request ID logging
        3. Rate limiting (slowapi, per-endpoint decorators)
        4. One WebsiteCache owned by the app, shared by all requests
        5. Register routers and the health check
    """
    app = FastAPI(
        title="Value Mapper API",
        version=VERSION,
        description="Value Proposition Canvas generation: customer profile, value map, propositions, prospects.",
    )

    origins = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIdMiddleware)

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.state.website_cache = WebsiteCache()

    app.include_router(segments.router)
    app.include_router(value_prop.router)
    app.include_router(report.router)

    @app.get("/api/health")
    async def health_check():
        """
        GET /api/health

        Returns: { "status": "ok", "version": "0.1.0" }
        """
        return {"status": "ok", "version": VERSION}

    return app


app = create_app()
