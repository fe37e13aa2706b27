"""
Value Mapper Backend — Shared Test Fixtures

Provides mocked versions of external services (LLM, search, scraper)
and small canvas builders for deterministic, fast unit tests.
"""

import json
import os
import sys
from dataclasses import dataclass
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient, ASGITransport

# Ensure valuemap package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


# -----------------------------------------------------------------------------
# Environment Setup (before importing valuemap modules)
# -----------------------------------------------------------------------------

os.environ.setdefault("LLM_MODEL", "openai/gpt-4o")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")
os.environ.setdefault("TAVILY_API_KEY", "test-tavily-key")
os.environ.setdefault("SERPER_API_KEY", "test-serper-key")
os.environ.setdefault("SENDGRID_API_KEY", "test-sendgrid-key")
os.environ.setdefault("HUBSPOT_API_KEY", "test-hubspot-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:3000")


# -----------------------------------------------------------------------------
# Mock Response Classes
# -----------------------------------------------------------------------------


@dataclass
class MockLLMMessage:
    """Mock message from LLM response."""
    content: str


@dataclass
class MockLLMChoice:
    """Mock choice from LLM response."""
    message: MockLLMMessage


@dataclass
class MockLLMUsage:
    """Mock usage stats from LLM response."""
    total_tokens: int = 100
    prompt_tokens: int = 50
    completion_tokens: int = 50


@dataclass
class MockLLMResponse:
    """Mock LLM completion response."""
    choices: list[MockLLMChoice]
    usage: MockLLMUsage = None

    def __post_init__(self):
        if self.usage is None:
            self.usage = MockLLMUsage()


def create_mock_llm_response(content: str) -> MockLLMResponse:
    """Create a mock LLM response with given content."""
    return MockLLMResponse(
        choices=[MockLLMChoice(message=MockLLMMessage(content=content))]
    )


# -----------------------------------------------------------------------------
# Canvas Builders
# -----------------------------------------------------------------------------


def make_user_input(**overrides):
    from valuemap.models import UserInput

    data = {
        "product_name": "Acme Scheduler",
        "description": "Automates shift scheduling for hourly teams",
        "target_decision_maker": "Operations Manager",
    }
    data.update(overrides)
    return UserInput(**data)


def make_canvas(prioritized_pains: int = 3, prioritized_gains: int = 3, **overrides):
    """Canvas with 4 jobs, 5 pains, 5 gains, 1 product and the first N items prioritized."""
    from valuemap.models import (
        CustomerGain,
        CustomerJob,
        CustomerPain,
        ProductService,
        ValuePropositionCanvas,
    )

    data = {
        "customer_jobs": [
            CustomerJob(id=f"job-{i + 1}", text=text, confidence="high" if i < 2 else "medium")
            for i, text in enumerate([
                "Build weekly shift schedules",
                "Cover last-minute absences",
                "Track overtime hours",
                "Communicate schedule changes",
            ])
        ],
        "customer_pains": [
            CustomerPain(
                id=f"pain-{i + 1}",
                text=text,
                intensity="high" if i < 2 else "medium",
                category="frustration",
                is_prioritized=i < prioritized_pains,
            )
            for i, text in enumerate([
                "Schedules take hours to build by hand",
                "No-shows leave shifts uncovered",
                "Overtime costs spiral without warning",
                "Staff miss schedule updates",
                "Spreadsheets break when rules change",
            ])
        ],
        "customer_gains": [
            CustomerGain(id=f"gain-{i + 1}", text=text, type="expected", is_prioritized=i < prioritized_gains)
            for i, text in enumerate([
                "Schedules published in minutes",
                "Every shift covered",
                "Predictable labor costs",
                "Happier staff",
                "Fewer scheduling errors",
            ])
        ],
        "products_services": [ProductService(id="product-1", text="Acme Scheduler")],
        "segment": "Operations Manager in organizations",
        "primary_job_id": "job-1",
    }
    data.update(overrides)
    return ValuePropositionCanvas(**data)


# -----------------------------------------------------------------------------
# LLM Mocking Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def mock_llm(monkeypatch):
    """
    Mock litellm.acompletion to return predictable responses.

    Returns the mock function so tests can customize responses.
    """
    async def mock_acompletion(*args, **kwargs) -> MockLLMResponse:
        return create_mock_llm_response('{"jobs": [{"text": "Build weekly shift schedules"}]}')

    mock = AsyncMock(side_effect=mock_acompletion)
    monkeypatch.setattr("litellm.acompletion", mock)
    return mock


@pytest.fixture
def mock_llm_with_response(monkeypatch):
    """
    Factory fixture to mock LLM with a specific response.

    Usage:
        def test_example(mock_llm_with_response):
            mock = mock_llm_with_response({"key": "value"})
            # ... test code
    """
    def _create_mock(response_data):
        async def mock_acompletion(*args, **kwargs) -> MockLLMResponse:
            return create_mock_llm_response(json.dumps(response_data))

        mock = AsyncMock(side_effect=mock_acompletion)
        monkeypatch.setattr("litellm.acompletion", mock)
        return mock

    return _create_mock


@pytest.fixture
def mock_llm_failure(monkeypatch):
    """Mock LLM to simulate the provider failing on every call."""
    async def mock_acompletion(*args, **kwargs):
        raise Exception("Rate limit exceeded")

    mock = AsyncMock(side_effect=mock_acompletion)
    monkeypatch.setattr("litellm.acompletion", mock)
    return mock


# -----------------------------------------------------------------------------
# Search / Scraper Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def mock_search_results():
    """Sample search results."""
    from valuemap.search import SearchResult
    return [
        SearchResult(
            title="Why shift scheduling is hard",
            url="https://example.com/shift-scheduling",
            snippet="Managers struggle with last-minute call-outs and manual spreadsheets.",
        ),
        SearchResult(
            title="Scheduling software compared",
            url="https://example.com/compare",
            snippet="Teams switching from spreadsheets to dedicated tools after a new location opens.",
        ),
    ]


@pytest.fixture
def mock_search(monkeypatch, mock_search_results):
    """Mock search module to return predictable results."""
    async def mock_search_fn(query: str, num_results: int = 5):
        return mock_search_results[:num_results]

    mock = AsyncMock(side_effect=mock_search_fn)
    monkeypatch.setattr("valuemap.search.search", mock)
    return mock


@pytest.fixture
def mock_search_failure(monkeypatch):
    """Mock search to return empty results (simulates all providers failing)."""
    async def mock_search_fn(*args, **kwargs):
        return []

    mock = AsyncMock(side_effect=mock_search_fn)
    monkeypatch.setattr("valuemap.search.search", mock)
    return mock


@pytest.fixture
def no_crawl_delay(monkeypatch):
    """Remove the politeness delay between crawled pages."""
    monkeypatch.setattr("valuemap.scraper.CRAWL_DELAY_SECONDS", 0)


@pytest.fixture
def website_cache():
    from valuemap.scraper import WebsiteCache
    return WebsiteCache()


# -----------------------------------------------------------------------------
# HTTP Client Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def app():
    """Get the FastAPI app instance with rate limiting off and a clean cache."""
    from valuemap.api.common import limiter
    from valuemap.main import app

    limiter.enabled = False
    app.state.website_cache.clear()
    yield app
    limiter.enabled = True


@pytest.fixture
async def client(app):
    """Async HTTP client for testing FastAPI endpoints."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# -----------------------------------------------------------------------------
# SSE Parsing Helpers
# -----------------------------------------------------------------------------


def parse_sse_events(content: str) -> list[dict]:
    """Parse SSE event stream into list of event dicts."""
    events = []
    for line in content.split("\n"):
        if line.startswith("data: "):
            try:
                events.append(json.loads(line[6:]))
            except json.JSONDecodeError:
                continue
    return events
