"""
Value Mapper Backend — Prospect Universe Unit Tests

Tests for universe.py: LLM mapping and the template fallback.
"""

import pytest

from valuemap.models import CustomerPain
from valuemap.universe import (
    FINANCE_TITLES,
    derive_keywords,
    fallback_universe,
    generate_prospect_universe,
)
from tests.conftest import make_canvas


class TestDeriveKeywords:
    """Tests for derive_keywords."""

    def test_long_words_then_base_deduped(self):
        keywords = derive_keywords("Overtime costs spiral with their budgets", ["operations", "budgets"])
        assert keywords == ["overtime", "costs", "spiral", "budgets", "operations"]

    def test_capped_at_fifteen(self):
        text = " ".join(f"keyword{i}" for i in range(30))
        assert len(derive_keywords(text, ["operations"])) == 15


class TestFallbackUniverse:
    """Tests for fallback_universe."""

    def test_defaults_to_one_segment(self):
        canvas = make_canvas()
        pains = canvas.customer_pains[:3]

        segments = fallback_universe(canvas, pains)

        assert len(segments) == 1
        assert segments[0].name == "Segment 1: Schedules take hours to build by hand"
        assert "VP of Operations" in segments[0].job_titles

    def test_financial_pain_gets_finance_titles(self):
        pain = CustomerPain(id="pain-1", text="Labor costs overrun budget", category="financial")

        segments = fallback_universe(make_canvas(), [pain])

        assert segments[0].job_titles == FINANCE_TITLES

    def test_pads_from_jobs_up_to_three(self):
        canvas = make_canvas()
        pain = canvas.customer_pains[0]

        segments = fallback_universe(canvas, [pain], max_segments=5)

        assert [s.id for s in segments] == ["segment-1", "segment-job-1", "segment-job-2"]

    def test_empty_canvas_still_yields_a_segment(self):
        canvas = make_canvas(customer_jobs=[])

        segments = fallback_universe(canvas, [])

        assert segments[0].name == canvas.segment


class TestGenerateProspectUniverse:
    """Tests for generate_prospect_universe."""

    @pytest.mark.asyncio
    async def test_maps_llm_segments(self, mock_llm_with_response):
        mock_llm_with_response({
            "segments": [{
                "name": "Multi-site retail operations leaders",
                "jobTitles": ["Director of Store Operations"],
                "industries": ["Retail"],
                "buyingTriggers": ["Opening a new location"],
                "keywords": ["shift scheduling", "shift scheduling", "labor costs"],
                "hashtags": ["#retailops", "workforce"],
            }]
        })

        segments = await generate_prospect_universe(make_canvas())

        assert len(segments) == 1
        assert segments[0].keywords == ["shift scheduling", "labor costs"]
        assert segments[0].hashtags == ["retailops", "workforce"]
        assert segments[0].company_size == ["50-200", "200-1000", "1000+"]

    @pytest.mark.asyncio
    async def test_failure_uses_fallback(self, mock_llm_failure):
        segments = await generate_prospect_universe(make_canvas())

        assert len(segments) == 1
        assert "VP of Operations" in segments[0].job_titles
