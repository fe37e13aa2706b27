"""
Value Mapper Backend — Positioning and Assumptions Unit Tests

Tests for positioning.py (pure aggregation) and assumptions.py.
"""

import pytest

from valuemap.assumptions import fallback_assumptions, generate_assumptions
from valuemap.models import ValuePropositionStatement
from valuemap.positioning import OVERARCHING_PROMISE, build_company_positioning, top_by_frequency
from tests.conftest import make_canvas, make_user_input


def _prop(contrast: str = "", **overrides) -> ValuePropositionStatement:
    data = {
        "id": "vp-1",
        "statement": "Our Acme Scheduler helps managers.",
        "segment_targeted": "Operations Manager in organizations",
        "primary_job": "Build weekly shift schedules",
        "core_outcome": "Schedules published in minutes",
        "competitive_contrast": contrast,
        "assumptions": ["Managers rebuild schedules weekly"],
    }
    data.update(overrides)
    return ValuePropositionStatement(**data)


class TestTopByFrequency:
    """Tests for top_by_frequency."""

    def test_most_frequent_first_ties_keep_order(self):
        assert top_by_frequency(["b", "a", "c", "a", "", "c"], limit=3) == ["a", "c", "b"]

    def test_surrounding_whitespace_counts_as_same_item(self):
        assert top_by_frequency(["Every shift covered", " Every shift covered ", "Happier staff", "  "]) == [
            "Every shift covered",
            "Happier staff",
        ]


class TestBuildCompanyPositioning:
    """Tests for build_company_positioning."""

    def test_aggregates_single_canvas(self):
        canvas = make_canvas()
        props = [_prop("A purpose-built rostering engine."), _prop("A purpose-built rostering engine.")]

        summary = build_company_positioning([canvas], props, make_user_input(company_name="Acme Inc"))

        assert summary.company_name == "Acme Inc"
        assert summary.overarching_promise == OVERARCHING_PROMISE
        assert summary.unified_job_statement == "Build weekly shift schedules"
        assert summary.shared_pains[0] == "Schedules take hours to build by hand"
        assert summary.shared_gains == ["Schedules published in minutes", "Every shift covered", "Predictable labor costs"]
        assert summary.shared_differentiators == ["A purpose-built rostering engine."]
        assert summary.primary_segments == ["Operations Manager in organizations"]
        assert summary.positioning_statement == (
            "Acme Inc helps Operations Manager in organizations to build weekly shift schedules "
            "by delivering schedules published in minutes and reducing schedules take hours to build by hand "
            "through A purpose-built rostering engine."
        )

    def test_user_segments_replace_canvas_segments(self):
        summary = build_company_positioning(
            [make_canvas()], [], make_user_input(), primary_segments=["Store managers", " ", "Store managers"]
        )
        assert summary.primary_segments == ["Store managers"]

    def test_no_canvases_uses_defaults(self):
        summary = build_company_positioning([], [], make_user_input())

        assert summary.company_name == "Acme Scheduler"
        assert summary.shared_pains == []
        assert "automates shift scheduling for hourly teams" in summary.unified_job_statement
        assert summary.positioning_statement.startswith("Acme Scheduler helps target customers")


class TestAssumptions:
    """Tests for generate_assumptions."""

    @pytest.mark.asyncio
    async def test_llm_assumptions_are_numbered(self, mock_llm_with_response):
        mock_llm_with_response({
            "assumptions": [
                {"statement": "Managers pay per location", "category": "revenue", "testability": "high"},
                {"statement": "  ", "category": "other"},
            ]
        })

        found = await generate_assumptions(_prop(), make_canvas())

        assert [a.id for a in found] == ["assumption-1"]
        assert found[0].category == "revenue"

    @pytest.mark.asyncio
    async def test_failure_uses_fallback(self, mock_llm_failure):
        found = await generate_assumptions(_prop(), make_canvas())

        assert found == fallback_assumptions(_prop(), make_canvas())
        assert [a.category for a in found] == ["value_proposition", "customer_segment", "revenue"]
