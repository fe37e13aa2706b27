"""
Value Mapper Backend — Segment Suggestion Unit Tests
"""

import pytest

from valuemap.segments import fallback_segments, suggest_segments


class TestSuggestSegments:
    """Tests for suggest_segments."""

    @pytest.mark.asyncio
    async def test_keeps_distinct_segments_up_to_six(self, mock_llm_with_response, website_cache):
        mock_llm_with_response({
            "segments": [
                {"label": f"Segment {i}", "type": "buyer", "confidence": "high"} for i in range(8)
            ] + [{"label": "segment 0", "type": "user"}]
        })

        found = await suggest_segments("Acme Scheduler", "Shift scheduling", None, website_cache)

        assert [s.label for s in found] == [f"Segment {i}" for i in range(6)]
        assert [s.id for s in found][:2] == ["segment-1", "segment-2"]

    @pytest.mark.asyncio
    async def test_invalid_enums_are_coerced(self, mock_llm_with_response, website_cache):
        mock_llm_with_response([
            {"label": "Store managers", "type": "champion", "confidence": "certain"},
            {"label": "Finance leads", "type": "buyer"},
            {"label": "Shift workers", "type": "user"},
        ])

        found = await suggest_segments("Acme Scheduler", "Shift scheduling", None, website_cache)

        assert found[0].type == "customer"
        assert found[0].confidence == "medium"

    @pytest.mark.asyncio
    async def test_too_few_uses_fallback(self, mock_llm_with_response, website_cache):
        mock_llm_with_response({"segments": [{"label": "Only one"}]})

        found = await suggest_segments("Acme Scheduler", "Shift scheduling", None, website_cache)

        assert found == fallback_segments()
        assert [s.type for s in found] == ["user", "buyer", "influencer"]
