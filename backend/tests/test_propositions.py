"""
Value Mapper Backend — Value Proposition Generator Unit Tests

Tests for propositions.py: prioritization gate, offering type, single segment.
"""

import pytest

from valuemap.models import ValuePropositionStatement
from valuemap.propositions import (
    PrioritizationError,
    detect_offering_type,
    enforce_segment,
    fallback_job_order,
    fallback_propositions,
    generate_value_propositions,
    helps_verb,
    primary_job,
    select_prioritized,
    statement_prefix,
)
from tests.conftest import make_canvas, make_user_input


def _draft(statement: str, segment: str = "Somebody else", impact: str = "30% faster rostering") -> dict:
    return {
        "label": "Speed",
        "statement": statement,
        "segmentTargeted": segment,
        "primaryJob": "Build weekly shift schedules",
        "coreOutcome": "Schedules published in minutes",
        "keyPainsRelieved": ["pain-1", "pain-404"],
        "keyGainsCreated": [],
        "competitiveContrast": "Unlike spreadsheets",
        "measurableImpact": impact,
    }


class TestSelectPrioritized:
    """Tests for the 3 + 3 prioritization gate."""

    def test_requires_three_pains_and_gains(self):
        with pytest.raises(PrioritizationError, match="Must prioritize exactly 3 pains and 3 gains"):
            select_prioritized(make_canvas(prioritized_pains=2))
        with pytest.raises(PrioritizationError):
            select_prioritized(make_canvas(prioritized_gains=0))

    def test_more_than_three_uses_first_three(self):
        pains, gains = select_prioritized(make_canvas(prioritized_pains=5, prioritized_gains=4))

        assert [p.id for p in pains] == ["pain-1", "pain-2", "pain-3"]
        assert [g.id for g in gains] == ["gain-1", "gain-2", "gain-3"]


class TestOfferingType:
    """Tests for offering type detection and statement prefix."""

    def test_detects_service(self):
        assert detect_offering_type("Brightline", "A B2B marketing agency") == "service"

    def test_detects_product(self):
        assert detect_offering_type("Acme", "A scheduling platform") == "product"

    def test_explicit_type_wins(self):
        assert detect_offering_type("Acme", "A scheduling platform", "service") == "service"

    def test_prefixes(self):
        assert statement_prefix("Brightline", "service") == "Brightline"
        assert statement_prefix("Brightline Software Services", "service") == "We"
        assert statement_prefix("Acme Scheduler", "product") == "Our Acme Scheduler"

    def test_verb_agreement(self):
        assert helps_verb("We") == "help"
        assert helps_verb("Our Acme Scheduler") == "helps"
        assert helps_verb("Our Labs") == "help"


class TestEnforceSegment:
    """Tests for the single-segment rule."""

    def test_overrides_drifted_segment(self):
        prop = ValuePropositionStatement(
            id="vp-1", statement="s", segment_targeted="CFOs", primary_job="j", core_outcome="o"
        )

        corrected = enforce_segment([prop], "Operations Manager in organizations")

        assert corrected[0].segment_targeted == "Operations Manager in organizations"
        assert prop.segment_targeted == "CFOs"


class TestGenerateValuePropositions:
    """Tests for generate_value_propositions."""

    @pytest.mark.asyncio
    async def test_gate_runs_before_llm(self, mock_llm):
        with pytest.raises(PrioritizationError):
            await generate_value_propositions(make_canvas(prioritized_pains=0), make_user_input())
        mock_llm.assert_not_called()

    @pytest.mark.asyncio
    async def test_ai_propositions_are_normalized(self, mock_llm_with_response):
        mock_llm_with_response({
            "valueProps": [
                _draft("Our Acme Scheduler helps managers publish rosters fast."),
                _draft("Our Acme Scheduler helps managers cover every shift.", impact="Fewer gaps"),
            ]
        })
        canvas = make_canvas()

        props = await generate_value_propositions(canvas, make_user_input())

        assert [p.id for p in props] == ["vp-1", "vp-2"]
        assert {p.segment_targeted for p in props} == {canvas.segment}
        assert props[0].key_pains_relieved == ["pain-1"]
        assert props[0].key_gains_created == ["gain-1", "gain-2", "gain-3"]
        assert props[1].measurable_impact == "Qualitative: Fewer gaps"

    @pytest.mark.asyncio
    async def test_single_ai_proposition_uses_fallback(self, mock_llm_with_response):
        mock_llm_with_response({"valueProps": [_draft("Only one.")]})

        props = await generate_value_propositions(make_canvas(), make_user_input())

        assert len(props) == 3
        assert props[0].label == "Pain-focused value proposition"

    @pytest.mark.asyncio
    async def test_fallback_statement_template(self, mock_llm_failure):
        canvas = make_canvas(alternatives=["spreadsheets"])

        props = await generate_value_propositions(canvas, make_user_input())

        assert len(props) == 3
        assert props[0].statement == (
            "Our Acme Scheduler helps operations manager in organizations who want to build weekly shift schedules "
            "by enabling schedules published in minutes and want to reducing schedules take hours to build by hand, "
            "unlike spreadsheets."
        )
        assert props[2].key_pains_relieved == ["pain-1", "pain-2", "pain-3"]
        assert all(p.segment_targeted == canvas.segment for p in props)


class TestPrimaryJob:
    """The chosen primary job anchors propositions when the LLM gives none."""

    def test_fallback_leads_with_chosen_job(self):
        canvas = make_canvas(primary_job_id="job-3")
        pains, gains = select_prioritized(canvas)

        props = fallback_propositions(canvas, make_user_input(primary_job_id="job-3"), pains, gains, canvas.segment)

        assert [p.primary_job for p in props] == [
            "Track overtime hours",
            "Cover last-minute absences",
            "Track overtime hours",
        ]
        assert "who want to track overtime hours" in props[0].statement

    def test_two_jobs_reuse_second_job(self):
        canvas = make_canvas()
        canvas = canvas.model_copy(update={"customer_jobs": canvas.customer_jobs[:2]})

        assert fallback_job_order(canvas) == [
            "Build weekly shift schedules",
            "Cover last-minute absences",
            "Cover last-minute absences",
        ]

    def test_unknown_id_uses_first_job(self):
        assert primary_job(make_canvas(primary_job_id="job-404")).id == "job-1"

    @pytest.mark.asyncio
    async def test_draft_without_job_defaults_to_chosen_job(self, mock_llm_with_response):
        drafts = [_draft("Our Acme Scheduler helps managers."), _draft("Our Acme Scheduler helps leads.")]
        for draft in drafts:
            draft["primaryJob"] = ""
        mock_llm_with_response({"valueProps": drafts})

        props = await generate_value_propositions(make_canvas(primary_job_id="job-3"), make_user_input())

        assert {p.primary_job for p in props} == {"Track overtime hours"}
