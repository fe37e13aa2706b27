"""
Value Mapper Backend — Customer Profile Unit Tests

Tests for profile.py: job partition, pain materialization, gain filtering.
"""

import pytest

from valuemap.models import CustomerGain, CustomerJob, PainIntensityCluster, ResearchData
from valuemap.profile import (
    JOB_VALIDATION_SOURCE,
    MIN_GAINS,
    build_customer_jobs,
    derive_segment,
    fallback_gains,
    fallback_jobs,
    filter_gains,
    generate_gains,
    identify_jobs,
    materialize_pains,
    pad_gains,
    partition_jobs,
)
from tests.conftest import make_user_input


def _jobs(*texts: str) -> list[CustomerJob]:
    return [CustomerJob(id=f"job-{i + 1}", text=t) for i, t in enumerate(texts)]


class TestDeriveSegment:
    """Tests for derive_segment."""

    def test_primary_segment_wins(self):
        assert derive_segment(make_user_input(primary_segment="Store managers")) == "Store managers"

    def test_healthcare_description(self):
        user_input = make_user_input(description="Rostering for hospital nurses")
        assert derive_segment(user_input) == "Operations Manager in hospitals and healthcare organizations"

    def test_generic_default(self):
        assert derive_segment(make_user_input()) == "Operations Manager in organizations"


class TestPartitionJobs:
    """Tests for partition_jobs (emotional jobs become pains)."""

    def test_every_job_lands_in_exactly_one_list(self):
        raw = _jobs(
            "Build weekly shift schedules",
            "Reduce stress when staff call in sick",
            "Avoid the fear of understaffed weekends",
            "Track overtime hours",
        )

        jobs, pains = partition_jobs(raw)

        assert [j.text for j in jobs] == ["Build weekly shift schedules", "Track overtime hours"]
        assert [p.text for p in pains] == [
            "Reduce stress when staff call in sick",
            "Avoid the fear of understaffed weekends",
        ]
        assert len(jobs) + len(pains) == len(raw)

    def test_extracted_pain_shape(self):
        _, pains = partition_jobs(_jobs("Feel less Anxious about compliance audits"))

        assert pains[0].id == "pain-from-job-1"
        assert pains[0].intensity == "medium"
        assert pains[0].category == "frustration"
        assert pains[0].source == JOB_VALIDATION_SOURCE

    def test_input_is_not_modified(self):
        raw = _jobs("Reduce stress")
        partition_jobs(raw)
        assert len(raw) == 1


class TestJobs:
    """Tests for identify_jobs and its fallback."""

    @pytest.mark.asyncio
    async def test_llm_jobs_are_capped_and_numbered(self, mock_llm_with_response):
        mock_llm_with_response({"jobs": [{"text": f"Job number {i}"} for i in range(9)]})

        jobs = build_customer_jobs(await identify_jobs(make_user_input()))

        assert len(jobs) == 6
        assert jobs[0].id == "job-1"
        assert [j.confidence for j in jobs[:3]] == ["high", "high", "medium"]

    @pytest.mark.asyncio
    async def test_failure_uses_fallback_jobs(self, mock_llm_failure):
        jobs = await identify_jobs(make_user_input())

        assert [j.text for j in jobs] == [
            "Complete automates shift scheduling for hourly teams",
            "Manage automates shift scheduling for hourly teams more reliably and consistently",
        ]

    def test_fallback_truncates_long_description(self):
        jobs = fallback_jobs(make_user_input(description="x" * 150))
        assert jobs[0].text.endswith("...")

    def test_fallback_jobs_survive_validation(self):
        jobs = fallback_jobs(make_user_input(description="Software that reduces scheduling stress for shift managers"))

        assert jobs[0].text == "Complete software that reduces scheduling for shift managers"
        kept, moved = partition_jobs(build_customer_jobs(jobs))
        assert len(kept) == 2
        assert moved == []

    def test_all_emotional_description_still_yields_jobs(self):
        jobs = fallback_jobs(make_user_input(description="Stressed? Worried"))

        assert jobs[0].text == "Complete their core work"


class TestMaterializePains:
    """Tests for materialize_pains."""

    def test_cluster_pains_then_research_then_extracted(self):
        clusters = [PainIntensityCluster(specific_pain="Manual rosters take hours")]
        research = ResearchData(typical_pains=["No-shows leave gaps", "Manual rosters take hours"], source="research")
        _, extracted = partition_jobs(_jobs("Reduce stress from call-outs"))

        pains = materialize_pains(clusters, research, extracted, make_user_input())

        assert [p.text for p in pains] == [
            "Manual rosters take hours",
            "No-shows leave gaps",
            "Reduce stress from call-outs",
        ]
        assert pains[0].confidence == "high"
        assert pains[0].source == "research"
        assert pains[-1].id == "pain-from-job-1"

    def test_intensity_and_category_follow_rank(self):
        clusters = [PainIntensityCluster(specific_pain=f"Distinct pain number {i}") for i in range(7)]

        pains = materialize_pains(clusters, None, [], make_user_input())

        assert [p.intensity for p in pains] == ["high"] * 3 + ["medium"] * 3 + ["low"]
        assert [p.category for p in pains[:5]] == ["frustration", "barrier", "risk", "financial", "frustration"]

    def test_pads_to_three(self):
        pains = materialize_pains([], None, [], make_user_input())
        assert len(pains) == 3

    def test_fallback_cluster_is_inferred(self):
        clusters = [PainIntensityCluster(specific_pain="Struggling to manage schedules", is_fallback=True)]
        pains = materialize_pains(clusters, None, [], make_user_input())
        assert pains[0].source == "inferred"


class TestGains:
    """Tests for gain generation and filtering."""

    def test_filter_drops_long_save_time_and_echoes(self):
        description = "Automates shift scheduling for hourly teams across many retail locations"
        gains = [
            CustomerGain(id="gain-1", text="Save time on building the weekly schedule by hand"),
            CustomerGain(id="gain-2", text="x" * 101),
            CustomerGain(id="gain-3", text=f"Better {description.lower()[:50]}"),
            CustomerGain(id="gain-4", text="Predictable labor costs"),
        ]

        assert [g.id for g in filter_gains(gains, description)] == ["gain-4"]

    @pytest.mark.asyncio
    async def test_failure_uses_five_fallback_gains(self, mock_llm_failure):
        gains = await generate_gains(make_user_input(), [], [])

        assert len(gains) == 5
        assert gains[0].text == "Save time and increase productivity"

    @pytest.mark.asyncio
    async def test_all_filtered_uses_two_fallback_gains(self, mock_llm_with_response):
        mock_llm_with_response({"gains": [{"text": "y" * 120, "type": "desired"}]})

        gains = await generate_gains(make_user_input(), [], [])

        assert [g.text for g in gains] == [g.text for g in fallback_gains(2)]

    def test_pad_gains_reaches_floor(self):
        padded = pad_gains([CustomerGain(id="gain-1", text="Every shift covered")])

        assert len(padded) == MIN_GAINS
        assert padded[1].id == "gain-fallback-1"
