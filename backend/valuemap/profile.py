"""
Value Mapper Backend — Customer Profile (Jobs, Pains, Gains)

Builds the customer-profile half of the canvas in strict sequence:
identify jobs → partition out emotional jobs → pain-intensity clusters →
materialize pains → gains.
"""

from valuemap import llm, prompts
from valuemap.config import log
from valuemap.models import (
    CustomerGain,
    CustomerJob,
    CustomerPain,
    GainList,
    JobList,
    JobToBeDone,
    PainClusterList,
    PainIntensityCluster,
    ResearchData,
    UserInput,
)
from valuemap.research import FALLBACK_SOURCE

EMOTIONAL_KEYWORDS = (
    "stress", "stressed", "anxiety", "anxious", "worry", "worried", "worries",
    "confidence", "fear", "fearful", "reputation", "pressure", "pressured",
    "concern", "concerned", "nervous", "uneasy", "apprehensive", "dread",
    "panic", "tension", "tense", "frustration", "frustrated", "frustrating",
)

MAX_JOBS = 6
MAX_CLUSTER_PAINS = 10
MAX_RANKED_PAINS = 10
MAX_GAINS = 6
MIN_PAINS = 3
MIN_GAINS = 3

PAIN_CATEGORY_CYCLE = ("frustration", "barrier", "risk", "financial")

JOB_SOURCE = "job-to-be-done analysis"
JOB_VALIDATION_SOURCE = "job validation (emotional language moved)"
CLUSTER_SOURCE = "pain intensity cluster"
INFERRED_SOURCE = "inferred"

# (text, type, confidence)
FALLBACK_GAINS = (
    ("Save time and increase productivity", "required", "high"),
    ("Improve accuracy and reduce errors", "expected", "medium"),
    ("Gain better insights and visibility", "desired", "medium"),
    ("Automate repetitive tasks", "desired", "medium"),
    ("Achieve competitive advantage", "unexpected", "low"),
)


def snippet(text: str, limit: int) -> str:
    """Trim trailing punctuation and cut to limit chars, marking the cut with '...'."""
    cleaned = text.strip().rstrip(".!?")
    if len(cleaned) <= limit:
        return cleaned
    return cleaned[:limit].rstrip() + "..."


def lower_first(text: str) -> str:
    return text[:1].lower() + text[1:]


def derive_segment(user_input: UserInput) -> str:
    """The one canvas segment: the user's primary segment, else inferred from the description."""
    if user_input.primary_segment:
        return user_input.primary_segment
    role = user_input.target_decision_maker
    description = user_input.description.lower()
    if any(k in description for k in ("hospital", "healthcare", "medical")):
        return f"{role} in hospitals and healthcare organizations"
    if any(k in description for k in ("academic", "university")):
        return f"{role} in universities and academic institutions"
    if any(k in description for k in ("enterprise", "large")):
        return f"{role} in large enterprises"
    return f"{role} in organizations"


# -----------------------------------------------------------------------------
# Jobs
# -----------------------------------------------------------------------------


async def identify_jobs(user_input: UserInput, request_id: str | None = None) -> list[JobToBeDone]:
    """Functional jobs from the LLM, or two generic jobs from the description."""

    async def generate() -> list[JobToBeDone] | None:
        result = await llm.call_llm_structured(
            prompts.build_jobs_prompt(user_input),
            JobList,
            temperature=0.7,
            max_tokens=2000,
            request_id=request_id,
        )
        if result is None:
            return None
        return [job for job in result.jobs if job.text.strip()][:MAX_JOBS]

    return await llm.with_fallback(
        generate, lambda: fallback_jobs(user_input), stage="jobs", request_id=request_id
    )


def fallback_jobs(user_input: UserInput) -> list[JobToBeDone]:
    """Two functional jobs from the description, with emotional words removed so validation keeps them."""
    subject = lower_first(strip_emotional_words(snippet(user_input.description, 100))) or "their core work"
    return [
        JobToBeDone(text=f"Complete {subject}"),
        JobToBeDone(text=f"Manage {subject} more reliably and consistently"),
    ]


def build_customer_jobs(jobs: list[JobToBeDone]) -> list[CustomerJob]:
    return [
        CustomerJob(
            id=f"job-{i + 1}",
            text=job.text.strip(),
            confidence="high" if i < 2 else "medium",
            source=JOB_SOURCE,
        )
        for i, job in enumerate(jobs)
    ]


def contains_emotional_language(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in EMOTIONAL_KEYWORDS)


def strip_emotional_words(text: str) -> str:
    return " ".join(word for word in text.split() if not contains_emotional_language(word))


def partition_jobs(raw_jobs: list[CustomerJob]) -> tuple[list[CustomerJob], list[CustomerPain]]:
    """
    Split jobs into (functional jobs, pains extracted from emotional jobs).

    A job whose text contains any emotional keyword (case-insensitive substring)
    is moved verbatim into the pain list. Pure: the input list is not modified.
    """
    jobs: list[CustomerJob] = []
    extracted: list[CustomerPain] = []
    for job in raw_jobs:
        if contains_emotional_language(job.text):
            extracted.append(
                CustomerPain(
                    id=f"pain-from-job-{len(extracted) + 1}",
                    text=job.text,
                    confidence=job.confidence,
                    intensity="medium",
                    category="frustration",
                    source=JOB_VALIDATION_SOURCE,
                )
            )
        else:
            jobs.append(job)
    return jobs, extracted


# -----------------------------------------------------------------------------
# Pains
# -----------------------------------------------------------------------------


async def identify_pain_clusters(
    jobs: list[CustomerJob],
    user_input: UserInput,
    request_id: str | None = None,
) -> list[PainIntensityCluster]:
    """Pain-intensity clusters seeded with the validated jobs."""
    segment = user_input.primary_segment or user_input.target_decision_maker

    async def generate() -> list[PainIntensityCluster] | None:
        result = await llm.call_llm_structured(
            prompts.build_pain_clusters_prompt(user_input, [j.text for j in jobs], segment),
            PainClusterList,
            temperature=0.6,
            max_tokens=3000,
            request_id=request_id,
        )
        if result is None:
            return None
        return [c for c in result.clusters if c.specific_pain.strip()]

    return await llm.with_fallback(
        generate, lambda: fallback_pain_clusters(user_input), stage="pain_clusters", request_id=request_id
    )


def fallback_pain_clusters(user_input: UserInput) -> list[PainIntensityCluster]:
    return [
        PainIntensityCluster(
            user_group=f"{user_input.target_decision_maker} in growing companies",
            specific_pain=f"Struggling to manage {lower_first(snippet(user_input.description, 50))}",
            frequency="Daily",
            consequences="Reduced productivity and increased operational costs",
            is_fallback=True,
        )
    ]


def _overlaps(a: str, b: str) -> bool:
    a, b = a.lower(), b.lower()
    return a in b or b in a


def materialize_pains(
    clusters: list[PainIntensityCluster],
    research: ResearchData | None,
    extracted_pains: list[CustomerPain],
    user_input: UserInput,
) -> list[CustomerPain]:
    """
    Merge every pain source into the canvas pain list.

    Order: up to 10 cluster pains, then research pains that no cluster pain
    overlaps, ranked together (intensity high/medium/low in blocks of three,
    category round-robin) and capped at 10. Job-validator pains are appended
    after the ranked block and never dropped. Synthetic pains pad to 3.
    """
    research_pains = research.typical_pains if research else []
    research_source = research.source if research else INFERRED_SOURCE
    research_confidence = "medium" if research_source == FALLBACK_SOURCE else "high"

    # (id, text, confidence, source)
    ranked: list[tuple[str, str, str, str]] = []
    matched: set[int] = set()
    for i, cluster in enumerate(clusters[:MAX_CLUSTER_PAINS]):
        text = cluster.specific_pain.strip()
        match = next((j for j, r in enumerate(research_pains) if _overlaps(text, r)), None)
        if match is not None:
            matched.add(match)
        if cluster.is_fallback:
            source = INFERRED_SOURCE
        elif match is not None:
            source = research_source
        else:
            source = CLUSTER_SOURCE
        ranked.append((f"pain-{i + 1}", text, "high" if match is not None else "medium", source))

    for j, text in enumerate(research_pains):
        if j in matched or any(_overlaps(text, existing[1]) for existing in ranked):
            continue
        ranked.append((f"pain-research-{j + 1}", text, research_confidence, research_source))

    pains = [
        CustomerPain(
            id=pain_id,
            text=text,
            confidence=confidence,
            source=source,
            intensity="high" if rank < 3 else "medium" if rank < 6 else "low",
            category=PAIN_CATEGORY_CYCLE[rank % len(PAIN_CATEGORY_CYCLE)],
        )
        for rank, (pain_id, text, confidence, source) in enumerate(ranked[:MAX_RANKED_PAINS])
    ]
    pains.extend(extracted_pains)

    if len(pains) < MIN_PAINS:
        log("WARN", "padding pains with fallback", pains=len(pains))
        pains = pad_pains(pains, user_input)
    return pains


def fallback_pains(user_input: UserInput) -> list[CustomerPain]:
    subject = snippet(user_input.description, 50).lower()
    return [
        CustomerPain(
            id="pain-fallback-1",
            text=f"Difficulty managing {subject} efficiently",
            confidence="high", intensity="high", category="frustration", source=INFERRED_SOURCE,
        ),
        CustomerPain(
            id="pain-fallback-2",
            text=f"Lack of visibility into {subject} processes",
            confidence="medium", intensity="medium", category="barrier", source=INFERRED_SOURCE,
        ),
        CustomerPain(
            id="pain-fallback-3",
            text="Time-consuming manual processes and risk of errors",
            confidence="medium", intensity="medium", category="risk", source=INFERRED_SOURCE,
        ),
    ]


def pad_pains(pains: list[CustomerPain], user_input: UserInput) -> list[CustomerPain]:
    padded = list(pains)
    existing = {p.text.lower() for p in padded}
    for candidate in fallback_pains(user_input):
        if len(padded) >= MIN_PAINS:
            break
        if candidate.text.lower() not in existing:
            padded.append(candidate)
    return padded


# -----------------------------------------------------------------------------
# Gains
# -----------------------------------------------------------------------------


async def generate_gains(
    user_input: UserInput,
    jobs: list[CustomerJob],
    clusters: list[PainIntensityCluster],
    website_content: str = "",
    research: ResearchData | None = None,
    request_id: str | None = None,
) -> list[CustomerGain]:
    """Noun-outcome gains, filtered against description echoes and long verb phrases."""
    segment = user_input.primary_segment or user_input.target_decision_maker

    async def generate() -> list[CustomerGain] | None:
        result = await llm.call_llm_structured(
            prompts.build_gains_prompt(
                user_input, [j.text for j in jobs], clusters, segment, website_content, research
            ),
            GainList,
            temperature=0.7,
            max_tokens=1500,
            request_id=request_id,
        )
        if result is None:
            return None
        gains = [
            CustomerGain(
                id=f"gain-{i + 1}",
                text=draft.text.strip(),
                type=draft.type,
                confidence="high" if i < 2 else "medium",
                source="gain analysis",
            )
            for i, draft in enumerate(d for d in result.gains if d.text.strip())
        ][:MAX_GAINS]
        kept = filter_gains(gains, user_input.description)
        if not kept:
            log("WARN", "all generated gains filtered out", request_id=request_id, generated=len(gains))
            return fallback_gains(2)
        return kept

    return await llm.with_fallback(
        generate, fallback_gains, stage="gains", request_id=request_id
    )


def filter_gains(gains: list[CustomerGain], description: str) -> list[CustomerGain]:
    """Drop gains that are too long, echo the description, or are long 'save time on' phrases."""
    description_head = description.lower()[:50] if len(description) > 50 else ""
    kept = []
    for gain in gains:
        lowered = gain.text.lower()
        if len(gain.text) > 100:
            continue
        if description_head and description_head in lowered:
            continue
        if lowered.startswith("save time on") and len(gain.text) > 30:
            continue
        kept.append(gain)
    return kept


def fallback_gains(count: int = len(FALLBACK_GAINS)) -> list[CustomerGain]:
    return [
        CustomerGain(id=f"gain-{i + 1}", text=text, type=gain_type, confidence=confidence, source=INFERRED_SOURCE)
        for i, (text, gain_type, confidence) in enumerate(FALLBACK_GAINS[:count])
    ]


def pad_gains(gains: list[CustomerGain]) -> list[CustomerGain]:
    """Enforce the floor of 3 gains with generic fallbacks."""
    padded = list(gains)
    existing = {g.text.lower() for g in padded}
    for i, (text, gain_type, confidence) in enumerate(FALLBACK_GAINS[:MIN_GAINS]):
        if len(padded) >= MIN_GAINS:
            break
        if text.lower() in existing:
            continue
        padded.append(
            CustomerGain(
                id=f"gain-fallback-{i + 1}",
                text=text,
                type=gain_type,
                confidence=confidence,
                source=INFERRED_SOURCE,
            )
        )
    return padded
