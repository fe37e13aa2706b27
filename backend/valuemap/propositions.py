"""
Value Mapper Backend — Value Proposition Generator

Three template-bound value propositions for one segment. Requires a canvas
with 3 prioritized pains and 3 prioritized gains; the segment is forced back
to the canvas segment on every returned proposition.
"""

from valuemap import llm, prompts
from valuemap.config import log
from valuemap.models import (
    CustomerGain,
    CustomerJob,
    CustomerPain,
    PropositionDraft,
    PropositionList,
    UserInput,
    ValuePropositionCanvas,
    ValuePropositionStatement,
)
from valuemap.profile import derive_segment

REQUIRED_PRIORITIES = 3
MAX_PROPOSITIONS = 3
MIN_AI_PROPOSITIONS = 2

SERVICE_KEYWORDS = (
    "agency", "consulting", "services", "service", "advisory",
    "firm", "partners", "group", "marketing", "advertising",
)
PRODUCT_KEYWORDS = ("software", "platform", "tool", "app", "system", "solution", "product", "device")
# A service name containing one of these reads as a product, so "We" is used instead
PRODUCT_NAME_MARKERS = ("service", "tool", "platform", "software")

# (label, gain verb, pain verb)
FALLBACK_VARIANTS = (
    ("Pain-focused value proposition", "enabling", "reducing"),
    ("Gain-focused value proposition", "creating", "avoiding"),
    ("Balanced value proposition", "supporting", "minimizing"),
)


class PrioritizationError(ValueError):
    """The canvas does not carry the 3 prioritized pains and 3 prioritized gains."""

    def __init__(self, message: str = "Must prioritize exactly 3 pains and 3 gains"):
        super().__init__(message)


def select_prioritized(canvas: ValuePropositionCanvas) -> tuple[list[CustomerPain], list[CustomerGain]]:
    """
    Return the first 3 prioritized pains and gains.

    Raises:
        PrioritizationError: If fewer than 3 pains or 3 gains are prioritized.
    """
    pains = [p for p in canvas.customer_pains if p.is_prioritized]
    gains = [g for g in canvas.customer_gains if g.is_prioritized]
    if len(pains) < REQUIRED_PRIORITIES or len(gains) < REQUIRED_PRIORITIES:
        raise PrioritizationError()
    if len(pains) > REQUIRED_PRIORITIES or len(gains) > REQUIRED_PRIORITIES:
        log("INFO", "more than 3 priorities flagged, using the first 3", pains=len(pains), gains=len(gains))
    return pains[:REQUIRED_PRIORITIES], gains[:REQUIRED_PRIORITIES]


def detect_offering_type(product_name: str, description: str, explicit: str | None = None) -> str:
    """'product', 'service', or 'both' from explicit input or keyword heuristics."""
    if explicit:
        return explicit
    text = f"{product_name} {description}".lower()
    has_service = any(k in text for k in SERVICE_KEYWORDS)
    has_product = any(k in text for k in PRODUCT_KEYWORDS)
    if has_service and not has_product:
        return "service"
    if has_product and not has_service:
        return "product"
    return "both"


def statement_prefix(name: str, offering_type: str) -> str:
    if offering_type == "service":
        lowered = name.lower()
        if len(name) < 40 and not any(marker in lowered for marker in PRODUCT_NAME_MARKERS):
            return name
        return "We"
    return f"Our {name}"


def helps_verb(prefix: str) -> str:
    """Subject-verb agreement for the template's help/helps."""
    if prefix == "We":
        return "help"
    subject = prefix[4:] if prefix.lower().startswith("our ") else prefix
    return "help" if subject.lower().endswith("s") else "helps"


def canonical_segment(canvas: ValuePropositionCanvas, user_input: UserInput) -> str:
    return canvas.segment or derive_segment(user_input)


def enforce_segment(
    propositions: list[ValuePropositionStatement], segment: str
) -> list[ValuePropositionStatement]:
    """Force segment_targeted to the canvas segment, logging any drift."""
    corrected = []
    for prop in propositions:
        if prop.segment_targeted != segment:
            if prop.segment_targeted.strip().lower() != segment.strip().lower():
                log("WARN", "proposition segment drifted, corrected", proposition_id=prop.id,
                    returned=prop.segment_targeted, expected=segment)
            prop = prop.model_copy(update={"segment_targeted": segment})
        corrected.append(prop)
    return corrected


async def generate_value_propositions(
    canvas: ValuePropositionCanvas,
    user_input: UserInput,
    request_id: str | None = None,
) -> list[ValuePropositionStatement]:
    """
    Generate the value propositions for a validated canvas.

    Raises:
        PrioritizationError: If the canvas lacks 3 prioritized pains and gains.
    """
    pains, gains = select_prioritized(canvas)
    segment = canonical_segment(canvas, user_input)
    offering_type = detect_offering_type(user_input.product_name, user_input.description, user_input.product_type)
    prefix = statement_prefix(user_input.company_name or user_input.product_name, offering_type)
    verb = helps_verb(prefix)

    async def generate() -> list[ValuePropositionStatement] | None:
        result = await llm.call_llm_structured(
            prompts.build_propositions_prompt(canvas, pains, gains, segment, prefix, verb, offering_type),
            PropositionList,
            temperature=0.7,
            max_tokens=4000,
            request_id=request_id,
        )
        if result is None:
            return None
        drafts = [d for d in result.value_props if d.statement.strip()][:MAX_PROPOSITIONS]
        if len(drafts) < MIN_AI_PROPOSITIONS:
            log("WARN", "too few propositions returned", request_id=request_id, returned=len(drafts))
            return None
        return [_from_draft(i, d, canvas, pains, gains, segment) for i, d in enumerate(drafts)]

    propositions = await llm.with_fallback(
        generate,
        lambda: fallback_propositions(canvas, user_input, pains, gains, segment),
        stage="propositions",
        request_id=request_id,
    )
    return enforce_segment(propositions, segment)


def _from_draft(
    index: int,
    draft: PropositionDraft,
    canvas: ValuePropositionCanvas,
    pains: list[CustomerPain],
    gains: list[CustomerGain],
    segment: str,
) -> ValuePropositionStatement:
    pain_ids = {p.id for p in canvas.customer_pains}
    gain_ids = {g.id for g in canvas.customer_gains}
    key_pains = [pid for pid in draft.key_pains_relieved if pid in pain_ids] or [p.id for p in pains]
    key_gains = [gid for gid in draft.key_gains_created if gid in gain_ids] or [g.id for g in gains]
    main_job = primary_job(canvas)
    job_text = draft.primary_job or (main_job.text if main_job else "")
    measurable = draft.measurable_impact.strip()
    if measurable and not _has_digit(measurable) and not measurable.lower().startswith("qualitative"):
        measurable = f"Qualitative: {measurable}"
    return ValuePropositionStatement(
        id=f"vp-{index + 1}",
        label=draft.label,
        statement=draft.statement.strip(),
        segment_targeted=draft.segment_targeted or segment,
        primary_job=job_text,
        core_outcome=draft.core_outcome or (gains[0].text if gains else ""),
        key_pains_relieved=key_pains,
        key_gains_created=key_gains,
        competitive_contrast=draft.competitive_contrast,
        measurable_impact=measurable or "Qualitative: impact to be validated with early customers",
        assumptions=[a for a in draft.assumptions if a.strip()],
    )


def _has_digit(text: str) -> bool:
    return any(ch.isdigit() for ch in text)


def primary_job(canvas: ValuePropositionCanvas) -> CustomerJob | None:
    """The job chosen as the canvas anchor, else the first job."""
    jobs = canvas.customer_jobs
    return next((j for j in jobs if j.id == canvas.primary_job_id), jobs[0] if jobs else None)


def fallback_job_order(canvas: ValuePropositionCanvas) -> list[str]:
    """Jobs for the 3 template propositions: primary job, second job, third job (else second, else primary)."""
    main_job = primary_job(canvas)
    if main_job is None:
        return []
    jobs = canvas.customer_jobs
    second = jobs[1] if len(jobs) > 1 else main_job
    third = jobs[2] if len(jobs) > 2 else second
    return [main_job.text, second.text, third.text]


def fallback_propositions(
    canvas: ValuePropositionCanvas,
    user_input: UserInput,
    pains: list[CustomerPain],
    gains: list[CustomerGain],
    segment: str,
) -> list[ValuePropositionStatement]:
    """Exactly 3 propositions assembled from the ad-lib template with fixed verbs."""
    offering_type = detect_offering_type(user_input.product_name, user_input.description, user_input.product_type)
    lead_product = canvas.products_services[0].text if canvas.products_services else user_input.product_name
    prefix = statement_prefix(lead_product, offering_type)
    verb = helps_verb(prefix)
    alternative = canvas.alternatives[0] if canvas.alternatives else "current alternatives"
    jobs = fallback_job_order(canvas) or [f"get more value from {user_input.description.lower()}"] * 3

    propositions = []
    for i, (label, gain_verb, pain_verb) in enumerate(FALLBACK_VARIANTS):
        job = jobs[i]
        pain = pains[i]
        gain = gains[i]
        if i == len(FALLBACK_VARIANTS) - 1:
            key_pains = [p.id for p in pains]
            key_gains = [g.id for g in gains]
        else:
            key_pains = [pain.id]
            key_gains = [gain.id]
        statement = (
            f"{prefix} {verb} {segment.lower()} who want to {job.lower()} "
            f"by {gain_verb} {gain.text.lower()} and want to {pain_verb} {pain.text.lower()}, "
            f"unlike {alternative}."
        )
        propositions.append(
            ValuePropositionStatement(
                id=f"vp-{i + 1}",
                label=label,
                statement=statement,
                segment_targeted=segment,
                primary_job=job,
                core_outcome=gain.text,
                key_pains_relieved=key_pains,
                key_gains_created=key_gains,
                competitive_contrast=(
                    f"{user_input.product_name} is designed specifically for {segment.lower()} "
                    f"who want to {job.lower()}, whereas {alternative} often serves broader applications."
                ),
                measurable_impact=f"Qualitative: {gain.text} while reducing {pain.text.lower()}",
                assumptions=[
                    f"{segment} experience {pain.text.lower()}",
                    f"{segment} value {gain.text.lower()}",
                ],
            )
        )
    return propositions
