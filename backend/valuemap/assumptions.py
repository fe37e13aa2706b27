"""
Value Mapper Backend — Assumptions Generator

Testable business assumptions behind the primary value proposition.
"""

from valuemap import llm, prompts
from valuemap.models import Assumption, AssumptionList, ValuePropositionCanvas, ValuePropositionStatement


async def generate_assumptions(
    proposition: ValuePropositionStatement,
    canvas: ValuePropositionCanvas,
    request_id: str | None = None,
) -> list[Assumption]:
    async def generate() -> list[Assumption] | None:
        result = await llm.call_llm_structured(
            prompts.build_assumptions_prompt(proposition, canvas),
            AssumptionList,
            temperature=0.6,
            max_tokens=3000,
            request_id=request_id,
        )
        if result is None:
            return None
        drafts = [d for d in result.assumptions if d.statement.strip()]
        return [
            Assumption(
                id=f"assumption-{i + 1}",
                statement=d.statement.strip(),
                category=d.category,
                testability=d.testability,
                experiment=d.experiment,
            )
            for i, d in enumerate(drafts)
        ]

    return await llm.with_fallback(
        generate,
        lambda: fallback_assumptions(proposition, canvas),
        stage="assumptions",
        request_id=request_id,
    )


def fallback_assumptions(
    proposition: ValuePropositionStatement, canvas: ValuePropositionCanvas
) -> list[Assumption]:
    segment = canvas.segment or proposition.segment_targeted
    statements: list[tuple[str, str, str, str]] = [
        (text, "value_proposition", "medium", "Interview 5-10 people in the segment and ask them to rank this need.")
        for text in proposition.assumptions
        if text.strip()
    ]
    statements.append((
        f"{segment} actively look for a better way to {proposition.primary_job.lower()}",
        "customer_segment",
        "high",
        "Run a small targeted ad or outreach campaign and measure reply or click-through rate.",
    ))
    statements.append((
        f"{segment} will pay for {proposition.core_outcome.lower()}",
        "revenue",
        "medium",
        "Offer a paid pilot or pre-order to a short list of qualified prospects.",
    ))
    return [
        Assumption(id=f"assumption-{i + 1}", statement=s, category=c, testability=t, experiment=e)
        for i, (s, c, t, e) in enumerate(statements)
    ]
