"""
Value Mapper Backend — LLM Prompt Templates

All prompts are defined here. Persona system prompt is injected in llm.py.
Builders return the user message list; callers pass it to llm.call_llm_structured.
"""

import json

from valuemap.models import (
    CustomerPain,
    CustomerGain,
    PainIntensityCluster,
    ResearchData,
    UserInput,
    ValuePropositionCanvas,
    ValuePropositionStatement,
)

# Shared by every canvas-level prompt
SINGLE_SEGMENT_RULE = """
# Single-Segment Rule (mandatory)
One canvas addresses exactly ONE customer segment. Every item you produce must describe that one segment.
Do not mix buyer and end-user personas, and do not introduce additional segments, roles, or audiences.
"""

RESEARCH_TEXT_LIMIT = 8000
WEBSITE_TEXT_LIMIT = 6000


def _json_block(data) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _user_message(parts: list[str]) -> list[dict]:
    return [{"role": "user", "content": "".join(parts)}]


def _product_section(user_input: UserInput) -> str:
    lines = [
        "\n\n# Product",
        f"\nName: {user_input.product_name}",
        f"\nDescription: {user_input.description}",
        f"\nTarget decision maker: {user_input.target_decision_maker}",
    ]
    if user_input.primary_segment:
        lines.append(f"\nPrimary segment: {user_input.primary_segment}")
    return "".join(lines)


# -----------------------------------------------------------------------------
# 1. build_research_extraction_prompt
# -----------------------------------------------------------------------------

RESEARCH_EXTRACTION_PROMPT = """
# Role
You are the "Market Research" module for Value Mapper. You are a market research analyst expert in
Jobs-to-Be-Done and Value Proposition Design. You read raw website text and web snippets about a
product's market and extract structured research.

You output a single JSON object. Nothing else — no markdown, no explanation, no text before or after the JSON.

# Task
1. Summarize the problem space in 2-3 sentences.
2. List 8-10 typical pains the target decision maker experiences (operational, financial, risk).
3. List 6-8 buying triggers: business or structural events that make someone start looking for a solution.
4. List 6-8 competitive alternatives: named competitors, categories of tools, or the status quo.

# Rules
- Only use information supported by the provided text. If the text is thin, stay generic rather than invent.
- Each list item is a single sentence or phrase under 200 characters.
- Do not mention spreadsheets or manual work unless the text supports it.

# Output Format
{
  "problemSpace": "2-3 sentence summary",
  "typicalPains": ["..."],
  "buyingTriggers": ["..."],
  "competitiveAlternatives": ["..."]
}
"""


def build_research_extraction_prompt(user_input: UserInput, research_text: str) -> list[dict]:
    """Build prompt to extract structured research from website text and lookup snippets."""
    parts = [RESEARCH_EXTRACTION_PROMPT, _product_section(user_input)]
    parts.append(f"\n\n# Research Text\n{research_text[:RESEARCH_TEXT_LIMIT]}")
    return _user_message(parts)


# -----------------------------------------------------------------------------
# 2. build_jobs_prompt
# -----------------------------------------------------------------------------

JOBS_PROMPT = """
# Role
You are the "Jobs-to-Be-Done" module for Value Mapper. You identify the FUNCTIONAL jobs the target
customer is trying to get done, independent of any specific product.

You output a single JSON object. Nothing else — no markdown, no explanation, no text before or after the JSON.

# Task
Produce 4-6 functional job statements for the target decision maker.

# Rules
- Functional only: describe a task or outcome the customer is trying to accomplish.
- Start each job with a verb ("Schedule", "Assign", "Track", "Reduce", "Ensure").
- NO emotional, social, or risk language: never use words like stress, anxiety, fear, confidence,
  reputation, pressure, worry, concern, or frustration. Those belong to pains, not jobs.
- Do not restate the product description or name the product.
- Each job is a single sentence under 150 characters.

# Output Format
{
  "jobs": [
    {"text": "Assign the right technician to each service request", "type": "functional"}
  ]
}
"""


def build_jobs_prompt(user_input: UserInput) -> list[dict]:
    """Build prompt to identify functional jobs-to-be-done."""
    parts = [JOBS_PROMPT, SINGLE_SEGMENT_RULE, _product_section(user_input)]
    return _user_message(parts)


# -----------------------------------------------------------------------------
# 3. build_pain_clusters_prompt
# -----------------------------------------------------------------------------

PAIN_CLUSTERS_PROMPT = """
# Role
You are the "Pain Intensity" module for Value Mapper. Given validated functional jobs, you identify
where and how intensely the target segment experiences pain when those jobs fail or go badly.

You output a single JSON object. Nothing else — no markdown, no explanation, no text before or after the JSON.

# Task
Produce 8-10 pain-intensity clusters. Each cluster names:
- userGroup: who feels the pain (a sub-group of the ONE target segment)
- specificPain: the concrete pain, phrased as a problem statement
- frequency: how often it occurs (e.g. "Daily", "Weekly", "At month end")
- consequences: what happens operationally or financially when it occurs

# Rules
- Cover emotional, operational, and financial pain tied to job failure.
- specificPain must be specific and under 200 characters. No generic "lack of efficiency" filler.
- Do not mention the product.

# Output Format
{
  "clusters": [
    {"userGroup": "...", "specificPain": "...", "frequency": "...", "consequences": "..."}
  ]
}
"""


def build_pain_clusters_prompt(user_input: UserInput, jobs: list[str], segment: str) -> list[dict]:
    """Build prompt to identify pain-intensity clusters seeded with validated jobs."""
    parts = [PAIN_CLUSTERS_PROMPT, SINGLE_SEGMENT_RULE, _product_section(user_input)]
    parts.append(f"\n\n# Target Segment\n{segment}")
    parts.append(f"\n\n# Validated Jobs\n{_json_block(jobs)}")
    return _user_message(parts)


# -----------------------------------------------------------------------------
# 4. build_gains_prompt
# -----------------------------------------------------------------------------

GAINS_PROMPT = """
# Role
You are the "Customer Gains" module for Value Mapper. You describe the outcomes and benefits the
target segment wants when its jobs go well.

You output a single JSON object. Nothing else — no markdown, no explanation, no text before or after the JSON.

# Task
Produce 5-6 gains. Classify each as required, expected, desired, or unexpected.

# Rules
- Phrase every gain as a NOUN OUTCOME ("Fewer missed appointments", "Faster first-time fix rate"),
  never as a verb action ("Save time on...", "Reduce...", "Improve...").
- Do not restate or paraphrase the product description.
- Each gain is under 100 characters.
- Do not invent numbers.

# Output Format
{
  "gains": [
    {"text": "Higher first-time fix rate", "type": "expected"}
  ]
}
"""


def build_gains_prompt(
    user_input: UserInput,
    jobs: list[str],
    clusters: list[PainIntensityCluster],
    segment: str,
    website_content: str = "",
    research: ResearchData | None = None,
) -> list[dict]:
    """Build prompt to generate noun-outcome gains."""
    description_summary = user_input.description.split(".")[0][:100]
    parts = [GAINS_PROMPT, SINGLE_SEGMENT_RULE]
    parts.append(f"\n\n# Product\nName: {user_input.product_name}\nSummary: {description_summary}")
    parts.append(f"\n\n# Target Segment\n{segment}")
    parts.append(f"\n\n# Jobs\n{_json_block(jobs)}")
    parts.append(f"\n\n# Pain Clusters\n{_json_block([c.specific_pain for c in clusters])}")
    if research is not None and research.problem_space:
        parts.append(f"\n\n# Problem Space\n{research.problem_space}")
    if website_content:
        parts.append(f"\n\n# Website Content\n{website_content[:WEBSITE_TEXT_LIMIT]}")
    return _user_message(parts)


# -----------------------------------------------------------------------------
# 5. build_products_prompt
# -----------------------------------------------------------------------------

PRODUCTS_PROMPT = """
# Role
You are the "Products & Services" module for Value Mapper. You list the concrete products,
modules, brands, or solution families the company offers.

You output a single JSON object. Nothing else — no markdown, no explanation, no text before or after the JSON.

# Task
Extract 5-10 concrete product or service names from the description and website content.

# Rules
- Use names that appear in the inputs (product names, module names, service lines, plans).
- Reject generic category labels such as "Software", "Platform", "Solution", or "Tools".
- Do not repeat the main product name; it is added separately.

# Output Format
{
  "products": ["Dispatch Board", "Mobile Technician App"]
}
"""


def build_products_prompt(user_input: UserInput, website_content: str = "") -> list[dict]:
    """Build prompt to extract products and services."""
    parts = [PRODUCTS_PROMPT, _product_section(user_input)]
    if website_content:
        parts.append(f"\n\n# Website Content\n{website_content[:WEBSITE_TEXT_LIMIT]}")
    else:
        parts.append("\n\n# Website Content\nNo website content provided. Use the description only.")
    return _user_message(parts)


# -----------------------------------------------------------------------------
# 6. build_value_map_prompt
# -----------------------------------------------------------------------------

VALUE_MAP_PROMPT = """
# Role
You are the "Value Map" module for Value Mapper. You explain HOW the offering relieves specific
pains and creates specific gains for the one target segment.

You output a single JSON object. Nothing else — no markdown, no explanation, no text before or after the JSON.

# Task
1. For each pain the products can realistically address, propose 1-2 pain relievers.
2. For each gain the products can realistically create, propose 1-2 gain creators.
3. Skip pains or gains the products cannot credibly address.

# Rules
- Explain a concrete MECHANISM: which capability does what, and how that changes the outcome.
  Never merely restate the benefit.
- Use hedged language ("is designed to help", "supports") when the inputs contain no explicit evidence.
- Never invent capabilities, technologies, integrations, or numbers the inputs do not imply.
- Never start a title or description with "Addresses:" or "Enables:". Those labels are added by the UI.
- painId and gainId must be ids from the lists below.
- title is a short label (under 60 characters); description is 1-2 sentences.
- evidenceSource is one of: user_input, website, research, inferred.

# Output Format
{
  "painRelievers": [
    {"painId": "pain-1", "title": "...", "description": "...", "productsUsed": ["..."],
     "confidence": "high|medium|low", "evidenceSource": "website"}
  ],
  "gainCreators": [
    {"gainId": "gain-1", "title": "...", "description": "...", "productsUsed": ["..."],
     "confidence": "high|medium|low", "evidenceSource": "inferred"}
  ]
}
"""


def build_value_map_prompt(canvas: ValuePropositionCanvas, website_content: str = "") -> list[dict]:
    """Build prompt to generate pain relievers and gain creators for the whole canvas."""
    parts = [VALUE_MAP_PROMPT, SINGLE_SEGMENT_RULE]
    parts.append(f"\n\n# Target Segment\n{canvas.segment}")
    parts.append(f"\n\n# Jobs\n{_json_block([j.text for j in canvas.customer_jobs])}")
    parts.append(
        f"\n\n# Pains\n{_json_block([{'id': p.id, 'text': p.text} for p in canvas.customer_pains])}"
    )
    parts.append(
        f"\n\n# Gains\n{_json_block([{'id': g.id, 'text': g.text} for g in canvas.customer_gains])}"
    )
    parts.append(f"\n\n# Products & Services\n{_json_block([p.text for p in canvas.products_services])}")
    if website_content:
        parts.append(f"\n\n# Website Content\n{website_content[:WEBSITE_TEXT_LIMIT]}")
    return _user_message(parts)


# -----------------------------------------------------------------------------
# 7. build_propositions_prompt
# -----------------------------------------------------------------------------

PROPOSITIONS_PROMPT = """
# Role
You are the "Value Proposition" module for Value Mapper. You write differentiated value-proposition
statements for ONE segment using a fixed ad-lib template.

You output a single JSON object. Nothing else — no markdown, no explanation, no text before or after the JSON.

# Task
Write exactly 3 value propositions.

# Template (follow exactly)
<prefix> <help|helps> <segment> who want to <job> by <gain-verb> <gain> and want to <pain-verb> <pain>, unlike <alternative>.

# Rules
- segmentTargeted must be the target segment below, copied VERBATIM, for all 3 propositions.
- Anchor each proposition on a different job where possible.
- Vary the pain/gain emphasis across the 3 (pain-focused, gain-focused, balanced). No mere rewordings.
- keyPainsRelieved and keyGainsCreated contain ids from the prioritized lists below.
- measurableImpact: only use figures present in the inputs. Otherwise write an explicitly labeled
  qualitative statement starting with "Qualitative:".
- competitiveContrast: neutral capability-fit language. Never claim superiority without a source.
- assumptions: 1-3 short statements that must be true for the proposition to hold.

# Output Format
{
  "valueProps": [
    {
      "label": "Pain-focused value proposition",
      "statement": "...",
      "segmentTargeted": "...",
      "primaryJob": "...",
      "coreOutcome": "...",
      "keyPainsRelieved": ["pain-1"],
      "keyGainsCreated": ["gain-1"],
      "competitiveContrast": "...",
      "measurableImpact": "Qualitative: ...",
      "assumptions": ["..."]
    }
  ]
}
"""


def build_propositions_prompt(
    canvas: ValuePropositionCanvas,
    pains: list[CustomerPain],
    gains: list[CustomerGain],
    segment: str,
    prefix: str,
    verb: str,
    offering_type: str,
) -> list[dict]:
    """Build prompt to generate 3 template-bound value propositions."""
    parts = [PROPOSITIONS_PROMPT, SINGLE_SEGMENT_RULE]
    parts.append(f"\n\n# Target Segment (copy verbatim)\n{segment}")
    parts.append(f"\n\n# Statement Prefix\n{prefix} {verb}  (offering type: {offering_type})")
    parts.append(f"\n\n# Jobs\n{_json_block([j.text for j in canvas.customer_jobs])}")
    parts.append(f"\n\n# Prioritized Pains\n{_json_block([{'id': p.id, 'text': p.text} for p in pains])}")
    parts.append(f"\n\n# Prioritized Gains\n{_json_block([{'id': g.id, 'text': g.text} for g in gains])}")
    mechanisms = [r.description or r.text for r in canvas.pain_relievers] + [
        c.description or c.text for c in canvas.gain_creators
    ]
    if mechanisms:
        parts.append(f"\n\n# Relievers & Creators\n{_json_block(mechanisms)}")
    alternatives = canvas.alternatives or ["current alternatives"]
    parts.append(f"\n\n# Alternatives\n{_json_block(alternatives)}")
    if canvas.evidence_metrics:
        metrics = [m.model_dump(by_alias=True) for m in canvas.evidence_metrics]
        parts.append(f"\n\n# Sourced Metrics\n{_json_block(metrics)}")
    return _user_message(parts)


# -----------------------------------------------------------------------------
# 8. build_universe_prompt
# -----------------------------------------------------------------------------

UNIVERSE_PROMPT = """
# Role
You are the "Prospect Universe" module for Value Mapper. You turn a value proposition canvas into
a targetable B2B prospect segment for outbound and advertising.

You output a single JSON object. Nothing else — no markdown, no explanation, no text before or after the JSON.

# Task
Return exactly ONE segment object aligned to the canvas segment below.

# Rules
- jobTitles: 4-6 titles of people in this segment who would buy or champion the offering.
- industries: 4-7 industries where the segment is concentrated.
- companySize: employee-count bands such as "50-200", "200-1000", "1000+".
- buyingTriggers: business or structural events only (growth, compliance change, leadership change,
  budget cycle). Never emotional triggers.
- toolsInStack: tool categories or named tools the segment already uses.
- keywords: up to 15 search keywords. hashtags: 5-8 without the # sign. events: 3-5 conferences or event types.

# Output Format
{
  "name": "...",
  "jobTitles": ["..."],
  "industries": ["..."],
  "companySize": ["50-200", "200-1000"],
  "buyingTriggers": ["..."],
  "toolsInStack": ["..."],
  "keywords": ["..."],
  "hashtags": ["..."],
  "events": ["..."]
}
"""


def build_universe_prompt(canvas: ValuePropositionCanvas, pains: list[CustomerPain]) -> list[dict]:
    """Build prompt to generate the prospect segment for a canvas."""
    primary_job = next(
        (j.text for j in canvas.customer_jobs if j.id == canvas.primary_job_id),
        canvas.customer_jobs[0].text if canvas.customer_jobs else "",
    )
    parts = [UNIVERSE_PROMPT, SINGLE_SEGMENT_RULE]
    parts.append(f"\n\n# Canvas Segment\n{canvas.segment}")
    parts.append(f"\n\n# Primary Job\n{primary_job}")
    parts.append(f"\n\n# All Jobs\n{_json_block([j.text for j in canvas.customer_jobs])}")
    parts.append(f"\n\n# Prioritized Pains\n{_json_block([p.text for p in pains])}")
    parts.append(f"\n\n# Gains\n{_json_block([g.text for g in canvas.customer_gains])}")
    return _user_message(parts)


# -----------------------------------------------------------------------------
# 9. build_assumptions_prompt
# -----------------------------------------------------------------------------

ASSUMPTIONS_PROMPT = """
# Role
You are the "Assumptions" module for Value Mapper. You list the business assumptions that must hold
for a value proposition to succeed, so the team can test them.

You output a single JSON object. Nothing else — no markdown, no explanation, no text before or after the JSON.

# Task
List 5-8 testable assumptions about the segment, the value proposition, channels, revenue, and cost.

# Rules
- category is one of: customer_segment, value_proposition, channel, revenue, cost, other.
- testability is high, medium, or low: how cheaply the assumption can be tested.
- experiment: one sentence describing a concrete, low-cost test.

# Output Format
{
  "assumptions": [
    {"statement": "...", "category": "value_proposition", "testability": "high", "experiment": "..."}
  ]
}
"""


def build_assumptions_prompt(
    proposition: ValuePropositionStatement, canvas: ValuePropositionCanvas
) -> list[dict]:
    """Build prompt to derive testable assumptions from the primary proposition."""
    parts = [ASSUMPTIONS_PROMPT, SINGLE_SEGMENT_RULE]
    parts.append(f"\n\n# Segment\n{canvas.segment}")
    parts.append(f"\n\n# Value Proposition\n{proposition.statement}")
    if proposition.assumptions:
        parts.append(f"\n\n# Stated Assumptions\n{_json_block(proposition.assumptions)}")
    parts.append(f"\n\n# Alternatives\n{_json_block(canvas.alternatives)}")
    return _user_message(parts)


# -----------------------------------------------------------------------------
# 10. build_segment_suggestion_prompt
# -----------------------------------------------------------------------------

SEGMENT_SUGGESTION_PROMPT = """
# Role
You are the "Segment Finder" module for Value Mapper. Before a canvas is built, you suggest the
customer segments the product could target, so the user can pick one.

You output a single JSON object. Nothing else — no markdown, no explanation, no text before or after the JSON.

# Task
Suggest 3-6 distinct segments.

# Rules
- label: a specific role in a specific setting ("Dispatch managers at HVAC service companies").
- type: customer, user, buyer, or influencer.
- confidence: high, medium, or low, based on how directly the inputs support the segment.

# Output Format
{
  "segments": [
    {"label": "...", "type": "buyer", "confidence": "high"}
  ]
}
"""


def build_segment_suggestion_prompt(product_name: str, description: str, website_content: str = "") -> list[dict]:
    """Build prompt to suggest candidate segments for a product."""
    parts = [SEGMENT_SUGGESTION_PROMPT]
    parts.append(f"\n\n# Product\nName: {product_name}\nDescription: {description}")
    if website_content:
        parts.append(f"\n\n# Website Content\n{website_content[:WEBSITE_TEXT_LIMIT]}")
    return _user_message(parts)
