"""
Single source of truth for all Pydantic models (requests, responses, SSE events, internal types).

Python attributes are snake_case; JSON in and out of the API is camelCase
(alias generator), and parsing accepts either spelling.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

Confidence = Literal["high", "medium", "low"]
PainCategory = Literal["risk", "barrier", "frustration", "financial"]
GainType = Literal["required", "expected", "desired", "unexpected"]
EvidenceSource = Literal["user_input", "website", "research", "inferred"]
ProductType = Literal["product", "service", "both"]
AssumptionCategory = Literal["customer_segment", "value_proposition", "channel", "revenue", "cost", "other"]
SegmentRole = Literal["customer", "user", "buyer", "influencer"]

CONFIDENCE_LEVELS = ("high", "medium", "low")
PAIN_CATEGORIES = ("frustration", "barrier", "risk", "financial")
GAIN_TYPES = ("required", "expected", "desired", "unexpected")
EVIDENCE_SOURCES = ("user_input", "website", "research", "inferred")
ASSUMPTION_CATEGORIES = ("customer_segment", "value_proposition", "channel", "revenue", "cost", "other")
SEGMENT_ROLES = ("customer", "user", "buyer", "influencer")


def coerce_choice(value: object, allowed: tuple[str, ...], default: str) -> str:
    """Normalize an LLM-supplied enum value, falling back to default when unknown."""
    if isinstance(value, str) and value.strip().lower() in allowed:
        return value.strip().lower()
    return default


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------------------------------------------------------
# Canvas Models
# -----------------------------------------------------------------------------


class CanvasItem(CamelModel):
    id: str
    text: str
    confidence: Confidence = "medium"
    source: Optional[str] = None


class CustomerJob(CanvasItem):
    type: Literal["functional"] = "functional"


class CustomerPain(CanvasItem):
    intensity: Optional[Confidence] = None
    category: Optional[PainCategory] = None
    is_prioritized: Optional[bool] = None


class CustomerGain(CanvasItem):
    type: GainType = "desired"
    is_prioritized: Optional[bool] = None


class ProductService(CanvasItem):
    category: Optional[str] = None


class PainReliever(CanvasItem):
    related_pain_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("relatedPainId", "painId", "related_pain_id")
    )
    title: Optional[str] = None
    description: str = ""
    products_used: list[str] = []
    evidence_source: EvidenceSource = "inferred"


class GainCreator(CanvasItem):
    related_gain_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("relatedGainId", "gainId", "related_gain_id")
    )
    title: Optional[str] = None
    description: str = ""
    products_used: list[str] = []
    evidence_source: EvidenceSource = "inferred"


class EvidenceMetric(CamelModel):
    claim: str
    value: str
    source: str


class ValuePropositionCanvas(CamelModel):
    customer_jobs: list[CustomerJob] = []
    customer_pains: list[CustomerPain] = []
    customer_gains: list[CustomerGain] = []
    products_services: list[ProductService] = []
    pain_relievers: list[PainReliever] = []
    gain_creators: list[GainCreator] = []
    segment: str = ""
    primary_job_id: Optional[str] = None
    alternatives: list[str] = []
    evidence_metrics: list[EvidenceMetric] = []


class ValuePropositionStatement(CamelModel):
    id: str
    label: Optional[str] = None
    statement: str
    segment_targeted: str
    primary_job: str
    core_outcome: str
    key_pains_relieved: list[str] = []
    key_gains_created: list[str] = []
    competitive_contrast: str = ""
    measurable_impact: str = ""
    assumptions: list[str] = []


class ProspectSegment(CamelModel):
    id: str
    name: str
    job_titles: list[str] = []
    industries: list[str] = []
    company_size: Optional[list[str]] = None
    buying_triggers: list[str] = []
    tools_in_stack: Optional[list[str]] = None
    keywords: list[str] = []
    hashtags: list[str] = []
    events: Optional[list[str]] = None


class Assumption(CamelModel):
    id: str
    statement: str
    category: AssumptionCategory = "other"
    testability: Confidence = "medium"
    experiment: Optional[str] = None


class CompanyPositioningSummary(CamelModel):
    company_name: str
    overarching_promise: str
    unified_job_statement: str
    shared_gains: list[str] = []
    shared_pains: list[str] = []
    shared_differentiators: list[str] = []
    primary_segments: list[str] = []
    positioning_statement: str


class SuggestedSegment(CamelModel):
    id: str
    label: str
    type: SegmentRole = "customer"
    confidence: Confidence = "medium"


# -----------------------------------------------------------------------------
# Pipeline Input / Intermediate Types
# -----------------------------------------------------------------------------


class UserInput(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    product_name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    target_decision_maker: str = Field(..., min_length=1, max_length=200)
    website_url: Optional[str] = None
    primary_segment: Optional[str] = None
    primary_job_id: Optional[str] = None
    product_type: Optional[ProductType] = None
    company_name: Optional[str] = None


class ResearchData(CamelModel):
    problem_space: str = ""
    typical_pains: list[str] = []
    buying_triggers: list[str] = []
    competitive_alternatives: list[str] = []
    source: str = "research"


class JobToBeDone(CamelModel):
    text: str
    type: Literal["functional"] = "functional"

    @field_validator("type", mode="before")
    @classmethod
    def force_functional(cls, value: object) -> str:
        """Every job is functional; emotional jobs are handled by partition_jobs."""
        return "functional"


class PainIntensityCluster(CamelModel):
    user_group: str = ""
    specific_pain: str
    frequency: str = ""
    consequences: str = ""
    is_fallback: bool = False


# -----------------------------------------------------------------------------
# LLM Response Models (for structured output validation)
# -----------------------------------------------------------------------------


def _wrap_list(data: object, key: str) -> object:
    """Accept a bare JSON array where an object with one list key is expected."""
    if isinstance(data, list):
        return {key: data}
    return data


class ResearchExtraction(CamelModel):
    problem_space: str = ""
    typical_pains: list[str] = []
    buying_triggers: list[str] = []
    competitive_alternatives: list[str] = []


class JobList(CamelModel):
    jobs: list[JobToBeDone] = []

    @model_validator(mode="before")
    @classmethod
    def accept_array(cls, data: object) -> object:
        return _wrap_list(data, "jobs")


class PainClusterList(CamelModel):
    clusters: list[PainIntensityCluster] = []

    @model_validator(mode="before")
    @classmethod
    def accept_array(cls, data: object) -> object:
        return _wrap_list(data, "clusters")


class GainDraft(CamelModel):
    text: str
    type: GainType = "desired"

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, value: object) -> str:
        return coerce_choice(value, GAIN_TYPES, "desired")


class GainList(CamelModel):
    gains: list[GainDraft] = []

    @model_validator(mode="before")
    @classmethod
    def accept_array(cls, data: object) -> object:
        return _wrap_list(data, "gains")


class ProductList(CamelModel):
    products: list[str] = []

    @model_validator(mode="before")
    @classmethod
    def accept_array(cls, data: object) -> object:
        """Accept a bare array, and {"name": ...} objects in place of strings."""
        data = _wrap_list(data, "products")
        if isinstance(data, dict) and isinstance(data.get("products"), list):
            data["products"] = [
                (p.get("name") or p.get("text") or "") if isinstance(p, dict) else p
                for p in data["products"]
            ]
        return data


class MechanismDraft(CamelModel):
    title: str = ""
    description: str = ""
    products_used: list[str] = []
    confidence: Confidence = "medium"
    evidence_source: EvidenceSource = "inferred"

    @field_validator("confidence", mode="before")
    @classmethod
    def coerce_confidence(cls, value: object) -> str:
        return coerce_choice(value, CONFIDENCE_LEVELS, "medium")

    @field_validator("evidence_source", mode="before")
    @classmethod
    def coerce_evidence(cls, value: object) -> str:
        return coerce_choice(value, EVIDENCE_SOURCES, "inferred")


class RelieverDraft(MechanismDraft):
    pain_id: str = Field(..., validation_alias=AliasChoices("painId", "relatedPainId", "pain_id"))


class CreatorDraft(MechanismDraft):
    gain_id: str = Field(..., validation_alias=AliasChoices("gainId", "relatedGainId", "gain_id"))


class ValueMapDraft(CamelModel):
    pain_relievers: list[RelieverDraft] = []
    gain_creators: list[CreatorDraft] = []


class PropositionDraft(CamelModel):
    label: Optional[str] = None
    statement: str
    segment_targeted: str = ""
    primary_job: str = ""
    core_outcome: str = ""
    key_pains_relieved: list[str] = []
    key_gains_created: list[str] = []
    competitive_contrast: str = ""
    measurable_impact: str = ""
    assumptions: list[str] = []


class PropositionList(CamelModel):
    value_props: list[PropositionDraft] = Field(
        [], validation_alias=AliasChoices("valueProps", "value_props", "propositions")
    )

    @model_validator(mode="before")
    @classmethod
    def accept_array(cls, data: object) -> object:
        return _wrap_list(data, "valueProps")


class SegmentDraft(CamelModel):
    name: str = ""
    job_titles: list[str] = []
    industries: list[str] = []
    company_size: list[str] = []
    buying_triggers: list[str] = []
    tools_in_stack: list[str] = []
    keywords: list[str] = []
    hashtags: list[str] = []
    events: list[str] = []


class UniverseDraft(CamelModel):
    segments: list[SegmentDraft] = []

    @model_validator(mode="before")
    @classmethod
    def accept_object_or_array(cls, data: object) -> object:
        """The model may return one segment object, an array, or {"segments": [...]}."""
        if isinstance(data, list):
            return {"segments": data}
        if isinstance(data, dict) and "segments" not in data:
            return {"segments": [data]}
        return data


class AssumptionDraft(CamelModel):
    statement: str = ""
    category: AssumptionCategory = "other"
    testability: Confidence = "medium"
    experiment: Optional[str] = None

    @field_validator("category", mode="before")
    @classmethod
    def coerce_category(cls, value: object) -> str:
        return coerce_choice(value, ASSUMPTION_CATEGORIES, "other")

    @field_validator("testability", mode="before")
    @classmethod
    def coerce_testability(cls, value: object) -> str:
        return coerce_choice(value, CONFIDENCE_LEVELS, "medium")


class AssumptionList(CamelModel):
    assumptions: list[AssumptionDraft] = []

    @model_validator(mode="before")
    @classmethod
    def accept_array(cls, data: object) -> object:
        return _wrap_list(data, "assumptions")


class SegmentSuggestionDraft(CamelModel):
    label: str = ""
    type: SegmentRole = "customer"
    confidence: Confidence = "medium"

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, value: object) -> str:
        return coerce_choice(value, SEGMENT_ROLES, "customer")

    @field_validator("confidence", mode="before")
    @classmethod
    def coerce_confidence(cls, value: object) -> str:
        return coerce_choice(value, CONFIDENCE_LEVELS, "medium")


class SegmentSuggestionList(CamelModel):
    segments: list[SegmentSuggestionDraft] = []

    @model_validator(mode="before")
    @classmethod
    def accept_array(cls, data: object) -> object:
        return _wrap_list(data, "segments")


# -----------------------------------------------------------------------------
# Pipeline Result
# -----------------------------------------------------------------------------


class ValuePropFlowResult(CamelModel):
    canvas: ValuePropositionCanvas
    pain_relievers: list[PainReliever] = []
    gain_creators: list[GainCreator] = []
    value_propositions: list[ValuePropositionStatement] = []
    prospect_universe: list[ProspectSegment] = []
    assumptions: list[Assumption] = []
    company_positioning: CompanyPositioningSummary


# -----------------------------------------------------------------------------
# Request / Response Models
# -----------------------------------------------------------------------------


class SuggestSegmentsRequest(CamelModel):
    product_name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    website_url: Optional[str] = None


class SuggestSegmentsResponse(CamelModel):
    segments: list[SuggestedSegment]


class CanvasResponse(CamelModel):
    canvas: ValuePropositionCanvas
    research: ResearchData


class PropositionsRequest(CamelModel):
    canvas: ValuePropositionCanvas
    user_input: UserInput


class PropositionsResponse(CamelModel):
    canvas: ValuePropositionCanvas
    value_propositions: list[ValuePropositionStatement]


class UniverseRequest(CamelModel):
    canvas: ValuePropositionCanvas
    value_propositions: list[ValuePropositionStatement] = []


class UniverseResponse(CamelModel):
    prospect_universe: list[ProspectSegment]


class PositioningRequest(CamelModel):
    canvases: list[ValuePropositionCanvas] = []
    value_propositions: list[ValuePropositionStatement] = []
    user_input: UserInput
    primary_segments: Optional[list[str]] = None


class ReportEmailRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    canvas: ValuePropositionCanvas
    value_propositions: list[ValuePropositionStatement] = []
    prospect_universe: list[ProspectSegment] = []
    user_input: UserInput
    company_positioning: Optional[CompanyPositioningSummary] = None


class ReportEmailResponse(CamelModel):
    success: bool
    hubspot_lead_created: bool = False
    hubspot_error: Optional[str] = None


# -----------------------------------------------------------------------------
# SSE Event Models
# -----------------------------------------------------------------------------


class StageStartedEvent(CamelModel):
    type: str = "stage_started"
    stage: str


class StageCompletedEvent(CamelModel):
    type: str = "stage_completed"
    stage: str
    summary: Optional[str] = None


class FlowCompleteEvent(CamelModel):
    type: str = "flow_complete"
    result: ValuePropFlowResult


class ErrorEvent(CamelModel):
    type: str = "error"
    message: str
    recoverable: bool = False
    error_code: Optional[str] = None
