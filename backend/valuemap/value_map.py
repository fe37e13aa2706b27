"""
Value Mapper Backend — Value Map Builder

Products & services, then pain relievers and gain creators for the whole
canvas. Reliever/creator text runs through an ordered sanitization pipeline
so it never carries the UI's "Addresses:" / "Enables:" labels.
"""

import re
from typing import Callable

from valuemap import llm, prompts
from valuemap.models import (
    CustomerGain,
    CustomerPain,
    GainCreator,
    PainReliever,
    ProductList,
    ProductService,
    UserInput,
    ValueMapDraft,
    ValuePropositionCanvas,
)
from valuemap.config import log

MAX_EXTRACTED_PRODUCTS = 9
FALLBACK_RELIEVER_PAINS = 6
FALLBACK_CREATOR_GAINS = 5


# -----------------------------------------------------------------------------
# Products & Services
# -----------------------------------------------------------------------------


def _product_name_item(user_input: UserInput) -> ProductService:
    return ProductService(id="product-1", text=user_input.product_name, confidence="high", source="user input")


async def generate_products(
    user_input: UserInput,
    website_content: str = "",
    request_id: str | None = None,
) -> list[ProductService]:
    """The product name first, then up to 9 extracted product/service names."""

    async def generate() -> list[ProductService] | None:
        result = await llm.call_llm_structured(
            prompts.build_products_prompt(user_input, website_content),
            ProductList,
            temperature=0.6,
            max_tokens=2000,
            request_id=request_id,
        )
        if result is None:
            return None

        name = user_input.product_name.lower()
        names: list[str] = []
        for raw in result.products:
            text = raw.strip() if isinstance(raw, str) else ""
            if 0 < len(text) < 200 and text.lower() != name and text not in names:
                names.append(text)

        source = "website" if website_content else "inferred"
        return [_product_name_item(user_input)] + [
            ProductService(id=f"product-{i + 2}", text=text, confidence="medium", source=source)
            for i, text in enumerate(names[:MAX_EXTRACTED_PRODUCTS])
        ]

    return await llm.with_fallback(
        generate, lambda: [_product_name_item(user_input)], stage="products", request_id=request_id
    )


# -----------------------------------------------------------------------------
# Sanitization pipeline
# -----------------------------------------------------------------------------

_LABEL_PREFIX_RE = re.compile(r"^\s*(?:addresses|enables)\b\s*:?\s*", re.IGNORECASE)
_TRAILING_ELLIPSIS_RE = re.compile(r"(?:\s*(?:\.\.\.|…))+\s*$")


def strip_label_prefix(text: str) -> str:
    return _LABEL_PREFIX_RE.sub("", text, count=1)


def trim_trailing_ellipsis(text: str) -> str:
    return _TRAILING_ELLIPSIS_RE.sub("", text).strip()


# Applied in order, repeatedly, until the text stops changing
MECHANISM_TRANSFORMS: tuple[Callable[[str], str], ...] = (
    strip_label_prefix,
    trim_trailing_ellipsis,
)


def apply_transforms(text: str) -> str:
    current = text.strip()
    while True:
        updated = current
        for transform in MECHANISM_TRANSFORMS:
            updated = transform(updated)
        if updated == current:
            return current
        current = updated


def sanitize_mechanism_text(text: str | None, backfill: str = "") -> str:
    """
    Clean reliever/creator text.

    Steps: strip label prefixes → trim trailing ellipsis (until stable) →
    backfill from the related pain/gain when empty → re-check the result.
    Idempotent, and the result never starts with "Addresses" or "Enables".
    """
    cleaned = apply_transforms(text or "")
    if not cleaned and backfill:
        cleaned = apply_transforms(backfill)
    return cleaned


def starts_with_label(text: str) -> bool:
    return bool(_LABEL_PREFIX_RE.match(text))


# -----------------------------------------------------------------------------
# Pain Relievers / Gain Creators
# -----------------------------------------------------------------------------


async def generate_relievers_and_creators(
    canvas: ValuePropositionCanvas,
    website_content: str = "",
    request_id: str | None = None,
) -> tuple[list[PainReliever], list[GainCreator]]:
    """Mechanism-level relievers and creators, or the template stand-ins."""

    async def generate() -> tuple[list[PainReliever], list[GainCreator]] | None:
        draft = await llm.call_llm_structured(
            prompts.build_value_map_prompt(canvas, website_content),
            ValueMapDraft,
            temperature=0.6,
            max_tokens=4000,
            request_id=request_id,
        )
        if draft is None:
            return None
        relievers, creators = map_value_map_draft(draft, canvas)
        if not relievers and not creators:
            log("WARN", "value map draft had no usable items", request_id=request_id)
            return None
        return relievers, creators

    return await llm.with_fallback(
        generate,
        lambda: fallback_relievers_and_creators(canvas.customer_pains, canvas.customer_gains),
        stage="relievers_creators",
        request_id=request_id,
    )


def map_value_map_draft(
    draft: ValueMapDraft, canvas: ValuePropositionCanvas
) -> tuple[list[PainReliever], list[GainCreator]]:
    """Turn a validated draft into canvas items, dropping references to unknown ids."""
    pains = {p.id: p for p in canvas.customer_pains}
    gains = {g.id: g for g in canvas.customer_gains}

    relievers: list[PainReliever] = []
    for item in draft.pain_relievers:
        pain = pains.get(item.pain_id)
        if pain is None:
            log("WARN", "reliever references unknown pain, dropped", pain_id=item.pain_id)
            continue
        backfill = f"Helps address {pain.text.lower()}"
        description = sanitize_mechanism_text(item.description, backfill)
        title = sanitize_mechanism_text(item.title) or None
        relievers.append(
            PainReliever(
                id=f"reliever-{len(relievers) + 1}",
                text=title or description,
                related_pain_id=pain.id,
                title=title,
                description=description,
                products_used=[p for p in item.products_used if p.strip()],
                confidence=item.confidence,
                evidence_source=item.evidence_source,
                source=item.evidence_source,
            )
        )

    creators: list[GainCreator] = []
    for item in draft.gain_creators:
        gain = gains.get(item.gain_id)
        if gain is None:
            log("WARN", "creator references unknown gain, dropped", gain_id=item.gain_id)
            continue
        backfill = f"Helps enable {gain.text.lower()}"
        description = sanitize_mechanism_text(item.description, backfill)
        title = sanitize_mechanism_text(item.title) or None
        creators.append(
            GainCreator(
                id=f"creator-{len(creators) + 1}",
                text=title or description,
                related_gain_id=gain.id,
                title=title,
                description=description,
                products_used=[p for p in item.products_used if p.strip()],
                confidence=item.confidence,
                evidence_source=item.evidence_source,
                source=item.evidence_source,
            )
        )

    return relievers, creators


def fallback_relievers_and_creators(
    pains: list[CustomerPain], gains: list[CustomerGain]
) -> tuple[list[PainReliever], list[GainCreator]]:
    """Last-resort, mechanism-free stand-ins: one per pain (first 6) and gain (first 5)."""
    relievers = []
    for i, pain in enumerate(pains[:FALLBACK_RELIEVER_PAINS]):
        text = sanitize_mechanism_text(f"Helps address {pain.text.lower()}")
        relievers.append(
            PainReliever(
                id=f"reliever-{i + 1}",
                text=text,
                related_pain_id=pain.id,
                description=text,
                confidence=pain.confidence,
                evidence_source="inferred",
                source="inferred",
            )
        )

    creators = []
    for i, gain in enumerate(gains[:FALLBACK_CREATOR_GAINS]):
        text = sanitize_mechanism_text(f"Helps enable {gain.text.lower()}")
        creators.append(
            GainCreator(
                id=f"creator-{i + 1}",
                text=text,
                related_gain_id=gain.id,
                description=text,
                confidence=gain.confidence,
                evidence_source="inferred",
                source="inferred",
            )
        )
    return relievers, creators
