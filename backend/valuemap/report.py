"""
Value Mapper Backend — Report Formatting

Serializes canvas + propositions + prospect segments + positioning into the
plain-text report (email body fallback and CRM note) and the HTML email body.
"""

from datetime import date
from html import escape

from valuemap.models import (
    CompanyPositioningSummary,
    ProspectSegment,
    UserInput,
    ValuePropositionCanvas,
    ValuePropositionStatement,
)

RULE = "=" * 50
SUBRULE = "-" * 50
TOP_MARKER = " [TOP 3]"


def _hashtag(tag: str) -> str:
    return tag if tag.startswith("#") else f"#{tag}"


def _lookup(items, item_id: str) -> str:
    return next((item.text for item in items if item.id == item_id), item_id)


def email_subject(user_input: UserInput) -> str:
    return f"Value Mapping Report: {user_input.product_name}"


def format_report_text(
    canvas: ValuePropositionCanvas,
    propositions: list[ValuePropositionStatement],
    segments: list[ProspectSegment],
    user_input: UserInput,
    company_positioning: CompanyPositioningSummary | None = None,
    generated_on: date | None = None,
) -> str:
    lines = ["VALUE PROPOSITION CANVAS REPORT", RULE, ""]

    lines += ["PRODUCT INFORMATION", SUBRULE]
    lines.append(f"Product Name: {user_input.product_name}")
    lines.append(f"Description: {user_input.description}")
    lines.append(f"Target Segment: {user_input.primary_segment or user_input.target_decision_maker}")
    if user_input.website_url:
        lines.append(f"Website: {user_input.website_url}")
    lines.append("")

    lines += ["CUSTOMER JOBS", SUBRULE]
    for i, job in enumerate(canvas.customer_jobs, 1):
        lines.append(f"{i}. {job.text} [{job.type}] ({job.confidence} confidence)")
    lines.append("")

    lines += ["CUSTOMER PAINS", SUBRULE]
    for i, pain in enumerate(canvas.customer_pains, 1):
        intensity = f" [{pain.intensity} intensity]" if pain.intensity else ""
        lines.append(f"{i}. {pain.text}{intensity}{TOP_MARKER if pain.is_prioritized else ''}")
    lines.append("")

    lines += ["CUSTOMER GAINS", SUBRULE]
    for i, gain in enumerate(canvas.customer_gains, 1):
        lines.append(f"{i}. {gain.text} [{gain.type}]{TOP_MARKER if gain.is_prioritized else ''}")
    lines.append("")

    lines += ["PRODUCTS & SERVICES", SUBRULE]
    for i, product in enumerate(canvas.products_services, 1):
        lines.append(f"{i}. {product.text}")
    lines.append("")

    for heading, items in (("PAIN RELIEVERS", canvas.pain_relievers), ("GAIN CREATORS", canvas.gain_creators)):
        if not items:
            continue
        lines += [heading, SUBRULE]
        for i, item in enumerate(items, 1):
            lines.append(f"{i}. {item.title or item.text}")
            if item.description and item.description != (item.title or item.text):
                lines.append(f"   {item.description}")
        lines.append("")

    if company_positioning is not None:
        lines += ["COMPANY POSITIONING SUMMARY", SUBRULE]
        lines += [f"Overarching Promise: {company_positioning.overarching_promise}", ""]
        lines += [f"Positioning Statement: {company_positioning.positioning_statement}", ""]
        lines += [f"Unified Job Statement: {company_positioning.unified_job_statement}", ""]
        for label, values in (
            ("Shared Pains:", company_positioning.shared_pains),
            ("Shared Gains:", company_positioning.shared_gains),
            ("Shared Differentiators:", company_positioning.shared_differentiators),
        ):
            if values:
                lines.append(label)
                lines += [f"  - {value}" for value in values]
                lines.append("")
        if company_positioning.primary_segments:
            lines += [f"Based on Segment(s): {', '.join(company_positioning.primary_segments)}", ""]

    lines += ["VALUE PROPOSITIONS", SUBRULE]
    for i, prop in enumerate(propositions, 1):
        lines.append(f"\nValue Proposition {i}: {prop.label or 'Untitled'}")
        lines.append(f"Statement: {prop.statement}")
        lines.append(f"Segment Targeted: {prop.segment_targeted}")
        lines.append(f"Primary Job: {prop.primary_job}")
        lines.append(f"Core Outcome: {prop.core_outcome}")
        lines.append(f"Competitive Contrast: {prop.competitive_contrast}")
        lines.append(f"Measurable Impact: {prop.measurable_impact}")
        if prop.key_pains_relieved:
            lines.append("Key Pains Relieved:")
            lines += [f"  - {_lookup(canvas.customer_pains, pid)}" for pid in prop.key_pains_relieved]
        if prop.key_gains_created:
            lines.append("Key Gains Created:")
            lines += [f"  - {_lookup(canvas.customer_gains, gid)}" for gid in prop.key_gains_created]
    lines.append("")

    lines += ["PROSPECT UNIVERSE", SUBRULE]
    for i, segment in enumerate(segments, 1):
        lines.append(f"\nSegment {i}: {segment.name}")
        lines.append(f"Job Titles: {', '.join(segment.job_titles)}")
        lines.append(f"Industries: {', '.join(segment.industries)}")
        if segment.company_size:
            lines.append(f"Company Size: {', '.join(segment.company_size)}")
        lines.append("Buying Triggers:")
        lines += [f"  - {trigger}" for trigger in segment.buying_triggers]
        if segment.tools_in_stack:
            lines.append(f"Tools in Stack: {', '.join(segment.tools_in_stack)}")
        lines.append(f"Keywords: {', '.join(segment.keywords)}")
        lines.append(f"Hashtags: {', '.join(_hashtag(h) for h in segment.hashtags)}")
        if segment.events:
            lines.append(f"Events: {', '.join(segment.events)}")
    lines.append("")

    generated = generated_on or date.today()
    lines.append(RULE)
    lines.append("Generated by Value Mapper")
    lines.append(f"Date: {generated.strftime('%B')} {generated.day}, {generated.year}")
    return "\n".join(lines)


# -----------------------------------------------------------------------------
# HTML
# -----------------------------------------------------------------------------


def _html_list(items: list[str], ordered: bool = False) -> str:
    if not items:
        return ""
    tag = "ol" if ordered else "ul"
    body = "".join(f"<li>{item}</li>" for item in items)
    return f"<{tag}>{body}</{tag}>"


def _html_section(title: str, content: str) -> str:
    return (
        '<div style="margin-bottom:24px">'
        f'<h2 style="color:#1f2937;font-size:18px;border-bottom:1px solid #e5e7eb;padding-bottom:6px">{escape(title)}</h2>'
        f"{content}</div>"
    )


def _top(flag: bool | None) -> str:
    return ' <strong style="color:#2563eb">[TOP 3]</strong>' if flag else ""


def format_report_html(
    canvas: ValuePropositionCanvas,
    propositions: list[ValuePropositionStatement],
    segments: list[ProspectSegment],
    user_input: UserInput,
    company_positioning: CompanyPositioningSummary | None = None,
) -> str:
    """HTML email body. Every user- or model-supplied string is escaped."""
    sections = []

    info = [
        f"<strong>Product:</strong> {escape(user_input.product_name)}",
        f"<strong>Description:</strong> {escape(user_input.description)}",
        f"<strong>Target Segment:</strong> {escape(user_input.primary_segment or user_input.target_decision_maker)}",
    ]
    if user_input.website_url:
        info.append(f"<strong>Website:</strong> {escape(user_input.website_url)}")
    sections.append(_html_section("Product Information", _html_list(info)))

    sections.append(_html_section(
        "Customer Jobs", _html_list([escape(j.text) for j in canvas.customer_jobs], ordered=True)
    ))
    sections.append(_html_section(
        "Customer Pains",
        _html_list([escape(p.text) + _top(p.is_prioritized) for p in canvas.customer_pains], ordered=True),
    ))
    sections.append(_html_section(
        "Customer Gains",
        _html_list([escape(g.text) + _top(g.is_prioritized) for g in canvas.customer_gains], ordered=True),
    ))
    sections.append(_html_section(
        "Products & Services", _html_list([escape(p.text) for p in canvas.products_services], ordered=True)
    ))

    mechanisms = [
        f"<strong>{escape(r.title or r.text)}</strong><br>{escape(r.description)}"
        for r in [*canvas.pain_relievers, *canvas.gain_creators]
    ]
    if mechanisms:
        sections.append(_html_section("Pain Relievers & Gain Creators", _html_list(mechanisms)))

    if company_positioning is not None:
        content = (
            f"<p><strong>Positioning Statement:</strong> {escape(company_positioning.positioning_statement)}</p>"
            f"<p><strong>Overarching Promise:</strong> {escape(company_positioning.overarching_promise)}</p>"
            f"<p><strong>Unified Job:</strong> {escape(company_positioning.unified_job_statement)}</p>"
        )
        sections.append(_html_section("Company Positioning", content))

    prop_blocks = []
    for prop in propositions:
        prop_blocks.append(
            '<div style="background:#f9fafb;border-radius:8px;padding:12px;margin-bottom:12px">'
            f"<h3 style=\"margin:0 0 8px\">{escape(prop.label or 'Value Proposition')}</h3>"
            f"<p>{escape(prop.statement)}</p>"
            f"<p><strong>Competitive Contrast:</strong> {escape(prop.competitive_contrast)}</p>"
            f"<p><strong>Measurable Impact:</strong> {escape(prop.measurable_impact)}</p>"
            "</div>"
        )
    sections.append(_html_section("Value Propositions", "".join(prop_blocks)))

    segment_blocks = []
    for segment in segments:
        segment_blocks.append(
            f"<h3>{escape(segment.name)}</h3>"
            f"<p><strong>Job Titles:</strong> {escape(', '.join(segment.job_titles))}</p>"
            f"<p><strong>Industries:</strong> {escape(', '.join(segment.industries))}</p>"
            f"<p><strong>Buying Triggers:</strong></p>{_html_list([escape(t) for t in segment.buying_triggers])}"
            f"<p><strong>Keywords:</strong> {escape(', '.join(segment.keywords))}</p>"
            f"<p><strong>Hashtags:</strong> {escape(', '.join(_hashtag(h) for h in segment.hashtags))}</p>"
        )
    sections.append(_html_section("Prospect Universe", "".join(segment_blocks)))

    return (
        '<div style="font-family:Arial,Helvetica,sans-serif;max-width:720px;margin:0 auto;color:#111827">'
        f'<h1 style="font-size:22px">Value Mapping Report: {escape(user_input.product_name)}</h1>'
        + "".join(sections)
        + '<p style="color:#6b7280;font-size:12px">Generated by Value Mapper</p></div>'
    )
