"""
Value Mapper Backend — Report Email API (POST /api/report/email)

Emails the report to the requester, then records them as a CRM lead with the
report attached. Email delivery is the only fatal step.
"""

from fastapi import APIRouter, HTTPException, Request

from valuemap import crm, mailer, report
from valuemap.api.common import get_request_id, internal_error, limiter
from valuemap.config import generate_error_code, log
from valuemap.mailer import EmailDeliveryError
from valuemap.models import ReportEmailRequest, ReportEmailResponse

router = APIRouter(prefix="/api/report", tags=["report"])


@router.post("/email", response_model=ReportEmailResponse)
@limiter.limit("5/minute")
async def email_report(body: ReportEmailRequest, request: Request) -> ReportEmailResponse:
    """
    POST /api/report/email

    502 when the email cannot be sent. CRM failures are reported in
    hubspotLeadCreated / hubspotError only.
    """
    request_id = get_request_id(request)
    email = body.email.strip().lower()

    try:
        text = report.format_report_text(
            body.canvas, body.value_propositions, body.prospect_universe, body.user_input, body.company_positioning
        )
        html = report.format_report_html(
            body.canvas, body.value_propositions, body.prospect_universe, body.user_input, body.company_positioning
        )
    except Exception as e:
        raise internal_error(e, "report formatting failed", request_id)

    try:
        await mailer.send_report_email(
            email, report.email_subject(body.user_input), html, text, request_id=request_id
        )
    except EmailDeliveryError as e:
        code = generate_error_code()
        log("ERROR", "report email not delivered", request_id=request_id, error=str(e), error_code=code)
        raise HTTPException(
            status_code=502,
            detail={"message": "We couldn't send the report email. Please try again.", "error_code": code},
        )

    lead = await crm.create_lead_with_report(email, text, request_id=request_id)
    return ReportEmailResponse(success=True, hubspot_lead_created=lead.success, hubspot_error=lead.error)
