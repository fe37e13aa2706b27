"""
Value Mapper Backend — Report Email Delivery

Sends the rendered report through the SendGrid v3 mail API using httpx.
"""

import time

import httpx

from valuemap.config import settings, log, generate_error_code

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
EMAIL_TIMEOUT_SECONDS = 15.0


class EmailDeliveryError(Exception):
    pass


async def send_report_email(
    to_email: str,
    subject: str,
    html: str,
    text: str,
    request_id: str | None = None,
) -> None:
    """
    Deliver one report email.

    Raises:
        EmailDeliveryError: If no API key is configured or SendGrid rejects the message.
    """
    if not settings.sendgrid_api_key:
        raise EmailDeliveryError("Email service is not configured")

    payload = {
        "personalizations": [{"to": [{"email": to_email}]}],
        "from": {"email": settings.email_from_address, "name": settings.email_from_name},
        "subject": subject,
        "content": [
            {"type": "text/plain", "value": text},
            {"type": "text/html", "value": html},
        ],
    }

    start = time.monotonic()
    try:
        async with httpx.AsyncClient(timeout=EMAIL_TIMEOUT_SECONDS) as client:
            response = await client.post(
                SENDGRID_URL,
                json=payload,
                headers={"Authorization": f"Bearer {settings.sendgrid_api_key}"},
            )
    except httpx.HTTPError as e:
        code = generate_error_code()
        log("ERROR", "report email failed", request_id=request_id, error=str(e), error_code=code)
        raise EmailDeliveryError(f"Email request failed: {e}") from e

    # SendGrid answers 202 Accepted on success
    if response.status_code >= 300:
        code = generate_error_code()
        log(
            "ERROR",
            "report email rejected",
            request_id=request_id,
            status=response.status_code,
            body=response.text[:200],
            error_code=code,
        )
        raise EmailDeliveryError(f"Email service returned HTTP {response.status_code}")

    log("INFO", "report email sent", request_id=request_id, duration_ms=int((time.monotonic() - start) * 1000))
