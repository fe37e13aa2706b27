"""
Value Mapper Backend — CRM Lead Capture

Records a report recipient as a HubSpot contact and attaches the plain-text
report as a note. Lead capture never blocks email delivery: every failure is
returned as a CrmResult, never raised.
"""

from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

from valuemap.config import settings, log

HUBSPOT_BASE_URL = "https://api.hubapi.com"
CRM_TIMEOUT_SECONDS = 10.0


@dataclass
class CrmResult:
    success: bool
    contact_id: str | None = None
    error: str | None = None


class CrmError(Exception):
    pass


def should_exclude_email_domain(email: str) -> bool:
    """True when the address belongs to the excluded internal domain."""
    excluded = settings.crm_excluded_domain.strip().lower()
    if not excluded or "@" not in email:
        return False
    return email.rsplit("@", 1)[1].strip().lower() == excluded


def _headers() -> dict:
    return {
        "Authorization": f"Bearer {settings.hubspot_api_key}",
        "Content-Type": "application/json",
    }


async def find_or_create_contact(client: httpx.AsyncClient, email: str) -> str:
    """Return the id of the contact with this email, creating it if needed."""
    search = await client.post(
        "/crm/v3/objects/contacts/search",
        json={
            "filterGroups": [{"filters": [{"propertyName": "email", "operator": "EQ", "value": email}]}],
            "limit": 1,
        },
    )
    if search.status_code == 200:
        results = search.json().get("results") or []
        if results:
            return str(results[0]["id"])

    created = await client.post("/crm/v3/objects/contacts", json={"properties": {"email": email}})
    if created.status_code not in (200, 201):
        raise CrmError(f"contact create returned HTTP {created.status_code}")
    return str(created.json()["id"])


async def attach_note(client: httpx.AsyncClient, contact_id: str, note_content: str) -> str:
    """Create a note and associate it with the contact. Returns the note id."""
    note = await client.post(
        "/crm/v3/objects/notes",
        json={
            "properties": {
                "hs_note_body": note_content,
                "hs_timestamp": datetime.now(timezone.utc).isoformat(),
            }
        },
    )
    if note.status_code not in (200, 201):
        raise CrmError(f"note create returned HTTP {note.status_code}")
    note_id = str(note.json()["id"])

    association = await client.put(
        f"/crm/v3/objects/notes/{note_id}/associations/contact/{contact_id}/note_to_contact"
    )
    if association.status_code >= 300:
        # The note still exists; an unlinked note is acceptable
        log("WARN", "crm note association failed", note_id=note_id, status=association.status_code)
    return note_id


async def create_lead_with_report(
    email: str,
    note_content: str,
    request_id: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> CrmResult:
    if not settings.hubspot_api_key:
        return CrmResult(success=False, error="HubSpot API key not configured")
    if should_exclude_email_domain(email):
        log("INFO", "crm lead skipped for excluded domain", request_id=request_id)
        return CrmResult(success=False, error="Email domain excluded from lead creation")

    async with httpx.AsyncClient(
        base_url=HUBSPOT_BASE_URL,
        headers=_headers(),
        timeout=CRM_TIMEOUT_SECONDS,
        transport=transport,
    ) as client:
        try:
            contact_id = await find_or_create_contact(client, email)
        except (httpx.HTTPError, CrmError, KeyError, ValueError) as e:
            log("WARN", "crm contact failed", request_id=request_id, error=str(e))
            return CrmResult(success=False, error="Failed to create or find contact in HubSpot")

        try:
            await attach_note(client, contact_id, note_content)
        except (httpx.HTTPError, CrmError, KeyError, ValueError) as e:
            log("WARN", "crm note failed", request_id=request_id, contact_id=contact_id, error=str(e))
            return CrmResult(success=False, contact_id=contact_id, error="Failed to create note in HubSpot")

    log("INFO", "crm lead recorded", request_id=request_id, contact_id=contact_id)
    return CrmResult(success=True, contact_id=contact_id)
