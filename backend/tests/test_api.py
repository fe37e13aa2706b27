"""
Value Mapper Backend — API Endpoint Unit Tests

Tests for REST endpoints: health, segment suggestions, canvas, propositions,
universe, positioning, the full flow (JSON and SSE) and the report email.
All tests use mocked dependencies - no real LLM, search, email or CRM calls.
"""

import pytest
from unittest.mock import AsyncMock

from fastapi import status

from valuemap.crm import CrmResult
from valuemap.mailer import EmailDeliveryError
from tests.conftest import make_canvas, parse_sse_events


USER_INPUT = {
    "productName": "Acme Scheduler",
    "description": "Automates shift scheduling for hourly teams",
    "targetDecisionMaker": "Operations Manager",
}


def _canvas_json(**kwargs) -> dict:
    return make_canvas(**kwargs).model_dump(mode="json", by_alias=True)


# -----------------------------------------------------------------------------
# Health Check Tests
# -----------------------------------------------------------------------------


class TestHealthCheck:
    """Tests for /api/health endpoint."""

    @pytest.mark.asyncio
    async def test_health_returns_ok(self, client):
        response = await client.get("/api/health")

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "ok", "version": "0.1.0"}


# -----------------------------------------------------------------------------
# Segment Suggestion Tests
# -----------------------------------------------------------------------------


class TestSuggestSegments:
    """Tests for POST /api/segments/suggest."""

    @pytest.mark.asyncio
    async def test_llm_failure_returns_generic_trio(self, client, mock_llm_failure):
        response = await client.post(
            "/api/segments/suggest",
            json={"productName": "Acme Scheduler", "description": "Shift scheduling"},
        )

        assert response.status_code == status.HTTP_200_OK
        labels = [s["label"] for s in response.json()["segments"]]
        assert labels == ["Primary users", "Economic buyers", "Influencers"]

    @pytest.mark.asyncio
    async def test_missing_description_is_rejected(self, client):
        response = await client.post("/api/segments/suggest", json={"productName": "Acme"})

        assert response.status_code == 422


# -----------------------------------------------------------------------------
# Canvas / Propositions Tests
# -----------------------------------------------------------------------------


class TestCanvas:
    """Tests for POST /api/canvas."""

    @pytest.mark.asyncio
    async def test_offline_canvas(self, client, mock_llm_failure, mock_search_failure):
        response = await client.post("/api/canvas", json=USER_INPUT)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["canvas"]["segment"] == "Operations Manager in organizations"
        assert len(data["canvas"]["customerGains"]) == 5
        assert "research" in data

    @pytest.mark.asyncio
    async def test_missing_product_name(self, client):
        response = await client.post(
            "/api/canvas",
            json={"description": "x", "targetDecisionMaker": "Ops"},
        )

        assert response.status_code == 422


class TestPropositions:
    """Tests for POST /api/propositions."""

    @pytest.mark.asyncio
    async def test_unprioritized_canvas_is_400(self, client, mock_llm):
        response = await client.post(
            "/api/propositions",
            json={"canvas": _canvas_json(prioritized_pains=2), "userInput": USER_INPUT},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        detail = response.json()["detail"]
        assert detail["message"] == "Must prioritize exactly 3 pains and 3 gains"
        assert detail["error_code"].startswith("VP-")
        mock_llm.assert_not_called()

    @pytest.mark.asyncio
    async def test_validated_canvas_returns_three(self, client, mock_llm_failure):
        response = await client.post(
            "/api/propositions",
            json={"canvas": _canvas_json(), "userInput": USER_INPUT},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert len(data["valuePropositions"]) == 3
        assert data["canvas"]["painRelievers"]


class TestUniverseAndPositioning:
    """Tests for POST /api/universe and POST /api/positioning."""

    @pytest.mark.asyncio
    async def test_universe_fallback(self, client, mock_llm_failure):
        response = await client.post("/api/universe", json={"canvas": _canvas_json()})

        assert response.status_code == status.HTTP_200_OK
        segments = response.json()["prospectUniverse"]
        assert len(segments) == 1
        assert "VP of Operations" in segments[0]["jobTitles"]

    @pytest.mark.asyncio
    async def test_positioning(self, client):
        response = await client.post(
            "/api/positioning",
            json={"canvases": [_canvas_json()], "userInput": USER_INPUT},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["companyName"] == "Acme Scheduler"
        assert data["primarySegments"] == ["Operations Manager in organizations"]


# -----------------------------------------------------------------------------
# Full Flow Tests
# -----------------------------------------------------------------------------


class TestValuePropFlow:
    """Tests for POST /api/value-prop and /api/value-prop/stream."""

    @pytest.mark.asyncio
    async def test_json_flow(self, client, mock_llm_failure, mock_search_failure):
        response = await client.post("/api/value-prop", json=USER_INPUT)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert len(data["valuePropositions"]) == 3
        assert data["companyPositioning"]["companyName"] == "Acme Scheduler"
        assert data["prospectUniverse"]

    @pytest.mark.asyncio
    async def test_stream_ends_with_flow_complete(self, client, mock_llm_failure, mock_search_failure):
        response = await client.post("/api/value-prop/stream", json=USER_INPUT)

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"].startswith("text/event-stream")
        events = parse_sse_events(response.text)
        assert events[0] == {"type": "stage_started", "stage": "research"}
        assert events[-1]["type"] == "flow_complete"
        assert len(events[-1]["result"]["valuePropositions"]) == 3


# -----------------------------------------------------------------------------
# Report Email Tests
# -----------------------------------------------------------------------------


def _report_body() -> dict:
    return {"email": "Ana@Example.com", "canvas": _canvas_json(), "userInput": USER_INPUT}


class TestReportEmail:
    """Tests for POST /api/report/email."""

    @pytest.mark.asyncio
    async def test_sends_email_and_creates_lead(self, client, monkeypatch):
        send = AsyncMock(return_value=None)
        lead = AsyncMock(return_value=CrmResult(success=True, contact_id="202"))
        monkeypatch.setattr("valuemap.mailer.send_report_email", send)
        monkeypatch.setattr("valuemap.crm.create_lead_with_report", lead)

        response = await client.post("/api/report/email", json=_report_body())

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"success": True, "hubspotLeadCreated": True, "hubspotError": None}
        assert send.call_args.args[0] == "ana@example.com"
        assert send.call_args.args[1] == "Value Mapping Report: Acme Scheduler"
        assert lead.call_args.args[0] == "ana@example.com"

    @pytest.mark.asyncio
    async def test_crm_failure_is_not_fatal(self, client, monkeypatch):
        monkeypatch.setattr("valuemap.mailer.send_report_email", AsyncMock(return_value=None))
        monkeypatch.setattr(
            "valuemap.crm.create_lead_with_report",
            AsyncMock(return_value=CrmResult(success=False, error="Failed to create note in HubSpot")),
        )

        response = await client.post("/api/report/email", json=_report_body())

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["hubspotLeadCreated"] is False
        assert response.json()["hubspotError"] == "Failed to create note in HubSpot"

    @pytest.mark.asyncio
    async def test_email_failure_is_502(self, client, monkeypatch):
        monkeypatch.setattr(
            "valuemap.mailer.send_report_email",
            AsyncMock(side_effect=EmailDeliveryError("SendGrid rejected the message")),
        )
        lead = AsyncMock()
        monkeypatch.setattr("valuemap.crm.create_lead_with_report", lead)

        response = await client.post("/api/report/email", json=_report_body())

        assert response.status_code == status.HTTP_502_BAD_GATEWAY
        assert response.json()["detail"]["message"] == "We couldn't send the report email. Please try again."
        lead.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_email_is_rejected(self, client):
        body = _report_body()
        body["email"] = "not-an-email"

        response = await client.post("/api/report/email", json=body)

        assert response.status_code == 422
