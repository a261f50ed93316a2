"""
Tests for public email capture and the tenant leads listing.
"""
import pytest
from datetime import datetime, timedelta, timezone
from sqlalchemy import select, func
from abm_api.models.email_capture import PageEmailCapture
from abm_api.services.lead_service import LeadService


async def _count_captures(db_session, page_id: str) -> int:
    return await db_session.scalar(
        select(func.count()).select_from(PageEmailCapture).where(PageEmailCapture.page_id == page_id)
    )


class TestCaptureEmail:

    @pytest.mark.asyncio
    async def test_capture_new_email(self, async_client, db_session, make_page):
        page = await make_page("globex")

        response = await async_client.post(
            "/api/v1/capture-email",
            json={"pageId": page.id, "email": "Jane@Globex.com"},
            headers={"User-Agent": "pytest-browser", "X-Forwarded-For": "203.0.113.7"}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}

        result = await db_session.execute(select(PageEmailCapture).where(PageEmailCapture.page_id == page.id))
        capture = result.scalar_one()
        assert capture.email == "jane@globex.com"
        assert capture.ip_address == "203.0.113.7"
        assert capture.user_agent == "pytest-browser"

    @pytest.mark.asyncio
    async def test_duplicate_capture_is_success(self, async_client, db_session, make_page):
        page = await make_page("globex")
        page_id = page.id
        payload = {"pageId": page_id, "email": "jane@globex.com"}

        first = await async_client.post("/api/v1/capture-email", json=payload)
        second = await async_client.post(
            "/api/v1/capture-email",
            json={"pageId": page_id, "email": "JANE@globex.com"}
        )

        assert first.json() == {"success": True}
        assert second.status_code == 200
        assert second.json() == {"success": True, "existing": True}
        assert await _count_captures(db_session, page_id) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"email": "jane@globex.com"},
        {"pageId": "some-page"},
        {"pageId": "", "email": "jane@globex.com"},
        {},
    ])
    async def test_missing_fields(self, async_client, payload):
        response = await async_client.post("/api/v1/capture-email", json=payload)

        assert response.status_code == 400
        assert response.json() == {"error": "Page ID and email are required"}

    @pytest.mark.asyncio
    async def test_unknown_page(self, async_client):
        response = await async_client.post(
            "/api/v1/capture-email",
            json={"pageId": "missing", "email": "jane@globex.com"}
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_gate_is_enforced_server_side(self, async_client, db_session, make_page):
        page = await make_page(
            "globex",
            email_gate_enabled=True,
            email_gate_type="allowlist",
            email_gate_allowlist=["ceo@globex.com"]
        )
        page_id = page.id

        denied = await async_client.post(
            "/api/v1/capture-email",
            json={"pageId": page_id, "email": "intern@globex.com"}
        )
        admitted = await async_client.post(
            "/api/v1/capture-email",
            json={"pageId": page_id, "email": "CEO@globex.com"}
        )

        assert denied.status_code == 400
        assert denied.json() == {"error": "Access restricted"}
        assert admitted.json() == {"success": True}
        assert await _count_captures(db_session, page_id) == 1

    @pytest.mark.asyncio
    async def test_invalid_email_rejected(self, async_client, make_page):
        page = await make_page("globex")

        response = await async_client.post(
            "/api/v1/capture-email",
            json={"pageId": page.id, "email": "not-an-email"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Please enter a valid email address"}

    @pytest.mark.asyncio
    async def test_trailing_newline_rejected(self, async_client, db_session, make_page):
        page = await make_page("globex", email_gate_enabled=True, email_gate_type="any")
        page_id = page.id

        response = await async_client.post(
            "/api/v1/capture-email",
            json={"pageId": page_id, "email": "jane@globex.com\n"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Please enter a valid email address"}
        assert await _count_captures(db_session, page_id) == 0


class TestLeadService:

    @pytest.mark.asyncio
    async def test_capture_returns_created_flag(self, db_session, make_page):
        page = await make_page("globex")
        page_id = page.id

        capture, created = await LeadService.capture_email(db_session, page_id, "Jane@Globex.com")
        capture_id = capture.id
        again, created_again = await LeadService.capture_email(db_session, page_id, "jane@globex.com")

        assert created is True
        assert created_again is False
        assert again.id == capture_id


class TestListLeads:

    async def _seed(self, db_session, page_id: str):
        for email in (
            "ceo@globex.com",
            "cto@globex.com",
            "buyer@initech.com",
            "ops@globex.com",
            "jane@umbrella.io",
        ):
            await LeadService.capture_email(db_session, page_id, email)

    @pytest.mark.asyncio
    async def test_list_leads_with_summary(self, async_client, db_session, auth_headers, make_page):
        page = await make_page("globex")
        page_id = page.id
        await self._seed(db_session, page_id)

        response = await async_client.get(f"/api/v1/pages/{page_id}/leads", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert len(body["leads"]) == 5
        assert body["leads"][0]["email"] == "jane@umbrella.io"
        assert body["pagination"] == {"total": 5, "limit": 50, "offset": 0, "has_more": False}
        assert body["summary"]["total_leads"] == 5
        assert body["summary"]["top_domains"][0] == {"domain": "globex.com", "count": 3}
        assert {d["domain"] for d in body["summary"]["top_domains"]} == {"globex.com", "initech.com", "umbrella.io"}

    @pytest.mark.asyncio
    async def test_pagination(self, async_client, db_session, auth_headers, make_page):
        page = await make_page("globex")
        page_id = page.id
        await self._seed(db_session, page_id)

        response = await async_client.get(
            f"/api/v1/pages/{page_id}/leads",
            params={"limit": 2, "offset": 2},
            headers=auth_headers
        )

        body = response.json()
        assert [lead["email"] for lead in body["leads"]] == ["buyer@initech.com", "cto@globex.com"]
        assert body["pagination"] == {"total": 5, "limit": 2, "offset": 2, "has_more": True}

    @pytest.mark.asyncio
    async def test_limit_is_capped(self, async_client, db_session, auth_headers, make_page):
        page = await make_page("globex")

        response = await async_client.get(
            f"/api/v1/pages/{page.id}/leads",
            params={"limit": 500},
            headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["pagination"]["limit"] == 100

    @pytest.mark.asyncio
    async def test_filter_by_domain(self, async_client, db_session, auth_headers, make_page):
        page = await make_page("globex")
        page_id = page.id
        await self._seed(db_session, page_id)

        response = await async_client.get(
            f"/api/v1/pages/{page_id}/leads",
            params={"domain": "Globex.com"},
            headers=auth_headers
        )

        body = response.json()
        assert body["pagination"]["total"] == 3
        assert all(lead["email"].endswith("@globex.com") for lead in body["leads"])
        assert body["summary"]["top_domains"] == [{"domain": "globex.com", "count": 3}]

    @pytest.mark.asyncio
    async def test_filter_by_email_substring(self, async_client, db_session, auth_headers, make_page):
        page = await make_page("globex")
        page_id = page.id
        await self._seed(db_session, page_id)

        response = await async_client.get(
            f"/api/v1/pages/{page_id}/leads",
            params={"email": "CeO"},
            headers=auth_headers
        )

        emails = [lead["email"] for lead in response.json()["leads"]]
        assert emails == ["ceo@globex.com"]

    @pytest.mark.asyncio
    async def test_filter_by_date_range(self, async_client, db_session, auth_headers, make_page):
        page = await make_page("globex")
        page_id = page.id
        await self._seed(db_session, page_id)
        tomorrow = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
        yesterday = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()

        future = await async_client.get(
            f"/api/v1/pages/{page_id}/leads",
            params={"from": tomorrow},
            headers=auth_headers
        )
        window = await async_client.get(
            f"/api/v1/pages/{page_id}/leads",
            params={"from": yesterday, "to": tomorrow},
            headers=auth_headers
        )

        assert future.json()["pagination"]["total"] == 0
        assert window.json()["pagination"]["total"] == 5

    @pytest.mark.asyncio
    async def test_other_organization_leads_forbidden(
        self, async_client, auth_headers, make_page, make_organization
    ):
        rival = await make_organization("rival")
        page = await make_page("rival-page", owner=rival)

        response = await async_client.get(f"/api/v1/pages/{page.id}/leads", headers=auth_headers)

        assert response.status_code == 403
