"""Tests for logging, listing and reading applications."""

import pytest
from httpx import ASGITransport, AsyncClient

from backend.auth import create_access_token
from backend.main import app


@pytest.fixture
async def client(db):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def auth_headers(tenant):
    user = tenant["applicator"]
    return {"Authorization": f"Bearer {create_access_token(user.id, user.company_id)}"}


def _new_application(customer_id, **kwargs):
    body = {
        "customer_id": customer_id,
        "application_date": "2024-03-15T14:30:00Z",
        "chemical_name": "Talstar P",
        "epa_number": "279-3206",
        "amount": 1.5,
        "unit": "gal",
        "target_pest_name": "Fire ants",
        "temperature": 78,
        "humidity": 40,
        "wind_speed": 4,
        "wind_direction": "SE",
        "customer_consent": True,
    }
    body.update(kwargs)
    return body


class TestCreateApplication:
    async def test_create_logs_created_history(self, client, auth_headers, tenant):
        resp = await client.post(
            "/api/applications",
            json=_new_application(tenant["acme"].id),
            headers=auth_headers,
        )
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["applicator_id"] == tenant["applicator"].id
        assert data["status"] == "completed"
        assert data["application_date"].startswith("2024-03-15 14:30:00")

        history = await client.get(
            f"/api/applications/{data['id']}/history", headers=auth_headers
        )
        entries = history.json()["history"]
        assert len(entries) == 1
        assert entries[0]["action"] == "created"
        assert entries[0]["changes"] == {}

    async def test_created_application_is_listed(self, client, auth_headers, tenant):
        await client.post(
            "/api/applications",
            json=_new_application(tenant["bayview"].id),
            headers=auth_headers,
        )
        resp = await client.get("/api/applications", headers=auth_headers)
        body = resp.json()
        assert body["pagination"]["total"] == 6
        assert body["data"][0]["chemical_name"] == "Talstar P"

    async def test_foreign_customer_rejected(self, client, auth_headers, tenant):
        resp = await client.post(
            "/api/applications",
            json=_new_application(tenant["foreign_customer"].id),
            headers=auth_headers,
        )
        assert resp.status_code == 404
        assert resp.json()["error"]["message"] == "Customer not found"

    async def test_amount_must_be_positive(self, client, auth_headers, tenant):
        resp = await client.post(
            "/api/applications",
            json=_new_application(tenant["acme"].id, amount=0),
            headers=auth_headers,
        )
        assert resp.status_code == 422

    async def test_requires_token(self, client, tenant):
        resp = await client.post("/api/applications", json=_new_application(tenant["acme"].id))
        assert resp.status_code == 401


class TestListApplications:
    async def test_company_rows_newest_first(self, client, auth_headers, tenant):
        resp = await client.get("/api/applications", headers=auth_headers)
        assert resp.status_code == 200
        body = resp.json()
        own = tenant["applications"][:5]
        assert [a["id"] for a in body["data"]] == [a.id for a in own]
        assert body["data"][0]["customer"]["name"] == "Acme Farms"
        assert body["data"][0]["applicator"]["last_name"] == "Reyes"
        assert body["pagination"] == {
            "page": 1,
            "limit": 50,
            "total": 5,
            "total_pages": 1,
            "has_more": False,
        }

    async def test_filters(self, client, auth_headers, tenant):
        by_customer = await client.get(
            "/api/applications",
            params={"customer_id": tenant["acme"].id},
            headers=auth_headers,
        )
        assert by_customer.json()["pagination"]["total"] == 3

        by_applicator = await client.get(
            "/api/applications",
            params={"applicator_id": tenant["second_applicator"].id},
            headers=auth_headers,
        )
        assert by_applicator.json()["pagination"]["total"] == 1

        by_day = await client.get(
            "/api/applications",
            params={"date_from": "2024-03-11T00:00:00", "date_to": "2024-03-11T23:59:59"},
            headers=auth_headers,
        )
        assert by_day.json()["pagination"]["total"] == 2

    async def test_pagination(self, client, auth_headers, tenant):
        first = await client.get(
            "/api/applications", params={"limit": 2}, headers=auth_headers
        )
        assert len(first.json()["data"]) == 2
        assert first.json()["pagination"]["has_more"] is True

        last = await client.get(
            "/api/applications", params={"limit": 2, "page": 3}, headers=auth_headers
        )
        body = last.json()
        assert [a["id"] for a in body["data"]] == [tenant["applications"][4].id]
        assert body["pagination"]["total_pages"] == 3
        assert body["pagination"]["has_more"] is False

    async def test_limit_capped(self, client, auth_headers, tenant):
        resp = await client.get(
            "/api/applications", params={"limit": 101}, headers=auth_headers
        )
        assert resp.status_code == 422


class TestGetApplication:
    async def test_detail_includes_recent_history(self, client, auth_headers, tenant):
        app_id = tenant["applications"][0].id
        await client.patch(
            f"/api/applications/{app_id}", json={"notes": "Gusty"}, headers=auth_headers
        )
        resp = await client.get(f"/api/applications/{app_id}", headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["customer"]["zip_code"] == "78701"
        assert data["applicator"]["license_number"] == "12345"
        assert [h["action"] for h in data["history"]] == ["updated"]

    async def test_history_capped_at_ten(self, client, auth_headers, tenant):
        app_id = tenant["applications"][0].id
        for i in range(12):
            await client.patch(
                f"/api/applications/{app_id}", json={"notes": f"note {i}"}, headers=auth_headers
            )
        resp = await client.get(f"/api/applications/{app_id}", headers=auth_headers)
        history = resp.json()["data"]["history"]
        assert len(history) == 10
        assert history[0]["changes"]["notes"]["new"] == "note 11"

    async def test_other_tenant_not_found(self, client, auth_headers, tenant):
        foreign_id = tenant["applications"][-1].id
        resp = await client.get(f"/api/applications/{foreign_id}", headers=auth_headers)
        assert resp.status_code == 404
