"""
Zoo API — HTTP Contract Tests
===============================

What:  End-to-end tests through create_app(): envelopes, status codes,
       authentication and role checks.
How:   HTTPX AsyncClient over ASGITransport against an in-memory database
       (client fixture); accounts come from make_user.

What we test:
    ✅ Health endpoint and success envelope
    ✅ Register → login → profile
    ✅ 401 without a token, 403 for the wrong role
    ✅ Capacity and schema failures in the error envelope
    ✅ Ticket purchase and single-use gate validation
    ✅ X-Request-ID propagation
"""

import pytest

from zoo_api.config import settings
from zoo_api.services import rules


def today_iso():
    return rules.zoo_today(settings.zoo_timezone).isoformat()


class TestHealthEndpoint:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"
        assert data["mail"] == "disabled"
        assert "uptime_seconds" in data

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get("/api/health", headers={"X-Request-ID": "gate-7-0001"})
        assert response.headers["X-Request-ID"] == "gate-7-0001"

    @pytest.mark.asyncio
    async def test_request_id_generated(self, client):
        response = await client.get("/api/exhibits")
        assert response.headers.get("X-Request-ID")


class TestAuthFlow:

    @pytest.mark.asyncio
    async def test_register_login_profile(self, client):
        register = await client.post(
            "/api/auth/register",
            json={"email": "Ravi@Example.com", "password": "tiger-stripes"},
        )
        assert register.status_code == 201
        body = register.json()
        assert body["success"] is True
        assert body["data"]["user"]["role"] == "visitor"
        assert "password_hash" not in body["data"]["user"]

        login = await client.post(
            "/api/auth/login",
            json={"email": "ravi@example.com", "password": "tiger-stripes"},
        )
        assert login.status_code == 200
        token = login.json()["data"]["token"]

        profile = await client.get(
            "/api/auth/profile", headers={"Authorization": f"Bearer {token}"}
        )
        assert profile.status_code == 200
        assert profile.json()["data"]["email"] == "ravi@example.com"

    @pytest.mark.asyncio
    async def test_wrong_password(self, client, make_user):
        user, _ = await make_user("staff")

        response = await client.post(
            "/api/auth/login", json={"email": user.email, "password": "nope"}
        )

        assert response.status_code == 401
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "authentication_error"
        assert body["message"] == "Invalid email or password"

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/auth/profile")
        assert response.status_code == 401
        assert response.json()["error"] == "authentication_error"

    @pytest.mark.asyncio
    async def test_garbage_token(self, client):
        response = await client.get(
            "/api/auth/profile", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401


class TestRoleChecks:

    @pytest.mark.asyncio
    async def test_visitor_cannot_create_exhibit(self, client, make_user):
        _, headers = await make_user("visitor")

        response = await client.post(
            "/api/exhibits",
            json={"name": "Reptile House", "type": "indoor", "animal_capacity": 5},
            headers=headers,
        )

        assert response.status_code == 403
        assert response.json()["error"] == "permission_denied"

    @pytest.mark.asyncio
    async def test_only_admin_creates_users(self, client, make_user):
        _, manager = await make_user("manager")
        _, admin = await make_user("admin")
        payload = {"email": "vet@example.com", "password": "stethoscope", "role": "veterinarian"}

        denied = await client.post("/api/auth/users", json=payload, headers=manager)
        created = await client.post("/api/auth/users", json=payload, headers=admin)

        assert denied.status_code == 403
        assert created.status_code == 201
        assert created.json()["data"]["role"] == "veterinarian"


class TestCapacityOverHttp:

    @pytest.mark.asyncio
    async def test_full_exhibit_returns_409(self, client, make_user):
        _, headers = await make_user("admin")
        exhibit = await client.post(
            "/api/exhibits",
            json={"name": "Penguin Cove", "type": "aquatic", "animal_capacity": 1},
            headers=headers,
        )
        assert exhibit.status_code == 201
        exhibit_id = exhibit.json()["data"]["id"]

        first = await client.post(
            "/api/animals",
            json={"name": "Pip", "species": "Penguin", "exhibit_id": exhibit_id},
            headers=headers,
        )
        second = await client.post(
            "/api/animals",
            json={"name": "Pop", "species": "Penguin", "exhibit_id": exhibit_id},
            headers=headers,
        )

        assert first.status_code == 201
        assert second.status_code == 409
        body = second.json()
        assert body["error"] == "capacity_exceeded"
        assert body["request_id"]

        detail = await client.get(f"/api/exhibits/{exhibit_id}", headers=headers)
        assert detail.json()["data"]["animal_count"] == 1

    @pytest.mark.asyncio
    async def test_schema_error_envelope(self, client, make_user):
        _, headers = await make_user("admin")

        response = await client.post(
            "/api/exhibits",
            json={"name": "", "type": "indoor", "animal_capacity": -1},
            headers=headers,
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        fields = {error["field"] for error in body["details"]["errors"]}
        assert {"name", "animal_capacity"} <= fields


class TestTicketsOverHttp:

    async def _visitor(self, client):
        response = await client.post(
            "/api/visitors",
            json={"first_name": "Noor", "last_name": "Haddad", "email": "noor@example.com"},
        )
        assert response.status_code == 201
        return response.json()["data"]["id"]

    @pytest.mark.asyncio
    async def test_purchase_and_validate_once(self, client):
        visitor_id = await self._visitor(client)

        purchase = await client.post(
            "/api/tickets",
            json={
                "visitor_id": visitor_id,
                "type": "adult",
                "price": 32.5,
                "payment_method": "online",
                "visit_date": today_iso(),
            },
        )
        assert purchase.status_code == 201
        ticket_id = purchase.json()["data"]["ticket_id"]

        first = await client.post(f"/api/tickets/validate/{ticket_id}")
        second = await client.post(f"/api/tickets/validate/{ticket_id}")

        assert first.status_code == 200
        assert first.json()["data"]["is_used"] is True
        assert second.status_code == 409
        assert second.json()["error"] == "ticket_already_used"
        assert "used_at" in second.json()["details"]

    @pytest.mark.asyncio
    async def test_unknown_ticket(self, client):
        response = await client.post("/api/tickets/validate/TKT-0-MISSING")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_purchase_for_unknown_visitor(self, client):
        response = await client.post(
            "/api/tickets",
            json={
                "visitor_id": "00000000-0000-4000-8000-000000000000",
                "type": "child",
                "price": 10,
                "payment_method": "cash",
                "visit_date": today_iso(),
            },
        )
        assert response.status_code == 404
