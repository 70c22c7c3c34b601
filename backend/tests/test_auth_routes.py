"""
Photography Portfolio Backend — Auth Endpoint Tests
====================================================

What:  /api/auth/* through the full app: middleware, dependencies and
       exception handlers included.
How:   HTTPX AsyncClient over ASGITransport, in-memory SQLite users.
"""

from datetime import datetime, timedelta, timezone

import pytest

from portfolio.services.token_service import TokenService

ADMIN_EMAIL = "admin@portfolio.test"
ADMIN_PASSWORD = "correct-horse"


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_success(self, test_client, admin_user, token_service):
        response = await test_client.post(
            "/api/auth/login",
            json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["email"] == ADMIN_EMAIL
        assert data["user"]["role"] == "admin"
        assert data["user"]["last_login"] is not None
        assert "password_hash" not in data["user"]

        claims = token_service.validate(data["token"])
        assert claims.user_id == admin_user.id
        assert claims.is_admin

    @pytest.mark.asyncio
    async def test_email_is_case_insensitive(self, test_client, admin_user):
        response = await test_client.post(
            "/api/auth/login",
            json={"email": "  ADMIN@Portfolio.test ", "password": ADMIN_PASSWORD},
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "email,password",
        [
            (ADMIN_EMAIL, "wrong-password"),
            ("nobody@portfolio.test", ADMIN_PASSWORD),
        ],
    )
    async def test_bad_credentials_share_one_answer(self, test_client, admin_user, email, password):
        response = await test_client.post(
            "/api/auth/login",
            json={"email": email, "password": password},
        )

        assert response.status_code == 401
        data = response.json()
        assert data["error"] == "unauthorized"
        assert data["message"] == "Invalid email or password"
        assert data["request_id"]
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_inactive_user_cannot_log_in(self, test_client, db_session, admin_user):
        admin_user.is_active = False
        await db_session.commit()

        response = await test_client.post(
            "/api/auth/login",
            json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_fields_are_rejected_by_schema(self, test_client):
        response = await test_client.post("/api/auth/login", json={"email": ADMIN_EMAIL})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_login_is_rate_limited(self, test_client):
        statuses = []
        for _ in range(11):
            response = await test_client.post(
                "/api/auth/login",
                json={"email": "nobody@portfolio.test", "password": "x"},
            )
            statuses.append(response.status_code)

        assert statuses[:10] == [401] * 10
        assert statuses[10] == 429
        assert int(response.headers["Retry-After"]) > 0
        assert response.json()["error"] == "rate_limit_exceeded"


class TestProfileAndTokens:
    @pytest.mark.asyncio
    async def test_me(self, test_client, admin_user, admin_token):
        response = await test_client.get("/api/auth/me", headers=_bearer(admin_token))

        assert response.status_code == 200
        assert response.json()["email"] == ADMIN_EMAIL
        assert response.json()["first_name"] == "Ada"

    @pytest.mark.asyncio
    async def test_me_for_deleted_user(self, test_client, token_service):
        token = token_service.issue(user_id=999, email="ghost@portfolio.test", role="admin")

        response = await test_client.get("/api/auth/me", headers=_bearer(token))

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_refresh(self, test_client, admin_token, token_service):
        response = await test_client.post("/api/auth/refresh", headers=_bearer(admin_token))

        assert response.status_code == 200
        refreshed = token_service.validate(response.json()["token"])
        assert refreshed.email == ADMIN_EMAIL

    @pytest.mark.asyncio
    async def test_refresh_with_expired_token(self, test_client, admin_user):
        past = datetime.now(timezone.utc) - timedelta(hours=3)
        stale = TokenService(
            secret="test-jwt-secret",
            ttl=timedelta(hours=1),
            clock=lambda: past,
        ).issue(user_id=admin_user.id, email=admin_user.email, role="admin")

        response = await test_client.post("/api/auth/refresh", headers=_bearer(stale))

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_refresh_without_token(self, test_client):
        response = await test_client.post("/api/auth/refresh")
        assert response.status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize("headers", [{}, {"Authorization": "Bearer not-a-token"}])
    async def test_logout_never_fails(self, test_client, headers):
        response = await test_client.post("/api/auth/logout", headers=headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Logged out successfully"
