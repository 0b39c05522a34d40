"""Tests for authentication endpoints."""

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from opsdesk.models.user import Session

pytestmark = pytest.mark.asyncio

PASSWORD = "correct-horse-battery"


class TestLogin:
    """Tests for POST /auth/login."""

    async def test_login_success(self, client: AsyncClient, user_factory, db_session):
        """Should set the session cookie and return the user."""
        user = await user_factory(email="staff@example.com", name="Staff", password=PASSWORD)

        response = await client.post(
            "/auth/login", json={"email": "staff@example.com", "password": PASSWORD}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["authed"] is True
        assert data["user"]["email"] == "staff@example.com"
        assert data["user"]["role"] == "STAFF"
        assert "session_id" in response.cookies

        sessions = (await db_session.execute(select(Session))).scalars().all()
        assert [s.user_id for s in sessions] == [user.id]

    async def test_login_cookie_authenticates(self, client: AsyncClient, user_factory):
        """Should be signed in on the next request."""
        await user_factory(email="staff@example.com", password=PASSWORD)
        await client.post("/auth/login", json={"email": "staff@example.com", "password": PASSWORD})

        response = await client.get("/api/me")

        assert response.json()["authed"] is True

    async def test_login_email_is_case_insensitive(self, client: AsyncClient, user_factory):
        await user_factory(email="staff@example.com", password=PASSWORD)

        response = await client.post(
            "/auth/login", json={"email": "Staff@Example.COM", "password": PASSWORD}
        )

        assert response.status_code == 200

    async def test_wrong_password(self, client: AsyncClient, user_factory):
        """Should return 401 without saying which part was wrong."""
        await user_factory(email="staff@example.com", password=PASSWORD)

        response = await client.post(
            "/auth/login", json={"email": "staff@example.com", "password": "wrong-password"}
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid email or password"}

    async def test_unknown_email(self, client: AsyncClient):
        response = await client.post(
            "/auth/login", json={"email": "ghost@example.com", "password": PASSWORD}
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid email or password"}

    async def test_user_without_password(self, client: AsyncClient, user_factory):
        """Should reject accounts that never had a password set."""
        await user_factory(email="nopass@example.com")

        response = await client.post(
            "/auth/login", json={"email": "nopass@example.com", "password": PASSWORD}
        )

        assert response.status_code == 401

    async def test_email_not_in_allow_list(
        self, client: AsyncClient, user_factory, test_settings
    ):
        """Should return 403 for emails outside ALLOWED_EMAILS."""
        test_settings.allowed_emails = "boss@example.com, editor@example.com"
        await user_factory(email="staff@example.com", password=PASSWORD)

        response = await client.post(
            "/auth/login", json={"email": "staff@example.com", "password": PASSWORD}
        )

        assert response.status_code == 403
        assert response.json() == {"error": "This email is not allowed to sign in"}

    async def test_invalid_email(self, client: AsyncClient):
        """Should return 400 with field errors."""
        response = await client.post(
            "/auth/login", json={"email": "not-an-email", "password": PASSWORD}
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Validation failed"
        assert "email" in data["errors"]


class TestLoginRateLimit:
    """Tests for the sign-in rate limit."""

    async def test_blocks_excessive_attempts(self, client: AsyncClient):
        """Should allow 5 attempts a minute and reject the 6th."""
        statuses = []
        for i in range(6):
            response = await client.post(
                "/auth/login", json={"email": f"user{i}@example.com", "password": PASSWORD}
            )
            statuses.append(response.status_code)

        assert statuses[:5] == [401] * 5
        assert statuses[5] == 429

    async def test_rate_limit_error_envelope(self, client: AsyncClient):
        for i in range(5):
            await client.post(
                "/auth/login", json={"email": f"user{i}@example.com", "password": PASSWORD}
            )

        response = await client.post(
            "/auth/login", json={"email": "late@example.com", "password": PASSWORD}
        )

        assert response.status_code == 429
        assert "error" in response.json()
        assert response.headers["retry-after"] == "60"


class TestLogout:
    """Tests for POST /auth/logout."""

    async def test_logout_clears_session(self, client: AsyncClient, user_factory, db_session):
        """Should delete the session and sign the user out."""
        await user_factory(email="staff@example.com", password=PASSWORD)
        await client.post("/auth/login", json={"email": "staff@example.com", "password": PASSWORD})

        response = await client.post("/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert (await db_session.execute(select(Session))).scalars().all() == []

    async def test_logout_without_session(self, client: AsyncClient):
        """Should succeed even when nobody is signed in."""
        response = await client.post("/auth/logout")

        assert response.status_code == 200
        assert response.json() == {"ok": True}


class TestMe:
    """Tests for GET /api/me."""

    async def test_me_anonymous(self, client: AsyncClient):
        response = await client.get("/api/me")

        assert response.status_code == 200
        assert response.json() == {"authed": False, "user": None}

    async def test_me_authenticated(self, client: AsyncClient, user_factory, auth_headers):
        user = await user_factory(email="me@example.com", name="Me")
        headers = await auth_headers(user)

        response = await client.get("/api/me", headers=headers)

        data = response.json()
        assert data["authed"] is True
        assert data["user"]["id"] == str(user.id)
        assert data["user"]["name"] == "Me"

    async def test_expired_session(self, client: AsyncClient, auth_headers):
        """Should treat an expired session as signed out."""
        headers = await auth_headers(expired=True)

        response = await client.get("/api/me", headers=headers)

        assert response.json()["authed"] is False

    async def test_garbage_cookie(self, client: AsyncClient):
        response = await client.get("/api/me", headers={"Cookie": "session_id=not-a-uuid"})

        assert response.json()["authed"] is False
