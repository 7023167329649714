"""Tests for auth API endpoints: login, register, refresh, me, profile."""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.jwt import create_token_pair, decode_token
from app.models.user import User
from conftest import TEST_PASSWORD, auth_header, make_user

pytestmark = pytest.mark.asyncio


class TestLogin:
    """POST /api/v1/auth/login."""

    async def test_login_success(self, client: AsyncClient, owner_user: User):
        response = await client.post(
            "/api/v1/auth/login", json={"email": owner_user.email, "password": TEST_PASSWORD}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == str(owner_user.id)
        assert data["user"]["role"] == "owner"
        assert data["user"]["last_login_at"] is not None
        payload = decode_token(data["tokens"]["access_token"])
        assert payload["sub"] == str(owner_user.id)
        assert payload["role"] == "owner"

    async def test_email_is_case_insensitive(self, client: AsyncClient, owner_user: User):
        response = await client.post(
            "/api/v1/auth/login", json={"email": owner_user.email.upper(), "password": TEST_PASSWORD}
        )
        assert response.status_code == 200

    async def test_wrong_password(self, client: AsyncClient, owner_user: User):
        response = await client.post(
            "/api/v1/auth/login", json={"email": owner_user.email, "password": "wrong-password"}
        )
        assert response.status_code == 401

    async def test_unknown_email(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/login", json={"email": "nobody@test.com", "password": TEST_PASSWORD}
        )
        assert response.status_code == 401

    async def test_inactive_user(self, client: AsyncClient, db_session: AsyncSession):
        user = await make_user(db_session, "owner", is_active=False)
        response = await client.post("/api/v1/auth/login", json={"email": user.email, "password": TEST_PASSWORD})
        assert response.status_code == 403

    async def test_rate_limited_after_five_attempts(self, client: AsyncClient, owner_user: User):
        for _ in range(5):
            response = await client.post(
                "/api/v1/auth/login", json={"email": owner_user.email, "password": "wrong-password"}
            )
            assert response.status_code == 401

        response = await client.post(
            "/api/v1/auth/login", json={"email": owner_user.email, "password": TEST_PASSWORD}
        )
        assert response.status_code == 429
        assert response.json()["code"] == "RATE_LIMIT_EXCEEDED"
        assert int(response.headers["Retry-After"]) > 0

    async def test_rate_limit_is_per_client_ip(self, client: AsyncClient, owner_user: User):
        for _ in range(5):
            await client.post(
                "/api/v1/auth/login",
                json={"email": owner_user.email, "password": "wrong-password"},
                headers={"X-Forwarded-For": "10.0.0.1"},
            )
        response = await client.post(
            "/api/v1/auth/login",
            json={"email": owner_user.email, "password": TEST_PASSWORD},
            headers={"X-Forwarded-For": "10.0.0.2"},
        )
        assert response.status_code == 200


class TestRegister:
    """POST /api/v1/auth/register (admin only)."""

    async def test_admin_registers_tenant(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "New.Tenant@test.com", "password": "securepass123", "name": "New Tenant", "role": "tenant"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "new.tenant@test.com"
        assert data["role"] == "tenant"
        assert "hashed_password" not in data

    async def test_default_role_is_owner(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "owner2@test.com", "password": "securepass123", "name": "Owner Two"},
            headers=admin_headers,
        )
        assert response.json()["role"] == "owner"

    async def test_duplicate_email(self, client: AsyncClient, admin_headers: dict, owner_user: User):
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": owner_user.email, "password": "securepass123", "name": "Dup"},
            headers=admin_headers,
        )
        assert response.status_code == 409

    async def test_short_password(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "short@test.com", "password": "abc", "name": "Short"},
            headers=admin_headers,
        )
        assert response.status_code == 422

    async def test_unknown_role(self, client: AsyncClient, admin_headers: dict):
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "role@test.com", "password": "securepass123", "name": "Role", "role": "superuser"},
            headers=admin_headers,
        )
        assert response.status_code == 422

    async def test_owner_cannot_register(self, client: AsyncClient, owner_headers: dict):
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "x@test.com", "password": "securepass123", "name": "X"},
            headers=owner_headers,
        )
        assert response.status_code == 403

    async def test_anonymous_cannot_register(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "x@test.com", "password": "securepass123", "name": "X"},
        )
        assert response.status_code in (401, 403)


class TestRefresh:
    """POST /api/v1/auth/refresh."""

    async def test_refresh_success(self, client: AsyncClient, owner_user: User):
        tokens = create_token_pair(str(owner_user.id), owner_user.role)
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 200
        assert decode_token(response.json()["access_token"])["type"] == "access"

    async def test_access_token_rejected(self, client: AsyncClient, owner_user: User):
        tokens = create_token_pair(str(owner_user.id), owner_user.role)
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]})
        assert response.status_code == 401

    async def test_garbage_token(self, client: AsyncClient):
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": "not-a-token"})
        assert response.status_code == 401

    async def test_inactive_user_rejected(self, client: AsyncClient, db_session: AsyncSession):
        user = await make_user(db_session, "tenant", is_active=False)
        tokens = create_token_pair(str(user.id), user.role)
        response = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 401


class TestMeAndProfile:
    """GET /api/v1/auth/me and PUT /api/v1/auth/profile."""

    async def test_me(self, client: AsyncClient, tenant_user: User, tenant_headers: dict):
        response = await client.get("/api/v1/auth/me", headers=tenant_headers)
        assert response.status_code == 200
        assert response.json()["email"] == tenant_user.email

    async def test_update_name_and_phone(self, client: AsyncClient, owner_headers: dict):
        response = await client.put(
            "/api/v1/auth/profile", json={"name": "Renamed", "phone": "+972501234567"}, headers=owner_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Renamed"
        assert data["phone"] == "+972501234567"

    async def test_change_password(self, client: AsyncClient, owner_user: User):
        headers = auth_header(owner_user)
        response = await client.put(
            "/api/v1/auth/profile",
            json={"current_password": TEST_PASSWORD, "new_password": "brand-new-pass"},
            headers=headers,
        )
        assert response.status_code == 200

        response = await client.post(
            "/api/v1/auth/login", json={"email": owner_user.email, "password": "brand-new-pass"}
        )
        assert response.status_code == 200

    async def test_change_password_needs_current(self, client: AsyncClient, owner_headers: dict):
        response = await client.put(
            "/api/v1/auth/profile",
            json={"current_password": "wrong-password", "new_password": "brand-new-pass"},
            headers=owner_headers,
        )
        assert response.status_code == 400
