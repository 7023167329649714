"""Tests for auth dependencies: token validation, active check and role gating."""

import uuid
from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.jwt import create_access_token, create_token_pair
from app.models.user import User
from conftest import auth_header, make_user

pytestmark = pytest.mark.asyncio


class TestGetCurrentUser:
    """get_current_user via the /me endpoint."""

    async def test_expired_token_rejected(self, client: AsyncClient, owner_user: User):
        token = create_access_token({"sub": str(owner_user.id)}, expires_delta=timedelta(seconds=-1))
        response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_invalid_token_format(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not.a.valid.jwt"})
        assert response.status_code == 401

    async def test_refresh_token_type_rejected(self, client: AsyncClient, owner_user: User):
        tokens = create_token_pair(str(owner_user.id), owner_user.role)
        response = await client.get(
            "/api/v1/auth/me", headers={"Authorization": f"Bearer {tokens['refresh_token']}"}
        )
        assert response.status_code == 401

    async def test_nonexistent_user_id_rejected(self, client: AsyncClient):
        token = create_access_token({"sub": str(uuid.uuid4())})
        response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_non_uuid_subject_rejected(self, client: AsyncClient):
        token = create_access_token({"sub": "not-a-uuid"})
        response = await client.get("/api/v1/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    async def test_missing_header_rejected(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")
        assert response.status_code in (401, 403)


class TestGetCurrentActiveUser:
    async def test_inactive_user_rejected(self, client: AsyncClient, db_session: AsyncSession):
        user = await make_user(db_session, "owner", is_active=False)
        response = await client.get("/api/v1/auth/me", headers=auth_header(user))
        assert response.status_code == 403
        assert response.json()["detail"] == "Account is inactive"


class TestRequireRoles:
    async def test_role_is_read_from_database_not_token(
        self, client: AsyncClient, db_session: AsyncSession, owner_user: User
    ):
        # A token that claims admin does not grant admin rights.
        tokens = create_token_pair(str(owner_user.id), "admin")
        response = await client.get(
            "/api/v1/reports/system/summary", headers={"Authorization": f"Bearer {tokens['access_token']}"}
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "Insufficient permissions"

    async def test_allowed_role_passes(self, client: AsyncClient, admin_headers: dict):
        response = await client.get("/api/v1/reports/system/summary", headers=admin_headers)
        assert response.status_code == 200
