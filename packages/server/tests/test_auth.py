"""
Tests for authentication and authorization dependencies.

Tests cover:
- Bearer token extraction
- Token resolution through Supabase auth (valid, rejected, unreachable)
- Profile lookup and request context binding
- Approved / admin guards
- /auth/me endpoints
"""

from __future__ import annotations

import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi import HTTPException
from supabase import AuthError

from app.core.auth import (
    AuthenticatedUser,
    _bearer_token,
    ensure_self_or_admin,
    get_authenticated_user,
    require_admin,
    require_approved,
    resolve_auth_user_id,
)
from conftest import make_user


def auth_client(user_id=None, error=None) -> MagicMock:
    client = MagicMock()
    if error is not None:
        client.auth.get_user = AsyncMock(side_effect=error)
    elif user_id is None:
        client.auth.get_user = AsyncMock(return_value=None)
    else:
        client.auth.get_user = AsyncMock(
            return_value=SimpleNamespace(user=SimpleNamespace(id=str(user_id)))
        )
    return client


# ---------------------------------------------------------------------------
# Token handling
# ---------------------------------------------------------------------------

class TestBearerToken:

    def test_extracts_token(self):
        assert _bearer_token("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_missing_or_malformed(self):
        assert _bearer_token(None) is None
        assert _bearer_token("Basic dXNlcjpwYXNz") is None
        assert _bearer_token("Bearer   ") is None


class TestResolveAuthUserId:

    @pytest.mark.asyncio
    async def test_valid_token(self):
        user_id = uuid.uuid4()
        client = auth_client(user_id)
        assert await resolve_auth_user_id("token", client) == user_id
        client.auth.get_user.assert_awaited_once_with("token")

    @pytest.mark.asyncio
    async def test_rejected_token(self):
        client = auth_client(error=AuthError("invalid JWT", "bad_jwt"))
        with pytest.raises(HTTPException) as exc_info:
            await resolve_auth_user_id("token", client)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_no_user(self):
        with pytest.raises(HTTPException) as exc_info:
            await resolve_auth_user_id("token", auth_client())
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_auth_service_unreachable(self):
        client = auth_client(error=httpx.ConnectError("connection refused"))
        with pytest.raises(HTTPException) as exc_info:
            await resolve_auth_user_id("token", client)
        assert exc_info.value.status_code == 503


# ---------------------------------------------------------------------------
# get_authenticated_user
# ---------------------------------------------------------------------------

class TestGetAuthenticatedUser:

    @pytest.mark.asyncio
    async def test_loads_profile(self):
        profile = make_user()
        users = AsyncMock()
        users.find_by_id.return_value = profile
        request = SimpleNamespace(state=SimpleNamespace())

        auth = await get_authenticated_user(
            request, "Bearer token", auth_client(profile.id), users
        )

        assert auth.user_id == profile.id
        assert request.state.auth is auth
        users.find_by_id.assert_awaited_once_with(profile.id)

    @pytest.mark.asyncio
    async def test_requires_token(self):
        with pytest.raises(HTTPException) as exc_info:
            await get_authenticated_user(
                SimpleNamespace(state=SimpleNamespace()), None, auth_client(), AsyncMock()
            )
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == "Authentication required"

    @pytest.mark.asyncio
    async def test_missing_profile(self):
        users = AsyncMock()
        users.find_by_id.return_value = None
        with pytest.raises(HTTPException) as exc_info:
            await get_authenticated_user(
                SimpleNamespace(state=SimpleNamespace()),
                "Bearer token",
                auth_client(uuid.uuid4()),
                users,
            )
        assert exc_info.value.status_code == 403


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------

class TestGuards:

    @pytest.mark.asyncio
    async def test_require_approved(self):
        approved = AuthenticatedUser(make_user(status="approved"))
        assert await require_approved(approved) is approved

        for status in ("pending", "rejected", "suspended"):
            with pytest.raises(HTTPException) as exc_info:
                await require_approved(AuthenticatedUser(make_user(status=status)))
            assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_require_admin(self):
        admin = AuthenticatedUser(make_user(role="admin"))
        assert await require_admin(admin) is admin

        with pytest.raises(HTTPException):
            await require_admin(AuthenticatedUser(make_user(role="director")))

    def test_ensure_self_or_admin(self):
        me = AuthenticatedUser(make_user(role="member"))
        ensure_self_or_admin(me, me.user_id)
        ensure_self_or_admin(AuthenticatedUser(make_user(role="admin")), uuid.uuid4())
        with pytest.raises(HTTPException):
            ensure_self_or_admin(me, uuid.uuid4())


# ---------------------------------------------------------------------------
# /auth endpoints
# ---------------------------------------------------------------------------

class TestMeEndpoints:

    @pytest.mark.asyncio
    async def test_me_works_for_pending_accounts(self, client, act_as):
        me = act_as(role="pending", status="pending")
        response = await client.get("/auth/me")
        assert response.status_code == 200
        assert response.json()["id"] == str(me.id)
        assert response.json()["status"] == "pending"

    @pytest.mark.asyncio
    async def test_my_organizations(self, client, caller, members_repo):
        from app.models.organization_member import OrganizationMember

        org_id = uuid.uuid4()
        members_repo.find_by_user.return_value = [
            OrganizationMember.model_validate({
                "id": str(uuid.uuid4()),
                "organization_id": str(org_id),
                "user_id": str(caller.user.id),
                "role": "owner",
                "status": "active",
                "is_primary": True,
                "joined_at": "2026-02-01T09:00:00+00:00",
            })
        ]

        response = await client.get("/auth/me/organizations")

        assert response.status_code == 200
        assert response.json()[0]["organization_id"] == str(org_id)
        assert response.json()[0]["is_primary"] is True
