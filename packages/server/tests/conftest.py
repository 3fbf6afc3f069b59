"""
Shared fixtures: a recording stand-in for the Supabase query builder, and
dependency overrides for the API tests.
"""

from __future__ import annotations

import uuid
from types import SimpleNamespace
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from postgrest.exceptions import APIError

from app.core.auth import AuthenticatedUser, get_authenticated_user
from app.core.database import (
    get_member_repository,
    get_organization_repository,
    get_user_repository,
)
from app.main import app
from app.models.user import User


class RecordingQuery:
    """Chainable query builder that records every call and returns canned data."""

    def __init__(
        self,
        data: Any = None,
        count: Optional[int] = None,
        error: Optional[Exception] = None,
    ):
        self.calls: list[tuple[str, tuple, dict]] = []
        if error is not None:
            self.execute = AsyncMock(side_effect=error)
        else:
            self.execute = AsyncMock(return_value=SimpleNamespace(data=data, count=count))

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)

        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self

        return method

    def called(self, name: str) -> list[tuple]:
        return [args for call, args, _ in self.calls if call == name]

    def kwargs_of(self, name: str) -> list[dict]:
        return [kwargs for call, _, kwargs in self.calls if call == name]


def api_error(code: str, message: str = "backend error") -> APIError:
    return APIError({"code": code, "message": message, "details": None, "hint": None})


def fake_client(*queries: RecordingQuery) -> MagicMock:
    client = MagicMock()
    if len(queries) == 1:
        client.table.return_value = queries[0]
    else:
        client.table.side_effect = list(queries)
    return client


def user_row(**overrides) -> dict:
    row = {
        "id": str(uuid.uuid4()),
        "email": "ada@boardmates.io",
        "full_name": "Ada Lovelace",
        "role": "member",
        "status": "approved",
        "company": "Analytical Engines",
        "position": "Director",
        "approved_by": None,
        "approved_at": None,
        "created_at": "2026-01-05T10:00:00+00:00",
        "updated_at": "2026-01-05T10:00:00+00:00",
    }
    row.update(overrides)
    return row


def make_user(**overrides) -> User:
    return User.model_validate(user_row(**overrides))


def org_row(**overrides) -> dict:
    row = {
        "id": str(uuid.uuid4()),
        "name": "Analytical Engines",
        "slug": "analytical-engines",
        "status": "active",
        "created_at": "2026-01-02T08:00:00+00:00",
        "updated_at": "2026-01-02T08:00:00+00:00",
    }
    row.update(overrides)
    return row


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def users_repo():
    return AsyncMock()


@pytest.fixture
def members_repo():
    return AsyncMock()


@pytest.fixture
def orgs_repo():
    return AsyncMock()


@pytest.fixture
def caller():
    """The authenticated caller; tests replace ``caller.user`` via ``act_as``."""
    return SimpleNamespace(user=make_user(role="admin", status="approved"))


@pytest.fixture
def act_as(caller):
    def _act_as(**overrides) -> User:
        caller.user = make_user(**overrides)
        return caller.user

    return _act_as


@pytest.fixture
def override_deps(users_repo, members_repo, orgs_repo, caller):
    app.dependency_overrides[get_user_repository] = lambda: users_repo
    app.dependency_overrides[get_member_repository] = lambda: members_repo
    app.dependency_overrides[get_organization_repository] = lambda: orgs_repo
    app.dependency_overrides[get_authenticated_user] = lambda: AuthenticatedUser(caller.user)
    yield
    app.dependency_overrides.clear()


@pytest.fixture
async def client(override_deps):
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
