"""
Authentication and Authorization for the BoardMates directory API.

Supports:
- Bearer access tokens issued by Supabase auth, resolved through the auth
  sub-client's "get current user"
- Profile lookup in the ``users`` table for the token holder
- Status and role based authorization dependencies
"""

from __future__ import annotations

import uuid
from typing import Optional

import httpx
import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import APIKeyHeader
from supabase import AsyncClient, AuthError

from app.core.database import get_supabase, get_user_repository
from app.models.user import User
from app.repositories.users import UserRepository
from boardmates_shared.schemas.common import UserRole, UserStatus

log = structlog.get_logger()

api_key_header = APIKeyHeader(name="Authorization", auto_error=False)


class AuthenticatedUser:
    """Container for an authenticated user and their directory profile."""

    def __init__(self, user: User):
        self.user = user
        self.user_id = user.id
        self.role = user.role
        self.status = user.status

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[7:].strip()
    return token or None


async def resolve_auth_user_id(token: str, client: AsyncClient) -> uuid.UUID:
    """Ask Supabase auth who owns ``token``. Raises 401 if nobody does."""
    try:
        response = await client.auth.get_user(token)
    except AuthError as exc:
        log.info("auth.token_rejected", reason=str(exc))
        raise HTTPException(status_code=401, detail="Invalid or expired session") from exc
    except httpx.HTTPError as exc:
        log.error("auth.backend_unavailable", error=str(exc))
        raise HTTPException(
            status_code=503, detail="Authentication service unavailable"
        ) from exc

    if response is None or response.user is None:
        raise HTTPException(status_code=401, detail="Invalid or expired session")
    return uuid.UUID(str(response.user.id))


async def get_authenticated_user(
    request: Request,
    authorization: Optional[str] = Depends(api_key_header),
    client: AsyncClient = Depends(get_supabase),
    users: UserRepository = Depends(get_user_repository),
) -> AuthenticatedUser:
    """Main authentication dependency. Requires a Bearer access token."""
    token = _bearer_token(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Authentication required")

    user_id = await resolve_auth_user_id(token, client)
    profile = await users.find_by_id(user_id)
    if profile is None:
        raise HTTPException(status_code=403, detail="User profile not found")

    auth_user = AuthenticatedUser(profile)
    request.state.auth = auth_user
    structlog.contextvars.bind_contextvars(user_id=str(auth_user.user_id))
    return auth_user


# ---------------------------------------------------------------------------
# Authorization dependencies
# ---------------------------------------------------------------------------

async def require_approved(
    auth: AuthenticatedUser = Depends(get_authenticated_user),
) -> AuthenticatedUser:
    """Only approved accounts can use the directory."""
    if auth.status != UserStatus.APPROVED.value:
        raise HTTPException(status_code=403, detail="Account is not approved")
    return auth


async def require_admin(
    auth: AuthenticatedUser = Depends(require_approved),
) -> AuthenticatedUser:
    """Requires the admin role."""
    if not auth.is_admin:
        raise HTTPException(status_code=403, detail="Administrator access required")
    return auth


def ensure_self_or_admin(auth: AuthenticatedUser, user_id: uuid.UUID) -> None:
    if auth.user_id != user_id and not auth.is_admin:
        raise HTTPException(status_code=403, detail="Not allowed to access this user")
