"""
Authentication endpoints.

Sign-up, login and token refresh happen against Supabase auth directly; this
service only answers "who am I" for a valid access token.

GET  /auth/me                 — Profile of the token holder
GET  /auth/me/organizations   — Organization memberships of the token holder
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.core.auth import AuthenticatedUser, get_authenticated_user
from app.core.database import get_member_repository
from app.repositories.organizations import OrganizationMemberRepository
from boardmates_shared.schemas.organizations import MemberResponse
from boardmates_shared.schemas.users import UserResponse

router = APIRouter()


@router.get("/me", response_model=UserResponse)
async def me(auth: AuthenticatedUser = Depends(get_authenticated_user)):
    """Return the caller's profile. Works for pending accounts too."""
    return UserResponse(**auth.user.model_dump())


@router.get("/me/organizations", response_model=list[MemberResponse])
async def my_organizations(
    auth: AuthenticatedUser = Depends(get_authenticated_user),
    members: OrganizationMemberRepository = Depends(get_member_repository),
):
    """List the caller's organization memberships."""
    memberships = await members.find_by_user(auth.user_id)
    return [MemberResponse(**m.model_dump()) for m in memberships]
