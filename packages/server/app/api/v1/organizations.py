"""
Organization API endpoints.

GET    /api/v1/organizations                             — List organizations
POST   /api/v1/organizations                             — Create (creator becomes owner)
GET    /api/v1/organizations/{orgId}                     — Get an organization
DELETE /api/v1/organizations/{orgId}                     — Delete an organization
GET    /api/v1/organizations/{orgId}/stats               — Member counts
GET    /api/v1/organizations/{orgId}/members             — List members with their role
POST   /api/v1/organizations/{orgId}/members             — Add a member
PATCH  /api/v1/organizations/{orgId}/members/{userId}    — Change a member's role
DELETE /api/v1/organizations/{orgId}/members/{userId}    — Remove a member
"""

from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.auth import AuthenticatedUser, require_admin, require_approved
from app.core.config import get_settings
from app.core.database import (
    get_member_repository,
    get_organization_repository,
    get_user_repository,
)
from app.models.organization import Organization
from app.repositories.organizations import (
    OrganizationMemberRepository,
    OrganizationRepository,
)
from app.repositories.users import UserRepository
from app.services import organizations as org_service
from boardmates_shared.schemas.common import MemberRole, Pagination
from boardmates_shared.schemas.organizations import (
    MemberAddRequest,
    MemberListResponse,
    MemberResponse,
    MemberRoleUpdateRequest,
    MemberStatisticsResponse,
    OrganizationCreateRequest,
    OrganizationListQuery,
    OrganizationListResponse,
    OrganizationResponse,
)
from boardmates_shared.schemas.users import OrganizationUserResponse

settings = get_settings()
router = APIRouter()


def _to_response(org: Organization) -> OrganizationResponse:
    return OrganizationResponse(**org.model_dump())


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------

@router.get("", response_model=OrganizationListResponse)
async def list_organizations(
    search: Optional[str] = None,
    limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    offset: int = Query(default=0, ge=0),
    auth: AuthenticatedUser = Depends(require_approved),
    organizations: OrganizationRepository = Depends(get_organization_repository),
    members: OrganizationMemberRepository = Depends(get_member_repository),
):
    """List organizations (all for Admin, own memberships otherwise)."""
    query = OrganizationListQuery(search=search, limit=limit, offset=offset)
    page = await org_service.list_organizations(
        query, auth.role, auth.user_id, organizations, members
    )
    return OrganizationListResponse(
        data=[_to_response(org) for org in page.items],
        pagination=Pagination(limit=limit, offset=offset, total=page.total),
    )


@router.post("", response_model=OrganizationResponse, status_code=201)
async def create_organization(
    body: OrganizationCreateRequest,
    auth: AuthenticatedUser = Depends(require_approved),
    organizations: OrganizationRepository = Depends(get_organization_repository),
    members: OrganizationMemberRepository = Depends(get_member_repository),
):
    """Create an organization. The creator becomes its owner; taken slugs return 409."""
    org = await org_service.create_organization(body, auth.user_id, organizations, members)
    return _to_response(org)


@router.get("/{orgId}", response_model=OrganizationResponse)
async def get_organization(
    orgId: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_approved),
    organizations: OrganizationRepository = Depends(get_organization_repository),
    members: OrganizationMemberRepository = Depends(get_member_repository),
):
    """Get an organization (members of the org or Admin)."""
    await org_service.require_org_access(orgId, auth.role, auth.user_id, organizations, members)
    org = await org_service.get_organization(orgId, organizations)
    return _to_response(org)


@router.delete("/{orgId}", status_code=204)
async def delete_organization(
    orgId: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_admin),
    organizations: OrganizationRepository = Depends(get_organization_repository),
):
    """Delete an organization and its memberships (Admin only)."""
    await org_service.delete_organization(orgId, auth.user_id, organizations)


@router.get("/{orgId}/stats", response_model=MemberStatisticsResponse)
async def member_statistics(
    orgId: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_approved),
    organizations: OrganizationRepository = Depends(get_organization_repository),
    members: OrganizationMemberRepository = Depends(get_member_repository),
):
    """Member counts by role (members of the org or Admin)."""
    await org_service.require_org_access(orgId, auth.role, auth.user_id, organizations, members)
    stats = await org_service.member_statistics(orgId, members)
    return MemberStatisticsResponse(
        organization_id=orgId, total=stats.total, active=stats.active, by_role=stats.by_role
    )


# ---------------------------------------------------------------------------
# Members
# ---------------------------------------------------------------------------

@router.get("/{orgId}/members", response_model=MemberListResponse)
async def list_members(
    orgId: uuid.UUID,
    role: Optional[MemberRole] = None,
    auth: AuthenticatedUser = Depends(require_approved),
    users: UserRepository = Depends(get_user_repository),
    organizations: OrganizationRepository = Depends(get_organization_repository),
    members: OrganizationMemberRepository = Depends(get_member_repository),
):
    """List the members of an organization (members of the org or Admin)."""
    await org_service.require_org_access(orgId, auth.role, auth.user_id, organizations, members)
    found = await org_service.list_members(orgId, role, users)
    return MemberListResponse(
        data=[OrganizationUserResponse(**member.model_dump()) for member in found]
    )


@router.post("/{orgId}/members", response_model=MemberResponse, status_code=201)
async def add_member(
    orgId: uuid.UUID,
    body: MemberAddRequest,
    auth: AuthenticatedUser = Depends(require_approved),
    users: UserRepository = Depends(get_user_repository),
    organizations: OrganizationRepository = Depends(get_organization_repository),
    members: OrganizationMemberRepository = Depends(get_member_repository),
):
    """Add a user to the organization (org owner/admin or Admin)."""
    await org_service.require_org_manager(orgId, auth.role, auth.user_id, organizations, members)
    membership = await org_service.add_member(orgId, body, auth.user_id, users, members)
    return MemberResponse(**membership.model_dump())


@router.patch("/{orgId}/members/{userId}", response_model=MemberResponse)
async def update_member_role(
    orgId: uuid.UUID,
    userId: uuid.UUID,
    body: MemberRoleUpdateRequest,
    auth: AuthenticatedUser = Depends(require_approved),
    organizations: OrganizationRepository = Depends(get_organization_repository),
    members: OrganizationMemberRepository = Depends(get_member_repository),
):
    """Change a member's role (org owner/admin or Admin)."""
    await org_service.require_org_manager(orgId, auth.role, auth.user_id, organizations, members)
    membership = await org_service.update_member_role(orgId, userId, body.role, members)
    return MemberResponse(**membership.model_dump())


@router.delete("/{orgId}/members/{userId}", status_code=204)
async def remove_member(
    orgId: uuid.UUID,
    userId: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_approved),
    organizations: OrganizationRepository = Depends(get_organization_repository),
    members: OrganizationMemberRepository = Depends(get_member_repository),
):
    """Remove a member from the organization (org owner/admin or Admin)."""
    await org_service.require_org_manager(orgId, auth.role, auth.user_id, organizations, members)
    await org_service.remove_member(orgId, userId, members)
