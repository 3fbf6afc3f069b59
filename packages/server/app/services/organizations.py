"""
Organization service: creating and listing organizations, who belongs to
them, and who may change that.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from fastapi import HTTPException

from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from app.models.user import OrganizationUser
from app.repositories.organizations import (
    MemberStatistics,
    OrganizationMemberRepository,
    OrganizationPage,
    OrganizationRepository,
)
from app.repositories.users import UserRepository
from boardmates_shared.schemas.common import MEMBER_MANAGER_ROLES, MemberRole, UserRole
from boardmates_shared.schemas.organizations import (
    MemberAddRequest,
    OrganizationCreateRequest,
    OrganizationListQuery,
)

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Access checks
# ---------------------------------------------------------------------------

async def get_organization(
    org_id: uuid.UUID, organizations: OrganizationRepository
) -> Organization:
    org = await organizations.find_by_id(org_id)
    if org is None:
        raise HTTPException(status_code=404, detail="Organization not found")
    return org


async def require_org_access(
    org_id: uuid.UUID,
    caller_role: str,
    caller_user_id: uuid.UUID,
    organizations: OrganizationRepository,
    members: OrganizationMemberRepository,
) -> Optional[OrganizationMember]:
    """
    The organization must exist. Admins see every organization; everyone else
    only their own, and a foreign organization looks the same as a missing one.
    """
    await get_organization(org_id, organizations)
    if caller_role == UserRole.ADMIN.value:
        return None
    membership = await members.find_member(org_id, caller_user_id)
    if membership is None:
        raise HTTPException(status_code=404, detail="Organization not found")
    return membership


async def require_org_manager(
    org_id: uuid.UUID,
    caller_role: str,
    caller_user_id: uuid.UUID,
    organizations: OrganizationRepository,
    members: OrganizationMemberRepository,
) -> None:
    """Member list changes need a global admin or an org owner/admin."""
    membership = await require_org_access(
        org_id, caller_role, caller_user_id, organizations, members
    )
    if membership is not None and membership.role not in {r.value for r in MEMBER_MANAGER_ROLES}:
        raise HTTPException(
            status_code=403, detail="Organization owner or admin access required"
        )


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------

async def create_organization(
    req: OrganizationCreateRequest,
    creator_id: uuid.UUID,
    organizations: OrganizationRepository,
    members: OrganizationMemberRepository,
) -> Organization:
    """Create an org and make the creator its owner. A taken slug is a 409."""
    org = await organizations.create(req)
    try:
        await members.add_member(
            org.id, creator_id, MemberRole.OWNER, is_primary=True
        )
    except Exception:
        # no transaction across the two inserts; undo the organization
        await organizations.delete(org.id)
        raise

    log.info("org.created", org_id=str(org.id), slug=org.slug, creator=str(creator_id))
    return org


async def list_organizations(
    query: OrganizationListQuery,
    caller_role: str,
    caller_user_id: uuid.UUID,
    organizations: OrganizationRepository,
    members: OrganizationMemberRepository,
) -> OrganizationPage:
    """Admins list every organization; everyone else the ones they belong to."""
    if caller_role == UserRole.ADMIN.value:
        return await organizations.list_organizations(query)
    memberships = await members.find_by_user(caller_user_id)
    return await organizations.list_organizations(
        query, ids=[m.organization_id for m in memberships]
    )


async def delete_organization(
    org_id: uuid.UUID, deleted_by: uuid.UUID, organizations: OrganizationRepository
) -> None:
    await get_organization(org_id, organizations)
    await organizations.delete(org_id)
    log.info("org.deleted", org_id=str(org_id), deleted_by=str(deleted_by))


async def member_statistics(
    org_id: uuid.UUID, members: OrganizationMemberRepository
) -> MemberStatistics:
    return await members.member_statistics(org_id)


# ---------------------------------------------------------------------------
# Memberships
# ---------------------------------------------------------------------------

async def list_members(
    org_id: uuid.UUID, role: Optional[MemberRole], users: UserRepository
) -> list[OrganizationUser]:
    return await users.find_by_organization(org_id, role=role)


async def add_member(
    org_id: uuid.UUID,
    req: MemberAddRequest,
    inviter_id: uuid.UUID,
    users: UserRepository,
    members: OrganizationMemberRepository,
) -> OrganizationMember:
    """Add an existing user to the org. Already-a-member surfaces as DuplicateRecordError."""
    if await users.find_by_id(req.user_id) is None:
        raise HTTPException(status_code=404, detail="User not found")

    membership = await members.add_member(
        org_id, req.user_id, req.role, invited_by=inviter_id
    )
    log.info(
        "member.added",
        org_id=str(org_id),
        user_id=str(req.user_id),
        role=req.role.value,
        invited_by=str(inviter_id),
    )
    return membership


async def update_member_role(
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    role: MemberRole,
    members: OrganizationMemberRepository,
) -> OrganizationMember:
    membership = await members.update_member_role(org_id, user_id, role)
    if membership is None:
        raise HTTPException(status_code=404, detail="Member not found")
    log.info("member.role_updated", org_id=str(org_id), user_id=str(user_id), role=role.value)
    return membership


async def remove_member(
    org_id: uuid.UUID,
    user_id: uuid.UUID,
    members: OrganizationMemberRepository,
) -> None:
    if not await members.is_member(org_id, user_id):
        raise HTTPException(status_code=404, detail="Member not found")
    await members.remove_member(org_id, user_id)
    log.info("member.removed", org_id=str(org_id), user_id=str(user_id))
