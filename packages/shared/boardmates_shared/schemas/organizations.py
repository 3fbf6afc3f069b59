"""
Organization and membership schemas.

Covers: creating and listing organizations, per-organization member
statistics, adding members, changing a member's role, and listing the members
of an organization together with their per-organization role.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, Field, UUID4

from .common import MAX_PAGE_SIZE, MemberRole, Pagination
from .users import OrganizationUserResponse


# ---------------------------------------------------------------------------
# Organizations
# ---------------------------------------------------------------------------

class OrganizationCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Organization display name")
    slug: str = Field(
        ...,
        min_length=2,
        max_length=50,
        pattern=r"^[a-z0-9][a-z0-9-]*[a-z0-9]$",
        description="URL-safe organization identifier",
    )


class OrganizationListQuery(BaseModel):
    search: Optional[str] = None
    limit: int = Field(default=20, ge=1, le=MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0)


class OrganizationResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class OrganizationListResponse(BaseModel):
    data: List[OrganizationResponse]
    pagination: Pagination


class MemberStatisticsResponse(BaseModel):
    organization_id: uuid.UUID
    total: int
    active: int
    by_role: dict[str, int]


# ---------------------------------------------------------------------------
# Memberships
# ---------------------------------------------------------------------------

class MemberAddRequest(BaseModel):
    user_id: UUID4
    role: MemberRole = MemberRole.MEMBER


class MemberRoleUpdateRequest(BaseModel):
    role: MemberRole


class MemberResponse(BaseModel):
    organization_id: UUID4
    user_id: UUID4
    role: MemberRole
    status: str
    invited_by: Optional[UUID4] = None
    is_primary: bool = False
    joined_at: datetime


class MemberListResponse(BaseModel):
    data: List[OrganizationUserResponse]
