"""User directory schemas shared between the API server and its clients."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, EmailStr, Field, UUID4

from .common import MAX_PAGE_SIZE, MemberRole, Pagination, SortOrder, UserRole, UserStatus


class UserSortField(str, Enum):
    EMAIL = "email"
    FULL_NAME = "full_name"
    CREATED_AT = "created_at"
    STATUS = "status"


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class UserCreateRequest(BaseModel):
    """Create a user profile. Role and status fall back to server defaults."""
    id: Optional[UUID4] = None  # auth.users id when the profile follows a sign-up
    email: EmailStr
    full_name: Optional[str] = Field(default=None, max_length=200)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    company: Optional[str] = Field(default=None, max_length=200)
    position: Optional[str] = Field(default=None, max_length=200)


class UserUpdateRequest(BaseModel):
    """Partial profile update. Only fields that are set are written."""
    email: Optional[EmailStr] = None
    full_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    company: Optional[str] = Field(default=None, max_length=200)
    position: Optional[str] = Field(default=None, max_length=200)


# Fields a user may change on their own profile
SELF_SERVICE_FIELDS = frozenset({"full_name", "company", "position"})


class UserListQuery(BaseModel):
    """Filters, sort, and pagination for listing users."""
    roles: List[UserRole] = Field(default_factory=list)
    statuses: List[UserStatus] = Field(default_factory=list)
    search: Optional[str] = None
    created_after: Optional[datetime] = None
    created_before: Optional[datetime] = None
    sort_by: UserSortField = UserSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC
    limit: int = Field(default=20, ge=1, le=MAX_PAGE_SIZE)
    offset: int = Field(default=0, ge=0)


class BulkStatusRequest(BaseModel):
    user_ids: List[UUID4] = Field(min_length=1, max_length=500)
    status: UserStatus


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class UserResponse(BaseModel):
    """Single user profile."""
    id: UUID4
    email: str
    full_name: Optional[str] = None
    role: UserRole
    status: UserStatus
    company: Optional[str] = None
    position: Optional[str] = None
    approved_by: Optional[UUID4] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class OrganizationUserResponse(UserResponse):
    """A user as seen through an organization membership."""
    membership_role: MemberRole


class UserListResponse(BaseModel):
    data: List[UserResponse]
    pagination: Pagination


class UserSearchResponse(BaseModel):
    data: List[UserResponse]


class BulkStatusResponse(BaseModel):
    updated: int
    not_found: List[UUID4] = Field(default_factory=list)  # requested ids with no user


class UserStatisticsResponse(BaseModel):
    total: int
    by_status: dict[str, int]
    by_role: dict[str, int]
