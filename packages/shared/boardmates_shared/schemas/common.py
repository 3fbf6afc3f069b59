from enum import Enum
from typing import Optional

from pydantic import BaseModel


class UserRole(str, Enum):
    ADMIN = "admin"
    DIRECTOR = "director"
    MEMBER = "member"
    VIEWER = "viewer"
    PENDING = "pending"


class UserStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class MemberRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"
    VIEWER = "viewer"


# Membership roles allowed to manage an organization's member list
MEMBER_MANAGER_ROLES: frozenset["MemberRole"] = frozenset(
    {MemberRole.OWNER, MemberRole.ADMIN}
)


# Upper bound for any page size, including the configurable server maximum
MAX_PAGE_SIZE = 100


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class Pagination(BaseModel):
    limit: int
    offset: int
    total: int


class ErrorDetail(BaseModel):
    code: str
    message: str
    status: int


class ErrorResponse(BaseModel):
    error: ErrorDetail
    details: Optional[object] = None
