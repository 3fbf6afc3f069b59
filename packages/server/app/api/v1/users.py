"""
User Directory API endpoints.

GET    /api/v1/users                     — List users (filters, sort, pagination)
POST   /api/v1/users                     — Create a user profile
GET    /api/v1/users/search              — Search by email or name
GET    /api/v1/users/by-email            — Look up one user by email
GET    /api/v1/users/stats               — Counts by status and role
POST   /api/v1/users/bulk-status         — Set status on many users
GET    /api/v1/users/{userId}            — Get a user profile
PATCH  /api/v1/users/{userId}            — Update a user profile
DELETE /api/v1/users/{userId}            — Delete a user
POST   /api/v1/users/{userId}/approve    — Approve a pending registration
POST   /api/v1/users/{userId}/reject     — Reject a pending registration
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.core.auth import (
    AuthenticatedUser,
    ensure_self_or_admin,
    require_admin,
    require_approved,
)
from app.core.config import get_settings
from app.core.database import get_user_repository
from app.models.user import User
from app.repositories.users import UserRepository
from app.services import users as user_service
from boardmates_shared.schemas.common import Pagination, SortOrder, UserRole, UserStatus
from boardmates_shared.schemas.users import (
    BulkStatusRequest,
    BulkStatusResponse,
    UserCreateRequest,
    UserListQuery,
    UserListResponse,
    UserResponse,
    UserSearchResponse,
    UserSortField,
    UserStatisticsResponse,
    UserUpdateRequest,
)

settings = get_settings()
router = APIRouter()


def _to_response(user: User) -> UserResponse:
    return UserResponse(**user.model_dump())


@router.get("", response_model=UserListResponse)
async def list_users(
    role: List[UserRole] = Query(default=[]),
    status: List[UserStatus] = Query(default=[]),
    search: Optional[str] = None,
    created_after: Optional[datetime] = None,
    created_before: Optional[datetime] = None,
    sort_by: UserSortField = UserSortField.CREATED_AT,
    sort_order: SortOrder = SortOrder.DESC,
    limit: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    offset: int = Query(default=0, ge=0),
    auth: AuthenticatedUser = Depends(require_admin),
    users: UserRepository = Depends(get_user_repository),
):
    """List users (Admin only)."""
    query = UserListQuery(
        roles=role,
        statuses=status,
        search=search,
        created_after=created_after,
        created_before=created_before,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit,
        offset=offset,
    )
    page = await user_service.list_users(query, users)
    return UserListResponse(
        data=[_to_response(user) for user in page.items],
        pagination=Pagination(limit=limit, offset=offset, total=page.total),
    )


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    body: UserCreateRequest,
    auth: AuthenticatedUser = Depends(require_admin),
    users: UserRepository = Depends(get_user_repository),
):
    """Create a user profile (Admin only). Duplicate emails return 409."""
    user = await user_service.create_user(body, users)
    return _to_response(user)


@router.get("/search", response_model=UserSearchResponse)
async def search_users(
    q: str = Query(min_length=1, max_length=100),
    limit: int = Query(default=10, ge=1, le=50),
    auth: AuthenticatedUser = Depends(require_approved),
    users: UserRepository = Depends(get_user_repository),
):
    """Search the directory by email or name."""
    found = await user_service.search_users(q, limit, users)
    return UserSearchResponse(data=[_to_response(user) for user in found])


@router.get("/by-email", response_model=UserResponse)
async def get_user_by_email(
    email: str = Query(min_length=3, max_length=320),
    auth: AuthenticatedUser = Depends(require_admin),
    users: UserRepository = Depends(get_user_repository),
):
    """Look up a user by email (Admin only)."""
    user = await user_service.get_user_by_email(email, users)
    return _to_response(user)


@router.get("/stats", response_model=UserStatisticsResponse)
async def user_statistics(
    auth: AuthenticatedUser = Depends(require_admin),
    users: UserRepository = Depends(get_user_repository),
):
    """Directory counts by status and role (Admin only)."""
    stats = await user_service.user_statistics(users)
    return UserStatisticsResponse(
        total=stats.total, by_status=stats.by_status, by_role=stats.by_role
    )


@router.post("/bulk-status", response_model=BulkStatusResponse)
async def bulk_update_status(
    body: BulkStatusRequest,
    auth: AuthenticatedUser = Depends(require_admin),
    users: UserRepository = Depends(get_user_repository),
):
    """Set the status of many users at once (Admin only). Unknown ids are reported back."""
    updated, not_found = await user_service.bulk_update_status(body, users)
    return BulkStatusResponse(updated=updated, not_found=not_found)


@router.get("/{userId}", response_model=UserResponse)
async def get_user(
    userId: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_approved),
    users: UserRepository = Depends(get_user_repository),
):
    """Get a user's profile (self or Admin)."""
    ensure_self_or_admin(auth, userId)
    user = await user_service.get_user(userId, users)
    return _to_response(user)


@router.patch("/{userId}", response_model=UserResponse)
async def update_user(
    userId: uuid.UUID,
    body: UserUpdateRequest,
    auth: AuthenticatedUser = Depends(require_approved),
    users: UserRepository = Depends(get_user_repository),
):
    """Update profile fields (self) or anything (Admin)."""
    user = await user_service.update_user(
        userId,
        body,
        caller_role=auth.role,
        caller_user_id=auth.user_id,
        users=users,
    )
    return _to_response(user)


@router.delete("/{userId}", status_code=204)
async def delete_user(
    userId: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_admin),
    users: UserRepository = Depends(get_user_repository),
):
    """Delete a user (Admin only)."""
    await user_service.delete_user(userId, auth.user_id, users)


@router.post("/{userId}/approve", response_model=UserResponse)
async def approve_user(
    userId: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_admin),
    users: UserRepository = Depends(get_user_repository),
):
    """Approve a pending registration (Admin only)."""
    user = await user_service.approve_user(userId, auth.user_id, users)
    return _to_response(user)


@router.post("/{userId}/reject", response_model=UserResponse)
async def reject_user(
    userId: uuid.UUID,
    auth: AuthenticatedUser = Depends(require_admin),
    users: UserRepository = Depends(get_user_repository),
):
    """Reject a pending registration (Admin only)."""
    user = await user_service.reject_user(userId, auth.user_id, users)
    return _to_response(user)
