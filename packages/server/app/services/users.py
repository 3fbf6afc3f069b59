"""
User directory service — business rules for profile CRUD and approval.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import HTTPException

from app.models.user import User
from app.repositories.users import UserPage, UserRepository, UserStatistics
from boardmates_shared.schemas.common import UserRole, UserStatus
from boardmates_shared.schemas.users import (
    SELF_SERVICE_FIELDS,
    BulkStatusRequest,
    UserCreateRequest,
    UserListQuery,
    UserUpdateRequest,
)

log = structlog.get_logger()


async def get_user(user_id: uuid.UUID, users: UserRepository) -> User:
    user = await users.find_by_id(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def get_user_by_email(email: str, users: UserRepository) -> User:
    user = await users.find_by_email(email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def create_user(req: UserCreateRequest, users: UserRepository) -> User:
    """Create a profile. A duplicate email surfaces as DuplicateRecordError."""
    user = await users.create(req)
    log.info(
        "user.created",
        user_id=str(user.id),
        role=user.role,
        status=user.status,
    )
    return user


async def update_user(
    user_id: uuid.UUID,
    req: UserUpdateRequest,
    caller_role: str,
    caller_user_id: uuid.UUID,
    users: UserRepository,
) -> User:
    """Update a profile. Users may edit their own basic fields; the rest is admin-only."""
    changed = set(req.model_fields_set)
    if caller_role != UserRole.ADMIN.value:
        if caller_user_id != user_id:
            raise HTTPException(
                status_code=403, detail="Only administrators can update other users"
            )
        restricted = changed - SELF_SERVICE_FIELDS
        if restricted:
            raise HTTPException(
                status_code=403,
                detail=f"Only administrators can change: {', '.join(sorted(restricted))}",
            )

    if req.email is not None and await users.email_exists(req.email, exclude_user_id=user_id):
        raise HTTPException(status_code=409, detail="Email already in use")

    user = await users.update(user_id, req)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")

    log.info("user.updated", user_id=str(user_id), fields=sorted(changed))
    return user


async def delete_user(
    user_id: uuid.UUID, caller_user_id: uuid.UUID, users: UserRepository
) -> None:
    if user_id == caller_user_id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")
    await get_user(user_id, users)
    await users.delete(user_id)
    log.info("user.deleted", user_id=str(user_id), deleted_by=str(caller_user_id))


async def approve_user(
    user_id: uuid.UUID, approver_id: uuid.UUID, users: UserRepository
) -> User:
    """Approve a pending registration. A user still on the pending role becomes a member."""
    user = await get_user(user_id, users)
    if user.status != UserStatus.PENDING.value:
        raise HTTPException(status_code=409, detail="Only pending users can be approved")

    role = UserRole.MEMBER if user.role == UserRole.PENDING.value else None
    approved = await users.approve(user_id, approver_id, role=role)
    if approved is None:
        raise HTTPException(status_code=404, detail="User not found")

    log.info("user.approved", user_id=str(user_id), approved_by=str(approver_id))
    return approved


async def reject_user(
    user_id: uuid.UUID, rejected_by: uuid.UUID, users: UserRepository
) -> User:
    user = await get_user(user_id, users)
    if user.status != UserStatus.PENDING.value:
        raise HTTPException(status_code=409, detail="Only pending users can be rejected")

    rejected = await users.reject(user_id)
    if rejected is None:
        raise HTTPException(status_code=404, detail="User not found")

    log.info("user.rejected", user_id=str(user_id), rejected_by=str(rejected_by))
    return rejected


async def list_users(query: UserListQuery, users: UserRepository) -> UserPage:
    return await users.list_users(query)


async def search_users(term: str, limit: int, users: UserRepository) -> list[User]:
    return await users.search(term, limit=limit)


async def bulk_update_status(
    req: BulkStatusRequest, users: UserRepository
) -> tuple[int, list[uuid.UUID]]:
    """Set the status on every known id. Returns (rows updated, ids with no user)."""
    found = {user.id for user in await users.find_by_ids(req.user_ids)}
    not_found = [user_id for user_id in req.user_ids if user_id not in found]
    targets = [user_id for user_id in req.user_ids if user_id in found]
    updated = await users.bulk_update_status(targets, req.status) if targets else 0
    log.info(
        "user.bulk_status_updated",
        status=req.status.value,
        requested=len(req.user_ids),
        updated=updated,
        not_found=len(not_found),
    )
    return updated, not_found


async def user_statistics(users: UserRepository) -> UserStatistics:
    return await users.statistics()
