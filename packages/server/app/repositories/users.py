"""
User repository: the ``users`` profile table through the Supabase query builder.

Lookups that target one row return ``None`` when the backend reports no rows
and raise ``BackendError`` for anything else. Writes always raise on failure.
"""

from __future__ import annotations

import asyncio
import re
import uuid
from dataclasses import dataclass
from typing import Any, Iterable, Optional, Union

from postgrest.types import CountMethod

from app.models.user import OrganizationUser, User
from app.repositories.base import RANGE_NOT_SATISFIABLE, SupabaseRepository, utcnow_iso
from app.repositories.errors import BackendError
from boardmates_shared.schemas.common import MemberRole, SortOrder, UserRole, UserStatus
from boardmates_shared.schemas.users import (
    UserCreateRequest,
    UserListQuery,
    UserUpdateRequest,
)

UserId = Union[uuid.UUID, str]

MEMBERSHIP_EMBED = "organization_members!inner(organization_id, role)"

# Characters that carry meaning inside PostgREST or=(...) filters and ilike patterns
_FILTER_RESERVED = re.compile(r"[,()*%\\\"]")

# Columns that may not be nulled by a partial update
_NOT_NULL_COLUMNS = ("email", "role", "status")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def clean_search_term(term: Optional[str]) -> str:
    if not term:
        return ""
    return _FILTER_RESERVED.sub("", term).strip()


def _search_filter(term: str) -> str:
    pattern = f"%{term}%"
    return f"email.ilike.{pattern},full_name.ilike.{pattern}"


def _membership_for(embedded: Any, organization_id: str) -> Optional[dict]:
    """Pick the embedded membership row that belongs to ``organization_id``."""
    if embedded is None:
        return None
    memberships = embedded if isinstance(embedded, list) else [embedded]
    for membership in memberships:
        if str(membership.get("organization_id", "")).lower() == organization_id:
            return membership
    return None


@dataclass
class UserPage:
    items: list[User]
    total: int


@dataclass
class UserStatistics:
    total: int
    by_status: dict[str, int]
    by_role: dict[str, int]


class UserRepository(SupabaseRepository):
    table = "users"

    # ------------------------------------------------------------------
    # Single-row lookups
    # ------------------------------------------------------------------

    async def find_by_id(self, user_id: UserId) -> Optional[User]:
        row = await self._fetch_one(
            self._query().select("*").eq("id", str(user_id)), "find_by_id"
        )
        return User.model_validate(row) if row is not None else None

    async def find_by_email(self, email: str) -> Optional[User]:
        row = await self._fetch_one(
            self._query().select("*").eq("email", normalize_email(email)),
            "find_by_email",
        )
        return User.model_validate(row) if row is not None else None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, data: UserCreateRequest) -> User:
        """Insert a profile and return the stored row, server defaults included."""
        payload = data.model_dump(mode="json", exclude_none=True)
        payload["email"] = normalize_email(payload["email"])
        response = await self._execute(self._query().insert(payload), "create")
        if not response.data:
            raise BackendError(
                "Insert returned no row", table=self.table, operation="create"
            )
        return User.model_validate(response.data[0])

    async def update(self, user_id: UserId, changes: UserUpdateRequest) -> Optional[User]:
        """Apply the fields set on ``changes``. Returns None if no row has ``user_id``."""
        payload = changes.model_dump(mode="json", exclude_unset=True)
        for column in _NOT_NULL_COLUMNS:
            if column in payload and payload[column] is None:
                del payload[column]
        if not payload:
            return await self.find_by_id(user_id)
        if "email" in payload:
            payload["email"] = normalize_email(payload["email"])
        return await self._update_fields(user_id, payload, "update")

    async def delete(self, user_id: UserId) -> None:
        await self._execute(self._query().delete().eq("id", str(user_id)), "delete")

    async def approve(
        self,
        user_id: UserId,
        approved_by: UserId,
        *,
        role: Optional[UserRole] = None,
    ) -> Optional[User]:
        fields = {
            "status": UserStatus.APPROVED.value,
            "approved_by": str(approved_by),
            "approved_at": utcnow_iso(),
        }
        if role is not None:
            fields["role"] = UserRole(role).value
        return await self._update_fields(user_id, fields, "approve")

    async def reject(self, user_id: UserId) -> Optional[User]:
        fields = {
            "status": UserStatus.REJECTED.value,
            "approved_by": None,
            "approved_at": None,
        }
        return await self._update_fields(user_id, fields, "reject")

    async def bulk_update_status(
        self, user_ids: Iterable[UserId], status: UserStatus
    ) -> int:
        """Set ``status`` on every listed user. Returns the number of rows updated."""
        ids = [str(user_id) for user_id in user_ids]
        if not ids:
            return 0
        payload = {"status": UserStatus(status).value, "updated_at": utcnow_iso()}
        rows = await self._fetch_all(
            self._query().update(payload).in_("id", ids), "bulk_update_status"
        )
        return len(rows)

    async def _update_fields(
        self, user_id: UserId, fields: dict, operation: str
    ) -> Optional[User]:
        payload = {**fields, "updated_at": utcnow_iso()}
        rows = await self._fetch_all(
            self._query().update(payload).eq("id", str(user_id)), operation
        )
        return User.model_validate(rows[0]) if rows else None

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    async def find_by_organization(
        self,
        organization_id: UserId,
        role: Optional[MemberRole] = None,
    ) -> list[OrganizationUser]:
        """Users with a membership in ``organization_id``, each with its membership role."""
        org_id = str(organization_id).lower()
        query = (
            self._query()
            .select(f"*, {MEMBERSHIP_EMBED}")
            .eq("organization_members.organization_id", org_id)
        )
        if role is not None:
            query = query.eq("organization_members.role", MemberRole(role).value)

        rows = await self._fetch_all(query, "find_by_organization")
        members = []
        for row in rows:
            membership = _membership_for(row.pop("organization_members", None), org_id)
            if membership is None:
                continue
            members.append(
                OrganizationUser.model_validate(
                    {**row, "membership_role": membership["role"]}
                )
            )
        return members

    async def find_by_ids(self, user_ids: Iterable[UserId]) -> list[User]:
        ids = [str(user_id) for user_id in user_ids]
        if not ids:
            return []
        rows = await self._fetch_all(
            self._query().select("*").in_("id", ids), "find_by_ids"
        )
        return [User.model_validate(row) for row in rows]

    async def search(self, term: str, limit: int = 10) -> list[User]:
        """Case-insensitive match on email or full name."""
        cleaned = clean_search_term(term)
        if not cleaned:
            return []
        rows = await self._fetch_all(
            self._query().select("*").or_(_search_filter(cleaned)).limit(limit),
            "search",
        )
        return [User.model_validate(row) for row in rows]


    @staticmethod
    def _list_filters(builder, query: UserListQuery):
        if query.roles:
            builder = builder.in_("role", [role.value for role in query.roles])
        if query.statuses:
            builder = builder.in_("status", [status.value for status in query.statuses])
        term = clean_search_term(query.search)
        if term:
            builder = builder.or_(_search_filter(term))
        if query.created_after is not None:
            builder = builder.gte("created_at", query.created_after.isoformat())
        if query.created_before is not None:
            builder = builder.lte("created_at", query.created_before.isoformat())
        return builder

    async def list_users(self, query: UserListQuery) -> UserPage:
        """
        One page of users plus the exact total for the filters.

        An offset past the last row yields an empty page rather than an error;
        the total then comes from a separate head-only count.
        """
        builder = self._list_filters(
            self._query().select("*", count=CountMethod.exact), query
        )
        builder = builder.order(
            query.sort_by.value, desc=query.sort_order == SortOrder.DESC
        ).range(query.offset, query.offset + query.limit - 1)

        response = await self._execute(
            builder, "list_users", tolerate=(RANGE_NOT_SATISFIABLE,)
        )
        if response is None:
            total = await self._count(
                self._list_filters(self._count_query(), query), "list_users_count"
            )
            return UserPage(items=[], total=total)

        items = [User.model_validate(row) for row in response.data or []]
        return UserPage(items=items, total=response.count or 0)

    async def email_exists(
        self, email: str, exclude_user_id: Optional[UserId] = None
    ) -> bool:
        query = self._query().select("id").eq("email", normalize_email(email))
        if exclude_user_id is not None:
            query = query.neq("id", str(exclude_user_id))
        rows = await self._fetch_all(query, "email_exists")
        return len(rows) > 0

    async def statistics(self) -> UserStatistics:
        """Exact counts per status and per role, one head-only count query each."""
        statuses = list(UserStatus)
        roles = list(UserRole)
        counts = await asyncio.gather(
            self._count(self._count_query(), "statistics"),
            *(
                self._count(self._count_query().eq("status", status.value), "statistics")
                for status in statuses
            ),
            *(
                self._count(self._count_query().eq("role", role.value), "statistics")
                for role in roles
            ),
        )
        total, rest = counts[0], counts[1:]
        return UserStatistics(
            total=total,
            by_status={
                status.value: count for status, count in zip(statuses, rest[: len(statuses)])
            },
            by_role={role.value: count for role, count in zip(roles, rest[len(statuses):])},
        )
