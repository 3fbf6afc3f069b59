"""
Organization repositories: the ``organizations`` table and the
``organization_members`` join table.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from postgrest.types import CountMethod

from app.models.organization import Organization
from app.models.organization_member import OrganizationMember
from app.repositories.base import RANGE_NOT_SATISFIABLE, SupabaseRepository
from app.repositories.errors import BackendError
from app.repositories.users import clean_search_term
from boardmates_shared.schemas.common import MemberRole
from boardmates_shared.schemas.organizations import (
    OrganizationCreateRequest,
    OrganizationListQuery,
)

Id = Union[uuid.UUID, str]

ACTIVE_MEMBER = "active"


@dataclass
class OrganizationPage:
    items: list[Organization]
    total: int


@dataclass
class MemberStatistics:
    organization_id: Id
    total: int
    active: int
    by_role: dict[str, int]


class OrganizationRepository(SupabaseRepository):
    table = "organizations"

    async def create(self, data: OrganizationCreateRequest) -> Organization:
        """Insert an organization. A taken slug raises ``DuplicateRecordError``."""
        response = await self._execute(
            self._query().insert(data.model_dump(mode="json")), "create"
        )
        if not response.data:
            raise BackendError(
                "Insert returned no row", table=self.table, operation="create"
            )
        return Organization.model_validate(response.data[0])

    async def find_by_id(self, organization_id: Id) -> Optional[Organization]:
        row = await self._fetch_one(
            self._query().select("*").eq("id", str(organization_id)), "find_by_id"
        )
        return Organization.model_validate(row) if row is not None else None

    @staticmethod
    def _list_filters(builder, query: OrganizationListQuery, ids: Optional[list[str]]):
        if ids is not None:
            builder = builder.in_("id", ids)
        term = clean_search_term(query.search)
        if term:
            builder = builder.or_(f"name.ilike.%{term}%,slug.ilike.%{term}%")
        return builder

    async def list_organizations(
        self,
        query: OrganizationListQuery,
        ids: Optional[Iterable[Id]] = None,
    ) -> OrganizationPage:
        """
        A page of organizations by name, optionally limited to ``ids``.

        An offset past the last row gives an empty page with the exact total.
        """
        id_list = [str(i) for i in ids] if ids is not None else None
        if id_list is not None and not id_list:
            return OrganizationPage(items=[], total=0)

        builder = self._list_filters(
            self._query().select("*", count=CountMethod.exact), query, id_list
        )
        builder = builder.order("name").range(
            query.offset, query.offset + query.limit - 1
        )
        response = await self._execute(
            builder, "list_organizations", tolerate=(RANGE_NOT_SATISFIABLE,)
        )
        if response is None:
            total = await self._count(
                self._list_filters(self._count_query(), query, id_list),
                "list_organizations_count",
            )
            return OrganizationPage(items=[], total=total)

        items = [Organization.model_validate(row) for row in response.data or []]
        return OrganizationPage(items=items, total=response.count or 0)

    async def delete(self, organization_id: Id) -> None:
        """Hard delete; memberships go with it through the cascading foreign key."""
        await self._execute(
            self._query().delete().eq("id", str(organization_id)), "delete"
        )


class OrganizationMemberRepository(SupabaseRepository):
    table = "organization_members"

    async def add_member(
        self,
        organization_id: Id,
        user_id: Id,
        role: MemberRole = MemberRole.MEMBER,
        invited_by: Optional[Id] = None,
        is_primary: bool = False,
    ) -> OrganizationMember:
        """Insert a membership. An existing one raises ``DuplicateRecordError``."""
        payload = {
            "organization_id": str(organization_id),
            "user_id": str(user_id),
            "role": MemberRole(role).value,
        }
        if invited_by is not None:
            payload["invited_by"] = str(invited_by)
        if is_primary:
            payload["is_primary"] = True
        response = await self._execute(self._query().insert(payload), "add_member")
        if not response.data:
            raise BackendError(
                "Insert returned no row", table=self.table, operation="add_member"
            )
        return OrganizationMember.model_validate(response.data[0])

    async def find_member(
        self, organization_id: Id, user_id: Id
    ) -> Optional[OrganizationMember]:
        row = await self._fetch_one(
            self._query()
            .select("*")
            .eq("organization_id", str(organization_id))
            .eq("user_id", str(user_id)),
            "find_member",
        )
        return OrganizationMember.model_validate(row) if row is not None else None

    async def find_by_user(self, user_id: Id) -> list[OrganizationMember]:
        rows = await self._fetch_all(
            self._query().select("*").eq("user_id", str(user_id)), "find_by_user"
        )
        return [OrganizationMember.model_validate(row) for row in rows]

    async def is_member(self, organization_id: Id, user_id: Id) -> bool:
        return await self.find_member(organization_id, user_id) is not None

    async def update_member_role(
        self, organization_id: Id, user_id: Id, role: MemberRole
    ) -> Optional[OrganizationMember]:
        rows = await self._fetch_all(
            self._query()
            .update({"role": MemberRole(role).value})
            .eq("organization_id", str(organization_id))
            .eq("user_id", str(user_id)),
            "update_member_role",
        )
        return OrganizationMember.model_validate(rows[0]) if rows else None

    async def remove_member(self, organization_id: Id, user_id: Id) -> None:
        await self._execute(
            self._query()
            .delete()
            .eq("organization_id", str(organization_id))
            .eq("user_id", str(user_id)),
            "remove_member",
        )

    async def member_statistics(self, organization_id: Id) -> MemberStatistics:
        """Exact member counts for one organization: total, active, and per role."""
        org_id = str(organization_id)
        roles = list(MemberRole)

        def scoped():
            return self._count_query().eq("organization_id", org_id)

        counts = await asyncio.gather(
            self._count(scoped(), "member_statistics"),
            self._count(scoped().eq("status", ACTIVE_MEMBER), "member_statistics"),
            *(
                self._count(scoped().eq("role", role.value), "member_statistics")
                for role in roles
            ),
        )
        return MemberStatistics(
            organization_id=organization_id,
            total=counts[0],
            active=counts[1],
            by_role={role.value: count for role, count in zip(roles, counts[2:])},
        )
