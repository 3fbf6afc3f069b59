"""
Supabase client management and repository dependencies.
"""

from __future__ import annotations

from fastapi import Depends
from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions

from app.core.config import get_settings
from app.repositories.organizations import (
    OrganizationMemberRepository,
    OrganizationRepository,
)
from app.repositories.users import UserRepository

settings = get_settings()

_client: AsyncClient | None = None


async def get_supabase() -> AsyncClient:
    """Get or create the shared Supabase client (service-role credentials)."""
    global _client
    if _client is None:
        _client = await acreate_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
            options=AsyncClientOptions(
                postgrest_client_timeout=settings.supabase_timeout_seconds,
                auto_refresh_token=False,
                persist_session=False,
            ),
        )
    return _client


async def close_supabase() -> None:
    """Close the PostgREST HTTP session held by the shared client."""
    global _client
    if _client is not None:
        await _client.postgrest.aclose()
        _client = None


async def get_user_repository(
    client: AsyncClient = Depends(get_supabase),
) -> UserRepository:
    """FastAPI dependency for the users repository."""
    return UserRepository(client)


async def get_organization_repository(
    client: AsyncClient = Depends(get_supabase),
) -> OrganizationRepository:
    """FastAPI dependency for the organizations repository."""
    return OrganizationRepository(client)


async def get_member_repository(
    client: AsyncClient = Depends(get_supabase),
) -> OrganizationMemberRepository:
    """FastAPI dependency for the organization membership repository."""
    return OrganizationMemberRepository(client)
