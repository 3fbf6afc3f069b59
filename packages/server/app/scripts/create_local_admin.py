"""
Script to promote (or create) a local administrator profile for testing.

The auth account itself is created through Supabase auth; this only makes sure
the matching ``users`` row exists with the admin role and approved status.
"""

import asyncio
import argparse
from typing import Optional

from app.core.config import get_settings
from app.core.database import close_supabase, get_supabase
from app.core.logging import configure_logging
from app.models.user import User
from app.repositories.users import UserRepository
from boardmates_shared.schemas.common import UserRole, UserStatus
from boardmates_shared.schemas.users import UserCreateRequest, UserUpdateRequest


async def promote_admin(
    users: UserRepository, email: str, full_name: Optional[str] = None
) -> User:
    user = await users.find_by_email(email)

    if user is None:
        user = await users.create(
            UserCreateRequest(
                email=email,
                full_name=full_name,
                role=UserRole.ADMIN,
                status=UserStatus.APPROVED,
            )
        )
        print(f"Created admin user: {user.email}")
        return user

    changes = UserUpdateRequest(role=UserRole.ADMIN, status=UserStatus.APPROVED)
    if full_name:
        changes.full_name = full_name
    updated = await users.update(user.id, changes)
    print(f"Promoted {user.email} to administrator.")
    return updated or user


async def main(email: str, full_name: Optional[str]) -> None:
    configure_logging(get_settings().log_level, "text")
    client = await get_supabase()
    try:
        await promote_admin(UserRepository(client), email, full_name)
    finally:
        await close_supabase()
    print("Done.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create or promote a local admin user.")
    parser.add_argument("--email", required=True, help="Email address for the user")
    parser.add_argument("--full-name", default=None, help="Display name for the user")

    args = parser.parse_args()

    asyncio.run(main(args.email, args.full_name))
