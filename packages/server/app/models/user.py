"""User profile model (the public ``users`` table behind Supabase auth)."""

from datetime import datetime
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import TimestampMixin, UUIDMixin


class UserBase(SQLModel):
    email: str = Field(nullable=False, unique=True, index=True)
    full_name: Optional[str] = None
    role: str = Field(
        default="pending",
        nullable=False,
        index=True,
        sa_column_kwargs={"server_default": "pending"},
    )  # admin | director | member | viewer | pending
    status: str = Field(
        default="pending",
        nullable=False,
        index=True,
        sa_column_kwargs={"server_default": "pending"},
    )  # pending | approved | rejected | suspended
    company: Optional[str] = None
    position: Optional[str] = None
    approved_by: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = Field(
        default=None, sa_type=sa.DateTime(timezone=True)
    )


class User(UUIDMixin, TimestampMixin, UserBase, table=True):
    __tablename__ = "users"


class OrganizationUser(UserBase):
    """A user row joined through ``organization_members`` for one organization."""

    id: uuid.UUID
    created_at: datetime
    updated_at: Optional[datetime] = None
    membership_role: str
