"""User-Organization membership (join table)."""

from datetime import datetime, timezone
from typing import Optional
import uuid

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .base import UUIDMixin


class OrganizationMember(UUIDMixin, SQLModel, table=True):
    __tablename__ = "organization_members"
    __table_args__ = (
        sa.UniqueConstraint(
            "organization_id", "user_id", name="uq_organization_members_org_user"
        ),
    )

    organization_id: uuid.UUID = Field(
        foreign_key="organizations.id", nullable=False, index=True, ondelete="CASCADE"
    )
    user_id: uuid.UUID = Field(
        foreign_key="users.id", nullable=False, index=True, ondelete="CASCADE"
    )
    role: str = Field(
        default="member",
        nullable=False,
        sa_column_kwargs={"server_default": "member"},
    )  # owner | admin | member | viewer
    status: str = Field(
        default="active",
        nullable=False,
        sa_column_kwargs={"server_default": "active"},
    )
    invited_by: Optional[uuid.UUID] = None
    is_primary: bool = Field(
        default=False,
        nullable=False,
        sa_column_kwargs={"server_default": sa.false()},
    )
    joined_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        nullable=False,
        sa_column_kwargs={"server_default": sa.text("now()")},
        sa_type=sa.DateTime(timezone=True),
    )
