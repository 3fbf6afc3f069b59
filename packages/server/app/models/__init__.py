# SQLModel definitions, imported here so the metadata is complete for Alembic.
from .base import UUIDMixin, TimestampMixin  # noqa: F401
from .organization import Organization  # noqa: F401
from .user import User, OrganizationUser  # noqa: F401
from .organization_member import OrganizationMember  # noqa: F401
