"""Membership model - ties a user to a tenant with a role."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Index, UniqueConstraint, text
from sqlmodel import Field, SQLModel

from src.crewgate.models.base import utc_now
from src.crewgate.models.enums import MembershipStatus, Role


class Membership(SQLModel, table=True):
    """User membership in a tenant.

    One row per (tenant, user). At most one non-removed owner per tenant,
    enforced by a partial unique index.
    """

    __tablename__ = "memberships"
    __table_args__ = (
        UniqueConstraint("tenant_id", "user_id", name="uq_memberships_tenant_user"),
        Index(
            "uq_memberships_single_owner",
            "tenant_id",
            unique=True,
            postgresql_where=text("role = 'owner' AND status <> 'removed'"),
        ),
        Index("ix_memberships_tenant_status", "tenant_id", "status"),
        {"schema": "public"},
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: UUID = Field(foreign_key="public.tenants.id", index=True)
    user_id: UUID = Field(foreign_key="public.users.id", index=True)
    role: str = Field(default=Role.STAFF.value, max_length=20)
    status: str = Field(default=MembershipStatus.ACTIVE.value, max_length=20)
    invited_by_user_id: UUID | None = Field(default=None, foreign_key="public.users.id")
    joined_at: datetime | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def role_enum(self) -> Role:
        return Role(self.role)

    @property
    def is_active(self) -> bool:
        return self.status == MembershipStatus.ACTIVE.value
