"""Invitation model - an offer to join a tenant with a given role."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Index, text
from sqlmodel import Field, SQLModel

from src.crewgate.models.base import utc_now
from src.crewgate.models.enums import Role


class Invitation(SQLModel, table=True):
    """Outstanding or historical invitation.

    Only the SHA-256 hash of the bearer token is stored. At most one
    unaccepted row exists per (tenant, email); expired rows are deleted when a
    new invitation supersedes them.
    """

    __tablename__ = "invitations"
    __table_args__ = (
        Index(
            "uq_invitations_unaccepted_pair",
            "tenant_id",
            "email",
            unique=True,
            postgresql_where=text("accepted_at IS NULL"),
        ),
        Index("ix_invitations_tenant_created", "tenant_id", "created_at"),
        {"schema": "public"},
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    tenant_id: UUID = Field(foreign_key="public.tenants.id", index=True)
    email: str = Field(max_length=255, index=True)
    role: str = Field(default=Role.STAFF.value, max_length=20)
    invited_by_user_id: UUID = Field(foreign_key="public.users.id", index=True)
    token_hash: str = Field(max_length=64, unique=True, index=True)
    expires_at: datetime
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    accepted_at: datetime | None = Field(default=None)
    accepted_by_user_id: UUID | None = Field(default=None, foreign_key="public.users.id")

    @property
    def is_accepted(self) -> bool:
        return self.accepted_at is not None

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utc_now()) >= self.expires_at

    def is_active(self, now: datetime | None = None) -> bool:
        """Unaccepted and unexpired."""
        return not self.is_accepted and not self.is_expired(now)
