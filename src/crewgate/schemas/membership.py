"""Membership schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.crewgate.models import Membership, User


class MemberRead(BaseModel):
    """A team member with the user's display details."""

    user_id: UUID
    membership_id: UUID
    email: str
    full_name: str
    role: str
    status: str
    joined_at: datetime | None

    @classmethod
    def from_models(cls, membership: Membership, user: User) -> "MemberRead":
        return cls(
            user_id=user.id,
            membership_id=membership.id,
            email=user.email,
            full_name=user.display_name,
            role=membership.role,
            status=membership.status,
            joined_at=membership.joined_at,
        )


class MemberListResponse(BaseModel):
    items: list[MemberRead]
    total: int


class RoleChangeRequest(BaseModel):
    role: str = Field(min_length=1, max_length=20)


class StatusChangeRequest(BaseModel):
    status: str = Field(
        min_length=1,
        max_length=20,
        description="'suspended' (stored as removed) or 'active'",
    )
