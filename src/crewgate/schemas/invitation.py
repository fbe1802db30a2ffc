"""Invitation schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.crewgate.core.roles import Role


class InvitationCreateRequest(BaseModel):
    """Request to invite someone to the team.

    The role is parsed by the service so that legacy labels are accepted and
    unknown ones map to a 400 like every other invalid input.
    """

    email: str = Field(min_length=3, max_length=255)
    role: str = Field(default=Role.STAFF.value, max_length=20)


class InvitationRead(BaseModel):
    """Pending invitation as seen by team managers. Never includes the token."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    email: str
    role: str
    invited_by_user_id: UUID
    created_at: datetime
    expires_at: datetime


class InvitationResponse(InvitationRead):
    """Response after issuing or re-sending an invitation."""

    message: str = "Invitation sent"


class InvitationListItem(InvitationRead):
    expired: bool = False


class InvitationListResponse(BaseModel):
    """Paginated pending invitations."""

    items: list[InvitationListItem]
    next_cursor: str | None = Field(
        default=None,
        description="Opaque cursor for fetching the next page. None if no more pages.",
    )
    has_more: bool = False


class InvitationPreviewResponse(BaseModel):
    """Public view of an invitation, shown on the accept page."""

    model_config = ConfigDict(from_attributes=True)

    tenant_id: UUID
    tenant_name: str
    email: str
    role: Role
    inviter_name: str
    expires_at: datetime


class InvitationAcceptRequest(BaseModel):
    token: str = Field(min_length=16, max_length=128)


class InvitationAcceptResponse(BaseModel):
    """Membership created or re-activated by accepting an invitation."""

    membership_id: UUID
    tenant_id: UUID
    role: str
    joined_at: datetime | None
