"""Invitation API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, Request, Response, status

from src.crewgate.api.dependencies import CurrentUser, InvitationServiceDep
from src.crewgate.core.config import get_settings
from src.crewgate.core.rate_limit import limiter
from src.crewgate.models import utc_now
from src.crewgate.schemas import (
    InvitationAcceptRequest,
    InvitationAcceptResponse,
    InvitationCreateRequest,
    InvitationListItem,
    InvitationListResponse,
    InvitationPreviewResponse,
    InvitationResponse,
)

settings = get_settings()

router = APIRouter(prefix="/tenants/{tenant_id}/invitations", tags=["invitations"])
public_router = APIRouter(prefix="/invitations", tags=["invitations"])

CursorQuery = Annotated[str | None, Query(description="Pagination cursor")]
LimitQuery = Annotated[int, Query(ge=1, le=100, description="Items per page")]


# =============================================================================
# Team endpoints (manager role or above)
# =============================================================================


@router.post(
    "",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite a team member",
    responses={
        403: {"description": "Manager role required"},
        409: {"description": "Already a member, or a live invitation exists"},
        429: {"description": "Invite quota exhausted"},
    },
)
async def issue_invitation(
    tenant_id: UUID,
    body: InvitationCreateRequest,
    current_user: CurrentUser,
    invitation_service: InvitationServiceDep,
) -> InvitationResponse:
    invitation = await invitation_service.issue_invitation(
        actor_id=current_user.id,
        tenant_id=tenant_id,
        email=body.email,
        role=body.role,
    )
    return InvitationResponse.model_validate(invitation)


@router.get(
    "",
    response_model=InvitationListResponse,
    summary="List pending invitations",
)
async def list_invitations(
    tenant_id: UUID,
    current_user: CurrentUser,
    invitation_service: InvitationServiceDep,
    cursor: CursorQuery = None,
    limit: LimitQuery = 50,
) -> InvitationListResponse:
    """Unaccepted invitations, newest first. Expired ones are flagged."""
    invitations, next_cursor, has_more = await invitation_service.list_pending_invitations(
        actor_id=current_user.id,
        tenant_id=tenant_id,
        cursor=cursor,
        limit=limit,
    )
    now = utc_now()
    return InvitationListResponse(
        items=[
            InvitationListItem.model_validate(inv).model_copy(
                update={"expired": inv.is_expired(now)}
            )
            for inv in invitations
        ],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.delete(
    "/{invitation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Revoke invitation",
)
async def revoke_invitation(
    tenant_id: UUID,
    invitation_id: UUID,
    current_user: CurrentUser,
    invitation_service: InvitationServiceDep,
) -> Response:
    await invitation_service.revoke_invitation(
        invitation_id=invitation_id,
        actor_id=current_user.id,
        tenant_id=tenant_id,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{invitation_id}/resend",
    response_model=InvitationResponse,
    summary="Resend invitation",
    description="Issue a new link and expiry, and email the invitee again. "
    "The previous link stops working.",
)
async def resend_invitation(
    tenant_id: UUID,
    invitation_id: UUID,
    current_user: CurrentUser,
    invitation_service: InvitationServiceDep,
) -> InvitationResponse:
    invitation = await invitation_service.resend_invitation(
        invitation_id=invitation_id,
        actor_id=current_user.id,
        tenant_id=tenant_id,
    )
    return InvitationResponse.model_validate(invitation).model_copy(
        update={"message": "Invitation re-sent"}
    )


# =============================================================================
# Token endpoints (throttled per client IP)
# =============================================================================


@public_router.get(
    "/preview",
    response_model=InvitationPreviewResponse,
    summary="Preview invitation",
    responses={
        404: {"description": "Unknown token"},
        409: {"description": "Already accepted"},
        410: {"description": "Expired"},
    },
)
@limiter.limit(settings.public_invitation_rate_limit)
async def preview_invitation(
    request: Request,
    invitation_service: InvitationServiceDep,
    token: Annotated[str, Query(min_length=16, max_length=128)],
) -> InvitationPreviewResponse:
    """Public details for the accept page. No authentication required."""
    preview = await invitation_service.get_invitation_preview(token)
    return InvitationPreviewResponse.model_validate(preview)


@public_router.post(
    "/accept",
    response_model=InvitationAcceptResponse,
    summary="Accept invitation",
)
@limiter.limit(settings.public_invitation_rate_limit)
async def accept_invitation(
    request: Request,
    body: InvitationAcceptRequest,
    current_user: CurrentUser,
    invitation_service: InvitationServiceDep,
) -> InvitationAcceptResponse:
    """Join the team as the signed-in user. The account email must match the invitation."""
    membership = await invitation_service.accept_invitation(body.token, current_user.id)
    return InvitationAcceptResponse(
        membership_id=membership.id,
        tenant_id=membership.tenant_id,
        role=membership.role,
        joined_at=membership.joined_at,
    )
