"""Team member API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Response, status

from src.crewgate.api.dependencies import CurrentUser, MembershipServiceDep, UserRepo
from src.crewgate.core.exceptions import NotFoundError
from src.crewgate.schemas import (
    MemberListResponse,
    MemberRead,
    RoleChangeRequest,
    StatusChangeRequest,
)

router = APIRouter(prefix="/tenants/{tenant_id}/members", tags=["members"])


@router.get("", response_model=MemberListResponse, summary="List team members")
async def list_members(
    tenant_id: UUID,
    current_user: CurrentUser,
    membership_service: MembershipServiceDep,
) -> MemberListResponse:
    members = await membership_service.list_members(current_user.id, tenant_id)
    items = [MemberRead.from_models(membership, user) for membership, user in members]
    return MemberListResponse(items=items, total=len(items))


@router.patch(
    "/{member_id}/role",
    response_model=MemberRead,
    summary="Change a member's role",
    description="Admin role required. The owner's role cannot be changed.",
)
async def change_member_role(
    tenant_id: UUID,
    member_id: UUID,
    body: RoleChangeRequest,
    current_user: CurrentUser,
    membership_service: MembershipServiceDep,
    user_repo: UserRepo,
) -> MemberRead:
    membership = await membership_service.change_role(
        actor_id=current_user.id,
        tenant_id=tenant_id,
        member_id=member_id,
        new_role=body.role,
    )
    user = await user_repo.get_by_id(member_id)
    if user is None:
        raise NotFoundError("Member not found")
    return MemberRead.from_models(membership, user)


@router.patch(
    "/{member_id}/status",
    response_model=MemberRead,
    summary="Suspend or reinstate a member",
    description="Admin role required. Suspended members keep their role and lose access.",
)
async def change_member_status(
    tenant_id: UUID,
    member_id: UUID,
    body: StatusChangeRequest,
    current_user: CurrentUser,
    membership_service: MembershipServiceDep,
    user_repo: UserRepo,
) -> MemberRead:
    membership = await membership_service.change_status(
        actor_id=current_user.id,
        tenant_id=tenant_id,
        member_id=member_id,
        new_status=body.status,
    )
    user = await user_repo.get_by_id(member_id)
    if user is None:
        raise NotFoundError("Member not found")
    return MemberRead.from_models(membership, user)


@router.delete(
    "/{member_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a member",
)
async def remove_member(
    tenant_id: UUID,
    member_id: UUID,
    current_user: CurrentUser,
    membership_service: MembershipServiceDep,
) -> Response:
    await membership_service.remove_member(current_user.id, tenant_id, member_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
