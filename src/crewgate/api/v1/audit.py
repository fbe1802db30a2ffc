"""Audit log endpoints - admin only."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query

from src.crewgate.api.dependencies import AuditServiceDep, AuthorizationServiceDep, CurrentUser
from src.crewgate.core.roles import Role
from src.crewgate.schemas import AuditLogListResponse, AuditLogRead

router = APIRouter(prefix="/tenants/{tenant_id}/audit", tags=["audit"])

CursorQuery = Annotated[str | None, Query(description="Pagination cursor")]
LimitQuery = Annotated[int, Query(ge=1, le=100, description="Items per page")]
ActionQuery = Annotated[str | None, Query(description="Filter by action")]
ActorQuery = Annotated[UUID | None, Query(description="Filter by acting user")]
SinceQuery = Annotated[datetime | None, Query(description="Created at or after (UTC)")]
UntilQuery = Annotated[datetime | None, Query(description="Created before (UTC)")]


@router.get(
    "/logs",
    response_model=AuditLogListResponse,
    responses={403: {"description": "Admin role required"}},
)
async def list_audit_logs(
    tenant_id: UUID,
    current_user: CurrentUser,
    authorizer: AuthorizationServiceDep,
    audit_service: AuditServiceDep,
    cursor: CursorQuery = None,
    limit: LimitQuery = 50,
    action: ActionQuery = None,
    actor_id: ActorQuery = None,
    since: SinceQuery = None,
    until: UntilQuery = None,
) -> AuditLogListResponse:
    """List the team's audit records, newest first."""
    await authorizer.authorize(current_user.id, tenant_id, Role.ADMIN)

    logs, next_cursor, has_more = await audit_service.list_logs(
        tenant_id=tenant_id,
        cursor=cursor,
        limit=limit,
        action=action,
        actor_id=actor_id,
        since=since,
        until=until,
    )
    return AuditLogListResponse(
        items=[AuditLogRead.model_validate(log) for log in logs],
        next_cursor=next_cursor,
        has_more=has_more,
    )


@router.get(
    "/logs/resource/{resource_type}/{resource_id}",
    response_model=AuditLogListResponse,
    responses={403: {"description": "Admin role required"}},
)
async def get_resource_history(
    tenant_id: UUID,
    resource_type: str,
    resource_id: UUID,
    current_user: CurrentUser,
    authorizer: AuthorizationServiceDep,
    audit_service: AuditServiceDep,
    cursor: CursorQuery = None,
    limit: LimitQuery = 50,
) -> AuditLogListResponse:
    """History of one invitation or membership, newest first."""
    await authorizer.authorize(current_user.id, tenant_id, Role.ADMIN)

    logs, next_cursor, has_more = await audit_service.list_resource_history(
        tenant_id=tenant_id,
        resource_type=resource_type,
        resource_id=resource_id,
        cursor=cursor,
        limit=limit,
    )
    return AuditLogListResponse(
        items=[AuditLogRead.model_validate(log) for log in logs],
        next_cursor=next_cursor,
        has_more=has_more,
    )
