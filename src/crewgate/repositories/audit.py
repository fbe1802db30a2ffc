"""Repository for AuditLog entity.

Append-only: no update or delete is exposed.
"""

from datetime import datetime
from uuid import UUID

from sqlmodel import select

from src.crewgate.models import AuditLog
from src.crewgate.repositories.base import BaseRepository


class AuditLogRepository(BaseRepository[AuditLog]):
    """Repository for audit records."""

    model = AuditLog

    async def list_by_tenant(
        self,
        tenant_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
        action: str | None = None,
        actor_id: UUID | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> tuple[list[AuditLog], str | None, bool]:
        """List a tenant's audit records, newest first.

        Args:
            tenant_id: Tenant to filter by
            cursor: Pagination cursor
            limit: Maximum items to return
            action: Optional action filter
            actor_id: Optional actor filter
            since: Only records created at or after this time
            until: Only records created before this time

        Returns:
            Tuple of (logs, next_cursor, has_more)
        """
        query = select(AuditLog).where(AuditLog.tenant_id == tenant_id)
        if action:
            query = query.where(AuditLog.action == action)
        if actor_id:
            query = query.where(AuditLog.actor_id == actor_id)
        if since:
            query = query.where(AuditLog.created_at >= since)
        if until:
            query = query.where(AuditLog.created_at < until)
        return await self.paginate(query, cursor, limit, AuditLog.created_at)

    async def list_by_resource(
        self,
        tenant_id: UUID,
        resource_type: str,
        resource_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[AuditLog], str | None, bool]:
        """History of a single invitation or membership."""
        query = select(AuditLog).where(
            AuditLog.tenant_id == tenant_id,
            AuditLog.resource_type == resource_type,
            AuditLog.resource_id == resource_id,
        )
        return await self.paginate(query, cursor, limit, AuditLog.created_at)
