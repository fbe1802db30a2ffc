"""Audit logging service - records security-relevant transitions."""

import contextlib
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.crewgate.core.audit_context import get_audit_context
from src.crewgate.core.logging import get_logger
from src.crewgate.models import AuditAction, AuditLog
from src.crewgate.repositories import AuditLogRepository

logger = get_logger(__name__)


class AuditService:
    """Service for writing and reading audit records.

    Fire-and-forget: a failed write is logged and swallowed. The service owns
    an isolated session, so a business rollback never erases a record and an
    audit failure never touches the business transaction.
    """

    def __init__(self, audit_repo: AuditLogRepository, session: AsyncSession):
        self.audit_repo = audit_repo
        self.session = session

    async def log(
        self,
        action: AuditAction | str,
        tenant_id: UUID,
        actor_id: UUID | None,
        resource_type: str,
        resource_id: UUID | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLog | None:
        """Append an audit record.

        Request metadata (IP, user agent, request id) is taken from the audit
        context when one is set.

        Returns:
            The created AuditLog, or None if the write failed
        """
        action_value = action.value if isinstance(action, AuditAction) else action
        try:
            ctx = get_audit_context()
            audit_log = AuditLog(
                tenant_id=tenant_id,
                actor_id=actor_id,
                action=action_value,
                resource_type=resource_type,
                resource_id=resource_id,
                details=details,
                ip_address=ctx.ip_address if ctx else None,
                user_agent=ctx.user_agent if ctx else None,
                request_id=ctx.request_id if ctx else None,
            )
            self.audit_repo.add(audit_log)
            await self.session.commit()

            logger.debug(
                "Audit record written",
                action=action_value,
                resource_type=resource_type,
                resource_id=str(resource_id) if resource_id else None,
            )
            return audit_log

        except Exception as e:
            logger.warning(
                "Failed to record audit log",
                action=action_value,
                resource_type=resource_type,
                error=str(e),
            )
            # Isolated session: this rollback cannot affect the business transaction
            with contextlib.suppress(Exception):
                await self.session.rollback()
            return None

    async def list_logs(
        self,
        tenant_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
        action: str | None = None,
        actor_id: UUID | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> tuple[list[AuditLog], str | None, bool]:
        return await self.audit_repo.list_by_tenant(
            tenant_id=tenant_id,
            cursor=cursor,
            limit=limit,
            action=action,
            actor_id=actor_id,
            since=since,
            until=until,
        )

    async def list_resource_history(
        self,
        tenant_id: UUID,
        resource_type: str,
        resource_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[AuditLog], str | None, bool]:
        return await self.audit_repo.list_by_resource(
            tenant_id=tenant_id,
            resource_type=resource_type,
            resource_id=resource_id,
            cursor=cursor,
            limit=limit,
        )
