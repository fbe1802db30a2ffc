"""Audit log model - append-only record of security-relevant transitions."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Column, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from src.crewgate.models.base import utc_now


class AuditLog(SQLModel, table=True):
    """Audit record. Never updated or deleted once written."""

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_tenant_created", "tenant_id", "created_at"),
        Index("ix_audit_logs_actor_created", "actor_id", "created_at"),
        Index("ix_audit_logs_action_created", "action", "created_at"),
        Index("ix_audit_logs_resource", "resource_type", "resource_id"),
        {"schema": "public"},
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)

    # Context
    tenant_id: UUID = Field(foreign_key="public.tenants.id", index=True)
    actor_id: UUID | None = Field(default=None, foreign_key="public.users.id", index=True)

    # What happened
    action: str = Field(max_length=50)  # AuditAction value
    resource_type: str = Field(max_length=50)  # "invitation", "membership"
    resource_id: UUID | None = Field(default=None)
    details: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSONB, nullable=True),
    )

    # Request metadata
    ip_address: str | None = Field(default=None, max_length=45)
    user_agent: str | None = Field(default=None, max_length=500)
    request_id: str | None = Field(default=None, max_length=64)

    created_at: datetime = Field(default_factory=utc_now)
