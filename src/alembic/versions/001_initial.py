"""Initial schema: tenants, users, memberships, invitations, audit logs

Revision ID: 001
Revises:
Create Date: 2026-10-16 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("slug", sa.String(length=63), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        schema="public",
    )
    op.create_index("ix_tenants_name", "tenants", ["name"], schema="public")
    op.create_index("ix_tenants_slug", "tenants", ["slug"], unique=True, schema="public")

    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        schema="public",
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True, schema="public")

    op.create_table(
        "memberships",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("invited_by_user_id", sa.Uuid(), nullable=True),
        sa.Column("joined_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["public.tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["public.users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["invited_by_user_id"], ["public.users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "user_id", name="uq_memberships_tenant_user"),
        sa.CheckConstraint(
            "role IN ('owner', 'admin', 'manager', 'staff', 'viewer')",
            name="ck_memberships_role",
        ),
        sa.CheckConstraint(
            "status IN ('active', 'pending', 'removed')",
            name="ck_memberships_status",
        ),
        schema="public",
    )
    op.create_index("ix_memberships_tenant_id", "memberships", ["tenant_id"], schema="public")
    op.create_index("ix_memberships_user_id", "memberships", ["user_id"], schema="public")
    op.create_index(
        "ix_memberships_tenant_status", "memberships", ["tenant_id", "status"], schema="public"
    )
    # One live owner per tenant
    op.create_index(
        "uq_memberships_single_owner",
        "memberships",
        ["tenant_id"],
        unique=True,
        schema="public",
        postgresql_where=sa.text("role = 'owner' AND status <> 'removed'"),
    )

    op.create_table(
        "invitations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("invited_by_user_id", sa.Uuid(), nullable=False),
        sa.Column("token_hash", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("accepted_at", sa.DateTime(), nullable=True),
        sa.Column("accepted_by_user_id", sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["public.tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["invited_by_user_id"], ["public.users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["accepted_by_user_id"], ["public.users.id"], ondelete="SET NULL"
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("role <> 'owner'", name="ck_invitations_role_not_owner"),
        schema="public",
    )
    op.create_index("ix_invitations_tenant_id", "invitations", ["tenant_id"], schema="public")
    op.create_index("ix_invitations_email", "invitations", ["email"], schema="public")
    op.create_index(
        "ix_invitations_invited_by_user_id", "invitations", ["invited_by_user_id"], schema="public"
    )
    op.create_index(
        "ix_invitations_token_hash", "invitations", ["token_hash"], unique=True, schema="public"
    )
    op.create_index(
        "ix_invitations_tenant_created",
        "invitations",
        ["tenant_id", "created_at"],
        schema="public",
    )
    # At most one unaccepted invitation per (tenant, email)
    op.create_index(
        "uq_invitations_unaccepted_pair",
        "invitations",
        ["tenant_id", "email"],
        unique=True,
        schema="public",
        postgresql_where=sa.text("accepted_at IS NULL"),
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tenant_id", sa.Uuid(), nullable=False),
        sa.Column("actor_id", sa.Uuid(), nullable=True),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("resource_type", sa.String(length=50), nullable=False),
        sa.Column("resource_id", sa.Uuid(), nullable=True),
        sa.Column("details", JSONB(), nullable=True),
        sa.Column("ip_address", sa.String(length=45), nullable=True),
        sa.Column("user_agent", sa.String(length=500), nullable=True),
        sa.Column("request_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["public.tenants.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["actor_id"], ["public.users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        schema="public",
    )
    op.create_index("ix_audit_logs_tenant_id", "audit_logs", ["tenant_id"], schema="public")
    op.create_index("ix_audit_logs_actor_id", "audit_logs", ["actor_id"], schema="public")
    op.create_index(
        "ix_audit_logs_tenant_created", "audit_logs", ["tenant_id", "created_at"], schema="public"
    )
    op.create_index(
        "ix_audit_logs_actor_created", "audit_logs", ["actor_id", "created_at"], schema="public"
    )
    op.create_index(
        "ix_audit_logs_action_created", "audit_logs", ["action", "created_at"], schema="public"
    )
    op.create_index(
        "ix_audit_logs_resource", "audit_logs", ["resource_type", "resource_id"], schema="public"
    )


def downgrade() -> None:
    op.drop_table("audit_logs", schema="public")
    op.drop_table("invitations", schema="public")
    op.drop_table("memberships", schema="public")
    op.drop_table("users", schema="public")
    op.drop_table("tenants", schema="public")
