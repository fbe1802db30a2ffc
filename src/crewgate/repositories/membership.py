"""Repository for Membership entity."""

from uuid import UUID

from sqlmodel import col, select

from src.crewgate.models import Membership, MembershipStatus, Role, utc_now
from src.crewgate.repositories.base import BaseRepository


class MembershipRepository(BaseRepository[Membership]):
    """Repository for tenant memberships."""

    model = Membership

    async def get_membership(self, user_id: UUID, tenant_id: UUID) -> Membership | None:
        """Get the membership row for a user in a tenant, whatever its status."""
        result = await self.session.execute(
            select(Membership).where(
                Membership.user_id == user_id,
                Membership.tenant_id == tenant_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_active_membership(self, user_id: UUID, tenant_id: UUID) -> Membership | None:
        result = await self.session.execute(
            select(Membership).where(
                Membership.user_id == user_id,
                Membership.tenant_id == tenant_id,
                Membership.status == MembershipStatus.ACTIVE.value,
            )
        )
        return result.scalar_one_or_none()

    async def get_owner(self, tenant_id: UUID) -> Membership | None:
        """Get the tenant's current (non-removed) owner membership."""
        result = await self.session.execute(
            select(Membership).where(
                Membership.tenant_id == tenant_id,
                Membership.role == Role.OWNER.value,
                Membership.status != MembershipStatus.REMOVED.value,
            )
        )
        return result.scalar_one_or_none()

    async def list_by_tenant(
        self, tenant_id: UUID, include_removed: bool = False
    ) -> list[Membership]:
        query = select(Membership).where(Membership.tenant_id == tenant_id)
        if not include_removed:
            query = query.where(Membership.status != MembershipStatus.REMOVED.value)
        result = await self.session.execute(query.order_by(col(Membership.created_at)))
        return list(result.scalars().all())

    def create_membership(
        self,
        user_id: UUID,
        tenant_id: UUID,
        role: Role | str,
        invited_by_user_id: UUID | None = None,
    ) -> Membership:
        """Create an active membership (add to session, no commit)."""
        now = utc_now()
        membership = Membership(
            user_id=user_id,
            tenant_id=tenant_id,
            role=Role(role).value,
            status=MembershipStatus.ACTIVE.value,
            invited_by_user_id=invited_by_user_id,
            joined_at=now,
            created_at=now,
            updated_at=now,
        )
        self.session.add(membership)
        return membership

    def activate(
        self,
        membership: Membership,
        role: Role | str,
        invited_by_user_id: UUID | None = None,
    ) -> Membership:
        """Re-activate a pending or removed membership with a new role."""
        now = utc_now()
        membership.role = Role(role).value
        membership.status = MembershipStatus.ACTIVE.value
        membership.invited_by_user_id = invited_by_user_id
        membership.joined_at = now
        membership.updated_at = now
        self.session.add(membership)
        return membership

    def set_role(self, membership: Membership, role: Role | str) -> Membership:
        membership.role = Role(role).value
        membership.updated_at = utc_now()
        self.session.add(membership)
        return membership

    def mark_removed(self, membership: Membership) -> Membership:
        return self.set_status(membership, MembershipStatus.REMOVED)

    def set_status(self, membership: Membership, status: MembershipStatus) -> Membership:
        """Suspend or reinstate, keeping role and join date."""
        membership.status = status.value
        membership.updated_at = utc_now()
        self.session.add(membership)
        return membership
