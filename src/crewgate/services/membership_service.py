"""Membership management service."""

from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.crewgate.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    RateLimitedError,
)
from src.crewgate.core.logging import get_logger
from src.crewgate.core.rate_limit import ActionKind, FixedWindowRateLimiter
from src.crewgate.core.roles import Role, RoleHierarchy, parse_role
from src.crewgate.models import (
    AuditAction,
    Membership,
    MembershipStatus,
    User,
    parse_member_status,
)
from src.crewgate.repositories import MembershipRepository, UserRepository
from src.crewgate.services.audit_service import AuditService
from src.crewgate.services.authorization_service import (
    AuthorizationGrant,
    AuthorizationService,
    ElevatedSessionGate,
)

logger = get_logger(__name__)


class MembershipService:
    """List members, change roles and status, remove members, provision the owner."""

    def __init__(
        self,
        authorizer: AuthorizationService,
        gate: ElevatedSessionGate,
        membership_repo: MembershipRepository,
        user_repo: UserRepository,
        audit_service: AuditService,
        rate_limiter: FixedWindowRateLimiter,
        session: AsyncSession,
    ):
        self.authorizer = authorizer
        self.gate = gate
        self.membership_repo = membership_repo
        self.user_repo = user_repo
        self.audit_service = audit_service
        self.rate_limiter = rate_limiter
        self.session = session

    @property
    def hierarchy(self) -> RoleHierarchy:
        return self.authorizer.hierarchy

    async def list_members(
        self, actor_id: UUID, tenant_id: UUID
    ) -> list[tuple[Membership, User]]:
        """Active and pending members with their user records, oldest first."""
        await self.authorizer.authorize(actor_id, tenant_id, Role.VIEWER)
        memberships = await self.membership_repo.list_by_tenant(tenant_id)
        users = await self.user_repo.get_many(m.user_id for m in memberships)
        return [(m, users[m.user_id]) for m in memberships if m.user_id in users]

    async def change_role(
        self,
        actor_id: UUID,
        tenant_id: UUID,
        member_id: UUID,
        new_role: Role | str,
    ) -> Membership:
        """Change a member's role.

        Raises:
            ForbiddenError: Actor below admin, or the target outranks the actor.
            RateLimitedError: Actor exhausted the member-change quota.
            NotFoundError: ``member_id`` is not a member of the tenant.
            InvalidInputError: Owner involved, or the actor targets themself.
        """
        grant = await self.authorizer.authorize(actor_id, tenant_id, Role.ADMIN)
        await self._enforce_quota(actor_id)
        role = parse_role(new_role)
        if role is Role.OWNER:
            raise InvalidInputError("Ownership cannot be granted by a role change", field="role")

        target = await self._get_member(member_id, tenant_id)
        self._check_target(grant, target)
        if self.hierarchy.outranks(role, grant.role):
            raise ForbiddenError("You cannot grant a role above your own")

        old_role = target.role
        if old_role == role.value:
            return target

        async with self.gate.open(grant, tenant_id) as uow:
            membership = await uow.memberships.get_membership(member_id, tenant_id)
            if membership is None or membership.status == MembershipStatus.REMOVED.value:
                raise NotFoundError("Member not found")
            uow.memberships.set_role(membership, role)
            await uow.commit()

        logger.info(
            "Member role changed",
            tenant_id=str(tenant_id),
            member_id=str(member_id),
            old_role=old_role,
            new_role=role.value,
        )

        await self.audit_service.log(
            action=AuditAction.MEMBER_ROLE_CHANGED,
            tenant_id=tenant_id,
            actor_id=actor_id,
            resource_type="membership",
            resource_id=membership.id,
            details={
                "user_id": str(member_id),
                "old_role": old_role,
                "new_role": role.value,
            },
        )
        return membership

    async def remove_member(self, actor_id: UUID, tenant_id: UUID, member_id: UUID) -> None:
        """Mark a member as removed. Removing a removed member does nothing."""
        grant = await self.authorizer.authorize(actor_id, tenant_id, Role.ADMIN)
        await self._enforce_quota(actor_id)

        target = await self.membership_repo.get_membership(member_id, tenant_id)
        if target is None:
            raise NotFoundError("Member not found")
        if target.status == MembershipStatus.REMOVED.value:
            return
        self._check_target(grant, target)

        async with self.gate.open(grant, tenant_id) as uow:
            membership = await uow.memberships.get_membership(member_id, tenant_id)
            if membership is None:
                raise NotFoundError("Member not found")
            uow.memberships.mark_removed(membership)
            await uow.commit()

        logger.info("Member removed", tenant_id=str(tenant_id), member_id=str(member_id))

        await self.audit_service.log(
            action=AuditAction.MEMBER_REMOVED,
            tenant_id=tenant_id,
            actor_id=actor_id,
            resource_type="membership",
            resource_id=membership.id,
            details={"user_id": str(member_id), "role": membership.role},
        )

    async def change_status(
        self,
        actor_id: UUID,
        tenant_id: UUID,
        member_id: UUID,
        new_status: MembershipStatus | str,
    ) -> Membership:
        """Suspend (``removed``) or reinstate (``active``) a member.

        Role and join date survive a suspension, so reinstating restores the
        member as they were. Setting the current status again does nothing.

        Raises:
            ForbiddenError: Actor below admin, or the target outranks the actor.
            RateLimitedError: Actor exhausted the member-change quota.
            NotFoundError: ``member_id`` has no membership in the tenant.
            InvalidInputError: Unknown status, owner or self targeted, or a
                pending member reinstated before accepting their invitation.
        """
        grant = await self.authorizer.authorize(actor_id, tenant_id, Role.ADMIN)
        await self._enforce_quota(actor_id)
        status = parse_member_status(new_status)

        target = await self.membership_repo.get_membership(member_id, tenant_id)
        if target is None:
            raise NotFoundError("Member not found")
        self._check_target(grant, target)

        old_status = target.status
        if old_status == status.value:
            return target
        if old_status == MembershipStatus.PENDING.value and status is MembershipStatus.ACTIVE:
            raise InvalidInputError(
                "A pending member joins by accepting their invitation", field="status"
            )

        async with self.gate.open(grant, tenant_id) as uow:
            membership = await uow.memberships.get_membership(member_id, tenant_id)
            if membership is None:
                raise NotFoundError("Member not found")
            uow.memberships.set_status(membership, status)
            await uow.commit()

        logger.info(
            "Member status changed",
            tenant_id=str(tenant_id),
            member_id=str(member_id),
            old_status=old_status,
            new_status=status.value,
        )

        await self.audit_service.log(
            action=AuditAction.MEMBER_STATUS_CHANGED,
            tenant_id=tenant_id,
            actor_id=actor_id,
            resource_type="membership",
            resource_id=membership.id,
            details={
                "user_id": str(member_id),
                "old_status": old_status,
                "new_status": status.value,
            },
        )
        return membership

    async def provision_owner(self, tenant_id: UUID, user_id: UUID) -> Membership:
        """Create the tenant's single owner membership.

        Runs during tenant setup, before any member exists to authorize it.

        Raises:
            ConflictError: The tenant already has an owner.
            NotFoundError: The user does not exist.
        """
        if await self.membership_repo.get_owner(tenant_id) is not None:
            raise ConflictError("This team already has an owner")
        if await self.user_repo.get_by_id(user_id) is None:
            raise NotFoundError("User not found")

        try:
            existing = await self.membership_repo.get_membership(user_id, tenant_id)
            if existing is None:
                membership = self.membership_repo.create_membership(
                    user_id=user_id, tenant_id=tenant_id, role=Role.OWNER
                )
            else:
                membership = self.membership_repo.activate(existing, role=Role.OWNER)
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError("This team already has an owner") from e
        except Exception:
            await self.session.rollback()
            raise

        logger.info("Owner provisioned", tenant_id=str(tenant_id), user_id=str(user_id))

        await self.audit_service.log(
            action=AuditAction.OWNER_PROVISIONED,
            tenant_id=tenant_id,
            actor_id=user_id,
            resource_type="membership",
            resource_id=membership.id,
            details={"user_id": str(user_id)},
        )
        return membership

    async def _get_member(self, member_id: UUID, tenant_id: UUID) -> Membership:
        membership = await self.membership_repo.get_membership(member_id, tenant_id)
        if membership is None or membership.status == MembershipStatus.REMOVED.value:
            raise NotFoundError("Member not found")
        return membership

    def _check_target(self, grant: AuthorizationGrant, target: Membership) -> None:
        if target.role == Role.OWNER.value:
            raise InvalidInputError("The team owner cannot be changed or removed")
        if target.user_id == grant.actor_id:
            raise InvalidInputError("You cannot change your own membership")
        if self.hierarchy.outranks(target.role, grant.role):
            raise ForbiddenError("You cannot manage a member ranked above you")

    async def _enforce_quota(self, actor_id: UUID) -> None:
        result = await self.rate_limiter.check(actor_id, ActionKind.MEMBER_CHANGE)
        if not result.allowed:
            raise RateLimitedError(
                retry_after=result.retry_after_seconds,
                reset_at=result.reset_at,
                limit=result.limit,
                remaining=result.remaining,
                action=ActionKind.MEMBER_CHANGE.value,
            )
