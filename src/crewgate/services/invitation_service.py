"""Invitation lifecycle service.

Issuing runs its checks in a fixed order and stops at the first failure:
membership, role floor, quota, offered role, self-invite, existing member,
then the per-pair critical section in the elevated session. Persistence and
the notification are required for success; the audit write is not.
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.crewgate.core.config import get_settings
from src.crewgate.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    RateLimitedError,
)
from src.crewgate.core.logging import get_logger
from src.crewgate.core.notifications import send_invitation_email
from src.crewgate.core.rate_limit import ActionKind, FixedWindowRateLimiter
from src.crewgate.core.roles import Role, invitable_roles, parse_role
from src.crewgate.core.validators import canonical_email, normalize_email
from src.crewgate.models import AuditAction, Invitation, Membership, utc_now
from src.crewgate.repositories import (
    InvitationRepository,
    MembershipRepository,
    TenantRepository,
    UserRepository,
    ensure_acceptable,
)
from src.crewgate.services.audit_service import AuditService
from src.crewgate.services.authorization_service import (
    AuthorizationGrant,
    AuthorizationService,
    ElevatedSessionGate,
)

logger = get_logger(__name__)

InvitationNotifier = Callable[..., bool]


@dataclass(frozen=True)
class InvitationPreview:
    """What an invitee may see before accepting."""

    invitation_id: UUID
    tenant_id: UUID
    tenant_name: str
    email: str
    role: Role
    inviter_name: str
    expires_at: datetime


class InvitationService:
    """Issue, accept, revoke and re-send team invitations."""

    def __init__(
        self,
        authorizer: AuthorizationService,
        gate: ElevatedSessionGate,
        invitation_repo: InvitationRepository,
        membership_repo: MembershipRepository,
        user_repo: UserRepository,
        tenant_repo: TenantRepository,
        audit_service: AuditService,
        rate_limiter: FixedWindowRateLimiter,
        session: AsyncSession,
        notifier: InvitationNotifier = send_invitation_email,
    ):
        self.authorizer = authorizer
        self.gate = gate
        self.invitation_repo = invitation_repo
        self.membership_repo = membership_repo
        self.user_repo = user_repo
        self.tenant_repo = tenant_repo
        self.audit_service = audit_service
        self.rate_limiter = rate_limiter
        self.session = session
        self.notifier = notifier

        settings = get_settings()
        self.invitation_ttl = timedelta(hours=settings.invitation_expire_hours)
        self.retry_attempts = settings.persistence_retry_attempts
        self.retry_backoff = settings.persistence_retry_backoff_seconds

    async def issue_invitation(
        self,
        actor_id: UUID,
        tenant_id: UUID,
        email: str,
        role: Role | str,
    ) -> Invitation:
        """Invite ``email`` to the tenant with ``role``.

        Raises:
            ForbiddenError: Actor is not an active member of at least manager rank.
            RateLimitedError: Actor exhausted the invite quota.
            InvalidInputError: Owner role offered, malformed input, or self-invite.
            ConflictError: Invitee already a member, or a live invitation exists.
            InternalError: Persistence kept failing, or the notification failed.
        """
        grant = await self.authorizer.authorize(actor_id, tenant_id, Role.MANAGER)
        await self._enforce_quota(actor_id, ActionKind.INVITE)

        offered_role = parse_role(role)
        offerable = invitable_roles(self.authorizer.hierarchy)
        if offered_role not in offerable:
            raise InvalidInputError(
                "Ownership cannot be granted by invitation",
                field="role",
                allowed=[r.value for r in offerable],
            )

        invitee_email = normalize_email(email)
        if invitee_email == canonical_email(grant.actor_email):
            raise InvalidInputError("You cannot invite yourself", field="email")

        await self._ensure_not_member(tenant_id, invitee_email)

        invitation, token = await self._persist_invitation(grant, invitee_email, offered_role)

        logger.info(
            "Invitation created",
            invitation_id=str(invitation.id),
            tenant_id=str(tenant_id),
            role=offered_role.value,
        )

        await self._notify(invitation, token, grant)

        await self.audit_service.log(
            action=AuditAction.INVITATION_SENT,
            tenant_id=tenant_id,
            actor_id=actor_id,
            resource_type="invitation",
            resource_id=invitation.id,
            details={
                "email": invitation.email,
                "role": invitation.role,
                "expires_at": invitation.expires_at.isoformat(),
            },
        )
        return invitation

    async def accept_invitation(self, token: str, user_id: UUID) -> Membership:
        """Redeem an invitation for the authenticated user.

        Raises:
            NotFoundError, ExpiredError, AlreadyAcceptedError: Token not redeemable.
            ForbiddenError: The invitation was sent to another address.
            ConflictError: The user is already an active member.
        """
        user = await self.user_repo.get_by_id(user_id)
        if user is None or not user.is_active:
            raise ForbiddenError("Your account is not active")

        try:
            invitation, membership = await self.invitation_repo.accept(token, user)
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError("You are already a member of this team") from e
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Invitation accepted",
            invitation_id=str(invitation.id),
            tenant_id=str(invitation.tenant_id),
            membership_id=str(membership.id),
        )

        await self.audit_service.log(
            action=AuditAction.INVITATION_ACCEPTED,
            tenant_id=invitation.tenant_id,
            actor_id=user.id,
            resource_type="invitation",
            resource_id=invitation.id,
            details={
                "membership_id": str(membership.id),
                "role": membership.role,
            },
        )
        return membership

    async def revoke_invitation(
        self,
        invitation_id: UUID,
        actor_id: UUID,
        tenant_id: UUID | None = None,
    ) -> None:
        """Withdraw a pending invitation; its token stops working.

        Raises:
            NotFoundError: Unknown invitation, or one from another tenant.
            ForbiddenError: Actor below manager rank in the invitation's tenant.
            ConflictError: The invitation was already accepted.
        """
        invitation = await self._get_invitation(invitation_id, tenant_id)
        grant = await self.authorizer.authorize(actor_id, invitation.tenant_id, Role.MANAGER)
        if invitation.is_accepted:
            raise ConflictError("This invitation has already been accepted")

        async with self.gate.open(grant, invitation.tenant_id) as uow:
            target = await uow.invitations.get_by_id(invitation_id)
            if target is None:
                raise NotFoundError("Invitation not found")
            if target.is_accepted:
                raise ConflictError("This invitation has already been accepted")
            await uow.invitations.delete(target)
            await uow.commit()

        logger.info(
            "Invitation revoked",
            invitation_id=str(invitation_id),
            tenant_id=str(invitation.tenant_id),
        )

        await self.audit_service.log(
            action=AuditAction.INVITATION_REVOKED,
            tenant_id=invitation.tenant_id,
            actor_id=actor_id,
            resource_type="invitation",
            resource_id=invitation_id,
            details={"email": invitation.email, "role": invitation.role},
        )

    async def resend_invitation(
        self,
        invitation_id: UUID,
        actor_id: UUID,
        tenant_id: UUID | None = None,
    ) -> Invitation:
        """Rotate the token, extend the expiry and notify the invitee again.

        The previous link stops working.

        Raises:
            NotFoundError: Unknown invitation, or one from another tenant.
            ForbiddenError: Actor below manager rank.
            RateLimitedError: The invitation was re-sent too often.
            ConflictError: The invitation was already accepted.
            InternalError: The notification failed.
        """
        invitation = await self._get_invitation(invitation_id, tenant_id)
        grant = await self.authorizer.authorize(actor_id, invitation.tenant_id, Role.MANAGER)
        await self._enforce_quota(invitation_id, ActionKind.RESEND)
        if invitation.is_accepted:
            raise ConflictError("This invitation has already been accepted")

        previous_expires_at = invitation.expires_at
        async with self.gate.open(grant, invitation.tenant_id) as uow:
            target = await uow.invitations.get_by_id(invitation_id)
            if target is None:
                raise NotFoundError("Invitation not found")
            token = await uow.invitations.rotate_token(target, self.invitation_ttl)
            await uow.commit()

        await self._notify(target, token, grant)

        await self.audit_service.log(
            action=AuditAction.INVITATION_RESENT,
            tenant_id=target.tenant_id,
            actor_id=actor_id,
            resource_type="invitation",
            resource_id=target.id,
            details={
                "email": target.email,
                "previous_expires_at": previous_expires_at.isoformat(),
                "new_expires_at": target.expires_at.isoformat(),
            },
        )
        return target

    async def list_pending_invitations(
        self,
        actor_id: UUID,
        tenant_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[Invitation], str | None, bool]:
        """Unaccepted invitations for the tenant, newest first.

        Expired rows are included so they can be re-sent.
        """
        await self.authorizer.authorize(actor_id, tenant_id, Role.MANAGER)
        return await self.invitation_repo.list_pending(tenant_id, cursor=cursor, limit=limit)

    async def get_invitation_preview(self, token: str) -> InvitationPreview:
        """Describe a redeemable invitation to the holder of its token."""
        invitation = ensure_acceptable(
            await self.invitation_repo.get_by_token(token), utc_now()
        )
        tenant = await self.tenant_repo.get_by_id(invitation.tenant_id)
        inviter = await self.user_repo.get_by_id(invitation.invited_by_user_id)
        return InvitationPreview(
            invitation_id=invitation.id,
            tenant_id=invitation.tenant_id,
            tenant_name=tenant.name if tenant else "Unknown team",
            email=invitation.email,
            role=Role(invitation.role),
            inviter_name=inviter.display_name if inviter else "A team member",
            expires_at=invitation.expires_at,
        )

    async def _get_invitation(self, invitation_id: UUID, tenant_id: UUID | None) -> Invitation:
        invitation = await self.invitation_repo.get_by_id(invitation_id)
        # An id from another tenant is reported exactly like an unknown one
        if invitation is None or (tenant_id is not None and invitation.tenant_id != tenant_id):
            raise NotFoundError("Invitation not found")
        return invitation

    async def _enforce_quota(self, subject: UUID, action_kind: ActionKind) -> None:
        result = await self.rate_limiter.check(subject, action_kind)
        if not result.allowed:
            raise RateLimitedError(
                retry_after=result.retry_after_seconds,
                reset_at=result.reset_at,
                limit=result.limit,
                remaining=result.remaining,
                action=action_kind.value,
            )

    async def _ensure_not_member(self, tenant_id: UUID, email: str) -> None:
        invitee = await self.user_repo.get_by_email(email)
        if invitee is None:
            return
        if await self.membership_repo.get_active_membership(invitee.id, tenant_id) is not None:
            raise ConflictError("This person is already a member of the team")

    async def _persist_invitation(
        self, grant: AuthorizationGrant, email: str, role: Role
    ) -> tuple[Invitation, str]:
        """Create the invitation inside the per-pair critical section.

        Transient database errors retry the whole attempt with backoff.
        """
        tenant_id = grant.tenant_id
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.retry_attempts),
                wait=wait_exponential(multiplier=self.retry_backoff, max=1),
                retry=retry_if_exception_type(OperationalError),
                reraise=True,
            ):
                with attempt:
                    async with self.gate.open(grant, tenant_id) as uow:
                        await uow.invitations.lock_pair(tenant_id, email)
                        existing = await uow.invitations.find_unaccepted(tenant_id, email)
                        if existing is not None:
                            await uow.invitations.supersede(existing)
                        invitation, token = await uow.invitations.create(
                            tenant_id=tenant_id,
                            email=email,
                            role=role,
                            invited_by_user_id=grant.actor_id,
                            ttl=self.invitation_ttl,
                        )
                        try:
                            await uow.commit()
                        except IntegrityError as e:
                            raise ConflictError(
                                "An active invitation already exists for this email",
                                email=email,
                            ) from e
        except OperationalError as e:
            logger.error(
                "Failed to persist invitation",
                tenant_id=str(tenant_id),
                attempts=self.retry_attempts,
                error=str(e),
            )
            raise InternalError("Could not save the invitation, please retry") from e
        return invitation, token

    async def _notify(
        self, invitation: Invitation, token: str, grant: AuthorizationGrant
    ) -> None:
        tenant = await self.tenant_repo.get_by_id(invitation.tenant_id)
        tenant_name = tenant.name if tenant else "Unknown team"
        try:
            sent = await asyncio.to_thread(
                self.notifier,
                to=invitation.email,
                token=token,
                tenant_name=tenant_name,
                role=invitation.role,
                inviter_name=grant.actor_name,
            )
        except Exception as e:
            logger.error(
                "Invitation notification raised",
                invitation_id=str(invitation.id),
                error=str(e),
            )
            raise InternalError("The invitation email could not be sent") from e
        if not sent:
            logger.error("Invitation notification failed", invitation_id=str(invitation.id))
            raise InternalError(
                "The invitation email could not be sent", invitation_id=str(invitation.id)
            )
