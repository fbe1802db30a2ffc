"""Invitation store.

Owns the lifecycle of invitation rows: find, create, supersede an expired
row, accept (together with the membership upsert), rotate the token for a
resend, and delete on revoke. Nothing here commits; the caller's transaction
makes accept and its membership change land together.
"""

from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col, select

from src.crewgate.core.exceptions import (
    AlreadyAcceptedError,
    ConflictError,
    ExpiredError,
    ForbiddenError,
    NotFoundError,
)
from src.crewgate.core.logging import get_logger
from src.crewgate.core.security import generate_invitation_token, hash_token
from src.crewgate.core.validators import canonical_email
from src.crewgate.models import Invitation, Membership, Role, User, utc_now
from src.crewgate.repositories.base import BaseRepository
from src.crewgate.repositories.membership import MembershipRepository

logger = get_logger(__name__)


def ensure_acceptable(invitation: Invitation | None, now: datetime) -> Invitation:
    """Check that an invitation can still be accepted.

    Raises:
        NotFoundError: No invitation matches the token.
        AlreadyAcceptedError: The invitation was already consumed.
        ExpiredError: The invitation is past its expiry.
    """
    if invitation is None:
        raise NotFoundError("Invitation not found")
    if invitation.is_accepted:
        raise AlreadyAcceptedError()
    if invitation.is_expired(now):
        raise ExpiredError(expired_at=invitation.expires_at)
    return invitation


def ensure_supersedable(invitation: Invitation, now: datetime) -> None:
    """Only expired, unaccepted rows may be replaced by a new invitation.

    Raises:
        ConflictError: The invitation is accepted or still live.
    """
    if invitation.is_accepted:
        raise ConflictError("An accepted invitation cannot be superseded")
    if not invitation.is_expired(now):
        raise ConflictError(
            "An active invitation already exists for this email",
            email=invitation.email,
            expires_at=invitation.expires_at,
        )


class InvitationRepository(BaseRepository[Invitation]):
    """Repository for invitations."""

    model = Invitation

    def __init__(self, session: AsyncSession):
        super().__init__(session)
        self.memberships = MembershipRepository(session)

    async def lock_pair(self, tenant_id: UUID, email: str) -> None:
        """Serialize issuance for one (tenant, email) until the transaction ends.

        Uses a transaction-scoped PostgreSQL advisory lock; a no-op on other
        dialects, where the partial unique index still rejects duplicates.
        """
        if self.session.get_bind().dialect.name != "postgresql":
            return
        await self.session.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
            {"key": f"invite:{tenant_id}:{canonical_email(email)}"},
        )

    async def find_unaccepted(self, tenant_id: UUID, email: str) -> Invitation | None:
        """The single unaccepted row for the pair, expired or not."""
        result = await self.session.execute(
            select(Invitation).where(
                Invitation.tenant_id == tenant_id,
                Invitation.email == canonical_email(email),
                col(Invitation.accepted_at).is_(None),
            )
        )
        return result.scalar_one_or_none()

    async def find_active(self, tenant_id: UUID, email: str) -> Invitation | None:
        """The pending, unexpired invitation for the pair, if any."""
        result = await self.session.execute(
            select(Invitation).where(
                Invitation.tenant_id == tenant_id,
                Invitation.email == canonical_email(email),
                col(Invitation.accepted_at).is_(None),
                Invitation.expires_at > utc_now(),
            )
        )
        return result.scalar_one_or_none()

    async def get_by_token_hash(
        self, token_hash: str, for_update: bool = False
    ) -> Invitation | None:
        query = select(Invitation).where(Invitation.token_hash == token_hash)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_token(self, token: str, for_update: bool = False) -> Invitation | None:
        return await self.get_by_token_hash(hash_token(token), for_update=for_update)

    async def list_pending(
        self, tenant_id: UUID, cursor: str | None = None, limit: int = 50
    ) -> tuple[list[Invitation], str | None, bool]:
        """Unaccepted invitations for a tenant, newest first (expired included)."""
        query = select(Invitation).where(
            Invitation.tenant_id == tenant_id,
            col(Invitation.accepted_at).is_(None),
        )
        return await self.paginate(query, cursor, limit, Invitation.created_at)

    async def create(
        self,
        tenant_id: UUID,
        email: str,
        role: Role,
        invited_by_user_id: UUID,
        ttl: timedelta,
    ) -> tuple[Invitation, str]:
        """Insert a new invitation.

        Returns:
            Tuple of (invitation, raw_token). Only the token's hash is stored.

        Raises:
            ConflictError: An active invitation already exists for the pair,
                or a concurrent insert won the unique index.
        """
        email = canonical_email(email)
        if await self.find_active(tenant_id, email) is not None:
            raise ConflictError("An active invitation already exists for this email", email=email)

        token = generate_invitation_token()
        now = utc_now()
        invitation = Invitation(
            tenant_id=tenant_id,
            email=email,
            role=role.value,
            invited_by_user_id=invited_by_user_id,
            token_hash=hash_token(token),
            created_at=now,
            updated_at=now,
            expires_at=now + ttl,
        )
        self.add(invitation)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConflictError(
                "An active invitation already exists for this email", email=email
            ) from e
        return invitation, token

    async def supersede(self, invitation: Invitation) -> None:
        """Delete an expired, unaccepted invitation so the pair can be re-invited."""
        ensure_supersedable(invitation, utc_now())
        await self.session.delete(invitation)
        await self.session.flush()
        logger.info(
            "Expired invitation superseded",
            invitation_id=str(invitation.id),
            tenant_id=str(invitation.tenant_id),
        )

    async def accept(self, token: str, user: User) -> tuple[Invitation, Membership]:
        """Consume an invitation and create or re-activate the membership.

        Both changes are staged in the caller's transaction.

        Raises:
            NotFoundError, AlreadyAcceptedError, ExpiredError: See ``ensure_acceptable``.
            ForbiddenError: The accepting user's email differs from the invitee's.
            ConflictError: The user is already an active member of the tenant.
        """
        now = utc_now()
        invitation = ensure_acceptable(await self.get_by_token(token, for_update=True), now)

        if canonical_email(user.email) != invitation.email:
            raise ForbiddenError("This invitation was sent to a different email address")

        existing = await self.memberships.get_membership(user.id, invitation.tenant_id)
        if existing is not None and existing.is_active:
            raise ConflictError("You are already a member of this team")

        if existing is None:
            membership = self.memberships.create_membership(
                user_id=user.id,
                tenant_id=invitation.tenant_id,
                role=invitation.role,
                invited_by_user_id=invitation.invited_by_user_id,
            )
        else:
            membership = self.memberships.activate(
                existing,
                role=invitation.role,
                invited_by_user_id=invitation.invited_by_user_id,
            )

        invitation.accepted_at = now
        invitation.accepted_by_user_id = user.id
        invitation.updated_at = now
        self.session.add(invitation)
        await self.session.flush()
        return invitation, membership

    async def rotate_token(self, invitation: Invitation, ttl: timedelta) -> str:
        """Issue a fresh token and expiry for an unaccepted invitation.

        The previous token stops working immediately.
        """
        if invitation.is_accepted:
            raise ConflictError("This invitation has already been accepted")
        token = generate_invitation_token()
        now = utc_now()
        invitation.token_hash = hash_token(token)
        invitation.expires_at = now + ttl
        invitation.updated_at = now
        self.session.add(invitation)
        await self.session.flush()
        return token

    async def delete(self, invitation: Invitation) -> None:
        await self.session.delete(invitation)
        await self.session.flush()
