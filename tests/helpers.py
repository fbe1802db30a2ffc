"""In-memory stand-ins for the repositories, used by service unit tests.

The fakes mirror the repository method signatures and reuse the store's
acceptance and supersede rules, so services run unmodified against them.
Writes land immediately; ``commit`` only counts calls.
"""

import asyncio
from collections.abc import AsyncGenerator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import timedelta
from unittest.mock import AsyncMock
from uuid import UUID

from src.crewgate.core.exceptions import ConflictError, ForbiddenError
from src.crewgate.core.rate_limit import (
    ActionKind,
    FixedWindowRateLimiter,
    RateLimitPolicy,
)
from src.crewgate.core.roles import Role
from src.crewgate.core.security import generate_invitation_token, hash_token
from src.crewgate.core.validators import canonical_email
from src.crewgate.models import (
    AuditLog,
    Invitation,
    Membership,
    MembershipStatus,
    Tenant,
    User,
    utc_now,
)
from src.crewgate.repositories import ensure_acceptable, ensure_supersedable
from src.crewgate.services import (
    AuditService,
    AuthorizationService,
    ElevatedSessionGate,
    InvitationService,
    MembershipService,
)
from tests.factories import MembershipFactory, TenantFactory, UserFactory


@dataclass
class FakeDB:
    tenants: dict[UUID, Tenant] = field(default_factory=dict)
    users: dict[UUID, User] = field(default_factory=dict)
    memberships: dict[UUID, Membership] = field(default_factory=dict)
    invitations: dict[UUID, Invitation] = field(default_factory=dict)
    audit_logs: list[AuditLog] = field(default_factory=list)


class FakeClock:
    """Controllable epoch-seconds clock for the rate limiter."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSession:
    """Counts commits and rollbacks; can be told to fail the next commits."""

    def __init__(self):
        self.commits = 0
        self.rollbacks = 0
        self.commit_errors: list[Exception] = []

    async def commit(self) -> None:
        if self.commit_errors:
            raise self.commit_errors.pop(0)
        self.commits += 1

    async def rollback(self) -> None:
        self.rollbacks += 1


class FakeTenantRepo:
    def __init__(self, db: FakeDB):
        self.db = db

    async def get_by_id(self, id: UUID) -> Tenant | None:
        return self.db.tenants.get(id)


class FakeUserRepo:
    def __init__(self, db: FakeDB):
        self.db = db

    async def get_by_id(self, id: UUID) -> User | None:
        return self.db.users.get(id)

    async def get_by_email(self, email: str) -> User | None:
        wanted = canonical_email(email)
        return next((u for u in self.db.users.values() if u.email == wanted), None)

    async def get_many(self, ids: Iterable[UUID]) -> dict[UUID, User]:
        return {i: self.db.users[i] for i in set(ids) if i in self.db.users}


class FakeMembershipRepo:
    def __init__(self, db: FakeDB):
        self.db = db

    async def get_by_id(self, id: UUID) -> Membership | None:
        return self.db.memberships.get(id)

    async def get_membership(self, user_id: UUID, tenant_id: UUID) -> Membership | None:
        return next(
            (
                m
                for m in self.db.memberships.values()
                if m.user_id == user_id and m.tenant_id == tenant_id
            ),
            None,
        )

    async def get_active_membership(self, user_id: UUID, tenant_id: UUID) -> Membership | None:
        membership = await self.get_membership(user_id, tenant_id)
        return membership if membership is not None and membership.is_active else None

    async def get_owner(self, tenant_id: UUID) -> Membership | None:
        return next(
            (
                m
                for m in self.db.memberships.values()
                if m.tenant_id == tenant_id
                and m.role == Role.OWNER.value
                and m.status != MembershipStatus.REMOVED.value
            ),
            None,
        )

    async def list_by_tenant(
        self, tenant_id: UUID, include_removed: bool = False
    ) -> list[Membership]:
        return sorted(
            (
                m
                for m in self.db.memberships.values()
                if m.tenant_id == tenant_id
                and (include_removed or m.status != MembershipStatus.REMOVED.value)
            ),
            key=lambda m: m.created_at,
        )

    def create_membership(
        self,
        user_id: UUID,
        tenant_id: UUID,
        role: Role | str,
        invited_by_user_id: UUID | None = None,
    ) -> Membership:
        membership = MembershipFactory.build(
            user_id=user_id,
            tenant_id=tenant_id,
            role=Role(role).value,
            invited_by_user_id=invited_by_user_id,
        )
        self.db.memberships[membership.id] = membership
        return membership

    def activate(
        self,
        membership: Membership,
        role: Role | str,
        invited_by_user_id: UUID | None = None,
    ) -> Membership:
        membership.role = Role(role).value
        membership.status = MembershipStatus.ACTIVE.value
        membership.invited_by_user_id = invited_by_user_id
        membership.joined_at = utc_now()
        return membership

    def set_role(self, membership: Membership, role: Role | str) -> Membership:
        membership.role = Role(role).value
        membership.updated_at = utc_now()
        return membership

    def mark_removed(self, membership: Membership) -> Membership:
        return self.set_status(membership, MembershipStatus.REMOVED)

    def set_status(self, membership: Membership, status: MembershipStatus) -> Membership:
        membership.status = status.value
        membership.updated_at = utc_now()
        return membership


class FakeInvitationRepo:
    """Invitation store over FakeDB.

    ``create`` checks and inserts without yielding to the event loop, like the
    partial unique index rejecting a second unaccepted row for a pair.
    """

    def __init__(self, db: FakeDB):
        self.db = db
        self.memberships = FakeMembershipRepo(db)
        self.locked_pairs: list[tuple[UUID, str]] = []
        self.lock_errors: list[Exception] = []

    async def lock_pair(self, tenant_id: UUID, email: str) -> None:
        if self.lock_errors:
            raise self.lock_errors.pop(0)
        self.locked_pairs.append((tenant_id, canonical_email(email)))

    def _unaccepted(self, tenant_id: UUID, email: str) -> Invitation | None:
        return next(
            (
                inv
                for inv in self.db.invitations.values()
                if inv.tenant_id == tenant_id and inv.email == email and not inv.is_accepted
            ),
            None,
        )

    async def find_unaccepted(self, tenant_id: UUID, email: str) -> Invitation | None:
        # Let concurrent issuers interleave between the read and the insert
        await asyncio.sleep(0)
        return self._unaccepted(tenant_id, canonical_email(email))

    async def find_active(self, tenant_id: UUID, email: str) -> Invitation | None:
        invitation = self._unaccepted(tenant_id, canonical_email(email))
        return invitation if invitation is not None and invitation.is_active() else None

    async def get_by_id(self, id: UUID) -> Invitation | None:
        return self.db.invitations.get(id)

    async def get_by_token(self, token: str, for_update: bool = False) -> Invitation | None:
        token_hash = hash_token(token)
        return next(
            (inv for inv in self.db.invitations.values() if inv.token_hash == token_hash),
            None,
        )

    async def list_pending(
        self, tenant_id: UUID, cursor: str | None = None, limit: int = 50
    ) -> tuple[list[Invitation], str | None, bool]:
        items = sorted(
            (
                inv
                for inv in self.db.invitations.values()
                if inv.tenant_id == tenant_id and not inv.is_accepted
            ),
            key=lambda inv: inv.created_at,
            reverse=True,
        )
        return items[:limit], None, len(items) > limit

    async def create(
        self,
        tenant_id: UUID,
        email: str,
        role: Role,
        invited_by_user_id: UUID,
        ttl: timedelta,
    ) -> tuple[Invitation, str]:
        email = canonical_email(email)
        if self._unaccepted(tenant_id, email) is not None:
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
        self.db.invitations[invitation.id] = invitation
        return invitation, token

    async def supersede(self, invitation: Invitation) -> None:
        ensure_supersedable(invitation, utc_now())
        del self.db.invitations[invitation.id]

    async def accept(self, token: str, user: User) -> tuple[Invitation, Membership]:
        now = utc_now()
        invitation = ensure_acceptable(await self.get_by_token(token), now)
        if canonical_email(user.email) != invitation.email:
            raise ForbiddenError("This invitation was sent to a different email address")
        existing = await self.memberships.get_membership(user.id, invitation.tenant_id)
        if existing is not None and existing.is_active:
            raise ConflictError("You are already a member of this team")
        if existing is None:
            membership = self.memberships.create_membership(
                user.id, invitation.tenant_id, invitation.role, invitation.invited_by_user_id
            )
        else:
            membership = self.memberships.activate(
                existing, invitation.role, invitation.invited_by_user_id
            )
        invitation.accepted_at = now
        invitation.accepted_by_user_id = user.id
        return invitation, membership

    async def rotate_token(self, invitation: Invitation, ttl: timedelta) -> str:
        if invitation.is_accepted:
            raise ConflictError("This invitation has already been accepted")
        token = generate_invitation_token()
        invitation.token_hash = hash_token(token)
        invitation.expires_at = utc_now() + ttl
        return token

    async def delete(self, invitation: Invitation) -> None:
        del self.db.invitations[invitation.id]


class FakeAuditRepo:
    def __init__(self, db: FakeDB):
        self.db = db

    def add(self, entity: AuditLog) -> None:
        self.db.audit_logs.append(entity)

    async def list_by_tenant(
        self, tenant_id: UUID, cursor: str | None = None, limit: int = 50, **filters
    ) -> tuple[list[AuditLog], str | None, bool]:
        action = filters.get("action")
        items = [
            log
            for log in reversed(self.db.audit_logs)
            if log.tenant_id == tenant_id and (action is None or log.action == action)
        ]
        return items[:limit], None, len(items) > limit

    async def list_by_resource(
        self,
        tenant_id: UUID,
        resource_type: str,
        resource_id: UUID,
        cursor: str | None = None,
        limit: int = 50,
    ) -> tuple[list[AuditLog], str | None, bool]:
        items = [
            log
            for log in reversed(self.db.audit_logs)
            if log.tenant_id == tenant_id
            and log.resource_type == resource_type
            and log.resource_id == resource_id
        ]
        return items[:limit], None, len(items) > limit


class FakeUnitOfWork:
    def __init__(self, db: FakeDB, invitations: FakeInvitationRepo, session: FakeSession):
        self.invitations = invitations
        self.memberships = FakeMembershipRepo(db)
        self.session = session

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()


class FakeElevatedStore:
    """Opener for ElevatedSessionGate; records how many units were opened."""

    def __init__(self, db: FakeDB):
        self.db = db
        self.invitations = FakeInvitationRepo(db)
        self.session = FakeSession()
        self.opened = 0

    @asynccontextmanager
    async def open(self) -> AsyncGenerator[FakeUnitOfWork]:
        self.opened += 1
        uow = FakeUnitOfWork(self.db, self.invitations, self.session)
        try:
            yield uow
        except Exception:
            await uow.rollback()
            raise


class Notifier:
    """Records invitation emails. Set ``result`` or ``error`` to simulate failures."""

    def __init__(self):
        self.calls: list[dict] = []
        self.result = True
        self.error: Exception | None = None

    def __call__(self, **kwargs) -> bool:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.result


def make_rate_limiter(
    clock: FakeClock | None = None,
    invite_limit: int = 10,
    resend_limit: int = 3,
    member_change_limit: int = 30,
) -> FixedWindowRateLimiter:
    return FixedWindowRateLimiter(
        {
            ActionKind.INVITE: RateLimitPolicy(invite_limit, 3600),
            ActionKind.RESEND: RateLimitPolicy(resend_limit, 3600),
            ActionKind.MEMBER_CHANGE: RateLimitPolicy(member_change_limit, 3600),
        },
        clock=clock or FakeClock(),
        use_redis=False,
    )


@dataclass
class Team:
    """A seeded tenant with one member per role."""

    tenant: Tenant
    users: dict[Role, User]
    memberships: dict[Role, Membership]

    def user(self, role: Role) -> User:
        return self.users[role]


def add_user(db: FakeDB, **kwargs) -> User:
    user = UserFactory.build(**kwargs)
    db.users[user.id] = user
    return user


def add_member(db: FakeDB, tenant: Tenant, user: User, role: Role, **kwargs) -> Membership:
    membership = MembershipFactory.with_role(role, tenant_id=tenant.id, user_id=user.id, **kwargs)
    db.memberships[membership.id] = membership
    return membership


def seed_team(db: FakeDB) -> Team:
    tenant = TenantFactory.build(name="Golden Spoon Catering")
    db.tenants[tenant.id] = tenant
    users: dict[Role, User] = {}
    memberships: dict[Role, Membership] = {}
    for role in Role:
        user = add_user(
            db, email=f"{role.value}@goldenspoon.example.com", full_name=role.value.title()
        )
        users[role] = user
        memberships[role] = add_member(db, tenant, user, role)
    return Team(tenant=tenant, users=users, memberships=memberships)


@dataclass
class ServiceHarness:
    db: FakeDB
    invitations: InvitationService
    members: MembershipService
    authorizer: AuthorizationService
    elevated: FakeElevatedStore
    session: FakeSession
    audit_session: AsyncMock
    notifier: Notifier
    clock: FakeClock
    rate_limiter: FixedWindowRateLimiter


def build_harness(db: FakeDB | None = None, **limits: int) -> ServiceHarness:
    db = db or FakeDB()
    clock = FakeClock()
    rate_limiter = make_rate_limiter(clock, **limits)
    authorizer = AuthorizationService(FakeMembershipRepo(db), FakeUserRepo(db))
    elevated = FakeElevatedStore(db)
    gate = ElevatedSessionGate(elevated.open)
    session = FakeSession()
    audit_session = AsyncMock()
    audit_service = AuditService(FakeAuditRepo(db), audit_session)
    notifier = Notifier()

    invitations = InvitationService(
        authorizer=authorizer,
        gate=gate,
        invitation_repo=FakeInvitationRepo(db),
        membership_repo=FakeMembershipRepo(db),
        user_repo=FakeUserRepo(db),
        tenant_repo=FakeTenantRepo(db),
        audit_service=audit_service,
        rate_limiter=rate_limiter,
        session=session,
        notifier=notifier,
    )
    members = MembershipService(
        authorizer=authorizer,
        gate=gate,
        membership_repo=FakeMembershipRepo(db),
        user_repo=FakeUserRepo(db),
        audit_service=audit_service,
        rate_limiter=rate_limiter,
        session=session,
    )
    return ServiceHarness(
        db=db,
        invitations=invitations,
        members=members,
        authorizer=authorizer,
        elevated=elevated,
        session=session,
        audit_session=audit_session,
        notifier=notifier,
        clock=clock,
        rate_limiter=rate_limiter,
    )


def audit_actions(db: FakeDB) -> list[str]:
    return [log.action for log in db.audit_logs]
