"""Service factory dependencies."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends

from src.crewgate.api.dependencies.db import DBSession
from src.crewgate.api.dependencies.repositories import (
    InvitationRepo,
    MembershipRepo,
    TenantRepo,
    UserRepo,
)
from src.crewgate.core.db import get_session
from src.crewgate.core.rate_limit import FixedWindowRateLimiter, get_rate_limiter
from src.crewgate.repositories import AuditLogRepository, open_elevated_unit_of_work
from src.crewgate.services import (
    AuditService,
    AuthorizationService,
    ElevatedSessionGate,
    InvitationService,
    MembershipService,
)

RateLimiterDep = Annotated[FixedWindowRateLimiter, Depends(get_rate_limiter)]


def get_authorization_service(
    membership_repo: MembershipRepo, user_repo: UserRepo
) -> AuthorizationService:
    return AuthorizationService(membership_repo, user_repo)


def get_elevated_gate() -> ElevatedSessionGate:
    return ElevatedSessionGate(open_elevated_unit_of_work)


AuthorizationServiceDep = Annotated[AuthorizationService, Depends(get_authorization_service)]
ElevatedGateDep = Annotated[ElevatedSessionGate, Depends(get_elevated_gate)]


async def get_audit_service() -> AsyncGenerator[AuditService]:
    """Get audit service with its own isolated session.

    Commits independently of the business transaction, so records survive a
    rollback there.
    """
    async with get_session() as session:
        yield AuditService(AuditLogRepository(session), session)


AuditServiceDep = Annotated[AuditService, Depends(get_audit_service)]


def get_invitation_service(
    authorizer: AuthorizationServiceDep,
    gate: ElevatedGateDep,
    invitation_repo: InvitationRepo,
    membership_repo: MembershipRepo,
    user_repo: UserRepo,
    tenant_repo: TenantRepo,
    audit_service: AuditServiceDep,
    rate_limiter: RateLimiterDep,
    session: DBSession,
) -> InvitationService:
    return InvitationService(
        authorizer=authorizer,
        gate=gate,
        invitation_repo=invitation_repo,
        membership_repo=membership_repo,
        user_repo=user_repo,
        tenant_repo=tenant_repo,
        audit_service=audit_service,
        rate_limiter=rate_limiter,
        session=session,
    )


def get_membership_service(
    authorizer: AuthorizationServiceDep,
    gate: ElevatedGateDep,
    membership_repo: MembershipRepo,
    user_repo: UserRepo,
    audit_service: AuditServiceDep,
    rate_limiter: RateLimiterDep,
    session: DBSession,
) -> MembershipService:
    return MembershipService(
        authorizer=authorizer,
        gate=gate,
        membership_repo=membership_repo,
        user_repo=user_repo,
        audit_service=audit_service,
        rate_limiter=rate_limiter,
        session=session,
    )


InvitationServiceDep = Annotated[InvitationService, Depends(get_invitation_service)]
MembershipServiceDep = Annotated[MembershipService, Depends(get_membership_service)]
