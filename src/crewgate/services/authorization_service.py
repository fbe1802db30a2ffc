"""Authorization gate.

Privileged writes use an elevated persistence handle that bypasses the
caller's ambient restrictions. The only way to get that handle is to present
an ``AuthorizationGrant``, and the only way to get a grant is
``AuthorizationService.authorize``, which raises before returning whenever the
actor lacks an active membership or a sufficient role.
"""

from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from src.crewgate.core.exceptions import ForbiddenError
from src.crewgate.core.logging import get_logger
from src.crewgate.core.roles import DEFAULT_ROLE_HIERARCHY, Role, RoleHierarchy
from src.crewgate.models import Membership, utc_now
from src.crewgate.repositories import ElevatedUnitOfWork, MembershipRepository, UserRepository

logger = get_logger(__name__)

# Grants carry this sentinel; anything built elsewhere is rejected at construction
_GRANT_SEAL = object()


@dataclass(frozen=True)
class AuthorizationGrant:
    """Proof that ``actor_id`` passed ``required_floor`` in ``tenant_id``."""

    actor_id: UUID
    tenant_id: UUID
    role: Role
    required_floor: Role
    actor_email: str
    actor_name: str
    membership_id: UUID
    issued_at: datetime
    _seal: object = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self._seal is not _GRANT_SEAL:
            raise TypeError("AuthorizationGrant can only be issued by AuthorizationService")


class AuthorizationService:
    """Checks membership and rank, then issues grants."""

    def __init__(
        self,
        membership_repo: MembershipRepository,
        user_repo: UserRepository,
        hierarchy: RoleHierarchy = DEFAULT_ROLE_HIERARCHY,
    ):
        self.membership_repo = membership_repo
        self.user_repo = user_repo
        self.hierarchy = hierarchy

    async def get_active_membership(self, actor_id: UUID, tenant_id: UUID) -> Membership:
        """The actor's active membership.

        Raises:
            ForbiddenError: The actor is not an active member of the tenant.
        """
        membership = await self.membership_repo.get_active_membership(actor_id, tenant_id)
        if membership is None:
            logger.info(
                "Authorization denied",
                reason="not_a_member",
                actor_id=str(actor_id),
                tenant_id=str(tenant_id),
            )
            raise ForbiddenError("You are not an active member of this team")
        return membership

    async def authorize(
        self, actor_id: UUID, tenant_id: UUID, required_floor: Role
    ) -> AuthorizationGrant:
        """Issue a grant if the actor holds at least ``required_floor``.

        Raises:
            ForbiddenError: Not an active member, role below the floor, or the
                user account is inactive.
        """
        membership = await self.get_active_membership(actor_id, tenant_id)

        if not self.hierarchy.permits(membership.role, required_floor):
            logger.info(
                "Authorization denied",
                reason="insufficient_role",
                actor_id=str(actor_id),
                tenant_id=str(tenant_id),
                role=membership.role,
                required_role=required_floor.value,
            )
            raise ForbiddenError(
                "Your role does not allow this action",
                required_role=required_floor.value,
            )

        user = await self.user_repo.get_by_id(actor_id)
        if user is None or not user.is_active:
            raise ForbiddenError("Your account is not active")

        return AuthorizationGrant(
            actor_id=actor_id,
            tenant_id=tenant_id,
            role=Role(membership.role),
            required_floor=required_floor,
            actor_email=user.email,
            actor_name=user.display_name,
            membership_id=membership.id,
            issued_at=utc_now(),
            _seal=_GRANT_SEAL,
        )


class ElevatedSessionGate:
    """Hands out elevated units of work, only in exchange for a grant."""

    def __init__(
        self,
        opener: Callable[[], AbstractAsyncContextManager[ElevatedUnitOfWork]],
    ):
        self._opener = opener

    @asynccontextmanager
    async def open(
        self, grant: AuthorizationGrant, tenant_id: UUID
    ) -> AsyncGenerator[ElevatedUnitOfWork]:
        """Open an elevated unit of work scoped to the grant's tenant.

        Raises:
            ForbiddenError: The grant is missing or issued for another tenant.
        """
        if not isinstance(grant, AuthorizationGrant):
            raise ForbiddenError("An authorization grant is required")
        if grant.tenant_id != tenant_id:
            logger.warning(
                "Grant presented for a different tenant",
                grant_tenant_id=str(grant.tenant_id),
                tenant_id=str(tenant_id),
            )
            raise ForbiddenError("An authorization grant is required")

        async with self._opener() as uow:
            yield uow
