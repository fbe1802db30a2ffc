"""Repository factory dependencies."""

from typing import Annotated

from fastapi import Depends

from src.crewgate.api.dependencies.db import DBSession
from src.crewgate.repositories import (
    InvitationRepository,
    MembershipRepository,
    TenantRepository,
    UserRepository,
)


def get_user_repository(session: DBSession) -> UserRepository:
    return UserRepository(session)


def get_membership_repository(session: DBSession) -> MembershipRepository:
    return MembershipRepository(session)


def get_tenant_repository(session: DBSession) -> TenantRepository:
    return TenantRepository(session)


def get_invitation_repository(session: DBSession) -> InvitationRepository:
    """Invitation repository on the request session (preview and accept)."""
    return InvitationRepository(session)


UserRepo = Annotated[UserRepository, Depends(get_user_repository)]
MembershipRepo = Annotated[MembershipRepository, Depends(get_membership_repository)]
TenantRepo = Annotated[TenantRepository, Depends(get_tenant_repository)]
InvitationRepo = Annotated[InvitationRepository, Depends(get_invitation_repository)]
