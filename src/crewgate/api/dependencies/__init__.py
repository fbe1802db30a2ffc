"""FastAPI dependency injection definitions.

Re-exports all dependencies.
"""

from src.crewgate.api.dependencies.auth import CurrentUser, get_current_user
from src.crewgate.api.dependencies.db import DBSession, get_db_session
from src.crewgate.api.dependencies.repositories import (
    InvitationRepo,
    MembershipRepo,
    TenantRepo,
    UserRepo,
    get_invitation_repository,
    get_membership_repository,
    get_tenant_repository,
    get_user_repository,
)
from src.crewgate.api.dependencies.services import (
    AuditServiceDep,
    AuthorizationServiceDep,
    ElevatedGateDep,
    InvitationServiceDep,
    MembershipServiceDep,
    RateLimiterDep,
    get_audit_service,
    get_authorization_service,
    get_elevated_gate,
    get_invitation_service,
    get_membership_service,
)

__all__ = [
    # Auth
    "CurrentUser",
    "get_current_user",
    # Database
    "DBSession",
    "get_db_session",
    # Repositories
    "InvitationRepo",
    "MembershipRepo",
    "TenantRepo",
    "UserRepo",
    "get_invitation_repository",
    "get_membership_repository",
    "get_tenant_repository",
    "get_user_repository",
    # Services
    "AuditServiceDep",
    "AuthorizationServiceDep",
    "ElevatedGateDep",
    "InvitationServiceDep",
    "MembershipServiceDep",
    "RateLimiterDep",
    "get_audit_service",
    "get_authorization_service",
    "get_elevated_gate",
    "get_invitation_service",
    "get_membership_service",
]
