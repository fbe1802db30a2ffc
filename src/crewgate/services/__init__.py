"""Service layer - business logic."""

from src.crewgate.services.audit_service import AuditService
from src.crewgate.services.authorization_service import (
    AuthorizationGrant,
    AuthorizationService,
    ElevatedSessionGate,
)
from src.crewgate.services.invitation_service import InvitationPreview, InvitationService
from src.crewgate.services.membership_service import MembershipService

__all__ = [
    "AuditService",
    "AuthorizationGrant",
    "AuthorizationService",
    "ElevatedSessionGate",
    "InvitationPreview",
    "InvitationService",
    "MembershipService",
]
