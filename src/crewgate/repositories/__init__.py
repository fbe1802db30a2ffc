"""Repository layer - data access abstraction."""

from src.crewgate.repositories.audit import AuditLogRepository
from src.crewgate.repositories.base import BaseRepository
from src.crewgate.repositories.invitation import (
    InvitationRepository,
    ensure_acceptable,
    ensure_supersedable,
)
from src.crewgate.repositories.membership import MembershipRepository
from src.crewgate.repositories.tenant import TenantRepository
from src.crewgate.repositories.unit_of_work import (
    ElevatedUnitOfWork,
    open_elevated_unit_of_work,
)
from src.crewgate.repositories.user import UserRepository

__all__ = [
    "AuditLogRepository",
    "BaseRepository",
    "ElevatedUnitOfWork",
    "InvitationRepository",
    "MembershipRepository",
    "TenantRepository",
    "UserRepository",
    "ensure_acceptable",
    "ensure_supersedable",
    "open_elevated_unit_of_work",
]
