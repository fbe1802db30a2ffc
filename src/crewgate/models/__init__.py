"""Model exports.

Import from here: `from src.crewgate.models import Invitation, Membership`
"""

from src.crewgate.models.audit import AuditLog
from src.crewgate.models.base import utc_now
from src.crewgate.models.enums import AuditAction, MembershipStatus, Role, parse_member_status
from src.crewgate.models.invitation import Invitation
from src.crewgate.models.membership import Membership
from src.crewgate.models.tenant import Tenant
from src.crewgate.models.user import User

__all__ = [
    # Enums
    "AuditAction",
    "MembershipStatus",
    "Role",
    # Models
    "AuditLog",
    "Invitation",
    "Membership",
    "Tenant",
    "User",
    # Helpers
    "parse_member_status",
    "utc_now",
]
