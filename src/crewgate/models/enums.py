"""Shared enums for models."""

from enum import Enum

from src.crewgate.core.exceptions import InvalidInputError
from src.crewgate.core.roles import Role

__all__ = ["AuditAction", "MembershipStatus", "Role", "parse_member_status"]


class MembershipStatus(str, Enum):
    """Lifecycle of a membership. Rows are never deleted, only marked removed."""

    ACTIVE = "active"
    PENDING = "pending"
    REMOVED = "removed"


# Labels an admin may set; suspension is stored as ``removed``
MEMBER_STATUS_LABELS = {
    "active": MembershipStatus.ACTIVE,
    "reactivated": MembershipStatus.ACTIVE,
    "removed": MembershipStatus.REMOVED,
    "suspended": MembershipStatus.REMOVED,
}


def parse_member_status(value: MembershipStatus | str) -> MembershipStatus:
    """Parse a status an admin asked for.

    Raises:
        InvalidInputError: If the label is unknown or ``pending``.
    """
    label = value.value if isinstance(value, MembershipStatus) else str(value).strip().lower()
    try:
        return MEMBER_STATUS_LABELS[label]
    except KeyError as e:
        raise InvalidInputError(
            f"Unknown member status '{label}'",
            field="status",
            allowed=sorted(MEMBER_STATUS_LABELS),
        ) from e


class AuditAction(str, Enum):
    """Security-relevant transitions recorded in the audit log."""

    INVITATION_SENT = "invitation_sent"
    INVITATION_RESENT = "invitation_resent"
    INVITATION_ACCEPTED = "invitation_accepted"
    INVITATION_REVOKED = "invitation_revoked"
    MEMBER_ROLE_CHANGED = "member_role_changed"
    MEMBER_REMOVED = "member_removed"
    MEMBER_STATUS_CHANGED = "member_status_changed"
    OWNER_PROVISIONED = "owner_provisioned"
