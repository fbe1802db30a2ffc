"""Membership roles and their privilege ordering.

Rank 1 is the most privileged. The hierarchy is an immutable lookup built once
and shared read-only; an unknown role is a programming error and raises
``LookupError`` instead of being treated as any particular rank.
"""

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType

from src.crewgate.core.exceptions import InvalidInputError


class Role(str, Enum):
    """Role of a user within a tenant."""

    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"
    VIEWER = "viewer"


# Labels accepted from older clients
ROLE_ALIASES: Mapping[str, Role] = MappingProxyType({"supervisor": Role.MANAGER})


class RoleHierarchy:
    """Total order over roles, lower rank means more privileged."""

    __slots__ = ("_ranks",)

    def __init__(self, ranks: Mapping[Role, int]):
        unknown = [key for key in ranks if not isinstance(key, Role)]
        if unknown:
            raise ValueError(f"Role hierarchy contains unknown roles: {unknown}")
        missing = [role.value for role in Role if role not in ranks]
        if missing:
            raise ValueError(f"Role hierarchy is missing roles: {missing}")
        if len(set(ranks.values())) != len(ranks):
            raise ValueError("Role ranks must be unique")
        self._ranks: Mapping[Role, int] = MappingProxyType(dict(ranks))

    def rank(self, role: Role | str) -> int:
        try:
            return self._ranks[Role(role)]
        except ValueError as e:
            raise LookupError(f"Unknown role: {role!r}") from e

    def permits(self, actor_role: Role | str, required_floor: Role | str) -> bool:
        """True if ``actor_role`` is at least as privileged as ``required_floor``."""
        return self.rank(actor_role) <= self.rank(required_floor)

    def outranks(self, role: Role | str, other: Role | str) -> bool:
        """True if ``role`` is strictly more privileged than ``other``."""
        return self.rank(role) < self.rank(other)

    @property
    def roles(self) -> tuple[Role, ...]:
        """Roles from most to least privileged."""
        return tuple(sorted(self._ranks, key=self._ranks.__getitem__))

    def __repr__(self) -> str:
        order = ", ".join(f"{role.value}={rank}" for role, rank in self._ranks.items())
        return f"RoleHierarchy({order})"


DEFAULT_ROLE_HIERARCHY = RoleHierarchy(
    {
        Role.OWNER: 1,
        Role.ADMIN: 2,
        Role.MANAGER: 3,
        Role.STAFF: 4,
        Role.VIEWER: 5,
    }
)


def parse_role(value: Role | str) -> Role:
    """Parse a role label from user input.

    Raises:
        InvalidInputError: If the label is not a known role or alias.
    """
    if isinstance(value, Role):
        return value
    label = str(value).strip().lower()
    if label in ROLE_ALIASES:
        return ROLE_ALIASES[label]
    try:
        return Role(label)
    except ValueError as e:
        allowed = [role.value for role in Role]
        raise InvalidInputError(f"Unknown role '{value}'", field="role", allowed=allowed) from e


def invitable_roles(hierarchy: RoleHierarchy = DEFAULT_ROLE_HIERARCHY) -> tuple[Role, ...]:
    """Roles that may be offered through an invitation (everything but owner)."""
    return tuple(role for role in hierarchy.roles if role is not Role.OWNER)
