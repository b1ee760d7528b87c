"""
Membership roles and their hierarchy

MEMBER < ADMIN < OWNER. Permission checks are expressed as a minimum
threshold: "allowed roles {ADMIN, OWNER}" means "ADMIN or higher".
"""
from enum import Enum
from typing import Iterable


class Role(str, Enum):
    MEMBER = "MEMBER"
    ADMIN = "ADMIN"
    OWNER = "OWNER"


ROLE_LEVELS = {
    Role.MEMBER: 1,
    Role.ADMIN: 2,
    Role.OWNER: 3,
}

# Roles that can be granted by invitation or by the role-update path.
# OWNER is only ever created together with the profile.
ASSIGNABLE_ROLES = (Role.ADMIN, Role.MEMBER)

ANY_MEMBER = frozenset({Role.MEMBER, Role.ADMIN, Role.OWNER})
ADMIN_OR_OWNER = frozenset({Role.ADMIN, Role.OWNER})


def role_level(role: Role | str) -> int:
    """Ordinal position of a role in the hierarchy."""
    return ROLE_LEVELS[Role(role)]


def min_required_level(allowed_roles: Iterable[Role | str]) -> int:
    """
    Lowest level among allowed roles

    Raises:
        ValueError: allowed_roles is empty
    """
    levels = [role_level(r) for r in allowed_roles]
    if not levels:
        raise ValueError("allowed_roles must contain at least one role")
    return min(levels)


def has_required_role(role: Role | str, allowed_roles: Iterable[Role | str]) -> bool:
    return role_level(role) >= min_required_level(allowed_roles)
