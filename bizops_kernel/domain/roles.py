"""
Roles, content types and permission levels.

Responsibility:
    Fixed tag enumerations used by the decision engine and the grant tables,
    and the role hierarchy used for per-operation minimum-role checks.

Architecture position:
    Kernel > Domain -- pure, zero I/O.

Invariants enforced:
    - Role hierarchy: PARTNER < MEMBER < MANAGER < ADMIN.
    - An unknown role tag ranks below every known role.
    - EDIT implies VIEW.
"""

from enum import Enum


class Role(str, Enum):
    """
    Principal roles.

    MEMBER and MANAGER are the staff roles; PARTNER is the only restricted
    external role.
    """

    PARTNER = "PARTNER"
    MEMBER = "MEMBER"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"


ROLE_HIERARCHY: dict[Role, int] = {
    Role.PARTNER: 0,
    Role.MEMBER: 1,
    Role.MANAGER: 2,
    Role.ADMIN: 3,
}

_UNKNOWN_ROLE_LEVEL = -1


def parse_role(value: str | Role) -> Role | None:
    """Return the Role for a tag, or None if the tag is unknown."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def role_level(role: str | Role) -> int:
    parsed = parse_role(role)
    if parsed is None:
        return _UNKNOWN_ROLE_LEVEL
    return ROLE_HIERARCHY[parsed]


def role_at_least(role: str | Role, required: Role) -> bool:
    """True iff role ranks at or above required."""
    return role_level(role) >= ROLE_HIERARCHY[required]


class ContentType(str, Enum):
    """Content categories a partner can be granted per business."""

    CUSTOMERS = "customers"
    TASKS = "tasks"
    WORKFLOWS = "workflows"
    PAYMENTS = "payments"
    REPORTS = "reports"


class PermissionLevel(str, Enum):
    """Permission levels on a content type.  EDIT implies VIEW."""

    VIEW = "view"
    EDIT = "edit"

    def implied(self) -> frozenset["PermissionLevel"]:
        """This level plus every level it implies."""
        if self is PermissionLevel.EDIT:
            return frozenset({PermissionLevel.EDIT, PermissionLevel.VIEW})
        return frozenset({self})


def parse_content_type(value: str) -> ContentType | None:
    try:
        return ContentType(value)
    except ValueError:
        return None


def parse_permission_level(value: str) -> PermissionLevel | None:
    try:
        return PermissionLevel(value)
    except ValueError:
        return None
