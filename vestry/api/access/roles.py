"""
VESTRY - Role Policy Table

Named roles and their default permission sets. Each entry is declared
on its own; no role inherits from another.
"""

from enum import Enum
from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping, Optional, Tuple

from vestry.api.access.catalog import ALL_PERMISSIONS, Permission, lookup_permission
from vestry.api.exceptions import ConfigurationError, InvalidPermissionReferenceError


# ============================================================
# Roles
# ============================================================


class Role(str, Enum):
    """Organization roles in hierarchy order."""

    SUPER_ADMIN = "SUPER_ADMIN"
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    TEAM_LEADER = "TEAM_LEADER"
    EDITOR = "EDITOR"
    VIEWER = "VIEWER"


# Roles allowed through the tenant-admin shortcut.
ADMIN_TIER_ROLES: FrozenSet[Role] = frozenset({Role.SUPER_ADMIN, Role.OWNER, Role.ADMIN})


ROLE_HIERARCHY: Mapping[Role, int] = MappingProxyType({
    Role.SUPER_ADMIN: 6,
    Role.OWNER: 5,
    Role.ADMIN: 4,
    Role.TEAM_LEADER: 3,
    Role.EDITOR: 2,
    Role.VIEWER: 1,
})


# ============================================================
# Role Permission Mappings
# ============================================================


ROLE_PERMISSIONS: Mapping[Role, FrozenSet[Permission]] = MappingProxyType({
    # Every catalog permission, including ones added later
    Role.SUPER_ADMIN: ALL_PERMISSIONS,

    Role.OWNER: frozenset({
        # Users (view only)
        Permission.USERS_VIEW,

        # Persons (full)
        Permission.PERSONS_VIEW,
        Permission.PERSONS_CREATE,
        Permission.PERSONS_EDIT,
        Permission.PERSONS_DELETE,
        Permission.PERSONS_ASSIGN_ROLES,
        Permission.PERSONS_EXPORT,

        # Programs (full)
        Permission.PROGRAMS_VIEW,
        Permission.PROGRAMS_CREATE,
        Permission.PROGRAMS_EDIT,
        Permission.PROGRAMS_DELETE,
        Permission.PROGRAMS_GENERATE,
        Permission.PROGRAMS_DOWNLOAD_PDF,
        Permission.PROGRAMS_BATCH_GENERATE,

        # Activities (full)
        Permission.ACTIVITIES_VIEW,
        Permission.ACTIVITIES_CREATE,
        Permission.ACTIVITIES_EDIT,
        Permission.ACTIVITIES_DELETE,

        # Roles (full)
        Permission.ROLES_VIEW,
        Permission.ROLES_CREATE,
        Permission.ROLES_EDIT,
        Permission.ROLES_DELETE,

        # Letters (full)
        Permission.LETTERS_VIEW,
        Permission.LETTERS_CREATE,
        Permission.LETTERS_EDIT,
        Permission.LETTERS_DELETE,
        Permission.LETTERS_GENERATE_PDF,

        # Calendar
        Permission.CALENDAR_VIEW,
        Permission.CALENDAR_MANAGE,

        # Settings
        Permission.SETTINGS_VIEW,
        Permission.SETTINGS_EDIT,
        Permission.ORGANIZATION_EDIT,

        # Audit (read only)
        Permission.AUDIT_VIEW,

        # Cleaning
        Permission.CLEANING_VIEW,
        Permission.CLEANING_GENERATE,
        Permission.CLEANING_MANAGE,

        # Messaging
        Permission.WHATSAPP_SEND,
    }),

    Role.ADMIN: frozenset({
        # Users (no delete)
        Permission.USERS_VIEW,
        Permission.USERS_CREATE,
        Permission.USERS_EDIT,

        # Persons (no delete)
        Permission.PERSONS_VIEW,
        Permission.PERSONS_CREATE,
        Permission.PERSONS_EDIT,
        Permission.PERSONS_ASSIGN_ROLES,
        Permission.PERSONS_EXPORT,

        # Programs (no delete)
        Permission.PROGRAMS_VIEW,
        Permission.PROGRAMS_CREATE,
        Permission.PROGRAMS_EDIT,
        Permission.PROGRAMS_GENERATE,
        Permission.PROGRAMS_DOWNLOAD_PDF,
        Permission.PROGRAMS_BATCH_GENERATE,

        # Activities
        Permission.ACTIVITIES_VIEW,
        Permission.ACTIVITIES_CREATE,
        Permission.ACTIVITIES_EDIT,

        # Roles
        Permission.ROLES_VIEW,
        Permission.ROLES_CREATE,
        Permission.ROLES_EDIT,

        # Letters
        Permission.LETTERS_VIEW,
        Permission.LETTERS_CREATE,
        Permission.LETTERS_EDIT,
        Permission.LETTERS_GENERATE_PDF,

        # Calendar
        Permission.CALENDAR_VIEW,
        Permission.CALENDAR_MANAGE,

        # Settings (view only)
        Permission.SETTINGS_VIEW,

        # Audit
        Permission.AUDIT_VIEW,

        # Cleaning
        Permission.CLEANING_VIEW,
        Permission.CLEANING_GENERATE,
        Permission.CLEANING_MANAGE,

        # Messaging
        Permission.WHATSAPP_SEND,
    }),

    Role.TEAM_LEADER: frozenset({
        Permission.PERSONS_VIEW,
        Permission.PERSONS_EDIT,
        Permission.PERSONS_ASSIGN_ROLES,
        Permission.PROGRAMS_VIEW,
        Permission.PROGRAMS_CREATE,
        Permission.PROGRAMS_EDIT,
        Permission.PROGRAMS_GENERATE,
        Permission.PROGRAMS_DOWNLOAD_PDF,
        Permission.ACTIVITIES_VIEW,
        Permission.ROLES_VIEW,
        Permission.LETTERS_VIEW,
        Permission.LETTERS_CREATE,
        Permission.LETTERS_GENERATE_PDF,
        Permission.CALENDAR_VIEW,
        Permission.CLEANING_VIEW,
        Permission.CLEANING_GENERATE,
        Permission.WHATSAPP_SEND,
    }),

    Role.EDITOR: frozenset({
        Permission.PERSONS_VIEW,
        Permission.PERSONS_EDIT,
        Permission.PROGRAMS_VIEW,
        Permission.PROGRAMS_CREATE,
        Permission.PROGRAMS_EDIT,
        Permission.PROGRAMS_GENERATE,
        Permission.PROGRAMS_DOWNLOAD_PDF,
        Permission.ACTIVITIES_VIEW,
        Permission.ROLES_VIEW,
        Permission.LETTERS_VIEW,
        Permission.LETTERS_CREATE,
        Permission.LETTERS_GENERATE_PDF,
        Permission.CALENDAR_VIEW,
        Permission.CLEANING_VIEW,
    }),

    # Read only
    Role.VIEWER: frozenset({
        Permission.PERSONS_VIEW,
        Permission.PROGRAMS_VIEW,
        Permission.PROGRAMS_DOWNLOAD_PDF,
        Permission.ACTIVITIES_VIEW,
        Permission.ROLES_VIEW,
        Permission.LETTERS_VIEW,
        Permission.CALENDAR_VIEW,
        Permission.CLEANING_VIEW,
    }),
})


def lookup_role(value) -> Optional[Role]:
    """Return the Role for ``value``, or None for an unknown role name."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        return None


def get_role_permissions(role) -> FrozenSet[Permission]:
    """Default permission set of a role. Unknown roles get nothing."""
    resolved = lookup_role(role)
    if resolved is None:
        return frozenset()
    return ROLE_PERMISSIONS[resolved]


def role_level(role) -> int:
    """Hierarchy level of a role, 0 for unknown roles."""
    resolved = lookup_role(role)
    return ROLE_HIERARCHY[resolved] if resolved is not None else 0


# Lowest tier first so a list matching several roles resolves to the narrowest.
_DETECTABLE_ROLES: Tuple[Role, ...] = (
    Role.VIEWER,
    Role.EDITOR,
    Role.TEAM_LEADER,
    Role.ADMIN,
    Role.OWNER,
)


def detect_role_from_permissions(permissions: Iterable[str]) -> Optional[Role]:
    """
    Find the role whose default set equals ``permissions`` exactly.

    SUPER_ADMIN is never detected; it is only granted explicitly.
    """
    requested = {lookup_permission(p) for p in permissions}
    if not requested or None in requested:
        return None

    for role in _DETECTABLE_ROLES:
        if ROLE_PERMISSIONS[role] == requested:
            return role
    return None


def validate_role_table() -> None:
    """Every role has an entry and every entry references catalogued permissions."""
    missing = [role.value for role in Role if role not in ROLE_PERMISSIONS]
    if missing:
        raise ConfigurationError(
            "Roles without a permission entry",
            code="role_table_incomplete",
            details={"roles": missing},
        )

    for role, permissions in ROLE_PERMISSIONS.items():
        for permission in permissions:
            if lookup_permission(permission) is None:
                raise InvalidPermissionReferenceError(
                    permission, details={"role": role.value}
                )

    if set(ROLE_HIERARCHY) != set(Role):
        raise ConfigurationError(
            "Role hierarchy does not cover every role",
            code="role_hierarchy_incomplete",
        )


validate_role_table()
