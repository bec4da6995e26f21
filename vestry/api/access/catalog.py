"""
VESTRY - Permission Catalog

The closed set of permission identifiers with their display metadata.
Adding a permission is a catalog change; nothing here is computed at runtime.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from vestry.api.exceptions import ConfigurationError, InvalidPermissionReferenceError


# ============================================================
# Permissions
# ============================================================


class Permission(str, Enum):
    """All permissions in the system, as ``<resource>:<action>``."""

    # Users
    USERS_VIEW = "users:view"
    USERS_CREATE = "users:create"
    USERS_EDIT = "users:edit"
    USERS_DELETE = "users:delete"
    USERS_MANAGE_PERMISSIONS = "users:manage_permissions"

    # Persons (membership records)
    PERSONS_VIEW = "persons:view"
    PERSONS_CREATE = "persons:create"
    PERSONS_EDIT = "persons:edit"
    PERSONS_DELETE = "persons:delete"
    PERSONS_ASSIGN_ROLES = "persons:assign_roles"
    PERSONS_EXPORT = "persons:export"

    # Programs (scheduling)
    PROGRAMS_VIEW = "programs:view"
    PROGRAMS_CREATE = "programs:create"
    PROGRAMS_EDIT = "programs:edit"
    PROGRAMS_DELETE = "programs:delete"
    PROGRAMS_GENERATE = "programs:generate"
    PROGRAMS_DOWNLOAD_PDF = "programs:download_pdf"
    PROGRAMS_BATCH_GENERATE = "programs:batch_generate"

    # Activity types
    ACTIVITIES_VIEW = "activities:view"
    ACTIVITIES_CREATE = "activities:create"
    ACTIVITIES_EDIT = "activities:edit"
    ACTIVITIES_DELETE = "activities:delete"

    # Role definitions
    ROLES_VIEW = "roles:view"
    ROLES_CREATE = "roles:create"
    ROLES_EDIT = "roles:edit"
    ROLES_DELETE = "roles:delete"

    # Correspondence
    LETTERS_VIEW = "letters:view"
    LETTERS_CREATE = "letters:create"
    LETTERS_EDIT = "letters:edit"
    LETTERS_DELETE = "letters:delete"
    LETTERS_GENERATE_PDF = "letters:generate_pdf"

    # Calendar
    CALENDAR_VIEW = "calendar:view"
    CALENDAR_MANAGE = "calendar:manage"

    # Settings
    SETTINGS_VIEW = "settings:view"
    SETTINGS_EDIT = "settings:edit"
    ORGANIZATION_EDIT = "organization:edit"

    # Audit
    AUDIT_VIEW = "audit:view"
    AUDIT_EXPORT = "audit:export"

    # Cleaning rotations
    CLEANING_VIEW = "cleaning:view"
    CLEANING_GENERATE = "cleaning:generate"
    CLEANING_MANAGE = "cleaning:manage"

    # Messaging
    WHATSAPP_SEND = "whatsapp:send"


ALL_PERMISSIONS: FrozenSet[Permission] = frozenset(Permission)


# ============================================================
# Display Metadata
# ============================================================


@dataclass(frozen=True)
class PermissionInfo:
    """UI metadata for a single permission."""

    label: str
    description: str
    category: str


PERMISSION_CATEGORIES: Tuple[str, ...] = (
    "Users",
    "Persons",
    "Programs",
    "Activities",
    "Roles",
    "Letters",
    "Calendar",
    "Settings",
    "Audit",
    "Cleaning",
    "WhatsApp",
)


PERMISSION_DESCRIPTIONS: Mapping[Permission, PermissionInfo] = MappingProxyType({
    # Users
    Permission.USERS_VIEW: PermissionInfo("View users", "See the list of system users", "Users"),
    Permission.USERS_CREATE: PermissionInfo("Create users", "Create new user accounts", "Users"),
    Permission.USERS_EDIT: PermissionInfo("Edit users", "Modify user account details", "Users"),
    Permission.USERS_DELETE: PermissionInfo("Delete users", "Remove user accounts", "Users"),
    Permission.USERS_MANAGE_PERMISSIONS: PermissionInfo(
        "Manage permissions", "Grant or revoke user permissions", "Users"
    ),

    # Persons
    Permission.PERSONS_VIEW: PermissionInfo("View persons", "See the member list", "Persons"),
    Permission.PERSONS_CREATE: PermissionInfo("Create persons", "Add new members", "Persons"),
    Permission.PERSONS_EDIT: PermissionInfo("Edit persons", "Modify member records", "Persons"),
    Permission.PERSONS_DELETE: PermissionInfo("Delete persons", "Remove members", "Persons"),
    Permission.PERSONS_ASSIGN_ROLES: PermissionInfo("Assign roles", "Assign roles to members", "Persons"),
    Permission.PERSONS_EXPORT: PermissionInfo("Export persons", "Export the member list", "Persons"),

    # Programs
    Permission.PROGRAMS_VIEW: PermissionInfo("View programs", "See generated programs", "Programs"),
    Permission.PROGRAMS_CREATE: PermissionInfo("Create programs", "Create programs manually", "Programs"),
    Permission.PROGRAMS_EDIT: PermissionInfo("Edit programs", "Modify programs", "Programs"),
    Permission.PROGRAMS_DELETE: PermissionInfo("Delete programs", "Remove programs", "Programs"),
    Permission.PROGRAMS_GENERATE: PermissionInfo(
        "Generate programs", "Generate programs automatically", "Programs"
    ),
    Permission.PROGRAMS_DOWNLOAD_PDF: PermissionInfo("Download PDF", "Download programs as PDF", "Programs"),
    Permission.PROGRAMS_BATCH_GENERATE: PermissionInfo(
        "Batch generation", "Generate several programs at once", "Programs"
    ),

    # Activities
    Permission.ACTIVITIES_VIEW: PermissionInfo("View activities", "See activity types", "Activities"),
    Permission.ACTIVITIES_CREATE: PermissionInfo("Create activities", "Create activity types", "Activities"),
    Permission.ACTIVITIES_EDIT: PermissionInfo("Edit activities", "Modify activity types", "Activities"),
    Permission.ACTIVITIES_DELETE: PermissionInfo("Delete activities", "Remove activity types", "Activities"),

    # Roles
    Permission.ROLES_VIEW: PermissionInfo("View roles", "See available roles", "Roles"),
    Permission.ROLES_CREATE: PermissionInfo("Create roles", "Create new roles", "Roles"),
    Permission.ROLES_EDIT: PermissionInfo("Edit roles", "Modify roles", "Roles"),
    Permission.ROLES_DELETE: PermissionInfo("Delete roles", "Remove roles", "Roles"),

    # Letters
    Permission.LETTERS_VIEW: PermissionInfo("View letters", "See generated letters", "Letters"),
    Permission.LETTERS_CREATE: PermissionInfo("Create letters", "Write new letters", "Letters"),
    Permission.LETTERS_EDIT: PermissionInfo("Edit letters", "Modify letters", "Letters"),
    Permission.LETTERS_DELETE: PermissionInfo("Delete letters", "Remove letters", "Letters"),
    Permission.LETTERS_GENERATE_PDF: PermissionInfo("Letter PDFs", "Render letters as PDF", "Letters"),

    # Calendar
    Permission.CALENDAR_VIEW: PermissionInfo("View calendar", "See the activity calendar", "Calendar"),
    Permission.CALENDAR_MANAGE: PermissionInfo("Manage calendar", "Manage calendar events", "Calendar"),

    # Settings
    Permission.SETTINGS_VIEW: PermissionInfo("View settings", "See system settings", "Settings"),
    Permission.SETTINGS_EDIT: PermissionInfo("Edit settings", "Modify system settings", "Settings"),
    Permission.ORGANIZATION_EDIT: PermissionInfo(
        "Edit organization", "Modify organization details", "Settings"
    ),

    # Audit
    Permission.AUDIT_VIEW: PermissionInfo("View audit", "Read the audit trail", "Audit"),
    Permission.AUDIT_EXPORT: PermissionInfo("Export audit", "Export the audit trail", "Audit"),

    # Cleaning
    Permission.CLEANING_VIEW: PermissionInfo("View cleaning", "See cleaning rotations", "Cleaning"),
    Permission.CLEANING_GENERATE: PermissionInfo(
        "Generate cleaning", "Generate cleaning rotations", "Cleaning"
    ),
    Permission.CLEANING_MANAGE: PermissionInfo("Manage cleaning", "Manage cleaning rotations", "Cleaning"),

    # Messaging
    Permission.WHATSAPP_SEND: PermissionInfo("Send WhatsApp", "Send WhatsApp messages", "WhatsApp"),
})


# ============================================================
# Lookup Helpers
# ============================================================


_BY_VALUE: Mapping[str, Permission] = MappingProxyType({p.value: p for p in Permission})


def lookup_permission(value: Any) -> Optional[Permission]:
    """Return the catalog member for ``value``, or None if it is not catalogued."""
    if isinstance(value, Permission):
        return value
    if isinstance(value, str):
        return _BY_VALUE.get(value)
    return None


def ensure_permission(value: Any) -> Permission:
    """Resolve ``value`` to a catalog member or raise InvalidPermissionReferenceError."""
    permission = lookup_permission(value)
    if permission is None:
        raise InvalidPermissionReferenceError(value)
    return permission


def ensure_permissions(values: Iterable[Any]) -> Tuple[Permission, ...]:
    """Resolve every value, failing on the first unknown identifier."""
    return tuple(ensure_permission(v) for v in values)


def describe_catalog() -> Dict[str, Any]:
    """Catalog listing for UI grouping: flat list, grouped by category, categories."""
    permissions: List[Dict[str, str]] = [
        {
            "value": permission.value,
            "label": info.label,
            "description": info.description,
            "category": info.category,
        }
        for permission, info in PERMISSION_DESCRIPTIONS.items()
    ]

    grouped: Dict[str, List[Dict[str, str]]] = {category: [] for category in PERMISSION_CATEGORIES}
    for entry in permissions:
        grouped[entry["category"]].append(entry)

    return {
        "permissions": permissions,
        "grouped": grouped,
        "categories": list(PERMISSION_CATEGORIES),
    }


def validate_catalog() -> None:
    """Every permission has metadata, and every metadata category is declared."""
    missing = [p.value for p in Permission if p not in PERMISSION_DESCRIPTIONS]
    if missing:
        raise ConfigurationError(
            "Permissions without catalog metadata",
            code="catalog_incomplete",
            details={"permissions": missing},
        )

    undeclared = sorted({
        info.category for info in PERMISSION_DESCRIPTIONS.values()
        if info.category not in PERMISSION_CATEGORIES
    })
    if undeclared:
        raise ConfigurationError(
            "Catalog uses undeclared categories",
            code="catalog_categories",
            details={"categories": undeclared},
        )


validate_catalog()
