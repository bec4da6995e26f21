"""
VESTRY - Audit Action Taxonomy

Closed set of auditable actions, the category each belongs to and the
default severity of the high-impact ones.
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping

from vestry.api.exceptions import ConfigurationError


# ============================================================
# Actions
# ============================================================


class AuditAction(str, Enum):
    """Auditable actions grouped by resource area."""

    # Authentication
    LOGIN = "auth.login"
    LOGOUT = "auth.logout"
    LOGIN_FAILED = "auth.login.failed"
    PASSWORD_CHANGE = "auth.password.change"

    # User management
    USER_CREATE = "user.create"
    USER_UPDATE = "user.update"
    USER_DELETE = "user.delete"
    USER_ACTIVATE = "user.activate"
    USER_DEACTIVATE = "user.deactivate"
    USER_PERMISSION_CHANGE = "user.permission.change"

    # Membership records
    PERSON_CREATE = "person.create"
    PERSON_UPDATE = "person.update"
    PERSON_DELETE = "person.delete"
    PERSON_ROLE_ASSIGN = "person.role.assign"
    PERSON_ROLE_REMOVE = "person.role.remove"

    # Scheduling
    PROGRAM_CREATE = "program.create"
    PROGRAM_UPDATE = "program.update"
    PROGRAM_DELETE = "program.delete"
    PROGRAM_GENERATE = "program.generate"
    PROGRAM_BATCH_GENERATE = "program.batch_generate"
    PROGRAM_PDF_DOWNLOAD = "program.pdf_download"

    # Activity types
    ACTIVITY_CREATE = "activity.create"
    ACTIVITY_UPDATE = "activity.update"
    ACTIVITY_DELETE = "activity.delete"

    # Role definitions
    ROLE_CREATE = "role.create"
    ROLE_UPDATE = "role.update"
    ROLE_DELETE = "role.delete"

    # Correspondence
    LETTER_CREATE = "letter.create"
    LETTER_UPDATE = "letter.update"
    LETTER_DELETE = "letter.delete"
    LETTER_PDF_GENERATE = "letter.pdf_generate"

    # Settings
    ORGANIZATION_UPDATE = "organization.update"
    SETTINGS_UPDATE = "settings.update"

    # Cleaning rotations
    CLEANING_GROUP_GENERATE = "cleaning.group.generate"

    # Data import/export
    EXPORT_DATA = "data.export"
    IMPORT_DATA = "data.import"


class AuditCategory(str, Enum):
    """Filtering axis derived from the action."""

    AUTH = "auth"
    USERS = "users"
    PERSONS = "persons"
    PROGRAMS = "programs"
    ACTIVITIES = "activities"
    ROLES = "roles"
    LETTERS = "letters"
    SETTINGS = "settings"
    DATA = "data"


class AuditSeverity(str, Enum):
    """Severity level of an audit event."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


# ============================================================
# Category Mapping
# ============================================================


ACTION_CATEGORY: Mapping[AuditAction, AuditCategory] = MappingProxyType({
    AuditAction.LOGIN: AuditCategory.AUTH,
    AuditAction.LOGOUT: AuditCategory.AUTH,
    AuditAction.LOGIN_FAILED: AuditCategory.AUTH,
    AuditAction.PASSWORD_CHANGE: AuditCategory.AUTH,

    AuditAction.USER_CREATE: AuditCategory.USERS,
    AuditAction.USER_UPDATE: AuditCategory.USERS,
    AuditAction.USER_DELETE: AuditCategory.USERS,
    AuditAction.USER_ACTIVATE: AuditCategory.USERS,
    AuditAction.USER_DEACTIVATE: AuditCategory.USERS,
    AuditAction.USER_PERMISSION_CHANGE: AuditCategory.USERS,

    AuditAction.PERSON_CREATE: AuditCategory.PERSONS,
    AuditAction.PERSON_UPDATE: AuditCategory.PERSONS,
    AuditAction.PERSON_DELETE: AuditCategory.PERSONS,
    AuditAction.PERSON_ROLE_ASSIGN: AuditCategory.PERSONS,
    AuditAction.PERSON_ROLE_REMOVE: AuditCategory.PERSONS,

    AuditAction.PROGRAM_CREATE: AuditCategory.PROGRAMS,
    AuditAction.PROGRAM_UPDATE: AuditCategory.PROGRAMS,
    AuditAction.PROGRAM_DELETE: AuditCategory.PROGRAMS,
    AuditAction.PROGRAM_GENERATE: AuditCategory.PROGRAMS,
    AuditAction.PROGRAM_BATCH_GENERATE: AuditCategory.PROGRAMS,
    AuditAction.PROGRAM_PDF_DOWNLOAD: AuditCategory.PROGRAMS,

    AuditAction.ACTIVITY_CREATE: AuditCategory.ACTIVITIES,
    AuditAction.ACTIVITY_UPDATE: AuditCategory.ACTIVITIES,
    AuditAction.ACTIVITY_DELETE: AuditCategory.ACTIVITIES,

    AuditAction.ROLE_CREATE: AuditCategory.ROLES,
    AuditAction.ROLE_UPDATE: AuditCategory.ROLES,
    AuditAction.ROLE_DELETE: AuditCategory.ROLES,

    AuditAction.LETTER_CREATE: AuditCategory.LETTERS,
    AuditAction.LETTER_UPDATE: AuditCategory.LETTERS,
    AuditAction.LETTER_DELETE: AuditCategory.LETTERS,
    AuditAction.LETTER_PDF_GENERATE: AuditCategory.LETTERS,

    AuditAction.ORGANIZATION_UPDATE: AuditCategory.SETTINGS,
    AuditAction.SETTINGS_UPDATE: AuditCategory.SETTINGS,

    # Rotations are scheduling output
    AuditAction.CLEANING_GROUP_GENERATE: AuditCategory.PROGRAMS,

    AuditAction.EXPORT_DATA: AuditCategory.DATA,
    AuditAction.IMPORT_DATA: AuditCategory.DATA,
})


# ============================================================
# Severity Mapping
# ============================================================


# Partial: anything not listed is INFO.
ACTION_SEVERITY: Mapping[AuditAction, AuditSeverity] = MappingProxyType({
    AuditAction.USER_DELETE: AuditSeverity.WARNING,
    AuditAction.USER_PERMISSION_CHANGE: AuditSeverity.WARNING,
    AuditAction.USER_DEACTIVATE: AuditSeverity.WARNING,
    AuditAction.PERSON_DELETE: AuditSeverity.WARNING,
    AuditAction.PROGRAM_DELETE: AuditSeverity.WARNING,
    AuditAction.LOGIN_FAILED: AuditSeverity.WARNING,
    AuditAction.EXPORT_DATA: AuditSeverity.WARNING,
})


def get_action_category(action: AuditAction) -> AuditCategory:
    """Category for an action."""
    return ACTION_CATEGORY[AuditAction(action)]


def get_action_severity(action: AuditAction) -> AuditSeverity:
    """Default severity for an action."""
    return ACTION_SEVERITY.get(AuditAction(action), AuditSeverity.INFO)


def validate_taxonomy() -> None:
    """Every action must map to a category."""
    missing = [action.value for action in AuditAction if action not in ACTION_CATEGORY]
    if missing:
        raise ConfigurationError(
            "Audit actions without a category",
            code="taxonomy_incomplete",
            details={"actions": missing},
        )


validate_taxonomy()
