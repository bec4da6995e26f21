"""
VESTRY - Exception Hierarchy
============================

Structured exception types for authorization, audit and account
management failures.

Exception Categories:
    - AuthorizationError: Missing identity or insufficient privileges
    - ConfigurationError: Catalog, role table or guard declaration problems
    - AuditError: Audit storage failures (never surfaced to callers)
    - RequestError: Invalid input or missing resources
"""

from typing import Any, Dict, Optional


class VestryError(Exception):
    """
    Base exception for all vestry errors.

    Attributes:
        message: Human-readable error description
        code: Optional error code for programmatic handling
        details: Optional dict with additional context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


# =============================================================================
# AUTHORIZATION ERRORS
# =============================================================================


class AuthorizationError(VestryError):
    """Base exception for access control failures."""

    pass


class NotAuthenticatedError(AuthorizationError):
    """No authenticated identity is attached to the request."""

    def __init__(self, message: str = "Authentication required", **kwargs):
        super().__init__(message, code="not_authenticated", **kwargs)


class ForbiddenError(AuthorizationError):
    """
    Identity is present but lacks the required permission or tier.

    ``rule`` names the permission or policy that failed. It is meant for
    logs only and is never echoed back to the caller.
    """

    def __init__(self, rule: str, message: str = "Not authorized", **kwargs):
        super().__init__(message, code="forbidden", **kwargs)
        self.rule = rule


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigurationError(VestryError):
    """Static configuration (catalog, role table, taxonomy) is invalid."""

    pass


class InvalidPermissionReferenceError(ConfigurationError):
    """A guard or role entry references a permission missing from the catalog."""

    def __init__(self, permission: Any, **kwargs):
        super().__init__(
            f"Unknown permission: {permission!r}",
            code="invalid_permission_reference",
            **kwargs,
        )
        self.permission = permission


# =============================================================================
# AUDIT ERRORS
# =============================================================================


class AuditError(VestryError):
    """Base exception for audit trail errors."""

    pass


class AuditWriteError(AuditError):
    """Persisting an audit event failed. Handled inside the recorder."""

    pass


# =============================================================================
# REQUEST ERRORS
# =============================================================================


class RequestError(VestryError):
    """Base exception for invalid requests against account operations."""

    pass


class BadRequestError(RequestError):
    """The request is well-formed but not acceptable."""

    pass


class NotFoundError(RequestError):
    """The targeted resource does not exist in the caller's tenant."""

    pass
