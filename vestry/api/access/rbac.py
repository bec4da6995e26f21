"""
VESTRY - Permission Resolver and Authorization Guard

Resolves an identity's effective permission set and guards protected
operations. This is the authoritative source for access decisions.
"""

import logging
from dataclasses import dataclass, field
from functools import cached_property, wraps
from typing import Any, FrozenSet, Iterable, Optional, Tuple
from uuid import UUID

from vestry.api.access.catalog import (
    ALL_PERMISSIONS,
    Permission,
    ensure_permission,
    ensure_permissions,
    lookup_permission,
)
from vestry.api.access.roles import (
    ADMIN_TIER_ROLES,
    Role,
    get_role_permissions,
    lookup_role,
    role_level,
)
from vestry.api.exceptions import ForbiddenError, NotAuthenticatedError


logger = logging.getLogger(__name__)


# ============================================================
# Identity
# ============================================================


@dataclass(frozen=True)
class Identity:
    """
    Authenticated caller, rebuilt per request from the stored account a
    verified credential names.

    ``permissions`` is the stored custom list; it only applies when
    ``use_custom_permissions`` is set and the list is non-empty.
    """

    user_id: UUID
    tenant_id: UUID
    role: str
    email: str = ""
    name: str = ""
    permissions: Tuple[str, ...] = field(default_factory=tuple)
    use_custom_permissions: bool = False
    is_super_user: bool = False

    @cached_property
    def effective_permissions(self) -> FrozenSet[Permission]:
        """Effective set, computed once and reused for the identity's lifetime."""
        return get_effective_permissions(self)

    @property
    def role_enum(self) -> Optional[Role]:
        return lookup_role(self.role)

    @classmethod
    def from_account(cls, account: Any) -> "Identity":
        """Build an identity from the stored account row, re-read per request."""
        return cls(
            user_id=account.id,
            tenant_id=account.tenant_id,
            role=str(account.role or ""),
            email=account.email or "",
            name=account.full_name or "",
            permissions=_warn_uncatalogued(account.id, account.permissions),
            use_custom_permissions=bool(account.use_custom_permissions),
            is_super_user=bool(account.is_super_user),
        )


def _warn_uncatalogued(user_id: Any, permissions: Optional[Iterable[str]]) -> Tuple[str, ...]:
    permissions = tuple(permissions or ())
    unknown = [p for p in permissions if lookup_permission(p) is None]
    if unknown:
        logger.warning("Ignoring uncatalogued permissions for user %s: %s", user_id, unknown)
    return permissions


# ============================================================
# Resolver
# ============================================================


def get_effective_permissions(identity: Identity) -> FrozenSet[Permission]:
    """
    Effective permission set for an identity.

    super-user -> every permission; custom override with a non-empty
    list -> exactly that list; otherwise the role's default set.
    Uncatalogued entries in a custom list never grant anything.
    """
    if identity.is_super_user:
        return ALL_PERMISSIONS

    if identity.use_custom_permissions and identity.permissions:
        resolved = (lookup_permission(p) for p in identity.permissions)
        return frozenset(p for p in resolved if p is not None)

    return get_role_permissions(identity.role)


def has_permission(identity: Identity, permission: Any) -> bool:
    """Check if identity holds a specific permission."""
    resolved = lookup_permission(permission)
    if resolved is None:
        logger.error("Permission check against uncatalogued permission %r", permission)
        return False
    return resolved in identity.effective_permissions


def has_any_permission(identity: Identity, permissions: Iterable[Any]) -> bool:
    """Check if identity holds at least one of the permissions."""
    return any(has_permission(identity, p) for p in permissions)


def has_all_permissions(identity: Identity, permissions: Iterable[Any]) -> bool:
    """Check if identity holds every one of the permissions."""
    return all(has_permission(identity, p) for p in permissions)


def is_tenant_admin(identity: Identity) -> bool:
    """Role is one of the organization administration tiers."""
    return identity.role_enum in ADMIN_TIER_ROLES


def is_at_least(identity: Identity, role: Role) -> bool:
    """Role sits at or above ``role`` in the hierarchy."""
    return role_level(identity.role) >= role_level(role)


# ============================================================
# Guard Checks
# ============================================================


def authenticate(identity: Optional[Identity]) -> Identity:
    """Pass for any authenticated identity."""
    if identity is None:
        raise NotAuthenticatedError()
    return identity


def _deny(identity: Identity, rule: str) -> None:
    logger.warning(
        "Access denied: user=%s tenant=%s role=%s rule=%s",
        identity.user_id, identity.tenant_id, identity.role, rule,
    )
    raise ForbiddenError(rule=rule)


def authorize(identity: Optional[Identity], permission: Any) -> Identity:
    """Pass if identity holds ``permission``; raise otherwise."""
    identity = authenticate(identity)
    if not has_permission(identity, permission):
        _deny(identity, str(getattr(permission, "value", permission)))
    return identity


def authorize_any(identity: Optional[Identity], permissions: Iterable[Any]) -> Identity:
    """Pass if identity holds at least one of ``permissions``."""
    identity = authenticate(identity)
    permissions = tuple(permissions)
    if not has_any_permission(identity, permissions):
        _deny(identity, "any:" + ",".join(str(getattr(p, "value", p)) for p in permissions))
    return identity


def authorize_all(identity: Optional[Identity], permissions: Iterable[Any]) -> Identity:
    """Pass if identity holds every one of ``permissions``."""
    identity = authenticate(identity)
    missing = [p for p in permissions if not has_permission(identity, p)]
    if missing:
        _deny(identity, "all:" + ",".join(str(getattr(p, "value", p)) for p in missing))
    return identity


def authorize_tenant_admin(identity: Optional[Identity]) -> Identity:
    """Pass for SUPER_ADMIN, OWNER and ADMIN roles."""
    identity = authenticate(identity)
    if not is_tenant_admin(identity):
        _deny(identity, "tenant_admin")
    return identity


def authorize_super_user(identity: Optional[Identity]) -> Identity:
    """Pass only for identities carrying the super-user flag."""
    identity = authenticate(identity)
    if not identity.is_super_user:
        _deny(identity, "super_user")
    return identity


def authorize_role_at_least(identity: Optional[Identity], role: Role) -> Identity:
    """Pass if identity's role is at or above ``role``."""
    identity = authenticate(identity)
    if not is_at_least(identity, role):
        _deny(identity, f"role_at_least:{role.value}")
    return identity


# ============================================================
# Authorization Decorators
# ============================================================


def require_permission(permission: Any):
    """Decorator to require a specific permission."""
    permission = ensure_permission(permission)

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            # Identity is injected by dependency
            authorize(kwargs.get("identity"), permission)
            return await func(*args, **kwargs)
        return wrapper
    return decorator


def require_any_permission(*permissions: Any):
    """Decorator to require at least one of the permissions."""
    permissions = ensure_permissions(permissions)

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            authorize_any(kwargs.get("identity"), permissions)
            return await func(*args, **kwargs)
        return wrapper
    return decorator


def require_all_permissions(*permissions: Any):
    """Decorator to require every one of the permissions."""
    permissions = ensure_permissions(permissions)

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            authorize_all(kwargs.get("identity"), permissions)
            return await func(*args, **kwargs)
        return wrapper
    return decorator


def require_role_at_least(role: Role):
    """Decorator to require a minimum role tier."""
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            authorize_role_at_least(kwargs.get("identity"), role)
            return await func(*args, **kwargs)
        return wrapper
    return decorator


def require_authenticated(func):
    """Decorator to require an authenticated caller, whatever their permissions."""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        authenticate(kwargs.get("identity"))
        return await func(*args, **kwargs)
    return wrapper


def require_tenant_admin(func):
    """Decorator to require an organization administration role."""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        authorize_tenant_admin(kwargs.get("identity"))
        return await func(*args, **kwargs)
    return wrapper


def require_super_user(func):
    """Decorator to require the super-user flag."""
    @wraps(func)
    async def wrapper(*args, **kwargs):
        authorize_super_user(kwargs.get("identity"))
        return await func(*args, **kwargs)
    return wrapper
