"""
VESTRY - Access Module

Permission catalog, role defaults, resolver and authorization guard.

Components:
- catalog.py: Permission identifiers and their display metadata
- roles.py: Roles, hierarchy and default permission sets
- rbac.py: Identity, effective permissions, guard checks and decorators
- policies.py: Invariants for operations on other accounts

Usage:
    from vestry.api.access.rbac import (
        Identity,
        require_permission,
        has_permission,
    )
    from vestry.api.access.catalog import Permission
"""

from vestry.api.access.catalog import (
    ALL_PERMISSIONS,
    Permission,
    describe_catalog,
    lookup_permission,
)
from vestry.api.access.roles import (
    ROLE_HIERARCHY,
    ROLE_PERMISSIONS,
    Role,
    detect_role_from_permissions,
    get_role_permissions,
)
from vestry.api.access.rbac import (
    Identity,
    authenticate,
    authorize,
    authorize_all,
    authorize_any,
    authorize_role_at_least,
    authorize_super_user,
    authorize_tenant_admin,
    get_effective_permissions,
    has_all_permissions,
    has_any_permission,
    has_permission,
    is_at_least,
    is_tenant_admin,
    require_all_permissions,
    require_any_permission,
    require_authenticated,
    require_permission,
    require_role_at_least,
    require_super_user,
    require_tenant_admin,
)

__all__ = [
    # Catalog
    "ALL_PERMISSIONS",
    "Permission",
    "describe_catalog",
    "lookup_permission",

    # Roles
    "ROLE_HIERARCHY",
    "ROLE_PERMISSIONS",
    "Role",
    "detect_role_from_permissions",
    "get_role_permissions",

    # Resolver and guard
    "Identity",
    "authenticate",
    "authorize",
    "authorize_all",
    "authorize_any",
    "authorize_role_at_least",
    "authorize_super_user",
    "authorize_tenant_admin",
    "get_effective_permissions",
    "has_all_permissions",
    "has_any_permission",
    "has_permission",
    "is_at_least",
    "is_tenant_admin",
    "require_all_permissions",
    "require_any_permission",
    "require_authenticated",
    "require_permission",
    "require_role_at_least",
    "require_super_user",
    "require_tenant_admin",
]
