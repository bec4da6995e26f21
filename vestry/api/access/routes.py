"""
Access Routes

Read-only views of the permission catalog and of the caller's own
effective permissions.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends

from vestry.api.access.catalog import describe_catalog
from vestry.api.access.rbac import Identity, require_authenticated, require_tenant_admin
from vestry.api.access.roles import ROLE_HIERARCHY, ROLE_PERMISSIONS, Role
from vestry.api.dependencies import get_optional_identity


router = APIRouter()


@router.get("/permissions", summary="List the permission catalog")
@require_tenant_admin
async def list_permissions(
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> Dict[str, Any]:
    """
    Every permission with its label, description and category, the
    role default sets and the roles in hierarchy order.
    """
    catalog = describe_catalog()
    catalog["role_defaults"] = {
        role.value: sorted(p.value for p in permissions)
        for role, permissions in ROLE_PERMISSIONS.items()
    }
    catalog["roles"] = [
        {"value": role.value, "level": ROLE_HIERARCHY[role]}
        for role in Role
    ]
    return catalog


@router.get("/me", summary="Effective permissions of the caller")
@require_authenticated
async def my_permissions(
    identity: Optional[Identity] = Depends(get_optional_identity),
) -> Dict[str, Any]:
    """Any authenticated caller may read their own effective set."""
    return {
        "user_id": str(identity.user_id),
        "tenant_id": str(identity.tenant_id),
        "role": identity.role,
        "is_super_user": identity.is_super_user,
        "use_custom_permissions": identity.use_custom_permissions,
        "permissions": sorted(p.value for p in identity.effective_permissions),
    }
