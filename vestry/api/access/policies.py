"""
VESTRY - Account Management Policies

Invariants enforced inside account operations, on top of the generic
permission guard. Every account operation calls the checks that apply
to it, even when the route guard already passed.
"""

from typing import Any, Optional, Protocol
from uuid import UUID

from vestry.api.access.rbac import Identity, authorize_super_user
from vestry.api.access.roles import Role, lookup_role
from vestry.api.exceptions import BadRequestError, ForbiddenError


class AccountTarget(Protocol):
    """What the policies need to know about the account being acted on."""

    id: UUID
    role: str
    is_super_user: bool


def _is_super_admin(role: Any) -> bool:
    return lookup_role(role) is Role.SUPER_ADMIN


def ensure_can_modify(actor: Identity, target: AccountTarget) -> None:
    """Only super-users touch super-users; only SUPER_ADMIN touches SUPER_ADMIN."""
    if target.is_super_user and not actor.is_super_user:
        raise ForbiddenError(rule="modify_super_user")
    if _is_super_admin(target.role) and not _is_super_admin(actor.role):
        raise ForbiddenError(rule="modify_super_admin")


def ensure_not_self_role_change(
    actor: Identity,
    target: AccountTarget,
    new_role: Optional[str],
) -> None:
    """Nobody changes their own role, whatever their tier."""
    if new_role is None or target.id != actor.user_id:
        return
    if lookup_role(new_role) != lookup_role(target.role):
        raise ForbiddenError(rule="self_role_change")


def ensure_can_change_role(actor: Identity, target: AccountTarget, new_role: Optional[str]) -> None:
    """Role changes are reserved to SUPER_ADMIN and never apply to oneself."""
    if new_role is None or lookup_role(new_role) == lookup_role(target.role):
        return
    ensure_not_self_role_change(actor, target, new_role)
    if not _is_super_admin(actor.role):
        raise ForbiddenError(rule="role_change_requires_super_admin")


def ensure_can_assign_role(actor: Identity, role: Optional[str]) -> None:
    """Only a SUPER_ADMIN may hand out the SUPER_ADMIN role."""
    if _is_super_admin(role) and not _is_super_admin(actor.role):
        raise ForbiddenError(rule="assign_super_admin")


def ensure_can_manage_permissions(actor: Identity, target: AccountTarget) -> None:
    """Custom permission lists are managed by super-users only."""
    authorize_super_user(actor)
    if target.is_super_user and target.id != actor.user_id:
        raise ForbiddenError(rule="permissions_of_other_super_user")
    if _is_super_admin(target.role) and not _is_super_admin(actor.role):
        raise ForbiddenError(rule="permissions_of_super_admin")


def ensure_can_reset_password(actor: Identity, target: AccountTarget) -> None:
    """Password resets follow the same tier rules as edits."""
    ensure_can_modify(actor, target)


def ensure_can_remove(actor: Identity, target: AccountTarget, permanent: bool = False) -> None:
    """
    Deactivation and deletion rules.

    Nobody removes themselves or a SUPER_ADMIN through this path;
    super-user accounts are never hard-deleted.
    """
    if target.id == actor.user_id:
        raise BadRequestError("Cannot remove your own account", code="self_removal")
    if _is_super_admin(target.role):
        raise ForbiddenError(rule="remove_super_admin")
    if target.is_super_user and (permanent or not actor.is_super_user):
        raise ForbiddenError(rule="remove_super_user")
