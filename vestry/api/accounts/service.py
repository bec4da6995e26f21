"""
Account Service

Business logic for managing the accounts of a tenant. Every operation
authorizes the actor, re-checks the account policies against the
stored target and records an audit event once the change is committed.
"""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vestry.api.access.catalog import Permission, lookup_permission
from vestry.api.access.policies import (
    ensure_can_assign_role,
    ensure_can_change_role,
    ensure_can_manage_permissions,
    ensure_can_modify,
    ensure_can_remove,
    ensure_can_reset_password,
)
from vestry.api.access.rbac import Identity, authorize, authorize_tenant_admin
from vestry.api.access.roles import Role, detect_role_from_permissions, get_role_permissions
from vestry.api.accounts.schemas import AccountCreateRequest, AccountUpdateRequest
from vestry.api.audit.recorder import AuditRecorder, calculate_changes
from vestry.api.audit.taxonomy import AuditAction, AuditSeverity
from vestry.api.db.models import User
from vestry.api.exceptions import BadRequestError, NotFoundError


logger = logging.getLogger(__name__)

RESOURCE_TYPE = "user"

# Fields compared for the audit change map
TRACKED_FIELDS = (
    "full_name",
    "role",
    "is_active",
    "permissions",
    "use_custom_permissions",
    "is_super_user",
)

PERMISSION_FIELDS = {"permissions", "use_custom_permissions"}


def snapshot(user: User) -> Dict[str, Any]:
    """Auditable view of an account. Never includes the password hash."""
    return {
        "email": user.email,
        "full_name": user.full_name,
        "role": user.role,
        "is_active": user.is_active,
        "permissions": sorted(user.permissions or []),
        "use_custom_permissions": user.use_custom_permissions,
        "is_super_user": user.is_super_user,
    }


def _default_permissions(role: Any) -> List[str]:
    return sorted(p.value for p in get_role_permissions(role))


def _validated_permissions(values: List[str]) -> List[str]:
    unknown = [v for v in values if lookup_permission(v) is None]
    if unknown:
        raise BadRequestError(
            "Unknown permissions",
            code="unknown_permissions",
            details={"permissions": unknown},
        )
    return sorted(set(values))


class AccountService:
    """Service for account management inside one tenant."""

    def __init__(self, db: AsyncSession, recorder: AuditRecorder):
        """Initialize service with database session and audit recorder."""
        self.db = db
        self.recorder = recorder

    # ==================== Queries ====================

    async def get_account(self, actor: Identity, account_id: UUID) -> User:
        """Get an account of the actor's tenant."""
        authorize(actor, Permission.USERS_VIEW)
        return await self._get_target(actor, account_id)

    async def list_accounts(self, actor: Identity, include_inactive: bool = True) -> List[User]:
        """List accounts of the actor's tenant, oldest first."""
        authorize(actor, Permission.USERS_VIEW)
        query = select(User).where(User.tenant_id == actor.tenant_id)
        if not include_inactive:
            query = query.where(User.is_active == True)  # noqa: E712
        result = await self.db.execute(query.order_by(User.created_at))
        return list(result.scalars().all())

    async def _get_target(self, actor: Identity, account_id: UUID) -> User:
        result = await self.db.execute(
            select(User).where(
                User.id == account_id,
                User.tenant_id == actor.tenant_id,
            )
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("Account not found", code="account_not_found")
        return user

    async def _commit(self, user: Optional[User] = None) -> None:
        await self.db.commit()
        if user is not None:
            await self.db.refresh(user)

    # ==================== Create ====================

    async def create_account(
        self,
        actor: Identity,
        data: AccountCreateRequest,
        password_hash: Optional[str] = None,
        request: Any = None,
    ) -> User:
        """Create an account with the role's default permissions."""
        authorize(actor, Permission.USERS_CREATE)
        ensure_can_assign_role(actor, data.role)

        email = data.email.lower()
        existing = await self.db.scalar(select(User.id).where(User.email == email))
        if existing is not None:
            raise BadRequestError("Email already registered", code="email_taken")

        user = User(
            tenant_id=actor.tenant_id,
            email=email,
            full_name=data.full_name,
            password_hash=password_hash,
            role=data.role.value,
            permissions=_default_permissions(data.role),
            use_custom_permissions=False,
            is_super_user=False,
            is_active=True,
        )
        self.db.add(user)
        await self._commit(user)

        logger.info("Account %s created by %s", user.id, actor.user_id)
        await self.recorder.record_from_request(
            actor, request, AuditAction.USER_CREATE, RESOURCE_TYPE,
            resource_id=str(user.id),
            resource_name=user.full_name,
            new_value=snapshot(user),
        )
        return user

    # ==================== Update ====================

    async def update_account(
        self,
        actor: Identity,
        account_id: UUID,
        data: AccountUpdateRequest,
        request: Any = None,
    ) -> User:
        """
        Apply a partial update.

        A role change resets the stored list to the new role's defaults
        unless a custom override is active.
        """
        authorize(actor, Permission.USERS_EDIT)
        target = await self._get_target(actor, account_id)

        ensure_can_modify(actor, target)
        if data.permissions is not None or data.use_custom_permissions is not None:
            ensure_can_manage_permissions(actor, target)
        ensure_can_change_role(actor, target, data.role)
        ensure_can_assign_role(actor, data.role)
        if data.is_active is False and target.is_active:
            ensure_can_remove(actor, target)

        before = snapshot(target)

        if data.full_name is not None:
            target.full_name = data.full_name
        if data.is_active is not None:
            target.is_active = data.is_active
        if data.use_custom_permissions is not None:
            target.use_custom_permissions = data.use_custom_permissions
        if data.permissions is not None:
            target.permissions = _validated_permissions(data.permissions)
        if data.role is not None and data.role.value != target.role:
            target.role = data.role.value
            if not target.use_custom_permissions:
                target.permissions = _default_permissions(data.role)

        await self._commit(target)

        after = snapshot(target)
        changes = calculate_changes(before, after, TRACKED_FIELDS)
        if changes:
            permissions_requested = data.permissions is not None or data.use_custom_permissions is not None
            action = (
                AuditAction.USER_PERMISSION_CHANGE
                if permissions_requested and PERMISSION_FIELDS & set(changes)
                else AuditAction.USER_UPDATE
            )
            await self.recorder.record_from_request(
                actor, request, action, RESOURCE_TYPE,
                resource_id=str(target.id),
                resource_name=target.full_name,
                previous_value=before,
                new_value=after,
                changes=changes,
            )
        return target

    async def update_permissions(
        self,
        actor: Identity,
        account_id: UUID,
        permissions: List[str],
        use_custom_permissions: bool = True,
        request: Any = None,
    ) -> User:
        """
        Replace the custom permission list (super-users only).

        When the list equals a role's default set exactly, the account
        takes that role, except for SUPER_ADMIN targets and the actor's
        own account.
        """
        target = await self._get_target(actor, account_id)
        ensure_can_manage_permissions(actor, target)

        values = _validated_permissions(permissions)
        before = snapshot(target)

        target.permissions = values
        target.use_custom_permissions = use_custom_permissions

        detected = detect_role_from_permissions(values)
        if (
            detected is not None
            and detected.value != target.role
            and target.role != Role.SUPER_ADMIN.value
            and target.id != actor.user_id
        ):
            logger.info("Permissions of %s match role %s", target.id, detected.value)
            target.role = detected.value

        await self._commit(target)

        after = snapshot(target)
        changes = calculate_changes(before, after, TRACKED_FIELDS)
        await self.recorder.record_from_request(
            actor, request, AuditAction.USER_PERMISSION_CHANGE, RESOURCE_TYPE,
            resource_id=str(target.id),
            resource_name=target.full_name,
            previous_value=before,
            new_value=after,
            changes=changes,
            metadata={"detected_role": detected.value if detected else None},
        )
        return target

    async def reset_password(
        self,
        actor: Identity,
        account_id: UUID,
        password_hash: str,
        request: Any = None,
    ) -> User:
        """
        Store a new password hash for another account.

        Hashing belongs to the authentication layer; only the result
        arrives here.
        """
        authorize_tenant_admin(actor)
        target = await self._get_target(actor, account_id)
        ensure_can_reset_password(actor, target)

        target.password_hash = password_hash
        await self._commit(target)

        await self.recorder.record_from_request(
            actor, request, AuditAction.PASSWORD_CHANGE, RESOURCE_TYPE,
            resource_id=str(target.id),
            resource_name=target.full_name,
            metadata={"reset_by": str(actor.user_id)},
        )
        return target

    # ==================== Activation ====================

    async def deactivate(self, actor: Identity, account_id: UUID, request: Any = None) -> User:
        """Soft delete: the account stays but can no longer authenticate."""
        authorize(actor, Permission.USERS_DELETE)
        target = await self._get_target(actor, account_id)
        ensure_can_remove(actor, target)

        before = snapshot(target)
        target.is_active = False
        await self._commit(target)

        await self.recorder.record_from_request(
            actor, request, AuditAction.USER_DEACTIVATE, RESOURCE_TYPE,
            resource_id=str(target.id),
            resource_name=target.full_name,
            changes=calculate_changes(before, snapshot(target), ("is_active",)),
        )
        return target

    async def activate(self, actor: Identity, account_id: UUID, request: Any = None) -> User:
        """Re-enable a deactivated account."""
        authorize(actor, Permission.USERS_EDIT)
        target = await self._get_target(actor, account_id)
        ensure_can_modify(actor, target)

        before = snapshot(target)
        target.is_active = True
        await self._commit(target)

        await self.recorder.record_from_request(
            actor, request, AuditAction.USER_ACTIVATE, RESOURCE_TYPE,
            resource_id=str(target.id),
            resource_name=target.full_name,
            changes=calculate_changes(before, snapshot(target), ("is_active",)),
        )
        return target

    async def delete(self, actor: Identity, account_id: UUID, request: Any = None) -> None:
        """Hard delete. Super-user accounts are never hard-deleted."""
        authorize(actor, Permission.USERS_DELETE)
        target = await self._get_target(actor, account_id)
        ensure_can_remove(actor, target, permanent=True)

        before = snapshot(target)
        target_id, target_name = target.id, target.full_name
        await self.db.delete(target)
        await self._commit()

        logger.info("Account %s deleted by %s", target_id, actor.user_id)
        await self.recorder.record_from_request(
            actor, request, AuditAction.USER_DELETE, RESOURCE_TYPE,
            resource_id=str(target_id),
            resource_name=target_name,
            previous_value=before,
            severity=AuditSeverity.CRITICAL,
        )
