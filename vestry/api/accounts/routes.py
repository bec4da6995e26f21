"""
Account Routes

API endpoints for managing the accounts of the caller's tenant.
Password resets stay service-level since they need hashing, which
belongs to the authentication layer.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from vestry.api.access.catalog import Permission
from vestry.api.access.rbac import Identity, require_permission, require_super_user
from vestry.api.accounts.schemas import (
    AccountCreateRequest,
    AccountListResponse,
    AccountResponse,
    AccountUpdateRequest,
    MessageResponse,
    PermissionsUpdateRequest,
)
from vestry.api.accounts.service import AccountService
from vestry.api.audit.recorder import AuditRecorder
from vestry.api.db.session import get_db
from vestry.api.dependencies import get_audit_recorder, get_optional_identity


router = APIRouter()


@router.get(
    "",
    response_model=AccountListResponse,
    summary="List accounts",
)
@require_permission(Permission.USERS_VIEW)
async def list_accounts(
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
    recorder: AuditRecorder = Depends(get_audit_recorder),
    include_inactive: bool = True,
) -> AccountListResponse:
    service = AccountService(db, recorder)
    accounts = await service.list_accounts(identity, include_inactive=include_inactive)
    return AccountListResponse(
        accounts=[AccountResponse.model_validate(a) for a in accounts],
        total=len(accounts),
    )


@router.post(
    "",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create account",
)
@require_permission(Permission.USERS_CREATE)
async def create_account(
    data: AccountCreateRequest,
    request: Request,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
    recorder: AuditRecorder = Depends(get_audit_recorder),
) -> AccountResponse:
    """
    Create an account in the caller's tenant.

    The account starts with its role's default permissions and no
    password; the authentication service handles the invitation.
    """
    service = AccountService(db, recorder)
    account = await service.create_account(identity, data, request=request)
    return AccountResponse.model_validate(account)


@router.get(
    "/{account_id}",
    response_model=AccountResponse,
    summary="Get account",
)
@require_permission(Permission.USERS_VIEW)
async def get_account(
    account_id: UUID,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
    recorder: AuditRecorder = Depends(get_audit_recorder),
) -> AccountResponse:
    service = AccountService(db, recorder)
    account = await service.get_account(identity, account_id)
    return AccountResponse.model_validate(account)


@router.patch(
    "/{account_id}",
    response_model=AccountResponse,
    summary="Update account",
)
@require_permission(Permission.USERS_EDIT)
async def update_account(
    account_id: UUID,
    data: AccountUpdateRequest,
    request: Request,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
    recorder: AuditRecorder = Depends(get_audit_recorder),
) -> AccountResponse:
    """
    Update an account. Only provided fields are applied.

    Role changes need a SUPER_ADMIN and never apply to the caller's own
    account; permission fields need a super-user.
    """
    service = AccountService(db, recorder)
    account = await service.update_account(identity, account_id, data, request=request)
    return AccountResponse.model_validate(account)


@router.put(
    "/{account_id}/permissions",
    response_model=AccountResponse,
    summary="Replace custom permissions",
)
@require_super_user
async def update_permissions(
    account_id: UUID,
    data: PermissionsUpdateRequest,
    request: Request,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
    recorder: AuditRecorder = Depends(get_audit_recorder),
) -> AccountResponse:
    service = AccountService(db, recorder)
    account = await service.update_permissions(
        identity,
        account_id,
        data.permissions,
        use_custom_permissions=data.use_custom_permissions,
        request=request,
    )
    return AccountResponse.model_validate(account)


@router.post(
    "/{account_id}/deactivate",
    response_model=AccountResponse,
    summary="Deactivate account",
)
@require_permission(Permission.USERS_DELETE)
async def deactivate_account(
    account_id: UUID,
    request: Request,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
    recorder: AuditRecorder = Depends(get_audit_recorder),
) -> AccountResponse:
    service = AccountService(db, recorder)
    account = await service.deactivate(identity, account_id, request=request)
    return AccountResponse.model_validate(account)


@router.post(
    "/{account_id}/activate",
    response_model=AccountResponse,
    summary="Activate account",
)
@require_permission(Permission.USERS_EDIT)
async def activate_account(
    account_id: UUID,
    request: Request,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
    recorder: AuditRecorder = Depends(get_audit_recorder),
) -> AccountResponse:
    service = AccountService(db, recorder)
    account = await service.activate(identity, account_id, request=request)
    return AccountResponse.model_validate(account)


@router.delete(
    "/{account_id}",
    response_model=MessageResponse,
    summary="Delete account",
)
@require_permission(Permission.USERS_DELETE)
async def delete_account(
    account_id: UUID,
    request: Request,
    identity: Optional[Identity] = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_db),
    recorder: AuditRecorder = Depends(get_audit_recorder),
) -> MessageResponse:
    """Permanently delete an account. Super-user accounts cannot be deleted."""
    service = AccountService(db, recorder)
    await service.delete(identity, account_id, request=request)
    return MessageResponse(message="Account deleted")
