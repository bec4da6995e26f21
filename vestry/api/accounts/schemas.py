"""
Account Schemas

Pydantic models for account management requests and responses.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from vestry.api.access.roles import Role


class AccountResponse(BaseModel):
    """Account data response."""

    id: UUID
    tenant_id: UUID
    email: str
    full_name: str
    role: str
    permissions: List[str] = []
    use_custom_permissions: bool
    is_super_user: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AccountListResponse(BaseModel):
    """List of accounts in the caller's tenant."""

    accounts: List[AccountResponse]
    total: int


class AccountCreateRequest(BaseModel):
    """New account in the caller's tenant."""

    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=200)
    role: Role = Role.VIEWER


class AccountUpdateRequest(BaseModel):
    """
    Partial account update. Only provided fields are applied.

    ``permissions`` and ``use_custom_permissions`` require a super-user.
    """

    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    role: Optional[Role] = None
    is_active: Optional[bool] = None
    permissions: Optional[List[str]] = None
    use_custom_permissions: Optional[bool] = None


class PermissionsUpdateRequest(BaseModel):
    """Replace an account's custom permission list."""

    permissions: List[str]
    use_custom_permissions: bool = True


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
