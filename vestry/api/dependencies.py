"""
FastAPI Dependencies

Common dependencies for dependency injection.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vestry.api.access.rbac import Identity
from vestry.api.audit.recorder import AuditRecorder
from vestry.api.auth.jwt import verify_token
from vestry.api.db.models import User
from vestry.api.db.session import get_audit_session_maker, get_db


logger = logging.getLogger(__name__)


async def get_optional_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(
        HTTPBearer(auto_error=False)
    ),
    db: AsyncSession = Depends(get_db),
) -> Optional[Identity]:
    """
    Identity of the caller if authenticated, None otherwise.

    Guards turn a missing identity into a 401, so routes declare this
    dependency instead of failing inside the security scheme. The token
    only names the account; role and permissions come from the stored
    row, so changes apply on the next request.
    """
    if not credentials:
        return None

    payload = verify_token(credentials.credentials, "access")
    if not payload:
        return None

    try:
        user_id = UUID(str(payload["sub"]))
        tenant_id = UUID(str(payload["tenant_id"]))
    except (KeyError, ValueError):
        logger.warning("Token claims do not name a valid account")
        return None

    # The account must still exist and be active in the claimed tenant
    result = await db.execute(
        select(User).where(
            User.id == user_id,
            User.tenant_id == tenant_id,
        )
    )
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        return None

    return Identity.from_account(user)


async def get_audit_recorder(
    session_factory: async_sessionmaker = Depends(get_audit_session_maker),
) -> AuditRecorder:
    """Audit recorder writing through its own sessions."""
    return AuditRecorder(session_factory)

