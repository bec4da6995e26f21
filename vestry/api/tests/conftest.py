"""
Test Configuration and Fixtures

Shared fixtures for VESTRY API tests.
Provides an isolated database, an audit recorder, seeded accounts and
bearer tokens for them.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import jwt
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from vestry.api.access.rbac import Identity
from vestry.api.access.roles import Role, get_role_permissions
from vestry.api.audit.recorder import AuditRecorder
from vestry.api.config import settings
from vestry.api.db.models import Base, User
from vestry.api.db.session import get_audit_session_maker, get_db
from vestry.api.main import create_app


TENANT_ID = uuid.UUID("00000000-0000-0000-0000-0000000000a1")
OTHER_TENANT_ID = uuid.UUID("00000000-0000-0000-0000-0000000000b2")


# ==================== Database Fixtures ====================


@pytest_asyncio.fixture(scope="function")
async def async_engine():
    """Create async SQLite engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(async_engine) -> async_sessionmaker:
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture(scope="function")
def recorder(session_factory) -> AuditRecorder:
    """Audit recorder writing to the test database."""
    return AuditRecorder(session_factory)


# ==================== Application Fixtures ====================


@pytest.fixture(scope="function")
def app(db_session, session_factory) -> FastAPI:
    """Create FastAPI app with test database."""
    test_app = create_app()

    async def override_get_db():
        yield db_session

    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[get_audit_session_maker] = lambda: session_factory
    return test_app


@pytest_asyncio.fixture(scope="function")
async def async_client(app) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ==================== Account Fixtures ====================


@pytest.fixture(scope="function")
def make_user(db_session):
    """Factory that stores an account and returns it."""

    async def _make(
        role: Role = Role.VIEWER,
        is_super_user: bool = False,
        tenant_id: uuid.UUID = TENANT_ID,
        permissions=None,
        use_custom_permissions: bool = False,
        is_active: bool = True,
        name: str = None,
    ) -> User:
        suffix = uuid.uuid4().hex[:8]
        user = User(
            id=uuid.uuid4(),
            tenant_id=tenant_id,
            email=f"{role.value.lower()}-{suffix}@vestry.org",
            full_name=name or f"{role.value.title()} {suffix}",
            role=role.value,
            permissions=(
                list(permissions)
                if permissions is not None
                else sorted(p.value for p in get_role_permissions(role))
            ),
            use_custom_permissions=use_custom_permissions,
            is_super_user=is_super_user,
            is_active=is_active,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make


def identity_for(user: User) -> Identity:
    """Identity as the request pipeline would build it for ``user``."""
    return Identity.from_account(user)


def token_for(user: User, **overrides) -> str:
    """Signed access token carrying the account's claims."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "tenant_id": str(user.tenant_id),
        "email": user.email,
        "name": user.full_name,
        "role": user.role,
        "permissions": list(user.permissions or []),
        "use_custom_permissions": user.use_custom_permissions,
        "is_super_user": user.is_super_user,
        "iat": now,
        "exp": now + timedelta(minutes=15),
        "type": "access",
    }
    payload.update(overrides)
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def auth_headers(user: User, **overrides) -> dict:
    """Authorization headers for ``user``."""
    return {"Authorization": f"Bearer {token_for(user, **overrides)}"}
