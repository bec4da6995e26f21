"""
VESTRY Test Configuration
=========================

Pytest fixtures for the pure access-control and audit unit tests.
"""

import uuid
from dataclasses import dataclass

import pytest

from vestry.api.access.rbac import Identity
from vestry.api.access.roles import Role


TENANT_ID = uuid.UUID("00000000-0000-0000-0000-00000000a001")


@dataclass
class Account:
    """Stand-in for a stored account in policy tests."""

    id: uuid.UUID
    role: str
    is_super_user: bool = False


@pytest.fixture
def make_identity():
    """Factory for identities in a shared tenant."""

    def _make(
        role=Role.VIEWER,
        permissions=(),
        use_custom_permissions=False,
        is_super_user=False,
        user_id=None,
    ) -> Identity:
        return Identity(
            user_id=user_id or uuid.uuid4(),
            tenant_id=TENANT_ID,
            role=getattr(role, "value", role),
            email="member@vestry.org",
            name="Member",
            permissions=tuple(getattr(p, "value", p) for p in permissions),
            use_custom_permissions=use_custom_permissions,
            is_super_user=is_super_user,
        )

    return _make


@pytest.fixture
def make_account():
    """Factory for policy targets."""

    def _make(role=Role.VIEWER, is_super_user=False, account_id=None) -> Account:
        return Account(
            id=account_id or uuid.uuid4(),
            role=getattr(role, "value", role),
            is_super_user=is_super_user,
        )

    return _make
