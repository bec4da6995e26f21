"""
Tests for Account Management Policies
======================================

Tier rules enforced inside account operations.
"""

import pytest

from vestry.api.access.catalog import ALL_PERMISSIONS
from vestry.api.access.policies import (
    ensure_can_assign_role,
    ensure_can_change_role,
    ensure_can_manage_permissions,
    ensure_can_modify,
    ensure_can_remove,
    ensure_can_reset_password,
)
from vestry.api.access.roles import Role
from vestry.api.exceptions import BadRequestError, ForbiddenError


@pytest.fixture
def admin_with_everything(make_identity):
    """Administrator whose custom list grants the whole catalog."""
    return make_identity(
        role=Role.ADMIN,
        permissions=[p.value for p in ALL_PERMISSIONS],
        use_custom_permissions=True,
    )


class TestSuperAdminTargets:
    """Admin-tier actors never act on SUPER_ADMIN accounts."""

    def test_modify_denied(self, admin_with_everything, make_account):
        with pytest.raises(ForbiddenError) as exc_info:
            ensure_can_modify(admin_with_everything, make_account(role=Role.SUPER_ADMIN))
        assert exc_info.value.rule == "modify_super_admin"

    def test_password_reset_denied(self, admin_with_everything, make_account):
        with pytest.raises(ForbiddenError):
            ensure_can_reset_password(admin_with_everything, make_account(role=Role.SUPER_ADMIN))

    @pytest.mark.parametrize("permanent", [False, True])
    def test_remove_denied(self, admin_with_everything, make_account, permanent):
        with pytest.raises(ForbiddenError) as exc_info:
            ensure_can_remove(
                admin_with_everything, make_account(role=Role.SUPER_ADMIN), permanent=permanent
            )
        assert exc_info.value.rule == "remove_super_admin"

    def test_role_change_denied(self, admin_with_everything, make_account):
        with pytest.raises(ForbiddenError):
            ensure_can_change_role(
                admin_with_everything, make_account(role=Role.SUPER_ADMIN), Role.VIEWER
            )

    def test_super_admin_may_modify_super_admin(self, make_identity, make_account):
        ensure_can_modify(make_identity(role=Role.SUPER_ADMIN), make_account(role=Role.SUPER_ADMIN))

    def test_super_admin_still_cannot_remove_super_admin(self, make_identity, make_account):
        with pytest.raises(ForbiddenError):
            ensure_can_remove(make_identity(role=Role.SUPER_ADMIN), make_account(role=Role.SUPER_ADMIN))


class TestRoleChanges:
    """Role changes need SUPER_ADMIN and never apply to oneself."""

    def test_nobody_changes_their_own_role(self, make_identity, make_account):
        actor = make_identity(role=Role.SUPER_ADMIN, is_super_user=True)
        own = make_account(role=Role.SUPER_ADMIN, is_super_user=True, account_id=actor.user_id)
        with pytest.raises(ForbiddenError) as exc_info:
            ensure_can_change_role(actor, own, Role.VIEWER)
        assert exc_info.value.rule == "self_role_change"

    def test_resubmitting_own_role_is_not_a_change(self, make_identity, make_account):
        actor = make_identity(role=Role.ADMIN)
        own = make_account(role=Role.ADMIN, account_id=actor.user_id)
        ensure_can_change_role(actor, own, Role.ADMIN)
        ensure_can_change_role(actor, own, None)

    def test_admin_cannot_change_roles(self, make_identity, make_account):
        with pytest.raises(ForbiddenError) as exc_info:
            ensure_can_change_role(make_identity(role=Role.ADMIN), make_account(role=Role.VIEWER), Role.EDITOR)
        assert exc_info.value.rule == "role_change_requires_super_admin"

    def test_super_admin_changes_other_roles(self, make_identity, make_account):
        ensure_can_change_role(make_identity(role=Role.SUPER_ADMIN), make_account(role=Role.VIEWER), Role.EDITOR)

    def test_only_super_admin_assigns_super_admin(self, make_identity):
        with pytest.raises(ForbiddenError):
            ensure_can_assign_role(make_identity(role=Role.OWNER), Role.SUPER_ADMIN)
        ensure_can_assign_role(make_identity(role=Role.SUPER_ADMIN), Role.SUPER_ADMIN)
        ensure_can_assign_role(make_identity(role=Role.OWNER), Role.EDITOR)


class TestSuperUserTargets:
    """The super-user flag protects accounts from non-super-users."""

    def test_non_super_user_cannot_modify_super_user(self, make_identity, make_account):
        with pytest.raises(ForbiddenError) as exc_info:
            ensure_can_modify(make_identity(role=Role.OWNER), make_account(role=Role.VIEWER, is_super_user=True))
        assert exc_info.value.rule == "modify_super_user"

    def test_super_users_are_never_hard_deleted(self, make_identity, make_account):
        actor = make_identity(role=Role.SUPER_ADMIN, is_super_user=True)
        target = make_account(role=Role.ADMIN, is_super_user=True)
        ensure_can_remove(actor, target)
        with pytest.raises(ForbiddenError) as exc_info:
            ensure_can_remove(actor, target, permanent=True)
        assert exc_info.value.rule == "remove_super_user"

    def test_self_removal_is_a_bad_request(self, make_identity, make_account):
        actor = make_identity(role=Role.OWNER)
        with pytest.raises(BadRequestError):
            ensure_can_remove(actor, make_account(role=Role.OWNER, account_id=actor.user_id))


class TestPermissionManagement:
    """Custom lists are managed by super-users only."""

    def test_requires_super_user(self, make_identity, make_account):
        with pytest.raises(ForbiddenError) as exc_info:
            ensure_can_manage_permissions(make_identity(role=Role.SUPER_ADMIN), make_account())
        assert exc_info.value.rule == "super_user"

    def test_super_user_cannot_manage_other_super_users(self, make_identity, make_account):
        actor = make_identity(role=Role.ADMIN, is_super_user=True)
        with pytest.raises(ForbiddenError):
            ensure_can_manage_permissions(actor, make_account(is_super_user=True))

    def test_super_user_manages_own_list(self, make_identity, make_account):
        actor = make_identity(role=Role.ADMIN, is_super_user=True)
        ensure_can_manage_permissions(actor, make_account(role=Role.ADMIN, is_super_user=True, account_id=actor.user_id))

    def test_super_admin_target_needs_super_admin(self, make_identity, make_account):
        actor = make_identity(role=Role.ADMIN, is_super_user=True)
        with pytest.raises(ForbiddenError) as exc_info:
            ensure_can_manage_permissions(actor, make_account(role=Role.SUPER_ADMIN))
        assert exc_info.value.rule == "permissions_of_super_admin"
