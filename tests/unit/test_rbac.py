"""
Unit tests for role-based access control.
"""

from uuid import uuid4

import pytest

from marketplace.rbac import (
    ALL_PERMISSIONS,
    ALL_ROLES,
    PermissionDeniedError,
    assert_permission,
    get_role_permissions,
    has_all_permissions,
    has_any_permission,
    has_permission,
    is_resource_in_organization,
)

pytestmark = pytest.mark.unit


class TestRolePermissions:
    """Test the role to permission mapping."""

    def test_admin_has_every_permission(self):
        for permission in ALL_PERMISSIONS:
            assert has_permission("admin", permission)

    def test_visitor_has_no_permissions(self):
        assert get_role_permissions("visitor") == frozenset()
        assert not has_permission("visitor", "company:read")

    def test_unknown_role_has_no_permissions(self):
        assert get_role_permissions("superuser") == frozenset()

    @pytest.mark.parametrize("role,permission,expected", [
        ("seller", "company:create", True),
        ("seller", "deal:create", False),
        ("broker", "deal:advance_stage", True),
        ("broker", "nda:sign", False),
        ("buyer", "nda:sign", True),
        ("buyer", "company:update", False),
        ("analyst", "audit:read", True),
        ("partner", "payment:read", False),
    ])
    def test_role_matrix(self, role, permission, expected):
        assert has_permission(role, permission) is expected

    def test_role_permissions_are_known(self):
        for role in ALL_ROLES:
            assert get_role_permissions(role) <= ALL_PERMISSIONS

    def test_any_and_all(self):
        assert has_any_permission("seller", ["deal:create", "company:create"])
        assert not has_all_permissions("seller", ["deal:create", "company:create"])
        assert has_all_permissions("broker", ["deal:create", "nda:create"])


class TestAssertPermission:
    """Test assert_permission."""

    def test_granted(self):
        assert_permission("broker", "deal:update")

    def test_denied(self):
        with pytest.raises(PermissionDeniedError, match="deal:delete"):
            assert_permission("seller", "deal:delete")


class TestOrganizationCheck:
    """Test the tenant comparison helper."""

    def test_same_organization(self):
        org_id = uuid4()
        assert is_resource_in_organization(org_id, org_id)

    def test_different_organization(self):
        assert not is_resource_in_organization(uuid4(), uuid4())

    def test_missing_ids(self):
        assert not is_resource_in_organization(None, uuid4())
        assert not is_resource_in_organization(uuid4(), None)
        assert not is_resource_in_organization(None, None)
