"""
Role-based access control.

Roles are fixed per profile; each role maps to a set of `resource:action`
permissions. Admins hold every permission.
"""

from typing import Iterable, Optional
from uuid import UUID


class PermissionDeniedError(Exception):
    """Raised when a user lacks a required permission."""


SELLER = "seller"
BROKER = "broker"
BUYER = "buyer"
PARTNER = "partner"
ADMIN = "admin"
ANALYST = "analyst"
VISITOR = "visitor"

ALL_ROLES = (SELLER, BROKER, BUYER, PARTNER, ADMIN, ANALYST, VISITOR)

# Roles a user may pick for themselves at registration
SELF_ASSIGNABLE_ROLES = (SELLER, BROKER, BUYER, PARTNER, VISITOR)


ALL_PERMISSIONS = frozenset({
    "company:create", "company:read", "company:update", "company:delete", "company:publish",
    "deal:create", "deal:read", "deal:update", "deal:delete", "deal:advance_stage",
    "listing:create", "listing:read", "listing:update", "listing:delete", "listing:publish",
    "nda:create", "nda:read", "nda:sign", "nda:verify",
    "payment:create", "payment:read", "payment:process",
    "org:read", "org:update", "org:invite_user", "org:remove_user",
    "admin:read", "admin:write",
    "audit:read",
})

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    SELLER: frozenset({
        "company:create", "company:read", "company:update",
        "deal:read",
        "listing:read",
        "nda:read",
        "payment:read",
        "org:read",
    }),
    BROKER: frozenset({
        "company:create", "company:read", "company:update", "company:publish",
        "deal:create", "deal:read", "deal:update", "deal:advance_stage",
        "listing:create", "listing:read", "listing:update", "listing:publish",
        "nda:create", "nda:read", "nda:verify",
        "payment:read", "payment:process",
        "org:read", "org:update", "org:invite_user",
    }),
    BUYER: frozenset({
        "company:read",
        "deal:read",
        "listing:read",
        "nda:read", "nda:sign",
        "payment:read",
    }),
    PARTNER: frozenset({
        "company:read",
        "deal:read",
        "listing:read",
        "nda:read",
    }),
    ADMIN: ALL_PERMISSIONS,
    ANALYST: frozenset({
        "company:read",
        "deal:read",
        "listing:read",
        "nda:read",
        "payment:read",
        "org:read",
        "audit:read",
    }),
    VISITOR: frozenset(),
}


def get_role_permissions(role: str) -> frozenset[str]:
    """Return the permissions granted to a role (empty for unknown roles)."""
    return ROLE_PERMISSIONS.get(role, frozenset())


def has_permission(role: str, permission: str) -> bool:
    if role == ADMIN:
        return True
    return permission in get_role_permissions(role)


def has_any_permission(role: str, permissions: Iterable[str]) -> bool:
    return any(has_permission(role, p) for p in permissions)


def has_all_permissions(role: str, permissions: Iterable[str]) -> bool:
    return all(has_permission(role, p) for p in permissions)


def assert_permission(role: str, permission: str) -> None:
    """
    Raise PermissionDeniedError unless the role grants the permission.

    Args:
        role: Role name
        permission: Permission string (e.g. "deal:update")

    Raises:
        PermissionDeniedError: If the permission is missing
    """
    if not has_permission(role, permission):
        raise PermissionDeniedError(
            f"Permission denied: User does not have permission '{permission}'"
        )


def is_resource_in_organization(
    resource_organization_id: Optional[UUID],
    user_organization_id: Optional[UUID],
) -> bool:
    """Tenant check: both ids set and equal."""
    if resource_organization_id is None or user_organization_id is None:
        return False
    return resource_organization_id == user_organization_id
