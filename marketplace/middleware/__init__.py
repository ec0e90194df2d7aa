"""
Authentication and authorization middleware for the marketplace API.
"""

from .auth import (
    ensure_same_organization,
    get_current_active_user,
    get_current_user,
    get_optional_user,
    get_org_from_user,
    require_admin,
    require_org_access,
    require_permissions,
    require_roles,
)

__all__ = [
    "get_current_user",
    "get_current_active_user",
    "get_optional_user",
    "get_org_from_user",
    "require_permissions",
    "require_roles",
    "require_admin",
    "require_org_access",
    "ensure_same_organization",
]
