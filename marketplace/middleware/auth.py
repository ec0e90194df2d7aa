"""
JWT authentication and RBAC authorization middleware.

Provides FastAPI dependencies for:
- JWT token validation
- User authentication (required or optional)
- Role and permission based authorization
- Organization-level access control
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from marketplace.config.settings import get_settings
from marketplace.database import get_db
from marketplace.models import Organization, Profile
from marketplace.rbac import has_permission, is_resource_in_organization


# Missing credentials are reported as 401 by get_current_user
security = HTTPBearer(auto_error=False)

settings = get_settings()


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def _load_user_from_token(token: str, db: AsyncSession) -> Optional[Profile]:
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError:
        return None

    user_id = payload.get("sub")
    if user_id is None or payload.get("type") != "access":
        return None

    try:
        user_uuid = UUID(user_id)
    except ValueError:
        return None

    result = await db.execute(
        select(Profile).where(Profile.id == user_uuid, Profile.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Profile:
    """
    Validate JWT token and return current user.

    Args:
        credentials: HTTP Authorization header with Bearer token
        db: Database session

    Returns:
        Authenticated user

    Raises:
        HTTPException: If token is missing, invalid or the user does not exist
    """
    if credentials is None:
        raise _credentials_exception()

    user = await _load_user_from_token(credentials.credentials, db)
    if user is None:
        raise _credentials_exception()

    return user


async def get_current_active_user(
    current_user: Profile = Depends(get_current_user)
) -> Profile:
    """
    Get current user and verify they are active.

    Raises:
        HTTPException: If user is inactive
    """
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )
    return current_user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Optional[Profile]:
    """
    Return the authenticated active user, or None for anonymous requests.

    Used by public endpoints (survey answers, tracking) that enrich data
    when the caller happens to be logged in.
    """
    if credentials is None:
        return None
    user = await _load_user_from_token(credentials.credentials, db)
    if user is None or not user.is_active:
        return None
    return user


def require_permissions(*permission_names: str):
    """
    Dependency factory for permission-based authorization.

    Usage:
        @router.post("/deals")
        async def create_deal(user: Profile = Depends(require_permissions("deal:create"))):
            ...

    Args:
        *permission_names: Required permission names (e.g., "deal:create")

    Returns:
        FastAPI dependency function

    Raises:
        HTTPException: If user doesn't have required permissions
    """
    async def permission_checker(
        current_user: Profile = Depends(get_current_active_user)
    ) -> Profile:
        for required_permission in permission_names:
            if not has_permission(current_user.role, required_permission):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Permission denied: {required_permission} required"
                )
        return current_user

    return permission_checker


def require_roles(*roles: str, detail: Optional[str] = None):
    """
    Dependency factory restricting an endpoint to a set of roles.

    Args:
        *roles: Allowed role names
        detail: Custom 403 message

    Returns:
        FastAPI dependency function
    """
    async def role_checker(
        current_user: Profile = Depends(get_current_active_user)
    ) -> Profile:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=detail or f"Role not allowed: requires one of {', '.join(roles)}"
            )
        return current_user

    return role_checker


async def require_admin(
    current_user: Profile = Depends(get_current_active_user)
) -> Profile:
    """
    Require a platform administrator.

    Raises:
        HTTPException: If user is not an admin
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden - Admin access required"
        )
    return current_user


class OrganizationAccessChecker:
    """
    Dependency class for organization-level access control.

    Ensures user belongs to the organization in the organization_id path
    parameter.

    Usage:
        @router.get("/organizations/{organization_id}")
        async def get_org(
            organization_id: UUID,
            user: Profile = Depends(OrganizationAccessChecker())
        ):
            ...
    """

    def __call__(
        self,
        organization_id: UUID,
        current_user: Profile = Depends(get_current_active_user)
    ) -> Profile:
        if current_user.organization_id != organization_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied: You do not belong to this organization"
            )
        return current_user


require_org_access = OrganizationAccessChecker()


def ensure_same_organization(resource_organization_id: Optional[UUID], current_user: Profile) -> None:
    """
    Tenant isolation check for a loaded row. Admins see every organization.

    Raises:
        HTTPException: 403 if the row belongs to another organization
    """
    if current_user.is_admin:
        return
    if not is_resource_in_organization(resource_organization_id, current_user.organization_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied"
        )


async def get_org_from_user(
    current_user: Profile = Depends(get_current_active_user),
    db: AsyncSession = Depends(get_db)
) -> Organization:
    """
    Get the organization of the current user.

    Useful for scoping queries to the user's organization.

    Raises:
        HTTPException: If the user has no organization
    """
    if current_user.organization_id is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Organization not found"
        )

    result = await db.execute(
        select(Organization).where(
            Organization.id == current_user.organization_id,
            Organization.deleted_at.is_(None)
        )
    )
    organization = result.scalar_one_or_none()

    if organization is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Organization not found"
        )

    return organization
