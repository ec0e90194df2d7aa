"""
Authentication API routes.

Provides endpoints for:
- User registration (optionally creating an organization)
- User login (JWT generation)
- Token refresh
- User logout
- Current user profile
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from jose import JWTError
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config.settings import get_settings
from marketplace.database import get_db
from marketplace.middleware.auth import get_current_user
from marketplace.models import Profile
from marketplace.models.base import utc_now
from marketplace.rbac import SELF_ASSIGNABLE_ROLES, get_role_permissions
from marketplace.security import (
    create_access_token,
    create_refresh_token,
    hash_password,
    verify_password,
    verify_token,
)
from marketplace.services.audit import record_audit
from marketplace.services.organizations import create_organization

router = APIRouter(prefix="/api/v1/auth", tags=["authentication"])

settings = get_settings()


# Pydantic schemas
class LoginRequest(BaseModel):
    """Schema for login request."""

    email: EmailStr
    password: str = Field(..., min_length=8)


class TokenResponse(BaseModel):
    """Schema for token response."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds


class RefreshTokenRequest(BaseModel):
    """Schema for refresh token request."""

    refresh_token: str


class RegisterRequest(BaseModel):
    """Schema for user registration request."""

    email: EmailStr
    full_name: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=8)
    role: str = Field(default="seller", pattern=r"^(seller|broker|buyer|partner|visitor)$")
    organization_name: Optional[str] = Field(None, min_length=1, max_length=255)
    locale: str = Field(default="fi", pattern=r"^(fi|en|sv)$")


class RegisterResponse(BaseModel):
    """Schema for registration response."""

    id: UUID
    email: str
    full_name: str
    role: str
    organization_id: Optional[UUID]
    message: str = "User registered successfully"


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str


def _token_response(user: Profile) -> TokenResponse:
    access_token = create_access_token(
        user_id=user.id,
        organization_id=user.organization_id,
        email=user.email,
        role=user.role,
    )
    return TokenResponse(
        access_token=access_token,
        refresh_token=create_refresh_token(user_id=user.id),
        token_type="bearer",
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(register_data: RegisterRequest, db: AsyncSession = Depends(get_db)):
    """
    Register a new user.

    When organization_name is given, a new organization is created with the
    user as its first member.

    Args:
        register_data: User registration data
        db: Database session

    Returns:
        Created user information

    Raises:
        HTTPException: If the email or the organization slug is already taken
    """
    result = await db.execute(
        select(Profile).where(Profile.email == register_data.email)
    )
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"User with email '{register_data.email}' already exists",
        )

    if register_data.role not in SELF_ASSIGNABLE_ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Role '{register_data.role}' cannot be self-assigned",
        )

    new_user = Profile(
        email=register_data.email,
        full_name=register_data.full_name,
        hashed_password=hash_password(register_data.password),
        role=register_data.role,
        locale=register_data.locale,
        is_active=True,
        is_verified=False,
    )
    db.add(new_user)
    await db.flush()

    if register_data.organization_name:
        await create_organization(db, new_user, register_data.organization_name)

    record_audit(db, new_user, "user.registered", "profile", new_user.id)
    await db.commit()
    await db.refresh(new_user)

    return RegisterResponse(
        id=new_user.id,
        email=new_user.email,
        full_name=new_user.full_name,
        role=new_user.role,
        organization_id=new_user.organization_id,
        message="User registered successfully. You can now login.",
    )


@router.post("/login", response_model=TokenResponse)
async def login(login_data: LoginRequest, db: AsyncSession = Depends(get_db)):
    """
    Authenticate user and return JWT tokens.

    Args:
        login_data: Email and password
        db: Database session

    Returns:
        Access and refresh tokens

    Raises:
        HTTPException: If credentials are invalid or the account is disabled
    """
    result = await db.execute(
        select(Profile).where(
            Profile.email == login_data.email, Profile.deleted_at.is_(None)
        )
    )
    user = result.scalar_one_or_none()

    if not user or not user.hashed_password or not verify_password(login_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is disabled")

    user.last_login_at = utc_now()
    await db.commit()

    return _token_response(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(refresh_data: RefreshTokenRequest, db: AsyncSession = Depends(get_db)):
    """
    Refresh access token using refresh token.

    Raises:
        HTTPException: If refresh token is invalid
    """
    try:
        payload = verify_token(refresh_data.refresh_token, token_type="refresh")
        user_id = UUID(payload.get("sub"))
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except (TypeError, ValueError) as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(
        select(Profile).where(Profile.id == user_id, Profile.deleted_at.is_(None))
    )
    user = result.scalar_one_or_none()

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is disabled")

    return _token_response(user)


@router.post("/logout", response_model=MessageResponse)
async def logout(current_user: Profile = Depends(get_current_user)):
    """
    Logout user.

    JWT tokens are stateless, so logout is handled client-side by
    discarding the tokens.
    """
    return MessageResponse(message="Logged out successfully. Please discard your tokens.")


@router.get("/me", response_model=dict)
async def get_current_user_info(current_user: Profile = Depends(get_current_user)):
    """
    Get current authenticated user information.

    Returns:
        User information including role and permissions
    """
    return {
        "id": str(current_user.id),
        "email": current_user.email,
        "full_name": current_user.full_name,
        "organization_id": str(current_user.organization_id) if current_user.organization_id else None,
        "partner_id": str(current_user.partner_id) if current_user.partner_id else None,
        "role": current_user.role,
        "locale": current_user.locale,
        "is_active": current_user.is_active,
        "is_verified": current_user.is_verified,
        "permissions": sorted(get_role_permissions(current_user.role)),
    }
