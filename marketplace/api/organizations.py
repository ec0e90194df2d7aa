"""
Organization management API routes.

Organizations are the tenants of the marketplace; every company, deal, NDA
and payment belongs to one.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db
from marketplace.middleware.auth import get_current_active_user, require_org_access
from marketplace.models import Organization, Profile
from marketplace.rbac import has_permission
from marketplace.services.audit import record_audit
from marketplace.services.organizations import create_organization as create_org_for_owner

router = APIRouter(prefix="/api/v1/organizations", tags=["organizations"])


# Pydantic schemas
class OrganizationCreate(BaseModel):
    """Schema for creating a new organization."""
    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, min_length=1, max_length=100, pattern=r"^[a-z0-9-]+$")
    description: Optional[str] = Field(None, max_length=2000)
    org_type: Optional[str] = Field(None, pattern=r"^(seller|broker|buyer|advisor)$")
    country: Optional[str] = None


class OrganizationUpdate(BaseModel):
    """Schema for updating an organization."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=2000)
    org_type: Optional[str] = Field(None, pattern=r"^(seller|broker|buyer|advisor)$")
    country: Optional[str] = None
    contact_email: Optional[str] = None
    contact_name: Optional[str] = None


class OrganizationResponse(BaseModel):
    """Schema for organization response."""
    id: UUID
    name: str
    slug: str
    description: Optional[str]
    org_type: str
    country: str
    is_active: bool
    contact_email: Optional[str]
    contact_name: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


@router.post("", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    organization: OrganizationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Create an organization for a user who does not have one yet.

    Args:
        organization: Organization data
        db: Database session
        current_user: Authenticated active user

    Returns:
        Created organization

    Raises:
        HTTPException: If the user already belongs to an organization or the slug is taken
    """
    if current_user.organization_id is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User already belongs to an organization"
        )

    db_org = await create_org_for_owner(
        db,
        current_user,
        name=organization.name,
        slug=organization.slug,
        description=organization.description,
        org_type=organization.org_type,
        country=organization.country,
    )
    record_audit(db, current_user, "organization.created", "organization", db_org.id)
    await db.commit()
    await db.refresh(db_org)

    return db_org


@router.get("", response_model=List[OrganizationResponse])
async def list_organizations(
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    List organizations visible to the user.

    Admins see every organization, other users only their own.
    """
    query = select(Organization).where(Organization.deleted_at.is_(None))
    if not current_user.is_admin:
        query = query.where(Organization.id == current_user.organization_id)

    result = await db.execute(query.order_by(Organization.name))
    return result.scalars().all()


@router.get("/{organization_id}", response_model=OrganizationResponse)
async def get_organization(
    organization_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_org_access)
):
    """
    Get organization by ID.

    Raises:
        HTTPException: If organization not found or access denied
    """
    result = await db.execute(
        select(Organization).where(
            Organization.id == organization_id,
            Organization.deleted_at.is_(None)
        )
    )
    organization = result.scalar_one_or_none()

    if not organization:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Organization {organization_id} not found"
        )

    return organization


@router.put("/{organization_id}", response_model=OrganizationResponse)
async def update_organization(
    organization_id: UUID,
    organization_update: OrganizationUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_org_access)
):
    """
    Update organization.

    Requires 'org:update' permission and membership of the organization.

    Raises:
        HTTPException: If organization not found or permission denied
    """
    if not has_permission(current_user.role, "org:update"):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Permission denied: org:update required"
        )

    result = await db.execute(
        select(Organization).where(
            Organization.id == organization_id,
            Organization.deleted_at.is_(None)
        )
    )
    db_org = result.scalar_one_or_none()

    if not db_org:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Organization {organization_id} not found"
        )

    update_data = organization_update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_org, field, value)

    record_audit(db, current_user, "organization.updated", "organization", db_org.id, {"fields": list(update_data)})
    await db.commit()
    await db.refresh(db_org)

    return db_org
