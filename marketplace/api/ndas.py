"""
NDA API routes.

NDA content is rendered from the bilingual template when the NDA is created
and re-rendered whenever the recipient, purpose or term changes.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db
from marketplace.middleware.auth import ensure_same_organization, require_permissions
from marketplace.models import NDA, Company, Deal, Profile
from marketplace.models.base import utc_now
from marketplace.services.audit import record_audit
from marketplace.services.nda_template import format_company_address, generate_nda_template

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/ndas", tags=["ndas"])

# Changing any of these re-renders the document
TEMPLATE_FIELDS = ("recipient_name", "recipient_email", "recipient_company", "recipient_address", "purpose", "term_years")


# Pydantic schemas
class NDACreate(BaseModel):
    """Schema for creating an NDA."""
    company_id: UUID
    deal_id: Optional[UUID] = None
    recipient_name: str = Field(..., min_length=1, max_length=255)
    recipient_email: EmailStr
    recipient_company: Optional[str] = Field(None, max_length=255)
    recipient_address: Optional[str] = Field(None, max_length=500)
    purpose: str = Field(default="M&A Due Diligence", max_length=255)
    term_years: int = Field(default=3, ge=1, le=10)


class NDAUpdate(BaseModel):
    """Schema for updating an NDA."""
    recipient_name: Optional[str] = Field(None, min_length=1, max_length=255)
    recipient_email: Optional[EmailStr] = None
    recipient_company: Optional[str] = Field(None, max_length=255)
    recipient_address: Optional[str] = Field(None, max_length=500)
    purpose: Optional[str] = Field(None, max_length=255)
    term_years: Optional[int] = Field(None, ge=1, le=10)
    status: Optional[str] = Field(None, pattern=r"^(draft|sent|expired|cancelled)$")
    content: Optional[str] = None


class NDAResponse(BaseModel):
    """Schema for NDA response."""
    id: UUID
    organization_id: UUID
    company_id: UUID
    deal_id: Optional[UUID]
    created_by: Optional[UUID]
    recipient_name: str
    recipient_email: str
    recipient_company: Optional[str]
    recipient_address: Optional[str]
    purpose: str
    term_years: int
    content: str
    status: str
    signed_at: Optional[datetime]
    signed_by: Optional[UUID]
    expires_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


def expiry_for(term_years: int, start: Optional[datetime] = None) -> datetime:
    return (start or utc_now()) + timedelta(days=365 * term_years)


def render_nda(nda: NDA, company: Company) -> str:
    return generate_nda_template(
        company_name=company.name,
        recipient_name=nda.recipient_name,
        recipient_email=nda.recipient_email,
        purpose=nda.purpose or "M&A Due Diligence",
        term_years=nda.term_years or 3,
        company_business_id=company.business_id,
        company_address=format_company_address(company.address, company.city, company.country),
        recipient_company=nda.recipient_company,
        recipient_address=nda.recipient_address,
    )


async def get_accessible_nda(db: AsyncSession, nda_id: UUID, current_user: Profile) -> NDA:
    result = await db.execute(select(NDA).where(NDA.id == nda_id))
    nda = result.scalar_one_or_none()
    if not nda:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"NDA {nda_id} not found"
        )
    ensure_same_organization(nda.organization_id, current_user)
    return nda


async def _get_company(db: AsyncSession, company_id: UUID) -> Optional[Company]:
    result = await db.execute(
        select(Company).where(Company.id == company_id, Company.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


@router.get("", response_model=List[NDAResponse])
async def list_ndas(
    company_id: Optional[UUID] = None,
    deal_id: Optional[UUID] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_permissions("nda:read"))
):
    """List the NDAs of the user's organization, newest first."""
    query = select(NDA).where(NDA.organization_id == current_user.organization_id)
    if company_id:
        query = query.where(NDA.company_id == company_id)
    if deal_id:
        query = query.where(NDA.deal_id == deal_id)
    if status_filter:
        query = query.where(NDA.status == status_filter)

    result = await db.execute(query.order_by(NDA.created_at.desc()))
    return result.scalars().all()


@router.post("", response_model=NDAResponse, status_code=status.HTTP_201_CREATED)
async def create_nda(
    nda: NDACreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_permissions("nda:create"))
):
    """
    Create an NDA for a company, optionally tied to a deal.

    Args:
        nda: Recipient, purpose and term

    Returns:
        The NDA with generated content

    Raises:
        HTTPException: If the company or deal is missing or belongs to another organization
    """
    company = await _get_company(db, nda.company_id)
    if not company:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Company {nda.company_id} not found"
        )
    ensure_same_organization(company.organization_id, current_user)

    if nda.deal_id is not None:
        result = await db.execute(select(Deal).where(Deal.id == nda.deal_id))
        deal = result.scalar_one_or_none()
        if not deal or deal.company_id != company.id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Deal {nda.deal_id} not found"
            )

    db_nda = NDA(
        organization_id=company.organization_id,
        created_by=current_user.id,
        status="draft",
        expires_at=expiry_for(nda.term_years),
        **nda.model_dump(),
    )
    db_nda.content = render_nda(db_nda, company)
    db.add(db_nda)
    await db.flush()

    record_audit(db, current_user, "nda.created", "nda", db_nda.id, {"company_id": str(company.id)})
    await db.commit()
    await db.refresh(db_nda)

    logger.info(f"NDA {db_nda.id} created for company {company.id}")
    return db_nda


@router.get("/{nda_id}", response_model=NDAResponse)
async def get_nda(
    nda_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_permissions("nda:read"))
):
    """Get NDA by ID."""
    return await get_accessible_nda(db, nda_id, current_user)


@router.put("/{nda_id}", response_model=NDAResponse)
async def update_nda(
    nda_id: UUID,
    nda_update: NDAUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_permissions("nda:create"))
):
    """
    Update NDA.

    When a recipient field, the purpose or the term changes, the content is
    regenerated and any explicit content in the request is ignored. A new
    term also moves expires_at.

    Raises:
        HTTPException: If NDA not found, access denied or already signed
    """
    db_nda = await get_accessible_nda(db, nda_id, current_user)
    if db_nda.is_signed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot modify signed NDA"
        )

    update_data = nda_update.model_dump(exclude_unset=True)
    content = update_data.pop("content", None)
    regenerate = any(
        field in update_data and update_data[field] != getattr(db_nda, field)
        for field in TEMPLATE_FIELDS
    )

    for field, value in update_data.items():
        setattr(db_nda, field, value)

    if update_data.get("term_years"):
        db_nda.expires_at = expiry_for(update_data["term_years"])

    if regenerate:
        company = await _get_company(db, db_nda.company_id)
        if company is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Company {db_nda.company_id} not found"
            )
        db_nda.content = render_nda(db_nda, company)
    elif content is not None:
        db_nda.content = content

    record_audit(
        db, current_user, "nda.updated", "nda", db_nda.id,
        {"fields": list(update_data), "regenerated": regenerate},
    )
    await db.commit()
    await db.refresh(db_nda)

    return db_nda


@router.post("/{nda_id}/sign", response_model=NDAResponse)
async def sign_nda(
    nda_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_permissions("nda:sign"))
):
    """
    Sign an NDA as the current user.

    Raises:
        HTTPException: 404 if missing, 409 if already signed or cancelled
    """
    db_nda = await get_accessible_nda(db, nda_id, current_user)
    if db_nda.status in ("signed", "cancelled"):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"NDA is already {db_nda.status}"
        )

    db_nda.status = "signed"
    db_nda.signed_at = utc_now()
    db_nda.signed_by = current_user.id

    record_audit(db, current_user, "nda.signed", "nda", db_nda.id)
    await db.commit()
    await db.refresh(db_nda)

    logger.info(f"NDA {db_nda.id} signed by {current_user.id}")
    return db_nda


@router.delete("/{nda_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_nda(
    nda_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_permissions("nda:create"))
):
    """
    Delete an unsigned NDA.

    Raises:
        HTTPException: 400 if the NDA is signed
    """
    db_nda = await get_accessible_nda(db, nda_id, current_user)
    if db_nda.is_signed:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete signed NDA"
        )

    record_audit(db, current_user, "nda.deleted", "nda", db_nda.id)
    await db.delete(db_nda)
    await db.commit()

    return None
