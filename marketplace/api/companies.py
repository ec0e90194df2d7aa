"""
Company management API routes.

Companies are the businesses sold or financed through the marketplace. Every
company belongs to the organization of the user who created it.
"""

import logging
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.database import get_db
from marketplace.middleware.auth import (
    ensure_same_organization,
    get_current_active_user,
    get_org_from_user,
    require_roles,
)
from marketplace.models import Company, CompanyFinancials, Organization, Profile
from marketplace.services.audit import record_audit
from marketplace.services.enrichment import enrich_company
from marketplace.services.ytj import YTJClient, get_ytj_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/companies", tags=["companies"])

COMPANY_EDITOR_ROLES = ("seller", "broker", "admin", "partner")


# Pydantic schemas
class FinancialsInput(BaseModel):
    """Current-year key figures supplied with a company."""
    revenue: Optional[float] = None
    ebitda: Optional[float] = None
    net_profit: Optional[float] = None
    total_assets: Optional[float] = None
    total_liabilities: Optional[float] = None


class CompanyCreate(BaseModel):
    """Schema for creating a company. name and industry are checked in the handler."""
    name: Optional[str] = Field(None, max_length=255)
    industry: Optional[str] = Field(None, max_length=100)
    business_id: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = None
    company_form: Optional[str] = None
    legal_structure: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    employees: Optional[int] = Field(None, ge=0)
    founded_year: Optional[int] = Field(None, ge=1800, le=2100)
    products: Optional[List[str]] = None
    asking_price: Optional[float] = Field(None, ge=0)
    status: Optional[str] = Field(None, pattern=r"^(active|inactive|sold|draft)$")
    financials: Optional[FinancialsInput] = None


class CompanyUpdate(BaseModel):
    """Schema for updating a company."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    industry: Optional[str] = Field(None, min_length=1, max_length=100)
    business_id: Optional[str] = Field(None, max_length=20)
    description: Optional[str] = None
    company_form: Optional[str] = None
    legal_structure: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    employees: Optional[int] = Field(None, ge=0)
    founded_year: Optional[int] = Field(None, ge=1800, le=2100)
    products: Optional[List[str]] = None
    asking_price: Optional[float] = Field(None, ge=0)
    status: Optional[str] = Field(None, pattern=r"^(active|inactive|sold|draft)$")


class CompanyFinancialsResponse(BaseModel):
    """Schema for one year of company financials."""
    id: UUID
    fiscal_year: int
    revenue: Optional[float]
    ebitda: Optional[float]
    net_income: Optional[float]
    total_assets: Optional[float]
    total_liabilities: Optional[float]

    class Config:
        from_attributes = True


class CompanyResponse(BaseModel):
    """Schema for company response."""
    id: UUID
    organization_id: UUID
    created_by: Optional[UUID]
    name: str
    business_id: Optional[str]
    industry: str
    description: Optional[str]
    company_form: Optional[str]
    legal_structure: str
    country: str
    city: Optional[str]
    address: Optional[str]
    website: Optional[str]
    employees: Optional[int]
    founded_year: Optional[int]
    products: Optional[list]
    asking_price: Optional[float]
    status: str
    enrichment_confidence: Optional[int]
    enrichment_completeness: Optional[int]
    enriched_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime
    financials: List[CompanyFinancialsResponse] = []

    class Config:
        from_attributes = True


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class CompanyListResponse(BaseModel):
    """Schema for the paginated company list."""
    companies: List[CompanyResponse]
    pagination: Pagination


async def load_company(db: AsyncSession, company_id: UUID) -> Optional[Company]:
    """Company with financials, None when missing or soft deleted."""
    result = await db.execute(
        select(Company)
        .options(selectinload(Company.financials))
        .where(Company.id == company_id, Company.deleted_at.is_(None))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_accessible_company(db: AsyncSession, company_id: UUID, current_user: Profile) -> Company:
    """
    Load a company the user may see.

    Raises:
        HTTPException: 404 if missing, 403 if it belongs to another organization
    """
    company = await load_company(db, company_id)
    if not company:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Company {company_id} not found"
        )
    ensure_same_organization(company.organization_id, current_user)
    return company


@router.get("", response_model=CompanyListResponse)
async def list_companies(
    status_filter: Optional[str] = Query(None, alias="status"),
    industry: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    organization: Organization = Depends(get_org_from_user)
):
    """
    List the companies of the user's organization, newest first.

    Args:
        status_filter: Optional company status
        industry: Optional industry
        limit: Page size
        offset: Rows to skip

    Returns:
        Companies with financials and pagination info

    Raises:
        HTTPException: If the user has no organization
    """
    conditions = [
        Company.organization_id == organization.id,
        Company.deleted_at.is_(None),
    ]
    if status_filter:
        conditions.append(Company.status == status_filter)
    if industry:
        conditions.append(Company.industry == industry)

    total = (await db.execute(select(func.count(Company.id)).where(*conditions))).scalar_one()

    result = await db.execute(
        select(Company)
        .options(selectinload(Company.financials))
        .where(*conditions)
        .order_by(Company.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    companies = result.scalars().all()

    return CompanyListResponse(
        companies=companies,
        pagination=Pagination(
            total=total,
            limit=limit,
            offset=offset,
            has_more=total > offset + limit,
        ),
    )


@router.post("", response_model=CompanyResponse, status_code=status.HTTP_201_CREATED)
async def create_company(
    company: CompanyCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(
        *COMPANY_EDITOR_ROLES,
        detail="Forbidden - Only sellers, brokers, partners and admins can create companies"
    ))
):
    """
    Create a company in the user's organization.

    Optional financials create a company_financials row for the current
    fiscal year.

    Raises:
        HTTPException: If required fields are missing or the user has no organization
    """
    if not company.name or not company.industry:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields: name and industry are required"
        )

    if current_user.organization_id is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Organization not found"
        )

    data = company.model_dump(exclude={"financials"}, exclude_none=True)
    data.setdefault("country", "Finland")
    data.setdefault("legal_structure", "family_owned")
    data.setdefault("status", "active")

    db_company = Company(
        organization_id=current_user.organization_id,
        created_by=current_user.id,
        **data,
    )
    db.add(db_company)
    await db.flush()

    if company.financials is not None:
        figures = company.financials
        db.add(CompanyFinancials(
            company_id=db_company.id,
            fiscal_year=date.today().year,
            revenue=figures.revenue,
            ebitda=figures.ebitda,
            net_income=figures.net_profit,
            total_assets=figures.total_assets,
            total_liabilities=figures.total_liabilities,
        ))

    record_audit(db, current_user, "company.created", "company", db_company.id, {"name": db_company.name})
    await db.commit()

    logger.info(f"Company {db_company.id} created by {current_user.id}")
    return await load_company(db, db_company.id)


@router.get("/{company_id}", response_model=CompanyResponse)
async def get_company(
    company_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Get company by ID.

    Raises:
        HTTPException: If company not found or it belongs to another organization
    """
    return await get_accessible_company(db, company_id, current_user)


@router.put("/{company_id}", response_model=CompanyResponse)
async def update_company(
    company_id: UUID,
    company_update: CompanyUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(
        *COMPANY_EDITOR_ROLES,
        detail="Forbidden - Only sellers, brokers, partners and admins can update companies"
    ))
):
    """
    Update company.

    Raises:
        HTTPException: If company not found or access denied
    """
    db_company = await get_accessible_company(db, company_id, current_user)

    update_data = company_update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_company, field, value)

    record_audit(db, current_user, "company.updated", "company", db_company.id, {"fields": list(update_data)})
    await db.commit()

    return await load_company(db, company_id)


@router.delete("/{company_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_company(
    company_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(
        "admin", "broker",
        detail="Only admins and brokers can delete companies"
    ))
):
    """
    Delete company (soft delete).

    Sets deleted_at and marks the company inactive.

    Raises:
        HTTPException: If company not found or access denied
    """
    db_company = await get_accessible_company(db, company_id, current_user)

    db_company.soft_delete()
    record_audit(db, current_user, "company.deleted", "company", db_company.id)
    await db.commit()

    return None


@router.post("/{company_id}/enrich", response_model=dict)
async def enrich(
    company_id: UUID,
    db: AsyncSession = Depends(get_db),
    ytj_client: YTJClient = Depends(get_ytj_client),
    current_user: Profile = Depends(require_roles(
        *COMPANY_EDITOR_ROLES,
        detail="Forbidden - Only sellers, brokers, partners and admins can enrich companies"
    ))
):
    """
    Enrich a company from the business registry and stored financials.

    Returns:
        The enrichment snapshot with confidence and completeness scores
    """
    db_company = await get_accessible_company(db, company_id, current_user)

    snapshot = await enrich_company(db, db_company, ytj_client)
    record_audit(db, current_user, "company.enriched", "company", db_company.id, snapshot["metadata"])
    await db.commit()

    return {"company_id": str(db_company.id), "enrichment": snapshot}
