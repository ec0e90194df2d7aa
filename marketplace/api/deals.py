"""
Deal pipeline API routes.

A deal tracks one buyer's path from lead to closing for a company. Stage
changes are recorded as deal_stages rows and deal_activities entries.
"""

import logging
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.database import get_db
from marketplace.middleware.auth import (
    ensure_same_organization,
    require_permissions,
    require_roles,
)
from marketplace.models import Company, Deal, DealActivity, DealStage, Profile
from marketplace.models.deal import DEAL_STAGES
from marketplace.services.audit import record_audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/deals", tags=["deals"])

STAGE_PATTERN = "^(" + "|".join(DEAL_STAGES) + ")$"


# Pydantic schemas
class DealCreate(BaseModel):
    """Schema for creating a deal."""
    company_id: UUID
    buyer_id: Optional[UUID] = None
    stage: str = Field(default="lead", pattern=STAGE_PATTERN)
    deal_type: str = Field(default="acquisition", max_length=50)
    estimated_value: Optional[float] = Field(None, ge=0)
    expected_close_date: Optional[date] = None
    notes: Optional[str] = None


class DealUpdate(BaseModel):
    """Schema for updating a deal."""
    buyer_id: Optional[UUID] = None
    stage: Optional[str] = Field(None, pattern=STAGE_PATTERN)
    status: Optional[str] = Field(None, pattern=r"^(active|won|lost|cancelled|on_hold)$")
    deal_type: Optional[str] = Field(None, max_length=50)
    estimated_value: Optional[float] = Field(None, ge=0)
    expected_close_date: Optional[date] = None
    actual_close_date: Optional[date] = None
    notes: Optional[str] = None


class DealStageResponse(BaseModel):
    id: UUID
    stage: str
    entered_at: datetime

    class Config:
        from_attributes = True


class DealActivityResponse(BaseModel):
    id: UUID
    user_id: Optional[UUID]
    activity_type: str
    description: str
    created_at: datetime

    class Config:
        from_attributes = True


class DealCompanySummary(BaseModel):
    id: UUID
    name: str
    industry: str
    status: str

    class Config:
        from_attributes = True


class DealNDASummary(BaseModel):
    id: UUID
    recipient_name: str
    status: str
    signed_at: Optional[datetime]

    class Config:
        from_attributes = True


class DealResponse(BaseModel):
    """Schema for deal response."""
    id: UUID
    organization_id: UUID
    company_id: UUID
    buyer_id: Optional[UUID]
    created_by: Optional[UUID]
    stage: str
    status: str
    deal_type: str
    estimated_value: Optional[float]
    expected_close_date: Optional[date]
    actual_close_date: Optional[date]
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DealDetailResponse(DealResponse):
    """Deal with company, stage history, activities and NDAs."""
    company: Optional[DealCompanySummary] = None
    stages: List[DealStageResponse] = []
    activities: List[DealActivityResponse] = []
    ndas: List[DealNDASummary] = []


async def load_deal(db: AsyncSession, deal_id: UUID) -> Optional[Deal]:
    result = await db.execute(
        select(Deal)
        .options(
            selectinload(Deal.company),
            selectinload(Deal.stages),
            selectinload(Deal.activities),
            selectinload(Deal.ndas),
        )
        .where(Deal.id == deal_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_accessible_deal(db: AsyncSession, deal_id: UUID, current_user: Profile) -> Deal:
    deal = await load_deal(db, deal_id)
    if not deal:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Deal {deal_id} not found"
        )
    ensure_same_organization(deal.organization_id, current_user)
    return deal


@router.get("", response_model=List[DealResponse])
async def list_deals(
    stage: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_permissions("deal:read"))
):
    """
    List the deals of the user's organization, newest first.

    Args:
        stage: Optional pipeline stage filter
        status_filter: Optional status filter
    """
    query = select(Deal).where(Deal.organization_id == current_user.organization_id)
    if stage:
        query = query.where(Deal.stage == stage)
    if status_filter:
        query = query.where(Deal.status == status_filter)

    result = await db.execute(query.order_by(Deal.created_at.desc()).offset(skip).limit(limit))
    return result.scalars().all()


@router.post("", response_model=DealDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_deal(
    deal: DealCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_permissions("deal:create"))
):
    """
    Create a deal for a company of the user's organization.

    The initial stage is recorded in the stage history.

    Raises:
        HTTPException: If the company is missing or belongs to another organization
    """
    result = await db.execute(
        select(Company).where(Company.id == deal.company_id, Company.deleted_at.is_(None))
    )
    company = result.scalar_one_or_none()
    if not company:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Company {deal.company_id} not found"
        )
    ensure_same_organization(company.organization_id, current_user)

    db_deal = Deal(
        organization_id=company.organization_id,
        created_by=current_user.id,
        **deal.model_dump(),
    )
    db.add(db_deal)
    await db.flush()

    db.add(DealStage(deal_id=db_deal.id, stage=db_deal.stage))
    db.add(DealActivity(
        deal_id=db_deal.id,
        user_id=current_user.id,
        activity_type="created",
        description=f"Deal created in stage {db_deal.stage}",
    ))
    record_audit(db, current_user, "deal.created", "deal", db_deal.id, {"company_id": str(company.id)})
    await db.commit()

    logger.info(f"Deal {db_deal.id} created for company {company.id}")
    return await load_deal(db, db_deal.id)


@router.get("/{deal_id}", response_model=DealDetailResponse)
async def get_deal(
    deal_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_permissions("deal:read"))
):
    """
    Get deal by ID with company, stages, activities and NDAs.

    Raises:
        HTTPException: If deal not found or access denied
    """
    return await get_accessible_deal(db, deal_id, current_user)


@router.put("/{deal_id}", response_model=DealDetailResponse)
async def update_deal(
    deal_id: UUID,
    deal_update: DealUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_permissions("deal:update"))
):
    """
    Update deal.

    A stage change appends a stage row and a stage_changed activity.

    Raises:
        HTTPException: If deal not found or access denied
    """
    db_deal = await get_accessible_deal(db, deal_id, current_user)

    update_data = deal_update.model_dump(exclude_unset=True)
    new_stage = update_data.get("stage")
    stage_changed = new_stage is not None and new_stage != db_deal.stage

    for field, value in update_data.items():
        setattr(db_deal, field, value)

    if stage_changed:
        db.add(DealStage(deal_id=db_deal.id, stage=new_stage))
        db.add(DealActivity(
            deal_id=db_deal.id,
            user_id=current_user.id,
            activity_type="stage_changed",
            description=f"Stage changed to {new_stage}",
        ))

    record_audit(db, current_user, "deal.updated", "deal", db_deal.id, {"fields": list(update_data)})
    await db.commit()

    return await load_deal(db, deal_id)


@router.delete("/{deal_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_deal(
    deal_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_roles(
        "admin", "broker",
        detail="Only admins and brokers can delete deals"
    ))
):
    """
    Cancel a deal.

    Deals are kept for history; the status becomes "cancelled".
    """
    db_deal = await get_accessible_deal(db, deal_id, current_user)

    db_deal.status = "cancelled"
    db.add(DealActivity(
        deal_id=db_deal.id,
        user_id=current_user.id,
        activity_type="cancelled",
        description="Deal cancelled",
    ))
    record_audit(db, current_user, "deal.cancelled", "deal", db_deal.id)
    await db.commit()

    return None
