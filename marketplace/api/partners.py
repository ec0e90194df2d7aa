"""
Partner program API routes.

Admins manage partners and pay out commissions. Partners sign up with a
one-time code, create referral links and follow their own analytics.
"""

import csv
import io
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config.settings import get_settings
from marketplace.database import get_db
from marketplace.middleware.auth import get_current_active_user, require_admin
from marketplace.models import Conversion, Partner, PartnerCommission, Profile, ReferralClick, ReferralLink
from marketplace.models.base import utc_now
from marketplace.rbac import PARTNER
from marketplace.security import generate_code, hash_password
from marketplace.services.analytics import (
    InvalidDateRange,
    link_analytics,
    link_performance,
    parse_date_range,
    partner_analytics,
)
from marketplace.services.audit import record_audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/partners", tags=["partners"])

settings = get_settings()

COMMISSION_STATUS_PATTERN = r"^(pending|calculated|paid|cancelled)$"


# Pydantic schemas
class PartnerCreate(BaseModel):
    """Schema for creating a partner."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)
    commission_percent: float = Field(default=0.0, ge=0, le=100)
    tier: str = Field(default="basic", pattern=r"^(basic|premium|enterprise)$")
    contact_info: Optional[Dict[str, Any]] = None
    settings: Optional[Dict[str, Any]] = None


class PartnerUpdate(BaseModel):
    """Schema for updating a partner."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    commission_percent: Optional[float] = Field(None, ge=0, le=100)
    tier: Optional[str] = Field(None, pattern=r"^(basic|premium|enterprise)$")
    status: Optional[str] = Field(None, pattern=r"^(active|inactive|suspended)$")
    contact_info: Optional[Dict[str, Any]] = None
    settings: Optional[Dict[str, Any]] = None


class PartnerResponse(BaseModel):
    """Schema for partner response."""
    id: UUID
    name: str
    email: str
    phone: Optional[str]
    commission_percent: float
    tier: str
    status: str
    contact_info: Optional[dict]
    settings: Optional[dict]
    signup_code: Optional[str]
    signup_code_expires_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PartnerSignup(BaseModel):
    """Schema for claiming a partner account with a signup code."""
    signup_code: str = Field(..., min_length=1, max_length=32)
    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: str = Field(..., min_length=1, max_length=255)


class CommissionUpdate(BaseModel):
    commission_ids: List[UUID] = Field(..., min_length=1)
    status: str = Field(..., pattern=COMMISSION_STATUS_PATTERN)
    payment_reference: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None


class CommissionResponse(BaseModel):
    id: UUID
    partner_id: UUID
    conversion_id: Optional[UUID]
    commission_amount: float
    status: str
    payment_reference: Optional[str]
    notes: Optional[str]
    generated_at: datetime
    paid_at: Optional[datetime]

    class Config:
        from_attributes = True


class ReferralLinkCreate(BaseModel):
    """Schema for creating a referral link."""
    source_page: str = Field(..., min_length=1, max_length=255)
    campaign_name: Optional[str] = Field(None, max_length=255)
    utm_source: Optional[str] = Field(None, max_length=100)
    utm_medium: Optional[str] = Field(None, max_length=100)
    utm_campaign: Optional[str] = Field(None, max_length=100)
    utm_content: Optional[str] = Field(None, max_length=100)
    utm_term: Optional[str] = Field(None, max_length=100)
    expires_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None


class ReferralLinkResponse(BaseModel):
    """Schema for referral link response."""
    id: UUID
    partner_id: UUID
    link_code: str
    full_url: str
    source_page: str
    campaign_name: Optional[str]
    utm_source: Optional[str]
    utm_medium: Optional[str]
    utm_campaign: Optional[str]
    utm_content: Optional[str]
    utm_term: Optional[str]
    is_active: bool
    expires_at: Optional[datetime]
    click_count: int
    conversion_count: int
    total_revenue: float
    total_commission: float
    last_clicked_at: Optional[datetime]
    created_at: datetime


def full_url(link_code: str) -> str:
    return f"{settings.site_url}?ref={link_code}"


def serialize_link(link: ReferralLink) -> dict:
    data = ReferralLinkResponse(
        id=link.id,
        partner_id=link.partner_id,
        link_code=link.link_code,
        full_url=full_url(link.link_code),
        source_page=link.source_page,
        campaign_name=link.campaign_name,
        utm_source=link.utm_source,
        utm_medium=link.utm_medium,
        utm_campaign=link.utm_campaign,
        utm_content=link.utm_content,
        utm_term=link.utm_term,
        is_active=link.is_active,
        expires_at=link.expires_at,
        click_count=link.click_count or 0,
        conversion_count=link.conversion_count or 0,
        total_revenue=float(link.total_revenue or 0),
        total_commission=float(link.total_commission or 0),
        last_clicked_at=link.last_clicked_at,
        created_at=link.created_at,
    )
    return data.model_dump(mode="json")


async def get_partner_or_404(db: AsyncSession, partner_id: UUID) -> Partner:
    result = await db.execute(
        select(Partner).where(Partner.id == partner_id, Partner.deleted_at.is_(None))
    )
    partner = result.scalar_one_or_none()
    if not partner:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Partner {partner_id} not found"
        )
    return partner


def ensure_partner_access(partner_id: UUID, current_user: Profile) -> None:
    """Admins see every partner, partner users only their own."""
    if current_user.is_admin:
        return
    if current_user.partner_id != partner_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied"
        )


def report_range(start_date: Optional[date], end_date: Optional[date]) -> tuple[datetime, datetime]:
    try:
        return parse_date_range(start_date, end_date)
    except InvalidDateRange as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


async def unique_code(db: AsyncSession, column, length: int = 8) -> str:
    """Generate a code not yet present in the given unique column."""
    while True:
        code = generate_code(length)
        result = await db.execute(select(func.count()).where(column == code))
        if result.scalar_one() == 0:
            return code


async def commission_summary(db: AsyncSession, partner_id: UUID) -> dict:
    result = await db.execute(
        select(PartnerCommission.status, func.count(), func.coalesce(func.sum(PartnerCommission.commission_amount), 0))
        .where(PartnerCommission.partner_id == partner_id)
        .group_by(PartnerCommission.status)
    )
    by_status = {row[0]: (row[1], float(row[2])) for row in result.all()}

    def amount(*statuses: str) -> float:
        return round(sum(by_status.get(s, (0, 0.0))[1] for s in statuses), 2)

    return {
        "total_commissions": sum(count for count, _ in by_status.values()),
        "total_amount": amount("pending", "calculated", "paid"),
        "paid_amount": amount("paid"),
        "pending_amount": amount("pending", "calculated"),
    }


# Partner management

@router.get("", response_model=dict)
async def list_partners(
    status_filter: Optional[str] = Query(None, alias="status"),
    tier: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin)
):
    """List partners with page based pagination (admin only)."""
    conditions = [Partner.deleted_at.is_(None)]
    if status_filter:
        conditions.append(Partner.status == status_filter)
    if tier:
        conditions.append(Partner.tier == tier)

    total = (await db.execute(select(func.count(Partner.id)).where(*conditions))).scalar_one()
    result = await db.execute(
        select(Partner)
        .where(*conditions)
        .order_by(Partner.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    return {
        "partners": [PartnerResponse.model_validate(p).model_dump(mode="json") for p in result.scalars().all()],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": (total + limit - 1) // limit,
        },
    }


@router.post("", response_model=PartnerResponse, status_code=status.HTTP_201_CREATED)
async def create_partner(
    partner: PartnerCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin)
):
    """
    Create a partner with a signup code valid for the configured number of days.

    Args:
        partner: Partner data

    Returns:
        Created partner including its signup code
    """
    db_partner = Partner(
        **partner.model_dump(),
        status="active",
        signup_code=await unique_code(db, Partner.signup_code),
        signup_code_expires_at=utc_now() + timedelta(days=settings.partner_signup_code_days),
        created_by=current_user.id,
    )
    db.add(db_partner)
    await db.flush()

    record_audit(db, current_user, "partner.created", "partner", db_partner.id, {"name": db_partner.name})
    await db.commit()
    await db.refresh(db_partner)

    logger.info(f"Partner {db_partner.id} created")
    return db_partner


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def partner_signup(
    payload: PartnerSignup,
    db: AsyncSession = Depends(get_db)
):
    """
    Create a partner user account from a signup code.

    The code is consumed on success.

    Raises:
        HTTPException: 400 for unknown, used or expired codes, 409 for a taken email
    """
    result = await db.execute(
        select(Partner).where(
            Partner.signup_code == payload.signup_code,
            Partner.deleted_at.is_(None)
        )
    )
    partner = result.scalar_one_or_none()
    now = utc_now()

    if (
        partner is None
        or partner.signup_code_used_at is not None
        or (partner.signup_code_expires_at is not None and partner.signup_code_expires_at < now)
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired signup code"
        )

    existing = await db.execute(select(Profile).where(Profile.email == payload.email))
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered"
        )

    user = Profile(
        email=payload.email,
        full_name=payload.full_name,
        hashed_password=hash_password(payload.password),
        role=PARTNER,
        partner_id=partner.id,
        is_active=True,
    )
    db.add(user)
    partner.signup_code_used_at = now
    await db.flush()

    record_audit(db, user, "partner.signup", "partner", partner.id)
    await db.commit()

    logger.info(f"Partner {partner.id} claimed by user {user.id}")
    return {"user_id": str(user.id), "partner_id": str(partner.id), "email": user.email}


@router.get("/{partner_id}", response_model=dict)
async def get_partner(
    partner_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """Partner with its commission summary (admin or the partner's own users)."""
    ensure_partner_access(partner_id, current_user)
    partner = await get_partner_or_404(db, partner_id)

    return {
        "partner": PartnerResponse.model_validate(partner).model_dump(mode="json"),
        "commission_summary": await commission_summary(db, partner_id),
    }


@router.put("/{partner_id}", response_model=PartnerResponse)
async def update_partner(
    partner_id: UUID,
    partner_update: PartnerUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin)
):
    """Update partner (admin only)."""
    db_partner = await get_partner_or_404(db, partner_id)

    update_data = partner_update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_partner, field, value)

    record_audit(db, current_user, "partner.updated", "partner", db_partner.id, {"fields": list(update_data)})
    await db.commit()
    await db.refresh(db_partner)

    return db_partner


@router.delete("/{partner_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_partner(
    partner_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin)
):
    """Delete partner (soft delete, admin only)."""
    db_partner = await get_partner_or_404(db, partner_id)

    db_partner.soft_delete()
    record_audit(db, current_user, "partner.deleted", "partner", db_partner.id)
    await db.commit()

    return None


# Commissions

@router.get("/{partner_id}/commissions")
async def list_commissions(
    partner_id: UUID,
    status_filter: Optional[str] = Query(None, alias="status", pattern=COMMISSION_STATUS_PATTERN),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    format: str = Query("json", pattern=r"^(json|csv)$"),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Commissions of a partner, newest first.

    Args:
        status_filter: Commission status
        start_date: Earliest generation date
        end_date: Latest generation date
        format: "json" (paginated) or "csv" (every matching row)

    Returns:
        Commissions with a total/paid/pending summary, or a CSV file
    """
    ensure_partner_access(partner_id, current_user)
    await get_partner_or_404(db, partner_id)

    conditions = [PartnerCommission.partner_id == partner_id]
    if status_filter:
        conditions.append(PartnerCommission.status == status_filter)
    if start_date:
        conditions.append(PartnerCommission.generated_at >= datetime.combine(start_date, datetime.min.time()))
    if end_date:
        conditions.append(PartnerCommission.generated_at <= datetime.combine(end_date, datetime.max.time()))

    query = select(PartnerCommission).where(*conditions).order_by(PartnerCommission.generated_at.desc())

    if format == "csv":
        rows = (await db.execute(query)).scalars().all()
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(["id", "conversion_id", "commission_amount", "status", "payment_reference", "generated_at", "paid_at"])
        for c in rows:
            writer.writerow([
                c.id,
                c.conversion_id or "",
                f"{float(c.commission_amount or 0):.2f}",
                c.status,
                c.payment_reference or "",
                c.generated_at.isoformat(),
                c.paid_at.isoformat() if c.paid_at else "",
            ])
        return Response(
            content=buffer.getvalue(),
            media_type="text/csv",
            headers={"Content-Disposition": f'attachment; filename="commissions-{partner_id}.csv"'},
        )

    total = (await db.execute(select(func.count(PartnerCommission.id)).where(*conditions))).scalar_one()
    rows = (await db.execute(query.offset((page - 1) * limit).limit(limit))).scalars().all()

    return {
        "commissions": [CommissionResponse.model_validate(c).model_dump(mode="json") for c in rows],
        "summary": await commission_summary(db, partner_id),
        "pagination": {"page": page, "limit": limit, "total": total, "pages": (total + limit - 1) // limit},
    }


@router.patch("/{partner_id}/commissions", response_model=dict)
async def update_commissions(
    partner_id: UUID,
    payload: CommissionUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin)
):
    """
    Bulk status change for a partner's commissions (admin only).

    Marking commissions paid stamps paid_at and the payment reference.

    Raises:
        HTTPException: 404 if any commission id is not the partner's
    """
    await get_partner_or_404(db, partner_id)

    result = await db.execute(
        select(PartnerCommission).where(
            PartnerCommission.id.in_(payload.commission_ids),
            PartnerCommission.partner_id == partner_id,
        )
    )
    commissions = result.scalars().all()
    found = {c.id for c in commissions}
    missing = [str(i) for i in payload.commission_ids if i not in found]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Commissions not found: {', '.join(missing)}"
        )

    now = utc_now()
    for commission in commissions:
        previous_status = commission.status
        commission.status = payload.status
        if payload.status == "paid":
            commission.paid_at = now
            commission.payment_reference = payload.payment_reference
        if payload.notes is not None:
            commission.notes = payload.notes
        record_audit(
            db, current_user, "commission.updated", "partner_commission", commission.id,
            {"from": previous_status, "to": payload.status, "partner_id": str(partner_id)},
        )

    await db.commit()

    return {
        "updated": len(commissions),
        "commissions": [CommissionResponse.model_validate(c).model_dump(mode="json") for c in commissions],
    }


# Referral links

async def get_partner_link(db: AsyncSession, partner_id: UUID, link_id: UUID) -> ReferralLink:
    result = await db.execute(
        select(ReferralLink).where(ReferralLink.id == link_id, ReferralLink.partner_id == partner_id)
    )
    link = result.scalar_one_or_none()
    if not link:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Referral link {link_id} not found"
        )
    return link


@router.get("/{partner_id}/referral-links", response_model=dict)
async def list_referral_links(
    partner_id: UUID,
    is_active: Optional[bool] = None,
    source_page: Optional[str] = None,
    campaign: Optional[str] = None,
    include_stats: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Referral links of a partner.

    With include_stats each link also carries its 10 latest clicks and
    conversions and its performance ratios.
    """
    ensure_partner_access(partner_id, current_user)
    await get_partner_or_404(db, partner_id)

    query = select(ReferralLink).where(ReferralLink.partner_id == partner_id)
    if is_active is not None:
        query = query.where(ReferralLink.is_active.is_(is_active))
    if source_page:
        query = query.where(ReferralLink.source_page == source_page)
    if campaign:
        query = query.where(ReferralLink.campaign_name == campaign)

    links = (await db.execute(query.order_by(ReferralLink.created_at.desc()))).scalars().all()

    items = []
    for link in links:
        item = serialize_link(link)
        if include_stats:
            clicks = (await db.execute(
                select(ReferralClick)
                .where(ReferralClick.link_id == link.id)
                .order_by(ReferralClick.clicked_at.desc())
                .limit(10)
            )).scalars().all()
            conversions = (await db.execute(
                select(Conversion)
                .where(Conversion.link_id == link.id)
                .order_by(Conversion.converted_at.desc())
                .limit(10)
            )).scalars().all()
            item["recent_clicks"] = [
                {"id": str(c.id), "clicked_at": c.clicked_at.isoformat(), "country": c.country,
                 "device_type": c.device_type, "converted": c.converted}
                for c in clicks
            ]
            item["recent_conversions"] = [
                {"id": str(c.id), "conversion_type": c.conversion_type,
                 "conversion_value": float(c.conversion_value or 0), "converted_at": c.converted_at.isoformat()}
                for c in conversions
            ]
            item["performance"] = link_performance(link)
        items.append(item)

    return {"links": items, "total": len(items)}


@router.post("/{partner_id}/referral-links", status_code=status.HTTP_201_CREATED)
async def create_referral_link(
    partner_id: UUID,
    payload: ReferralLinkCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Create a referral link with a generated unique code.

    Raises:
        HTTPException: 400 if the partner is not active
    """
    ensure_partner_access(partner_id, current_user)
    partner = await get_partner_or_404(db, partner_id)
    if not partner.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Partner is not active"
        )

    data = payload.model_dump(exclude={"metadata"})
    link = ReferralLink(
        partner_id=partner_id,
        link_code=await unique_code(db, ReferralLink.link_code),
        link_metadata=payload.metadata or {},
        is_active=True,
        click_count=0,
        conversion_count=0,
        total_revenue=0.0,
        total_commission=0.0,
        **data,
    )
    db.add(link)
    await db.flush()

    record_audit(db, current_user, "referral_link.created", "referral_link", link.id, {"partner_id": str(partner_id)})
    await db.commit()
    await db.refresh(link)

    return serialize_link(link)


@router.get("/{partner_id}/referral-links/{link_id}", response_model=dict)
async def get_referral_link_analytics(
    partner_id: UUID,
    link_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """Referral link with analytics for a date range (last 30 days by default)."""
    ensure_partner_access(partner_id, current_user)
    link = await get_partner_link(db, partner_id, link_id)

    start, end = report_range(start_date, end_date)
    return {
        "link": serialize_link(link),
        "analytics": await link_analytics(db, link, start, end),
    }


@router.get("/{partner_id}/analytics", response_model=dict)
async def get_partner_analytics(
    partner_id: UUID,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    include_funnel: bool = True,
    include_geo: bool = True,
    include_devices: bool = True,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Partner performance dashboard.

    Args:
        start_date: Range start, 30 days before end_date by default
        end_date: Range end, today by default
        include_funnel: Add the conversion funnel
        include_geo: Add the top 20 countries by clicks
        include_devices: Add the device breakdown

    Returns:
        Overview, daily series, top sources and top links
    """
    ensure_partner_access(partner_id, current_user)
    partner = await get_partner_or_404(db, partner_id)

    start, end = report_range(start_date, end_date)
    report = await partner_analytics(
        db,
        partner_id,
        start,
        end,
        include_funnel=include_funnel,
        include_geo=include_geo,
        include_devices=include_devices,
    )
    report["partner"] = {"id": str(partner.id), "name": partner.name, "tier": partner.tier}
    return report
