"""
Referral tracking API routes.

Public endpoints called by the marketing site: record referral clicks,
look up the attribution of a session and record conversions. Listing
conversions requires login and is scoped to the caller.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config.settings import get_settings
from marketplace.database import get_db
from marketplace.middleware.auth import get_current_active_user, get_optional_user, require_admin
from marketplace.models import Company, Conversion, Partner, Profile, ReferralLink
from marketplace.services.attribution import (
    CONVERSION_TYPES,
    InvalidReferralCode,
    detect_bot,
    get_client_ip,
    get_session_attribution,
    recalculate_commission,
    track_conversion,
    track_referral_click,
)
from marketplace.services.audit import record_audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/tracking", tags=["tracking"])

settings = get_settings()

CONVERSION_TYPE_PATTERN = "^(" + "|".join(CONVERSION_TYPES) + ")$"


# Pydantic schemas
class DeviceInfo(BaseModel):
    device_type: Optional[str] = None
    browser: Optional[str] = None
    os: Optional[str] = None
    screen_resolution: Optional[str] = None


class LocationInfo(BaseModel):
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None


class ReferralClickRequest(BaseModel):
    """Schema for a referral click from the marketing site."""
    ref_code: str = Field(..., min_length=1, max_length=32)
    landing_page: str = Field(..., pattern=r"^https?://")
    referrer_url: Optional[str] = None
    session_id: str = Field(..., min_length=1, max_length=255)
    fingerprint: Optional[str] = Field(None, max_length=64)
    user_agent: Optional[str] = None
    device_info: DeviceInfo = Field(default_factory=DeviceInfo)
    location: LocationInfo = Field(default_factory=LocationInfo)


class ConversionRequest(BaseModel):
    """Schema for recording a conversion."""
    session_id: str = Field(..., min_length=1, max_length=255)
    conversion_type: str = Field(..., pattern=CONVERSION_TYPE_PATTERN)
    conversion_value: float = Field(default=0.0, ge=0)
    company_id: Optional[UUID] = None
    user_id: Optional[UUID] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ConversionUpdate(BaseModel):
    conversion_value: float = Field(..., ge=0)


def serialize_conversion(conversion: Conversion) -> dict:
    return {
        "id": str(conversion.id),
        "session_id": conversion.session_id,
        "conversion_type": conversion.conversion_type,
        "conversion_value": float(conversion.conversion_value or 0),
        "commission_amount": float(conversion.commission_amount or 0),
        "commission_eligible": conversion.commission_eligible,
        "partner_id": str(conversion.partner_id) if conversion.partner_id else None,
        "link_id": str(conversion.link_id) if conversion.link_id else None,
        "click_id": str(conversion.click_id) if conversion.click_id else None,
        "company_id": str(conversion.company_id) if conversion.company_id else None,
        "user_id": str(conversion.user_id) if conversion.user_id else None,
        "first_touch": conversion.first_touch,
        "metadata": conversion.conversion_metadata or {},
        "converted_at": conversion.converted_at.isoformat(),
    }


@router.post("/referral-click", status_code=status.HTTP_201_CREATED)
async def record_referral_click(
    payload: ReferralClickRequest,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Record a click on a partner referral link.

    Bot traffic is acknowledged but not stored. A repeat of the same click
    within the duplicate window returns the stored click.

    Returns:
        Click id and the end of the attribution window

    Raises:
        HTTPException: 400 (code INVALID_REF_CODE) for unknown, inactive or expired links
    """
    user_agent = payload.user_agent or request.headers.get("user-agent")
    if detect_bot(user_agent):
        logger.info(f"Ignoring bot click for {payload.ref_code}")
        return JSONResponse(status_code=status.HTTP_200_OK, content={"tracked": False, "reason": "bot"})

    try:
        click, duplicate = await track_referral_click(
            db,
            ref_code=payload.ref_code,
            session_id=payload.session_id,
            fingerprint=payload.fingerprint,
            ip_address=get_client_ip(request.headers),
            user_agent=user_agent,
            landing_page=payload.landing_page,
            referrer_url=payload.referrer_url,
            device_info=payload.device_info.model_dump(),
            location=payload.location.model_dump(),
        )
    except InvalidReferralCode:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "INVALID_REF_CODE", "message": "Invalid or expired referral code"}
        )

    if duplicate:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={
                "tracked": True,
                "duplicate": True,
                "click_id": str(click.id),
                "tracking_expires_at": click.attribution_expires_at.isoformat(),
            },
        )

    await db.commit()

    return {
        "tracked": True,
        "duplicate": False,
        "click_id": str(click.id),
        "partner_id": str(click.partner_id),
        "tracking_expires_at": click.attribution_expires_at.isoformat(),
    }


@router.get("/referral-click", response_model=dict)
async def get_referral_attribution(
    session_id: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db)
):
    """
    Current attribution of a session (last touch among unexpired clicks).

    Returns:
        {"attributed": False} or the attributed click with its partner and link
    """
    click = await get_session_attribution(db, session_id)
    if click is None:
        return {"attributed": False}

    partner = await db.get(Partner, click.partner_id)
    link = await db.get(ReferralLink, click.link_id)

    return {
        "attributed": True,
        "click_id": str(click.id),
        "partner_id": str(click.partner_id),
        "partner_name": partner.name if partner else None,
        "commission_rate": partner.commission_percent if partner else 0.0,
        "referral_source": link.source_page if link else None,
        "campaign": link.campaign_name if link else None,
        "clicked_at": click.clicked_at.isoformat(),
        "expires_at": click.attribution_expires_at.isoformat(),
    }


@router.post("/conversion", status_code=status.HTTP_201_CREATED)
async def record_conversion(
    payload: ConversionRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[Profile] = Depends(get_optional_user)
):
    """
    Record a conversion and attribute it to a partner.

    The configured attribution model (last touch by default) picks the
    credited click among the session's unexpired clicks.

    Returns:
        {"conversion_id", "tracked", "attributed", "attribution", "conversion", "message"}
    """
    user_id = payload.user_id or (current_user.id if current_user else None)

    conversion = await track_conversion(
        db,
        session_id=payload.session_id,
        conversion_type=payload.conversion_type,
        conversion_value=payload.conversion_value,
        company_id=payload.company_id,
        user_id=user_id,
        metadata=payload.metadata,
    )
    await db.commit()

    attributed = conversion.partner_id is not None
    attribution = None
    if attributed:
        attribution = {
            "partner_id": str(conversion.partner_id),
            "link_id": str(conversion.link_id) if conversion.link_id else None,
            "click_id": str(conversion.click_id) if conversion.click_id else None,
            "model": settings.attribution_model,
            "first_touch": conversion.first_touch,
            "commission_amount": float(conversion.commission_amount or 0),
            "commission_eligible": conversion.commission_eligible,
        }

    return {
        "conversion_id": str(conversion.id),
        "tracked": True,
        "attributed": attributed,
        "attribution": attribution,
        "conversion": serialize_conversion(conversion),
        "message": "Conversion attributed to partner" if attributed else "Conversion recorded without attribution",
    }


async def scope_conversions(query, db: AsyncSession, current_user: Profile,
                            user_id: Optional[UUID], company_id: Optional[UUID]):
    """
    Restrict a conversion query to what the user may see.

    Admins see everything and partner users their own partner's conversions.
    Everyone else sees their own conversions and those of companies in
    their organization.

    Raises:
        HTTPException: 403 when filtering on another user or another organization's company
    """
    if current_user.is_admin:
        return query
    if current_user.partner_id is not None:
        return query.where(Conversion.partner_id == current_user.partner_id)

    if user_id is not None and user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied"
        )
    if company_id is not None:
        company = await db.get(Company, company_id)
        if (
            company is None
            or current_user.organization_id is None
            or company.organization_id != current_user.organization_id
        ):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied"
            )

    visible = [Conversion.user_id == current_user.id]
    if current_user.organization_id is not None:
        visible.append(
            Conversion.company_id.in_(
                select(Company.id).where(Company.organization_id == current_user.organization_id)
            )
        )
    return query.where(or_(*visible))


@router.get("/conversion", response_model=dict)
async def list_conversions(
    session_id: Optional[str] = None,
    user_id: Optional[UUID] = None,
    company_id: Optional[UUID] = None,
    conversion_type: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Conversions of a session, user or company with a summary.

    Raises:
        HTTPException: 400 when none of session_id, user_id, company_id is given,
            403 for another user's or organization's conversions
    """
    if not session_id and user_id is None and company_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="One of session_id, user_id or company_id is required"
        )

    query = await scope_conversions(select(Conversion), db, current_user, user_id, company_id)
    if session_id:
        query = query.where(Conversion.session_id == session_id)
    if user_id is not None:
        query = query.where(Conversion.user_id == user_id)
    if company_id is not None:
        query = query.where(Conversion.company_id == company_id)
    if conversion_type:
        query = query.where(Conversion.conversion_type == conversion_type)

    result = await db.execute(query.order_by(Conversion.converted_at.desc()))
    conversions = result.scalars().all()

    summary = {
        "total_conversions": len(conversions),
        "total_value": round(sum(float(c.conversion_value or 0) for c in conversions), 2),
        "total_commission": round(
            sum(float(c.commission_amount or 0) for c in conversions if c.commission_eligible), 2
        ),
        "attributed_conversions": sum(1 for c in conversions if c.partner_id is not None),
        "unique_partners": len({c.partner_id for c in conversions if c.partner_id is not None}),
        "conversion_types": sorted({c.conversion_type for c in conversions}),
    }

    return {"conversions": [serialize_conversion(c) for c in conversions], "summary": summary}


@router.put("/conversion", response_model=dict)
async def update_conversion(
    payload: ConversionUpdate,
    conversion_id: UUID = Query(...),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin)
):
    """
    Change a conversion's value and recompute its commission.

    Raises:
        HTTPException: 404 if the conversion does not exist
    """
    conversion = await db.get(Conversion, conversion_id)
    if conversion is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Conversion {conversion_id} not found"
        )

    previous_value = float(conversion.conversion_value or 0)
    await recalculate_commission(db, conversion, payload.conversion_value)
    record_audit(
        db, current_user, "conversion.updated", "conversion", conversion.id,
        {"previous_value": previous_value, "conversion_value": payload.conversion_value},
    )
    await db.commit()

    return {"conversion": serialize_conversion(conversion), "message": "Conversion updated"}
