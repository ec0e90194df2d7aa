"""
Referral click tracking and conversion attribution.

A click opens an attribution window for its session. A conversion in that
session is credited to one click: the most recent (last touch, default)
or the earliest (first touch) click whose window is still open.
"""

import base64
import logging
from datetime import datetime, timedelta
from typing import Mapping, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config.settings import get_settings
from marketplace.models import Conversion, Partner, PartnerCommission, ReferralClick, ReferralLink
from marketplace.models.base import utc_now

logger = logging.getLogger(__name__)

settings = get_settings()

BOT_PATTERNS = (
    "bot",
    "crawler",
    "spider",
    "scraper",
    "selenium",
    "phantomjs",
    "googlebot",
    "bingbot",
    "facebookexternalhit",
    "twitterbot",
    "linkedinbot",
    "whatsapp",
    "skypeuripreview",
    "slackbot",
)

CONVERSION_TYPES = (
    "signup",
    "company_created",
    "analysis_completed",
    "funding_applied",
    "funding_approved",
    "document_uploaded",
    "booking_created",
)


class InvalidReferralCode(Exception):
    """Referral code is unknown, inactive or expired."""


def detect_bot(user_agent: Optional[str]) -> bool:
    if not user_agent:
        return False
    ua = user_agent.lower()
    return any(pattern in ua for pattern in BOT_PATTERNS)


def get_client_ip(headers: Mapping[str, str]) -> Optional[str]:
    """Client IP from proxy headers: x-forwarded-for (first hop), x-real-ip, cf-connecting-ip."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return headers.get("x-real-ip") or headers.get("cf-connecting-ip")


def build_fingerprint(user_agent: Optional[str], device_info: Optional[Mapping[str, Optional[str]]]) -> str:
    """Coarse browser fingerprint: base64 of ua|device|browser|os|screen, first 16 chars."""
    device_info = device_info or {}
    raw = "|".join([
        user_agent or "",
        device_info.get("device_type") or "",
        device_info.get("browser") or "",
        device_info.get("os") or "",
        device_info.get("screen_resolution") or "",
    ])
    return base64.b64encode(raw.encode("utf-8")).decode("ascii")[:16]


def calculate_commission(value: float, commission_percent: float) -> float:
    return round(value * commission_percent / 100, 2)


async def find_duplicate_click(
    db: AsyncSession,
    session_id: str,
    fingerprint: Optional[str],
    now: datetime,
) -> Optional[ReferralClick]:
    window_start = now - timedelta(minutes=settings.duplicate_click_window_minutes)
    result = await db.execute(
        select(ReferralClick)
        .where(
            ReferralClick.session_id == session_id,
            ReferralClick.fingerprint == fingerprint,
            ReferralClick.clicked_at >= window_start,
        )
        .order_by(ReferralClick.clicked_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def track_referral_click(
    db: AsyncSession,
    ref_code: str,
    session_id: str,
    fingerprint: Optional[str] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    landing_page: Optional[str] = None,
    referrer_url: Optional[str] = None,
    device_info: Optional[Mapping[str, Optional[str]]] = None,
    location: Optional[Mapping[str, Optional[str]]] = None,
) -> tuple[ReferralClick, bool]:
    """
    Record a referral click.

    Args:
        db: Database session
        ref_code: Referral link code from the ?ref= parameter
        session_id: Visitor session id
        fingerprint: Client supplied fingerprint, derived from the UA when missing

    Returns:
        (click, duplicate) where duplicate is True when an identical click
        from the same session was recorded within the duplicate window

    Raises:
        InvalidReferralCode: If the link is unknown, inactive or expired
    """
    now = utc_now()
    device_info = device_info or {}
    location = location or {}
    fingerprint = fingerprint or build_fingerprint(user_agent, device_info)

    existing = await find_duplicate_click(db, session_id, fingerprint, now)
    if existing is not None:
        return existing, True

    result = await db.execute(select(ReferralLink).where(ReferralLink.link_code == ref_code))
    link = result.scalar_one_or_none()
    if link is None or not link.is_usable(now):
        raise InvalidReferralCode(ref_code)

    partner = await db.get(Partner, link.partner_id)
    if partner is None or not partner.is_active:
        raise InvalidReferralCode(ref_code)

    click = ReferralClick(
        link_id=link.id,
        partner_id=link.partner_id,
        session_id=session_id,
        fingerprint=fingerprint,
        ip_address=ip_address,
        user_agent=user_agent,
        landing_page=landing_page,
        referrer_url=referrer_url,
        device_type=device_info.get("device_type"),
        browser=device_info.get("browser"),
        os=device_info.get("os"),
        screen_resolution=device_info.get("screen_resolution"),
        country=location.get("country"),
        region=location.get("region"),
        city=location.get("city"),
        clicked_at=now,
        attribution_expires_at=now + timedelta(days=settings.attribution_window_days),
    )
    db.add(click)

    link.click_count = (link.click_count or 0) + 1
    link.last_clicked_at = now

    await db.flush()
    logger.info(
        "Referral click tracked",
        extra={"link_code": ref_code, "partner_id": str(link.partner_id), "session_id": session_id},
    )
    return click, False


async def get_open_clicks(db: AsyncSession, session_id: str, now: Optional[datetime] = None) -> list[ReferralClick]:
    """Clicks of the session whose attribution window is still open, oldest first."""
    now = now or utc_now()
    result = await db.execute(
        select(ReferralClick)
        .where(
            ReferralClick.session_id == session_id,
            ReferralClick.attribution_expires_at > now,
        )
        .order_by(ReferralClick.clicked_at.asc())
    )
    return list(result.scalars().all())


async def get_session_attribution(db: AsyncSession, session_id: str) -> Optional[ReferralClick]:
    """Last-touch click for a session, or None."""
    clicks = await get_open_clicks(db, session_id)
    return clicks[-1] if clicks else None


def select_attributed_click(clicks: list[ReferralClick], model: str) -> Optional[ReferralClick]:
    if not clicks:
        return None
    if model == "first_touch":
        return clicks[0]
    return clicks[-1]


async def refresh_link_stats(db: AsyncSession, link_id: UUID) -> None:
    """Recompute the denormalized counters of a referral link."""
    link = await db.get(ReferralLink, link_id)
    if link is None:
        return

    click_stats = await db.execute(
        select(func.count(ReferralClick.id), func.max(ReferralClick.clicked_at))
        .where(ReferralClick.link_id == link_id)
    )
    click_count, last_clicked_at = click_stats.one()

    conversion_stats = await db.execute(
        select(
            func.count(Conversion.id),
            func.coalesce(func.sum(Conversion.conversion_value), 0),
        ).where(Conversion.link_id == link_id)
    )
    conversion_count, total_revenue = conversion_stats.one()

    commission_stats = await db.execute(
        select(func.coalesce(func.sum(Conversion.commission_amount), 0))
        .where(Conversion.link_id == link_id, Conversion.commission_eligible.is_(True))
    )
    total_commission = commission_stats.scalar_one()

    link.click_count = click_count
    link.last_clicked_at = last_clicked_at
    link.conversion_count = conversion_count
    link.total_revenue = float(total_revenue)
    link.total_commission = float(total_commission)


async def track_conversion(
    db: AsyncSession,
    session_id: str,
    conversion_type: str,
    conversion_value: float = 0.0,
    company_id: Optional[UUID] = None,
    user_id: Optional[UUID] = None,
    metadata: Optional[dict] = None,
    model: Optional[str] = None,
) -> Conversion:
    """
    Record a conversion and attribute it to a partner when possible.

    Commission is value x partner commission_percent / 100. It is eligible
    for payout when the partner is active and the value is positive;
    eligible conversions create a partner_commissions row.

    Returns:
        The flushed Conversion (partner_id is None when unattributed)
    """
    model = model or settings.attribution_model
    clicks = await get_open_clicks(db, session_id)
    click = select_attributed_click(clicks, model)

    conversion = Conversion(
        session_id=session_id,
        conversion_type=conversion_type,
        conversion_value=conversion_value,
        company_id=company_id,
        user_id=user_id,
        conversion_metadata=metadata or {},
        converted_at=utc_now(),
    )

    partner = await db.get(Partner, click.partner_id) if click else None
    if click is not None and partner is not None:
        conversion.click_id = click.id
        conversion.link_id = click.link_id
        conversion.partner_id = partner.id
        conversion.first_touch = click.id == clicks[0].id
        conversion.commission_amount = calculate_commission(conversion_value, partner.commission_percent)
        conversion.commission_eligible = partner.is_active and conversion_value > 0
        click.converted = True

    db.add(conversion)
    await db.flush()

    if conversion.commission_eligible:
        db.add(PartnerCommission(
            partner_id=conversion.partner_id,
            conversion_id=conversion.id,
            commission_amount=conversion.commission_amount,
            status="calculated",
        ))

    if conversion.link_id is not None:
        await refresh_link_stats(db, conversion.link_id)

    logger.info(
        "Conversion tracked",
        extra={
            "conversion_type": conversion_type,
            "session_id": session_id,
            "partner_id": str(conversion.partner_id) if conversion.partner_id else None,
        },
    )
    return conversion


async def recalculate_commission(db: AsyncSession, conversion: Conversion, conversion_value: float) -> Conversion:
    """
    Update a conversion's value and recompute its commission.

    An existing unpaid commission row follows the new amount and is
    cancelled or reinstated with the eligibility; a conversion that becomes
    eligible for the first time gets a new commission row.
    """
    conversion.conversion_value = conversion_value

    if conversion.partner_id is None:
        return conversion

    partner = await db.get(Partner, conversion.partner_id)
    rate = partner.commission_percent if partner else 0.0
    conversion.commission_amount = calculate_commission(conversion_value, rate)
    conversion.commission_eligible = bool(partner and partner.is_active and conversion_value > 0)

    result = await db.execute(
        select(PartnerCommission).where(PartnerCommission.conversion_id == conversion.id)
    )
    commission = result.scalar_one_or_none()
    if commission is not None and commission.status != "paid":
        commission.commission_amount = conversion.commission_amount
        if not conversion.commission_eligible:
            commission.status = "cancelled"
        elif commission.status == "cancelled":
            commission.status = "calculated"
    elif commission is None and conversion.commission_eligible:
        db.add(PartnerCommission(
            partner_id=conversion.partner_id,
            conversion_id=conversion.id,
            commission_amount=conversion.commission_amount,
            status="calculated",
        ))

    await db.flush()
    if conversion.link_id is not None:
        await refresh_link_stats(db, conversion.link_id)

    return conversion
