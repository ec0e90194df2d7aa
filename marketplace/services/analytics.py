"""
Partner and referral link analytics aggregated from clicks and conversions.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models import Conversion, ReferralClick, ReferralLink
from marketplace.models.base import utc_now

# Funnel stages in order; clicks first, then conversion types
FUNNEL_STAGES = (
    "signup",
    "company_created",
    "analysis_completed",
    "document_uploaded",
    "booking_created",
    "funding_applied",
    "funding_approved",
)


# Longest range a report may cover; daily series hold one row per day
MAX_RANGE_DAYS = 366


class InvalidDateRange(ValueError):
    """Start after end, or a range longer than MAX_RANGE_DAYS."""


def parse_date_range(
    start_date: Optional[date],
    end_date: Optional[date],
    default_days: int = 30,
) -> tuple[datetime, datetime]:
    """
    Inclusive datetime bounds; the last default_days days when not given.

    Raises:
        InvalidDateRange: start after end or more than MAX_RANGE_DAYS days
    """
    end = datetime.combine(end_date, datetime.max.time()) if end_date else utc_now()
    if start_date:
        start = datetime.combine(start_date, datetime.min.time())
    else:
        start = datetime.combine((end - timedelta(days=default_days)).date(), datetime.min.time())

    if start > end:
        raise InvalidDateRange("start_date must not be after end_date")
    if (end.date() - start.date()).days >= MAX_RANGE_DAYS:
        raise InvalidDateRange(f"Date range may cover at most {MAX_RANGE_DAYS} days")
    return start, end


def _rate(part: float, whole: float) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _value(conversion: Conversion) -> float:
    return float(conversion.conversion_value or 0)


def _commission(conversion: Conversion) -> float:
    if not conversion.commission_eligible:
        return 0.0
    return float(conversion.commission_amount or 0)


def overview(clicks: list[ReferralClick], conversions: list[Conversion]) -> dict:
    revenue = sum(_value(c) for c in conversions)
    return {
        "total_clicks": len(clicks),
        "total_conversions": len(conversions),
        "total_revenue": round(revenue, 2),
        "total_commission": round(sum(_commission(c) for c in conversions), 2),
        "conversion_rate": _rate(len(conversions), len(clicks)),
        "avg_deal_size": round(revenue / len(conversions), 2) if conversions else 0.0,
    }


def daily_series(
    clicks: Iterable[ReferralClick],
    conversions: Iterable[Conversion],
    start: datetime,
    end: datetime,
) -> list[dict]:
    days: dict[date, dict] = {}
    day = start.date()
    while day <= end.date():
        days[day] = {"date": day.isoformat(), "clicks": 0, "conversions": 0, "revenue": 0.0, "commission": 0.0}
        day += timedelta(days=1)

    for click in clicks:
        bucket = days.get(click.clicked_at.date())
        if bucket is not None:
            bucket["clicks"] += 1
    for conversion in conversions:
        bucket = days.get(conversion.converted_at.date())
        if bucket is not None:
            bucket["conversions"] += 1
            bucket["revenue"] += _value(conversion)
            bucket["commission"] += _commission(conversion)

    return list(days.values())


def top_sources(
    links: dict[UUID, ReferralLink],
    clicks: list[ReferralClick],
    conversions: list[Conversion],
) -> list[dict]:
    stats: dict[str, dict] = defaultdict(lambda: {"clicks": 0, "conversions": 0, "revenue": 0.0})
    for click in clicks:
        link = links.get(click.link_id)
        stats[link.source_page if link else "unknown"]["clicks"] += 1
    for conversion in conversions:
        link = links.get(conversion.link_id)
        entry = stats[link.source_page if link else "unknown"]
        entry["conversions"] += 1
        entry["revenue"] += _value(conversion)

    result = [
        {
            "source": source,
            "clicks": s["clicks"],
            "conversions": s["conversions"],
            "revenue": round(s["revenue"], 2),
            "conversion_rate": _rate(s["conversions"], s["clicks"]),
        }
        for source, s in stats.items()
    ]
    return sorted(result, key=lambda r: r["revenue"], reverse=True)


def funnel(clicks: list[ReferralClick], conversions: list[Conversion]) -> list[dict]:
    counts: dict[str, int] = defaultdict(int)
    for conversion in conversions:
        counts[conversion.conversion_type] += 1

    total = len(clicks)
    stages = [{"stage": "click", "count": total, "conversion_rate": 100.0 if total else 0.0}]
    for stage in FUNNEL_STAGES:
        stages.append({
            "stage": stage,
            "count": counts.get(stage, 0),
            "conversion_rate": _rate(counts.get(stage, 0), total),
        })
    return stages


def _breakdown(
    clicks: list[ReferralClick],
    conversions: list[Conversion],
    key: str,
    label: str,
    limit: Optional[int] = None,
) -> list[dict]:
    click_by_id = {c.id: c for c in clicks}
    stats: dict[str, dict] = defaultdict(lambda: {"clicks": 0, "conversions": 0})
    for click in clicks:
        stats[getattr(click, key) or "Unknown"]["clicks"] += 1
    for conversion in conversions:
        click = click_by_id.get(conversion.click_id)
        if click is not None:
            stats[getattr(click, key) or "Unknown"]["conversions"] += 1

    result = [
        {label: name, "clicks": s["clicks"], "conversions": s["conversions"],
         "conversion_rate": _rate(s["conversions"], s["clicks"])}
        for name, s in stats.items()
    ]
    result.sort(key=lambda r: r["clicks"], reverse=True)
    return result[:limit] if limit else result


def top_links(links: dict[UUID, ReferralLink], clicks: list[ReferralClick], conversions: list[Conversion], limit: int = 5) -> list[dict]:
    stats: dict[UUID, dict] = {
        link_id: {"clicks": 0, "conversions": 0, "revenue": 0.0} for link_id in links
    }
    for click in clicks:
        if click.link_id in stats:
            stats[click.link_id]["clicks"] += 1
    for conversion in conversions:
        if conversion.link_id in stats:
            stats[conversion.link_id]["conversions"] += 1
            stats[conversion.link_id]["revenue"] += _value(conversion)

    result = [
        {
            "link_id": str(link_id),
            "link_code": links[link_id].link_code,
            "source_page": links[link_id].source_page,
            "campaign_name": links[link_id].campaign_name,
            "clicks": s["clicks"],
            "conversions": s["conversions"],
            "revenue": round(s["revenue"], 2),
        }
        for link_id, s in stats.items()
    ]
    result.sort(key=lambda r: r["revenue"], reverse=True)
    return result[:limit]


def link_performance(link: ReferralLink) -> dict:
    """Ratios from a link's stored counters."""
    clicks = link.click_count or 0
    revenue = float(link.total_revenue or 0)
    return {
        "conversion_rate": _rate(link.conversion_count or 0, clicks),
        "revenue_per_click": round(revenue / clicks, 2) if clicks else 0.0,
        "commission_earned": float(link.total_commission or 0),
    }


async def _load_activity(
    db: AsyncSession,
    start: datetime,
    end: datetime,
    partner_id: Optional[UUID] = None,
    link_id: Optional[UUID] = None,
) -> tuple[list[ReferralClick], list[Conversion]]:
    click_query = select(ReferralClick).where(
        ReferralClick.clicked_at >= start, ReferralClick.clicked_at <= end
    )
    conversion_query = select(Conversion).where(
        Conversion.converted_at >= start, Conversion.converted_at <= end
    )
    if partner_id is not None:
        click_query = click_query.where(ReferralClick.partner_id == partner_id)
        conversion_query = conversion_query.where(Conversion.partner_id == partner_id)
    if link_id is not None:
        click_query = click_query.where(ReferralClick.link_id == link_id)
        conversion_query = conversion_query.where(Conversion.link_id == link_id)

    clicks = list((await db.execute(click_query)).scalars().all())
    conversions = list((await db.execute(conversion_query)).scalars().all())
    return clicks, conversions


async def partner_analytics(
    db: AsyncSession,
    partner_id: UUID,
    start: datetime,
    end: datetime,
    include_funnel: bool = True,
    include_geo: bool = True,
    include_devices: bool = True,
) -> dict:
    """
    Aggregate a partner's referral performance over a date range.

    Returns:
        {"period", "overview", "time_series", "top_sources",
         "top_performing_links"} plus "funnel", "geographic" and "devices"
        when requested
    """
    clicks, conversions = await _load_activity(db, start, end, partner_id=partner_id)
    result = await db.execute(select(ReferralLink).where(ReferralLink.partner_id == partner_id))
    links = {link.id: link for link in result.scalars().all()}

    report = {
        "period": {"start_date": start.date().isoformat(), "end_date": end.date().isoformat()},
        "overview": overview(clicks, conversions),
        "time_series": daily_series(clicks, conversions, start, end),
        "top_sources": top_sources(links, clicks, conversions),
        "top_performing_links": top_links(links, clicks, conversions),
    }
    if include_funnel:
        report["funnel"] = funnel(clicks, conversions)
    if include_geo:
        report["geographic"] = _breakdown(clicks, conversions, "country", "country", limit=20)
    if include_devices:
        report["devices"] = _breakdown(clicks, conversions, "device_type", "device_type")
    return report


async def link_analytics(db: AsyncSession, link: ReferralLink, start: datetime, end: datetime) -> dict:
    """Date-range totals and daily series for one referral link."""
    clicks, conversions = await _load_activity(db, start, end, link_id=link.id)
    return {
        "period": {"start_date": start.date().isoformat(), "end_date": end.date().isoformat()},
        "totals": overview(clicks, conversions),
        "performance": link_performance(link),
        "daily": daily_series(clicks, conversions, start, end),
        "devices": _breakdown(clicks, conversions, "device_type", "device_type"),
    }
