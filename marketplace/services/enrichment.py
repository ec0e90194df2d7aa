"""
Company enrichment: merge business registry data and stored financials into
a snapshot with confidence and completeness scores.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models import Company, CompanyFinancials, FinancialMetric
from marketplace.models.base import utc_now
from marketplace.services.ytj import YTJClient, YTJError

logger = logging.getLogger(__name__)


def calculate_confidence(basic_info: dict, years_found: int) -> int:
    """
    Confidence score (0-100) of an enrichment snapshot.

    Args:
        basic_info: Company facts with a "data_quality" dict ({verified, confidence})
        years_found: Number of fiscal years with financial data

    Returns:
        Score capped at 100
    """
    score = 0
    quality = basic_info.get("data_quality") or {}

    if quality.get("verified"):
        score += 25
    elif quality.get("confidence") == "HIGH":
        score += 20
    elif quality.get("confidence") == "MEDIUM":
        score += 15
    else:
        score += 10

    if years_found >= 3:
        score += 25
    elif years_found >= 2:
        score += 15
    elif years_found >= 1:
        score += 10

    if len(basic_info.get("description") or "") > 100:
        score += 15
    if basic_info.get("products"):
        score += 10
    if basic_info.get("recent_news"):
        score += 10
    if basic_info.get("website"):
        score += 5
    if basic_info.get("employees") is not None:
        score += 10

    return min(score, 100)


def calculate_completeness(basic_info: dict, years_found: int) -> int:
    """Share of the ten key facts that are known, as a rounded percentage."""
    fields = [
        basic_info.get("name"),
        basic_info.get("business_id"),
        basic_info.get("industry"),
        basic_info.get("company_form"),
        basic_info.get("address"),
        basic_info.get("description"),
        bool(basic_info.get("products")),
        years_found > 0,
        basic_info.get("website"),
        basic_info.get("employees") is not None,
    ]
    filled = sum(1 for f in fields if f)
    return round(filled / len(fields) * 100)


def build_basic_info(company: Company, registry: Optional[dict]) -> dict[str, Any]:
    """Company facts, registry values filling the gaps."""
    registry = registry or {}
    if registry:
        quality = {"verified": True, "confidence": "HIGH"}
    elif company.business_id:
        quality = {"verified": False, "confidence": "MEDIUM"}
    else:
        quality = {"verified": False, "confidence": "LOW"}

    return {
        "name": company.name or registry.get("name"),
        "business_id": company.business_id or registry.get("business_id"),
        "industry": company.industry or registry.get("industry"),
        "company_form": company.company_form or registry.get("company_form"),
        "address": company.address or registry.get("address"),
        "city": company.city or registry.get("city"),
        "registration_date": registry.get("registration_date"),
        "status": registry.get("status"),
        "description": company.description,
        "products": company.products or [],
        "recent_news": [],
        "website": company.website or registry.get("website"),
        "employees": company.employees,
        "data_quality": quality,
    }


async def load_yearly_financials(db: AsyncSession, company_id) -> list[dict]:
    """One entry per fiscal year; financial_metrics rows win over company_financials."""
    yearly: dict[int, dict] = {}

    result = await db.execute(
        select(CompanyFinancials).where(CompanyFinancials.company_id == company_id)
    )
    for row in result.scalars().all():
        yearly[row.fiscal_year] = {
            "fiscal_year": row.fiscal_year,
            "revenue": row.revenue,
            "ebitda": row.ebitda,
            "net_income": row.net_income,
            "source": "company_financials",
        }

    result = await db.execute(
        select(FinancialMetric).where(FinancialMetric.company_id == company_id)
    )
    for row in result.scalars().all():
        yearly[row.fiscal_year] = {
            "fiscal_year": row.fiscal_year,
            "revenue": row.revenue_current,
            "ebitda": row.ebitda,
            "net_income": row.net_profit,
            "source": row.data_source,
        }

    return [yearly[year] for year in sorted(yearly, reverse=True)]


async def enrich_company(
    db: AsyncSession,
    company: Company,
    ytj_client: Optional[YTJClient] = None,
) -> dict[str, Any]:
    """
    Build and store the enrichment snapshot of a company.

    Registry failures are logged and the snapshot is built from local data.

    Returns:
        The snapshot stored in company.enrichment_data
    """
    registry = None
    sources = ["database"]
    if company.business_id:
        client = ytj_client or YTJClient()
        try:
            registry = await client.get_company(company.business_id)
        except YTJError as e:
            logger.warning(f"Registry lookup failed for {company.business_id}: {e.message}")
        if registry:
            sources.append("ytj")

    basic_info = build_basic_info(company, registry)
    yearly = await load_yearly_financials(db, company.id)
    years_found = len(yearly)

    confidence = calculate_confidence(basic_info, years_found)
    completeness = calculate_completeness(basic_info, years_found)
    now = utc_now()

    snapshot = {
        "basic_info": basic_info,
        "financial_data": {"yearly": yearly, "years_found": years_found},
        "metadata": {
            "confidence": confidence,
            "completeness": completeness,
            "last_enriched": now.isoformat(),
            "sources_used": sources,
        },
    }

    if registry:
        company.company_form = company.company_form or registry.get("company_form") or None
        company.address = company.address or registry.get("address") or None
        company.city = company.city or registry.get("city") or None
        company.website = company.website or registry.get("website") or None

    company.enrichment_data = snapshot
    company.enrichment_confidence = confidence
    company.enrichment_completeness = completeness
    company.enriched_at = now

    logger.info(
        f"Company {company.id} enriched",
        extra={"confidence": confidence, "completeness": completeness},
    )
    return snapshot
