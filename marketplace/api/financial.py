"""
Financial metrics API routes.

History with year-over-year trends, and writes that respect the priority of
the data source a figure came from.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db
from marketplace.middleware.auth import get_current_active_user
from marketplace.models import Company, FinancialMetric, Profile
from marketplace.services.audit import record_audit
from marketplace.services.financials import METRIC_FIELDS, upsert_financial_metrics
from marketplace.services.trends import KEY_METRICS, calculate_trends

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/financial", tags=["financial"])

# Without a year range only the latest few years are returned
DEFAULT_HISTORY_YEARS = 3


# Pydantic schemas
class FinancialMetricsInput(BaseModel):
    """Metrics for one company period. company_id, fiscal_year and fiscal_period are checked in the handler."""
    company_id: Optional[UUID] = None
    fiscal_year: Optional[int] = Field(None, ge=1900, le=2100)
    fiscal_period: Optional[str] = Field(None, max_length=20)
    data_source: str = Field(default="document", max_length=50)
    revenue_current: Optional[float] = None
    revenue_growth_rate: Optional[float] = None
    operational_cash_flow: Optional[float] = None
    ebitda: Optional[float] = None
    net_profit: Optional[float] = None
    total_assets: Optional[float] = None
    total_equity: Optional[float] = None
    total_liabilities: Optional[float] = None
    return_on_equity: Optional[float] = None
    debt_to_equity_ratio: Optional[float] = None
    quick_ratio: Optional[float] = None
    current_ratio: Optional[float] = None


class FinancialMetricResponse(BaseModel):
    id: UUID
    company_id: UUID
    fiscal_year: int
    fiscal_period: str
    data_source: str
    revenue_current: Optional[float]
    revenue_growth_rate: Optional[float]
    operational_cash_flow: Optional[float]
    ebitda: Optional[float]
    net_profit: Optional[float]
    total_assets: Optional[float]
    total_equity: Optional[float]
    total_liabilities: Optional[float]
    return_on_equity: Optional[float]
    debt_to_equity_ratio: Optional[float]
    quick_ratio: Optional[float]
    current_ratio: Optional[float]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


async def get_company_for_metrics(db: AsyncSession, company_id: UUID, current_user: Profile) -> Company:
    """
    Load a company whose metrics the user may see or write.

    Members of the company's organization, the company's creator and
    admins have access.

    Raises:
        HTTPException: 404 if missing, 403 otherwise
    """
    result = await db.execute(
        select(Company).where(Company.id == company_id, Company.deleted_at.is_(None))
    )
    company = result.scalar_one_or_none()
    if not company:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Company {company_id} not found"
        )

    allowed = (
        current_user.is_admin
        or company.created_by == current_user.id
        or (current_user.organization_id is not None and company.organization_id == current_user.organization_id)
    )
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied"
        )
    return company


def parse_metric_names(metrics: Optional[str]) -> List[str]:
    """Comma separated metric names, restricted to known fields; KEY_METRICS when empty."""
    if not metrics:
        return list(KEY_METRICS)
    names = [m.strip() for m in metrics.split(",") if m.strip()]
    unknown = [m for m in names if m not in METRIC_FIELDS]
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown metrics: {', '.join(unknown)}"
        )
    return names


@router.get("/history", response_model=dict)
async def get_history(
    company_id: Optional[UUID] = None,
    limit: int = Query(10, ge=1, le=10),
    start_year: Optional[int] = None,
    end_year: Optional[int] = None,
    metrics: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Financial metrics history with trend analysis.

    Args:
        company_id: Company to report on (required)
        limit: Maximum rows; capped at 3 when no year range is given
        start_year: First fiscal year to include
        end_year: Last fiscal year to include
        metrics: Comma separated metric names for the trend analysis

    Returns:
        {"data", "trends", "meta"}, or a message with empty data

    Raises:
        HTTPException: 400 without company_id, 403/404 for company access
    """
    if company_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="company_id is required"
        )

    await get_company_for_metrics(db, company_id, current_user)
    metric_names = parse_metric_names(metrics)

    query = select(FinancialMetric).where(FinancialMetric.company_id == company_id)
    if start_year is not None:
        query = query.where(FinancialMetric.fiscal_year >= start_year)
    if end_year is not None:
        query = query.where(FinancialMetric.fiscal_year <= end_year)

    effective_limit = limit
    if start_year is None and end_year is None:
        effective_limit = min(limit, DEFAULT_HISTORY_YEARS)

    result = await db.execute(
        query.order_by(FinancialMetric.fiscal_year.desc(), FinancialMetric.created_at.desc())
        .limit(effective_limit)
    )
    rows = result.scalars().all()

    if not rows:
        return {"message": "No financial metrics history found for this company", "data": []}

    data = [FinancialMetricResponse.model_validate(row).model_dump(mode="json") for row in rows]
    years = [row.fiscal_year for row in rows]

    return {
        "data": data,
        "trends": calculate_trends(rows, metric_names),
        "meta": {
            "company_id": str(company_id),
            "count": len(rows),
            "limit": effective_limit,
            "year_range": {"from": min(years), "to": max(years)},
            "metrics": metric_names,
        },
    }


@router.post("/metrics", response_model=dict)
async def save_metrics(
    payload: FinancialMetricsInput,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Create or update the metrics of a company period.

    A write from a lower-priority source than the stored row is kept as a
    separate row instead of overwriting.

    Raises:
        HTTPException: 400 when company_id, fiscal_year or fiscal_period is missing
    """
    if payload.company_id is None or payload.fiscal_year is None or not payload.fiscal_period:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="company_id, fiscal_year and fiscal_period are required"
        )

    await get_company_for_metrics(db, payload.company_id, current_user)

    values = payload.model_dump(include=set(METRIC_FIELDS), exclude_unset=True)
    row, action = await upsert_financial_metrics(
        db,
        company_id=payload.company_id,
        fiscal_year=payload.fiscal_year,
        fiscal_period=payload.fiscal_period,
        data_source=payload.data_source,
        values=values,
        created_by=current_user.id,
    )
    await db.flush()
    record_audit(
        db, current_user, "financial_metrics.saved", "financial_metric", row.id,
        {"action": action, "data_source": payload.data_source, "fiscal_year": payload.fiscal_year},
    )
    await db.commit()
    await db.refresh(row)

    return {
        "action": action,
        "data": FinancialMetricResponse.model_validate(row).model_dump(mode="json"),
    }
