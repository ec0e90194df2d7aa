"""
Financial metrics upsert honoring data source priority.
"""

import logging
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models import FinancialMetric

logger = logging.getLogger(__name__)

# Higher wins. Unknown sources rank below every known one.
SOURCE_PRIORITY = {
    "document": 4,
    "financial_data_yearly": 3,
    "enriched_data": 2,
    "public_financial_data": 1,
}

METRIC_FIELDS = (
    "revenue_current",
    "revenue_growth_rate",
    "operational_cash_flow",
    "ebitda",
    "net_profit",
    "total_assets",
    "total_equity",
    "total_liabilities",
    "return_on_equity",
    "debt_to_equity_ratio",
    "quick_ratio",
    "current_ratio",
)


def source_priority(source: Optional[str]) -> int:
    return SOURCE_PRIORITY.get(source or "", 0)


def should_overwrite(existing_source: Optional[str], new_source: Optional[str]) -> bool:
    """
    Decide whether a write replaces an existing row.

    Unknown existing sources are always replaced, the same source updates in
    place, and a lower-priority source never replaces a higher one.
    """
    existing_priority = source_priority(existing_source)
    if existing_priority == 0:
        return True
    if existing_source == new_source:
        return True
    return source_priority(new_source) > existing_priority


async def upsert_financial_metrics(
    db: AsyncSession,
    company_id: UUID,
    fiscal_year: int,
    fiscal_period: str,
    data_source: str,
    values: dict[str, Any],
    created_by: Optional[UUID] = None,
) -> tuple[FinancialMetric, str]:
    """
    Write metrics for a company period.

    Returns:
        (row, action) where action is "created", "updated" or
        "created_lower_priority" (kept beside a higher-priority row)
    """
    result = await db.execute(
        select(FinancialMetric)
        .where(
            FinancialMetric.company_id == company_id,
            FinancialMetric.fiscal_year == fiscal_year,
            FinancialMetric.fiscal_period == fiscal_period,
        )
        .order_by(FinancialMetric.created_at.desc())
    )
    existing_rows = list(result.scalars().all())
    metric_values = {k: v for k, v in values.items() if k in METRIC_FIELDS}

    if existing_rows:
        existing = max(existing_rows, key=lambda r: source_priority(r.data_source))
        if should_overwrite(existing.data_source, data_source):
            for field, value in metric_values.items():
                setattr(existing, field, value)
            existing.data_source = data_source
            logger.info(f"Financial metrics {fiscal_year}/{fiscal_period} updated for company {company_id}")
            return existing, "updated"
        action = "created_lower_priority"
    else:
        action = "created"

    row = FinancialMetric(
        company_id=company_id,
        created_by=created_by,
        fiscal_year=fiscal_year,
        fiscal_period=fiscal_period,
        data_source=data_source,
        **metric_values,
    )
    db.add(row)
    logger.info(f"Financial metrics {fiscal_year}/{fiscal_period} {action} for company {company_id}")
    return row, action
