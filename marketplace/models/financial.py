"""
Financial metrics history.

One row per company, fiscal year, fiscal period and data source. Rows from
uploaded financial statements take precedence over enriched or public data.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import String, DateTime, Float, ForeignKey, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from marketplace.models.base import Base, utc_now


class FinancialMetric(Base):
    """Key figures and ratios for one fiscal period."""

    __tablename__ = "financial_metrics"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4
    )
    company_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    created_by: Mapped[Optional[UUID]] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True
    )

    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    fiscal_period: Mapped[str] = mapped_column(String(20), nullable=False, default="annual")
    data_source: Mapped[str] = mapped_column(String(50), nullable=False, default="unknown")

    revenue_current: Mapped[Optional[float]] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=True)
    revenue_growth_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    operational_cash_flow: Mapped[Optional[float]] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=True)
    ebitda: Mapped[Optional[float]] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=True)
    net_profit: Mapped[Optional[float]] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=True)
    total_assets: Mapped[Optional[float]] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=True)
    total_equity: Mapped[Optional[float]] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=True)
    total_liabilities: Mapped[Optional[float]] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=True)
    return_on_equity: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    debt_to_equity_ratio: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    quick_ratio: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    current_ratio: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
        nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<FinancialMetric(company_id={self.company_id}, year={self.fiscal_year}, "
            f"period={self.fiscal_period}, source={self.data_source})>"
        )
