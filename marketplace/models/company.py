"""
Company models.

A company is the business being funded or sold. Yearly headline figures
entered with the company live in company_financials; the detailed
metric history used for trend analysis lives in financial_metrics.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import String, DateTime, ForeignKey, Integer, Numeric, Text, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from marketplace.models.base import Base, utc_now


class Company(Base):
    """Company profile owned by an organization."""

    __tablename__ = "companies"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4
    )

    organization_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    created_by: Mapped[Optional[UUID]] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    business_id: Mapped[Optional[str]] = mapped_column(String(20), nullable=True, index=True)  # Finnish Y-tunnus
    industry: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    company_form: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)  # Oy, Oyj, Tmi, Ky...
    legal_structure: Mapped[str] = mapped_column(String(50), default="family_owned")

    country: Mapped[str] = mapped_column(String(100), default="Finland")
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    employees: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    founded_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    products: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    asking_price: Mapped[Optional[float]] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=True)
    status: Mapped[str] = mapped_column(String(30), default="active", index=True)  # active, inactive, sold

    # Result of the latest enrichment run
    enrichment_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    enrichment_confidence: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    enrichment_completeness: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    enriched_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
        nullable=False
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    financials: Mapped[list["CompanyFinancials"]] = relationship(
        "CompanyFinancials",
        back_populates="company",
        cascade="all, delete-orphan",
        order_by="CompanyFinancials.fiscal_year.desc()"
    )

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name={self.name}, org_id={self.organization_id})>"

    @property
    def is_deleted(self) -> bool:
        """Check if company is soft-deleted."""
        return self.deleted_at is not None

    def soft_delete(self) -> None:
        """Soft delete the company and mark it inactive."""
        self.deleted_at = utc_now()
        self.status = "inactive"


class CompanyFinancials(Base):
    """Headline financial figures for one fiscal year."""

    __tablename__ = "company_financials"
    __table_args__ = (
        UniqueConstraint("company_id", "fiscal_year", name="uq_company_financials_year"),
    )

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

    fiscal_year: Mapped[int] = mapped_column(Integer, nullable=False)
    revenue: Mapped[Optional[float]] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=True)
    ebitda: Mapped[Optional[float]] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=True)
    net_income: Mapped[Optional[float]] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=True)
    total_assets: Mapped[Optional[float]] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=True)
    total_liabilities: Mapped[Optional[float]] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    company: Mapped["Company"] = relationship("Company", back_populates="financials")

    def __repr__(self) -> str:
        return f"<CompanyFinancials(company_id={self.company_id}, year={self.fiscal_year})>"
