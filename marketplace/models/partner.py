"""
Partner models.

Partners are referral partners (accountants, banks, advisors) who earn a
commission on conversions attributed to their referral links.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import String, DateTime, Float, ForeignKey, Numeric, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from marketplace.models.base import Base, utc_now


class Partner(Base):
    """Referral partner."""

    __tablename__ = "partners"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    commission_percent: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    tier: Mapped[str] = mapped_column(String(20), default="basic", index=True)  # basic, premium, enterprise
    status: Mapped[str] = mapped_column(String(20), default="active", index=True)  # active, inactive, suspended
    contact_info: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    settings: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    # One-time code the partner uses to create their login
    signup_code: Mapped[Optional[str]] = mapped_column(String(32), unique=True, nullable=True, index=True)
    signup_code_expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    signup_code_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_by: Mapped[Optional[UUID]] = mapped_column(PG_UUID(as_uuid=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
        nullable=False
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    referral_links: Mapped[list["ReferralLink"]] = relationship(
        "ReferralLink",
        back_populates="partner",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Partner(id={self.id}, name={self.name}, tier={self.tier})>"

    @property
    def is_active(self) -> bool:
        return self.status == "active" and self.deleted_at is None

    def soft_delete(self) -> None:
        """Soft delete the partner."""
        self.deleted_at = utc_now()
        self.status = "inactive"


class PartnerCommission(Base):
    """Commission owed to a partner for one attributed conversion."""

    __tablename__ = "partner_commissions"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4
    )
    partner_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("partners.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    conversion_id: Mapped[Optional[UUID]] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("conversions.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    commission_amount: Mapped[float] = mapped_column(Numeric(15, 2, asdecimal=False), default=0.0)
    status: Mapped[str] = mapped_column(String(20), default="calculated", index=True)  # pending, calculated, paid, cancelled
    payment_reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    generated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False, index=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<PartnerCommission(id={self.id}, partner_id={self.partner_id}, status={self.status})>"
