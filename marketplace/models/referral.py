"""
Referral tracking models.

A partner owns referral links; a visitor arriving with ?ref=<code> creates a
referral click tied to their session; later conversions in that session
are attributed to the partner while the click's attribution window is open.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import String, DateTime, Boolean, ForeignKey, Integer, Numeric, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from marketplace.models.base import Base, utc_now


class ReferralLink(Base):
    """Trackable link handed out by a partner."""

    __tablename__ = "referral_links"

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

    link_code: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    source_page: Mapped[str] = mapped_column(String(255), nullable=False)
    campaign_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True, index=True)
    utm_source: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    utm_medium: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    utm_campaign: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    utm_content: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    utm_term: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    link_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)

    # Denormalized counters, refreshed on every click and conversion
    click_count: Mapped[int] = mapped_column(Integer, default=0)
    conversion_count: Mapped[int] = mapped_column(Integer, default=0)
    total_revenue: Mapped[float] = mapped_column(Numeric(15, 2, asdecimal=False), default=0.0)
    total_commission: Mapped[float] = mapped_column(Numeric(15, 2, asdecimal=False), default=0.0)
    last_clicked_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
        nullable=False
    )

    partner: Mapped["Partner"] = relationship("Partner", back_populates="referral_links")

    def __repr__(self) -> str:
        return f"<ReferralLink(code={self.link_code}, partner_id={self.partner_id})>"

    def is_usable(self, now: datetime) -> bool:
        """Link accepts clicks: active and not past its expiry."""
        return self.is_active and (self.expires_at is None or self.expires_at > now)


class ReferralClick(Base):
    """A visit that arrived through a referral link."""

    __tablename__ = "referral_clicks"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4
    )
    link_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("referral_links.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    partner_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("partners.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    session_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    fingerprint: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    landing_page: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    referrer_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    device_type: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    browser: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    os: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    screen_resolution: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    region: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    clicked_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False, index=True)
    attribution_expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    converted: Mapped[bool] = mapped_column(Boolean, default=False)

    link: Mapped["ReferralLink"] = relationship("ReferralLink")
    partner: Mapped["Partner"] = relationship("Partner")

    def __repr__(self) -> str:
        return f"<ReferralClick(id={self.id}, session={self.session_id}, link_id={self.link_id})>"


class Conversion(Base):
    """A tracked business event, attributed to a partner when a referral click preceded it."""

    __tablename__ = "conversions"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4
    )
    session_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    click_id: Mapped[Optional[UUID]] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("referral_clicks.id", ondelete="SET NULL"),
        nullable=True
    )
    link_id: Mapped[Optional[UUID]] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("referral_links.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    partner_id: Mapped[Optional[UUID]] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("partners.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    company_id: Mapped[Optional[UUID]] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("companies.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    user_id: Mapped[Optional[UUID]] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    conversion_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    conversion_value: Mapped[float] = mapped_column(Numeric(15, 2, asdecimal=False), default=0.0)
    commission_amount: Mapped[float] = mapped_column(Numeric(15, 2, asdecimal=False), default=0.0)
    commission_eligible: Mapped[bool] = mapped_column(Boolean, default=False)
    first_touch: Mapped[bool] = mapped_column(Boolean, default=False)
    conversion_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSON, nullable=True)

    converted_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False, index=True)

    partner: Mapped[Optional["Partner"]] = relationship("Partner")

    def __repr__(self) -> str:
        return f"<Conversion(id={self.id}, type={self.conversion_type}, partner_id={self.partner_id})>"

    @property
    def is_attributed(self) -> bool:
        return self.partner_id is not None
