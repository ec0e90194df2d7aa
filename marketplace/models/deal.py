"""
Deal models for the acquisition pipeline.

Every stage change is kept in deal_stages and every notable event in
deal_activities so the pipeline history can be replayed.
"""

from datetime import date, datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import String, DateTime, Date, ForeignKey, Numeric, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

from marketplace.models.base import Base, utc_now


DEAL_STAGES = (
    "lead",
    "nda_signed",
    "information_shared",
    "negotiation",
    "due_diligence",
    "loi_signed",
    "closing",
    "closed_won",
    "closed_lost",
)


class Deal(Base):
    """A potential transaction between a seller company and a buyer."""

    __tablename__ = "deals"

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
    company_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    buyer_id: Mapped[Optional[UUID]] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    created_by: Mapped[Optional[UUID]] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True
    )

    stage: Mapped[str] = mapped_column(String(50), default="lead", index=True)
    status: Mapped[str] = mapped_column(String(30), default="active", index=True)  # active, won, lost, cancelled
    deal_type: Mapped[str] = mapped_column(String(50), default="acquisition")
    estimated_value: Mapped[Optional[float]] = mapped_column(Numeric(15, 2, asdecimal=False), nullable=True)
    expected_close_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    actual_close_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
        nullable=False
    )

    company: Mapped["Company"] = relationship("Company")
    stages: Mapped[list["DealStage"]] = relationship(
        "DealStage",
        back_populates="deal",
        cascade="all, delete-orphan",
        order_by="DealStage.entered_at"
    )
    activities: Mapped[list["DealActivity"]] = relationship(
        "DealActivity",
        back_populates="deal",
        cascade="all, delete-orphan",
        order_by="DealActivity.created_at.desc()"
    )
    ndas: Mapped[list["NDA"]] = relationship("NDA", back_populates="deal")

    def __repr__(self) -> str:
        return f"<Deal(id={self.id}, company_id={self.company_id}, stage={self.stage})>"


class DealStage(Base):
    """A stage the deal has entered."""

    __tablename__ = "deal_stages"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4
    )
    deal_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("deals.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    stage: Mapped[str] = mapped_column(String(50), nullable=False)
    entered_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    deal: Mapped["Deal"] = relationship("Deal", back_populates="stages")


class DealActivity(Base):
    """Timeline entry for a deal."""

    __tablename__ = "deal_activities"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4
    )
    deal_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("deals.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[Optional[UUID]] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True
    )
    activity_type: Mapped[str] = mapped_column(String(50), nullable=False)  # created, stage_changed, cancelled, note
    description: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now, nullable=False)

    deal: Mapped["Deal"] = relationship("Deal", back_populates="activities")
