"""
Payment API routes.

Payments record the fees of an organization (commissions, deposits,
milestones). No payment provider is contacted; status changes are recorded
as they are reported.
"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db
from marketplace.middleware.auth import ensure_same_organization, require_permissions
from marketplace.models import Deal, Payment, Profile
from marketplace.models.base import utc_now
from marketplace.services.audit import record_audit

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])

CURRENCY_PATTERN = r"^(EUR|USD|GBP|SEK)$"
TYPE_PATTERN = r"^(commission|deposit|milestone|final|retainer|other)$"
STATUS_PATTERN = r"^(pending|paid|succeeded|overdue|cancelled)$"
PAID_STATUSES = ("paid", "succeeded")


# Pydantic schemas
class PaymentCreate(BaseModel):
    """Schema for creating a payment."""
    amount: float = Field(..., gt=0)
    currency: str = Field(default="EUR", pattern=CURRENCY_PATTERN)
    type: str = Field(default="other", pattern=TYPE_PATTERN)
    status: str = Field(default="pending", pattern=STATUS_PATTERN)
    deal_id: Optional[UUID] = None
    description: Optional[str] = None
    invoice_number: Optional[str] = Field(None, max_length=50)
    due_date: Optional[date] = None


class PaymentUpdate(BaseModel):
    """Schema for updating a payment."""
    status: Optional[str] = Field(None, pattern=STATUS_PATTERN)
    description: Optional[str] = None
    invoice_number: Optional[str] = Field(None, max_length=50)
    due_date: Optional[date] = None


class PaymentResponse(BaseModel):
    """Schema for payment response."""
    id: UUID
    organization_id: UUID
    deal_id: Optional[UUID]
    created_by: Optional[UUID]
    amount: float
    currency: str
    type: str = Field(validation_alias="payment_type")
    status: str
    description: Optional[str]
    invoice_number: Optional[str]
    due_date: Optional[date]
    paid_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PaymentStats(BaseModel):
    total: float
    paid: float
    pending: float
    overdue: float


class PaymentListResponse(BaseModel):
    payments: List[PaymentResponse]
    stats: PaymentStats


def payment_stats(payments: List[Payment]) -> PaymentStats:
    def total(*statuses: str) -> float:
        return round(sum(float(p.amount) for p in payments if not statuses or p.status in statuses), 2)

    return PaymentStats(
        total=total(),
        paid=total(*PAID_STATUSES),
        pending=total("pending"),
        overdue=total("overdue"),
    )


async def get_accessible_payment(db: AsyncSession, payment_id: UUID, current_user: Profile) -> Payment:
    payment = await db.get(Payment, payment_id)
    if not payment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Payment {payment_id} not found"
        )
    ensure_same_organization(payment.organization_id, current_user)
    return payment


@router.get("", response_model=PaymentListResponse)
async def list_payments(
    status_filter: Optional[str] = Query(None, alias="status"),
    deal_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_permissions("payment:read"))
):
    """Payments of the user's organization, newest first, with amount totals per status."""
    query = select(Payment).where(Payment.organization_id == current_user.organization_id)
    if status_filter:
        query = query.where(Payment.status == status_filter)
    if deal_id:
        query = query.where(Payment.deal_id == deal_id)

    result = await db.execute(query.order_by(Payment.created_at.desc()))
    payments = list(result.scalars().all())

    return PaymentListResponse(payments=payments, stats=payment_stats(payments))


@router.post("", response_model=PaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_payment(
    payment: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_permissions("payment:create"))
):
    """
    Record a payment for the user's organization.

    Raises:
        HTTPException: 404 if the user has no organization or the deal is missing,
            403 if the deal belongs to another organization
    """
    if current_user.organization_id is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Organization not found"
        )

    if payment.deal_id is not None:
        deal = await db.get(Deal, payment.deal_id)
        if not deal:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Deal {payment.deal_id} not found"
            )
        if deal.organization_id != current_user.organization_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied"
            )

    data = payment.model_dump(exclude={"type"})
    db_payment = Payment(
        organization_id=current_user.organization_id,
        created_by=current_user.id,
        payment_type=payment.type,
        **data,
    )
    if db_payment.status in PAID_STATUSES:
        db_payment.paid_at = utc_now()
    db.add(db_payment)
    await db.flush()

    record_audit(
        db, current_user, "payment.created", "payment", db_payment.id,
        {"amount": payment.amount, "currency": payment.currency},
    )
    await db.commit()
    await db.refresh(db_payment)

    return db_payment


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_permissions("payment:read"))
):
    """Get payment by ID."""
    return await get_accessible_payment(db, payment_id, current_user)


@router.put("/{payment_id}", response_model=PaymentResponse)
async def update_payment(
    payment_id: UUID,
    payment_update: PaymentUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_permissions("payment:process"))
):
    """
    Update payment status and details.

    Moving to paid or succeeded stamps paid_at.

    Raises:
        HTTPException: 400 when a cancelled or paid payment would change status
    """
    db_payment = await get_accessible_payment(db, payment_id, current_user)

    update_data = payment_update.model_dump(exclude_unset=True)
    new_status = update_data.get("status")
    if new_status and new_status != db_payment.status:
        if db_payment.status == "cancelled" or (
            db_payment.status in PAID_STATUSES and new_status not in PAID_STATUSES
        ):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot change payment status from {db_payment.status} to {new_status}"
            )
        if new_status in PAID_STATUSES and db_payment.paid_at is None:
            db_payment.paid_at = utc_now()

    for field, value in update_data.items():
        setattr(db_payment, field, value)

    record_audit(db, current_user, "payment.updated", "payment", db_payment.id, {"fields": list(update_data)})
    await db.commit()
    await db.refresh(db_payment)

    return db_payment
