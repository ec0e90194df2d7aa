"""
Audit log API route.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db
from marketplace.middleware.auth import require_permissions
from marketplace.models import AuditLog, Profile

router = APIRouter(prefix="/api/v1/audit-logs", tags=["audit"])


# Pydantic schemas
class AuditLogResponse(BaseModel):
    id: UUID
    organization_id: Optional[UUID]
    user_id: Optional[UUID]
    action: str
    resource_type: Optional[str]
    resource_id: Optional[str]
    status: str
    context_data: Optional[dict]
    created_at: datetime

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    logs: List[AuditLogResponse]
    total: int
    limit: int
    offset: int


@router.get("", response_model=AuditLogListResponse)
async def list_audit_logs(
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_permissions("audit:read"))
):
    """
    Audit trail of the user's organization, newest first.

    Args:
        action: Exact action name, e.g. "company.created"
        resource_type: Resource kind, e.g. "deal"
    """
    conditions = [AuditLog.organization_id == current_user.organization_id]
    if action:
        conditions.append(AuditLog.action == action)
    if resource_type:
        conditions.append(AuditLog.resource_type == resource_type)

    total = (await db.execute(select(func.count(AuditLog.id)).where(*conditions))).scalar_one()
    result = await db.execute(
        select(AuditLog)
        .where(*conditions)
        .order_by(AuditLog.created_at.desc())
        .offset(offset)
        .limit(limit)
    )

    return AuditLogListResponse(logs=result.scalars().all(), total=total, limit=limit, offset=offset)
