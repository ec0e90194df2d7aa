"""
Audit trail helper.
"""

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models import AuditLog, Profile

logger = logging.getLogger(__name__)


def record_audit(
    db: AsyncSession,
    user: Optional[Profile],
    action: str,
    resource_type: str,
    resource_id: Any,
    metadata: Optional[dict] = None,
    status: str = "success",
) -> AuditLog:
    """
    Add an audit log entry to the session.

    The entry is committed together with the change it describes.

    Args:
        db: Database session
        user: Acting user (None for anonymous or system actions)
        action: Dotted action name, e.g. "company.created"
        resource_type: Resource kind, e.g. "company"
        resource_id: Resource identifier
        metadata: Extra context stored as JSON
        status: success, failure or denied

    Returns:
        The pending AuditLog row
    """
    entry = AuditLog(
        organization_id=user.organization_id if user else None,
        user_id=user.id if user else None,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        status=status,
        context_data=metadata,
    )
    db.add(entry)
    logger.info(
        "audit %s %s/%s",
        action,
        resource_type,
        resource_id,
        extra={"user_id": str(user.id) if user else None},
    )
    return entry
