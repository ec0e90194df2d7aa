"""
Finnish business registry search API route.
"""

import logging
import time

from fastapi import APIRouter, Depends, HTTPException, Query, status

from marketplace.middleware.auth import get_current_active_user
from marketplace.models import Profile
from marketplace.services.ytj import YTJClient, YTJError, get_ytj_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/ytj", tags=["business-registry"])


@router.get("/search", response_model=dict)
async def search_companies(
    query: str = "",
    limit: int = Query(5, ge=1, le=50),
    client: YTJClient = Depends(get_ytj_client),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Search the YTJ registry by company name or business id.

    Args:
        query: Company name or business id (1234567-8), at least 3 characters
        limit: Maximum results for name searches

    Returns:
        {"success", "data", "meta"}

    Raises:
        HTTPException: 400 for short queries, upstream status for registry failures
    """
    if len(query) < 3:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Query must be at least 3 characters long"
        )

    started = time.monotonic()
    try:
        results = await client.search(query, limit=limit)
    except YTJError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    elapsed_ms = int((time.monotonic() - started) * 1000)
    logger.info(f"YTJ search '{query}' returned {len(results)} results in {elapsed_ms}ms")

    return {
        "success": True,
        "data": results,
        "meta": {"query": query, "result_count": len(results), "response_time_ms": elapsed_ms},
    }
