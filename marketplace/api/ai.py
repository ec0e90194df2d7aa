"""
AI content generation API route.

Builds a prompt from company or deal data, calls the LLM with retries and
stores the generated text.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.database import get_db
from marketplace.middleware.auth import ensure_same_organization, get_current_active_user
from marketplace.models import AIGeneratedContent, Company, CompanyAsset, Deal, Profile
from marketplace.services.ai import (
    CONTENT_TYPE_ROLES,
    ONBOARDING_TYPES,
    RESOURCE_TYPES,
    ContentGenerationError,
    GeminiClient,
    can_generate_content,
    generate_with_retry,
    get_ai_client,
)
from marketplace.services.prompts import build_onboarding_prompt, build_prompt

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/ai", tags=["ai"])


# Pydantic schemas
class GenerateContentRequest(BaseModel):
    """Schema for a content generation request. Fields are checked in the handler."""
    type: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[UUID] = None
    params: Dict[str, Any] = Field(default_factory=dict)
    context: Dict[str, Any] = Field(default_factory=dict)


class GenerateContentResponse(BaseModel):
    content: str
    content_id: UUID
    type: str
    resource_type: Optional[str]
    resource_id: Optional[UUID]


async def load_resource(db: AsyncSession, resource_type: str, resource_id: UUID):
    """Company or deal with the relations the prompt builders read; None when missing."""
    if resource_type == "company":
        result = await db.execute(
            select(Company)
            .options(selectinload(Company.financials))
            .where(Company.id == resource_id, Company.deleted_at.is_(None))
        )
    else:
        result = await db.execute(
            select(Deal)
            .options(selectinload(Deal.company).selectinload(Company.financials))
            .where(Deal.id == resource_id)
        )
    return result.scalar_one_or_none()


@router.post("/generate-content", response_model=GenerateContentResponse)
async def generate_content(
    payload: GenerateContentRequest,
    db: AsyncSession = Depends(get_db),
    client: GeminiClient = Depends(get_ai_client),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Generate marketing or analysis content with the LLM.

    Onboarding types (organization_name, organization_description) need no
    resource; every other type is generated for a company or deal of the
    user's organization.

    Args:
        payload: Content type, resource and prompt parameters

    Returns:
        The stored content and its id

    Raises:
        HTTPException: 400 invalid request, 403 role or organization mismatch,
            404 missing resource, 500 when every attempt fails
    """
    content_type = payload.type
    if not content_type or content_type not in CONTENT_TYPE_ROLES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing or invalid content type"
        )

    if not can_generate_content(current_user.role, content_type):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Role {current_user.role} cannot generate {content_type} content"
        )

    resource = None
    if content_type in ONBOARDING_TYPES:
        context = {
            "user_name": current_user.full_name,
            "user_email": current_user.email,
            "user_role": current_user.role,
            **payload.context,
        }
        prompt = build_onboarding_prompt(content_type, context)
    else:
        if payload.resource_type not in RESOURCE_TYPES or payload.resource_id is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Missing required fields: type, resource_type and resource_id"
            )

        resource = await load_resource(db, payload.resource_type, payload.resource_id)
        if resource is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Resource not found"
            )
        ensure_same_organization(resource.organization_id, current_user)

        assets = None
        if isinstance(resource, Company):
            result = await db.execute(select(CompanyAsset).where(CompanyAsset.company_id == resource.id))
            assets = list(result.scalars().all())
        prompt = build_prompt(content_type, resource, payload.params, assets)

    try:
        content = await generate_with_retry(client, prompt)
    except ContentGenerationError as e:
        logger.error(f"AI content generation failed for {content_type}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(e)
        )

    record = AIGeneratedContent(
        user_id=current_user.id,
        organization_id=current_user.organization_id,
        content_type=content_type,
        content=content,
        resource_type=payload.resource_type if resource is not None else None,
        resource_id=payload.resource_id if resource is not None else None,
        model_used=client.model,
        content_metadata={"params": payload.params, "prompt_length": len(prompt)},
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)

    logger.info(
        "AI content generated",
        extra={"content_type": content_type, "content_id": str(record.id), "user_id": str(current_user.id)},
    )
    return GenerateContentResponse(
        content=content,
        content_id=record.id,
        type=content_type,
        resource_type=record.resource_type,
        resource_id=record.resource_id,
    )
