"""
Landing page API routes.

Admins manage localized landing page content; the public site reads
published pages by locale and slug.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db
from marketplace.middleware.auth import require_admin
from marketplace.models import LandingPage, Profile
from marketplace.models.base import utc_now
from marketplace.services.audit import record_audit

router = APIRouter(prefix="/api/v1/landing-pages", tags=["landing-pages"])

LOCALE_PATTERN = r"^(fi|en|sv)$"
SLUG_PATTERN = r"^[a-z0-9-]+$"


# Pydantic schemas
class LandingPageCreate(BaseModel):
    """Schema for creating a landing page."""
    title: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=150, pattern=SLUG_PATTERN)
    locale: str = Field(default="fi", pattern=LOCALE_PATTERN)
    content: Optional[Dict[str, Any]] = None
    meta_title: Optional[str] = Field(None, max_length=255)
    meta_description: Optional[str] = None
    published: bool = False


class LandingPageUpdate(BaseModel):
    """Schema for updating a landing page; id identifies the page."""
    id: Optional[UUID] = None
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, min_length=1, max_length=150, pattern=SLUG_PATTERN)
    locale: Optional[str] = Field(None, pattern=LOCALE_PATTERN)
    content: Optional[Dict[str, Any]] = None
    meta_title: Optional[str] = Field(None, max_length=255)
    meta_description: Optional[str] = None
    published: Optional[bool] = None


class LandingPageResponse(BaseModel):
    id: UUID
    title: str
    slug: str
    locale: str
    content: Optional[dict]
    meta_title: Optional[str]
    meta_description: Optional[str]
    published: bool
    published_at: Optional[datetime]
    created_by: Optional[UUID]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


async def ensure_slug_available(db: AsyncSession, slug: str, locale: str, exclude_id: Optional[UUID] = None) -> None:
    query = select(LandingPage.id).where(LandingPage.slug == slug, LandingPage.locale == locale)
    if exclude_id is not None:
        query = query.where(LandingPage.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Landing page '{slug}' already exists for locale '{locale}'"
        )


async def get_page_or_404(db: AsyncSession, page_id: UUID) -> LandingPage:
    page = await db.get(LandingPage, page_id)
    if not page:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Landing page {page_id} not found"
        )
    return page


@router.get("", response_model=List[LandingPageResponse])
async def list_landing_pages(
    locale: str = "fi",
    published: Optional[bool] = None,
    slug: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin)
):
    """List landing pages of a locale (admin only)."""
    query = select(LandingPage).where(LandingPage.locale == locale)
    if published is not None:
        query = query.where(LandingPage.published.is_(published))
    if slug:
        query = query.where(LandingPage.slug == slug)

    result = await db.execute(query.order_by(LandingPage.slug))
    return result.scalars().all()


@router.post("", response_model=LandingPageResponse, status_code=status.HTTP_201_CREATED)
async def create_landing_page(
    page: LandingPageCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin)
):
    """
    Create a landing page.

    Raises:
        HTTPException: 409 if the slug is taken in the locale
    """
    await ensure_slug_available(db, page.slug, page.locale)

    db_page = LandingPage(**page.model_dump(), created_by=current_user.id)
    if db_page.published:
        db_page.published_at = utc_now()
    db.add(db_page)
    await db.flush()

    record_audit(db, current_user, "landing_page.created", "landing_page", db_page.id, {"slug": page.slug})
    await db.commit()
    await db.refresh(db_page)

    return db_page


@router.put("", response_model=LandingPageResponse)
async def update_landing_page(
    page_update: LandingPageUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin)
):
    """
    Update the landing page named by the id in the body.

    Raises:
        HTTPException: 400 without id, 404 unknown page, 409 slug conflict
    """
    if page_update.id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Landing page id is required"
        )

    db_page = await get_page_or_404(db, page_update.id)
    update_data = page_update.model_dump(exclude_unset=True, exclude={"id"})

    slug = update_data.get("slug", db_page.slug)
    locale = update_data.get("locale", db_page.locale)
    if slug != db_page.slug or locale != db_page.locale:
        await ensure_slug_available(db, slug, locale, exclude_id=db_page.id)

    if update_data.get("published") and not db_page.published:
        db_page.published_at = utc_now()

    for field, value in update_data.items():
        setattr(db_page, field, value)

    record_audit(db, current_user, "landing_page.updated", "landing_page", db_page.id, {"fields": list(update_data)})
    await db.commit()
    await db.refresh(db_page)

    return db_page


@router.delete("/{page_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_landing_page(
    page_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin)
):
    """Delete a landing page (admin only)."""
    db_page = await get_page_or_404(db, page_id)

    record_audit(db, current_user, "landing_page.deleted", "landing_page", page_id)
    await db.delete(db_page)
    await db.commit()

    return None


@router.get("/public/{locale}/{slug}", response_model=LandingPageResponse)
async def get_public_landing_page(
    locale: str,
    slug: str,
    db: AsyncSession = Depends(get_db)
):
    """
    Published landing page by locale and slug.

    Raises:
        HTTPException: 404 if missing or unpublished
    """
    result = await db.execute(
        select(LandingPage).where(
            LandingPage.locale == locale,
            LandingPage.slug == slug,
            LandingPage.published.is_(True),
        )
    )
    page = result.scalar_one_or_none()
    if not page:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Landing page not found"
        )
    return page
