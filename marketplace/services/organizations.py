"""
Organization creation shared by registration and the organizations API.
"""

import re
import unicodedata
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.models import Organization, Profile


def slugify(name: str) -> str:
    """Lowercase ASCII slug: "Äänekosken Kone Oy" -> "aanekosken-kone-oy"."""
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_name.lower()).strip("-")
    return slug[:100] or "organization"


async def create_organization(
    db: AsyncSession,
    owner: Profile,
    name: str,
    slug: Optional[str] = None,
    description: Optional[str] = None,
    org_type: Optional[str] = None,
    country: Optional[str] = None,
) -> Organization:
    """
    Create an organization and attach the owner to it.

    Raises:
        HTTPException: 409 if the slug is taken
    """
    slug = slug or slugify(name)
    result = await db.execute(select(Organization).where(Organization.slug == slug))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Organization with slug '{slug}' already exists"
        )

    organization = Organization(
        name=name,
        slug=slug,
        description=description,
        org_type=org_type or owner.role,
        country=country or "Finland",
        contact_email=owner.email,
        contact_name=owner.full_name,
    )
    db.add(organization)
    await db.flush()

    owner.organization_id = organization.id
    return organization
