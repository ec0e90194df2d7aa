"""
Document upload API routes.

Uploaded financial documents are stored under the company's directory and
classified by type from the manual selection or the filename.
"""

import logging
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config.settings import get_settings
from marketplace.database import get_db
from marketplace.middleware.auth import get_current_active_user
from marketplace.models import Company, Document, Profile
from marketplace.services.audit import record_audit
from marketplace.services.documents import (
    LocalStorage,
    StorageError,
    get_storage,
    random_storage_name,
    resolve_document_type,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/documents", tags=["documents"])

settings = get_settings()


# Pydantic schemas
class DocumentResponse(BaseModel):
    """Schema for document response."""
    id: UUID
    company_id: UUID
    uploaded_by: Optional[UUID]
    name: str
    file_path: str
    mime_type: Optional[str]
    file_size: int
    document_type: str
    is_manual_type: bool
    fiscal_year: Optional[int]
    processing_status: str
    created_at: datetime

    class Config:
        from_attributes = True


async def get_company_for_documents(db: AsyncSession, company_id: UUID, current_user: Profile) -> Company:
    """
    Company whose documents the user may manage: its creator, members of
    its organization and admins.

    Raises:
        HTTPException: 404 if missing, 403 otherwise
    """
    result = await db.execute(
        select(Company).where(Company.id == company_id, Company.deleted_at.is_(None))
    )
    company = result.scalar_one_or_none()
    if not company:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Company {company_id} not found"
        )

    allowed = (
        current_user.is_admin
        or company.created_by == current_user.id
        or (current_user.organization_id is not None and company.organization_id == current_user.organization_id)
    )
    if not allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied"
        )
    return company


@router.post("/upload", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: Optional[UploadFile] = File(None),
    company_id: Optional[UUID] = Form(None),
    document_type: Optional[str] = Form(None),
    fiscal_year: Optional[int] = Form(None),
    db: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Upload a document for a company.

    Args:
        file: The uploaded file
        company_id: Owning company
        document_type: Optional manual type (leasing_document, collateral_document, other)
        fiscal_year: Optional fiscal year the document covers

    Returns:
        The stored document with processing_status "pending"

    Raises:
        HTTPException: 400 missing file or company_id or oversized file, 403/404 company access
    """
    if file is None or not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file provided"
        )
    if company_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="company_id is required"
        )

    company = await get_company_for_documents(db, company_id, current_user)

    data = await file.read()
    if len(data) > settings.max_upload_size_mb * 1024 * 1024:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File exceeds the {settings.max_upload_size_mb} MB limit"
        )

    doc_type, is_manual = resolve_document_type(file.filename, document_type, fiscal_year)
    storage_path = f"{company.id}/{random_storage_name(file.filename)}"

    try:
        storage.save(storage_path, data)
    except StorageError as e:
        logger.error(f"Document storage failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store file"
        )

    document = Document(
        company_id=company.id,
        uploaded_by=current_user.id,
        name=file.filename,
        file_path=storage_path,
        mime_type=file.content_type,
        file_size=len(data),
        document_type=doc_type,
        is_manual_type=is_manual,
        fiscal_year=fiscal_year,
        processing_status="pending",
    )
    db.add(document)

    try:
        await db.flush()
        record_audit(db, current_user, "document.uploaded", "document", document.id, {"document_type": doc_type})
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        storage.delete(storage_path)
        logger.error(f"Document row for {storage_path} could not be saved; file removed", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save document"
        )

    await db.refresh(document)
    logger.info(f"Document {document.id} uploaded for company {company.id} as {doc_type}")
    return document


@router.get("", response_model=List[DocumentResponse])
async def list_documents(
    company_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """Documents of a company, newest first."""
    await get_company_for_documents(db, company_id, current_user)

    result = await db.execute(
        select(Document)
        .where(Document.company_id == company_id)
        .order_by(Document.created_at.desc())
    )
    return result.scalars().all()


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: UUID,
    db: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Delete a document and its stored file.

    Raises:
        HTTPException: 404 missing document, 403 company access
    """
    document = await db.get(Document, document_id)
    if not document:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Document {document_id} not found"
        )
    await get_company_for_documents(db, document.company_id, current_user)

    try:
        storage.delete(document.file_path)
    except StorageError as e:
        logger.warning(f"Stored file of document {document_id} could not be removed: {e}")

    record_audit(db, current_user, "document.deleted", "document", document_id)
    await db.delete(document)
    await db.commit()

    return None
