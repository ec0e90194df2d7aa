"""
Materials generation job API routes.

A job walks a company through data collection, document uploads and a
questionnaire before the teaser, information memorandum and pitch deck are
generated.
"""

import logging
import time
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.config.settings import get_settings
from marketplace.database import get_db
from marketplace.middleware.auth import ensure_same_organization, require_roles
from marketplace.models import (
    Company,
    CompanyAsset,
    MaterialGenerationJob,
    MaterialQuestionnaireResponse,
    Profile,
)
from marketplace.models.base import utc_now
from marketplace.services.audit import record_audit
from marketplace.services.documents import LocalStorage, StorageError, get_storage, sanitize_filename
from marketplace.services.materials import (
    ACTIVE_STATUSES,
    ALLOWED_UPLOAD_TYPES,
    CANCELLABLE_STATUSES,
    QUESTIONNAIRE_STATUSES,
    STATUS_PROGRESS,
    available_actions,
    build_questionnaire,
    estimate_remaining_minutes,
    estimate_total_minutes,
    next_steps,
    progress_for,
    questionnaire_progress,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/materials", tags=["materials"])

settings = get_settings()

MATERIALS_ROLES = ("seller", "broker", "admin", "partner")

require_materials_role = require_roles(
    *MATERIALS_ROLES,
    detail="Forbidden - Only sellers, brokers, partners and admins can generate materials"
)


# Pydantic schemas
class GenerateMaterialsRequest(BaseModel):
    """Schema for starting a materials job. company_id is checked in the handler."""
    company_id: Optional[UUID] = None
    generate_teaser: bool = True
    generate_im: bool = False
    generate_pitch_deck: bool = False


class AdvanceRequest(BaseModel):
    status: str = Field(..., min_length=1)


class QuestionnaireAnswers(BaseModel):
    """Answers keyed by question id."""
    answers: Dict[UUID, str] = Field(..., min_length=1)


class JobResponse(BaseModel):
    """Schema for materials job response."""
    id: UUID
    organization_id: UUID
    company_id: UUID
    created_by: Optional[UUID]
    status: str
    progress_percentage: int
    generate_teaser: bool
    generate_im: bool
    generate_pitch_deck: bool
    questionnaire_completed_at: Optional[datetime]
    error_message: Optional[str]
    started_at: datetime
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AssetResponse(BaseModel):
    id: UUID
    company_id: UUID
    job_id: Optional[UUID]
    asset_type: str
    name: str
    file_path: str
    mime_type: Optional[str]
    file_size: int
    created_at: datetime

    class Config:
        from_attributes = True


class QuestionResponse(BaseModel):
    id: UUID
    question_key: str
    question_text: str
    question_category: str
    is_required: bool
    display_order: int
    answer_text: Optional[str]
    answered_at: Optional[datetime]

    class Config:
        from_attributes = True


async def get_accessible_job(db: AsyncSession, job_id: UUID, current_user: Profile) -> MaterialGenerationJob:
    job = await db.get(MaterialGenerationJob, job_id)
    if not job:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Job {job_id} not found"
        )
    ensure_same_organization(job.organization_id, current_user)
    return job


async def get_questions(db: AsyncSession, job_id: UUID) -> list[MaterialQuestionnaireResponse]:
    result = await db.execute(
        select(MaterialQuestionnaireResponse)
        .where(MaterialQuestionnaireResponse.job_id == job_id)
        .order_by(MaterialQuestionnaireResponse.display_order)
    )
    return list(result.scalars().all())


@router.post("/generate", status_code=status.HTTP_201_CREATED)
async def start_generation(
    payload: GenerateMaterialsRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_materials_role)
):
    """
    Start a materials generation job for a company.

    Only one active job per company is allowed.

    Returns:
        The job, its estimated duration and the next steps

    Raises:
        HTTPException: 400 invalid request or company, 409 when a job is already active
    """
    if payload.company_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="company_id is required"
        )

    if not (payload.generate_teaser or payload.generate_im or payload.generate_pitch_deck):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least one material type must be selected"
        )

    result = await db.execute(
        select(Company).where(
            Company.id == payload.company_id,
            Company.organization_id == current_user.organization_id,
            Company.deleted_at.is_(None),
        )
    )
    company = result.scalar_one_or_none()
    if company is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid company or access denied"
        )

    result = await db.execute(
        select(MaterialGenerationJob)
        .where(
            MaterialGenerationJob.company_id == company.id,
            MaterialGenerationJob.status.in_(ACTIVE_STATUSES),
        )
        .limit(1)
    )
    active_job = result.scalar_one_or_none()
    if active_job is not None:
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={
                "detail": "A materials job is already in progress for this company",
                "existing_job_id": str(active_job.id),
                "status": active_job.status,
            },
        )

    job = MaterialGenerationJob(
        organization_id=company.organization_id,
        company_id=company.id,
        created_by=current_user.id,
        status="initiated",
        progress_percentage=0,
        generate_teaser=payload.generate_teaser,
        generate_im=payload.generate_im,
        generate_pitch_deck=payload.generate_pitch_deck,
    )
    db.add(job)
    await db.flush()

    record_audit(db, current_user, "materials.initiated", "materials_job", job.id, {"company_id": str(company.id)})
    await db.commit()
    await db.refresh(job)

    logger.info(f"Materials job {job.id} initiated for company {company.id}")
    return {
        "job": JobResponse.model_validate(job).model_dump(mode="json"),
        "estimated_completion_minutes": estimate_total_minutes(job),
        "next_steps": next_steps(job),
    }


@router.get("/{job_id}/status", response_model=dict)
async def get_job_status(
    job_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_materials_role)
):
    """Progress, remaining time, available actions and uploaded assets of a job."""
    job = await get_accessible_job(db, job_id, current_user)

    result = await db.execute(
        select(CompanyAsset).where(CompanyAsset.job_id == job.id).order_by(CompanyAsset.created_at)
    )
    assets = result.scalars().all()
    questionnaire = questionnaire_progress(await get_questions(db, job.id))

    return {
        "job": JobResponse.model_validate(job).model_dump(mode="json"),
        "progress": job.progress_percentage,
        "estimated_remaining_minutes": estimate_remaining_minutes(job),
        "available_actions": available_actions(job.status),
        "questionnaire": {
            "total": questionnaire["total"],
            "answered": questionnaire["answered"],
            "completion_percentage": questionnaire["percentage"],
        },
        "assets": [AssetResponse.model_validate(a).model_dump(mode="json") for a in assets],
    }


@router.post("/{job_id}/upload", response_model=AssetResponse, status_code=status.HTTP_201_CREATED)
async def upload_material_document(
    job_id: UUID,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    storage: LocalStorage = Depends(get_storage),
    current_user: Profile = Depends(require_materials_role)
):
    """
    Upload a financial document for a job waiting for uploads.

    Raises:
        HTTPException: 400 wrong job status, file type or oversized file
    """
    job = await get_accessible_job(db, job_id, current_user)
    if job.status != "awaiting_uploads":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Job is not accepting uploads (status: {job.status})"
        )
    if file.content_type not in ALLOWED_UPLOAD_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported file type: {file.content_type}"
        )

    data = await file.read()
    if len(data) > settings.max_upload_size_mb * 1024 * 1024:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"File exceeds the {settings.max_upload_size_mb} MB limit"
        )

    name = sanitize_filename(file.filename or "upload")
    path = f"materials/{job.organization_id}/{job.company_id}/{job.id}/{int(time.time() * 1000)}_{name}"

    try:
        storage.save(path, data)
    except StorageError as e:
        logger.error(f"Materials upload failed for job {job.id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store file"
        )

    asset = CompanyAsset(
        organization_id=job.organization_id,
        company_id=job.company_id,
        job_id=job.id,
        uploaded_by=current_user.id,
        asset_type="financial_document",
        name=file.filename or name,
        file_path=path,
        mime_type=file.content_type,
        file_size=len(data),
    )
    db.add(asset)

    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        storage.delete(path)
        logger.error(f"Asset row for {path} could not be saved; file removed", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save document"
        )

    await db.refresh(asset)
    return asset


@router.get("/{job_id}/questionnaire", response_model=dict)
async def get_questionnaire(
    job_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_materials_role)
):
    """Questions of a job in display order with the answering progress."""
    job = await get_accessible_job(db, job_id, current_user)
    questions = await get_questions(db, job.id)
    progress = questionnaire_progress(questions)

    return {
        "questions": [QuestionResponse.model_validate(q).model_dump(mode="json") for q in questions],
        "progress": {
            "total": progress["total"],
            "answered": progress["answered"],
            "percentage": progress["percentage"],
        },
    }


@router.post("/{job_id}/questionnaire", response_model=dict)
async def answer_questionnaire(
    job_id: UUID,
    payload: QuestionnaireAnswers,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_materials_role)
):
    """
    Save answers to a job's questionnaire.

    The first answers move the job to questionnaire_in_progress. Once every
    required question is answered the job moves on to consolidating.

    Returns:
        {"success", "message", "completed", "saved_answers", "remaining_required"}

    Raises:
        HTTPException: 400 job not awaiting answers, unknown question or empty answer
    """
    job = await get_accessible_job(db, job_id, current_user)
    if job.status not in QUESTIONNAIRE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Job is not awaiting questionnaire responses"
        )

    questions = {q.id: q for q in await get_questions(db, job.id)}
    for question_id, answer in payload.answers.items():
        if question_id not in questions:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Question {question_id} does not belong to this job"
            )
        if not answer.strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Answer to question {question_id} is empty"
            )

    answered_at = utc_now()
    for question_id, answer in payload.answers.items():
        questions[question_id].answer_text = answer.strip()
        questions[question_id].answered_at = answered_at

    if job.status == "questionnaire_pending":
        job.status = "questionnaire_in_progress"
        job.progress_percentage = STATUS_PROGRESS["questionnaire_in_progress"]

    progress = questionnaire_progress(questions.values())
    completed = progress["remaining_required"] == 0
    if completed:
        job.questionnaire_completed_at = answered_at
        job.status = "consolidating"
        job.progress_percentage = STATUS_PROGRESS["consolidating"]

    record_audit(
        db, current_user, "materials.questionnaire_answered", "materials_job", job.id,
        {"answers": len(payload.answers), "completed": completed},
    )
    await db.commit()

    if completed:
        logger.info(f"Questionnaire of materials job {job.id} completed")
    return {
        "success": True,
        "message": "Questionnaire completed" if completed else "Answers saved",
        "completed": completed,
        "saved_answers": len(payload.answers),
        "remaining_required": progress["remaining_required"],
    }


@router.post("/{job_id}/advance", response_model=JobResponse)
async def advance_job(
    job_id: UUID,
    payload: AdvanceRequest,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_materials_role)
):
    """
    Move a job to a later pipeline status.

    The progress percentage follows the status. Reaching the questionnaire
    creates its questions; a job cannot move past it while required
    questions are unanswered.

    Raises:
        HTTPException: 400 unknown or earlier status or unanswered questions, 409 finished job
    """
    job = await get_accessible_job(db, job_id, current_user)
    if job.status not in STATUS_PROGRESS or job.status == "completed":
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Job is {job.status}"
        )

    progress = progress_for(payload.status)
    if progress is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown status: {payload.status}"
        )
    if progress < job.progress_percentage:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot move job from {job.status} back to {payload.status}"
        )

    questions = await get_questions(db, job.id)
    if progress > STATUS_PROGRESS["questionnaire_in_progress"]:
        remaining = questionnaire_progress(questions)["remaining_required"]
        if remaining:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{remaining} required questionnaire questions are unanswered"
            )
    elif payload.status in QUESTIONNAIRE_STATUSES and not questions:
        db.add_all(build_questionnaire(job))

    job.status = payload.status
    job.progress_percentage = progress
    if payload.status == "completed":
        job.completed_at = utc_now()

    record_audit(db, current_user, "materials.advanced", "materials_job", job.id, {"status": payload.status})
    await db.commit()
    await db.refresh(job)

    return job


@router.post("/{job_id}/cancel", response_model=JobResponse)
async def cancel_job(
    job_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_materials_role)
):
    """
    Cancel a job that has not started generating.

    Raises:
        HTTPException: 400 if the job can no longer be cancelled
    """
    job = await get_accessible_job(db, job_id, current_user)
    if job.status not in CANCELLABLE_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Job cannot be cancelled in status {job.status}"
        )

    job.status = "cancelled"
    record_audit(db, current_user, "materials.cancelled", "materials_job", job.id)
    await db.commit()
    await db.refresh(job)

    logger.info(f"Materials job {job.id} cancelled")
    return job


@router.get("", response_model=List[JobResponse])
async def list_jobs(
    company_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_materials_role)
):
    """Materials jobs of the user's organization, newest first."""
    query = select(MaterialGenerationJob).where(
        MaterialGenerationJob.organization_id == current_user.organization_id
    )
    if company_id:
        query = query.where(MaterialGenerationJob.company_id == company_id)

    result = await db.execute(query.order_by(MaterialGenerationJob.created_at.desc()))
    return result.scalars().all()
