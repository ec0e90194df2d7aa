"""
Survey API routes.

Admins maintain survey templates and send invitations; respondents answer
either anonymously, while logged in, or through an invitation token link.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.database import get_db
from marketplace.middleware.auth import get_current_active_user, get_optional_user, require_admin
from marketplace.models import Profile, SurveyInvitation, SurveyResponse, SurveyTemplate
from marketplace.models.base import utc_now
from marketplace.security import generate_invitation_token
from marketplace.services.attribution import get_client_ip
from marketplace.services.audit import record_audit
from marketplace.services.survey_analytics import analyze_responses

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/surveys", tags=["surveys"])

RESPONSE_STATUS_PATTERN = r"^(started|in_progress|completed|abandoned)$"
OPEN_INVITATION_STATUSES = ("pending", "sent", "opened")


# Pydantic schemas
class SurveyTemplateCreate(BaseModel):
    """Schema for creating a survey template."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    questions: Dict[str, Any]
    settings: Optional[Dict[str, Any]] = None
    language: str = Field(default="fi", pattern=r"^(fi|en|sv)$")
    is_active: bool = False
    is_default: bool = False


class SurveyTemplateUpdate(BaseModel):
    """Schema for updating a survey template."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    questions: Optional[Dict[str, Any]] = None
    settings: Optional[Dict[str, Any]] = None
    language: Optional[str] = Field(None, pattern=r"^(fi|en|sv)$")
    is_active: Optional[bool] = None
    is_default: Optional[bool] = None


class SurveyTemplateResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str]
    questions: dict
    settings: Optional[dict]
    language: str
    is_active: bool
    is_default: bool
    created_by: Optional[UUID]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InvitationCreate(BaseModel):
    """Schema for inviting users and/or email addresses to a survey."""
    template_id: UUID
    user_ids: List[UUID] = Field(default_factory=list)
    emails: List[EmailStr] = Field(default_factory=list)
    company_id: Optional[UUID] = None
    expires_in_days: int = Field(default=30, ge=1, le=365)


class InvitationResponse(BaseModel):
    id: UUID
    template_id: UUID
    user_id: Optional[UUID]
    company_id: Optional[UUID]
    email: str
    token: str
    invitation_status: str
    sent_at: Optional[datetime]
    opened_at: Optional[datetime]
    completed_at: Optional[datetime]
    expires_at: datetime
    created_at: datetime

    class Config:
        from_attributes = True


class SurveyAnswerCreate(BaseModel):
    """Schema for submitting survey answers."""
    template_id: UUID
    answers: Dict[str, Any] = Field(default_factory=dict)
    completion_status: str = Field(default="completed", pattern=RESPONSE_STATUS_PATTERN)
    session_duration: Optional[int] = Field(None, ge=0)
    company_id: Optional[UUID] = None
    invitation_token: Optional[str] = None


class SurveyAnswerUpdate(BaseModel):
    answers: Optional[Dict[str, Any]] = None
    completion_status: Optional[str] = Field(None, pattern=RESPONSE_STATUS_PATTERN)
    session_duration: Optional[int] = Field(None, ge=0)


class TokenAnswerSubmit(BaseModel):
    answers: Dict[str, Any] = Field(default_factory=dict)
    completion_status: str = Field(default="completed", pattern=RESPONSE_STATUS_PATTERN)
    session_duration: Optional[int] = Field(None, ge=0)


class SurveyResponseSchema(BaseModel):
    id: UUID
    template_id: UUID
    invitation_id: Optional[UUID]
    user_id: Optional[UUID]
    company_id: Optional[UUID]
    answers: dict
    completion_status: str
    session_duration: Optional[int]
    started_at: datetime
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


async def get_template_or_404(db: AsyncSession, template_id: UUID) -> SurveyTemplate:
    template = await db.get(SurveyTemplate, template_id)
    if not template:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Survey template {template_id} not found"
        )
    return template


async def unset_other_defaults(db: AsyncSession, template_id: UUID) -> None:
    await db.execute(
        update(SurveyTemplate)
        .where(SurveyTemplate.id != template_id, SurveyTemplate.is_default.is_(True))
        .values(is_default=False)
    )


async def load_invitation(db: AsyncSession, token: str) -> SurveyInvitation:
    """
    Invitation by token, usable for answering.

    Raises:
        HTTPException: 404 unknown token, 400 expired
    """
    result = await db.execute(select(SurveyInvitation).where(SurveyInvitation.token == token))
    invitation = result.scalar_one_or_none()
    if invitation is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Invalid invitation token"
        )
    if invitation.expires_at < utc_now() or invitation.invitation_status == "expired":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invitation has expired"
        )
    return invitation


def apply_completion(response: SurveyResponse, completion_status: str) -> None:
    """
    Move a response to a new completion status.

    Raises:
        HTTPException: 400 when a completed response would be reopened
    """
    if response.completion_status == "completed" and completion_status != "completed":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Completed responses cannot be reopened"
        )
    if completion_status == "completed" and response.completed_at is None:
        response.completed_at = utc_now()
    response.completion_status = completion_status


def mark_invitation(invitation: SurveyInvitation, completion_status: str) -> None:
    now = utc_now()
    if invitation.opened_at is None:
        invitation.opened_at = now
    if completion_status == "completed":
        invitation.invitation_status = "completed"
        invitation.completed_at = now
    elif invitation.invitation_status != "completed":
        invitation.invitation_status = "opened"


# Templates

@router.get("/templates", response_model=List[SurveyTemplateResponse])
async def list_templates(
    template_id: Optional[UUID] = Query(None, alias="id"),
    language: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """Survey templates; admins see every template, other users only active ones."""
    query = select(SurveyTemplate)
    if not current_user.is_admin:
        query = query.where(SurveyTemplate.is_active.is_(True))
    if template_id:
        query = query.where(SurveyTemplate.id == template_id)
    if language:
        query = query.where(SurveyTemplate.language == language)

    result = await db.execute(query.order_by(SurveyTemplate.is_default.desc(), SurveyTemplate.created_at.desc()))
    return result.scalars().all()


@router.post("/templates", response_model=SurveyTemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    template: SurveyTemplateCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin)
):
    """Create a survey template. A new default template replaces the previous default."""
    db_template = SurveyTemplate(**template.model_dump(), created_by=current_user.id)
    db.add(db_template)
    await db.flush()

    if db_template.is_default:
        await unset_other_defaults(db, db_template.id)

    record_audit(db, current_user, "survey_template.created", "survey_template", db_template.id)
    await db.commit()
    await db.refresh(db_template)

    return db_template


@router.put("/templates/{template_id}", response_model=SurveyTemplateResponse)
async def update_template(
    template_id: UUID,
    template_update: SurveyTemplateUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin)
):
    """Update a survey template."""
    db_template = await get_template_or_404(db, template_id)

    update_data = template_update.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(db_template, field, value)

    if update_data.get("is_default"):
        await unset_other_defaults(db, db_template.id)

    record_audit(db, current_user, "survey_template.updated", "survey_template", db_template.id, {"fields": list(update_data)})
    await db.commit()
    await db.refresh(db_template)

    return db_template


@router.delete("/templates/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_template(
    template_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin)
):
    """
    Delete a survey template without responses.

    Raises:
        HTTPException: 400 if responses exist
    """
    db_template = await get_template_or_404(db, template_id)

    response_count = (await db.execute(
        select(func.count(SurveyResponse.id)).where(SurveyResponse.template_id == template_id)
    )).scalar_one()
    if response_count:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot delete template with existing responses"
        )

    record_audit(db, current_user, "survey_template.deleted", "survey_template", template_id)
    await db.delete(db_template)
    await db.commit()

    return None


# Invitations

@router.get("/invitations", response_model=List[InvitationResponse])
async def list_invitations(
    template_id: Optional[UUID] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """Invitations addressed to the user; admins see all invitations."""
    query = select(SurveyInvitation)
    if not current_user.is_admin:
        query = query.where(
            (SurveyInvitation.user_id == current_user.id) | (SurveyInvitation.email == current_user.email)
        )
    if template_id:
        query = query.where(SurveyInvitation.template_id == template_id)
    if status_filter:
        query = query.where(SurveyInvitation.invitation_status == status_filter)

    result = await db.execute(query.order_by(SurveyInvitation.created_at.desc()))
    return result.scalars().all()


@router.post("/invitations", response_model=dict, status_code=status.HTTP_201_CREATED)
async def create_invitations(
    payload: InvitationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin)
):
    """
    Invite users and email addresses to an active survey.

    Recipients who already hold an open invitation for the template are
    skipped.

    Returns:
        Created invitations and the skipped recipients

    Raises:
        HTTPException: 400 without recipients or for an inactive template, 404 unknown template
    """
    if not payload.user_ids and not payload.emails:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="user_ids or emails is required"
        )

    template = await get_template_or_404(db, payload.template_id)
    if not template.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Survey template is not active"
        )

    recipients: list[tuple[Optional[UUID], str]] = []
    if payload.user_ids:
        result = await db.execute(select(Profile).where(Profile.id.in_(payload.user_ids)))
        recipients.extend((user.id, user.email) for user in result.scalars().all())
    recipients.extend((None, str(email)) for email in payload.emails)

    now = utc_now()
    open_result = await db.execute(
        select(SurveyInvitation.user_id, SurveyInvitation.email).where(
            SurveyInvitation.template_id == template.id,
            SurveyInvitation.invitation_status.in_(OPEN_INVITATION_STATUSES),
            SurveyInvitation.expires_at > now,
        )
    )
    open_users = set()
    open_emails = set()
    for user_id, email in open_result.all():
        if user_id:
            open_users.add(user_id)
        open_emails.add(email.lower())

    created = []
    skipped = []
    for user_id, email in recipients:
        if (user_id and user_id in open_users) or email.lower() in open_emails:
            skipped.append(email)
            continue
        invitation = SurveyInvitation(
            template_id=template.id,
            user_id=user_id,
            company_id=payload.company_id,
            email=email,
            token=generate_invitation_token(),
            invitation_status="pending",
            expires_at=now + timedelta(days=payload.expires_in_days),
            created_by=current_user.id,
        )
        db.add(invitation)
        created.append(invitation)
        open_emails.add(email.lower())
        if user_id:
            open_users.add(user_id)

    await db.flush()
    record_audit(
        db, current_user, "survey_invitations.created", "survey_template", template.id,
        {"created": len(created), "skipped": len(skipped)},
    )
    await db.commit()

    logger.info(f"Created {len(created)} invitations for survey {template.id}, skipped {len(skipped)}")
    return {
        "invitations": [InvitationResponse.model_validate(i).model_dump(mode="json") for i in created],
        "created": len(created),
        "skipped": skipped,
    }


# Responses

@router.get("/responses", response_model=dict)
async def list_responses(
    template_id: Optional[UUID] = None,
    response_id: Optional[UUID] = Query(None, alias="id"),
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """The user's own survey responses; admins see all responses."""
    conditions = []
    if not current_user.is_admin:
        conditions.append(SurveyResponse.user_id == current_user.id)
    if template_id:
        conditions.append(SurveyResponse.template_id == template_id)
    if response_id:
        conditions.append(SurveyResponse.id == response_id)
    if status_filter:
        conditions.append(SurveyResponse.completion_status == status_filter)

    total = (await db.execute(select(func.count(SurveyResponse.id)).where(*conditions))).scalar_one()
    result = await db.execute(
        select(SurveyResponse)
        .where(*conditions)
        .order_by(SurveyResponse.created_at.desc())
        .offset(offset)
        .limit(limit)
    )

    return {
        "responses": [SurveyResponseSchema.model_validate(r).model_dump(mode="json") for r in result.scalars().all()],
        "pagination": {"total": total, "limit": limit, "offset": offset, "has_more": total > offset + limit},
    }


@router.post("/responses", response_model=SurveyResponseSchema, status_code=status.HTTP_201_CREATED)
async def submit_response(
    payload: SurveyAnswerCreate,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_user: Optional[Profile] = Depends(get_optional_user)
):
    """
    Submit survey answers, anonymously or as the logged in user.

    Args:
        payload: Answers, optionally with the invitation token they answer

    Raises:
        HTTPException: 404 unknown template, 400 inactive template or a bad invitation token
    """
    template = await get_template_or_404(db, payload.template_id)
    if not template.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Survey template is not active"
        )

    invitation = None
    if payload.invitation_token:
        result = await db.execute(
            select(SurveyInvitation).where(SurveyInvitation.token == payload.invitation_token)
        )
        invitation = result.scalar_one_or_none()
        if invitation is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid invitation token"
            )
        if invitation.expires_at < utc_now():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invitation has expired"
            )
        if invitation.template_id != template.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invitation does not match the survey template"
            )

    response = SurveyResponse(
        template_id=template.id,
        invitation_id=invitation.id if invitation else None,
        user_id=current_user.id if current_user else (invitation.user_id if invitation else None),
        company_id=payload.company_id or (invitation.company_id if invitation else None),
        answers=payload.answers,
        completion_status="started",
        session_duration=payload.session_duration,
        ip_address=get_client_ip(request.headers) or (request.client.host if request.client else None),
        user_agent=request.headers.get("user-agent"),
        referrer=request.headers.get("referer"),
    )
    apply_completion(response, payload.completion_status)
    db.add(response)

    if invitation is not None:
        mark_invitation(invitation, payload.completion_status)

    await db.commit()
    await db.refresh(response)

    logger.info(f"Survey response {response.id} submitted for template {template.id}")
    return response


@router.put("/responses/{response_id}", response_model=SurveyResponseSchema)
async def update_response(
    response_id: UUID,
    payload: SurveyAnswerUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(get_current_active_user)
):
    """
    Update a survey response (owner or admin).

    Raises:
        HTTPException: 404 missing, 403 not the owner, 400 reopening a completed response
    """
    response = await db.get(SurveyResponse, response_id)
    if response is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Survey response {response_id} not found"
        )
    if not current_user.is_admin and response.user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied"
        )

    if payload.answers is not None:
        response.answers = {**(response.answers or {}), **payload.answers}
    if payload.session_duration is not None:
        response.session_duration = payload.session_duration
    if payload.completion_status is not None:
        apply_completion(response, payload.completion_status)

    await db.commit()
    await db.refresh(response)

    return response


# Invitation token links

@router.get("/token/{token}", response_model=dict)
async def open_invitation(
    token: str,
    db: AsyncSession = Depends(get_db)
):
    """
    Resolve an invitation link to its survey.

    Marks pending and sent invitations as opened.

    Returns:
        Invitation, template, any existing response and whether it is completed

    Raises:
        HTTPException: 404 unknown token, 400 expired invitation or inactive template
    """
    invitation = await load_invitation(db, token)
    template = await get_template_or_404(db, invitation.template_id)
    if not template.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Survey template is not active"
        )

    if invitation.invitation_status in ("pending", "sent"):
        invitation.invitation_status = "opened"
        invitation.opened_at = utc_now()
        await db.commit()

    result = await db.execute(
        select(SurveyResponse)
        .where(SurveyResponse.invitation_id == invitation.id)
        .order_by(SurveyResponse.created_at.desc())
        .limit(1)
    )
    existing = result.scalar_one_or_none()

    return {
        "invitation": InvitationResponse.model_validate(invitation).model_dump(mode="json"),
        "template": SurveyTemplateResponse.model_validate(template).model_dump(mode="json"),
        "existing_response": SurveyResponseSchema.model_validate(existing).model_dump(mode="json") if existing else None,
        "already_completed": bool(existing and existing.completion_status == "completed"),
    }


@router.post("/token/{token}", response_model=SurveyResponseSchema)
async def submit_invitation_answers(
    token: str,
    payload: TokenAnswerSubmit,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Answer the survey of an invitation link.

    The invitation's response is created on first submit and updated
    afterwards.

    Raises:
        HTTPException: 404 unknown token, 400 expired invitation, inactive template or reopening
    """
    invitation = await load_invitation(db, token)
    template = await get_template_or_404(db, invitation.template_id)
    if not template.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Survey template is not active"
        )

    result = await db.execute(
        select(SurveyResponse)
        .where(SurveyResponse.invitation_id == invitation.id)
        .order_by(SurveyResponse.created_at.desc())
        .limit(1)
    )
    response = result.scalar_one_or_none()
    if response is None:
        response = SurveyResponse(
            template_id=template.id,
            invitation_id=invitation.id,
            user_id=invitation.user_id,
            company_id=invitation.company_id,
            answers={},
            completion_status="started",
            ip_address=get_client_ip(request.headers) or (request.client.host if request.client else None),
            user_agent=request.headers.get("user-agent"),
        )
        db.add(response)

    response.answers = {**(response.answers or {}), **payload.answers}
    if payload.session_duration is not None:
        response.session_duration = payload.session_duration
    apply_completion(response, payload.completion_status)
    mark_invitation(invitation, payload.completion_status)

    await db.commit()
    await db.refresh(response)

    return response


@router.get("/analytics", response_model=dict)
async def survey_analytics(
    template_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: Profile = Depends(require_admin)
):
    """
    Per-question analytics of a survey template (admin only).

    Returns:
        Template summary, response counts and question analysis
    """
    template = await get_template_or_404(db, template_id)

    result = await db.execute(select(SurveyResponse).where(SurveyResponse.template_id == template_id))
    responses = result.scalars().all()

    report = analyze_responses(responses, template.questions)
    report["summary"].update({
        "template_id": str(template.id),
        "template_name": template.name,
        "total_responses": len(responses),
        "completion_rate": round(
            report["summary"]["total_completed_responses"] / len(responses) * 100, 2
        ) if responses else 0.0,
    })
    return report
