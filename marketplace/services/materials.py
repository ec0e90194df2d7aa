"""
Materials generation job state and the questionnaire asked during a job.
"""

from typing import Iterable, Optional

from marketplace.models import MaterialGenerationJob, MaterialQuestionnaireResponse

# Status -> progress percentage
STATUS_PROGRESS = {
    "initiated": 0,
    "collecting_data": 5,
    "awaiting_uploads": 20,
    "processing_uploads": 25,
    "questionnaire_pending": 30,
    "questionnaire_in_progress": 40,
    "consolidating": 45,
    "generating_teaser": 60,
    "generating_im": 70,
    "generating_pitch_deck": 75,
    "review": 85,
    "completed": 100,
}

ACTIVE_STATUSES = (
    "initiated",
    "collecting_data",
    "awaiting_uploads",
    "processing_uploads",
    "questionnaire_pending",
    "questionnaire_in_progress",
    "consolidating",
    "generating_teaser",
    "generating_im",
    "generating_pitch_deck",
)

CANCELLABLE_STATUSES = ("initiated", "collecting_data", "awaiting_uploads", "questionnaire_pending")

GENERATING_STATUSES = ("generating_teaser", "generating_im", "generating_pitch_deck")

QUESTIONNAIRE_STATUSES = ("questionnaire_pending", "questionnaire_in_progress")

# (category, question, required), asked in this order
DEFAULT_QUESTIONS = (
    ("business_model", "What is your company's unique competitive advantage?", True),
    ("customers", "Who are your main customer segments?", True),
    ("future_goals", "What are your key growth drivers for the next 3 years?", True),
    ("operations", "Describe your operational scalability", False),
    ("legal", "What regulatory or compliance considerations affect your business?", False),
)

ALLOWED_UPLOAD_TYPES = (
    "application/pdf",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "text/csv",
    "image/jpeg",
    "image/png",
)


def _by_scope(job: MaterialGenerationJob, im: int, pitch_deck: int, teaser: int) -> int:
    if job.generate_im:
        return im
    if job.generate_pitch_deck:
        return pitch_deck
    return teaser


def estimate_total_minutes(job: MaterialGenerationJob) -> int:
    """Estimated duration of a new job."""
    return _by_scope(job, 240, 120, 15)


def estimate_remaining_minutes(job: MaterialGenerationJob) -> int:
    if job.status in ("initiated", "collecting_data"):
        return _by_scope(job, 240, 120, 15)
    if job.status in ("awaiting_uploads", "questionnaire_pending"):
        return _by_scope(job, 200, 100, 10)
    if job.status in GENERATING_STATUSES:
        return 5
    return 0


def available_actions(status: str) -> list[str]:
    actions = []
    if status == "awaiting_uploads":
        actions.append("upload_documents")
    if status in QUESTIONNAIRE_STATUSES:
        actions.append("complete_questionnaire")
    if status == "review":
        actions.extend(["review_materials", "approve_materials", "request_changes"])
    if status in CANCELLABLE_STATUSES:
        actions.append("cancel_job")
    return actions


def questionnaire_completion(total: int, answered: int) -> int:
    if total <= 0:
        return 0
    return round(answered / total * 100)


def build_questionnaire(job: MaterialGenerationJob) -> list[MaterialQuestionnaireResponse]:
    """Unanswered question rows for a job reaching the questionnaire."""
    return [
        MaterialQuestionnaireResponse(
            job_id=job.id,
            question_key=f"{category}_{order}",
            question_text=text,
            question_category=category,
            is_required=required,
            display_order=order,
        )
        for order, (category, text, required) in enumerate(DEFAULT_QUESTIONS, start=1)
    ]


def questionnaire_progress(questions: Iterable[MaterialQuestionnaireResponse]) -> dict:
    """Totals of a job's questionnaire; only answered rows count."""
    questions = list(questions)
    answered = sum(1 for q in questions if q.answered_at is not None)
    return {
        "total": len(questions),
        "answered": answered,
        "percentage": questionnaire_completion(len(questions), answered),
        "remaining_required": sum(1 for q in questions if q.is_required and q.answered_at is None),
    }


def next_steps(job: MaterialGenerationJob) -> list[str]:
    steps = [
        "Public data collection starts automatically",
        "Upload financial documents when requested",
        "Answer the questionnaire about the company",
    ]
    outputs = [
        name for flag, name in (
            (job.generate_teaser, "teaser"),
            (job.generate_im, "information memorandum"),
            (job.generate_pitch_deck, "pitch deck"),
        ) if flag
    ]
    steps.append(f"Review the generated {', '.join(outputs)}")
    return steps


def progress_for(status: str) -> Optional[int]:
    """Progress percentage of a status, None for statuses outside the pipeline."""
    return STATUS_PROGRESS.get(status)
