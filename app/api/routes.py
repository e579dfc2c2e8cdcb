"""
API routes for PediBrief.

One endpoint per wizard step: summarize, quiz, export, email.
Nothing is stored between requests; the browser keeps the session.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from app.config import settings
from app.api.middleware import limiter
from app.core.exceptions import (
    ConfigurationError,
    EmailDeliveryError,
    PediBriefError,
)
from app.models.schemas import (
    DoctorEmailRequest,
    DoctorEmailResponse,
    ErrorResponse,
    ExportRequest,
    GradeRequest,
    GradeResult,
    HealthResponse,
    QuizResult,
    QuizSubmission,
    RecallQuestion,
    RecallScoreRequest,
    RecallScoreResponse,
    StructuredSummary,
    SummarizeRequest,
)
from app.services.discharge_processor import DischargeProcessor, get_discharge_processor
from app.services.email_notifier import DoctorNotifier, get_doctor_notifier
from app.services.grader import AnswerGrader, get_answer_grader
from app.services.quiz_scorer import (
    build_recall_questions,
    is_passing,
    score_free_text,
    score_multiple_choice,
)
from app.services.report_generator import ReportGenerator, get_report_generator
from app.utils.logger import get_logger

logger = get_logger("routes")

router = APIRouter()

RATE_LIMIT = f"{settings.rate_limit_per_minute}/minute"


# =============================================================================
# Health Check
# =============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["System"],
    summary="Health check endpoint"
)
async def health_check():
    """
    Check if the service is healthy and running.

    Reports whether the LLM and email integrations are configured.
    """
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        llm_configured=settings.gemini_configured,
        email_configured=settings.gmail_configured
    )


# =============================================================================
# Summarization
# =============================================================================

@router.post(
    "/summarize",
    response_model=StructuredSummary,
    response_model_exclude_none=True,
    tags=["Summary"],
    summary="Simplify a discharge summary",
    responses={
        400: {"model": ErrorResponse, "description": "Empty discharge text"},
        502: {"model": ErrorResponse, "description": "Model call or parsing failed"},
        503: {"model": ErrorResponse, "description": "LLM not configured"}
    }
)
@limiter.limit(RATE_LIMIT)
async def summarize(
    request: Request,
    body: SummarizeRequest,
    processor: DischargeProcessor = Depends(get_discharge_processor)
):
    """
    Rewrite a pasted pediatric discharge summary for parents.

    Returns the structured explanation with sanitized quiz questions.
    Missing sections come back as empty lists, never as errors.
    """
    if not body.discharge_text.strip():
        raise HTTPException(status_code=400, detail="Discharge summary text is required")

    try:
        return await processor.process(body.discharge_text)

    except ConfigurationError as e:
        logger.error("Summarization unavailable", error=str(e))
        raise HTTPException(status_code=503, detail=str(e))

    except PediBriefError as e:
        logger.error(
            "Summarization failed",
            error_type=type(e).__name__,
            error=str(e)
        )
        raise HTTPException(
            status_code=502,
            detail=f"Failed to process discharge summary: {e}"
        )


# =============================================================================
# Quiz
# =============================================================================

@router.post(
    "/quiz/score",
    response_model=QuizResult,
    tags=["Quiz"],
    summary="Score a multiple-choice quiz"
)
async def score_quiz(body: QuizSubmission):
    """Weighted score of the parent's multiple-choice selections."""
    return score_multiple_choice(body.questions, body.answers)


@router.post(
    "/quiz/recall-questions",
    response_model=List[RecallQuestion],
    tags=["Quiz"],
    summary="Derive free-text recall questions from a summary"
)
async def recall_questions(summary: StructuredSummary):
    """Questions for the free-text quiz, one per non-empty section."""
    return build_recall_questions(summary)


@router.post(
    "/quiz/grade-answer",
    response_model=GradeResult,
    tags=["Quiz"],
    summary="Grade a free-text answer"
)
@limiter.limit(RATE_LIMIT)
async def grade_answer(
    request: Request,
    body: GradeRequest,
    grader: AnswerGrader = Depends(get_answer_grader)
):
    """
    Grade one free-text answer.

    Falls back to keyword matching when the model is unavailable, so
    this endpoint does not fail on grading errors.
    """
    return await grader.grade(
        question=body.question,
        correct_answer=body.correct_answer,
        user_answer=body.user_answer,
        summary_context=body.summary_context
    )


@router.post(
    "/quiz/recall-score",
    response_model=RecallScoreResponse,
    tags=["Quiz"],
    summary="Score graded free-text answers"
)
async def recall_score(body: RecallScoreRequest):
    """Weighted score of a free-text quiz from its grading results."""
    score = score_free_text(body.questions, body.results)
    return RecallScoreResponse(score=score, passed=is_passing(score))


# =============================================================================
# PDF Export
# =============================================================================

@router.post(
    "/export-pdf",
    tags=["Export"],
    summary="Download the care summary as PDF",
    response_class=Response,
    responses={200: {"content": {"application/pdf": {}}}}
)
async def export_pdf(
    body: ExportRequest,
    generator: ReportGenerator = Depends(get_report_generator)
):
    """Render the summary and quiz score into a downloadable document."""
    document = generator.generate_pdf(body.summary, body.quiz_score)

    return Response(
        content=document.content,
        media_type=document.media_type,
        headers={"Content-Disposition": f'attachment; filename="{document.filename}"'}
    )


# =============================================================================
# Clinician Email
# =============================================================================

@router.post(
    "/send-doctor-email",
    response_model=DoctorEmailResponse,
    tags=["Email"],
    summary="Email quiz results to the clinician",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid email or patient ID"},
        500: {"model": ErrorResponse, "description": "Email not configured or send failed"}
    }
)
@limiter.limit(RATE_LIMIT)
def send_doctor_email(
    request: Request,
    body: DoctorEmailRequest,
    notifier: DoctorNotifier = Depends(get_doctor_notifier)
):
    """
    Send the parent's quiz results to the clinician via Gmail.

    Only a de-identified patient identifier is included.
    """
    if not body.doctor_email or "@" not in body.doctor_email:
        raise HTTPException(status_code=400, detail="Valid doctor email is required")

    if not body.patient_id:
        raise HTTPException(status_code=400, detail="Patient ID is required")

    if not notifier.sender.is_configured():
        logger.error("Gmail credentials not set")
        raise HTTPException(
            status_code=500,
            detail="Email service is not configured. Please set Gmail OAuth2 credentials."
        )

    try:
        email_id = notifier.notify(
            doctor_email=body.doctor_email,
            patient_id=body.patient_id,
            quiz_score=body.quiz_score,
            quiz_data=body.quiz_data
        )
    except (ConfigurationError, EmailDeliveryError) as e:
        logger.error("Doctor email failed", error_type=type(e).__name__, error=str(e))
        raise HTTPException(status_code=500, detail=str(e))

    return DoctorEmailResponse(patient_id=body.patient_id, email_id=email_id)
