"""
Pydantic schemas for PediBrief API.

Wire names are camelCase to match the browser client; Python code uses
snake_case attributes. Both spellings are accepted on input.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, List

from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from app.core.prompts import EXPECTED_COURSE_FALLBACK

EXPLANATION_FALLBACK = (
    "The discharge summary was processed, but no explanation could be extracted."
)


class CamelModel(BaseModel):
    """Base model serializing to camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# Enums
# =============================================================================

class QuizCategory(str, Enum):
    """What a quiz question is about."""
    RED_FLAG = "redFlag"
    MEDICATION = "medication"
    CARE = "care"
    FOLLOW_UP = "followUp"


class GradeSource(str, Enum):
    """Where a grading verdict came from."""
    MODEL = "model"
    FALLBACK = "fallback"


# =============================================================================
# Structured Summary
# =============================================================================

class Medication(CamelModel):
    """One discharge medication, exactly as stated in the source."""

    name: str = Field(default="")
    dose: str = Field(default="")
    timing: str = Field(default="")
    notes: Optional[str] = Field(default=None)


class QuizQuestion(CamelModel):
    """Sanitized multiple-choice question."""

    id: str = Field(description="Unique identifier within the quiz")
    question: str
    options: List[str] = Field(min_length=2, max_length=4)
    correct_option_indexes: List[int] = Field(min_length=1)
    category: QuizCategory = QuizCategory.CARE
    explanation: Optional[str] = None
    weight: int = Field(ge=0, le=100)


class StructuredSummary(CamelModel):
    """Parent-friendly rewrite of a discharge summary."""

    simple_explanation: str = Field(default=EXPLANATION_FALLBACK)
    what_to_do: List[str] = Field(default_factory=list)
    what_not_to_do: List[str] = Field(default_factory=list)
    red_flags: List[str] = Field(default_factory=list)
    medications: List[Medication] = Field(default_factory=list)
    follow_up: List[str] = Field(default_factory=list)
    expected_course: str = Field(default=EXPECTED_COURSE_FALLBACK)
    quiz_questions: Optional[List[QuizQuestion]] = Field(default=None)


class SummarizeRequest(CamelModel):
    """Pasted discharge summary."""

    discharge_text: str = Field(description="Free-form discharge summary text")


# =============================================================================
# Quiz
# =============================================================================

class QuizSelection(CamelModel):
    """Options a parent picked for one question."""

    question_id: str
    selected_option_indexes: List[int] = Field(default_factory=list)


class QuizAnswer(CamelModel):
    """Scored multiple-choice answer."""

    question_id: str
    selected_option_indexes: List[int]
    is_correct: bool
    score_fraction: float = Field(ge=0.0, le=1.0)


class QuizSubmission(CamelModel):
    """Request body for scoring a multiple-choice quiz."""

    questions: List[QuizQuestion]
    answers: List[QuizSelection] = Field(default_factory=list)


class QuizResult(CamelModel):
    """Weighted quiz score on a 0-100 scale."""

    score: int = Field(ge=0, le=100)
    passed: bool
    answers: List[QuizAnswer]


class RecallQuestion(CamelModel):
    """Free-text question derived from a summary section."""

    id: str
    question: str
    correct_answer: str
    weight: int
    category: QuizCategory


class GradeRequest(CamelModel):
    """Free-text answer to grade."""

    question: str
    correct_answer: str
    user_answer: str
    summary_context: str = ""


class GradeResult(CamelModel):
    """Verdict on a free-text answer."""

    is_correct: bool
    feedback: str
    source: GradeSource = GradeSource.MODEL


class RecallScoreRequest(CamelModel):
    """Graded free-text answers keyed by question id."""

    questions: List[RecallQuestion]
    results: Dict[str, GradeResult] = Field(default_factory=dict)


class RecallScoreResponse(CamelModel):
    score: int = Field(ge=0, le=100)
    passed: bool


# =============================================================================
# Export & Email
# =============================================================================

def round_score(v: Any) -> Any:
    """Round a fractional score such as 87.6 computed in the browser."""
    if isinstance(v, float) and math.isfinite(v):
        return round(v)
    return v


class ExportRequest(CamelModel):
    """Request body for PDF export."""

    summary: StructuredSummary
    quiz_score: Optional[int] = Field(default=None, ge=0, le=100)

    @field_validator("quiz_score", mode="before")
    @classmethod
    def _round_score(cls, v: Any) -> Any:
        return round_score(v)


class QuizEmailItem(CamelModel):
    """One question's result as sent to the clinician."""

    question: str
    options: List[str] = Field(default_factory=list)
    correct_options: List[int] = Field(default_factory=list)
    patient_selected: List[int] = Field(default_factory=list)
    is_correct: bool = False
    explanation: Optional[str] = None


class DoctorEmailRequest(CamelModel):
    """
    Request body for the clinician email.

    Fields are optional at the schema level so that missing values are
    answered with 400 by the endpoint rather than a validation error.
    """

    doctor_email: Optional[str] = None
    quiz_score: int = 0
    quiz_data: List[QuizEmailItem] = Field(default_factory=list)
    summary: Optional[dict] = None
    patient_id: Optional[str] = None

    @field_validator("quiz_score", mode="before")
    @classmethod
    def _round_score(cls, v: Any) -> Any:
        return round_score(v)


class DoctorEmailResponse(CamelModel):
    """Result of a successful send."""

    success: bool = True
    message: str = "Email sent successfully"
    patient_id: str
    email_id: str


# =============================================================================
# Health & Errors
# =============================================================================

class HealthResponse(CamelModel):
    """Health check response."""

    status: str = Field(default="healthy")
    version: str = Field(description="Application version")
    llm_configured: bool = False
    email_configured: bool = False
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(description="Error type")
    message: str = Field(description="Human-readable error message")
    error_code: str = Field(description="Machine-readable error code")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
