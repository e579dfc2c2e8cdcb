"""
Coercion of parsed model output into a StructuredSummary.

Nothing here invents content. A field that is missing or has the wrong
shape is replaced by its documented default; everything else is kept as
the model wrote it. Partial output is always preferred to an error.
"""

from typing import Any, Dict, List, Optional

from app.core.prompts import EXPECTED_COURSE_FALLBACK
from app.models.schemas import EXPLANATION_FALLBACK, Medication, StructuredSummary
from app.services.quiz_sanitizer import sanitize_quiz_questions
from app.utils.logger import get_logger

logger = get_logger("summary_normalizer")

STRING_LIST_FIELDS = ("whatToDo", "whatNotToDo", "redFlags", "followUp")


def _text_or_default(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default


def _string_list(value: Any) -> List[str]:
    """Keep the non-empty string entries of a list; anything else becomes []."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item.strip()]


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _medications(value: Any) -> List[Medication]:
    if not isinstance(value, list):
        return []

    medications = []
    for item in value:
        if not isinstance(item, dict):
            continue
        notes = item.get("notes")
        medications.append(Medication(
            name=_as_text(item.get("name")),
            dose=_as_text(item.get("dose")),
            timing=_as_text(item.get("timing")),
            notes=_as_text(notes) if notes not in (None, "") else None,
        ))
    return medications


def normalize_summary(parsed: Any) -> StructuredSummary:
    """
    Build a StructuredSummary from whatever JSON the model returned.

    Args:
        parsed: Decoded JSON value, normally a dict with camelCase keys

    Returns:
        StructuredSummary with every list present and text defaults applied
    """
    data: Dict[str, Any] = parsed if isinstance(parsed, dict) else {}
    if not isinstance(parsed, dict):
        logger.warning("Model output is not a JSON object", type=type(parsed).__name__)

    lists = {name: _string_list(data.get(name)) for name in STRING_LIST_FIELDS}

    quiz_questions: Optional[list] = None
    raw_quiz = data.get("quizQuestions")
    if isinstance(raw_quiz, list):
        quiz_questions = sanitize_quiz_questions(raw_quiz)

    summary = StructuredSummary(
        simple_explanation=_text_or_default(data.get("simpleExplanation"), EXPLANATION_FALLBACK),
        what_to_do=lists["whatToDo"],
        what_not_to_do=lists["whatNotToDo"],
        red_flags=lists["redFlags"],
        medications=_medications(data.get("medications")),
        follow_up=lists["followUp"],
        expected_course=_text_or_default(data.get("expectedCourse"), EXPECTED_COURSE_FALLBACK),
        quiz_questions=quiz_questions,
    )

    logger.info(
        "Summary normalized",
        red_flags=len(summary.red_flags),
        medications=len(summary.medications),
        quiz_questions=len(summary.quiz_questions or []),
        raw_quiz_items=len(raw_quiz) if isinstance(raw_quiz, list) else 0
    )

    return summary
