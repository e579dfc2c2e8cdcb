"""
Free-text answer grading for PediBrief.

The model judges the answer first. If that round trip fails for any
reason, a deterministic keyword-overlap check decides instead so that
the quiz keeps working offline.
"""

import re
from typing import Any, Optional

from app.core.exceptions import PediBriefError
from app.core.json_extractor import extract_json_object
from app.core.llm_engine import (
    CompletionClient,
    get_completion_client,
    grading_generation_config,
)
from app.core.prompts import build_grading_prompt
from app.models.schemas import GradeResult, GradeSource
from app.utils.logger import get_logger

logger = get_logger("grader")

DEFAULT_FEEDBACK = "Thank you for your answer."
FALLBACK_CORRECT_FEEDBACK = "Great! You've correctly identified the key points."

_TOKEN_SPLIT = re.compile(r"[;,\s]+")
MIN_KEYWORD_LENGTH = 4


class MalformedGradeError(PediBriefError):
    """The grading model answered, but not with ``{isCorrect, feedback}``."""


def keyword_grade(correct_answer: str, user_answer: str) -> GradeResult:
    """
    Offline grading by keyword overlap.

    Tokens of the reference answer longer than three characters count as
    keywords. The answer is correct when it contains at least
    ``min(3, token_count / 3)`` keyword occurrences, where token_count
    includes the short tokens.
    """
    tokens = [token for token in _TOKEN_SPLIT.split(correct_answer.lower()) if token]
    answer = user_answer.lower()

    matched = [
        token for token in tokens
        if len(token) >= MIN_KEYWORD_LENGTH and token in answer
    ]
    is_correct = len(matched) >= min(3, len(tokens) / 3)

    if is_correct:
        feedback = FALLBACK_CORRECT_FEEDBACK
    else:
        key_points = ", ".join(correct_answer.split(";")[:2])
        feedback = (
            f"The key points to remember are: {key_points}. "
            "Try to include these in your answer."
        )

    return GradeResult(is_correct=is_correct, feedback=feedback, source=GradeSource.FALLBACK)


def _parse_verdict(parsed: Any) -> GradeResult:
    if not isinstance(parsed, dict):
        raise MalformedGradeError("Grading response is not an object")

    is_correct = parsed.get("isCorrect")
    if not isinstance(is_correct, bool):
        raise MalformedGradeError("Grading response has no boolean isCorrect")

    feedback = parsed.get("feedback")
    if not isinstance(feedback, str) or not feedback.strip():
        feedback = DEFAULT_FEEDBACK

    return GradeResult(is_correct=is_correct, feedback=feedback, source=GradeSource.MODEL)


class AnswerGrader:
    """Grades free-text quiz answers against a reference answer."""

    def __init__(self, client: Optional[CompletionClient] = None):
        self.client = client or get_completion_client()
        self.generation_config = grading_generation_config()

    async def grade(
        self,
        question: str,
        correct_answer: str,
        user_answer: str,
        summary_context: str = ""
    ) -> GradeResult:
        """
        Grade one answer. Never raises for grading failures.

        Args:
            question: The question shown to the parent
            correct_answer: Reference answer (key points, ';'-separated)
            user_answer: What the parent typed
            summary_context: Optional summary text for the grader

        Returns:
            GradeResult from the model, or from keyword_grade on failure
        """
        prompt = build_grading_prompt(question, correct_answer, user_answer, summary_context)

        try:
            completion = await self.client.complete(prompt, self.generation_config)
            result = _parse_verdict(extract_json_object(completion.text))
        except Exception as e:
            logger.warning(
                "Model grading failed, using keyword fallback",
                error_type=type(e).__name__,
                error=str(e)
            )
            return keyword_grade(correct_answer, user_answer)

        logger.info("Answer graded", is_correct=result.is_correct, source=result.source.value)
        return result


# Lazy-loaded singleton
_grader: Optional[AnswerGrader] = None


def get_answer_grader() -> AnswerGrader:
    """Get or create answer grader singleton."""
    global _grader
    if _grader is None:
        _grader = AnswerGrader()
    return _grader
