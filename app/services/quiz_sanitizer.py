"""
Sanitization of model-proposed quiz questions.

Each item is checked and reshaped so that the UI can trust it:
2-4 real options, no "all of the above" style answers, a non-empty set
of correct indexes that point at surviving options, a weight and a
unique id.
"""

import math
from typing import Any, Dict, List, Optional, Set

from app.models.schemas import QuizCategory, QuizQuestion
from app.utils.logger import get_logger

logger = get_logger("quiz_sanitizer")

MAX_OPTIONS = 4
MIN_OPTIONS = 2

META_OPTIONS = frozenset({
    "all of the above",
    "none of the above",
    "all of the options above",
    "none of the options above",
    "a and b",
    "a and b only",
    "both a and b",
})

CATEGORY_WEIGHTS = {
    QuizCategory.RED_FLAG: 30,
    QuizCategory.MEDICATION: 25,
    QuizCategory.FOLLOW_UP: 20,
    QuizCategory.CARE: 15,
}

_TRAILING_PUNCTUATION = ".!?,;:"


def is_meta_option(option: str) -> bool:
    """True for options like "All of the above." that refer to other options."""
    normalized = option.strip().casefold().rstrip(_TRAILING_PUNCTUATION).strip()
    return normalized in META_OPTIONS


def parse_category(value: Any) -> QuizCategory:
    try:
        return QuizCategory(value)
    except (ValueError, TypeError):
        return QuizCategory.CARE


def default_weight(category: QuizCategory) -> int:
    return CATEGORY_WEIGHTS.get(category, CATEGORY_WEIGHTS[QuizCategory.CARE])


def _weight(value: Any, category: QuizCategory) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        return default_weight(category)
    if math.isinf(value):
        return 100 if value > 0 else 0
    return max(0, min(100, round(value)))


def _as_index(value: Any) -> Optional[int]:
    """Integer value of a JSON number such as 1 or 1.0; None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


class _IdAllocator:
    """Hands out ids that are unique within one quiz."""

    def __init__(self) -> None:
        self._taken: Set[str] = set()

    def allocate(self, proposed: Any, position: int) -> str:
        if isinstance(proposed, str) and proposed.strip() and proposed.strip() not in self._taken:
            candidate = proposed.strip()
        else:
            candidate = f"q{position}"
            suffix = 1
            while candidate in self._taken:
                suffix += 1
                candidate = f"q{position}-{suffix}"
        self._taken.add(candidate)
        return candidate


def sanitize_question(raw: Any, ids: _IdAllocator, position: int) -> Optional[QuizQuestion]:
    """
    Sanitize one raw quiz item.

    Returns:
        QuizQuestion, or None when the item has to be discarded
    """
    if not isinstance(raw, dict):
        return None

    question = raw.get("question")
    raw_options = raw.get("options")
    if not isinstance(question, str) or not question.strip():
        return None
    if not isinstance(raw_options, list) or len(raw_options) < MIN_OPTIONS:
        return None

    # original index -> surviving position, in original order
    survivors: Dict[int, int] = {}
    options: List[str] = []
    for original_index, option in enumerate(raw_options):
        if not isinstance(option, str) or not option.strip() or is_meta_option(option):
            continue
        if len(options) == MAX_OPTIONS:
            break
        survivors[original_index] = len(options)
        options.append(option)

    if len(options) < MIN_OPTIONS:
        return None

    correct: List[int] = []
    raw_correct = raw.get("correctOptionIndexes")
    if isinstance(raw_correct, list):
        for value in raw_correct:
            index = _as_index(value)
            if index in survivors and survivors[index] not in correct:
                correct.append(survivors[index])
    if not correct:
        correct = [0]

    category = parse_category(raw.get("category"))
    explanation = raw.get("explanation")

    return QuizQuestion(
        id=ids.allocate(raw.get("id"), position),
        question=question,
        options=options,
        correct_option_indexes=correct,
        category=category,
        explanation=explanation if isinstance(explanation, str) and explanation.strip() else None,
        weight=_weight(raw.get("weight"), category),
    )


def sanitize_quiz_questions(raw_questions: List[Any]) -> List[QuizQuestion]:
    """
    Sanitize every model-proposed question, dropping unusable ones.

    Args:
        raw_questions: The ``quizQuestions`` list from the model's JSON

    Returns:
        Sanitized questions in their original order
    """
    ids = _IdAllocator()
    sanitized = []

    for position, raw in enumerate(raw_questions, start=1):
        question = sanitize_question(raw, ids, position)
        if question is not None:
            sanitized.append(question)

    dropped = len(raw_questions) - len(sanitized)
    if dropped:
        logger.info("Quiz questions discarded", dropped=dropped, kept=len(sanitized))

    return sanitized
