"""
Quiz scoring for PediBrief.

Multiple-choice quizzes come from the model (see quiz_sanitizer).
Free-text recall questions are derived here from the summary sections
and graded one by one through the grader.
"""

from typing import Dict, Iterable, List, Sequence

from app.models.schemas import (
    GradeResult,
    QuizAnswer,
    QuizCategory,
    QuizQuestion,
    QuizResult,
    QuizSelection,
    RecallQuestion,
    StructuredSummary,
)
from app.utils.logger import get_logger

logger = get_logger("quiz_scorer")

PASSING_SCORE = 70


def is_passing(score: int) -> bool:
    return score >= PASSING_SCORE


def score_fraction(correct: Iterable[int], selected: Iterable[int]) -> float:
    """
    Partial credit for one multi-select question.

    Each correct pick earns a share, each wrong pick cancels one; the
    result never goes below zero.
    """
    correct_set = set(correct)
    selected_set = set(selected)
    if not correct_set:
        return 0.0
    hits = len(correct_set & selected_set)
    wrong = len(selected_set - correct_set)
    return max(0.0, (hits - wrong) / len(correct_set))


def _weighted_score(earned: float, total: float) -> int:
    if total <= 0:
        return 0
    return round(earned / total * 100)


def score_multiple_choice(
    questions: Sequence[QuizQuestion],
    selections: Sequence[QuizSelection]
) -> QuizResult:
    """
    Score a multiple-choice quiz.

    Args:
        questions: Sanitized questions, in display order
        selections: The parent's picks; unknown question ids are ignored

    Returns:
        QuizResult with one answer per question, unanswered ones scoring 0
    """
    picks: Dict[str, List[int]] = {}
    for selection in selections:
        picks[selection.question_id] = selection.selected_option_indexes

    answers = []
    earned = 0.0
    total = 0.0

    for question in questions:
        selected = sorted(set(picks.get(question.id, [])))
        fraction = score_fraction(question.correct_option_indexes, selected)
        answers.append(QuizAnswer(
            question_id=question.id,
            selected_option_indexes=selected,
            is_correct=set(selected) == set(question.correct_option_indexes),
            score_fraction=fraction,
        ))
        earned += question.weight * fraction
        total += question.weight

    score = _weighted_score(earned, total)

    logger.info(
        "Multiple-choice quiz scored",
        questions=len(questions),
        answered=sum(1 for q in questions if q.id in picks),
        score=score
    )

    return QuizResult(score=score, passed=is_passing(score), answers=answers)


def build_recall_questions(summary: StructuredSummary) -> List[RecallQuestion]:
    """Derive free-text questions from the non-empty summary sections."""
    questions = []

    if summary.red_flags:
        questions.append(RecallQuestion(
            id="redFlag1",
            question="What are the warning signs that should make you return to the ER immediately?",
            correct_answer="; ".join(summary.red_flags),
            weight=30,
            category=QuizCategory.RED_FLAG,
        ))

    if summary.medications:
        med = summary.medications[0]
        questions.append(RecallQuestion(
            id="med1",
            question=f'For the medication "{med.name}", what is the dose and how often should it be given?',
            correct_answer=f"{med.dose}, {med.timing}",
            weight=25,
            category=QuizCategory.MEDICATION,
        ))

    if summary.what_to_do:
        questions.append(RecallQuestion(
            id="care1",
            question="Name at least two things you should do to help your child recover.",
            correct_answer="; ".join(summary.what_to_do[:3]),
            weight=20,
            category=QuizCategory.CARE,
        ))

    if summary.what_not_to_do:
        questions.append(RecallQuestion(
            id="avoid1",
            question="What should you avoid doing while your child recovers?",
            correct_answer="; ".join(summary.what_not_to_do),
            weight=15,
            category=QuizCategory.CARE,
        ))

    if summary.follow_up:
        questions.append(RecallQuestion(
            id="followUp1",
            question="What follow-up appointments or tasks do you need to complete?",
            correct_answer="; ".join(summary.follow_up),
            weight=10,
            category=QuizCategory.FOLLOW_UP,
        ))

    return questions


def score_free_text(
    questions: Sequence[RecallQuestion],
    results: Dict[str, GradeResult]
) -> int:
    """Weighted score of graded free-text answers keyed by question id."""
    total = sum(q.weight for q in questions)
    earned = sum(
        q.weight for q in questions
        if q.id in results and results[q.id].is_correct
    )
    return _weighted_score(earned, total)
