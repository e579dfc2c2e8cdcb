"""
Tests for quiz scoring.
"""

import pytest

from app.models.schemas import (
    GradeResult,
    GradeSource,
    Medication,
    QuizCategory,
    QuizQuestion,
    QuizSelection,
    StructuredSummary,
)
from app.services.quiz_scorer import (
    PASSING_SCORE,
    build_recall_questions,
    score_fraction,
    score_free_text,
    score_multiple_choice,
)


def question(qid, correct, weight, options=("A", "B", "C", "D")):
    return QuizQuestion(
        id=qid,
        question=f"Question {qid}?",
        options=list(options),
        correct_option_indexes=correct,
        category=QuizCategory.CARE,
        weight=weight,
    )


class TestScoreFraction:
    """Test partial credit for multi-select questions."""

    def test_exact_match(self):
        assert score_fraction([0, 1], [1, 0]) == 1.0

    def test_partial_match(self):
        """One of two correct picks earns half."""
        assert score_fraction([0, 1], [0]) == 0.5

    def test_wrong_pick_cancels_hit(self):
        assert score_fraction([0, 1], [0, 2]) == 0.0

    def test_never_negative(self):
        assert score_fraction([0], [1, 2, 3]) == 0.0


class TestMultipleChoice:
    """Test weighted multiple-choice scoring."""

    def test_all_correct_passes(self):
        questions = [question("q1", [0], 30), question("q2", [1, 2], 20)]
        selections = [
            QuizSelection(question_id="q1", selected_option_indexes=[0]),
            QuizSelection(question_id="q2", selected_option_indexes=[2, 1]),
        ]

        result = score_multiple_choice(questions, selections)

        assert result.score == 100
        assert result.passed is True
        assert all(answer.is_correct for answer in result.answers)

    def test_weights_applied(self):
        """Missing a heavy question costs more than a light one."""
        questions = [question("red", [0], 30), question("care", [0], 10)]
        selections = [QuizSelection(question_id="care", selected_option_indexes=[0])]

        result = score_multiple_choice(questions, selections)

        assert result.score == 25
        assert result.passed is False
        assert result.answers[0].selected_option_indexes == []

    def test_unknown_ids_ignored(self):
        """Selections for questions not in the quiz change nothing."""
        questions = [question("q1", [0], 15)]
        selections = [
            QuizSelection(question_id="q1", selected_option_indexes=[0]),
            QuizSelection(question_id="other", selected_option_indexes=[3]),
        ]

        assert score_multiple_choice(questions, selections).score == 100

    def test_empty_quiz(self):
        """No questions scores zero without dividing by zero."""
        result = score_multiple_choice([], [])

        assert result.score == 0
        assert result.answers == []

    @pytest.mark.parametrize("score, passed", [
        (PASSING_SCORE, True),
        (PASSING_SCORE - 1, False),
    ])
    def test_pass_threshold(self, score, passed):
        """The pass mark is inclusive."""
        questions = [question("a", [0], score), question("b", [0], 100 - score)]
        selections = [QuizSelection(question_id="a", selected_option_indexes=[0])]

        result = score_multiple_choice(questions, selections)

        assert result.score == score
        assert result.passed is passed


class TestRecallQuestions:
    """Test free-text question derivation."""

    def test_sections_produce_questions(self, model_payload):
        summary = StructuredSummary(
            red_flags=model_payload["redFlags"],
            medications=[Medication(name="Paracetamol", dose="15 mg/kg", timing="every 6 hours")],
            what_to_do=["Rest", "Fluids", "Paracetamol", "Hand washing"],
            what_not_to_do=["No juice"],
            follow_up=["Pediatrician in 2-3 days"],
        )

        questions = build_recall_questions(summary)

        assert [q.id for q in questions] == ["redFlag1", "med1", "care1", "avoid1", "followUp1"]
        assert [q.weight for q in questions] == [30, 25, 20, 15, 10]
        assert questions[1].correct_answer == "15 mg/kg, every 6 hours"
        assert questions[2].correct_answer == "Rest; Fluids; Paracetamol"

    def test_empty_sections_skipped(self):
        """Nothing is asked about sections the summary does not have."""
        summary = StructuredSummary(follow_up=["See the GP"])

        questions = build_recall_questions(summary)

        assert [q.id for q in questions] == ["followUp1"]


class TestFreeTextScore:
    """Test weighted free-text scoring."""

    def test_weighted_by_correct_answers(self):
        summary = StructuredSummary(red_flags=["Fever"], follow_up=["GP visit"])
        questions = build_recall_questions(summary)
        results = {
            "redFlag1": GradeResult(is_correct=True, feedback="ok", source=GradeSource.MODEL),
            "followUp1": GradeResult(is_correct=False, feedback="no", source=GradeSource.FALLBACK),
        }

        assert score_free_text(questions, results) == 75

    def test_ungraded_questions_count_as_wrong(self):
        summary = StructuredSummary(red_flags=["Fever"])
        assert score_free_text(build_recall_questions(summary), {}) == 0
