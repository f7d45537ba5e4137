"""Auto-grading of quiz submissions.

Grading is a pure function of the submitted answers and the quiz questions.
Callers guarantee both sequences have the same length.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

from learning_app.constants.quiz_constants import QUESTION_TYPE_MULTIPLE_CHOICE
from learning_app.core.models import (
    AnswerInput,
    AnswerRecord,
    MultipleChoiceAnswer,
    Question,
    TheoryAnswer,
)


@dataclass(slots=True, frozen=True)
class QuizEvaluation:
    """Aggregate grading result for one submission."""

    evaluated_answers: tuple[AnswerRecord, ...]
    score: float
    correct_answers: int
    total_questions: int
    earned_points: float
    total_points: float


def evaluate_multiple_choice(answer: AnswerInput, question: Question) -> bool:
    if not isinstance(answer, MultipleChoiceAnswer):
        return False
    return answer.selected_option == question.correct_answer


def evaluate_theory(answer: AnswerInput, question: Question) -> bool:
    if not isinstance(answer, TheoryAnswer):
        return False
    submitted = (answer.text_answer or "").strip()
    expected = (question.correct_answer or "").strip()
    if question.case_sensitive:
        return submitted == expected
    return submitted.casefold() == expected.casefold()


def is_answer_correct(answer: AnswerInput, question: Question) -> bool:
    if question.type == QUESTION_TYPE_MULTIPLE_CHOICE:
        return evaluate_multiple_choice(answer, question)
    return evaluate_theory(answer, question)


def round_score(earned_points: float, total_points: float) -> float:
    """Percentage with one decimal place, rounding halves up; 0 for an empty quiz."""
    if total_points <= 0:
        return 0.0
    tenths = Decimal(repr(earned_points / total_points * 1000)).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )
    return float(tenths) / 10


def evaluate_quiz(
    answers: Sequence[AnswerInput],
    questions: Sequence[Question],
) -> QuizEvaluation:
    """Grade ``answers`` against ``questions`` index by index."""
    records: list[AnswerRecord] = []
    correct_answers = 0
    total_points = 0.0
    earned_points = 0.0

    for index, (answer, question) in enumerate(zip(answers, questions)):
        total_points += question.points
        is_correct = is_answer_correct(answer, question)
        if is_correct:
            correct_answers += 1
            earned_points += question.points

        records.append(
            AnswerRecord(
                question_index=index,
                is_correct=is_correct,
                correct_answer=question.correct_answer,
                selected_option=answer.selected_option if isinstance(answer, MultipleChoiceAnswer) else "",
                text_answer=answer.text_answer if isinstance(answer, TheoryAnswer) else "",
                explanation=question.explanation,
            )
        )

    return QuizEvaluation(
        evaluated_answers=tuple(records),
        score=round_score(earned_points, total_points),
        correct_answers=correct_answers,
        total_questions=len(questions),
        earned_points=earned_points,
        total_points=total_points,
    )
