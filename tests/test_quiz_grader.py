"""Tests for the auto-grading functions."""

from __future__ import annotations

import pytest

from learning_app.core.models import MultipleChoiceAnswer, Question, TheoryAnswer
from learning_app.core.quiz_grader import evaluate_quiz, evaluate_theory, round_score


def test_all_correct_answers_score_full_marks(colour_questions):
    result = evaluate_quiz(
        [MultipleChoiceAnswer("0"), TheoryAnswer("Blue")],
        colour_questions,
    )

    assert result.score == 100.0
    assert result.correct_answers == 2
    assert result.total_questions == 2
    assert result.earned_points == 2
    assert result.total_points == 2


def test_all_wrong_answers_score_zero(colour_questions):
    result = evaluate_quiz(
        [MultipleChoiceAnswer("1"), TheoryAnswer("red")],
        colour_questions,
    )

    assert result.score == 0.0
    assert result.correct_answers == 0
    assert [r.is_correct for r in result.evaluated_answers] == [False, False]


def test_multiple_choice_is_exact_token_match():
    question = Question(type="multiple_choice", question="Pick", options=("a", "b", "c"), correct_answer="2")

    assert not evaluate_quiz([MultipleChoiceAnswer("1")], [question]).evaluated_answers[0].is_correct
    assert not evaluate_quiz([MultipleChoiceAnswer(" 2")], [question]).evaluated_answers[0].is_correct
    assert evaluate_quiz([MultipleChoiceAnswer("2")], [question]).evaluated_answers[0].is_correct


def test_theory_ignores_case_and_surrounding_whitespace():
    question = Question(type="theory", question="Capital of France?", correct_answer="paris")

    assert evaluate_theory(TheoryAnswer("Paris "), question)
    assert evaluate_theory(TheoryAnswer("  PARIS"), question)
    assert not evaluate_theory(TheoryAnswer("Par is"), question)


def test_theory_honours_case_sensitive_flag():
    question = Question(type="theory", question="Symbol for sodium?", correct_answer="Na", case_sensitive=True)

    assert evaluate_theory(TheoryAnswer(" Na "), question)
    assert not evaluate_theory(TheoryAnswer("na"), question)


def test_answer_of_the_wrong_kind_is_incorrect(colour_questions):
    result = evaluate_quiz(
        [TheoryAnswer("0"), MultipleChoiceAnswer("blue")],
        colour_questions,
    )

    assert result.score == 0.0
    first, second = result.evaluated_answers
    assert first.selected_option == "" and first.text_answer == "0"
    assert second.text_answer == "" and second.selected_option == "blue"


def test_records_always_carry_index_and_correct_answer(colour_questions):
    result = evaluate_quiz([TheoryAnswer(""), TheoryAnswer("")], colour_questions)

    assert [r.question_index for r in result.evaluated_answers] == [0, 1]
    assert [r.correct_answer for r in result.evaluated_answers] == ["0", "blue"]
    assert result.evaluated_answers[0].explanation == "Rayleigh scattering."


def test_points_weight_the_score():
    questions = [
        Question(type="theory", question="Heavy", correct_answer="yes", points=3),
        Question(type="theory", question="Light", correct_answer="yes", points=1),
    ]

    result = evaluate_quiz([TheoryAnswer("yes"), TheoryAnswer("no")], questions)

    assert result.earned_points == 3
    assert result.total_points == 4
    assert result.score == 75.0


@pytest.mark.parametrize(
    ("earned", "total", "expected"),
    [
        (1, 3, 33.3),
        (2, 3, 66.7),
        (1, 8, 12.5),
        (0, 0, 0.0),
    ],
)
def test_score_is_rounded_to_one_decimal(earned, total, expected):
    assert round_score(earned, total) == expected


def test_zero_point_quiz_scores_zero():
    questions = [Question(type="theory", question="Free", correct_answer="x", points=0)]

    assert evaluate_quiz([TheoryAnswer("x")], questions).score == 0.0
