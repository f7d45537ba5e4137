"""Domain models for quizzes, attempts and course progress.

Entity defaults live in the ``build_*`` helpers at the bottom of this module.
Stores and services call them once when data enters the domain instead of
patching missing fields at each call site.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Union
from uuid import uuid4

from learning_app.constants.quiz_constants import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_PASSING_SCORE,
    DEFAULT_QUESTION_POINTS,
    DEFAULT_TIME_LIMIT_MINUTES,
    QUESTION_TYPE_MULTIPLE_CHOICE,
    QUESTION_TYPES,
)
from learning_app.core.errors import BadRequestError, QuizConfigurationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_document_id() -> str:
    return uuid4().hex


@dataclass(slots=True, frozen=True)
class Question:
    """Single quiz question; ``correct_answer`` is an option index as text for multiple choice."""

    type: str
    question: str
    correct_answer: str
    options: tuple[str, ...] = ()
    points: float = DEFAULT_QUESTION_POINTS
    explanation: str = ""
    case_sensitive: bool = False
    expected_keywords: tuple[str, ...] = ()  # Rubric metadata, not used by grading
    min_words: int = 0
    max_words: int = 1000
    grading_rubric: str = ""


@dataclass(slots=True)
class Quiz:
    """Quiz definition owned by an instructor and attached to one lesson."""

    id: str
    title: str
    questions: list[Question]
    course_id: str
    lesson_id: str
    instructor_id: str
    description: str = ""
    passing_score: float = DEFAULT_PASSING_SCORE
    time_limit: int = DEFAULT_TIME_LIMIT_MINUTES
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    is_mandatory: bool = True
    shuffle_questions: bool = False
    show_results: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True, frozen=True)
class MultipleChoiceAnswer:
    """Submitted option token for a multiple-choice question."""

    selected_option: str


@dataclass(slots=True, frozen=True)
class TheoryAnswer:
    """Submitted free text for a theory question."""

    text_answer: str


AnswerInput = Union[MultipleChoiceAnswer, TheoryAnswer]


@dataclass(slots=True, frozen=True)
class AnswerRecord:
    """Graded answer stored on an attempt."""

    question_index: int
    is_correct: bool
    correct_answer: str
    selected_option: str = ""
    text_answer: str = ""
    explanation: str = ""


@dataclass(slots=True, frozen=True)
class Attempt:
    """One persisted, graded submission. Never mutated after creation."""

    id: str
    student_id: str
    quiz_id: str
    lesson_id: str
    answers: tuple[AnswerRecord, ...]
    score: float
    passed: bool
    time_spent: int
    attempt_number: int
    created_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True, frozen=True)
class CompletedLesson:
    lesson_id: str
    completed_at: datetime


@dataclass(slots=True, frozen=True)
class Progress:
    """Snapshot of a student's completion state for one course."""

    student_id: str
    course_id: str
    completed_lessons: tuple[CompletedLesson, ...] = ()
    progress_percentage: int = 0
    last_accessed: datetime | None = None
    total_time_spent: int = 0

    def has_completed(self, lesson_id: str) -> bool:
        return any(entry.lesson_id == lesson_id for entry in self.completed_lessons)


@dataclass(slots=True, frozen=True)
class Course:
    """Read-only course view supplied by the catalog collaborator."""

    id: str
    title: str
    instructor_id: str
    lesson_ids: tuple[str, ...] = ()


# --- Construction and validation -------------------------------------------


def build_question(data: Mapping[str, Any]) -> Question:
    """Validate a raw question mapping and apply defaults."""
    question_type = str(data.get("type") or "")
    if question_type not in QUESTION_TYPES:
        raise BadRequestError(
            f"Question type must be one of {', '.join(QUESTION_TYPES)}; got '{question_type}'."
        )
    text = str(data.get("question") or "").strip()
    if not text:
        raise BadRequestError("Question text must not be empty.")

    options = tuple(str(option).strip() for option in data.get("options") or ())
    raw_correct = data.get("correct_answer")
    if raw_correct is None or str(raw_correct).strip() == "":
        raise BadRequestError(f"Question '{text}' is missing a correct answer.")
    correct_answer = str(raw_correct).strip()

    if question_type == QUESTION_TYPE_MULTIPLE_CHOICE:
        if len(options) < 2:
            raise BadRequestError("Multiple choice questions need at least two options.")
        if any(not option for option in options):
            raise BadRequestError("Option text cannot be empty.")
        if not correct_answer.isdigit() or not 0 <= int(correct_answer) < len(options):
            raise BadRequestError(
                f"Correct answer must be an option index between 0 and {len(options) - 1}."
            )

    points = _number_or_default(data.get("points"), DEFAULT_QUESTION_POINTS)
    if points < 0:
        raise BadRequestError("Question points cannot be negative.")

    return Question(
        type=question_type,
        question=text,
        correct_answer=correct_answer,
        options=options,
        points=points,
        explanation=str(data.get("explanation") or ""),
        case_sensitive=bool(data.get("case_sensitive", False)),
        expected_keywords=tuple(str(k) for k in data.get("expected_keywords") or ()),
        min_words=int(data.get("min_words") or 0),
        max_words=int(data.get("max_words") or 1000),
        grading_rubric=str(data.get("grading_rubric") or ""),
    )


def build_quiz(
    data: Mapping[str, Any],
    *,
    instructor_id: str,
    quiz_id: str | None = None,
    created_at: datetime | None = None,
) -> Quiz:
    """Validate a raw quiz mapping and return a fully defaulted ``Quiz``."""
    title = str(data.get("title") or "").strip()
    if not title:
        raise BadRequestError("Quiz title must not be empty.")
    course_id = str(data.get("course_id") or "")
    lesson_id = str(data.get("lesson_id") or "")
    if not course_id or not lesson_id:
        raise BadRequestError("Quiz must reference a course and a lesson.")

    questions = [build_question(item) for item in data.get("questions") or ()]
    if not questions:
        raise BadRequestError("Quiz must contain at least one question.")

    passing_score = _number_or_default(data.get("passing_score"), DEFAULT_PASSING_SCORE)
    if not 0 <= passing_score <= 100:
        raise BadRequestError("Passing score must be between 0 and 100.")
    time_limit = int(_number_or_default(data.get("time_limit"), DEFAULT_TIME_LIMIT_MINUTES))
    if time_limit < 1:
        raise BadRequestError("Time limit must be at least one minute.")
    max_attempts = int(_number_or_default(data.get("max_attempts"), DEFAULT_MAX_ATTEMPTS))
    if max_attempts < 1:
        raise BadRequestError("Max attempts must be at least 1.")

    now = utcnow()
    return Quiz(
        id=quiz_id or new_document_id(),
        title=title,
        description=str(data.get("description") or ""),
        questions=questions,
        course_id=course_id,
        lesson_id=lesson_id,
        instructor_id=instructor_id,
        passing_score=passing_score,
        time_limit=time_limit,
        max_attempts=max_attempts,
        is_mandatory=bool(data.get("is_mandatory", True)),
        shuffle_questions=bool(data.get("shuffle_questions", False)),
        show_results=bool(data.get("show_results", True)),
        created_at=created_at or now,
        updated_at=now,
    )


def build_answer_record(
    question_index: int | None,
    *,
    is_correct: bool,
    correct_answer: str | None,
    selected_option: str | None = None,
    text_answer: str | None = None,
    explanation: str | None = None,
) -> AnswerRecord:
    """Return a storage-ready answer record with empty-string defaults.

    ``question_index`` and ``correct_answer`` are never defaulted: a missing
    value means the quiz definition itself is broken.
    """
    if question_index is None or correct_answer is None or correct_answer == "":
        raise QuizConfigurationError(
            "Quiz configuration error: some answers are missing required fields "
            f"(question index {question_index!r})."
        )
    return AnswerRecord(
        question_index=question_index,
        is_correct=bool(is_correct),
        correct_answer=correct_answer,
        selected_option=selected_option or "",
        text_answer=text_answer or "",
        explanation=explanation or "",
    )


def empty_progress(student_id: str, course_id: str) -> Progress:
    return Progress(student_id=student_id, course_id=course_id)


def _number_or_default(value: Any, default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise BadRequestError(f"Expected a number, got {value!r}.") from exc

