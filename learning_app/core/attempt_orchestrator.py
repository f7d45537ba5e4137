"""Coordinates a single quiz submission from grading to persistence."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from contextlib import contextmanager
from dataclasses import dataclass, field
import logging
from threading import Lock
from typing import Iterator, Sequence

from learning_app.constants.network_constants import PROGRESS_UPDATE_TIMEOUT_SECONDS
from learning_app.core.errors import (
    AttemptLimitExceededError,
    BadRequestError,
    TransientDependencyError,
)
from learning_app.core.models import (
    AnswerInput,
    AnswerRecord,
    Attempt,
    Progress,
    Quiz,
    build_answer_record,
    new_document_id,
)
from learning_app.core.quiz_grader import evaluate_quiz
from learning_app.core.services.attempt_store import AttemptStore
from learning_app.core.services.progress_tracker import ProgressTracker
from learning_app.core.services.quiz_repository import QuizRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class AttemptResult:
    """Everything the client needs after a submission."""

    score: float
    passed: bool
    correct_answers: int
    total_questions: int
    earned_points: float
    total_points: float
    attempt_id: str
    attempt_number: int
    max_attempts: int
    evaluated_answers: tuple[AnswerRecord, ...]
    progress_update: Progress | None


@dataclass(slots=True)
class _KeyedLock:
    """Submission lock for one (student, quiz) pair, dropped once nobody holds or waits on it."""

    lock: Lock = field(default_factory=Lock)
    users: int = 0


@dataclass(slots=True, frozen=True)
class AttemptAllowance:
    previous: int
    remaining: int
    can_attempt: bool


class AttemptOrchestrator:
    """Grades, limits and records quiz attempts, then propagates lesson completion."""

    def __init__(
        self,
        quiz_repository: QuizRepository,
        attempt_store: AttemptStore,
        progress_tracker: ProgressTracker,
        progress_timeout_seconds: float = PROGRESS_UPDATE_TIMEOUT_SECONDS,
    ) -> None:
        self._quizzes = quiz_repository
        self._attempts = attempt_store
        self._progress = progress_tracker
        self._progress_timeout = progress_timeout_seconds
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="progress-update")
        self._key_locks_guard = Lock()
        self._key_locks: dict[tuple[str, str], _KeyedLock] = {}

    def submit_attempt(
        self,
        student_id: str,
        quiz_id: str,
        answers: Sequence[AnswerInput] | None,
        time_spent: int = 0,
        lesson_id: str | None = None,
    ) -> AttemptResult:
        quiz = self._quizzes.get_quiz(quiz_id)

        question_count = len(quiz.questions)
        if answers is None or len(answers) != question_count:
            raise BadRequestError(f"Please answer all {question_count} questions")

        evaluation = evaluate_quiz(answers, quiz.questions)
        passed = evaluation.score >= quiz.passing_score

        # Count, limit check and insert must not interleave for one student and quiz
        with self._submission_lock(student_id, quiz.id):
            attempt_number = self._attempts.count(student_id, quiz.id) + 1
            if attempt_number > quiz.max_attempts:
                logger.info(
                    "Rejected attempt %s for quiz %s by %s: limit is %s",
                    attempt_number,
                    quiz.id,
                    student_id,
                    quiz.max_attempts,
                )
                raise AttemptLimitExceededError(quiz.max_attempts)

            records = self._sanitize(evaluation.evaluated_answers)
            attempt = self._attempts.insert(
                Attempt(
                    id=new_document_id(),
                    student_id=student_id,
                    quiz_id=quiz.id,
                    lesson_id=lesson_id or quiz.lesson_id,
                    answers=records,
                    score=evaluation.score,
                    passed=passed,
                    time_spent=max(0, int(time_spent or 0)),
                    attempt_number=attempt_number,
                )
            )
        logger.info(
            "Saved attempt %s/%s for quiz %s by %s: score=%s passed=%s",
            attempt_number,
            quiz.max_attempts,
            quiz.id,
            student_id,
            evaluation.score,
            passed,
        )

        progress_update = None
        if passed and quiz.is_mandatory:
            try:
                progress_update = self._complete_lesson(student_id, quiz, attempt.lesson_id)
            except TransientDependencyError as exc:
                logger.warning("Could not auto-complete lesson %s: %s", attempt.lesson_id, exc)

        return AttemptResult(
            score=evaluation.score,
            passed=passed,
            correct_answers=evaluation.correct_answers,
            total_questions=evaluation.total_questions,
            earned_points=evaluation.earned_points,
            total_points=evaluation.total_points,
            attempt_id=attempt.id,
            attempt_number=attempt_number,
            max_attempts=quiz.max_attempts,
            evaluated_answers=records,
            progress_update=progress_update,
        )

    def attempt_allowance(self, student_id: str, quiz: Quiz) -> AttemptAllowance:
        previous = self._attempts.count(student_id, quiz.id)
        remaining = max(0, quiz.max_attempts - previous)
        return AttemptAllowance(previous=previous, remaining=remaining, can_attempt=remaining > 0)

    def list_attempts(self, student_id: str, quiz_id: str) -> list[Attempt]:
        return self._attempts.list_for_student(student_id, quiz_id)

    def best_attempt(self, student_id: str, quiz_id: str) -> Attempt | None:
        return self._attempts.best_attempt(student_id, quiz_id)

    def delete_quiz(self, quiz_id: str, instructor_id: str) -> Quiz:
        """Remove a quiz together with every attempt recorded against it."""
        quiz = self._quizzes.delete_quiz(quiz_id, instructor_id)
        removed = self._attempts.delete_for_quiz(quiz_id)
        logger.info("Deleted quiz %s and %s attempt(s)", quiz_id, removed)
        return quiz

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)

    @contextmanager
    def _submission_lock(self, student_id: str, quiz_id: str) -> Iterator[None]:
        key = (student_id, quiz_id)
        with self._key_locks_guard:
            entry = self._key_locks.get(key)
            if entry is None:
                entry = self._key_locks[key] = _KeyedLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._key_locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._key_locks[key]

    @staticmethod
    def _sanitize(records: Sequence[AnswerRecord]) -> tuple[AnswerRecord, ...]:
        sanitized = []
        for index, record in enumerate(records):
            question_index = record.question_index if record.question_index is not None else index
            if not record.correct_answer:
                logger.error("Question %s has no correct answer configured", question_index)
            sanitized.append(
                build_answer_record(
                    question_index,
                    is_correct=record.is_correct,
                    correct_answer=record.correct_answer,
                    selected_option=record.selected_option,
                    text_answer=record.text_answer,
                    explanation=record.explanation,
                )
            )
        return tuple(sanitized)

    def _complete_lesson(self, student_id: str, quiz: Quiz, lesson_id: str) -> Progress:
        future = self._executor.submit(
            self._progress.complete_lesson, student_id, quiz.course_id, lesson_id
        )
        try:
            return future.result(timeout=self._progress_timeout)
        except FutureTimeoutError as exc:
            # A call already running cannot be cancelled, so the lesson may still be completed later
            future.cancel()
            raise TransientDependencyError(
                f"progress update timed out after {self._progress_timeout}s and may still be applied"
            ) from exc
        except Exception as exc:
            raise TransientDependencyError(str(exc)) from exc
