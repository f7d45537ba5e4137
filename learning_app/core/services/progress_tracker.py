"""Service for tracking lesson completion and study time per student and course."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
import logging
from threading import Lock
from typing import Callable

from learning_app.core.errors import BadRequestError, LessonNotFoundError
from learning_app.core.models import CompletedLesson, Progress, empty_progress, utcnow
from learning_app.core.services.attempt_store import AttemptStore
from learning_app.core.services.course_catalog import CourseCatalog
from learning_app.core.services.quiz_repository import QuizRepository

logger = logging.getLogger(__name__)

_QUIZ_REQUIRED_MESSAGE = "You must pass the quiz to complete this lesson"


@dataclass(slots=True, frozen=True)
class CompletionStatus:
    """Whether a student may mark a lesson complete by hand."""

    can_complete: bool
    message: str
    has_quiz: bool
    quiz_required: bool


def calculate_percentage(completed_count: int, total_lessons: int) -> int:
    if total_lessons <= 0:
        return 0
    # Half-up, not banker's rounding
    return int(100 * completed_count / total_lessons + 0.5)


class ProgressTracker:
    """Keeps one progress record per (student, course).

    Every mutation is a single read-modify-write under the tracker lock, so a
    lesson completion racing a time update for the same key cannot lose either
    change.
    """

    def __init__(
        self,
        catalog: CourseCatalog,
        quiz_repository: QuizRepository | None = None,
        attempt_store: AttemptStore | None = None,
    ) -> None:
        self._lock = Lock()
        self._records: dict[tuple[str, str], Progress] = {}
        self._catalog = catalog
        self._quiz_repository = quiz_repository
        self._attempt_store = attempt_store

    def get_progress(self, student_id: str, course_id: str) -> Progress:
        """Return the stored record, or a zero-valued default when none exists."""
        self._catalog.get_course(course_id)
        with self._lock:
            record = self._records.get((student_id, course_id))
        return record if record is not None else empty_progress(student_id, course_id)

    def start_course(self, student_id: str, course_id: str) -> Progress:
        """Create an empty record on enrollment; an existing record is kept."""
        self._catalog.get_course(course_id)
        return self._find_and_modify(student_id, course_id, lambda record: record)

    def complete_lesson(
        self,
        student_id: str,
        course_id: str,
        lesson_id: str,
        *,
        require_passed_quiz: bool = False,
    ) -> Progress:
        lesson_ids = self._catalog.lesson_ids(course_id)
        if lesson_id not in lesson_ids:
            raise LessonNotFoundError(lesson_id)
        if require_passed_quiz:
            status = self.completion_status(student_id, lesson_id)
            if not status.can_complete:
                raise BadRequestError(status.message)

        def mutate(record: Progress) -> Progress:
            now = utcnow()
            completed = record.completed_lessons
            if not record.has_completed(lesson_id):
                completed = completed + (CompletedLesson(lesson_id=lesson_id, completed_at=now),)
            return self._recalculated(record, completed, lesson_ids, now)

        progress = self._find_and_modify(student_id, course_id, mutate)
        logger.info(
            "Lesson %s completed by %s in course %s (%s%%)",
            lesson_id,
            student_id,
            course_id,
            progress.progress_percentage,
        )
        return progress

    def uncomplete_lesson(self, student_id: str, course_id: str, lesson_id: str) -> Progress:
        lesson_ids = self._catalog.lesson_ids(course_id)

        def mutate(record: Progress) -> Progress:
            if not record.has_completed(lesson_id):
                return record
            now = utcnow()
            completed = tuple(e for e in record.completed_lessons if e.lesson_id != lesson_id)
            return self._recalculated(record, completed, lesson_ids, now)

        return self._find_and_modify(student_id, course_id, mutate, upsert=False)

    def add_time_spent(self, student_id: str, course_id: str, minutes: int) -> Progress:
        if minutes is None or minutes <= 0:
            raise BadRequestError("Time spent must be a positive number of minutes")
        self._catalog.get_course(course_id)

        def mutate(record: Progress) -> Progress:
            return replace(
                record,
                total_time_spent=record.total_time_spent + minutes,
                last_accessed=utcnow(),
            )

        return self._find_and_modify(student_id, course_id, mutate)

    def completion_status(self, student_id: str, lesson_id: str) -> CompletionStatus:
        quiz = self._quiz_repository.find_by_lesson(lesson_id) if self._quiz_repository else None
        if quiz is None:
            return CompletionStatus(True, "Lesson can be completed", has_quiz=False, quiz_required=False)
        if not quiz.is_mandatory:
            return CompletionStatus(True, "Lesson can be completed", has_quiz=True, quiz_required=False)
        passed = self._attempt_store is not None and self._attempt_store.has_passed(student_id, quiz.id)
        if passed:
            return CompletionStatus(True, "Lesson can be completed", has_quiz=True, quiz_required=True)
        return CompletionStatus(False, _QUIZ_REQUIRED_MESSAGE, has_quiz=True, quiz_required=True)

    def list_for_course(self, course_id: str) -> list[Progress]:
        with self._lock:
            return [record for (_, course), record in self._records.items() if course == course_id]

    def _find_and_modify(
        self,
        student_id: str,
        course_id: str,
        mutate: Callable[[Progress], Progress],
        *,
        upsert: bool = True,
    ) -> Progress:
        key = (student_id, course_id)
        with self._lock:
            current = self._records.get(key)
            if current is None:
                if not upsert:
                    return empty_progress(student_id, course_id)
                current = replace(empty_progress(student_id, course_id), last_accessed=utcnow())
            updated = mutate(current)
            self._records[key] = updated
        return updated

    @staticmethod
    def _recalculated(
        record: Progress,
        completed: tuple[CompletedLesson, ...],
        lesson_ids: tuple[str, ...],
        now: datetime,
    ) -> Progress:
        in_course = set(lesson_ids)
        completed_count = sum(1 for entry in completed if entry.lesson_id in in_course)
        return replace(
            record,
            completed_lessons=completed,
            progress_percentage=calculate_percentage(completed_count, len(lesson_ids)),
            last_accessed=now,
        )
