"""Business logic facade shared by the API and the application entry point."""

from __future__ import annotations

from typing import Any, Mapping, Sequence

from learning_app.constants.network_constants import PROGRESS_UPDATE_TIMEOUT_SECONDS
from learning_app.core.attempt_orchestrator import (
    AttemptAllowance,
    AttemptOrchestrator,
    AttemptResult,
)
from learning_app.core.errors import ForbiddenError, LessonNotFoundError
from learning_app.core.models import AnswerInput, Attempt, Course, Progress, Quiz
from learning_app.core.services.attempt_store import AttemptStore
from learning_app.core.services.course_catalog import CourseCatalog
from learning_app.core.services.progress_tracker import CompletionStatus, ProgressTracker
from learning_app.core.services.quiz_repository import QuizRepository
from learning_app.core.services.quiz_statistics import (
    CourseOverview,
    QuizStatistics,
    build_course_overview,
    build_quiz_statistics,
)


class LearningPlatform:
    """Facade for quiz services: Repository, Attempts, Progress, Catalog and Statistics."""

    def __init__(
        self,
        catalog: CourseCatalog | None = None,
        progress_timeout_seconds: float = PROGRESS_UPDATE_TIMEOUT_SECONDS,
    ) -> None:
        # Services
        self._catalog = catalog or CourseCatalog()
        self._quizzes = QuizRepository()
        self._attempts = AttemptStore()
        self._progress = ProgressTracker(self._catalog, self._quizzes, self._attempts)
        self._orchestrator = AttemptOrchestrator(
            self._quizzes,
            self._attempts,
            self._progress,
            progress_timeout_seconds=progress_timeout_seconds,
        )

    # --- Catalog Delegation ---

    def add_course(self, course: Course) -> None:
        self._catalog.add_course(course)

    # --- Quiz Repository Delegation ---

    def create_quiz(self, data: Mapping[str, Any], instructor_id: str) -> Quiz:
        course_id = str(data.get("course_id") or "")
        lesson_id = str(data.get("lesson_id") or "")
        if course_id:
            course = self._ensure_course_owner(course_id, instructor_id)
            if lesson_id and lesson_id not in course.lesson_ids:
                raise LessonNotFoundError(lesson_id)
        return self._quizzes.create_quiz(data, instructor_id)

    def add_quiz(self, quiz: Quiz) -> Quiz:
        return self._quizzes.add_quiz(quiz)

    def get_quiz(self, quiz_id: str) -> Quiz:
        return self._quizzes.get_quiz(quiz_id)

    def find_quiz_for_lesson(self, lesson_id: str) -> Quiz | None:
        return self._quizzes.find_by_lesson(lesson_id)

    def list_course_quizzes(self, course_id: str) -> list[Quiz]:
        return self._quizzes.list_for_course(course_id)

    def update_quiz(self, quiz_id: str, data: Mapping[str, Any], instructor_id: str) -> Quiz:
        """Update a quiz; moving it requires owning the target course and lesson."""
        if data.get("course_id") or data.get("lesson_id"):
            current = self._quizzes.get_quiz(quiz_id)
            course_id = str(data.get("course_id") or current.course_id)
            lesson_id = str(data.get("lesson_id") or current.lesson_id)
            course = self._ensure_course_owner(course_id, instructor_id)
            if lesson_id not in course.lesson_ids:
                raise LessonNotFoundError(lesson_id)
        return self._quizzes.update_quiz(quiz_id, data, instructor_id)

    def delete_quiz(self, quiz_id: str, instructor_id: str) -> Quiz:
        return self._orchestrator.delete_quiz(quiz_id, instructor_id)

    # --- Attempt Delegation ---

    def submit_attempt(
        self,
        student_id: str,
        quiz_id: str,
        answers: Sequence[AnswerInput] | None,
        time_spent: int = 0,
        lesson_id: str | None = None,
    ) -> AttemptResult:
        return self._orchestrator.submit_attempt(
            student_id, quiz_id, answers, time_spent=time_spent, lesson_id=lesson_id
        )

    def attempt_allowance(self, student_id: str, quiz: Quiz) -> AttemptAllowance:
        return self._orchestrator.attempt_allowance(student_id, quiz)

    def list_attempts(self, student_id: str, quiz_id: str) -> list[Attempt]:
        return self._orchestrator.list_attempts(student_id, quiz_id)

    def best_attempt(self, student_id: str, quiz_id: str) -> Attempt | None:
        return self._orchestrator.best_attempt(student_id, quiz_id)

    # --- Progress Delegation ---

    def get_progress(self, student_id: str, course_id: str) -> Progress:
        return self._progress.get_progress(student_id, course_id)

    def start_course(self, student_id: str, course_id: str) -> Progress:
        return self._progress.start_course(student_id, course_id)

    def complete_lesson(self, student_id: str, course_id: str, lesson_id: str) -> Progress:
        """Manual completion; a mandatory quiz on the lesson must have been passed."""
        return self._progress.complete_lesson(
            student_id, course_id, lesson_id, require_passed_quiz=True
        )

    def uncomplete_lesson(self, student_id: str, course_id: str, lesson_id: str) -> Progress:
        return self._progress.uncomplete_lesson(student_id, course_id, lesson_id)

    def add_time_spent(self, student_id: str, course_id: str, minutes: int) -> Progress:
        return self._progress.add_time_spent(student_id, course_id, minutes)

    def completion_status(self, student_id: str, lesson_id: str) -> CompletionStatus:
        return self._progress.completion_status(student_id, lesson_id)

    # --- Statistics ---

    def quiz_statistics(self, quiz_id: str, instructor_id: str) -> QuizStatistics:
        quiz = self._quizzes.get_quiz(quiz_id)
        if quiz.instructor_id != instructor_id:
            raise ForbiddenError("Only the quiz's instructor can view statistics")
        return build_quiz_statistics(quiz, self._attempts.list_for_quiz(quiz.id))

    def course_overview(self, course_id: str, instructor_id: str) -> CourseOverview:
        self._ensure_course_owner(course_id, instructor_id)
        return build_course_overview(
            course_id,
            self._progress.list_for_course(course_id),
            self._quizzes.list_for_course(course_id),
        )

    def shutdown(self) -> None:
        self._orchestrator.shutdown()

    def _ensure_course_owner(self, course_id: str, instructor_id: str) -> Course:
        course = self._catalog.get_course(course_id)
        if course.instructor_id != instructor_id:
            raise ForbiddenError("Only the course's instructor can do this")
        return course
