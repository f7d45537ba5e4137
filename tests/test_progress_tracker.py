"""Tests for lesson completion bookkeeping."""

from __future__ import annotations

from dataclasses import replace

import pytest

from learning_app.core.errors import BadRequestError, CourseNotFoundError, LessonNotFoundError
from learning_app.core.models import Attempt, Course
from learning_app.core.services.attempt_store import AttemptStore
from learning_app.core.services.course_catalog import CourseCatalog
from learning_app.core.services.progress_tracker import ProgressTracker, calculate_percentage
from learning_app.core.services.quiz_repository import QuizRepository

COURSE_ID = "course-1"
STUDENT_ID = "student-1"


@pytest.fixture
def tracker(catalog) -> ProgressTracker:
    return ProgressTracker(catalog)


def test_missing_record_reads_as_zero_without_being_stored(tracker):
    progress = tracker.get_progress(STUDENT_ID, COURSE_ID)

    assert progress.progress_percentage == 0
    assert progress.completed_lessons == ()
    assert progress.total_time_spent == 0
    assert tracker.list_for_course(COURSE_ID) == []


def test_completing_and_uncompleting_recalculates_percentage(tracker):
    tracker.complete_lesson(STUDENT_ID, COURSE_ID, "lesson-1")
    progress = tracker.complete_lesson(STUDENT_ID, COURSE_ID, "lesson-2")
    assert progress.progress_percentage == 50

    progress = tracker.uncomplete_lesson(STUDENT_ID, COURSE_ID, "lesson-1")

    assert progress.progress_percentage == 25
    assert [entry.lesson_id for entry in progress.completed_lessons] == ["lesson-2"]


def test_completing_twice_keeps_a_single_entry(tracker):
    first = tracker.complete_lesson(STUDENT_ID, COURSE_ID, "lesson-3")
    second = tracker.complete_lesson(STUDENT_ID, COURSE_ID, "lesson-3")

    assert len(second.completed_lessons) == 1
    assert second.completed_lessons[0].completed_at == first.completed_lessons[0].completed_at
    assert second.progress_percentage == 25


def test_uncompleting_an_unknown_lesson_is_a_no_op(tracker):
    tracker.complete_lesson(STUDENT_ID, COURSE_ID, "lesson-1")

    progress = tracker.uncomplete_lesson(STUDENT_ID, COURSE_ID, "lesson-4")

    assert progress.progress_percentage == 25
    assert len(progress.completed_lessons) == 1


def test_uncomplete_without_record_creates_nothing(tracker):
    progress = tracker.uncomplete_lesson(STUDENT_ID, COURSE_ID, "lesson-1")

    assert progress.progress_percentage == 0
    assert tracker.list_for_course(COURSE_ID) == []


def test_lesson_outside_the_course_is_rejected(tracker):
    with pytest.raises(LessonNotFoundError):
        tracker.complete_lesson(STUDENT_ID, COURSE_ID, "lesson-99")


def test_unknown_course_is_rejected(tracker):
    with pytest.raises(CourseNotFoundError):
        tracker.complete_lesson(STUDENT_ID, "course-404", "lesson-1")


def test_course_without_lessons_stays_at_zero():
    tracker = ProgressTracker(CourseCatalog([Course(id="empty", title="Empty", instructor_id="i")]))

    assert tracker.start_course(STUDENT_ID, "empty").progress_percentage == 0


@pytest.mark.parametrize(
    ("completed", "total", "expected"),
    [(0, 4, 0), (1, 3, 33), (2, 3, 67), (1, 8, 13), (3, 8, 38), (5, 5, 100), (1, 0, 0)],
)
def test_percentage_rounds_half_up(completed, total, expected):
    assert calculate_percentage(completed, total) == expected


def test_time_spent_accumulates(tracker):
    tracker.add_time_spent(STUDENT_ID, COURSE_ID, 15)
    progress = tracker.add_time_spent(STUDENT_ID, COURSE_ID, 10)

    assert progress.total_time_spent == 25
    assert progress.last_accessed is not None


@pytest.mark.parametrize("minutes", [0, -5, None])
def test_time_spent_must_be_positive(tracker, minutes):
    with pytest.raises(BadRequestError):
        tracker.add_time_spent(STUDENT_ID, COURSE_ID, minutes)


def test_start_course_keeps_existing_progress(tracker):
    tracker.complete_lesson(STUDENT_ID, COURSE_ID, "lesson-1")

    progress = tracker.start_course(STUDENT_ID, COURSE_ID)

    assert progress.progress_percentage == 25


def test_time_update_and_completion_share_one_record(tracker):
    tracker.add_time_spent(STUDENT_ID, COURSE_ID, 5)
    tracker.complete_lesson(STUDENT_ID, COURSE_ID, "lesson-1")

    progress = tracker.get_progress(STUDENT_ID, COURSE_ID)

    assert progress.total_time_spent == 5
    assert progress.progress_percentage == 25


class TestCompletionGate:
    @pytest.fixture
    def gated(self, catalog, colour_quiz):
        quizzes = QuizRepository()
        quizzes.add_quiz(colour_quiz)
        attempts = AttemptStore()
        return ProgressTracker(catalog, quizzes, attempts), quizzes, attempts

    @staticmethod
    def _attempt(passed: bool) -> Attempt:
        return Attempt(
            id="a1",
            student_id=STUDENT_ID,
            quiz_id="quiz-1",
            lesson_id="lesson-1",
            answers=(),
            score=100.0 if passed else 0.0,
            passed=passed,
            time_spent=0,
            attempt_number=1,
        )

    def test_lesson_without_quiz_can_be_completed(self, gated):
        tracker, _, _ = gated

        status = tracker.completion_status(STUDENT_ID, "lesson-2")

        assert status.can_complete and not status.has_quiz

    def test_mandatory_quiz_blocks_manual_completion(self, gated):
        tracker, _, _ = gated

        status = tracker.completion_status(STUDENT_ID, "lesson-1")
        assert not status.can_complete
        assert status.quiz_required

        with pytest.raises(BadRequestError, match="You must pass the quiz"):
            tracker.complete_lesson(STUDENT_ID, COURSE_ID, "lesson-1", require_passed_quiz=True)

    def test_failed_attempt_does_not_open_the_gate(self, gated):
        tracker, _, attempts = gated
        attempts.insert(self._attempt(passed=False))

        assert not tracker.completion_status(STUDENT_ID, "lesson-1").can_complete

    def test_passed_attempt_opens_the_gate(self, gated):
        tracker, _, attempts = gated
        attempts.insert(self._attempt(passed=True))

        progress = tracker.complete_lesson(STUDENT_ID, COURSE_ID, "lesson-1", require_passed_quiz=True)

        assert progress.has_completed("lesson-1")

    def test_optional_quiz_does_not_block(self, gated, colour_quiz):
        tracker, quizzes, _ = gated
        quizzes.add_quiz(replace(colour_quiz, is_mandatory=False))

        status = tracker.completion_status(STUDENT_ID, "lesson-1")

        assert status.can_complete and status.has_quiz and not status.quiz_required


def test_reading_progress_of_unknown_course_is_rejected(tracker):
    with pytest.raises(CourseNotFoundError):
        tracker.get_progress(STUDENT_ID, "course-404")
