"""Exceptions raised by the quiz and progress services.

The API layer maps each class to an HTTP status; the core never imports
FastAPI.
"""

from __future__ import annotations


class LearningAppError(Exception):
    """Base class for errors reported back to the caller."""


class NotFoundError(LearningAppError):
    """Raised when a referenced quiz, course or lesson does not exist."""


class QuizNotFoundError(NotFoundError):
    def __init__(self, quiz_id: str) -> None:
        super().__init__("Quiz not found")
        self.quiz_id = quiz_id


class CourseNotFoundError(NotFoundError):
    def __init__(self, course_id: str) -> None:
        super().__init__("Course not found")
        self.course_id = course_id


class LessonNotFoundError(NotFoundError):
    def __init__(self, lesson_id: str) -> None:
        super().__init__("Lesson not found in course")
        self.lesson_id = lesson_id


class BadRequestError(LearningAppError, ValueError):
    """Raised for malformed or incomplete client input."""


class ForbiddenError(LearningAppError):
    """Raised when the caller's role or ownership does not allow the action."""


class AttemptLimitExceededError(LearningAppError):
    """Raised when a student has used every attempt a quiz allows."""

    def __init__(self, max_attempts: int) -> None:
        super().__init__(f"Maximum attempts ({max_attempts}) exceeded")
        self.max_attempts = max_attempts


class AttemptConflictError(LearningAppError):
    """Raised when an attempt number is already taken for a student and quiz."""


class QuizConfigurationError(LearningAppError):
    """Raised when stored quiz data is internally inconsistent."""


class TransientDependencyError(LearningAppError):
    """Raised when a best-effort collaborator call fails or times out."""
