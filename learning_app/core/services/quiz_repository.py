"""Service for storing quiz definitions."""

from __future__ import annotations

from threading import Lock
from typing import Any, Mapping

from learning_app.core.errors import ForbiddenError, QuizNotFoundError
from learning_app.core.models import Question, Quiz, build_quiz


class QuizRepository:
    """Manages the lifecycle and storage of quizzes, keyed by quiz id."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._quizzes: dict[str, Quiz] = {}

    def create_quiz(self, data: Mapping[str, Any], instructor_id: str) -> Quiz:
        quiz = build_quiz(data, instructor_id=instructor_id)
        with self._lock:
            self._quizzes[quiz.id] = quiz
        return quiz

    def add_quiz(self, quiz: Quiz) -> Quiz:
        """Store an already constructed quiz as-is."""
        with self._lock:
            self._quizzes[quiz.id] = quiz
        return quiz

    def get_quiz(self, quiz_id: str) -> Quiz:
        with self._lock:
            quiz = self._quizzes.get(quiz_id)
        if quiz is None:
            raise QuizNotFoundError(quiz_id)
        return quiz

    def find_by_lesson(self, lesson_id: str) -> Quiz | None:
        with self._lock:
            return next((q for q in self._quizzes.values() if q.lesson_id == lesson_id), None)

    def list_for_course(self, course_id: str) -> list[Quiz]:
        with self._lock:
            quizzes = [q for q in self._quizzes.values() if q.course_id == course_id]
        return sorted(quizzes, key=lambda q: q.created_at)

    def update_quiz(self, quiz_id: str, data: Mapping[str, Any], instructor_id: str) -> Quiz:
        """Replace a quiz's definition; only the owning instructor may do this."""
        with self._lock:
            existing = self._quizzes.get(quiz_id)
            if existing is None:
                raise QuizNotFoundError(quiz_id)
            self._ensure_owner(existing, instructor_id)
            merged = self._merge_fields(existing, data)
            updated = build_quiz(
                merged,
                instructor_id=existing.instructor_id,
                quiz_id=existing.id,
                created_at=existing.created_at,
            )
            self._quizzes[quiz_id] = updated
        return updated

    def delete_quiz(self, quiz_id: str, instructor_id: str) -> Quiz:
        with self._lock:
            existing = self._quizzes.get(quiz_id)
            if existing is None:
                raise QuizNotFoundError(quiz_id)
            self._ensure_owner(existing, instructor_id)
            del self._quizzes[quiz_id]
        return existing

    @staticmethod
    def _ensure_owner(quiz: Quiz, instructor_id: str) -> None:
        if quiz.instructor_id != instructor_id:
            raise ForbiddenError("Only the quiz's instructor can change it")

    @staticmethod
    def _merge_fields(quiz: Quiz, data: Mapping[str, Any]) -> dict[str, Any]:
        """Overlay a partial update on the stored quiz's raw fields."""
        merged: dict[str, Any] = {
            "title": quiz.title,
            "description": quiz.description,
            "course_id": quiz.course_id,
            "lesson_id": quiz.lesson_id,
            "passing_score": quiz.passing_score,
            "time_limit": quiz.time_limit,
            "max_attempts": quiz.max_attempts,
            "is_mandatory": quiz.is_mandatory,
            "shuffle_questions": quiz.shuffle_questions,
            "show_results": quiz.show_results,
            "questions": [question_to_dict(q) for q in quiz.questions],
        }
        merged.update({key: value for key, value in data.items() if value is not None})
        return merged


def question_to_dict(question: Question) -> dict[str, Any]:
    return {
        "type": question.type,
        "question": question.question,
        "options": list(question.options),
        "correct_answer": question.correct_answer,
        "points": question.points,
        "explanation": question.explanation,
        "case_sensitive": question.case_sensitive,
        "expected_keywords": list(question.expected_keywords),
        "min_words": question.min_words,
        "max_words": question.max_words,
        "grading_rubric": question.grading_rubric,
    }
