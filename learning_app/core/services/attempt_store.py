"""Service for persisting graded quiz attempts."""

from __future__ import annotations

from threading import Lock

from learning_app.core.errors import AttemptConflictError
from learning_app.core.models import Attempt


class AttemptStore:
    """Append-only attempt storage with a unique (student, quiz, attempt number) key."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._attempts: dict[str, Attempt] = {}
        self._attempt_keys: set[tuple[str, str, int]] = set()

    def insert(self, attempt: Attempt) -> Attempt:
        key = (attempt.student_id, attempt.quiz_id, attempt.attempt_number)
        with self._lock:
            if key in self._attempt_keys:
                raise AttemptConflictError(
                    f"Attempt {attempt.attempt_number} was already recorded for this quiz"
                )
            self._attempt_keys.add(key)
            self._attempts[attempt.id] = attempt
        return attempt

    def count(self, student_id: str, quiz_id: str) -> int:
        with self._lock:
            return sum(
                1
                for a in self._attempts.values()
                if a.student_id == student_id and a.quiz_id == quiz_id
            )

    def list_for_student(self, student_id: str, quiz_id: str) -> list[Attempt]:
        """Return a student's attempts for a quiz, newest first."""
        with self._lock:
            attempts = [
                a
                for a in self._attempts.values()
                if a.student_id == student_id and a.quiz_id == quiz_id
            ]
        return sorted(attempts, key=lambda a: a.attempt_number, reverse=True)

    def best_attempt(self, student_id: str, quiz_id: str) -> Attempt | None:
        attempts = self.list_for_student(student_id, quiz_id)
        if not attempts:
            return None
        return max(attempts, key=lambda a: (a.score, -a.attempt_number))

    def has_passed(self, student_id: str, quiz_id: str) -> bool:
        return any(a.passed for a in self.list_for_student(student_id, quiz_id))

    def list_for_quiz(self, quiz_id: str) -> list[Attempt]:
        with self._lock:
            attempts = [a for a in self._attempts.values() if a.quiz_id == quiz_id]
        return sorted(attempts, key=lambda a: a.created_at)

    def delete_for_quiz(self, quiz_id: str) -> int:
        with self._lock:
            doomed = [a for a in self._attempts.values() if a.quiz_id == quiz_id]
            for attempt in doomed:
                del self._attempts[attempt.id]
                self._attempt_keys.discard(
                    (attempt.student_id, attempt.quiz_id, attempt.attempt_number)
                )
        return len(doomed)
