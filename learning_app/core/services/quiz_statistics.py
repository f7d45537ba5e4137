"""Service for instructor-facing quiz and course statistics."""

from __future__ import annotations

from dataclasses import dataclass

from learning_app.constants.quiz_constants import (
    EASY_CORRECT_RATE,
    MEDIUM_CORRECT_RATE,
    SCORE_DISTRIBUTION_RANGES,
)
from learning_app.core.models import Attempt, Progress, Quiz


@dataclass(slots=True)
class QuestionStats:
    """Per-question correctness across every attempt of a quiz."""

    question_index: int
    question: str
    correct_count: int
    total_attempts: int
    correct_rate: float
    difficulty: str


@dataclass(slots=True)
class ScoreBucket:
    range: str
    min: float
    max: float
    count: int = 0


@dataclass(slots=True)
class QuizStatistics:
    """Snapshot returned to consumers."""

    quiz_id: str
    total_attempts: int
    average_score: float
    pass_rate: float
    question_stats: list[QuestionStats]
    score_distribution: list[ScoreBucket]


@dataclass(slots=True)
class CourseOverview:
    course_id: str
    total_students: int
    active_students: int
    completion_rate: int
    total_quizzes: int


def difficulty_label(correct_rate: float) -> str:
    if correct_rate >= EASY_CORRECT_RATE:
        return "Easy"
    if correct_rate >= MEDIUM_CORRECT_RATE:
        return "Medium"
    return "Hard"


def _score_buckets(attempts: list[Attempt]) -> list[ScoreBucket]:
    buckets = [ScoreBucket(range=label, min=low, max=high) for label, low, high in SCORE_DISTRIBUTION_RANGES]
    for attempt in attempts:
        # Bucket on the whole-number score so 89.5 lands in 80-89
        whole = int(attempt.score)
        bucket = next((b for b in buckets if b.min <= whole <= b.max), None)
        if bucket is not None:
            bucket.count += 1
    return buckets


def build_quiz_statistics(quiz: Quiz, attempts: list[Attempt]) -> QuizStatistics:
    """Aggregate every attempt of ``quiz`` into averages and per-question rates."""
    total = len(attempts)
    if total == 0:
        return QuizStatistics(
            quiz_id=quiz.id,
            total_attempts=0,
            average_score=0.0,
            pass_rate=0.0,
            question_stats=[
                QuestionStats(index, question.question, 0, 0, 0.0, difficulty_label(0.0))
                for index, question in enumerate(quiz.questions)
            ],
            score_distribution=_score_buckets([]),
        )

    average_score = round(sum(a.score for a in attempts) / total, 1)
    pass_rate = round(sum(1 for a in attempts if a.passed) / total * 100, 1)

    question_stats: list[QuestionStats] = []
    for index, question in enumerate(quiz.questions):
        correct = sum(
            1
            for attempt in attempts
            if index < len(attempt.answers) and attempt.answers[index].is_correct
        )
        rate = correct / total
        question_stats.append(
            QuestionStats(
                question_index=index,
                question=question.question,
                correct_count=correct,
                total_attempts=total,
                correct_rate=round(rate * 100, 1),
                difficulty=difficulty_label(rate),
            )
        )

    return QuizStatistics(
        quiz_id=quiz.id,
        total_attempts=total,
        average_score=average_score,
        pass_rate=pass_rate,
        question_stats=question_stats,
        score_distribution=_score_buckets(attempts),
    )


def build_course_overview(course_id: str, records: list[Progress], quizzes: list[Quiz]) -> CourseOverview:
    """Summarize enrollment and completion for one course.

    The completion rate averages only students who have made some progress.
    """
    started = [record for record in records if record.progress_percentage > 0]
    completion_rate = 0
    if started:
        completion_rate = int(sum(r.progress_percentage for r in started) / len(started) + 0.5)
    return CourseOverview(
        course_id=course_id,
        total_students=len(records),
        active_students=len(started),
        completion_rate=completion_rate,
        total_quizzes=len(quizzes),
    )
