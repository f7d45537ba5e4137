"""Shared pytest fixtures for the QuizTrack tests."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from learning_app.core.learning_platform import LearningPlatform
from learning_app.core.models import Course, Question, Quiz
from learning_app.core.services.course_catalog import CourseCatalog
from learning_app.server.api_server import create_api_app

COURSE_ID = "course-1"
INSTRUCTOR_ID = "instructor-1"
STUDENT_ID = "student-1"
LESSON_IDS = ("lesson-1", "lesson-2", "lesson-3", "lesson-4")


@pytest.fixture
def course() -> Course:
    return Course(id=COURSE_ID, title="Colours 101", instructor_id=INSTRUCTOR_ID, lesson_ids=LESSON_IDS)


@pytest.fixture
def catalog(course) -> CourseCatalog:
    return CourseCatalog([course])


@pytest.fixture
def colour_questions() -> list[Question]:
    """One multiple-choice and one theory question, one point each."""
    return [
        Question(
            type="multiple_choice",
            question="Which colour is the sky?",
            options=("Blue", "Green", "Red"),
            correct_answer="0",
            explanation="Rayleigh scattering.",
        ),
        Question(
            type="theory",
            question="Name the colour of the sea.",
            correct_answer="blue",
        ),
    ]


@pytest.fixture
def colour_quiz(colour_questions) -> Quiz:
    return Quiz(
        id="quiz-1",
        title="Colours",
        questions=colour_questions,
        course_id=COURSE_ID,
        lesson_id="lesson-1",
        instructor_id=INSTRUCTOR_ID,
        passing_score=70,
        max_attempts=3,
    )


@pytest.fixture
def platform(catalog, colour_quiz):
    manager = LearningPlatform(catalog=catalog, progress_timeout_seconds=2.0)
    manager.add_quiz(colour_quiz)
    yield manager
    manager.shutdown()


@pytest.fixture
def client(platform) -> TestClient:
    return TestClient(create_api_app(platform))


@pytest.fixture
def student_headers() -> dict[str, str]:
    return {"X-User-Id": STUDENT_ID, "X-User-Role": "student"}


@pytest.fixture
def instructor_headers() -> dict[str, str]:
    return {"X-User-Id": INSTRUCTOR_ID, "X-User-Role": "instructor"}
