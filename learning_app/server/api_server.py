"""FastAPI server that exposes quiz, progress and analytics endpoints."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn

from learning_app.constants.about import APP_ABOUT_TEXT, APP_LICENSE, APP_NAME, APP_VERSION
from learning_app.constants.network_constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    ROLE_INSTRUCTOR,
    ROLE_STUDENT,
    USER_ID_HEADER,
    USER_ROLE_HEADER,
)
from learning_app.core.attempt_orchestrator import AttemptResult
from learning_app.core.errors import (
    AttemptConflictError,
    AttemptLimitExceededError,
    BadRequestError,
    ForbiddenError,
    LearningAppError,
    NotFoundError,
    QuizConfigurationError,
)
from learning_app.core.learning_platform import LearningPlatform
from learning_app.core.markdown_renderer import renderer
from learning_app.core.models import (
    AnswerInput,
    AnswerRecord,
    Attempt,
    MultipleChoiceAnswer,
    Progress,
    Quiz,
    TheoryAnswer,
)

logger = logging.getLogger(__name__)

_ERROR_STATUS: tuple[tuple[type[LearningAppError], int], ...] = (
    (NotFoundError, 404),
    (BadRequestError, 400),
    (ForbiddenError, 403),
    (AttemptLimitExceededError, 429),
    (AttemptConflictError, 409),
    (QuizConfigurationError, 422),
)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MultipleChoicePayload(_CamelModel):
    """Answer to a multiple-choice question: the chosen option index."""

    model_config = ConfigDict(extra="forbid")

    question_index: int | None = None
    selected_option: str | int

    def to_answer(self) -> AnswerInput:
        return MultipleChoiceAnswer(selected_option=str(self.selected_option))


class TheoryPayload(_CamelModel):
    """Answer to a theory question: free text."""

    model_config = ConfigDict(extra="forbid")

    question_index: int | None = None
    text_answer: str

    def to_answer(self) -> AnswerInput:
        return TheoryAnswer(text_answer=self.text_answer)


class AttemptPayload(_CamelModel):
    """Payload schema for quiz submissions."""

    answers: list[MultipleChoicePayload | TheoryPayload] | None = None
    time_spent: int = Field(default=0, ge=0)
    lesson_id: str | None = None


class QuestionPayload(_CamelModel):
    type: str
    question: str
    options: list[str] = Field(default_factory=list)
    correct_answer: str | int | None = None
    points: float | None = None
    explanation: str | None = None
    case_sensitive: bool | None = None
    expected_keywords: list[str] | None = None
    min_words: int | None = None
    max_words: int | None = None
    grading_rubric: str | None = None


class QuizPayload(_CamelModel):
    """Payload schema for creating or partially updating a quiz."""

    title: str | None = None
    description: str | None = None
    course_id: str | None = None
    lesson_id: str | None = None
    questions: list[QuestionPayload] | None = None
    passing_score: float | None = None
    time_limit: int | None = None
    max_attempts: int | None = None
    is_mandatory: bool | None = None
    shuffle_questions: bool | None = None
    show_results: bool | None = None


class LessonPayload(_CamelModel):
    lesson_id: str | None = None


class TimeSpentPayload(_CamelModel):
    minutes: int


@dataclass(slots=True, frozen=True)
class Identity:
    """Caller identity forwarded by the authentication gateway."""

    user_id: str
    role: str

    @property
    def is_instructor(self) -> bool:
        return self.role == ROLE_INSTRUCTOR


def get_identity(
    user_id: str | None = Header(default=None, alias=USER_ID_HEADER),
    role: str | None = Header(default=None, alias=USER_ROLE_HEADER),
) -> Identity:
    if not user_id:
        raise HTTPException(status_code=401, detail="No identity provided")
    return Identity(user_id=user_id, role=(role or ROLE_STUDENT).lower())


def require_instructor(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_instructor:
        raise HTTPException(status_code=403, detail="Only instructors can do this")
    return identity


def _get_platform_dependency(platform: LearningPlatform):
    def dependency() -> LearningPlatform:
        return platform

    return dependency


def _lesson_id_from(payload: LessonPayload) -> str:
    if not payload.lesson_id:
        raise BadRequestError("Lesson ID is required")
    return payload.lesson_id


# --- Serialization ---------------------------------------------------------


def _answer_record_json(record: AnswerRecord) -> dict[str, object]:
    return {
        "questionIndex": record.question_index,
        "selectedOption": record.selected_option,
        "textAnswer": record.text_answer,
        "isCorrect": record.is_correct,
        "correctAnswer": record.correct_answer,
        "explanation": record.explanation,
    }


def _attempt_json(attempt: Attempt) -> dict[str, object]:
    return {
        "id": attempt.id,
        "studentId": attempt.student_id,
        "quizId": attempt.quiz_id,
        "lessonId": attempt.lesson_id,
        "answers": [_answer_record_json(a) for a in attempt.answers],
        "score": attempt.score,
        "passed": attempt.passed,
        "timeSpent": attempt.time_spent,
        "attemptNumber": attempt.attempt_number,
        "createdAt": attempt.created_at.isoformat(),
    }


def _progress_json(progress: Progress) -> dict[str, object]:
    return {
        "studentId": progress.student_id,
        "courseId": progress.course_id,
        "completedLessons": [
            {"lessonId": entry.lesson_id, "completedAt": entry.completed_at.isoformat()}
            for entry in progress.completed_lessons
        ],
        "progressPercentage": progress.progress_percentage,
        "lastAccessed": progress.last_accessed.isoformat() if progress.last_accessed else None,
        "totalTimeSpent": progress.total_time_spent,
    }


def _quiz_json(quiz: Quiz, include_answers: bool) -> dict[str, object]:
    questions = []
    for question in quiz.questions:
        item: dict[str, object] = {
            "type": question.type,
            "question": question.question,
            "questionHtml": renderer.render_fragment(question.question),
            "options": list(question.options),
            "optionsHtml": [renderer.render_inline(option) for option in question.options],
            "points": question.points,
            "minWords": question.min_words,
            "maxWords": question.max_words,
        }
        if include_answers:
            item.update(
                {
                    "correctAnswer": question.correct_answer,
                    "explanation": question.explanation,
                    "caseSensitive": question.case_sensitive,
                    "expectedKeywords": list(question.expected_keywords),
                    "gradingRubric": question.grading_rubric,
                }
            )
        questions.append(item)
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "courseId": quiz.course_id,
        "lessonId": quiz.lesson_id,
        "instructorId": quiz.instructor_id,
        "questions": questions,
        "passingScore": quiz.passing_score,
        "timeLimit": quiz.time_limit,
        "maxAttempts": quiz.max_attempts,
        "isMandatory": quiz.is_mandatory,
        "shuffleQuestions": quiz.shuffle_questions,
        "showResults": quiz.show_results,
        "createdAt": quiz.created_at.isoformat(),
        "updatedAt": quiz.updated_at.isoformat(),
    }


def _attempt_result_json(result: AttemptResult) -> dict[str, object]:
    return {
        "success": True,
        "score": result.score,
        "passed": result.passed,
        "correctAnswers": result.correct_answers,
        "totalQuestions": result.total_questions,
        "earnedPoints": result.earned_points,
        "totalPoints": result.total_points,
        "attemptId": result.attempt_id,
        "attemptNumber": result.attempt_number,
        "maxAttempts": result.max_attempts,
        "evaluatedAnswers": [_answer_record_json(r) for r in result.evaluated_answers],
        "progressUpdate": (
            _progress_json(result.progress_update) if result.progress_update is not None else None
        ),
    }


def _status_for(exc: LearningAppError) -> int:
    return next((status for cls, status in _ERROR_STATUS if isinstance(exc, cls)), 500)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(LearningAppError)
    async def handle_learning_error(request: Request, exc: LearningAppError) -> JSONResponse:
        status = _status_for(exc)
        if status >= 500:
            logger.error("Unhandled service error on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=status, content={"success": False, "message": str(exc)})

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc.detail)},
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'][1:])}: {error['msg']}"
            for error in exc.errors()
        )
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": f"Invalid request: {problems}"},
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unexpected error on %s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Internal server error"},
        )


def create_api_app(platform: LearningPlatform) -> FastAPI:
    """Create a FastAPI application wired to the provided learning platform."""
    app = FastAPI(
        title=f"{APP_NAME} API",
        version=APP_VERSION,
        description=APP_ABOUT_TEXT,
        license_info={"name": APP_LICENSE},
    )
    platform_dep = _get_platform_dependency(platform)
    _install_error_handlers(app)

    # --- Quizzes ---

    @app.post("/api/quizzes/{quiz_id}/attempt")
    def submit_attempt(
        quiz_id: str,
        payload: AttemptPayload,
        identity: Identity = Depends(get_identity),
        manager: LearningPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        answers = None if payload.answers is None else [a.to_answer() for a in payload.answers]
        result = manager.submit_attempt(
            identity.user_id,
            quiz_id,
            answers,
            time_spent=payload.time_spent,
            lesson_id=payload.lesson_id,
        )
        return _attempt_result_json(result)

    @app.post("/api/quizzes", status_code=201)
    def create_quiz(
        payload: QuizPayload,
        identity: Identity = Depends(require_instructor),
        manager: LearningPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        quiz = manager.create_quiz(payload.model_dump(exclude_none=True), identity.user_id)
        logger.info("Quiz created: %s", quiz.title)
        return _quiz_json(quiz, include_answers=True)

    @app.get("/api/quizzes/lesson/{lesson_id}")
    def get_quiz_for_lesson(
        lesson_id: str,
        identity: Identity = Depends(get_identity),
        manager: LearningPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        quiz = manager.find_quiz_for_lesson(lesson_id)
        if quiz is None:
            return {
                "success": False,
                "exists": False,
                "message": "No quiz available for this lesson",
            }
        allowance = manager.attempt_allowance(identity.user_id, quiz)
        return {
            "success": True,
            "exists": True,
            **_quiz_json(quiz, include_answers=identity.is_instructor),
            "userAttempts": {
                "previous": allowance.previous,
                "remaining": allowance.remaining,
                "canAttempt": allowance.can_attempt,
            },
        }

    @app.get("/api/quizzes/course/{course_id}")
    def list_course_quizzes(
        course_id: str,
        identity: Identity = Depends(require_instructor),
        manager: LearningPlatform = Depends(platform_dep),
    ) -> list[dict[str, object]]:
        return [_quiz_json(q, include_answers=True) for q in manager.list_course_quizzes(course_id)]

    @app.get("/api/quizzes/{quiz_id}/attempts")
    def list_attempts(
        quiz_id: str,
        identity: Identity = Depends(get_identity),
        manager: LearningPlatform = Depends(platform_dep),
    ) -> list[dict[str, object]]:
        return [_attempt_json(a) for a in manager.list_attempts(identity.user_id, quiz_id)]

    @app.get("/api/quizzes/{quiz_id}/best-attempt")
    def best_attempt(
        quiz_id: str,
        identity: Identity = Depends(get_identity),
        manager: LearningPlatform = Depends(platform_dep),
    ) -> dict[str, object] | None:
        attempt = manager.best_attempt(identity.user_id, quiz_id)
        return _attempt_json(attempt) if attempt is not None else None

    @app.get("/api/quizzes/{quiz_id}/statistics")
    def quiz_statistics(
        quiz_id: str,
        identity: Identity = Depends(require_instructor),
        manager: LearningPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        stats = manager.quiz_statistics(quiz_id, identity.user_id)
        return {
            "quizId": stats.quiz_id,
            "totalAttempts": stats.total_attempts,
            "averageScore": stats.average_score,
            "passRate": stats.pass_rate,
            "questionStats": [
                {
                    "questionIndex": q.question_index,
                    "question": q.question,
                    "correctCount": q.correct_count,
                    "totalAttempts": q.total_attempts,
                    "correctRate": q.correct_rate,
                    "difficulty": q.difficulty,
                }
                for q in stats.question_stats
            ],
            "scoreDistribution": [
                {"range": b.range, "min": b.min, "max": b.max, "count": b.count}
                for b in stats.score_distribution
            ],
        }

    @app.get("/api/quizzes/{quiz_id}")
    def get_quiz(
        quiz_id: str,
        identity: Identity = Depends(get_identity),
        manager: LearningPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        return _quiz_json(manager.get_quiz(quiz_id), include_answers=identity.is_instructor)

    @app.put("/api/quizzes/{quiz_id}")
    def update_quiz(
        quiz_id: str,
        payload: QuizPayload,
        identity: Identity = Depends(require_instructor),
        manager: LearningPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        quiz = manager.update_quiz(quiz_id, payload.model_dump(exclude_none=True), identity.user_id)
        logger.info("Quiz updated: %s", quiz.title)
        return _quiz_json(quiz, include_answers=True)

    @app.delete("/api/quizzes/{quiz_id}")
    def delete_quiz(
        quiz_id: str,
        identity: Identity = Depends(require_instructor),
        manager: LearningPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        quiz = manager.delete_quiz(quiz_id, identity.user_id)
        return {"message": f"Quiz '{quiz.title}' deleted successfully"}

    # --- Progress ---

    @app.get("/api/progress/{course_id}")
    def get_progress(
        course_id: str,
        identity: Identity = Depends(get_identity),
        manager: LearningPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        return _progress_json(manager.get_progress(identity.user_id, course_id))

    @app.post("/api/progress/{course_id}/enroll", status_code=201)
    def start_course(
        course_id: str,
        identity: Identity = Depends(get_identity),
        manager: LearningPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        return _progress_json(manager.start_course(identity.user_id, course_id))

    @app.post("/api/progress/{course_id}/complete-lesson")
    def complete_lesson(
        course_id: str,
        payload: LessonPayload,
        identity: Identity = Depends(get_identity),
        manager: LearningPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        progress = manager.complete_lesson(identity.user_id, course_id, _lesson_id_from(payload))
        return _progress_json(progress)

    @app.post("/api/progress/{course_id}/uncomplete-lesson")
    def uncomplete_lesson(
        course_id: str,
        payload: LessonPayload,
        identity: Identity = Depends(get_identity),
        manager: LearningPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        progress = manager.uncomplete_lesson(identity.user_id, course_id, _lesson_id_from(payload))
        return _progress_json(progress)

    @app.post("/api/progress/{course_id}/time-spent")
    def add_time_spent(
        course_id: str,
        payload: TimeSpentPayload,
        identity: Identity = Depends(get_identity),
        manager: LearningPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        return _progress_json(manager.add_time_spent(identity.user_id, course_id, payload.minutes))

    @app.get("/api/progress/{course_id}/completion-status/{lesson_id}")
    def completion_status(
        course_id: str,
        lesson_id: str,
        identity: Identity = Depends(get_identity),
        manager: LearningPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        status = manager.completion_status(identity.user_id, lesson_id)
        return {
            "success": True,
            "canComplete": status.can_complete,
            "message": status.message,
            "hasQuiz": status.has_quiz,
            "quizRequired": status.quiz_required,
        }

    # --- Analytics ---

    @app.get("/api/analytics/courses/{course_id}/overview")
    def course_overview(
        course_id: str,
        identity: Identity = Depends(require_instructor),
        manager: LearningPlatform = Depends(platform_dep),
    ) -> dict[str, object]:
        overview = manager.course_overview(course_id, identity.user_id)
        return {
            "courseId": overview.course_id,
            "totalStudents": overview.total_students,
            "activeStudents": overview.active_students,
            "completionRate": overview.completion_rate,
            "totalQuizzes": overview.total_quizzes,
        }

    return app


def serve_api(
    platform: LearningPlatform,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    """Run the API server in the foreground until interrupted."""
    app = create_api_app(platform)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)
    try:
        server.run()
    finally:
        platform.shutdown()
