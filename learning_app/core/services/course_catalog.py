"""Read access to courses and their lessons."""

from __future__ import annotations

import json
from pathlib import Path
from threading import Lock
from typing import Iterable

from learning_app.core.errors import CourseNotFoundError
from learning_app.core.models import Course


class CourseCatalog:
    """In-process stand-in for the catalog service; supplies lesson counts per course."""

    def __init__(self, courses: Iterable[Course] = ()) -> None:
        self._lock = Lock()
        self._courses: dict[str, Course] = {course.id: course for course in courses}

    def add_course(self, course: Course) -> None:
        with self._lock:
            self._courses[course.id] = course

    def get_course(self, course_id: str) -> Course:
        with self._lock:
            course = self._courses.get(course_id)
        if course is None:
            raise CourseNotFoundError(course_id)
        return course

    def lesson_ids(self, course_id: str) -> tuple[str, ...]:
        return self.get_course(course_id).lesson_ids


def load_catalog_file(file_path: Path) -> CourseCatalog:
    """Build a catalog from a JSON list of ``{id, title, instructorId, lessonIds}`` objects."""
    raw = json.loads(file_path.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError("Catalog file must contain a JSON list of courses.")
    courses = []
    for entry in raw:
        try:
            courses.append(
                Course(
                    id=str(entry["id"]),
                    title=str(entry.get("title", "")),
                    instructor_id=str(entry["instructorId"]),
                    lesson_ids=tuple(str(lesson) for lesson in entry.get("lessonIds", ())),
                )
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise ValueError(f"Invalid course entry in catalog file: {entry!r}") from exc
    return CourseCatalog(courses)
