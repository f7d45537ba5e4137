"""Network and runtime configuration for the learning API.

Values come from the environment (or a local ``.env`` file) with defaults
suitable for development.
"""

import os

from dotenv import load_dotenv

load_dotenv()

DEFAULT_HOST: str = os.getenv("QUIZTRACK_HOST", "0.0.0.0")
DEFAULT_PORT: int = int(os.getenv("QUIZTRACK_PORT", "8000"))
LOG_LEVEL: str = os.getenv("QUIZTRACK_LOG_LEVEL", "INFO")
CATALOG_PATH: str | None = os.getenv("QUIZTRACK_CATALOG_PATH")

# Upper bound for the lesson-completion call made after a passing attempt
PROGRESS_UPDATE_TIMEOUT_SECONDS: float = float(
    os.getenv("QUIZTRACK_PROGRESS_TIMEOUT_SECONDS", "5.0")
)

USER_ID_HEADER: str = "X-User-Id"
USER_ROLE_HEADER: str = "X-User-Role"
ROLE_STUDENT: str = "student"
ROLE_INSTRUCTOR: str = "instructor"
