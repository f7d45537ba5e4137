"""Application entry point for the QuizTrack API."""

from __future__ import annotations

from pathlib import Path

from learning_app.constants.network_constants import CATALOG_PATH, DEFAULT_HOST, DEFAULT_PORT
from learning_app.core.learning_platform import LearningPlatform
from learning_app.core.services.course_catalog import CourseCatalog, load_catalog_file
from learning_app.server.api_server import serve_api
from learning_app.utils.logging_config import configure_logging


def main() -> None:
    """Initialize logging, load the course catalog and serve the API."""
    logger = configure_logging()
    logger.info("Starting QuizTrack API…")

    catalog = load_catalog_file(Path(CATALOG_PATH)) if CATALOG_PATH else CourseCatalog()
    platform = LearningPlatform(catalog=catalog)
    logger.info("API docs available at http://%s:%s/docs", DEFAULT_HOST, DEFAULT_PORT)
    serve_api(platform, host=DEFAULT_HOST, port=DEFAULT_PORT)


if __name__ == "__main__":
    main()
