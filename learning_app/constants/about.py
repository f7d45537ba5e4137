"""Static metadata describing QuizTrack."""

APP_NAME = "QuizTrack"
APP_VERSION = "0.1.0"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "QuizTrack is the quiz and progress backend of an online-learning platform. "
    "It grades quiz attempts, enforces attempt limits and keeps per-course lesson progress "
    "for the browser client."
)
