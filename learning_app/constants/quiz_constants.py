"""Quiz-related constants shared across the core and API layers."""

QUESTION_TYPE_MULTIPLE_CHOICE: str = "multiple_choice"
QUESTION_TYPE_THEORY: str = "theory"
QUESTION_TYPES: tuple[str, ...] = (QUESTION_TYPE_MULTIPLE_CHOICE, QUESTION_TYPE_THEORY)

DEFAULT_PASSING_SCORE: float = 70.0
DEFAULT_TIME_LIMIT_MINUTES: int = 30
DEFAULT_MAX_ATTEMPTS: int = 3
DEFAULT_QUESTION_POINTS: float = 1.0

# (label, lower bound, upper bound) for the instructor score histogram
SCORE_DISTRIBUTION_RANGES: tuple[tuple[str, float, float], ...] = (
    ("90-100", 90, 100),
    ("80-89", 80, 89),
    ("70-79", 70, 79),
    ("60-69", 60, 69),
    ("0-59", 0, 59),
)
EASY_CORRECT_RATE: float = 0.8
MEDIUM_CORRECT_RATE: float = 0.6
