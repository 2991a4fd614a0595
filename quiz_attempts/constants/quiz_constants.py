"""Quiz-related defaults shared by the core services and the importer."""

DEFAULT_TIME_LIMIT_MINUTES: int = 60
DEFAULT_MAX_ATTEMPTS: int = 1
DEFAULT_PASSING_SCORE: int = 70
DEFAULT_QUESTION_POINTS: int = 1
SECONDS_PER_MINUTE: int = 60
