"""Network configuration constants for the attempt service."""

import os

DEFAULT_HOST: str = os.getenv("QUIZ_ATTEMPTS_HOST", "0.0.0.0")
DEFAULT_PORT: int = int(os.getenv("QUIZ_ATTEMPTS_PORT", "8000"))
USER_ID_HEADER: str = "X-User-Id"
USER_ROLE_HEADER: str = "X-User-Role"
