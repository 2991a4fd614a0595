"""Attempt lifecycle and scoring engine for assigned quizzes."""

from .core.attempt_manager import AttemptManager
from .core.errors import (
    AttemptError,
    AttemptLimitExceededError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    "AttemptManager",
    "AttemptError",
    "AttemptLimitExceededError",
    "ForbiddenError",
    "InvalidStateError",
    "NotFoundError",
    "ValidationError",
]
