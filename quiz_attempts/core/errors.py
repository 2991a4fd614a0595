"""Failure kinds raised by the attempt services.

Every error carries a stable ``kind`` string so the transport layer can map
it to a status code without inspecting messages.
"""

from __future__ import annotations


class AttemptError(Exception):
    """Base class for request-terminal failures."""

    kind: str = "attempt_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(AttemptError):
    kind = "not_found"


class ForbiddenError(AttemptError):
    kind = "forbidden"


class InvalidStateError(AttemptError):
    kind = "invalid_state"


class ValidationError(AttemptError):
    kind = "validation_error"


class AttemptLimitExceededError(AttemptError):
    kind = "attempt_limit_exceeded"
