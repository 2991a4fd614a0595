"""Service deciding whether a learner may begin another attempt."""

from __future__ import annotations

import logging

from quiz_attempts.constants.quiz_constants import DEFAULT_MAX_ATTEMPTS
from quiz_attempts.core.errors import AttemptLimitExceededError
from quiz_attempts.core.models import Quiz, QuizSettings
from quiz_attempts.core.services.attempt_repository import SubmissionRepository

logger = logging.getLogger(__name__)


class AttemptTracker:
    """Counts completed submissions and enforces the quiz's attempt limit."""

    def __init__(self, submissions: SubmissionRepository) -> None:
        self._submissions = submissions

    def attempts_used(self, quiz_id: str, learner_id: str) -> int:
        return self._submissions.count_completed(quiz_id, learner_id)

    @staticmethod
    def effective_max_attempts(settings: QuizSettings) -> int | None:
        """Return the attempt ceiling, or None when attempts are unlimited."""
        if settings.allow_retakes:
            return settings.max_retake_attempts or None
        return settings.max_attempts or DEFAULT_MAX_ATTEMPTS

    def can_attempt(self, quiz: Quiz, attempts_used: int) -> bool:
        limit = self.effective_max_attempts(quiz.settings)
        return limit is None or attempts_used < limit

    def ensure_can_attempt(self, quiz: Quiz, learner_id: str) -> int:
        """Raise AttemptLimitExceededError if no attempt is left; return attempts used."""
        used = self.attempts_used(quiz.id, learner_id)
        if not self.can_attempt(quiz, used):
            logger.info("Attempt limit reached for learner %s on quiz %s (%d used)", learner_id, quiz.id, used)
            raise AttemptLimitExceededError(
                f"Maximum attempts reached for this quiz ({used} used)"
            )
        return used
