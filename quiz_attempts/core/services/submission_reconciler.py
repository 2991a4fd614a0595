"""Service turning completed sessions into durable submissions and reviewing them."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
import logging
from uuid import uuid4

from quiz_attempts.core.clock import Clock, minutes_between, utc_now
from quiz_attempts.core.errors import ForbiddenError, InvalidStateError, NotFoundError, ValidationError
from quiz_attempts.core.models import (
    Principal,
    Quiz,
    QuizSession,
    Submission,
    SubmissionCompleted,
)
from quiz_attempts.core.services.attempt_repository import SessionRepository, SubmissionRepository
from quiz_attempts.core.services.attempt_tracker import AttemptTracker
from quiz_attempts.core.services.quiz_repository import QuizRepository
from quiz_attempts.core.services.scoring import ScoreResult, compute_percentage

logger = logging.getLogger(__name__)

SubmissionListener = Callable[[SubmissionCompleted], None]


class SubmissionReconciler:
    """Creates one submission per completed session and applies review transitions."""

    def __init__(
        self,
        submissions: SubmissionRepository,
        sessions: SessionRepository,
        quizzes: QuizRepository,
        tracker: AttemptTracker,
        clock: Clock = utc_now,
    ) -> None:
        self._submissions = submissions
        self._sessions = sessions
        self._quizzes = quizzes
        self._tracker = tracker
        self._clock = clock
        self._listeners: list[SubmissionListener] = []

    def subscribe(self, listener: SubmissionListener) -> None:
        """Register a callback for "submission completed" events."""
        self._listeners.append(listener)

    def reconcile(self, session: QuizSession, quiz: Quiz, scoring: ScoreResult) -> Submission:
        """Persist the submission for a session that just completed.

        Only the request that won the session's completion transition may
        call this. The repository rejects a second submission for the same
        session and, atomically with numbering the attempt, a learner who has
        no attempt left (AttemptLimitExceededError).
        """
        if session.is_active or session.end_time is None:
            raise InvalidStateError("Cannot reconcile a session that is still active")

        auto_complete = not quiz.settings.require_manual_review
        submission = Submission(
            id=uuid4().hex,
            quiz_id=session.quiz_id,
            learner_id=session.learner_id,
            session_id=session.id,
            attempt_number=0,
            answers=list(scoring.answers),
            score=scoring.total_score,
            max_score=session.max_score,
            percentage=compute_percentage(scoring.total_score, session.max_score),
            started_at=session.start_time,
            submitted_at=session.end_time,
            time_spent_minutes=minutes_between(session.start_time, session.end_time),
            is_completed=auto_complete,
            reviewed_at=self._clock() if auto_complete else None,
        )
        stored = self._submissions.create(
            submission, max_completed=self._tracker.effective_max_attempts(quiz.settings)
        )
        self._quizzes.mark_assignment_submitted(quiz.id, session.learner_id, session.end_time)
        logger.info(
            "Recorded attempt %d for learner %s on quiz %s (%s)",
            stored.attempt_number,
            stored.learner_id,
            stored.quiz_id,
            "completed" if auto_complete else "awaiting review",
        )
        if auto_complete:
            self._emit(stored)
        return stored

    def mark_reviewed(
        self,
        reviewer: Principal,
        submission_id: str | None = None,
        session_id: str | None = None,
    ) -> Submission:
        """Complete a submission after instructor review; repeating it is a no-op."""
        submission = self._locate(submission_id, session_id)
        quiz = self._quizzes.get(submission.quiz_id)
        if not quiz.is_instructor(reviewer.id):
            raise ForbiddenError("Only the quiz's instructor can review submissions")

        reviewed_at = self._clock()
        submission, changed = self._submissions.mark_reviewed_if_pending(submission.id, reviewed_at)
        if not changed:
            return submission

        try:
            self._sessions.update(submission.session_id, lambda s: _stamp_reviewed(s, reviewed_at))
        except NotFoundError:
            logger.info("Session %s is no longer tracked; review stamped on the submission only", submission.session_id)
        logger.info("Submission %s reviewed by %s", submission.id, reviewer.id)
        self._emit(submission)
        return submission

    def reopen_attempt(self, submission_id: str, reviewer: Principal) -> Submission:
        """Clear a submission and the assignment lock so the learner can retake."""
        submission = self._submissions.get(submission_id)
        quiz = self._quizzes.get(submission.quiz_id)
        if not quiz.is_instructor(reviewer.id):
            raise ForbiddenError("Only the quiz's instructor can reopen attempts")
        removed = self._submissions.delete(submission_id)
        self._quizzes.clear_assignment_submission(quiz.id, removed.learner_id)
        logger.info("Submission %s cleared for retake by %s", submission_id, reviewer.id)
        return removed

    def reopen_attempts(self, submission_ids: list[str], reviewer: Principal) -> list[Submission]:
        """Batch form of ``reopen_attempt``; nothing is cleared unless every id is found and owned."""
        if not submission_ids:
            raise ValidationError("submissionIds must list at least one submission")
        for submission_id in submission_ids:
            submission = self._submissions.get(submission_id)
            if not self._quizzes.get(submission.quiz_id).is_instructor(reviewer.id):
                raise ForbiddenError("Only the quiz's instructor can reopen attempts")
        return [self.reopen_attempt(submission_id, reviewer) for submission_id in dict.fromkeys(submission_ids)]

    def list_for_quiz(self, quiz_id: str, reviewer: Principal) -> list[Submission]:
        quiz = self._quizzes.get(quiz_id)
        if not quiz.is_instructor(reviewer.id):
            raise ForbiddenError("Not authorized to view submissions for this quiz")
        return self._submissions.list_for_quiz(quiz_id)

    def list_for_learner(self, learner: Principal) -> list[Submission]:
        return self._submissions.list_for_learner(learner.id)

    def get_submission(self, submission_id: str, caller: Principal) -> Submission:
        submission = self._submissions.get(submission_id)
        if submission.learner_id == caller.id:
            return submission
        quiz = self._quizzes.get(submission.quiz_id)
        if not quiz.is_instructor(caller.id):
            raise ForbiddenError("Access denied")
        return submission

    def _locate(self, submission_id: str | None, session_id: str | None) -> Submission:
        if submission_id is not None:
            return self._submissions.get(submission_id)
        if session_id is not None:
            submission = self._submissions.find_by_session(session_id)
            if submission is None:
                raise NotFoundError(f"No submission recorded for session {session_id}")
            return submission
        raise NotFoundError("A submission id or session id is required")

    def _emit(self, submission: Submission) -> None:
        event = SubmissionCompleted(
            submission_id=submission.id,
            quiz_id=submission.quiz_id,
            learner_id=submission.learner_id,
            attempt_number=submission.attempt_number,
            score=submission.score,
            max_score=submission.max_score,
            percentage=submission.percentage,
            completed_at=submission.reviewed_at or submission.submitted_at,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Submission listener failed for %s", submission.id)


def _stamp_reviewed(session: QuizSession, reviewed_at: datetime) -> QuizSession:
    if session.reviewed_at is None:
        session.reviewed_at = reviewed_at
    return session
