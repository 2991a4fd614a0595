"""In-process persistence for attempt sessions and submissions.

Both repositories serialize access through a lock and hand out deep copies,
so a caller can never change stored state except through the conditional
update methods below. Swapping these for a database-backed implementation
means providing the same conditional semantics (compare-and-set on session
status, atomic limit check and numbering on submission insert).
"""

from __future__ import annotations

from collections.abc import Callable
import copy
from datetime import datetime
from threading import Lock

from quiz_attempts.core.errors import AttemptLimitExceededError, InvalidStateError, NotFoundError
from quiz_attempts.core.models import QuizSession, SessionStatus, Submission

SessionTransform = Callable[[QuizSession], QuizSession]


class SessionRepository:
    """Stores attempt sessions keyed by id."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._sessions: dict[str, QuizSession] = {}

    def create(self, session: QuizSession) -> QuizSession:
        with self._lock:
            if session.id in self._sessions:
                raise InvalidStateError(f"Session {session.id} already exists")
            self._sessions[session.id] = copy.deepcopy(session)
            return copy.deepcopy(session)

    def get(self, session_id: str) -> QuizSession:
        with self._lock:
            return copy.deepcopy(self._require(session_id))

    def update_if_active(self, session_id: str, transform: SessionTransform) -> QuizSession | None:
        """Apply ``transform`` only while the session is active.

        Returns the stored result, or None when the session was no longer
        active at the moment of the update.
        """
        with self._lock:
            current = self._require(session_id)
            if current.status is not SessionStatus.ACTIVE:
                return None
            updated = transform(copy.deepcopy(current))
            self._sessions[session_id] = updated
            return copy.deepcopy(updated)

    def update(self, session_id: str, transform: SessionTransform) -> QuizSession:
        with self._lock:
            updated = transform(copy.deepcopy(self._require(session_id)))
            self._sessions[session_id] = updated
            return copy.deepcopy(updated)

    def latest_completed(self, quiz_id: str, learner_id: str) -> QuizSession | None:
        with self._lock:
            candidates = [
                s
                for s in self._sessions.values()
                if s.quiz_id == quiz_id
                and s.learner_id == learner_id
                and s.status is SessionStatus.COMPLETED
            ]
            if not candidates:
                return None
            return copy.deepcopy(max(candidates, key=lambda s: s.end_time))

    def list_completed_for_learner(self, learner_id: str) -> list[QuizSession]:
        with self._lock:
            sessions = [
                copy.deepcopy(s)
                for s in self._sessions.values()
                if s.learner_id == learner_id and s.status is SessionStatus.COMPLETED
            ]
        return sorted(sessions, key=lambda s: s.end_time, reverse=True)

    def _require(self, session_id: str) -> QuizSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        return session


class SubmissionRepository:
    """Stores submissions; one per session, numbered per learner and quiz."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._submissions: dict[str, Submission] = {}

    def create(self, submission: Submission, max_completed: int | None = None) -> Submission:
        """Store ``submission`` under the learner's next attempt number.

        The limit check, numbering and insert happen under one lock, so with
        ``max_completed`` set two concurrent submissions cannot both pass a
        limit that only one of them fits in.
        """
        with self._lock:
            if any(s.session_id == submission.session_id for s in self._submissions.values()):
                raise InvalidStateError(f"Session {submission.session_id} already has a submission")
            used = self._count_completed(submission.quiz_id, submission.learner_id)
            if max_completed is not None and used >= max_completed:
                raise AttemptLimitExceededError(f"Maximum attempts reached for this quiz ({used} used)")
            stored = copy.deepcopy(submission)
            stored.attempt_number = self._max_attempt_number(submission.quiz_id, submission.learner_id) + 1
            self._submissions[stored.id] = stored
            return copy.deepcopy(stored)

    def get(self, submission_id: str) -> Submission:
        with self._lock:
            return copy.deepcopy(self._require(submission_id))

    def find_by_session(self, session_id: str) -> Submission | None:
        with self._lock:
            found = next((s for s in self._submissions.values() if s.session_id == session_id), None)
            return copy.deepcopy(found) if found is not None else None

    def count_completed(self, quiz_id: str, learner_id: str) -> int:
        with self._lock:
            return self._count_completed(quiz_id, learner_id)

    def mark_reviewed_if_pending(self, submission_id: str, reviewed_at: datetime) -> tuple[Submission, bool]:
        """Complete a pending submission; returns the record and whether it changed."""
        with self._lock:
            submission = self._require(submission_id)
            if submission.is_completed and submission.reviewed_at is not None:
                return copy.deepcopy(submission), False
            submission.is_completed = True
            submission.reviewed_at = reviewed_at
            return copy.deepcopy(submission), True

    def list_for_quiz(self, quiz_id: str) -> list[Submission]:
        with self._lock:
            found = [copy.deepcopy(s) for s in self._submissions.values() if s.quiz_id == quiz_id]
        return sorted(found, key=lambda s: s.submitted_at, reverse=True)

    def list_for_learner(self, learner_id: str) -> list[Submission]:
        with self._lock:
            found = [copy.deepcopy(s) for s in self._submissions.values() if s.learner_id == learner_id]
        return sorted(found, key=lambda s: s.submitted_at, reverse=True)

    def delete(self, submission_id: str) -> Submission:
        with self._lock:
            self._require(submission_id)
            return self._submissions.pop(submission_id)

    def _require(self, submission_id: str) -> Submission:
        submission = self._submissions.get(submission_id)
        if submission is None:
            raise NotFoundError(f"Submission {submission_id} not found")
        return submission

    def _count_completed(self, quiz_id: str, learner_id: str) -> int:
        return sum(
            1
            for s in self._submissions.values()
            if s.quiz_id == quiz_id and s.learner_id == learner_id and s.is_completed
        )

    def _max_attempt_number(self, quiz_id: str, learner_id: str) -> int:
        return max(
            (
                s.attempt_number
                for s in self._submissions.values()
                if s.quiz_id == quiz_id and s.learner_id == learner_id
            ),
            default=0,
        )
