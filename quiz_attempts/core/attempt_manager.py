"""Facade exposing the attempt operations to the transport layer."""

from __future__ import annotations

from collections.abc import Iterable
import random
from typing import Any

from quiz_attempts.core.clock import Clock, utc_now
from quiz_attempts.core.models import (
    Answer,
    AnswerDraft,
    AttemptResult,
    AttemptResults,
    Principal,
    Quiz,
    QuizSession,
    StartedAttempt,
    Submission,
)
from quiz_attempts.core.services.attempt_repository import SessionRepository, SubmissionRepository
from quiz_attempts.core.services.attempt_tracker import AttemptTracker
from quiz_attempts.core.services.quiz_repository import QuizRepository
from quiz_attempts.core.services.randomization import RandomizationService
from quiz_attempts.core.services.scoring import ScoringEngine
from quiz_attempts.core.services.session_manager import SessionManager
from quiz_attempts.core.services.submission_reconciler import SubmissionListener, SubmissionReconciler


class AttemptManager:
    """Facade for attempt services: repositories, tracker, sessions and reconciliation.

    Holds no lock of its own; every shared record is guarded by its
    repository so independent requests proceed concurrently.
    """

    def __init__(self, clock: Clock = utc_now, seed_source: random.Random | None = None) -> None:
        # Repositories
        self._quizzes = QuizRepository()
        self._sessions = SessionRepository()
        self._submissions = SubmissionRepository()

        # Services
        self._tracker = AttemptTracker(self._submissions)
        self._reconciler = SubmissionReconciler(
            self._submissions, self._sessions, self._quizzes, self._tracker, clock=clock
        )
        self._session_manager = SessionManager(
            self._sessions,
            self._quizzes,
            self._tracker,
            RandomizationService(seed_source),
            ScoringEngine(),
            self._reconciler,
            clock=clock,
        )

    # --- Quiz documents ---

    def load_quiz(self, quiz: Quiz) -> None:
        self._quizzes.load_quiz(quiz)

    def get_quiz(self, quiz_id: str) -> Quiz:
        return self._quizzes.get(quiz_id)

    # --- Attempt lifecycle ---

    def start_attempt(self, quiz_id: str, learner: Principal) -> StartedAttempt:
        return self._session_manager.start(self._quizzes.get(quiz_id), learner)

    def resume_attempt(self, session_id: str, learner: Principal) -> StartedAttempt:
        return self._session_manager.resume(session_id, learner)

    def upsert_answer(self, session_id: str, learner: Principal, question_id: str, value: Any) -> Answer:
        return self._session_manager.upsert_answer(session_id, learner, question_id, value)

    def submit_attempt(
        self, session_id: str, learner: Principal, final_answers: Iterable[AnswerDraft] = ()
    ) -> AttemptResult:
        return self._session_manager.submit(session_id, learner, final_answers)

    def get_results(
        self, caller: Principal, session_id: str | None = None, quiz_id: str | None = None
    ) -> AttemptResults:
        return self._session_manager.get_results(caller, session_id=session_id, quiz_id=quiz_id)

    def list_my_sessions(self, learner: Principal) -> list[QuizSession]:
        return self._session_manager.list_completed_sessions(learner)

    def attempts_used(self, quiz_id: str, learner_id: str) -> int:
        return self._tracker.attempts_used(quiz_id, learner_id)

    # --- Submissions & review ---

    def mark_reviewed(
        self, reviewer: Principal, submission_id: str | None = None, session_id: str | None = None
    ) -> Submission:
        return self._reconciler.mark_reviewed(reviewer, submission_id=submission_id, session_id=session_id)

    def reopen_attempt(self, submission_id: str, reviewer: Principal) -> Submission:
        return self._reconciler.reopen_attempt(submission_id, reviewer)

    def reopen_attempts(self, submission_ids: list[str], reviewer: Principal) -> list[Submission]:
        return self._reconciler.reopen_attempts(submission_ids, reviewer)

    def get_submissions_for_quiz(self, quiz_id: str, reviewer: Principal) -> list[Submission]:
        return self._reconciler.list_for_quiz(quiz_id, reviewer)

    def get_submission(self, submission_id: str, caller: Principal) -> Submission:
        return self._reconciler.get_submission(submission_id, caller)

    def list_my_submissions(self, learner: Principal) -> list[Submission]:
        return self._reconciler.list_for_learner(learner)

    def subscribe(self, listener: SubmissionListener) -> None:
        self._reconciler.subscribe(listener)
