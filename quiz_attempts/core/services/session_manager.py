"""Service owning the attempt state machine: start, answer upsert, submit, results."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime
import logging
from typing import Any
from uuid import uuid4

from quiz_attempts.constants.quiz_constants import SECONDS_PER_MINUTE
from quiz_attempts.core.clock import Clock, minutes_between, utc_now
from quiz_attempts.core.errors import (
    AttemptLimitExceededError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from quiz_attempts.core.models import (
    Answer,
    AnswerDraft,
    AttemptResult,
    AttemptResults,
    Principal,
    Quiz,
    QuizSession,
    SessionStatus,
    StartedAttempt,
)
from quiz_attempts.core.services.attempt_repository import SessionRepository
from quiz_attempts.core.services.attempt_tracker import AttemptTracker
from quiz_attempts.core.services.quiz_repository import QuizRepository
from quiz_attempts.core.services.randomization import RandomizationService, strip_answers
from quiz_attempts.core.services.scoring import ScoreResult, ScoringEngine, compute_percentage, values_equal
from quiz_attempts.core.services.submission_reconciler import SubmissionReconciler

logger = logging.getLogger(__name__)


def finalize_session(session: QuizSession, ended_at: datetime) -> QuizSession:
    """Move an active session to completed, stamping end time and time spent."""
    session.status = SessionStatus.COMPLETED
    session.end_time = ended_at
    session.time_spent_minutes = minutes_between(session.start_time, ended_at)
    return session


def reopen_session(session: QuizSession) -> QuizSession:
    """Undo ``finalize_session`` and scoring for a submit whose submission was refused."""
    session.status = SessionStatus.ACTIVE
    session.end_time = None
    session.time_spent_minutes = 0
    session.score = 0
    session.answers = {
        question_id: replace(answer, is_correct=None, points_earned=None)
        for question_id, answer in session.answers.items()
    }
    return session


def apply_answer(session: QuizSession, answer: Answer) -> QuizSession:
    """Upsert ``answer`` keyed by question id; an identical value keeps the stored answer."""
    existing = session.answers.get(answer.question_id)
    if existing is not None and values_equal(existing.value, answer.value):
        return session
    session.answers[answer.question_id] = answer
    return session


class SessionManager:
    """Creates attempts and drives each one from active to completed exactly once."""

    def __init__(
        self,
        sessions: SessionRepository,
        quizzes: QuizRepository,
        tracker: AttemptTracker,
        randomizer: RandomizationService,
        scoring: ScoringEngine,
        reconciler: SubmissionReconciler,
        clock: Clock = utc_now,
    ) -> None:
        self._sessions = sessions
        self._quizzes = quizzes
        self._tracker = tracker
        self._randomizer = randomizer
        self._scoring = scoring
        self._reconciler = reconciler
        self._clock = clock

    def start(self, quiz: Quiz, learner: Principal) -> StartedAttempt:
        is_instructor = quiz.is_instructor(learner.id)
        if not is_instructor and quiz.assignment_for(learner.id) is None:
            raise ForbiddenError("Not assigned to this quiz")
        if not quiz.is_published and not is_instructor:
            raise ForbiddenError("Quiz is not published")
        self._tracker.ensure_can_attempt(quiz, learner.id)

        session = QuizSession(
            id=uuid4().hex,
            quiz_id=quiz.id,
            learner_id=learner.id,
            layout=self._randomizer.freeze_layout(quiz),
            max_score=quiz.total_points,
            time_limit_minutes=quiz.settings.time_limit_minutes,
            start_time=self._clock(),
        )
        session = self._sessions.create(session)
        logger.info("Started session %s for learner %s on quiz %s", session.id, learner.id, quiz.id)
        return self._started(quiz, session)

    def resume(self, session_id: str, learner: Principal) -> StartedAttempt:
        """Return the frozen view of an in-progress session to its learner."""
        session = self._owned_session(session_id, learner)
        if not session.is_active:
            raise InvalidStateError("Session is not active")
        return self._started(self._quizzes.get(session.quiz_id), session)

    def upsert_answer(self, session_id: str, learner: Principal, question_id: str, value: Any) -> Answer:
        draft = _validated_draft(AnswerDraft(question_id=question_id, value=value))
        self._owned_session(session_id, learner)
        updated = self._store_answer(session_id, draft)
        return updated.answers[draft.question_id]

    def submit(self, session_id: str, learner: Principal, final_answers: Iterable[AnswerDraft] = ()) -> AttemptResult:
        drafts = [_validated_draft(draft) for draft in final_answers]
        session = self._owned_session(session_id, learner)
        if not session.is_active:
            raise InvalidStateError("Session is not active")
        quiz = self._quizzes.get(session.quiz_id)
        try:
            self._tracker.ensure_can_attempt(quiz, learner.id)
        except AttemptLimitExceededError:
            # a concurrent submit of this same session may have used the last attempt
            if not self._sessions.get(session_id).is_active:
                raise InvalidStateError("Session is not active") from None
            raise

        for draft in drafts:
            self._store_answer(session_id, draft)

        ended_at = self._clock()
        outcome: list[ScoreResult] = []

        def complete(current: QuizSession) -> QuizSession:
            # status, end time and score are stored together
            scoring = self._scoring.score(quiz.questions, current.answers.values())
            outcome.append(scoring)
            return _record_scoring(finalize_session(current, ended_at), scoring.answers, scoring.total_score)

        scored = self._sessions.update_if_active(session_id, complete)
        if scored is None:
            logger.info("Session %s was already submitted; rejecting duplicate submit", session_id)
            raise InvalidStateError("Session is not active")

        try:
            submission = self._reconciler.reconcile(scored, quiz, outcome[0])
        except Exception:
            self._sessions.update(session_id, reopen_session)
            logger.info("Submission for session %s was not recorded; session is active again", session_id)
            raise
        logger.info("Session %s submitted: %d/%d", session_id, scored.score, scored.max_score)
        return AttemptResult(
            session_id=scored.id,
            submission_id=submission.id,
            score=submission.score,
            max_score=submission.max_score,
            percentage=submission.percentage,
            is_completed=submission.is_completed,
        )

    def get_results(
        self,
        caller: Principal,
        session_id: str | None = None,
        quiz_id: str | None = None,
    ) -> AttemptResults:
        """Summarize a completed session; falls back to the caller's latest one for ``quiz_id``."""
        if session_id is not None:
            session = self._sessions.get(session_id)
        elif quiz_id is not None:
            session = self._sessions.latest_completed(quiz_id, caller.id)
            if session is None:
                raise NotFoundError("No completed session found for this quiz")
        else:
            raise NotFoundError("A session id or quiz id is required")

        quiz = self._quizzes.get(session.quiz_id)
        is_learner = session.learner_id == caller.id
        is_instructor = quiz.is_instructor(caller.id)
        if not is_learner and not is_instructor:
            raise ForbiddenError("Not authorized to view these results")
        if session.status is not SessionStatus.COMPLETED:
            raise InvalidStateError("Session is not completed yet")

        questions = quiz.questions
        if is_learner and not is_instructor:
            questions = [strip_answers(question) for question in questions]
        percentage = compute_percentage(session.score, session.max_score)
        return AttemptResults(
            session=session,
            percentage=percentage,
            passed=percentage >= quiz.settings.passing_score,
            quiz_id=quiz.id,
            quiz_title=quiz.title,
            total_points=quiz.total_points,
            settings=quiz.settings,
            questions=questions,
        )

    def list_completed_sessions(self, learner: Principal) -> list[QuizSession]:
        return self._sessions.list_completed_for_learner(learner.id)

    def _owned_session(self, session_id: str, learner: Principal) -> QuizSession:
        session = self._sessions.get(session_id)
        if session.learner_id != learner.id:
            raise ForbiddenError("Not authorized")
        return session

    def _store_answer(self, session_id: str, draft: AnswerDraft) -> QuizSession:
        answer = Answer(question_id=draft.question_id, value=draft.value, answered_at=self._clock())
        updated = self._sessions.update_if_active(session_id, lambda s: apply_answer(s, answer))
        if updated is None:
            raise InvalidStateError("Session is not active")
        return updated

    def _started(self, quiz: Quiz, session: QuizSession) -> StartedAttempt:
        elapsed = (self._clock() - session.start_time).total_seconds()
        remaining = max(0, session.time_limit_minutes * SECONDS_PER_MINUTE - int(elapsed))
        return StartedAttempt(
            session_id=session.id,
            quiz_id=quiz.id,
            questions=self._randomizer.build_view(quiz, session.layout),
            time_remaining_seconds=remaining,
            started_at=session.start_time,
            max_score=session.max_score,
        )


def _validated_draft(draft: AnswerDraft) -> AnswerDraft:
    question_id = str(draft.question_id).strip() if draft.question_id is not None else ""
    if not question_id:
        raise ValidationError("questionId is required")
    return AnswerDraft(question_id=question_id, value=draft.value)


def _record_scoring(session: QuizSession, scored: list[Answer], total_score: int) -> QuizSession:
    for answer in scored:
        session.answers[answer.question_id] = answer
    session.score = total_score
    return session
