from datetime import datetime, timedelta, timezone

import pytest

from quiz_attempts.core.errors import AttemptLimitExceededError, InvalidStateError, NotFoundError
from quiz_attempts.core.models import FrozenLayout, QuizSession, SessionStatus, Submission
from quiz_attempts.core.services.attempt_repository import SessionRepository, SubmissionRepository

AT = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


def _submission(submission_id, session_id, learner_id="learner-1", completed=True, minutes=0):
    return Submission(
        id=submission_id,
        quiz_id="quiz-1",
        learner_id=learner_id,
        session_id=session_id,
        attempt_number=0,
        answers=[],
        score=0,
        max_score=3,
        percentage=0,
        started_at=AT,
        submitted_at=AT + timedelta(minutes=minutes),
        time_spent_minutes=minutes,
        is_completed=completed,
    )


def _session(session_id="s1"):
    return QuizSession(
        id=session_id,
        quiz_id="quiz-1",
        learner_id="learner-1",
        layout=FrozenLayout(question_order=["q1"], option_orders={"q1": []}, seed=1),
        max_score=1,
        time_limit_minutes=60,
        start_time=AT,
    )


def test_submissions_are_numbered_per_learner():
    repository = SubmissionRepository()

    first = repository.create(_submission("a", "s1"))
    second = repository.create(_submission("b", "s2", minutes=1))
    other = repository.create(_submission("c", "s3", learner_id="learner-2"))

    assert (first.attempt_number, second.attempt_number, other.attempt_number) == (1, 2, 1)
    assert [s.id for s in repository.list_for_learner("learner-1")] == ["b", "a"]


def test_second_submission_for_a_session_is_rejected():
    repository = SubmissionRepository()
    repository.create(_submission("a", "s1"))

    with pytest.raises(InvalidStateError):
        repository.create(_submission("b", "s1"))
    assert [s.id for s in repository.list_for_quiz("quiz-1")] == ["a"]


def test_create_enforces_completed_limit():
    repository = SubmissionRepository()
    repository.create(_submission("a", "s1"), max_completed=1)

    with pytest.raises(AttemptLimitExceededError):
        repository.create(_submission("b", "s2"), max_completed=1)
    assert repository.count_completed("quiz-1", "learner-1") == 1
    assert repository.find_by_session("s2") is None


def test_pending_submissions_do_not_fill_the_limit():
    repository = SubmissionRepository()
    repository.create(_submission("a", "s1", completed=False), max_completed=1)

    stored = repository.create(_submission("b", "s2"), max_completed=1)
    assert stored.attempt_number == 2


def test_mark_reviewed_if_pending_changes_once():
    repository = SubmissionRepository()
    repository.create(_submission("a", "s1", completed=False))

    reviewed, changed = repository.mark_reviewed_if_pending("a", AT)
    again, changed_again = repository.mark_reviewed_if_pending("a", AT + timedelta(hours=1))

    assert changed and not changed_again
    assert reviewed.is_completed
    assert again.reviewed_at == AT


def test_reads_return_copies():
    repository = SubmissionRepository()
    repository.create(_submission("a", "s1"))

    repository.get("a").score = 99
    assert repository.get("a").score == 0


def test_update_if_active_skips_completed_sessions():
    repository = SessionRepository()
    repository.create(_session())

    def complete(session):
        session.status = SessionStatus.COMPLETED
        return session

    assert repository.update_if_active("s1", complete).status is SessionStatus.COMPLETED
    assert repository.update_if_active("s1", complete) is None
    with pytest.raises(NotFoundError):
        repository.update_if_active("missing", complete)


def test_failed_transform_leaves_session_unchanged():
    repository = SessionRepository()
    repository.create(_session())

    def broken(session):
        session.status = SessionStatus.COMPLETED
        raise RuntimeError("scoring failed")

    with pytest.raises(RuntimeError):
        repository.update_if_active("s1", broken)
    assert repository.get("s1").is_active
