import pytest

from quiz_attempts.core.errors import AttemptLimitExceededError
from quiz_attempts.core.models import AnswerDraft, QuizSettings
from quiz_attempts.core.services.attempt_repository import SubmissionRepository
from quiz_attempts.core.services.attempt_tracker import AttemptTracker


def _take_attempt(manager, learner, quiz_id="quiz-1"):
    started = manager.start_attempt(quiz_id, learner)
    return manager.submit_attempt(started.session_id, learner, [AnswerDraft("q1", "Mars")])


@pytest.mark.parametrize(
    "settings, expected",
    [
        (QuizSettings(), 1),
        (QuizSettings(max_attempts=3), 3),
        (QuizSettings(max_attempts=0), 1),
        (QuizSettings(allow_retakes=True, max_retake_attempts=4), 4),
        (QuizSettings(allow_retakes=True, max_retake_attempts=0), None),
    ],
)
def test_effective_max_attempts(settings, expected):
    assert AttemptTracker.effective_max_attempts(settings) == expected


def test_can_attempt_compares_against_limit(quiz_factory):
    tracker = AttemptTracker(SubmissionRepository())
    quiz = quiz_factory(max_attempts=2)

    assert tracker.can_attempt(quiz, 0)
    assert tracker.can_attempt(quiz, 1)
    assert not tracker.can_attempt(quiz, 2)


def test_third_start_fails_when_two_attempts_allowed(manager, quiz_factory, learner):
    manager.load_quiz(quiz_factory(max_attempts=2))
    _take_attempt(manager, learner)
    _take_attempt(manager, learner)

    assert manager.attempts_used("quiz-1", learner.id) == 2
    with pytest.raises(AttemptLimitExceededError):
        manager.start_attempt("quiz-1", learner)


def test_retakes_without_maximum_are_unlimited(manager, quiz_factory, learner):
    manager.load_quiz(quiz_factory(allow_retakes=True, max_retake_attempts=0))
    for _ in range(5):
        _take_attempt(manager, learner)

    assert manager.attempts_used("quiz-1", learner.id) == 5
    assert manager.start_attempt("quiz-1", learner).session_id


def test_limit_is_per_learner(manager, quiz_factory, learner, other_learner):
    manager.load_quiz(quiz_factory())
    _take_attempt(manager, learner)

    with pytest.raises(AttemptLimitExceededError):
        manager.start_attempt("quiz-1", learner)
    assert manager.start_attempt("quiz-1", other_learner).session_id


def test_submit_rejected_once_limit_reached_by_parallel_session(manager, quiz_factory, learner):
    manager.load_quiz(quiz_factory())
    first = manager.start_attempt("quiz-1", learner)
    second = manager.start_attempt("quiz-1", learner)
    manager.submit_attempt(first.session_id, learner)

    with pytest.raises(AttemptLimitExceededError):
        manager.submit_attempt(second.session_id, learner)
    assert len(manager.list_my_submissions(learner)) == 1


def test_pending_review_submissions_do_not_use_attempts(manager, quiz_factory, learner):
    manager.load_quiz(quiz_factory(require_manual_review=True))
    _take_attempt(manager, learner)

    assert manager.attempts_used("quiz-1", learner.id) == 0
