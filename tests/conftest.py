from datetime import datetime, timedelta, timezone
import random

import pytest

from quiz_attempts.core.attempt_manager import AttemptManager
from quiz_attempts.core.models import (
    Assignment,
    Principal,
    Question,
    QuestionOption,
    QuestionType,
    Quiz,
    QuizSettings,
    Role,
)

START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **delta):
        self.now += timedelta(**delta)


def build_questions():
    return [
        Question(
            id="q1",
            type=QuestionType.MULTIPLE_CHOICE,
            prompt="Which planet is known as the **red planet**?",
            options=[
                QuestionOption(text="Venus"),
                QuestionOption(text="Mars", is_correct=True),
                QuestionOption(text="Jupiter"),
            ],
            correct_answer="Mars",
            points=1,
        ),
        Question(
            id="q2",
            type=QuestionType.SHORT_ANSWER,
            prompt="Capital of France?",
            correct_answer="Paris",
            points=2,
        ),
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def instructor():
    return Principal(id="teacher-1", role=Role.INSTRUCTOR)


@pytest.fixture
def learner():
    return Principal(id="learner-1")


@pytest.fixture
def other_learner():
    return Principal(id="learner-2")


@pytest.fixture
def outsider():
    return Principal(id="stranger")


@pytest.fixture
def quiz_factory(clock):
    def factory(quiz_id="quiz-1", questions=None, published=True, **settings):
        return Quiz(
            id=quiz_id,
            title="Astronomy basics",
            instructor_id="teacher-1",
            questions=questions if questions is not None else build_questions(),
            settings=QuizSettings(**settings),
            assignments=[
                Assignment(learner_id="learner-1", assigned_at=clock()),
                Assignment(learner_id="learner-2", assigned_at=clock()),
            ],
            is_published=published,
        )

    return factory


@pytest.fixture
def manager(clock):
    return AttemptManager(clock=clock, seed_source=random.Random(1234))


@pytest.fixture
def loaded_manager(manager, quiz_factory):
    manager.load_quiz(quiz_factory())
    return manager


@pytest.fixture
def questions():
    return build_questions()
