"""Domain models for quizzes, attempt sessions and submissions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from quiz_attempts.constants.quiz_constants import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_PASSING_SCORE,
    DEFAULT_QUESTION_POINTS,
    DEFAULT_TIME_LIMIT_MINUTES,
)


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    SHORT_ANSWER = "short-answer"
    SELECT = "select"
    FILL_IN = "fill-in"
    FILL_IN_THE_BLANK = "fill-in-the-blank"
    ESSAY = "essay"
    TRUE_FALSE = "true-false"
    MATCHING = "matching"
    ORDERING = "ordering"
    SELECT_ALL = "select-all"


class Role(str, Enum):
    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass(slots=True)
class Principal:
    """Authenticated caller supplied by the surrounding system."""

    id: str
    role: Role = Role.STUDENT


@dataclass(slots=True)
class QuestionOption:
    """Selectable option; `is_correct` is None once stripped for learners."""

    text: str
    is_correct: bool | None = False
    explanation: str | None = None


@dataclass(slots=True)
class Question:
    """Authoritative question including its correct answer data."""

    id: str
    type: QuestionType
    prompt: str
    options: list[QuestionOption] = field(default_factory=list)
    correct_answer: Any = None
    correct_answers: list[Any] = field(default_factory=list)
    points: int = DEFAULT_QUESTION_POINTS
    order: int = 0
    description: str | None = None
    media: dict[str, str] = field(default_factory=dict)
    hints: list[str] = field(default_factory=list)
    explanation: str | None = None


@dataclass(slots=True)
class QuizSettings:
    time_limit_minutes: int = DEFAULT_TIME_LIMIT_MINUTES
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    allow_retakes: bool = False
    max_retake_attempts: int = 0
    randomize_questions: bool = False
    randomize_options: bool = False
    passing_score: int = DEFAULT_PASSING_SCORE
    require_manual_review: bool = False


@dataclass(slots=True)
class Assignment:
    """A learner's assignment to a quiz."""

    learner_id: str
    assigned_at: datetime
    submitted_at: datetime | None = None
    due_date: datetime | None = None


@dataclass(slots=True)
class Quiz:
    """Quiz document owned by an instructor; read-mostly during attempts."""

    id: str
    title: str
    instructor_id: str
    questions: list[Question] = field(default_factory=list)
    settings: QuizSettings = field(default_factory=QuizSettings)
    assignments: list[Assignment] = field(default_factory=list)
    is_published: bool = False
    description: str | None = None
    instructions: str | None = None

    @property
    def total_points(self) -> int:
        return sum(question.points for question in self.questions)

    def is_instructor(self, principal_id: str) -> bool:
        return self.instructor_id == principal_id

    def assignment_for(self, learner_id: str) -> Assignment | None:
        return next((a for a in self.assignments if a.learner_id == learner_id), None)


@dataclass(slots=True)
class Answer:
    """Submitted value for one question; correctness is filled in by scoring."""

    question_id: str
    value: Any
    answered_at: datetime
    is_correct: bool | None = None
    points_earned: int | None = None


@dataclass(slots=True)
class AnswerDraft:
    """Answer as sent by a learner, before it is stamped and stored."""

    question_id: str
    value: Any


@dataclass(slots=True)
class FrozenLayout:
    """Question and option ordering fixed when a session is created."""

    question_order: list[str]
    option_orders: dict[str, list[int]]
    seed: int | None = None


@dataclass(slots=True)
class QuizSession:
    """One learner's attempt at a quiz."""

    id: str
    quiz_id: str
    learner_id: str
    layout: FrozenLayout
    max_score: int
    time_limit_minutes: int
    start_time: datetime
    status: SessionStatus = SessionStatus.ACTIVE
    end_time: datetime | None = None
    time_spent_minutes: int = 0
    answers: dict[str, Answer] = field(default_factory=dict)
    score: int = 0
    reviewed_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status is SessionStatus.ACTIVE


@dataclass(slots=True)
class Submission:
    """Durable record of a completed attempt."""

    id: str
    quiz_id: str
    learner_id: str
    session_id: str
    attempt_number: int
    answers: list[Answer]
    score: int
    max_score: int
    percentage: int
    started_at: datetime
    submitted_at: datetime
    time_spent_minutes: int
    is_completed: bool = False
    reviewed_at: datetime | None = None


@dataclass(slots=True)
class QuestionView:
    """Answer-free question content shown to a learner during an attempt."""

    id: str
    type: QuestionType
    prompt: str
    points: int
    order: int
    options: list[str]
    description: str | None = None
    media: dict[str, str] = field(default_factory=dict)
    hints: list[str] = field(default_factory=list)


@dataclass(slots=True)
class StartedAttempt:
    session_id: str
    quiz_id: str
    questions: list[QuestionView]
    time_remaining_seconds: int
    started_at: datetime
    max_score: int


@dataclass(slots=True)
class AttemptResult:
    """Outcome returned to the learner after submitting."""

    session_id: str
    submission_id: str
    score: int
    max_score: int
    percentage: int
    is_completed: bool


@dataclass(slots=True)
class AttemptResults:
    """Completed session summary plus the quiz content it was taken against."""

    session: QuizSession
    percentage: int
    passed: bool
    quiz_id: str
    quiz_title: str
    total_points: int
    settings: QuizSettings
    questions: list[Question]


@dataclass(slots=True)
class SubmissionCompleted:
    """Event emitted once a submission counts as completed."""

    submission_id: str
    quiz_id: str
    learner_id: str
    attempt_number: int
    score: int
    max_score: int
    percentage: int
    completed_at: datetime
