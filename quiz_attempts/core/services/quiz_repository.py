"""Service for storing the quiz documents attempts are taken against."""

from __future__ import annotations

import copy
from datetime import datetime
from threading import Lock

from quiz_attempts.core.errors import NotFoundError
from quiz_attempts.core.models import Quiz


class QuizRepository:
    """Holds quiz documents keyed by id and the per-learner assignment records."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._quizzes: dict[str, Quiz] = {}

    def load_quiz(self, quiz: Quiz) -> None:
        """Store (or replace) a quiz document after validating it."""
        self._validate_quiz(quiz)
        with self._lock:
            self._quizzes[quiz.id] = copy.deepcopy(quiz)

    def get(self, quiz_id: str) -> Quiz:
        """Return a copy of the quiz, raising NotFoundError when absent."""
        with self._lock:
            quiz = self._quizzes.get(quiz_id)
            if quiz is None:
                raise NotFoundError(f"Quiz {quiz_id} not found")
            return copy.deepcopy(quiz)

    def mark_assignment_submitted(self, quiz_id: str, learner_id: str, submitted_at: datetime) -> bool:
        """Stamp the learner's assignment; returns False if the learner is not assigned."""
        with self._lock:
            assignment = self._require(quiz_id).assignment_for(learner_id)
            if assignment is None:
                return False
            assignment.submitted_at = submitted_at
            return True

    def clear_assignment_submission(self, quiz_id: str, learner_id: str) -> bool:
        with self._lock:
            assignment = self._require(quiz_id).assignment_for(learner_id)
            if assignment is None:
                return False
            assignment.submitted_at = None
            return True

    def _require(self, quiz_id: str) -> Quiz:
        quiz = self._quizzes.get(quiz_id)
        if quiz is None:
            raise NotFoundError(f"Quiz {quiz_id} not found")
        return quiz

    @staticmethod
    def _validate_quiz(quiz: Quiz) -> None:
        if not quiz.id:
            raise ValueError("Quiz must have an id.")
        if not quiz.instructor_id:
            raise ValueError("Quiz must have an owning instructor.")
        if not quiz.questions:
            raise ValueError("Quiz must contain at least one question.")
        seen: set[str] = set()
        for question in quiz.questions:
            if not question.id:
                raise ValueError("Every question must have an id.")
            if question.id in seen:
                raise ValueError(f"Duplicate question id {question.id!r}.")
            seen.add(question.id)
            if question.points < 0:
                raise ValueError("Question points must not be negative.")
