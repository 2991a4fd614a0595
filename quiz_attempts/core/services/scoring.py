"""Service computing correctness, points and percentage for an attempt."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from quiz_attempts.core.clock import round_half_up
from quiz_attempts.core.models import Answer, Question, QuestionType

_MULTI_VALUE_TYPES = frozenset({QuestionType.SELECT_ALL})


@dataclass(slots=True)
class ScoreResult:
    """Scored copies of the answers that referenced known questions."""

    answers: list[Answer] = field(default_factory=list)
    total_score: int = 0


def compute_percentage(score: float, max_score: float) -> int:
    """Percentage of ``max_score`` achieved, rounded half-up and clamped to 0..100."""
    if max_score <= 0:
        return 0
    return max(0, min(100, round_half_up(score / max_score * 100)))


class ScoringEngine:
    """Scores answers against the authoritative (unstripped) questions."""

    def score(self, questions: Iterable[Question], answers: Iterable[Answer]) -> ScoreResult:
        by_id = {question.id: question for question in questions}
        result = ScoreResult()
        for answer in answers:
            question = by_id.get(answer.question_id)
            if question is None:
                continue
            correct = self.is_correct(question, answer.value)
            points = question.points if correct else 0
            result.answers.append(replace(answer, is_correct=correct, points_earned=points))
            result.total_score += points
        return result

    @staticmethod
    def is_correct(question: Question, value: Any) -> bool:
        if question.type in _MULTI_VALUE_TYPES:
            expected = question.correct_answers or question.correct_answer
            if isinstance(expected, list) and isinstance(value, list):
                return _same_multiset(value, expected)
        if question.correct_answer is None:
            return False
        return values_equal(value, question.correct_answer)


def values_equal(left: Any, right: Any) -> bool:
    """Equality that also requires matching types, so 1 != 1.0 != True."""
    if type(left) is not type(right):
        return False
    if isinstance(left, list):
        return len(left) == len(right) and all(values_equal(a, b) for a, b in zip(left, right))
    if isinstance(left, dict):
        return left.keys() == right.keys() and all(values_equal(left[k], right[k]) for k in left)
    return left == right


def _same_multiset(left: list[Any], right: list[Any]) -> bool:
    if len(left) != len(right):
        return False
    remaining = list(right)
    for item in left:
        match = next((i for i, candidate in enumerate(remaining) if values_equal(item, candidate)), None)
        if match is None:
            return False
        remaining.pop(match)
    return True
