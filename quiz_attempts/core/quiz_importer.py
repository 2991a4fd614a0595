"""Utilities for importing quiz documents from JSON files.

Documents use the camelCase layout of the quiz store that authors quizzes:

    {
      "_id": "quiz-1",
      "title": "Fractions",
      "instructor": "teacher-7",
      "isPublished": true,
      "settings": {"timeLimit": 30, "maxAttempts": 2, "randomizeOptions": true},
      "students": [{"student": "learner-3", "dueDate": "2026-11-01T12:00:00+00:00"}],
      "questions": [
        {"_id": "q1", "type": "multiple-choice", "question": "1/2 + 1/4 = ?",
         "options": [{"text": "3/4", "isCorrect": true}, {"text": "2/6"}],
         "correctAnswer": "3/4", "points": 2}
      ]
    }

Architecture note:
    Authoring and storage of quizzes belong to another service; this module
    only converts its documents into the core models so the attempt engine
    can run against exported quizzes or fixtures.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime, timezone
import json
from pathlib import Path
from typing import Any
from uuid import uuid4

from quiz_attempts.constants.quiz_constants import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_PASSING_SCORE,
    DEFAULT_QUESTION_POINTS,
    DEFAULT_TIME_LIMIT_MINUTES,
)
from quiz_attempts.core.models import (
    Assignment,
    Question,
    QuestionOption,
    QuestionType,
    Quiz,
    QuizSettings,
)


class QuizImportError(Exception):
    """Raised when a quiz document cannot be parsed."""


def load_quiz_from_file(file_path: Path) -> Quiz:
    text = file_path.read_text(encoding="utf-8")
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise QuizImportError(f"{file_path.name} is not valid JSON: {exc.msg}") from exc
    return quiz_from_document(document)


def quiz_from_document(document: Any) -> Quiz:
    if not isinstance(document, Mapping):
        raise QuizImportError("Quiz document must be a JSON object.")

    quiz_id = _document_id(document)
    if not quiz_id:
        raise QuizImportError("Quiz document is missing its id (_id).")
    title = str(document.get("title") or "").strip()
    if not title:
        raise QuizImportError("Quiz title is required.")
    instructor = document.get("instructor")
    if isinstance(instructor, Mapping):
        instructor = _document_id(instructor)
    if not instructor:
        raise QuizImportError("Quiz document must name its instructor.")

    raw_questions = document.get("questions") or []
    if not isinstance(raw_questions, list) or not raw_questions:
        raise QuizImportError("At least one question is required.")

    return Quiz(
        id=quiz_id,
        title=title,
        instructor_id=str(instructor),
        questions=[_parse_question(raw, index) for index, raw in enumerate(raw_questions)],
        settings=_parse_settings(document.get("settings") or {}),
        assignments=[_parse_assignment(raw) for raw in document.get("students") or []],
        is_published=bool(document.get("isPublished", False)),
        description=document.get("description"),
        instructions=document.get("instructions"),
    )


def _parse_question(raw: Any, index: int) -> Question:
    if not isinstance(raw, Mapping):
        raise QuizImportError(f"Question {index + 1} must be an object.")
    try:
        question_type = QuestionType(raw.get("type"))
    except ValueError as exc:
        raise QuizImportError(f"Question {index + 1} has unknown type {raw.get('type')!r}.") from exc

    prompt = str(raw.get("question") or "").strip()
    if not prompt:
        raise QuizImportError(f"Question {index + 1} text cannot be empty.")

    points = raw.get("points") or DEFAULT_QUESTION_POINTS
    if not isinstance(points, int) or isinstance(points, bool) or points < 0:
        raise QuizImportError(f"Question {index + 1} points must be a non-negative integer.")

    return Question(
        id=_document_id(raw) or uuid4().hex,
        type=question_type,
        prompt=prompt,
        options=[_parse_option(option) for option in raw.get("options") or []],
        correct_answer=raw.get("correctAnswer"),
        correct_answers=list(raw.get("correctAnswers") or []),
        points=points,
        order=int(raw.get("order") or 0),
        description=raw.get("description"),
        media={key: value for key, value in (raw.get("media") or {}).items() if value},
        hints=[str(hint) for hint in raw.get("hints") or []],
        explanation=raw.get("explanation"),
    )


def _parse_option(raw: Any) -> QuestionOption:
    if isinstance(raw, str):
        return QuestionOption(text=raw)
    if not isinstance(raw, Mapping):
        raise QuizImportError("Options must be strings or objects with a text field.")
    return QuestionOption(
        text=str(raw.get("text") or ""),
        is_correct=bool(raw.get("isCorrect", False)),
        explanation=raw.get("explanation") or None,
    )


def _parse_settings(raw: Mapping[str, Any]) -> QuizSettings:
    return QuizSettings(
        time_limit_minutes=int(raw.get("timeLimit") or DEFAULT_TIME_LIMIT_MINUTES),
        max_attempts=int(raw.get("maxAttempts") or DEFAULT_MAX_ATTEMPTS),
        allow_retakes=bool(raw.get("allowRetakes", raw.get("allowMultipleAttempts", False))),
        max_retake_attempts=int(raw.get("maxRetakeAttempts") or 0),
        randomize_questions=bool(raw.get("randomizeQuestions", False)),
        randomize_options=bool(raw.get("randomizeOptions", False)),
        passing_score=int(raw.get("passingScore", DEFAULT_PASSING_SCORE)),
        require_manual_review=bool(raw.get("requireManualReview", False)),
    )


def _parse_assignment(raw: Any) -> Assignment:
    if isinstance(raw, str):
        return Assignment(learner_id=raw, assigned_at=datetime.now(timezone.utc))
    if not isinstance(raw, Mapping) or not raw.get("student"):
        raise QuizImportError("Each assignment must name a student.")
    student = raw["student"]
    if isinstance(student, Mapping):
        student = _document_id(student)
    return Assignment(
        learner_id=str(student),
        assigned_at=_parse_datetime(raw.get("assignedAt")) or datetime.now(timezone.utc),
        submitted_at=_parse_datetime(raw.get("submittedAt")),
        due_date=_parse_datetime(raw.get("dueDate")),
    )


def _parse_datetime(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as exc:
        raise QuizImportError(f"Invalid date {value!r}; expected ISO 8601.") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _document_id(document: Mapping[str, Any]) -> str | None:
    value = document.get("_id", document.get("id"))
    return str(value) if value not in (None, "") else None
