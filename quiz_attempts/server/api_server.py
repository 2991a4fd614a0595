"""FastAPI server exposing the attempt operations over HTTP."""

from __future__ import annotations

from typing import Any

from fastapi import Depends, FastAPI, Header, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
import uvicorn

from quiz_attempts.constants.network_constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    USER_ID_HEADER,
    USER_ROLE_HEADER,
)
from quiz_attempts.core.attempt_manager import AttemptManager
from quiz_attempts.core.errors import AttemptError
from quiz_attempts.core.markdown_math_renderer import renderer
from quiz_attempts.core.models import (
    AnswerDraft,
    AttemptResults,
    Principal,
    QuestionView,
    QuizSession,
    Role,
    StartedAttempt,
    Submission,
)

_STATUS_BY_KIND: dict[str, int] = {
    "not_found": 404,
    "forbidden": 403,
    "attempt_limit_exceeded": 403,
    "invalid_state": 409,
    "validation_error": 422,
}


class AnswerPayload(BaseModel):
    """Payload schema for a single answer edit."""

    model_config = ConfigDict(populate_by_name=True)

    question_id: str = Field(alias="questionId")
    answer: Any = None


class SubmitPayload(BaseModel):
    """Payload schema for submitting an attempt with its final answers."""

    answers: list[AnswerPayload] = Field(default_factory=list)


class ClearSubmissionsPayload(BaseModel):
    """Payload schema for clearing several submissions at once."""

    model_config = ConfigDict(populate_by_name=True)

    submission_ids: list[str] = Field(default_factory=list, alias="submissionIds")


def get_principal(
    x_user_id: str | None = Header(default=None, alias=USER_ID_HEADER),
    x_user_role: str | None = Header(default=None, alias=USER_ROLE_HEADER),
) -> Principal:
    """Read the caller identity forwarded by the authentication gateway."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing authenticated user")
    try:
        role = Role(x_user_role) if x_user_role else Role.STUDENT
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=f"Unknown role {x_user_role!r}") from exc
    return Principal(id=x_user_id, role=role)


def _get_attempt_manager_dependency(attempt_manager: AttemptManager):
    def dependency() -> AttemptManager:
        return attempt_manager

    return dependency


def _question_payload(view: QuestionView) -> dict[str, object]:
    payload = jsonable_encoder(view)
    payload["prompt_html"] = renderer.render_fragment(view.prompt)
    payload["description_html"] = renderer.render_fragment(view.description)
    payload["options_html"] = [renderer.render_inline(option) for option in view.options]
    return payload


def _started_payload(started: StartedAttempt) -> dict[str, object]:
    return {
        "session_id": started.session_id,
        "quiz_id": started.quiz_id,
        "started_at": started.started_at.isoformat(),
        "time_remaining_seconds": started.time_remaining_seconds,
        "max_score": started.max_score,
        "questions": [_question_payload(view) for view in started.questions],
    }


def _session_summary(session: QuizSession) -> dict[str, object]:
    return jsonable_encoder(
        {
            "id": session.id,
            "quiz_id": session.quiz_id,
            "learner_id": session.learner_id,
            "status": session.status,
            "score": session.score,
            "max_score": session.max_score,
            "start_time": session.start_time,
            "end_time": session.end_time,
            "time_spent_minutes": session.time_spent_minutes,
            "reviewed_at": session.reviewed_at,
            "answers": list(session.answers.values()),
        }
    )


def _results_payload(results: AttemptResults) -> dict[str, object]:
    session = _session_summary(results.session)
    session["percentage"] = results.percentage
    return {
        "session": session,
        "passed": results.passed,
        "quiz": jsonable_encoder(
            {
                "id": results.quiz_id,
                "title": results.quiz_title,
                "total_points": results.total_points,
                "question_count": len(results.questions),
                "settings": results.settings,
                "questions": results.questions,
            }
        ),
    }


def _submission_payload(submission: Submission) -> dict[str, object]:
    return jsonable_encoder(submission)


def create_api_app(attempt_manager: AttemptManager) -> FastAPI:
    """Create a FastAPI application wired to the provided attempt manager."""
    app = FastAPI(title="Quiz Attempts API", version="0.1.0")
    manager_dep = _get_attempt_manager_dependency(attempt_manager)

    @app.exception_handler(AttemptError)
    async def handle_attempt_error(request: Request, exc: AttemptError) -> JSONResponse:
        return JSONResponse(
            status_code=_STATUS_BY_KIND.get(exc.kind, 400),
            content={"detail": {"kind": exc.kind, "message": exc.message}},
        )

    @app.post("/quizzes/{quiz_id}/attempts", status_code=201)
    def start_attempt(
        quiz_id: str,
        principal: Principal = Depends(get_principal),
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return _started_payload(manager.start_attempt(quiz_id, principal))

    @app.get("/quizzes/{quiz_id}/results")
    def get_latest_results(
        quiz_id: str,
        principal: Principal = Depends(get_principal),
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return _results_payload(manager.get_results(principal, quiz_id=quiz_id))

    @app.get("/quizzes/{quiz_id}/submissions")
    def get_quiz_submissions(
        quiz_id: str,
        principal: Principal = Depends(get_principal),
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        submissions = manager.get_submissions_for_quiz(quiz_id, principal)
        return {
            "quiz_id": quiz_id,
            "submissions": [_submission_payload(s) for s in submissions],
        }

    @app.get("/sessions/mine")
    def get_my_sessions(
        principal: Principal = Depends(get_principal),
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return {"sessions": [_session_summary(s) for s in manager.list_my_sessions(principal)]}

    @app.get("/sessions/{session_id}")
    def resume_attempt(
        session_id: str,
        principal: Principal = Depends(get_principal),
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return _started_payload(manager.resume_attempt(session_id, principal))

    @app.put("/sessions/{session_id}/answers")
    def upsert_answer(
        session_id: str,
        payload: AnswerPayload,
        principal: Principal = Depends(get_principal),
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        answer = manager.upsert_answer(session_id, principal, payload.question_id, payload.answer)
        return {
            "message": "Answer updated successfully",
            "question_id": answer.question_id,
            "answered_at": answer.answered_at.isoformat(),
        }

    @app.post("/sessions/{session_id}/submit")
    def submit_attempt(
        session_id: str,
        payload: SubmitPayload,
        principal: Principal = Depends(get_principal),
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        drafts = [AnswerDraft(question_id=a.question_id, value=a.answer) for a in payload.answers]
        return jsonable_encoder(manager.submit_attempt(session_id, principal, drafts))

    @app.put("/sessions/{session_id}/review")
    def review_session(
        session_id: str,
        principal: Principal = Depends(get_principal),
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        submission = manager.mark_reviewed(principal, session_id=session_id)
        return {"message": "Session marked as reviewed", "submission": _submission_payload(submission)}

    @app.get("/sessions/{session_id}/results")
    def get_session_results(
        session_id: str,
        principal: Principal = Depends(get_principal),
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return _results_payload(manager.get_results(principal, session_id=session_id))

    @app.get("/submissions/mine")
    def get_my_submissions(
        principal: Principal = Depends(get_principal),
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return {"submissions": [_submission_payload(s) for s in manager.list_my_submissions(principal)]}

    @app.get("/submissions/{submission_id}")
    def get_submission(
        submission_id: str,
        principal: Principal = Depends(get_principal),
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        return _submission_payload(manager.get_submission(submission_id, principal))

    @app.put("/submissions/{submission_id}/review")
    def review_submission(
        submission_id: str,
        principal: Principal = Depends(get_principal),
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        submission = manager.mark_reviewed(principal, submission_id=submission_id)
        return {"message": "Submission marked as reviewed", "submission": _submission_payload(submission)}

    @app.delete("/submissions/{submission_id}")
    def reopen_attempt(
        submission_id: str,
        principal: Principal = Depends(get_principal),
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        manager.reopen_attempt(submission_id, principal)
        return {"message": "Submission cleared successfully"}

    @app.delete("/submissions")
    def reopen_attempts(
        payload: ClearSubmissionsPayload,
        principal: Principal = Depends(get_principal),
        manager: AttemptManager = Depends(manager_dep),
    ) -> dict[str, object]:
        cleared = manager.reopen_attempts(payload.submission_ids, principal)
        return {
            "message": f"{len(cleared)} submission(s) cleared successfully",
            "cleared_count": len(cleared),
        }

    return app


def serve(
    attempt_manager: AttemptManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    """Run the API server in the foreground until interrupted."""
    app = create_api_app(attempt_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)
    server.run()
