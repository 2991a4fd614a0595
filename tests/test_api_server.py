from fastapi.testclient import TestClient
import pytest

from quiz_attempts.server.api_server import create_api_app

LEARNER = {"X-User-Id": "learner-1"}
OTHER_LEARNER = {"X-User-Id": "learner-2"}
INSTRUCTOR = {"X-User-Id": "teacher-1", "X-User-Role": "instructor"}
OUTSIDER = {"X-User-Id": "stranger"}


@pytest.fixture
def client(loaded_manager):
    return TestClient(create_api_app(loaded_manager))


def _start(client, headers=LEARNER):
    response = client.post("/quizzes/quiz-1/attempts", headers=headers)
    assert response.status_code == 201
    return response.json()


def test_attempt_flow(client):
    started = _start(client)
    session_id = started["session_id"]
    assert started["max_score"] == 3
    assert started["time_remaining_seconds"] == 3600
    first = started["questions"][0]
    assert first["options"] == ["Venus", "Mars", "Jupiter"]
    assert "<strong>red planet</strong>" in first["prompt_html"]
    assert "correct_answer" not in first

    response = client.put(
        f"/sessions/{session_id}/answers",
        json={"questionId": "q2", "answer": "Paris"},
        headers=LEARNER,
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Answer updated successfully"

    response = client.post(
        f"/sessions/{session_id}/submit",
        json={"answers": [{"questionId": "q1", "answer": "Mars"}]},
        headers=LEARNER,
    )
    assert response.status_code == 200
    body = response.json()
    assert (body["score"], body["max_score"], body["percentage"]) == (3, 3, 100)
    assert body["is_completed"]

    again = client.post(f"/sessions/{session_id}/submit", json={"answers": []}, headers=LEARNER)
    assert again.status_code == 409
    assert again.json()["detail"]["kind"] == "invalid_state"


def test_resume_returns_same_view(client):
    started = _start(client)

    response = client.get(f"/sessions/{started['session_id']}", headers=LEARNER)

    assert response.status_code == 200
    assert response.json()["questions"] == started["questions"]


@pytest.mark.parametrize(
    "method, path, headers, status, kind",
    [
        ("post", "/quizzes/quiz-1/attempts", {}, 401, None),
        ("post", "/quizzes/quiz-1/attempts", {"X-User-Id": "learner-1", "X-User-Role": "wizard"}, 401, None),
        ("post", "/quizzes/quiz-1/attempts", OUTSIDER, 403, "forbidden"),
        ("post", "/quizzes/missing/attempts", LEARNER, 404, "not_found"),
        ("get", "/sessions/missing", LEARNER, 404, "not_found"),
        ("get", "/submissions/missing", LEARNER, 404, "not_found"),
        ("get", "/quizzes/quiz-1/submissions", LEARNER, 403, "forbidden"),
    ],
)
def test_error_statuses(client, method, path, headers, status, kind):
    response = getattr(client, method)(path, headers=headers)

    assert response.status_code == status
    if kind is not None:
        assert response.json()["detail"]["kind"] == kind


def test_blank_question_id_is_validation_error(client):
    started = _start(client)

    response = client.put(
        f"/sessions/{started['session_id']}/answers",
        json={"questionId": "   ", "answer": "Mars"},
        headers=LEARNER,
    )

    assert response.status_code == 422
    assert response.json()["detail"]["kind"] == "validation_error"


def test_attempt_limit_is_forbidden(client):
    started = _start(client)
    client.post(f"/sessions/{started['session_id']}/submit", json={"answers": []}, headers=LEARNER)

    response = client.post("/quizzes/quiz-1/attempts", headers=LEARNER)

    assert response.status_code == 403
    assert response.json()["detail"]["kind"] == "attempt_limit_exceeded"


def test_results_hide_answers_from_learner(client):
    started = _start(client)
    session_id = started["session_id"]
    client.post(
        f"/sessions/{session_id}/submit",
        json={"answers": [{"questionId": "q1", "answer": "Venus"}]},
        headers=LEARNER,
    )

    own = client.get(f"/sessions/{session_id}/results", headers=LEARNER).json()
    assert own["session"]["percentage"] == 0
    assert not own["passed"]
    assert own["quiz"]["question_count"] == 2
    assert all(q["correct_answer"] is None for q in own["quiz"]["questions"])
    assert client.get("/quizzes/quiz-1/results", headers=LEARNER).json()["session"]["id"] == session_id

    graded = client.get(f"/sessions/{session_id}/results", headers=INSTRUCTOR).json()
    assert [q["correct_answer"] for q in graded["quiz"]["questions"]] == ["Mars", "Paris"]

    assert client.get(f"/sessions/{session_id}/results", headers=OTHER_LEARNER).status_code == 403


def test_sessions_and_submissions_listing(client):
    started = _start(client)
    submitted = client.post(
        f"/sessions/{started['session_id']}/submit", json={"answers": []}, headers=LEARNER
    ).json()

    sessions = client.get("/sessions/mine", headers=LEARNER).json()["sessions"]
    assert [s["id"] for s in sessions] == [started["session_id"]]
    assert "layout" not in sessions[0]

    mine = client.get("/submissions/mine", headers=LEARNER).json()["submissions"]
    assert [s["id"] for s in mine] == [submitted["submission_id"]]

    listed = client.get("/quizzes/quiz-1/submissions", headers=INSTRUCTOR).json()
    assert listed["quiz_id"] == "quiz-1"
    assert [s["attempt_number"] for s in listed["submissions"]] == [1]


def test_review_endpoints(manager, quiz_factory):
    manager.load_quiz(quiz_factory(require_manual_review=True))
    client = TestClient(create_api_app(manager))
    started = _start(client)
    submitted = client.post(
        f"/sessions/{started['session_id']}/submit", json={"answers": []}, headers=LEARNER
    ).json()
    assert not submitted["is_completed"]

    assert client.put(f"/submissions/{submitted['submission_id']}/review", headers=LEARNER).status_code == 403

    response = client.put(f"/sessions/{started['session_id']}/review", headers=INSTRUCTOR)
    assert response.status_code == 200
    assert response.json()["submission"]["is_completed"]

    response = client.put(f"/submissions/{submitted['submission_id']}/review", headers=INSTRUCTOR)
    assert response.status_code == 200
    assert response.json()["message"] == "Submission marked as reviewed"


def test_reopen_attempt(client):
    started = _start(client)
    submitted = client.post(
        f"/sessions/{started['session_id']}/submit", json={"answers": []}, headers=LEARNER
    ).json()
    submission_path = f"/submissions/{submitted['submission_id']}"

    assert client.delete(submission_path, headers=LEARNER).status_code == 403
    response = client.delete(submission_path, headers=INSTRUCTOR)
    assert response.status_code == 200
    assert response.json()["message"] == "Submission cleared successfully"

    assert client.get(submission_path, headers=LEARNER).status_code == 404
    _start(client)


def test_batch_clear_submissions(client):
    started = _start(client)
    submitted = client.post(
        f"/sessions/{started['session_id']}/submit", json={"answers": []}, headers=LEARNER
    ).json()

    empty = client.request("DELETE", "/submissions", json={"submissionIds": []}, headers=INSTRUCTOR)
    assert empty.status_code == 422

    response = client.request(
        "DELETE", "/submissions", json={"submissionIds": [submitted["submission_id"]]}, headers=INSTRUCTOR
    )
    assert response.status_code == 200
    assert response.json()["cleared_count"] == 1
    assert client.get("/submissions/mine", headers=LEARNER).json()["submissions"] == []
