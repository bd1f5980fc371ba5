from datetime import datetime, timedelta, timezone

import certprep.models.db as tables
from certprep.services import exam_service


def _correct_ids(db, question_id: str) -> list[str]:
    question = db.get(tables.Question, question_id)
    return [answer.id for answer in question.answers if answer.is_correct]


def _wrong_id(db, question_id: str) -> str:
    question = db.get(tables.Question, question_id)
    return next(answer.id for answer in question.answers if not answer.is_correct)


def _start(client, headers, test_id="test-1") -> dict:
    response = client.post("/api/test/session", headers=headers, json={"testId": test_id})
    assert response.status_code == 200, response.text
    return response.json()


def test_start_then_resume(client, user_headers, seeded) -> None:
    first = _start(client, user_headers)
    assert first["resumed"] is False
    session = first["data"]
    assert session["status"] == "in_progress"
    assert session["isAdminPreview"] is False
    assert 0 < session["remainingTime"] <= 300

    second = _start(client, user_headers)
    assert second["resumed"] is True
    assert second["data"]["id"] == session["id"]

    active = client.get("/api/test/session", headers=user_headers, params={"testId": seeded}).json()
    assert active["data"]["id"] == session["id"]
    assert active["isAdminPreview"] is False


def test_take_payload_hides_answer_keys(client, user_headers, seeded) -> None:
    response = client.get(f"/api/test/{seeded}", headers=user_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["access"]["canAccess"] is True
    questions = body["data"]["questions"]
    assert [q["id"] for q in questions] == ["q1", "q2", "q3"]
    for question in questions:
        assert "explanation" not in question
        assert all("isCorrect" not in answer for answer in question["answers"])
        assert all("rightText" not in item for item in question["matchItems"])
    assert len(questions[2]["rightOptions"]) == 4


def test_answer_finish_and_history(client, db, user_headers, seeded) -> None:
    session_id = _start(client, user_headers)["data"]["id"]

    response = client.post(
        f"/api/test/session/{session_id}/answer",
        headers=user_headers,
        json={
            "questionId": "q2",
            "response": {"type": "single_choice", "selected": _correct_ids(db, "q2")},
            "timeSpent": 12,
        },
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["answeredCount"] == 1
    assert "isCorrect" not in data["answers"][0]

    response = client.post(f"/api/test/session/{session_id}/flag", headers=user_headers, json={"questionId": "q3"})
    assert response.json()["data"]["flagged"] == ["q3"]

    response = client.post(f"/api/test/session/{session_id}/finish", headers=user_headers)
    assert response.status_code == 409
    body = response.json()
    assert body["unansweredCount"] == 2
    assert body["unanswered"] == ["q1", "q3"]

    response = client.post(
        f"/api/test/session/{session_id}/finish", headers=user_headers, json={"confirm": True}
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "completed"
    assert data["score"] == 33
    assert data["correctAnswers"] == 1
    assert data["summary"]["skippedCount"] == 2
    assert {a["questionId"]: a["isCorrect"] for a in data["answers"]} == {
        "q1": None,
        "q2": True,
        "q3": None,
    }

    assert client.get("/api/test/session", headers=user_headers).json()["data"] is None

    response = client.post(
        f"/api/test/session/{session_id}/answer",
        headers=user_headers,
        json={"questionId": "q1", "response": {"type": "multiple-choice", "selected": []}},
    )
    assert response.status_code == 409

    history = client.get(f"/api/test/{seeded}/history", headers=user_headers).json()["data"]
    assert history["summary"]["totalAttempts"] == 1
    assert history["summary"]["bestScore"] == 33
    assert history["attempts"][0]["skippedCount"] == 2


def test_answered_at_kept_when_flagging_or_navigating(client, db, user_headers, seeded) -> None:
    session_id = _start(client, user_headers)["data"]["id"]
    client.post(
        f"/api/test/session/{session_id}/answer",
        headers=user_headers,
        json={"questionId": "q2", "response": {"type": "single-choice", "selected": _correct_ids(db, "q2")}},
    )
    row = db.query(tables.UserAnswer).filter_by(test_session_id=session_id, question_id="q2").one()
    row.answered_at = datetime(2000, 1, 1, tzinfo=timezone.utc)
    db.commit()

    client.post(f"/api/test/session/{session_id}/flag", headers=user_headers, json={"questionId": "q3"})
    client.put("/api/test/session", headers=user_headers, json={"sessionId": session_id, "currentQuestionIndex": 2})
    db.expire_all()
    assert row.answered_at.replace(tzinfo=None) == datetime(2000, 1, 1)

    client.post(
        f"/api/test/session/{session_id}/answer",
        headers=user_headers,
        json={"questionId": "q2", "response": {"type": "single-choice", "selected": [_wrong_id(db, "q2")]}},
    )
    db.expire_all()
    assert row.answered_at.replace(tzinfo=None) > datetime(2000, 1, 1)


def test_wrong_response_type_is_400(client, user_headers, seeded) -> None:
    session_id = _start(client, user_headers)["data"]["id"]
    response = client.post(
        f"/api/test/session/{session_id}/answer",
        headers=user_headers,
        json={"questionId": "q3", "response": {"type": "sequence", "order": ["a"]}},
    )
    assert response.status_code == 400


def test_bulk_submit_grades_server_side(client, db, user_headers, seeded) -> None:
    session_id = _start(client, user_headers)["data"]["id"]
    question = db.get(tables.Question, "q3")
    pairs = {item.id: item.right_text for item in question.match_items}

    response = client.post(
        "/api/test/session/answers",
        headers=user_headers,
        json={
            "sessionId": session_id,
            "answers": [
                {"questionId": "q1", "answers": _correct_ids(db, "q1"), "timeSpent": 30},
                {"questionId": "q3", "answers": pairs},
                {"questionId": "unknown", "answers": ["x"]},
            ],
        },
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["success"] is True
    assert body["correctCount"] == 2
    assert body["totalQuestions"] == 3
    assert body["skippedCount"] == 1
    assert body["score"] == 67
    assert body["data"]["status"] == "completed"

    response = client.post(
        "/api/test/session/answers",
        headers=user_headers,
        json={"sessionId": session_id, "answers": []},
    )
    assert response.status_code == 409


def test_navigation_and_status_update(client, user_headers, seeded) -> None:
    session_id = _start(client, user_headers)["data"]["id"]

    response = client.put(
        "/api/test/session",
        headers=user_headers,
        json={"sessionId": session_id, "currentQuestionIndex": 2},
    )
    assert response.json()["data"]["currentQuestionIndex"] == 2

    response = client.put(
        "/api/test/session",
        headers=user_headers,
        json={"sessionId": session_id, "currentQuestionIndex": 3},
    )
    assert response.status_code == 400

    response = client.put(
        "/api/test/session", headers=user_headers, json={"sessionId": session_id, "status": "paused"}
    )
    assert response.status_code == 400

    response = client.put(
        "/api/test/session", headers=user_headers, json={"sessionId": session_id, "status": "completed"}
    )
    assert response.json()["data"]["status"] == "completed"


def test_overdue_session_expires_on_read(client, db, user_headers, seeded) -> None:
    session_id = _start(client, user_headers)["data"]["id"]
    session = db.get(tables.TestSession, session_id)
    session.started_at = session.started_at - timedelta(seconds=301)
    db.commit()

    assert client.get("/api/test/session", headers=user_headers).json()["data"] is None

    db.expire_all()
    session = db.get(tables.TestSession, session_id)
    assert session.status == "expired"
    assert session.time_spent == 300
    assert len(session.answers) == 3


def test_sweep_expires_overdue_sessions(client, db, user_headers, seeded) -> None:
    session_id = _start(client, user_headers)["data"]["id"]
    session = db.get(tables.TestSession, session_id)
    session.started_at = session.started_at - timedelta(minutes=10)
    db.commit()

    assert exam_service.expire_overdue_sessions(db) == 1
    assert exam_service.expire_overdue_sessions(db) == 0


def test_other_users_session_is_not_found(client, user_headers, seeded) -> None:
    from conftest import register_and_login

    session_id = _start(client, user_headers)["data"]["id"]
    other = register_and_login(client, "other@certprep.io")
    response = client.post(f"/api/test/session/{session_id}/finish", headers=other, json={"confirm": True})
    assert response.status_code == 404


def test_admin_gets_virtual_preview_session(client, admin_headers, seeded) -> None:
    body = _start(client, admin_headers)
    session = body["data"]
    assert body["isAdminPreview"] is True
    assert session["id"].startswith(f"admin-preview-{seeded}-")
    assert exam_service.preview_test_id(session["id"]) == seeded

    response = client.put(
        "/api/test/session",
        headers=admin_headers,
        json={"sessionId": session["id"], "currentQuestionIndex": 1},
    )
    assert response.json()["data"]["currentQuestionIndex"] == 1
    assert response.json()["data"]["isAdminPreview"] is True

    assert client.get("/api/test/session", headers=admin_headers).json() == {
        "data": None,
        "isAdminPreview": True,
    }


def test_session_requires_auth(client, seeded) -> None:
    assert client.post("/api/test/session", json={"testId": seeded}).status_code == 401


def test_preview_session_ids_are_admin_only(client, db, user_headers, admin_headers, seeded) -> None:
    response = client.post(
        "/api/admin/tests",
        headers=admin_headers,
        json={
            "title": "Paid Exam",
            "timeLimit": 600,
            "price": "19.99",
            "isFree": False,
            "selectedQuestions": ["q2"],
        },
    )
    assert response.status_code == 201, response.text
    paid = response.json()["data"]["id"]
    preview_id = f"admin-preview-{paid}-1"
    assert client.get(f"/api/test/{paid}", headers=user_headers).status_code == 403

    for option in db.get(tables.Question, "q2").answers:
        response = client.post(
            f"/api/test/session/{preview_id}/answer",
            headers=user_headers,
            json={"questionId": "q2", "response": {"type": "single-choice", "selected": [option.id]}},
        )
        assert response.status_code == 403
        assert "isCorrect" not in response.text

    response = client.post(
        "/api/test/session/answers",
        headers=user_headers,
        json={"sessionId": preview_id, "answers": [{"questionId": "q2", "answers": _correct_ids(db, "q2")}]},
    )
    assert response.status_code == 403
    assert "score" not in response.json()

    assert client.post(
        f"/api/test/session/{preview_id}/flag", headers=user_headers, json={"questionId": "q2"}
    ).status_code == 403
    assert client.post(
        f"/api/test/session/{preview_id}/finish", headers=user_headers, json={"confirm": True}
    ).status_code == 403
    assert client.put(
        "/api/test/session", headers=user_headers, json={"sessionId": preview_id, "currentQuestionIndex": 0}
    ).status_code == 403

    response = client.post(
        f"/api/test/session/{preview_id}/answer",
        headers=admin_headers,
        json={"questionId": "q2", "response": {"type": "single-choice", "selected": _correct_ids(db, "q2")}},
    )
    assert response.status_code == 200
    assert response.json()["data"]["isCorrect"] is True
