import certprep.models.db as tables
from certprep.models import catalog as catalog_models
from certprep.services import catalog_service


def _question(client, headers, **payload) -> dict:
    response = client.post("/api/admin/questions", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_admin_routes_require_admin(client, user_headers) -> None:
    response = client.get("/api/admin/tests", headers=user_headers)
    assert response.status_code == 403
    assert response.json() == {"error": "Admin access required"}
    assert client.get("/api/admin/tests").status_code == 401


def test_category_crud(client, admin_headers, seeded) -> None:
    response = client.post(
        "/api/admin/categories", headers=admin_headers, json={"name": "Analytics"}
    )
    assert response.status_code == 201
    category_id = response.json()["data"]["id"]

    response = client.post("/api/admin/categories", headers=admin_headers, json={"name": "Analytics"})
    assert response.status_code == 409

    response = client.put(
        f"/api/admin/categories/{category_id}",
        headers=admin_headers,
        json={"description": "BI and reporting"},
    )
    assert response.json()["data"]["description"] == "BI and reporting"

    names = [c["name"] for c in client.get("/api/admin/categories", headers=admin_headers).json()["data"]]
    assert names == sorted(names)
    assert "Analytics" in names

    assert client.delete("/api/admin/categories/cat-1", headers=admin_headers).status_code == 409
    response = client.delete(f"/api/admin/categories/{category_id}", headers=admin_headers)
    assert response.json()["data"]["deleted"] is True


def test_create_each_question_type(client, admin_headers, seeded) -> None:
    true_false = _question(
        client,
        admin_headers,
        text="SAP HANA is a column store.",
        type="true_false",
        categoryId="cat-2",
        answers=[{"text": "True", "isCorrect": True}, {"text": "False"}],
    )
    assert true_false["type"] == "true-false"
    assert true_false["difficulty"] == "medium"
    assert true_false["categoryName"] == "SAP Technology"

    sequence = _question(
        client,
        admin_headers,
        text="Order the procure-to-pay steps",
        type="sequence",
        sequenceItems=[
            {"text": "Invoice", "correctPosition": 3},
            {"text": "Purchase order", "correctPosition": 1},
            {"text": "Goods receipt", "correctPosition": 2},
        ],
    )
    assert [item["correctPosition"] for item in sequence["sequenceItems"]] == [1, 2, 3]

    drag = _question(
        client,
        admin_headers,
        text="Place each document",
        type="drag-drop",
        dragDropItems=[
            {"content": "Sales order", "targetZone": "SD"},
            {"content": "Purchase order", "targetZone": "MM"},
        ],
        testId=seeded,
    )
    preview = client.get(f"/api/admin/questions/{drag['id']}/preview", headers=admin_headers).json()["data"]
    assert preview["tests"] == [{"id": seeded, "title": "SAP Fundamentals Test", "position": 3}]

    listed = client.get(
        "/api/admin/questions", headers=admin_headers, params={"type": "sequence", "category_id": "all"}
    ).json()["data"]
    assert [q["id"] for q in listed] == [sequence["id"]]


def test_invalid_questions_rejected(client, admin_headers, seeded) -> None:
    cases = [
        {"type": "single-choice", "answers": [{"text": "A", "isCorrect": True}, {"text": "B", "isCorrect": True}]},
        {"type": "multiple-choice", "answers": [{"text": "A"}, {"text": "B"}]},
        {"type": "true-false", "answers": [{"text": "T", "isCorrect": True}, {"text": "F"}, {"text": "?"}]},
        {"type": "matching", "matchItems": [{"leftText": "FI", "rightText": "Finance"}]},
        {"type": "sequence", "sequenceItems": [{"text": "a", "correctPosition": 1}, {"text": "b", "correctPosition": 3}]},
        {"type": "drag-drop", "dragDropItems": []},
        {"type": "matching", "answers": [{"text": "A", "isCorrect": True}, {"text": "B"}]},
        {"type": "essay"},
    ]
    for case in cases:
        response = client.post(
            "/api/admin/questions", headers=admin_headers, json={"text": "Invalid", **case}
        )
        assert response.status_code == 400, case


def test_update_and_delete_question(client, admin_headers, seeded) -> None:
    response = client.put(
        "/api/admin/questions/q2",
        headers=admin_headers,
        json={"explanation": "HANA keeps data in memory", "difficulty": "hard"},
    )
    assert response.status_code == 200
    assert response.json()["data"]["difficulty"] == "hard"

    assert client.delete("/api/admin/questions/q2", headers=admin_headers).status_code == 200
    assert client.get("/api/admin/questions/q2", headers=admin_headers).status_code == 404
    remaining = client.get(f"/api/admin/tests/{seeded}/questions", headers=admin_headers).json()["data"]
    assert [q["id"] for q in remaining] == ["q1", "q3"]


def test_test_question_membership(client, admin_headers, seeded) -> None:
    response = client.post(
        "/api/admin/tests",
        headers=admin_headers,
        json={"title": "Mixed", "timeLimit": 600, "categoryIds": ["cat-1", "cat-3"]},
    )
    assert response.status_code == 201
    test_id = response.json()["data"]["id"]
    assert response.json()["data"]["questionCount"] == 0

    response = client.post(
        f"/api/admin/tests/{test_id}/questions",
        headers=admin_headers,
        json={"questionIds": ["q1", "q2", "q3", "q1"]},
    )
    assert response.json()["added"] == ["q1", "q2", "q3"]

    response = client.post(
        f"/api/admin/tests/{test_id}/questions", headers=admin_headers, json={"questionIds": ["q2"]}
    )
    assert response.json()["added"] == []

    response = client.put(
        f"/api/admin/tests/{test_id}/questions/q3/position", headers=admin_headers, json={"position": 0}
    )
    assert [(q["id"], q["position"]) for q in response.json()["data"]] == [("q3", 0), ("q1", 1), ("q2", 2)]

    response = client.delete(f"/api/admin/tests/{test_id}/questions/q1", headers=admin_headers)
    assert [(q["id"], q["position"]) for q in response.json()["data"]] == [("q3", 0), ("q2", 1)]

    response = client.post(
        f"/api/admin/tests/{test_id}/questions", headers=admin_headers, json={"questionIds": ["nope"]}
    )
    assert response.status_code == 400

    response = client.put(
        f"/api/admin/tests/{test_id}/categories", headers=admin_headers, json={"categoryIds": ["cat-2"]}
    )
    assert response.json()["data"]["categoryIds"] == ["cat-2"]


def test_create_test_is_all_or_nothing(client, db, admin_headers, seeded) -> None:
    response = client.post(
        "/api/admin/tests",
        headers=admin_headers,
        json={"title": "Broken", "timeLimit": 600, "selectedQuestions": ["q1", "missing"]},
    )
    assert response.status_code == 400
    assert db.query(tables.Test).filter(tables.Test.title == "Broken").count() == 0


def test_update_and_deactivate_test(client, admin_headers, user_headers, seeded) -> None:
    response = client.put(
        f"/api/admin/tests/{seeded}",
        headers=admin_headers,
        json={"isActive": False, "timeLimit": 3600},
    )
    data = response.json()["data"]
    assert data["isActive"] is False
    assert data["timeLimitLabel"] == "1h 0m"

    public = client.get("/api/tests/public").json()["data"]
    assert seeded not in [t["id"] for t in public]
    assert client.get(f"/api/test/{seeded}/preview", headers=user_headers).status_code == 404
    assert client.get(f"/api/test/{seeded}/preview", headers=admin_headers).status_code == 200
    assert len(client.get("/api/admin/tests", headers=admin_headers).json()["data"]) == 1


def test_delete_test_cascades(client, db, admin_headers, user_headers, seeded) -> None:
    client.post("/api/test/session", headers=user_headers, json={"testId": seeded})
    assert db.query(tables.TestSession).count() == 1

    response = client.delete(f"/api/admin/tests/{seeded}", headers=admin_headers)
    assert response.status_code == 200
    db.expire_all()
    assert db.query(tables.TestSession).count() == 0
    assert db.query(tables.UserAnswer).count() == 0
    assert db.get(tables.Question, "q1") is not None
    assert client.get(f"/api/admin/tests/{seeded}", headers=admin_headers).status_code == 404


def test_promote_user(client, db, admin_headers, user_headers) -> None:
    user = db.query(tables.User).filter(tables.User.email == "learner@certprep.io").one()
    response = client.post("/api/admin/promote", headers=admin_headers, json={"userId": user.id})
    assert response.json()["data"]["isAdmin"] is True
    assert client.get("/api/admin/tests", headers=user_headers).status_code == 200
    assert client.post("/api/admin/promote", headers=admin_headers, json={"userId": 999}).status_code == 404


def test_import_test_with_questions(db, seeded) -> None:
    data = catalog_models.TestImport.model_validate(
        {
            "title": "Imported",
            "timeLimit": 900,
            "categoryIds": ["cat-3"],
            "selectedQuestions": ["q2"],
            "questions": [
                {
                    "text": "Order the steps",
                    "type": "sequence",
                    "sequenceItems": [
                        {"text": "Plan", "correctPosition": 1},
                        {"text": "Source", "correctPosition": 2},
                    ],
                }
            ],
        }
    )
    test = catalog_service.import_test(db, data)
    assert [link.question.type for link in test.test_questions] == ["single-choice", "sequence"]


def test_admin_analytics(client, admin_headers, user_headers, seeded) -> None:
    session_id = client.post(
        "/api/test/session", headers=user_headers, json={"testId": seeded}
    ).json()["data"]["id"]
    client.post(f"/api/test/session/{session_id}/finish", headers=user_headers, json={"confirm": True})

    data = client.get("/api/admin/analytics", headers=admin_headers).json()["data"]
    assert data["totals"]["tests"] == 1
    assert data["totals"]["questions"] == 3
    assert data["popularTests"][0]["attempts"] == 1
