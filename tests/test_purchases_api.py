import pytest


@pytest.fixture()
def paid_test(client, admin_headers, seeded) -> str:
    response = client.post(
        "/api/admin/tests",
        headers=admin_headers,
        json={
            "title": "SAP Certified Associate",
            "timeLimit": 1800,
            "price": "49.99",
            "isFree": False,
            "categoryIds": ["cat-2"],
            "selectedQuestions": ["q2"],
        },
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["id"]


def test_paid_test_is_locked_until_purchased(client, user_headers, paid_test) -> None:
    preview = client.get(f"/api/test/{paid_test}/preview").json()
    assert preview["access"]["status"] == "auth_required"
    assert "questions" not in preview["data"]

    preview = client.get(f"/api/test/{paid_test}/preview", headers=user_headers).json()
    assert preview["access"]["status"] == "locked"
    assert preview["access"]["testPrice"] == 49.99
    assert preview["data"]["requiresPurchase"] is True

    assert client.get(f"/api/test/{paid_test}", headers=user_headers).status_code == 403
    response = client.post("/api/test/session", headers=user_headers, json={"testId": paid_test})
    assert response.status_code == 403

    response = client.post(
        "/api/user/purchased-tests",
        headers=user_headers,
        json={"testId": paid_test, "paymentAmount": "49.99", "paymentMethod": "card"},
    )
    assert response.status_code == 201
    assert response.json()["data"]["status"] == "active"

    access = client.get(f"/api/test/{paid_test}", headers=user_headers).json()["access"]
    assert access["hasPurchased"] is True
    response = client.post("/api/test/session", headers=user_headers, json={"testId": paid_test})
    assert response.status_code == 200


def test_duplicate_purchase_conflicts(client, user_headers, paid_test) -> None:
    payload = {"testId": paid_test, "paymentAmount": 49.99}
    assert client.post("/api/user/purchased-tests", headers=user_headers, json=payload).status_code == 201
    response = client.post("/api/user/purchased-tests", headers=user_headers, json=payload)
    assert response.status_code == 409
    assert response.json() == {"error": "Test already purchased"}


def test_list_check_and_refund(client, user_headers, paid_test) -> None:
    client.post(
        "/api/user/purchased-tests",
        headers=user_headers,
        json={"testId": paid_test, "paymentAmount": 49.99},
    )

    body = client.get("/api/user/purchased-tests", headers=user_headers).json()
    assert body["totalPurchased"] == 1
    assert body["stats"]["totalSpent"] == 49.99
    assert body["data"][0]["testTitle"] == "SAP Certified Associate"

    check = client.get(f"/api/user/purchased-tests/{paid_test}", headers=user_headers).json()
    assert check["hasPurchased"] is True

    response = client.post(f"/api/user/purchased-tests/{paid_test}/refund", headers=user_headers)
    assert response.json()["data"]["status"] == "refunded"
    assert client.post(f"/api/user/purchased-tests/{paid_test}/refund", headers=user_headers).status_code == 404

    body = client.get("/api/user/purchased-tests", headers=user_headers).json()
    assert body["totalPurchased"] == 0
    assert body["stats"]["refunded"] == 1
    check = client.get(f"/api/user/purchased-tests/{paid_test}", headers=user_headers).json()
    assert check == {"data": None, "hasPurchased": False}


def test_purchase_of_unknown_test(client, user_headers) -> None:
    response = client.post(
        "/api/user/purchased-tests",
        headers=user_headers,
        json={"testId": "missing", "paymentAmount": 1},
    )
    assert response.status_code == 404


def test_admin_can_take_paid_test_without_purchase(client, admin_headers, paid_test) -> None:
    access = client.get(f"/api/test/{paid_test}", headers=admin_headers).json()["access"]
    assert access["canAccess"] is True
    assert access["reason"].startswith("Admin access")
