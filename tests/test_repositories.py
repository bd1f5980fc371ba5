import pytest
from sqlalchemy.exc import OperationalError

from certprep.repositories import base, mock, sql


class BrokenTests:
    READS = base.TestRepository.READS

    def __init__(self) -> None:
        self.resets = 0
        self.written = []

    def list_public(self):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    def get(self, test_id, with_questions=True):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    def delete(self, test_id):
        self.written.append(test_id)
        raise OperationalError("DELETE", {}, Exception("database is locked"))

    def reset(self):
        self.resets += 1


def test_reads_fall_back_to_mock_data() -> None:
    primary = BrokenTests()
    repo = base.FallbackRepository(primary, mock.MockTestRepository(), base.FallbackPolicy.MOCK_ON_ERROR)

    tests = repo.list_public()
    assert [t["id"] for t in tests] == ["test-1"]
    assert primary.resets == 1

    test = repo.get("test-1")
    assert [q["id"] for q in test["questions"]] == ["q1", "q2", "q3"]
    assert repo.get("missing") is None


def test_errors_propagate_when_fallback_is_off() -> None:
    repo = base.FallbackRepository(BrokenTests(), mock.MockTestRepository(), base.FallbackPolicy.OFF)
    with pytest.raises(OperationalError):
        repo.list_public()


def test_writes_never_fall_back() -> None:
    primary = BrokenTests()
    repo = base.FallbackRepository(primary, mock.MockTestRepository(), base.FallbackPolicy.MOCK_ON_ERROR)
    with pytest.raises(OperationalError):
        repo.delete("test-1")
    assert primary.written == ["test-1"]
    assert primary.resets == 0


def test_policy_from_setting() -> None:
    assert base.FallbackPolicy.from_setting("MOCK") is base.FallbackPolicy.MOCK_ON_ERROR
    assert base.FallbackPolicy.from_setting(None) is base.FallbackPolicy.OFF
    assert base.FallbackPolicy.from_setting("sometimes") is base.FallbackPolicy.OFF


def test_sql_repositories_read_seeded_catalog(db, seeded) -> None:
    tests = sql.SqlTestRepository(db)
    public = tests.list_public()
    assert [t["id"] for t in public] == [seeded]
    assert "questions" not in public[0]
    assert public[0]["questionCount"] == 3

    questions = sql.SqlQuestionRepository(db)
    assert {q["id"] for q in questions.list(category_id="cat-1")} == {"q1", "q3"}
    assert {q["id"] for q in questions.list(question_type="matching")} == {"q3"}
    assert questions.get("q2")["categoryName"] == "SAP Technology"

    categories = sql.SqlCategoryRepository(db)
    assert [c["name"] for c in categories.list()] == ["SAP Fundamentals", "SAP Technology", "Supply Chain"]


def test_sql_purchase_repository(db, seeded) -> None:
    from certprep.services import auth_service

    user = auth_service.create_user(db, "buyer@certprep.io", "secret-pass")
    purchases = sql.SqlPurchaseRepository(db)
    assert purchases.get_active(user.id, seeded) is None

    purchase = purchases.record(user.id, seeded, "19.90", "card", "tx-1")
    assert purchase["paymentAmount"] == 19.9
    assert purchases.get_active(user.id, seeded)["id"] == purchase["id"]

    assert purchases.refund(user.id, seeded)["status"] == "refunded"
    assert purchases.refund(user.id, seeded) is None
    assert [p["status"] for p in purchases.list_for_user(user.id)] == ["refunded"]


def test_mock_purchases_are_read_only() -> None:
    purchases = mock.MockPurchaseRepository()
    assert purchases.list_for_user(1) == []
    with pytest.raises(NotImplementedError):
        purchases.record(1, "test-1", 10)


def test_catalog_falls_back_through_the_api(client, monkeypatch) -> None:
    def broken(self):
        raise OperationalError("SELECT", {}, Exception("no such table: tests"))

    monkeypatch.setattr(sql.SqlTestRepository, "list_public", broken)
    assert client.get("/api/tests/public").status_code == 500

    monkeypatch.setattr("certprep.config.DATA_FALLBACK", "mock")
    response = client.get("/api/tests/public")
    assert response.status_code == 200
    assert response.json()["data"][0]["title"] == "SAP Fundamentals Test"
