import json
from pathlib import Path

import cli
import certprep.models.db as tables
from certprep.services import auth_service, cleanup_service


def test_seed_is_idempotent(db) -> None:
    assert cli.seed(db) == 7
    assert cli.seed(db) == 0
    test = db.get(tables.Test, "test-1")
    assert [link.question_id for link in test.test_questions] == ["q1", "q2", "q3"]


def test_import_file(db, tmp_path: Path) -> None:
    path = tmp_path / "test.json"
    path.write_text(
        json.dumps(
            {
                "title": "True or false",
                "timeLimit": 120,
                "questions": [
                    {
                        "text": "S/4HANA runs on HANA only",
                        "type": "true-false",
                        "answers": [{"text": "True", "isCorrect": True}, {"text": "False"}],
                    }
                ],
            }
        ),
        encoding="utf-8",
    )
    test = cli.import_file(db, path)
    assert test.title == "True or false"
    assert len(test.test_questions) == 1


def test_promote(db) -> None:
    auth_service.create_user(db, "boss@certprep.io", "secret-pass")
    assert cli.promote(db, "boss@certprep.io") is True
    assert cli.promote(db, "nobody@certprep.io") is False
    assert auth_service.get_user_by_email(db, "boss@certprep.io").is_admin is True


def test_main_reports_bad_import(tmp_path: Path) -> None:
    assert cli.main(["init-db"]) == 0
    assert cli.main(["import", str(tmp_path / "missing.json")]) == 1


def test_sweep(db_factory, db) -> None:
    assert cleanup_service.sweep(db_factory) == (0, 0)
