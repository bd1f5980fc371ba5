import argparse
import json
import logging
from pathlib import Path

from fastapi import HTTPException
from pydantic import ValidationError

from certprep.database import SessionLocal, init_db
from certprep.logging_setup import setup_console_logging
from certprep.models.catalog import QuestionCreate, TestImport
from certprep.models.db import Category, Question, Test
from certprep.repositories.mock import SAMPLE_CATEGORIES, SAMPLE_QUESTIONS, SAMPLE_TESTS
from certprep.services import auth_service, catalog_service

setup_console_logging()
logger = logging.getLogger("certprep.cli")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="CertPrep maintenance commands")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create database tables")
    commands.add_parser("seed", help="Load the sample SAP catalog")

    import_parser = commands.add_parser("import", help="Import a test with its questions")
    import_parser.add_argument("file", type=Path, help="Path to a test JSON file")

    promote_parser = commands.add_parser("promote", help="Grant admin rights to a user")
    promote_parser.add_argument("email", help="Email of an existing user")
    return parser.parse_args(argv)


def seed(db) -> int:
    """Insert the sample catalog; rows that already exist are left alone."""
    created = 0
    for raw in SAMPLE_CATEGORIES:
        if db.get(Category, raw["id"]) is None:
            # Sample ids are kept so questions and tests can reference them
            db.add(Category(id=raw["id"], name=raw["name"], description=raw["description"]))
            db.commit()
            created += 1
    for raw in SAMPLE_QUESTIONS:
        if db.get(Question, raw["id"]) is None:
            data = QuestionCreate(**{k: v for k, v in raw.items() if k != "id"})
            catalog_service.build_question(db, data, None, question_id=raw["id"])
            db.commit()
            created += 1
    for raw in SAMPLE_TESTS:
        if db.get(Test, raw["id"]) is None:
            test = Test(
                id=raw["id"],
                title=raw["title"],
                description=raw.get("description"),
                time_limit=raw["timeLimit"],
                is_active=raw.get("isActive", True),
            )
            test.categories = [db.get(Category, cid) for cid in raw["categoryIds"]]
            db.add(test)
            db.flush()
            catalog_service.add_test_questions(db, test.id, raw["questionIds"])
            created += 1
    return created


def import_file(db, path: Path) -> Test:
    data = TestImport.model_validate(json.loads(path.read_text(encoding="utf-8")))
    return catalog_service.import_test(db, data)


def promote(db, email: str) -> bool:
    user = auth_service.get_user_by_email(db, email)
    if user is None:
        return False
    catalog_service.promote_user(db, user.id)
    return True


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    init_db()
    if args.command == "init-db":
        print("Database ready")
        return 0

    db = SessionLocal()
    try:
        if args.command == "seed":
            print(f"Seeded {seed(db)} record(s)")
        elif args.command == "import":
            try:
                test = import_file(db, args.file)
            except (OSError, json.JSONDecodeError, ValidationError) as e:
                logger.error("Cannot import %s: %s", args.file, e)
                return 1
            except HTTPException as e:
                logger.error("Cannot import %s: %s", args.file, e.detail)
                return 1
            print(f"Imported test {test.id} ({len(test.test_questions)} questions)")
        elif args.command == "promote":
            if not promote(db, args.email):
                logger.error("No user with email %s", args.email)
                return 1
            print(f"{args.email} is now an admin")
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
