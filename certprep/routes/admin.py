"""Admin endpoints: catalog CRUD, user promotion and platform analytics."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session as DbSession

from certprep.database import get_db
from certprep.dependencies.auth import AdminUser
from certprep.models import (
    CategoryCreate,
    CategoryUpdate,
    PositionUpdate,
    PromoteRequest,
    QuestionCreate,
    QuestionUpdate,
    TestCategoriesUpdate,
    TestCreate,
    TestQuestionsAdd,
    TestUpdate,
)
from certprep.models.db import QuestionType
from certprep.repositories import Categories, Questions, Tests
from certprep.repositories.mappers import catalog_test_view, category_view, question_view
from certprep.services import catalog_service, dashboard_service

router = APIRouter(prefix="/api/admin", tags=["admin"])

Db = Annotated[DbSession, Depends(get_db)]


@router.post("/promote")
def promote(payload: PromoteRequest, admin: AdminUser, db: Db) -> dict[str, object]:
    """Grant admin rights to another user."""
    user = catalog_service.promote_user(db, payload.userId)
    return {"data": {"id": user.id, "email": user.email, "isAdmin": user.is_admin}}


# Categories

@router.get("/categories")
def list_categories(admin: AdminUser, categories: Categories) -> dict[str, object]:
    return {"data": categories.list()}


@router.post("/categories", status_code=status.HTTP_201_CREATED)
def create_category(payload: CategoryCreate, admin: AdminUser, db: Db) -> dict[str, object]:
    return {"data": category_view(catalog_service.create_category(db, payload))}


@router.put("/categories/{category_id}")
def update_category(
    category_id: str, payload: CategoryUpdate, admin: AdminUser, db: Db
) -> dict[str, object]:
    return {"data": category_view(catalog_service.update_category(db, category_id, payload))}


@router.delete("/categories/{category_id}")
def delete_category(category_id: str, admin: AdminUser, db: Db) -> dict[str, object]:
    catalog_service.delete_category(db, category_id)
    return {"data": {"id": category_id, "deleted": True}}


# Questions

@router.get("/questions")
def list_questions(
    admin: AdminUser,
    questions: Questions,
    category_id: Annotated[str | None, Query()] = None,
    question_type: Annotated[str | None, Query(alias="type")] = None,
) -> dict[str, object]:
    """All questions, optionally filtered by category and type (`all` means no filter)."""
    if category_id == "all":
        category_id = None
    if question_type == "all":
        question_type = None
    if question_type:
        try:
            question_type = QuestionType.normalize(question_type).value
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unsupported question type: {question_type}") from None
    return {"data": questions.list(category_id=category_id, question_type=question_type)}


@router.post("/questions", status_code=status.HTTP_201_CREATED)
def create_question(payload: QuestionCreate, admin: AdminUser, db: Db) -> dict[str, object]:
    return {"data": question_view(catalog_service.create_question(db, payload, admin))}


@router.get("/questions/{question_id}")
def get_question(question_id: str, admin: AdminUser, questions: Questions) -> dict[str, object]:
    question = questions.get(question_id)
    if question is None:
        raise HTTPException(status_code=404, detail="Question not found")
    return {"data": question}


@router.put("/questions/{question_id}")
def update_question(
    question_id: str, payload: QuestionUpdate, admin: AdminUser, db: Db
) -> dict[str, object]:
    return {"data": question_view(catalog_service.update_question(db, question_id, payload))}


@router.delete("/questions/{question_id}")
def delete_question(question_id: str, admin: AdminUser, db: Db) -> dict[str, object]:
    catalog_service.delete_question(db, question_id)
    return {"data": {"id": question_id, "deleted": True}}


@router.get("/questions/{question_id}/preview")
def preview_question(question_id: str, admin: AdminUser, db: Db) -> dict[str, object]:
    """Question with answer keys and the tests that use it."""
    return {"data": catalog_service.preview_question(db, question_id)}


# Tests

@router.get("/tests")
def list_tests(admin: AdminUser, tests: Tests) -> dict[str, object]:
    return {"data": tests.list_all()}


@router.post("/tests", status_code=status.HTTP_201_CREATED)
def create_test(payload: TestCreate, admin: AdminUser, db: Db) -> dict[str, object]:
    test = catalog_service.create_test(db, payload, admin)
    return {"data": catalog_test_view(test, with_questions=True)}


@router.get("/tests/{test_id}")
def get_test(test_id: str, admin: AdminUser, tests: Tests) -> dict[str, object]:
    test = tests.get(test_id)
    if test is None:
        raise HTTPException(status_code=404, detail="Test not found")
    return {"data": test}


@router.put("/tests/{test_id}")
def update_test(test_id: str, payload: TestUpdate, admin: AdminUser, db: Db) -> dict[str, object]:
    return {"data": catalog_test_view(catalog_service.update_test(db, test_id, payload))}


@router.delete("/tests/{test_id}")
def delete_test(test_id: str, admin: AdminUser, db: Db) -> dict[str, object]:
    """Delete a test with its sessions and purchases."""
    catalog_service.delete_test(db, test_id)
    return {"data": {"id": test_id, "deleted": True}}


@router.put("/tests/{test_id}/categories")
def set_test_categories(
    test_id: str, payload: TestCategoriesUpdate, admin: AdminUser, db: Db
) -> dict[str, object]:
    test = catalog_service.set_test_categories(db, test_id, payload.categoryIds)
    return {"data": catalog_test_view(test)}


@router.get("/tests/{test_id}/questions")
def list_test_questions(test_id: str, admin: AdminUser, db: Db) -> dict[str, object]:
    return {"data": catalog_service.list_test_questions(db, test_id)}


@router.post("/tests/{test_id}/questions")
def add_test_questions(
    test_id: str, payload: TestQuestionsAdd, admin: AdminUser, db: Db
) -> dict[str, object]:
    added = catalog_service.add_test_questions(db, test_id, payload.questionIds)
    return {"data": catalog_service.list_test_questions(db, test_id), "added": added}


@router.delete("/tests/{test_id}/questions/{question_id}")
def remove_test_question(
    test_id: str, question_id: str, admin: AdminUser, db: Db
) -> dict[str, object]:
    catalog_service.remove_test_question(db, test_id, question_id)
    return {"data": catalog_service.list_test_questions(db, test_id)}


@router.put("/tests/{test_id}/questions/{question_id}/position")
def move_test_question(
    test_id: str, question_id: str, payload: PositionUpdate, admin: AdminUser, db: Db
) -> dict[str, object]:
    return {"data": catalog_service.move_test_question(db, test_id, question_id, payload.position)}


@router.get("/analytics")
def get_admin_analytics(admin: AdminUser, db: Db) -> dict[str, object]:
    return {"data": dashboard_service.admin_analytics(db)}
