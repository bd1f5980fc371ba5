"""Public test catalog and test-taking payloads."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session as DbSession

from certprep.database import get_db
from certprep.dependencies.auth import CurrentUser, OptionalUser
from certprep.repositories import Purchases, Tests
from certprep.repositories.mappers import take_test_view
from certprep.services import exam_service
from certprep.services.access_service import check_test_access, require_access
from certprep.utils.validation import validate_id

router = APIRouter(prefix="/api", tags=["tests"])


def _find_test(tests: Tests, test_id: str, current_user, with_questions: bool) -> dict:
    test = tests.get(validate_id("testId", test_id), with_questions=with_questions)
    visible = test is not None and (test["isActive"] or (current_user and current_user.is_admin))
    if not visible:
        raise HTTPException(status_code=404, detail="Test not found")
    return test


@router.get("/tests/public")
def list_public_tests(tests: Tests) -> dict[str, object]:
    """Active tests, newest first."""
    return {"data": tests.list_public()}


@router.get("/test/{test_id}")
def get_test_for_taking(
    test_id: str,
    current_user: OptionalUser,
    tests: Tests,
    purchases: Purchases,
) -> dict[str, object]:
    """Test with its questions, answer keys removed; paid tests need access."""
    test = _find_test(tests, test_id, current_user, with_questions=True)
    access = require_access(test, current_user, purchases)
    return {"data": take_test_view(test), "access": access.as_dict()}


@router.get("/test/{test_id}/preview")
def preview_test(
    test_id: str,
    current_user: OptionalUser,
    tests: Tests,
    purchases: Purchases,
) -> dict[str, object]:
    """Test metadata and the caller's access status; never includes questions."""
    test = _find_test(tests, test_id, current_user, with_questions=False)
    access = check_test_access(test, current_user, purchases)
    return {"data": test, "access": access.as_dict()}


@router.get("/test/{test_id}/history")
def get_test_history(
    test_id: str,
    current_user: CurrentUser,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """The caller's attempts at one test."""
    return {"data": exam_service.attempt_history(db, current_user, validate_id("testId", test_id))}
