"""Exam session endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session as DbSession

from certprep.database import get_db
from certprep.dependencies.auth import CurrentUser
from certprep.models import (
    AnswerSubmission,
    BulkAnswersRequest,
    FinishRequest,
    FlagRequest,
    SessionStartRequest,
    SessionUpdateRequest,
)
from certprep.repositories import Purchases
from certprep.services import exam_service
from certprep.utils.validation import validate_id

router = APIRouter(prefix="/api/test/session", tags=["sessions"])


@router.get("")
def get_active_session(
    current_user: CurrentUser,
    db: Annotated[DbSession, Depends(get_db)],
    test_id: Annotated[str | None, Query(alias="testId")] = None,
) -> dict[str, object]:
    """The caller's in-progress session, optionally for one test. Admins never have one."""
    session = exam_service.get_active_session(db, current_user, test_id)
    return {"data": session, "isAdminPreview": current_user.is_admin}


@router.post("")
def start_session(
    payload: SessionStartRequest,
    current_user: CurrentUser,
    db: Annotated[DbSession, Depends(get_db)],
    purchases: Purchases,
) -> dict[str, object]:
    """Resume the caller's in-progress attempt at the test, or start one."""
    test_id = validate_id("testId", payload.testId)
    session, resumed = exam_service.start_session(db, current_user, test_id, purchases)
    return {"data": session, "resumed": resumed, "isAdminPreview": session["isAdminPreview"]}


@router.put("")
def update_session(
    payload: SessionUpdateRequest,
    current_user: CurrentUser,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    session = exam_service.update_session(
        db,
        current_user,
        payload.sessionId,
        new_status=payload.status,
        current_question_index=payload.currentQuestionIndex,
    )
    return {"data": session}


@router.post("/answers")
def submit_answers(
    payload: BulkAnswersRequest,
    current_user: CurrentUser,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    """Grade a whole submission at once and complete the attempt."""
    return exam_service.submit_answers(db, current_user, payload.sessionId, payload.answers)


@router.post("/{session_id}/answer")
def record_answer(
    session_id: str,
    payload: AnswerSubmission,
    current_user: CurrentUser,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    session = exam_service.record_answer(
        db,
        current_user,
        session_id,
        payload.questionId,
        payload.response,
        payload.timeSpent,
    )
    return {"data": session}


@router.post("/{session_id}/flag")
def toggle_flag(
    session_id: str,
    payload: FlagRequest,
    current_user: CurrentUser,
    db: Annotated[DbSession, Depends(get_db)],
) -> dict[str, object]:
    return {"data": exam_service.toggle_flag(db, current_user, session_id, payload.questionId)}


@router.post("/{session_id}/finish")
def finish_session(
    session_id: str,
    current_user: CurrentUser,
    db: Annotated[DbSession, Depends(get_db)],
    payload: FinishRequest | None = None,
) -> dict[str, object]:
    """Finish the attempt. Unanswered questions need `{"confirm": true}` (409 otherwise)."""
    confirm = payload.confirm if payload is not None else False
    return {"data": exam_service.finish_session(db, current_user, session_id, confirm)}
