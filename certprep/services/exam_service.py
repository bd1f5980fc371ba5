"""
Exam sessions: persist the exam machine between requests.

Every request rebuilds an `ExamMachine` from the `test_sessions` row and its
`user_answers`, syncs it with the wall clock (which may expire the attempt),
applies the requested action and writes the state back.
"""
import logging
import time
from typing import Any

from fastapi import HTTPException, status
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session as DbSession, selectinload

from certprep.config import ADMIN_PREVIEW_PREFIX
from certprep.exam import (
    ExamMachine,
    ExamPhase,
    ExamSummary,
    QuestionKey,
    RecordedAnswer,
    Response,
    parse_response,
    response_from_legacy,
)
from certprep.models.db import (
    Question,
    SessionStatus,
    Test,
    TestQuestion,
    TestSession,
    UserAnswer,
)
from certprep.models.db.user import User
from certprep.repositories.mappers import catalog_test_view
from certprep.services.access_service import require_access
from certprep.utils.time_utils import isoformat, utc_now

logger = logging.getLogger(__name__)


# Loading

def load_test(db: DbSession, test_id: str) -> Test:
    """Test with its questions and answer records, or 404."""
    test = db.execute(
        select(Test)
        .where(Test.id == test_id)
        .options(
            selectinload(Test.categories),
            selectinload(Test.test_questions)
            .selectinload(TestQuestion.question)
            .options(
                selectinload(Question.answers),
                selectinload(Question.match_items),
                selectinload(Question.sequence_items),
                selectinload(Question.drag_drop_items),
            ),
        )
    ).scalar_one_or_none()
    if test is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Test not found")
    return test


def question_keys(test: Test) -> list[QuestionKey]:
    return [QuestionKey.from_question(question) for question in test.questions]


def _stored_response(answer: UserAnswer) -> Response | None:
    payload = answer.response
    if payload is None:
        return None
    try:
        return parse_response(payload)
    except ValidationError:
        logger.warning("Discarding unreadable response on answer %s", answer.id)
        return None


def build_machine(test: Test, session: TestSession) -> ExamMachine:
    """Rebuild the machine for a stored session."""
    phase = ExamPhase.IN_PROGRESS if session.is_in_progress else ExamPhase.COMPLETED
    return ExamMachine.restore(
        question_keys(test),
        test.time_limit,
        phase=phase,
        started_at=session.started_at,
        ended_at=session.ended_at,
        current_index=session.current_question_index,
        answers=[
            RecordedAnswer(
                answer.question_id,
                _stored_response(answer),
                answer.is_correct,
                answer.time_spent,
            )
            for answer in session.answers
        ],
        flagged=session.flagged,
        expired=session.status == SessionStatus.EXPIRED.value,
        allow_backward_navigation=test.allow_backward_navigation,
    )


def persist(db: DbSession, session: TestSession, machine: ExamMachine) -> None:
    """Write machine state onto the session row and its answers (no commit)."""
    now = utc_now()
    session.current_question_index = machine.current_index
    session.flagged = sorted(machine.flagged)
    if machine.ended_at is not None:
        session.time_spent = machine.time_spent
    else:
        session.time_spent = machine.time_limit - machine.remaining(now)

    rows = {answer.question_id: answer for answer in session.answers}
    for recorded in machine.answers.values():
        row = rows.get(recorded.question_id)
        if row is None:
            row = UserAnswer(
                test_session_id=session.id,
                user_id=session.user_id,
                question_id=recorded.question_id,
            )
            session.answers.append(row)
            rows[recorded.question_id] = row
        response = recorded.response.model_dump() if recorded.answered else None
        if response is None:
            row.answered_at = None
        elif row.answered_at is None or response != row.response:
            row.answered_at = now
        row.response = response
        row.is_correct = recorded.is_correct if recorded.answered else None
        row.time_spent = recorded.time_spent

    if machine.phase is ExamPhase.COMPLETED:
        # Unanswered questions are stored as skipped
        for question in machine.questions:
            if question.id not in rows:
                session.answers.append(
                    UserAnswer(
                        test_session_id=session.id,
                        user_id=session.user_id,
                        question_id=question.id,
                        is_correct=None,
                    )
                )
        summary = machine.summary()
        session.status = (
            SessionStatus.EXPIRED.value if machine.expired else SessionStatus.COMPLETED.value
        )
        session.ended_at = machine.ended_at
        session.score = summary.percentage
        session.total_questions = summary.total
        session.correct_answers = summary.correct


def _get_owned_session(db: DbSession, user: User, session_id: str) -> TestSession:
    session = db.execute(
        select(TestSession)
        .where(TestSession.id == session_id)
        .options(selectinload(TestSession.answers))
    ).scalar_one_or_none()
    if session is None or session.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found")
    return session


def _open(db: DbSession, user: User, session_id: str) -> tuple[Test, TestSession, ExamMachine]:
    """Load a session's machine; an attempt past its deadline is expired and saved."""
    session = _get_owned_session(db, user, session_id)
    test = load_test(db, session.test_id)
    machine = build_machine(test, session)
    if machine.phase is ExamPhase.IN_PROGRESS:
        machine.sync_clock()
        if machine.phase is ExamPhase.COMPLETED:
            logger.info("Session %s expired", session.id)
            persist(db, session, machine)
            db.commit()
    return test, session, machine


# Serialization

def serialize_session(session: TestSession, machine: ExamMachine | None = None) -> dict[str, Any]:
    completed = not session.is_in_progress
    answers = sorted(session.answers, key=lambda a: a.question_id)
    data = {
        "id": session.id,
        "testId": session.test_id,
        "userId": session.user_id,
        "status": session.status,
        "startedAt": isoformat(session.started_at),
        "endedAt": isoformat(session.ended_at),
        "timeSpent": session.time_spent,
        "remainingTime": machine.remaining() if machine is not None else 0,
        "currentQuestionIndex": session.current_question_index,
        "flagged": session.flagged,
        "score": session.score,
        "totalQuestions": session.total_questions,
        "correctAnswers": session.correct_answers,
        "answeredCount": sum(1 for a in answers if a.response is not None),
        "answers": [
            {
                "questionId": a.question_id,
                "response": a.response,
                "timeSpent": a.time_spent,
                # Correctness is only revealed once the attempt is over
                **({"isCorrect": a.is_correct} if completed else {}),
            }
            for a in answers
        ],
        "isAdminPreview": False,
    }
    if completed and machine is not None:
        data["summary"] = machine.summary().as_dict()
    return data


# Admin previews are never stored

def is_preview_id(session_id: str) -> bool:
    return session_id.startswith(ADMIN_PREVIEW_PREFIX)


def preview_test_id(session_id: str) -> str:
    """`admin-preview-<testId>-<ms>` -> `<testId>`."""
    return session_id[len(ADMIN_PREVIEW_PREFIX):].rsplit("-", 1)[0]


def load_preview_test(db: DbSession, user: User, session_id: str) -> Test:
    """Test behind a preview session id; previews are admin only."""
    if not user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Preview sessions are only available to admins",
        )
    return load_test(db, preview_test_id(session_id))


def preview_session(test: Test, user: User, **changes: Any) -> dict[str, Any]:
    now = utc_now()
    data = {
        "id": f"{ADMIN_PREVIEW_PREFIX}{test.id}-{int(time.time() * 1000)}",
        "testId": test.id,
        "userId": user.id,
        "status": SessionStatus.IN_PROGRESS.value,
        "startedAt": isoformat(now),
        "endedAt": None,
        "timeSpent": 0,
        "remainingTime": test.time_limit,
        "currentQuestionIndex": 0,
        "flagged": [],
        "score": 0,
        "totalQuestions": len(test.test_questions),
        "correctAnswers": 0,
        "answeredCount": 0,
        "answers": [],
        "isAdminPreview": True,
    }
    data.update(changes)
    return data


# Operations

def get_active_session(db: DbSession, user: User, test_id: str | None = None) -> dict[str, Any] | None:
    """Most recent in-progress session, optionally for one test."""
    if user.is_admin:
        return None
    query = (
        select(TestSession)
        .where(
            TestSession.user_id == user.id,
            TestSession.status == SessionStatus.IN_PROGRESS.value,
        )
        .order_by(TestSession.started_at.desc())
    )
    if test_id:
        query = query.where(TestSession.test_id == test_id)
    for session in db.execute(query).scalars().all():
        _, session, machine = _open(db, user, session.id)
        if machine.phase is ExamPhase.IN_PROGRESS:
            return serialize_session(session, machine)
    return None


def start_session(db: DbSession, user: User, test_id: str, purchases: Any) -> tuple[dict[str, Any], bool]:
    """Resume the user's in-progress attempt at a test or start a new one."""
    test = load_test(db, test_id)
    if user.is_admin:
        return preview_session(test, user), False
    if not test.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Test not found")
    require_access(catalog_test_view(test), user, purchases)

    existing = get_active_session(db, user, test_id)
    if existing is not None:
        return existing, True

    machine = ExamMachine(
        question_keys(test), test.time_limit, test.allow_backward_navigation
    )
    machine.start()
    session = TestSession(
        test_id=test.id,
        user_id=user.id,
        started_at=machine.started_at,
        status=SessionStatus.IN_PROGRESS.value,
        total_questions=len(machine.questions),
    )
    db.add(session)
    db.flush()
    persist(db, session, machine)
    db.commit()
    db.refresh(session)
    logger.info("User %s started session %s on test %s", user.id, session.id, test.id)
    return serialize_session(session, machine), False


def update_session(
    db: DbSession,
    user: User,
    session_id: str,
    new_status: str | None = None,
    current_question_index: int | None = None,
) -> dict[str, Any]:
    """Move to a question and/or finish (`completed`) or expire (`expired`) the attempt."""
    if new_status is not None and new_status not in (
        SessionStatus.IN_PROGRESS.value,
        SessionStatus.COMPLETED.value,
        SessionStatus.EXPIRED.value,
    ):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid status")
    if is_preview_id(session_id):
        test = load_preview_test(db, user, session_id)
        return preview_session(
            test,
            user,
            id=session_id,
            status=new_status or SessionStatus.IN_PROGRESS.value,
            currentQuestionIndex=current_question_index or 0,
        )

    _, session, machine = _open(db, user, session_id)
    if current_question_index is not None:
        machine.go_to(current_question_index)
    if new_status == SessionStatus.COMPLETED.value:
        machine.finish(confirm=True)
    elif new_status == SessionStatus.EXPIRED.value:
        machine.time_up(now=utc_now())
    elif new_status == SessionStatus.IN_PROGRESS.value and machine.phase is not ExamPhase.IN_PROGRESS:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Session is already finished")
    persist(db, session, machine)
    db.commit()
    db.refresh(session)
    return serialize_session(session, machine)


def record_answer(
    db: DbSession,
    user: User,
    session_id: str,
    question_id: str,
    response: Response,
    time_spent: int = 0,
) -> dict[str, Any]:
    if is_preview_id(session_id):
        test = load_preview_test(db, user, session_id)
        machine = ExamMachine(question_keys(test), test.time_limit)
        machine.start()
        recorded = machine.answer(response, time_spent, question_id=question_id)
        return {
            "questionId": question_id,
            "answered": recorded.answered,
            "isCorrect": recorded.is_correct,
            "isAdminPreview": True,
        }

    _, session, machine = _open(db, user, session_id)
    machine.answer(response, time_spent, question_id=question_id)
    persist(db, session, machine)
    db.commit()
    db.refresh(session)
    return serialize_session(session, machine)


def toggle_flag(db: DbSession, user: User, session_id: str, question_id: str) -> dict[str, Any]:
    if is_preview_id(session_id):
        load_preview_test(db, user, session_id)
        return {"questionId": question_id, "flagged": True, "isAdminPreview": True}
    _, session, machine = _open(db, user, session_id)
    machine.toggle_flag(question_id)
    persist(db, session, machine)
    db.commit()
    db.refresh(session)
    return serialize_session(session, machine)


def finish_session(db: DbSession, user: User, session_id: str, confirm: bool = False) -> dict[str, Any]:
    """Finish the attempt; raises ConfirmationRequired if questions are unanswered."""
    if is_preview_id(session_id):
        test = load_preview_test(db, user, session_id)
        return preview_session(test, user, id=session_id, status=SessionStatus.COMPLETED.value)
    _, session, machine = _open(db, user, session_id)
    summary = machine.finish(confirm=confirm)
    persist(db, session, machine)
    db.commit()
    db.refresh(session)
    logger.info(
        "Session %s finished: %s/%s correct", session.id, summary.correct, summary.total
    )
    return serialize_session(session, machine)


def _apply_bulk(machine: ExamMachine, answers: list[Any]) -> None:
    keys = {question.id: question for question in machine.questions}
    for item in answers:
        question = keys.get(item.questionId)
        if question is None:
            logger.warning("Ignoring answer for unknown question %s", item.questionId)
            continue
        try:
            response = response_from_legacy(question.type, item.answers)
        except (ValueError, TypeError) as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid answer for question {item.questionId}",
            ) from e
        machine.answer(response, item.timeSpent, question_id=question.id)


def _bulk_result(summary: ExamSummary) -> dict[str, Any]:
    return {
        "success": True,
        "score": summary.percentage,
        "correctCount": summary.correct,
        "totalQuestions": summary.total,
        "answeredCount": summary.answered,
        "skippedCount": summary.skipped,
    }


def submit_answers(db: DbSession, user: User, session_id: str, answers: list[Any]) -> dict[str, Any]:
    """
    Grade and store a whole submission at once, then complete the attempt.

    Previously stored answers are replaced. Questions missing from the
    submission are stored as skipped; the score is over every question of the
    test.
    """
    if is_preview_id(session_id):
        test = load_preview_test(db, user, session_id)
        machine = ExamMachine(question_keys(test), test.time_limit)
        machine.start()
        _apply_bulk(machine, answers)
        return {**_bulk_result(machine.finish(confirm=True)), "isAdminPreview": True}

    _, session, machine = _open(db, user, session_id)
    if machine.phase is not ExamPhase.IN_PROGRESS:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Session is already finished")
    session.answers.clear()
    db.flush()
    machine.answers.clear()
    _apply_bulk(machine, answers)
    summary = machine.finish(confirm=True)
    persist(db, session, machine)
    db.commit()
    db.refresh(session)
    return {**_bulk_result(summary), "data": serialize_session(session, machine)}


def attempt_history(db: DbSession, user: User, test_id: str) -> dict[str, Any]:
    """Every attempt of the user at a test, newest first, with totals."""
    test = db.get(Test, test_id)
    if test is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Test not found")
    sessions = db.execute(
        select(TestSession)
        .where(TestSession.test_id == test_id, TestSession.user_id == user.id)
        .options(selectinload(TestSession.answers))
        .order_by(TestSession.started_at.desc())
    ).scalars().all()

    total_questions = len(test.test_questions)
    attempts = []
    for session in sessions:
        answered = [a for a in session.answers if not a.is_skipped]
        attempts.append(
            {
                "id": session.id,
                "startedAt": isoformat(session.started_at),
                "endedAt": isoformat(session.ended_at),
                "status": session.status,
                "score": session.score,
                "timeSpent": session.time_spent,
                "totalQuestions": session.total_questions or total_questions,
                "correctAnswers": sum(1 for a in answered if a.is_correct),
                "answeredCount": len(answered),
                "skippedCount": (session.total_questions or total_questions) - len(answered),
            }
        )
    finished = [a for a in attempts if a["status"] != SessionStatus.IN_PROGRESS.value]
    scores = [a["score"] for a in finished]
    return {
        "test": {
            "id": test.id,
            "title": test.title,
            "description": test.description,
            "timeLimit": test.time_limit,
            "totalQuestions": total_questions,
        },
        "attempts": attempts,
        "summary": {
            "totalAttempts": len(attempts),
            "completedAttempts": len(finished),
            "bestScore": max(scores) if scores else 0,
            "averageScore": round(sum(scores) / len(scores)) if scores else 0,
            "lastAttempt": attempts[0]["startedAt"] if attempts else None,
        },
    }


def expire_overdue_sessions(db: DbSession) -> int:
    """Mark every in-progress session past its deadline as expired."""
    expired = 0
    sessions = db.execute(
        select(TestSession)
        .where(TestSession.status == SessionStatus.IN_PROGRESS.value)
        .options(selectinload(TestSession.answers))
    ).scalars().all()
    for session in sessions:
        test = load_test(db, session.test_id)
        machine = build_machine(test, session)
        machine.sync_clock()
        if machine.phase is ExamPhase.COMPLETED:
            persist(db, session, machine)
            expired += 1
    db.commit()
    return expired
