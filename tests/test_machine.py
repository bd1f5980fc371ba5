from datetime import datetime, timedelta, timezone

import pytest

from certprep.exam import (
    ChoiceOption,
    ConfirmationRequired,
    ExamMachine,
    ExamPhase,
    InvalidNavigation,
    InvalidTransition,
    QuestionKey,
    UnknownQuestion,
    parse_response,
)

START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def _keys() -> list[QuestionKey]:
    return [
        QuestionKey(
            id="q1",
            type="single-choice",
            options=(ChoiceOption("a", True), ChoiceOption("b")),
        ),
        QuestionKey(
            id="q2",
            type="multiple-choice",
            options=(ChoiceOption("x", True), ChoiceOption("y", True), ChoiceOption("z")),
        ),
    ]


def _single(*ids: str):
    return parse_response({"type": "single-choice", "selected": list(ids)})


def _multiple(*ids: str):
    return parse_response({"type": "multiple-choice", "selected": list(ids)})


def test_half_correct_attempt_scores_fifty_percent() -> None:
    machine = ExamMachine(_keys(), time_limit=900)
    machine.start(now=START)
    machine.answer(_single("a"))
    machine.next()
    machine.answer(_multiple("x"))
    summary = machine.next()

    assert machine.phase is ExamPhase.COMPLETED
    assert summary.total == 2
    assert summary.correct == 1
    assert summary.percentage == 50


def test_navigation_preserves_answers() -> None:
    machine = ExamMachine(_keys(), time_limit=900)
    machine.start(now=START)
    machine.answer(_single("b"), time_spent=10)
    machine.go_to(1)
    machine.answer(_multiple("x", "y"))
    machine.previous()

    assert machine.current_index == 0
    assert machine.answers["q1"].response.selected == ["b"]
    assert machine.answers["q1"].time_spent == 10
    assert machine.answers["q2"].is_correct is True


def test_overwriting_an_answer_accumulates_time() -> None:
    machine = ExamMachine(_keys(), time_limit=900)
    machine.start(now=START)
    machine.answer(_single("b"), time_spent=5)
    recorded = machine.answer(_single("a"), time_spent=7)
    assert recorded.is_correct is True
    assert recorded.time_spent == 12


def test_backward_navigation_can_be_disabled() -> None:
    machine = ExamMachine(_keys(), time_limit=900, allow_backward_navigation=False)
    machine.start(now=START)
    machine.go_to(1)
    with pytest.raises(InvalidNavigation):
        machine.go_to(0)
    assert machine.previous() == 1


def test_out_of_range_and_unknown_question() -> None:
    machine = ExamMachine(_keys(), time_limit=900)
    machine.start(now=START)
    with pytest.raises(InvalidNavigation):
        machine.go_to(2)
    with pytest.raises(UnknownQuestion):
        machine.answer(_single("a"), question_id="missing")


def test_finish_with_unanswered_needs_confirmation() -> None:
    machine = ExamMachine(_keys(), time_limit=900)
    machine.start(now=START)
    machine.answer(_single("a"))
    with pytest.raises(ConfirmationRequired) as excinfo:
        machine.finish()
    assert excinfo.value.unanswered == ["q2"]
    assert machine.phase is ExamPhase.IN_PROGRESS

    summary = machine.finish(confirm=True, now=START + timedelta(seconds=42))
    assert summary.skipped == 1
    assert summary.time_spent == 42


def test_flags_toggle() -> None:
    machine = ExamMachine(_keys(), time_limit=900)
    machine.start(now=START)
    assert machine.toggle_flag("q2") is True
    assert machine.toggle_flag("q2") is False
    assert machine.toggle_flag() is True
    assert machine.flagged == {"q1"}


def test_actions_outside_an_attempt_are_rejected() -> None:
    machine = ExamMachine(_keys(), time_limit=900)
    with pytest.raises(InvalidTransition):
        machine.answer(_single("a"))
    machine.start(now=START)
    with pytest.raises(InvalidTransition):
        machine.start()
    machine.finish(confirm=True)
    with pytest.raises(InvalidTransition):
        machine.toggle_flag()
    machine.retry()
    assert machine.phase is ExamPhase.IDLE
    assert machine.answers == {}


def test_time_up_completes_the_attempt_once() -> None:
    warnings = []
    machine = ExamMachine(_keys(), time_limit=120, on_low_time=warnings.append)
    machine.start(now=START)
    machine.answer(_single("a"))
    machine.tick(60)
    machine.tick(60)

    assert machine.phase is ExamPhase.COMPLETED
    assert machine.expired is True
    assert warnings == [60]
    assert machine.summary().correct == 1
    assert machine.time_spent == 120


def test_sync_clock_expires_overdue_attempt() -> None:
    machine = ExamMachine(_keys(), time_limit=300)
    machine.start(now=START)
    assert machine.sync_clock(START + timedelta(seconds=100)) == 200
    machine.sync_clock(START + timedelta(seconds=301))
    assert machine.phase is ExamPhase.COMPLETED
    assert machine.expired is True
    assert machine.ended_at == START + timedelta(seconds=300)


def test_restore_rebuilds_state() -> None:
    machine = ExamMachine(_keys(), time_limit=300)
    machine.start(now=START)
    machine.answer(_multiple("x", "y"), question_id="q2")
    machine.toggle_flag("q1")

    restored = ExamMachine.restore(
        _keys(),
        300,
        phase="in-progress",
        started_at=START.replace(tzinfo=None),
        current_index=7,
        answers=machine.answers.values(),
        flagged=["q1", "gone"],
    )
    assert restored.current_index == 1
    assert restored.flagged == {"q1"}
    assert restored.unanswered() == ["q1"]
    assert restored.remaining(START + timedelta(seconds=30)) == 270


def test_duplicate_question_ids_rejected() -> None:
    keys = _keys()
    with pytest.raises(ValueError):
        ExamMachine([keys[0], keys[0]], time_limit=60)
    with pytest.raises(ValueError):
        ExamMachine(keys, time_limit=0)
