import pytest

from certprep.exam import (
    ChoiceOption,
    QuestionKey,
    ResponseTypeMismatch,
    grade,
    parse_response,
    percentage,
    response_from_legacy,
)


def _single() -> QuestionKey:
    return QuestionKey(
        id="q1",
        type="single-choice",
        options=(ChoiceOption("a", True), ChoiceOption("b"), ChoiceOption("c")),
    )


def _multiple() -> QuestionKey:
    return QuestionKey(
        id="q2",
        type="multiple-choice",
        options=(ChoiceOption("x", True), ChoiceOption("y", True), ChoiceOption("z")),
    )


def test_single_choice_requires_exactly_the_correct_option() -> None:
    key = _single()
    assert grade(key, parse_response({"type": "single-choice", "selected": ["a"]})) is True
    assert grade(key, parse_response({"type": "single-choice", "selected": ["b"]})) is False
    assert grade(key, parse_response({"type": "single-choice", "selected": ["a", "b"]})) is False


def test_multiple_choice_uses_set_equality() -> None:
    key = _multiple()
    assert grade(key, parse_response({"type": "multiple-choice", "selected": ["y", "x"]})) is True
    assert grade(key, parse_response({"type": "multiple-choice", "selected": ["x"]})) is False
    assert grade(key, parse_response({"type": "multiple-choice", "selected": ["x", "y", "z"]})) is False


def test_empty_response_is_ungraded() -> None:
    assert grade(_single(), None) is None
    assert grade(_single(), parse_response({"type": "single-choice", "selected": []})) is None


def test_matching_sequence_and_drag_drop() -> None:
    matching = QuestionKey(id="m", type="matching", match_pairs={"l1": "R1", "l2": "R2"})
    assert grade(matching, parse_response({"type": "matching", "pairs": {"l2": "R2", "l1": "R1"}}))
    assert not grade(matching, parse_response({"type": "matching", "pairs": {"l1": "R2", "l2": "R1"}}))

    sequence = QuestionKey(id="s", type="sequence", sequence=("s1", "s2", "s3"))
    assert grade(sequence, parse_response({"type": "sequence", "order": ["s1", "s2", "s3"]}))
    assert not grade(sequence, parse_response({"type": "sequence", "order": ["s2", "s1", "s3"]}))

    drag = QuestionKey(id="d", type="drag_drop", zones={"i1": "A", "i2": "B"})
    assert drag.type == "drag-drop"
    assert grade(drag, parse_response({"type": "drag_drop", "placements": {"i1": "A", "i2": "B"}}))
    assert not grade(drag, parse_response({"type": "drag-drop", "placements": {"i1": "A"}}))


def test_type_mismatch_is_rejected() -> None:
    with pytest.raises(ResponseTypeMismatch):
        grade(_single(), parse_response({"type": "sequence", "order": ["a"]}))


def test_legacy_answers_are_converted() -> None:
    response = response_from_legacy("multiple_choice", ["x", "y"])
    assert response.type == "multiple-choice"
    assert grade(_multiple(), response) is True
    assert response_from_legacy("single-choice", "a").selected == ["a"]
    assert response_from_legacy("matching", None).is_empty()
    with pytest.raises(ValueError):
        response_from_legacy("essay", [])


def test_percentage_rounds_half_up() -> None:
    assert percentage(1, 2) == 50
    assert percentage(2, 3) == 67
    assert percentage(1, 8) == 13
    assert percentage(0, 0) == 0
    assert percentage(3, 3) == 100
