"""
Answer keys and grading for all six question types.

A `QuestionKey` is the grading-relevant view of a question, independent of
the database models, so the exam machine can run on plain data.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from certprep.exam.errors import ResponseTypeMismatch
from certprep.exam.responses import (
    DragDropResponse,
    MatchingResponse,
    Response,
    SequenceResponse,
    normalize_type_name,
)

SELECTION_TYPES = ("single-choice", "true-false")


@dataclass(frozen=True)
class ChoiceOption:
    id: str
    is_correct: bool = False


@dataclass(frozen=True)
class QuestionKey:
    id: str
    type: str
    options: tuple[ChoiceOption, ...] = ()
    # match item id -> right text
    match_pairs: Mapping[str, str] = field(default_factory=dict)
    # sequence item ids in correct order
    sequence: tuple[str, ...] = ()
    # drag-drop item id -> target zone
    zones: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", normalize_type_name(self.type))

    @property
    def correct_ids(self) -> set[str]:
        return {option.id for option in self.options if option.is_correct}

    @classmethod
    def from_question(cls, question: Any) -> "QuestionKey":
        """Build a key from a Question row (or anything shaped like one)."""
        return cls(
            id=str(question.id),
            type=question.type,
            options=tuple(
                ChoiceOption(id=str(answer.id), is_correct=bool(answer.is_correct))
                for answer in question.answers
            ),
            match_pairs={str(item.id): item.right_text for item in question.match_items},
            sequence=tuple(
                str(item.id)
                for item in sorted(
                    question.sequence_items, key=lambda item: item.correct_position
                )
            ),
            zones={str(item.id): item.target_zone for item in question.drag_drop_items},
        )


def grade(key: QuestionKey, response: Response | None) -> bool | None:
    """
    Grade a response against its key.

    Returns None when nothing was answered, otherwise whether the response is
    fully correct. Partial credit is not given.
    """
    if response is None or response.is_empty():
        return None
    if response.type != key.type:
        raise ResponseTypeMismatch(
            f"Question {key.id} is {key.type}, got a {response.type} response"
        )
    if key.type in SELECTION_TYPES:
        return _grade_single(key, response.selected)
    if key.type == "multiple-choice":
        return _grade_multiple(key, response.selected)
    if isinstance(response, MatchingResponse):
        return dict(response.pairs) == dict(key.match_pairs)
    if isinstance(response, SequenceResponse):
        return list(response.order) == list(key.sequence)
    if isinstance(response, DragDropResponse):
        return dict(response.placements) == dict(key.zones)
    raise ResponseTypeMismatch(f"Unsupported question type: {key.type}")


def _grade_single(key: QuestionKey, selected: list[str]) -> bool:
    correct = key.correct_ids
    if len(selected) != 1 or len(correct) != 1:
        return False
    return selected[0] in correct


def _grade_multiple(key: QuestionKey, selected: list[str]) -> bool:
    return set(selected) == key.correct_ids


def percentage(correct: int, total: int) -> int:
    """round(100 * correct / total), halves rounded up; 0 for an empty test."""
    if total <= 0:
        return 0
    return (200 * correct + total) // (2 * total)
