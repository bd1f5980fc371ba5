"""
Typed user responses, one variant per question type.

A response is validated into one of the models below by its `type` field:

    parse_response({"type": "multiple-choice", "selected": ["x", "y"]})
"""
from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class _SelectionResponse(BaseModel):
    selected: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.selected


class SingleChoiceResponse(_SelectionResponse):
    type: Literal["single-choice"] = "single-choice"


class MultipleChoiceResponse(_SelectionResponse):
    type: Literal["multiple-choice"] = "multiple-choice"


class TrueFalseResponse(_SelectionResponse):
    type: Literal["true-false"] = "true-false"


class MatchingResponse(BaseModel):
    type: Literal["matching"] = "matching"
    # match item id -> chosen right-hand text
    pairs: dict[str, str] = Field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.pairs


class SequenceResponse(BaseModel):
    type: Literal["sequence"] = "sequence"
    # sequence item ids in the order the user arranged them
    order: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.order


class DragDropResponse(BaseModel):
    type: Literal["drag-drop"] = "drag-drop"
    # drag-drop item id -> zone it was dropped in
    placements: dict[str, str] = Field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.placements


Response = Annotated[
    Union[
        SingleChoiceResponse,
        MultipleChoiceResponse,
        TrueFalseResponse,
        MatchingResponse,
        SequenceResponse,
        DragDropResponse,
    ],
    Field(discriminator="type"),
]

_response_adapter: TypeAdapter[Any] = TypeAdapter(Response)


def normalize_type_name(value: object) -> object:
    """`drag_drop` -> `drag-drop`; leaves non-strings alone."""
    if isinstance(value, str):
        return value.strip().lower().replace("_", "-")
    return value


def normalize_payload(payload: Any) -> Any:
    if isinstance(payload, dict) and "type" in payload:
        payload = dict(payload)
        payload["type"] = normalize_type_name(payload["type"])
    return payload


def parse_response(payload: Any) -> Response:
    """Validate a raw dict into the matching response variant."""
    return _response_adapter.validate_python(normalize_payload(payload))


def response_from_legacy(question_type: str, answers: Any) -> Response:
    """
    Build a typed response from the untyped `answers` field of bulk submissions:
    a list of ids for choice and sequence questions, a mapping for matching and
    drag-drop questions.
    """
    question_type = normalize_type_name(question_type)
    if answers is None:
        answers = []
    if question_type in ("single-choice", "multiple-choice", "true-false"):
        if isinstance(answers, str):
            answers = [answers]
        return parse_response({"type": question_type, "selected": list(answers)})
    if question_type == "sequence":
        return parse_response({"type": question_type, "order": list(answers)})
    if question_type == "matching":
        return parse_response({"type": question_type, "pairs": dict(answers or {})})
    if question_type == "drag-drop":
        return parse_response(
            {"type": question_type, "placements": dict(answers or {})}
        )
    raise ValueError(f"Unknown question type: {question_type}")
