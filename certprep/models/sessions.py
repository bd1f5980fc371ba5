"""Exam session request models."""
from typing import Any

from pydantic import BaseModel, Field, model_validator

from certprep.exam.responses import Response, normalize_payload


class SessionStartRequest(BaseModel):
    testId: str = Field(..., min_length=1)


class SessionUpdateRequest(BaseModel):
    """Partial session update: move to a question or finish/expire the attempt."""

    sessionId: str = Field(..., min_length=1)
    status: str | None = None
    currentQuestionIndex: int | None = Field(None, ge=0)


class AnswerSubmission(BaseModel):
    """A typed response to one question."""

    questionId: str = Field(..., min_length=1)
    response: Response
    timeSpent: int = Field(0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _normalize_response_type(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("response"), dict):
            data = dict(data)
            data["response"] = normalize_payload(data["response"])
        return data


class FlagRequest(BaseModel):
    questionId: str = Field(..., min_length=1)


class FinishRequest(BaseModel):
    confirm: bool = False


class BulkAnswerItem(BaseModel):
    """One entry of a whole-test submission; `answers` is the untyped payload."""

    questionId: str = Field(..., min_length=1)
    answers: list[str] | dict[str, str] | None = None
    timeSpent: int = Field(0, ge=0)


class BulkAnswersRequest(BaseModel):
    sessionId: str = Field(..., min_length=1)
    answers: list[BulkAnswerItem]
