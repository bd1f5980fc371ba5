"""Pydantic models for admin catalog management."""
from decimal import Decimal

from pydantic import BaseModel, Field


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    description: str | None = None


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=120)
    description: str | None = None


class AnswerIn(BaseModel):
    """Plain choice."""

    text: str = Field(..., min_length=1)
    isCorrect: bool = False


class MatchItemIn(BaseModel):
    leftText: str = Field(..., min_length=1)
    rightText: str = Field(..., min_length=1)


class SequenceItemIn(BaseModel):
    text: str = Field(..., min_length=1)
    correctPosition: int = Field(..., ge=1)


class DragDropItemIn(BaseModel):
    content: str = Field(..., min_length=1)
    targetZone: str = Field(..., min_length=1)


class QuestionCreate(BaseModel):
    """
    New question. Only the answer list matching `type` may be given:
    `answers` for choice types, `matchItems`, `sequenceItems` or
    `dragDropItems` otherwise.
    """

    text: str = Field(..., min_length=1)
    type: str
    mediaUrl: str | None = None
    categoryId: str | None = None
    difficulty: str | None = "medium"
    points: int = Field(1, ge=0)
    explanation: str | None = None
    answers: list[AnswerIn] | None = None
    matchItems: list[MatchItemIn] | None = None
    sequenceItems: list[SequenceItemIn] | None = None
    dragDropItems: list[DragDropItemIn] | None = None
    # Append the new question to this test
    testId: str | None = None


class QuestionUpdate(BaseModel):
    """Partial update; answer lists, when given, replace the existing ones."""

    text: str | None = Field(None, min_length=1)
    type: str | None = None
    mediaUrl: str | None = None
    categoryId: str | None = None
    difficulty: str | None = None
    points: int | None = Field(None, ge=0)
    explanation: str | None = None
    answers: list[AnswerIn] | None = None
    matchItems: list[MatchItemIn] | None = None
    sequenceItems: list[SequenceItemIn] | None = None
    dragDropItems: list[DragDropItemIn] | None = None


class TestCreate(BaseModel):
    """Model for creating a new test."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    instructions: str | None = None
    timeLimit: int = Field(..., gt=0)
    categoryIds: list[str] = Field(default_factory=list)
    isActive: bool = True
    price: Decimal = Field(Decimal("0"), ge=0)
    currency: str = Field("USD", min_length=3, max_length=3)
    isFree: bool = True
    allowBackwardNavigation: bool = True
    selectedQuestions: list[str] = Field(default_factory=list)


class TestUpdate(BaseModel):
    """Model for updating test metadata."""

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    instructions: str | None = None
    timeLimit: int | None = Field(None, gt=0)
    isActive: bool | None = None
    price: Decimal | None = Field(None, ge=0)
    currency: str | None = Field(None, min_length=3, max_length=3)
    isFree: bool | None = None
    allowBackwardNavigation: bool | None = None


class TestCategoriesUpdate(BaseModel):
    categoryIds: list[str]


class TestQuestionsAdd(BaseModel):
    questionIds: list[str] = Field(..., min_length=1)


class PositionUpdate(BaseModel):
    position: int = Field(..., ge=0)


class TestImport(TestCreate):
    """A test together with inline question definitions (CLI/JSON import)."""

    questions: list[QuestionCreate] = Field(default_factory=list)
