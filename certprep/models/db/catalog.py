"""
Catalog models: categories, tests, questions and the per-type answer records.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy import Column, ForeignKey, String, Table, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from certprep.database import Base

if TYPE_CHECKING:
    from certprep.models.db.purchase import UserTestPurchase
    from certprep.models.db.session import TestSession


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class QuestionType(str, enum.Enum):
    """Supported question types."""

    SINGLE_CHOICE = "single-choice"
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    MATCHING = "matching"
    SEQUENCE = "sequence"
    DRAG_DROP = "drag-drop"

    @classmethod
    def normalize(cls, value: str) -> "QuestionType":
        """Accept both `single-choice` and `single_choice` spellings."""
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower().replace("_", "-"))


CHOICE_TYPES = frozenset(
    {QuestionType.SINGLE_CHOICE, QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE}
)


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


test_categories = Table(
    "test_categories",
    Base.metadata,
    Column("test_id", ForeignKey("tests.id", ondelete="CASCADE"), primary_key=True),
    Column("category_id", ForeignKey("categories.id", ondelete="CASCADE"), primary_key=True),
)


class Category(Base):
    """Certification area used to group questions and tests."""

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_now, onupdate=_now, nullable=False
    )

    tests: Mapped[list["Test"]] = relationship(
        "Test", secondary=test_categories, back_populates="categories"
    )
    questions: Mapped[list["Question"]] = relationship(
        "Question", back_populates="category"
    )


class Test(Base):
    """
    A practice exam: ordered questions answered under a time limit.
    Paid tests (price > 0 or is_free false) require a purchase.
    """

    __tablename__ = "tests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Seconds
    time_limit: Mapped[int] = mapped_column(nullable=False)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    price: Mapped[Decimal] = mapped_column(
        sa.Numeric(10, 2), default=Decimal("0"), nullable=False
    )
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    is_free: Mapped[bool] = mapped_column(default=True, nullable=False)
    allow_backward_navigation: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_by: Mapped[int | None] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_now, onupdate=_now, nullable=False
    )

    categories: Mapped[list["Category"]] = relationship(
        "Category", secondary=test_categories, back_populates="tests"
    )
    test_questions: Mapped[list["TestQuestion"]] = relationship(
        "TestQuestion",
        back_populates="test",
        order_by="TestQuestion.position",
        cascade="all, delete-orphan",
    )
    sessions: Mapped[list["TestSession"]] = relationship(
        "TestSession", back_populates="test", cascade="all, delete-orphan"
    )
    purchases: Mapped[list["UserTestPurchase"]] = relationship(
        "UserTestPurchase", back_populates="test", cascade="all, delete-orphan"
    )

    @property
    def questions(self) -> list["Question"]:
        """Questions in exam order."""
        return [link.question for link in self.test_questions]

    @property
    def requires_purchase(self) -> bool:
        return not (self.is_free and (self.price or 0) == 0)


class TestQuestion(Base):
    """Ordered membership of a question in a test."""

    __tablename__ = "test_questions"

    id: Mapped[int] = mapped_column(primary_key=True)
    test_id: Mapped[str] = mapped_column(
        ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("test_id", "question_id", name="uq_test_question"),
    )

    test: Mapped["Test"] = relationship("Test", back_populates="test_questions")
    question: Mapped["Question"] = relationship("Question", back_populates="test_links")


class Question(Base):
    """
    A question plus its type-specific answer records.
    Only the record list matching `type` is populated.
    """

    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    media_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    category_id: Mapped[str | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True
    )
    difficulty: Mapped[str | None] = mapped_column(String(10), nullable=True)
    points: Mapped[int] = mapped_column(default=1, nullable=False)
    explanation: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[int | None] = mapped_column(
        ForeignKey("profiles.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=_now, onupdate=_now, nullable=False
    )

    category: Mapped["Category | None"] = relationship(
        "Category", back_populates="questions"
    )
    answers: Mapped[list["Answer"]] = relationship(
        "Answer",
        back_populates="question",
        order_by="Answer.position",
        cascade="all, delete-orphan",
    )
    match_items: Mapped[list["MatchItem"]] = relationship(
        "MatchItem", back_populates="question", cascade="all, delete-orphan"
    )
    sequence_items: Mapped[list["SequenceItem"]] = relationship(
        "SequenceItem",
        back_populates="question",
        order_by="SequenceItem.correct_position",
        cascade="all, delete-orphan",
    )
    drag_drop_items: Mapped[list["DragDropItem"]] = relationship(
        "DragDropItem", back_populates="question", cascade="all, delete-orphan"
    )
    test_links: Mapped[list["TestQuestion"]] = relationship(
        "TestQuestion", back_populates="question", cascade="all, delete-orphan"
    )

    @property
    def question_type(self) -> QuestionType:
        return QuestionType.normalize(self.type)


class Answer(Base):
    """Plain choice for single-choice, multiple-choice and true-false."""

    __tablename__ = "answers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    is_correct: Mapped[bool] = mapped_column(default=False, nullable=False)
    position: Mapped[int] = mapped_column(default=0, nullable=False)

    question: Mapped["Question"] = relationship("Question", back_populates="answers")


class MatchItem(Base):
    """Left/right pair for matching questions."""

    __tablename__ = "match_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    left_text: Mapped[str] = mapped_column(Text, nullable=False)
    right_text: Mapped[str] = mapped_column(Text, nullable=False)

    question: Mapped["Question"] = relationship("Question", back_populates="match_items")


class SequenceItem(Base):
    """Item of a sequence question with its correct 1-based position."""

    __tablename__ = "sequence_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    text: Mapped[str] = mapped_column(Text, nullable=False)
    correct_position: Mapped[int] = mapped_column(nullable=False)

    question: Mapped["Question"] = relationship("Question", back_populates="sequence_items")


class DragDropItem(Base):
    """Draggable content and the zone it belongs in."""

    __tablename__ = "drag_drop_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    target_zone: Mapped[str] = mapped_column(String(255), nullable=False)

    question: Mapped["Question"] = relationship("Question", back_populates="drag_drop_items")
