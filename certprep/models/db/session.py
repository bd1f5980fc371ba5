"""
TestSession and UserAnswer database models for exam attempts.
"""

from __future__ import annotations

import enum
import json
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from sqlalchemy import ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from certprep.database import Base

if TYPE_CHECKING:
    from certprep.models.db.catalog import Test
    from certprep.models.db.user import User


class SessionStatus(str, enum.Enum):
    """Status of an exam attempt."""

    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    EXPIRED = "expired"


class TestSession(Base):
    """
    One user's timed attempt at a test.
    Holds the persisted state of the exam machine between requests.
    """

    __tablename__ = "test_sessions"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    test_id: Mapped[str] = mapped_column(
        ForeignKey("tests.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), index=True, nullable=False
    )

    # Timing
    started_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    ended_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    # Seconds
    time_spent: Mapped[int] = mapped_column(default=0, nullable=False)

    # Status and results
    status: Mapped[str] = mapped_column(
        String(20), default=SessionStatus.IN_PROGRESS.value, nullable=False, index=True
    )
    score: Mapped[int] = mapped_column(default=0, nullable=False)
    total_questions: Mapped[int] = mapped_column(default=0, nullable=False)
    correct_answers: Mapped[int] = mapped_column(default=0, nullable=False)

    # Navigation state
    current_question_index: Mapped[int] = mapped_column(default=0, nullable=False)
    flagged_json: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    test: Mapped["Test"] = relationship("Test", back_populates="sessions")
    user: Mapped["User"] = relationship("User", back_populates="test_sessions")
    answers: Mapped[list["UserAnswer"]] = relationship(
        "UserAnswer", back_populates="session", cascade="all, delete-orphan"
    )

    @property
    def flagged(self) -> list[str]:
        """Parse flagged question ids from JSON."""
        if not self.flagged_json:
            return []
        try:
            return list(json.loads(self.flagged_json))
        except (json.JSONDecodeError, TypeError):
            return []

    @flagged.setter
    def flagged(self, value: list[str] | None) -> None:
        """Serialize flagged question ids to JSON."""
        self.flagged_json = json.dumps(sorted(value)) if value else None

    @property
    def is_in_progress(self) -> bool:
        return self.status == SessionStatus.IN_PROGRESS.value


class UserAnswer(Base):
    """
    A recorded response to one question within a session.
    is_correct is None for skipped questions.
    """

    __tablename__ = "user_answers"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    test_session_id: Mapped[str] = mapped_column(
        ForeignKey("test_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id: Mapped[str] = mapped_column(
        ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True
    )

    response_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_correct: Mapped[bool | None] = mapped_column(nullable=True)
    # Seconds
    time_spent: Mapped[int] = mapped_column(default=0, nullable=False)
    answered_at: Mapped[datetime | None] = mapped_column(
        sa.DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("test_session_id", "question_id", name="uq_session_question"),
    )

    session: Mapped["TestSession"] = relationship("TestSession", back_populates="answers")

    @property
    def response(self) -> dict[str, Any] | None:
        """Parse the stored response payload."""
        if not self.response_json:
            return None
        try:
            return json.loads(self.response_json)
        except (json.JSONDecodeError, TypeError):
            return None

    @response.setter
    def response(self, value: dict[str, Any] | None) -> None:
        self.response_json = json.dumps(value) if value else None

    @property
    def is_skipped(self) -> bool:
        return self.is_correct is None
