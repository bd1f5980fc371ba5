"""
Exam-taking state machine.

    idle --start--> in-progress --finish / time up--> completed --retry--> idle

While in progress the machine tracks the current question index, one
recorded answer per question (graded as it is recorded), flagged questions
and a countdown timer. It holds no I/O; `certprep.services.exam_service`
persists it between requests.
"""
from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Sequence

from certprep.exam.errors import (
    ConfirmationRequired,
    InvalidNavigation,
    InvalidTransition,
    UnknownQuestion,
)
from certprep.exam.grading import QuestionKey, grade, percentage
from certprep.exam.responses import Response
from certprep.exam.timer import CountdownTimer
from certprep.utils.time_utils import ensure_aware, seconds_between, utc_now

logger = logging.getLogger(__name__)


class ExamPhase(str, enum.Enum):
    IDLE = "idle"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


@dataclass
class RecordedAnswer:
    question_id: str
    response: Response | None
    is_correct: bool | None
    time_spent: int = 0

    @property
    def answered(self) -> bool:
        return self.response is not None and not self.response.is_empty()


@dataclass
class QuestionResult:
    question_id: str
    question_type: str
    answered: bool
    is_correct: bool
    time_spent: int
    flagged: bool

    def as_dict(self) -> dict[str, Any]:
        return {
            "questionId": self.question_id,
            "questionType": self.question_type,
            "answered": self.answered,
            "isCorrect": self.is_correct,
            "timeSpent": self.time_spent,
            "flagged": self.flagged,
        }


@dataclass
class ExamSummary:
    total: int
    answered: int
    correct: int
    time_spent: int
    expired: bool = False
    results: list[QuestionResult] = field(default_factory=list)

    @property
    def percentage(self) -> int:
        return percentage(self.correct, self.total)

    @property
    def skipped(self) -> int:
        return self.total - self.answered

    @property
    def incorrect(self) -> int:
        return self.answered - self.correct

    def as_dict(self) -> dict[str, Any]:
        return {
            "totalQuestions": self.total,
            "answeredCount": self.answered,
            "skippedCount": self.skipped,
            "correctAnswers": self.correct,
            "incorrectAnswers": self.incorrect,
            "percentage": self.percentage,
            "timeSpent": self.time_spent,
            "expired": self.expired,
            "results": [result.as_dict() for result in self.results],
        }


class ExamMachine:
    """Drives one attempt at a test."""

    def __init__(
        self,
        questions: Sequence[QuestionKey],
        time_limit: int,
        allow_backward_navigation: bool = True,
        on_low_time: Callable[[int], None] | None = None,
    ) -> None:
        if time_limit <= 0:
            raise ValueError("time_limit must be a positive number of seconds")
        ids = [question.id for question in questions]
        if len(set(ids)) != len(ids):
            raise ValueError("Duplicate question ids in test")
        self.questions = list(questions)
        self._by_id = {question.id: question for question in self.questions}
        self.time_limit = int(time_limit)
        self.allow_backward_navigation = allow_backward_navigation
        self._on_low_time = on_low_time
        self.phase = ExamPhase.IDLE
        self._reset()

    @classmethod
    def restore(
        cls,
        questions: Sequence[QuestionKey],
        time_limit: int,
        *,
        phase: ExamPhase | str,
        started_at: datetime | None = None,
        ended_at: datetime | None = None,
        current_index: int = 0,
        answers: Iterable[RecordedAnswer] = (),
        flagged: Iterable[str] = (),
        expired: bool = False,
        allow_backward_navigation: bool = True,
    ) -> "ExamMachine":
        """Rebuild a machine from persisted state."""
        machine = cls(questions, time_limit, allow_backward_navigation)
        machine.phase = ExamPhase(phase)
        machine.started_at = ensure_aware(started_at)
        machine.ended_at = ensure_aware(ended_at)
        machine.expired = expired
        if machine.questions:
            machine.current_index = min(max(0, current_index), len(machine.questions) - 1)
        for recorded in answers:
            if recorded.question_id in machine._by_id:
                machine.answers[recorded.question_id] = recorded
        machine.flagged = {qid for qid in flagged if qid in machine._by_id}
        if machine.phase is ExamPhase.IN_PROGRESS:
            machine.timer = machine._make_timer()
        return machine

    def _reset(self) -> None:
        self.current_index = 0
        self.answers: dict[str, RecordedAnswer] = {}
        self.flagged: set[str] = set()
        self.started_at: datetime | None = None
        self.ended_at: datetime | None = None
        self.expired = False
        self.timer: CountdownTimer | None = None

    def _require(self, phase: ExamPhase, action: str) -> None:
        if self.phase is not phase:
            raise InvalidTransition(f"Cannot {action} while {self.phase.value}")

    def _make_timer(self) -> CountdownTimer:
        return CountdownTimer(
            self.time_limit,
            on_time_up=self._on_timer_expired,
            on_low_time=self._on_low_time,
        )

    # Transitions

    def start(self, now: datetime | None = None) -> None:
        self._require(ExamPhase.IDLE, "start")
        self._reset()
        self.started_at = ensure_aware(now) or utc_now()
        self.phase = ExamPhase.IN_PROGRESS
        self.timer = self._make_timer()

    def finish(self, confirm: bool = False, now: datetime | None = None) -> ExamSummary:
        """Complete the attempt; unanswered questions need `confirm=True`."""
        self._require(ExamPhase.IN_PROGRESS, "finish")
        missing = self.unanswered()
        if missing and not confirm:
            raise ConfirmationRequired(missing)
        return self._complete(expired=False, now=now)

    def time_up(self, now: datetime | None = None) -> ExamSummary:
        self._require(ExamPhase.IN_PROGRESS, "expire")
        return self._complete(expired=True, now=now or self.deadline)

    def retry(self) -> None:
        self._require(ExamPhase.COMPLETED, "retry")
        self._reset()
        self.phase = ExamPhase.IDLE

    def _complete(self, expired: bool, now: datetime | None) -> ExamSummary:
        self.ended_at = ensure_aware(now) or utc_now()
        self.expired = expired
        self.phase = ExamPhase.COMPLETED
        summary = self.summary()
        logger.debug(
            "Exam completed: %s/%s correct, expired=%s",
            summary.correct,
            summary.total,
            expired,
        )
        return summary

    def _on_timer_expired(self) -> None:
        if self.phase is ExamPhase.IN_PROGRESS:
            self._complete(expired=True, now=self.deadline)

    # Navigation

    @property
    def current_question(self) -> QuestionKey | None:
        if not self.questions:
            return None
        return self.questions[self.current_index]

    def go_to(self, index: int) -> QuestionKey:
        self._require(ExamPhase.IN_PROGRESS, "navigate")
        if not 0 <= index < len(self.questions):
            raise InvalidNavigation(f"Question index {index} out of range")
        if index < self.current_index and not self.allow_backward_navigation:
            raise InvalidNavigation("Backward navigation is disabled for this test")
        self.current_index = index
        return self.questions[index]

    def next(self, confirm: bool = False) -> ExamSummary | None:
        """Move forward; on the last question this finishes the attempt."""
        self._require(ExamPhase.IN_PROGRESS, "navigate")
        if self.current_index < len(self.questions) - 1:
            self.current_index += 1
            return None
        return self.finish(confirm=confirm)

    def previous(self) -> int:
        self._require(ExamPhase.IN_PROGRESS, "navigate")
        if self.current_index > 0 and self.allow_backward_navigation:
            self.current_index -= 1
        return self.current_index

    # Answers and flags

    def _question(self, question_id: str | None) -> QuestionKey:
        if question_id is None:
            question = self.current_question
            if question is None:
                raise UnknownQuestion("Test has no questions")
            return question
        try:
            return self._by_id[question_id]
        except KeyError:
            raise UnknownQuestion(f"Question {question_id} is not part of this test") from None

    def answer(
        self,
        response: Response | None,
        time_spent: int = 0,
        question_id: str | None = None,
    ) -> RecordedAnswer:
        """Record (or overwrite) the answer for a question, the current one by default."""
        self._require(ExamPhase.IN_PROGRESS, "answer")
        question = self._question(question_id)
        is_correct = grade(question, response)
        previous = self.answers.get(question.id)
        spent = (previous.time_spent if previous else 0) + max(0, int(time_spent))
        if response is not None and response.is_empty():
            response = None
        recorded = RecordedAnswer(question.id, response, is_correct, spent)
        self.answers[question.id] = recorded
        return recorded

    def toggle_flag(self, question_id: str | None = None) -> bool:
        """Flag or unflag a question; returns whether it is now flagged."""
        self._require(ExamPhase.IN_PROGRESS, "flag")
        question = self._question(question_id)
        if question.id in self.flagged:
            self.flagged.discard(question.id)
            return False
        self.flagged.add(question.id)
        return True

    def unanswered(self) -> list[str]:
        return [
            question.id
            for question in self.questions
            if not (question.id in self.answers and self.answers[question.id].answered)
        ]

    # Time

    @property
    def deadline(self) -> datetime | None:
        if self.started_at is None:
            return None
        return self.started_at + timedelta(seconds=self.time_limit)

    def tick(self, seconds: int = 1) -> int:
        """Advance the internal timer; completes the attempt at zero."""
        self._require(ExamPhase.IN_PROGRESS, "tick")
        return self.timer.tick(seconds)

    def sync_clock(self, now: datetime | None = None) -> int:
        """Align the timer with wall-clock time since start; may expire the attempt."""
        if self.phase is not ExamPhase.IN_PROGRESS:
            return 0
        remaining = self.remaining(now)
        return self.timer.sync(remaining)

    def remaining(self, now: datetime | None = None) -> int:
        if self.phase is not ExamPhase.IN_PROGRESS or self.started_at is None:
            return 0
        return CountdownTimer.remaining_at(self.started_at, self.time_limit, now or utc_now())

    @property
    def time_spent(self) -> int:
        elapsed = seconds_between(self.started_at, self.ended_at)
        if elapsed is not None:
            return min(max(0, elapsed), self.time_limit)
        return sum(recorded.time_spent for recorded in self.answers.values())

    # Results

    def summary(self) -> ExamSummary:
        results = []
        for question in self.questions:
            recorded = self.answers.get(question.id)
            answered = recorded is not None and recorded.answered
            results.append(
                QuestionResult(
                    question_id=question.id,
                    question_type=question.type,
                    answered=answered,
                    is_correct=bool(answered and recorded.is_correct),
                    time_spent=recorded.time_spent if recorded else 0,
                    flagged=question.id in self.flagged,
                )
            )
        return ExamSummary(
            total=len(results),
            answered=sum(1 for result in results if result.answered),
            correct=sum(1 for result in results if result.is_correct),
            time_spent=self.time_spent,
            expired=self.expired,
            results=results,
        )
