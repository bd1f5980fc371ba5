"""Exam-taking core: typed responses, grading, timer and the attempt state machine."""
from certprep.exam.errors import (
    ConfirmationRequired,
    ExamError,
    InvalidNavigation,
    InvalidTransition,
    ResponseTypeMismatch,
    UnknownQuestion,
)
from certprep.exam.grading import ChoiceOption, QuestionKey, grade, percentage
from certprep.exam.machine import (
    ExamMachine,
    ExamPhase,
    ExamSummary,
    QuestionResult,
    RecordedAnswer,
)
from certprep.exam.responses import Response, parse_response, response_from_legacy
from certprep.exam.timer import CountdownTimer, format_time, format_time_limit

__all__ = [
    "ConfirmationRequired",
    "ExamError",
    "InvalidNavigation",
    "InvalidTransition",
    "ResponseTypeMismatch",
    "UnknownQuestion",
    "ChoiceOption",
    "QuestionKey",
    "grade",
    "percentage",
    "ExamMachine",
    "ExamPhase",
    "ExamSummary",
    "QuestionResult",
    "RecordedAnswer",
    "Response",
    "parse_response",
    "response_from_legacy",
    "CountdownTimer",
    "format_time",
    "format_time_limit",
]
