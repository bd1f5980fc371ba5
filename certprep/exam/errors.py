"""Exam state machine errors."""


class ExamError(Exception):
    """Base class for exam-flow errors."""


class InvalidTransition(ExamError):
    """The requested action is not allowed in the current phase."""


class InvalidNavigation(ExamError, IndexError):
    """Question index outside the test."""


class ResponseTypeMismatch(ExamError, ValueError):
    """A response was submitted for a question of a different type."""


class UnknownQuestion(ExamError, KeyError):
    """Question id is not part of the test."""


class ConfirmationRequired(ExamError):
    """Finishing would leave questions unanswered; the caller must confirm."""

    def __init__(self, unanswered: list[str]):
        self.unanswered = list(unanswered)
        super().__init__(
            f"{len(self.unanswered)} question(s) unanswered; confirm to finish"
        )
