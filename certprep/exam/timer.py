"""Countdown timer for timed exams."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from certprep.config import LOW_TIME_WARNING_SECONDS
from certprep.utils.time_utils import ensure_aware

logger = logging.getLogger(__name__)


class CountdownTimer:
    """
    Counts down from `initial_time` seconds in ticks.

    `on_low_time` fires once when the remaining time first drops to the
    warning threshold; `on_time_up` fires once when it reaches zero. Remaining
    time never goes below zero.
    """

    def __init__(
        self,
        initial_time: int,
        on_time_up: Callable[[], None] | None = None,
        on_low_time: Callable[[int], None] | None = None,
        warning_at: int = LOW_TIME_WARNING_SECONDS,
    ) -> None:
        if initial_time < 0:
            raise ValueError("initial_time must not be negative")
        self.initial_time = int(initial_time)
        self.remaining = int(initial_time)
        self.warning_at = warning_at
        self._on_time_up = on_time_up
        self._on_low_time = on_low_time
        self.warned = False
        self.expired = False
        self._evaluate()

    def tick(self, seconds: int = 1) -> int:
        """Advance the clock; returns remaining seconds."""
        if self.expired:
            return 0
        self.remaining = max(0, self.remaining - seconds)
        self._evaluate()
        return self.remaining

    def sync(self, remaining: int) -> int:
        """Adopt an externally computed remaining time (never counts back up)."""
        if not self.expired:
            self.remaining = max(0, min(self.remaining, int(remaining)))
            self._evaluate()
        return self.remaining

    @property
    def progress(self) -> float:
        """Percent of the initial time still left."""
        if self.initial_time == 0:
            return 0.0
        return self.remaining / self.initial_time * 100

    @property
    def level(self) -> str:
        if self.remaining <= 60:
            return "critical"
        if self.remaining <= 120:
            return "warning"
        return "normal"

    def _evaluate(self) -> None:
        if not self.warned and 0 < self.remaining <= self.warning_at:
            self.warned = True
            logger.debug("Low time warning at %ss", self.remaining)
            if self._on_low_time is not None:
                self._on_low_time(self.remaining)
        if not self.expired and self.remaining == 0:
            self.expired = True
            if self._on_time_up is not None:
                self._on_time_up()

    @staticmethod
    def remaining_at(started_at: datetime, time_limit: int, now: datetime) -> int:
        """Seconds left of `time_limit` at `now` for an exam started at `started_at`."""
        elapsed = (ensure_aware(now) - ensure_aware(started_at)).total_seconds()
        return max(0, int(time_limit - elapsed))


def format_time(seconds: int) -> str:
    """`MM:SS`, or `H:MM:SS` past an hour."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes:02d}:{secs:02d}"


def format_time_limit(seconds: int) -> str:
    """`1h 30m` or `15m`."""
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    return f"{hours}h {minutes}m" if hours > 0 else f"{minutes}m"
