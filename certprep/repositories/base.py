"""
Repository ports and the read-fallback decorator.

Each entity has one port. `FallbackRepository` wraps a primary (SQL)
repository and, under `FallbackPolicy.MOCK_ON_ERROR`, answers failed reads
from a secondary (mock) repository. Methods not listed in the port's
`READS` are delegated untouched, so writes never fall back.
"""
from __future__ import annotations

import enum
import functools
import logging
from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

View = dict[str, Any]


class FallbackPolicy(str, enum.Enum):
    OFF = "off"
    MOCK_ON_ERROR = "mock"

    @classmethod
    def from_setting(cls, value: str | None) -> "FallbackPolicy":
        try:
            return cls((value or "off").strip().lower())
        except ValueError:
            logger.warning("Unknown DATA_FALLBACK %r, fallback disabled", value)
            return cls.OFF


class TestRepository(ABC):
    READS = frozenset({"list_public", "list_all", "get"})

    @abstractmethod
    def list_public(self) -> list[View]:
        """Active tests, newest first, without questions."""

    @abstractmethod
    def list_all(self) -> list[View]:
        """Every test including inactive ones."""

    @abstractmethod
    def get(self, test_id: str, with_questions: bool = True) -> View | None:
        ...


class QuestionRepository(ABC):
    READS = frozenset({"list", "get"})

    @abstractmethod
    def list(self, category_id: str | None = None, question_type: str | None = None) -> list[View]:
        ...

    @abstractmethod
    def get(self, question_id: str) -> View | None:
        ...


class CategoryRepository(ABC):
    READS = frozenset({"list", "get"})

    @abstractmethod
    def list(self) -> list[View]:
        ...

    @abstractmethod
    def get(self, category_id: str) -> View | None:
        ...


class PurchaseRepository(ABC):
    READS = frozenset({"list_for_user", "get_active"})

    @abstractmethod
    def list_for_user(self, user_id: int) -> list[View]:
        ...

    @abstractmethod
    def get_active(self, user_id: int, test_id: str) -> View | None:
        ...

    @abstractmethod
    def record(
        self,
        user_id: int,
        test_id: str,
        payment_amount: Any,
        payment_method: str | None = None,
        transaction_id: str | None = None,
    ) -> View:
        ...

    @abstractmethod
    def refund(self, user_id: int, test_id: str) -> View | None:
        ...


class FallbackRepository:
    """Decorates a repository with the configured read fallback."""

    def __init__(self, primary: Any, fallback: Any, policy: FallbackPolicy) -> None:
        self.primary = primary
        self.fallback = fallback
        self.policy = policy
        self._reads = getattr(primary, "READS", frozenset())

    def __getattr__(self, name: str) -> Any:
        target = getattr(self.primary, name)
        if name not in self._reads or not callable(target):
            return target

        @functools.wraps(target)
        def read(*args: Any, **kwargs: Any) -> Any:
            try:
                return target(*args, **kwargs)
            except SQLAlchemyError:
                if self.policy is not FallbackPolicy.MOCK_ON_ERROR:
                    raise
                logger.warning(
                    "%s.%s failed, serving mock data",
                    type(self.primary).__name__,
                    name,
                    exc_info=True,
                )
                reset = getattr(self.primary, "reset", None)
                if reset is not None:
                    reset()
                return getattr(self.fallback, name)(*args, **kwargs)

        return read
